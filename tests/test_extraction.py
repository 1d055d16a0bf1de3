"""
Unit tests for document text extraction
"""
from unittest.mock import MagicMock, patch

import pytest
import requests

from upcora.errors import (
    EmptyContentError,
    FetchError,
    LegacyFormatError,
    LibraryUnavailableError,
    NoTextLayerError,
    UnsupportedTypeError,
    ValidationError,
)
from upcora.services.extraction import (
    DOC,
    DOCX,
    HTML,
    PDF,
    PPT,
    PPTX,
    TEXT,
    TextExtractor,
    build_default_extractor,
    extract_from_url,
    validate_file,
)
from upcora.services.parsers import DocumentParser, ParsedDocument
from tests.documents import STUDY_TEXT, make_blank_pdf, make_docx, make_pdf, make_pptx, slide_xml


@pytest.fixture
def extractor():
    return build_default_extractor()


class TestPlainText:
    def test_whitespace_collapsed_and_trimmed(self, extractor):
        messy = "   " + STUDY_TEXT.replace(". ", ".\n\n\t ") + "  \n"
        content = extractor.extract(messy.encode("utf-8"), "notes.txt", TEXT)

        assert content.text == " ".join(STUDY_TEXT.split())
        assert content.word_count == len(content.text.split())
        assert content.pages is None
        assert content.file_name == "notes.txt"
        assert content.file_type == TEXT

    def test_word_count_of_long_text(self, extractor):
        words = " ".join(f"word{i}" for i in range(150))
        content = extractor.extract(words.encode("utf-8"), "words.txt", TEXT)
        assert content.word_count == 150

    def test_too_short(self, extractor):
        with pytest.raises(EmptyContentError):
            extractor.extract(b"   tiny    note   ", "short.txt", TEXT)

    def test_metadata_shape(self, extractor):
        content = extractor.extract(STUDY_TEXT.encode("utf-8"), "notes.txt", TEXT)
        data = content.to_dict()
        assert data["text"] == content.text
        assert set(data["metadata"]) == {"fileName", "fileType", "wordCount", "extractedAt"}


class TestPdf:
    def test_extracts_text_and_page_count(self, extractor):
        lines = [
            "Photosynthesis converts light energy into chemical energy.",
            "Chlorophyll absorbs light inside the chloroplast membranes.",
            "Glucose stores the captured energy for later respiration.",
        ]
        content = extractor.extract(make_pdf(lines), "bio.pdf", PDF)

        assert "Photosynthesis converts light energy" in content.text
        assert "Glucose stores the captured energy" in content.text
        assert content.pages == 1
        assert content.metadata()["pages"] == 1

    def test_corrupted_pdf(self, extractor):
        with pytest.raises(LibraryUnavailableError):
            extractor.extract(b"this is definitely not a pdf document", "broken.pdf", PDF)

    def test_image_only_pdf(self, extractor):
        with pytest.raises(NoTextLayerError) as exc_info:
            extractor.extract(make_blank_pdf(), "scan.pdf", PDF)
        assert "image-based or protected" in exc_info.value.user_message
        assert exc_info.value.user_message.endswith("Please try saving as a text file.")


class TestWord:
    def test_paragraphs_and_tables(self, extractor):
        data = make_docx(
            [
                "Mitosis produces two identical daughter cells from one parent cell.",
                "Meiosis halves the chromosome number to produce gametes for reproduction.",
            ],
            table_cells=("Prophase", "Metaphase"),
        )
        content = extractor.extract(data, "cells.docx", DOCX)

        assert content.text.startswith("Mitosis produces two identical daughter cells")
        assert "Prophase" in content.text
        assert "Metaphase" in content.text
        assert content.pages is None

    def test_legacy_doc_rejected(self, extractor):
        with pytest.raises(LegacyFormatError) as exc:
            extractor.extract(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1legacy word file", "old.doc", DOC)
        assert ".docx" in exc.value.user_message

    def test_zip_based_doc_is_parsed(self, extractor):
        data = make_docx(["A .doc name on a modern document still parses as Word XML content, so students "
                          "who rename their files keep getting their notes extracted."])
        content = extractor.extract(data, "renamed.doc", DOC)
        assert "modern document" in content.text


class TestPowerPoint:
    def test_slides_extract_in_numeric_order(self, extractor):
        order = [10, 2, 7, 1, 9, 3, 5, 8, 4, 6]
        slides = {n: slide_xml(f"Section{n}end covers part {n} of the lecture") for n in order}
        content = extractor.extract(make_pptx(slides), "deck.pptx", PPTX)

        positions = [content.text.index(f"Section{n}end") for n in range(1, 11)]
        assert positions == sorted(positions)
        assert content.pages == 10

    def test_master_text_without_placeholders(self, extractor):
        slides = {
            1: slide_xml("Plate tectonics explains earthquakes, volcanoes and mountain building."),
            2: slide_xml("Convection in the mantle drives the slow movement of the crust."),
        }
        master = slide_xml("Click to edit Master title style", "Geology Department Lecture Series")
        data = make_pptx(slides, {"ppt/slideMasters/slideMaster1.xml": master})
        content = extractor.extract(data, "geo.pptx", PPTX)

        assert "Geology Department Lecture Series" in content.text
        assert "Click to edit" not in content.text

    def test_entities_unescaped_and_duplicates_dropped(self, extractor):
        xml = slide_xml(
            "Salt &amp; pepper are both seasonings used across many different cuisines worldwide.",
            "Salt &amp; pepper are both seasonings used across many different cuisines worldwide.",
            "Chefs balance flavour carefully.",
        )
        content = extractor.extract(make_pptx({1: xml}), "food.pptx", PPTX)
        assert content.text.count("Salt & pepper") == 1

    def test_not_a_zip(self, extractor):
        with pytest.raises(LibraryUnavailableError):
            extractor.extract(b"plain bytes pretending to be pptx", "fake.pptx", PPTX)

    def test_no_slide_text(self, extractor):
        with pytest.raises(EmptyContentError):
            extractor.extract(make_pptx({1: slide_xml()}), "blank.pptx", PPTX)

    def test_legacy_ppt_rejected(self, extractor):
        with pytest.raises(LegacyFormatError):
            extractor.extract(b"\xd0\xcf\x11\xe0 legacy", "old.ppt", PPT)


class TestUnknownTypes:
    def test_binary_rejected(self, extractor):
        with pytest.raises(UnsupportedTypeError):
            extractor.extract(b"\x00\x01\x02binary payload", "blob.bin", "application/octet-stream")

    def test_textual_unknown_type_decoded(self, extractor):
        content = extractor.extract(STUDY_TEXT.encode("utf-8"), "notes.md", "text/markdown")
        assert content.text == " ".join(STUDY_TEXT.split())


class TestValidateFile:
    def test_accepts_supported(self):
        validate_file("notes.txt", TEXT, 1024)

    def test_missing_name(self):
        with pytest.raises(ValidationError):
            validate_file(None, TEXT, 10)

    def test_unsupported_type(self):
        with pytest.raises(UnsupportedTypeError):
            validate_file("image.png", "image/png", 10)

    def test_too_large(self):
        with pytest.raises(ValidationError):
            validate_file("big.pdf", PDF, 10 * 1024 * 1024 + 1)


class TestUrlExtraction:
    def _response(self, status_code=200, text="", reason="OK"):
        response = MagicMock()
        response.status_code = status_code
        response.text = text
        response.reason = reason
        return response

    def test_html_stripped(self):
        html = f"<html><script>track()</script><body><p>{STUDY_TEXT}</p></body></html>"
        with patch("upcora.services.extraction.requests.get", return_value=self._response(text=html)) as get:
            content = extract_from_url("https://example.org/lesson")

        assert content.text == " ".join(STUDY_TEXT.split())
        assert content.file_type == HTML
        assert content.file_name == "https://example.org/lesson"
        assert get.call_args.kwargs["headers"]["User-Agent"]

    def test_non_2xx(self):
        with patch("upcora.services.extraction.requests.get", return_value=self._response(404, reason="Not Found")):
            with pytest.raises(FetchError) as exc:
                extract_from_url("https://example.org/missing")
        assert "404" in exc.value.message

    def test_network_error(self):
        with patch("upcora.services.extraction.requests.get", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(FetchError):
                extract_from_url("https://example.org/down")

    def test_too_little_content(self):
        with patch("upcora.services.extraction.requests.get", return_value=self._response(text="<p>Hi</p>")):
            with pytest.raises(EmptyContentError):
                extract_from_url("https://example.org/empty")


class TestParserInjection:
    def test_custom_parser_table(self):
        class FakeParser(DocumentParser):
            def parse(self, data):
                return ParsedDocument(text="fake " * 40, pages=7)

        extractor = TextExtractor({"application/x-fake": FakeParser()})
        content = extractor.extract(b"ignored", "thing.fake", "application/x-fake")

        assert extractor.supports("application/x-fake")
        assert not extractor.supports(PDF)
        assert content.pages == 7
        assert content.word_count == 40
