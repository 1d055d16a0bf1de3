"""
Document parsers used by the text extractor.

Each parser turns raw bytes of one document family into text. Instances are
stateless and built once at start-up, see ``extraction.build_default_extractor``.
"""
from __future__ import annotations

import html
import io
import re
import zipfile
from dataclasses import dataclass
from typing import List, Optional

import docx
import fitz  # PyMuPDF
import structlog
from pypdf import PdfReader

from upcora.errors import (
    EmptyContentError,
    LegacyFormatError,
    LibraryUnavailableError,
    NoTextLayerError,
)

logger = structlog.get_logger()

TEXT_FILE_HINT = "Please try saving as a text file."


@dataclass(frozen=True)
class ParsedDocument:
    text: str
    pages: Optional[int] = None


class DocumentParser:
    name = "base"

    def parse(self, data: bytes) -> ParsedDocument:
        raise NotImplementedError


# -------------------- PDF --------------------

class PdfParser(DocumentParser):
    """PyMuPDF first, pypdf when PyMuPDF cannot open or read the file."""

    name = "pdf"

    def parse(self, data: bytes) -> ParsedDocument:
        try:
            text, pages = self._read_with_pymupdf(data)
        except Exception as e:
            logger.warning("pymupdf_read_failed", error=str(e))
            text, pages = "", None

        if not text.strip():
            try:
                text, pages = self._read_with_pypdf(data)
            except Exception as e:
                logger.error("pdf_parse_failed", error=str(e))
                raise LibraryUnavailableError(
                    "Invalid or corrupted PDF file",
                    hint="Please try re-saving the PDF or converting it to text format.",
                ) from e

        if not text.strip():
            raise NoTextLayerError(
                "No text content found in PDF. The PDF may be image-based or protected",
                hint=TEXT_FILE_HINT,
            )
        return ParsedDocument(text=text, pages=pages)

    @staticmethod
    def _read_with_pymupdf(data: bytes):
        with fitz.open(stream=data, filetype="pdf") as doc:
            parts = [page.get_text("text") or "" for page in doc]
            return "\n".join(parts), doc.page_count

    @staticmethod
    def _read_with_pypdf(data: bytes):
        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted:
            reader.decrypt("")
        parts = [page.extract_text() or "" for page in reader.pages]
        return "\n".join(parts), len(reader.pages)


# -------------------- WORD --------------------

class WordParser(DocumentParser):
    """python-docx for .docx; legacy binary .doc is refused."""

    name = "word"

    def parse(self, data: bytes) -> ParsedDocument:
        if not zipfile.is_zipfile(io.BytesIO(data)):
            raise LegacyFormatError(
                "Legacy .doc format is not supported",
                hint="Please save your document as .docx or as a text file.",
            )
        try:
            document = docx.Document(io.BytesIO(data))
        except Exception as e:
            raise LibraryUnavailableError(
                f"Failed to process Word document: {e}", hint=TEXT_FILE_HINT
            ) from e

        parts = [p.text for p in document.paragraphs if p.text]
        for table in document.tables:
            for row in table.rows:
                for cell in row.cells:
                    if cell.text:
                        parts.append(cell.text)
        return ParsedDocument(text="\n".join(parts))


# -------------------- POWERPOINT --------------------

SLIDE_PART_RE = re.compile(r"ppt/slides/slide(\d+)\.xml$")
TEXT_RUN_RE = re.compile(r"<a:t(?:\s[^>]*)?>([^<]+)</a:t>")
PARAGRAPH_RE = re.compile(r"<a:p(?:\s[^>]*)?>(.*?)</a:p>", re.DOTALL)
XML_TAG_RE = re.compile(r"<[^>]+>")
SPACES_RE = re.compile(r"\s+")
PLACEHOLDER_RE = re.compile(r"^(Click to edit|Add your|Sample)", re.IGNORECASE)

MASTER_PARTS = ("ppt/slideMasters/slideMaster1.xml", "ppt/slideLayouts/slideLayout1.xml")


def _slide_number(part_name: str) -> int:
    match = SLIDE_PART_RE.search(part_name)
    return int(match.group(1)) if match else 0


def _unique(items: List[str]) -> List[str]:
    seen = set()
    out = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
    return out


class PowerPointParser(DocumentParser):
    """Reads .pptx as a zip of slide XML parts."""

    name = "powerpoint"

    def parse(self, data: bytes) -> ParsedDocument:
        try:
            archive = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile as e:
            raise LibraryUnavailableError(
                "Failed to process PowerPoint: not a valid PPTX archive",
                hint="Please ensure the file is a valid PPTX or save the slides as a text file.",
            ) from e

        with archive:
            slide_parts = sorted(
                (name for name in archive.namelist() if SLIDE_PART_RE.search(name)),
                key=_slide_number,
            )

            blocks: List[str] = []
            for part in slide_parts:
                try:
                    slide_text = self.slide_text(archive.read(part).decode("utf-8"))
                except (KeyError, UnicodeDecodeError, zipfile.BadZipFile) as e:
                    logger.warning("pptx_slide_skipped", part=part, error=str(e))
                    continue
                if slide_text:
                    blocks.append(slide_text)

            extracted = "\n\n".join(blocks)
            for part in MASTER_PARTS:
                if part not in archive.namelist():
                    continue
                master_text = self.master_text(archive.read(part).decode("utf-8", errors="ignore"))
                if master_text and master_text not in extracted:
                    blocks.append(master_text)
                    extracted = "\n\n".join(blocks)

        if not extracted.strip():
            raise EmptyContentError(
                "No readable text found in PowerPoint file",
                hint="Please ensure your slides contain text content, or try saving each slide as a text file.",
            )
        return ParsedDocument(text=extracted, pages=len(slide_parts))

    @staticmethod
    def slide_text(xml: str) -> str:
        pieces = [t for t in (html.unescape(m).strip() for m in TEXT_RUN_RE.findall(xml)) if t]
        if not pieces:
            # paragraph markup only when no text runs matched
            pieces = [
                t for t in (
                    html.unescape(SPACES_RE.sub(" ", XML_TAG_RE.sub(" ", m))).strip()
                    for m in PARAGRAPH_RE.findall(xml)
                ) if t
            ]
        return " ".join(_unique(pieces)).strip()

    @staticmethod
    def master_text(xml: str) -> str:
        runs = [html.unescape(m).strip() for m in TEXT_RUN_RE.findall(xml)]
        return " ".join(t for t in runs if t and not PLACEHOLDER_RE.match(t))


class LegacyPowerPointParser(DocumentParser):
    name = "legacy-powerpoint"

    def parse(self, data: bytes) -> ParsedDocument:
        raise LegacyFormatError(
            "Legacy PPT format not supported",
            hint="Please save your PowerPoint as PPTX format for text extraction.",
        )


# -------------------- PLAIN TEXT --------------------

class PlainTextParser(DocumentParser):
    name = "text"

    def parse(self, data: bytes) -> ParsedDocument:
        return ParsedDocument(text=data.decode("utf-8", errors="replace"))
