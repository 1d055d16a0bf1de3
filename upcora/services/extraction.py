"""
Text extraction for uploaded documents and URLs
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

import requests
import structlog

from upcora import config
from upcora.errors import EmptyContentError, FetchError, UnsupportedTypeError, ValidationError
from upcora.services.logging import log_performance
from upcora.services.parsers import (
    DocumentParser,
    LegacyPowerPointParser,
    PdfParser,
    PlainTextParser,
    PowerPointParser,
    WordParser,
)
from upcora.services.text_utils import collapse_whitespace, strip_html, word_count

logger = structlog.get_logger()

PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOC = "application/msword"
PPTX = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
PPT = "application/vnd.ms-powerpoint"
PPT_ALIASES = ("application/powerpoint", "application/x-mspowerpoint")
TEXT = "text/plain"
HTML = "text/html"

ALLOWED_MIME_TYPES = [PDF, DOCX, PPTX, PPT, DOC, TEXT, *PPT_ALIASES]

UNSUPPORTED_HINT = "Please upload PDF, Word, PowerPoint, or text files."


@dataclass(frozen=True)
class ExtractedContent:
    text: str
    file_name: str
    file_type: str
    word_count: int
    pages: Optional[int] = None
    extracted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def metadata(self) -> dict:
        meta = {
            "fileName": self.file_name,
            "fileType": self.file_type,
            "wordCount": self.word_count,
            "extractedAt": self.extracted_at.isoformat(),
        }
        if self.pages is not None:
            meta["pages"] = self.pages
        return meta

    def to_dict(self) -> dict:
        return {"text": self.text, "metadata": self.metadata()}


def validate_file(file_name: Optional[str], mime_type: Optional[str], size: int) -> None:
    if not file_name:
        raise ValidationError("No file provided")
    if mime_type not in ALLOWED_MIME_TYPES:
        raise UnsupportedTypeError(
            f"File type not supported. Allowed types: {', '.join(ALLOWED_MIME_TYPES)}"
        )
    if size > config.MAX_FILE_SIZE:
        raise ValidationError(f"File too large. Maximum size: {config.MAX_FILE_SIZE // (1024 * 1024)}MB")


def _finalize(raw_text: str, file_name: str, file_type: str, pages: Optional[int], too_short: str) -> ExtractedContent:
    text = collapse_whitespace(raw_text)
    if len(text) < config.MIN_TEXT_LENGTH:
        raise EmptyContentError(too_short, hint="Please upload a document with more readable text.")
    return ExtractedContent(
        text=text,
        file_name=file_name,
        file_type=file_type,
        word_count=word_count(text),
        pages=pages,
    )


class TextExtractor:
    """Dispatches raw bytes to the parser registered for their MIME type."""

    def __init__(self, parsers: Dict[str, DocumentParser]):
        self.parsers = dict(parsers)

    def supports(self, mime_type: str) -> bool:
        return mime_type in self.parsers

    @log_performance("extract_text")
    def extract(self, data: bytes, file_name: str, mime_type: str) -> ExtractedContent:
        parser = self.parsers.get(mime_type)
        if parser is None:
            raw, pages = self.decode_unknown(data, mime_type), None
        else:
            parsed = parser.parse(data)
            raw, pages = parsed.text, parsed.pages

        content = _finalize(raw, file_name, mime_type, pages, "File appears to be empty or too short for processing")
        logger.info(
            "text_extracted",
            file_name=file_name,
            file_type=mime_type,
            word_count=content.word_count,
            pages=content.pages,
        )
        return content

    @staticmethod
    def decode_unknown(data: bytes, mime_type: str) -> str:
        """Best-effort read of an unregistered type, refusing binary content."""
        if b"\x00" in data or b"\xff" in data:
            raise UnsupportedTypeError(f"Unsupported file type: {mime_type}", hint=UNSUPPORTED_HINT)
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise UnsupportedTypeError(f"Unsupported file type: {mime_type}", hint=UNSUPPORTED_HINT) from e
        if len(text) < 10:
            raise UnsupportedTypeError(f"Unsupported file type: {mime_type}", hint=UNSUPPORTED_HINT)
        return text


def build_default_extractor() -> TextExtractor:
    pdf = PdfParser()
    word = WordParser()
    legacy_ppt = LegacyPowerPointParser()
    parsers: Dict[str, DocumentParser] = {
        PDF: pdf,
        DOCX: word,
        DOC: word,
        PPTX: PowerPointParser(),
        PPT: legacy_ppt,
        TEXT: PlainTextParser(),
    }
    for alias in PPT_ALIASES:
        parsers[alias] = legacy_ppt
    return TextExtractor(parsers)


@log_performance("extract_url")
def extract_from_url(url: str, timeout: Optional[float] = None) -> ExtractedContent:
    try:
        response = requests.get(
            url,
            timeout=timeout or config.FETCH_TIMEOUT_SECONDS,
            headers={"User-Agent": "UpcoraBot/1.0"},
        )
    except requests.RequestException as e:
        raise FetchError(f"Failed to fetch URL: {e}") from e

    if not 200 <= response.status_code < 300:
        raise FetchError(f"Failed to fetch URL: {response.status_code} {response.reason or ''}".strip())

    content = _finalize(
        strip_html(response.text),
        url,
        HTML,
        None,
        "URL content appears to be empty or too short for processing",
    )
    logger.info("url_extracted", url=url, word_count=content.word_count)
    return content
