"""
Error taxonomy for extraction, generation and request handling.

Every error carries a short message plus an optional remediation hint that is
shown to the user ("Please try saving as a text file."). The HTTP layer renders
``user_message`` with ``status_code``.
"""
from typing import Optional


class UpcoraError(Exception):
    status_code = 500

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint

    @property
    def user_message(self) -> str:
        if not self.hint:
            return self.message
        return f"{self.message.rstrip('.')}. {self.hint}"


class UnsupportedTypeError(UpcoraError):
    """The declared MIME type is not accepted."""
    status_code = 400


class EmptyContentError(UpcoraError):
    """Extraction produced too little text to work with."""


class LibraryUnavailableError(UpcoraError):
    """A document parser is missing or failed on the input."""


class NoTextLayerError(LibraryUnavailableError):
    """PDF opened fine but has no extractable text (scanned or protected)."""


class LegacyFormatError(LibraryUnavailableError):
    """Binary .doc / .ppt formats that we do not parse."""


class FetchError(UpcoraError):
    """Retrieving a URL failed or returned a non-2xx status."""


class ValidationError(UpcoraError):
    status_code = 400
