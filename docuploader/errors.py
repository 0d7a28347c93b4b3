"""Exception taxonomy for docuploader."""
from typing import Optional


class DocUploaderError(Exception):
    """Base class for all docuploader errors."""


class ParseError(DocUploaderError, ValueError):
    """Raised when request text cannot yield an auth context."""


class MissingIdentifierError(ParseError):
    """Organization or project identifier not found in the request text."""

    def __init__(self, which: str):
        self.which = which
        super().__init__(f"Could not find {which} ID in curl command")


class FileReadError(DocUploaderError):
    """Local file could not be read as text."""


class AuthProbeFailure(DocUploaderError):
    """Authentication probe failed; the run must stop."""


class DocsAPIError(DocUploaderError):
    """Base class for remote docs API failures."""


class HttpStatusError(DocsAPIError):
    """Remote answered with a non-success status."""

    def __init__(self, status_code: int, body: str = "", method: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        self.method = method
        super().__init__(f"API error {status_code}: {body}")

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401

    @property
    def is_forbidden(self) -> bool:
        return self.status_code == 403


class TransportError(DocsAPIError):
    """Remote could not be reached."""


class ResponseParseError(DocsAPIError):
    """Success status but the body is not a usable upload response."""


class SessionError(DocUploaderError):
    """Raised when a session operation cannot start."""
