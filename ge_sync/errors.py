"""Exception hierarchy shared by the sync flows."""
from __future__ import annotations

SNIPPET_LENGTH = 200


def snippet(text: str | bytes | None, limit: int = SNIPPET_LENGTH) -> str:
    """Whitespace-collapsed preview of an upstream body for error messages."""

    if text is None:
        return ""
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    return " ".join(text.strip()[:limit].split())


class GeSyncError(RuntimeError):
    """Base class for every error raised by ge_sync."""


class ConfigError(GeSyncError):
    """Raised when configuration cannot be loaded."""


class UpstreamError(GeSyncError):
    """The DMS answered with something the flow cannot use."""


class UpstreamHttpError(UpstreamError):
    def __init__(self, *, url: str, status: int, status_text: str = "", body: str | bytes | None = None) -> None:
        self.url = url
        self.status = status
        self.status_text = status_text
        self.preview = snippet(body)
        super().__init__(f"{status} {status_text}".strip() + f" for {url}: {self.preview}")


class UpstreamContentError(UpstreamError):
    """Response body has the wrong content type (HTML where JSON or PDF was expected)."""


class UpstreamPayloadError(UpstreamError):
    """Response body could not be decoded."""


class SessionError(UpstreamError):
    """The cookie bundle is missing or no longer authenticates."""


class PersistenceError(GeSyncError):
    def __init__(self, table: str, message: str) -> None:
        self.table = table
        super().__init__(f"{table} upsert failed: {message}")
