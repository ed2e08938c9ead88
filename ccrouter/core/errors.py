"""Exception types raised by ccrouter."""

from typing import Any


class CCRouterError(Exception):
    """Base exception for all ccrouter errors."""

    pass


class ConfigurationError(CCRouterError):
    """Raised when configuration loading or validation fails."""

    pass


class UpstreamError(CCRouterError):
    """Raised when the upstream chat completion endpoint rejects a request."""

    def __init__(
        self,
        status_code: int,
        body: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        self.details = details or {}
        preview = body[:200] if body else "<empty body>"
        super().__init__(f"Upstream returned HTTP {status_code}: {preview}")


class TranslatorClosedError(CCRouterError):
    """Raised when a finished StreamTranslator is fed more input."""

    pass
