"""Error taxonomy raised by the recommendation pipeline."""

from __future__ import annotations

GENERIC_MESSAGES: dict[int, str] = {
    400: "Invalid request",
    401: "Authentication required",
    402: "Subscription required",
    403: "Access denied",
    404: "Not found",
    429: "Too many requests",
}
DEFAULT_GENERIC_MESSAGE = "An unexpected error occurred"


def generic_message(status_code: int) -> str:
    """Return the client-safe message for an HTTP status code."""

    return GENERIC_MESSAGES.get(status_code, DEFAULT_GENERIC_MESSAGE)


class PipelineError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str | None = None, *, reason: str | None = None):
        self.message = message or generic_message(self.status_code)
        self.reason = reason
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        return generic_message(self.status_code)

    def to_payload(self, *, expose_detail: bool) -> dict[str, object]:
        """Serialise the error, hiding internal text unless asked not to."""

        payload: dict[str, object] = {
            "error": self.public_message,
            "code": self.code,
        }
        if self.reason:
            payload["reason"] = self.reason
        if expose_detail and self.message != self.public_message:
            payload["detail"] = self.message
        return payload

    def headers(self) -> dict[str, str]:
        return {}


class RequestValidationError(PipelineError):
    status_code = 400
    code = "invalid_request"

    def __init__(
        self,
        message: str | None = None,
        *,
        reason: str | None = None,
        errors: list[dict[str, object]] | None = None,
    ):
        super().__init__(message, reason=reason)
        self.errors = errors or []

    def to_payload(self, *, expose_detail: bool) -> dict[str, object]:
        payload = super().to_payload(expose_detail=expose_detail)
        if expose_detail and self.errors:
            payload["errors"] = self.errors
        return payload


class AuthError(PipelineError):
    status_code = 401
    code = "unauthenticated"


class AccessDeniedError(PipelineError):
    status_code = 402
    code = "subscription_required"


class RateLimitedError(PipelineError):
    status_code = 429
    code = "rate_limited"

    def __init__(
        self,
        *,
        limit: int,
        retry_after: int,
        scope: str,
    ):
        super().__init__(f"Rate limit exceeded for {scope} scope")
        self.limit = limit
        self.retry_after = retry_after
        self.scope = scope

    def to_payload(self, *, expose_detail: bool) -> dict[str, object]:
        payload = super().to_payload(expose_detail=expose_detail)
        payload["retryAfter"] = self.retry_after
        return payload

    def headers(self) -> dict[str, str]:
        return {
            "Retry-After": str(self.retry_after),
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(self.retry_after),
        }


class UpstreamGenerationError(PipelineError):
    code = "generation_failed"


class UpstreamCatalogError(PipelineError):
    code = "catalog_failed"


class InternalError(PipelineError):
    code = "internal_error"
