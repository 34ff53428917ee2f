"""Base exception type for domain failures surfaced at the request boundary."""

from typing import Any, Optional


class ServiceError(Exception):
    """
    A recoverable, typed failure raised by domain code.

    Domain modules raise subclasses of this instead of ``HTTPException`` so the
    same operations can be called from routers, workers and tests. The HTTP
    layer turns them into responses via ``add_exception_handlers``.
    """

    status_code: int = 400
    error_code: str = "service_error"

    def __init__(self, detail: str, *, context: Optional[dict[str, Any]] = None):
        self.detail = detail
        self.context = context or {}
        super().__init__(detail)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"detail": self.detail, "error": self.error_code}
        if self.context:
            payload["context"] = self.context
        return payload
