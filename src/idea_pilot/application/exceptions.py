from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class ConflictError(AppError):
    pass


class ValidationError(AppError):
    pass


class BackendError(AppError):
    """The AI backend could not produce a usable answer."""

    def __init__(
        self,
        detail: str = "",
        *,
        error: str = "Backend request failed",
        status_code: int | None = None,
    ) -> None:
        super().__init__(detail)
        self.error = error
        self.status_code = status_code


class BackendUnavailableError(BackendError):
    def __init__(
        self,
        detail: str = "",
        *,
        error: str = "Failed to connect to backend server",
    ) -> None:
        super().__init__(detail, error=error)


class InvalidBackendResponseError(BackendError):
    def __init__(self, detail: str = "", *, status_code: int | None = None) -> None:
        super().__init__(
            detail,
            error="Invalid JSON response from backend",
            status_code=status_code,
        )
