"""Error taxonomy shared by the stores, the orchestrator and the routers.

Each error knows the HTTP status it maps to; ``main.py`` registers a single
handler that turns any ``AppError`` into a JSON response at the request
boundary.
"""


class AppError(Exception):
    status_code = 500
    code = "InternalError"

    def __init__(self, message: str = "", code: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        if code:
            self.code = code


class ValidationError(AppError):
    status_code = 400
    code = "ValidationError"


class AuthError(AppError):
    status_code = 401
    code = "InvalidToken"


class NotFoundError(AppError):
    status_code = 404
    code = "NotFound"


class UpstreamError(AppError):
    status_code = 500
    code = "LLMUnavailable"


class StorageError(AppError):
    status_code = 500
    code = "StorageError"
