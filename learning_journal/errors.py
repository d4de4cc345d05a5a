# errors.py
class AppError(Exception):
    """Base class for errors that reach the client as {"error": message}."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthError(AppError):
    status_code = 401


class ValidationError(AppError):
    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class GenerationError(AppError):
    status_code = 500
