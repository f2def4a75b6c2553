"""Typed HTTP errors raised by routes and dependencies."""


class HttpError(Exception):
    """Error carrying the HTTP status it should be answered with."""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message if message is not None else self.default_message
        super().__init__(self.message)


class BadRequestError(HttpError):
    status_code = 400
    default_message = "Bad Request"


class UnauthorizedError(HttpError):
    status_code = 401
    default_message = "Unauthorized"


class InternalError(HttpError):
    status_code = 500
    default_message = "Internal Server Error"


class StealthBlockedError(HttpError):
    """Answered with a plain success so the caller learns nothing."""

    status_code = 200
    default_message = ""
