"""Error taxonomy raised by the service layer.

Routers let these propagate; ``unilibrary.main`` turns them into JSON
responses with the same ``{"detail": ...}`` body FastAPI uses for
``HTTPException``.
"""


class LibraryError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(LibraryError):
    status_code = 404


class InvalidStateError(LibraryError):
    status_code = 400


class ForbiddenError(LibraryError):
    status_code = 403


class AuthenticationError(LibraryError):
    status_code = 401
