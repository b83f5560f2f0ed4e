# Overview: Error types shared by services and the central error responder.


class NotFoundError(LookupError):
    """No row matches the requested id (404)."""


class AccessDeniedError(PermissionError):
    """The caller is authenticated but may not touch this row (403)."""


class AuthenticationError(Exception):
    """Missing, invalid or expired credentials (401). `code` is machine-readable."""

    def __init__(self, message: str, code: str = "AUTH_ERROR"):
        super().__init__(message)
        self.code = code
