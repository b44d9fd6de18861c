from fastapi import status


class ForumError(Exception):
    """Base error for the forum core; carries the HTTP status it maps to."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ForumError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(ForumError):
    status_code = status.HTTP_404_NOT_FOUND


class DuplicateError(ForumError):
    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(ForumError):
    status_code = status.HTTP_403_FORBIDDEN


class StoreError(ForumError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class DocumentConflict(StoreError):
    status_code = status.HTTP_409_CONFLICT


class Exceptions:
    MISSING_FIELDS = "Missing required fields"
    NOT_LOGGED_IN = "You are not logged in"
    INVALID_CREDENTIALS = "Invalid username or password"
    USER_EXISTS = "User already exists"
    FORUM_NOT_FOUND = "Forum not found"
    MESSAGE_NOT_FOUND = "Message not found"

    @staticmethod
    def invalid_credentials() -> AuthError:
        return AuthError(Exceptions.INVALID_CREDENTIALS, status.HTTP_401_UNAUTHORIZED)

    @staticmethod
    def not_logged_in() -> AuthError:
        return AuthError(Exceptions.NOT_LOGGED_IN)
