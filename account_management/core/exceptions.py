"""
Centralised custom exceptions.
Services raise these; FastAPI turns them into {"detail": ...} responses with the
matching status code. Having them in one place keeps the wording of the
one-time-password errors identical across the signup and login flows.
"""
from fastapi import HTTPException, status


class BadRequestException(HTTPException):
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class CredentialsException(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenException(HTTPException):
    def __init__(self, detail: str = "You do not have permission to perform this action"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundException(HTTPException):
    def __init__(self, resource: str = "Resource"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )


class ConflictException(HTTPException):
    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class TooManyRequestsException(HTTPException):
    def __init__(self, detail: str = "Too many requests. Please try again later."):
        super().__init__(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail)


class InvalidOneTimePasswordException(HTTPException):
    """
    Wrong code and expired code share this response so a caller cannot tell
    which of the two happened.
    """
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The code is wrong or no longer valid.",
        )


class AttemptsExhaustedException(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Too many attempts, please request a new code.",
        )


class ResendTooSoonException(HTTPException):
    def __init__(self, seconds: int):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"You must wait at least {seconds} seconds before requesting a new code.",
        )
