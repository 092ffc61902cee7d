"""
Errors raised by the book repository.

Each one is translated into a JSON response by the handlers registered in
main.py, so route functions never build error responses themselves.
"""
from typing import List, Optional


class BookError(Exception):
    status_code = 500
    message = "internal error"

    def to_dict(self) -> dict:
        return {"message": self.message}


class ValidationError(BookError):
    status_code = 400
    message = "validation failed"

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors

    def to_dict(self) -> dict:
        return {"message": self.message, "errors": self.errors}


class InvalidIdentifier(BookError):
    status_code = 400
    message = "invalid id format"


class NotFound(BookError):
    status_code = 404
    message = "book not found"


class StoreError(BookError):
    def __init__(self, message: str, cause: Optional[Exception] = None, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.status_code = status_code

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.cause is not None:
            body["error"] = str(self.cause)
        return body
