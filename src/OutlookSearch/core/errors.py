"""Error types shared by the query compilers and the Graph source."""

from __future__ import annotations


class QueryValidationError(ValueError):
    """Raised when a query cannot be compiled.

    Covers malformed field operators, empty values, and invalid category or
    label tokens. Always raised before any remote request is issued.
    """


class InvalidCategory(QueryValidationError):
    """Raised when a category name is empty or not in the category table."""

    def __init__(self, value: object, valid: tuple[str, ...] = ()) -> None:
        self.value = value
        self.valid = valid
        if isinstance(value, str) and value.strip():
            message = f'Invalid Outlook category: "{value}"'
            if valid:
                message += f". Valid categories: {', '.join(valid)}"
        else:
            message = f"Invalid category: expected non-empty string, got {value!r}"
        super().__init__(message)


class RemoteFetchError(RuntimeError):
    """Raised when a Microsoft Graph request fails.

    Attributes:
        status_code: HTTP status code, or None for transport failures.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
