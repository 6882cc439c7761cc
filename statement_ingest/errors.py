"""
Exception hierarchy for statement import.

Fatal parse problems abort the whole import and carry an HTTP status the
API layer returns verbatim.  Per-row problems are never raised; they are
counted by the canonicalizer instead.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class StatementImportError(ValueError):
    """Base class for every error raised by the import pipeline.

    Attributes
    ----------
    http_status:
        Status code the API layer should answer with.
    details:
        Extra context for logs; never shown to end users.
    """

    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        http_status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if http_status is not None:
            self.http_status = http_status


class StatementParseError(StatementImportError):
    """The uploaded file cannot be turned into headers and rows."""


class EmptyInputError(StatementParseError):
    """The file holds no non-empty lines."""

    def __init__(self) -> None:
        super().__init__("CSV is empty")


class UnterminatedQuoteError(StatementParseError):
    """A line ended while a quoted field was still open."""

    def __init__(self, line: str) -> None:
        super().__init__("Unterminated quoted field", details={"line": line})


class HeaderNotFoundError(StatementParseError):
    """No line matches any accepted header vocabulary."""

    def __init__(self, vocabularies: List[List[str]]) -> None:
        described = " or ".join(
            "/".join(word.title() for word in vocab) for vocab in vocabularies
        )
        super().__init__(
            "No valid transactions header found. "
            f"Expected columns like {described}.",
            details={"vocabularies": vocabularies},
        )


class ColumnMappingError(StatementImportError):
    """The column mapping does not satisfy the mapping gate."""

    def __init__(self, errors: List[str]) -> None:
        super().__init__(
            "Invalid column mapping: " + "; ".join(errors),
            details={"errors": errors},
        )
        self.errors = list(errors)


class DuplicateTransactionError(StatementImportError):
    """A store insert would violate a uniqueness constraint."""

    http_status = 409
