"""
Error taxonomy for the portfolio core.

Only ParseError is allowed to end the process (at initial load). Everything
else is recovered at the component boundary that raises it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal


class FolioError(Exception):
    """Base class for all portfolio errors."""


class ParseError(FolioError):
    """Malformed position input: bad structure, duplicate names, negative amounts."""


class EditErrorKind(Enum):
    NOT_FOUND = "not_found"
    INVALID = "invalid"


@dataclass
class EditError(FolioError):
    """Rejected user edit. Surfaced inline; never fatal."""

    kind: EditErrorKind
    message: str
    name: str | None = None

    def __str__(self) -> str:
        return self.message


QuoteErrorCode = Literal["NETWORK", "TIMEOUT", "NOT_FOUND", "BAD_RESPONSE"]


@dataclass
class QuoteFetchError(FolioError):
    """Per-symbol fetch failure. Recovered via cache fallback or 'unknown' marking."""

    symbol: str
    code: QuoteErrorCode
    message: str

    def __str__(self) -> str:
        return self.message


class SerializeError(FolioError):
    """Write-back of positions failed."""


class CacheError(FolioError):
    """Quote cache read or write failed. Logged only."""
