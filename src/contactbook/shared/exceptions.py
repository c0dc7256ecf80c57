"""
Shared exceptions.

Every error raised by the contact core derives from AppError so the HTTP
layer can map it to a status code in one place.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(eq=False)
class AppError(Exception):
    message: str = "Application error"
    details: Optional[dict[str, Any]] = None

    def __str__(self) -> str:
        return self.message


class ValidationError(AppError):
    """Caller-correctable input problem (missing required field, bad upload)."""


class NotFoundError(AppError):
    """Operation addressed a contact id that does not exist."""


class ImportFailedError(AppError):
    """Bulk import aborted; the whole batch was rolled back."""


class StoreFaultError(AppError):
    """Storage-layer failure on a single-record path."""
