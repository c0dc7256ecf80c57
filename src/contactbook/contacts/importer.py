"""
Bulk contact import.

Rows arrive loosely shaped (spreadsheet headers vary), are normalised, and
are upserted inside a single transaction. A row without a usable first or
last name is skipped; any other failure rolls back the whole batch.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from contactbook.contacts.models import OPTIONAL_FIELDS, fits_integer_column
from contactbook.contacts.repository import ContactRepository, ContactRepositoryProtocol
from contactbook.contacts.schemas import ImportSummary, clean_text
from contactbook.shared.exceptions import ImportFailedError
from contactbook.shared.logging import get_logger

logger = get_logger(__name__)

# Accepted header spellings, in priority order.
FIRST_NAME_ALIASES: tuple[str, ...] = ("first_name", "firstName", "first name")
LAST_NAME_ALIASES: tuple[str, ...] = ("last_name", "lastName", "last name")


class RowOutcome(str, Enum):
    """What happened to a single import row."""

    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ImportRow:
    """A row after alias resolution and cleaning."""

    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    notes: str | None = None
    id: int | None = None

    def values(self) -> dict[str, str | None]:
        """Every mutable field; absent optional fields are explicit nulls."""
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "company": self.company,
            "notes": self.notes,
        }


def _first_present(row: Mapping[str, Any], aliases: Iterable[str]) -> str | None:
    for alias in aliases:
        value = clean_text(row.get(alias))
        if value:
            return value
    return None


def parse_row_id(value: Any) -> int | None:
    """Interpret an ``id`` cell.

    Blank and zero mean "no id". Integers, integral floats and numeric
    strings are accepted. IDs must fit SQLite's signed 64-bit INTEGER.

    Raises:
        ValueError: If the value cannot be used as a contact ID.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid contact id: {value!r}")
    if value is None:
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"Invalid contact id: {value!r}")
        number = int(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = float(text)
        except ValueError:
            raise ValueError(f"Invalid contact id: {value!r}") from None
        if not parsed.is_integer():
            raise ValueError(f"Invalid contact id: {value!r}")
        number = int(parsed)
    if not fits_integer_column(number):
        raise ValueError(f"Contact id out of range: {value!r}")
    return number or None


def resolve_row(row: Mapping[str, Any]) -> ImportRow | None:
    """Normalise one raw row, or return None when it must be skipped.

    Raises:
        ValueError: If the row carries an unusable ``id``.
    """
    first_name = _first_present(row, FIRST_NAME_ALIASES)
    last_name = _first_present(row, LAST_NAME_ALIASES)
    if not first_name or not last_name:
        return None

    optional = {name: clean_text(row.get(name)) for name in OPTIONAL_FIELDS}
    return ImportRow(
        first_name=first_name,
        last_name=last_name,
        id=parse_row_id(row.get("id")),
        **optional,
    )


class ContactImporter:
    """All-or-nothing upsert of imported rows."""

    def __init__(
        self,
        session: AsyncSession,
        contact_repository: ContactRepositoryProtocol | None = None,
    ) -> None:
        """Initialize importer.

        Args:
            session: Async database session; the importer commits or rolls
                back its transaction.
            contact_repository: Optional contact repository (for DI).
        """
        self._session = session
        self._contact_repo = contact_repository or ContactRepository(session)

    async def _apply(self, raw: Mapping[str, Any]) -> RowOutcome:
        row = resolve_row(raw)
        if row is None:
            return RowOutcome.SKIPPED

        if row.id is None:
            await self._contact_repo.create(row.values())
            return RowOutcome.INSERTED

        existing = await self._contact_repo.get_by_id(row.id)
        if existing is not None:
            await self._contact_repo.update(existing, row.values())
            return RowOutcome.UPDATED

        # Keep the caller's id so exported files can be re-imported as-is.
        await self._contact_repo.create(row.values(), contact_id=row.id)
        return RowOutcome.INSERTED

    async def import_rows(self, rows: Iterable[Mapping[str, Any]]) -> ImportSummary:
        """Upsert rows in one transaction.

        Args:
            rows: Row records keyed by column header.

        Returns:
            Counts per outcome plus the number of rows presented.

        Raises:
            ImportFailedError: If any row fails for a reason other than a
                missing name. Nothing from the batch is kept.
        """
        rows = list(rows)
        counts: Counter[RowOutcome] = Counter()
        line = 0

        try:
            for line, raw in enumerate(rows, start=1):
                counts[await self._apply(raw)] += 1
            await self._session.commit()
        except Exception as exc:
            await self._session.rollback()
            logger.exception(
                "Contact import rolled back",
                extra={"row": line, "total_parsed": len(rows)},
            )
            raise ImportFailedError(
                str(exc) or exc.__class__.__name__,
                details={"row": line},
            ) from exc

        summary = ImportSummary(
            inserted=counts[RowOutcome.INSERTED],
            updated=counts[RowOutcome.UPDATED],
            skipped=counts[RowOutcome.SKIPPED],
            total_parsed=len(rows),
        )
        logger.info("Contact import committed", extra=summary.model_dump())
        return summary
