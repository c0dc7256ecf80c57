"""
Full-table contact export.
"""

from datetime import date
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from contactbook.contacts.models import CONTACT_COLUMNS
from contactbook.contacts.repository import ContactRepository, ContactRepositoryProtocol
from contactbook.contacts.schemas import ContactResponse
from contactbook.shared.exceptions import StoreFaultError
from contactbook.shared.logging import get_logger

logger = get_logger(__name__)

EXPORT_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def export_filename(today: date | None = None) -> str:
    """Download name for an export taken on ``today`` (defaults to the current date)."""
    today = today or date.today()
    return f"contacts_export_{today.isoformat()}.xlsx"


class ContactExporter:
    """Reads every contact in (last_name, first_name) order."""

    def __init__(
        self,
        session: AsyncSession,
        contact_repository: ContactRepositoryProtocol | None = None,
    ) -> None:
        self._contact_repo = contact_repository or ContactRepository(session)

    async def export_all(self) -> list[ContactResponse]:
        """Every contact, unfiltered and unpaginated.

        Raises:
            StoreFaultError: If the store cannot be read.
        """
        try:
            contacts = await self._contact_repo.list_all()
        except SQLAlchemyError as exc:
            logger.exception("Contact export failed")
            raise StoreFaultError(str(exc), details={"operation": "export"}) from exc

        logger.info("Contact export prepared", extra={"row_count": len(contacts)})
        return [ContactResponse.model_validate(c) for c in contacts]

    async def export_rows(self) -> list[dict[str, Any]]:
        """Export records as column-ordered mappings for tabular output."""
        return [_as_row(record) for record in await self.export_all()]


def _as_row(record: ContactResponse) -> dict[str, Any]:
    data = record.model_dump()
    return {column: data[column] for column in CONTACT_COLUMNS}
