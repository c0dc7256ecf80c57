"""
Contact service for single-record operations and listing.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from contactbook.config import get_settings
from contactbook.contacts.models import (
    MUTABLE_FIELDS,
    OPTIONAL_FIELDS,
    REQUIRED_FIELDS,
    fits_integer_column,
)
from contactbook.contacts.query import ContactQuery
from contactbook.contacts.repository import ContactRepository, ContactRepositoryProtocol
from contactbook.contacts.schemas import (
    ContactCreate,
    ContactListResponse,
    ContactResponse,
    ContactUpdate,
    clean_text,
)
from contactbook.shared.exceptions import NotFoundError, StoreFaultError, ValidationError
from contactbook.shared.logging import get_logger

logger = get_logger(__name__)

REQUIRED_NAMES_MESSAGE = "first_name and last_name are required"


def _present_fields(fields: Mapping[str, Any] | ContactCreate | ContactUpdate) -> dict[str, Any]:
    """Cleaned values for the mutable fields the caller actually supplied."""
    if isinstance(fields, ContactUpdate):
        return fields.changes()
    if isinstance(fields, ContactCreate):
        return fields.model_dump()
    return {name: clean_text(fields[name]) for name in MUTABLE_FIELDS if name in fields}


def _require_storable_id(contact_id: int) -> None:
    """IDs outside the INTEGER range cannot exist in the store."""
    if not fits_integer_column(contact_id):
        raise NotFoundError(f"Contact {contact_id} not found")


class ContactService:
    """Service for contact management operations."""

    def __init__(
        self,
        session: AsyncSession,
        contact_repository: ContactRepositoryProtocol | None = None,
    ) -> None:
        """Initialize contact service.

        Args:
            session: Async database session.
            contact_repository: Optional contact repository (for DI).
        """
        self._session = session
        self._contact_repo = contact_repository or ContactRepository(session)

    @asynccontextmanager
    async def _write(self, operation: str, **context: Any) -> AsyncGenerator[None, None]:
        """Commit on success; roll back and surface store errors as StoreFaultError."""
        try:
            yield
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.exception(
                "Contact store fault",
                extra={"operation": operation, **context},
            )
            raise StoreFaultError(str(exc), details={"operation": operation}) from exc
        except Exception:
            await self._session.rollback()
            raise

    async def list_contacts(
        self,
        q: Any = None,
        sort: Any = None,
        direction: Any = None,
        limit: Any = None,
        offset: Any = None,
    ) -> ContactListResponse:
        """List contacts matching a substring filter.

        Args:
            q: Substring matched against first/last name, email, phone and company.
            sort: Sort column; anything outside the allow-list means last_name.
            direction: "desc" (any case) for descending, anything else ascending.
            limit: Page size; non-numeric values use the configured default.
            offset: Rows to skip; non-numeric values mean 0.

        Returns:
            The requested page and the size of the whole filtered set.
        """
        query = ContactQuery.from_params(
            q=q,
            sort=sort,
            direction=direction,
            limit=limit,
            offset=offset,
            default_limit=get_settings().default_page_size,
        )
        try:
            contacts, total = await self._contact_repo.list(query)
        except SQLAlchemyError as exc:
            logger.exception("Contact list failed", extra={"query": repr(query)})
            raise StoreFaultError(str(exc), details={"operation": "list"}) from exc

        return ContactListResponse(
            data=[ContactResponse.model_validate(c) for c in contacts],
            total=total,
        )

    async def get_contact(self, contact_id: int) -> ContactResponse:
        """Get a single contact by ID.

        Raises:
            NotFoundError: If contact not found.
        """
        _require_storable_id(contact_id)
        try:
            contact = await self._contact_repo.get_by_id(contact_id)
        except SQLAlchemyError as exc:
            raise StoreFaultError(str(exc), details={"operation": "get"}) from exc
        if contact is None:
            raise NotFoundError(f"Contact {contact_id} not found")

        return ContactResponse.model_validate(contact)

    async def create_contact(
        self,
        fields: Mapping[str, Any] | ContactCreate,
    ) -> ContactResponse:
        """Create a contact.

        Optional fields the caller leaves out are stored as null.

        Args:
            fields: Client-supplied fields.

        Returns:
            The stored contact, including its ID and timestamps.

        Raises:
            ValidationError: If first_name or last_name is missing or empty.
        """
        supplied = _present_fields(fields)
        values = {name: supplied.get(name) for name in MUTABLE_FIELDS}
        if not all(values[name] for name in REQUIRED_FIELDS):
            raise ValidationError(REQUIRED_NAMES_MESSAGE)

        async with self._write("create"):
            contact = await self._contact_repo.create(values)

        logger.info("Contact created", extra={"contact_id": contact.id})
        return ContactResponse.model_validate(contact)

    async def update_contact(
        self,
        contact_id: int,
        changes: Mapping[str, Any] | ContactUpdate,
    ) -> ContactResponse:
        """Merge a partial update into a contact.

        A field absent from ``changes`` keeps its stored value; an optional
        field sent as null is cleared. ``updated_at`` is always refreshed,
        even when nothing else changes.

        Args:
            contact_id: Contact ID.
            changes: Client-supplied fields.

        Returns:
            The updated contact.

        Raises:
            NotFoundError: If contact not found.
            ValidationError: If first_name or last_name is sent empty or null.
        """
        supplied = _present_fields(changes)
        for name in REQUIRED_FIELDS:
            if name in supplied and not supplied[name]:
                raise ValidationError(REQUIRED_NAMES_MESSAGE)

        _require_storable_id(contact_id)
        async with self._write("update", contact_id=contact_id):
            contact = await self._contact_repo.get_by_id(contact_id)
            if contact is None:
                raise NotFoundError(f"Contact {contact_id} not found")
            contact = await self._contact_repo.update(contact, supplied)

        logger.info(
            "Contact updated",
            extra={
                "contact_id": contact_id,
                "fields": sorted(supplied),
                "cleared": sorted(n for n in OPTIONAL_FIELDS if n in supplied and supplied[n] is None),
            },
        )
        return ContactResponse.model_validate(contact)

    async def delete_contact(self, contact_id: int) -> None:
        """Hard-delete a contact.

        Raises:
            NotFoundError: If no row was removed.
        """
        _require_storable_id(contact_id)
        async with self._write("delete", contact_id=contact_id):
            removed = await self._contact_repo.delete(contact_id)
            if removed == 0:
                raise NotFoundError(f"Contact {contact_id} not found")

        logger.info("Contact deleted", extra={"contact_id": contact_id})
