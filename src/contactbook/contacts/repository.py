"""
Contact repository for database operations.

"""

from typing import Any, Mapping, Protocol, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from contactbook.contacts.models import Contact, next_timestamp, utcnow
from contactbook.contacts.query import ContactQuery


class ContactRepositoryProtocol(Protocol):
    """Protocol for contact repository operations."""

    async def list(self, query: ContactQuery) -> tuple[Sequence[Contact], int]:
        """Get one page of contacts plus the filtered total."""
        ...

    async def get_by_id(self, contact_id: int) -> Contact | None:
        """Get a contact by ID."""
        ...

    async def create(self, values: Mapping[str, Any], contact_id: int | None = None) -> Contact:
        """Insert a contact."""
        ...

    async def update(self, contact: Contact, values: Mapping[str, Any]) -> Contact:
        """Overwrite fields of an attached contact."""
        ...

    async def delete(self, contact_id: int) -> int:
        """Delete a contact, returning the number of rows removed."""
        ...

    async def list_all(self) -> Sequence[Contact]:
        """Every contact ordered by last name, first name."""
        ...


class ContactRepository:
    """Repository for contact database operations.

    The repository only flushes; transaction boundaries belong to the caller.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
        """
        self._session = session

    async def list(self, query: ContactQuery) -> tuple[Sequence[Contact], int]:
        """Get contacts matching a query with pagination.

        Args:
            query: Normalised filter, sort and paging parameters.

        Returns:
            Tuple of (contacts on this page, total matching contacts).
        """
        total_result = await self._session.execute(query.count_statement())
        total = total_result.scalar() or 0

        result = await self._session.execute(query.page_statement())
        contacts = result.scalars().all()

        return contacts, total

    async def get_by_id(self, contact_id: int) -> Contact | None:
        """Get a contact by ID.

        Args:
            contact_id: Contact ID.

        Returns:
            Contact if found, None otherwise.
        """
        stmt = select(Contact).where(Contact.id == contact_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(
        self,
        values: Mapping[str, Any],
        contact_id: int | None = None,
    ) -> Contact:
        """Create a single contact.

        Args:
            values: Column values for the mutable fields.
            contact_id: Explicit ID to use; the store assigns one when None.

        Returns:
            Created contact with ID and timestamps.
        """
        now = utcnow()
        contact = Contact(**values, created_at=now, updated_at=now)
        if contact_id is not None:
            contact.id = contact_id

        self._session.add(contact)
        await self._session.flush()
        await self._session.refresh(contact)
        return contact

    async def update(self, contact: Contact, values: Mapping[str, Any]) -> Contact:
        """Overwrite fields of a contact and refresh ``updated_at``.

        Args:
            contact: ORM contact instance (must be attached to session).
            values: Field values to write.

        Returns:
            Updated contact.
        """
        for field, value in values.items():
            setattr(contact, field, value)
        contact.updated_at = next_timestamp(contact.updated_at)

        await self._session.flush()
        await self._session.refresh(contact)
        return contact

    async def delete(self, contact_id: int) -> int:
        """Hard-delete a contact.

        Args:
            contact_id: Contact ID.

        Returns:
            Number of rows removed (0 or 1).
        """
        stmt = delete(Contact).where(Contact.id == contact_id)
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def list_all(self) -> Sequence[Contact]:
        """Get every contact in export order."""
        stmt = select(Contact).order_by(
            Contact.last_name.asc(),
            Contact.first_name.asc(),
            Contact.id.asc(),
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()
