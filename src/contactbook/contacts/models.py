"""
SQLAlchemy models for contacts.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import DateTime, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from contactbook.shared.database import Base

# Column order used for JSON payloads and spreadsheet exports.
CONTACT_COLUMNS: tuple[str, ...] = (
    "id",
    "first_name",
    "last_name",
    "email",
    "phone",
    "company",
    "notes",
    "created_at",
    "updated_at",
)

# Fields a caller may set; id and timestamps are owned by the store.
MUTABLE_FIELDS: tuple[str, ...] = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "company",
    "notes",
)

REQUIRED_FIELDS: tuple[str, ...] = ("first_name", "last_name")

OPTIONAL_FIELDS: tuple[str, ...] = ("email", "phone", "company", "notes")

# SQLite INTEGER is a signed 64-bit value; larger Python ints cannot be bound.
INTEGER_MIN = -(2**63)
INTEGER_MAX = 2**63 - 1


def fits_integer_column(value: int) -> bool:
    """Whether ``value`` can be stored in (or compared against) an INTEGER column."""
    return INTEGER_MIN <= value <= INTEGER_MAX


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (SQLite stores no offset)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def next_timestamp(previous: datetime | None) -> datetime:
    """Return a timestamp strictly later than ``previous``."""
    now = utcnow()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


class Contact(Base):
    """A single address-book entry."""

    __tablename__ = "contacts"
    __table_args__ = (
        Index("idx_contacts_name", "last_name", "first_name"),
        # AUTOINCREMENT keeps SQLite from reusing ids of deleted rows.
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(Text, nullable=True)
    company: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Timestamps have no column default: ContactRepository.create sets both
    # from a single clock reading.
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<Contact(id={self.id}, name={self.last_name}, {self.first_name})>"
