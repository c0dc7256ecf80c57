"""
Pydantic schemas for contact management.
"""

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def clean_text(value: Any) -> str | None:
    """Normalise a loosely-typed text value.

    Strings are stripped and whitespace-only strings become ``None``.
    Other scalars (numbers from JSON or spreadsheet cells) are converted to
    their string form; integral floats lose the trailing ``.0``.
    """
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = value if isinstance(value, str) else str(value)
    text = text.strip()
    return text or None


TextValue = Annotated[str | None, BeforeValidator(clean_text)]


class ContactFields(BaseModel):
    """Contact fields as sent by a client.

    Every field is optional at this level; required-field rules depend on
    the operation and are enforced by the service. ``model_fields_set``
    tells an explicit ``null`` apart from an absent key.
    """

    model_config = ConfigDict(extra="ignore")

    first_name: TextValue = None
    last_name: TextValue = None
    email: TextValue = None
    phone: TextValue = None
    company: TextValue = None
    notes: TextValue = None


class ContactCreate(ContactFields):
    """Schema for creating a contact."""

    pass


class ContactUpdate(ContactFields):
    """Schema for a partial contact update (merge semantics)."""

    def changes(self) -> dict[str, str | None]:
        """Only the fields the client actually sent."""
        return self.model_dump(exclude_unset=True)


class ContactResponse(BaseModel):
    """Schema for contact response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    email: str | None
    phone: str | None
    company: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime


class ContactListResponse(BaseModel):
    """Schema for a filtered, paginated contact list."""

    data: list[ContactResponse]
    total: int = Field(..., ge=0, description="Size of the filtered set, ignoring limit/offset")


class OkResponse(BaseModel):
    """Acknowledgement payload."""

    ok: bool = True


class ImportSummary(BaseModel):
    """Schema for the bulk import result."""

    ok: bool = True
    inserted: int = Field(default=0, ge=0, description="Rows inserted as new contacts")
    updated: int = Field(default=0, ge=0, description="Rows that replaced an existing contact")
    skipped: int = Field(default=0, ge=0, description="Rows without a usable first/last name")
    total_parsed: int = Field(default=0, ge=0, description="Rows presented to the importer")
