"""
Translation of untrusted list parameters into a bounded contacts query.

Column names cannot be bound as query parameters, so the sort column is
picked from a fixed allow-list and anything else falls back to last_name.
"""

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import InstrumentedAttribute

from contactbook.contacts.models import Contact, fits_integer_column

DEFAULT_SORT_FIELD = "last_name"

SORTABLE_COLUMNS: dict[str, InstrumentedAttribute] = {
    "first_name": Contact.first_name,
    "last_name": Contact.last_name,
    "email": Contact.email,
    "phone": Contact.phone,
    "company": Contact.company,
    "created_at": Contact.created_at,
    "updated_at": Contact.updated_at,
}

SEARCHABLE_COLUMNS: tuple[InstrumentedAttribute, ...] = (
    Contact.first_name,
    Contact.last_name,
    Contact.email,
    Contact.phone,
    Contact.company,
)

LIKE_ESCAPE = "\\"


def normalize_sort_field(sort: Any) -> str:
    """Return ``sort`` if it is an allowed column name, else ``last_name``."""
    value = "" if sort is None else str(sort)
    return value if value in SORTABLE_COLUMNS else DEFAULT_SORT_FIELD


def normalize_direction(direction: Any) -> str:
    """Return ``"desc"`` only for a case-insensitive "desc", else ``"asc"``."""
    if direction is not None and str(direction).lower() == "desc":
        return "desc"
    return "asc"


def coerce_int(value: Any, default: int) -> int:
    """Parse an integer query value, falling back to ``default``.

    Values are not clamped to a page size; bounds are the caller's policy.
    Anything outside SQLite's signed 64-bit INTEGER range cannot be bound
    and also falls back to ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        number = value
    else:
        text = str(value).strip()
        try:
            number = int(text)
        except ValueError:
            try:
                parsed = float(text)
            except ValueError:
                return default
            if parsed != parsed or parsed in (float("inf"), float("-inf")):
                return default
            number = int(parsed)
    return number if fits_integer_column(number) else default


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so ``text`` matches literally."""
    return (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )


@dataclass(frozen=True)
class ContactQuery:
    """Normalised list parameters."""

    filter_text: str = ""
    sort_field: str = DEFAULT_SORT_FIELD
    sort_direction: str = "asc"
    limit: int = 100
    offset: int = 0

    @classmethod
    def from_params(
        cls,
        q: Any = None,
        sort: Any = None,
        direction: Any = None,
        limit: Any = None,
        offset: Any = None,
        default_limit: int = 100,
    ) -> "ContactQuery":
        """Build a query from raw (typically string) request parameters."""
        return cls(
            filter_text="" if q is None else str(q),
            sort_field=normalize_sort_field(sort),
            sort_direction=normalize_direction(direction),
            limit=coerce_int(limit, default_limit),
            offset=coerce_int(offset, 0),
        )

    def where_clause(self):
        """OR of substring matches over the searchable columns, or None."""
        if not self.filter_text:
            return None
        pattern = f"%{escape_like(self.filter_text)}%"
        return or_(*(col.like(pattern, escape=LIKE_ESCAPE) for col in SEARCHABLE_COLUMNS))

    def page_statement(self) -> Select:
        """SELECT for one page of results."""
        column = SORTABLE_COLUMNS[self.sort_field]
        order = column.desc() if self.sort_direction == "desc" else column.asc()
        tiebreak = Contact.id.desc() if self.sort_direction == "desc" else Contact.id.asc()

        stmt = select(Contact)
        clause = self.where_clause()
        if clause is not None:
            stmt = stmt.where(clause)
        return stmt.order_by(order, tiebreak).limit(self.limit).offset(self.offset)

    def count_statement(self) -> Select:
        """SELECT COUNT over the filtered set (limit/offset ignored)."""
        stmt = select(func.count()).select_from(Contact)
        clause = self.where_clause()
        if clause is not None:
            stmt = stmt.where(clause)
        return stmt
