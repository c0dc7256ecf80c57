"""
Contact API router.
"""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, File, Query, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from contactbook.config import get_settings
from contactbook.contacts.exporter import EXPORT_MEDIA_TYPE, ContactExporter, export_filename
from contactbook.contacts.importer import ContactImporter
from contactbook.contacts.models import CONTACT_COLUMNS
from contactbook.contacts.schemas import (
    ContactCreate,
    ContactListResponse,
    ContactResponse,
    ContactUpdate,
    ImportSummary,
    OkResponse,
)
from contactbook.contacts.service import ContactService
from contactbook.contacts.spreadsheet import read_rows, write_workbook
from contactbook.shared.database import get_db_session
from contactbook.shared.exceptions import ValidationError
from contactbook.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["contacts"])


def get_contact_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ContactService:
    """Dependency for contact service."""
    return ContactService(session=session)


def get_contact_importer(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ContactImporter:
    """Dependency for contact importer."""
    return ContactImporter(session=session)


def get_contact_exporter(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ContactExporter:
    """Dependency for contact exporter."""
    return ContactExporter(session=session)


@router.get(
    "/contacts",
    response_model=ContactListResponse,
    summary="List contacts",
    description="Filter, sort and paginate contacts.",
)
async def list_contacts(
    service: Annotated[ContactService, Depends(get_contact_service)],
    q: Annotated[str | None, Query()] = None,
    sort: Annotated[str | None, Query()] = None,
    direction: Annotated[str | None, Query(alias="dir")] = None,
    limit: Annotated[str | None, Query()] = None,
    offset: Annotated[str | None, Query()] = None,
) -> ContactListResponse:
    """List contacts.

    All parameters are taken as raw strings and normalised by the query
    engine, so malformed values fall back to defaults instead of failing.
    """
    return await service.list_contacts(
        q=q,
        sort=sort,
        direction=direction,
        limit=limit,
        offset=offset,
    )


@router.post(
    "/contacts/import",
    response_model=ImportSummary,
    summary="Import contacts spreadsheet",
    description="Upsert contacts from an XLSX (or CSV) file. The whole file is applied or nothing is.",
)
async def import_contacts(
    importer: Annotated[ContactImporter, Depends(get_contact_importer)],
    file: Annotated[UploadFile | None, File(description="Spreadsheet with contacts")] = None,
) -> ImportSummary:
    """Import contacts from an uploaded spreadsheet.

    Rows with an ``id`` that exists replace that contact; other rows are
    inserted. Rows without a first or last name are skipped.

    Raises:
        400: No file, empty file or unreadable spreadsheet.
        500: Import failed and was rolled back.
    """
    if file is None:
        raise ValidationError("No file uploaded")

    logger.info(
        "Contact import started",
        extra={"upload_filename": file.filename, "content_type": file.content_type},
    )

    content = await file.read()
    if not content:
        raise ValidationError("Empty file uploaded")

    rows = read_rows(content, filename=file.filename)
    return await importer.import_rows(rows)


@router.get(
    "/contacts/{contact_id}",
    response_model=ContactResponse,
    summary="Get contact details",
)
async def get_contact(
    contact_id: int,
    service: Annotated[ContactService, Depends(get_contact_service)],
) -> ContactResponse:
    return await service.get_contact(contact_id)


@router.post(
    "/contacts",
    response_model=ContactResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create contact",
)
async def create_contact(
    service: Annotated[ContactService, Depends(get_contact_service)],
    payload: Annotated[ContactCreate | None, Body()] = None,
) -> ContactResponse:
    """Create a contact.

    Raises:
        400: first_name or last_name missing.
    """
    return await service.create_contact(payload or ContactCreate())


@router.put(
    "/contacts/{contact_id}",
    response_model=ContactResponse,
    summary="Update contact",
    description="Merge the supplied fields into the contact; omitted fields are kept.",
)
async def update_contact(
    contact_id: int,
    service: Annotated[ContactService, Depends(get_contact_service)],
    payload: Annotated[ContactUpdate | None, Body()] = None,
) -> ContactResponse:
    """Update a contact.

    Raises:
        400: first_name or last_name sent empty.
        404: Contact not found.
    """
    return await service.update_contact(contact_id, payload or ContactUpdate())


@router.delete(
    "/contacts/{contact_id}",
    response_model=OkResponse,
    summary="Delete contact",
)
async def delete_contact(
    contact_id: int,
    service: Annotated[ContactService, Depends(get_contact_service)],
) -> OkResponse:
    await service.delete_contact(contact_id)
    return OkResponse()


@router.get(
    "/export",
    summary="Export contacts spreadsheet",
    response_class=Response,
    responses={200: {"content": {EXPORT_MEDIA_TYPE: {}}}},
)
async def export_contacts(
    exporter: Annotated[ContactExporter, Depends(get_contact_exporter)],
) -> Response:
    """Download every contact as an XLSX workbook."""
    rows = await exporter.export_rows()
    content = write_workbook(
        rows,
        columns=CONTACT_COLUMNS,
        sheet_name=get_settings().export_sheet_name,
    )
    filename = export_filename()
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
