"""
API integration tests for the contact router.
"""

import io

import pytest
from httpx import AsyncClient
from openpyxl import Workbook, load_workbook

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _xlsx(*rows: list) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


async def _create(client: AsyncClient, **fields) -> dict:
    response = await client.post("/contacts", json=fields)
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"ok": True}


class TestContactCrud:
    """Tests for /contacts single-record endpoints."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, async_client: AsyncClient) -> None:
        created = await _create(async_client, first_name="Ada", last_name="Lovelace", phone="555")

        response = await async_client.get(f"/contacts/{created['id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["first_name"] == "Ada"
        assert data["phone"] == "555"
        assert data["email"] is None
        assert data["created_at"] == data["updated_at"]

    @pytest.mark.asyncio
    async def test_create_missing_name(self, async_client: AsyncClient) -> None:
        response = await async_client.post("/contacts", json={"first_name": "Ada"})

        assert response.status_code == 400
        assert response.json() == {"detail": "first_name and last_name are required"}

    @pytest.mark.asyncio
    async def test_create_without_body(self, async_client: AsyncClient) -> None:
        response = await async_client.post("/contacts")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_get_unknown(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/contacts/999")

        assert response.status_code == 404
        assert response.json() == {"detail": "Contact 999 not found"}

    @pytest.mark.asyncio
    async def test_id_beyond_integer_column(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/contacts/99999999999999999999")

        assert response.status_code == 404

        response = await async_client.delete("/contacts/99999999999999999999")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_put_merges_fields(self, async_client: AsyncClient) -> None:
        created = await _create(
            async_client,
            first_name="Ada",
            last_name="Lovelace",
            email="ada@example.com",
            notes="keep me",
        )

        response = await async_client.put(
            f"/contacts/{created['id']}",
            json={"company": "Engines", "email": None},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["company"] == "Engines"
        assert data["email"] is None
        assert data["notes"] == "keep me"
        assert data["first_name"] == "Ada"
        assert data["updated_at"] > created["updated_at"]

    @pytest.mark.asyncio
    async def test_put_unknown(self, async_client: AsyncClient) -> None:
        response = await async_client.put("/contacts/31337", json={"company": "X"})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_put_blank_name(self, async_client: AsyncClient) -> None:
        created = await _create(async_client, first_name="Ada", last_name="Lovelace")

        response = await async_client.put(f"/contacts/{created['id']}", json={"last_name": ""})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete(self, async_client: AsyncClient) -> None:
        created = await _create(async_client, first_name="Ada", last_name="Lovelace")

        response = await async_client.delete(f"/contacts/{created['id']}")
        assert response.status_code == 200
        assert response.json() == {"ok": True}

        again = await async_client.delete(f"/contacts/{created['id']}")
        assert again.status_code == 404
        missing = await async_client.get(f"/contacts/{created['id']}")
        assert missing.status_code == 404


class TestListContacts:
    """Tests for GET /contacts."""

    @pytest.mark.asyncio
    async def test_filter_sort_and_total(self, async_client: AsyncClient) -> None:
        await _create(async_client, first_name="Ann", last_name="Smith")
        await _create(async_client, first_name="Bob", last_name="Jones", company="Smithson")
        await _create(async_client, first_name="Dan", last_name="Brown")

        response = await async_client.get(
            "/contacts",
            params={"q": "smith", "sort": "first_name", "dir": "desc", "limit": "1"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [c["first_name"] for c in data["data"]] == ["Bob"]

    @pytest.mark.asyncio
    async def test_oversized_limit(self, async_client: AsyncClient) -> None:
        await _create(async_client, first_name="Ada", last_name="Lovelace")

        response = await async_client.get("/contacts", params={"limit": "99999999999999999999"})

        assert response.status_code == 200
        assert response.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_untrusted_params_are_normalised(self, async_client: AsyncClient) -> None:
        await _create(async_client, first_name="Ann", last_name="Smith")
        await _create(async_client, first_name="Dan", last_name="Brown")

        response = await async_client.get(
            "/contacts",
            params={
                "sort": "'; DROP TABLE contacts; --",
                "dir": "sideways",
                "limit": "lots",
                "offset": "none",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [c["last_name"] for c in data["data"]] == ["Brown", "Smith"]


class TestImportContacts:
    """Tests for POST /contacts/import."""

    @pytest.mark.asyncio
    async def test_import_xlsx(self, async_client: AsyncClient) -> None:
        existing = await _create(async_client, first_name="Ada", last_name="Lovelace")
        content = _xlsx(
            ["id", "first_name", "last_name", "email"],
            [existing["id"], "Augusta", "King", "ada@example.com"],
            [None, "Alan", "Turing", None],
            [None, None, "OnlyLast", None],
        )

        response = await async_client.post(
            "/contacts/import",
            files={"file": ("contacts.xlsx", content, XLSX_MEDIA_TYPE)},
        )

        assert response.status_code == 200
        assert response.json() == {
            "ok": True,
            "inserted": 1,
            "updated": 1,
            "skipped": 1,
            "total_parsed": 3,
        }
        stored = (await async_client.get(f"/contacts/{existing['id']}")).json()
        assert stored["first_name"] == "Augusta"

    @pytest.mark.asyncio
    async def test_import_csv(self, async_client: AsyncClient) -> None:
        content = b"firstName,lastName,phone\nGrace,Hopper,555\n"

        response = await async_client.post(
            "/contacts/import",
            files={"file": ("contacts.csv", content, "text/csv")},
        )

        assert response.status_code == 200
        assert response.json()["inserted"] == 1

    @pytest.mark.asyncio
    async def test_import_without_file(self, async_client: AsyncClient) -> None:
        response = await async_client.post("/contacts/import")

        assert response.status_code == 400
        assert response.json() == {"detail": "No file uploaded"}

    @pytest.mark.asyncio
    async def test_import_empty_file(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            "/contacts/import",
            files={"file": ("contacts.xlsx", b"", XLSX_MEDIA_TYPE)},
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_import_unreadable_file(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            "/contacts/import",
            files={"file": ("contacts.xlsx", b"not a workbook", XLSX_MEDIA_TYPE)},
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_import_failure_rolls_back(self, async_client: AsyncClient) -> None:
        content = b"id,first_name,last_name\n,Kept,Nowhere\nbad,Broken,Row\n"

        response = await async_client.post(
            "/contacts/import",
            files={"file": ("contacts.csv", content, "text/csv")},
        )

        assert response.status_code == 500
        assert response.json()["rolled_back"] is True
        listing = (await async_client.get("/contacts")).json()
        assert listing["total"] == 0


class TestExportContacts:
    """Tests for GET /export."""

    @pytest.mark.asyncio
    async def test_export_workbook(self, async_client: AsyncClient) -> None:
        await _create(async_client, first_name="Zed", last_name="Adams")
        await _create(async_client, first_name="Amy", last_name="Young")
        await _create(async_client, first_name="Abe", last_name="Adams")

        response = await async_client.get("/export")

        assert response.status_code == 200
        assert response.headers["content-type"] == XLSX_MEDIA_TYPE
        disposition = response.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="contacts_export_')
        assert disposition.endswith('.xlsx"')

        sheet = load_workbook(io.BytesIO(response.content)).active
        rows = list(sheet.iter_rows(values_only=True))
        assert sheet.title == "Contacts"
        assert rows[0] == (
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
        assert [(r[2], r[1]) for r in rows[1:]] == [
            ("Adams", "Abe"),
            ("Adams", "Zed"),
            ("Young", "Amy"),
        ]
