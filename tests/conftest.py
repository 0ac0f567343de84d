from __future__ import annotations

import io
from datetime import datetime

import pytest
from openpyxl import Workbook

from app import create_app
from models import db
from parsers.file_parser import XLSX_MIME_TYPE

SALES_ROWS = [
    ["Month", "Region", "Revenue", "Units"],
    ["Jan", "North", 100, 10],
    ["Feb", "South", 120, 12],
    ["Mar", "North", 140, 11],
    ["Apr", "South", 160, 15],
    ["May", "North", 180, 14],
    ["Jun", "South", 200, 18],
]


def _build_workbook(sheets: dict[str, list[list]]) -> bytes:
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(name)
        for row in rows:
            ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_workbook():
    """Build .xlsx bytes from a mapping of sheet name to rows."""
    return _build_workbook


@pytest.fixture
def sales_workbook() -> bytes:
    return _build_workbook({
        "Sales": SALES_ROWS,
        "Notes": [["Note", "Date"], ["kickoff", datetime(2024, 1, 15)]],
    })


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def user_headers() -> dict[str, str]:
    return {"X-User-Id": "user-1"}


@pytest.fixture
def other_headers() -> dict[str, str]:
    return {"X-User-Id": "user-2"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-User-Id": "admin-1", "X-User-Role": "admin"}


@pytest.fixture
def upload_file(client, user_headers):
    """POST a workbook as the default user and return the response."""

    def _upload(content: bytes, filename: str = "sales.xlsx", mimetype: str = XLSX_MIME_TYPE,
                headers: dict[str, str] | None = None):
        return client.post(
            "/api/uploads",
            data={"file": (io.BytesIO(content), filename, mimetype)},
            content_type="multipart/form-data",
            headers=headers or user_headers,
        )

    return _upload
