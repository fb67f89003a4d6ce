import pytest

from app.core import config
from app.uploads.upload_service import get_public_id

PDF = ("brief.pdf", b"%PDF-1.4 sample", "application/pdf")


async def test_upload_returns_file_details(client, admin_headers, uploader):
    response = await client.post("/uploads", files={"file": PDF}, headers=admin_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["original_name"] == "brief.pdf"
    assert data["mimetype"] == "application/pdf"
    assert data["size"] == len(PDF[1])
    assert data["public_id"] == "assignments/assignment_1"
    assert data["filename"] == "assignment_1"
    assert data["url"].endswith("assignment_1.pdf")
    assert uploader.stored[0]["content_type"] == "application/pdf"


async def test_upload_rejects_unsupported_type(client, admin_headers, uploader):
    response = await client.post(
        "/uploads", files={"file": ("photo.png", b"\x89PNG", "image/png")}, headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["message"] == (
        "Invalid file type. Only PDF, DOC, DOCX, TXT, ZIP, and RAR files are allowed."
    )
    assert uploader.stored == []


async def test_upload_rejects_oversized_file(client, admin_headers, uploader, monkeypatch):
    monkeypatch.setattr(config, "MAX_UPLOAD_BYTES", 10)

    response = await client.post(
        "/uploads",
        files={"file": ("big.txt", b"x" * 11, "text/plain")},
        headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["message"] == "File size exceeds the 20MB limit"
    assert uploader.stored == []


async def test_upload_requires_a_file(client, admin_headers):
    response = await client.post("/uploads", headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "No file uploaded"


async def test_students_cannot_upload(client, student_headers):
    response = await client.post("/uploads", files={"file": PDF}, headers=student_headers)

    assert response.status_code == 403


@pytest.mark.parametrize("url, expected", [
    ("https://res.cloudinary.com/demo/raw/upload/v1712345678/assignments/assignment_1_2.pdf",
     "assignments/assignment_1_2"),
    ("https://res.cloudinary.com/demo/image/upload/assignments/brief.docx?dl=1", "assignments/brief"),
    ("https://res.cloudinary.com/demo/raw/upload/v3/notes", "notes"),
    ("https://example.com/files/brief.pdf", None),
    ("", None),
    (None, None),
])
def test_get_public_id(url, expected):
    assert get_public_id(url) == expected
