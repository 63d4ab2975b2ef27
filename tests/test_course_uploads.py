"""Tests for upload naming, PDF validation and the upload routes."""

from datetime import datetime, timezone
from uuid import UUID, uuid4

import pymupdf
import pytest

from calcify.api.routes.course_uploads import build_storage_key, safe_filename
from calcify.db.models import CourseFile
from calcify.services import s3_service, syllabus_processor
from calcify.services.s3 import StorageError


def _pdf_bytes() -> bytes:
    doc = pymupdf.open()
    doc.new_page()
    data = doc.tobytes()
    doc.close()
    return data


@pytest.mark.parametrize(
    "name, expected",
    [
        ("syllabus.pdf", "syllabus.pdf"),
        ("Calc I (Fall 2025).pdf", "Calc_I_Fall_2025_.pdf"),
        ("../../etc/passwd", ".._.._etc_passwd"),
        ("résumé.pdf", "r_sum_.pdf"),
    ],
)
def test_safe_filename(name, expected):
    assert safe_filename(name) == expected


def test_storage_key_layout():
    user_id = UUID("00000000-0000-0000-0000-000000000001")
    assert build_storage_key(user_id, "my notes.txt", 1700000000000) == (
        "users/00000000-0000-0000-0000-000000000001/uploads/1700000000000-my_notes.txt"
    )


def test_pdf_detection():
    assert syllabus_processor.is_pdf("application/pdf", "file")
    assert syllabus_processor.is_pdf(None, "SYLLABUS.PDF")
    assert not syllabus_processor.is_pdf("text/plain", "notes.txt")


async def test_validate_pdf():
    assert await syllabus_processor.validate_pdf(_pdf_bytes())
    assert not await syllabus_processor.validate_pdf(b"definitely not a pdf")


async def test_upload_stores_file(authed_client, fake_db, user, monkeypatch):
    stored = {}

    async def fake_upload(key, data, content_type):
        stored[key] = (data, content_type)

    monkeypatch.setattr(s3_service, "upload_file", fake_upload)

    response = await authed_client.post(
        "/course-uploads/",
        files={"file": ("week 1 notes.txt", b"limits and continuity", "text/plain")},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["original_name"] == "week 1 notes.txt"
    assert body["size_bytes"] == len(b"limits and continuity")
    [key] = stored
    assert key.startswith(f"users/{user.id}/uploads/")
    assert key.endswith("-week_1_notes.txt")
    assert stored[key] == (b"limits and continuity", "text/plain")
    assert fake_db.commits == 1


async def test_upload_rejects_invalid_pdf(authed_client, fake_db, monkeypatch):
    async def fail_upload(key, data, content_type):
        raise AssertionError("invalid PDFs must not be stored")

    monkeypatch.setattr(s3_service, "upload_file", fail_upload)

    response = await authed_client.post(
        "/course-uploads/",
        files={"file": ("syllabus.pdf", b"not really a pdf", "application/pdf")},
    )

    assert response.status_code == 400
    assert fake_db.added == []


async def test_delete_removes_row_even_if_storage_fails(authed_client, fake_db, user, monkeypatch):
    row = CourseFile(
        id=uuid4(),
        user_id=user.id,
        original_name="syllabus.pdf",
        mime_type="application/pdf",
        size_bytes=10,
        storage_key="users/x/uploads/1-syllabus.pdf",
        created_at=datetime(2025, 9, 1, tzinfo=timezone.utc),
    )
    fake_db.queue(row)

    async def broken_delete(key):
        raise StorageError("bucket unavailable")

    monkeypatch.setattr(s3_service, "delete_file", broken_delete)

    response = await authed_client.delete(f"/course-uploads/{row.id}")

    assert response.status_code == 204
    assert fake_db.deleted == [row]
    assert fake_db.commits == 1


async def test_delete_unknown_upload_is_404(authed_client):
    response = await authed_client.delete(f"/course-uploads/{uuid4()}")
    assert response.status_code == 404
