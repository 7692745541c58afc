"""Tests for results summaries and the enriched CSV export."""

import base64
import re
from datetime import datetime

import pytest
from sqlalchemy import update

from mailsift.errors import NoRecords, NotFound
from mailsift.models import EmailRecord, UploadStatus
from mailsift.services.csv_codec import decode_csv
from mailsift.services.orchestrator import run_validation
from mailsift.services.reporter import (
    build_download,
    download_filename,
    get_results,
    list_uploads,
    summarize,
)
from mailsift.services.verifier import SimulatedVerifier

EMAILS = ["ok@example.com", "no-at-symbol", "disposable@temp.com", "x@catch_all.com", "y@example.com"]


def _decode(out) -> list:
    return base64.b64decode(out["content"]).decode("utf-8").split("\n")


class TestGetResults:
    """Tests for get_results / summarize."""

    async def test_unknown_upload(self, db):
        with pytest.raises(NotFound):
            await get_results(db, 12345)

    async def test_unvalidated_summary(self, db, make_upload):
        """Before validation everything is counted in total only."""
        upload_id = await make_upload(EMAILS)
        out = await get_results(db, upload_id)

        assert out["upload"].id == upload_id
        assert len(out["records"]) == 5
        assert out["summary"]["total"] == 5
        assert out["summary"]["validated"] == 0

    async def test_summary_after_validation(self, db, session_factory, make_upload):
        """Per-status counts add up to validated."""
        upload_id = await make_upload(EMAILS, status=UploadStatus.processing)
        await run_validation(session_factory, SimulatedVerifier(delay=0), upload_id)

        summary = (await get_results(db, upload_id))["summary"]
        assert summary == {
            "total": 5,
            "validated": 5,
            "ok": 2,
            "catch_all": 1,
            "unknown": 0,
            "error": 0,
            "disposable": 1,
            "invalid": 1,
            "duplicate": 0,
        }
        per_status = sum(v for k, v in summary.items() if k not in ("total", "validated"))
        assert per_status == summary["validated"]

    async def test_empty_upload(self, db, make_upload):
        """An upload without records still returns a zeroed summary."""
        upload_id = await make_upload([])
        out = await get_results(db, upload_id)
        assert out["records"] == []
        assert out["summary"] == summarize([])

    async def test_records_in_row_order(self, db, make_upload):
        upload_id = await make_upload(EMAILS)
        out = await get_results(db, upload_id)
        assert [r.row_number for r in out["records"]] == [1, 2, 3, 4, 5]


class TestListUploads:
    """Tests for list_uploads."""

    async def test_newest_first(self, db, make_upload):
        first = await make_upload(["a@b.com"], original_filename="first.csv")
        second = await make_upload(["a@b.com"], original_filename="second.csv")
        uploads = await list_uploads(db)
        assert [u.id for u in uploads] == [second, first]

    async def test_empty(self, db):
        assert await list_uploads(db) == []


class TestBuildDownload:
    """Tests for build_download."""

    async def test_unknown_upload(self, db):
        with pytest.raises(NotFound):
            await build_download(db, 404)

    async def test_no_records(self, db, make_upload):
        upload_id = await make_upload([])
        with pytest.raises(NoRecords, match="No email records"):
            await build_download(db, upload_id)

    async def test_columns_and_values(self, db, session_factory, make_upload):
        """Original columns, the email column, then the three validation columns."""
        upload_id = await make_upload(
            ["john@example.com"],
            additional=[{"name": "John", "age": "30"}],
        )
        await run_validation(session_factory, SimulatedVerifier(delay=0), upload_id)

        async with session_factory() as s:
            out = await build_download(s, upload_id)

        assert out["mime_type"] == "text/csv"
        parsed = decode_csv(base64.b64decode(out["content"]))
        assert parsed.headers == ["name", "age", "email", "validation_status", "validation_result", "validated_at"]
        row = parsed.rows[0]
        assert row[:4] == ["John", "30", "john@example.com", "ok"]
        assert '"result": "ok"' in row[4]
        assert datetime.fromisoformat(row[5])

    async def test_unvalidated_rows_have_empty_validation_fields(self, db, make_upload):
        upload_id = await make_upload(["a@b.com"])
        lines = _decode(await build_download(db, upload_id))
        assert lines[1] == "Person 1,a@b.com,,,"

    async def test_commas_and_quotes_are_escaped(self, db, make_upload):
        """Values with commas or quotes are quoted with doubled quotes."""
        upload_id = await make_upload(
            ["a@b.com"],
            additional=[{"name": "Doe, John", "note": 'said "hi"'}],
        )
        lines = _decode(await build_download(db, upload_id))
        assert lines[1] == '"Doe, John","said ""hi""",a@b.com,,,'

    async def test_rows_ordered_by_row_number(self, db, session_factory, make_upload):
        """Rows come out in row_number order regardless of insert order."""
        upload_id = await make_upload(["first@x.com", "second@x.com", "third@x.com"])
        # shuffle row numbers: 1->30, 2->10, 3->20
        async with session_factory() as s:
            for old, new in ((1, 30), (2, 10), (3, 20)):
                await s.execute(
                    update(EmailRecord)
                    .where(EmailRecord.upload_id == upload_id, EmailRecord.row_number == old)
                    .values(row_number=new)
                )
            await s.commit()

        lines = _decode(await build_download(db, upload_id))
        emails = [line.split(",")[1] for line in lines[1:]]
        assert emails == ["second@x.com", "third@x.com", "first@x.com"]

    async def test_missing_additional_data(self, db, make_upload):
        """Without additional data only the email column is exported."""
        upload_id = await make_upload(["a@b.com", "c@d.com"], additional=[None, None])
        lines = _decode(await build_download(db, upload_id))
        assert lines[0] == "email,validation_status,validation_result,validated_at"
        assert lines[1:] == ["a@b.com,,,", "c@d.com,,,"]

    async def test_malformed_additional_data_degrades(self, db, make_upload):
        """Broken JSON on one record does not abort the export."""
        upload_id = await make_upload(
            ["a@b.com", "c@d.com"],
            additional=[{"name": "A"}, "{not json"],
        )
        lines = _decode(await build_download(db, upload_id))
        assert lines[0] == "name,email,validation_status,validation_result,validated_at"
        assert lines[2] == ",c@d.com,,,"

    async def test_custom_email_column(self, db, make_upload):
        upload_id = await make_upload(["a@b.com"], email_column="Work Email", additional=[{"id": "7"}])
        lines = _decode(await build_download(db, upload_id))
        assert lines[0].startswith("id,Work Email,")

    async def test_filename(self, db, make_upload):
        upload_id = await make_upload(["a@b.com"], original_filename="Leads.CSV")
        out = await build_download(db, upload_id)
        assert re.fullmatch(r"Leads_validated_\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}\.csv", out["filename"])


class TestDownloadFilename:
    def test_strips_csv_suffix(self):
        now = datetime(2026, 3, 4, 5, 6, 7)
        assert download_filename("contacts.csv", now) == "contacts_validated_2026-03-04T05-06-07.csv"

    def test_keeps_other_suffixes(self):
        now = datetime(2026, 3, 4, 5, 6, 7)
        assert download_filename("contacts.xlsx", now) == "contacts.xlsx_validated_2026-03-04T05-06-07.csv"
