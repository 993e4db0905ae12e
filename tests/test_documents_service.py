import asyncio
import json
from pathlib import Path

import pytest

from discharge_engine.commons.engine import DischargeEngine
from discharge_engine.helpers.file_transport import FileWatcher, mime_type_for
from discharge_engine.helpers.router import DocumentRouter, companion_instructions, document_kind
from discharge_engine.services.documents_service import DocumentsService, generate_record_filename

PATTERNS = ["*.summary.txt", "*.simplified.md"]

SIMPLIFIED = """## Overview
**Reasons for Hospital Stay**
You had a heart attack.

## Upcoming Appointments
- Cardiology in 1 week

## Unexpected Section
text
"""


@pytest.fixture
def service(tmp_path, tenant_cfg):
    cfg = dict(tenant_cfg)
    cfg["paths"] = {
        "logs_root": str(tmp_path / "logs"),
        "inbox": str(tmp_path / "inbox"),
        "archive": str(tmp_path / "archive"),
        "error": str(tmp_path / "error"),
    }
    router = DocumentRouter(DischargeEngine(cfg), cfg)
    return DocumentsService(router, cfg["paths"])


def _drop(tmp_path, relative, text):
    p = tmp_path / "inbox" / relative
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text, encoding="utf-8")
    return p


def _records(tmp_path):
    return [json.loads(p.read_text(encoding="utf-8")) for p in sorted((tmp_path / "archive").glob("*.json"))]


def test_document_names():
    assert document_kind("in/demo/p1.summary.txt") == "summary"
    assert document_kind("in/P1.SIMPLIFIED.MD") == "simplified"
    assert document_kind("in/p1.instructions.txt") is None
    assert companion_instructions("in/demo/p1.summary.txt") == Path("in/demo/p1.instructions.txt")

    name = generate_record_filename("patient42.summary.txt", "hospital a")
    assert name.endswith("_hospital_a_patient42.summary.json")


@pytest.mark.asyncio
async def test_backlog_parses_tenant_summary_with_companion(tmp_path, service, stemi_summary):
    _drop(tmp_path, "demo/p1.summary.txt", stemi_summary)
    _drop(tmp_path, "demo/p1.instructions.txt", stemi_summary)

    await service.process_backlog(PATTERNS)

    (record,) = _records(tmp_path)
    assert record["tenant"] == "demo"
    assert record["kind"] == "summary"
    assert record["source"] == "p1.summary.txt"
    assert record["parser"] == "stemi"
    assert record["parserUsed"] is True
    assert record["parsed"]["instructions"]["parser_version"] == "stemi-1.0.0"

    moved = tmp_path / "archive" / "documents"
    assert (moved / "p1.summary.txt").exists()
    assert (moved / "p1.instructions.txt").exists()
    assert not (tmp_path / "inbox" / "demo" / "p1.summary.txt").exists()
    # raw copy kept under the logs root
    assert list((tmp_path / "logs" / "raw" / "recv").glob("*_summary.txt"))


@pytest.mark.asyncio
async def test_unparsed_document_is_still_archived(tmp_path, service, unstructured_text):
    _drop(tmp_path, "demo/free.summary.txt", unstructured_text)

    await service.process_backlog(PATTERNS)

    (record,) = _records(tmp_path)
    assert record["parserUsed"] is False
    assert record["parsed"] is None
    assert record["rawText"] == unstructured_text


@pytest.mark.asyncio
async def test_strict_tenant_rejects_to_error_dir(tmp_path, service, unstructured_text):
    _drop(tmp_path, "hospital-a/bad.summary.txt", unstructured_text)

    await service.process_backlog(PATTERNS)

    assert _records(tmp_path) == []
    assert (tmp_path / "error" / "bad.summary.txt").exists()


@pytest.mark.asyncio
async def test_strict_tenant_accepts_complete_summary(tmp_path, service, default_summary):
    _drop(tmp_path, "hospital-a/ok.summary.txt", default_summary)

    await service.process_backlog(PATTERNS)

    (record,) = _records(tmp_path)
    assert record["tenant"] == "hospital-a"
    assert record["parser"] == "default"


@pytest.mark.asyncio
async def test_simplified_file_in_inbox_root(tmp_path, service):
    _drop(tmp_path, "visit.simplified.md", SIMPLIFIED)

    await service.process_backlog(PATTERNS)

    (record,) = _records(tmp_path)
    assert record["kind"] == "simplified"
    assert record["tenant"] == "default-tenant"
    assert record["summary"] == {"reasonsForStay": "You had a heart attack."}
    assert record["instructions"] == {"appointments": ["Cardiology in 1 week"]}


@pytest.mark.asyncio
async def test_unrecognized_file_goes_to_error(tmp_path, service):
    src = _drop(tmp_path, "demo/notes.txt", "hello")

    assert await service._process_text("hello", str(src)) is None
    assert (tmp_path / "error" / "notes.txt").exists()


@pytest.mark.asyncio
async def test_empty_backlog(service):
    await service.process_backlog(PATTERNS)


def test_mime_types_by_suffix():
    assert mime_type_for("demo/p1.summary.txt") == "text/plain"
    assert mime_type_for("visit.simplified.md") == "text/markdown"
    assert mime_type_for("demo/scan.summary.pdf") == "application/pdf"
    assert mime_type_for("demo/blob") == "application/octet-stream"


@pytest.mark.asyncio
async def test_unsupported_upload_goes_to_error(tmp_path, service):
    p = tmp_path / "inbox" / "demo" / "scan.summary.pdf"
    p.parent.mkdir(parents=True)
    p.write_bytes(b"%PDF-1.7 binary")

    await service.process_backlog(PATTERNS + ["*.summary.pdf"])

    assert _records(tmp_path) == []
    assert (tmp_path / "error" / "scan.summary.pdf").read_bytes() == b"%PDF-1.7 binary"
    # rejected before any parsing, so no raw text copy either
    assert not (tmp_path / "logs" / "raw").exists()


@pytest.mark.asyncio
async def test_upload_without_source_file_keeps_bytes(tmp_path, service):
    src = str(tmp_path / "inbox" / "demo" / "gone.summary.pdf")

    assert await service._process_upload(b"\x00\x01", src) is None
    assert (tmp_path / "error" / "gone.summary.pdf").read_bytes() == b"\x00\x01"


@pytest.mark.asyncio
async def test_upload_decodes_bom_text(tmp_path, service, stemi_summary):
    src = _drop(tmp_path, "demo/bom.summary.txt", stemi_summary)
    content = b"\xef\xbb\xbf" + stemi_summary.encode("utf-8")

    out = await service._process_upload(content, str(src))

    record = json.loads(Path(out).read_text(encoding="utf-8"))
    assert record["rawText"] == stemi_summary
    assert record["parser"] == "stemi"


@pytest.mark.asyncio
async def test_watcher_submits_each_write_once(tmp_path, stemi_summary):
    seen = []

    async def on_upload(content, src):
        seen.append((content, src))

    watcher = FileWatcher(str(tmp_path / "inbox"), PATTERNS, on_upload, asyncio.get_running_loop())
    p = _drop(tmp_path, "demo/p1.summary.txt", stemi_summary)

    # created + modified events for the same write
    first = watcher.submit(p)
    assert watcher.submit(p) is None
    await asyncio.wrap_future(first)
    assert seen == [(p.read_bytes(), str(p))]

    # moved away by the first run: later events are ignored
    p.unlink()
    assert watcher.submit(p) is None
    assert len(seen) == 1
