from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from discharge_engine.commons.parser_registry import (
    NO_PARSE,
    PARSERS,
    ParserRegistry,
    parse_discharge_document,
    to_metadata,
)
from discharge_engine.commons.types import TenantParserConfig, load_settings, tenant_configs_from
from discharge_engine.parsers.base import ParserKind
from discharge_engine.parsers.models import RawDocument, UnsupportedDocumentError


@pytest.fixture
def registry(tenant_cfg):
    settings = load_settings(tenant_cfg)
    return ParserRegistry(settings.tenant_configs(), settings.default_parsers)


def test_tenant_dispatch_picks_stemi(registry, stemi_summary):
    result = registry.parse("demo", stemi_summary, None)
    assert result.parser_used
    assert result.parser_kind is ParserKind.STEMI
    assert result.parser_version == "stemi-1.0.0"
    assert result.confidence == 1.0
    assert result.parsed_instructions is None


def test_falls_through_to_next_candidate(registry, default_summary):
    result = registry.parse("demo", default_summary, None)
    assert result.parser_kind is ParserKind.DEFAULT
    assert result.parsed_summary.mrn == "12345678"


def test_unknown_tenant_uses_default_parsers(registry, stemi_summary):
    result = registry.parse("nobody", stemi_summary, None)
    assert result.parser_used
    assert result.parser_kind is ParserKind.DEFAULT
    assert registry.config_for("nobody").parsers == [ParserKind.DEFAULT]


def test_first_configured_candidate_wins(stemi_summary):
    reg = ParserRegistry(tenant_configs_from({"t": {"parsers": ["default", "stemi"]}}))
    assert reg.parse("t", stemi_summary, None).parser_kind is ParserKind.DEFAULT


def test_unstructured_text_is_not_parsed(registry, unstructured_text):
    result = registry.parse("demo", unstructured_text, None)
    assert result == NO_PARSE
    assert result.parsed_summary is None
    assert result.parsed_instructions is None
    assert result.parser_version is None
    assert result.confidence is None


def test_empty_input(registry):
    assert registry.parse("demo", None, None) == NO_PARSE
    assert registry.parse("demo", "", "") == NO_PARSE


def test_parse_is_deterministic(registry, stemi_summary):
    first = registry.parse("demo", stemi_summary, stemi_summary)
    second = registry.parse("demo", stemi_summary, stemi_summary)
    assert first == second


def test_failing_candidate_is_skipped(registry, stemi_summary, monkeypatch):
    def boom(text):
        raise RuntimeError("broken dialect")

    broken = SimpleNamespace(can_parse=lambda text: True, parse_summary=boom, parse_instructions=boom)
    monkeypatch.setitem(PARSERS, ParserKind.STEMI, broken)

    result = registry.parse("demo", stemi_summary, None)
    assert result.parser_used
    assert result.parser_kind is ParserKind.DEFAULT


def test_instructions_only(registry, default_instructions):
    result = registry.parse("demo", None, default_instructions)
    assert result.parser_used
    assert result.parsed_summary is None
    assert len(result.parsed_instructions.medications) == 2
    assert result.parser_version == "default-1.0.0"
    assert result.confidence is None


def test_module_level_entry_point(registry, stemi_summary):
    result = parse_discharge_document("demo", stemi_summary, None, registry=registry)
    assert result.parser_kind is ParserKind.STEMI
    # built-in registry knows no tenants
    assert parse_discharge_document("demo", stemi_summary, None).parser_kind is ParserKind.DEFAULT


def test_reload_swaps_snapshot(stemi_summary):
    reg = ParserRegistry(tenant_configs_from({"t": {"parsers": ["stemi"]}}))
    before = reg.tenants
    reg.reload(tenant_configs_from({"t": {"parsers": ["default"]}, "u": {}}))

    assert before["t"].parsers == [ParserKind.STEMI]
    assert reg.config_for("t").parsers == [ParserKind.DEFAULT]
    assert reg.config_for("u").parsers == [ParserKind.DEFAULT]
    assert reg.parse("t", stemi_summary, None).parser_kind is ParserKind.DEFAULT


def test_reload_swaps_default_list_with_tenants():
    reg = ParserRegistry(tenant_configs_from({"t": {"parsers": ["default"]}}))
    before = reg._snapshot
    reg.reload(tenant_configs_from({"u": {}}), [ParserKind.STEMI])

    # the previous snapshot is untouched
    assert before.default_parsers == (ParserKind.DEFAULT,)
    assert "t" in before.tenants
    assert reg.default_parsers == [ParserKind.STEMI]
    assert reg.config_for("t").parsers == [ParserKind.STEMI]
    assert list(reg.tenants) == ["u"]

    # omitting the default list keeps the current one
    reg.reload(tenant_configs_from({}))
    assert reg.default_parsers == [ParserKind.STEMI]


def test_tenant_config_validation():
    cfg = TenantParserConfig(tenant_id="t", parsers=["stemi", "default"], settings={"x": 1})
    assert cfg.parsers == [ParserKind.STEMI, ParserKind.DEFAULT]
    assert cfg.setting("x") == 1
    assert cfg.setting("missing", "fallback") == "fallback"

    with pytest.raises(ValidationError):
        TenantParserConfig(tenant_id="t", parsers=[])
    with pytest.raises(ValidationError):
        TenantParserConfig(tenant_id="t", parsers=["pdf-magic"])


def test_to_metadata_record(registry, stemi_summary):
    meta = to_metadata(registry.parse("demo", stemi_summary, None))
    assert set(meta) == {"rawText", "parsed", "parserVersion", "confidence", "parserUsed", "parser"}
    assert meta["parserUsed"] is True
    assert meta["parser"] == "stemi"
    assert meta["parserVersion"] == "stemi-1.0.0"
    assert meta["rawText"].startswith("Patient Name: Jane Roe")

    summary = meta["parsed"]["summary"]
    assert meta["parsed"]["instructions"] is None
    assert summary["attending_physician"] == {"name": "Dr. Alan Park, MD", "id": "4411"}
    assert "admit_date" in summary
    # absent optional fields are dropped, also inside lists
    assert "is_new" not in summary["medications"][3]
    assert summary["medications"][0]["is_new"] is True


def test_to_metadata_without_parse():
    meta = to_metadata(NO_PARSE, raw_text="free text")
    assert meta == {
        "rawText": "free text",
        "parsed": None,
        "parserVersion": None,
        "confidence": None,
        "parserUsed": False,
        "parser": None,
    }


def test_raw_document_text():
    doc = RawDocument(b"\xef\xbb\xbfHospital Course:\nStable.", "text/plain; charset=utf-8", "demo")
    assert doc.text() == "Hospital Course:\nStable."
    assert RawDocument(b"# Notes", "text/markdown", "demo").text() == "# Notes"


def test_raw_document_rejects_binary_types():
    doc = RawDocument(b"%PDF-1.7", "application/pdf", "demo")
    with pytest.raises(UnsupportedDocumentError, match="Unsupported file type"):
        doc.text()
    assert issubclass(UnsupportedDocumentError, ValueError)
