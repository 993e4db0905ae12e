from pathlib import Path

import pytest

from discharge_engine.commons.engine import DischargeEngine
from discharge_engine.commons.types import Settings, load_settings
from discharge_engine.parsers.base import ParserKind

SETTINGS_YAML = Path(__file__).resolve().parents[1] / "discharge_engine" / "configs" / "settings.yaml"


@pytest.fixture
def engine():
    return DischargeEngine(str(SETTINGS_YAML))


def test_bundled_settings_load(engine):
    assert engine.configured_tenants() == ["default-tenant", "demo", "hospital-a", "hospital-b"]
    assert engine.settings.paths["inbox"] == "data/inbox"
    assert engine.settings.watch["summary_glob"] == "*.summary.txt"


def test_tenant_info(engine):
    demo = engine.tenant_info("demo")
    assert demo.parsers == [ParserKind.STEMI, ParserKind.DEFAULT]
    strict = engine.tenant_info("hospital-a")
    assert strict.setting("strict_validation") is True
    assert engine.tenant_info("hospital-b").setting("date_format") == "MM/DD/YYYY"
    # unconfigured tenants get the global default list
    other = engine.tenant_info("elsewhere")
    assert other.tenant_id == "elsewhere"
    assert other.parsers == [ParserKind.DEFAULT]


def test_engine_accepts_dict_and_settings(tenant_cfg):
    from_dict = DischargeEngine(tenant_cfg)
    from_model = DischargeEngine(load_settings(tenant_cfg))
    assert from_dict.configured_tenants() == from_model.configured_tenants()
    assert DischargeEngine(None).configured_tenants() == []
    assert isinstance(DischargeEngine(None).settings, Settings)


def test_parse_to_metadata(engine, stemi_summary, default_instructions):
    meta = engine.parse_to_metadata("demo", stemi_summary, default_instructions)
    assert meta["parser"] == "stemi"
    assert meta["rawText"] == stemi_summary
    # instructions go through the parser that won on the summary
    assert meta["parsed"]["instructions"]["parser_version"] == "stemi-1.0.0"
    assert meta["confidence"] == 1.0


def test_reload(engine, stemi_summary):
    assert engine.parse("demo", stemi_summary).parser_kind is ParserKind.STEMI
    engine.reload({"default_parsers": ["stemi"], "tenants": {"demo": {"parsers": ["default"]}}})
    assert engine.configured_tenants() == ["demo"]
    assert engine.parse("demo", stemi_summary).parser_kind is ParserKind.DEFAULT
    assert engine.tenant_info("elsewhere").parsers == [ParserKind.STEMI]
    assert engine.parse("elsewhere", stemi_summary).parser_kind is ParserKind.STEMI


def test_decode_entry_points(engine):
    content = "## Overview\n**Reasons for Hospital Stay**\nChest pain.\n\n## Upcoming Appointments\n- Cardiology in 1 week\n"
    assert engine.decode_summary(content).reasons_for_stay == "Chest pain."
    assert engine.decode_instructions(content).appointments == ("Cardiology in 1 week",)
    sections = engine.decode_sections(content)
    assert sections.appointments == "- Cardiology in 1 week"
    assert sections.unknown_headers == ()
