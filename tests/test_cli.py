import json
from datetime import datetime
from pathlib import Path

from typer.testing import CliRunner

from discharge_engine.commons.logger import setup_logging
from run import app, load_cfg

SETTINGS_YAML = str(Path(__file__).resolve().parents[1] / "discharge_engine" / "configs" / "settings.yaml")

runner = CliRunner()


def test_load_cfg_from_env(monkeypatch):
    monkeypatch.setenv("DISCHARGE_ENGINE_CONFIG", SETTINGS_YAML)
    assert "demo" in load_cfg()["tenants"]


def test_tenants_command():
    result = runner.invoke(app, ["tenants", "--config", SETTINGS_YAML])
    assert result.exit_code == 0
    assert "demo: [stemi, default]" in result.output
    assert "hospital-a: [default]" in result.output


def test_parse_command(tmp_path, monkeypatch, stemi_summary):
    monkeypatch.chdir(tmp_path)
    src = tmp_path / "p1.summary.txt"
    src.write_text(stemi_summary, encoding="utf-8")

    result = runner.invoke(app, ["parse", str(src), "--tenant", "demo", "--config", SETTINGS_YAML])
    assert result.exit_code == 0, result.output
    record = json.loads(result.output)
    assert record["parser"] == "stemi"
    assert record["parsed"]["summary"]["mrn"] == "00451234"


def test_decode_command(tmp_path):
    src = tmp_path / "visit.simplified.md"
    src.write_text("## Upcoming Appointments\n- PCP in 1 week\n", encoding="utf-8")

    result = runner.invoke(app, ["decode", str(src)])
    assert result.exit_code == 0
    assert json.loads(result.output) == {"appointments": ["PCP in 1 week"]}

    bad = runner.invoke(app, ["decode", str(src), "--kind", "other"])
    assert bad.exit_code != 0


def test_setup_logging_daily_folder(tmp_path):
    log = setup_logging(str(tmp_path), "DEBUG", console=False)
    log.info("hello")
    assert (tmp_path / datetime.now().strftime("%Y/%m/%d")).is_dir()
