import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Optional

import typer
import yaml

from discharge_engine.commons.engine import DischargeEngine
from discharge_engine.commons.logger import setup_logging
from discharge_engine.helpers.router import DocumentRouter
from discharge_engine.services.documents_service import DocumentsService

app = typer.Typer(add_completion=False, help="Discharge document parsing engine")

DEFAULT_CONFIG = "discharge_engine/configs/settings.yaml"


def resource_path(relative_path: str) -> str:
    """Absolute path to a bundled resource, frozen executable or source checkout."""
    if hasattr(sys, "_MEIPASS"):
        base_path = sys._MEIPASS
    else:
        base_path = os.path.dirname(os.path.abspath(__file__))
    return os.path.join(base_path, relative_path)


def load_cfg(path: Optional[str] = None) -> dict:
    config_path = path or os.getenv("DISCHARGE_ENGINE_CONFIG") or resource_path(DEFAULT_CONFIG)
    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _logging(cfg: dict, console: bool = True):
    level = os.getenv("LOG_LEVEL", cfg.get("app", {}).get("log_level", "INFO"))
    return setup_logging(cfg.get("paths", {}).get("logs_root", "logs"), level, console=console)


def _echo_json(data):
    typer.echo(json.dumps(data, ensure_ascii=False, indent=2))


@app.command()
def parse(
    summary: Path = typer.Argument(..., exists=True, dir_okay=False, help="discharge summary text"),
    instructions: Optional[Path] = typer.Option(None, exists=True, dir_okay=False),
    tenant: str = typer.Option("default-tenant", help="tenant whose parser list applies"),
    config: Optional[str] = typer.Option(None, help="settings YAML"),
):
    """Parse a raw discharge summary (and instructions) and print the metadata record."""
    cfg = load_cfg(config)
    _logging(cfg, console=False)
    engine = DischargeEngine(cfg)
    summary_text = summary.read_text(encoding="utf-8-sig")
    instructions_text = instructions.read_text(encoding="utf-8-sig") if instructions else None
    _echo_json(engine.parse_to_metadata(tenant, summary_text, instructions_text))


@app.command()
def decode(
    content: Path = typer.Argument(..., exists=True, dir_okay=False, help="simplified markdown"),
    kind: str = typer.Option("instructions", help="summary | instructions"),
):
    """Decode AI-simplified discharge markup into render-ready sections."""
    engine = DischargeEngine(None)
    text = content.read_text(encoding="utf-8-sig")
    if kind == "summary":
        _echo_json(engine.decode_summary(text).to_dict())
    elif kind == "instructions":
        _echo_json(engine.decode_instructions(text).to_dict())
    else:
        raise typer.BadParameter("kind must be 'summary' or 'instructions'")


@app.command()
def tenants(config: Optional[str] = typer.Option(None, help="settings YAML")):
    """List configured tenants and their parser candidates."""
    engine = DischargeEngine(load_cfg(config))
    for tenant_id in engine.configured_tenants():
        info = engine.tenant_info(tenant_id)
        parsers = ", ".join(k.value for k in info.parsers)
        settings = f" {info.settings}" if info.settings else ""
        typer.echo(f"{tenant_id}: [{parsers}]{settings}")


@app.command()
def watch(config: Optional[str] = typer.Option(None, help="settings YAML")):
    """Process the inbox backlog, then keep watching for new documents."""
    cfg = load_cfg(config)
    logger = _logging(cfg)
    logger.info("Starting discharge document watcher")
    engine = DischargeEngine(cfg)
    router = DocumentRouter(engine, cfg)
    svc = DocumentsService(router, cfg["paths"])
    watch_cfg = cfg.get("watch", {})
    patterns = [
        watch_cfg.get("summary_glob", "*.summary.txt"),
        watch_cfg.get("simplified_glob", "*.simplified.md"),
    ]
    asyncio.run(svc.run(patterns))


if __name__ == "__main__":
    app()
