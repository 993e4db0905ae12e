from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from discharge_engine.commons.engine import DischargeEngine
from discharge_engine.commons.logger import logger
from discharge_engine.parsers.models import ParsedDischargeSummary
from discharge_engine.validation.validators import validate_summary_or_raise

SUMMARY_SUFFIX = ".summary.txt"
INSTRUCTIONS_SUFFIX = ".instructions.txt"
SIMPLIFIED_SUFFIX = ".simplified.md"

DEFAULT_TENANT = "default-tenant"


def document_kind(path: str) -> Optional[str]:
    name = Path(path).name.lower()
    if name.endswith(SUMMARY_SUFFIX):
        return "summary"
    if name.endswith(SIMPLIFIED_SUFFIX):
        return "simplified"
    return None


def companion_instructions(path: str) -> Path:
    p = Path(path)
    return p.with_name(p.name[: -len(SUMMARY_SUFFIX)] + INSTRUCTIONS_SUFFIX)


class DocumentRouter:
    """Routes an inbox file to the raw-document parsers or the simplified decoder.

    ``<inbox>/<tenant>/<name>.summary.txt`` is parsed for ``<tenant>`` together
    with an optional ``<name>.instructions.txt`` next to it;
    ``*.simplified.md`` files go through the multilingual decoder.
    """

    def __init__(self, engine: DischargeEngine, cfg: Dict[str, Any]):
        self.engine = engine
        self.cfg = cfg
        self.paths = cfg["paths"]
        self.default_tenant = cfg.get("app", {}).get("default_tenant", DEFAULT_TENANT)

    def archive_raw(self, direction: str, text: str, tag: str):
        base = Path(self.paths["logs_root"]) / "raw" / direction
        base.mkdir(parents=True, exist_ok=True)
        name = f'{datetime.now().strftime("%Y%m%d_%H%M%S_%f")}_{tag}.txt'
        (base / name).write_text(text, encoding="utf-8")

    def tenant_for(self, path: str) -> str:
        parent = Path(path).resolve().parent
        inbox = Path(self.paths.get("inbox", ".")).resolve()
        if parent == inbox:
            return self.default_tenant
        return parent.name

    def route(self, text: str, src: str) -> Dict[str, Any]:
        kind = document_kind(src)
        if kind == "summary":
            return self.parse_raw(text, src)
        if kind == "simplified":
            return self.decode_simplified(text, src)
        raise ValueError(f"Unrecognized document name: {Path(src).name}")

    def parse_raw(self, text: str, src: str) -> Dict[str, Any]:
        tenant = self.tenant_for(src)
        companion = companion_instructions(src)
        instructions = companion.read_text(encoding="utf-8-sig") if companion.exists() else None

        result = self.engine.parse(tenant, text, instructions)
        config = self.engine.tenant_info(tenant)
        if config.setting("strict_validation", False):
            summary = result.parsed_summary or ParsedDischargeSummary(
                raw_text=text, parser_version="none"
            )
            validate_summary_or_raise(
                summary, require_medications=bool(config.setting("require_medications", False))
            )

        record = self.engine.to_metadata(result, text)
        record.update(tenant=tenant, source=Path(src).name, kind="summary")
        if result.parsed_summary and result.parsed_summary.warnings:
            logger.warning(f"{Path(src).name}: {'; '.join(result.parsed_summary.warnings)}")
        return record

    def decode_simplified(self, text: str, src: str) -> Dict[str, Any]:
        sections = self.engine.decode_sections(text)
        if sections.unknown_headers:
            logger.info(f"{Path(src).name}: unknown headers {list(sections.unknown_headers)}")
        return {
            "tenant": self.tenant_for(src),
            "source": Path(src).name,
            "kind": "simplified",
            "summary": self.engine.decode_summary(text).to_dict(),
            "instructions": self.engine.decode_instructions(text).to_dict(),
        }
