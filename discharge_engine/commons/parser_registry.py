from dataclasses import asdict, dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple

from discharge_engine.commons.logger import logger
from discharge_engine.commons.types import DEFAULT_PARSERS, TenantParserConfig
from discharge_engine.parsers import default, stemi
from discharge_engine.parsers.base import ParserKind
from discharge_engine.parsers.models import ParsedDischargeInstructions, ParsedDischargeSummary

# Every kind exposes can_parse / parse_summary / parse_instructions
PARSERS = {
    ParserKind.DEFAULT: default,
    ParserKind.STEMI: stemi,
}


@dataclass(frozen=True)
class ParseResult:
    parser_used: bool
    parsed_summary: Optional[ParsedDischargeSummary] = None
    parsed_instructions: Optional[ParsedDischargeInstructions] = None
    parser_kind: Optional[ParserKind] = None

    @property
    def parser_version(self) -> Optional[str]:
        record = self.parsed_summary or self.parsed_instructions
        return record.parser_version if record else None

    @property
    def confidence(self) -> Optional[float]:
        return self.parsed_summary.confidence if self.parsed_summary else None


NO_PARSE = ParseResult(parser_used=False)


class RegistrySnapshot(NamedTuple):
    tenants: Mapping[str, TenantParserConfig]
    default_parsers: Tuple[ParserKind, ...]


def _snapshot(
    configs: Optional[Mapping[str, TenantParserConfig]], default_parsers: Sequence[ParserKind]
) -> RegistrySnapshot:
    return RegistrySnapshot(
        MappingProxyType(dict(configs or {})), tuple(default_parsers) or tuple(DEFAULT_PARSERS)
    )


class ParserRegistry:
    """Tenant -> ordered parser candidates, first structured result wins.

    Tenant table and default list live in one read-only snapshot; ``reload``
    swaps it in a single assignment so concurrent readers see either the old
    or the new configuration, never a mix.
    """

    def __init__(
        self,
        configs: Optional[Mapping[str, TenantParserConfig]] = None,
        default_parsers: Sequence[ParserKind] = DEFAULT_PARSERS,
    ):
        self._snapshot = _snapshot(configs, default_parsers)

    def reload(
        self,
        configs: Mapping[str, TenantParserConfig],
        default_parsers: Optional[Sequence[ParserKind]] = None,
    ):
        if default_parsers is None:
            default_parsers = self._snapshot.default_parsers
        self._snapshot = _snapshot(configs, default_parsers)
        logger.info(f"Parser registry reloaded: {len(configs)} tenant(s)")

    @property
    def tenants(self) -> Mapping[str, TenantParserConfig]:
        return self._snapshot.tenants

    @property
    def default_parsers(self) -> List[ParserKind]:
        return list(self._snapshot.default_parsers)

    def config_for(self, tenant_id: str) -> TenantParserConfig:
        snapshot = self._snapshot
        config = snapshot.tenants.get(tenant_id)
        if config is None:
            return TenantParserConfig(tenant_id=tenant_id, parsers=list(snapshot.default_parsers))
        return config

    def parse(
        self, tenant_id: str, summary_text: Optional[str], instructions_text: Optional[str]
    ) -> ParseResult:
        config = self.config_for(tenant_id)
        sample = summary_text or instructions_text or ""

        for kind in config.parsers:
            parser = PARSERS[kind]
            if not parser.can_parse(sample):
                logger.debug(f"[{tenant_id}] parser {kind.value} rejected the document")
                continue
            try:
                summary = parser.parse_summary(summary_text) if summary_text else None
                instructions = (
                    parser.parse_instructions(instructions_text) if instructions_text else None
                )
            except Exception as ex:
                logger.exception(f"[{tenant_id}] parser {kind.value} failed: {ex}")
                continue

            if (summary and summary.has_structure()) or (
                instructions and instructions.has_structure()
            ):
                logger.info(
                    f"[{tenant_id}] parsed with {kind.value}"
                    f" (confidence={summary.confidence if summary else 'n/a'})"
                )
                return ParseResult(True, summary, instructions, kind)
            logger.debug(f"[{tenant_id}] parser {kind.value} found no structure")

        logger.info(f"[{tenant_id}] no parser produced structured fields; raw text only")
        return NO_PARSE


_default_registry = ParserRegistry()


def parse_discharge_document(
    tenant_id: str,
    raw_summary_text: Optional[str],
    raw_instructions_text: Optional[str],
    registry: Optional[ParserRegistry] = None,
) -> ParseResult:
    return (registry or _default_registry).parse(tenant_id, raw_summary_text, raw_instructions_text)


def record_to_dict(record) -> Optional[Dict[str, Any]]:
    """Dataclass record -> plain dict, absent fields dropped."""
    if record is None:
        return None
    return _drop_none(asdict(record))


def _drop_none(obj):
    if isinstance(obj, dict):
        return {k: _drop_none(v) for k, v in obj.items() if v is not None}
    if isinstance(obj, (list, tuple)):
        return [_drop_none(x) for x in obj]
    return obj


def to_metadata(result: ParseResult, raw_text: Optional[str] = None) -> Dict[str, Any]:
    """Persistence record stored next to the uploaded document."""
    if raw_text is None and result.parsed_summary is not None:
        raw_text = result.parsed_summary.raw_text
    parsed = None
    if result.parser_used:
        parsed = {
            "summary": record_to_dict(result.parsed_summary),
            "instructions": record_to_dict(result.parsed_instructions),
        }
    return {
        "rawText": raw_text or "",
        "parsed": parsed,
        "parserVersion": result.parser_version,
        "confidence": result.confidence,
        "parserUsed": result.parser_used,
        "parser": result.parser_kind.value if result.parser_kind else None,
    }
