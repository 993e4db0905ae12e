from typing import Any, Dict, List, Optional

from discharge_engine.commons.logger import logger
from discharge_engine.commons.parser_registry import ParseResult, ParserRegistry, to_metadata
from discharge_engine.commons.types import Settings, TenantParserConfig, load_settings
from discharge_engine.parsers.models import SimplifiedInstructions, SimplifiedSummary
from discharge_engine.parsers.simplified import (
    parse_discharge_instructions,
    parse_discharge_sections,
    parse_discharge_summary,
)


class DischargeEngine:
    """Engine facade: loads settings once and exposes parse/decode methods.

    Accepts a settings YAML path, an already-loaded dict or a Settings model.
    """

    def __init__(self, config_path_or_obj: Any = None):
        self.settings: Settings = load_settings(config_path_or_obj)
        self.registry = ParserRegistry(
            self.settings.tenant_configs(), default_parsers=self.settings.default_parsers
        )
        logger.debug(f"Engine ready with tenants: {self.configured_tenants()}")

    def reload(self, config_path_or_obj: Any):
        self.settings = load_settings(config_path_or_obj)
        self.registry.reload(self.settings.tenant_configs(), self.settings.default_parsers)

    # -------- raw documents --------

    def parse(
        self, tenant_id: str, summary_text: Optional[str], instructions_text: Optional[str] = None
    ) -> ParseResult:
        return self.registry.parse(tenant_id, summary_text, instructions_text)

    def to_metadata(self, result: ParseResult, raw_text: Optional[str] = None) -> Dict:
        return to_metadata(result, raw_text)

    def parse_to_metadata(
        self, tenant_id: str, summary_text: str, instructions_text: Optional[str] = None
    ) -> Dict:
        return self.to_metadata(self.parse(tenant_id, summary_text, instructions_text), summary_text)

    # -------- simplified (AI) output --------

    def decode_summary(self, content: str) -> SimplifiedSummary:
        return parse_discharge_summary(content)

    def decode_instructions(self, content: str) -> SimplifiedInstructions:
        return parse_discharge_instructions(content)

    def decode_sections(self, content: str):
        return parse_discharge_sections(content)

    # -------- tenants --------

    def tenant_info(self, tenant_id: str) -> TenantParserConfig:
        """Effective config of a tenant (the global default when unconfigured)."""
        return self.registry.config_for(tenant_id)

    def configured_tenants(self) -> List[str]:
        return sorted(self.registry.tenants)
