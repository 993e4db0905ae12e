from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, field_validator

from discharge_engine.parsers.base import ParserKind

DEFAULT_PARSERS: List[ParserKind] = [ParserKind.DEFAULT]


class TenantParserConfig(BaseModel):
    """Ordered parser candidates for one tenant, plus free-form settings."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str
    parsers: List[ParserKind] = DEFAULT_PARSERS
    settings: Dict[str, Any] = {}

    @field_validator("parsers")
    @classmethod
    def _not_empty(cls, v: List[ParserKind]):
        if not v:
            raise ValueError("at least one parser is required")
        return v

    def setting(self, name: str, default: Any = None) -> Any:
        return self.settings.get(name, default)


class TenantEntry(BaseModel):
    parsers: List[ParserKind] = DEFAULT_PARSERS
    settings: Dict[str, Any] = {}


class Settings(BaseModel):
    app: Dict[str, Any] = {}
    paths: Dict[str, str] = {}
    watch: Dict[str, str] = {}
    default_parsers: List[ParserKind] = DEFAULT_PARSERS
    tenants: Dict[str, TenantEntry] = {}

    def tenant_configs(self) -> Dict[str, TenantParserConfig]:
        return {
            tenant_id: TenantParserConfig(
                tenant_id=tenant_id, parsers=entry.parsers, settings=entry.settings
            )
            for tenant_id, entry in self.tenants.items()
        }


def load_settings(path_or_obj: Any) -> Settings:
    """Build ``Settings`` from a YAML path, a loaded dict or a Settings."""
    if isinstance(path_or_obj, Settings):
        return path_or_obj
    if isinstance(path_or_obj, Mapping):
        return Settings.model_validate(dict(path_or_obj))
    if path_or_obj is None:
        return Settings()
    with open(path_or_obj, "r", encoding="utf-8") as f:
        return Settings.model_validate(yaml.safe_load(f) or {})


def tenant_configs_from(raw: Optional[Mapping[str, Any]]) -> Dict[str, TenantParserConfig]:
    """``{tenant: {parsers: [...], settings: {...}}}`` -> validated configs."""
    return Settings.model_validate({"tenants": dict(raw or {})}).tenant_configs()
