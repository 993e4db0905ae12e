# ===============================
# File: discharge_engine/parsers/models.py
# ===============================
from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from discharge_engine.commons.logger import logger


@dataclass(frozen=True)
class Physician:
    name: str
    id: Optional[str] = None


@dataclass(frozen=True)
class LabResult:
    name: str
    value: str
    unit: Optional[str] = None


@dataclass(frozen=True)
class VitalSigns:
    temperature: Optional[str] = None
    heart_rate: Optional[str] = None
    respiratory_rate: Optional[str] = None
    blood_pressure: Optional[str] = None
    oxygen_saturation: Optional[str] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))


@dataclass(frozen=True)
class Medication:
    name: str
    dose: str
    frequency: str
    instructions: str
    route: Optional[str] = None
    is_new: Optional[bool] = None
    is_stopped: Optional[bool] = None


@dataclass(frozen=True)
class FollowUpAppointment:
    provider: str
    timeframe: str
    notes: Optional[str] = None


# Fields that carry no clinical content and never count as "structure"
META_FIELDS = ("raw_text", "parser_version", "warnings", "confidence")


@dataclass(frozen=True)
class ParsedDischargeSummary:
    raw_text: str
    parser_version: str
    warnings: Tuple[str, ...] = ()
    confidence: float = 0.0

    patient_name: Optional[str] = None
    mrn: Optional[str] = None
    dob: Optional[str] = None
    admit_date: Optional[str] = None
    discharge_date: Optional[str] = None
    attending_physician: Optional[Physician] = None
    service: Optional[str] = None

    admitting_diagnosis: Optional[Tuple[str, ...]] = None
    discharge_diagnosis: Optional[Tuple[str, ...]] = None
    hospital_course: Optional[str] = None

    lab_results: Optional[Tuple[LabResult, ...]] = None
    vital_signs: Optional[VitalSigns] = None

    condition_at_discharge: Optional[str] = None
    medications: Optional[Tuple[Medication, ...]] = None
    follow_up_appointments: Optional[Tuple[FollowUpAppointment, ...]] = None
    diet_instructions: Optional[str] = None
    activity_restrictions: Optional[str] = None
    patient_instructions: Optional[str] = None
    return_precautions: Optional[Tuple[str, ...]] = None

    def structured_fields(self) -> List[str]:
        return _present(self)

    def has_structure(self) -> bool:
        return bool(self.structured_fields())


@dataclass(frozen=True)
class ParsedDischargeInstructions:
    raw_text: str
    parser_version: str
    warnings: Tuple[str, ...] = ()

    medications: Optional[Tuple[Medication, ...]] = None
    follow_up_appointments: Optional[Tuple[FollowUpAppointment, ...]] = None
    diet_instructions: Optional[str] = None
    activity_restrictions: Optional[str] = None
    patient_instructions: Optional[str] = None
    return_precautions: Optional[Tuple[str, ...]] = None

    def structured_fields(self) -> List[str]:
        return _present(self)

    def has_structure(self) -> bool:
        return bool(self.structured_fields())


def _present(record) -> List[str]:
    return [
        f.name
        for f in fields(record)
        if f.name not in META_FIELDS and getattr(record, f.name) is not None
    ]


def _normalize(value: Any) -> Any:
    """Collapse empty strings/collections to None and freeze lists."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    if isinstance(value, (list, tuple)):
        items = tuple(v for v in value if v is not None and v != "")
        return items or None
    if isinstance(value, VitalSigns):
        return None if value.is_empty() else value
    return value


class _RecordBuilder:
    """Accumulates optional field values for one parse call.

    Each extractor runs through ``extract``; an exception is recorded as a
    warning and the field stays absent, the remaining extractors still run.
    The frozen record is only materialized by ``build``.
    """

    def __init__(self, raw_text: str, parser_version: str):
        self.raw_text = raw_text
        self.parser_version = parser_version
        self.values: Dict[str, Any] = {}
        self.warnings: List[str] = []
        self.failed = False

    def extract(self, name: str, fn: Callable[[str], Any], text: str) -> Any:
        try:
            value = fn(text)
        except Exception as ex:
            self.failed = True
            self.warnings.append(f"Parsing error in {name}: {ex}")
            logger.debug(f"{self.parser_version}: {name} extractor failed: {ex}")
            return None
        value = _normalize(value)
        if value is not None:
            self.values[name] = value
        return value

    def _base(self) -> Dict[str, Any]:
        return dict(
            raw_text=self.raw_text,
            parser_version=self.parser_version,
            warnings=tuple(self.warnings),
            **self.values,
        )


class SummaryBuilder(_RecordBuilder):
    def build(self) -> ParsedDischargeSummary:
        # local import: confidence imports the record types from this module
        from .confidence import PARTIAL_CONFIDENCE, score_confidence

        summary = ParsedDischargeSummary(**self._base())
        confidence = PARTIAL_CONFIDENCE if self.failed else score_confidence(summary)
        return replace(summary, confidence=confidence)


class InstructionsBuilder(_RecordBuilder):
    def build(self) -> ParsedDischargeInstructions:
        return ParsedDischargeInstructions(**self._base())


# ---------------- AI simplified output ----------------


@dataclass(frozen=True)
class MedicationRow:
    medicine_name: str
    frequency: str = ""
    when_to_take: str = ""
    special_instructions: str = ""

    def to_dict(self) -> Dict:
        return {
            "medicineName": self.medicine_name,
            "frequency": self.frequency,
            "whenToTake": self.when_to_take,
            "specialInstructions": self.special_instructions,
        }


@dataclass(frozen=True)
class DietActivity:
    foods_to_include: Optional[Tuple[str, ...]] = None
    foods_to_limit: Optional[Tuple[str, ...]] = None
    recommended_activities: Optional[Tuple[str, ...]] = None
    activities_to_avoid: Optional[Tuple[str, ...]] = None

    def to_dict(self) -> Dict:
        return _camel_lists(
            foodsToInclude=self.foods_to_include,
            foodsToLimit=self.foods_to_limit,
            recommendedActivities=self.recommended_activities,
            activitiesToAvoid=self.activities_to_avoid,
        )


@dataclass(frozen=True)
class WarningSigns:
    call_911: Optional[Tuple[str, ...]] = None
    call_doctor: Optional[Tuple[str, ...]] = None
    emergency_contacts: Optional[Tuple[str, ...]] = None

    def to_dict(self) -> Dict:
        return _camel_lists(
            call911=self.call_911,
            callDoctor=self.call_doctor,
            emergencyContacts=self.emergency_contacts,
        )


@dataclass(frozen=True)
class SimplifiedSummary:
    reasons_for_stay: Optional[str] = None
    what_happened: Optional[str] = None
    raw: Optional[str] = None

    def to_dict(self) -> Dict:
        out = {}
        if self.reasons_for_stay is not None:
            out["reasonsForStay"] = self.reasons_for_stay
        if self.what_happened is not None:
            out["whatHappened"] = self.what_happened
        if self.raw is not None:
            out["raw"] = self.raw
        return out


@dataclass(frozen=True)
class SimplifiedInstructions:
    medications: Optional[Tuple[MedicationRow, ...]] = None
    appointments: Optional[Tuple[str, ...]] = None
    diet_activity: Optional[DietActivity] = None
    warning_signs: Optional[WarningSigns] = None
    raw: Optional[str] = None

    def to_dict(self) -> Dict:
        out: Dict[str, Any] = {}
        if self.medications is not None:
            out["medications"] = [m.to_dict() for m in self.medications]
        if self.appointments is not None:
            out["appointments"] = list(self.appointments)
        if self.diet_activity is not None:
            out["dietActivity"] = self.diet_activity.to_dict()
        if self.warning_signs is not None:
            out["warningSigns"] = self.warning_signs.to_dict()
        if self.raw is not None:
            out["raw"] = self.raw
        return out


@dataclass(frozen=True)
class DischargeSections:
    overview: Optional[str] = None
    medications: Optional[str] = None
    appointments: Optional[str] = None
    diet_activity: Optional[str] = None
    warning_signs: Optional[str] = None
    raw: Optional[str] = None
    unknown_headers: Tuple[str, ...] = field(default_factory=tuple)


def _camel_lists(**kwargs) -> Dict:
    return {k: list(v) for k, v in kwargs.items() if v is not None}


# ---------------- ingestion input ----------------

TEXT_MIME_TYPES = ("text/plain", "text/markdown")


class UnsupportedDocumentError(ValueError):
    """Raised for uploads whose MIME type has no text representation here."""


@dataclass(frozen=True)
class RawDocument:
    content: bytes
    mime_type: str
    tenant_id: str

    def text(self) -> str:
        mime = (self.mime_type or "").split(";", 1)[0].strip().lower()
        if mime not in TEXT_MIME_TYPES:
            raise UnsupportedDocumentError(f"Unsupported file type: {self.mime_type}")
        return self.content.decode("utf-8-sig")
