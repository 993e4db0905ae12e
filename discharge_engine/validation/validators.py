# discharge_engine/validation/validators.py
from typing import List, Optional, Tuple

from pydantic import BaseModel, ValidationError, model_validator

from discharge_engine.parsers.models import ParsedDischargeSummary


class SummaryValidation(BaseModel):
    patient_name: Optional[str] = None
    mrn: Optional[str] = None
    discharge_date: Optional[str] = None
    admit_date: Optional[str] = None
    medication_count: int = 0
    require_medications: bool = False

    @model_validator(mode="after")
    def _required_fields(self):
        # Patient identity and at least one stay date are mandatory
        missing = []
        if not self.patient_name and not self.mrn:
            missing.append("Patient name or MRN is required")
        if not self.discharge_date and not self.admit_date:
            missing.append("Discharge date or admit date is required")
        if self.require_medications and self.medication_count == 0:
            missing.append("At least one medication is required")
        if missing:
            raise ValueError("; ".join(missing))
        return self


def _model_from(summary: ParsedDischargeSummary, require_medications: bool) -> dict:
    return dict(
        patient_name=summary.patient_name,
        mrn=summary.mrn,
        discharge_date=summary.discharge_date,
        admit_date=summary.admit_date,
        medication_count=len(summary.medications or ()),
        require_medications=require_medications,
    )


def validate_summary_or_raise(summary: ParsedDischargeSummary, require_medications: bool = False):
    """Build the model; raises ValidationError when a required field is missing."""
    SummaryValidation(**_model_from(summary, require_medications))


def validate_summary(
    summary: ParsedDischargeSummary, require_medications: bool = False
) -> Tuple[bool, List[str]]:
    try:
        validate_summary_or_raise(summary, require_medications)
    except ValidationError as ve:
        errors = []
        for err in ve.errors():
            msg = str(err.get("msg", ""))
            msg = msg.split("Value error, ", 1)[-1]
            errors.extend(part.strip() for part in msg.split(";") if part.strip())
        return False, errors
    return True, []
