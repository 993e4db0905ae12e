"""STEMI dialect: cardiology discharge summaries ("Adult - STEMI DISCHARGE").

Every header in this layout ends with a colon, so headers are matched with
``colon=True``; the labs block is read against a fixed vocabulary.
"""
import re
from dataclasses import replace
from typing import List, Optional

from .base import (
    capture_vitals,
    clean_text,
    date_pattern,
    extract_section,
    filter_lines,
    first_capture,
    header_pattern,
    label_pattern,
    parse_bullet_list,
    parse_follow_up_line,
    parse_medication_line,
    physician_from,
    split_diagnoses,
    validate_date,
)
from .models import (
    InstructionsBuilder,
    LabResult,
    Medication,
    ParsedDischargeInstructions,
    ParsedDischargeSummary,
    SummaryBuilder,
)

PARSER_VERSION = "stemi-1.0.0"

ADMITTING_DX = header_pattern(r"Admitting\s+Diagnosis\s*\(ICD-?10\)", colon=True)
DISCHARGE_DX = header_pattern(r"Discharge\s+Diagnosis", colon=True)
HOSPITAL_COURSE = header_pattern(r"Hospital\s+Course", colon=True)
PERTINENT_RESULTS = header_pattern(r"Pertinent\s+Results", colon=True)
EKG = header_pattern(r"EKG|ECG", colon=True)
ECHO = header_pattern(r"Echo(?:cardiogram)?", colon=True)
CONDITION = header_pattern(r"Condition\s+at\s+Discharge", colon=True)
DISCHARGE_MEDS = header_pattern(r"Discharge\s+Medications", colon=True)
NEW_MEDS = header_pattern(r"New", colon=True)
CONTINUED_MEDS = header_pattern(r"Continued", colon=True)
STOPPED_MEDS = header_pattern(r"Stopped", colon=True)
FOLLOW_UP = header_pattern(r"Follow-?Up\s+Appointments", colon=True)
DIET = header_pattern(r"Diet\s+and\s+Lifestyle(?:\s+Instructions)?", colon=True)
PATIENT_INSTRUCTIONS = header_pattern(
    r"Patient\s+Instructions(?:\s*\(Clinical\s+Style\))?", colon=True
)
RETURN_PRECAUTIONS = header_pattern(r"Return\s+Precautions", colon=True)

ACTIVITY_KEYWORDS = ("lifting", "activity", "walking", "exercise")

_TROPONIN_RE = re.compile(
    r"troponin\s+I\s*:\s*([\d.]+)\s*ng/mL\s*(?:→|->)\s*peak\s*([\d.]+)\s*(?:→|->)\s*([\d.]+)",
    re.IGNORECASE,
)

# (result name, pattern, unit); first match per entry, absent entries omitted
LAB_VOCABULARY = (
    ("WBC", re.compile(r"\bWBC\s*:?\s*([\d.]+)"), "K/µL"),
    ("Hemoglobin", re.compile(r"\bHb\s*:?\s*([\d.]+)"), "g/dL"),
    ("Platelets", re.compile(r"\bPlt\s*:?\s*(\d+)", re.IGNORECASE), "K/µL"),
    ("Sodium", re.compile(r"\bNa\s*:?\s*(\d+)"), "mEq/L"),
    ("Potassium", re.compile(r"\bK\s*:?\s*([\d.]+)"), "mEq/L"),
    ("BUN", re.compile(r"\bBUN\s*:?\s*(\d+)"), "mg/dL"),
    ("Creatinine", re.compile(r"\bCr\s*:?\s*([\d.]+)"), "mg/dL"),
    ("LDL", re.compile(r"\bLDL\s*:?\s*(\d+)"), "mg/dL"),
    ("HDL", re.compile(r"\bHDL\s*:?\s*(\d+)"), "mg/dL"),
    ("Triglycerides", re.compile(r"\bTG\s*:?\s*(\d+)"), "mg/dL"),
    ("HbA1c", re.compile(r"\bHbA1c\s*:?\s*([\d.]+)\s*%", re.IGNORECASE), "%"),
)


def can_parse(text: str) -> bool:
    text = text or ""
    return all(p.search(text) for p in (ADMITTING_DX, DISCHARGE_DX, HOSPITAL_COURSE))


def parse_patient_name(text: str) -> Optional[str]:
    return first_capture(text, [label_pattern(r"Patient\s+Name")])


def parse_mrn(text: str) -> Optional[str]:
    return first_capture(text, [label_pattern(r"MRN")])


def parse_dob(text: str) -> Optional[str]:
    return first_capture(text, [label_pattern(r"DOB")])


def parse_admit_date(text: str) -> Optional[str]:
    return validate_date(first_capture(text, [date_pattern(r"Admit\s+Date")]))


def parse_discharge_date(text: str) -> Optional[str]:
    return validate_date(first_capture(text, [date_pattern(r"Discharge\s+Date")]))


def parse_attending_physician(text: str):
    return physician_from(first_capture(text, [label_pattern(r"Attending\s+Physician")]))


def parse_service(text: str) -> Optional[str]:
    return first_capture(text, [label_pattern(r"Service")])


def parse_admitting_diagnosis(text: str) -> Optional[List[str]]:
    section = extract_section(text, ADMITTING_DX, [DISCHARGE_DX])
    return split_diagnoses(parse_bullet_list(section)) if section else None


def parse_discharge_diagnosis(text: str) -> Optional[List[str]]:
    section = extract_section(text, DISCHARGE_DX, [HOSPITAL_COURSE])
    return split_diagnoses(parse_bullet_list(section)) if section else None


def parse_hospital_course(text: str) -> Optional[str]:
    return extract_section(text, HOSPITAL_COURSE, [PERTINENT_RESULTS])


def parse_lab_results(text: str) -> Optional[List[LabResult]]:
    section = extract_section(text, PERTINENT_RESULTS, [EKG, ECHO, CONDITION])
    if not section:
        return None

    results = []
    m = _TROPONIN_RE.search(section)
    if m:
        for label, value in zip(("admission", "peak", "discharge"), m.groups()):
            results.append(LabResult(name=f"Troponin I ({label})", value=value, unit="ng/mL"))

    for name, pattern, unit in LAB_VOCABULARY:
        m = pattern.search(section)
        if m:
            results.append(LabResult(name=name, value=m.group(1).rstrip("."), unit=unit))
    return results


def parse_condition_at_discharge(text: str) -> Optional[str]:
    return extract_section(text, CONDITION, [DISCHARGE_MEDS])


def parse_vital_signs(text: str):
    return capture_vitals(parse_condition_at_discharge(text))


def _medications_in(section: Optional[str], **flags) -> List[Medication]:
    meds = []
    for item in parse_bullet_list(section):
        med = parse_medication_line(item)
        if med:
            meds.append(replace(med, **flags) if flags else med)
    return meds


def parse_medications(text: str) -> Optional[List[Medication]]:
    new_section = extract_section(text, NEW_MEDS, [CONTINUED_MEDS, STOPPED_MEDS, FOLLOW_UP])
    continued_section = extract_section(text, CONTINUED_MEDS, [STOPPED_MEDS, FOLLOW_UP])
    stopped_section = extract_section(text, STOPPED_MEDS, [FOLLOW_UP])
    return (
        _medications_in(new_section, is_new=True)
        + _medications_in(continued_section)
        + _medications_in(stopped_section, is_stopped=True)
    )


def parse_follow_up_appointments(text: str):
    section = extract_section(text, FOLLOW_UP, [DIET])
    return [parse_follow_up_line(item) for item in parse_bullet_list(section)]


def parse_diet_instructions(text: str) -> Optional[str]:
    return extract_section(text, DIET, [PATIENT_INSTRUCTIONS])


def parse_activity_restrictions(text: str) -> Optional[str]:
    return filter_lines(parse_diet_instructions(text), ACTIVITY_KEYWORDS)


def parse_patient_instructions(text: str) -> Optional[str]:
    return extract_section(text, PATIENT_INSTRUCTIONS, [RETURN_PRECAUTIONS])


def parse_return_precautions(text: str) -> Optional[List[str]]:
    items = parse_bullet_list(extract_section(text, RETURN_PRECAUTIONS, []))
    return [i for i in items if not i.lower().startswith("return to ed")]


def _instruction_fields(builder, text: str):
    builder.extract("medications", parse_medications, text)
    builder.extract("follow_up_appointments", parse_follow_up_appointments, text)
    builder.extract("diet_instructions", parse_diet_instructions, text)
    builder.extract("activity_restrictions", parse_activity_restrictions, text)
    builder.extract("patient_instructions", parse_patient_instructions, text)
    builder.extract("return_precautions", parse_return_precautions, text)


def parse_summary(raw_text: str) -> ParsedDischargeSummary:
    text = clean_text(raw_text)
    b = SummaryBuilder(text, PARSER_VERSION)

    b.extract("patient_name", parse_patient_name, text)
    b.extract("mrn", parse_mrn, text)
    b.extract("dob", parse_dob, text)
    b.extract("admit_date", parse_admit_date, text)
    b.extract("discharge_date", parse_discharge_date, text)
    b.extract("attending_physician", parse_attending_physician, text)
    b.extract("service", parse_service, text)

    b.extract("admitting_diagnosis", parse_admitting_diagnosis, text)
    b.extract("discharge_diagnosis", parse_discharge_diagnosis, text)
    b.extract("hospital_course", parse_hospital_course, text)
    b.extract("lab_results", parse_lab_results, text)
    b.extract("vital_signs", parse_vital_signs, text)
    b.extract("condition_at_discharge", parse_condition_at_discharge, text)

    _instruction_fields(b, text)
    return b.build()


def parse_instructions(raw_text: str) -> ParsedDischargeInstructions:
    text = clean_text(raw_text)
    b = InstructionsBuilder(text, PARSER_VERSION)
    _instruction_fields(b, text)
    return b.build()
