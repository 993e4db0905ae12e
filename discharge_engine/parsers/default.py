"""Default dialect: common hospital discharge summary layouts.

Headers may be plain (``Hospital Course:``) or markdown-decorated
(``### **Hospital Course:**``); most labels accept several spellings.
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

PARSER_VERSION = "default-1.0.0"

ADMITTING_DX = header_pattern(r"Admitting\s+Diagnos[ie]s(?:\s*\(ICD-?10\))?")
DISCHARGE_DX = header_pattern(r"Discharge\s+Diagnos[ie]s(?:\s*\(ICD-?10\))?")
HOSPITAL_COURSE = header_pattern(r"Hospital\s+Course|Brief\s+Hospital\s+Course")
PERTINENT_RESULTS = header_pattern(r"Pertinent\s+Results|Lab(?:oratory)?\s+Results|Labs")
VITALS = re.compile(r"\bVital(?:s|\s+Signs)\b[ \t]*:?", re.IGNORECASE)
CONDITION = header_pattern(r"Condition\s+(?:at|on)\s+Discharge")
DISCHARGE_MEDS = header_pattern(r"Discharge\s+Medications?")
NEW_MEDS = header_pattern(r"New(?:\s+Medications?)?")
CONTINUED_MEDS = header_pattern(r"Continued?(?:\s+Medications?)?")
STOPPED_MEDS = header_pattern(r"(?:Stopped|Discontinued)(?:\s+Medications?)?")
FOLLOW_UP = header_pattern(r"Follow[-\s]?Up(?:\s+Appointments?)?")
DIET = header_pattern(r"Diet(?:\s+(?:and|&)\s+Lifestyle)?(?:\s+Instructions?)?")
ACTIVITY = header_pattern(r"Activity(?:\s+Restrictions?)?")
PATIENT_INSTRUCTIONS = header_pattern(r"Patient\s+Instructions(?:\s*\([^)\n]*\))?")
RETURN_PRECAUTIONS = header_pattern(r"Return\s+Precautions|Return\s+to\s+(?:the\s+)?ED")

# Study results that close the labs block, bulleted or not
STUDIES = re.compile(r"^[ \t]*(?:[-*•●][ \t]*)?(?:EKG|ECG|Echo(?:cardiogram)?)\b", re.IGNORECASE | re.MULTILINE)
EXAM = re.compile(r"\b(?:Exam|Assessment)\b", re.IGNORECASE)

ACTIVITY_KEYWORDS = ("lifting", "activity", "walking", "exercise", "driving")

_MED_ECHO_RE = re.compile(
    r"^(?:New|Continued?|Stopped|Discontinued|Home|Discharge)(?:\s+Medications?)?\s*:?$",
    re.IGNORECASE,
)
_LAB_LINE_RE = re.compile(
    r"^(?P<name>[A-Za-z][A-Za-z0-9 ()/\-]*?)\s*:\s*(?P<value>\d+(?:\.\d+)?)"
    r"\s*(?P<unit>%|[A-Za-zµ]+(?:/[A-Za-zµ]+)?)?",
)


def can_parse(text: str) -> bool:
    return any(
        p.search(text or "")
        for p in (DISCHARGE_DX, ADMITTING_DX, HOSPITAL_COURSE, DISCHARGE_MEDS, FOLLOW_UP)
    )


# ---------------- identity ----------------


def parse_patient_name(text: str) -> Optional[str]:
    return first_capture(
        text,
        [label_pattern(r"Patient\s+Name"), r"^[ \t]*Name[ \t]*:[ \t]*([^\n]+)", label_pattern(r"Patient")],
    )


def parse_mrn(text: str) -> Optional[str]:
    return first_capture(
        text, [label_pattern(r"MRN"), label_pattern(r"Medical\s+Record\s+Number"), label_pattern(r"MR#")]
    )


def parse_dob(text: str) -> Optional[str]:
    return first_capture(text, [label_pattern(r"DOB"), label_pattern(r"Date\s+of\s+Birth")])


def parse_admit_date(text: str) -> Optional[str]:
    value = first_capture(
        text,
        [
            date_pattern(r"Admit\s+Date"),
            date_pattern(r"Admission\s+Date"),
            date_pattern(r"Date\s+of\s+Admission"),
        ],
    )
    return validate_date(value)


def parse_discharge_date(text: str) -> Optional[str]:
    value = first_capture(
        text, [date_pattern(r"Discharge\s+Date"), date_pattern(r"Date\s+of\s+Discharge")]
    )
    return validate_date(value)


def parse_attending_physician(text: str):
    return physician_from(
        first_capture(
            text,
            [
                label_pattern(r"Attending\s+Physician"),
                label_pattern(r"Attending"),
                r"^[ \t]*Physician[ \t]*:[ \t]*([^\n]+)",
            ],
        )
    )


def parse_service(text: str) -> Optional[str]:
    return first_capture(text, [label_pattern(r"Service"), label_pattern(r"Department")])


# ---------------- clinical ----------------


def parse_admitting_diagnosis(text: str) -> Optional[List[str]]:
    section = extract_section(text, ADMITTING_DX, [DISCHARGE_DX, HOSPITAL_COURSE, PERTINENT_RESULTS])
    return split_diagnoses(parse_bullet_list(section)) if section else None


def parse_discharge_diagnosis(text: str) -> Optional[List[str]]:
    section = extract_section(text, DISCHARGE_DX, [HOSPITAL_COURSE, PERTINENT_RESULTS, CONDITION])
    return split_diagnoses(parse_bullet_list(section)) if section else None


def parse_hospital_course(text: str) -> Optional[str]:
    return extract_section(
        text, HOSPITAL_COURSE, [PERTINENT_RESULTS, CONDITION, DISCHARGE_MEDS, FOLLOW_UP]
    )


def parse_lab_results(text: str) -> Optional[List[LabResult]]:
    section = extract_section(text, PERTINENT_RESULTS, [STUDIES, VITALS, CONDITION, DISCHARGE_MEDS])
    if not section:
        return None
    results = []
    for item in parse_bullet_list(section):
        m = _LAB_LINE_RE.match(item)
        if m:
            results.append(LabResult(name=m.group("name").strip(), value=m.group("value"), unit=m.group("unit")))
    return results


def parse_vital_signs(text: str):
    section = extract_section(text, VITALS, [EXAM, DISCHARGE_MEDS, FOLLOW_UP])
    return capture_vitals(section) or capture_vitals(parse_condition_at_discharge(text))


def parse_condition_at_discharge(text: str) -> Optional[str]:
    return extract_section(text, CONDITION, [DISCHARGE_MEDS, NEW_MEDS, FOLLOW_UP])


# ---------------- instructions ----------------


def _medications_in(section: Optional[str], **flags) -> List[Medication]:
    meds = []
    for item in parse_bullet_list(section):
        if _MED_ECHO_RE.match(item):
            continue
        med = parse_medication_line(item)
        if med:
            meds.append(replace(med, **flags) if flags else med)
    return meds


def parse_medications(text: str) -> Optional[List[Medication]]:
    after_meds = [FOLLOW_UP, DIET, ACTIVITY, PATIENT_INSTRUCTIONS, RETURN_PRECAUTIONS]

    new_section = extract_section(text, NEW_MEDS, [CONTINUED_MEDS, STOPPED_MEDS] + after_meds)
    continued_section = extract_section(text, CONTINUED_MEDS, [STOPPED_MEDS] + after_meds)
    stopped_section = extract_section(text, STOPPED_MEDS, after_meds)

    medications = _medications_in(new_section, is_new=True)
    if not new_section and not continued_section:
        # an undivided list under "Discharge Medications"
        medications += _medications_in(
            extract_section(text, DISCHARGE_MEDS, [STOPPED_MEDS] + after_meds)
        )
    medications += _medications_in(continued_section)
    medications += _medications_in(stopped_section, is_stopped=True)
    return medications


def parse_follow_up_appointments(text: str):
    section = extract_section(text, FOLLOW_UP, [DIET, ACTIVITY, PATIENT_INSTRUCTIONS, RETURN_PRECAUTIONS])
    return [parse_follow_up_line(item) for item in parse_bullet_list(section)]


def parse_diet_instructions(text: str) -> Optional[str]:
    return extract_section(text, DIET, [ACTIVITY, PATIENT_INSTRUCTIONS, RETURN_PRECAUTIONS])


def parse_activity_restrictions(text: str) -> Optional[str]:
    section = extract_section(text, ACTIVITY, [PATIENT_INSTRUCTIONS, RETURN_PRECAUTIONS, DIET])
    return section or filter_lines(parse_diet_instructions(text), ACTIVITY_KEYWORDS)


def parse_patient_instructions(text: str) -> Optional[str]:
    return extract_section(text, PATIENT_INSTRUCTIONS, [RETURN_PRECAUTIONS])


def parse_return_precautions(text: str) -> Optional[List[str]]:
    return parse_bullet_list(extract_section(text, RETURN_PRECAUTIONS, []))


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
