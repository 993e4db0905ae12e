"""Decoder for the simplified discharge markup produced by the AI step.

Expected shape (any supported language, any mix of languages)::

    ## Overview
    **Reasons for Hospital Stay**
    ...
    **What Happened During Your Stay**
    ...

    ## Your Medications
    | Medicine Name | Frequency | When to Take | Special Instructions |
    |---|---|---|---|
    | Aspirin | Once daily | Morning | With food |

    ## Upcoming Appointments
    - Cardiology in 1 week

    ## Diet & Activity
    **Foods to Include**
    - ...

    ## Warning Signs
    **When to Seek Help - Call 911**
    - ...

Nothing recognized means the whole content comes back as ``raw``.
"""
import re
from typing import Dict, List, Optional, Tuple

from discharge_engine.commons.logger import logger

from .base import extract_section, parse_bullet_list, parse_table
from .headers import (
    ANY_SECTION,
    ANY_SUBSECTION,
    SECTION_HEADERS,
    SECTION_KEYS,
    TABLE_KEYWORDS,
    subsection_header,
)
from .models import (
    DietActivity,
    DischargeSections,
    MedicationRow,
    SimplifiedInstructions,
    SimplifiedSummary,
    WarningSigns,
)

_REASONS = subsection_header("reasons_for_stay")
_WHAT_HAPPENED = subsection_header("what_happened")

_DIET_SUBSECTIONS = {
    "foods_to_include": subsection_header("foods_to_include"),
    "foods_to_limit": subsection_header("foods_to_limit"),
    "recommended_activities": subsection_header("recommended_activities"),
    "activities_to_avoid": subsection_header("activities_to_avoid"),
}
_WARNING_SUBSECTIONS = {
    "call_911": subsection_header("call_911"),
    "call_doctor": subsection_header("call_doctor"),
    "emergency_contacts": subsection_header("emergency_contacts"),
}

_H2_LINE_RE = re.compile(r"^[ \t]*#{1,2}(?!#)[ \t]+(.+?)[ \t]*$", re.MULTILINE)


def _normalize(content: str) -> str:
    return content.replace("\r\n", "\n").replace("\r", "\n")


def _section(text: str, key: str) -> Optional[str]:
    return extract_section(text, SECTION_HEADERS[key], [ANY_SECTION])


def _subsection(block: Optional[str], pattern) -> Optional[Tuple[str, ...]]:
    if not block:
        return None
    items = parse_bullet_list(extract_section(block, pattern, [ANY_SUBSECTION]))
    return tuple(items) or None


# ---------------- summary ----------------


def parse_discharge_summary(content: str) -> SimplifiedSummary:
    if not content or not content.strip():
        return SimplifiedSummary(raw="")

    overview = _section(_normalize(content), "overview")
    if not overview:
        return SimplifiedSummary(raw=content)

    reasons = extract_section(overview, _REASONS, [ANY_SUBSECTION])
    what_happened = extract_section(overview, _WHAT_HAPPENED, [ANY_SUBSECTION])
    if not reasons and not what_happened:
        return SimplifiedSummary(raw=content)
    return SimplifiedSummary(reasons_for_stay=reasons, what_happened=what_happened)


# ---------------- instructions ----------------


def parse_medications_table(block: Optional[str]) -> Optional[Tuple[MedicationRow, ...]]:
    rows = [
        MedicationRow(*row)
        for row in parse_table(block, columns=4, header_keywords=TABLE_KEYWORDS)
        if row[0] or any(row[1:])
    ]
    return tuple(rows) or None


def parse_diet_activity(block: Optional[str]) -> Optional[DietActivity]:
    values = {name: _subsection(block, p) for name, p in _DIET_SUBSECTIONS.items()}
    if not any(values.values()):
        return None
    return DietActivity(**values)


def parse_warning_signs(block: Optional[str]) -> Optional[WarningSigns]:
    values = {name: _subsection(block, p) for name, p in _WARNING_SUBSECTIONS.items()}
    if not any(values.values()):
        return None
    return WarningSigns(**values)


def parse_discharge_instructions(content: str) -> SimplifiedInstructions:
    if not content or not content.strip():
        return SimplifiedInstructions(raw="")

    text = _normalize(content)
    medications = parse_medications_table(_section(text, "medications"))
    appointments = tuple(parse_bullet_list(_section(text, "appointments"))) or None
    diet_activity = parse_diet_activity(_section(text, "diet_activity"))
    warning_signs = parse_warning_signs(_section(text, "warning_signs"))

    if not (medications or appointments or diet_activity or warning_signs):
        logger.debug("No structured section recognized; returning raw instructions")
        return SimplifiedInstructions(raw=content)
    return SimplifiedInstructions(
        medications=medications,
        appointments=appointments,
        diet_activity=diet_activity,
        warning_signs=warning_signs,
    )


# ---------------- raw section split ----------------


def _classify(header_line: str) -> Optional[str]:
    for key in SECTION_KEYS:
        if SECTION_HEADERS[key].match(header_line):
            return key
    return None


def parse_discharge_sections(content: str) -> DischargeSections:
    """Split simplified content into its ``##`` blocks without decoding them.

    Unrecognized headers are reported and their body dropped; the first
    block of a repeated section wins.
    """
    if not content or not content.strip():
        return DischargeSections(raw="")

    text = _normalize(content)
    headers = list(_H2_LINE_RE.finditer(text))
    blocks: Dict[str, str] = {}
    unknown: List[str] = []

    for i, m in enumerate(headers):
        end = headers[i + 1].start() if i + 1 < len(headers) else len(text)
        key = _classify(m.group(0))
        if key is None:
            unknown.append(m.group(1).strip("*: \t"))
            logger.warning(f"Unknown section header: {m.group(1)!r}")
            continue
        body = text[m.end() : end].strip()
        if body and key not in blocks:
            blocks[key] = body

    if not blocks:
        return DischargeSections(raw=content, unknown_headers=tuple(unknown))
    return DischargeSections(unknown_headers=tuple(unknown), **blocks)


def clean_markdown(text: Optional[str]) -> str:
    """Drop bold/italic markers and leading bullet glyphs."""
    if not text:
        return ""
    text = re.sub(r"\*\*(.+?)\*\*", r"\1", text)
    text = re.sub(r"(?<!\*)\*(?!\s)(.+?)(?<!\s)\*(?!\*)", r"\1", text)
    text = re.sub(r"^[ \t]*[-•*][ \t]*", "", text, flags=re.MULTILINE)
    return text.strip()
