import re
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Pattern, Sequence, Union

from .models import FollowUpAppointment, Medication, Physician, VitalSigns

PatternLike = Union[str, Pattern]

_FLAGS = re.IGNORECASE | re.MULTILINE


class ParserKind(str, Enum):
    """Closed set of raw-document dialects the registry can dispatch to."""

    DEFAULT = "default"
    STEMI = "stemi"


# --------- Text cleanup ----------

# Browser "print to PDF" footer, e.g. "10/5/25, 3:04 PM summary.md file:///C:/x/summary.md 1/3"
_PRINT_ANNOTATION_RE = re.compile(
    r"\d{1,2}/\d{1,2}/\d{2,4},\s+\d{1,2}:\d{2}\s+[AP]M\s+[^\n]*?\.md\s+fi\s*le:///[^\n]*?\.md\s+\d+/\d+"
)
_MD_ESCAPE_RE = re.compile(r"\\([\[\](){}*_+\->])")


def clean_text(text: str) -> str:
    text = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    text = _PRINT_ANNOTATION_RE.sub("", text)
    text = _MD_ESCAPE_RE.sub(r"\1", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


# --------- Section extractor ----------


def _compile(pattern: PatternLike) -> Pattern:
    if isinstance(pattern, str):
        return re.compile(pattern, _FLAGS)
    return pattern


def header_pattern(body: str, colon: bool = False) -> Pattern:
    """Line-anchored header regex for ``body``.

    Tolerates markdown decoration (``### **Header:**``) and an optional colon;
    without a colon the header must end the line. ``colon=True`` makes the
    colon mandatory.
    """
    tail = r":[ \t]*(?:\*\*)?" if colon else r"(?::[ \t]*(?:\*\*)?|$)"
    return re.compile(
        r"^[ \t]*(?:#{1,6}[ \t]*)?(?:\*\*)?[ \t]*(?:" + body + r")[ \t]*(?:\*\*)?[ \t]*" + tail,
        _FLAGS,
    )


def extract_section(
    text: str, start_pattern: PatternLike, end_patterns: Sequence[PatternLike] = ()
) -> Optional[str]:
    """Text between the first ``start_pattern`` match and the nearest end match.

    The nearest end match wins whatever its position in ``end_patterns``;
    with no end match the section runs to the end of ``text``.
    """
    if not text:
        return None
    start = _compile(start_pattern).search(text)
    if not start:
        return None

    begin = start.end()
    end = len(text)
    for pattern in end_patterns:
        m = _compile(pattern).search(text, begin)
        if m and m.start() < end:
            end = m.start()

    section = text[begin:end].strip()
    if not section or section.lower() == start.group(0).strip().lower():
        return None
    return section


# --------- Lists and tables ----------

_BULLET_RE = re.compile(r"^(?:[-•●◦▪‣]|\*(?!\*)|\d{1,3}[.)](?=\s))\s*")
_BOLD_HEADER_RE = re.compile(r"^\*\*[^*\n]+\*\*\s*:?\s*$")
_RULE_RE = re.compile(r"^(?:[-*_]\s*){3,}$")
_SEPARATOR_ROW_RE = re.compile(r"^[\s|:]*-[\s|:\-]*$")
_PLACEHOLDER_CELLS = {"-", "–", "—", "n/a", "na"}


def is_markup_header(line: str) -> bool:
    line = line.strip()
    return line.startswith("#") or bool(_BOLD_HEADER_RE.match(line)) or bool(_RULE_RE.match(line))


def strip_bullet(line: str) -> str:
    return _BULLET_RE.sub("", line.strip(), count=1).strip()


def parse_bullet_list(block: Optional[str]) -> List[str]:
    """Ordered items of a block; prose lines without a glyph are kept verbatim."""
    items: List[str] = []
    for line in (block or "").splitlines():
        line = line.strip()
        if not line or is_markup_header(line) or line.startswith("|"):
            continue
        item = re.sub(r"\s+", " ", strip_bullet(line))
        if item:
            items.append(item)
    return items


def _fit_row(cells: List[str], columns: int) -> List[str]:
    if columns <= 1:
        return [" ".join(c for c in cells if c)]
    if len(cells) > columns:
        overflow = " ".join(c for c in cells[columns - 1 :] if c)
        return cells[: columns - 1] + [overflow]
    if len(cells) < columns:
        rest = " ".join(c for c in cells[1:] if c)
        return [cells[0]] + [""] * (columns - 2) + [rest]
    return cells


_LIST_SPLIT_RE = re.compile(r"^(?P<name>.+?)(?:\s+[-–—]\s+|\s*:\s*|\s*(?=\())")


def _rows_from_list(lines: Iterable[str], columns: int) -> List[List[str]]:
    rows = []
    for line in lines:
        if line.startswith("|") or is_markup_header(line):
            continue
        text = strip_bullet(line)
        if not text:
            continue
        m = _LIST_SPLIT_RE.match(text)
        name = m.group("name").strip() if m else text
        description = text[m.end() :].strip() if m else ""
        rows.append(_fit_row([name, description] if description else [name], columns))
    return rows


def _is_keyword_header(line: str, keywords: Sequence[str]) -> bool:
    if strip_bullet(line) != line:
        return False
    lowered = line.lower()
    return sum(1 for k in keywords if k in lowered) >= 2


def parse_table(
    block: Optional[str], columns: int = 4, header_keywords: Sequence[str] = ()
) -> List[List[str]]:
    """Rows of a pipe table as exactly ``columns`` cells each.

    Without any pipe structure the block is read as a list and each line is
    split into name/description at the first colon, dash or parenthesis.
    """
    lines = [line.strip() for line in (block or "").splitlines() if line.strip()]
    keywords = [k.lower() for k in header_keywords]

    if not any("|" in line for line in lines):
        # a bare column-title line may head a plain list; list items never do
        header_index = next(
            (i for i, line in enumerate(lines) if _is_keyword_header(line, keywords)), None
        )
        if header_index is not None:
            lines = lines[:header_index] + lines[header_index + 1 :]
        return _rows_from_list(lines, columns)

    header_index = next(
        i for i, line in enumerate(lines) if "|" in line or any(k in line.lower() for k in keywords)
    )
    rows: List[List[str]] = []
    for line in lines[header_index + 1 :]:
        if "|" not in line or _SEPARATOR_ROW_RE.match(line):
            continue
        cells = [c.strip() for c in line.split("|")]
        cells = [c for c in cells if c]
        if not cells:
            continue
        cells = ["" if c.lower() in _PLACEHOLDER_CELLS else c for c in cells]
        rows.append(_fit_row(cells, columns))
    return rows


# --------- Field captures ----------

REDACTION_SENTINELS = ("[redacted]", "[redacted], md")


def redaction_filter(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value or value.lower() in REDACTION_SENTINELS:
        return None
    return value


def label_pattern(body: str, value: str = r"([^\n]+)") -> Pattern:
    """``Label: value`` capture, tolerant of ``**Label:**`` decoration."""
    return re.compile(
        r"(?:^|\b)(?:" + body + r")[ \t]*(?:\*\*)?[ \t]*:[ \t]*(?:\*\*)?[ \t]*" + value, _FLAGS
    )


def first_capture(text: str, patterns: Sequence[PatternLike]) -> Optional[str]:
    """Group 1 of the first pattern that matches, redaction sentinels dropped."""
    for pattern in patterns:
        m = _compile(pattern).search(text)
        if m and m.group(1):
            return redaction_filter(m.group(1).strip().strip("*"))
    return None


DATE_FORMATS = ("%m/%d/%Y", "%m/%d/%y", "%Y-%m-%d")
DATE_RE = r"(\d{1,2}/\d{1,2}/\d{2,4}|\d{4}-\d{2}-\d{2})"


def date_pattern(body: str) -> Pattern:
    return label_pattern(body, DATE_RE)


def validate_date(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    for fmt in DATE_FORMATS:
        try:
            datetime.strptime(value, fmt)
            return value
        except ValueError:
            continue
    raise ValueError(f"unrecognized date {value!r}")


_ICD_RE = re.compile(r"\s*\((?:ICD-?10:?\s*)?[A-TV-Z]\d{2}(?:\.[0-9A-Z]{1,4})?\)", re.IGNORECASE)


def strip_icd_codes(line: str) -> str:
    return _ICD_RE.sub("", line).strip()


def split_diagnoses(items: Iterable[str]) -> List[str]:
    """Drop ICD-10 codes; a line carrying several coded diagnoses is split at each code."""
    out = []
    for item in items:
        for part in _ICD_RE.split(item):
            part = part.strip(" \t,;")
            if part:
                out.append(part)
    return out


def physician_from(value: Optional[str]) -> Optional[Physician]:
    """``Dr. Jane Roe, MD (ID: 4411)`` -> Physician(name, id)."""
    value = redaction_filter(value)
    if not value:
        return None
    m = re.search(r"\(\s*(?:ID|NPI)\s*[:#]?\s*([\w-]+)\s*\)", value, re.IGNORECASE)
    physician_id = m.group(1) if m else None
    name = (value[: m.start()] + value[m.end() :]).strip() if m else value
    name = redaction_filter(name)
    if not name:
        return None
    return Physician(name=name, id=physician_id)


_VITAL_PATTERNS = {
    "temperature": re.compile(
        r"\bT(?:emp(?:erature)?)?\s*:?\s*(\d{2,3}(?:\.\d+)?)\s*°?\s*F\b", re.IGNORECASE
    ),
    "heart_rate": re.compile(r"\b(?:HR|Heart\s+Rate|Pulse)\s*:?\s*(\d{2,3})\b", re.IGNORECASE),
    "respiratory_rate": re.compile(
        r"\b(?:RR|Resp(?:iratory)?\s+Rate)\s*:?\s*(\d{1,2})\b", re.IGNORECASE
    ),
    "blood_pressure": re.compile(
        r"\b(?:BP|Blood\s+Pressure)\s*:?\s*(\d{2,3}\s*/\s*\d{2,3})", re.IGNORECASE
    ),
    "oxygen_saturation": re.compile(
        r"(?:\bSpO[₂2]|\bO[₂2]\s*Sat(?:uration)?)\s*:?\s*(\d{2,3})\s*%?", re.IGNORECASE
    ),
}


def capture_vitals(section: Optional[str]) -> Optional[VitalSigns]:
    if not section:
        return None
    found = {}
    for name, pattern in _VITAL_PATTERNS.items():
        m = pattern.search(section)
        if m:
            found[name] = re.sub(r"\s+", "", m.group(1))
    if "temperature" in found:
        found["temperature"] += "°F"
    if "oxygen_saturation" in found:
        found["oxygen_saturation"] += "%"
    return VitalSigns(**found) if found else None


# --------- Line parsers ----------

_MED_LINE_RE = re.compile(
    r"^(?P<name>[A-Za-z][A-Za-z\-' ]*?)\s+"
    r"(?P<dose>\d+(?:\.\d+)?\s*(?:mg|mcg|g|mL|units?|IU|mEq|%)(?![A-Za-z]))\s*"
    r"(?:(?P<route>PO|IV|SQ|SC|SubQ|IM|SL|PR|INH|NG|topical)\b\s*)?"
    r"(?P<frequency>[^()]*?)\s*"
    r"(?:\((?P<note>[^)]*)\))?\s*$",
    re.IGNORECASE,
)


def parse_medication_line(line: str) -> Optional[Medication]:
    """``Aspirin 81 mg PO daily (indefinitely)`` -> Medication.

    Lines that do not match fall back to ``name dose frequency...`` by
    whitespace; single words are not medications.
    """
    line = strip_bullet(line)
    m = _MED_LINE_RE.match(line)
    if m:
        return Medication(
            name=m.group("name").strip(),
            dose=m.group("dose").strip(),
            frequency=(m.group("frequency") or "").strip() or "as directed",
            instructions=line,
            route=m.group("route").upper() if m.group("route") else None,
        )

    parts = line.split()
    if len(parts) >= 2:
        return Medication(
            name=parts[0],
            dose=parts[1],
            frequency=" ".join(parts[2:]) or "as directed",
            instructions=line,
        )
    return None


_FOLLOW_UP_RE = re.compile(
    r"^(?P<provider>[A-Za-z][A-Za-z .,'&/()\-]*?)\s+(?:in|within)\s+"
    r"(?P<timeframe>(?:\d+(?:\s*(?:-|–|to)\s*\d+)?|an?|one|two|three|four|six)\s+[A-Za-z]+)"
    r"(?:\s+(?:for\s+)?(?P<notes>.+))?$",
    re.IGNORECASE,
)


def parse_follow_up_line(line: str) -> FollowUpAppointment:
    line = strip_bullet(line)
    m = _FOLLOW_UP_RE.match(line)
    if m:
        notes = (m.group("notes") or "").strip()
        return FollowUpAppointment(
            provider=m.group("provider").strip(),
            timeframe=m.group("timeframe").strip(),
            notes=notes or None,
        )
    return FollowUpAppointment(provider="Unknown", timeframe=line)


def filter_lines(block: Optional[str], keywords: Sequence[str]) -> Optional[str]:
    """Lines of ``block`` mentioning any keyword, joined back with newlines."""
    if not block:
        return None
    lines = [
        line.strip()
        for line in block.splitlines()
        if any(k in line.lower() for k in keywords)
    ]
    return "\n".join(lines) if lines else None
