"""
Pattern-rule cascades shared by the type-specific extractors.

A field is extracted by trying an ordered list of ``PatternRule`` objects; the
first rule whose pattern matches and whose value passes its acceptance check
wins. A non-match or a rejected value leaves the field absent.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Pattern, Sequence, Tuple

# Plausibility bounds, inclusive
ASA_RANGE = (1, 6)
WEIGHT_KG_RANGE = (20, 300)
HEIGHT_CM_RANGE = (100, 250)
BLOOD_LOSS_ML_RANGE = (0, 10000)
TOURNIQUET_MINUTES_RANGE = (0, 300)
DURATION_MINUTES_RANGE = (1, 1440)

# Two or more capitalised words on one line, e.g. "Jane Smith"
PERSON_NAME = r"([A-Z][a-z'\-]+(?:[ \t]+[A-Z][a-z'\-]+)+)"
_TITLE = r"(?:(?i:dr|mr|mrs|ms|miss|prof)\.?[ \t]*)?"

# End of a free-text block: blank line, the next "Label:" line, or end of text
SECTION_END = r"(?=\n[ \t]*\n|\n[ \t]*[A-Za-z][A-Za-z /()\-]{0,40}:|\Z)"


def _first_group(match: re.Match) -> Optional[str]:
    value = match.group(1)
    return value.strip() if value else None


def _always(value: Any) -> bool:
    return True


@dataclass(frozen=True)
class PatternRule:
    """One step of a field cascade."""

    pattern: Pattern
    convert: Callable[[re.Match], Any] = _first_group
    accept: Callable[[Any], bool] = _always


def first_accepted(text: str, rules: Sequence[PatternRule]) -> Optional[Any]:
    """
    Run a cascade and return the first accepted value.

    Only the first match of each rule is considered.

    Args:
        text: Document text
        rules: Ordered rules

    Returns:
        The converted value, or None if no rule produced an acceptable one
    """
    for rule in rules:
        match = rule.pattern.search(text)
        if match is None:
            continue
        value = rule.convert(match)
        if value is not None and rule.accept(value):
            return value
    return None


def in_range(bounds: Tuple[float, float]) -> Callable[[Any], bool]:
    low, high = bounds
    return lambda value: low <= value <= high


def length_between(shortest: int, longest: int) -> Callable[[str], bool]:
    """Accept strings strictly longer than ``shortest`` and shorter than ``longest``."""
    return lambda value: shortest < len(value) < longest


def has_letters(value: str) -> bool:
    return re.search(r"[A-Za-z]", value) is not None


def as_int(match: re.Match) -> int:
    return int(match.group(1))


def as_grouped_int(match: re.Match) -> int:
    """Integer from a capture that may use commas as thousands separators."""
    return int(match.group(1).replace(",", ""))


def as_float(match: re.Match) -> float:
    return float(match.group(1))


def truncated(limit: int) -> Callable[[re.Match], Optional[str]]:
    def _convert(match: re.Match) -> Optional[str]:
        value = _first_group(match)
        return value[:limit] if value else None
    return _convert


def labelled_line(labels: str, accept: Callable[[str], bool] = has_letters) -> PatternRule:
    """
    Rule for a single-line value written as ``Label: value``.

    Args:
        labels: Regex alternation of label spellings
        accept: Acceptance check for the captured text
    """
    pattern = re.compile(rf"\b(?:{labels})[ \t]*[:\-]\s*([^\n]+)", re.IGNORECASE)
    return PatternRule(pattern=pattern, accept=accept)


def labelled_block(
        labels: str, accept: Callable[[str], bool] = has_letters, limit: Optional[int] = None
) -> PatternRule:
    """
    Rule for a multi-line value that runs until the end of its section.

    Args:
        labels: Regex alternation of label spellings
        accept: Acceptance check for the captured text
        limit: Maximum number of characters kept
    """
    pattern = re.compile(rf"\b(?:{labels})[ \t]*[:\-]\s*([\s\S]*?){SECTION_END}", re.IGNORECASE)
    convert = truncated(limit) if limit else _first_group
    return PatternRule(pattern=pattern, convert=convert, accept=accept)


def labelled_name(labels: str) -> PatternRule:
    """
    Rule for a person named after a label, e.g. ``Surgeon: Dr Jane Smith``.

    Labels match case-insensitively; the name itself must be capitalised.
    """
    pattern = re.compile(rf"\b(?i:{labels})\b[ \t]*[:\-]?[ \t]*{_TITLE}{PERSON_NAME}")
    return PatternRule(pattern=pattern)


_ROMAN_NUMERALS = {"I": 1, "II": 2, "III": 3, "IV": 4, "V": 5, "VI": 6}

ASA_RULES: Tuple[PatternRule, ...] = (
    PatternRule(
        re.compile(r"\bASA\b[\s:\-]*(?:grade|class)?\s*(?:ASA\s*)?(\d)(?!\d)", re.IGNORECASE),
        as_int,
        in_range(ASA_RANGE),
    ),
    PatternRule(
        re.compile(r"\bphysical\s*status\b[\s:\-]*(?:ASA\s*)?(\d)(?!\d)", re.IGNORECASE),
        as_int,
        in_range(ASA_RANGE),
    ),
    PatternRule(
        re.compile(r"\b(?i:ASA)\b[\s:\-]*(?:(?i:grade|class)\s*)?(VI|IV|V|I{1,3})(?![A-Za-z])"),
        lambda match: _ROMAN_NUMERALS.get(match.group(1)),
        in_range(ASA_RANGE),
    ),
)

WEIGHT_RULES: Tuple[PatternRule, ...] = (
    PatternRule(
        re.compile(r"\b(?:weight|wt)\b[ \t]*[:\-]?[ \t]*(\d+(?:\.\d+)?)\s*kgs?\b", re.IGNORECASE),
        as_float,
        in_range(WEIGHT_KG_RANGE),
    ),
    PatternRule(
        re.compile(r"\b(\d+(?:\.\d+)?)\s*kgs?\b", re.IGNORECASE),
        as_float,
        in_range(WEIGHT_KG_RANGE),
    ),
)

HEIGHT_RULES: Tuple[PatternRule, ...] = (
    PatternRule(
        re.compile(r"\b(?:height|ht)\b[ \t]*[:\-]?[ \t]*(\d+(?:\.\d+)?)\s*cm\b", re.IGNORECASE),
        as_float,
        in_range(HEIGHT_CM_RANGE),
    ),
    PatternRule(
        re.compile(r"\b(\d{2,3})\s*cm\b", re.IGNORECASE),
        as_float,
        in_range(HEIGHT_CM_RANGE),
    ),
)

BLOOD_LOSS_RULES: Tuple[PatternRule, ...] = (
    PatternRule(
        re.compile(
            r"\b(?:estimated\s+blood\s+loss|EBL|blood\s+loss)\b[ \t]*[:\-]?[ \t]*"
            r"(?:approx(?:imately|\.)?[ \t]*|~[ \t]*)?(\d{1,3}(?:,\d{3})+|\d+)(?!\d|[,.]\d)[ \t]*(?:ml|cc)?",
            re.IGNORECASE,
        ),
        as_grouped_int,
        in_range(BLOOD_LOSS_ML_RANGE),
    ),
)

TOURNIQUET_RULES: Tuple[PatternRule, ...] = (
    PatternRule(
        re.compile(r"\btourniquet(?:\s+time)?\b[ \t]*[:\-]?[ \t]*\(?[ \t]*(\d+)\s*min", re.IGNORECASE),
        as_int,
        in_range(TOURNIQUET_MINUTES_RANGE),
    ),
    PatternRule(
        re.compile(r"\bT/?Q\b[ \t]*[:\-]?[ \t]*(\d+)\s*min", re.IGNORECASE),
        as_int,
        in_range(TOURNIQUET_MINUTES_RANGE),
    ),
)

_NIL_COMPLICATIONS = re.compile(r"\b(?:nil|none|no\s+complications?)\b", re.IGNORECASE)
_COMPLICATIONS_SECTION = re.compile(
    rf"\bcomplications?\b[ \t]*[:\-]?\s*([\s\S]*?)(?:{SECTION_END}|\b(?:discharge|medications|plan)\b)",
    re.IGNORECASE,
)

# Longer phrases first so "wound infection" wins over "infection"
KNOWN_COMPLICATIONS: Tuple[str, ...] = (
    "surgical site infection",
    "wound infection",
    "infection",
    "bleeding",
    "haematoma",
    "hematoma",
    "seroma",
    "wound breakdown",
    "dehiscence",
    "partial flap loss",
    "total flap loss",
    "flap failure",
    "nerve injury",
    "neuropraxia",
    "deep vein thrombosis",
    "dvt",
    "pulmonary embolism",
    "pe",
    "return to theatre",
    "reoperation",
)


def extract_complications(text: str) -> Optional[List[str]]:
    """
    Extract known complications from the "Complications" section.

    Returns:
        An empty list when the section says nil/none, the complications found,
        or None when there is no section or nothing recognisable in it
    """
    match = _COMPLICATIONS_SECTION.search(text)
    if match is None:
        return None

    section = match.group(1).strip()
    if _NIL_COMPLICATIONS.search(section):
        return []

    found: List[str] = []
    for complication in KNOWN_COMPLICATIONS:
        if any(complication in existing for existing in found):
            continue
        if re.search(rf"\b{re.escape(complication)}\b", section, re.IGNORECASE):
            found.append(complication)
    return found or None


SURGEON_RULES: Tuple[PatternRule, ...] = (
    labelled_name(r"primary\s+surgeon|operating\s+surgeon|surgeon"),
    labelled_name(r"consultant"),
    labelled_name(r"operated\s+by"),
)
