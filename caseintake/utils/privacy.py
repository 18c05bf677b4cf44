"""
Privacy utilities for patient identifiers and dates.

The same pattern set is used two ways:

* extraction pulls the NHI number and procedure date out of the original text
  so the case record can be pre-filled;
* redaction replaces every identifier and date with a placeholder, keeping a
  record of what was removed.

Extraction must always run on the original text, before any redaction.
Redaction is one-way; nothing here recovers a value from redacted text.
"""

import re
from collections import Counter
from datetime import date
from typing import List, Optional, Pattern, Sequence, Tuple

from caseintake.models.document import RedactedItem, RedactionResult

NHI_PLACEHOLDER = "[REDACTED_NHI]"
DATE_PLACEHOLDER = "[REDACTED_DATE]"

# Three letters followed by four digits
NHI_PATTERN: Pattern = re.compile(r"\b[A-Za-z]{3}\d{4}\b")

_MONTH = (
    r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|Jun(?:e)?|Jul(?:y)?"
    r"|Aug(?:ust)?|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)"
)
_ORDINAL = r"(?:st|nd|rd|th)?"

_NUMERIC_DMY = r"\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}"
_NUMERIC_YMD = r"\d{4}[/\-.]\d{1,2}[/\-.]\d{1,2}"
_MONTH_DAY_YEAR = rf"{_MONTH}\.?\s+\d{{1,2}}{_ORDINAL},?\s+\d{{4}}"
_DAY_MONTH_YEAR = rf"\d{{1,2}}{_ORDINAL}\s+{_MONTH}\.?,?\s+\d{{4}}"

DATE_PATTERNS: Tuple[Pattern, ...] = tuple(
    re.compile(rf"\b{source}\b", re.IGNORECASE)
    for source in (_NUMERIC_DMY, _NUMERIC_YMD, _MONTH_DAY_YEAR, _DAY_MONTH_YEAR)
)

_DATE_TOKEN = rf"(?:{_NUMERIC_YMD}|{_NUMERIC_DMY}|{_MONTH_DAY_YEAR}|{_DAY_MONTH_YEAR})"

# Labels tried in order before falling back to the first date in the text
PROCEDURE_DATE_LABELS: Tuple[str, ...] = (
    "date of surgery",
    "surgery date",
    "date of operation",
    "operation date",
    "date of procedure",
    "procedure date",
    "start case",
    "case start",
    "date of admission",
    "admission date",
    "admission",
    "admitted",
)

_MONTH_NUMBERS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

_YMD_FULL = re.compile(r"(\d{4})[/\-.](\d{1,2})[/\-.](\d{1,2})")
_DMY_FULL = re.compile(r"(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2}|\d{4})")
_DAY_MONTH_FULL = re.compile(
    rf"(\d{{1,2}}){_ORDINAL}\s+({_MONTH})\.?,?\s+(\d{{4}})", re.IGNORECASE
)
_MONTH_DAY_FULL = re.compile(
    rf"({_MONTH})\.?\s+(\d{{1,2}}){_ORDINAL},?\s+(\d{{4}})", re.IGNORECASE
)


def _expand_year(year: str) -> int:
    """Expand a two-digit year: below 50 is 20xx, otherwise 19xx."""
    value = int(year)
    if len(year) == 2:
        return 2000 + value if value < 50 else 1900 + value
    return value


def _to_iso(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def normalize_date(value: str) -> Optional[str]:
    """
    Normalise a matched date string to ``YYYY-MM-DD``.

    Recognises numeric day/month/year (day first), numeric year/month/day,
    "15 March 2026" and "March 15, 2026" forms. Returns None for anything it
    cannot turn into a real calendar date.
    """
    candidate = value.strip()

    match = _YMD_FULL.fullmatch(candidate)
    if match:
        return _to_iso(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    match = _DMY_FULL.fullmatch(candidate)
    if match:
        return _to_iso(_expand_year(match.group(3)), int(match.group(2)), int(match.group(1)))

    match = _DAY_MONTH_FULL.fullmatch(candidate)
    if match:
        month = _MONTH_NUMBERS[match.group(2)[:3].lower()]
        return _to_iso(int(match.group(3)), month, int(match.group(1)))

    match = _MONTH_DAY_FULL.fullmatch(candidate)
    if match:
        month = _MONTH_NUMBERS[match.group(1)[:3].lower()]
        return _to_iso(int(match.group(3)), month, int(match.group(2)))

    return None


def _label_pattern(label: str) -> Pattern:
    words = r"\s+".join(re.escape(word) for word in label.split())
    return re.compile(
        rf"\b{words}\b\s*(?:[:\-]\s*)?(?:on\s+)?({_DATE_TOKEN})\b", re.IGNORECASE
    )


def find_labelled_date(text: str, labels: Sequence[str]) -> Optional[str]:
    """
    Find the first date written after one of ``labels``.

    Labels are tried in order; the first one followed by a parseable date wins.

    Args:
        text: Original document text
        labels: Keywords such as "date of surgery" or "admission"

    Returns:
        The date as ``YYYY-MM-DD``, or None
    """
    for label in labels:
        for match in _label_pattern(label).finditer(text):
            normalized = normalize_date(match.group(1))
            if normalized:
                return normalized
    return None


def extract_dates(text: str) -> List[str]:
    """Return every date string in the text, in order of appearance."""
    found = []
    for pattern in DATE_PATTERNS:
        found.extend((match.start(), match.group(0)) for match in pattern.finditer(text))
    return [value for _, value in sorted(found)]


def extract_patient_identifier(text: str) -> Optional[str]:
    """
    Extract the first NHI-shaped identifier from the text.

    Args:
        text: Original, unredacted document text

    Returns:
        The identifier in upper case, or None
    """
    match = NHI_PATTERN.search(text)
    if match:
        return match.group(0).upper()
    return None


def extract_procedure_date(text: str) -> Optional[str]:
    """
    Extract the procedure date from the text.

    Labelled dates ("Date of surgery: ...", "Admission: ...") are preferred;
    otherwise the earliest date anywhere in the text is used.

    Args:
        text: Original, unredacted document text

    Returns:
        The date as ``YYYY-MM-DD``, or None
    """
    labelled = find_labelled_date(text, PROCEDURE_DATE_LABELS)
    if labelled:
        return labelled

    for candidate in extract_dates(text):
        normalized = normalize_date(candidate)
        if normalized:
            return normalized
    return None


def redact(text: str) -> RedactionResult:
    """
    Replace identifiers and dates with placeholders.

    Each removed value is recorded with its type and the offset of its first
    occurrence in the original text.

    Args:
        text: Original document text

    Returns:
        Redacted text and the list of redacted items
    """
    items: List[RedactedItem] = []

    def _replace_with(kind: str, placeholder: str):
        def _replace(match: re.Match) -> str:
            original = match.group(0)
            items.append(RedactedItem(type=kind, original=original, position=text.find(original)))
            return placeholder
        return _replace

    redacted_text = NHI_PATTERN.sub(_replace_with("NHI", NHI_PLACEHOLDER), text)
    for pattern in DATE_PATTERNS:
        redacted_text = pattern.sub(_replace_with("DATE", DATE_PLACEHOLDER), redacted_text)

    return RedactionResult(redacted_text=redacted_text, redacted_items=items)


def has_redactable_content(text: str) -> bool:
    """Whether the text contains any identifier or date."""
    if NHI_PATTERN.search(text):
        return True
    return any(pattern.search(text) for pattern in DATE_PATTERNS)


def redaction_summary(result: RedactionResult) -> str:
    """
    Summarise a redaction for audit logs, e.g. "Redacted: 1 nhi, 2 dates".

    Only counts are reported; redacted values are never included.
    """
    counts = Counter(item.type for item in result.redacted_items)
    if not counts:
        return "No sensitive data found"

    parts = [
        f"{count} {kind.lower()}{'s' if count > 1 else ''}"
        for kind, count in counts.items()
    ]
    return f"Redacted: {', '.join(parts)}"
