"""
Extractor for Waikato DHB discharge summaries.
"""

import re
from typing import Optional

from caseintake.extractors.base import DocumentExtractor
from caseintake.extractors.fields import (
    PatternRule,
    SURGEON_RULES,
    extract_complications,
    first_accepted,
    labelled_block,
    length_between,
)
from caseintake.models.document import (
    AdmissionUrgency,
    DocumentType,
    FundingStatus,
    StayType,
)
from caseintake.models.partials import DischargeSummaryData
from caseintake.utils.privacy import find_labelled_date

ADMISSION_LABELS = ("date of admission", "admission date", "admitted", "admission")
DISCHARGE_LABELS = ("date of discharge", "discharge date", "discharged", "discharge")

NHI_RULES = (
    PatternRule(
        re.compile(
            r"\b(?:patient\s*id|nhi(?:\s*number)?|patient\s*number)\b[ \t]*[:\-]?[ \t]*([A-Z]{3}\d{4})\b",
            re.IGNORECASE,
        ),
        lambda match: match.group(1).upper(),
    ),
    PatternRule(re.compile(r"\b([A-Z]{3}\d{4})\b")),
)

_ACC_MARKERS = re.compile(
    r"\bACC\s+claim\s*:\s*yes\b|\bACC\s+number\b|\bACC\s+claimant\b|\bACC\s*[#:]?\s*\d+",
    re.IGNORECASE,
)
_PRIVATE_MARKERS = re.compile(
    r"\bprivate\s+patient\b|\bfunding\s*:\s*private\b|\bprivate\s+admission\b",
    re.IGNORECASE,
)

_URGENCY_TERMS = {
    "elective": AdmissionUrgency.ELECTIVE,
    "arranged": AdmissionUrgency.ELECTIVE,
    "urgent": AdmissionUrgency.URGENT,
    "acute": AdmissionUrgency.EMERGENCY,
    "emergency": AdmissionUrgency.EMERGENCY,
}
_URGENCY_WORDS = "|".join(_URGENCY_TERMS)

URGENCY_RULES = (
    PatternRule(
        re.compile(
            rf"\b(?:admission\s+(?:type|category|status)|urgency)\b[ \t]*[:\-][ \t]*({_URGENCY_WORDS})\b",
            re.IGNORECASE,
        ),
        lambda match: _URGENCY_TERMS[match.group(1).lower()],
    ),
    PatternRule(
        re.compile(rf"\b({_URGENCY_WORDS})\s+admission\b", re.IGNORECASE),
        lambda match: _URGENCY_TERMS[match.group(1).lower()],
    ),
)

STAY_TYPE_RULES = (
    PatternRule(re.compile(r"\bday[\s\-]+(?:case|surgery|stay)\b", re.IGNORECASE), lambda _: StayType.DAY_CASE),
    PatternRule(re.compile(r"\boutpatient\b", re.IGNORECASE), lambda _: StayType.OUTPATIENT),
    PatternRule(re.compile(r"\binpatient\b", re.IGNORECASE), lambda _: StayType.INPATIENT),
)

PROCEDURE_NOTES_RULES = (
    labelled_block(
        r"procedures?\s+performed|operations?\s+performed|procedures?|operations?|surgery",
        accept=lambda notes: len(notes) > 10,
        limit=2000,
    ),
)

DIAGNOSIS_RULES = (
    labelled_block(
        r"principal\s+diagnosis|admission\s+diagnosis|discharge\s+diagnosis|diagnosis",
        accept=length_between(3, 500),
    ),
    labelled_block(r"dx", accept=length_between(3, 500)),
)


def extract_funding_status(text: str) -> Optional[FundingStatus]:
    """
    Detect ACC or private funding written in the document.

    Public funding is implied by the document type itself and is not
    pattern-matched here.
    """
    if _ACC_MARKERS.search(text):
        return FundingStatus.ACC
    if _PRIVATE_MARKERS.search(text):
        return FundingStatus.PRIVATE
    return None


def derive_stay_type(
        text: str, admission_date: Optional[str], discharge_date: Optional[str]
) -> Optional[StayType]:
    """Stay type from explicit wording, else from the length of stay."""
    stated = first_accepted(text, STAY_TYPE_RULES)
    if stated:
        return stated
    if admission_date and discharge_date:
        # ISO dates compare correctly as strings
        if discharge_date == admission_date:
            return StayType.DAY_CASE
        if discharge_date > admission_date:
            return StayType.INPATIENT
    return None


class DischargeSummaryExtractor(DocumentExtractor):
    """Extracts admission, funding and outcome details from a discharge summary."""

    document_type = DocumentType.DISCHARGE_SUMMARY

    def extract(self, text: str) -> DischargeSummaryData:
        admission_date = find_labelled_date(text, ADMISSION_LABELS)
        discharge_date = find_labelled_date(text, DISCHARGE_LABELS)

        return DischargeSummaryData(
            nhi=first_accepted(text, NHI_RULES),
            funding_status=extract_funding_status(text),
            admission_date=admission_date,
            discharge_date=discharge_date,
            admission_urgency=first_accepted(text, URGENCY_RULES),
            stay_type=derive_stay_type(text, admission_date, discharge_date),
            procedure_notes=first_accepted(text, PROCEDURE_NOTES_RULES),
            surgeon=first_accepted(text, SURGEON_RULES),
            diagnosis=first_accepted(text, DIAGNOSIS_RULES),
            complications=extract_complications(text),
        )
