"""
Fallback extractor for documents the classifier does not recognise.
"""

import re
from typing import Optional

from caseintake.extractors.base import DocumentExtractor
from caseintake.extractors.fields import (
    ASA_RULES,
    HEIGHT_RULES,
    PatternRule,
    SURGEON_RULES,
    WEIGHT_RULES,
    extract_complications,
    first_accepted,
    labelled_line,
    length_between,
)
from caseintake.models.document import DocumentType, Gender
from caseintake.models.partials import GenericDocumentData
from caseintake.utils.privacy import extract_patient_identifier

_GENDER_WORDS = {
    "m": Gender.MALE,
    "male": Gender.MALE,
    "f": Gender.FEMALE,
    "female": Gender.FEMALE,
}

GENDER_RULES = (
    PatternRule(
        re.compile(r"\b(?:sex|gender)\b[ \t]*[:\-][ \t]*(male|female|m|f)\b", re.IGNORECASE),
        lambda match: _GENDER_WORDS[match.group(1).lower()],
    ),
    # e.g. "(67yo, M)"
    PatternRule(
        re.compile(r"\d{1,3}[ \t]*(?:yo|y/o|years?\s+old)[ \t]*,?[ \t]*([MF])\b"),
        lambda match: _GENDER_WORDS[match.group(1).lower()],
    ),
    PatternRule(re.compile(r"\bfemale\b", re.IGNORECASE), lambda _: Gender.FEMALE),
    PatternRule(re.compile(r"\bmale\b", re.IGNORECASE), lambda _: Gender.MALE),
)

DIAGNOSIS_RULES = (
    labelled_line(r"diagnosis|dx|impression", accept=length_between(5, 150)),
)

PROCEDURE_RULES = (
    labelled_line(r"procedure|operation|surgery", accept=length_between(5, 150)),
)

KNOWN_FACILITIES = (
    "Waikato Hospital",
    "Te Whatu Ora",
    "Middlemore Hospital",
    "Auckland City Hospital",
    "Starship Hospital",
    "Wellington Hospital",
    "Christchurch Hospital",
    "Dunedin Hospital",
    "North Shore Hospital",
    "Waitakere Hospital",
)


def extract_facility(text: str) -> Optional[str]:
    lowered = text.lower()
    for facility in KNOWN_FACILITIES:
        if facility.lower() in lowered:
            return facility
    return None


class GenericExtractor(DocumentExtractor):
    """Best-effort extraction of common fields from any document."""

    document_type = DocumentType.GENERIC

    def extract(self, text: str) -> GenericDocumentData:
        return GenericDocumentData(
            nhi=extract_patient_identifier(text),
            gender=first_accepted(text, GENDER_RULES),
            diagnosis=first_accepted(text, DIAGNOSIS_RULES),
            procedure=first_accepted(text, PROCEDURE_RULES),
            surgeon=first_accepted(text, SURGEON_RULES),
            facility=extract_facility(text),
            asa_score=first_accepted(text, ASA_RULES),
            weight_kg=first_accepted(text, WEIGHT_RULES),
            height_cm=first_accepted(text, HEIGHT_RULES),
            complications=extract_complications(text),
        )
