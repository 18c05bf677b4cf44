"""
Extractor for anaesthesia records.
"""

import re
from typing import Optional

from caseintake.extractors.base import DocumentExtractor
from caseintake.extractors.fields import (
    ASA_RULES,
    BLOOD_LOSS_RULES,
    HEIGHT_RULES,
    TOURNIQUET_RULES,
    WEIGHT_RULES,
    first_accepted,
)
from caseintake.models.document import DocumentType
from caseintake.models.partials import AnaesthesiaRecordData

# Short abbreviations (GA, LA, MAC) are matched case-sensitively as whole words
_GENERAL = re.compile(r"\bgeneral\s+an(?:a)?esthe|(?-i:\bGA\b)", re.IGNORECASE)
_REGIONAL = re.compile(
    r"\bregional\b|\bbrachial\s+plexus\b|\baxillary\s+block\b|\bnerve\s+block\b|\bblock\b",
    re.IGNORECASE,
)
_SPINAL = re.compile(r"\bspinal\b", re.IGNORECASE)
_EPIDURAL = re.compile(r"\bepidural\b", re.IGNORECASE)
_LOCAL = re.compile(r"\blocal\s+an(?:a)?esthe|\blocal\b|(?-i:\bLA\b)", re.IGNORECASE)
_SEDATION = re.compile(r"\bsedation\b|(?-i:\bMAC\b)", re.IGNORECASE)

ANAESTHETIC_TYPES = (
    (_SPINAL, "spinal"),
    (_EPIDURAL, "epidural"),
    (_REGIONAL, "regional"),
    (_LOCAL, "local"),
    (_SEDATION, "sedation"),
)


def extract_anaesthetic_type(text: str) -> Optional[str]:
    """
    Classify the anaesthetic technique.

    General anaesthesia takes precedence; combined with a block it is reported
    as ``general_regional``.
    """
    if _GENERAL.search(text):
        return "general_regional" if _REGIONAL.search(text) else "general"

    for pattern, anaesthetic_type in ANAESTHETIC_TYPES:
        if pattern.search(text):
            return anaesthetic_type
    return None


class AnaesthesiaRecordExtractor(DocumentExtractor):
    """Extracts patient measurements and anaesthetic details."""

    document_type = DocumentType.ANAESTHESIA_RECORD

    def extract(self, text: str) -> AnaesthesiaRecordData:
        return AnaesthesiaRecordData(
            asa_score=first_accepted(text, ASA_RULES),
            weight_kg=first_accepted(text, WEIGHT_RULES),
            height_cm=first_accepted(text, HEIGHT_RULES),
            tourniquet_time_minutes=first_accepted(text, TOURNIQUET_RULES),
            anaesthetic_type=extract_anaesthetic_type(text),
            blood_loss_ml=first_accepted(text, BLOOD_LOSS_RULES),
        )
