"""
Heuristic document classifier.

Rules are evaluated in order and the first match wins. Order matters: a
discharge summary often also mentions surgeons and procedures, so its rule is
checked before the operation-note rule.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import structlog

from caseintake.models.document import ClassificationResult, Confidence, DocumentType

logger = structlog.get_logger(__name__)

NO_TRIGGER = "No specific document type detected"


@dataclass(frozen=True)
class ClassificationRule:
    """
    A document type selected when any of its trigger groups is present.

    ``any_of`` is a tuple of groups; a group fires when all of its terms occur
    in the text (case-insensitive substring match).
    """

    document_type: DocumentType
    confidence: Confidence
    any_of: Tuple[Tuple[str, ...], ...]

    def match(self, upper_text: str) -> Optional[List[str]]:
        """
        Return the literal triggers that fired, or None if the rule does not match.

        Args:
            upper_text: Document text already converted to upper case
        """
        triggers: List[str] = []
        for group in self.any_of:
            if all(term.upper() in upper_text for term in group):
                triggers.extend(term for term in group if term not in triggers)
        return triggers or None


CLASSIFICATION_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule(
        document_type=DocumentType.DISCHARGE_SUMMARY,
        confidence=Confidence.HIGH,
        any_of=(
            ("Discharge Summary", "Waikato"),
            ("Discharge Summary", "DHB"),
        ),
    ),
    ClassificationRule(
        document_type=DocumentType.ANAESTHESIA_RECORD,
        confidence=Confidence.HIGH,
        any_of=(
            ("Anaesthesia Report",),
            ("Anaesthesia Record",),
            ("Te Whatu Ora",),
            ("Propofol", "ASA"),
        ),
    ),
    ClassificationRule(
        document_type=DocumentType.OPERATION_NOTE,
        confidence=Confidence.MEDIUM,
        any_of=(
            ("Operation Note",),
            ("Operative Report",),
            ("Procedure Report",),
            ("Surgeon", "Procedure"),
        ),
    ),
)


def classify(text: str, rules: Tuple[ClassificationRule, ...] = CLASSIFICATION_RULES) -> ClassificationResult:
    """
    Classify a document by its trigger phrases.

    Args:
        text: Raw document text
        rules: Ordered rules; defaults to the built-in rule set

    Returns:
        Document type, confidence tier and the triggers that fired
    """
    upper_text = (text or "").upper()

    for rule in rules:
        triggers = rule.match(upper_text)
        if triggers:
            logger.debug(
                "Document classified",
                document_type=rule.document_type.value,
                triggers=triggers,
            )
            return ClassificationResult(
                document_type=rule.document_type,
                confidence=rule.confidence,
                detected_triggers=triggers,
            )

    return ClassificationResult(
        document_type=DocumentType.GENERIC,
        confidence=Confidence.LOW,
        detected_triggers=[NO_TRIGGER],
    )
