"""
Type-specific field extractors, keyed by document type.
"""

from typing import Dict

from caseintake.extractors.anaesthesia_record import AnaesthesiaRecordExtractor
from caseintake.extractors.base import DocumentExtractor
from caseintake.extractors.discharge_summary import DischargeSummaryExtractor
from caseintake.extractors.generic import GenericExtractor
from caseintake.extractors.operation_note import OperationNoteExtractor
from caseintake.models.document import DocumentType

EXTRACTORS: Dict[DocumentType, DocumentExtractor] = {
    extractor.document_type: extractor
    for extractor in (
        DischargeSummaryExtractor(),
        AnaesthesiaRecordExtractor(),
        OperationNoteExtractor(),
        GenericExtractor(),
    )
}


def get_extractor(document_type: DocumentType) -> DocumentExtractor:
    """Return the extractor for a document type, falling back to the generic one."""
    return EXTRACTORS.get(document_type, EXTRACTORS[DocumentType.GENERIC])


__all__ = ["DocumentExtractor", "EXTRACTORS", "get_extractor"]
