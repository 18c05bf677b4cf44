"""
Nodes for the LangGraph document pipeline.
"""

from typing import Callable

import structlog

from caseintake.classification.classifier import classify
from caseintake.extractors import get_extractor
from caseintake.graph.merge import apply_type_defaults, merge_partial, write_field
from caseintake.graph.state import PipelineState
from caseintake.models.document import DocumentRouterResult, DocumentType
from caseintake.utils.privacy import extract_patient_identifier, extract_procedure_date

logger = structlog.get_logger(__name__)

# Node name of the extractor for each document type
EXTRACTOR_NODES = {
    DocumentType.DISCHARGE_SUMMARY: "extract_discharge_summary",
    DocumentType.ANAESTHESIA_RECORD: "extract_anaesthesia_record",
    DocumentType.OPERATION_NOTE: "extract_operation_note",
    DocumentType.GENERIC: "extract_generic",
}


def extract_identifiers(state: PipelineState) -> PipelineState:
    """
    Run classifier-independent extraction on the original text.

    The identifier and procedure date seed the record before any
    type-specific extractor runs, so they take precedence in the merge.

    Args:
        state: Current state of the workflow

    Returns:
        Updated state with the seeded record and provenance
    """
    text = state["raw_text"]
    record = state["extracted_data"]
    provenance = state["auto_filled_fields"]

    write_field(
        record, "patient_identifier", "patientIdentifier", extract_patient_identifier(text), provenance
    )
    write_field(record, "procedure_date", "procedureDate", extract_procedure_date(text), provenance)

    return state


def classify_document(state: PipelineState) -> PipelineState:
    """
    Classify the document by its trigger phrases.

    Args:
        state: Current state of the workflow

    Returns:
        Updated state with the classification result
    """
    classification = classify(state["raw_text"])
    logger.info(
        "Document classified",
        document_type=classification.document_type.value,
        confidence=classification.confidence.value,
    )
    state["classification"] = classification
    return state


def route_by_document_type(state: PipelineState) -> str:
    """Conditional edge: pick the extractor node for the classified type."""
    return state["classification"].document_type.value


def make_extractor_node(document_type: DocumentType) -> Callable[[PipelineState], PipelineState]:
    """
    Build the node that runs the extractor for one document type.

    Args:
        document_type: Document type the node handles

    Returns:
        Node function storing the extractor's partial record in the state
    """
    extractor = get_extractor(document_type)

    def _extract(state: PipelineState) -> PipelineState:
        state["partial"] = extractor.extract(state["raw_text"])
        return state

    _extract.__name__ = EXTRACTOR_NODES[document_type]
    return _extract


def merge(state: PipelineState) -> PipelineState:
    """
    Merge the partial record into the canonical record.

    Type-implied values (facility, funding status) are applied after the
    content-derived ones so explicit content wins.

    Args:
        state: Current state of the workflow

    Returns:
        Updated state with the merged record and provenance
    """
    record = state["extracted_data"]
    provenance = state["auto_filled_fields"]
    partial = state["partial"]

    if partial is not None:
        merge_partial(record, partial, provenance)
    apply_type_defaults(record, state["classification"].document_type, provenance)

    logger.debug("Partial record merged", auto_filled_fields=len(provenance))
    return state


def create_result(state: PipelineState) -> PipelineState:
    """
    Create the final pipeline result.

    Args:
        state: Current state of the workflow

    Returns:
        Updated state with the result
    """
    classification = state["classification"]

    state["result"] = DocumentRouterResult(
        document_type=classification.document_type,
        document_type_name=classification.document_type.display_name,
        confidence=classification.confidence,
        detected_triggers=list(classification.detected_triggers),
        extracted_data=state["extracted_data"],
        auto_filled_fields=list(state["auto_filled_fields"]),
    )
    return state
