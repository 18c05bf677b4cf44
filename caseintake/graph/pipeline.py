"""
LangGraph-based pipeline for clinical document ingestion.

The workflow runs classifier-independent extraction, classifies the document,
dispatches to the matching type-specific extractor and merges its output into
the canonical case record.
"""

from functools import lru_cache
from typing import Optional

import structlog
from langgraph.graph import END, StateGraph

from caseintake.classification.classifier import NO_TRIGGER
from caseintake.graph.nodes import (
    EXTRACTOR_NODES,
    classify_document,
    create_result,
    extract_identifiers,
    make_extractor_node,
    merge,
    route_by_document_type,
)
from caseintake.graph.state import PipelineState
from caseintake.models.document import (
    Confidence,
    DocumentRouterResult,
    DocumentType,
    ExtractedCaseData,
)
from caseintake.utils.metrics import record_document_processed

logger = structlog.get_logger(__name__)


def empty_result() -> DocumentRouterResult:
    """Result with no extracted fields, classified as a generic document."""
    return DocumentRouterResult(
        document_type=DocumentType.GENERIC,
        document_type_name=DocumentType.GENERIC.display_name,
        confidence=Confidence.LOW,
        detected_triggers=[NO_TRIGGER],
        extracted_data=ExtractedCaseData(),
        auto_filled_fields=[],
    )


class DocumentPipeline:
    """LangGraph-based pipeline for document ingestion."""

    def __init__(self) -> None:
        """Initialize the document pipeline."""
        self.graph = self._build_graph()

    def _build_graph(self):
        """
        Build the LangGraph workflow.

        Returns:
            Compiled workflow graph
        """
        builder = StateGraph(PipelineState)

        builder.add_node("extract_identifiers", extract_identifiers)
        builder.add_node("classify", classify_document)
        for document_type, node_name in EXTRACTOR_NODES.items():
            builder.add_node(node_name, make_extractor_node(document_type))
        builder.add_node("merge", merge)
        builder.add_node("create_result", create_result)

        builder.add_edge("extract_identifiers", "classify")
        builder.add_conditional_edges(
            "classify",
            route_by_document_type,
            {document_type.value: node_name for document_type, node_name in EXTRACTOR_NODES.items()},
        )
        for node_name in EXTRACTOR_NODES.values():
            builder.add_edge(node_name, "merge")
        builder.add_edge("merge", "create_result")
        builder.add_edge("create_result", END)

        builder.set_entry_point("extract_identifiers")

        return builder.compile()

    def process(self, raw_text: Optional[str]) -> DocumentRouterResult:
        """
        Process a document's text through the workflow.

        Never raises: an unexpected internal error is logged and an empty
        generic result is returned instead.

        Args:
            raw_text: Original document text

        Returns:
            Classification, canonical case record and provenance list
        """
        text = raw_text if isinstance(raw_text, str) else ""

        initial_state: PipelineState = {
            "raw_text": text,
            "extracted_data": ExtractedCaseData(),
            "auto_filled_fields": [],
            "classification": None,
            "partial": None,
            "result": None,
        }

        result = None
        try:
            final_state = self.graph.invoke(initial_state)
            result = final_state["result"]
        except Exception:
            logger.exception("Document pipeline failed", text_length=len(text))

        if result is None:
            result = empty_result()

        record_document_processed(result.document_type.value, len(result.auto_filled_fields))
        logger.info(
            "Document processed",
            document_type=result.document_type.value,
            auto_filled_fields=len(result.auto_filled_fields),
        )
        return result


@lru_cache()
def get_default_pipeline() -> DocumentPipeline:
    """Shared pipeline instance; the compiled graph holds no per-document state."""
    return DocumentPipeline()


def process_document(raw_text: Optional[str]) -> DocumentRouterResult:
    """Process a document with the shared pipeline."""
    return get_default_pipeline().process(raw_text)
