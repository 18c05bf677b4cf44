"""
State passed between the nodes of the document pipeline.
"""

from typing import List, Optional, TypedDict

from caseintake.models.document import (
    ClassificationResult,
    DocumentRouterResult,
    ExtractedCaseData,
)
from caseintake.models.partials import AnyPartialRecord


class PipelineState(TypedDict):
    """Type definition for the state passed between nodes in the graph."""

    raw_text: str
    extracted_data: ExtractedCaseData
    auto_filled_fields: List[str]
    classification: Optional[ClassificationResult]
    partial: Optional[AnyPartialRecord]
    result: Optional[DocumentRouterResult]
