"""
Request and response schemas for the document endpoints.
"""

from typing import List, Optional

from pydantic import Field

from caseintake.models.document import CamelModel, RedactedItem


class ProcessDocumentRequest(CamelModel):
    """
    Body of a document processing request.

    Exactly one input shape is used: ``text`` when present, otherwise ``image``
    and/or ``images`` (base64 encoded).
    """

    text: Optional[str] = Field(None, description="Pre-extracted document text")
    image: Optional[str] = Field(None, description="A single base64-encoded image")
    images: Optional[List[str]] = Field(None, description="Several base64-encoded images, in page order")


class TextRequest(CamelModel):
    """Body carrying document text only."""

    text: str = Field(..., description="Document text")


class ComplicationsResponse(CamelModel):
    """Complication subset of a processed document."""

    has_complications: bool = Field(..., description="Whether any complication was extracted")
    complications: List[str] = Field(default_factory=list, description="Extracted complications")


class RedactResponse(CamelModel):
    """Redacted text and an audit summary of what was removed."""

    redacted_text: str = Field(..., description="Text with identifiers and dates replaced")
    redacted_items: List[RedactedItem] = Field(default_factory=list)
    summary: str = Field(..., description="Counts of redacted values by type")
