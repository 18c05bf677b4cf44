"""
Document endpoints for the Case Intake API.

This module defines endpoints for turning document text or images into a
structured case record.
"""

import asyncio
import base64
import binascii
from typing import Any, List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from caseintake.core.config import settings
from caseintake.core.dependencies import (
    get_pipeline,
    get_text_acquisition,
    require_text_acquisition,
)
from caseintake.core.exceptions import AcquisitionError
from caseintake.graph.pipeline import DocumentPipeline
from caseintake.models.document import DocumentRouterResult
from caseintake.ocr.worker import TextAcquisition
from caseintake.schemas.document import (
    ComplicationsResponse,
    ProcessDocumentRequest,
    RedactResponse,
    TextRequest,
)
from caseintake.utils.privacy import redact, redaction_summary

logger = structlog.get_logger(__name__)

router = APIRouter()


def decode_image(value: str) -> bytes:
    """
    Decode a base64 image, accepting an optional ``data:`` URL prefix.

    Raises:
        HTTPException: 400 if the value is not valid base64
    """
    if value.startswith("data:") and "," in value:
        value = value.split(",", 1)[1]
    try:
        decoded = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid base64 image data",
        )
    if not decoded:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid base64 image data",
        )
    return decoded


def collect_images(request: ProcessDocumentRequest) -> List[str]:
    images: List[str] = []
    if request.image:
        images.append(request.image)
    if request.images:
        images.extend(request.images)
    return images


async def run_pipeline(pipeline: DocumentPipeline, text: str) -> DocumentRouterResult:
    """Run the pipeline in an executor thread."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, pipeline.process, text)


@router.post(
    "/process",
    response_model=DocumentRouterResult,
    response_model_exclude_none=True,
    summary="Process a document",
    description="Classify a document and extract a structured case record from its text or images."
)
async def process_document(
        request: ProcessDocumentRequest,
        pipeline: DocumentPipeline = Depends(get_pipeline),
        acquisition: Optional[TextAcquisition] = Depends(get_text_acquisition),
) -> Any:
    """
    Process a document given as text or as base64-encoded images.

    Args:
        request: Text, a single image or several images
        pipeline: Document pipeline
        acquisition: OCR text acquisition handle

    Returns:
        Classification, extracted case record and the auto-filled field names
    """
    if request.text:
        text = request.text
        source = "text"
    else:
        encoded_images = collect_images(request)
        if not encoded_images:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Either text or image(s) must be provided",
            )
        if len(encoded_images) > settings.MAX_IMAGES_PER_REQUEST:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"At most {settings.MAX_IMAGES_PER_REQUEST} images can be processed per request",
            )

        images = [decode_image(value) for value in encoded_images]
        acquisition = require_text_acquisition(acquisition)

        try:
            text = await acquisition.extract_text(images)
        except AcquisitionError as e:
            logger.error("Text acquisition failed", images=len(images), error=str(e))
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to extract text from image",
            )
        source = "image"

    result = await run_pipeline(pipeline, text)

    # Redaction runs only after extraction; only counts are logged
    logger.info(
        "Document processed",
        source=source,
        document_type=result.document_type.value,
        confidence=result.confidence.value,
        auto_filled_fields=len(result.auto_filled_fields),
        redaction=redaction_summary(redact(text)),
    )

    return result


@router.post(
    "/complications",
    response_model=ComplicationsResponse,
    summary="Extract complications",
    description="Return only the complications found in a document's text."
)
async def extract_complications(
        request: TextRequest,
        pipeline: DocumentPipeline = Depends(get_pipeline),
) -> Any:
    """
    Project the pipeline output onto its complications.

    Args:
        request: Document text
        pipeline: Document pipeline

    Returns:
        Whether complications were found, and the list
    """
    result = await run_pipeline(pipeline, request.text)
    complications = result.extracted_data.complications or []

    logger.info("Complications extracted", count=len(complications))

    return ComplicationsResponse(
        has_complications=bool(complications),
        complications=complications,
    )


@router.post(
    "/redact",
    response_model=RedactResponse,
    summary="Redact a document",
    description="Replace NHI numbers and dates with placeholders."
)
async def redact_document(request: TextRequest) -> Any:
    """
    Redact identifiers and dates from document text.

    Args:
        request: Document text

    Returns:
        Redacted text, the redacted items and a summary
    """
    result = redact(request.text)
    summary = redaction_summary(result)

    logger.info("Document redacted", redaction=summary)

    return RedactResponse(
        redacted_text=result.redacted_text,
        redacted_items=result.redacted_items,
        summary=summary,
    )
