"""
Core dependencies for the Case Intake API.

The pipeline and the text acquisition handle are created by the application
lifespan and stored on ``app.state``; endpoints receive them through these
dependencies so tests can override them.
"""

from typing import Optional

from fastapi import HTTPException, Request, status

from caseintake.graph.pipeline import DocumentPipeline, get_default_pipeline
from caseintake.ocr.worker import TextAcquisition


def get_pipeline(request: Request) -> DocumentPipeline:
    """
    Get the document pipeline.

    Args:
        request: Incoming request

    Returns:
        The application's pipeline, or the shared default one
    """
    pipeline = getattr(request.app.state, "pipeline", None)
    return pipeline if pipeline is not None else get_default_pipeline()


def get_text_acquisition(request: Request) -> Optional[TextAcquisition]:
    """
    Get the OCR text acquisition handle.

    Args:
        request: Incoming request

    Returns:
        The handle owned by the application lifespan, or None if the service
        was started without one
    """
    return getattr(request.app.state, "text_acquisition", None)


def require_text_acquisition(acquisition: Optional[TextAcquisition]) -> TextAcquisition:
    """
    Ensure a text acquisition handle is available for an image request.

    Raises:
        HTTPException: 503 if the handle is missing
    """
    if acquisition is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Text acquisition is not available",
        )
    return acquisition
