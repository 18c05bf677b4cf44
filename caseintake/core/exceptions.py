"""
Exceptions raised by the Case Intake service.

Extraction never raises for a pattern that does not match; the errors below are
limited to text acquisition failures.
"""


class CaseIntakeError(Exception):
    """Base class for service errors."""


class AcquisitionError(CaseIntakeError):
    """The OCR engine failed to produce text for an image."""
