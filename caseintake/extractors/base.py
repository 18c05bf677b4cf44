"""
Base class for type-specific extractors.
"""

from abc import ABC, abstractmethod
from typing import ClassVar

from caseintake.models.document import DocumentType
from caseintake.models.partials import PartialRecord


class DocumentExtractor(ABC):
    """Extraction strategy for one document type."""

    document_type: ClassVar[DocumentType]

    @abstractmethod
    def extract(self, text: str) -> PartialRecord:
        """
        Extract a partial case record from the document text.

        Implementations never raise for text that does not match their
        patterns; missing values are left as None.

        Args:
            text: Original document text

        Returns:
            The extractor's tagged partial record
        """
