"""Clinical document ingestion: OCR, classification, extraction and merge."""

__version__ = "0.1.0"
