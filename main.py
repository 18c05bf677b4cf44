"""
Command-line entry point for the Case Intake service.

Runs the HTTP API, or processes a single local text or image file and prints
the extracted case record as JSON.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import aiofiles
import structlog
from dotenv import load_dotenv

load_dotenv()

from caseintake.core.config import settings  # noqa: E402
from caseintake.core.exceptions import AcquisitionError  # noqa: E402
from caseintake.graph.pipeline import process_document  # noqa: E402
from caseintake.ocr.worker import create_text_acquisition  # noqa: E402
from caseintake.utils.logging import configure_logging  # noqa: E402
from caseintake.utils.privacy import redact, redaction_summary  # noqa: E402

configure_logging(log_level=settings.LOG_LEVEL)
logger = structlog.get_logger(__name__)

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp", ".gif", ".webp"}


async def read_document_text(file_path: Path) -> str:
    """
    Read a document's text, running OCR for image files.

    Args:
        file_path: Text or image file

    Returns:
        The document text
    """
    async with aiofiles.open(file_path, "rb") as f:
        content = await f.read()

    if file_path.suffix.lower() not in IMAGE_SUFFIXES:
        return content.decode("utf-8", errors="replace")

    acquisition = create_text_acquisition(settings)
    try:
        return await acquisition.extract_text([content])
    finally:
        await acquisition.shutdown()


async def process_single_file(file_path: str, redact_output: bool = False, output: Optional[str] = None) -> int:
    """
    Process a single file and write the result as JSON.

    Args:
        file_path: Path to the file to process
        redact_output: Print the redacted text instead of the case record
        output: Optional path of the JSON output file; stdout when omitted

    Returns:
        Process exit code
    """
    path = Path(file_path)
    if not path.is_file():
        logger.error("File not found", file=str(path))
        return 1

    try:
        text = await read_document_text(path)
    except AcquisitionError as e:
        logger.error("Failed to extract text from image", file=str(path), error=str(e))
        return 1

    if redact_output:
        result = redact(text)
        payload = {
            "redactedText": result.redacted_text,
            "redactedItems": [item.model_dump(by_alias=True) for item in result.redacted_items],
            "summary": redaction_summary(result),
        }
    else:
        result = process_document(text)
        payload = result.model_dump(mode="json", by_alias=True, exclude_none=True)

    rendered = json.dumps(payload, indent=2)
    if output:
        Path(output).write_text(rendered + "\n", encoding="utf-8")
        logger.info("Result written", file=str(path), output=output)
    else:
        sys.stdout.write(rendered + "\n")
    return 0


def run_server() -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "caseintake.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )


def main() -> None:
    """Entry point for the service."""
    parser = argparse.ArgumentParser(description="Case Intake Service")
    parser.add_argument(
        "--mode",
        choices=["serve", "file"],
        default="serve",
        help="Service mode (serve for the HTTP API, file for a single local document)"
    )
    parser.add_argument(
        "--file",
        type=str,
        help="Path to a text or image file to process (only for 'file' mode)"
    )
    parser.add_argument(
        "--redact",
        action="store_true",
        help="Output the redacted text instead of the extracted case record"
    )
    parser.add_argument(
        "--output",
        type=str,
        help="Write the JSON result to this path instead of stdout"
    )

    args = parser.parse_args()

    if args.mode == "file" and not args.file:
        parser.error("--file argument is required for 'file' mode")

    if args.mode == "serve":
        run_server()
        return

    try:
        exit_code = asyncio.run(process_single_file(args.file, args.redact, args.output))
    except KeyboardInterrupt:
        logger.info("Service interrupted")
        exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
