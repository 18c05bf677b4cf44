"""
Text acquisition from document images.

``TextAcquisition`` owns a single lazily-constructed OCR worker. The first
caller builds it; callers arriving while construction is in progress wait on a
future and are released in arrival order once it is ready. A failed
construction is reported to every waiter and leaves the handle ready to retry.
Recognition calls are serialised because the engine is not re-entrant.
"""

import asyncio
import time
from collections import deque
from enum import Enum
from functools import partial
from io import BytesIO
from typing import Any, Callable, Deque, List, Optional, Protocol, Sequence

import pytesseract
import structlog
from PIL import Image

from caseintake.core.config import Settings, settings
from caseintake.core.exceptions import AcquisitionError
from caseintake.utils.metrics import record_ocr_page, record_worker_start

logger = structlog.get_logger(__name__)

PAGE_SEPARATOR = "\n\n---\n\n"


class WorkerState(str, Enum):
    """Lifecycle of the OCR worker handle."""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class OcrWorker(Protocol):
    def recognize(self, image_bytes: bytes) -> str:
        ...

    def terminate(self) -> None:
        ...


class TesseractWorker:
    """
    OCR worker backed by the Tesseract engine.

    Construction fails with ``pytesseract.TesseractNotFoundError`` when the
    engine binary is not available.
    """

    def __init__(self, language: str = "eng", tesseract_cmd: Optional[str] = None) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.language = language
        self.version = pytesseract.get_tesseract_version()
        logger.info("Tesseract worker ready", version=str(self.version), language=language)

    def recognize(self, image_bytes: bytes) -> str:
        with Image.open(BytesIO(image_bytes)) as image:
            return pytesseract.image_to_string(image, lang=self.language)

    def terminate(self) -> None:
        # Each recognition runs its own tesseract process; nothing stays resident
        logger.info("Tesseract worker terminated")


class TextAcquisition:
    """
    Injectable handle around a single OCR worker.

    Args:
        worker_factory: Zero-argument callable building the worker; runs in an
            executor thread
        page_separator: Text placed between the pages of a multi-image request
        timeout: Per-page recognition timeout in seconds, or None to wait
            indefinitely
    """

    def __init__(
            self,
            worker_factory: Callable[[], OcrWorker],
            page_separator: str = PAGE_SEPARATOR,
            timeout: Optional[float] = None,
    ) -> None:
        self._worker_factory = worker_factory
        self._page_separator = page_separator
        self._timeout = timeout
        self._state = WorkerState.UNINITIALIZED
        self._worker: Optional[OcrWorker] = None
        self._waiters: Deque[asyncio.Future] = deque()
        self._recognize_lock = asyncio.Lock()

    @property
    def state(self) -> WorkerState:
        return self._state

    async def acquire(self) -> OcrWorker:
        """
        Return the worker, constructing it on first use.

        Returns:
            The ready worker

        Raises:
            AcquisitionError: If construction failed, for the constructing
                caller and every caller waiting on it
        """
        if self._state is WorkerState.READY:
            return self._worker

        loop = asyncio.get_running_loop()

        if self._state is WorkerState.INITIALIZING:
            waiter = loop.create_future()
            self._waiters.append(waiter)
            return await waiter

        self._state = WorkerState.INITIALIZING
        logger.info("Constructing OCR worker")

        try:
            worker = await loop.run_in_executor(None, self._worker_factory)
        except (Exception, asyncio.CancelledError) as e:
            self._state = WorkerState.UNINITIALIZED
            record_worker_start("error")
            logger.error("OCR worker construction failed", error=repr(e), waiters=len(self._waiters))
            error = AcquisitionError("OCR worker construction failed")
            error.__cause__ = e
            self._release_waiters(error=error)
            if isinstance(e, asyncio.CancelledError):
                raise
            raise error from e

        self._worker = worker
        self._state = WorkerState.READY
        record_worker_start("success")
        self._release_waiters(worker=worker)
        return worker

    def _release_waiters(
            self, worker: Optional[OcrWorker] = None, error: Optional[BaseException] = None
    ) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            if error is not None:
                waiter.set_exception(error)
            else:
                waiter.set_result(worker)

    async def extract_text(self, images: Sequence[bytes]) -> str:
        """
        Recognise the text of each image and join the pages.

        Args:
            images: Encoded image files (PNG, JPEG, ...)

        Returns:
            Page texts joined with the page separator

        Raises:
            AcquisitionError: If the worker cannot be built or recognition fails
        """
        worker = await self.acquire()

        pages: List[str] = []
        for page, image_bytes in enumerate(images, start=1):
            pages.append(await self._recognize_page(worker, page, image_bytes))
        return self._page_separator.join(pages)

    async def _recognize_page(self, worker: OcrWorker, page: int, image_bytes: bytes) -> str:
        loop = asyncio.get_running_loop()
        start_time = time.perf_counter()

        try:
            text = await self._run_exclusive(loop, worker, image_bytes)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            duration = time.perf_counter() - start_time
            record_ocr_page("error", duration)
            logger.error(
                "OCR recognition failed",
                page=page,
                image_bytes=len(image_bytes),
                duration_ms=round(duration * 1000, 1),
                error_type=type(e).__name__,
            )
            await self.shutdown()
            raise AcquisitionError("Failed to extract text from image") from e

        duration = time.perf_counter() - start_time
        record_ocr_page("success", duration)
        logger.info(
            "OCR page recognized",
            page=page,
            image_bytes=len(image_bytes),
            text_length=len(text),
            duration_ms=round(duration * 1000, 1),
        )
        return text

    async def _run_exclusive(self, loop: asyncio.AbstractEventLoop, worker: OcrWorker, image_bytes: bytes) -> str:
        """
        Run one recognition while holding the engine lock.

        The executor call is shielded, so a timeout or cancellation abandons
        the wait but not the thread. The lock then stays held until that
        thread returns.
        """
        await self._recognize_lock.acquire()
        call = loop.run_in_executor(None, worker.recognize, image_bytes)
        try:
            if self._timeout is not None:
                return await asyncio.wait_for(asyncio.shield(call), self._timeout)
            return await asyncio.shield(call)
        finally:
            if call.done():
                self._recognize_lock.release()
            else:
                call.add_done_callback(self._release_abandoned)

    def _release_abandoned(self, call: asyncio.Future) -> None:
        if not call.cancelled() and call.exception() is not None:
            logger.warning("Abandoned OCR recognition failed", error_type=type(call.exception()).__name__)
        self._recognize_lock.release()
        logger.info("Abandoned OCR recognition finished; engine released")

    async def shutdown(self) -> None:
        """Terminate the worker, if any, so the next call builds a new one."""
        worker, self._worker = self._worker, None
        if self._state is WorkerState.READY:
            self._state = WorkerState.UNINITIALIZED
        if worker is None:
            return

        try:
            worker.terminate()
        except Exception:
            logger.exception("OCR worker did not terminate cleanly")


def create_text_acquisition(config: Settings = settings) -> TextAcquisition:
    """
    Build the Tesseract-backed text acquisition handle from settings.

    Args:
        config: Service settings

    Returns:
        A handle whose worker is constructed on first use
    """
    factory: Callable[[], Any] = partial(
        TesseractWorker, language=config.OCR_LANGUAGE, tesseract_cmd=config.TESSERACT_CMD
    )
    return TextAcquisition(
        factory,
        page_separator=config.OCR_PAGE_SEPARATOR,
        timeout=config.OCR_TIMEOUT_SECONDS,
    )
