"""
Unit tests for OCR text acquisition.

The Tesseract engine is replaced by fake workers; no OCR binary is needed.
"""

import asyncio
import threading
import time
import unittest
from io import BytesIO
from unittest.mock import MagicMock, patch

from PIL import Image

from caseintake.core.config import Settings
from caseintake.core.exceptions import AcquisitionError
from caseintake.ocr.worker import (
    PAGE_SEPARATOR,
    TesseractWorker,
    TextAcquisition,
    WorkerState,
    create_text_acquisition,
)


class FakeWorker:
    """Worker that returns each image's bytes as its text."""

    def __init__(self, fail_on=None, delay=0.0):
        self.fail_on = fail_on
        self.delay = delay
        self.terminated = False

    def recognize(self, image_bytes):
        if self.delay:
            time.sleep(self.delay)
        if image_bytes == self.fail_on:
            raise RuntimeError("engine crashed")
        return image_bytes.decode()

    def terminate(self):
        self.terminated = True


class CountingFactory:
    """Worker factory recording how often it is called; fails the first ``failures`` calls."""

    def __init__(self, failures=0, delay=0.05, **worker_kwargs):
        self.failures = failures
        self.delay = delay
        self.worker_kwargs = worker_kwargs
        self.calls = 0
        self.workers = []
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            self.calls += 1
            call = self.calls
        time.sleep(self.delay)
        if call <= self.failures:
            raise RuntimeError("tesseract not installed")
        worker = FakeWorker(**self.worker_kwargs)
        self.workers.append(worker)
        return worker


class ConcurrencyTrackingWorker:
    """Worker recording how many recognitions overlap; ``slow`` images take ``delay`` seconds."""

    def __init__(self, slow, delay):
        self.slow = slow
        self.delay = delay
        self.active = 0
        self.peak = 0
        self.finished = []
        self._lock = threading.Lock()

    def recognize(self, image_bytes):
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        if image_bytes == self.slow:
            time.sleep(self.delay)
        with self._lock:
            self.active -= 1
            self.finished.append(image_bytes)
        return image_bytes.decode()

    def terminate(self):
        pass


class TestTextAcquisition(unittest.IsolatedAsyncioTestCase):
    """Unit tests for the TextAcquisition handle."""

    async def test_single_construction_under_concurrent_calls(self):
        factory = CountingFactory()
        acquisition = TextAcquisition(factory)

        workers = await asyncio.gather(*(acquisition.acquire() for _ in range(8)))

        self.assertEqual(factory.calls, 1)
        self.assertTrue(all(worker is factory.workers[0] for worker in workers))
        self.assertEqual(acquisition.state, WorkerState.READY)

    async def test_waiters_released_in_arrival_order(self):
        acquisition = TextAcquisition(CountingFactory())
        order = []

        async def call(index):
            await acquisition.acquire()
            order.append(index)

        await asyncio.gather(*(call(index) for index in range(5)))

        self.assertEqual(order, [0, 1, 2, 3, 4])

    async def test_construction_failure_reaches_all_waiters(self):
        factory = CountingFactory(failures=1)
        acquisition = TextAcquisition(factory)

        results = await asyncio.gather(
            *(acquisition.acquire() for _ in range(4)), return_exceptions=True
        )

        self.assertEqual(factory.calls, 1)
        self.assertTrue(all(isinstance(result, AcquisitionError) for result in results))
        self.assertEqual(acquisition.state, WorkerState.UNINITIALIZED)

        # The next call retries construction
        worker = await acquisition.acquire()
        self.assertEqual(factory.calls, 2)
        self.assertIs(worker, factory.workers[0])
        self.assertEqual(acquisition.state, WorkerState.READY)

    async def test_cancelled_construction_resets_state(self):
        factory = CountingFactory(delay=0.2)
        acquisition = TextAcquisition(factory)

        constructing = asyncio.create_task(acquisition.acquire())
        await asyncio.sleep(0.01)
        waiting = asyncio.create_task(acquisition.acquire())
        await asyncio.sleep(0.01)
        constructing.cancel()

        with self.assertRaises(asyncio.CancelledError):
            await constructing
        with self.assertRaises(AcquisitionError):
            await waiting
        self.assertEqual(acquisition.state, WorkerState.UNINITIALIZED)

    async def test_extract_text_joins_pages(self):
        acquisition = TextAcquisition(CountingFactory(delay=0))

        text = await acquisition.extract_text([b"page one", b"page two"])

        self.assertEqual(text, "page one\n\n---\n\npage two")
        self.assertEqual(PAGE_SEPARATOR, "\n\n---\n\n")

    async def test_recognition_failure_resets_handle(self):
        factory = CountingFactory(delay=0, fail_on=b"bad")
        acquisition = TextAcquisition(factory)

        with self.assertRaises(AcquisitionError):
            await acquisition.extract_text([b"good", b"bad"])

        self.assertEqual(acquisition.state, WorkerState.UNINITIALIZED)
        self.assertTrue(factory.workers[0].terminated)

        self.assertEqual(await acquisition.extract_text([b"good"]), "good")
        self.assertEqual(factory.calls, 2)

    async def test_recognition_timeout(self):
        acquisition = TextAcquisition(_slow_factory, timeout=0.01)

        with self.assertRaises(AcquisitionError):
            await acquisition.extract_text([b"slow"])

        self.assertEqual(acquisition.state, WorkerState.UNINITIALIZED)

    async def test_timeout_keeps_recognition_serialised(self):
        worker = ConcurrencyTrackingWorker(slow=b"slow", delay=0.3)
        acquisition = TextAcquisition(lambda: worker, timeout=0.05)

        with self.assertRaises(AcquisitionError):
            await acquisition.extract_text([b"slow"])

        self.assertEqual(await acquisition.extract_text([b"fast"]), "fast")
        self.assertEqual(worker.peak, 1)
        self.assertEqual(worker.finished, [b"slow", b"fast"])

    async def test_shutdown_without_worker(self):
        acquisition = TextAcquisition(CountingFactory())

        await acquisition.shutdown()

        self.assertEqual(acquisition.state, WorkerState.UNINITIALIZED)

    async def test_shutdown_terminates_worker(self):
        factory = CountingFactory(delay=0)
        acquisition = TextAcquisition(factory)
        await acquisition.acquire()

        await acquisition.shutdown()

        self.assertTrue(factory.workers[0].terminated)
        self.assertEqual(acquisition.state, WorkerState.UNINITIALIZED)


def _slow_factory():
    return FakeWorker(delay=0.2)


class TestTesseractWorker(unittest.TestCase):
    """Unit tests for the Tesseract-backed worker."""

    @staticmethod
    def _png_bytes():
        buffer = BytesIO()
        Image.new("RGB", (8, 8), "white").save(buffer, format="PNG")
        return buffer.getvalue()

    @patch("caseintake.ocr.worker.pytesseract")
    def test_recognize(self, mock_pytesseract):
        mock_pytesseract.get_tesseract_version.return_value = "5.3.0"
        mock_pytesseract.image_to_string.return_value = "Operation Note"

        worker = TesseractWorker(language="eng")
        text = worker.recognize(self._png_bytes())

        self.assertEqual(text, "Operation Note")
        _, kwargs = mock_pytesseract.image_to_string.call_args
        self.assertEqual(kwargs["lang"], "eng")

    @patch("caseintake.ocr.worker.pytesseract")
    def test_construction_fails_without_engine(self, mock_pytesseract):
        mock_pytesseract.get_tesseract_version.side_effect = EnvironmentError("not found")

        with self.assertRaises(EnvironmentError):
            TesseractWorker()

    @patch("caseintake.ocr.worker.pytesseract")
    def test_custom_command(self, mock_pytesseract):
        mock_pytesseract.pytesseract = MagicMock()

        TesseractWorker(tesseract_cmd="/opt/tesseract/bin/tesseract")

        self.assertEqual(mock_pytesseract.pytesseract.tesseract_cmd, "/opt/tesseract/bin/tesseract")

    def test_create_from_settings(self):
        config = Settings(OCR_TIMEOUT_SECONDS=5, OCR_LANGUAGE="eng+mri")

        acquisition = create_text_acquisition(config)

        self.assertIsInstance(acquisition, TextAcquisition)
        self.assertEqual(acquisition.state, WorkerState.UNINITIALIZED)


if __name__ == "__main__":
    unittest.main()
