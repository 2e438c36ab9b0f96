"""
Background barcode scanner.

Design:
- Runs in its own thread so the UI stays responsive.
- One scan session at a time:
    1) Open the camera (cv2.VideoCapture); failure -> CameraError via on_error.
    2) Poll frames; hand each to on_frame (preview) and to the detector.
    3) The first non-empty decoded value ends the session and goes to on_detect.
    4) stop() cancels; the camera is released on every exit path.
- Detector selection mirrors "native first, library fallback":
    OpenCV's built-in cv2.barcode detector when present, else pyzbar.
- Thread-safety: Callbacks run on the scanner thread; the UI posts them back to the
                 Tk main thread with root.after().
"""

import logging
import threading
import time
from typing import Callable, List, Optional

import cv2

from .config import CAMERA_INDEX, SCAN_POLL_INTERVAL_SEC
from .errors import CameraError

logger = logging.getLogger(__name__)

Detector = Callable[[object], List[str]]


class OpenCVDetector:
    """Built-in OpenCV barcode detector (EAN/UPC/Code128 and friends)."""

    def __init__(self) -> None:
        self._detector = cv2.barcode.BarcodeDetector()

    def __call__(self, frame) -> List[str]:
        ok, decoded_info, _types, _points = self._detector.detectAndDecodeWithType(frame)
        if not ok:
            return []
        return [text for text in decoded_info if text]


class PyzbarDetector:
    """zbar-based fallback detector."""

    def __init__(self) -> None:
        try:
            from pyzbar import pyzbar
        except ImportError as e:  # zbar shared library missing
            raise CameraError("Camera scanner not available.") from e
        self._decode = pyzbar.decode

    def __call__(self, frame) -> List[str]:
        return [r.data.decode("utf-8", errors="replace") for r in self._decode(frame) if r.data]


def make_detector() -> Detector:
    """
    Purpose: Pick the barcode detector for this machine.
    Outputs: Callable(frame) -> list of decoded strings.
    Raises: CameraError when no detector can be loaded.
    """
    # detectAndDecodeWithType arrived with the main-module barcode detector (OpenCV 4.8)
    if hasattr(cv2, "barcode") and hasattr(getattr(cv2.barcode, "BarcodeDetector", None), "detectAndDecodeWithType"):
        try:
            return OpenCVDetector()
        except cv2.error as e:
            logger.info("OpenCV barcode detector unavailable (%s); falling back to pyzbar", e)
    return PyzbarDetector()


class ScanSession:
    """
    Design (ScanSession)
    - State owned by one scan: stop flag and the acquired camera handle.
    - active is True from start until stop/detection/error.
    """

    def __init__(self) -> None:
        self._stop = threading.Event()
        self._done = threading.Event()
        self.capture = None
        self.result: Optional[str] = None
        self.error: Optional[Exception] = None

    @property
    def active(self) -> bool:
        return not self._done.is_set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the session has ended and the camera is released."""
        return self._done.wait(timeout)

    def release(self) -> None:
        if self.capture is not None:
            try:
                self.capture.release()
            finally:
                self.capture = None
                logger.info("Camera released")


class BarcodeScanner:
    def __init__(
        self,
        on_detect: Callable[[str], None],
        on_error: Callable[[Exception], None],
        on_frame: Optional[Callable[[object], None]] = None,
        capture_factory: Optional[Callable[[int], object]] = None,
        detector: Optional[Detector] = None,
        camera_index: int = CAMERA_INDEX,
        poll_interval: float = SCAN_POLL_INTERVAL_SEC,
    ):
        self.on_detect = on_detect
        self.on_error = on_error
        self.on_frame = on_frame
        self.capture_factory = capture_factory or cv2.VideoCapture
        self.detector = detector
        self.camera_index = camera_index
        self.poll_interval = poll_interval
        self._session: Optional[ScanSession] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def session(self) -> Optional[ScanSession]:
        return self._session

    @property
    def scanning(self) -> bool:
        return self._session is not None and self._session.active

    def start(self) -> ScanSession:
        if self.scanning:
            return self._session
        session = ScanSession()
        self._session = session
        self._thread = threading.Thread(target=self._run, args=(session,), daemon=True)
        self._thread.start()
        logger.info("Scan session started (camera %d)", self.camera_index)
        return session

    def stop(self) -> None:
        if self._session is not None and self._session.active:
            self._session.stop()
            logger.info("Scan session stop requested")

    def shutdown(self, timeout: float = 1.0) -> bool:
        """Stop any session and wait for its camera release. False if it outlived timeout."""
        session = self._session
        if session is None:
            return True
        self.stop()
        return session.wait(timeout)

    def _run(self, session: ScanSession) -> None:
        try:
            try:
                session.result = self._scan(session)
            except Exception as e:
                session.error = e if isinstance(e, CameraError) else CameraError(f"Camera scanner failed: {e}")
                logger.error("Scan session failed: %s", session.error)
            finally:
                session.release()

            # callbacks run after the camera is released
            if session.error is not None:
                self.on_error(session.error)
            elif session.result:
                logger.info("Scanned barcode %s", session.result)
                self.on_detect(session.result)
            else:
                logger.info("Scan session stopped without a detection")
        finally:
            session._done.set()

    def _scan(self, session: ScanSession) -> Optional[str]:
        detector = self.detector or make_detector()
        session.capture = self.capture_factory(self.camera_index)
        if session.capture is None or not session.capture.isOpened():
            raise CameraError("Unable to access camera.")

        while not session.stopped:
            ok, frame = session.capture.read()
            if ok and frame is not None:
                if self.on_frame is not None:
                    self.on_frame(frame)
                try:
                    codes = detector(frame)
                except Exception as e:
                    logger.debug("Detector failed on frame: %s", e)
                    codes = []
                for code in codes:
                    if code and not session.stopped:
                        return code
            time.sleep(self.poll_interval)
        return None
