"""Scan verification: decode a rendered code with real decoders."""

import time
from dataclasses import dataclass

import cv2
import numpy as np
from PIL import Image
from pyzbar.pyzbar import ZBarSymbol
from pyzbar.pyzbar import decode as pyzbar_decode

from qrstyle.logging import audit, get_logger, trace

log = get_logger("verify")


@dataclass
class ScanResult:
    """Outcome of one decoder on one image."""
    success: bool
    decoded_data: str | None = None
    decode_time_ms: float = 0.0
    decoder: str = ""
    error: str | None = None


def _result(decoder: str, start: float, data: str | None = None, error: str | None = None) -> ScanResult:
    elapsed = (time.perf_counter() - start) * 1000
    result = ScanResult(
        success=bool(data),
        decoded_data=data or None,
        decode_time_ms=elapsed,
        decoder=decoder,
        error=None if data else (error or "No QR code detected"),
    )
    audit("scan.attempted", logger=log, decoder=decoder, success=result.success,
          time_ms=round(elapsed, 1), data=(data or "")[:80], error=result.error)
    return result


def scan_pyzbar(image: Image.Image) -> ScanResult:
    start = time.perf_counter()
    try:
        found = pyzbar_decode(image.convert("L"), symbols=[ZBarSymbol.QRCODE])
    except Exception as exc:
        return _result("pyzbar/zbar", start, error=str(exc))
    data = found[0].data.decode("utf-8", errors="replace") if found else None
    return _result("pyzbar/zbar", start, data=data)


def scan_opencv(image: Image.Image) -> ScanResult:
    start = time.perf_counter()
    try:
        gray = cv2.cvtColor(np.array(image.convert("RGB")), cv2.COLOR_RGB2GRAY)
        data, _points, _ = cv2.QRCodeDetector().detectAndDecode(gray)
    except cv2.error as exc:
        return _result("opencv", start, error=str(exc))
    return _result("opencv", start, data=data or None)


SCANNERS = (scan_pyzbar, scan_opencv)


@trace
def verify(image: Image.Image, expected_data: str | None = None) -> list[ScanResult]:
    """Run every decoder on *image*.

    A decode that does not match *expected_data* counts as a failure.
    """
    results = []
    for scanner in SCANNERS:
        result = scanner(image)
        if result.success and expected_data is not None and result.decoded_data != expected_data:
            result.success = False
            result.error = f"Data mismatch: got {result.decoded_data!r}, expected {expected_data!r}"
        results.append(result)
    return results
