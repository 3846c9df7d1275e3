"""Batch generation: many independent codes on a worker pool.

Each item runs the full pipeline with its own canvases, so workers share no
mutable state. Cancellation is cooperative: it is checked before an item
starts, never in the middle of one.
"""

import re
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from qrstyle.errors import EncodingError
from qrstyle.logging import audit, get_logger, trace
from qrstyle.options import StyleOptions
from qrstyle.pipeline import GeneratedCode, generate

log = get_logger("batch")

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass
class BatchItem:
    text: str
    name: str | None = None
    caption: str | None = None


@dataclass
class BatchResult:
    item: BatchItem
    code: GeneratedCode | None = None
    error: str | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.code is not None


@dataclass
class BatchReport:
    results: list[BatchResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.error is not None)

    @property
    def cancelled(self) -> int:
        return sum(1 for r in self.results if r.cancelled)


def safe_filename(text: str, index: int, ext: str) -> str:
    stem = _UNSAFE.sub("_", text).strip("_")[:60] or "qr"
    return f"{index:04d}_{stem}.{ext}"


@trace
def generate_batch(
    items: list[BatchItem],
    options: StyleOptions | None = None,
    *,
    workers: int = 4,
    cancel_event: threading.Event | None = None,
    asset_loader=None,
) -> BatchReport:
    """Generate every item; results keep the input order.

    An item that fails, for lack of capacity or anything else, is reported
    with its error and the batch carries on.
    """
    options = options or StyleOptions()
    cancel_event = cancel_event or threading.Event()

    def run_one(item: BatchItem) -> BatchResult:
        if cancel_event.is_set():
            return BatchResult(item, cancelled=True)
        try:
            code = generate(item.text, options, item.caption, asset_loader=asset_loader)
        except EncodingError as exc:
            log.warning("Skipping %r: %s", item.name or item.text[:40], exc)
            return BatchResult(item, error=str(exc))
        except Exception as exc:
            log.warning("Item %r failed: %s", item.name or item.text[:40], exc, exc_info=True)
            audit("batch.item_failed", logger=log, text=item.text[:80], error=str(exc))
            return BatchResult(item, error=f"{type(exc).__name__}: {exc}")
        return BatchResult(item, code=code)

    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        results = list(pool.map(run_one, items))

    report = BatchReport(results)
    audit("batch.completed", logger=log,
          total=len(items), succeeded=report.succeeded,
          failed=report.failed, cancelled=report.cancelled)
    return report


def write_report(report: BatchReport, out_dir: str | Path, ext: str) -> list[Path]:
    """Save every generated code into *out_dir*; returns the written paths."""
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    written = []
    for index, result in enumerate(report.results, start=1):
        if not result.ok:
            continue
        name = result.item.name or safe_filename(result.item.text, index, ext)
        if not name.endswith(f".{ext}"):
            name = f"{name}.{ext}"
        path = out / name
        path.write_bytes(result.code.data)
        written.append(path)
    return written
