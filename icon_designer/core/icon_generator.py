import logging
import threading
import zipfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Iterable, Optional

from icon_designer.core.compositor import RenderContext, RenderReport, default_context, render_with_report
from icon_designer.core.errors import ExportCancelled, IconDesignerError, RenderError
from icon_designer.core.ico_codec import write_ico
from icon_designer.core.image_handler import pil_to_png_bytes
from icon_designer.core.models import CANONICAL_SIZES, Layer
from icon_designer.utils.validators import validate_sizes

logger = logging.getLogger(__name__)

ARCHIVE_ENTRY = "icon_{size}x{size}.png"


@dataclass
class ExportResult:
    payload: bytes = b""
    images: dict[int, bytes] = field(default_factory=dict)
    failures: dict[int, str] = field(default_factory=dict)
    reports: dict[int, RenderReport] = field(default_factory=dict)

    @property
    def sizes(self) -> list[int]:
        return sorted(self.images)


def _check_cancel(cancel: Optional[threading.Event]):
    if cancel is not None and cancel.is_set():
        raise ExportCancelled("Export cancelled")


def _render_png(layers: list[Layer], size: int, context: RenderContext):
    image, report = render_with_report(layers, size, context)
    return pil_to_png_bytes(image), report


def render_png_set(
    layers: Iterable[Layer],
    sizes: Iterable[int] = CANONICAL_SIZES,
    context: RenderContext | None = None,
    workers: int = 1,
    cancel: Optional[threading.Event] = None,
) -> ExportResult:
    """
    Render and PNG-encode every requested size. A size that fails is left out
    and its cause recorded in `failures`; the other sizes are unaffected.
    """
    layers = list(layers)
    ctx = context or default_context()
    result = ExportResult()
    wanted = validate_sizes(sizes)
    recoverable = (IconDesignerError, OSError, ValueError)

    def record(size, outcome):
        png, report = outcome
        result.images[size] = png
        result.reports[size] = report

    def fail(size, exc):
        logger.warning("Rendering %spx failed, leaving it out: %s", size, exc)
        result.failures[size] = str(exc)

    if workers <= 1:
        for size in wanted:
            _check_cancel(cancel)
            try:
                record(size, _render_png(layers, size, ctx))
            except ExportCancelled:
                raise
            except recoverable as exc:
                fail(size, exc)
    else:
        executor = ThreadPoolExecutor(max_workers=workers)
        try:
            futures = {executor.submit(_render_png, layers, size, ctx): size for size in wanted}
            for future in as_completed(futures):
                _check_cancel(cancel)
                size = futures[future]
                try:
                    record(size, future.result())
                except recoverable as exc:
                    fail(size, exc)
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

    _check_cancel(cancel)
    if not result.images:
        raise RenderError("No sizes could be rendered")
    result.images = dict(sorted(result.images.items()))
    return result


def export_ico(layers: Iterable[Layer], sizes: Iterable[int] = CANONICAL_SIZES, context: RenderContext | None = None,
               workers: int = 1, cancel: Optional[threading.Event] = None) -> ExportResult:
    result = render_png_set(layers, sizes, context, workers, cancel)
    result.payload = write_ico(result.images)
    logger.info("Built ICO with %d sizes (%d bytes)", len(result.images), len(result.payload))
    return result


def export_png_zip(layers: Iterable[Layer], sizes: Iterable[int] = CANONICAL_SIZES, context: RenderContext | None = None,
                   workers: int = 1, cancel: Optional[threading.Event] = None) -> ExportResult:
    result = render_png_set(layers, sizes, context, workers, cancel)
    buf = BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for size, png in result.images.items():
            zf.writestr(ARCHIVE_ENTRY.format(size=size), png)
    result.payload = buf.getvalue()
    logger.info("Built PNG archive with %d sizes (%d bytes)", len(result.images), len(result.payload))
    return result


def export_png_folder(layers: Iterable[Layer], out_dir: str | Path, sizes: Iterable[int] = CANONICAL_SIZES,
                      context: RenderContext | None = None, workers: int = 1) -> ExportResult:
    result = render_png_set(layers, sizes, context, workers)
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    for size, png in result.images.items():
        (out / ARCHIVE_ENTRY.format(size=size)).write_bytes(png)
    return result


def save_export(result: ExportResult, out_path: str | Path) -> Path:
    if not result.payload:
        raise ValueError("Nothing to save.")
    p = Path(out_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(result.payload)
    return p
