import threading
import zipfile
from io import BytesIO

import pytest
from PIL import Image

from icon_designer.core import icon_generator
from icon_designer.core.errors import ExportCancelled, RenderError
from icon_designer.core.ico_codec import ImageFormat, parse
from icon_designer.core.icon_generator import (
    export_ico,
    export_png_folder,
    export_png_zip,
    render_png_set,
    save_export,
)

ALL_SIZES = [16, 20, 24, 32, 40, 64, 256]


def test_default_stack_exports_seven_size_ico(stack):
    result = export_ico(stack)
    data = result.payload
    assert data[:6] == bytes([0x00, 0x00, 0x01, 0x00, 0x07, 0x00])
    widths = [data[6 + i * 16] for i in range(7)]
    heights = [data[6 + i * 16 + 1] for i in range(7)]
    assert widths == [16, 20, 24, 32, 40, 64, 0]
    assert heights == widths
    assert result.sizes == ALL_SIZES
    assert not result.failures

    for im in parse(data):
        assert im.format is ImageFormat.PNG
        assert Image.open(BytesIO(im.raw_bytes)).size == (im.width, im.height)


def test_png_zip_entries(stack):
    result = export_png_zip(stack)
    with zipfile.ZipFile(BytesIO(result.payload)) as zf:
        names = zf.namelist()
        assert names == [f"icon_{s}x{s}.png" for s in ALL_SIZES]
        for size in ALL_SIZES:
            img = Image.open(BytesIO(zf.read(f"icon_{size}x{size}.png")))
            assert img.size == (size, size)


def test_size_subset(stack):
    result = export_ico(stack, sizes=[256, 16])
    assert [im.width for im in parse(result.payload)] == [16, 256]


def test_failed_size_is_omitted(stack, monkeypatch):
    real = icon_generator.render_with_report

    def flaky(layers, size, context=None):
        if size == 20:
            raise RenderError("boom")
        return real(layers, size, context)

    monkeypatch.setattr(icon_generator, "render_with_report", flaky)
    result = export_ico(stack)
    assert 20 not in result.images
    assert result.failures == {20: "boom"}
    widths = [im.width for im in parse(result.payload)]
    assert widths == [16, 24, 32, 40, 64, 256]


def test_all_sizes_failing_raises(stack, monkeypatch):
    def broken(layers, size, context=None):
        raise RenderError("nope")

    monkeypatch.setattr(icon_generator, "render_with_report", broken)
    with pytest.raises(RenderError):
        render_png_set(stack)


def test_parallel_export_matches_sequential(stack, png_factory):
    stack.user_image.update(image_source=png_factory(48, (0, 128, 255, 255)), scale=0.5)
    sequential = export_ico(stack, workers=1)
    parallel = export_ico(stack, workers=4)
    assert parallel.payload == sequential.payload
    assert list(parallel.images) == ALL_SIZES


@pytest.mark.parametrize("workers", [1, 3])
def test_cancelled_export_emits_nothing(stack, workers):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(ExportCancelled):
        export_ico(stack, workers=workers, cancel=cancel)


def test_export_png_folder(tmp_path, stack):
    out = tmp_path / "pngs"
    export_png_folder(stack, out, sizes=[16, 64])
    assert sorted(p.name for p in out.iterdir()) == ["icon_16x16.png", "icon_64x64.png"]


def test_save_export(tmp_path, stack):
    result = export_ico(stack, sizes=[32])
    path = save_export(result, tmp_path / "nested" / "folder.ico")
    assert path.read_bytes() == result.payload
    with pytest.raises(ValueError):
        save_export(icon_generator.ExportResult(), tmp_path / "empty.ico")


def test_reports_collected_per_size(stack):
    stack.user_image.update(image_source=b"junk")
    result = render_png_set(stack, sizes=[16, 32])
    assert set(result.reports) == {16, 32}
    assert all(not report.clean for report in result.reports.values())
    assert not result.failures
