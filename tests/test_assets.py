import pytest
from PIL import Image

from icon_designer.core.assets import FolderAssets, asset_filename, closest_size, draw_folder
from icon_designer.core.errors import RenderError
from icon_designer.core.models import CANONICAL_SIZES, LayerKind


@pytest.mark.parametrize("size", list(CANONICAL_SIZES))
def test_closest_size_is_exact_for_canonical(size):
    assert closest_size(size) == size


def test_closest_size_picks_nearest():
    assert closest_size(30) == 32
    assert closest_size(100) == 64
    assert closest_size(1000) == 256


def test_closest_size_tie_keeps_first_listed():
    assert closest_size(18, [16, 20]) == 16
    assert closest_size(18, [20, 16]) == 20


def test_closest_size_needs_candidates():
    with pytest.raises(RenderError):
        closest_size(16, [])


def test_builtin_artwork_covers_every_size():
    assets = FolderAssets.build()
    for kind in (LayerKind.BACK_FOLDER, LayerKind.FRONT_FOLDER):
        assert sorted(assets.sizes(kind)) == [int(s) for s in CANONICAL_SIZES]
        for size in CANONICAL_SIZES:
            img = assets.select(kind, size)
            assert img.size == (size, size)
            assert img.mode == "RGBA"
            assert img.getchannel("A").getbbox() is not None


def test_front_folder_leaves_tab_area_clear():
    front = draw_folder(LayerKind.FRONT_FOLDER, 256)
    back = draw_folder(LayerKind.BACK_FOLDER, 256)
    # tab sits above the front panel
    assert front.getpixel((60, 50))[3] == 0
    assert back.getpixel((60, 50))[3] == 255


def test_asset_dir_overrides_builtin(tmp_path):
    Image.new("RGBA", (16, 16), (255, 0, 0, 255)).save(tmp_path / asset_filename(LayerKind.BACK_FOLDER, 16))
    assets = FolderAssets.build(tmp_path)
    assert assets.select(LayerKind.BACK_FOLDER, 16).getpixel((8, 8)) == (255, 0, 0, 255)
    assert assets.select(LayerKind.BACK_FOLDER, 32).getpixel((16, 16)) != (255, 0, 0, 255)


def test_asset_filenames():
    assert asset_filename(LayerKind.BACK_FOLDER, 20) == "folder-back-20.png"
    assert asset_filename(LayerKind.FRONT_FOLDER, 256) == "folder-front-256.png"


def test_select_without_artwork():
    with pytest.raises(RenderError):
        FolderAssets({}).select(LayerKind.FRONT_FOLDER, 32)


def test_draw_folder_rejects_user_image():
    with pytest.raises(RenderError):
        draw_folder(LayerKind.USER_IMAGE, 32)
