import copy

import pytest

from icon_designer.core.errors import ValidationError
from icon_designer.core.models import Layer, LayerKind, Position
from icon_designer.core.resolution import resolve


def test_position_override_precedence():
    layer = Layer("user-image", LayerKind.USER_IMAGE, position=Position(10, 10))
    layer.set_position(Position(50, 50), size=32)
    assert resolve(layer, 32).position == Position(50, 50)
    assert resolve(layer, 16).position == Position(10, 10)


def test_visibility_and_scale_overrides():
    layer = Layer("user-image", LayerKind.USER_IMAGE, scale=1.5)
    layer.set_visible(False, size=16)
    layer.set_scale(0.5, size=256)
    assert resolve(layer, 16).visible is False
    assert resolve(layer, 20).visible is True
    assert resolve(layer, 256).scale == 0.5
    assert resolve(layer, 64).scale == 1.5


def test_override_can_make_hidden_layer_visible():
    layer = Layer("user-image", LayerKind.USER_IMAGE, visible=False)
    layer.set_visible(True, size=24)
    assert resolve(layer, 24).visible is True
    assert resolve(layer, 40).visible is False


def test_image_source_prefers_per_size():
    layer = Layer("user-image", LayerKind.USER_IMAGE, image_source=b"global")
    layer.image_source_by_size = {32: b"only-32"}
    assert resolve(layer, 32).image_source == b"only-32"
    assert resolve(layer, 16).image_source == b"global"


def test_folder_layers_never_resolve_an_image():
    layer = Layer("back-folder", LayerKind.BACK_FOLDER)
    assert resolve(layer, 256).image_source is None


def test_resolve_is_pure():
    layer = Layer("user-image", LayerKind.USER_IMAGE, position=Position(3, 4))
    layer.set_scale(0.3, size=20)
    before = copy.deepcopy(layer)
    first = resolve(layer, 20)
    second = resolve(layer, 20)
    assert first == second
    assert layer == before


def test_resolve_rejects_non_canonical_size():
    with pytest.raises(ValidationError):
        resolve(Layer("user-image", LayerKind.USER_IMAGE), 48)
