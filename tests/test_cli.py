import json
import zipfile

import pytest
from PIL import Image

from icon_designer.core.ico_codec import parse
from icon_designer.core.models import LayerKind
from icon_designer.core.project import load_project
from icon_designer.main import build_parser, main, parse_color_arg


@pytest.fixture
def run(tmp_path):
    config = tmp_path / "config.json"

    def _run(*argv):
        main(["--config", str(config), *argv])

    _run.config = config
    return _run


@pytest.fixture
def logo(tmp_path):
    path = tmp_path / "logo.png"
    Image.new("RGBA", (100, 60), (0, 0, 255, 255)).save(path)
    return path


def test_parse_color_arg():
    assert parse_color_arg("#123456", None).kind.value == "solid"
    grad = parse_color_arg("#123456:#abcdef", None)
    assert (grad.kind.value, grad.primary, grad.secondary) == ("linear", "#123456", "#abcdef")
    assert parse_color_arg("#123:#456", "radial").kind.value == "radial"


def test_export_default_ico(run, tmp_path, capsys):
    out = tmp_path / "folder.ico"
    run("--output", str(out))
    images = parse(out.read_bytes())
    assert [im.width for im in images] == [16, 20, 24, 32, 40, 64, 256]
    assert "Exported ICO" in capsys.readouterr().out
    assert json.loads(run.config.read_text())["recent_files"] == [str(out)]


def test_export_png_zip_subset(run, tmp_path):
    out = tmp_path / "folder.zip"
    run("--output", str(out), "--format", "png-zip", "--sizes", "16,256")
    with zipfile.ZipFile(out) as zf:
        assert zf.namelist() == ["icon_16x16.png", "icon_256x256.png"]


def test_export_with_image_and_pngs(run, tmp_path, logo):
    out = tmp_path / "out" / "folder.ico"
    run("--output", str(out), "--image", str(logo), "--scale", "0.5", "--opacity", "80",
        "--back-color", "#22C55E:#166534", "--export-pngs")
    assert out.exists()
    pngs = sorted(p.name for p in (out.parent / "folder_png").iterdir())
    assert len(pngs) == 7
    assert "icon_256x256.png" in pngs


def test_save_and_reload_project(run, tmp_path, logo):
    project = tmp_path / "design.json"
    run("--image", str(logo), "--front-color", "#0EA5E9", "--save-project", str(project))
    stack = load_project(project)
    front = stack.get(LayerKind.FRONT_FOLDER)
    assert front.use_color and front.color.primary == "#0EA5E9"
    assert stack.user_image.image_source.startswith("data:image/png;base64,")

    out = tmp_path / "from_project.ico"
    run("--project", str(project), "--output", str(out))
    assert len(parse(out.read_bytes())) == 7


def test_import_ico_as_user_image(run, tmp_path, ico_factory, png_factory):
    source = tmp_path / "app.ico"
    source.write_bytes(ico_factory([(32, 32, png_factory(32, (0, 255, 0, 255)))]))
    project = tmp_path / "design.json"
    run("--ico", str(source), "--save-project", str(project))
    user = load_project(project).user_image
    assert user.image_source is None
    assert sorted(int(s) for s in user.image_source_by_size) == [16, 20, 24, 32, 40, 64, 256]


def test_preview_sheet(run, tmp_path):
    preview = tmp_path / "preview.png"
    run("--preview", str(preview))
    assert Image.open(preview).width > 7 * 72


def test_info(run, tmp_path, capsys):
    out = tmp_path / "folder.ico"
    run("--output", str(out), "--sizes", "16,32")
    capsys.readouterr()
    run("--info", str(out))
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "folder.ico: 2 image(s)"
    assert lines[1].strip().startswith("16x16  png")


def test_batch_mode(run, tmp_path, logo, capsys):
    (tmp_path / "broken.png").write_bytes(b"not really a png")
    out_dir = tmp_path / "icons"
    run("--input-dir", str(tmp_path), "--pattern", "*.png", "--out-dir", str(out_dir))
    stdout = capsys.readouterr().out
    assert "[OK] logo.png -> logo.ico" in stdout
    assert "[SKIP] broken.png" in stdout
    assert (out_dir / "logo.ico").exists()


def test_bad_color_exits_with_error(run, tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        run("--output", str(tmp_path / "x.ico"), "--back-color", "orange")
    assert exc.value.code == 1
    assert capsys.readouterr().out.startswith("Error:")


def test_non_finite_opacity_in_project_exits_with_error(run, tmp_path, capsys):
    project = tmp_path / "design.json"
    run("--save-project", str(project))
    data = json.loads(project.read_text())
    data["layers"][-1]["opacity"] = float("inf")
    project.write_text(json.dumps(data))
    capsys.readouterr()

    with pytest.raises(SystemExit) as exc:
        run("--project", str(project), "--output", str(tmp_path / "x.ico"))
    assert exc.value.code == 1
    assert capsys.readouterr().out.startswith("Error:")


def test_bad_size_exits_with_error(run, tmp_path):
    with pytest.raises(SystemExit) as exc:
        run("--output", str(tmp_path / "x.ico"), "--sizes", "48")
    assert exc.value.code == 1


def test_no_action_prints_help(run, capsys):
    run()
    assert "Folder Icon Designer" in capsys.readouterr().out


def test_parser_rejects_unknown_format():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--format", "gif"])
