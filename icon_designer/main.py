import sys
import argparse
import logging
from pathlib import Path

from icon_designer import __version__
from icon_designer.core.compositor import default_context
from icon_designer.core.errors import IconDesignerError
from icon_designer.core.ico_codec import import_ico, parse
from icon_designer.core.icon_generator import (
    export_ico,
    export_png_folder,
    export_png_zip,
    save_export,
)
from icon_designer.core.image_handler import load_image_with_alpha, save_png
from icon_designer.core.models import Color, ColorKind, LayerKind, LayerStack
from icon_designer.core.project import load_project, save_project
from icon_designer.core.svg_import import import_svg
from icon_designer.core.transparency import build_preview_sheet
from icon_designer.utils.config import AppConfig, EXPORT_FORMATS
from icon_designer.utils.helpers import human_readable_size, parse_sizes_list
from icon_designer.utils.logging_config import setup_logging
from icon_designer.utils.validators import validate_sizes

logger = logging.getLogger("icon_designer.cli")


def parse_color_arg(value: str, gradient: str | None) -> Color:
    """
    '#EA580C' -> solid; '#EA580C:#7C2D12' -> gradient of the --gradient kind
    (linear when not given).
    """
    start, _, end = value.partition(":")
    if not end:
        return Color.solid(start)
    kind = ColorKind(gradient or "linear")
    if kind is ColorKind.SOLID:
        return Color.solid(start)
    return Color(kind, start, end)


def build_stack(args) -> LayerStack:
    stack = load_project(args.project) if args.project else LayerStack.default()

    for kind, value in (
        (LayerKind.BACK_FOLDER, args.back_color),
        (LayerKind.FRONT_FOLDER, args.front_color),
        (LayerKind.USER_IMAGE, args.image_color),
    ):
        if value:
            stack.get(kind).update(color=parse_color_arg(value, args.gradient), use_color=True)

    user = stack.user_image
    if args.image:
        user.update(image_source=load_image_with_alpha(args.image, max_edit_dimension=args.max_dim))
    if args.ico:
        result = import_ico(Path(args.ico).read_bytes(), resample=args.resample)
        if result.fallbacks:
            print(f"Warning: placeholder used for sizes {sorted(int(s) for s in result.fallbacks)}")
        stack.apply_size_sources(result.sources)
    if args.svg:
        result = import_svg(Path(args.svg).read_bytes(), resample=args.resample)
        stack.apply_size_sources(result.sources)
    if args.opacity is not None:
        user.update(opacity=args.opacity)
    if args.scale is not None:
        user.update(scale=args.scale)
    return stack


def run_cli_single(args, config: AppConfig):
    sizes = validate_sizes(parse_sizes_list(args.sizes)) if args.sizes else None
    context = default_context(args.asset_dir or config.asset_dir, args.resample)
    stack = build_stack(args)
    export_kwargs = {"context": context, "workers": args.workers or config.workers}
    if sizes:
        export_kwargs["sizes"] = sizes

    if args.preview:
        save_png(build_preview_sheet(stack, context=context), args.preview)
        print(f"Saved preview: {args.preview}")

    if args.output:
        output_path = Path(args.output)
        fmt = args.format or config.export_format
        if fmt == "png-zip":
            result = export_png_zip(stack, **export_kwargs)
        else:
            result = export_ico(stack, **export_kwargs)
        save_export(result, output_path)
        for size, cause in sorted(result.failures.items()):
            print(f"Warning: {size}px omitted: {cause}")
        print(f"Exported {fmt.upper()}: {output_path} ({human_readable_size(len(result.payload))})")
        config.add_recent(output_path)
        config.save()

        if args.export_pngs:
            png_dir = output_path.parent / f"{output_path.stem}_png"
            export_png_folder(stack, png_dir, **export_kwargs)
            print(f"Saved PNG set to: {png_dir}")

    if args.save_project:
        save_project(stack, args.save_project)
        print(f"Saved project: {args.save_project}")


def run_cli_batch(args, config: AppConfig):
    in_dir = Path(args.input_dir)
    out_dir = Path(args.out_dir) if args.out_dir else in_dir / "ico_output"
    pattern = args.pattern or "*.png"
    if not in_dir.exists():
        print(f"Error: Input directory not found: {in_dir}")
        sys.exit(1)
    out_dir.mkdir(parents=True, exist_ok=True)
    context = default_context(args.asset_dir or config.asset_dir, args.resample)

    count = 0
    for path in sorted(in_dir.rglob(pattern)):
        if not path.is_file():
            continue
        try:
            img = load_image_with_alpha(path, max_edit_dimension=args.max_dim)
        except (OSError, ValueError) as e:
            print(f"[SKIP] {path.name}: {e}")
            continue

        stack = LayerStack.default()
        stack.user_image.update(image_source=img)
        if args.scale is not None:
            stack.user_image.update(scale=args.scale)
        out_ico = out_dir / f"{path.stem}.ico"
        try:
            save_export(export_ico(stack, context=context, workers=args.workers or config.workers), out_ico)
            print(f"[OK] {path.name} -> {out_ico.name}")
            count += 1
        except IconDesignerError as e:
            print(f"[FAIL] {path.name}: {e}")
    print(f"Batch complete. {count} icons exported to {out_dir}")


def run_info(args):
    path = Path(args.info)
    images = parse(path.read_bytes())
    print(f"{path.name}: {len(images)} image(s)")
    for im in images:
        print(f"  {im.width}x{im.height}  {im.format.value:<4} {human_readable_size(len(im.raw_bytes))}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Folder Icon Designer")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--project", type=str, help="Project JSON with the layer stack")
    parser.add_argument("--image", type=str, help="Image for the user layer")
    parser.add_argument("--ico", type=str, help="ICO file to import as per-size user images")
    parser.add_argument("--svg", type=str, help="SVG file to import as per-size user images")
    parser.add_argument("--output", type=str, help="Output path (.ico or .zip)")
    parser.add_argument("--format", type=str, choices=EXPORT_FORMATS, help="Export format")
    parser.add_argument("--sizes", type=str, help="Comma-separated subset of 16,20,24,32,40,64,256")
    parser.add_argument("--export-pngs", action="store_true", help="Also export PNG set for each size")
    parser.add_argument("--preview", type=str, help="Write a PNG preview strip of all sizes")
    parser.add_argument("--back-color", type=str, help="Tint for the back folder (#hex or #start:#end)")
    parser.add_argument("--front-color", type=str, help="Tint for the front folder (#hex or #start:#end)")
    parser.add_argument("--image-color", type=str, help="Tint for the user image (#hex or #start:#end)")
    parser.add_argument("--gradient", type=str, choices=[k.value for k in ColorKind],
                        help="Gradient kind used for #start:#end colors")
    parser.add_argument("--opacity", type=int, help="User image opacity 0-100")
    parser.add_argument("--scale", type=float, help="User image scale 0.1-2.0")
    parser.add_argument("--save-project", type=str, help="Write the resulting layer stack to JSON")
    parser.add_argument("--asset-dir", type=str, help="Directory with folder-back-N.png / folder-front-N.png")
    parser.add_argument("--resample", type=str, default="lanczos",
                        choices=["nearest", "bilinear", "bicubic", "lanczos"],
                        help="Resampling algorithm")
    parser.add_argument("--workers", type=int, help="Render sizes in parallel with this many threads")
    parser.add_argument("--max-dim", type=int, default=3072, help="Max dimension to downscale large input images")
    parser.add_argument("--info", type=str, help="List the images inside an ICO file")
    parser.add_argument("--config", type=str, help="Settings file (default ~/.icon_designer_config.json)")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--log-file", type=str, help="Also write the log to this file")

    # Batch mode
    parser.add_argument("--input-dir", type=str, help="Input directory for batch")
    parser.add_argument("--pattern", type=str, help="Glob pattern for input (e.g., '*.png')")
    parser.add_argument("--out-dir", type=str, help="Output directory for batch output")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING, args.log_file)
    config = AppConfig(Path(args.config) if args.config else None)

    try:
        if args.info:
            run_info(args)
        elif args.input_dir:
            run_cli_batch(args, config)
        elif args.output or args.preview or args.save_project:
            run_cli_single(args, config)
        else:
            parser.print_help()
    except (IconDesignerError, OSError, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
