"""Command-line entry point for iconmatte."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from tqdm import tqdm

from .engine.options import ProcessingOptions
from .engine.pipeline import BatchItem, IconPipeline, ImageStatus
from .engine.quality import QUALITY_METHODS
from .errors import IconMatteError
from .utils.config import ConfigManager
from .utils.image_utils import (
    SUPPORTED_FORMATS,
    composite_on_background,
    encode_png,
    load_image,
)
from .utils.logging_utils import setup_logging
from .utils.paths import get_logs_dir


logger = logging.getLogger("iconmatte.main")


def _parse_param(text: str):
    """Parse a ``key=value`` pair, converting the value to int or float when possible."""
    if "=" not in text:
        raise argparse.ArgumentTypeError(f"Expected key=value, got {text!r}")
    key, value = text.split("=", 1)
    for cast in (int, float):
        try:
            return key.strip(), cast(value)
        except ValueError:
            pass
    return key.strip(), value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="iconmatte",
        description="Remove a known backdrop from icon images and clean up their edges.",
    )
    parser.add_argument("inputs", nargs="+", type=Path, help="Image files or directories.")
    parser.add_argument("-o", "--output", type=Path, help="Output directory (default: next to each input).")
    parser.add_argument("-r", "--reference", type=Path, help="Reference image of the backdrop.")
    parser.add_argument("-c", "--color", help="Backdrop color as hex, e.g. #ffffff (default: auto-detect).")
    parser.add_argument("-t", "--threshold", type=int, help="Matting sensitivity, 1-100.")

    edges = parser.add_argument_group("edge refinement")
    edges.add_argument("--no-smoothing", dest="edge_smoothing", action="store_const", const=False,
                       help="Disable alpha edge smoothing.")
    edges.add_argument("--remove-light-edges", action="store_const", const=True,
                       help="Fade bright semi-transparent edge pixels.")
    edges.add_argument("--erode", dest="erode_pixels", type=int, help="Erode the edge by N pixels (0-3).")
    edges.add_argument("--cleanup", dest="edge_cleanup", action="store_const", const=True,
                       help="Drop isolated light speckles.")
    edges.add_argument("--remove-glass", dest="remove_liquid_glass", action="store_const", const=True,
                       help="Remove a bright translucent outline.")
    edges.add_argument("--glass-width", dest="glass_outline_width", type=int,
                       help="Outline width for --remove-glass (1-5).")
    edges.add_argument("--glass-brightness", type=int,
                       help="Brightness threshold for --remove-glass (0-255).")

    quality = parser.add_argument_group("quality methods")
    quality.add_argument("-m", "--method", dest="quality_method", choices=sorted(QUALITY_METHODS),
                         help="Quality-enhancement method applied after refinement.")
    quality.add_argument("-p", "--param", dest="quality_params", action="append", type=_parse_param,
                         metavar="KEY=VALUE", help="Method parameter (repeatable).")

    overlay = parser.add_argument_group("overlay")
    overlay.add_argument("--overlay", type=Path, help="Composite each result onto this background.")
    overlay.add_argument("--icon-scale", type=float, help="Icon size relative to the overlay (0-1].")

    parser.add_argument("--config", type=Path, help="Settings file (default: user config directory).")
    parser.add_argument("--save-defaults", action="store_true",
                        help="Store the effective processing options as new defaults.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def collect_images(inputs: Sequence[Path], output_suffix: str) -> List[Path]:
    """
    Expand files and directories into a sorted list of image files.

    Files whose stem already ends with ``output_suffix`` are skipped.
    """
    found = []
    for path in inputs:
        if path.is_dir():
            candidates = sorted(p for p in path.iterdir() if p.is_file())
        else:
            candidates = [path]
        for p in candidates:
            if p.suffix.lower() not in SUPPORTED_FORMATS:
                if not path.is_dir():
                    logger.warning("Skipping unsupported file %s", p)
                continue
            if p.stem.endswith(output_suffix):
                continue
            found.append(p)
    return sorted(set(found), key=lambda p: (p.name, str(p)))


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = ConfigManager(args.config)
    setup_logging("DEBUG" if args.verbose else config.get("log_level", "INFO"), get_logs_dir())

    overrides: Dict[str, object] = {
        key: getattr(args, key)
        for key in (
            "threshold", "edge_smoothing", "remove_light_edges", "erode_pixels",
            "edge_cleanup", "remove_liquid_glass", "glass_outline_width",
            "glass_brightness", "quality_method",
        )
        if getattr(args, key) is not None
    }
    if args.color is not None:
        overrides["target_background_color"] = args.color
    if args.quality_method is not None:
        overrides["quality_params"] = dict(args.quality_params or [])
    elif args.quality_params:
        parser.error("--param requires --method")

    try:
        options: ProcessingOptions = config.processing_options(**overrides)
    except ValueError as e:
        parser.error(str(e))

    if args.save_defaults:
        config.store_processing_options(options)
        logger.info("Saved defaults to %s", config.config_path)

    suffix = config.get("output_suffix", "_no_bg")
    images = collect_images(args.inputs, suffix)
    if not images:
        logger.warning("No images found")
        return 0

    try:
        reference = load_image(args.reference) if args.reference else None
        overlay = load_image(args.overlay) if args.overlay else None
    except (FileNotFoundError, ValueError, IconMatteError) as e:
        logger.error("%s", e)
        return 1

    icon_scale = args.icon_scale if args.icon_scale is not None else config.get("icon_scale", 0.8)
    pipeline = IconPipeline(options, reference=reference)
    items = [BatchItem(name=p.name, source=p) for p in images]
    paths = {id(item): p for item, p in zip(items, images)}

    with tqdm(total=len(items), desc="Processing", unit="img") as pbar:
        def on_progress(done: int, total: int, name: str) -> None:
            pbar.set_postfix_str(name)
            pbar.update(1)

        pipeline.process_batch(items, progress_callback=on_progress, yield_seconds=0)

    failed = 0
    for item in items:
        if item.status != ImageStatus.DONE:
            failed += 1
            continue

        src = paths[id(item)]
        out_dir = args.output or src.parent
        out_path = out_dir / f"{src.stem}{suffix}.png"
        try:
            data = item.output
            if overlay is not None:
                data = encode_png(composite_on_background(item.result, overlay, icon_scale))
            out_dir.mkdir(parents=True, exist_ok=True)
            out_path.write_bytes(data)
        except (OSError, ValueError, IconMatteError) as e:
            item.status = ImageStatus.ERROR
            item.error = str(e)
            logger.error("Could not write %s: %s", out_path, e)
            failed += 1
            continue
        logger.debug("Wrote %s", out_path)

    logger.info("Done: %d succeeded, %d failed", len(items) - failed, failed)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
