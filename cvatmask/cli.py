from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from cvatmask.core.config import SUPPORTED_MASK_EXTENSIONS, Settings, get_settings
from cvatmask.core.errors import BatchMaskError, CvatMaskError
from cvatmask.core.logging import configure_logging
from cvatmask.pipeline.document import load_document
from cvatmask.pipeline.orchestrator import generate_masks

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def _existing_file(value: str) -> Path:
    path = Path(value)
    if not path.is_file():
        raise argparse.ArgumentTypeError(f"file not found: {value}")
    return path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cvat-masks",
        description="Write one binary mask per label and image from a CVAT for images XML export",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("annotations", type=_existing_file, help="CVAT XML annotation file")
    parser.add_argument("output_dir", type=Path, help="Output directory; one sub-directory per label is created")
    parser.add_argument("--workers", type=int, default=None, help="Maximum number of images processed concurrently")
    parser.add_argument("--instances", action="store_true", default=None, help="Also write one mask per instance")
    parser.add_argument(
        "--normalize-boxes",
        action="store_true",
        default=None,
        help="Swap inverted box corners instead of leaving such boxes empty",
    )
    parser.add_argument("--ext", default=None, help=f"Mask file extension, one of {', '.join(SUPPORTED_MASK_EXTENSIONS)}")
    parser.add_argument("--log-level", choices=["debug", "info", "warning", "error", "critical"], default=None)
    parser.add_argument("--log-format", choices=["json", "text"], default=None)
    return parser


def resolve_settings(args: argparse.Namespace, base: Optional[Settings] = None) -> Settings:
    """Overlay command-line options on the environment settings and re-validate."""
    base = base or get_settings()
    overrides = {
        "max_workers": args.workers,
        "write_instances": args.instances,
        "normalize_boxes": args.normalize_boxes,
        "mask_extension": args.ext,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    merged = base.model_dump()
    merged.update({key: value for key, value in overrides.items() if value is not None})
    return Settings.model_validate(merged)


def main(argv: Optional[List[str]] = None) -> int:
    start = time.perf_counter()
    args = build_parser().parse_args(argv)

    try:
        settings = resolve_settings(args)
    except ValidationError as exc:
        print(f"error: invalid configuration\n{exc}", file=sys.stderr)
        return EXIT_USAGE

    configure_logging(settings.log_level, settings.log_format)

    try:
        document = load_document(args.annotations, normalize_boxes=settings.normalize_boxes)
        result = generate_masks(
            document,
            args.output_dir,
            max_workers=settings.max_workers,
            mask_extension=settings.mask_extension,
            write_instances=settings.write_instances,
        )
    except BatchMaskError as exc:
        print(f"error: {exc}", file=sys.stderr)
        for failure in exc.failures:
            print(f"  {failure}", file=sys.stderr)
        print(f"{exc.written} mask file(s) written before failing", file=sys.stderr)
        return EXIT_FAILURE
    except CvatMaskError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    elapsed_ms = int((time.perf_counter() - start) * 1000)
    print(f"{result.files_written} mask file(s) written for {result.images} image(s)")
    print(f"processing time: {elapsed_ms}ms")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
