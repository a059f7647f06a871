"""Command line front-end for one-off sticker conversions."""

from __future__ import annotations

import argparse
import sys
from importlib.metadata import PackageNotFoundError, version
from typing import List

from .config import get_settings
from .errors import ConversionError
from .logging import configure_logging
from .models import MediaKind
from .service import ConversionService
from .tools import ToolTable, check_tools

KIND_CHOICES = [kind.value for kind in MediaKind]


def _version() -> str:
    try:
        return version("sticker-converter")
    except PackageNotFoundError:  # pragma: no cover - running from a source checkout
        return "unknown"


def handle_convert(args: argparse.Namespace) -> int:
    settings = get_settings()
    service = ConversionService(settings)
    overrides = {
        name: getattr(args, name)
        for name in ("width", "height", "fps", "quality", "threads")
        if getattr(args, name) is not None
    }
    try:
        result = service.convert(
            args.path,
            args.target,
            overrides,
            source=args.source,
            output_path=args.output,
        )
    except ConversionError as exc:
        print(f"error: {exc.detail}", file=sys.stderr)
        return 1

    print(result.output_path)
    return 0


def handle_check_tools(args: argparse.Namespace) -> int:
    tools = ToolTable.from_settings(get_settings().tools)
    try:
        check_tools(tools)
    except ConversionError as exc:
        print(f"error: {exc.detail}", file=sys.stderr)
        return 1
    for name in tools.names():
        print(f"{name}: {' '.join(tools.command(name))}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sticker-convert",
        description="Convert images, GIFs and stickers between sticker formats.",
    )
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {_version()}")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    convert_parser = subparsers.add_parser("convert", help="Convert one file")
    convert_parser.add_argument("path", help="Path to the .tgs, .gif, .webm or image file to convert")
    convert_parser.add_argument(
        "--target",
        choices=KIND_CHOICES,
        default=MediaKind.ANIMATED_GIF.value,
        help="Output kind (default: %(default)s)",
    )
    convert_parser.add_argument("--source", choices=KIND_CHOICES, help="Input kind; inferred when omitted")
    convert_parser.add_argument("--output", help="Output file path (default: <path>.<target extension>)")
    convert_parser.add_argument("--height", type=int, help="Output image height")
    convert_parser.add_argument("--width", type=int, help="Output image width")
    convert_parser.add_argument("--fps", type=int, help="Output frame rate")
    convert_parser.add_argument("--threads", type=int, help="Rasterizer threads; 0 uses all CPUs")
    convert_parser.add_argument("--quality", type=int, help="Output quality, 0-100")
    convert_parser.set_defaults(func=handle_convert)

    tools_parser = subparsers.add_parser("check-tools", help="Verify the external codecs are installed")
    tools_parser.set_defaults(func=handle_check_tools)

    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    if args.debug:
        settings = settings.model_copy(update={"logging": settings.logging.model_copy(update={"level": "DEBUG"})})
    configure_logging(settings.logging, to_file=False)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
