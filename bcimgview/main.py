"""Точка входа: пакетная конвертация Badly Coded Image в PPM."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from bcimgview.controllers.app_controller import AppController
from bcimgview.models.errors import AllocationFailure, UnrecognizedFormat


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bcimgview",
        description="Convert a BCRAW/BCPROG/BCFLAT image to PPM.",
    )
    parser.add_argument("-c", "--convert", action="store_true", help="Batch conversion mode")
    parser.add_argument("image", nargs="?", help="Input .bcraw/.bcprog/.bcflat file")
    parser.add_argument("-o", "--output", help="Output .ppm path (default: <image>.ppm)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Разбирает аргументы, конвертирует изображение и возвращает код выхода."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.convert or not args.image:
        parser.print_usage(sys.stderr)
        print("Usage: bcimgview -c <image>", file=sys.stderr)
        return 2

    configure_logging(args.verbose)
    controller = AppController()
    try:
        result = controller.convert(args.image, args.output)
    except FileNotFoundError as e:
        print(f"Failed to open {args.image}: {e}", file=sys.stderr)
        return 1
    except AllocationFailure as e:
        print(str(e), file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Failed to write output for {args.image}: {e}", file=sys.stderr)
        return 1

    if not result.ok:
        if result.reason == UnrecognizedFormat.default_reason:
            print(f"{args.image}: unrecognized format", file=sys.stderr)
        else:
            print(f"{args.image}: invalid format, {result.reason}", file=sys.stderr)
        return 1

    print(f"Batch conversion output in {result.output}")
    print(result.message)
    return 0


if __name__ == "__main__":
    sys.exit(main())
