"""
OCR Demo

Lists the registered backends, initializes one (printing download
progress) and recognizes an image with it.

Usage:
    python scripts/ocr_demo.py --list
    python scripts/ocr_demo.py <image_path> [--engine "Tesseract OCR"] [--blocks]
"""

import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from ocrdesk.config import OcrSettings
from ocrdesk.errors import InitError
from ocrdesk.ocr import RecognitionResult, build_default_registry


def print_backends(registry):
    print("\n=== OCR backends ===")
    for i, desc in enumerate(registry.list_backends(), 1):
        flags = []
        if desc.requires_online_model:
            flags.append("online")
        if not desc.available:
            flags.append("not installed")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        print(f"  {i}. {desc.display_name}{suffix}")


def format_result(result: RecognitionResult, show_blocks: bool = False) -> str:
    if not result.success:
        return f"Recognition failed: {result.error}"

    output = f"✓ Done in {result.elapsed_ms} ms\n"
    output += f"✓ Engine: {result.engine_name}\n"
    output += f"✓ {result.region_count} text region(s)\n"
    if result.blocks:
        output += f"✓ Average confidence: {result.average_confidence * 100:.1f}%\n"
    if result.skipped_regions:
        output += f"! {result.skipped_regions} region(s) could not be parsed\n"
    output += "=" * 50 + "\n\n"
    output += result.text

    if show_blocks:
        output += "\n\n" + "=" * 50 + "\n"
        for block in result.blocks:
            output += (
                f"{block.confidence_percent:>7} {block.bounding_box_str:<24} "
                f"{block.block_type.value:<9} {block.text}\n"
            )
    return output


def main(argv=None) -> int:
    import argparse

    parser = argparse.ArgumentParser(description="Run an OCR backend on an image")
    parser.add_argument("image_path", nargs="?", help="Image to recognize")
    parser.add_argument("--engine", help="Backend name (default: first available)")
    parser.add_argument("--list", action="store_true", help="List backends and exit")
    parser.add_argument("--blocks", action="store_true", help="Print every text block")
    parser.add_argument("--env-file", help=".env file with OCRDESK_* settings")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    registry = build_default_registry(OcrSettings.from_env(args.env_file))

    if args.list or not args.image_path:
        print_backends(registry)
        return 0

    name = args.engine
    if name is None:
        available = registry.list_available()
        if not available:
            print("No OCR backend is installed")
            return 1
        name = available[0]

    try:
        backend = registry.activate(name)
    except KeyError as e:
        print(e.args[0])
        return 2

    try:
        backend.initialize(lambda message: print(f"  → {message}"))
    except InitError as e:
        print(f"\n{e}")
        return 1

    try:
        result = backend.recognize(args.image_path)
        print()
        print(format_result(result, show_blocks=args.blocks))
        return 0 if result.success else 1
    finally:
        registry.dispose_all()


if __name__ == "__main__":
    sys.exit(main())
