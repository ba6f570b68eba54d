import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from eyeris.core.config import get_settings
from eyeris.core.errors import EyerisError
from eyeris.core.logging import configure_logging
from eyeris.domain.prompt_spec import PromptFormat, PromptSpec
from eyeris.services.image_processor import ImageProcessor


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="eyeris-analyze", description="Analyze one image file.")
    parser.add_argument("image", type=Path, help="Path to the image file.")
    parser.add_argument("--provider", help="Backend to use: 'ollama' or 'openai'.")
    parser.add_argument("--model", help="Overrides the backend's default model.")
    parser.add_argument("--format", choices=[f.value for f in PromptFormat], help="Output format.")
    parser.add_argument("--category", help="Subject for the category_specific format.")
    parser.add_argument("--platform", help="Platform for platform_specific or screenshot content.")
    parser.add_argument("--traits", help="Comma separated aspects for the custom format.")
    parser.add_argument("--content-category", help="Known content category, e.g. 'receipt'.")
    parser.add_argument("--features", help="Comma separated analysis toggles, e.g. 'extract_text,color_analysis'.")
    parser.add_argument("--custom-traits", help="Comma separated traits to evaluate explicitly.")
    parser.add_argument("--thumbnail-out", type=Path, help="Write the enhanced thumbnail here.")
    return parser


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    try:
        spec = PromptSpec.from_options(
            format=args.format or settings.DEFAULT_FORMAT,
            category=args.category,
            platform=args.platform,
            traits=args.traits,
            content_category=args.content_category,
            features=args.features,
            custom_traits=args.custom_traits,
        )
        processor = ImageProcessor.from_settings(settings, provider_name=args.provider, model=args.model)
    except (ValidationError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        result = await processor.process(args.image.read_bytes(), spec)
    except EyerisError as e:
        print(json.dumps({"success": False, "error": e.to_dict()}, indent=2), file=sys.stderr)
        return 1
    finally:
        await processor.aclose()

    if args.thumbnail_out and result.thumbnail is not None:
        args.thumbnail_out.write_bytes(result.thumbnail)

    print(json.dumps(result.model_dump(exclude={"thumbnail"}), indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(get_settings().LOG_LEVEL, stream=sys.stderr)
    if not args.image.is_file():
        print(f"Error: File not found at {args.image}", file=sys.stderr)
        return 2
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
