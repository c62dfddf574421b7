"""Minimal CLI to evaluate one local photo and print the report."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from photo_eval.config import load_config
from photo_eval.io.archive import build_upload_key
from photo_eval.io.image_loader import ImageValidationError, load_image_file
from photo_eval.llm_client.invoker import ModelInvocationError
from photo_eval.llm_client.responses import create_client
from photo_eval.pipeline.evaluator import build_evaluator
from photo_eval.pipeline.models import EvaluationContext
from photo_eval.pipeline.report import render_report
from photo_eval.utils.logging import configure_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a virtual photo evaluation on a single image.")
    parser.add_argument("image", type=Path, help='Path to the photo (e.g. "/path/to/bathroom.jpg")')
    parser.add_argument("--area", help="Area shown in the photo, e.g. bathroom, kitchen, exterior")
    parser.add_argument("--bedrooms", type=int, help="Bedroom count, used for water-heater sizing")
    parser.add_argument("--manufactured-home", action="store_true", help="Property is a manufactured home")
    parser.add_argument("--notes", help="Context or concerns to consider")
    parser.add_argument("--model", help="Override the configured model")
    parser.add_argument("--format", choices=["human", "json"], default="human")
    parser.add_argument("--out", type=Path, help="Write the output to this file instead of stdout")
    return parser.parse_args()


def main() -> None:
    args = parse_args()

    try:
        config = load_config()
    except ValueError as exc:
        sys.exit(f"Error: {exc}")
    configure_logging(config.log_level, config.log_file)

    if args.bedrooms is not None and args.bedrooms < 0:
        sys.exit("Error: --bedrooms must be zero or more")
    try:
        image = load_image_file(args.image, max_bytes=config.max_image_bytes)
    except (FileNotFoundError, ImageValidationError) as exc:
        sys.exit(f"Error: {exc}")

    context = EvaluationContext(
        area=args.area,
        bedrooms=args.bedrooms,
        manufactured_home=args.manufactured_home or None,
        notes=args.notes,
    )
    evaluator = build_evaluator(config, create_client(config))
    try:
        result = evaluator.evaluate(image, context, build_upload_key(image.filename), model=args.model)
    except ModelInvocationError as exc:
        sys.exit(f"Error: {exc}")

    if args.format == "json":
        output = json.dumps(result.to_dict(), ensure_ascii=False, indent=2)
    else:
        output = render_report(result)

    if args.out:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text(output + "\n", encoding="utf-8")
        print(f"Output: {args.out.resolve()}")
    else:
        print(output)


if __name__ == "__main__":
    main()
