"""CLI orchestration for applying an execution plan to one slide of a PPTX file."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
import traceback
from pathlib import Path
from typing import Optional, Sequence

from pptx import Presentation

from .applier import apply_plan
from .errors import PlanValidationError, SlideUnavailableError
from .images import ImageLoader
from .model import SlideContext
from .pptx_host import PptxCanvas, snapshot_slide
from .validation import policy_warnings, validate_plan_file, validate_slide_context_file


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Apply a JSON execution plan to one slide of a PPTX presentation")
    parser.add_argument("--plan", required=True, help="Path to the execution plan JSON file")
    parser.add_argument("--pptx", default=None, help="Path to the PPTX file to edit (required unless --validate-only)")
    parser.add_argument(
        "--output",
        default=None,
        help="Output PPTX file path (default: <input-stem>.applied.pptx next to the input)",
    )
    parser.add_argument("--slide", type=int, default=1, help="1-based slide number to edit (default: 1)")
    parser.add_argument(
        "--select",
        action="append",
        default=[],
        metavar="SHAPE_ID",
        help="Treat this shape id as selected (repeatable)",
    )
    parser.add_argument(
        "--context",
        default=None,
        help="Optional slide context JSON to use instead of the snapshot taken from the PPTX",
    )
    parser.add_argument("--validate-only", action="store_true", help="Validate the plan (and context) and exit")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Also enforce the planner contract for every operation (target, anchor, constraints)",
    )
    parser.add_argument("--json", action="store_true", help="Print the apply result as JSON")
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging and show full traceback for unexpected errors",
    )
    return parser


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _select_slide(prs, number: int):
    slides = list(prs.slides)
    if not slides:
        raise SlideUnavailableError("No slide found to apply the plan")
    if not 1 <= number <= len(slides):
        raise SlideUnavailableError(f"Slide {number} not found (presentation has {len(slides)} slides)")
    return slides[number - 1]


def run_cli(argv: Optional[Sequence[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.validate_only and not args.pptx:
        parser.error("--pptx is required unless --validate-only is given")
    _configure_logging(args.debug)

    try:
        plan = validate_plan_file(Path(args.plan).resolve(), strict=args.strict)
        for warning in policy_warnings(plan):
            print(f"⚠️  {warning}", file=sys.stderr)
        raw_context = validate_slide_context_file(Path(args.context).resolve()) if args.context else None

        if args.validate_only:
            print(f"✅ Plan is valid ({len(plan['operations'])} operation(s))")
            return

        pptx_path = Path(args.pptx).resolve()
        if not pptx_path.exists():
            raise SystemExit(f"Presentation not found: {pptx_path}")
        output_path = (
            Path(args.output).resolve() if args.output else pptx_path.with_name(f"{pptx_path.stem}.applied.pptx")
        )
        if output_path == pptx_path:
            raise SystemExit("Refusing to overwrite the input presentation; pass a different --output")

        prs = Presentation(str(pptx_path))
        slide = _select_slide(prs, args.slide)
        if raw_context is not None:
            context = SlideContext.from_dict(raw_context)
            if args.select:
                context = dataclasses.replace(context, selection=tuple(args.select))
        else:
            context = snapshot_slide(prs, slide, selection=args.select)

        loader = ImageLoader(base_dir=Path(args.plan).resolve().parent)
        try:
            result = apply_plan(plan, context, PptxCanvas(slide), image_loader=loader)
        finally:
            loader.close()

        output_path.parent.mkdir(parents=True, exist_ok=True)
        prs.save(str(output_path))

        if args.json:
            print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
            return
        print(f"✅ Applied {result.applied_count} of {len(plan['operations'])} operation(s) to slide {args.slide}")
        for warning in result.warnings:
            print(f"⚠️  {warning}")
        print(f"✅ PPTX saved to {output_path}")
    except PlanValidationError as e:
        raise SystemExit(str(e)) from e
    except Exception as e:
        if args.debug:
            traceback.print_exc()
        raise SystemExit(f"Plan application failed: {e}") from e


def main() -> None:
    run_cli()
