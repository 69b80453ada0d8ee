#!/usr/bin/env python3
"""
Apply a planner-generated execution plan to one slide of a PowerPoint file.

Usage:
    python apply_plan.py --pptx deck.pptx --plan plan.json [--slide 2] [--output out.pptx]
"""

from __future__ import annotations

from slideplan.cli import run_cli


def main() -> None:
    run_cli()


if __name__ == "__main__":
    main()
