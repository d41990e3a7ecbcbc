#!/usr/bin/env python3
from __future__ import annotations
import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
import cv2

from .config import ChromeTrimMode, IOConfig, MarginConfig, RenderConfig
from .errors import StitchError
from .frame import FrameSet
from .io_image import ImageWriter

logger = logging.getLogger(__name__)

# (file name, trim mode, merge footer) written by --all-variants
VARIANTS = [
    ("result.png", None, True),
    ("result_without_close_button.png", None, False),
    ("result_margin_trimmed.png", ChromeTrimMode.MARGIN_ONLY, True),
    ("result_title_trimmed.png", ChromeTrimMode.TITLE_BAR, True),
    ("result_margin_trimmed_without_close_button.png", ChromeTrimMode.MARGIN_ONLY, False),
    ("result_title_trimmed_without_close_button.png", ChromeTrimMode.TITLE_BAR, False),
]

class PanelStitchCLI:
    def __init__(self, io: IOConfig, render: RenderConfig):
        self.io = io
        self.render_cfg = render

    @property
    def out_dir(self) -> Path:
        return self.io.out_dir or self.io.input_dir

    def _load(self) -> FrameSet:
        return FrameSet.load(self.io.input_dir, self.io.limit, self.render_cfg)

    def run_single(self) -> list[Path]:
        frames = self._load()
        img = frames.render(self.render_cfg)
        if self.io.show:
            cv2.imshow(f"Composite ({len(frames)} screenshots)", img)
            cv2.waitKey(0)
            cv2.destroyAllWindows()
        return [ImageWriter(self.out_dir).write(img, self.io.name)]

    def run_variants(self) -> list[Path]:
        frames = self._load()
        written = []
        for name, trim, footer in VARIANTS:
            cfg = replace(self.render_cfg, chrome_trim_mode=trim, merge_footer=footer)
            written.append(frames.write(cfg, self.out_dir, name))
        return written

    def run(self) -> list[Path]:
        return self.run_variants() if self.io.all_variants else self.run_single()

_TRIM_CHOICES = {
    "none": None,
    "margin-only": ChromeTrimMode.MARGIN_ONLY,
    "title-bar": ChromeTrimMode.TITLE_BAR,
}

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="panelstitch",
        description="Rebuild one tall image of a scrolling panel from numbered screenshots (1.png, 2.png, ...)."
    )
    # Inputs / outputs
    p.add_argument("input_dir", type=Path, help="Directory holding 1.png, 2.png, ...")
    p.add_argument("--limit", type=int, default=10, help="Max screenshots to read (stops at first missing).")
    p.add_argument("--out-dir", type=Path, default=None, help="Output directory (default: input_dir).")
    p.add_argument("--name", default="result.png", help="Output file name.")
    p.add_argument("--all-variants", action="store_true",
                   help="Write every trim/footer combination instead of a single image.")
    p.add_argument("--show", action="store_true", help="Preview window.")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    # Composite
    p.add_argument("--trim", choices=list(_TRIM_CHOICES), default="none",
                   help="Chrome trim: 'margin-only' keeps the title bar, 'title-bar' removes it.")
    p.add_argument("--no-footer", action="store_true", help="Leave out the footer (close button).")
    p.add_argument("--max-pixels", type=int, default=None,
                   help="Downscale screenshots above this pixel count before matching.")
    # Matching
    p.add_argument("--threshold", type=float, default=0.95, help="Correlation needed to accept an overlap.")
    p.add_argument("--workers", type=int, default=1, help="Align screenshot pairs in parallel.")
    p.add_argument("--timeout", type=float, default=None, help="Seconds allowed per alignment.")
    # Margins
    p.add_argument("--lr-reduce", choices=["mean", "max"], default="mean")
    p.add_argument("--top-half", choices=["upper", "lower"], default="upper")
    p.add_argument("--bottom-half", choices=["upper", "lower"], default="lower")
    return p

def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.limit <= 0:
        parser.error("--limit must be greater than 0")
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    io = IOConfig(
        input_dir=args.input_dir,
        limit=args.limit,
        out_dir=args.out_dir,
        name=args.name,
        show=args.show,
        all_variants=args.all_variants,
    )
    try:
        render = RenderConfig(
            chrome_trim_mode=_TRIM_CHOICES[args.trim],
            merge_footer=not args.no_footer,
            downscale_budget_pixels=args.max_pixels,
            margins=MarginConfig(
                left_right_reduce=args.lr_reduce,
                top_half=args.top_half,
                bottom_half=args.bottom_half,
            ),
            match_threshold=args.threshold,
            alignment_timeout=args.timeout,
            workers=args.workers,
        )
    except ValueError as e:
        print(f"Invalid options: {e}", file=sys.stderr)
        return 2

    try:
        written = PanelStitchCLI(io, render).run()
    except StitchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    for path in written:
        print(f"Saved {path}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
