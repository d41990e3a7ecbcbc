from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

class ChromeTrimMode(Enum):
    MARGIN_ONLY = "margin-only"   # cut side/top/bottom chrome, keep the title bar
    TITLE_BAR = "title-bar"       # also cut the title bar

_HALVES = ("upper", "lower")
_REDUCERS = ("mean", "max")

@dataclass(frozen=True)
class MarginConfig:
    left_right_reduce: str = "mean"   # "mean" or "max" over per-row edges
    top_half: str = "upper"           # which half of the sorted per-column edges to average
    bottom_half: str = "lower"

    def __post_init__(self):
        if self.left_right_reduce not in _REDUCERS:
            raise ValueError(f"left_right_reduce must be one of {_REDUCERS}, got {self.left_right_reduce!r}")
        for name in ("top_half", "bottom_half"):
            value = getattr(self, name)
            if value not in _HALVES:
                raise ValueError(f"{name} must be one of {_HALVES}, got {value!r}")

@dataclass(frozen=True)
class RenderConfig:
    chrome_trim_mode: ChromeTrimMode | None = None
    merge_footer: bool = True
    downscale_budget_pixels: int | None = None   # max pixels per frame; None = keep size
    margins: MarginConfig = field(default_factory=MarginConfig)
    match_threshold: float = 0.95                # TM_CCOEFF_NORMED score to accept
    strip_count: int = 10                        # probes per later window
    window_width_ratio: float = 0.98             # matching window width vs region width
    alignment_timeout: float | None = None       # seconds per alignment call
    workers: int = 1                             # >1 = align frame pairs in a thread pool

    def __post_init__(self):
        if self.downscale_budget_pixels is not None and self.downscale_budget_pixels <= 0:
            raise ValueError("downscale_budget_pixels must be positive.")
        if self.strip_count <= 0:
            raise ValueError("strip_count must be positive.")
        if not 0.0 < self.window_width_ratio <= 1.0:
            raise ValueError("window_width_ratio must be in (0, 1].")
        if self.workers < 1:
            raise ValueError("workers must be >= 1.")

    @property
    def trims_title_bar(self) -> bool:
        return self.chrome_trim_mode is ChromeTrimMode.TITLE_BAR

@dataclass
class IOConfig:
    input_dir: Path
    limit: int = 10
    out_dir: Path | None = None   # default: input_dir
    name: str = "result.png"
    show: bool = False
    all_variants: bool = False
