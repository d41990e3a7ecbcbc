from __future__ import annotations

class StitchError(RuntimeError):
    """
    Base for every failure of a load or render.
    'stage' names the step that failed (e.g. "region detection", "alignment frames 2-3")
    so threshold-based mismatches can be traced back to their input.
    """
    default_message = "stitching failed"

    def __init__(self, detail: str | None = None, *, stage: str | None = None):
        self.detail = detail or self.default_message
        self.stage = stage
        super().__init__(self.detail)

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.detail}"
        return self.detail

    def at_stage(self, stage: str) -> StitchError:
        """Label with stage unless a more specific one was set where the error was raised."""
        if self.stage is None:
            self.stage = stage
        return self

class FrameNotFound(StitchError):
    default_message = "frame file not found"

    def __init__(self, path, **kw):
        self.path = path
        super().__init__(f"File {path} not found.", **kw)

class NotEnoughSamples(StitchError):
    default_message = "not enough samples: at least 2 screenshots are required"

class RegionNotComputed(StitchError):
    default_message = "required calculation not completed: scrollable region is not detected yet"

class NoMatchFound(StitchError):
    default_message = "image not matched"

class RegionNotFound(NoMatchFound):
    default_message = "no matching region found: the first two screenshots do not differ inside the scanning band"

class MarginNotFound(NoMatchFound):
    default_message = "image not matched: no margin edge found"

class AlignmentNotFound(NoMatchFound):
    default_message = "image not matched: no overlapping content between screenshots"

class AlignmentTimeout(StitchError):
    default_message = "alignment exceeded its time budget"

class BackendFailure(StitchError):
    default_message = "image backend failure"
