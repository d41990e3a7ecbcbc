from __future__ import annotations
import logging
from pathlib import Path
import cv2

from .errors import BackendFailure, FrameNotFound

logger = logging.getLogger(__name__)

def load_image(path):
    """BGR image at path. FrameNotFound when the file is absent."""
    path = Path(path)
    if not path.is_file():
        raise FrameNotFound(path)
    img = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if img is None:
        raise BackendFailure(f"Could not decode image {path}.", stage="load")
    return img

class FrameReader:
    """
    Reads numbered screenshots {dir}/1.png, {dir}/2.png, ...
    The first missing index ends the sequence.
    """
    def __init__(self, base_dir, pattern: str = "{}.png"):
        self.base_dir = Path(base_dir)
        self.pattern = pattern

    def path_for(self, index: int) -> Path:
        return self.base_dir / self.pattern.format(index)

    def read(self, index: int):
        return load_image(self.path_for(index))

    def read_sequence(self, limit: int):
        """Yields (index, image) for index = 1..limit until a file is missing."""
        if limit <= 0:
            raise ValueError("limit must be greater than 0")
        for i in range(1, limit + 1):
            try:
                img = self.read(i)
            except FrameNotFound as e:
                logger.debug("Sequence ends before %s", e.path)
                break
            yield i, img

class ImageWriter:
    def __init__(self, out_dir):
        self.out_dir = Path(out_dir)

    def write(self, img, name: str) -> Path:
        self.out_dir.mkdir(parents=True, exist_ok=True)
        path = self.out_dir / name
        try:
            ok = cv2.imwrite(str(path), img)
        except cv2.error as e:
            raise BackendFailure(f"Error encoding {path}: {e}", stage="write") from e
        if not ok:
            raise BackendFailure(f"Error writing {path}. Check the file extension.", stage="write")
        logger.info("Wrote %s (%dx%d)", path, img.shape[1], img.shape[0])
        return path
