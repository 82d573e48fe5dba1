from __future__ import annotations

from pathlib import Path
from typing import Iterator, List

import numpy as np

from .io import ensure_dir, save_mask


def save_instance_masks(
    masks_dir: Path,
    instance_masks: List[np.ndarray],
    extension: str = ".png",
) -> Iterator[Path]:
    """Write one file per instance mask as ``<n><extension>``, n counting from 1.

    Yields each path once its file is written, so a caller can tell how far a
    failed run got.
    """
    ensure_dir(masks_dir)
    for idx, mask in enumerate(instance_masks, start=1):
        per_path = masks_dir / f"{idx}{extension}"
        save_mask(per_path, mask)
        yield per_path
