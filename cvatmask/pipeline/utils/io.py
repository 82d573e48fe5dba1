from __future__ import annotations

from pathlib import Path

import cv2  # type: ignore
import numpy as np

from cvatmask.core.errors import OutputIOError


def ensure_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OutputIOError(path, f"cannot create directory ({exc.strerror or exc})") from exc


def save_mask(path: Path, mask: np.ndarray) -> None:
    """Encode a single-channel mask to ``path``; the suffix selects the format."""
    ensure_dir(path.parent)
    try:
        ok = cv2.imwrite(str(path), mask)
    except cv2.error as exc:
        raise OutputIOError(path, f"encoding failed ({exc})") from exc
    if not ok:
        raise OutputIOError(path, "encoder refused to write the file")
