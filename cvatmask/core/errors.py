from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List


class CvatMaskError(Exception):
    """Base class for every error raised by cvatmask."""


class DocumentLoadError(CvatMaskError):
    """Thrown when the annotation document cannot be read or is structurally invalid."""

    def __init__(self, path: str | Path, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Cannot load annotations from {self.path}: {reason}")


class GeometryParseError(CvatMaskError):
    """Thrown when a shape attribute or point list is malformed."""

    def __init__(self, text: str, reason: str):
        self.text = text
        self.reason = reason
        super().__init__(f"{reason}: {text!r}")


class AggregationError(CvatMaskError):
    """Thrown when a rasterization target is not a single-channel 8-bit buffer."""


class OutputIOError(CvatMaskError):
    """Thrown when a mask directory or file cannot be written."""

    def __init__(self, path: str | Path, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to write {self.path}: {reason}")


@dataclass(frozen=True)
class ImageFailure:
    filename: str
    error: BaseException

    def __str__(self) -> str:
        return f"{self.filename}: {self.error}"


class BatchMaskError(CvatMaskError):
    """Thrown after a batch run in which at least one image failed.

    Every image task has completed by the time this is raised, so files written
    for the successful images are left in place.
    """

    def __init__(self, failures: List[ImageFailure], written: int):
        self.failures = failures
        self.written = written
        names = ", ".join(f.filename for f in failures)
        super().__init__(f"{len(failures)} image(s) failed: {names}")
