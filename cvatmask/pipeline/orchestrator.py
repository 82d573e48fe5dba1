from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from cvatmask.core.errors import BatchMaskError, ImageFailure
from cvatmask.pipeline.document import Document
from cvatmask.pipeline.image import ImageRecord
from cvatmask.pipeline.utils.io import ensure_dir, save_mask
from cvatmask.pipeline.utils.masks import save_instance_masks

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchResult:
    images: int
    files_written: int
    elapsed_ms: int


@dataclass(frozen=True)
class _ImageOutcome:
    written: int
    error: Optional[Exception] = None


class BatchMaskGenerator:
    """
    Writes the combined mask of every declared label for every image of a document.

    Images are processed by a bounded thread pool; each task writes only its
    own ``<label>/<image>`` files, so tasks share nothing but read-only inputs.
    A failing image does not stop the others: failures are collected and
    raised together once every task has finished.
    """

    def __init__(
        self,
        document: Document,
        output_dir: str | Path,
        *,
        max_workers: Optional[int] = None,
        mask_extension: str = ".png",
        write_instances: bool = False,
    ):
        self.document = document
        self.output_dir = Path(output_dir)
        self.max_workers = max_workers
        self.mask_extension = mask_extension
        self.write_instances = write_instances

    @property
    def labels(self) -> Sequence[str]:
        return self.document.labels

    def label_dir(self, label: str) -> Path:
        return self.output_dir / label

    def mask_path(self, image: ImageRecord, label: str) -> Path:
        return self.label_dir(label) / image.mask_filename(self.mask_extension)

    def _prepare_label_dirs(self) -> None:
        for label in self.labels:
            ensure_dir(self.label_dir(label))
        logger.info("label_dirs_ready", extra={"output_dir": str(self.output_dir), "labels": len(self.labels)})

    def _write_image(self, image: ImageRecord) -> _ImageOutcome:
        """Render and persist all masks of one image, counting files even when a write fails."""
        t0 = time.perf_counter()
        written = 0
        try:
            for label in self.labels:
                save_mask(self.mask_path(image, label), image.mask_combined(label))
                written += 1
                if self.write_instances:
                    instances_dir = self.label_dir(label) / image.base_name
                    for _ in save_instance_masks(instances_dir, image.mask(label), self.mask_extension):
                        written += 1
        except Exception as exc:  # noqa: BLE001
            logger.error("image_masks_failed", extra={"image": image.name, "files": written}, exc_info=exc)
            return _ImageOutcome(written, exc)
        t1 = time.perf_counter()
        logger.info(
            "image_masks_written",
            extra={
                "image": image.name,
                "files": written,
                "ms": int((t1 - t0) * 1000),
            },
        )
        return _ImageOutcome(written)

    def run(self) -> BatchResult:
        t0 = time.perf_counter()
        self._prepare_label_dirs()

        written = 0
        failures: List[Tuple[int, ImageFailure]] = []
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="cvatmask") as pool:
            futures: Dict[Future[_ImageOutcome], int] = {
                pool.submit(self._write_image, image): idx for idx, image in enumerate(self.document.images)
            }
            for future in as_completed(futures):
                idx = futures[future]
                outcome = future.result()
                written += outcome.written
                if outcome.error is not None:
                    failures.append((idx, ImageFailure(self.document.images[idx].name, outcome.error)))

        elapsed_ms = int((time.perf_counter() - t0) * 1000)
        logger.info(
            "batch_complete",
            extra={
                "images": len(self.document.images),
                "failed": len(failures),
                "files": written,
                "ms": elapsed_ms,
            },
        )
        if failures:
            raise BatchMaskError([failure for _, failure in sorted(failures, key=lambda item: item[0])], written)
        return BatchResult(images=len(self.document.images), files_written=written, elapsed_ms=elapsed_ms)


def generate_masks(document: Document, output_dir: str | Path, **kwargs: Any) -> BatchResult:
    """
    High-level wrapper to write all masks of ``document`` via the batch generator.
    """
    generator = BatchMaskGenerator(document, output_dir, **kwargs)
    return generator.run()
