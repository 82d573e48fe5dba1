from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Dict, List, Tuple

import numpy as np

from cvatmask.pipeline.geometry import Geometry, draw_mask


@dataclass(frozen=True)
class ImageRecord:
    """One annotated image and the geometries drawn on it, in document order.

    Every aggregation returns freshly allocated masks. Within one call, a
    geometry that shares a group id with an earlier one is drawn onto the very
    same array object as that earlier geometry, never a copy, so the group's
    mask accumulates the union of its members.
    """

    name: str
    width: int
    height: int
    geometries: Tuple[Geometry, ...] = ()
    normalize_boxes: bool = False

    @property
    def base_name(self) -> str:
        """Image name without its extension, keeping any sub-directories."""
        return str(PurePosixPath(self.name).with_suffix(""))

    def mask_filename(self, extension: str = ".png") -> str:
        """Image name with its extension replaced, keeping any sub-directories."""
        return str(PurePosixPath(self.name).with_suffix(extension))

    def labels(self) -> List[str]:
        """Label of every geometry, one entry per geometry."""
        return [geometry.label for geometry in self.geometries]

    def unique_labels(self) -> List[str]:
        """Distinct labels in first-occurrence order."""
        return list(dict.fromkeys(self.labels()))

    def empty_mask(self) -> np.ndarray:
        return np.zeros((self.height, self.width), dtype=np.uint8)

    def _draw(self, geometry: Geometry, mask: np.ndarray) -> None:
        draw_mask(geometry, mask, normalize_boxes=self.normalize_boxes)

    def mask_combined(self, label: str) -> np.ndarray:
        """Union of every geometry with ``label``, group ids ignored."""
        result = self.empty_mask()
        for geometry in self.geometries:
            if geometry.label != label:
                continue
            self._draw(geometry, result)
        return result

    def mask(self, label: str) -> List[np.ndarray]:
        """One mask per instance of ``label``, in first-occurrence order.

        Ungrouped geometries are instances of their own. Geometries sharing a
        group id are drawn onto the mask created for the first of them.
        """
        result: List[np.ndarray] = []
        groups: Dict[int, np.ndarray] = {}

        for geometry in self.geometries:
            if geometry.label != label:
                continue

            if geometry.group is None:
                mat = self.empty_mask()
                result.append(mat)
            elif geometry.group in groups:
                mat = groups[geometry.group]
            else:
                mat = self.empty_mask()
                groups[geometry.group] = mat
                result.append(mat)
            self._draw(geometry, mat)

        return result

    def masks(self) -> Dict[str, np.ndarray]:
        """Combined mask of every label present in this image, in one pass.

        Group ids are scoped to a label, so a group's canonical buffer is always
        the mask of the label it was first seen under: grouped and ungrouped
        geometries of one label all draw onto that one array, and each entry
        equals ``mask_combined`` for its label.
        """
        result: Dict[str, np.ndarray] = {}
        for geometry in self.geometries:
            mat = result.get(geometry.label)
            if mat is None:
                mat = result[geometry.label] = self.empty_mask()
            self._draw(geometry, mat)
        return result
