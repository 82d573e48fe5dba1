"""Unit tests for per-image mask aggregation."""

import numpy as np

from cvatmask.pipeline.geometry import FOREGROUND, Box, Ellipse, Polygon, Unsupported, draw_mask
from cvatmask.pipeline.image import ImageRecord
from cvatmask.pipeline.points import Point


def _square(label: str, x: int, y: int, size: int = 3, group=None) -> Polygon:
    points = (Point(x, y), Point(x + size, y), Point(x + size, y + size), Point(x, y + size))
    return Polygon(label=label, group=group, points=points)


def _union(masks) -> np.ndarray:
    result = np.zeros_like(masks[0])
    for mask in masks:
        result = np.maximum(result, mask)
    return result


def _alone(image: ImageRecord, geometry) -> np.ndarray:
    mask = image.empty_mask()
    draw_mask(geometry, mask)
    return mask


class TestImageRecordBasics:
    """Test ImageRecord metadata helpers."""

    def test_labels_one_per_geometry(self) -> None:
        """Test labels() lists every geometry's label without deduplication."""
        image = ImageRecord(
            "a.jpg", 10, 10, (_square("car", 0, 0), _square("road", 4, 4), _square("car", 6, 0))
        )
        assert image.labels() == ["car", "road", "car"]
        assert image.unique_labels() == ["car", "road"]

    def test_empty_mask(self) -> None:
        """Test empty_mask is height x width uint8 zeros."""
        mask = ImageRecord("a.jpg", width=7, height=3).empty_mask()
        assert mask.shape == (3, 7)
        assert mask.dtype == np.uint8
        assert not mask.any()

    def test_zero_sized_image(self) -> None:
        """Test a 0x0 image still aggregates."""
        image = ImageRecord("a.jpg", 0, 0, (_square("car", 0, 0),))
        assert image.mask_combined("car").shape == (0, 0)

    def test_mask_filename(self) -> None:
        """Test the extension is replaced and sub-directories are kept."""
        assert ImageRecord("frame.jpg", 1, 1).mask_filename() == "frame.png"
        assert ImageRecord("batch1/frame.jpeg", 1, 1).mask_filename(".bmp") == "batch1/frame.bmp"
        assert ImageRecord("noext", 1, 1).mask_filename() == "noext.png"
        assert ImageRecord("batch1/frame.jpeg", 1, 1).base_name == "batch1/frame"
        assert ImageRecord("noext", 1, 1).base_name == "noext"


class TestMaskCombined:
    """Test mask_combined."""

    def test_box(self) -> None:
        """Test a single box on a 20x20 canvas."""
        image = ImageRecord("a.jpg", 20, 20, (Box(label="car", xtl=2, ytl=3, xbr=12, ybr=8),))
        mask = image.mask_combined("car")
        expected = np.zeros((20, 20), dtype=np.uint8)
        expected[3:8, 2:12] = FOREGROUND
        assert np.array_equal(mask, expected)

    def test_only_matching_label(self) -> None:
        """Test geometries of other labels are ignored."""
        image = ImageRecord("a.jpg", 10, 10, (_square("car", 0, 0), _square("road", 5, 5)))
        assert np.array_equal(image.mask_combined("car"), _alone(image, _square("car", 0, 0)))

    def test_groups_are_merged(self) -> None:
        """Test group ids do not split the combined mask."""
        a, b = _square("car", 0, 0, group=1), _square("car", 5, 5, group=2)
        image = ImageRecord("a.jpg", 10, 10, (a, b))
        assert np.array_equal(image.mask_combined("car"), np.maximum(_alone(image, a), _alone(image, b)))

    def test_unknown_label(self) -> None:
        """Test a label without geometries yields an empty mask."""
        image = ImageRecord("a.jpg", 4, 4, (_square("car", 0, 0),))
        assert not image.mask_combined("bike").any()


class TestMask:
    """Test per-instance masks."""

    def test_ungrouped_are_independent(self) -> None:
        """Test two ungrouped polygons give two masks with only their own fill."""
        a, b = _square("car", 0, 0), _square("car", 5, 5)
        image = ImageRecord("a.jpg", 10, 10, (a, b))
        masks = image.mask("car")
        assert len(masks) == 2
        assert np.array_equal(masks[0], _alone(image, a))
        assert np.array_equal(masks[1], _alone(image, b))

    def test_same_group_is_one_instance(self) -> None:
        """Test geometries sharing a group id accumulate into one mask."""
        a = _square("car", 0, 0, group=4)
        b = Box(label="car", group=4, xtl=6, ytl=6, xbr=9, ybr=9)
        image = ImageRecord("a.jpg", 10, 10, (a, b))
        masks = image.mask("car")
        assert len(masks) == 1
        assert np.array_equal(masks[0], np.maximum(_alone(image, a), _alone(image, b)))

    def test_first_occurrence_order(self) -> None:
        """Test instances are ordered by their first geometry."""
        ungrouped = _square("car", 0, 0)
        g1a, g2, g1b = _square("car", 4, 0, group=1), _square("car", 0, 4, group=2), _square("car", 4, 4, group=1)
        image = ImageRecord("a.jpg", 10, 10, (ungrouped, g1a, g2, g1b))
        masks = image.mask("car")
        assert len(masks) == 3
        assert np.array_equal(masks[0], _alone(image, ungrouped))
        assert np.array_equal(masks[1], np.maximum(_alone(image, g1a), _alone(image, g1b)))
        assert np.array_equal(masks[2], _alone(image, g2))

    def test_group_ids_are_per_label(self) -> None:
        """Test the same group id under another label does not join the instance."""
        image = ImageRecord("a.jpg", 10, 10, (_square("car", 0, 0, group=1), _square("road", 5, 5, group=1)))
        masks = image.mask("car")
        assert len(masks) == 1
        assert np.array_equal(masks[0], _alone(image, _square("car", 0, 0)))

    def test_unsupported_geometry_gives_empty_instance(self) -> None:
        """Test unrasterized shapes still count as an instance."""
        image = ImageRecord("a.jpg", 4, 4, (Unsupported(label="car", tag="mask"),))
        masks = image.mask("car")
        assert len(masks) == 1
        assert not masks[0].any()

    def test_combined_is_union_of_instances(self) -> None:
        """Test mask_combined equals the logical OR of mask()."""
        image = ImageRecord(
            "a.jpg",
            16,
            16,
            (
                _square("car", 0, 0, group=1),
                Ellipse(label="car", cx=8, cy=8, rx=3, ry=2),
                _square("car", 10, 10, group=1),
                Box(label="car", xtl=1, ytl=12, xbr=6, ybr=15),
                _square("road", 2, 2),
            ),
        )
        assert np.array_equal(image.mask_combined("car"), _union(image.mask("car")))

    def test_fresh_buffers_per_call(self) -> None:
        """Test repeated calls do not share buffers."""
        image = ImageRecord("a.jpg", 4, 4, (_square("car", 0, 0, group=1),))
        first, second = image.mask("car")[0], image.mask("car")[0]
        assert first is not second


class TestMasks:
    """Test the one-pass label to mask mapping."""

    def test_matches_mask_combined(self) -> None:
        """Test every entry equals mask_combined for its label."""
        image = ImageRecord(
            "a.jpg",
            12,
            12,
            (
                _square("car", 0, 0, group=1),
                _square("road", 6, 6),
                _square("car", 6, 0, group=1),
                _square("car", 0, 6, group=2),
                Box(label="road", group=2, xtl=8, ytl=0, xbr=11, ybr=3),
            ),
        )
        masks = image.masks()
        assert list(masks) == ["car", "road"]
        for label, mask in masks.items():
            assert np.array_equal(mask, image.mask_combined(label))

    def test_group_does_not_leak_across_labels(self) -> None:
        """Test a group id reused under another label draws into that label only."""
        car, road = _square("car", 0, 0, group=1), _square("road", 6, 6, group=1)
        image = ImageRecord("a.jpg", 10, 10, (car, road))
        masks = image.masks()
        assert np.array_equal(masks["car"], _alone(image, car))
        assert np.array_equal(masks["road"], _alone(image, road))

    def test_empty_image(self) -> None:
        """Test an image without geometries maps nothing."""
        assert ImageRecord("a.jpg", 4, 4).masks() == {}
