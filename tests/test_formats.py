from __future__ import annotations

import pytest

from htmlpdfx import UnsupportedPageFormatError, resolve_page_size
from htmlpdfx.formats import ASPECT_TOLERANCE, FormatRegistry, Orientation, registry


def test_a4_reference_pixel_sizes() -> None:
    portrait = resolve_page_size("A4", "portrait")
    landscape = resolve_page_size("A4", "landscape")

    assert (portrait.width_px, portrait.height_px) == (794, 1123)
    assert (landscape.width_px, landscape.height_px) == (1123, 794)
    assert (portrait.width_mm, portrait.height_mm) == (210, 297)
    assert (landscape.width_mm, landscape.height_mm) == (297, 210)


def test_raster_size_is_exact_multiple() -> None:
    portrait = resolve_page_size("A4", Orientation.PORTRAIT)
    assert portrait.raster_size(2) == (1588, 2246)
    assert portrait.raster_size(3) == (2382, 3369)


def test_points_and_aspect_ratio() -> None:
    landscape = resolve_page_size("a4", "LANDSCAPE")
    assert landscape.width_pt == pytest.approx(841.89, abs=0.01)
    assert landscape.height_pt == pytest.approx(595.28, abs=0.01)
    assert landscape.aspect_ratio == pytest.approx(297 / 210)
    assert str(landscape) == "A4 landscape"


def test_unknown_format_rejected() -> None:
    with pytest.raises(UnsupportedPageFormatError) as excinfo:
        resolve_page_size("B7", "portrait")
    assert isinstance(excinfo.value, ValueError)
    assert "A4" in str(excinfo.value)


def test_unknown_orientation_rejected() -> None:
    with pytest.raises(UnsupportedPageFormatError):
        resolve_page_size("A4", "diagonal")


def test_registry_extension_point() -> None:
    formats = FormatRegistry()
    formats.register("Letter", 215.9, 279.4)

    size = formats.page_size("letter", "landscape")
    assert (size.width_mm, size.height_mm) == (279.4, 215.9)
    assert (size.width_px, size.height_px) == (1056, 816)
    assert "LETTER" in formats
    assert list(formats.names()) == ["Letter"]

    with pytest.raises(ValueError):
        formats.register("letter", 1, 1)
    with pytest.raises(UnsupportedPageFormatError):
        formats.register("Tiny", 0, 10)


def test_default_registry_contains_a4() -> None:
    assert "A4" in registry
    assert "A4" in list(registry.names())


@pytest.mark.parametrize(
    "orientation, expected_px",
    [("portrait", (559, 793)), ("landscape", (793, 559))],
)
def test_a5_pixel_size_keeps_aspect_ratio(orientation: str, expected_px: tuple[int, int]) -> None:
    formats = FormatRegistry()
    formats.register("A5", 148, 210)

    size = formats.page_size("A5", orientation)

    assert (size.width_px, size.height_px) == expected_px
    assert abs(size.pixel_aspect_ratio - size.aspect_ratio) <= ASPECT_TOLERANCE
    width, height = size.raster_size(2)
    assert abs(width / height - size.aspect_ratio) <= ASPECT_TOLERANCE


def test_format_too_small_to_capture_rejected() -> None:
    formats = FormatRegistry()

    with pytest.raises(UnsupportedPageFormatError, match="cannot be captured"):
        formats.register("Stamp", 5, 7)
    assert "Stamp" not in formats
