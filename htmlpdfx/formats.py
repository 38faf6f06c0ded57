"""Physical page formats and the registry used to resolve them."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable

from .exceptions import UnsupportedPageFormatError

MM_PER_INCH = 25.4
REFERENCE_DPI = 96
POINTS_PER_INCH = 72

# Largest allowed difference between a capture's pixel ratio and its page's W/H.
ASPECT_TOLERANCE = 1e-3


class Orientation(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"

    @classmethod
    def coerce(cls, value: "Orientation | str") -> "Orientation":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise UnsupportedPageFormatError(
                f"Unsupported orientation '{value}' (expected portrait or landscape)"
            ) from exc


def _mm_to_px(mm: float) -> int:
    return int(round(mm / MM_PER_INCH * REFERENCE_DPI))


def _pixel_extent(width_mm: float, height_mm: float) -> tuple[int, int]:
    """Return the 96 DPI pixel size whose ratio is closest to ``width_mm / height_mm``.

    Each side is the floor or ceiling of its exact length, preferring plain
    rounding when two candidates are equally close. The choice is made on
    the portrait form so both orientations use the same pair of sides.
    """

    landscape = width_mm > height_mm
    short_mm, long_mm = sorted((width_mm, height_mm))
    target = short_mm / long_mm
    rounded = (_mm_to_px(short_mm), _mm_to_px(long_mm))

    def sides(mm: float) -> set[int]:
        exact = mm / MM_PER_INCH * REFERENCE_DPI
        return {side for side in (math.floor(exact), math.ceil(exact)) if side > 0}

    candidates = [(short, long) for short in sides(short_mm) for long in sides(long_mm)]
    short_px, long_px = min(
        candidates,
        key=lambda pair: (abs(pair[0] / pair[1] - target), pair != rounded),
    )
    if landscape:
        return long_px, short_px
    return short_px, long_px


def _mm_to_pt(mm: float) -> float:
    return mm / MM_PER_INCH * POINTS_PER_INCH


@dataclass(frozen=True, slots=True)
class PageSize:
    """A page format resolved against an orientation."""

    format_name: str
    orientation: Orientation
    width_mm: float
    height_mm: float

    @property
    def width_px(self) -> int:
        return _pixel_extent(self.width_mm, self.height_mm)[0]

    @property
    def height_px(self) -> int:
        return _pixel_extent(self.width_mm, self.height_mm)[1]

    @property
    def width_pt(self) -> float:
        return _mm_to_pt(self.width_mm)

    @property
    def height_pt(self) -> float:
        return _mm_to_pt(self.height_mm)

    @property
    def aspect_ratio(self) -> float:
        return self.width_mm / self.height_mm

    @property
    def pixel_aspect_ratio(self) -> float:
        return self.width_px / self.height_px

    def raster_size(self, scale: int) -> tuple[int, int]:
        """Return the captured pixel size at *scale* oversampling."""

        return self.width_px * scale, self.height_px * scale

    def __str__(self) -> str:
        return f"{self.format_name} {self.orientation.value}"


@dataclass(frozen=True, slots=True)
class PageFormat:
    """A named physical paper size, stored in portrait orientation."""

    name: str
    width_mm: float
    height_mm: float

    def size(self, orientation: Orientation | str = Orientation.PORTRAIT) -> PageSize:
        resolved = Orientation.coerce(orientation)
        short, long = sorted((self.width_mm, self.height_mm))
        if resolved is Orientation.LANDSCAPE:
            return PageSize(self.name, resolved, long, short)
        return PageSize(self.name, resolved, short, long)


class FormatRegistry:
    """Registry of known page formats keyed by case-insensitive name."""

    def __init__(self) -> None:
        self._formats: Dict[str, PageFormat] = {}

    def register(self, name: str, width_mm: float, height_mm: float) -> PageFormat:
        key = name.strip().lower()
        if not key:
            raise UnsupportedPageFormatError("Page format name must not be empty")
        if key in self._formats:
            raise ValueError(f"Page format '{name}' is already registered")
        if width_mm <= 0 or height_mm <= 0:
            raise UnsupportedPageFormatError(
                f"Page format '{name}' must have positive dimensions"
            )
        page_format = PageFormat(name.strip(), float(width_mm), float(height_mm))
        for orientation in Orientation:
            size = page_format.size(orientation)
            if abs(size.pixel_aspect_ratio - size.aspect_ratio) > ASPECT_TOLERANCE:
                raise UnsupportedPageFormatError(
                    f"Page format '{name}' cannot be captured at {REFERENCE_DPI} DPI: "
                    f"{size.width_px}x{size.height_px}px misses its {orientation.value} "
                    f"aspect ratio {size.aspect_ratio:.4f}"
                )
        self._formats[key] = page_format
        return page_format

    def get(self, name: str) -> PageFormat:
        try:
            return self._formats[name.strip().lower()]
        except KeyError as exc:
            known = ", ".join(self.names()) or "none"
            raise UnsupportedPageFormatError(
                f"Unsupported page format '{name}' (known formats: {known})"
            ) from exc

    def page_size(self, name: str, orientation: Orientation | str) -> PageSize:
        return self.get(name).size(orientation)

    def names(self) -> Iterable[str]:
        return sorted(page_format.name for page_format in self._formats.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.strip().lower() in self._formats


registry = FormatRegistry()
registry.register("A4", 210, 297)


def register_format(name: str, width_mm: float, height_mm: float) -> PageFormat:
    """Register an additional page format with the default registry."""

    return registry.register(name, width_mm, height_mm)


def resolve_page_size(name: str = "A4", orientation: Orientation | str = Orientation.LANDSCAPE) -> PageSize:
    return registry.page_size(name, orientation)


__all__ = [
    "Orientation",
    "PageFormat",
    "PageSize",
    "FormatRegistry",
    "registry",
    "register_format",
    "resolve_page_size",
    "REFERENCE_DPI",
    "ASPECT_TOLERANCE",
]
