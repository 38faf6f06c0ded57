"""Render one page of content into a raster image."""

from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError

from .content import PageContent, coerce_page_content
from .exceptions import HtmlPdfXError, RenderFailure
from .formats import PageSize
from .surface import SurfaceFactory, SurfaceTracker, surface_scope

LOGGER = logging.getLogger("htmlpdfx.renderer")

DEFAULT_SCALE = 2
MIN_SCALE = 2
DEFAULT_SETTLE_TIMEOUT = 30.0


@dataclass(frozen=True, slots=True)
class RasterImage:
    """A lossless capture of one rendered page."""

    data: bytes
    width: int
    height: int
    scale: int
    mime_type: str = "image/png"

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


def validate_scale(scale: int) -> int:
    if isinstance(scale, bool) or not isinstance(scale, int) or scale < MIN_SCALE:
        raise ValueError(f"Oversampling scale must be an integer >= {MIN_SCALE}, got {scale!r}")
    return scale


class PageRenderer:
    """Materialize page content in a surface and capture it as PNG.

    Every call owns exactly one surface, obtained through
    :func:`~htmlpdfx.surface.surface_scope`, and waits for the surface's
    settle signal before capturing. A surface that does not settle within
    ``settle_timeout`` seconds fails the page.
    """

    def __init__(
        self,
        factory: SurfaceFactory,
        *,
        scale: int = DEFAULT_SCALE,
        settle_timeout: float = DEFAULT_SETTLE_TIMEOUT,
        tracker: Optional[SurfaceTracker] = None,
    ) -> None:
        if settle_timeout <= 0:
            raise ValueError("settle_timeout must be positive")
        self.factory = factory
        self.scale = validate_scale(scale)
        self.settle_timeout = settle_timeout
        self.tracker = tracker if tracker is not None else SurfaceTracker()

    async def render(
        self,
        content: PageContent | str,
        page_size: PageSize,
        *,
        page_index: Optional[int] = None,
    ) -> RasterImage:
        label = f"page {page_index + 1}" if page_index is not None else "page"
        page = coerce_page_content(content)

        try:
            markup = page.to_markup()
            async with surface_scope(
                self.factory, page_size, self.scale, tracker=self.tracker
            ) as surface:
                data = await self._materialize(surface, markup, label, page_index)
        except RenderFailure as exc:
            if exc.page_index is None and page_index is not None:
                raise RenderFailure(f"Failed to render {label}: {exc}", page_index=page_index) from exc
            raise
        except HtmlPdfXError:
            raise
        except Exception as exc:
            LOGGER.error("Failed to render %s: %s", label, exc)
            raise RenderFailure(f"Failed to render {label}: {exc}", page_index=page_index) from exc

        image = self._to_raster(data, page_size, label, page_index)
        LOGGER.debug("Captured %s at %dx%d", label, image.width, image.height)
        return image

    async def _materialize(self, surface, markup: str, label: str, page_index: Optional[int]) -> bytes:
        await surface.load(markup)
        try:
            await asyncio.wait_for(surface.wait_until_settled(), timeout=self.settle_timeout)
        except asyncio.TimeoutError as exc:
            LOGGER.error("Timed out waiting for %s to settle", label)
            raise RenderFailure(
                f"Timed out after {self.settle_timeout}s waiting for {label} to settle",
                page_index=page_index,
            ) from exc
        return await surface.capture()

    def _to_raster(
        self,
        data: bytes,
        page_size: PageSize,
        label: str,
        page_index: Optional[int],
    ) -> RasterImage:
        try:
            with Image.open(io.BytesIO(data)) as image:
                image_format = image.format
                width, height = image.size
        except (UnidentifiedImageError, OSError) as exc:
            raise RenderFailure(f"Capture of {label} is not a readable image", page_index=page_index) from exc

        if image_format != "PNG":
            raise RenderFailure(
                f"Capture of {label} must be PNG, got {image_format}", page_index=page_index
            )

        expected = page_size.raster_size(self.scale)
        if (width, height) != expected:
            raise RenderFailure(
                f"Capture of {label} is {width}x{height}px, expected {expected[0]}x{expected[1]}px",
                page_index=page_index,
            )
        return RasterImage(data=data, width=width, height=height, scale=self.scale)


__all__ = ["RasterImage", "PageRenderer", "validate_scale", "DEFAULT_SCALE", "DEFAULT_SETTLE_TIMEOUT"]
