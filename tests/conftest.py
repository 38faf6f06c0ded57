from __future__ import annotations

import asyncio
import io
from pathlib import Path
from typing import Callable, Iterable, Optional
import sys

import pytest
from PIL import Image

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from htmlpdfx.formats import Orientation, PageSize, resolve_page_size  # noqa: E402
from htmlpdfx.packager import BlobRegistry  # noqa: E402
from htmlpdfx.renderer import RasterImage  # noqa: E402

WHITE = (255, 255, 255)


def make_png(size: tuple[int, int], color=WHITE, mode: str = "RGB", image_format: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format=image_format)
    return buffer.getvalue()


class FakeSurface:
    def __init__(self, factory: "FakeSurfaceFactory", page_size: PageSize, scale: int) -> None:
        self.factory = factory
        self.page_size = page_size
        self.scale = scale
        self.markup: Optional[str] = None
        self.settled = asyncio.Event()
        self.closed = False
        if factory.auto_settle:
            self.settled.set()

    async def load(self, markup: str) -> None:
        self.markup = markup
        self.factory.loaded.append(markup)
        if any(token in markup for token in self.factory.fail_on):
            raise RuntimeError(f"cannot render {markup}")

    async def wait_until_settled(self) -> None:
        await self.settled.wait()

    async def capture(self) -> bytes:
        self.factory.captured.append(self.markup)
        size = self.factory.capture_size or self.page_size.raster_size(self.scale)
        color = self.factory.colors.get(self.markup, WHITE)
        return make_png(size, color, image_format=self.factory.image_format)

    async def close(self) -> None:
        self.factory.closed += 1
        self.closed = True
        if self.factory.fail_close:
            raise RuntimeError("close failed")


class FakeSurfaceFactory:
    """In-memory surface factory that records every lifecycle event."""

    def __init__(
        self,
        *,
        fail_on: Iterable[str] = (),
        colors: Optional[dict[str, tuple[int, int, int]]] = None,
        auto_settle: bool = True,
        capture_size: Optional[tuple[int, int]] = None,
        image_format: str = "PNG",
        fail_close: bool = False,
    ) -> None:
        self.fail_on = tuple(fail_on)
        self.colors = dict(colors or {})
        self.auto_settle = auto_settle
        self.capture_size = capture_size
        self.image_format = image_format
        self.fail_close = fail_close
        self.created = 0
        self.closed = 0
        self.peak_live = 0
        self.surfaces: list[FakeSurface] = []
        self.loaded: list[str] = []
        self.captured: list[Optional[str]] = []
        self.started = False
        self.stopped = False

    @property
    def live(self) -> int:
        return self.created - self.closed

    async def create(self, page_size: PageSize, scale: int) -> FakeSurface:
        self.created += 1
        self.peak_live = max(self.peak_live, self.live)
        surface = FakeSurface(self, page_size, scale)
        self.surfaces.append(surface)
        return surface

    async def __aenter__(self) -> "FakeSurfaceFactory":
        self.started = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stopped = True


@pytest.fixture()
def fake_factory() -> Callable[..., FakeSurfaceFactory]:
    def _create(**kwargs) -> FakeSurfaceFactory:
        return FakeSurfaceFactory(**kwargs)

    return _create


@pytest.fixture()
def surface_factory() -> FakeSurfaceFactory:
    return FakeSurfaceFactory()


@pytest.fixture()
def landscape() -> PageSize:
    return resolve_page_size("A4", Orientation.LANDSCAPE)


@pytest.fixture()
def portrait() -> PageSize:
    return resolve_page_size("A4", Orientation.PORTRAIT)


@pytest.fixture()
def raster_factory() -> Callable[..., RasterImage]:
    def _create(page_size: PageSize, color=WHITE, mode: str = "RGB", scale: int = 2) -> RasterImage:
        width, height = page_size.raster_size(scale)
        return RasterImage(
            data=make_png((width, height), color, mode=mode),
            width=width,
            height=height,
            scale=scale,
        )

    return _create


@pytest.fixture()
def blob_registry() -> BlobRegistry:
    return BlobRegistry()
