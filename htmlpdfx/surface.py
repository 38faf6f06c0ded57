"""Scoped ownership of the off-screen surfaces pages are rendered into."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Protocol, runtime_checkable

from .exceptions import ResourceLeakGuardFailure
from .formats import PageSize

LOGGER = logging.getLogger("htmlpdfx.surface")


@runtime_checkable
class RenderSurface(Protocol):
    """An off-screen visual context sized to exactly one page."""

    async def load(self, markup: str) -> None:
        """Materialize *markup* inside the surface."""

    async def wait_until_settled(self) -> None:
        """Return once all content, including sub-resources, is stable."""

    async def capture(self) -> bytes:
        """Return the surface as PNG bytes."""

    async def close(self) -> None:
        """Destroy the surface."""


class SurfaceFactory(Protocol):
    async def create(self, page_size: PageSize, scale: int) -> RenderSurface:
        """Allocate a new surface of *page_size* captured at *scale*."""


@dataclass(slots=True)
class SurfaceTracker:
    """Counts surface creation and teardown for a generation run."""

    created: int = 0
    destroyed: int = 0
    failed_releases: int = 0
    peak_live: int = 0

    @property
    def live(self) -> int:
        return self.created - self.destroyed - self.failed_releases

    def on_created(self) -> None:
        self.created += 1
        self.peak_live = max(self.peak_live, self.live)

    def on_destroyed(self) -> None:
        self.destroyed += 1

    def on_release_failed(self) -> None:
        self.failed_releases += 1


async def _release(
    surface: RenderSurface,
    tracker: SurfaceTracker,
    page_size: PageSize,
    *,
    unwinding: bool,
) -> None:
    try:
        await surface.close()
    except Exception as exc:
        tracker.on_release_failed()
        if unwinding:
            # The propagating error takes precedence.
            LOGGER.error(
                "Failed to release %s render surface while handling an error",
                page_size,
                exc_info=exc,
            )
            return
        LOGGER.error("Failed to release %s render surface: %s", page_size, exc)
        raise ResourceLeakGuardFailure(
            f"Failed to release {page_size} render surface: {exc}"
        ) from exc
    tracker.on_destroyed()
    LOGGER.debug("Released %s render surface", page_size)


@asynccontextmanager
async def surface_scope(
    factory: SurfaceFactory,
    page_size: PageSize,
    scale: int,
    *,
    tracker: Optional[SurfaceTracker] = None,
) -> AsyncIterator[RenderSurface]:
    """Create one surface and guarantee it is closed on every exit path.

    Raises:
        ResourceLeakGuardFailure: If another surface tracked by *tracker*
            is still live, or if closing the surface fails on the success
            path.
    """

    tracker = tracker if tracker is not None else SurfaceTracker()
    if tracker.live:
        raise ResourceLeakGuardFailure(
            f"Refusing to create a render surface while {tracker.live} surface(s) are live"
        )

    surface = await factory.create(page_size, scale)
    tracker.on_created()
    LOGGER.debug("Created %s render surface at %dx", page_size, scale)

    try:
        yield surface
    except BaseException:
        await _release(surface, tracker, page_size, unwinding=True)
        raise
    await _release(surface, tracker, page_size, unwinding=False)


__all__ = ["RenderSurface", "SurfaceFactory", "SurfaceTracker", "surface_scope"]
