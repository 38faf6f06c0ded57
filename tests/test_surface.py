from __future__ import annotations

import asyncio
import logging

import pytest

from htmlpdfx import ResourceLeakGuardFailure, SurfaceTracker, surface_scope


def test_scope_creates_and_releases_once(surface_factory, landscape) -> None:
    tracker = SurfaceTracker()

    async def scenario():
        async with surface_scope(surface_factory, landscape, 2, tracker=tracker) as surface:
            assert tracker.live == 1
            assert not surface.closed
        return surface

    surface = asyncio.run(scenario())

    assert surface.closed
    assert surface_factory.created == surface_factory.closed == 1
    assert (tracker.created, tracker.destroyed, tracker.live) == (1, 1, 0)


def test_scope_releases_on_error(surface_factory, landscape) -> None:
    tracker = SurfaceTracker()

    async def scenario():
        async with surface_scope(surface_factory, landscape, 2, tracker=tracker):
            raise KeyError("boom")

    with pytest.raises(KeyError):
        asyncio.run(scenario())

    assert surface_factory.created == surface_factory.closed == 1
    assert tracker.live == 0


def test_scope_refuses_second_live_surface(surface_factory, landscape) -> None:
    tracker = SurfaceTracker()

    async def scenario():
        async with surface_scope(surface_factory, landscape, 2, tracker=tracker):
            async with surface_scope(surface_factory, landscape, 2, tracker=tracker):
                pass  # pragma: no cover

    with pytest.raises(ResourceLeakGuardFailure):
        asyncio.run(scenario())

    assert surface_factory.created == surface_factory.closed == 1
    assert tracker.peak_live == 1


def test_teardown_failure_raises_on_success_path(fake_factory, landscape, caplog) -> None:
    factory = fake_factory(fail_close=True)
    tracker = SurfaceTracker()

    async def scenario():
        async with surface_scope(factory, landscape, 2, tracker=tracker):
            pass

    with caplog.at_level(logging.ERROR, logger="htmlpdfx.surface"):
        with pytest.raises(ResourceLeakGuardFailure, match="close failed"):
            asyncio.run(scenario())

    assert factory.closed == 1
    assert tracker.failed_releases == 1
    assert "Failed to release" in caplog.text


def test_teardown_failure_logged_while_unwinding(fake_factory, landscape, caplog) -> None:
    factory = fake_factory(fail_close=True)

    async def scenario():
        async with surface_scope(factory, landscape, 2):
            raise ValueError("render exploded")

    with caplog.at_level(logging.ERROR, logger="htmlpdfx.surface"):
        with pytest.raises(ValueError, match="render exploded"):
            asyncio.run(scenario())

    assert factory.closed == 1
    assert "while handling an error" in caplog.text
    assert "close failed" in caplog.text
