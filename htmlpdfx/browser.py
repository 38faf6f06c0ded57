"""Headless browser surfaces backed by Playwright."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from .exceptions import RenderFailure
from .formats import PageSize
from .templating import render_template

LOGGER = logging.getLogger("htmlpdfx.browser")

PAGE_ELEMENT_ID = "htmlpdfx-page"

# Resolves once fonts, images and an optional content-provided
# ``window.htmlpdfxReady`` promise have all completed, then waits two
# animation frames so the final layout has been painted.
SETTLE_SCRIPT = """
async () => {
  await document.fonts.ready;
  const pending = Array.from(document.images)
    .filter((img) => !img.complete)
    .map((img) => new Promise((resolve) => {
      img.addEventListener("load", resolve, { once: true });
      img.addEventListener("error", resolve, { once: true });
    }));
  await Promise.all(pending);
  if (window.htmlpdfxReady && typeof window.htmlpdfxReady.then === "function") {
    await window.htmlpdfxReady;
  }
  await new Promise((resolve) => requestAnimationFrame(() => requestAnimationFrame(resolve)));
  return true;
}
"""


def build_page_document(markup: str, page_size: PageSize) -> str:
    """Wrap *markup* in a document whose page container is exactly one page."""

    return render_template(
        "page_shell.html.jinja",
        markup=markup,
        width=page_size.width_px,
        height=page_size.height_px,
    )


class PlaywrightSurface:
    """One isolated browser context holding a single page-sized tab."""

    def __init__(self, context: BrowserContext, page: Page, page_size: PageSize) -> None:
        self._context = context
        self._page = page
        self.page_size = page_size
        self.closed = False

    async def load(self, markup: str) -> None:
        await self._page.set_content(build_page_document(markup, self.page_size), wait_until="load")

    async def wait_until_settled(self) -> None:
        await self._page.wait_for_load_state("networkidle")
        await self._page.evaluate(SETTLE_SCRIPT)

    async def capture(self) -> bytes:
        return await self._page.screenshot(
            type="png",
            clip={
                "x": 0,
                "y": 0,
                "width": self.page_size.width_px,
                "height": self.page_size.height_px,
            },
        )

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self._context.close()


class PlaywrightSurfaceFactory:
    """Create :class:`PlaywrightSurface` objects from one headless browser.

    Use as an async context manager so the browser and driver are shut
    down when generation finishes::

        async with PlaywrightSurfaceFactory() as factory:
            result = await PDFGenerator(factory).generate(pages)
    """

    def __init__(
        self,
        *,
        browser_type: str = "chromium",
        launch_options: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.browser_type = browser_type
        self.launch_options = dict(launch_options or {})
        # Surfaces are pure off-screen artifacts.
        self.launch_options["headless"] = True
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def start(self) -> "PlaywrightSurfaceFactory":
        if self._browser is not None:
            return self
        self._playwright = await async_playwright().start()
        try:
            launcher = getattr(self._playwright, self.browser_type)
            self._browser = await launcher.launch(**self.launch_options)
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise
        LOGGER.debug("Launched headless %s", self.browser_type)
        return self

    async def stop(self) -> None:
        browser, playwright = self._browser, self._playwright
        self._browser = None
        self._playwright = None
        try:
            if browser is not None:
                await browser.close()
        finally:
            if playwright is not None:
                await playwright.stop()

    async def __aenter__(self) -> "PlaywrightSurfaceFactory":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def create(self, page_size: PageSize, scale: int) -> PlaywrightSurface:
        if self._browser is None:
            raise RenderFailure("Browser is not running; start the surface factory first")
        context = await self._browser.new_context(
            viewport={"width": page_size.width_px, "height": page_size.height_px},
            device_scale_factor=scale,
        )
        try:
            page = await context.new_page()
        except Exception:
            await context.close()
            raise
        return PlaywrightSurface(context, page, page_size)


__all__ = ["PlaywrightSurface", "PlaywrightSurfaceFactory", "build_page_document", "SETTLE_SCRIPT"]
