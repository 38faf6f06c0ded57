"""End-to-end orchestration: pages in, one PDF out."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from .assembler import DocumentAssembler
from .config import GenerationOptions
from .content import PageContent, coerce_pages
from .exceptions import AssemblyFailure, DocumentStateError, GenerationCancelled
from .formats import FormatRegistry
from .formats import registry as default_formats
from .packager import BlobRegistry, GenerationResult, OutputPackager
from .renderer import PageRenderer
from .surface import SurfaceFactory, SurfaceTracker

LOGGER = logging.getLogger("htmlpdfx.generator")

ProgressCallback = Callable[[int, int], None]


class GenerationState(str, Enum):
    IDLE = "idle"
    RENDERING = "rendering"
    ASSEMBLING = "assembling"
    PACKAGING = "packaging"
    DONE = "done"
    FAILED = "failed"


_ACTIVE_STATES = {GenerationState.RENDERING, GenerationState.ASSEMBLING, GenerationState.PACKAGING}


class PDFGenerator:
    """Render pages one at a time and package them as a single PDF.

    Pages are processed strictly in order and never concurrently: page
    ``i`` is rendered, captured and appended before page ``i + 1`` is
    started. Any failure aborts the run and no result is produced.
    """

    def __init__(
        self,
        surface_factory: SurfaceFactory,
        *,
        options: Optional[GenerationOptions] = None,
        formats: Optional[FormatRegistry] = None,
        blob_registry: Optional[BlobRegistry] = None,
    ) -> None:
        self.surface_factory = surface_factory
        self.options = options or GenerationOptions()
        self.formats = formats or default_formats
        self.blob_registry = blob_registry
        self.state = GenerationState.IDLE
        self.page_index: Optional[int] = None
        self.error: Optional[BaseException] = None
        self.tracker: Optional[SurfaceTracker] = None

    def _transition(self, state: GenerationState, page_index: Optional[int] = None) -> None:
        self.state = state
        self.page_index = page_index
        if page_index is None:
            LOGGER.debug("Generation state -> %s", state.value)
        else:
            LOGGER.debug("Generation state -> %s(page %d)", state.value, page_index + 1)

    def _packager(self) -> OutputPackager:
        return OutputPackager(
            registry=self.blob_registry,
            output_dir=self.options.output_dir,
            save=self.options.save,
        )

    async def generate(
        self,
        pages: Iterable[PageContent | str],
        *,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> GenerationResult:
        """Generate a PDF with one page per item in *pages*.

        Raises:
            AssemblyFailure: If *pages* is empty or a capture cannot be placed.
            RenderFailure: If any page cannot be rendered.
            PackagingFailure: If the finished document cannot be serialized.
            GenerationCancelled: If *cancel_event* is set before a page starts.
            DocumentStateError: If this generator is already running.
        """

        if self.state in _ACTIVE_STATES:
            raise DocumentStateError("A generation run is already in progress")

        options = self.options
        self.error = None
        self.tracker = SurfaceTracker()
        try:
            contents = coerce_pages(pages)
            total = len(contents)
            if total == 0:
                raise AssemblyFailure("Nothing to generate: no pages were provided")

            assembler = DocumentAssembler(self.formats)
            document = assembler.begin_document(
                options.orientation,
                options.format,
                metadata=options.document_metadata(),
            )
            renderer = PageRenderer(
                self.surface_factory,
                scale=options.scale,
                settle_timeout=options.settle_timeout,
                tracker=self.tracker,
            )

            for index, content in enumerate(contents):
                if cancel_event is not None and cancel_event.is_set():
                    raise GenerationCancelled(
                        f"Generation cancelled before page {index + 1} of {total}"
                    )
                self._transition(GenerationState.RENDERING, index)
                image = await renderer.render(content, document.page_size, page_index=index)
                self._transition(GenerationState.ASSEMBLING, index)
                assembler.append_page(document, image)
                if progress_callback is not None:
                    progress_callback(index + 1, total)

            self._transition(GenerationState.PACKAGING)
            result = self._packager().finalize(document, options.filename)
        except BaseException as exc:
            self.error = exc
            self._transition(GenerationState.FAILED, self.page_index)
            LOGGER.error("PDF generation failed: %s", exc)
            raise

        self._transition(GenerationState.DONE)
        LOGGER.info("Generated %d page PDF %s", result.page_count, options.filename)
        return result


async def generate_pdf_async(
    pages: Iterable[PageContent | str],
    *,
    surface_factory: Optional[SurfaceFactory] = None,
    options: Optional[GenerationOptions] = None,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
    **config: Any,
) -> GenerationResult:
    """Generate a PDF, launching a headless browser unless a factory is given.

    Extra keyword arguments are applied as :class:`GenerationOptions` fields.
    """

    resolved = options or GenerationOptions()
    if config:
        resolved = resolved.with_updates(**config)

    if surface_factory is not None:
        generator = PDFGenerator(surface_factory, options=resolved)
        return await generator.generate(
            pages, progress_callback=progress_callback, cancel_event=cancel_event
        )

    from .browser import PlaywrightSurfaceFactory

    async with PlaywrightSurfaceFactory() as factory:
        generator = PDFGenerator(factory, options=resolved)
        return await generator.generate(
            pages, progress_callback=progress_callback, cancel_event=cancel_event
        )


def generate_pdf(
    pages: Iterable[PageContent | str],
    *,
    surface_factory: Optional[SurfaceFactory] = None,
    options: Optional[GenerationOptions] = None,
    progress_callback: Optional[ProgressCallback] = None,
    **config: Any,
) -> GenerationResult:
    """Synchronous wrapper around :func:`generate_pdf_async`."""

    return asyncio.run(
        generate_pdf_async(
            pages,
            surface_factory=surface_factory,
            options=options,
            progress_callback=progress_callback,
            **config,
        )
    )


__all__ = [
    "GenerationState",
    "PDFGenerator",
    "generate_pdf",
    "generate_pdf_async",
]
