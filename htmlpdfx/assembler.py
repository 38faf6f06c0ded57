"""Assemble captured page images into a single PDF document."""

from __future__ import annotations

import io
import logging
from typing import Mapping, Optional

import img2pdf
from PIL import Image
from pypdf import PageObject, PdfReader, PdfWriter

from .exceptions import AssemblyFailure, DocumentStateError, PackagingFailure
from .formats import ASPECT_TOLERANCE, FormatRegistry, Orientation, PageSize
from .formats import registry as default_formats
from .renderer import RasterImage

LOGGER = logging.getLogger("htmlpdfx.assembler")
PRODUCER = "htmlpdfx"


class OutputDocument:
    """Append-only accumulator of PDF pages for one generation run.

    Pages can only be added through :meth:`DocumentAssembler.append_page`
    and the document can be serialized only once, by
    :class:`~htmlpdfx.packager.OutputPackager`.
    """

    def __init__(self, page_size: PageSize, *, metadata: Optional[Mapping[str, str]] = None) -> None:
        self.page_size = page_size
        self._writer = PdfWriter()
        self._page_count = 0
        self._finalized = False
        info = {"/Producer": PRODUCER}
        if metadata:
            info.update({key: str(value) for key, value in metadata.items() if value is not None})
        self._writer.add_metadata(info)

    @property
    def page_count(self) -> int:
        return self._page_count

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def ensure_open(self) -> None:
        """Raise :class:`DocumentStateError` once the document is finalized."""

        if self._finalized:
            raise DocumentStateError("Document has already been finalized")

    def add_page(self, page: PageObject) -> None:
        self.ensure_open()
        self._writer.add_page(page)
        self._page_count += 1

    def serialize(self) -> bytes:
        """Write the document to PDF bytes and mark it finalized.

        Only one call succeeds; later calls raise :class:`DocumentStateError`.
        """

        self.ensure_open()
        # Marked before writing so a failed write cannot be retried on the
        # same document.
        self._finalized = True
        buffer = io.BytesIO()
        try:
            self._writer.write(buffer)
        except Exception as exc:
            LOGGER.error("Failed to serialize document: %s", exc)
            raise PackagingFailure(f"Failed to serialize document: {exc}") from exc
        return buffer.getvalue()

    def __repr__(self) -> str:
        state = "finalized" if self._finalized else "open"
        return f"<OutputDocument {self.page_size} pages={self._page_count} {state}>"


def _opaque_png(data: bytes) -> bytes:
    """Return *data* with any transparency flattened onto white."""

    with Image.open(io.BytesIO(data)) as image:
        has_alpha = "A" in image.getbands() or "transparency" in image.info
        if not has_alpha:
            return data
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        buffer = io.BytesIO()
        background.save(buffer, format="PNG")
        return buffer.getvalue()


class DocumentAssembler:
    """Create output documents and place captured images on their pages."""

    def __init__(self, formats: Optional[FormatRegistry] = None) -> None:
        self.formats = formats or default_formats

    def begin_document(
        self,
        orientation: Orientation | str = Orientation.LANDSCAPE,
        format: str = "A4",
        *,
        metadata: Optional[Mapping[str, str]] = None,
    ) -> OutputDocument:
        page_size = self.formats.page_size(format, orientation)
        LOGGER.debug("Starting %s document", page_size)
        return OutputDocument(page_size, metadata=metadata)

    def append_page(self, document: OutputDocument, image: RasterImage) -> None:
        """Add one page to *document* fully covered by *image*."""

        document.ensure_open()
        page_size = document.page_size
        if abs(image.aspect_ratio - page_size.aspect_ratio) > ASPECT_TOLERANCE:
            LOGGER.error(
                "Image %dx%d does not match %s aspect ratio",
                image.width,
                image.height,
                page_size,
            )
            raise AssemblyFailure(
                f"Image aspect ratio {image.aspect_ratio:.4f} does not match "
                f"{page_size} ({page_size.aspect_ratio:.4f})"
            )

        layout = img2pdf.get_layout_fun(
            pagesize=(page_size.width_pt, page_size.height_pt),
            fit=img2pdf.FitMode.exact,
        )
        try:
            pdf_bytes = img2pdf.convert(_opaque_png(image.data), layout_fun=layout)
            page = PdfReader(io.BytesIO(pdf_bytes)).pages[0]
        except Exception as exc:
            LOGGER.error("Failed to embed page image: %s", exc)
            raise AssemblyFailure(f"Failed to embed page image: {exc}") from exc

        document.add_page(page)
        LOGGER.debug("Appended page %d to %s document", document.page_count, page_size)


__all__ = ["OutputDocument", "DocumentAssembler", "ASPECT_TOLERANCE"]
