from __future__ import annotations

import io

import pytest
from pypdf import PdfReader

from htmlpdfx import AssemblyFailure, DocumentAssembler, DocumentStateError, OutputPackager, RasterImage
from htmlpdfx.formats import FormatRegistry
from conftest import make_png


def _reader(document) -> PdfReader:
    return PdfReader(io.BytesIO(document.serialize()))


def test_begin_document_is_empty() -> None:
    document = DocumentAssembler().begin_document("portrait", "A4")

    assert document.page_count == 0
    assert not document.is_finalized
    assert (document.page_size.width_px, document.page_size.height_px) == (794, 1123)


def test_unknown_format_rejected() -> None:
    from htmlpdfx import UnsupportedPageFormatError

    with pytest.raises(UnsupportedPageFormatError):
        DocumentAssembler().begin_document("portrait", "Folio")


def test_append_page_counts_and_fills_page(landscape, raster_factory) -> None:
    assembler = DocumentAssembler()
    document = assembler.begin_document("landscape", "A4")

    for _ in range(3):
        assembler.append_page(document, raster_factory(landscape))

    assert document.page_count == 3
    reader = _reader(document)
    assert len(reader.pages) == 3
    for page in reader.pages:
        assert float(page.mediabox.width) == pytest.approx(landscape.width_pt, abs=0.01)
        assert float(page.mediabox.height) == pytest.approx(landscape.height_pt, abs=0.01)
        assert page.extract_text().strip() == ""


def test_aspect_mismatch_rejected(portrait, raster_factory) -> None:
    assembler = DocumentAssembler()
    document = assembler.begin_document("landscape", "A4")

    with pytest.raises(AssemblyFailure, match="aspect ratio"):
        assembler.append_page(document, raster_factory(portrait))

    assert document.page_count == 0


def test_transparent_capture_flattened(landscape, raster_factory) -> None:
    assembler = DocumentAssembler()
    document = assembler.begin_document("landscape", "A4")

    assembler.append_page(document, raster_factory(landscape, color=(10, 20, 30, 0), mode="RGBA"))

    assert document.page_count == 1
    image = _reader(document).pages[0].images[0].image
    assert image.mode == "RGB"
    assert image.getpixel((5, 5)) == (255, 255, 255)


def test_undecodable_image_rejected(landscape) -> None:
    assembler = DocumentAssembler()
    document = assembler.begin_document("landscape", "A4")
    width, height = landscape.raster_size(2)
    broken = RasterImage(data=b"not a png", width=width, height=height, scale=2)

    with pytest.raises(AssemblyFailure, match="embed"):
        assembler.append_page(document, broken)
    assert document.page_count == 0


def test_append_after_finalize_rejected(landscape, raster_factory, blob_registry) -> None:
    assembler = DocumentAssembler()
    document = assembler.begin_document("landscape", "A4")
    assembler.append_page(document, raster_factory(landscape))
    OutputPackager(registry=blob_registry, save=False).finalize(document, "out.pdf")

    with pytest.raises(DocumentStateError):
        assembler.append_page(document, raster_factory(landscape))


def test_custom_format_registry() -> None:
    formats = FormatRegistry()
    formats.register("Square", 100, 100)
    assembler = DocumentAssembler(formats)
    document = assembler.begin_document("portrait", "square")
    size = document.page_size

    image = RasterImage(
        data=make_png(size.raster_size(2)),
        width=size.width_px * 2,
        height=size.height_px * 2,
        scale=2,
    )
    assembler.append_page(document, image)
    assert document.page_count == 1


def test_document_metadata() -> None:
    document = DocumentAssembler().begin_document(metadata={"/Title": "Quarterly", "/Author": None})
    assert "open" in repr(document)

    metadata = _reader(document).metadata
    assert metadata["/Title"] == "Quarterly"
    assert metadata["/Producer"] == "htmlpdfx"
    assert "/Author" not in metadata


@pytest.mark.parametrize("orientation", ["portrait", "landscape"])
def test_a5_pages_accepted_in_both_orientations(orientation: str, raster_factory) -> None:
    formats = FormatRegistry()
    formats.register("A5", 148, 210)
    assembler = DocumentAssembler(formats)
    document = assembler.begin_document(orientation, "A5")

    assembler.append_page(document, raster_factory(document.page_size))

    page = _reader(document).pages[0]
    assert float(page.mediabox.width) == pytest.approx(document.page_size.width_pt, abs=0.01)
    assert float(page.mediabox.height) == pytest.approx(document.page_size.height_pt, abs=0.01)


def test_document_serializes_once(landscape, raster_factory) -> None:
    assembler = DocumentAssembler()
    document = assembler.begin_document("landscape", "A4")
    assembler.append_page(document, raster_factory(landscape))

    assert document.serialize().startswith(b"%PDF")
    assert document.is_finalized
    with pytest.raises(DocumentStateError):
        document.serialize()
    with pytest.raises(DocumentStateError):
        document.ensure_open()
