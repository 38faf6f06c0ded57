"""Render HTML page fragments into a single image-based PDF."""

from __future__ import annotations

from .assembler import DocumentAssembler, OutputDocument
from .config import GenerationOptions
from .content import (
    PageContent,
    RawMarkup,
    StructuredRecord,
    coerce_page_content,
    escape_html,
    inject_content,
)
from .exceptions import (
    AssemblyFailure,
    ContentSourceError,
    DocumentStateError,
    GenerationCancelled,
    HtmlPdfXError,
    PackagingFailure,
    RenderFailure,
    ResourceLeakGuardFailure,
    UnsupportedPageFormatError,
)
from .formats import (
    FormatRegistry,
    Orientation,
    PageFormat,
    PageSize,
    register_format,
    resolve_page_size,
)
from .generator import GenerationState, PDFGenerator, generate_pdf, generate_pdf_async
from .packager import BlobReference, BlobRegistry, GenerationResult, OutputPackager
from .renderer import PageRenderer, RasterImage
from .report import ReportBuilder, sample_template
from .sources import ContentSession, Snippet, SnippetData, fetch_local_content
from .surface import RenderSurface, SurfaceFactory, SurfaceTracker, surface_scope

__version__ = "1.0.0"

__all__ = [
    "__version__",
    "generate_pdf",
    "generate_pdf_async",
    "PDFGenerator",
    "GenerationState",
    "GenerationOptions",
    "GenerationResult",
    "PageRenderer",
    "RasterImage",
    "DocumentAssembler",
    "OutputDocument",
    "OutputPackager",
    "BlobReference",
    "BlobRegistry",
    "RenderSurface",
    "SurfaceFactory",
    "SurfaceTracker",
    "surface_scope",
    "PageContent",
    "RawMarkup",
    "StructuredRecord",
    "coerce_page_content",
    "escape_html",
    "inject_content",
    "ContentSession",
    "Snippet",
    "SnippetData",
    "fetch_local_content",
    "ReportBuilder",
    "sample_template",
    "FormatRegistry",
    "Orientation",
    "PageFormat",
    "PageSize",
    "register_format",
    "resolve_page_size",
    "HtmlPdfXError",
    "RenderFailure",
    "AssemblyFailure",
    "PackagingFailure",
    "ResourceLeakGuardFailure",
    "UnsupportedPageFormatError",
    "ContentSourceError",
    "DocumentStateError",
    "GenerationCancelled",
]
