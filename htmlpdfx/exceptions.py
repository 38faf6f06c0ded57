"""
Custom exceptions for htmlpdfx.

Every failure raised by the rendering pipeline derives from
:class:`HtmlPdfXError` so callers can catch the whole family at once.
"""

from __future__ import annotations

from typing import Optional


class HtmlPdfXError(Exception):
    """Base exception for all htmlpdfx errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def default_message(self) -> str:
        return "An unknown htmlpdfx error occurred."


class RenderFailure(HtmlPdfXError):
    """Raised when a page could not be materialized or captured."""

    def __init__(self, message: str = "", *, page_index: Optional[int] = None) -> None:
        super().__init__(message)
        self.page_index = page_index

    @property
    def default_message(self) -> str:
        return "Page content could not be rendered."


class AssemblyFailure(HtmlPdfXError):
    """Raised when a captured image cannot be placed on a page."""

    @property
    def default_message(self) -> str:
        return "Captured image is incompatible with the page format."


class PackagingFailure(HtmlPdfXError):
    """Raised when the finished document cannot be serialized."""

    @property
    def default_message(self) -> str:
        return "Document could not be serialized."


class ResourceLeakGuardFailure(HtmlPdfXError):
    """Raised when a render surface was not torn down correctly."""

    @property
    def default_message(self) -> str:
        return "Render surface teardown failed."


class UnsupportedPageFormatError(HtmlPdfXError, ValueError):
    """Raised for unknown page format names or orientations."""

    @property
    def default_message(self) -> str:
        return "Unsupported page format."


class ContentSourceError(HtmlPdfXError):
    """Raised when page content or a data snippet is unusable."""

    @property
    def default_message(self) -> str:
        return "Content source could not be loaded."


class DocumentStateError(HtmlPdfXError, RuntimeError):
    """Raised when a document or generator is used out of sequence."""

    @property
    def default_message(self) -> str:
        return "Document used in an invalid state."


class GenerationCancelled(HtmlPdfXError):
    """Raised when a generation run is cancelled between pages."""

    @property
    def default_message(self) -> str:
        return "PDF generation was cancelled."


__all__ = [
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
