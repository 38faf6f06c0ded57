"""Finalize assembled documents into a blob, a reference and a saved file."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .assembler import OutputDocument
from .exceptions import DocumentStateError, PackagingFailure
from .utils import PathLike, ensure_parent_dir, ensure_path

LOGGER = logging.getLogger("htmlpdfx.packager")

BLOB_URL_PREFIX = "blob:htmlpdfx/"
PDF_MIME_TYPE = "application/pdf"


class BlobReference:
    """A releasable handle to finalized document bytes."""

    def __init__(self, url: str, registry: "BlobRegistry", size: int) -> None:
        self.url = url
        self.size = size
        self.mime_type = PDF_MIME_TYPE
        self._registry = registry

    @property
    def released(self) -> bool:
        return self.url not in self._registry

    def read(self) -> bytes:
        return self._registry.resolve(self.url)

    def release(self) -> None:
        self._registry.release(self.url)

    def __enter__(self) -> "BlobReference":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self.released else "live"
        return f"<BlobReference {self.url} {self.size} bytes {state}>"


class BlobRegistry:
    """Holds blobs addressable by URL until they are released."""

    def __init__(self) -> None:
        self._blobs: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def create(self, blob: bytes) -> BlobReference:
        url = f"{BLOB_URL_PREFIX}{uuid.uuid4()}"
        with self._lock:
            self._blobs[url] = blob
        return BlobReference(url, self, len(blob))

    def resolve(self, url: str) -> bytes:
        with self._lock:
            try:
                return self._blobs[url]
            except KeyError:
                raise LookupError(f"Blob reference {url} has been released or never existed") from None

    def release(self, url: str) -> None:
        with self._lock:
            self._blobs.pop(url, None)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._blobs

    def __len__(self) -> int:
        with self._lock:
            return len(self._blobs)


blob_registry = BlobRegistry()


@dataclass(frozen=True)
class GenerationResult:
    """The finished document and a reference to it.

    The caller owns :attr:`reference` and should release it, or use the
    result as a context manager, once the blob is no longer needed.
    """

    blob: bytes
    reference: BlobReference
    page_count: int
    saved_path: Optional[Path] = None

    @property
    def url(self) -> str:
        return self.reference.url

    def release(self) -> None:
        self.reference.release()

    def __enter__(self) -> "GenerationResult":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class OutputPackager:
    """Serialize an :class:`OutputDocument` once and persist the result."""

    def __init__(
        self,
        *,
        registry: Optional[BlobRegistry] = None,
        output_dir: Optional[PathLike] = None,
        save: bool = True,
    ) -> None:
        self.registry = registry if registry is not None else blob_registry
        self.output_dir = ensure_path(output_dir) if output_dir is not None else None
        self.save = save

    def finalize(self, document: OutputDocument, filename: str) -> GenerationResult:
        """Return the :class:`GenerationResult` for *document*.

        Raises:
            DocumentStateError: If *document* was already finalized.
            PackagingFailure: If *document* has no pages or cannot be
                serialized.
        """

        if document.is_finalized:
            raise DocumentStateError("Document has already been finalized")
        if document.page_count == 0:
            LOGGER.error("Refusing to finalize a document with no pages")
            raise PackagingFailure("Cannot finalize a document with no pages")
        if not filename or not filename.strip():
            raise PackagingFailure("An output filename is required")

        blob = document.serialize()
        reference = self.registry.create(blob)
        saved_path = self._persist(blob, filename) if self.save else None
        LOGGER.info(
            "Finalized %d page(s) into %d bytes (%s)",
            document.page_count,
            len(blob),
            reference.url,
        )
        return GenerationResult(
            blob=blob,
            reference=reference,
            page_count=document.page_count,
            saved_path=saved_path,
        )

    def target_path(self, filename: str) -> Path:
        candidate = Path(filename).expanduser()
        if candidate.is_absolute() or self.output_dir is None:
            return ensure_path(candidate)
        return self.output_dir / candidate

    def _persist(self, blob: bytes, filename: str) -> Optional[Path]:
        path = self.target_path(filename)
        try:
            ensure_parent_dir(path)
            path.write_bytes(blob)
        except OSError as exc:
            LOGGER.warning("Failed to save PDF to %s: %s", path, exc)
            return None
        LOGGER.debug("Saved PDF to %s", path)
        return path


__all__ = [
    "BlobReference",
    "BlobRegistry",
    "blob_registry",
    "GenerationResult",
    "OutputPackager",
]
