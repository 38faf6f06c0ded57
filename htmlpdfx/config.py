"""Options controlling a generation run."""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any, Mapping, Optional

from .formats import Orientation
from .renderer import DEFAULT_SCALE, DEFAULT_SETTLE_TIMEOUT, validate_scale
from .utils import PathLike, ensure_path

DEFAULT_FILENAME = "dynamic.pdf"


@dataclasses.dataclass(slots=True)
class GenerationOptions:
    """Behavioural toggles for :class:`~htmlpdfx.generator.PDFGenerator`."""

    filename: str = DEFAULT_FILENAME
    format: str = "A4"
    orientation: Orientation = Orientation.LANDSCAPE
    scale: int = DEFAULT_SCALE
    settle_timeout: float = DEFAULT_SETTLE_TIMEOUT
    output_dir: Optional[Path] = None
    save: bool = True
    title: Optional[str] = None
    author: Optional[str] = None

    def __post_init__(self) -> None:
        self.orientation = Orientation.coerce(self.orientation)
        validate_scale(self.scale)
        if self.settle_timeout <= 0:
            raise ValueError("settle_timeout must be positive")
        if not self.filename or not str(self.filename).strip():
            raise ValueError("filename must not be empty")
        if self.output_dir is not None:
            self.output_dir = ensure_path(self.output_dir)

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "GenerationOptions":
        """Build options from *config*, ignoring unknown keys and ``None`` values."""

        names = {item.name for item in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in config.items() if k in names and v is not None})

    def with_updates(self, **changes: Any) -> "GenerationOptions":
        return dataclasses.replace(self, **{k: v for k, v in changes.items() if v is not None})

    def document_metadata(self) -> dict[str, str]:
        metadata: dict[str, str] = {}
        if self.title:
            metadata["/Title"] = self.title
        if self.author:
            metadata["/Author"] = self.author
        return metadata


def resolve_output(output: PathLike) -> tuple[Path, str]:
    """Split an output path into the directory and file name to save under."""

    path = ensure_path(output)
    return path.parent, path.name


__all__ = ["GenerationOptions", "DEFAULT_FILENAME", "resolve_output"]
