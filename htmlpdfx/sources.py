"""Data snippets feeding generated report pages.

:class:`ContentSession` replaces ad-hoc module level caches: every snippet
and every loaded payload lives on an explicit session object that callers
create and pass around.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import httpx

from .exceptions import ContentSourceError

LOGGER = logging.getLogger("htmlpdfx.sources")

MANUAL_INPUT_URL = "manual-input"
MANUAL_INPUT_NAME = "Manual JSON Input"
TEXT_CONTENT_LIMIT = 1000
TEXT_PREVIEW_LIMIT = 200
PREVIEW_LIMIT = 500
ACCEPT_HEADER = "application/json,text/plain,*/*"

# (name, url, description, is_active)
DEFAULT_SNIPPETS = (
    (MANUAL_INPUT_NAME, MANUAL_INPUT_URL, "Paste JSON data directly", True),
    ("Sample Posts Data", "https://jsonplaceholder.typicode.com/posts/1", "Sample JSON API endpoint", False),
    ("Sample User Data", "https://jsonplaceholder.typicode.com/users/1", "Sample user information API", False),
)


@dataclass(slots=True)
class Snippet:
    """A named data source that can be loaded into a session."""

    name: str
    url: str
    description: str = ""
    is_active: bool = True
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    data: Any = None

    @property
    def is_loaded(self) -> bool:
        return self.data is not None

    @property
    def is_manual(self) -> bool:
        return self.url == MANUAL_INPUT_URL


@dataclass(frozen=True, slots=True)
class SnippetData:
    """A payload loaded from a snippet, ready for rendering."""

    name: str
    url: str
    data: Any
    data_type: str
    loaded_at: str

    @property
    def preview(self) -> str:
        text = json.dumps(self.data, indent=2, ensure_ascii=False, default=str)
        if len(text) > PREVIEW_LIMIT:
            return text[:PREVIEW_LIMIT] + "..."
        return text


def _is_text_record(data: Any) -> bool:
    return isinstance(data, dict) and data.get("type") == "TEXT"


def _data_type(data: Any) -> str:
    return "TEXT" if _is_text_record(data) else "JSON"


def _is_google_drive(url: str) -> bool:
    return "drive.google.com" in url


def _default_clock() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def parse_manual_input(text: str) -> Any:
    """Parse *text* as JSON, falling back to a structured text record."""

    try:
        return json.loads(text)
    except ValueError:
        return {
            "content": text,
            "type": "TEXT",
            "length": len(text),
            "lines": len(text.split("\n")),
        }


def parse_response_text(text: str) -> Any:
    """Parse a fetched body as JSON, falling back to a truncated text record."""

    try:
        return json.loads(text)
    except ValueError:
        preview = text[:TEXT_PREVIEW_LIMIT]
        if len(text) > TEXT_PREVIEW_LIMIT:
            preview += "..."
        return {
            "content": text[:TEXT_CONTENT_LIMIT],
            "type": "TEXT",
            "length": len(text),
            "preview": preview,
        }


async def fetch_local_content(url: str, client: httpx.AsyncClient) -> str:
    """Return the text served at *url*.

    PDF responses are summarised rather than returned, since their bytes
    cannot be injected into markup.
    """

    try:
        response = await client.get(url)
    except httpx.HTTPError as exc:
        LOGGER.error("Error loading local file %s: %s", url, exc)
        raise ContentSourceError(f"Could not load file from {url}") from exc

    if response.is_error:
        LOGGER.error(
            "Failed to load %s: %s %s", url, response.status_code, response.reason_phrase
        )
        raise ContentSourceError(
            f"Failed to load {url}: {response.status_code} {response.reason_phrase}"
        )

    content_type = response.headers.get("content-type", "")
    if "application/pdf" in content_type:
        length = response.headers.get("content-length", str(len(response.content)))
        return f"PDF file loaded from {url} ({length} bytes)"
    return response.text


class ContentSession:
    """Snippets and loaded data for one report."""

    def __init__(self, *, clock: Optional[Callable[[], str]] = None) -> None:
        self._snippets: List[Snippet] = []
        self._loaded: Dict[str, SnippetData] = {}
        self._clock = clock or _default_clock

    @classmethod
    def with_defaults(cls, *, clock: Optional[Callable[[], str]] = None) -> "ContentSession":
        """Return a session pre-populated with the manual input and sample API snippets."""

        session = cls(clock=clock)
        for name, url, description, is_active in DEFAULT_SNIPPETS:
            session._snippets.append(
                Snippet(name=name, url=url, description=description, is_active=is_active)
            )
        return session

    @property
    def snippets(self) -> list[Snippet]:
        return list(self._snippets)

    @property
    def active_snippets(self) -> list[Snippet]:
        return [snippet for snippet in self._snippets if snippet.is_active]

    @property
    def loaded(self) -> list[SnippetData]:
        return list(self._loaded.values())

    def add_snippet(self, name: str, url: str, description: str = "") -> Snippet:
        name = name.strip()
        url = url.strip()
        if not name or not url:
            raise ContentSourceError("Snippet name and URL are required")
        snippet = Snippet(name=name, url=url, description=description or "Custom data source")
        self._snippets.append(snippet)
        LOGGER.debug("Added snippet %s (%s)", snippet.name, snippet.url)
        return snippet

    def get_snippet(self, snippet_id: str) -> Snippet:
        for snippet in self._snippets:
            if snippet.id == snippet_id:
                return snippet
        raise ContentSourceError(f"Unknown snippet: {snippet_id}")

    def remove_snippet(self, snippet_id: str) -> None:
        snippet = self.get_snippet(snippet_id)
        self._snippets.remove(snippet)
        self._loaded.pop(snippet.name, None)

    def toggle_snippet(self, snippet_id: str) -> bool:
        snippet = self.get_snippet(snippet_id)
        snippet.is_active = not snippet.is_active
        return snippet.is_active

    def _record(self, name: str, url: str, data: Any) -> SnippetData:
        record = SnippetData(
            name=name,
            url=url,
            data=data,
            data_type=_data_type(data),
            loaded_at=self._clock(),
        )
        # Reloading a snippet replaces its previous payload.
        self._loaded.pop(name, None)
        self._loaded[name] = record
        return record

    def load_manual_input(self, text: str) -> SnippetData:
        if not text.strip():
            raise ContentSourceError("Manual input is empty")
        data = parse_manual_input(text)
        manual = next((s for s in self._snippets if s.is_manual), None)
        if manual is None:
            manual = Snippet(
                name=MANUAL_INPUT_NAME,
                url=MANUAL_INPUT_URL,
                description="Paste JSON data directly",
            )
            self._snippets.append(manual)
        manual.data = data
        manual.is_active = True
        return self._record(MANUAL_INPUT_NAME, MANUAL_INPUT_URL, data)

    async def load_snippet(self, snippet_id: str, client: httpx.AsyncClient) -> SnippetData:
        snippet = self.get_snippet(snippet_id)
        if not snippet.is_active:
            raise ContentSourceError(f"Snippet {snippet.name} is not active")
        if snippet.is_manual:
            raise ContentSourceError(
                "Manual input snippets are loaded with load_manual_input()"
            )
        if _is_google_drive(snippet.url):
            raise ContentSourceError(
                "Google Drive files cannot be accessed directly. Copy the file "
                "content and load it as manual input instead."
            )

        LOGGER.debug("Loading snippet %s from %s", snippet.name, snippet.url)
        try:
            response = await client.get(snippet.url, headers={"Accept": ACCEPT_HEADER})
        except httpx.HTTPError as exc:
            raise ContentSourceError(f"Failed to load {snippet.name}: {exc}") from exc
        if response.is_error:
            raise ContentSourceError(
                f"Failed to load {snippet.name}: "
                f"{response.status_code} {response.reason_phrase}"
            )

        data = parse_response_text(response.text)
        snippet.data = data
        record = self._record(snippet.name, snippet.url, data)
        LOGGER.info("Loaded data from %s (%s)", snippet.name, record.data_type)
        return record


__all__ = [
    "DEFAULT_SNIPPETS",
    "MANUAL_INPUT_URL",
    "Snippet",
    "SnippetData",
    "ContentSession",
    "fetch_local_content",
    "parse_manual_input",
    "parse_response_text",
]
