"""Builders for the stock cover, data and summary report pages."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from .content import LOCAL_CONTENT_PLACEHOLDER, RawMarkup
from .formats import PageSize, resolve_page_size
from .sources import ContentSession
from .templating import render_template

REPORT_FOOTER = "Generated by htmlpdfx - Dynamic PDF Report"


class ReportBuilder:
    """Render the three standard report pages for a :class:`ContentSession`."""

    def __init__(
        self,
        session: ContentSession,
        *,
        title: str = "Dynamic PDF Report",
        subtitle: str = "Generated with dynamic data",
        main_content: str = "",
    ) -> None:
        self.session = session
        self.title = title
        self.subtitle = subtitle
        self.main_content = main_content

    def cover_page(self, now: datetime) -> RawMarkup:
        return RawMarkup(
            render_template(
                "cover.html.jinja",
                title=self.title,
                subtitle=self.subtitle,
                main_content=self.main_content,
                generated_at=now.strftime("%Y-%m-%d %H:%M:%S"),
                active_count=len(self.session.active_snippets),
                loaded=self.session.loaded,
            )
        )

    def data_page(self) -> RawMarkup:
        return RawMarkup(render_template("data.html.jinja", loaded=self.session.loaded))

    def summary_page(self, now: datetime) -> RawMarkup:
        return RawMarkup(
            render_template(
                "summary.html.jinja",
                snippets=self.session.snippets,
                active=self.session.active_snippets,
                loaded=self.session.loaded,
                generated_date=now.strftime("%Y-%m-%d"),
                generated_time=now.strftime("%H:%M:%S"),
                footer=REPORT_FOOTER,
            )
        )

    def build_pages(self, now: Optional[datetime] = None) -> list[RawMarkup]:
        """Return the cover, data and summary pages in that order."""

        now = now or datetime.now()
        return [self.cover_page(now), self.data_page(), self.summary_page(now)]


def sample_template(
    *,
    title: str = "Dynamic PDF Report",
    page_size: Optional[PageSize] = None,
    scale: int = 2,
    now: Optional[datetime] = None,
) -> str:
    """Return a one-page template containing the local content placeholder."""

    now = now or datetime.now()
    page_size = page_size or resolve_page_size()
    return render_template(
        "sample.html.jinja",
        title=title,
        generated_at=now.strftime("%Y-%m-%d %H:%M:%S"),
        generated_iso=now.isoformat(),
        page_size=str(page_size),
        scale=scale,
        placeholder=LOCAL_CONTENT_PLACEHOLDER,
    )


__all__ = ["ReportBuilder", "sample_template", "REPORT_FOOTER"]
