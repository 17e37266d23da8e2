"""Data models for News Signal Bot."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class NewsItem:
    """Represents a single news article taken from a feed."""

    title: str
    link: str
    content: str  # HTML already stripped
    published_on: datetime  # timezone-aware, UTC
    source_name: str = ""
    image_url: str | None = None


@dataclass(frozen=True)
class AnalysisResult:
    """Represents the LLM verdict for one source's batch of news."""

    image_url: str | None
    summary: str

    @property
    def is_empty(self) -> bool:
        return not self.summary.strip()
