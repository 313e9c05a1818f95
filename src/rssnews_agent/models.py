"""Data models for RSS News Agent."""

from dataclasses import asdict, dataclass, field
from typing import Literal

FAILURE_SAMPLE_LIMIT = 10

ErrorType = Literal["timeout", "other"]


@dataclass(frozen=True)
class FeedDescriptor:
    """A feed listed in an OPML file. Identity is the feed URL."""

    title: str
    feed_url: str
    site_url: str = ""

    @property
    def label(self) -> str:
        return f"{self.title} ({self.feed_url})"


@dataclass(frozen=True)
class RankedFeed(FeedDescriptor):
    """A feed descriptor scored against the work profile for one run."""

    score: int = 0


@dataclass
class NewsItem:
    """Represents a single recent entry from a feed."""

    feed_title: str
    feed_url: str
    title: str
    link: str = ""
    published_at: str = ""
    published_timestamp: int | None = None  # epoch millis
    summary: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class FeedFailure:
    """One failed feed fetch."""

    feed_title: str
    feed_url: str
    reason: str
    error_type: ErrorType

    @property
    def label(self) -> str:
        return f"{self.feed_title} ({self.feed_url})"

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class FeedFetchOutcome:
    """Result of fetching one feed: its items, plus a failure record if it broke."""

    items: list[NewsItem]
    failure: FeedFailure | None = None


@dataclass
class SourceFeeds:
    """Deduplicated feeds read from a source directory, with raw counts."""

    opml_files: list[str]
    feeds: list[FeedDescriptor]
    total_feeds_in_opml: int


@dataclass
class FeedObservability:
    """Fetch health for one run."""

    source_dir: str
    opml_file_count: int
    total_feeds_in_opml: int
    selected_feed_count: int
    failed_feed_count: int
    failed_rate: float
    timeout_feeds: list[str] = field(default_factory=list)
    failed_feeds: list[FeedFailure] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class NewsCollection:
    """Everything one collection pass produces; this is what the model sees."""

    profile_keywords: list[str]
    selected_feeds: list[RankedFeed]
    items: list[NewsItem]
    feed_observability: FeedObservability

    def to_dict(self) -> dict:
        return {
            "profile_keywords": self.profile_keywords,
            "selected_feeds": [
                {"title": f.title, "feed_url": f.feed_url, "score": f.score}
                for f in self.selected_feeds
            ],
            "items": [item.to_dict() for item in self.items],
            "feed_observability": self.feed_observability.to_dict(),
        }
