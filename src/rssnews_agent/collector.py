"""One collection pass: OPML directory -> ranked feeds -> concurrent fetch -> items + observability."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx

from rssnews_agent.feed_parser import DEFAULT_TIMEOUT, fetch_feed_items
from rssnews_agent.models import (
    FAILURE_SAMPLE_LIMIT,
    FeedFailure,
    FeedObservability,
    NewsCollection,
)
from rssnews_agent.opml import load_feeds_from_source_dir
from rssnews_agent.ranking import rank_feeds, split_keywords

logger = logging.getLogger(__name__)

DEFAULT_MAX_FEEDS = 30
DEFAULT_MAX_ITEMS_PER_FEED = 3
DEFAULT_RECENT_DAYS = 7


async def collect_news(
    source_dir: str,
    work_profile: str,
    max_feeds: int = DEFAULT_MAX_FEEDS,
    max_items_per_feed: int = DEFAULT_MAX_ITEMS_PER_FEED,
    recent_days: int = DEFAULT_RECENT_DAYS,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    client: httpx.AsyncClient | None = None,
    now: datetime | None = None,
) -> NewsCollection:
    """Collect recent news from the feeds in source_dir most relevant to work_profile.

    Raises:
        NoFeedSourceError: If source_dir has no .opml files.
    """
    source = await load_feeds_from_source_dir(Path(source_dir))

    now = now or datetime.now(timezone.utc)
    since_ms = int((now - timedelta(days=recent_days)).timestamp() * 1000)

    keywords = split_keywords(work_profile)
    ranked = rank_feeds(source.feeds, keywords, max_feeds)

    async def fetch_all(http: httpx.AsyncClient):
        return await asyncio.gather(
            *(fetch_feed_items(http, f, max_items_per_feed, since_ms, timeout) for f in ranked)
        )

    if client is None:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as own_client:
            outcomes = await fetch_all(own_client)
    else:
        outcomes = await fetch_all(client)

    items = [item for outcome in outcomes for item in outcome.items]
    items.sort(key=lambda item: item.published_timestamp or 0, reverse=True)

    failures = [outcome.failure for outcome in outcomes if outcome.failure is not None]

    observability = build_observability(
        source_dir=source_dir,
        opml_file_count=len(source.opml_files),
        total_feeds_in_opml=source.total_feeds_in_opml,
        selected_feed_count=len(ranked),
        failures=failures,
    )

    logger.info(
        "Fetched %d items from %d feeds (%d failed, %d timed out)",
        len(items),
        len(ranked),
        observability.failed_feed_count,
        len(observability.timeout_feeds),
    )

    return NewsCollection(
        profile_keywords=keywords,
        selected_feeds=ranked,
        items=items,
        feed_observability=observability,
    )


def build_observability(
    source_dir: str,
    opml_file_count: int,
    total_feeds_in_opml: int,
    selected_feed_count: int,
    failures: list[FeedFailure],
) -> FeedObservability:
    """Aggregate per-feed failures into the run's fetch health record."""
    failed_rate = 0.0
    if selected_feed_count > 0:
        failed_rate = round(min(len(failures), selected_feed_count) / selected_feed_count, 4)

    return FeedObservability(
        source_dir=source_dir,
        opml_file_count=opml_file_count,
        total_feeds_in_opml=total_feeds_in_opml,
        selected_feed_count=selected_feed_count,
        failed_feed_count=len(failures),
        failed_rate=failed_rate,
        timeout_feeds=[f.label for f in failures if f.error_type == "timeout"],
        failed_feeds=failures[:FAILURE_SAMPLE_LIMIT],
    )
