"""RSS/Atom feed fetching and parsing using httpx and feedparser."""

import asyncio
import calendar
import logging
from time import struct_time
from urllib.parse import urlparse

import feedparser
import httpx

from rssnews_agent.models import FeedFailure, FeedFetchOutcome, NewsItem, RankedFeed

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
SUMMARY_LIMIT = 700
UNAVAILABLE_TITLE = "[feed unavailable]"
TIMEOUT_MARKERS = ("timeout", "timed out", "etimedout")

REQUEST_HEADERS = {
    "User-Agent": "rssnews-agent/0.1",
    "Accept": "application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.8",
}


class FeedParseError(Exception):
    """Raised when a feed cannot be fetched or parsed."""


async def fetch_feed_items(
    client: httpx.AsyncClient,
    feed: RankedFeed,
    max_items: int,
    since_ms: int,
    timeout: float = DEFAULT_TIMEOUT,
) -> FeedFetchOutcome:
    """Fetch one feed and return its recent entries.

    Never raises for a broken feed: any error becomes a single placeholder
    item plus a FeedFailure, so the rest of the batch is unaffected.

    Args:
        client: Shared HTTP client for the run.
        feed: The feed to fetch.
        max_items: Take at most this many entries, in the feed's own order.
        since_ms: Drop entries published before this epoch-millis cutoff.
            Entries without a parseable date are kept.
        timeout: Overall bound on the request, in seconds.
    """
    try:
        parsed = await asyncio.wait_for(_download_and_parse(client, feed.feed_url), timeout)
        items = [_to_news_item(feed, entry) for entry in parsed.entries[:max_items]]
        return FeedFetchOutcome(
            items=[
                item
                for item in items
                if item.published_timestamp is None or item.published_timestamp >= since_ms
            ]
        )
    except Exception as e:
        error_type, reason = classify_feed_error(e)
        logger.warning("Feed '%s' failed (%s): %s", feed.title, error_type, reason)
        return FeedFetchOutcome(
            items=[
                NewsItem(
                    feed_title=feed.title,
                    feed_url=feed.feed_url,
                    title=UNAVAILABLE_TITLE,
                    summary=f"Failed to parse feed: {reason}",
                )
            ],
            failure=FeedFailure(
                feed_title=feed.title,
                feed_url=feed.feed_url,
                reason=reason,
                error_type=error_type,
            ),
        )


def classify_feed_error(error: BaseException) -> tuple[str, str]:
    """Return (error_type, reason) for a failed fetch.

    The reason is the error message, or the exception class name when the
    message is empty. It is a timeout if the reason mentions one.
    """
    reason = str(error).strip() or type(error).__name__
    lowered = reason.lower()
    if any(marker in lowered for marker in TIMEOUT_MARKERS):
        return "timeout", reason
    return "other", reason


async def _download_and_parse(client: httpx.AsyncClient, url: str) -> feedparser.FeedParserDict:
    _validate_url(url)

    response = await client.get(url, headers=REQUEST_HEADERS)
    if response.status_code in (401, 403):
        raise FeedParseError(
            "Feed requires authentication. Ensure the URL is publicly accessible."
        )
    if response.status_code >= 400:
        raise FeedParseError(f"Could not reach URL: HTTP {response.status_code}")

    parsed = feedparser.parse(response.content)

    if not parsed.entries and not parsed.feed.get("title"):
        raise FeedParseError("URL does not point to a valid RSS or Atom feed")

    if parsed.bozo:
        logger.debug("Feed '%s' has formatting issues: %s", url, parsed.get("bozo_exception"))

    return parsed


def _validate_url(url: str) -> None:
    """Validate that the URL has a valid format."""
    try:
        result = urlparse(url)
    except ValueError:
        raise FeedParseError("Invalid URL format")
    if result.scheme not in ("http", "https") or not result.netloc:
        raise FeedParseError("Invalid URL format: only http and https are supported")


def _to_news_item(feed: RankedFeed, entry: dict) -> NewsItem:
    """Normalize one feedparser entry."""
    return NewsItem(
        feed_title=feed.title,
        feed_url=feed.feed_url,
        title=entry.get("title") or "(untitled)",
        link=entry.get("link") or "",
        published_at=entry.get("published") or entry.get("updated") or "",
        published_timestamp=_parse_timestamp(entry),
        summary=_summary(entry)[:SUMMARY_LIMIT],
    )


def _summary(entry: dict) -> str:
    # Rich content first, then the snippet, then a bare description.
    for content in entry.get("content") or []:
        value = content.get("value")
        if value:
            return value
    return entry.get("summary") or entry.get("description") or ""


def _parse_timestamp(entry: dict) -> int | None:
    """Epoch millis of the entry's publication date, or None if it has none."""
    for field in ("published_parsed", "updated_parsed"):
        time_struct = entry.get(field)
        if isinstance(time_struct, struct_time):
            try:
                return calendar.timegm(time_struct) * 1000
            except (ValueError, OverflowError):
                continue
    return None
