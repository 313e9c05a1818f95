"""Keyword relevance ranking of feeds against the work profile."""

import re

from rssnews_agent.models import FeedDescriptor, RankedFeed

KEYWORD_SEPARATORS = re.compile(r"[\s,，。；;、|/\\]+")
MIN_KEYWORD_LENGTH = 2


def split_keywords(work_profile: str) -> list[str]:
    """Lower-cased, deduplicated profile tokens of at least two characters, in order of appearance."""
    tokens = (t.strip() for t in KEYWORD_SEPARATORS.split(work_profile.lower()))
    return list(dict.fromkeys(t for t in tokens if len(t) >= MIN_KEYWORD_LENGTH))


def score_by_keywords(text: str, keywords: list[str]) -> int:
    """Count the keywords that occur anywhere in text (case-insensitive)."""
    source = text.lower()
    return sum(1 for keyword in keywords if keyword in source)


def rank_feeds(
    feeds: list[FeedDescriptor], keywords: list[str], max_feeds: int
) -> list[RankedFeed]:
    """Score feeds by title and URL, highest first, keeping at most max_feeds.

    The sort is stable, so equally scored feeds keep their input order.
    """
    ranked = [
        RankedFeed(
            title=feed.title,
            feed_url=feed.feed_url,
            site_url=feed.site_url,
            score=score_by_keywords(f"{feed.title} {feed.feed_url}", keywords),
        )
        for feed in feeds
    ]
    ranked.sort(key=lambda f: f.score, reverse=True)
    return ranked[: max(max_feeds, 0)]
