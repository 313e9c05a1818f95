"""OPML loading: one document into feed descriptors, a directory into a deduplicated feed set."""

import asyncio
import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from rssnews_agent.models import FeedDescriptor, SourceFeeds

logger = logging.getLogger(__name__)


class NoFeedSourceError(Exception):
    """Raised when a source directory holds no .opml files."""


def parse_opml(content: str | bytes) -> list[FeedDescriptor]:
    """Parse an OPML document into a flat list of feeds.

    Outlines nest to any depth. An outline with a feed URL is emitted as a
    feed; one without is a folder, walked but not emitted. Attribute names
    are matched case-insensitively (``xmlUrl``, ``xmlurl``, ...).

    Args:
        content: The OPML document. Bytes are decoded using the encoding
            the document declares.

    Returns:
        Feeds in document order. Empty if the document has no body.

    Raises:
        xml.etree.ElementTree.ParseError: If the document is not well-formed XML.
    """
    if not content or not content.strip():
        return []

    root = ET.fromstring(content)
    body = root.find("body")
    if body is None:
        return []

    feeds: list[FeedDescriptor] = []
    stack = list(reversed(_child_outlines(body)))

    while stack:
        node = stack.pop()
        attrs = {key.lower(): value.strip() for key, value in node.attrib.items()}

        feed_url = attrs.get("xmlurl", "")
        if feed_url:
            feeds.append(
                FeedDescriptor(
                    title=attrs.get("title") or attrs.get("text") or feed_url,
                    feed_url=feed_url,
                    site_url=attrs.get("htmlurl", ""),
                )
            )

        stack.extend(reversed(_child_outlines(node)))

    return feeds


def _child_outlines(element: ET.Element) -> list[ET.Element]:
    return [child for child in element if child.tag == "outline"]


async def load_feeds_from_opml_file(path: Path) -> list[FeedDescriptor]:
    """Read and parse one OPML file. A malformed file contributes no feeds."""
    content = await asyncio.to_thread(path.read_bytes)
    try:
        return parse_opml(content)
    except (ET.ParseError, UnicodeDecodeError) as e:
        logger.warning("Skipping malformed OPML file '%s': %s", path.name, e)
        return []


def list_opml_files(source_dir: Path) -> list[Path]:
    """Return the .opml files (any case) directly under source_dir, sorted by name.

    The directory is created if it does not exist yet.
    """
    source_dir.mkdir(parents=True, exist_ok=True)
    return sorted(
        (p for p in source_dir.iterdir() if p.is_file() and p.suffix.lower() == ".opml"),
        key=lambda p: p.name,
    )


async def load_feeds_from_source_dir(source_dir: str | Path) -> SourceFeeds:
    """Load every OPML file in source_dir and merge their feeds.

    Files are read concurrently and merged in file-name order once all reads
    have finished. Feeds are deduplicated by URL; the first one seen wins.

    Raises:
        NoFeedSourceError: If the directory has no .opml files.
    """
    full_dir = Path(source_dir)
    opml_files = list_opml_files(full_dir)

    if not opml_files:
        raise NoFeedSourceError(f"No .opml files found in source directory: {full_dir}")

    per_file = await asyncio.gather(*(load_feeds_from_opml_file(p) for p in opml_files))
    merged = [feed for feeds in per_file for feed in feeds]

    dedup: dict[str, FeedDescriptor] = {}
    for feed in merged:
        if feed.feed_url not in dedup:
            dedup[feed.feed_url] = feed

    logger.info(
        "Loaded %d feeds (%d before dedup) from %d OPML files in %s",
        len(dedup),
        len(merged),
        len(opml_files),
        full_dir,
    )

    return SourceFeeds(
        opml_files=[str(p) for p in opml_files],
        feeds=list(dedup.values()),
        total_feeds_in_opml=len(merged),
    )
