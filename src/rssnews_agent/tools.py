"""Agent tool implementations for RSS News Agent."""

from collections.abc import Awaitable, Callable

from langchain_core.tools import BaseTool, tool
from pydantic import BaseModel, Field

from rssnews_agent.config import DEFAULT_SOURCE_DIR
from rssnews_agent.models import NewsCollection

NEWS_TOOL_NAME = "get_latest_news_from_source_dir"

NewsCollector = Callable[..., Awaitable[NewsCollection]]


class NewsQuery(BaseModel):
    """Arguments the model may pass to the news tool."""

    source_dir: str = Field(DEFAULT_SOURCE_DIR, description="Directory holding the .opml files")
    work_profile: str = Field(description="The user work profile")
    max_feeds: int = Field(30, ge=1, le=80, description="How many of the most relevant feeds to fetch")
    max_items_per_feed: int = Field(3, ge=1, le=10, description="Entries taken from each feed")
    recent_days: int = Field(7, ge=1, le=30, description="Only keep entries from the last N days")


def make_news_tool(collect: NewsCollector) -> BaseTool:
    """Wrap a news collector as a tool the model can call.

    Args:
        collect: Coroutine function with the signature of
            ``collector.collect_news``; the run's timeout and HTTP client are
            already bound into it.
    """

    @tool(NEWS_TOOL_NAME, args_schema=NewsQuery)
    async def get_latest_news_from_source_dir(
        source_dir: str = DEFAULT_SOURCE_DIR,
        work_profile: str = "",
        max_feeds: int = 30,
        max_items_per_feed: int = 3,
        recent_days: int = 7,
    ) -> NewsCollection:
        """Read all .opml files from the rss source directory, merge feed urls, and return recent news entries."""
        return await collect(
            source_dir=source_dir,
            work_profile=work_profile,
            max_feeds=max_feeds,
            max_items_per_feed=max_items_per_feed,
            recent_days=recent_days,
        )

    return get_latest_news_from_source_dir
