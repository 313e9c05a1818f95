"""Shared test fixtures for RSS News Agent tests."""

import asyncio
from datetime import datetime, timezone
from pathlib import Path

import httpx
import pytest

from rssnews_agent.agent import AgentResult, ReportGenerator
from rssnews_agent.collector import build_observability
from rssnews_agent.config import Config
from rssnews_agent.models import FeedFailure, NewsCollection, NewsItem, RankedFeed


SAMPLE_RSS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/">
  <channel>
    <title>Test Feed</title>
    <link>https://example.com</link>
    <description>A test RSS feed</description>
    <item>
      <title>First Article</title>
      <link>https://example.com/article-1</link>
      <guid>article-1</guid>
      <description>Description of the first article</description>
      <content:encoded><![CDATA[<p>Full content of the first article</p>]]></content:encoded>
      <pubDate>Fri, 13 Feb 2026 10:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Second Article</title>
      <link>https://example.com/article-2</link>
      <guid>article-2</guid>
      <description>Description of the second article</description>
      <pubDate>Fri, 13 Feb 2026 09:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Old Article</title>
      <link>https://example.com/article-old</link>
      <guid>article-old</guid>
      <description>Published well before the window</description>
      <pubDate>Mon, 05 Jan 2026 09:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Undated Article</title>
      <link>https://example.com/article-undated</link>
      <guid>article-undated</guid>
      <description>No date at all</description>
    </item>
  </channel>
</rss>"""

SAMPLE_ATOM_XML = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Test Atom Feed</title>
  <link href="https://example.com"/>
  <subtitle>A test Atom feed</subtitle>
  <entry>
    <title>Atom Entry 1</title>
    <link href="https://example.com/entry-1"/>
    <id>urn:uuid:entry-1</id>
    <summary>Summary of entry 1</summary>
    <updated>2026-02-12T10:00:00Z</updated>
  </entry>
</feed>"""

SAMPLE_NOT_A_FEED_XML = """<?xml version="1.0" encoding="UTF-8"?>
<html>
  <body>This is not a feed</body>
</html>"""

SAMPLE_OPML = """<?xml version="1.0" encoding="UTF-8"?>
<opml version="2.0">
  <head><title>Subscriptions</title></head>
  <body>
    <outline text="AI" title="AI">
      <outline type="rss" text="LLM Weekly" title="LLM Weekly"
               xmlUrl="https://llm.example.com/feed.xml" htmlUrl="https://llm.example.com"/>
      <outline text="Tools" title="Tools">
        <outline type="rss" text="Copilot Blog" xmlUrl="https://github.example.com/copilot/feed"/>
      </outline>
    </outline>
    <outline type="rss" title="Gardening Today" xmlUrl="https://garden.example.com/rss"/>
  </body>
</opml>"""

SAMPLE_MALFORMED_OPML = """<?xml version="1.0" encoding="UTF-8"?>
<opml version="2.0">
  <body>
    <outline type="rss" title="Broken" xmlUrl="https://broken.example.com/rss">
"""

VALID_REPORT = """## 本周发布了什么（最多 3-5 条简要概述）
- Copilot 发布了新的 agent 模式
- LLM Weekly：新模型上线

## 哪些内容与我的工作相关（1-2 条，附带背景）
- Copilot agent 模式：直接影响日常编码流程 https://example.com/article-1

## 我应该在本周测试什么（具体操作）
1. 在一个小仓库里试用 agent 模式
2. 对比补全质量

## 我可以完全忽略的内容（其他所有内容）
- 园艺相关内容"""

MISSING_HEADING_REPORT = """## 本周发布了什么（最多 3-5 条简要概述）
- Copilot 发布了新的 agent 模式

## 我应该在本周测试什么（具体操作）
1. 试用 agent 模式"""

SAMPLE_TREND = "- 智能体编码工具集中发布：需要评估对现有 IDE 工作流的影响"


class StubGenerator(ReportGenerator):
    """Scripted generator: returns canned reports in order and records every prompt."""

    def __init__(
        self,
        reports: list[str],
        trend: str = SAMPLE_TREND,
        call_tool: bool = True,
        source_dir: str = "rss-source",
        work_profile: str = "AI engineer copilot llm",
    ):
        self.reports = list(reports)
        self.trend = trend
        self.call_tool = call_tool
        self.source_dir = source_dir
        self.work_profile = work_profile
        self.prompts: list[str] = []
        self.trend_prompts: list[str] = []

    async def generate_with_news(self, prompt, collect, instructions=""):
        self.prompts.append(prompt)
        news = None
        if self.call_tool:
            news = await collect(source_dir=self.source_dir, work_profile=self.work_profile)
        text = self.reports[min(len(self.prompts), len(self.reports)) - 1]
        return AgentResult(text=text, news=news)

    async def generate(self, prompt, instructions=""):
        self.trend_prompts.append(prompt)
        return self.trend


def make_mock_client(routes: dict) -> httpx.AsyncClient:
    """AsyncClient answering from routes: url -> body text, status code, or exception to raise."""

    def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, int):
            return httpx.Response(route, text="")
        if isinstance(route, type) and issubclass(route, Exception):
            raise route("timed out", request=request)
        return httpx.Response(200, text=route)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def now():
    """A fixed 'current time' two days after the sample RSS items."""
    return datetime(2026, 2, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_rss_xml():
    """Sample valid RSS 2.0 XML."""
    return SAMPLE_RSS_XML


@pytest.fixture
def sample_atom_xml():
    """Sample valid Atom XML."""
    return SAMPLE_ATOM_XML


@pytest.fixture
def sample_not_a_feed_xml():
    """Sample XML that is not a feed."""
    return SAMPLE_NOT_A_FEED_XML


@pytest.fixture
def sample_opml():
    """Sample OPML with nested folders."""
    return SAMPLE_OPML


@pytest.fixture
def sample_malformed_opml():
    """Sample OPML that is not well-formed XML."""
    return SAMPLE_MALFORMED_OPML


@pytest.fixture
def valid_report():
    return VALID_REPORT


@pytest.fixture
def missing_heading_report():
    return MISSING_HEADING_REPORT


@pytest.fixture
def stub_generator():
    """Factory for scripted generators."""
    return StubGenerator


@pytest.fixture
def mock_client():
    """Factory for AsyncClients backed by httpx.MockTransport; closed after the test."""
    clients = []

    def factory(routes: dict) -> httpx.AsyncClient:
        client = make_mock_client(routes)
        clients.append(client)
        return client

    yield factory

    for client in clients:
        asyncio.run(client.aclose())


@pytest.fixture
def news_collection() -> NewsCollection:
    """A small collection result with one working and one failed feed."""
    ok = RankedFeed(title="LLM Weekly", feed_url="https://llm.example.com/feed.xml", score=1)
    failure = FeedFailure(
        feed_title="Slow",
        feed_url="https://slow.example.com/rss",
        reason="timed out",
        error_type="timeout",
    )
    return NewsCollection(
        profile_keywords=["ai", "engineer"],
        selected_feeds=[ok],
        items=[
            NewsItem(
                feed_title=ok.title,
                feed_url=ok.feed_url,
                title="New model",
                link="https://llm.example.com/new-model",
                published_at="Fri, 13 Feb 2026 10:00:00 GMT",
                published_timestamp=1770976800000,
                summary="A new model shipped",
            )
        ],
        feed_observability=build_observability("rss-source", 1, 2, 2, [failure]),
    )


@pytest.fixture
def source_dir(tmp_path) -> Path:
    """Empty OPML source directory."""
    path = tmp_path / "rss-source"
    path.mkdir()
    return path


@pytest.fixture
def config(tmp_path, source_dir) -> Config:
    """Config pointing at temporary source and report directories."""
    return Config(
        api_key="test-key",
        model="test-model",
        source_dir=str(source_dir),
        work_background="AI engineer copilot llm",
        news_dir=tmp_path / "news",
        fetch_timeout=2.0,
    )
