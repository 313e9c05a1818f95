"""The fixed four-section report contract and its single-retry generation loop."""

import logging
from dataclasses import dataclass

from rssnews_agent.agent import ReportGenerator
from rssnews_agent.models import NewsCollection
from rssnews_agent.tools import NEWS_TOOL_NAME, NewsCollector

logger = logging.getLogger(__name__)

HEADING_MARKER = "## "
SECTION_TITLES = (
    "本周发布了什么（最多 3-5 条简要概述）",
    "哪些内容与我的工作相关（1-2 条，附带背景）",
    "我应该在本周测试什么（具体操作）",
    "我可以完全忽略的内容（其他所有内容）",
)
REQUIRED_HEADINGS = tuple(HEADING_MARKER + title for title in SECTION_TITLES)

MAX_ATTEMPTS = 2

REPORT_INSTRUCTIONS = " ".join([
    "You are RSSAgent for AI news triage.",
    f"Always call {NEWS_TOOL_NAME} first.",
    "You must output in Chinese with exactly 4 sections and keep concise.",
    "The 4 section titles must match the required text exactly, character by character.",
    *(f"Section {i} title: {title}" for i, title in enumerate(SECTION_TITLES, start=1)),
    "Prioritize direct workflow impact and include links for relevant/test items.",
])

RETRY_NOTICE = "上一次输出缺少固定标题。请严格保证四个标题全部出现且逐字一致。"


@dataclass
class GeneratedReport:
    """The accepted report body and how it got there."""

    text: str
    news: NewsCollection | None
    retries: int
    validation_passed: bool

    @property
    def format_validation_retried(self) -> bool:
        return self.retries > 0


def has_required_headings(text: str) -> bool:
    """True if every required heading appears verbatim in text."""
    return all(heading in text for heading in REQUIRED_HEADINGS)


def build_prompt(work_background: str, source_dir: str, retry: bool = False) -> str:
    """Build the triage prompt; on retry it also says the last answer broke the heading contract."""
    lines = [
        f"这是我的工作背景：{work_background}。从以下 AI 新闻项目中，识别出对我的具体工作流有直接影响的发布内容。"
        "对于每个相关项目，简要说明它为什么对我的工作重要，以及我应当测试什么。忽略其他一切。",
        f"RSS 源目录：{source_dir}。调用工具时必须使用这个 source_dir。",
        RETRY_NOTICE if retry else "",
        "输出要求：将筛选后的输出内容结构化并总结为以下4段，且必须使用完全一致的标题：",
        *(f"{i}. {title}" for i, title in enumerate(SECTION_TITLES, start=1)),
        "标题必须逐字一致，不允许省略括号内容，不允许改写标题。",
        "如果某部分没有内容，写“无”。",
        "除这四段外不要输出其它段落。",
        "必须严格按以下 Markdown 模板输出：",
        REQUIRED_HEADINGS[0],
        "- ...",
        REQUIRED_HEADINGS[1],
        "- ...",
        REQUIRED_HEADINGS[2],
        "1. ...",
        REQUIRED_HEADINGS[3],
        "- ...",
    ]
    return "\n".join(line for line in lines if line)


async def generate_validated_report(
    generator: ReportGenerator,
    collect: NewsCollector,
    work_background: str,
    source_dir: str,
    max_attempts: int = MAX_ATTEMPTS,
) -> GeneratedReport:
    """Generate the report, regenerating once if a required heading is missing.

    If the last attempt still breaks the contract it is accepted anyway and
    flagged, so a run always ends with a report.
    """
    text = ""
    news = None

    for attempt in range(max_attempts):
        prompt = build_prompt(work_background, source_dir, retry=attempt > 0)
        result = await generator.generate_with_news(prompt, collect, REPORT_INSTRUCTIONS)
        text = result.text.strip()
        news = result.news

        if has_required_headings(text):
            return GeneratedReport(text=text, news=news, retries=attempt, validation_passed=True)

        missing = [h for h in REQUIRED_HEADINGS if h not in text]
        logger.warning(
            "Report attempt %d/%d is missing %d required heading(s)",
            attempt + 1,
            max_attempts,
            len(missing),
        )

    logger.warning("Accepting report that failed format validation")
    return GeneratedReport(
        text=text,
        news=news,
        retries=max(max_attempts - 1, 0),
        validation_passed=False,
    )
