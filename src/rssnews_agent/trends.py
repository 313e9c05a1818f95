"""Compare this run's report with the previous one."""

from pathlib import Path

from rssnews_agent.agent import ReportGenerator

FIRST_RUN_MESSAGE = "- 首次运行，暂无上次结果可对比。建议明天再次运行以观察趋势变化。"
NO_TREND_MESSAGE = "- 本次与上次相比未识别到明确的新趋势。"
REPORT_PREFIX_LIMIT = 7000

TREND_INSTRUCTIONS = " ".join([
    "你是新闻趋势分析助手。",
    "对比“上次报告”和“本次报告”，只提炼最值得关注的新趋势。",
    "输出必须是中文 Markdown 列表，1-3 条，每条一行。",
    "每条需包含：新趋势 + 为什么重要（面向工作流）。",
    "不要输出标题、不要输出额外解释。",
])


def get_latest_report_file(news_dir: Path) -> Path | None:
    """Return the newest narrative report in news_dir, or None before the first run."""
    news_dir.mkdir(parents=True, exist_ok=True)
    reports = sorted(p for p in news_dir.iterdir() if p.is_file() and p.suffix == ".md")
    return reports[-1] if reports else None


async def summarize_trend(
    generator: ReportGenerator,
    previous_report: str | None,
    current_report: str,
    work_background: str,
) -> str:
    """Summarize new trends since the previous report as 1-3 markdown bullets."""
    if not previous_report:
        return FIRST_RUN_MESSAGE

    prompt = "\n".join([
        f"工作背景：{work_background}",
        "请对比以下两次报告，找出最值得关注的新趋势：",
        "--- 上次报告 ---",
        previous_report[:REPORT_PREFIX_LIMIT],
        "--- 本次报告 ---",
        current_report[:REPORT_PREFIX_LIMIT],
    ])

    content = (await generator.generate(prompt, TREND_INSTRUCTIONS)).strip()
    return content or NO_TREND_MESSAGE
