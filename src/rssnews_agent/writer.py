"""Render and persist the narrative report and its structured JSON twin."""

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path

from rssnews_agent.models import FAILURE_SAMPLE_LIMIT, FeedObservability
from rssnews_agent.report import REQUIRED_HEADINGS, GeneratedReport

logger = logging.getLogger(__name__)

TREND_HEADING = "## 与上次相比最值得关注的新趋势"
OBSERVABILITY_HEADING = "## Feed 拉取观测"
NONE_PLACEHOLDER = "- 无"
NOT_AVAILABLE = "N/A"

SECTION_KEYS = ("releases", "relevant", "tests", "ignored")

LIST_MARKER = re.compile(r"^(?:[-*]|\d+\.)\s+")


def format_timestamp(moment: datetime) -> str:
    """Local-time ``YYYYMMDD-HHmmss`` used to name a run's files."""
    return moment.astimezone().strftime("%Y%m%d-%H%M%S")


def format_generated_at(moment: datetime) -> str:
    """UTC ISO-8601 with milliseconds and a trailing Z."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def render_report(
    timestamp: str,
    generated_at: str,
    work_background: str,
    source_dir: str,
    report: GeneratedReport,
    trend_summary: str,
    observability: FeedObservability | None,
    compared_with: str | None,
) -> str:
    """Assemble the narrative markdown report."""
    lines = [
        f"# RSS News Report - {timestamp}",
        "",
        f"- GeneratedAt: {generated_at}",
        f"- WorkBackground: {work_background}",
        f"- SourceDir: {source_dir}",
        f"- FormatValidationRetried: {'yes' if report.format_validation_retried else 'no'}",
        f"- ComparedWith: {compared_with or 'none'}",
        "",
        report.text,
        "",
        TREND_HEADING,
        trend_summary,
        "",
        *render_observability(observability),
        "",
    ]
    return "\n".join(lines)


def render_observability(observability: FeedObservability | None) -> list[str]:
    """Lines of the feed fetch observability section."""
    if observability is None:
        counts = [NOT_AVAILABLE] * 4
        rate = NOT_AVAILABLE
        timeout_lines = [NONE_PLACEHOLDER]
        sample_lines = [NONE_PLACEHOLDER]
    else:
        counts = [
            observability.opml_file_count,
            observability.total_feeds_in_opml,
            observability.selected_feed_count,
            observability.failed_feed_count,
        ]
        rate = f"{observability.failed_rate * 100:.2f}%"
        timeout_lines = [f"- {label}" for label in observability.timeout_feeds] or [NONE_PLACEHOLDER]
        sample_lines = [
            f"- {f.feed_title}: {f.reason}"
            for f in observability.failed_feeds[:FAILURE_SAMPLE_LIMIT]
        ] or [NONE_PLACEHOLDER]

    return [
        OBSERVABILITY_HEADING,
        f"- OPML 文件数: {counts[0]}",
        f"- OPML 内源总数（去重前）: {counts[1]}",
        f"- 本次选取源数: {counts[2]}",
        f"- 失败源数: {counts[3]}",
        f"- 失败率: {rate}",
        "- 超时源列表:",
        *timeout_lines,
        "- 失败样本:",
        *sample_lines,
    ]


def extract_section_body(markdown: str, heading: str) -> str:
    """Text between heading (a whole line) and the next ``## `` heading."""
    lines = markdown.splitlines()
    try:
        start = next(i for i, line in enumerate(lines) if line.strip() == heading)
    except StopIteration:
        return ""

    body = []
    for line in lines[start + 1:]:
        if line.startswith("## "):
            break
        body.append(line)
    return "\n".join(body).strip()


def extract_list_items(section_body: str) -> list[str]:
    """Bullet and numbered lines of a section, markers stripped."""
    items = []
    for line in section_body.splitlines():
        line = line.strip()
        if LIST_MARKER.match(line):
            item = LIST_MARKER.sub("", line, count=1).strip()
            if item:
                items.append(item)
    return items


def extract_trends(trend_markdown: str) -> list[str]:
    """Every non-empty trend line, with any list marker stripped."""
    trends = []
    for line in trend_markdown.splitlines():
        line = LIST_MARKER.sub("", line.strip(), count=1).strip()
        if line:
            trends.append(line)
    return trends


def build_structured_record(
    timestamp: str,
    generated_at: str,
    work_background: str,
    source_dir: str,
    report: GeneratedReport,
    trend_summary: str,
    observability: FeedObservability | None,
    compared_with: str | None,
    markdown_path: Path,
    json_path: Path,
) -> dict:
    """The machine-readable twin of the narrative report."""
    return {
        "timestamp": timestamp,
        "generated_at": generated_at,
        "work_background": work_background,
        "source_dir": source_dir,
        "compared_with": compared_with,
        "report_markdown_path": str(markdown_path),
        "report_json_path": str(json_path),
        "format_validation_retried": report.format_validation_retried,
        "format_validation_passed": report.validation_passed,
        "sections": {
            key: extract_list_items(extract_section_body(report.text, heading))
            for key, heading in zip(SECTION_KEYS, REQUIRED_HEADINGS)
        },
        "trends": extract_trends(trend_summary),
        "feed_observability": observability.to_dict() if observability else None,
    }


def report_paths(news_dir: Path, timestamp: str) -> tuple[Path, Path]:
    return news_dir / f"{timestamp}.md", news_dir / f"{timestamp}.json"


def write_report(markdown_path: Path, markdown: str, json_path: Path, record: dict) -> None:
    """Persist both artifacts, creating the reports directory if needed."""
    markdown_path.parent.mkdir(parents=True, exist_ok=True)
    markdown_path.write_text(markdown, encoding="utf-8")
    json_path.write_text(json.dumps(record, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("Saved report to %s and %s", markdown_path, json_path)
