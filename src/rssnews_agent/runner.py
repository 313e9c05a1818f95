"""One end-to-end run: generate, validate, compare, write."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from pathlib import Path

import httpx

from rssnews_agent.agent import ReportGenerator
from rssnews_agent.collector import collect_news
from rssnews_agent.config import Config
from rssnews_agent.report import GeneratedReport, generate_validated_report
from rssnews_agent.trends import get_latest_report_file, summarize_trend
from rssnews_agent.writer import (
    build_structured_record,
    format_generated_at,
    format_timestamp,
    render_report,
    report_paths,
    write_report,
)

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """What a run produced and where it was saved."""

    markdown: str
    record: dict
    markdown_path: Path
    json_path: Path
    report: GeneratedReport


async def run_once(
    config: Config,
    generator: ReportGenerator,
    client: httpx.AsyncClient | None = None,
    now: datetime | None = None,
) -> RunResult:
    """Produce and persist one report.

    Raises:
        NoFeedSourceError: If the source directory has no .opml files.
    """
    collect = partial(collect_news, timeout=config.fetch_timeout, client=client, now=now)

    generated = await generate_validated_report(
        generator, collect, config.work_background, config.source_dir
    )

    previous_path = get_latest_report_file(config.news_dir)
    previous_report = previous_path.read_text(encoding="utf-8") if previous_path else None
    trend_summary = await summarize_trend(
        generator, previous_report, generated.text, config.work_background
    )

    news = generated.news
    if news is None:
        logger.info("Model did not call the news tool; collecting feed observability directly")
        news = await collect(source_dir=config.source_dir, work_profile=config.work_background)
    observability = news.feed_observability

    moment = now or datetime.now(timezone.utc)
    timestamp = format_timestamp(moment)
    generated_at = format_generated_at(moment)
    compared_with = previous_path.name if previous_path else None
    markdown_path, json_path = report_paths(config.news_dir, timestamp)

    markdown = render_report(
        timestamp=timestamp,
        generated_at=generated_at,
        work_background=config.work_background,
        source_dir=config.source_dir,
        report=generated,
        trend_summary=trend_summary,
        observability=observability,
        compared_with=compared_with,
    )
    record = build_structured_record(
        timestamp=timestamp,
        generated_at=generated_at,
        work_background=config.work_background,
        source_dir=config.source_dir,
        report=generated,
        trend_summary=trend_summary,
        observability=observability,
        compared_with=compared_with,
        markdown_path=markdown_path,
        json_path=json_path,
    )

    write_report(markdown_path, markdown, json_path, record)

    return RunResult(
        markdown=markdown,
        record=record,
        markdown_path=markdown_path,
        json_path=json_path,
        report=generated,
    )
