"""Entry point for RSS News Agent: python -m rssnews_agent [--source-dir DIR] [work background ...]"""

import argparse
import asyncio
import logging

from dotenv import load_dotenv

from rssnews_agent.agent import AgentGenerator
from rssnews_agent.config import ConfigError, load_config
from rssnews_agent.opml import NoFeedSourceError
from rssnews_agent.runner import run_once

logger = logging.getLogger("rssnews_agent")


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quiet noisy loggers
    for name in ("httpx", "httpcore", "anthropic", "langchain"):
        logging.getLogger(name).setLevel(logging.WARNING)


def parse_cli_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse ``--source-dir`` and the free-text work background."""
    parser = argparse.ArgumentParser(
        prog="rssnews-agent",
        description="Triage recent news from OPML-listed RSS feeds into a weekly report.",
    )
    parser.add_argument(
        "--source-dir",
        default=None,
        help="Directory of .opml files (default: $SOURCE_DIR or rss-source)",
    )
    parser.add_argument(
        "work_background",
        nargs="*",
        help="Your role, tools and industry (default: $WORK_BACKGROUND)",
    )
    args = parser.parse_intermixed_args(argv)
    args.work_background = " ".join(args.work_background).strip() or None
    return args


def main(argv: list[str] | None = None) -> None:
    """Run the RSS News Agent once."""
    load_dotenv()
    configure_logging()

    args = parse_cli_args(argv)

    try:
        config = load_config(source_dir=args.source_dir, work_background=args.work_background)
    except ConfigError as e:
        logger.error("%s", e)
        raise SystemExit(1)

    try:
        result = asyncio.run(run_once(config, AgentGenerator(config)))
    except NoFeedSourceError as e:
        logger.error("%s", e)
        raise SystemExit(1)

    print(result.markdown)
    print(f"Saved Markdown: {result.markdown_path}")
    print(f"Saved JSON: {result.json_path}")


if __name__ == "__main__":
    main()
