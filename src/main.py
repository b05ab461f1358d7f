"""Command line entry point for tubesafe."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, Set

from rich.console import Console
from rich.table import Table

from curation_pipeline import CurationPipeline
from models.video import SearchRequest, VideoRecord
from utils.config import PROJECT_ROOT, SettingsStore, setup_logging, load_config
from utils.duration import format_duration

logger = logging.getLogger(__name__)

console = Console()


def _score(value: Optional[float]) -> str:
    return f"{value:.2f}" if value is not None else "-"


def render_videos(videos: List[VideoRecord], title: str, stale_ids: Optional[Set[str]] = None) -> None:
    stale_ids = stale_ids or set()
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", width=3)
    table.add_column("Title", style="white")
    table.add_column("Channel", style="cyan")
    table.add_column("Length", justify="right")
    table.add_column("AI", justify="right")
    table.add_column("Edu", justify="right")
    table.add_column("Safety", justify="right")
    table.add_column("Video ID", style="dim")

    for position, video in enumerate(videos, start=1):
        if video.is_classified:
            scores = (_score(video.ai_score), _score(video.education_score), _score(video.safety_score))
        else:
            scores = ("-", "-", "-")
        title_text = f"{video.title} (stale)" if video.id in stale_ids else video.title

        table.add_row(
            str(position),
            title_text,
            video.channel_title or "",
            format_duration(video.duration) if video.duration is not None else "?",
            *scores,
            video.id,
        )
    console.print(table)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tubesafe", description="Find child-friendly videos")
    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Search, classify and cache videos")
    search.add_argument("query")
    search.add_argument("--mode", choices=["strict", "balanced", "educational"], default=None)
    search.add_argument("--max-results", type=int, default=None)
    search.add_argument("--platform", default="youtube")
    search.add_argument("--skip-ai", action="store_true", help="Return search results without classification")

    subparsers.add_parser("cached", help="List cached videos")

    history = subparsers.add_parser("history", help="Show recent searches")
    history.add_argument("--limit", type=int, default=20)

    favorite = subparsers.add_parser("favorite", help="Add a video to favorites")
    favorite.add_argument("video_id")
    favorite.add_argument("--note", default=None)

    subparsers.add_parser("favorites", help="List favorites")
    subparsers.add_parser("clear-cache", help="Delete every cached video")
    return parser


async def run(args: argparse.Namespace, pipeline: CurationPipeline) -> None:
    if args.command == "search":
        request = SearchRequest(
            query=args.query,
            platform=args.platform,
            filter_mode=args.mode or pipeline.settings.get("default_filter_mode", "balanced"),
            max_results=args.max_results,
            skip_ai_analysis=args.skip_ai,
        )
        response = await pipeline.search_videos(request)
        render_videos(response.videos, f"Results for '{args.query}'")
        console.print(
            f"{response.total_found} videos "
            f"(search {response.search_time:.2f}s, AI {response.ai_analysis_time:.2f}s)"
        )

    elif args.command == "cached":
        render_videos(pipeline.get_cached_videos(), "Cached videos", pipeline.get_expired_video_ids())

    elif args.command == "history":
        table = Table(title="Search history", show_header=True, header_style="bold magenta")
        for column in ("When", "Query", "Platform", "Mode", "Results"):
            table.add_column(column)
        for entry in pipeline.get_search_history(args.limit):
            table.add_row(entry.created_at, entry.query, entry.platform, entry.filter_mode, str(entry.results_count))
        console.print(table)

    elif args.command == "favorite":
        pipeline.add_to_favorites(args.video_id, args.note)
        console.print(f"Added {args.video_id} to favorites")

    elif args.command == "favorites":
        favorites = pipeline.get_favorites()
        render_videos([f.video for f in favorites if f.video], "Favorites")

    elif args.command == "clear-cache":
        console.print(f"Cleared {pipeline.clear_cache()} cached videos")


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    args = build_parser().parse_args(argv)

    config = load_config()
    setup_logging(config["log_level"], PROJECT_ROOT / "logs" / "tubesafe.log")

    try:
        pipeline = CurationPipeline(SettingsStore(config))
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    try:
        asyncio.run(run(args, pipeline))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Application error: {e}")
        sys.exit(1)
    finally:
        pipeline.close()


if __name__ == "__main__":
    main()
