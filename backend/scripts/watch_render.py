#!/usr/bin/env python3
"""
Start (or follow) a render from the command line and poll until it finishes.

Usage:
    python scripts/watch_render.py <project_id>                   # Start a render and watch it
    python scripts/watch_render.py <project_id> --force           # Override score and review warnings
    python scripts/watch_render.py <project_id> --render-id <id>  # Follow an existing render
"""

import argparse
import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

from studio_client import RenderOutcome, RenderPoller, StudioAPIError, StudioClient


def print_notice(notice) -> None:
    marker = "❌" if notice.variant == "destructive" else "✅"
    print(f"{marker} {notice.title}: {notice.description or ''}")


async def watch(args) -> int:
    async with StudioClient(
        base_url=args.base_url,
        api_key=args.api_key,
        user_id=args.user_id,
        on_unauthorized=lambda url: print(f"Log in at {url}"),
    ) as client:
        client.notifier.subscribe(print_notice)

        render_id = args.render_id
        bucket_name = args.bucket_name
        if render_id is None:
            try:
                started = await client.start_render(args.project_id, force=args.force)
            except StudioAPIError as e:
                print(f"❌ Could not start render: {e.message}")
                return 1
            render_id = started.renderId
            bucket_name = started.bucketName
            print(f"🎬 Render started: {render_id}")

        poller = RenderPoller(client, args.project_id, render_id, bucket_name, base_interval=args.interval)
        outcome = await poller.run()

        project = client.state.project
        if outcome == RenderOutcome.COMPLETE and project is not None:
            print(f"   Output: {project.outputUrl}")
        print(f"   Polls: {poller.polls}")
        return 0 if outcome == RenderOutcome.COMPLETE else 1


def main():
    load_dotenv()

    parser = argparse.ArgumentParser(description="Start and watch a video render")
    parser.add_argument("project_id", help="Project ID to render")
    parser.add_argument("--render-id", help="Follow an existing render instead of starting one")
    parser.add_argument("--bucket-name", help="Bucket of the existing render")
    parser.add_argument("--force", action="store_true", help="Render past score and review warnings")
    parser.add_argument("--base-url", default=os.getenv("STUDIO_API_URL", "http://localhost:8000"))
    parser.add_argument("--api-key", default=os.getenv("API_KEY"))
    parser.add_argument("--user-id", default=os.getenv("STUDIO_USER_ID"))
    parser.add_argument("--interval", type=float, default=5.0, help="Base poll interval in seconds")
    args = parser.parse_args()

    sys.exit(asyncio.run(watch(args)))


if __name__ == "__main__":
    main()
