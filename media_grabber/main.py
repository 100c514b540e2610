"""CLI entry point: one-shot download or an interactive prompt loop."""

import argparse
import asyncio
import json
import os
import sys

from .config import load_config
from .logger import setup_logger
from .session import Session

HELP = "Commands: d = download, c = caption, i = ideas, q = quit. Anything else is a new link."


def print_state(state, as_json: bool = False):
    if state.error:
        print(f"Error: {state.error}")
        return
    if not state.result:
        return

    result = state.result
    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
        return

    print(f"\n{'='*60}")
    print(f"  {result.title}")
    print(f"{'='*60}")
    print(f"  Author:    {result.author}")
    print(f"  Link:      {result.download_url}")
    if result.thumbnail:
        print(f"  Thumbnail: {result.thumbnail}")
    print()


def print_outcome(outcome):
    if outcome is None:
        print("Nothing to download yet. Paste a link first.")
    elif outcome.degraded:
        print("Direct download was blocked; opened the video in your browser instead.")
        print(f"  Save it as: {outcome.filename}")
    else:
        print(f"Saved {outcome.path} ({_format_bytes(outcome.size or 0)}) via {outcome.strategy}")


def print_ai(state):
    if state.ai_output:
        print(f"\n--- {state.ai_mode} ---\n{state.ai_output}\n")


async def run_once(session: Session, url: str, args) -> int:
    state = await session.query(url)
    print_state(state, args.json)
    if state.error:
        return 1

    if not args.info_only:
        print_outcome(await session.download())

    for mode, wanted in (("caption", args.caption), ("ideas", args.ideas)):
        if wanted:
            print_ai(await session.generate(mode))
    return 0


async def run_interactive(session: Session, as_json: bool = False) -> int:
    print("Paste a video link (TikTok, Instagram, YouTube, X, ...).")
    print(HELP)

    while True:
        try:
            line = await asyncio.to_thread(input, "> ")
        except EOFError:
            break
        line = line.strip()
        if not line:
            continue

        cmd = line.lower()
        if cmd in ("q", "quit", "exit"):
            break
        elif cmd == "d":
            print_outcome(await session.download())
        elif cmd in ("c", "i"):
            if not session.state.result:
                print("Nothing to describe yet. Paste a link first.")
                continue
            print_ai(await session.generate("caption" if cmd == "c" else "ideas"))
        elif cmd in ("h", "help", "?"):
            print(HELP)
        else:
            print_state(await session.query(line), as_json)
    return 0


async def run(args) -> int:
    config = load_config(args.config)
    if args.output:
        config.download.download_dir = args.output
    setup_logger(config.log_dir)

    session = Session(config)
    try:
        if args.url:
            return await run_once(session, args.url, args)
        return await run_interactive(session, args.json)
    finally:
        await session.close()


def _format_bytes(n: int) -> str:
    if n < 1024:
        return f"{n} B"
    elif n < 1024 ** 2:
        return f"{n / 1024:.1f} KB"
    elif n < 1024 ** 3:
        return f"{n / 1024 ** 2:.1f} MB"
    else:
        return f"{n / 1024 ** 3:.2f} GB"


def main():
    parser = argparse.ArgumentParser(description="Social media video downloader")
    parser.add_argument("url", nargs="?", default=None,
                        help="Post URL; omit for interactive mode")
    parser.add_argument("--config", type=str,
                        default=os.environ.get("MEDIA_GRABBER_CONFIG", "config.yaml"),
                        help="Path to config file")
    parser.add_argument("--output", type=str, default=None,
                        help="Directory to save downloads in")
    parser.add_argument("--info-only", action="store_true",
                        help="Resolve the link without downloading")
    parser.add_argument("--caption", action="store_true",
                        help="Generate a caption with hashtags")
    parser.add_argument("--ideas", action="store_true",
                        help="Suggest follow-up video ideas")
    parser.add_argument("--json", action="store_true",
                        help="Print the resolved result as JSON")
    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
