#!/usr/bin/env python3
"""Command line entry point: split a Markdown file, or split and post it to Discord."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from loguru import logger

from marksplit.channels.discord import DiscordTransport
from marksplit.config.loader import load_config
from marksplit.delivery import split_and_send
from marksplit.errors import ConfigError
from marksplit.markdown.format import split_content


def configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def cmd_split(args: argparse.Namespace) -> int:
    config = load_config(Path(args.config) if args.config else None)
    chunks = split_content(
        read_input(args.file),
        args.source_url,
        limit=config.chunking.ceiling,
        code_limit=config.chunking.code_ceiling,
    )
    if args.json:
        payload = [
            {"kind": c.kind.value, "content": c.content, "language": c.language}
            for c in chunks
        ]
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0

    for i, chunk in enumerate(chunks, 1):
        lang = f" ({chunk.language})" if chunk.language else ""
        print(f"--- chunk {i}/{len(chunks)}: {chunk.kind.value}{lang}, {len(chunk.content)} chars ---")
        print(chunk.content)
    return 0


async def _send(args: argparse.Namespace) -> int:
    config = load_config(Path(args.config) if args.config else None)
    if not config.discord.token:
        logger.error("Discord token not configured (set MARKSPLIT_DISCORD__TOKEN)")
        return 1

    markdown = read_input(args.file)
    async with DiscordTransport.from_config(config, args.channel_id) as transport:
        results = await split_and_send(
            markdown,
            args.source_url,
            transport,
            delay=config.delivery.send_delay,
            limit=config.chunking.ceiling,
            code_limit=config.chunking.code_ceiling,
        )

    failed = [r for r in results if not r.ok]
    logger.info(f"Sent {len(results) - len(failed)}/{len(results)} chunks to channel {args.channel_id}")
    return 1 if failed else 0


def cmd_send(args: argparse.Namespace) -> int:
    return asyncio.run(_send(args))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="marksplit",
        description="Split long Markdown into 2000-character messages",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", help="Path to config.json (default: ~/.marksplit/config.json)")
    sub = parser.add_subparsers(dest="command", required=True)

    split = sub.add_parser("split", help="Print the chunks of a Markdown file")
    split.add_argument("file", help="Markdown file, or - for stdin")
    split.add_argument("--source-url", help="URL the document was scraped from")
    split.add_argument("--json", action="store_true", help="Emit chunks as JSON")
    split.set_defaults(func=cmd_split)

    send = sub.add_parser("send", help="Split a Markdown file and post it to a Discord channel")
    send.add_argument("file", help="Markdown file, or - for stdin")
    send.add_argument("--channel-id", required=True, help="Discord channel or thread ID")
    send.add_argument("--source-url", help="URL the document was scraped from")
    send.set_defaults(func=cmd_send)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    try:
        return args.func(args)
    except ConfigError as e:
        logger.error(str(e))
        return 2
    except OSError as e:
        logger.error(f"Cannot read input: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
