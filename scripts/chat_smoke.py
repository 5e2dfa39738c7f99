"""
Smoke test for chat: one turn, the reply is printed as it streams.

Usage:
    python -m scripts.chat_smoke --message "olma bormi?"
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from freshmarket_assistant.config import setup_logging
from freshmarket_assistant.container import build_services
from freshmarket_assistant.models.schemas import ChatRequest, ChatTurn


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Smoke-test the chat pipeline.")
    parser.add_argument("--message", "-m", required=True, help="User message")
    parser.add_argument(
        "--history",
        default=None,
        help='JSON list of previous turns, e.g. \'[{"role": "user", "content": "olma bormi?"}]\'',
    )
    parser.add_argument("--show-context", action="store_true", help="Print the assembled context first")
    return parser.parse_args()


async def run(message: str, history: list[ChatTurn], show_context: bool) -> None:
    services = build_services()
    if show_context:
        context = await services.chat.build_context(message, history)
        for turn in context:
            print(f"--- {turn.role} ---\n{turn.content}\n")

    print("=== Reply ===")
    async for fragment in services.chat.stream_reply(ChatRequest(message=message, history=history)):
        print(fragment, end="", flush=True)
    print()


def main() -> None:
    setup_logging()
    logger = logging.getLogger(__name__)
    args = parse_args()

    history = [ChatTurn.model_validate(turn) for turn in json.loads(args.history)] if args.history else []
    try:
        asyncio.run(run(args.message, history, args.show_context))
    except Exception:
        logger.exception("Chat smoke failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
