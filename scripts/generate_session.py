#!/usr/bin/env python3
"""Log in with a Telegram user account and print a TELEGRAM_SESSION string."""

from __future__ import annotations

import argparse
import asyncio
import os

from telethon import TelegramClient
from telethon.sessions import StringSession


def render_env_lines(*, api_id: int, api_hash: str, session: str) -> str:
    return "\n".join(
        [
            f"TELEGRAM_API_ID={api_id}",
            f"TELEGRAM_API_HASH={api_hash}",
            f"TELEGRAM_SESSION={session}",
        ]
    )


async def create_session(*, api_id: int, api_hash: str, phone: str | None) -> str:
    client = TelegramClient(StringSession(), api_id, api_hash)
    try:
        # Prompts for the login code (and 2FA password) on stdin.
        if phone:
            await client.start(phone=phone)
        else:
            await client.start()
        return client.session.save()
    finally:
        await client.disconnect()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a Telethon string session for channel ingestion.")
    parser.add_argument("--api-id", type=int, default=os.getenv("TELEGRAM_API_ID"), help="my.telegram.org api_id")
    parser.add_argument("--api-hash", default=os.getenv("TELEGRAM_API_HASH"), help="my.telegram.org api_hash")
    parser.add_argument("--phone", default=None, help="Account phone number in international format")
    args = parser.parse_args()
    if not args.api_id or not args.api_hash:
        parser.error("--api-id and --api-hash are required (or TELEGRAM_API_ID / TELEGRAM_API_HASH)")

    session = asyncio.run(create_session(api_id=int(args.api_id), api_hash=args.api_hash, phone=args.phone))
    print(render_env_lines(api_id=int(args.api_id), api_hash=args.api_hash, session=session))


if __name__ == "__main__":
    main()
