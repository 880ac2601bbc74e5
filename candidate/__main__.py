import argparse
import asyncio
import logging
import os
import sys

import aiohttp
from dotenv import load_dotenv

from .client import DEFAULT_BACKEND_URL, BackendClient, BackendError, InterviewClient, LocalMedia
from .report import render_report

logger = logging.getLogger("candidate")


async def main(args: argparse.Namespace) -> int:
    async with aiohttp.ClientSession() as session:
        backend = BackendClient(session, args.backend)
        try:
            prompts = await backend.fetch_prompts()
        except BackendError as e:
            logger.error("Failed to load prompt catalogue: %s", e)
            return 1

        if not args.topic:
            for p in prompts:
                print(p["topic"])
            return 0

        prompt = next((p for p in prompts if p.get("topic") == args.topic), None)
        if prompt is None:
            logger.error("Unknown topic %r (choose from: %s)", args.topic,
                         ", ".join(p["topic"] for p in prompts))
            return 2

        client = InterviewClient(
            backend,
            media=LocalMedia(audio_file=args.audio_file),
            alert=lambda msg: print(f"!! {msg}", file=sys.stderr),
        )
        state = await client.run(prompt, duration=args.duration)

    for line in state.transcript_text().splitlines():
        print(line)
    print()
    print(render_report(state))
    return 0 if state.result is not None else 1


def cli() -> None:
    load_dotenv(".env.local")
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())

    parser = argparse.ArgumentParser(prog="python -m candidate", description="Take an AI interview from the terminal.")
    parser.add_argument("--topic", help="interview topic; omit to list the catalogue")
    parser.add_argument("--backend", default=os.getenv("BACKEND_BASE_URL", DEFAULT_BACKEND_URL))
    parser.add_argument("--audio-file", help="16-bit PCM WAV played into the microphone track")
    parser.add_argument("--duration", type=float, help="leave the room after this many seconds")
    sys.exit(asyncio.run(main(parser.parse_args())))


if __name__ == "__main__":
    cli()
