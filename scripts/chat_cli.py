"""
CLI tool to build a vacancy by chatting with a running API server.

Usage:
    python scripts/chat_cli.py [--url http://localhost:8000] [--session-id ID]

Examples:
    # Start a new vacancy against a local server
    python scripts/chat_cli.py

    # Resume an existing conversation
    python scripts/chat_cli.py --session-id 3f2a9c...

Type "quit" or press Ctrl-D to leave.
"""

import argparse
import asyncio
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from dotenv import load_dotenv
load_dotenv(".env.local")

import httpx

from src.logging_config import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)


async def chat(base_url: str, session_id: str | None = None, timeout: float = 120.0) -> None:
    """Run an interactive conversation until the vacancy is complete."""
    endpoint = f"{base_url.rstrip('/')}/api/recruiter/chat"

    async with httpx.AsyncClient(timeout=timeout) as client:
        message: str | None = None
        while True:
            try:
                response = await client.post(
                    endpoint,
                    json={"sessionId": session_id, "message": message},
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.error("chat_request_failed", error=str(e))
                print(f"Request failed: {e}")
                return

            data = response.json()
            session_id = data["sessionId"]
            progress = data.get("completionPercentage")
            print(f"\nRecruiter [{progress}%]: {data['message']}")

            if data.get("isComplete"):
                if data.get("webhookSuccess") is False:
                    print("(Webhook delivery failed.)")
                print(f"\nSession {session_id} complete.")
                return

            try:
                message = input("\nYou: ").strip()
            except EOFError:
                message = "quit"
            if message.lower() in ("quit", "exit"):
                print(f"\nBye. Resume later with --session-id {session_id}")
                return


def main() -> None:
    parser = argparse.ArgumentParser(description="Chat with the AI recruiter to build a vacancy")
    parser.add_argument("--url", default="http://localhost:8000", help="API server base URL")
    parser.add_argument("--session-id", help="Resume an existing session")
    parser.add_argument("--timeout", type=float, default=120.0, help="Per-request timeout in seconds")

    args = parser.parse_args()
    asyncio.run(chat(args.url, session_id=args.session_id, timeout=args.timeout))


if __name__ == "__main__":
    main()
