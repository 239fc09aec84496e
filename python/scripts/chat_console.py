"""
Chat Console

Talk to one of the trading assistant personas from the terminal. Replies
stream in as they arrive; Ctrl+C during a reply stops it and keeps what was
already printed.
"""
import asyncio
import sys
from pathlib import Path

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from app.config import get_settings
from app.logging_config import setup_logging
from core.chat import ChatProvider, ConversationState, create_chat_proxy, get_provider_spec


async def main(provider: ChatProvider):
    settings = get_settings()
    spec = get_provider_spec(provider)
    proxy = create_chat_proxy(provider, getattr(settings, spec.credential_setting, ""))
    conversation = ConversationState()

    print(f"💬 Sonar Trading Lab - {spec.display_name} ({spec.model})")
    print("=" * 60)
    print("Type a question, or 'quit' to exit.")
    print()

    loop = asyncio.get_running_loop()
    while True:
        text = (await loop.run_in_executor(None, input, "you> ")).strip()
        if not text:
            continue
        if text.lower() in ("quit", "exit"):
            break

        print("sonar> ", end="", flush=True)
        try:
            await conversation.send(
                proxy, text, on_chunk=lambda chunk: print(chunk, end="", flush=True)
            )
        except asyncio.CancelledError:
            conversation.cancel()
            raise
        print()

        if conversation.error:
            print(f"  ❌ {conversation.error}")
        print()

    print(f"Conversation ended after {len(conversation.messages)} messages.")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Stream chat with a trading assistant persona")
    parser.add_argument(
        "--provider",
        choices=[p.value for p in ChatProvider],
        default=ChatProvider.ANTHROPIC.value,
        help="Which provider persona to talk to (default: anthropic)",
    )
    args = parser.parse_args()

    load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env.local")
    setup_logging(level="WARNING")
    try:
        asyncio.run(main(ChatProvider(args.provider)))
    except (KeyboardInterrupt, EOFError):
        print()
