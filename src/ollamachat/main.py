"""Entry point for the ollamachat CLI."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from ollamachat.errors import ChatError

if TYPE_CHECKING:
    from ollamachat.orchestrator import ChatOrchestrator

HELP = "Commands: /new, /history, /load <id>, /models, /quit"


async def _repl(orchestrator: ChatOrchestrator) -> None:
    print(orchestrator.messages[0].text)
    print(HELP)
    while True:
        try:
            line = await asyncio.to_thread(input, "> ")
        except EOFError:
            break
        line = line.strip()
        if not line:
            continue

        if line == "/quit":
            break
        if line == "/new":
            orchestrator.new_conversation()
            print(orchestrator.messages[0].text)
            continue
        if line == "/history":
            for conv in await orchestrator.list_conversations():
                print(f"{conv.id}  {conv.updated_at[:19]}  {conv.title}")
            continue
        if line.startswith("/load "):
            conv_id = line.split(maxsplit=1)[1]
            if not await orchestrator.load_conversation(conv_id):
                print(f"No conversation {conv_id}")
                continue
            for message in reversed(orchestrator.messages):
                print(f"{'you' if message.is_user else 'bot'}: {message.text}")
            continue
        if line == "/models":
            for model in await orchestrator.list_models():
                print(f"{model.id}  {model.display_name}")
            continue

        try:
            await orchestrator.send(
                line,
                on_chunk=lambda chunk: print(chunk, end="", flush=True),
                on_complete=lambda *_: print(),
            )
        except ChatError as exc:
            print(f"Error: {exc}", file=sys.stderr)


async def _run(args: argparse.Namespace) -> None:
    from ollamachat.config import Config
    from ollamachat.orchestrator import ChatOrchestrator
    from ollamachat.registry import ProviderRegistry
    from ollamachat.settings import SettingsMirror
    from ollamachat.storage import FileKeyValueStore, create_storage

    config = Config(backend=args.backend)
    if args.data_dir:
        config.data_dir = args.data_dir

    kv = FileKeyValueStore(config.kv_dir)
    storage = create_storage(config, kv)
    orchestrator = ChatOrchestrator(
        storage,
        ProviderRegistry(timeouts=config.timeouts),
        SettingsMirror(storage, kv),
    )
    await orchestrator.start()
    try:
        if args.provider:
            await orchestrator.select_provider(args.provider, args.model)
        elif args.model:
            await orchestrator.update_settings(selected_model=args.model)
        if not orchestrator.is_connected:
            print(f"Provider {orchestrator.settings.selected_provider_id} is not reachable", file=sys.stderr)
        await _repl(orchestrator)
    finally:
        await orchestrator.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="ollamachat: multi-provider terminal chat client")
    parser.add_argument("--data-dir", default=None, help="Directory for the database and settings")
    parser.add_argument("--backend", default="sqlite", choices=["sqlite", "snapshot"])
    parser.add_argument("--provider", default=None, help="Provider id to select (e.g. ollama-default)")
    parser.add_argument("--model", default=None, help="Model to use with the selected provider")
    parser.add_argument("--log-level", default="warning", choices=["debug", "info", "warning", "error"])
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
