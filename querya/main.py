"""Querya command-line entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from pydantic import ValidationError

from querya import __version__
from querya.agent.loop import AgentLoop
from querya.config import Settings, load_settings, save_settings
from querya.conversations.archive import ConversationArchive
from querya.conversations.export import export_filename, export_markdown
from querya.conversations.store import MessageStore
from querya.errors import ConfigurationError, SessionBusyError
from querya.events import Event, EventBus
from querya.llm.aipipe import AIPipeGateway
from querya.notifications.console_channel import ConsoleChannel
from querya.notifications.router import NotificationRouter
from querya.session import ChatSession
from querya.tools import ToolDispatcher, registry

if TYPE_CHECKING:
    from querya.conversations.models import Message

logger = logging.getLogger(__name__)

_SENDER = {"user": "You", "assistant": "Querya", "system": "System", "tool": "Tool"}

HELP_TEXT = """Commands:
  /new            start a new conversation
  /list           list conversations
  /open <id>      switch to a conversation
  /clear          clear the current conversation
  /export [path]  write the current conversation as Markdown
  /help           show this help
  /quit           exit"""


@dataclass
class App:
    """Everything the CLI wires together."""

    settings: Settings
    events: EventBus
    store: MessageStore
    archive: ConversationArchive
    gateway: AIPipeGateway
    session: ChatSession


def build_app(settings: Settings, *, stream: TextIO | None = None) -> App:
    """Construct the store, gateway, dispatcher, loop and session."""
    events = EventBus()
    archive = ConversationArchive(settings.conversations_path)
    store = MessageStore(archive.load(), events=events)
    gateway = AIPipeGateway(registry)
    dispatcher = ToolDispatcher(registry, timeout=settings.tool_timeout)
    loop = AgentLoop(store, gateway, dispatcher, settings, events=events)

    notifier = NotificationRouter()
    notifier.register_channel(ConsoleChannel(stream))

    session = ChatSession(store, loop, settings, archive=archive, notifier=notifier, events=events)
    return App(settings, events, store, archive, gateway, session)


def format_message(message: Message) -> str:
    sender = _SENDER.get(message.role, message.role)
    if message.content is None and message.tool_calls:
        names = ", ".join(call.name for call in message.tool_calls)
        return f"{sender}: (using tools: {names})"
    return f"{sender}: {message.content}"


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def run_chat(app: App, out: TextIO | None = None) -> None:
    """Interactive terminal chat."""
    out = out or sys.stdout
    session = app.session
    conversation = session.start()

    def show(conversation_id: str, message: Message) -> None:
        if conversation_id == session.state.current_conversation_id:
            print(format_message(message), file=out)

    app.events.subscribe(Event.MESSAGE_APPENDED, show)
    app.events.subscribe(
        Event.TOOL_EXECUTING, lambda name, **_: print(f"  ... running {name}", file=out)
    )

    print(f"Querya v{__version__}. Type /help for commands.", file=out)
    print(f"[{conversation.title}]", file=out)
    for message in conversation.messages:
        print(format_message(message), file=out)

    while True:
        try:
            line = await asyncio.to_thread(input, "> ")
        except EOFError:
            break
        line = line.strip()
        if not line:
            continue
        if line.startswith("/"):
            if not _handle_command(app, line, out):
                break
            continue
        await session.send(line)

    print("Goodbye!", file=out)


def _handle_command(app: App, line: str, out: TextIO) -> bool:
    """Run one slash command. Returns False when the chat should exit."""
    session = app.session
    command, _, arg = line.partition(" ")
    arg = arg.strip()

    try:
        if command in ("/quit", "/exit"):
            return False
        if command == "/help":
            print(HELP_TEXT, file=out)
        elif command == "/new":
            conversation = session.new_conversation()
            print(f"Started {conversation.id}", file=out)
        elif command == "/list":
            _print_conversations(app.store, out)
        elif command == "/open":
            conversation = session.open_conversation(arg)
            print(f"[{conversation.title}]", file=out)
            for message in conversation.messages:
                print(format_message(message), file=out)
        elif command == "/clear":
            count = session.clear_conversation()
            print(f"Cleared {count} message(s)", file=out)
        elif command == "/export":
            conversation = session.current_conversation
            if conversation is None:
                print("No active conversation.", file=out)
            else:
                path = Path(arg or export_filename(conversation))
                path.write_text(export_markdown(conversation), encoding="utf-8")
                print(f"Exported to {path}", file=out)
        else:
            print(f"Unknown command: {command}", file=out)
    except KeyError as exc:
        print(f"Not found: {exc}", file=out)
    except SessionBusyError as exc:
        print(str(exc), file=out)
    return True


def _print_conversations(store: MessageStore, out: TextIO) -> None:
    conversations = store.list_conversations()
    if not conversations:
        print("No conversations.", file=out)
    for conversation in conversations:
        print(
            f"{conversation.id}  {conversation.updated_at:%Y-%m-%d %H:%M}  "
            f"{conversation.title}  ({len(conversation.messages)} messages)",
            file=out,
        )


async def run_models(app: App, out: TextIO | None = None) -> int:
    out = out or sys.stdout
    try:
        models = await app.gateway.list_models(app.settings)
    except ConfigurationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    for name in models:
        marker = "*" if name == app.settings.model else " "
        print(f"{marker} {name}", file=out)
    return 0


def run_export(app: App, conversation_id: str, output: str | None, out: TextIO | None = None) -> int:
    out = out or sys.stdout
    conversation = app.store.get(conversation_id)
    if conversation is None:
        print(f"ERROR: unknown conversation {conversation_id}", file=sys.stderr)
        return 1
    markdown = export_markdown(conversation)
    if output == "-":
        out.write(markdown)
        return 0
    path = Path(output or export_filename(conversation))
    path.write_text(markdown, encoding="utf-8")
    print(f"Exported to {path}", file=out)
    return 0


def run_config(settings: Settings, assignments: list[str], out: TextIO | None = None) -> int:
    """Print settings, or merge KEY=VALUE pairs into the settings file."""
    out = out or sys.stdout
    if not assignments:
        for key, value in settings.model_dump(mode="json").items():
            if key == "api_key" and value:
                value = value[:4] + "***"
            print(f"{key} = {value}", file=out)
        return 0

    updates: dict[str, str] = {}
    for item in assignments:
        key, sep, value = item.partition("=")
        if not sep or key not in Settings.model_fields:
            print(f"ERROR: expected KEY=VALUE with a known key, got {item!r}", file=sys.stderr)
            return 1
        updates[key] = value

    try:
        updated = Settings(**{**settings.model_dump(), **updates})
    except ValidationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    save_settings(updated, updated.settings_path)
    print(f"Saved {', '.join(updates)} to {updated.settings_path}", file=out)
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="querya", description="Chat with a tool-using model.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--data-dir", type=Path, help="Directory for settings and conversations")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("chat", help="Interactive chat (default)")
    sub.add_parser("models", help="List models available to the configured token")
    sub.add_parser("conversations", help="List stored conversations")
    config = sub.add_parser("config", help="Show settings, or store KEY=VALUE overrides")
    config.add_argument("assignments", nargs="*", metavar="KEY=VALUE")
    export = sub.add_parser("export", help="Export a conversation as Markdown")
    export.add_argument("conversation_id")
    export.add_argument("-o", "--output", help="Output path, or - for stdout")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)

    overrides = {"data_dir": args.data_dir} if args.data_dir else {}
    settings = load_settings(Settings(**overrides).settings_path, **overrides)

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger.debug("Using data directory %s", settings.data_dir)
    app = build_app(settings)
    command = args.command or "chat"

    if command == "models":
        return asyncio.run(run_models(app))
    if command == "conversations":
        _print_conversations(app.store, sys.stdout)
        return 0
    if command == "export":
        return run_export(app, args.conversation_id, args.output)
    if command == "config":
        return run_config(settings, args.assignments)

    try:
        asyncio.run(run_chat(app))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
