"""Command-line entry point for managing and chatting with TalkLink chatbots."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from talklink import ChatbotService, InputError, PersistenceError, get_chat_store
from talklink.config import SUPPORTED_PROVIDERS, config

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from logging import Logger

EXIT_PROMPTS = {"exit", "quit", ":q"}


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Build the CLI parser and read command-line arguments."""  # noqa: DOC201
    parser = argparse.ArgumentParser(
        description="Manage TalkLink chatbots and chat with them from a terminal.",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to the SQLite database (default: CHAT_DB_PATH).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create-bot", help="Register a new chatbot.")
    create.add_argument("--name", required=True, help="Display name of the bot.")
    create.add_argument("--owner", required=True, help="Owning user identity.")
    create.add_argument("--prompt", default=None, help="System prompt / persona.")

    entry = subparsers.add_parser("add-entry", help="Add a curated Q&A entry.")
    entry.add_argument("--bot", required=True, help="Chatbot id.")
    entry.add_argument("--question", required=True)
    entry.add_argument("--answer", required=True)
    entry.add_argument("--keywords", nargs="*", default=None)

    ingest = subparsers.add_parser("import", help="Import knowledge from a .txt file.")
    ingest.add_argument("--bot", required=True, help="Chatbot id.")
    ingest.add_argument("file", type=Path, help="UTF-8 text file to import.")

    chat = subparsers.add_parser("chat", help="Start an interactive chat session.")
    chat.add_argument("--bot", required=True, help="Chatbot id.")
    chat.add_argument(
        "--provider",
        choices=SUPPORTED_PROVIDERS,
        default=None,
        help="Generative provider (default: DEFAULT_PROVIDER).",
    )
    chat.add_argument("--user", default=None, help="End-user identity.")

    transcript = subparsers.add_parser("transcript", help="Print a session transcript.")
    transcript.add_argument("--session", required=True, help="Session id.")

    return parser.parse_args(argv)


def run_chat(
    service: ChatbotService,
    chatbot_id: str,
    *,
    user_identity: str | None = None,
    read: Callable[[str], str] = input,
) -> int:
    """Interactive loop: read a line, resolve it, print the answer."""  # noqa: DOC201
    session = service.start_session(chatbot_id, user_identity=user_identity)
    print(f"Session {session.id} started. Type 'exit' to leave.")  # noqa: T201
    while True:
        try:
            text = read("you> ").strip()
        except (EOFError, KeyboardInterrupt):
            break
        if not text:
            continue
        if text.lower() in EXIT_PROMPTS:
            break
        answer = service.resolve(chatbot_id, session.id, text)
        print(f"bot [{answer.source}]> {answer.content}")  # noqa: T201
    service.end_session(session.id)
    return 0


def dispatch(args: argparse.Namespace, logger: Logger) -> int:
    """Execute the selected sub-command and return its exit code."""  # noqa: DOC201
    store = get_chat_store(db_path=args.db)

    if args.command == "create-bot":
        chatbot = store.create_chatbot(args.name, args.owner, system_prompt=args.prompt)
        print(chatbot.id)  # noqa: T201
        return 0

    if args.command == "transcript":
        for message in store.list_messages(args.session):
            source = f" ({message.response_source})" if message.response_source else ""
            print(f"[{message.created_at}] {message.role}{source}: {message.content}")  # noqa: T201
        return 0

    provider_name = getattr(args, "provider", None)
    if args.command == "chat":
        try:
            config.validate(provider_name)
        except ValueError:
            logger.exception("Configuration invalid")
            return 1

    service = ChatbotService(store=store, provider_name=provider_name)
    try:
        if args.command == "add-entry":
            entry = service.add_knowledge_entry(
                args.bot, args.question, args.answer, keywords=args.keywords
            )
            print(entry.id)  # noqa: T201
            return 0

        if args.command == "import":
            count = service.import_file(args.bot, args.file)
            logger.info("Imported %d knowledge entries", count)
            return 0

        return run_chat(service, args.bot, user_identity=args.user)
    finally:
        service.close()


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, configure logging and run the requested command."""  # noqa: DOC201
    args = parse_args(argv)

    config.setup_logging()
    logger = config.get_logger(__name__)

    try:
        return dispatch(args, logger)
    except InputError:
        logger.exception("Invalid input")
        return 2
    except PersistenceError:
        logger.exception("Datastore unavailable")
        return 1
    except (OSError, ValueError):
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())
