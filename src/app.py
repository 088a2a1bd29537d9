"""Application entry point for the codescope archiver."""

from __future__ import annotations

import argparse
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import NoReturn, Optional

from art import tprint
from dotenv import load_dotenv
from telethon import TelegramClient, events

import settings
from adapters.message_formatting import format_archived_message, format_live_message
from adapters.sqlite_storage import SchemaError, SQLiteRevisionStore
from adapters.telegram_gateway import TelethonGateway
from adapters.telegram_mapper import build_snapshot
from core.classifier import ContentClassifier
from core.config import ArchiveConfig
from core.pipeline import ArchivalPipeline
from get_session import LoginError, build_client, login

NAME = "CODESCOPE"
FONT = "tarty-1"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Env variables whose values never reach a log line.
DEFAULT_REDACTED_ENV = ("API_HASH", "2FA", "PHONE")


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    """Masks secret values (API hash, 2FA password, phone) in every record."""

    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    """Resolve the env variables named in logging.redact to their values.

    Redaction is on unless explicitly disabled; longest values come first so
    a secret containing another is masked whole.
    """

    redact_cfg = config.get("redact", {})
    if not redact_cfg.get("enabled", True):
        return []
    names = redact_cfg.get("patterns") or DEFAULT_REDACTED_ENV
    values = {os.getenv(name) for name in names}
    return sorted((value for value in values if value), key=len, reverse=True)


def _log_file_handler(file_cfg: dict, project_root: str) -> RotatingFileHandler:
    path = file_cfg.get("path", "logs/codescope.log")
    if not os.path.isabs(path):
        path = os.path.join(project_root, path)
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(file_cfg.get("backup_count", 5)),
        encoding="utf-8",
    )


def _configure_logging(config: dict, project_root: str) -> list[logging.Handler]:
    """Install console/file handlers from the `logging` block of config.json.

    The console handler is always installed unless the block is enabled and
    turns it off; the rotating file handler only when `file.enabled` is set.
    """

    load_dotenv()
    enabled = bool(config.get("enabled", False))
    level = getattr(logging, str(config.get("level", "INFO")).upper(), logging.INFO)
    formatter = _RedactingFormatter(
        _collect_redaction_values(config), fmt=LOG_FORMAT, datefmt=LOG_DATEFMT
    )

    handlers: list[logging.Handler] = []
    if not enabled or config.get("console", True):
        handlers.append(logging.StreamHandler())
    file_cfg = config.get("file", {})
    if enabled and file_cfg.get("enabled", False):
        handlers.append(_log_file_handler(file_cfg, project_root))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    if handlers:
        logging.basicConfig(level=level, handlers=handlers)
    return handlers


def _build_archive_config(args: argparse.Namespace) -> ArchiveConfig:
    """Merge config.json with command-line overrides."""

    parse = settings.PARSE if getattr(args, "parse", None) is None else args.parse
    oneshot = settings.ONESHOT or bool(getattr(args, "oneshot", False))
    return ArchiveConfig(
        domains=settings.DOMAINS,
        parse=parse,
        oneshot=oneshot,
        label_private_chats=settings.LABEL_PRIVATE_CHATS,
        page_size=settings.PAGE_SIZE,
    )


def _register_live_handlers(client: TelegramClient, pipeline: ArchivalPipeline) -> None:
    logger = logging.getLogger(__name__)

    # Both handlers defer all filtering to the core so the live path and the
    # backfill path classify and persist identically.
    @client.on(events.NewMessage())
    async def on_new_message(event) -> None:
        if pipeline.live.suppressed:
            return
        try:
            await event.message.get_chat()
            await event.message.get_sender()
            snapshot = build_snapshot(event.message)
            logger.info(format_live_message(snapshot))
            pipeline.live.on_message_created(snapshot)
        except Exception:
            logger.exception("Error while processing message")

    @client.on(events.MessageEdited())
    async def on_message_edited(event) -> None:
        if pipeline.live.suppressed:
            return
        try:
            await event.message.get_chat()
            await event.message.get_sender()
            snapshot = build_snapshot(event.message)
            logger.info(format_live_message(snapshot, edit=True))
            pipeline.live.on_message_updated(snapshot)
        except Exception:
            logger.exception("Error while processing edited message")


def _run(args: argparse.Namespace) -> None:
    _print_banner()
    _configure_logging(settings.LOGGING or {}, settings.PROJECT_ROOT)
    logger = logging.getLogger(__name__)

    logger.info("Starting codescope")
    config = _build_archive_config(args)
    logger.info(
        "%s link domains loaded (parse=%s, oneshot=%s)",
        len(config.domains),
        config.parse,
        config.oneshot,
    )

    storage = SQLiteRevisionStore(settings.DB_PATH)
    client: Optional[TelegramClient] = None
    pipeline: Optional[ArchivalPipeline] = None

    def _shutdown() -> None:
        if pipeline is not None:
            pipeline.close()
        else:
            storage.close()
        if client is not None and client.is_connected():
            client.loop.run_until_complete(client.disconnect())

    def _exit(message: str) -> NoReturn:
        logger.error(message)
        _shutdown()
        raise SystemExit(1)

    def _quit(message: str) -> NoReturn:
        logger.info(message)
        _shutdown()
        raise SystemExit(0)

    try:
        client = build_client()
        pipeline = ArchivalPipeline(config, storage, TelethonGateway(client))
        pipeline.open()
        tag = client.loop.run_until_complete(login(client))
    except SchemaError as e:
        _exit(str(e))
    except LoginError as e:
        _exit(f"{e}\nDid you put your API credentials in .env?")
    logger.info("Logged in as %s!", tag)

    _register_live_handlers(client, pipeline)

    try:
        if config.parse:
            summary = client.loop.run_until_complete(pipeline.backfill())
            if summary.listing_failed:
                _exit("Could not list the channels to scan.")
            logger.info(
                "Backfill done: channels=%s, messages=%s, revisions=%s, failed=%s",
                summary.channels,
                summary.messages,
                pipeline.processor.revisions_stored,
                len(summary.failed_channels),
            )
            if pipeline.should_exit_after_backfill:
                _quit("Scanning complete.")

        logger.info("Client connected. Listening for new and edited messages...")
        client.run_until_disconnected()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except Exception:
        logger.exception("Unexpected error while archiving")
        _exit("Shutting down after an unexpected error.")
    _quit("Disconnected.")


def _show(args: argparse.Namespace) -> None:
    """Print the archived revisions of a message."""

    storage = SQLiteRevisionStore(settings.DB_PATH)
    classifier = ContentClassifier(settings.DOMAINS)
    try:
        # A database that was never archived into has no tables yet.
        storage.ensure_schema()
    except SchemaError as e:
        print(e)
        storage.close()
        raise SystemExit(1)

    try:
        if args.chat is not None:
            identity = storage.get_message(args.chat, args.message_id)
            identities = [identity] if identity else []
        else:
            identities = storage.find_messages(args.message_id)

        if not identities:
            print(f"No archived message with id {args.message_id}.")
            raise SystemExit(1)

        for identity in identities:
            revisions = storage.list_revisions(identity.channel_id, identity.message_id)
            print(format_archived_message(identity, revisions, classifier))
    finally:
        storage.close()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="codescope")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Start the archiver")
    run_parser.add_argument(
        "--parse",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Backfill every channel's history on startup (overrides config.json)",
    )
    run_parser.add_argument(
        "--oneshot",
        action="store_true",
        help="Exit once the backfill is complete",
    )

    show_parser = subparsers.add_parser("show", help="Print an archived message and its revisions")
    show_parser.add_argument("message_id", type=int)
    show_parser.add_argument("--chat", type=int, default=None, help="Chat id the message belongs to")

    args = parser.parse_args(argv)
    if args.command == "show":
        _show(args)
        return
    _run(args)


if __name__ == "__main__":
    main()
