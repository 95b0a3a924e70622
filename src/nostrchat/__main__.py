"""CLI entry point for nostrchat.

Three commands share one configuration and preference store:

* ``listen`` -- connect, subscribe, and print messages until interrupted.
* ``send`` -- publish one message and exit with the relay's verdict.
* ``keygen`` -- print a fresh keypair.

The identity is taken from the private key environment variable, then the
preference store, and is generated when neither has one.

Examples:
    ```bash
    python -m nostrchat listen
    python -m nostrchat send "gm" --encrypt
    python -m nostrchat --relay wss://ir.purplerelay.com --store prefs.json listen
    nostrchat keygen
    ```
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any

from nostrchat.core.config import ChatConfig
from nostrchat.core.logger import Logger, StructuredFormatter, short
from nostrchat.core.metrics import APP_INFO, MetricsServer
from nostrchat.core.preferences import Preferences
from nostrchat.core.store import JsonFileStore, KeyValueStore, MemoryStore
from nostrchat.exceptions import CompositionError, NostrChatError
from nostrchat.models.event import Event
from nostrchat.models.identity import Identity
from nostrchat.services.orchestrator import SessionOrchestrator
from nostrchat.utils.formatting import format_event_line, is_encrypted, random_greeting
from nostrchat.utils.keys import load_identity_from_env, to_npub, to_nsec


DEFAULT_CONFIG = Path("config") / "nostrchat.yaml"

logger = Logger("cli")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="nostrchat",
        description="Minimal Nostr chat client",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Config path (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--store",
        type=Path,
        help="JSON preference file (default: store.path from config, else in memory)",
    )
    parser.add_argument(
        "--relay",
        help="Relay URL to connect to (default: remembered relay, else first configured)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: logging.level from config)",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("listen", help="Print incoming messages until interrupted")
    send = commands.add_parser("send", help="Publish one message")
    send.add_argument("message", nargs="?", help="Message text (default: a random greeting)")
    send.add_argument(
        "--encrypt",
        action="store_true",
        help="Send as an encrypted direct message",
    )
    send.add_argument("--to", dest="recipient", help="Recipient public key (default: yourself)")
    commands.add_parser("keygen", help="Print a new keypair")

    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    """Install ``StructuredFormatter`` on the root handler."""
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def load_config(path: Path) -> ChatConfig:
    """Load *path*, or defaults when it does not exist."""
    if not path.exists():
        logger.debug("config_not_found", path=str(path))
        return ChatConfig()
    return ChatConfig.from_yaml(path)


def open_store(config: ChatConfig, override: Path | None) -> KeyValueStore:
    path = override or config.store.path
    if path is None:
        return MemoryStore()
    return JsonFileStore(path)


def resolve_identity(config: ChatConfig, preferences: Preferences) -> Identity:
    """Environment key first, then the stored identity, then a new one."""
    identity = load_identity_from_env(config.keys_env)
    if identity is not None:
        logger.info("identity_loaded", source="env", public_key=short(identity.public_key))
        return identity
    if preferences.identity is not None:
        logger.info(
            "identity_loaded",
            source="store",
            public_key=short(preferences.identity.public_key),
        )
        return preferences.identity
    identity = Identity.generate()
    logger.info("identity_loaded", source="generated", public_key=short(identity.public_key))
    return identity


def keygen() -> int:
    identity = Identity.generate()
    assert identity.private_key is not None  # noqa: S101
    print(f"public key:  {identity.public_key}")  # noqa: T201
    print(f"npub:        {to_npub(identity.public_key)}")  # noqa: T201
    print(f"nsec:        {to_nsec(identity.private_key)}")  # noqa: T201
    return 0


async def listen(chat: SessionOrchestrator, stop: asyncio.Event) -> int:
    """Print buffered and incoming messages until *stop* is set or the relay drops."""
    await chat.connect()
    logger.info("listening", relay=chat.preferences.relay_url)
    await stop.wait()
    return 0


async def send(chat: SessionOrchestrator, args: argparse.Namespace) -> int:
    """Publish one message; 0 if the relay accepted it, 1 otherwise."""
    await chat.connect()
    content = args.message or random_greeting()
    encrypt = True if args.encrypt else None
    try:
        ack = await chat.send_message(content, recipient=args.recipient, encrypt=encrypt)
    except CompositionError as e:
        logger.error("send_rejected", error=str(e))
        return 1
    if not ack.accepted:
        logger.error("publish_rejected", id=short(ack.event_id), reason=ack.message)
        return 1
    logger.info("publish_accepted", id=short(ack.event_id))
    return 0


async def run(args: argparse.Namespace, config: ChatConfig) -> int:
    """Build the orchestrator for *args* and run the chosen command."""
    preferences = Preferences.load(open_store(config, args.store))
    if args.relay:
        preferences.set_relay_url(args.relay)

    stop = asyncio.Event()

    async def print_message(event: Event) -> None:
        content = None
        if is_encrypted(event):
            try:
                content = await chat.decrypt_message(event)
            except NostrChatError as e:
                logger.debug("decrypt_failed", id=short(event.id), error=str(e))
        print(format_event_line(event, content), flush=True)  # noqa: T201

    def connection_lost(reason: str) -> None:
        logger.warning("relay_lost", reason=reason)
        stop.set()

    chat = SessionOrchestrator(
        config,
        preferences,
        on_message=print_message if args.command == "listen" else None,
        on_disconnect=connection_lost,
    )
    await chat.set_identity(resolve_identity(config, preferences))

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        stop.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    metrics_server = MetricsServer(config.metrics)
    if args.command == "listen":
        await metrics_server.start()
    if metrics_server.is_running:
        logger.info("metrics_server_started", host=config.metrics.host, port=config.metrics.port)

    try:
        async with chat:
            if args.command == "send":
                return await send(chat, args)
            return await listen(chat, stop)
    finally:
        await metrics_server.stop()


async def main(argv: list[str] | None = None) -> int:
    """Main entry point: parse args, load config, and run the command."""
    args = parse_args(argv)
    if args.command == "keygen":
        return keygen()

    try:
        config = load_config(args.config)
    except NostrChatError as e:
        setup_logging(args.log_level or "INFO")
        logger.error("config_invalid", error=str(e))
        return 1

    setup_logging(args.log_level or config.logging.level)
    APP_INFO.info({"command": args.command})

    try:
        return await run(args, config)
    except NostrChatError as e:
        logger.error(f"{args.command}_failed", error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli(argv: list[str] | None = None) -> Any:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main(argv)))


if __name__ == "__main__":
    cli()
