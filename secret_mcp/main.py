"""Command line entrypoint — runs the tool server and manages the local store."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import logging
import os
import signal
import sys
from pathlib import Path

from secret_mcp import __version__
from secret_mcp.config import Settings
from secret_mcp.database import create_engine, init_db, open_store, session_factory
from secret_mcp.errors import SecretMcpError, StartupFailure
from secret_mcp.schemas.secret import SecretCreate, SecretInfo, SecretResponse, SecretUpdate
from secret_mcp.server import ToolServer
from secret_mcp.services import secret_service

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    # stderr only: stdout carries the MCP protocol stream
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


# ── serve ────────────────────────────────────────────────────────────


# Cancelled request handlers get this long to release their sessions.
SHUTDOWN_GRACE_SECONDS = 2.0

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


async def serve(db_path: Path, echo: bool = False) -> bool:
    """Serve until the client disconnects or a termination signal arrives.

    Returns True when stopped by a signal. The store is disposed on every path.
    """
    engine = await open_store(db_path, echo=echo)
    loop = asyncio.get_running_loop()
    installed = []
    try:
        tool_server = ToolServer(session_factory(engine))

        stop = asyncio.Event()
        for sig in _STOP_SIGNALS:
            try:
                loop.add_signal_handler(sig, stop.set)
            except NotImplementedError:  # Windows event loops
                continue
            installed.append(sig)

        serving = asyncio.create_task(tool_server.run())
        stopping = asyncio.create_task(stop.wait())
        done, _ = await asyncio.wait({serving, stopping}, return_when=asyncio.FIRST_COMPLETED)
        if serving in done:
            stopping.cancel()
            serving.result()
            logger.info("Client disconnected")
            return False

        logger.info("Termination signal received, shutting down")
        serving.cancel()
        # Bounded: the stdin reader thread only returns on the next line or EOF.
        await asyncio.wait({serving}, timeout=SHUTDOWN_GRACE_SECONDS)
        return True
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        await engine.dispose()
        logger.info("Secret store closed")


def cmd_serve(settings: Settings, args: argparse.Namespace) -> int:
    try:
        asyncio.run(_serve_and_exit(settings))
    except StartupFailure as exc:
        print(f"Error: {exc}", file=sys.stderr)
        print("Please run the Secret MCP app (or `secret-mcp init`) first to create the database.", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0


async def _serve_and_exit(settings: Settings) -> bool:
    stopped = await serve(settings.db_path, echo=(settings.env == "development"))
    if stopped:
        # The stdin reader thread cannot be interrupted; leave without joining it.
        logging.shutdown()
        os._exit(0)
    return stopped


# ── store management ─────────────────────────────────────────────────


async def _with_session(settings: Settings, action):
    engine = await open_store(settings.db_path)
    try:
        async with session_factory(engine)() as db:
            return await action(db)
    finally:
        await engine.dispose()


async def _init(settings: Settings) -> None:
    settings.app_dir.mkdir(parents=True, exist_ok=True)
    engine = create_engine(settings.db_path)
    try:
        await init_db(engine)
    finally:
        await engine.dispose()


def _read_value(args: argparse.Namespace) -> str:
    if args.value is not None:
        return args.value
    if sys.stdin.isatty():
        return getpass.getpass("Value: ")
    return sys.stdin.read().rstrip("\n")


def _print_json(model) -> None:
    print(json.dumps(model.model_dump(), indent=2))


def cmd_init(settings: Settings, args: argparse.Namespace) -> int:
    asyncio.run(_init(settings))
    print(f"Initialized secret store at {settings.db_path}")
    return 0


def cmd_path(settings: Settings, args: argparse.Namespace) -> int:
    print(settings.db_path)
    return 0


def cmd_list(settings: Settings, args: argparse.Namespace) -> int:
    secrets = asyncio.run(_with_session(settings, secret_service.list_secrets))
    for secret in secrets:
        info = SecretInfo.model_validate(secret)
        print(f"{info.id}  {info.name}  {info.description or ''}".rstrip())
    return 0


def cmd_add(settings: Settings, args: argparse.Namespace) -> int:
    data = SecretCreate(name=args.name, description=args.description, value=_read_value(args))
    secret = asyncio.run(_with_session(settings, lambda db: secret_service.create_secret(db, data)))
    _print_json(SecretInfo.model_validate(secret))
    return 0


def cmd_update(settings: Settings, args: argparse.Namespace) -> int:
    async def action(db):
        current = await secret_service.get_secret(db, args.id)
        if current is None:
            return None
        data = SecretUpdate(
            name=args.name if args.name is not None else current.name,
            description=args.description if args.description is not None else current.description,
            value=args.value if args.value is not None else current.value,
        )
        return await secret_service.update_secret(db, args.id, data)

    secret = asyncio.run(_with_session(settings, action))
    if secret is None:
        print(f"Error: Secret not found: {args.id}", file=sys.stderr)
        return 1
    _print_json(SecretInfo.model_validate(secret))
    return 0


def cmd_remove(settings: Settings, args: argparse.Namespace) -> int:
    deleted = asyncio.run(_with_session(settings, lambda db: secret_service.delete_secret(db, args.id)))
    if not deleted:
        print(f"Error: Secret not found: {args.id}", file=sys.stderr)
        return 1
    print(f"Deleted {args.id}")
    return 0


def cmd_show(settings: Settings, args: argparse.Namespace) -> int:
    secret = asyncio.run(_with_session(settings, lambda db: secret_service.get_secret(db, args.id)))
    if secret is None:
        print(f"Error: Secret not found: {args.id}", file=sys.stderr)
        return 1
    schema = SecretResponse if args.reveal else SecretInfo
    _print_json(schema.model_validate(secret))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="secret-mcp",
        description="Local secret store with an MCP server that writes .env files for AI agents",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Run the MCP tool server over stdio (default)").set_defaults(func=cmd_serve)
    sub.add_parser("init", help="Create the database").set_defaults(func=cmd_init)
    sub.add_parser("path", help="Print the database path").set_defaults(func=cmd_path)
    sub.add_parser("list", help="List secret names and descriptions").set_defaults(func=cmd_list)

    add = sub.add_parser("add", help="Create a secret")
    add.add_argument("name")
    add.add_argument("--description")
    add.add_argument("--value", help="Secret value (read from stdin / prompt when omitted)")
    add.set_defaults(func=cmd_add)

    update = sub.add_parser("update", help="Update a secret by id")
    update.add_argument("id")
    update.add_argument("--name")
    update.add_argument("--description")
    update.add_argument("--value")
    update.set_defaults(func=cmd_update)

    remove = sub.add_parser("remove", help="Delete a secret by id")
    remove.add_argument("id")
    remove.set_defaults(func=cmd_remove)

    show = sub.add_parser("show", help="Show a secret by id")
    show.add_argument("id")
    show.add_argument("--reveal", action="store_true", help="Include the secret value")
    show.set_defaults(func=cmd_show)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings()
    configure_logging(settings.log_level)

    func = getattr(args, "func", cmd_serve)
    try:
        return func(settings, args)
    except SecretMcpError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
