"""CLI entry point for discord-opencode."""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

from discord_opencode.app import DiscordOpencodeApp
from discord_opencode.config import AppConfig, load_config, resolve_config_path, write_template_config
from discord_opencode.core.errors import SchemaError
from discord_opencode.log import setup_logging
from discord_opencode.storage.schema import ensure_schema
from discord_opencode.tool_server import serve


def _add_config_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-c", "--config", default=None, help="Path to config file")
    parser.add_argument("-e", "--env", default=".env", help="Path to .env file")


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="discord-opencode",
        description="Discord tools for AI agents with session-bound channel resolution",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Serve tools over stdin/stdout")
    _add_config_args(serve_parser)

    check_parser = subparsers.add_parser("config-check", help="Validate configuration")
    _add_config_args(check_parser)

    db_parser = subparsers.add_parser("init-db", help="Create or migrate the session database")
    _add_config_args(db_parser)

    setup_parser = subparsers.add_parser("setup", help="Write a template config file")
    setup_parser.add_argument("--config", default=None, help="Where to write the config")
    setup_parser.add_argument("--force", action="store_true", help="Overwrite an existing file")

    args = parser.parse_args()

    if args.command is None:
        args.command = "serve"
        args.config = None
        args.env = ".env"

    if args.command == "setup":
        _setup(args.config, args.force)
    elif args.command == "config-check":
        _check_config(args.config, args.env)
    elif args.command == "init-db":
        _init_db(args.config, args.env)
    elif args.command == "serve":
        _run(args.config, args.env)


def _load_or_exit(config_path: str | None, env_path: str) -> AppConfig:
    try:
        return load_config(config_path, env_path)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)


def _setup(config_path: str | None, force: bool) -> None:
    target = resolve_config_path(config_path)
    try:
        written = write_template_config(target, force=force)
    except FileExistsError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Config template written to {written}")
    print("Edit it with your Discord token, then run: discord-opencode config-check")


def _check_config(config_path: str | None, env_path: str) -> None:
    """Validate configuration and print summary."""
    config = _load_or_exit(config_path, env_path)
    print(f"Configuration valid: {resolve_config_path(config_path)}")
    print(f"  Discord token: {'set' if config.discord_token else 'MISSING'}")
    print(f"  Default channel: {config.default_channel_id or '(none)'}")
    print(f"  Session store: {config.database_path} (enabled={config.enable_session_store})")
    print(f"  Remote approval required: {config.require_remote_approval}")
    print(f"  Allowed file paths: {', '.join(config.allowed_file_paths) or '(none)'}")
    print(f"  Max file size: {config.max_file_size} bytes")


def _init_db(config_path: str | None, env_path: str) -> None:
    config = _load_or_exit(config_path, env_path)
    setup_logging(config.log_level)
    try:
        asyncio.run(ensure_schema(config.database_path))
    except SchemaError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Session database ready: {config.database_path}")


def _run(config_path: str | None, env_path: str) -> None:
    """Load config, start the app, and serve tools until EOF or a signal."""
    config = _load_or_exit(config_path, env_path)
    setup_logging(config.log_level)

    async def _async_main() -> None:
        loop = asyncio.get_running_loop()
        stop_event = asyncio.Event()

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
            except NotImplementedError:
                # Windows doesn't support add_signal_handler
                signal.signal(sig, lambda s, f: loop.call_soon_threadsafe(stop_event.set))

        app = DiscordOpencodeApp(config)
        await app.start()

        serve_task = asyncio.create_task(serve(app.tool_registry))
        stop_task = asyncio.create_task(stop_event.wait())
        _done, pending = await asyncio.wait(
            {serve_task, stop_task},
            return_when=asyncio.FIRST_COMPLETED,
        )
        for t in pending:
            t.cancel()

        await app.stop()

    try:
        asyncio.run(_async_main())
    except SchemaError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
