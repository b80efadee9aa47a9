"""
vaultline CLI — terminal front end for the vault client.

Usage:
    vaultline status                     # Show vault status and access phase
    vaultline health                     # Ping the vault process
    vaultline init                       # Initialize the vault (stores root token)
    vaultline unseal <key>               # Unseal the vault
    vaultline seal                       # Seal the vault
    vaultline login <token>              # Verify and store a token
    vaultline logout                     # Forget the stored token
    vaultline auth                       # Re-check the stored token
    vaultline list [prefix]              # List secret paths
    vaultline read <path>                # Show a secret
    vaultline write <path> k=v [k=v...]  # Create or overwrite a secret
    vaultline delete <path> [--yes]      # Delete a secret
    vaultline token-create [--ttl 24h]   # Mint a new token
    vaultline watch                      # Poll status, print phase changes
    vaultline version                    # Show version
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from collections.abc import Awaitable, Callable

from vaultline.config import Config, get_config
from vaultline.errors import CatalogRefreshError, ValidationError, VaultlineError
from vaultline.models import AccessPhase
from vaultline.monitor import StatusSnapshot
from vaultline.session import VaultSession

logger = logging.getLogger(__name__)

Handler = Callable[[VaultSession, argparse.Namespace], Awaitable[int]]


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="vaultline",
        description="vaultline — client for a sealed/unsealed secrets vault.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--addr", help="Vault address (default: $VAULT_ADDR)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("status", help="Show vault status and access phase")
    subparsers.add_parser("health", help="Ping the vault process")
    subparsers.add_parser("init", help="Initialize the vault")

    unseal_parser = subparsers.add_parser("unseal", help="Unseal the vault")
    unseal_parser.add_argument("key", help="Unseal key printed by init")

    subparsers.add_parser("seal", help="Seal the vault")

    login_parser = subparsers.add_parser("login", help="Verify and store an access token")
    login_parser.add_argument("token", help="Access token")

    subparsers.add_parser("logout", help="Forget the stored token")
    subparsers.add_parser("auth", help="Re-check that the stored token is accepted")

    list_parser = subparsers.add_parser("list", help="List secret paths")
    list_parser.add_argument("prefix", nargs="?", default="", help="Path prefix filter")

    read_parser = subparsers.add_parser("read", help="Show a secret")
    read_parser.add_argument("path")
    read_parser.add_argument("--json", action="store_true", help="Print data as JSON")

    write_parser = subparsers.add_parser("write", help="Create or overwrite a secret")
    write_parser.add_argument("path")
    write_parser.add_argument("pairs", nargs="*", metavar="KEY=VALUE")

    delete_parser = subparsers.add_parser("delete", help="Delete a secret")
    delete_parser.add_argument("path")
    delete_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")

    token_parser = subparsers.add_parser("token-create", help="Mint a new access token")
    token_parser.add_argument("--ttl", default=None, help="Token lifetime (default: 24h)")

    watch_parser = subparsers.add_parser("watch", help="Poll status and print phase changes")
    watch_parser.add_argument("--interval", type=float, default=None, help="Seconds between polls")

    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        from vaultline import __version__

        print(f"vaultline {__version__}")
        return 0

    handler = _COMMANDS.get(args.command or "")
    if handler is None:
        parser.print_help()
        return 0

    config = get_config()
    if args.addr:
        config = dataclasses.replace(config, vault_addr=args.addr)
    if args.command == "watch" and args.interval:
        config = dataclasses.replace(config, status_interval=args.interval)
    _setup_logging("DEBUG" if args.verbose else config.log_level)

    try:
        return asyncio.run(_run(handler, config, args))
    except CatalogRefreshError as e:
        print(f"Warning: {e}", file=sys.stderr)
        return 0
    except VaultlineError as e:
        print(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        return 130


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _make_session(config: Config) -> VaultSession:
    return VaultSession.from_config(config)


async def _run(handler: Handler, config: Config, args: argparse.Namespace) -> int:
    session = _make_session(config)
    try:
        await session.open()
        return await handler(session, args)
    finally:
        await session.close()


def _confirm(prompt: str) -> bool:
    """Ask the user a yes/no question on the terminal."""
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def _parse_pairs(pairs: list[str]) -> dict[str, str]:
    data: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise ValidationError(f"expected KEY=VALUE, got {pair!r}")
        data[key] = value
    return data


# ── Commands ────────────────────────────────────────────────────────


async def _cmd_status(session: VaultSession, args: argparse.Namespace) -> int:
    snap = session.monitor.snapshot
    print(f"Address:      {session.config.base_url}")
    if snap.status is None:
        print("Initialized:  unknown")
        print("Sealed:       unknown")
    else:
        print(f"Initialized:  {snap.status.initialized}")
        print(f"Sealed:       {snap.status.sealed}")
    print(f"Token:        {'present' if session.store.present else 'absent'}")
    print(f"Phase:        {session.phase}")
    if snap.unreachable:
        print(f"Unreachable:  {snap.error}")
        return 1
    return 0


async def _cmd_health(session: VaultSession, args: argparse.Namespace) -> int:
    health = await session.client.get_health()
    print(f"Health: {health.get('status', 'unknown')}")
    return 0


async def _cmd_init(session: VaultSession, args: argparse.Namespace) -> int:
    result = await session.controller.initialize()
    print("Vault initialized. Save these credentials; they will not be shown again.")
    print(f"Root Token:  {result.root_token}")
    print(f"Unseal Key:  {result.unseal_key}")
    print("The root token has been stored. Next: vaultline unseal <key>")
    return 0


async def _cmd_unseal(session: VaultSession, args: argparse.Namespace) -> int:
    phase = await session.controller.unseal(args.key)
    if phase is AccessPhase.SEALED:
        print("Vault is still sealed. Check your unseal key.")
        return 1
    print(f"Vault unsealed. Phase: {phase}")
    return 0


async def _cmd_seal(session: VaultSession, args: argparse.Namespace) -> int:
    phase = await session.controller.seal()
    session.catalog.clear()
    print(f"Vault sealed. Phase: {phase}")
    return 0


async def _cmd_login(session: VaultSession, args: argparse.Namespace) -> int:
    phase = await session.controller.login(args.token)
    print(f"Logged in. Phase: {phase}")
    return 0


async def _cmd_logout(session: VaultSession, args: argparse.Namespace) -> int:
    session.controller.logout()
    session.catalog.clear()
    print("Logged out.")
    return 0


async def _cmd_auth(session: VaultSession, args: argparse.Namespace) -> int:
    await session.controller.revalidate()
    print("Token is valid.")
    return 0


async def _cmd_list(session: VaultSession, args: argparse.Namespace) -> int:
    session.controller.require(AccessPhase.AUTHENTICATED)
    paths = await session.catalog.list(args.prefix)
    if not paths:
        print("No secrets found.")
    for path in paths:
        print(path)
    return 0


async def _cmd_read(session: VaultSession, args: argparse.Namespace) -> int:
    session.controller.require(AccessPhase.AUTHENTICATED)
    entry = await session.catalog.select(args.path)
    if args.json:
        print(json.dumps(entry.data, indent=2))
        return 0
    print(f"Path:     {entry.path}")
    print(f"Version:  {entry.version}")
    for key, value in entry.data.items():
        print(f"  {key} = {value}")
    return 0


async def _cmd_write(session: VaultSession, args: argparse.Namespace) -> int:
    session.controller.require(AccessPhase.AUTHENTICATED)
    entry = await session.catalog.write(args.path, _parse_pairs(args.pairs))
    print(f"Wrote {entry.path} (version {entry.version}, {len(entry.data)} keys)")
    return 0


async def _cmd_delete(session: VaultSession, args: argparse.Namespace) -> int:
    session.controller.require(AccessPhase.AUTHENTICATED)
    if not args.yes and not _confirm(f'Delete "{args.path}"?'):
        print("Aborted.")
        return 1
    await session.catalog.remove(args.path)
    print(f"Deleted {args.path}")
    return 0


async def _cmd_token_create(session: VaultSession, args: argparse.Namespace) -> int:
    token = await session.controller.create_token(args.ttl or session.config.token_ttl)
    print(token)
    return 0


async def _cmd_watch(session: VaultSession, args: argparse.Namespace) -> int:
    last: list[AccessPhase] = [session.phase]
    print(f"Phase: {last[0]}")

    def _on_snapshot(snap: StatusSnapshot) -> None:
        phase = session.phase
        if snap.unreachable:
            print(f"Vault unreachable: {snap.error}")
        if phase is not last[0]:
            print(f"Phase: {last[0]} -> {phase}")
            last[0] = phase

    session.monitor.add_listener(_on_snapshot)
    await session.monitor.start()
    try:
        await asyncio.Event().wait()
    finally:
        await session.monitor.stop()
    return 0


_COMMANDS: dict[str, Handler] = {
    "status": _cmd_status,
    "health": _cmd_health,
    "init": _cmd_init,
    "unseal": _cmd_unseal,
    "seal": _cmd_seal,
    "login": _cmd_login,
    "logout": _cmd_logout,
    "auth": _cmd_auth,
    "list": _cmd_list,
    "read": _cmd_read,
    "write": _cmd_write,
    "delete": _cmd_delete,
    "token-create": _cmd_token_create,
    "watch": _cmd_watch,
}


if __name__ == "__main__":
    sys.exit(main())
