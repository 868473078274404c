# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

import uvicorn
from dotenv import load_dotenv

from mediafed.api.app import create_app
from mediafed.app import build_federation_service
from mediafed.config import configure_logging
from mediafed.domain.errors import AddressError, DuplicatePeer, PeerNotFound
from mediafed.domain.model import DEFAULT_PEER_PORT

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from mediafed.app import FederationService

log = logging.getLogger(__name__)

_MODE_FLAGS = {
    "enable_federation": "federation",
    "client_mode_enabled": "client-mode",
    "server_mode_enabled": "server-mode",
    "require_https": "require-https",
    "admin_only_changes": "admin-only-changes",
}


def _port(value: str) -> int:
    port = int(value)
    if not 1 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port must be between 1 and 65535, got {port}")
    return port


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Federate media catalogs across peer servers")
    subparsers = parser.add_subparsers(dest="command", required=True)

    probe = subparsers.add_parser("probe", help="Test connectivity to a peer")
    probe.add_argument("address", help="Peer base address, e.g. https://peer.example:8096")
    probe.add_argument("--token", default="", help="Access token sent to the peer")

    subparsers.add_parser("merge", help="Run one merge pass and list the aggregate")

    stream = subparsers.add_parser("stream-url", help="Print the playback URL for a remote item")
    stream.add_argument("address", help="Peer base address")
    stream.add_argument("item_id", help="Item id on that peer")

    peers = subparsers.add_parser("peers", help="Manage configured peers")
    peers_sub = peers.add_subparsers(dest="peers_command", required=True)
    peers_add = peers_sub.add_parser("add", help="Add a peer")
    peers_add.add_argument("address", help="Peer base address")
    peers_add.add_argument("--token", default="", help="Access token for the peer")
    peers_add.add_argument("--port", type=_port, default=DEFAULT_PEER_PORT, help="Peer port")
    peers_remove = peers_sub.add_parser("remove", help="Remove a peer")
    peers_remove.add_argument("address", help="Peer base address")
    peers_sub.add_parser("list", help="List configured peers")

    modes = subparsers.add_parser("modes", help="Show or change federation policy flags")
    for attr, flag in _MODE_FLAGS.items():
        modes.add_argument(
            f"--{flag}",
            dest=attr,
            action=argparse.BooleanOptionalAction,
            default=None,
            help=f"Turn {flag.replace('-', ' ')} on or off",
        )

    serve = subparsers.add_parser("serve", help="Serve the federation HTTP endpoints")
    serve.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    serve.add_argument("--port", type=_port, default=8097, help="Port to bind")

    return parser.parse_args(list(argv))


def _operator() -> bool:
    return True


def _run_probe(service: FederationService, args: argparse.Namespace) -> int:
    result = asyncio.run(service.test_connection(args.address, args.token))
    print(result.status_summary)
    if result.body_preview:
        print(result.body_preview)
    return 0 if result.reachable else 1


def _run_merge(service: FederationService) -> int:
    outcome = asyncio.run(service.refresh())
    log.info(
        "Merge finished: status=%s, total=%s, reason=%s",
        outcome.status,
        outcome.total_items,
        outcome.reason,
    )
    for entry in service.list_aggregate():
        print(f"{entry.peer_address}\t{entry.remote_id}\t{entry.display_name}")
    return 0


def _run_peers(service: FederationService, args: argparse.Namespace) -> int:
    if args.peers_command == "add":
        peer = service.add_peer(args.address, args.token, args.port, caller_may_mutate=_operator)
        log.info("Peer added: %s", peer.base_address)
    elif args.peers_command == "remove":
        peer = service.remove_peer(args.address, caller_may_mutate=_operator)
        log.info("Peer removed: %s", peer.base_address)
    else:
        for server in service.list_servers():
            preview = server["apiKeyPreview"] or "-"
            print(f"{server['serverUrl']}\tport={server['port']}\ttoken={preview}")
    return 0


def _run_modes(service: FederationService, args: argparse.Namespace) -> int:
    changes = {attr: getattr(args, attr) for attr in _MODE_FLAGS if getattr(args, attr) is not None}
    policy = (
        service.update_policy(caller_may_mutate=_operator, **changes)
        if changes
        else service.policy()
    )
    for attr, flag in _MODE_FLAGS.items():
        print(f"{flag}: {'on' if getattr(policy, attr) else 'off'}")
    return 0


def _serve(service: FederationService, args: argparse.Namespace) -> int:
    uvicorn.run(create_app(service), host=args.host, port=args.port)
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)

    try:
        service = build_federation_service()
        if parsed_args.command == "probe":
            code = _run_probe(service, parsed_args)
        elif parsed_args.command == "merge":
            code = _run_merge(service)
        elif parsed_args.command == "stream-url":
            print(service.resolve_stream(parsed_args.address, parsed_args.item_id))
            code = 0
        elif parsed_args.command == "peers":
            code = _run_peers(service, parsed_args)
        elif parsed_args.command == "modes":
            code = _run_modes(service, parsed_args)
        elif parsed_args.command == "serve":
            code = _serve(service, parsed_args)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except (AddressError, DuplicatePeer, PeerNotFound, ValueError) as exc:
        log.error("CLI validation error: %s", exc)  # noqa: TRY400
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)

    if code:
        sys.exit(code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
