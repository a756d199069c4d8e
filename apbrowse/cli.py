#!/usr/bin/env python3
"""
apbrowse CLI

Browse ActivityPub documents as a signed-in actor:
  apbrowse browse [URI]  - Interactive browser (default)
  apbrowse fetch URI     - Print one signed fetch
  apbrowse actor         - Print the local actor document
  apbrowse serve         - Only publish the actor document

Usage:
  apbrowse --root-uri https://example.test/users/alice \\
           --preferred-username alice --name Alice browse
"""

import argparse
import logging
import sys
from typing import List, Optional

from .activitypub import ActorDocument, Identity, ensure_identity
from .config import Settings
from .errors import ConfigError, IdentityError, NavigationError
from .fetch import FetchPipeline
from .logging import setup_logging
from .server import ActorServer

logger = logging.getLogger(__name__)


def load_settings(args: argparse.Namespace) -> Settings:
    """Combine the config file (if any) with command-line overrides."""
    settings = Settings.from_file(args.config) if args.config else Settings()
    return settings.merged(
        root_uri=args.root_uri,
        preferred_username=args.preferred_username,
        name=args.name,
        key_path=args.key_path,
        host=args.host,
        port=args.port,
        timeout=args.timeout,
        log_file=args.log_file,
        serve=args.serve,
    )


def cmd_browse(args, settings: Settings, identity: Identity, actor: ActorDocument) -> int:
    """Run the interactive browser, publishing the actor meanwhile."""
    from .tui import run_browser

    server = None
    if settings.serve:
        server = ActorServer(actor, host=settings.host, port=settings.port)
        try:
            server.start_background()
        except OSError as e:
            logger.warning(f"Actor server not started on {settings.host}:{settings.port}: {e}")
            server = None

    pipeline = FetchPipeline(identity, timeout=settings.timeout)
    try:
        state = run_browser(pipeline, start_uri=args.uri)
    finally:
        if server is not None:
            server.shutdown()

    logger.info(f"Visited {len(state.history)} documents")
    return 0


def cmd_fetch(args, settings: Settings, identity: Identity, actor: ActorDocument) -> int:
    """Fetch one document and print it."""
    pipeline = FetchPipeline(identity, timeout=settings.timeout)
    try:
        result = pipeline.fetch(args.uri)
    except NavigationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(f"Status: {result.status_code}")
    print(result.text)
    return 0 if result.ok else 1


def cmd_actor(args, settings: Settings, identity: Identity, actor: ActorDocument) -> int:
    """Print the actor document."""
    print(actor.to_json(indent=2))
    return 0


def cmd_serve(args, settings: Settings, identity: Identity, actor: ActorDocument) -> int:
    """Publish the actor document until interrupted."""
    server = ActorServer(actor, host=settings.host, port=settings.port)
    host, port = server.server_address
    print(f"Actor server running on http://{host}:{port}/")
    try:
        server.start()
    except KeyboardInterrupt:
        print("\nShutting down...")
    return 0


COMMANDS = {
    "browse": cmd_browse,
    "fetch": cmd_fetch,
    "actor": cmd_actor,
    "serve": cmd_serve,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apbrowse",
        description="Browse ActivityPub documents with signed requests",
    )
    parser.add_argument("--config", help="YAML settings file")
    parser.add_argument("--root-uri", help="Actor URI (owner of the signing key)")
    parser.add_argument("--preferred-username", help="Published handle")
    parser.add_argument("--name", help="Published display name")
    parser.add_argument("--key-path", help="Private key PEM file (default: ./private_key.pem)")
    parser.add_argument("--host", help="Actor server interface (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Actor server port (default: 9004)")
    parser.add_argument("--timeout", type=float, help="Fetch timeout in seconds (default: 3)")
    parser.add_argument("--log-file", help="Log file (default: ./debug.log)")
    parser.add_argument(
        "--no-serve", dest="serve", action="store_false", default=None,
        help="Do not publish the actor document while browsing",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    browse_parser = subparsers.add_parser("browse", help="Interactive browser")
    browse_parser.add_argument("uri", nargs="?", help="URI to open first")

    fetch_parser = subparsers.add_parser("fetch", help="Fetch and print one document")
    fetch_parser.add_argument("uri", help="Document URI")

    subparsers.add_parser("actor", help="Print the local actor document")
    subparsers.add_parser("serve", help="Only publish the actor document")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        args.command = "browse"
        args.uri = None

    try:
        settings = load_settings(args)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    setup_logging(settings.log_file, verbose=args.verbose)

    try:
        identity = ensure_identity(settings.key_path, owner=settings.root_uri)
    except IdentityError as e:
        logger.error(f"Cannot establish identity: {e}")
        print(f"error: {e}", file=sys.stderr)
        return 1

    actor = ActorDocument.from_identity(
        identity,
        preferred_username=settings.preferred_username,
        name=settings.name,
    )
    return COMMANDS[args.command](args, settings, identity, actor)


if __name__ == "__main__":
    sys.exit(main())
