"""
vault-kv - Main Entry Point

This module provides the CLI interface and wires up configuration,
logging and the secret store client for one-shot commands against a
Vault KV v2 mount.
"""

import argparse
import json
import logging
import sys
import threading

from .client import SecretStoreClient
from .config import load_config
from .errors import NotFoundError, SecretStoreError
from .logger import setup_logging
from .search import CancellationToken

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command-line arguments."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", help="Path to configuration file")
    common.add_argument("--url", help="Vault address (e.g. https://vault.example.com:8200)")
    common.add_argument("--token", help="Vault token")
    common.add_argument("--namespace", help="Vault namespace")
    common.add_argument("--mount", help="KV v2 mount name (default: secret)")
    common.add_argument("--verbose", action="store_true", help="Enable debug logging")

    parser = argparse.ArgumentParser(
        description="vault-kv - Browse and edit a Vault KV v2 secrets engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  vault-kv check --url https://vault.local:8200 --token hvs.XXXX
  vault-kv ls app --config vault-kv.ini
  vault-kv read app/db --config vault-kv.ini
  vault-kv write app/db '{"password": "s3cret"}' --config vault-kv.ini
  vault-kv search token --base app --config vault-kv.ini
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("check", parents=[common], help="Test the connection")

    ls_parser = subparsers.add_parser("ls", parents=[common], help="List a folder")
    ls_parser.add_argument("path", nargs="?", default="", help="Folder path (default: root)")

    read_parser = subparsers.add_parser("read", parents=[common], help="Read a secret")
    read_parser.add_argument("path", help="Secret path")

    write_parser = subparsers.add_parser("write", parents=[common], help="Write a secret")
    write_parser.add_argument("path", help="Secret path")
    write_parser.add_argument("data", help="Secret data as a JSON object")

    delete_parser = subparsers.add_parser(
        "delete", parents=[common], help="Delete a secret and all its versions"
    )
    delete_parser.add_argument("path", help="Secret path")

    subparsers.add_parser("mounts", parents=[common], help="List key-value mounts")

    search_parser = subparsers.add_parser(
        "search", parents=[common], help="Search secrets by name or content"
    )
    search_parser.add_argument("query", help="Case-insensitive text to look for")
    search_parser.add_argument("--base", default="", help="Folder to search under")
    search_parser.add_argument("--max-results", type=int, help="Maximum number of results")
    search_parser.add_argument("--max-depth", type=int, help="Maximum folder depth")

    return parser.parse_args(argv)


def build_client(args) -> SecretStoreClient:
    """Load configuration, set up logging and create the client."""
    config = load_config(
        config_path=args.config,
        url=args.url,
        token=args.token,
        namespace=args.namespace,
        mount=args.mount,
        debug=args.verbose,
    )
    setup_logging(config.logging)
    from . import __version__

    logger.info("Starting vault-kv v%s against %s", __version__, config.vault.url)
    return SecretStoreClient.from_config(config)


def cmd_check(client, args):
    """Handle the check command."""
    status = client.test_connection()
    if status.ok:
        print(f"[OK] Connected to {client.base_url}")
        return 0
    print(f"[ERROR] Could not connect to {client.base_url}")
    print(f"        {status.error}")
    return 1


def cmd_ls(client, args):
    """Handle the ls command."""
    entries = client.list_secrets(args.path)
    if not entries:
        print(f"No secrets under '{args.path or '/'}'")
        return 0
    for entry in entries:
        print(entry.path + ("/" if entry.is_folder else ""))
    return 0


def cmd_read(client, args):
    """Handle the read command."""
    secret = client.read_secret(args.path)
    if secret.metadata is not None:
        print(f"# {secret.path} (version {secret.metadata.version})")
    print(json.dumps(secret.to_dict(), indent=2, sort_keys=True, default=str))
    return 0


def cmd_write(client, args):
    """Handle the write command."""
    metadata = client.write_secret(args.path, args.data)
    if metadata is not None and metadata.version is not None:
        print(f"[OK] Wrote {args.path} (version {metadata.version})")
    else:
        print(f"[OK] Wrote {args.path}")
    return 0


def cmd_delete(client, args):
    """Handle the delete command."""
    client.delete_secret(args.path)
    print(f"[OK] Deleted {args.path}")
    return 0


def cmd_mounts(client, args):
    """Handle the mounts command."""
    mounts = client.list_mounts()
    if not mounts:
        print("No key-value mounts found.")
    for mount in mounts:
        print(mount)
    return 0


def cmd_search(client, args):
    """
    Handle the search command.

    The search runs on a background thread so Ctrl+C can cancel it;
    results found before the interrupt are still printed.
    """
    token = CancellationToken()
    outcome = {}

    def run():
        try:
            outcome["results"] = client.search_secrets(
                args.query,
                base_path=args.base,
                cancel_token=token,
                max_results=args.max_results,
                max_depth=args.max_depth,
            )
        except Exception as e:
            outcome["error"] = e

    worker = threading.Thread(target=run, name="search", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.2)
    except KeyboardInterrupt:
        print()  # Newline after ^C
        logger.info("Received interrupt, cancelling search...")
        token.cancel()
        try:
            worker.join()
        except KeyboardInterrupt:
            logger.warning("Second interrupt, not waiting for requests in flight")

    if "error" in outcome:
        raise outcome["error"]

    results = outcome.get("results", [])
    for entry in results:
        print(entry.path)
    suffix = " (cancelled)" if token.cancelled else ""
    print(f"[OK] {len(results)} result(s){suffix}")
    return 0


COMMANDS = {
    "check": cmd_check,
    "ls": cmd_ls,
    "read": cmd_read,
    "write": cmd_write,
    "delete": cmd_delete,
    "mounts": cmd_mounts,
    "search": cmd_search,
}


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    handler = COMMANDS.get(args.command)
    if handler is None:
        print("Usage: vault-kv <command> [options]")
        print()
        print("Commands:")
        print("  check    Test the connection")
        print("  ls       List a folder")
        print("  read     Read a secret")
        print("  write    Write a secret")
        print("  delete   Delete a secret")
        print("  mounts   List key-value mounts")
        print("  search   Search secrets by name or content")
        print()
        print("Run 'vault-kv <command> --help' for more information.")
        return 1

    try:
        client = build_client(args)
        return handler(client, args)
    except NotFoundError as e:
        print(f"[ERROR] Not found: {e.message}")
        return 1
    except SecretStoreError as e:
        print(f"[ERROR] {e.message}")
        for detail in e.errors[1:]:
            print(f"        {detail}")
        return 1
    except ValueError as e:
        # Configuration validation errors
        print(f"[ERROR] Configuration error: {e}")
        return 1
    except FileNotFoundError as e:
        # Config file not found
        print(f"[ERROR] {e}")
        return 1
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        print(f"[ERROR] Fatal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
