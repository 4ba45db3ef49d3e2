from __future__ import annotations

import argparse
import json
import logging
import sys

from intune.credentials import build_secret_store, resolve_credentials
from intune.errors import CategorySyncError
from intune.graph import GraphClient
from pipeline.graph import run_reconciliation
from settings.loader import SettingsError, load_settings
from settings.log import configure_logging

LOGGER = logging.getLogger("category_sync")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="category-sync",
        description="Set the Intune category of each Windows device to its primary user's department.",
    )
    parser.add_argument("--tenant-id", help="Entra ID tenant id (falls back to the secret store).")
    parser.add_argument("--client-id", help="App registration client id (falls back to the secret store).")
    parser.add_argument("--client-secret", help="App registration secret (falls back to the secret store).")
    parser.add_argument(
        "--simulate",
        action="store_true",
        help="Log the changes that would be made without updating any device.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except SettingsError as exc:
        configure_logging()
        LOGGER.error("%s", exc)
        return 1
    configure_logging(settings.log_level, settings.log_file)

    try:
        credentials = resolve_credentials(
            build_secret_store(settings),
            tenant_id=args.tenant_id,
            client_id=args.client_id,
            client_secret=args.client_secret,
        )
        client = GraphClient.from_settings(settings, credentials)
        try:
            summary = run_reconciliation(client, settings, simulate=args.simulate)
        finally:
            client.close()
    except CategorySyncError as exc:
        LOGGER.error("Run aborted: %s", exc)
        return 1

    json.dump(summary.as_report(), sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":  # pragma: no cover - exercised via CLI entry point
    raise SystemExit(main())
