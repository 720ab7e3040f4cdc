#!/usr/bin/env python3
"""Проверка конфигурации пула Zoom аккаунтов (validate/oauth)."""

from __future__ import annotations

import argparse
import json

from meeting_pool.accounts.validator import load_accounts_from_settings
from meeting_pool.common.config import get_settings
from meeting_pool.common.errors import AuthError
from meeting_pool.common.logging import mask_credential, setup_logging
from meeting_pool.connectors.zoom.auth import ZoomAuthClient


def cmd_validate(args: argparse.Namespace) -> int:
    valid, excluded = load_accounts_from_settings(get_settings())
    report = {
        "valid": [
            {
                "id": a.id,
                "client_id": mask_credential(a.client_id),
                "host_user_id": a.host_user_id,
                "max_concurrent_meetings": a.max_concurrent_meetings,
                "has_signing_credentials": a.has_signing_credentials,
            }
            for a in valid
        ],
        "excluded": [{"id": e.account_id, "reason": e.reason} for e in excluded],
    }
    print(json.dumps(report, ensure_ascii=False, indent=2))
    if not valid:
        return 1
    return 1 if (excluded and args.strict) else 0


def cmd_oauth(args: argparse.Namespace, auth_client: ZoomAuthClient | None = None) -> int:
    s = get_settings()
    valid, _ = load_accounts_from_settings(s)
    client = auth_client or ZoomAuthClient(
        oauth_url=s.zoom_oauth_url, timeout_sec=s.zoom_timeout_sec
    )

    failed = 0
    for account in valid:
        if args.account and account.id != args.account:
            continue
        try:
            client.get_token(account)
        except AuthError as e:
            failed += 1
            print(f"{account.id}: FAIL status={e.status_code} error={e.error_code} ({e.message})")
            continue
        print(f"{account.id}: OK")
    return 1 if failed else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Zoom account pool diagnostics")
    sub = parser.add_subparsers(dest="command", required=True)

    validate_p = sub.add_parser("validate", help="Validate configured accounts (offline)")
    validate_p.add_argument("--strict", action="store_true", help="Fail if any account is excluded")
    validate_p.set_defaults(func=cmd_validate)

    oauth_p = sub.add_parser("oauth", help="Request an OAuth token for every valid account")
    oauth_p.add_argument("--account", default=None, help="Check only this account id")
    oauth_p.set_defaults(func=cmd_oauth)

    return parser


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
