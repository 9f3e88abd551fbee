"""CLI for minting development bearer tokens."""

from __future__ import annotations

import argparse
from datetime import timedelta

from todoapp.auth.tokens import issue_token
from todoapp.config.settings import get_settings


def build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(description="Issue a bearer token for the Todo API.")
    parser.add_argument("--user-id", required=True, help="Token subject (the user's id).")
    parser.add_argument("--name", default=None, help="Display name.")
    parser.add_argument(
        "--scope", action="append", default=[], help="Scope to grant. Repeatable."
    )
    parser.add_argument("--minutes", type=int, default=None, help="Token lifetime in minutes.")
    return parser


def main() -> int:
    args = build_parser().parse_args()
    settings = get_settings()

    lifetime = timedelta(minutes=args.minutes) if args.minutes else None
    print(
        issue_token(
            args.user_id,
            name=args.name,
            scopes=args.scope,
            settings=settings.auth,
            lifetime=lifetime,
        )
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
