from __future__ import annotations

import argparse
from datetime import timedelta

from evoting.core.settings import get_settings
from evoting.security import create_access_token


def issue_token(address: str, minutes: int | None) -> int:
    if not address.strip():
        print("[ERR] Address must not be empty.")
        return 2

    expires = timedelta(minutes=minutes) if minutes else None
    token = create_access_token(address, expires_delta=expires)
    settings = get_settings()
    role = "administrator" if address.strip().lower() == settings.admin_address.strip().lower() else "voter"
    print(f"[INFO] address={address.strip().lower()} role={role}")
    print(token)
    return 0


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Mint a bearer token for an election participant."
    )
    parser.add_argument("address", help="Caller address to place in the token subject.")
    parser.add_argument(
        "--minutes",
        type=int,
        default=None,
        help="Lifetime in minutes (defaults to ACCESS_TOKEN_EXPIRE_MINUTES).",
    )
    return parser.parse_args()


if __name__ == "__main__":
    args = _parse_args()
    raise SystemExit(issue_token(args.address, args.minutes))
