from __future__ import annotations

"""
Mint a bearer access token for local development.

The API only verifies tokens; identity is issued elsewhere. This signs one
with `JWT_SECRET_KEY` so the endpoints can be exercised from curl/HTTPie.

Run:
  python -m scripts.mint_token --user-id <uuid> [--email a@b.c] [--minutes 60]
"""

import argparse
from datetime import timedelta
from uuid import UUID, uuid4

from app.core.security import create_access_token


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--user-id", type=UUID, default=None, help="Subject (random UUID when omitted)")
    parser.add_argument("--email", default=None)
    parser.add_argument("--minutes", type=int, default=60)
    args = parser.parse_args()

    token = create_access_token(
        args.user_id or uuid4(),
        timedelta(minutes=args.minutes),
        email=args.email,
    )
    print(token)


if __name__ == "__main__":
    main()
