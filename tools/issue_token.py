"""Print a signed access token for a subject, for calling the API locally."""

from __future__ import annotations

import argparse
import sys

from dotenv import load_dotenv

from app.security import DEFAULT_TTL_SECONDS, issue_access_token


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("subject", help="Value of the sub claim (user id)")
    parser.add_argument(
        "--ttl", type=int, default=DEFAULT_TTL_SECONDS, help="Lifetime in seconds"
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    args = build_parser().parse_args(argv)
    sys.stdout.write(issue_access_token(args.subject, ttl_seconds=args.ttl) + "\n")


if __name__ == "__main__":  # pragma: no cover - CLI execution
    main()
