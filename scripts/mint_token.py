from __future__ import annotations

import argparse


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Print a signed identity token for local testing (uses IDENTITY_TOKEN_SECRET)."
    )
    parser.add_argument("subject", help="User id the token identifies")
    parser.add_argument(
        "--secret",
        default=None,
        help="Override IDENTITY_TOKEN_SECRET for this token only.",
    )
    args = parser.parse_args()

    from snippy_backend.identity import make_identity_token

    print(make_identity_token(args.subject, secret=args.secret))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
