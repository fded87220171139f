#!/usr/bin/env python3
"""
Generate activation keys for local testing.

Prints one demo key per plan (basic, premium, enterprise) with a curl example
against the activation endpoint. Pass an identifier, plan and day count to
issue an additional custom key.
"""

import argparse
import json
import os
import sys

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from service_activation.app.tokens.codec import format_expiry  # noqa: E402
from service_activation.app.tokens.keygen import (  # noqa: E402
    generate_activation_key,
    generate_demo_keys,
    is_default_secret,
)

DEFAULT_SECRET = "demo_secret_change_me"


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate signed activation keys.")
    parser.add_argument("identifier", nargs="?", help="Identifier for a custom key")
    parser.add_argument("plan", nargs="?", default="basic", help="Plan label for a custom key")
    parser.add_argument("days", nargs="?", type=int, default=30, help="Days the custom key stays valid")
    parser.add_argument("--secret", default=os.getenv("ACCESS_ACTIVATION_SECRET", DEFAULT_SECRET), help="Signing secret")
    parser.add_argument("--url", default="http://localhost:4000", help="Activation service base URL for curl examples")
    parser.add_argument("--no-demo", action="store_true", help="Skip the demo keys")
    parser.add_argument("--json", action="store_true", help="Print keys as JSON")
    return parser.parse_args(argv)


def _print_key(title: str, issued, url: str) -> None:
    print(f"{title}:")
    print(f"  Identifier: {issued.identifier}")
    print(f"  Plan: {issued.plan}")
    print(f"  Valid until: {format_expiry(issued.expiry)}")
    print(f"  Key: {issued.key}")
    print()
    print("  Test with curl:")
    print(f"  curl -X POST {url}/api/activate \\")
    print('    -H "Content-Type: application/json" \\')
    print(f"    -d '{{\"key\":\"{issued.key}\"}}'")
    print("\n" + "=" * 80 + "\n")


def main(argv=None) -> int:
    args = _parse_args(argv)

    if is_default_secret(args.secret):
        print(
            "[keygen] WARNING: using the default secret. Set ACCESS_ACTIVATION_SECRET for production.",
            file=sys.stderr
        )

    issued = [] if args.no_demo else generate_demo_keys(args.secret)
    if args.identifier:
        issued.append(generate_activation_key(args.identifier, args.plan, args.days, args.secret))

    if args.json:
        print(json.dumps([key.to_dict() for key in issued], indent=2))
        return 0

    for index, key in enumerate(issued, start=1):
        is_custom = args.identifier and index == len(issued)
        _print_key("Custom Key" if is_custom else f"Demo Key {index}", key, args.url)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
