"""Operator utilities for provisioning the single login account.

Usage:
    textbook-ocr-manage hash-password [PASSWORD]
    textbook-ocr-manage init-secrets [--env-file .env]
"""

from __future__ import annotations

import argparse
import logging
import secrets
import string
import sys
from pathlib import Path

from src.main.textbook_ocr.auth import hash_password

LOGGER = logging.getLogger(__name__)

DEFAULT_PASSWORD = "password123"
_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def generate_password(length: int = 16) -> str:
    return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))


def generate_username() -> str:
    return f"user_{secrets.token_hex(4)}"


def generate_secret(length: int = 64) -> str:
    return secrets.token_hex(length)


def update_env_text(env_text: str, values: dict[str, str]) -> str:
    """Replace ``KEY=`` lines for ``values`` in place and append any missing ones."""
    pending = dict(values)
    lines = []
    for line in env_text.splitlines():
        key = line.split("=", 1)[0]
        if "=" in line and key in pending:
            lines.append(f"{key}={pending.pop(key)}")
        else:
            lines.append(line)
    lines.extend(f"{key}={value}" for key, value in pending.items())
    return "\n".join(lines) + "\n"


def cmd_hash_password(args: argparse.Namespace) -> int:
    password = args.password or DEFAULT_PASSWORD
    password_hash = hash_password(password, rounds=args.rounds)
    print(f"Password: {password}")
    print(f"Bcrypt Hash: {password_hash}")
    print("\nAdd this to your .env file:")
    print(f"AUTH_PASSWORD={password_hash}")
    return 0


def cmd_init_secrets(args: argparse.Namespace) -> int:
    env_path = Path(args.env_file)
    try:
        env_text = env_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        LOGGER.warning("%s does not exist; creating it", env_path)
        env_text = ""

    username = generate_username()
    password = generate_password()
    values = {
        "AUTH_USERNAME": username,
        "AUTH_PASSWORD": hash_password(password, rounds=args.rounds),
        "JWT_SECRET": generate_secret(),
    }
    env_path.write_text(update_env_text(env_text, values), encoding="utf-8")

    print(f"Updated {env_path}")
    print(f"AUTH_USERNAME: {username}")
    print(f"Password (store it now, it is not saved in plain text): {password}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="textbook-ocr-manage", description=__doc__.splitlines()[0])
    subparsers = parser.add_subparsers(dest="command", required=True)

    hash_parser = subparsers.add_parser("hash-password", help="Print a bcrypt hash for AUTH_PASSWORD")
    hash_parser.add_argument("password", nargs="?", help=f"Password to hash (default: {DEFAULT_PASSWORD})")
    hash_parser.add_argument("--rounds", type=int, default=10)
    hash_parser.set_defaults(func=cmd_hash_password)

    init_parser = subparsers.add_parser("init-secrets", help="Generate credentials and a JWT secret into an env file")
    init_parser.add_argument("--env-file", default=".env")
    init_parser.add_argument("--rounds", type=int, default=12)
    init_parser.set_defaults(func=cmd_init_secrets)

    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
