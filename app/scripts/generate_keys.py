"""
Print a fresh RSA key pair in the form the static key source expects:
  python -m app.scripts.generate_keys >> .env
"""
import argparse
import sys

from app.core.keys import encode_private_key, encode_public_key, generate_key_pair


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Generate a JWT signing key pair.")
    parser.add_argument("--bits", type=int, default=2048, choices=[2048, 3072, 4096])
    args = parser.parse_args(argv)

    pair = generate_key_pair(bits=args.bits)
    print(f"JWT_PUBLIC_KEY={encode_public_key(pair.public_key)}")
    print(f"JWT_PRIVATE_KEY={encode_private_key(pair.private_key)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
