#!/usr/bin/env python3
"""Print a bearer token for the admin API.

    python bin/issue_token.py admin --days 30
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "backend"))

from greencare.deps import create_access_token  # noqa: E402


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("subject", nargs="?", default="admin")
    parser.add_argument("--days", type=int, default=1)
    args = parser.parse_args(argv)
    print(create_access_token(args.subject, ttl_seconds=args.days * 24 * 3600))


if __name__ == "__main__":
    main()
