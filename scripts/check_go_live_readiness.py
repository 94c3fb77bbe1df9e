"""
Check that an environment file carries everything a production deploy needs.

Usage:
  python scripts/check_go_live_readiness.py
  python scripts/check_go_live_readiness.py --env-file .env.production
"""

from __future__ import annotations

import argparse
import re
import sys
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import dotenv_values

REQUIRED_BASE = [
    "NEXT_PUBLIC_SUPABASE_URL",
    "NEXT_PUBLIC_SUPABASE_ANON_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
    "DATABASE_URL",
    "NEXT_PUBLIC_APP_URL",
]

REQUIRED_PUBLISH_NOW = [
    "TWITTER_CLIENT_ID",
    "TWITTER_CLIENT_SECRET",
    "LINKEDIN_CLIENT_ID",
    "LINKEDIN_CLIENT_SECRET",
]

APP_URL_PATTERN = re.compile(r"^https?://")


def find_issues(env: Dict[str, Optional[str]]) -> List[str]:
    """Every problem with `env`, in report order. Empty means ready."""
    issues = []

    missing_base = [key for key in REQUIRED_BASE if not env.get(key)]
    if missing_base:
        issues.append(f"Missing base env vars: {', '.join(missing_base)}")

    missing_publish = [key for key in REQUIRED_PUBLISH_NOW if not env.get(key)]
    if missing_publish:
        issues.append(f"Missing publish-now OAuth vars: {', '.join(missing_publish)}")

    app_url = env.get("NEXT_PUBLIC_APP_URL") or ""
    if app_url and not APP_URL_PATTERN.match(app_url):
        issues.append("NEXT_PUBLIC_APP_URL must include protocol, e.g. https://app.example.com")

    return issues


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Check go-live readiness of an env file")
    parser.add_argument("--env-file", default=".env", help="Path to the env file to check")
    args = parser.parse_args(argv)

    env_path = Path(args.env_file).resolve()
    if not env_path.is_file():
        print(f"Missing {args.env_file} file. Copy .env.example and fill values first.", file=sys.stderr)
        return 1

    env = dotenv_values(env_path)
    issues = find_issues(env)

    if issues:
        print("Go-live readiness check failed:", file=sys.stderr)
        for issue in issues:
            print(f"- {issue}", file=sys.stderr)
        return 1

    print("Go-live readiness check passed.")
    print(f"App URL: {env.get('NEXT_PUBLIC_APP_URL')}")
    print("Publish-now platforms: X (Twitter), LinkedIn")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
