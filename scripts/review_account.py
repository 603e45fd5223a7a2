#!/usr/bin/env python3
"""
Approve or reject a pending professional account through the admin API.

Usage:
    python scripts/review_account.py approve <user_id>
    python scripts/review_account.py reject <user_id> --notes "License number could not be verified"

Environment Variables:
    ADMIN_TOKEN: Bearer token of an approved admin account
    API_URL: Base API URL (default: http://localhost:8000)
"""

import argparse
import os
import sys

import dotenv
import requests

dotenv.load_dotenv()

API_PREFIX = "/api/v1"


def _request(method: str, url: str, token: str, **kwargs) -> dict:
    headers = {"Authorization": f"Bearer {token}"}
    try:
        response = requests.request(method, url, headers=headers, timeout=30, **kwargs)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.HTTPError as e:
        print(f"HTTP Error: {e}", file=sys.stderr)
        print(f"Response: {e.response.text}", file=sys.stderr)
        sys.exit(1)
    except requests.exceptions.RequestException as e:
        print(f"Request Error: {e}", file=sys.stderr)
        sys.exit(1)


def review_account(user_id: str, decision: str, notes: str | None = None) -> dict:
    """Record a decision as the admin owning ADMIN_TOKEN."""
    token = os.getenv("ADMIN_TOKEN")
    if not token:
        print("Error: ADMIN_TOKEN environment variable not set", file=sys.stderr)
        sys.exit(1)

    api_url = os.getenv("API_URL", "http://localhost:8000").rstrip("/")

    # The reviewer must be the caller, so ask the API who the token belongs to
    session = _request(
        "GET", f"{api_url}{API_PREFIX}/auth/session", token, params={"requireAdmin": "true"}
    )
    reviewer_id = session.get("accountId")
    if not reviewer_id or session.get("redirect"):
        print("Error: ADMIN_TOKEN does not belong to an approved admin", file=sys.stderr)
        sys.exit(1)

    payload = {"userId": user_id, "reviewerId": reviewer_id}
    if notes:
        payload["notes"] = notes

    return _request("POST", f"{api_url}{API_PREFIX}/admin/users/{decision}", token, json=payload)


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Approve or reject a pending professional account",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  export ADMIN_TOKEN=eyJhbGciOi...
  export API_URL=https://api.medblog.example
  python review_account.py approve USER_ID
  python review_account.py reject USER_ID --notes "Registration number not found"
        """,
    )
    parser.add_argument("decision", choices=["approve", "reject"], help="Decision to record")
    parser.add_argument("user_id", help="Account to review")
    parser.add_argument("--notes", type=str, help="Reason sent to the applicant on rejection")

    args = parser.parse_args(argv)

    result = review_account(args.user_id, args.decision, args.notes)
    print(f"✅ {result.get('message') or 'Decision recorded'}")


if __name__ == "__main__":
    main()
