"""
Script to mint a bearer token for the Floor Plan Routing API
Run from project root: python scripts/issue_token.py <username> [admin|editor|viewer]
"""
import sys
import os
from datetime import timedelta

# Add parent directory to path to import auth_utils
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from auth_utils import create_access_token, VALID_ROLES, ACCESS_TOKEN_EXPIRE_MINUTES


def issue_token(username: str, role: str = "viewer") -> str:
    if role not in VALID_ROLES:
        raise ValueError(f"Role must be one of: {', '.join(VALID_ROLES)}")
    return create_access_token(
        {"sub": username, "role": role},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )


def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/issue_token.py <username> [admin|editor|viewer]")
        sys.exit(1)

    username = sys.argv[1]
    role = sys.argv[2] if len(sys.argv) > 2 else "viewer"

    try:
        token = issue_token(username, role)
    except ValueError as e:
        print(f"❌ {e}")
        sys.exit(1)

    print(f"✅ Token for '{username}' ({role}), valid {ACCESS_TOKEN_EXPIRE_MINUTES} minutes:")
    print(token)


if __name__ == "__main__":
    main()
