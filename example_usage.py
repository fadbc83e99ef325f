#!/usr/bin/env python3
"""
Basic usage examples for the Communication Identity client.

Reads the resource connection details from the environment:

    ACS_CONNECTION_STRING   endpoint=https://...;accesskey=...
    ACS_APP_ID              app registration with Teams permissions
    TEAMS_USER_OID          (optional) Teams user object id
    TEAMS_USER_TOKEN        (optional) Entra ID token with Teams scope
"""

import logging
import os
import sys

from communication_identity import IdentityClient, IdentityClientError, RemoteServiceError


def main():
    """Run basic usage examples."""
    logging.basicConfig(level=logging.DEBUG if os.environ.get("DEBUG") else logging.INFO)

    connection_string = os.environ.get("ACS_CONNECTION_STRING")
    app_id = os.environ.get("ACS_APP_ID", "")
    if not connection_string:
        print("ACS_CONNECTION_STRING is not set")
        return 1

    print("=== Communication Identity Client Usage Examples ===\n")

    print("1. Creating client...")
    client = IdentityClient.from_connection_string(connection_string, app_id)
    print(f"   Client created for: {client.endpoint}\n")

    with client:
        try:
            print("2. Creating an identity with a chat token...")
            result = client.create_identity(["chat"], expires_in_minutes=60)
            print(f"   Identity: {result.identity_id}")
            if result.access_token:
                print(f"   Token expires on: {result.access_token.expires_on.isoformat()}")
            print()

            user_oid = os.environ.get("TEAMS_USER_OID")
            teams_token = os.environ.get("TEAMS_USER_TOKEN")
            if user_oid and teams_token:
                print("3. Exchanging a Teams user token...")
                token = client.token_for_teams_user(user_oid, teams_token)
                print(f"   Token: {token.token[:12]}...")
                print(f"   Expires on: {token.expires_on.isoformat()}")
            else:
                print("3. Skipping Teams token exchange (TEAMS_USER_OID / TEAMS_USER_TOKEN not set)")
        except RemoteServiceError as e:
            print(f"   Service rejected the request ({e.status_code}, code {e.code}):")
            print(str(e.error))
            return 1
        except IdentityClientError as e:
            print(f"   Request failed: {e}")
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
