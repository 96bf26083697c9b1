#!/usr/bin/env python3
"""Basic usage example for publisher.client.

This script demonstrates the simplest way to get an authorized session
for the YouTube Data API.

Usage:
    python basic_usage.py --client-secrets client_secrets.json
"""

import argparse

from publisher.client import (
    YOUTUBE_UPLOAD_SCOPE,
    AuthStrategy,
    CredentialOptions,
    CredentialProvider,
    load_client_config,
)


def main():
    parser = argparse.ArgumentParser(description="Basic publisher.client usage")
    parser.add_argument(
        "--client-secrets",
        default="client_secrets.json",
        help="Path to the OAuth client_secrets.json file",
    )
    parser.add_argument(
        "--local-callback",
        action="store_true",
        help="Receive the code on http://localhost:8090 instead of pasting it",
    )
    args = parser.parse_args()

    strategy = AuthStrategy.LOCAL_CALLBACK if args.local_callback else AuthStrategy.PROMPT
    provider = CredentialProvider(strategy)
    options = CredentialOptions(client_config=load_client_config(args.client_secrets))

    # Get a session (will ask for authorization if nothing usable is cached)
    session = provider.get_client(YOUTUBE_UPLOAD_SCOPE, options)

    response = session.get(
        "https://www.googleapis.com/youtube/v3/channels",
        params={"part": "snippet", "mine": "true"},
    )
    response.raise_for_status()
    for channel in response.json().get("items", []):
        print(f"Authorized for channel: {channel['snippet']['title']}")


if __name__ == "__main__":
    main()
