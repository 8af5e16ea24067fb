"""Token helpers for host, player and admin access."""

from __future__ import annotations

import hashlib
import hmac
import secrets


TOKEN_BYTES = 24


def issue_token() -> str:
    """Generate a URL-safe bearer token for a host or a player."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(token: str, server_salt: str) -> str:
    """Hash a token as sha256(token + server_salt) for storage."""
    return hashlib.sha256(f"{token}{server_salt}".encode("utf-8")).hexdigest()


def tokens_match(raw_token: str, expected_hash: str, server_salt: str) -> bool:
    return hmac.compare_digest(hash_token(raw_token, server_salt), expected_hash)
