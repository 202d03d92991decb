"""
Registry credential decoding.

Credentials arrive as base64 encoded JSON, the same shape Docker uses for
its X-Registry-Auth header:

    {"username": "alice", "password": "secret"}

Plain JSON text is accepted too.
"""

import base64
import binascii
import json
import logging
from typing import Optional

logger = logging.getLogger(__name__)


def _b64decode(blob: str) -> Optional[bytes]:
    padded = blob + '=' * (-len(blob) % 4)
    for decoder in (base64.urlsafe_b64decode, base64.b64decode):
        try:
            return decoder(padded)
        except (binascii.Error, ValueError):
            continue
    return None


def decode_json_auth(blob: Optional[str]) -> str:
    """
    Decode a credential blob into skopeo's ``user:password`` form.

    Never raises. Returns an empty string when there is no blob, when it
    cannot be decoded, or when it carries neither username nor password.
    """
    if not blob or not blob.strip():
        return ""
    blob = blob.strip()

    if blob.startswith('{'):
        raw: Optional[bytes] = blob.encode()
    else:
        raw = _b64decode(blob)
    if raw is None:
        logger.debug("Ignoring credentials: not valid base64")
        return ""

    try:
        data = json.loads(raw.decode('utf-8'))
    except (UnicodeDecodeError, ValueError):
        logger.debug("Ignoring credentials: not valid JSON")
        return ""
    if not isinstance(data, dict):
        logger.debug("Ignoring credentials: JSON is not an object")
        return ""

    username = str(data.get('username') or '')
    password = str(data.get('password') or '')
    if not username and not password:
        return ""
    return f"{username}:{password}"


def encode_json_auth(username: str, password: str) -> str:
    """Inverse of decode_json_auth, used by the CLI for --src-creds style input."""
    payload = json.dumps({'username': username, 'password': password})
    return base64.urlsafe_b64encode(payload.encode()).decode()
