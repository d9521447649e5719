from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import secrets
import time

from snippy_backend.config import settings


_IDENTITY_TOKEN_VERSION = "v1"


def _hmac_sha256(secret: str, message: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).digest()
    # URL-safe and slightly shorter.
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def _b64encode(value: str) -> str:
    return base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii").rstrip("=")


def _b64decode(value: str) -> str | None:
    padded = value + "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError):
        return None


def make_identity_token(subject: str, now_ts: int | None = None, *, secret: str | None = None) -> str:
    """Mint a signed identity token for ``subject``.

    Token format (dot-separated):
      version.exp.b64(subject).nonce.sig
    """

    subject = (subject or "").strip()
    if not subject:
        raise ValueError("subject is required")

    now = int(now_ts if now_ts is not None else time.time())
    exp = now + int(settings.identity_token_max_age_seconds)
    nonce = secrets.token_urlsafe(12)
    payload = f"{_IDENTITY_TOKEN_VERSION}.{exp}.{_b64encode(subject)}.{nonce}"
    sig = _hmac_sha256(secret or settings.identity_token_secret, payload)
    return f"{payload}.{sig}"


def verify_identity_token(token: str | None, now_ts: int | None = None) -> str | None:
    """Return the token subject (the caller's user id), or None if invalid/expired."""

    if not token:
        return None

    parts = token.split(".")
    if len(parts) != 5:
        return None

    v, exp_s, subject_b64, nonce, sig = parts
    if v != _IDENTITY_TOKEN_VERSION:
        return None
    if not exp_s.isdigit() or not subject_b64 or not nonce:
        return None

    exp = int(exp_s)
    now = int(now_ts if now_ts is not None else time.time())
    if exp < now:
        return None

    payload = f"{v}.{exp_s}.{subject_b64}.{nonce}"
    expected = _hmac_sha256(settings.identity_token_secret, payload)
    if not secrets.compare_digest(sig, expected):
        return None

    subject = _b64decode(subject_b64)
    if not subject or not subject.strip():
        return None
    return subject
