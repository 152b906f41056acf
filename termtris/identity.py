from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass

FINGERPRINT_LENGTH = 16

_USER_ID_RE = re.compile(r"<([^>]+)>")
_EMAIL_RE = re.compile(r"([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})")


@dataclass(frozen=True, slots=True)
class PlayerIdentity:
    id: str
    display_name: str


def fingerprint_of(public_key: str | bytes) -> str:
    data = public_key.encode("utf-8") if isinstance(public_key, str) else public_key
    return hashlib.sha256(data).hexdigest()[:FINGERPRINT_LENGTH]


def identity_from_public_key(public_key: str | bytes) -> PlayerIdentity:
    """Derive a stable identity from a public key.

    The display name is taken from a `<user id>` or e-mail address in the key
    comment when present, otherwise it is the fingerprint itself.
    """

    fingerprint = fingerprint_of(public_key)
    text = public_key.decode("utf-8", errors="replace") if isinstance(public_key, bytes) else public_key

    name = fingerprint
    if m := _USER_ID_RE.search(text):
        name = m.group(1)
    elif m := _EMAIL_RE.search(text):
        name = m.group(1)

    return PlayerIdentity(id=fingerprint, display_name=name)
