"""Opaque page tokens handed back to callers.

A v2 token wraps the remote `$skiptoken` cursor together with an offset into
the page fetched with that cursor, so a client-filtered scan can stop in the
middle of a page and resume exactly after the last consumed item.

Format: ``v2:`` + unpadded base64url of
``{"v":2,"cursor":<cursor or sentinel>,"offset":<n>[,"mode":<mode>]}``.

Any other string is a legacy token: a raw remote cursor with offset 0.
Decoding never raises; malformed v2 tokens degrade to the legacy reading.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Union

TOKEN_PREFIX = "v2:"
TOKEN_VERSION = 2
FIRST_PAGE_CURSOR = "__first_page__"


@dataclass(frozen=True, slots=True)
class V2Token:
    """Decoded v2 token. `cursor` is None for the first remote page."""

    cursor: str | None
    offset: int = 0
    mode: str | None = None

    @property
    def legacy(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class LegacyToken:
    """Raw remote cursor (or no token at all) with an implicit offset of 0."""

    raw: str | None = None

    @property
    def cursor(self) -> str | None:
        return self.raw

    @property
    def offset(self) -> int:
        return 0

    @property
    def mode(self) -> str | None:
        return None

    @property
    def legacy(self) -> bool:
        return True


PageToken = Union[V2Token, LegacyToken]


def encode_page_token(cursor: str | None = None, offset: int = 0, mode: str | None = None) -> str:
    """Encode a resume position into an opaque v2 token.

    Args:
        cursor: Remote cursor used to fetch the page; None for the first page.
        offset: Index of the next unconsumed item in that page (clamped to >= 0).
        mode: Scan mode that produced the token ("search" or "filter").

    Returns:
        Token string.
    """
    payload: dict[str, object] = {
        "v": TOKEN_VERSION,
        "cursor": cursor if cursor else FIRST_PAGE_CURSOR,
        "offset": max(0, int(offset)),
    }
    if mode:
        payload["mode"] = mode
    serialized = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    encoded = base64.urlsafe_b64encode(serialized.encode("utf-8")).decode("ascii").rstrip("=")
    return TOKEN_PREFIX + encoded


def decode_page_token(token: str | None) -> PageToken:
    """Decode a caller-supplied page token.

    Args:
        token: Token from a previous result, a raw remote cursor, or None.

    Returns:
        `V2Token` for well-formed v2 tokens, otherwise `LegacyToken`.
    """
    if not token:
        return LegacyToken()
    if not token.startswith(TOKEN_PREFIX):
        return LegacyToken(raw=token)

    payload = _parse_payload(token[len(TOKEN_PREFIX):])
    if payload is None:
        return LegacyToken(raw=token)

    cursor = payload["cursor"]
    mode = payload.get("mode")
    return V2Token(
        cursor=None if cursor == FIRST_PAGE_CURSOR else cursor,
        offset=payload["offset"],
        mode=mode if isinstance(mode, str) else None,
    )


def _parse_payload(encoded: str) -> dict | None:
    padded = encoded + "=" * (-len(encoded) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        payload = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError, RecursionError):
        return None

    if not isinstance(payload, dict):
        return None
    version = payload.get("v")
    if isinstance(version, bool) or version != TOKEN_VERSION:
        return None
    cursor = payload.get("cursor")
    if not isinstance(cursor, str) or not cursor.strip():
        return None
    offset = payload.get("offset")
    if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        return None
    return payload
