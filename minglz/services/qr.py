from __future__ import annotations

import re

# Three historical payload shapes printed on store QR codes.
_VERIFY_PATH = re.compile(r"/verify/([A-Za-z0-9_-]+)/?$")
_BARE_URL = re.compile(r"^https?://[^/]+/([A-Za-z0-9_-]+)$", re.IGNORECASE)
_STORE_SCHEME = re.compile(r"^store:([A-Za-z0-9_-]+)$", re.IGNORECASE)


def parse_store_identifier(payload: str | None) -> str | None:
    """
    Extract the store slug (or legacy temp id) from a scanned QR payload.

    Accepted:
      .../verify/{id}
      https://<host>/{id}
      store:{id}
    """
    data = (payload or "").strip()
    if not data:
        return None

    for pattern in (_VERIFY_PATH, _BARE_URL, _STORE_SCHEME):
        m = pattern.search(data)
        if m:
            # store slugs are generated lower-case
            return m.group(1).lower()
    return None
