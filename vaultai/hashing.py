"""Content fingerprints used for change detection."""

from __future__ import annotations

import hashlib

FINGERPRINT_ALGORITHM = "sha256"


def content_fingerprint(content: str) -> str:
    """Return the hex SHA-256 digest of *content* encoded as UTF-8.

    The text is hashed exactly as given: no whitespace or case normalization,
    so any changed byte yields a different fingerprint.
    """

    return hashlib.sha256(content.encode("utf-8", "surrogatepass")).hexdigest()
