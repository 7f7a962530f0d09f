"""Document hashing for client/server sync checks."""

import hashlib

from engine.kernel.types import Document


def hash_document(document: Document | None) -> str:
    """
    Compute a short deterministic fingerprint of a Document's markup.

    The client compares it with the last hash it rendered to decide whether
    the preview needs a full reload.

    Args:
        document: The document to hash (None hashes as empty markup)

    Returns:
        Hexadecimal hash string (first 16 characters of SHA-256)
    """
    markup = document.html if document is not None else ""
    return hashlib.sha256(markup.encode("utf-8")).hexdigest()[:16]
