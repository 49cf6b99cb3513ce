"""Content signatures for cached worklog entries."""

import hashlib
from typing import Iterable


def compute_signature(commit_hashes: Iterable[str], *determinants: object) -> str:
    """
    Deterministic signature of a commit set.

    Hashes are de-duplicated and sorted before hashing, so the result does
    not depend on discovery order. ``determinants`` (model name, rendering
    mode) are appended so that changing them invalidates the entry.

    Args:
        commit_hashes: Hashes of every contributing commit
        *determinants: Other inputs that affect the generated content

    Returns:
        SHA-256 hexadecimal digest
    """
    payload = "\n".join(sorted(set(commit_hashes)))
    if determinants:
        payload += "\x00" + "\x00".join(str(d) for d in determinants)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
