import hashlib
from typing import Optional


def fingerprint(data: bytes) -> str:
    """
    Generates a content fingerprint for change detection.

    Uppercase hex SHA-1 of the raw bytes. Used for equality checks only.
    """
    return hashlib.sha1(data).hexdigest().upper()


def fingerprints_match(left: Optional[str], right: Optional[str]) -> bool:
    """
    Compares two fingerprints ignoring hex casing. A missing value never matches.
    """
    if left is None or right is None:
        return False
    return left.casefold() == right.casefold()
