"""
Content fingerprints for MBS items.

A fingerprint is the SHA-256 hex digest of the fields whose change should
trigger a new embedding. Fields outside FINGERPRINT_FIELDS (dates, flags,
other amounts) never affect it.
"""

import hashlib
import json

from mbs_sync.core.records import MBSItem

# Change-relevant fields, in digest order
FINGERPRINT_FIELDS: tuple[str, ...] = (
    "description",
    "benefit_100",
    "schedule_fee",
    "benefit_type",
    "category",
    "item_type",
)


def _normalize(value):
    # Amounts hash as floats; -0.0 and 0.0 must hash equal
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value) + 0.0
    return value


def compute_fingerprint(item: MBSItem) -> str:
    """
    Compute the fingerprint of an item.

    Values are serialized as a JSON array so that separators inside string
    fields cannot make two different field tuples collide.

    Args:
        item: The item to fingerprint

    Returns:
        64-character lowercase hex digest
    """
    values = [_normalize(getattr(item, name)) for name in FINGERPRINT_FIELDS]
    content = json.dumps(values, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(content.encode("utf-8")).hexdigest()
