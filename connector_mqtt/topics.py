"""
Topic Naming
============

Bounded Context: Topic Routing

Derives the topic a data source publishes to:

    <base_topic><sha256 hex of source id>/<sanitized source id>

The digest keeps topics unique and fixed-length even when many sources share
a similar display name; the sanitized segment keeps the topic readable.
Sanitizing is entirely rule driven: with no rules the source id is embedded
unchanged, even if it holds characters the broker rejects in topic names.

Example:
    >>> derive_topic("telemetry/", "Device/A", [StringReplacement("/", "-")])
    'telemetry/<64 hex chars>/Device-A'
"""

import hashlib
from typing import Optional, Sequence

from .schemas import StringReplacement


def source_id_digest(source_id: str) -> str:
    """Lowercase hex SHA-256 of the UTF-8 source id (64 chars)."""
    return hashlib.sha256(source_id.encode('utf-8')).hexdigest()


def sanitize_source_id(
    source_id: str,
    replacements: Optional[Sequence[StringReplacement]] = None
) -> str:
    """Apply replacement rules in order, each on the previous result."""
    sanitized = source_id
    for replacement in replacements or ():
        sanitized = replacement.apply(sanitized)
    return sanitized


def derive_topic(
    base_topic: str,
    source_id: str,
    replacements: Optional[Sequence[StringReplacement]] = None
) -> str:
    """
    Build the topic name for a data source.

    Args:
        base_topic: Prefix prepended as is (include the trailing separator)
        source_id: Logical origin of the data
        replacements: Ordered sanitizing rules (may be empty or None)

    Returns:
        Deterministic topic string

    Raises:
        TypeError: If base_topic or source_id is None
    """
    if base_topic is None:
        raise TypeError("base_topic cannot be None")
    if source_id is None:
        raise TypeError("source_id cannot be None")

    digest = source_id_digest(source_id)
    return f"{base_topic}{digest}/{sanitize_source_id(source_id, replacements)}"
