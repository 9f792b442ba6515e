"""
Topic Schema Types
==================

Bounded Context: Topic Naming

Types:
- StringReplacement: Case-insensitive literal substitution rule used to
  sanitize a source id before it is embedded in a topic name.
"""

import re
from dataclasses import dataclass, asdict
from typing import Dict, Any, List, Sequence


@dataclass(frozen=True)
class StringReplacement:
    """
    Immutable replacement rule (old_value -> new_value).

    Matching is case-insensitive and literal (no regex). Rules are applied
    in list order, each one to the output of the previous one.

    Attributes:
        old_value: Text to search for (non-empty)
        new_value: Replacement text (may be empty)

    Example:
        >>> rule = StringReplacement(old_value="/", new_value="-")
        >>> rule.apply("Device/A")
        'Device-A'
    """
    old_value: str
    new_value: str

    def __post_init__(self):
        """Validate invariants."""
        if not isinstance(self.old_value, str) or not self.old_value:
            raise ValueError(
                f"StringReplacement old_value must be a non-empty string, got {self.old_value!r}"
            )
        if not isinstance(self.new_value, str):
            raise ValueError(
                f"StringReplacement new_value must be a string, got {self.new_value!r}"
            )

    def apply(self, text: str) -> str:
        """Replace every case-insensitive occurrence of old_value in text."""
        # Escaped pattern and callable replacement keep both sides literal.
        return re.sub(
            re.escape(self.old_value),
            lambda _match: self.new_value,
            text,
            flags=re.IGNORECASE
        )

    def to_dict(self) -> Dict[str, str]:
        """Serialize to JSON-compatible dict."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StringReplacement':
        """Deserialize from dict.

        Accepts either ``old_value``/``new_value`` or ``old``/``new`` keys.

        Raises:
            ValueError: If required keys are missing or values invalid
        """
        try:
            old_value = data['old_value'] if 'old_value' in data else data['old']
            new_value = data['new_value'] if 'new_value' in data else data['new']
        except KeyError as e:
            raise ValueError(f"Missing required StringReplacement field: {e}")
        except TypeError as e:
            raise ValueError(f"Invalid StringReplacement data: {e}")

        return cls(old_value=old_value, new_value='' if new_value is None else new_value)

    @classmethod
    def from_list(cls, items: Sequence[Dict[str, Any]]) -> List['StringReplacement']:
        """Deserialize an ordered list of rules."""
        return [cls.from_dict(item) for item in items or []]
