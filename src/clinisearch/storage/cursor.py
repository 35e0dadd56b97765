"""
Opaque pagination cursor.

Stores mint cursors from the sort key of the last item they returned; callers
only hold on to them and hand them back unchanged.
"""

import base64
import json
from dataclasses import dataclass
from typing import Any, List


@dataclass(frozen=True)
class Cursor:
    token: str

    @classmethod
    def encode(cls, keyset: List[Any]) -> "Cursor":
        raw = json.dumps(keyset, separators=(",", ":")).encode("utf-8")
        return cls(base64.urlsafe_b64encode(raw).decode("ascii"))

    def decode(self) -> List[Any]:
        """Return the keyset; raises ValueError for tokens this package did not mint."""
        try:
            raw = base64.urlsafe_b64decode(self.token.encode("ascii"))
            keyset = json.loads(raw)
        except (ValueError, UnicodeError) as e:
            raise ValueError(f"Malformed cursor: {self.token!r}") from e
        if not isinstance(keyset, list):
            raise ValueError(f"Malformed cursor: {self.token!r}")
        return keyset

    def __str__(self) -> str:
        return self.token
