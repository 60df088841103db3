"""pixelcount - core internal data models.

These are plain dataclasses with no framework dependencies.
HTTP and database representations are converted to/from these at the boundary.
"""

from __future__ import annotations

from dataclasses import dataclass

# Stored in place of an absent or empty referer.
DIRECT_REFERER = "(direct)"


@dataclass(frozen=True)
class Hit:
    """One recorded pageview. The store assigns id and timestamp on insert."""
    client_id: str
    user_id: str
    page: str
    referer: str


@dataclass(frozen=True)
class StringCount:
    value: str
    count: int

    def to_dict(self) -> dict:
        return {"String": self.value, "Count": self.count}


@dataclass(frozen=True)
class Identity:
    user_id: str
    is_new: bool = False
