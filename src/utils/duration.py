"""Duration helpers for YouTube ISO-8601 duration tokens."""

from dataclasses import dataclass
from typing import Optional

UNIT_SECONDS = {"H": 3600, "M": 60, "S": 1}


def parse_duration(duration: str) -> Optional[int]:
    """Parse a YouTube duration token such as PT4M13S or PT1H2M10S into seconds.

    Returns None when the PT prefix is missing. Unknown unit letters are skipped.
    """
    if not duration or not duration.startswith("PT"):
        return None

    total_seconds = 0
    current_number = ""

    for char in duration[2:]:
        if char.isdigit():
            current_number += char
            continue

        if current_number:
            total_seconds += int(current_number) * UNIT_SECONDS.get(char, 0)
        current_number = ""

    return total_seconds


def format_duration(seconds: int) -> str:
    """Format seconds as human readable text (e.g. '4m 13s')."""
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    elif minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


@dataclass(frozen=True)
class DurationBounds:
    """Accepted video length, configured in minutes."""

    min_minutes: int = 2
    max_minutes: int = 30

    @property
    def min_seconds(self) -> int:
        return self.min_minutes * 60

    @property
    def max_seconds(self) -> int:
        return self.max_minutes * 60

    def accepts(self, duration: Optional[int]) -> bool:
        return duration is not None and self.min_seconds <= duration <= self.max_seconds


DEFAULT_DURATION_BOUNDS = DurationBounds()
