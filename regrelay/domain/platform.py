"""
Platform selection for multi-arch images.

A platform value is one of:
- ``""``: let skopeo decide (no flag)
- ``"all"``: copy every platform of a manifest list
- ``"os/arch[/variant]"``: pin a single platform
"""

import re
from dataclasses import dataclass
from typing import Optional

from ..exit_codes import InvalidPlatformError

PLATFORM_ALL = "all"

_SEGMENT = re.compile(r'^[a-z0-9][a-z0-9._-]*$')


@dataclass(frozen=True)
class Platform:
    """A single pinned platform."""
    os: str
    arch: str
    variant: Optional[str] = None

    @classmethod
    def parse(cls, value: str) -> 'Platform':
        """
        Parse ``os/arch[/variant]``.

        Raises:
            InvalidPlatformError: if the value has the wrong number of
                segments or a segment is empty or malformed
        """
        parts = value.strip().split('/')
        if len(parts) not in (2, 3) or not all(_SEGMENT.match(p) for p in parts):
            raise InvalidPlatformError(
                f"invalid platform '{value}': expected 'all' or os/arch[/variant]"
            )
        variant = parts[2] if len(parts) == 3 else None
        return cls(os=parts[0], arch=parts[1], variant=variant)

    def __str__(self) -> str:
        if self.variant:
            return f"{self.os}/{self.arch}/{self.variant}"
        return f"{self.os}/{self.arch}"


def validate_platform(value: str) -> None:
    """Check a platform value; empty and 'all' are always accepted."""
    if value in ("", PLATFORM_ALL):
        return
    Platform.parse(value)
