"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module contains the Version type of server and client releases.
"""

from typing import NamedTuple


class Version(NamedTuple):
    """
    Oracle release number: major.minor.update.patch.port_update
    (e.g. 19.3.0.0.0).
    """

    major: int
    minor: int = 0
    update: int = 0
    patch: int = 0
    port_update: int = 0

    @classmethod
    def parse(cls, text: str) -> "Version":
        """
        Parse a dotted release string with 1 to 5 integer parts.

        Raises:
            ValueError: Empty string, more than 5 parts, or a part that is not an integer.
        """
        parts = text.strip().split(".")
        if not parts[0] or len(parts) > 5:
            raise ValueError(f"Invalid version string: {text!r}")
        try:
            numbers = [int(p) for p in parts]
        except ValueError:
            raise ValueError(f"Invalid version string: {text!r}") from None
        if any(n < 0 for n in numbers):
            raise ValueError(f"Invalid version string: {text!r}")
        return cls(*numbers)

    @classmethod
    def from_release_number(cls, number: int) -> "Version":
        """
        Unpack the release number returned by OCIServerRelease.
        Releases 18 and later use a different bit layout than earlier ones.
        """
        major = (number >> 24) & 0xFF
        if major >= 18:
            return cls(
                major,
                (number >> 16) & 0xFF,
                (number >> 12) & 0x0F,
                (number >> 4) & 0xFF,
                number & 0x0F,
            )
        return cls(
            major,
            (number >> 20) & 0x0F,
            (number >> 12) & 0xFF,
            (number >> 8) & 0x0F,
            number & 0xFF,
        )

    def __str__(self) -> str:
        return ".".join(str(part) for part in self)
