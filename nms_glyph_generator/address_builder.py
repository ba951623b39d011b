"""
Portal address builder.

Builds a 12-glyph portal address from a random system-index prefix and an
optional user-supplied glyph code whose coordinate part (positions 4-11)
is kept.
"""

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .glyph_codec import GLYPH_LENGTH, is_glyph, normalize_glyph, random_glyphs

logger = logging.getLogger('nms_glyphs.address')

PREFIX_LENGTH = 4


class AddressStatus(Enum):
    """Outcome of an address generation."""
    OK = "ok"
    INCOMPLETE = "incomplete"
    INVALID = "invalid"


@dataclass
class AddressResult:
    """Result of an address generation."""
    status: AddressStatus
    glyphs: Optional[str] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        """True when an address was produced (complete or random-filled)."""
        return self.status != AddressStatus.INVALID


def build_address(user_suffix: str = "", rng: Optional[random.Random] = None) -> AddressResult:
    """
    Build a portal address.

    The first glyph is always '0' followed by three random system-index
    glyphs. When ``user_suffix`` holds a full glyph code, its coordinate
    glyphs (positions 4-11) are kept; otherwise they are random.

    Args:
        user_suffix: Optional glyph code typed by the user
        rng: Random source (module-level random if omitted)

    Returns:
        AddressResult; ``glyphs`` is None when the suffix is invalid
    """
    suffix = normalize_glyph(user_suffix)
    prefix = "0" + random_glyphs(PREFIX_LENGTH - 1, rng)

    if len(suffix) >= GLYPH_LENGTH:
        tail = suffix[PREFIX_LENGTH:GLYPH_LENGTH]
        bad = [c for c in tail if not is_glyph(c)]
        if bad:
            logger.debug(f"Rejected suffix {user_suffix!r}: invalid glyphs {bad}")
            return AddressResult(
                status=AddressStatus.INVALID,
                message=f"Invalid glyph character(s): {''.join(bad)}"
            )
        return AddressResult(status=AddressStatus.OK, glyphs=_fit(prefix + tail))

    tail = random_glyphs(GLYPH_LENGTH - PREFIX_LENGTH, rng)

    if suffix:
        bad = [c for c in suffix if not is_glyph(c)]
        if bad:
            return AddressResult(
                status=AddressStatus.INVALID,
                message=f"Invalid glyph character(s): {''.join(bad)}"
            )
        return AddressResult(
            status=AddressStatus.INCOMPLETE,
            glyphs=_fit(prefix + tail),
            message=(f"Glyph code is incomplete ({len(suffix)}/{GLYPH_LENGTH}), "
                     f"using random coordinates")
        )

    return AddressResult(status=AddressStatus.OK, glyphs=_fit(prefix + tail))


def _fit(glyphs: str) -> str:
    """Pad with '0' or truncate to exactly 12 glyphs."""
    return glyphs[:GLYPH_LENGTH].ljust(GLYPH_LENGTH, "0")
