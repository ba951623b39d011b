"""
No Man's Sky Portal Glyph Codec

Converts wiki region coordinates into portal glyph addresses and provides
the glyph alphabet helpers used by the address builder.

Glyph Format: P-SSS-YY-ZZZ-XXX (12 hexadecimal digits)
- P: Planet/Body index (always 0 here)
- SSS: Solar System index (placeholder, not derived from coordinates)
- YY: Y-axis vertical coordinate (2 hex digits)
- ZZZ: Z-axis north-south coordinate (3 hex digits)
- XXX: X-axis east-west coordinate (3 hex digits)

Region Coordinate Format: XXXX:YYYY:ZZZZ:SSSS (galactic coordinates as shown
by the signal booster and on the wiki). The galactic centre is 07FF:007F:07FF,
so the glyph value of an axis is the coordinate shifted by half the axis size
and wrapped around.
"""

import random
import re
from typing import List, Optional, Tuple

GLYPH_ALPHABET = "0123456789ABCDEF"

# Glyph image mapping (standard NMS community order)
GLYPH_TO_HEX = {
    'sunset': '0',
    'bird': '1',
    'face': '2',
    'diplo': '3',
    'eclipse': '4',
    'balloon': '5',
    'boat': '6',
    'bug': '7',
    'dragonfly': '8',
    'galaxy': '9',
    'voxel': 'A',
    'fish': 'B',
    'tent': 'C',
    'rocket': 'D',
    'tree': 'E',
    'atlas': 'F',
}

HEX_TO_GLYPH = {v: k for k, v in GLYPH_TO_HEX.items()}

GLYPH_LENGTH = 12

# Constant system index used for addresses derived from region coordinates
PLACEHOLDER_SYSTEM_INDEX = "000"

# Wraparound thresholds (galactic coordinate -> glyph value)
XZ_WRAP_THRESHOLD = 2046  # <= threshold: +2049, otherwise -2047
Y_WRAP_THRESHOLD = 126    # <= threshold: +129, otherwise -127

# Accepted galactic coordinate ranges
COORD_RANGES = {
    'x': (0, 0xFFF),
    'y': (0, 0xFF),
    'z': (0, 0xFFF),
}

_HEX_FIELD = re.compile(r'^[+-]?(0[xX])?[0-9A-Fa-f]+$')


def random_glyph(rng: Optional[random.Random] = None) -> str:
    """Return one random glyph from the alphabet."""
    rng = rng or random
    return GLYPH_ALPHABET[rng.randrange(len(GLYPH_ALPHABET))]


def random_glyphs(count: int, rng: Optional[random.Random] = None) -> str:
    """Return ``count`` random glyphs as a string."""
    return ''.join(random_glyph(rng) for _ in range(count))


def generate_glyphs(rng: Optional[random.Random] = None) -> str:
    """Generate a fully random portal address, always starting with '0'."""
    return "0" + random_glyphs(GLYPH_LENGTH - 1, rng)


def is_glyph(char: str) -> bool:
    return len(char) == 1 and char in GLYPH_ALPHABET


def normalize_glyph(text: str) -> str:
    """Upper-case a glyph string and drop whitespace and dash separators."""
    if not text:
        return ""
    return re.sub(r'[\s-]', '', text).upper()


def _parse_hex_field(field: str) -> Optional[int]:
    field = field.strip()
    if not _HEX_FIELD.match(field):
        return None
    return int(field, 16)


def parse_region_coordinates(coordinate: str) -> Optional[Tuple[int, int, int]]:
    """
    Parse a region coordinate string into its X, Y and Z galactic values.

    Args:
        coordinate: Colon-delimited string "X:Y:Z:W" (hex fields)

    Returns:
        Tuple of (x, y, z), or None when the string is malformed or a
        value lies outside the galaxy
    """
    if not coordinate:
        return None

    parts = coordinate.split(':')
    if len(parts) != 4:
        return None

    values = [_parse_hex_field(part) for part in parts[:3]]
    if any(value is None for value in values):
        return None

    x, y, z = values
    for axis, value in (('x', x), ('y', y), ('z', z)):
        low, high = COORD_RANGES[axis]
        if not low <= value <= high:
            return None

    return x, y, z


def _wrap_xz(raw: int) -> int:
    if raw <= XZ_WRAP_THRESHOLD:
        return raw + 2049
    return raw - 2047


def _wrap_y(raw: int) -> int:
    if raw <= Y_WRAP_THRESHOLD:
        return raw + 129
    return raw - 127


def coordinates_to_glyphs(coordinate: str) -> str:
    """
    Convert a region coordinate string to a portal glyph address.

    The X and Z axes span 0x000-0xFFF and the Y axis 0x00-0xFF; each is
    shifted so that the galactic centre lands on glyph value 0 and wrapped
    into the unsigned glyph range.

    Args:
        coordinate: Region coordinates, e.g. "0ABC:007F:0DEF:0079"

    Returns:
        12-digit glyph code ("0" + "000" + YY + ZZZ + XXX), or an empty
        string if the coordinates cannot be parsed
    """
    parsed = parse_region_coordinates(coordinate)
    if parsed is None:
        return ""

    x, y, z = parsed
    glyph_x = _wrap_xz(x)
    glyph_y = _wrap_y(y)
    glyph_z = _wrap_xz(z)

    return (
        "0"
        + PLACEHOLDER_SYSTEM_INDEX
        + f"{glyph_y:02X}"
        + f"{glyph_z:03X}"
        + f"{glyph_x:03X}"
    )


def format_glyph(glyph: str) -> str:
    """
    Format glyph code with separators for readability.

    Args:
        glyph: 12-digit hex string

    Returns:
        Formatted string: P-SSS-YY-ZZZ-XXX
    """
    glyph = normalize_glyph(glyph)
    if len(glyph) != GLYPH_LENGTH:
        return glyph

    return f"{glyph[0]}-{glyph[1:4]}-{glyph[4:6]}-{glyph[6:9]}-{glyph[9:12]}"


def glyph_names(glyph: str) -> List[str]:
    """Map each hex digit of a glyph code to its community glyph name."""
    return [HEX_TO_GLYPH[digit] for digit in normalize_glyph(glyph) if digit in HEX_TO_GLYPH]


def glyph_names_to_code(names) -> str:
    """
    Translate glyph names back into hex digits.

    Accepts a list of names or one string separated by spaces or commas.
    Fewer than 12 names are allowed so a partial code can be used as a suffix.

    Raises:
        ValueError: on an unknown name or more than 12 names
    """
    if isinstance(names, str):
        names = re.split(r'[\s,]+', names)
    names = [name.strip().lower() for name in names if name and name.strip()]

    if len(names) > GLYPH_LENGTH:
        raise ValueError(f"At most {GLYPH_LENGTH} glyphs allowed, got {len(names)}")

    unknown = [name for name in names if name not in GLYPH_TO_HEX]
    if unknown:
        raise ValueError(f"Unknown glyph name(s): {', '.join(unknown)}")

    return ''.join(GLYPH_TO_HEX[name] for name in names)
