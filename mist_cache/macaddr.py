"""
MAC address normalization.

The canonical form used for every MAC-keyed map in the cache is lower-case
hex with no separators, e.g. "001122334455". Any two spellings of the same
address collide on that key.
"""
import re
from enum import Enum
from typing import Optional

from .errors import InvalidMAC

_MAC_PATTERNS = (
    re.compile(r"^([0-9A-Fa-f]{2}:){5}[0-9A-Fa-f]{2}$"),
    re.compile(r"^([0-9A-Fa-f]{2}-){5}[0-9A-Fa-f]{2}$"),
    re.compile(r"^([0-9A-Fa-f]{4}\.){2}[0-9A-Fa-f]{4}$"),
    re.compile(r"^[0-9A-Fa-f]{12}$"),
)

_SEPARATORS = re.compile(r"[:\-.\s]")


class MACFormat(str, Enum):
    """Output styles for format_mac."""

    none = "none"  # aabbccddeeff
    colon = "colon"  # aa:bb:cc:dd:ee:ff
    hyphen = "hyphen"  # aa-bb-cc-dd-ee-ff
    dot = "dot"  # aabb.ccdd.eeff


def is_valid(mac: Optional[str]) -> bool:
    """Return True if mac is a MAC address in colon, hyphen, dot or bare style."""
    if not isinstance(mac, str):
        return False
    candidate = mac.strip()
    return any(p.match(candidate) for p in _MAC_PATTERNS)


def normalize(mac: str) -> str:
    """
    Convert any valid MAC spelling to the canonical form.

    Examples:
        "00:11:22:33:44:55" -> "001122334455"
        "0011.2233.4455"    -> "001122334455"
        "00-11-22-AA-BB-CC" -> "001122aabbcc"

    Raises:
        InvalidMAC: if the input is not 12 valid hex digits in a known style.
    """
    if not is_valid(mac):
        raise InvalidMAC(mac)
    return _SEPARATORS.sub("", mac.strip()).lower()


def normalize_or_empty(mac: Optional[str]) -> str:
    """Normalize mac, returning "" for anything invalid."""
    try:
        return normalize(mac)  # type: ignore[arg-type]
    except InvalidMAC:
        return ""


def normalize_fast(mac: Optional[str]) -> str:
    """
    Lower-case and strip separators without validating.

    Only for data that was already validated on the way in (cache keys,
    index lookups). "invalid" comes back as "invalid".
    """
    if not mac:
        return ""
    return _SEPARATORS.sub("", mac).lower()


def format_mac(mac: str, style: MACFormat = MACFormat.none) -> str:
    """Render a MAC address in the requested style."""
    normalized = normalize(mac)
    style = MACFormat(style)
    if style is MACFormat.none:
        return normalized
    if style is MACFormat.dot:
        return ".".join(normalized[i:i + 4] for i in range(0, 12, 4))
    sep = ":" if style is MACFormat.colon else "-"
    return sep.join(normalized[i:i + 2] for i in range(0, 12, 2))
