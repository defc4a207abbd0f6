"""Client address handling: privacy policies applied before a hit is stored."""

import hashlib
import ipaddress
from collections.abc import Mapping
from enum import Enum

# Stored in place of the address when nothing may be disclosed.
ANONYMOUS_IP = "::"


class PrivacyPolicy(str, Enum):
    """How much of the client address is kept, in increasing disclosure."""

    ANONYMOUS = "anonymous"
    HASHED = "hashed"
    PARTIAL_1 = "partial_1"
    PARTIAL_2 = "partial_2"
    PARTIAL_3 = "partial_3"
    CLEAR = "clear"

    @classmethod
    def parse(cls, value: object) -> "PrivacyPolicy":
        """Accept ``partial-1`` as well as ``partial_1``; unknown values are anonymous."""
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            return cls.ANONYMOUS


_PARTIAL_OCTETS = {
    PrivacyPolicy.PARTIAL_1: 1,
    PrivacyPolicy.PARTIAL_2: 2,
    PrivacyPolicy.PARTIAL_3: 3,
}


def _mask_octets(ip: str, count: int) -> str:
    parts = ip.split(".")
    # Only dotted quads are masked; anything else (ipv6...) is kept as is.
    if len(parts) != 4:
        return ip
    return ".".join(parts[: 4 - count] + ["0"] * count)


def apply_privacy(raw_address: str | None, policy: PrivacyPolicy | str) -> str:
    """Return the representation of ``raw_address`` that may be stored."""
    policy = PrivacyPolicy.parse(policy)
    if not raw_address or raw_address == ANONYMOUS_IP:
        return ANONYMOUS_IP

    if policy is PrivacyPolicy.CLEAR:
        return raw_address
    if policy is PrivacyPolicy.HASHED:
        return hashlib.md5(raw_address.encode()).hexdigest()
    if policy in _PARTIAL_OCTETS:
        return _mask_octets(raw_address, _PARTIAL_OCTETS[policy])
    return ANONYMOUS_IP


def client_ip(headers: Mapping[str, str], peer: str | None = None) -> str:
    """Get the remote address, preferring the header set by a reverse proxy.

    Values that are not valid IPv4/IPv6 addresses give ``ANONYMOUS_IP``.
    """
    candidate = (headers.get("x-real-ip") or peer or "").strip()
    try:
        ipaddress.ip_address(candidate)
    except ValueError:
        return ANONYMOUS_IP
    return candidate
