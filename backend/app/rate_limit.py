"""Per-client rate limits for the model-backed endpoints.

Requests are keyed by client IP. X-Forwarded-For is only believed when the
direct peer sits in one of the networks listed in
``Settings.trusted_proxy_cidrs``; anyone else could spoof it.
"""

import ipaddress
from functools import lru_cache

from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import get_settings
from .logging_config import get_logger

logger = get_logger("omnidev.rate_limit")

Network = ipaddress.IPv4Network | ipaddress.IPv6Network

# Simulated model calls are the expensive ones
AI_TASK_LIMIT = "30/minute"
AUTO_FIX_LIMIT = "20/minute"


@lru_cache
def parse_networks(raw: str) -> tuple[Network, ...]:
    """Parse a comma-separated CIDR list. Bad entries are logged and skipped."""
    networks = []
    for cidr in filter(None, (part.strip() for part in raw.split(","))):
        try:
            networks.append(ipaddress.ip_network(cidr, strict=False))
        except ValueError:
            logger.warning(f"Ignoring invalid trusted proxy CIDR: {cidr}")
    return tuple(networks)


def peer_is_trusted(peer: str) -> bool:
    try:
        address = ipaddress.ip_address(peer)
    except ValueError:
        return False
    trusted = parse_networks(get_settings().trusted_proxy_cidrs)
    return any(address in network for network in trusted)


def get_client_ip(request) -> str:
    """Rate-limit key: the original client behind a trusted proxy, else the peer."""
    peer = get_remote_address(request)
    if not peer_is_trusted(peer):
        return peer
    origin = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
    return origin or peer


limiter = Limiter(key_func=get_client_ip, enabled=get_settings().rate_limit_enabled)
