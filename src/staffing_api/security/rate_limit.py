"""Client identification and rate limits for mutating endpoints."""

from functools import lru_cache
from ipaddress import IPv4Network, IPv6Network, ip_address, ip_network

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from staffing_api.config import get_settings

# Proxies trusted in development when TRUSTED_PROXIES is not set
_DEVELOPMENT_PROXIES = ("127.0.0.1/32", "::1/128", "10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16")


@lru_cache
def trusted_proxy_networks() -> tuple[IPv4Network | IPv6Network, ...]:
    """Networks whose X-Forwarded-For header is believed.

    Bare addresses in TRUSTED_PROXIES are treated as single-host networks.
    Outside development nothing is trusted unless configured.
    """
    settings = get_settings()
    entries = settings.trusted_proxies_list
    if not entries and settings.environment == "development":
        entries = list(_DEVELOPMENT_PROXIES)
    return tuple(ip_network(entry, strict=False) for entry in entries)


def _is_trusted(address: str) -> bool:
    try:
        parsed = ip_address(address)
    except ValueError:
        # e.g. "testclient"
        return False
    return any(parsed in network for network in trusted_proxy_networks())


def get_real_client_ip(request: Request) -> str:
    """Address of the caller, used as the rate-limit key and in audit entries.

    The first X-Forwarded-For hop is used only when the direct peer is a
    trusted proxy and the hop is a valid address.

    Args:
        request: Incoming request

    Returns:
        Client IP address
    """
    peer = get_remote_address(request)
    if not _is_trusted(peer):
        return peer

    forwarded = request.headers.get("X-Forwarded-For", "")
    first_hop = forwarded.split(",")[0].strip()
    try:
        ip_address(first_hop)
    except ValueError:
        return peer
    return first_hop


_settings = get_settings()

# Per-minute limits; storage is in memory, so each API instance counts on its own
DEFAULT_LIMIT = f"{_settings.rate_limit_default}/minute"
MUTATION_LIMIT = f"{_settings.rate_limit_mutations}/minute"

limiter = Limiter(
    key_func=get_real_client_ip,
    default_limits=[DEFAULT_LIMIT],
    enabled=_settings.rate_limit_enabled,
)
