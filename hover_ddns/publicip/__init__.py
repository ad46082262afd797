"""
Public IP discovery.

A provider is picked once at startup from the ``public_ip_provider`` section
of the configuration and answers "what is my IPv4 / IPv6 address".
"""

from ..config import (
    LocalInterfaceProviderConfig,
    ManualProviderConfig,
    OpenDNSProviderConfig,
    PublicIPProviderConfig,
    TextEndpointProviderConfig,
)
from .base import PublicIPProvider, parse_address
from .local import LocalInterfaceProvider, is_global_unicast
from .manual import ManualProvider
from .opendns import OpenDNSProvider
from .text import TEXT_ENDPOINTS, TextEndpoint, TextEndpointProvider, family_transport


def create_provider(
    provider_config: PublicIPProviderConfig, timeout: float = 10.0
) -> PublicIPProvider:
    if isinstance(provider_config, TextEndpointProviderConfig):
        return TextEndpointProvider.from_preset(
            provider_config.type,
            retries=provider_config.retries,
            retry_delay=provider_config.retry_delay,
            timeout=timeout,
        )
    elif isinstance(provider_config, OpenDNSProviderConfig):
        return OpenDNSProvider(timeout=timeout)
    elif isinstance(provider_config, LocalInterfaceProviderConfig):
        return LocalInterfaceProvider(provider_config.interface_name)
    elif isinstance(provider_config, ManualProviderConfig):
        return ManualProvider(provider_config.ipv4, provider_config.ipv6)
    else:
        raise ValueError(f"Unsupported public IP provider: {provider_config!r}")


__all__ = [
    "PublicIPProvider",
    "TextEndpoint",
    "TextEndpointProvider",
    "TEXT_ENDPOINTS",
    "LocalInterfaceProvider",
    "ManualProvider",
    "OpenDNSProvider",
    "create_provider",
    "family_transport",
    "is_global_unicast",
    "parse_address",
]
