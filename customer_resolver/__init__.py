"""Customer Resolver - Email domain to MKG customer resolution.

This package resolves the sender domain of an extracted order/quote to the
MKG administration, debtor and relation numbers used on document headers.

Key Features:
- Domain extraction from sender addresses
- Injected, lock-guarded cache with a 24-hour TTL and lazy eviction
- Live lookup against the MKG debtor table
- Default customer fallback so injection never blocks on resolution

Usage:
    from customer_resolver import CustomerResolver, CustomerCache

    resolver = CustomerResolver(client, cache=CustomerCache())
    customer = await resolver.resolve("buyer@customer.nl")

    if customer.is_default:
        # No match; headers go to the default debtor
        ...
"""

from customer_resolver.cache import CustomerCache
from customer_resolver.models import (
    CustomerInfo,
    ResolverConfig,
    DEFAULT_RESOLVER_CONFIG,
    resolver_config_for,
)
from customer_resolver.normalize import extract_domain
from customer_resolver.resolver import CustomerResolver, debtor_lookup_endpoint

__all__ = [
    # Models
    "CustomerInfo",
    "ResolverConfig",
    "DEFAULT_RESOLVER_CONFIG",
    "resolver_config_for",
    # Cache
    "CustomerCache",
    # Resolver
    "CustomerResolver",
    "debtor_lookup_endpoint",
    # Normalization
    "extract_domain",
]
