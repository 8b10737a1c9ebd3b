"""Customer Resolver.

Resolves the sender of an order/quote email to MKG customer identifiers:
1. Extract the domain from the sender address
2. Return a cached entry if it is younger than the TTL
3. Otherwise query the MKG debtor table by domain substring
4. Fall back to the configured default customer on any miss or error

Resolution never raises; the pipeline must not block on customer lookup.
"""

from typing import Optional

from pydantic import ValidationError

from connectors.erp_base import ERPClient
from connectors.mkg.mkg_client import MkgApiError
from connectors.mkg.mkg_models import DebiRecord, document_query, first_record
from core.observability.logging import get_logger
from customer_resolver.cache import CustomerCache
from customer_resolver.models import CustomerInfo, ResolverConfig, DEFAULT_RESOLVER_CONFIG
from customer_resolver.normalize import extract_domain, filter_value

logger = get_logger(__name__)

DEBTOR_FIELDS = ("admi_num", "debi_num", "rela_num", "debi_naam", "debi_actief")


def debtor_lookup_endpoint(domain: str) -> str:
    """Active debtors whose name contains the domain, first row only."""
    filter_expr = f'debi_actief = true AND debi_naam CONTAINS "{filter_value(domain)}"'
    return document_query("debi", filter_expr, DEBTOR_FIELDS, num_rows=1)


class CustomerResolver:
    """Maps email domains to MKG customers.

    Example:
        resolver = CustomerResolver(client, cache=CustomerCache())
        customer = await resolver.resolve("buyer@customer.nl")
        customer.debtor_number
    """

    def __init__(
        self,
        client: ERPClient,
        cache: Optional[CustomerCache] = None,
        config: ResolverConfig = DEFAULT_RESOLVER_CONFIG,
    ):
        """Initialize the resolver.

        Args:
            client: ERP session client used for live lookups
            cache: Cache owned by the caller; a private one is created if omitted
            config: TTL and default customer identifiers
        """
        self.client = client
        self.config = config
        self.cache = cache if cache is not None else CustomerCache(ttl=config.cache_ttl)

    @property
    def default_customer(self) -> CustomerInfo:
        return self.config.default_customer()

    async def resolve(self, email_or_domain: str) -> CustomerInfo:
        """Resolve an address or domain to a customer.

        Args:
            email_or_domain: "buyer@customer.nl" or "customer.nl"

        Returns:
            CustomerInfo (the default customer if nothing was found)
        """
        domain = extract_domain(email_or_domain)
        if not domain:
            logger.debug("Empty email domain, using default customer")
            return self.default_customer

        cached = self.cache.get(domain)
        if cached is not None:
            return cached

        customer = await self._lookup(domain)
        if customer is None:
            logger.info(f"No MKG customer for domain '{domain}', using default customer")
            return self.default_customer

        logger.info(
            f"Resolved domain '{domain}' to debtor {customer.debtor_number}",
            extra_fields={"customer": customer.name},
        )
        return self.cache.put(domain, customer)

    async def _lookup(self, domain: str) -> Optional[CustomerInfo]:
        try:
            body = await self.client.get(debtor_lookup_endpoint(domain))
        except MkgApiError as e:
            logger.warning(f"Customer lookup for '{domain}' failed: {e}")
            return None

        row = first_record(body, "debi")
        if row is None:
            return None

        try:
            record = DebiRecord.model_validate(row)
        except ValidationError as e:
            logger.warning(f"Unreadable debtor record for '{domain}': {e}")
            return None
        if not record.debi_num:
            return None

        defaults = self.config
        return CustomerInfo(
            administration_number=str(record.admi_num or defaults.default_administration_number),
            debtor_number=str(record.debi_num),
            relation_number=str(record.rela_num or defaults.default_relation_number),
            name=record.debi_naam or domain,
            active=record.debi_actief if record.debi_actief is not None else True,
        )
