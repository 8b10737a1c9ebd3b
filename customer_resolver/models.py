"""Customer Resolver Data Models.

This module defines the Pydantic models for customer resolution:
- CustomerInfo: MKG identifiers of the customer behind an email domain
- ResolverConfig: cache TTL and fallback customer identifiers
"""

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CustomerInfo(BaseModel):
    """MKG customer identifiers.

    Attributes:
        administration_number: MKG administration (admi_num)
        debtor_number: Debtor number (debi_num)
        relation_number: Relation number (rela_num)
        name: Debtor name (debi_naam)
        active: Whether the debtor is active
        cached_at: When this entry entered the cache (None if never cached)
        is_default: True when this is the fallback customer
    """
    model_config = ConfigDict(frozen=True)

    administration_number: str = Field(..., description="MKG administration number")
    debtor_number: str = Field(..., description="MKG debtor number")
    relation_number: str = Field(..., description="MKG relation number")
    name: str = Field(default="", description="Debtor display name")
    active: bool = Field(default=True)
    cached_at: Optional[datetime] = None
    is_default: bool = False


class ResolverConfig(BaseModel):
    """Configuration for customer resolution."""
    cache_ttl: timedelta = Field(default=timedelta(hours=24), description="Cache entry lifetime")

    default_name: str = "Default Customer"
    default_administration_number: str = "1"
    default_debtor_number: str = "30010"
    default_relation_number: str = "2"

    def default_customer(self) -> CustomerInfo:
        return CustomerInfo(
            administration_number=self.default_administration_number,
            debtor_number=self.default_debtor_number,
            relation_number=self.default_relation_number,
            name=self.default_name,
            active=True,
            is_default=True,
        )


DEFAULT_RESOLVER_CONFIG = ResolverConfig()


def resolver_config_for(erp_config) -> ResolverConfig:
    """ResolverConfig whose default customer uses the ERP's configured numbers."""
    return ResolverConfig(
        default_administration_number=str(erp_config.administration_number),
        default_debtor_number=str(erp_config.debtor_number),
        default_relation_number=str(erp_config.relation_number),
    )
