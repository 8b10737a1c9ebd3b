"""
Email domain normalization for customer lookup.
"""

import re

# Characters that would break the quoted MKG filter value
_FILTER_UNSAFE = re.compile(r'["\\]')


def extract_domain(email_or_domain: str) -> str:
    """
    Domain part of an address, lower-cased.

    Examples:
        "Jan.Jansen@Customer.NL" -> "customer.nl"
        "customer.nl" -> "customer.nl"
        "  " -> ""
    """
    if not email_or_domain:
        return ""
    value = email_or_domain.strip()
    if "@" in value:
        value = value.rsplit("@", 1)[1]
    return value.strip().strip(">").lower()


def filter_value(domain: str) -> str:
    """Domain made safe for use inside a quoted MKG filter."""
    return _FILTER_UNSAFE.sub("", domain)
