#!/usr/bin/env python
"""MKG connection check.

This script verifies, in order:
1. MKG_* configuration is complete
2. Login returns a session cookie
3. An authenticated query on the debtor table succeeds
4. Optionally, a customer lookup for an email domain

Usage:
    python scripts/check_mkg_connection.py
    python scripts/check_mkg_connection.py --domain customer.nl
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from connectors.erp_base import ERPConnectionStatus
from connectors.mkg import MkgApiClient, MkgConfig, MkgConfigError
from customer_resolver import CustomerResolver, resolver_config_for


async def check_connection(domain: str = None) -> bool:
    print("=" * 60)
    print("MKG Connection Check")
    print("=" * 60)

    try:
        config = MkgConfig.from_env()
    except MkgConfigError as e:
        print(f"\n✗ Configuration incomplete: {e}")
        return False
    print(f"\n✓ Configuration loaded for {config.base_url}")
    print(f"  REST root: {config.rest_url('')}")

    async with MkgApiClient(config) as client:
        if not await client.login():
            print("✗ Login failed (no session cookie returned)")
            return False
        print("✓ Logged in")

        status = await client.test_connection()
        if status != ERPConnectionStatus.CONNECTED:
            print(f"✗ Debtor query failed (status: {status.value})")
            return False
        print("✓ Debtor query succeeded")

        if domain:
            resolver = CustomerResolver(client, config=resolver_config_for(config))
            customer = await resolver.resolve(domain)
            marker = " (default)" if customer.is_default else ""
            print(
                f"✓ {domain} -> debtor {customer.debtor_number}, "
                f"relation {customer.relation_number}, {customer.name}{marker}"
            )

        print(f"\n  Requests made: {client.request_count}")
    return True


def main():
    parser = argparse.ArgumentParser(description="Check the MKG connection")
    parser.add_argument("--domain", help="Also resolve this email domain to a customer")
    args = parser.parse_args()

    ok = asyncio.run(check_connection(args.domain))
    print("\n" + ("All checks passed" if ok else "Connection check failed"))
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
