#!/usr/bin/env python3
"""
Leadbridge Organization Sync Example
====================================

Searches organizations in Apollo.io and creates or updates them as Bigin accounts:
1. Build the sync context from .env
2. Search Apollo organizations by domain
3. Upsert each one into Bigin, keyed by account name
"""

import asyncio

from leadbridge.core.config import settings
from leadbridge.core.exceptions import LeadbridgeException
from leadbridge.platform.sync.factory import SyncFactory

search_params = {
    "q_organization_domains": "salesforce.com",
    "page": 1,
    "per_page": 2,
}


async def main() -> None:
    """Run the example against the configured accounts."""
    async with SyncFactory.create(settings) as context:
        print("Step 1: Search organizations in Apollo.io")
        organizations = await context.source.search_organizations(search_params)
        print(f"Found {len(organizations)} organizations")

        print("Step 2: Upsert them into Bigin")
        for organization in organizations:
            try:
                result = await context.upsert_engine.sync_organization(organization)
            except LeadbridgeException as e:
                print(f"  {organization.get('name')}: failed ({e.message})")
                if e.is_rate_limit:
                    break
                continue

            action = "Updated" if result.was_update else "Created"
            print(f"  {organization.get('name')}: {action} Bigin account {result.id}")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except LeadbridgeException as e:
        print(f"Sync failed: {e.message}")
