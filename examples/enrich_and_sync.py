#!/usr/bin/env python3
"""
Leadbridge Enrich and Sync Example
==================================

A walkthrough of a single contact sync:
1. Build the sync context from .env
2. Enrich a minimal contact with Apollo.io
3. Upsert it into Bigin (account first, then the contact)
4. Bulk sync the first pages of an Apollo people search
"""

import asyncio

from leadbridge.core.config import settings
from leadbridge.core.exceptions import LeadbridgeException
from leadbridge.platform.sync.factory import SyncFactory
from leadbridge.schemas.apollo import ApolloPeopleQuery

basic_contact = {
    "first_name": "Jane",
    "last_name": "Smith",
    "email": "jane.smith@acmecorp.com",
    "organization_name": "ACME Corporation",
}


async def main() -> None:
    """Run the example against the configured accounts."""
    async with SyncFactory.create(settings) as context:
        print("Step 1: Enrich the contact with Apollo.io")
        enriched = await context.source.enrich_person(**basic_contact)
        contact = {**basic_contact, **(enriched or {})}
        print(f"Enriched: {contact.get('title') or 'no title'} at {contact['organization_name']}")

        print("Step 2: Upsert into Bigin")
        result = await context.upsert_engine.sync_contact(contact)
        action = "Updated" if result.was_update else "Created"
        print(f"{action} Bigin contact {result.id}")

        print("Step 3: Bulk sync the first two pages of search results")
        query = ApolloPeopleQuery.from_filters(job_title="Marketing Manager", per_page=10)
        people = [person async for person in context.source.generate_people(query, max_pages=2)]
        report = await context.batch_coordinator.run_batch(people)
        print(
            f"Synced {report.summary.succeeded}/{report.summary.total} contacts "
            f"({report.summary.failed} failed)"
        )
        for failed in (r for r in report.results if not r.success):
            print(f"  {failed.source_id}: {failed.error_message}")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except LeadbridgeException as e:
        print(f"Sync failed: {e.message}")
        if e.is_rate_limit:
            print("Rate limited, try again in a minute.")
