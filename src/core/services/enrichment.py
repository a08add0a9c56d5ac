"""Directory enrichment of managers and users.

Used after the primary managers/users call succeeds:
- Collects the referenced user identifiers.
- Issues one batched directory lookup (`uuid anyOf [...]`).
- Merges the supplementary fields (email, job info) by identifier.

Best-effort: a failed lookup publishes the primary records unchanged and is
never reported as a failure of the section itself.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Sequence

from core.domain.models import DirectoryUser, SubscriptionUser
from core.interfaces.subscription_api import DirectoryApi

logger = logging.getLogger(__name__)


def merge_directory_data(
    records: Sequence[SubscriptionUser],
    directory_users: Iterable[DirectoryUser],
) -> list[SubscriptionUser]:
    """Merge directory data into `records` by identifier, keeping `records` order."""

    by_uuid = {user.uuid: user for user in directory_users}
    merged: list[SubscriptionUser] = []
    for record in records:
        match = by_uuid.get(record.user_uuid)
        if match is None:
            merged.append(record)
            continue

        update: dict[str, object] = {}
        if match.email is not None:
            update["email"] = match.email
        if match.job_info is not None:
            update["job_info"] = match.job_info
        merged.append(record.model_copy(update=update) if update else record)
    return merged


async def enrich_subscription_users(
    records: list[SubscriptionUser],
    *,
    directory: DirectoryApi,
    fields: Sequence[str],
    page_size: int,
) -> list[SubscriptionUser]:
    uuids = list(dict.fromkeys(record.user_uuid for record in records))
    if not uuids:
        return records

    try:
        found = await directory.search_users(
            uuids,
            fields=fields,
            page_size=max(page_size, len(uuids)),
        )
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        logger.warning("Directory enrichment failed for %d user(s): %s", len(uuids), exc)
        return records

    return merge_directory_data(records, found)
