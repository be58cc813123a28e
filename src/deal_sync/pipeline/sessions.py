"""
Session reconciliation for a synced deal.

Sessions have no remote identity: their target count is derived from the
deal's training line items. Reconciliation is additive only. It appends the
missing rows and never edits or removes existing ones, so manual changes to a
session survive later syncs.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from ..clients.pipedrive_client import PipedriveClient
from ..clients.postgres_client import PostgresClient
from ..errors import SessionReconcileError
from ..logging import get_logger
from ..mapping.products import classify_deal_products
from ..models.records import SessionRecord
from ..models.remote import PipedriveDealProduct

logger = get_logger(__name__)


def sessions_to_create(needed: float, existing: int) -> int:
    """
    Rows to append so that ``existing`` reaches ``needed``; never negative.

    A partial session still needs a row, so fractional demand rounds up.
    """
    if not math.isfinite(needed):
        return 0
    return max(0, math.ceil(needed - existing))


@dataclass
class SessionReconcileResult:
    needed: float
    existing: int
    created: int = 0


class SessionReconciler:
    """
    Grows a deal's session rows to match its training demand.

    Usage:
        reconciler = SessionReconciler(postgres_client, pipedrive_client)
        result = await reconciler.reconcile(local_deal_id=7, remote_deal_id=123)
    """

    def __init__(self, storage: PostgresClient, crm: PipedriveClient):
        self.storage = storage
        self.crm = crm

    async def reconcile(
        self,
        local_deal_id: int,
        remote_deal_id: int,
        products: Sequence[PipedriveDealProduct] | None = None,
    ) -> SessionReconcileResult:
        """
        Append the sessions the deal is missing.

        Args:
            local_deal_id: deals.id of the synced deal
            remote_deal_id: Pipedrive deal id, used to fetch products
            products: Already-fetched line items (skips the fetch)

        Returns:
            SessionReconcileResult with needed/existing/created counts
        """
        if products is None:
            products = await self.crm.get_deal_products(remote_deal_id)

        needed = classify_deal_products(products).sessions_needed
        existing = await self.storage.count_sessions(local_deal_id)
        result = SessionReconcileResult(needed=needed, existing=existing)

        to_create = sessions_to_create(needed, existing)
        if to_create == 0:
            logger.debug(
                'sessions.up_to_date',
                local_deal_id=local_deal_id,
                needed=needed,
                existing=existing,
            )
            return result

        defaults = await self.storage.get_session_defaults(local_deal_id)
        if defaults is None:
            raise SessionReconcileError(
                f"Deal row {local_deal_id} not found while reconciling sessions",
                context={'local_deal_id': local_deal_id, 'remote_deal_id': remote_deal_id},
            )

        records = [
            SessionRecord(
                deal_id=local_deal_id,
                site=defaults.site,
                address=defaults.address,
            )
            for _ in range(to_create)
        ]
        result.created = await self.storage.insert_sessions(records)

        logger.info(
            'sessions.created',
            local_deal_id=local_deal_id,
            needed=needed,
            existing=existing,
            created=result.created,
        )
        return result
