"""
Totals Recompute Service.

WHAT: Maintenance task that re-derives every quotation's cached totals
from its stored line items and heals the rows that disagree.

WHY: Totals are persisted as a cache of the pricing computation. Rows
written by older releases (items stored as serialized text or null, totals
computed with float arithmetic) or touched by a pricing rule change drift
from what the pricing module computes today. This task brings them back
in line without touching anything else.

HOW:
1. List all quotation IDs
2. For each quotation, in its own session and transaction:
   parse the stored items, run compute_totals, and write items + totals
   back when the grand total differs or the items were not normalized
3. Count checked / corrected / skipped; a failing record is logged and
   skipped, the batch continues

The write is guarded by the version column, so a recompute never
overwrites a save that landed while it ran (that record counts as skipped).

Usage:
    python -m quotedesk.services.recompute_service
"""

import asyncio
import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Callable, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from quotedesk.core.actor import SYSTEM_ACTOR_NAME
from quotedesk.dao.quotation import QuotationDAO
from quotedesk.db.session import AsyncSessionLocal, transaction
from quotedesk.models.audit_log import AuditAction
from quotedesk.services.audit import AuditService
from quotedesk.services.pricing import compute_totals, parse_stored_items


logger = logging.getLogger(__name__)


@dataclass
class RecomputeReport:
    """
    Outcome of a recompute run.

    Attributes:
        checked: Quotations examined
        corrected: Quotations whose items/totals were rewritten
        skipped: Quotations that could not be processed
    """

    checked: int = 0
    corrected: int = 0
    skipped: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class RecomputeService:
    """
    Re-derives cached quotation totals.

    Example:
        report = await RecomputeService().recompute_all()
        print(report.corrected)
    """

    def __init__(self, session_factory: Optional[Callable[[], AsyncSession]] = None):
        """
        Initialize RecomputeService.

        Args:
            session_factory: Factory for database sessions (default: the
                application's AsyncSessionLocal)
        """
        self._session_factory = session_factory or AsyncSessionLocal

    async def recompute_all(self) -> RecomputeReport:
        """
        Recompute the totals of every quotation.

        Returns:
            RecomputeReport with checked/corrected/skipped counts
        """
        logger.info("Starting quotation totals recompute")
        start_time = datetime.utcnow()
        report = RecomputeReport()

        async with self._session_factory() as session:
            quotation_ids = await QuotationDAO(session).get_ids()

        for quotation_id in quotation_ids:
            report.checked += 1
            try:
                outcome = await self._recompute_one(quotation_id)
            except Exception as e:
                logger.warning(f"Skipping quotation {quotation_id} during recompute: {e}")
                report.skipped += 1
                continue

            if outcome is True:
                report.corrected += 1
            elif outcome is None:
                report.skipped += 1

        elapsed = (datetime.utcnow() - start_time).total_seconds()
        logger.info(
            f"Recompute completed in {elapsed:.2f}s. "
            f"Checked: {report.checked}, corrected: {report.corrected}, "
            f"skipped: {report.skipped}"
        )
        return report

    async def _recompute_one(self, quotation_id: int) -> Optional[bool]:
        """
        Recompute a single quotation in its own transaction.

        Returns:
            True if corrected, False if already consistent, None if the
            quotation vanished or changed underneath the recompute

        Raises:
            ValidationError: Stored items cannot be parsed or priced
        """
        async with transaction(self._session_factory) as session:
            dao = QuotationDAO(session)
            quotation = await dao.get_by_id(quotation_id)
            if quotation is None:
                return None

            raw_items = quotation.items
            totals = compute_totals(parse_stored_items(raw_items))

            if totals.grand_total == quotation.grand_total and raw_items == totals.items:
                return False

            previous_total = quotation.grand_total
            written = await dao.update_if_version(
                quotation.id,
                quotation.version,
                items=totals.items,
                **totals.columns(),
            )
            if not written:
                logger.warning(
                    f"Quotation {quotation.id} changed during recompute, left untouched"
                )
                return None

            await AuditService(session).log_quotation_event(
                AuditAction.TOTALS_RECOMPUTED,
                quotation.id,
                SYSTEM_ACTOR_NAME,
                changes={
                    "grand_total": {
                        "before": str(previous_total),
                        "after": str(totals.grand_total),
                    }
                },
            )

        logger.info(
            f"Quotation {quotation_id} totals corrected: {previous_total} -> {totals.grand_total}"
        )
        return True


async def run_recompute() -> Dict[str, int]:
    """Run a recompute with the application's database; scheduler entry point."""
    report = await RecomputeService().recompute_all()
    return report.to_dict()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print(asyncio.run(run_recompute()))
