"""
Totals Recompute Service Tests.

WHAT: Tests for the maintenance task that heals cached quotation totals.

WHY: Verifies that:
1. Consistent quotations are left alone
2. Stale totals, null items and serialized-text items are corrected
3. A record that cannot be processed is skipped without stopping the batch
4. The version is never bumped by a recompute
5. A record that changes underneath the recompute is skipped, not overwritten

HOW: Each quotation is processed in its own session from the test
session factory; assertions refresh the test session's instances.
"""

import json
from unittest.mock import AsyncMock

import pytest

from quotedesk.core.actor import SYSTEM_ACTOR_NAME
from quotedesk.dao.audit_log import AuditLogDAO
from quotedesk.dao.quotation import QuotationDAO
from quotedesk.models.audit_log import AuditAction
from quotedesk.services import recompute_service
from quotedesk.services.recompute_service import RecomputeReport, RecomputeService
from tests.factories import QuotationFactory, money


@pytest.fixture
def service(session_factory):
    return RecomputeService(session_factory)


@pytest.mark.asyncio
class TestRecomputeAll:
    """Tests for recompute_all."""

    async def test_empty_database(self, service):
        report = await service.recompute_all()
        assert report == RecomputeReport(checked=0, corrected=0, skipped=0)

    async def test_consistent_quotation_untouched(self, db_session, service, sample_items):
        quotation = await QuotationFactory.create(db_session, items=sample_items)
        updated_at = quotation.updated_at

        report = await service.recompute_all()

        assert report.to_dict() == {"checked": 1, "corrected": 0, "skipped": 0}
        await db_session.refresh(quotation)
        assert quotation.updated_at == updated_at

    async def test_stale_total_corrected(self, db_session, service, sample_items):
        quotation = await QuotationFactory.create(
            db_session, items=sample_items, grand_total=money("262.39"), version="0.4"
        )

        report = await service.recompute_all()

        assert report.corrected == 1
        await db_session.refresh(quotation)
        assert quotation.grand_total == money("262.40")
        assert quotation.version == "0.4"

        [entry] = await AuditLogDAO(db_session).get_for_resource("quotation", quotation.id)
        assert entry.action == AuditAction.TOTALS_RECOMPUTED
        assert entry.actor == SYSTEM_ACTOR_NAME
        assert entry.changes == {"grand_total": {"before": "262.39", "after": "262.40"}}

    async def test_null_items_become_empty_list(self, db_session, service):
        quotation = await QuotationFactory.create(db_session, grand_total=money("15.00"))
        quotation.items = None
        await db_session.commit()

        report = await service.recompute_all()

        assert report.corrected == 1
        await db_session.refresh(quotation)
        assert quotation.items == []
        assert quotation.grand_total == 0

    async def test_serialized_items_are_normalized(self, db_session, service, sample_items):
        quotation = await QuotationFactory.create(db_session, items=sample_items)
        quotation.items = json.dumps(sample_items)
        await db_session.commit()

        report = await service.recompute_all()

        assert report.corrected == 1
        await db_session.refresh(quotation)
        assert isinstance(quotation.items, list)
        assert quotation.items[0]["line_total"] == 212.4
        assert quotation.grand_total == money("262.40")

    async def test_extra_item_fields_survive(self, db_session, service):
        """
        WHY: Rows saved by older forms carry keys the pricing module does
        not know about; healing the totals must not strip them.
        """
        quotation = await QuotationFactory.create(db_session, grand_total=money("0.00"))
        quotation.items = [
            {"product_name": "Ball valve 2in", "hsn_code": "8481", "qty": "2", "unit_price": "100",
             "discount_percent": "10", "tax_rate": "18"},
        ]
        await db_session.commit()

        report = await service.recompute_all()

        assert report.corrected == 1
        await db_session.refresh(quotation)
        [item] = quotation.items
        assert item["product_name"] == "Ball valve 2in"
        assert item["hsn_code"] == "8481"
        assert item["qty"] == 2
        assert item["line_total"] == 212.4

    async def test_bad_record_is_skipped(self, db_session, service, sample_items):
        broken = await QuotationFactory.create(db_session, grand_total=money("1.00"))
        broken.items = [{"qty": -4, "unit_price": 10}]
        await db_session.commit()
        unreadable = await QuotationFactory.create(db_session)
        unreadable.items = "[{qty"
        await db_session.commit()
        stale = await QuotationFactory.create(db_session, items=sample_items, grand_total=money("0.00"))

        report = await service.recompute_all()

        assert report.to_dict() == {"checked": 3, "corrected": 1, "skipped": 2}
        await db_session.refresh(broken)
        await db_session.refresh(stale)
        assert broken.grand_total == money("1.00")
        assert stale.grand_total == money("262.40")

    async def test_concurrent_change_is_skipped(self, db_session, service, sample_items, monkeypatch):
        """
        WHY: A save that lands between the read and the write moves the
        version; the guarded write then matches nothing.
        """
        quotation = await QuotationFactory.create(db_session, items=sample_items, grand_total=money("9.99"))
        monkeypatch.setattr(QuotationDAO, "update_if_version", AsyncMock(return_value=False))

        report = await service.recompute_all()

        assert report.to_dict() == {"checked": 1, "corrected": 0, "skipped": 1}
        await db_session.refresh(quotation)
        assert quotation.grand_total == money("9.99")

    async def test_second_run_corrects_nothing(self, db_session, service, sample_items):
        await QuotationFactory.create(db_session, items=sample_items, grand_total=money("5.00"))

        first = await service.recompute_all()
        second = await service.recompute_all()

        assert first.corrected == 1
        assert second.corrected == 0


@pytest.mark.asyncio
async def test_run_recompute_uses_application_sessions(db_session, session_factory, sample_items, monkeypatch):
    await QuotationFactory.create(db_session, items=sample_items, grand_total=money("1.00"))
    monkeypatch.setattr(recompute_service, "AsyncSessionLocal", session_factory)

    result = await recompute_service.run_recompute()

    assert result == {"checked": 1, "corrected": 1, "skipped": 0}
