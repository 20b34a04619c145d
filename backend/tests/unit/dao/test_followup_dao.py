"""
Follow-up DAO Tests.
"""

from datetime import date, datetime

import pytest

from quotedesk.dao.followup import FollowUpDAO
from quotedesk.models.quotation import QuotationStatus
from tests.factories import FollowUpFactory, QuotationFactory


@pytest.mark.asyncio
class TestFollowUpDAO:
    """Tests for FollowUpDAO."""

    async def test_due_excludes_completed_and_future(self, db_session):
        quotation = await QuotationFactory.create(db_session, status=QuotationStatus.PENDING)
        due = await FollowUpFactory.create(db_session, quotation, followup_date=date(2025, 5, 1))
        await FollowUpFactory.create(db_session, quotation, followup_date=date(2025, 5, 2), is_completed=True)
        await FollowUpFactory.create(db_session, quotation, followup_date=date(2025, 6, 1))

        result = await FollowUpDAO(db_session).get_due(date(2025, 5, 10))

        assert [f.id for f in result] == [due.id]

    async def test_mark_completed_clears_next_date(self, db_session):
        quotation = await QuotationFactory.create(db_session, status=QuotationStatus.PENDING)
        followup = await FollowUpFactory.create(db_session, quotation)
        followup.next_followup_date = date(2025, 5, 20)
        await db_session.commit()
        stamp = datetime(2025, 5, 10, 9, 30)

        await FollowUpDAO(db_session).mark_completed(followup, stamp)

        assert followup.is_completed is True
        assert followup.completed_at == stamp
        assert followup.next_followup_date is None
