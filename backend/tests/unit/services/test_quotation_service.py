"""
Quotation Service Tests.

WHAT: Tests for the quotation lifecycle against a real (SQLite) session.

WHY: The lifecycle rules only mean something together with the database:
1. A content save bumps the version, needs a comment and keeps history
2. A no-op save writes nothing
3. Expired quotations cannot be edited, only re-issued
4. Re-issuing never touches the source record
5. Won/lost quotations are locked
6. A save racing another save is rejected, not merged

HOW: The service clock is injected so validity is deterministic.
"""

from datetime import date

import pytest
import pytest_asyncio

from quotedesk.core.actor import Actor
from quotedesk.core.config import settings
from quotedesk.core.exceptions import (
    CommentRequiredError,
    ConcurrentModificationError,
    CustomerNotFoundError,
    QuotationExpiredError,
    QuotationLockedError,
    QuotationNotFoundError,
    QuotationVersionNotFoundError,
    ReissueNotAllowedError,
    ValidationError,
)
from quotedesk.dao.audit_log import AuditLogDAO
from quotedesk.dao.quotation_version import QuotationVersionDAO
from quotedesk.models.audit_log import AuditAction
from quotedesk.models.quotation import QuotationStatus
from quotedesk.models.quotation_decision import DecisionType
from quotedesk.schemas.quotation import QuotationCreate, QuotationUpdate
from quotedesk.services.quotation_service import QuotationService
from quotedesk.services.validity import ValidityState
from tests.factories import CustomerFactory, QuotationFactory, money


TODAY = date(2025, 5, 10)
ISSUED_LONG_AGO = date(2024, 1, 1)
AFTER_EXPIRY = date(2024, 2, 5)

ACTOR = Actor(name="Asha Kumar")


def make_service(session, today: date = TODAY) -> QuotationService:
    return QuotationService(session, clock=lambda: today)


@pytest.fixture
def service(db_session):
    return make_service(db_session)


@pytest_asyncio.fixture
async def quotation(db_session, sample_items):
    """Draft quotation issued on TODAY, grand total 262.40."""
    return await QuotationFactory.create(db_session, items=sample_items, quotation_date=TODAY)


@pytest_asyncio.fixture
async def expired_quotation(db_session, sample_items):
    """Quotation issued 2024-01-01 for 30 days; expired as of 2024-02-05."""
    return await QuotationFactory.create(
        db_session,
        items=sample_items,
        quotation_date=ISSUED_LONG_AGO,
        validity_days=30,
        notes="Original offer",
        customer_snapshot={"company_name": "Acme Pumps Pvt Ltd", "city": "Pune"},
    )


async def _audit_actions(session, quotation_id):
    entries = await AuditLogDAO(session).get_for_resource("quotation", quotation_id)
    return [entry.action for entry in entries]


@pytest.mark.asyncio
class TestCreateQuotation:
    """Tests for create_quotation."""

    async def test_create_prices_items_and_numbers(self, db_session, service, sample_items):
        data = QuotationCreate(customer_snapshot={"company_name": "Acme"}, items=sample_items)

        quotation = await service.create_quotation(data, ACTOR)

        assert quotation.id is not None
        assert quotation.quotation_no == "QT/2526/AK/001"
        assert quotation.version == "0.1"
        assert quotation.status == QuotationStatus.DRAFT
        assert quotation.salesperson_name == "Asha Kumar"
        assert quotation.quotation_date == TODAY
        assert quotation.validity_days == 30
        assert quotation.subtotal == money("250.00")
        assert quotation.grand_total == money("262.40")
        assert quotation.items[0]["line_total"] == 212.4
        assert await _audit_actions(db_session, quotation.id) == [AuditAction.QUOTATION_CREATED]

    async def test_running_number_continues_per_salesperson(self, service):
        first = await service.create_quotation(QuotationCreate(), ACTOR)
        second = await service.create_quotation(QuotationCreate(), ACTOR)
        other = await service.create_quotation(QuotationCreate(salesperson_name="Ravi Shah"), ACTOR)

        assert first.quotation_no == "QT/2526/AK/001"
        assert second.quotation_no == "QT/2526/AK/002"
        assert other.quotation_no == "QT/2526/RS/001"
        assert await service.next_quotation_number("Asha Kumar") == "QT/2526/AK/003"

    async def test_create_with_empty_items_has_zero_totals(self, service):
        quotation = await service.create_quotation(QuotationCreate(), ACTOR)

        assert quotation.items == []
        assert quotation.grand_total == 0

    async def test_create_snapshots_customer(self, db_session, service):
        customer, location, contact = await CustomerFactory.create_with_contact(db_session)

        quotation = await service.create_quotation(
            QuotationCreate(
                customer_id=customer.id,
                customer_location_id=location.id,
                customer_contact_id=contact.id,
            ),
            ACTOR,
        )

        snapshot = quotation.customer_snapshot
        assert snapshot["company_name"] == "Acme Pumps Pvt Ltd"
        assert snapshot["city"] == "Pune"
        assert snapshot["contact_name"] == "Ravi Shah"

    async def test_location_without_customer_rejected(self, db_session, service):
        _, location, _ = await CustomerFactory.create_with_contact(db_session)

        with pytest.raises(ValidationError):
            await service.create_quotation(QuotationCreate(customer_location_id=location.id), ACTOR)

    async def test_contact_from_other_customer_rejected(self, db_session, service):
        customer = await CustomerFactory.create(db_session, company_name="Other Co")
        _, location, contact = await CustomerFactory.create_with_contact(db_session)

        with pytest.raises(CustomerNotFoundError):
            await service.create_quotation(
                QuotationCreate(
                    customer_id=customer.id,
                    customer_location_id=location.id,
                    customer_contact_id=contact.id,
                ),
                ACTOR,
            )

    async def test_invalid_item_rejected(self, service):
        data = QuotationCreate(items=[{"qty": 1, "unit_price": 10, "discount_percent": 120}])

        with pytest.raises(ValidationError) as exc_info:
            await service.create_quotation(data, ACTOR)

        assert exc_info.value.context["line"] == 1


@pytest.mark.asyncio
class TestSaveQuotation:
    """Tests for save_quotation."""

    async def test_content_change_bumps_version_and_keeps_history(self, db_session, service, quotation):
        new_items = [{"description": "Ball valve 2in", "qty": 3, "unit_price": 100, "discount_percent": 10, "tax_rate": 18}]

        result = await service.save_quotation(
            quotation.id, QuotationUpdate(items=new_items, comment="One more unit"), ACTOR
        )

        assert result.changed is True
        assert result.previous_version == "0.1"
        assert result.quotation.version == "0.2"
        assert result.quotation.grand_total == money("318.60")

        snapshot = await QuotationVersionDAO(db_session).get_by_label(quotation.id, "0.1")
        assert snapshot is not None
        assert snapshot.grand_total == money("262.40")
        assert snapshot.comment == "One more unit"
        assert snapshot.changed_by == "Asha Kumar"
        assert snapshot.next_version == "0.2"

        assert await _audit_actions(db_session, quotation.id) == [AuditAction.QUOTATION_UPDATED]

    async def test_content_change_without_comment_is_rejected(self, db_session, service, quotation):
        with pytest.raises(CommentRequiredError):
            await service.save_quotation(quotation.id, QuotationUpdate(notes="Revised"), ACTOR)

        await db_session.refresh(quotation)
        assert quotation.version == "0.1"
        assert quotation.notes is None
        assert await QuotationVersionDAO(db_session).count_for_quotation(quotation.id) == 0

    async def test_noop_save_writes_nothing(self, db_session, service, quotation, sample_items):
        """
        WHY: Re-sending the loaded form unchanged must not create a version.
        """
        payload = QuotationUpdate(
            items=sample_items,
            payment_terms=quotation.payment_terms,
            validity_days=quotation.validity_days,
        )

        result = await service.save_quotation(quotation.id, payload, ACTOR)

        assert result.changed is False
        assert result.quotation.version == "0.1"
        assert await _audit_actions(db_session, quotation.id) == []

    async def test_status_only_change_keeps_version(self, service, quotation):
        result = await service.save_quotation(
            quotation.id, QuotationUpdate(status="pending"), ACTOR
        )

        assert result.changed is True
        assert result.quotation.status == QuotationStatus.PENDING
        assert result.quotation.version == "0.1"

    async def test_null_required_field_is_ignored(self, service, quotation):
        result = await service.save_quotation(
            quotation.id, QuotationUpdate(validity_days=None, quotation_date=None), ACTOR
        )

        assert result.changed is False
        assert result.quotation.validity_days == 30

    async def test_null_items_leave_lines_unchanged(self, service, quotation):
        result = await service.save_quotation(quotation.id, QuotationUpdate(items=None), ACTOR)

        assert result.changed is False
        assert result.quotation.version == "0.1"
        assert len(result.quotation.items) == 2
        assert result.quotation.grand_total == money("262.40")

    async def test_empty_items_clear_lines(self, service, quotation):
        result = await service.save_quotation(
            quotation.id, QuotationUpdate(items=[], comment="Lines withdrawn"), ACTOR
        )

        assert result.quotation.version == "0.2"
        assert result.quotation.items == []
        assert result.quotation.grand_total == 0

    async def test_expected_version_mismatch(self, service, quotation):
        with pytest.raises(ConcurrentModificationError) as exc_info:
            await service.save_quotation(
                quotation.id,
                QuotationUpdate(notes="x", comment="y", expected_version="0.4"),
                ACTOR,
            )

        assert exc_info.value.context["current_version"] == "0.1"

    async def test_concurrent_save_is_rejected(self, db_session, session_factory, service, quotation):
        """
        WHY: Both editors loaded 0.1. The second write must not overwrite the first.
        """
        quotation_id = quotation.id

        async with session_factory() as other_session:
            other = make_service(other_session)
            await other.save_quotation(
                quotation_id, QuotationUpdate(notes="First editor", comment="first"), ACTOR
            )
            await other_session.commit()

        # db_session still holds the instance loaded at 0.1
        with pytest.raises(ConcurrentModificationError):
            await service.save_quotation(
                quotation_id, QuotationUpdate(notes="Second editor", comment="second"), ACTOR
            )

        await db_session.refresh(quotation)
        assert quotation.version == "0.2"
        assert quotation.notes == "First editor"

    async def test_closed_quotation_is_locked(self, db_session, service):
        won = await QuotationFactory.create(db_session, status=QuotationStatus.WON, quotation_date=TODAY)

        with pytest.raises(QuotationLockedError):
            await service.save_quotation(won.id, QuotationUpdate(notes="x", comment="y"), ACTOR)

    async def test_expired_quotation_cannot_be_edited(self, db_session, expired_quotation):
        service = make_service(db_session, AFTER_EXPIRY)

        with pytest.raises(QuotationExpiredError) as exc_info:
            await service.save_quotation(
                expired_quotation.id, QuotationUpdate(notes="Extend", comment="extend"), ACTOR
            )

        assert exc_info.value.context["expiry_date"] == "2024-01-31"

    async def test_expired_quotation_status_change_rejected(self, db_session, expired_quotation):
        service = make_service(db_session, AFTER_EXPIRY)

        with pytest.raises(QuotationExpiredError):
            await service.save_quotation(expired_quotation.id, QuotationUpdate(status="pending"), ACTOR)

    async def test_expired_quotation_noop_save_is_allowed(self, db_session, expired_quotation):
        service = make_service(db_session, AFTER_EXPIRY)

        result = await service.save_quotation(
            expired_quotation.id, QuotationUpdate(notes="Original offer"), ACTOR
        )

        assert result.changed is False

    async def test_unknown_quotation(self, service):
        with pytest.raises(QuotationNotFoundError):
            await service.save_quotation(999, QuotationUpdate(notes="x"), ACTOR)


@pytest.mark.asyncio
class TestReissue:
    """Tests for reissue."""

    async def test_reissue_creates_fresh_draft(self, db_session, expired_quotation):
        service = make_service(db_session, AFTER_EXPIRY)

        result = await service.reissue(expired_quotation.id, ACTOR)
        new = result.quotation

        assert result.created is True
        assert new.id != expired_quotation.id
        assert new.reissued_from_id == expired_quotation.id
        assert new.quotation_no == "QT/2324/AK/001"
        assert new.status == QuotationStatus.DRAFT
        assert new.version == "0.1"
        assert new.quotation_date == AFTER_EXPIRY
        assert new.validity_days == 30
        assert new.notes == "Original offer"
        assert new.customer_snapshot == {"company_name": "Acme Pumps Pvt Ltd", "city": "Pune"}
        assert new.items == expired_quotation.items
        assert new.grand_total == money("262.40")
        assert service.validity(new).state == ValidityState.VALID
        assert await _audit_actions(db_session, new.id) == [AuditAction.QUOTATION_REISSUED]

    async def test_reissue_leaves_source_untouched(self, db_session, expired_quotation):
        columns = ("quotation_no", "version", "status", "quotation_date", "validity_days", "items", "grand_total", "updated_at")
        before = {name: getattr(expired_quotation, name) for name in columns}
        service = make_service(db_session, AFTER_EXPIRY)

        await service.reissue(expired_quotation.id, ACTOR, validity_days=45)

        await db_session.refresh(expired_quotation)
        assert {name: getattr(expired_quotation, name) for name in columns} == before
        assert service.validity(expired_quotation).state == ValidityState.EXPIRED

    async def test_reissue_with_new_validity(self, db_session, expired_quotation):
        service = make_service(db_session, AFTER_EXPIRY)

        result = await service.reissue(expired_quotation.id, ACTOR, validity_days=15)

        assert result.quotation.validity_days == 15

    @pytest.mark.parametrize("validity_days", [0, -3])
    async def test_reissue_rejects_non_positive_validity(self, db_session, expired_quotation, validity_days):
        service = make_service(db_session, AFTER_EXPIRY)

        with pytest.raises(ValidationError):
            await service.reissue(expired_quotation.id, ACTOR, validity_days=validity_days)

    async def test_reissue_recomputes_stale_totals(self, db_session, sample_items):
        source = await QuotationFactory.create(
            db_session,
            items=sample_items,
            quotation_date=ISSUED_LONG_AGO,
            grand_total=money("999.99"),
        )
        service = make_service(db_session, AFTER_EXPIRY)

        result = await service.reissue(source.id, ACTOR)

        assert result.quotation.grand_total == money("262.40")

    async def test_reissue_keeps_extra_item_fields(self, db_session, sample_items):
        items = [dict(sample_items[0], product_name="Ball valve 2in", hsn_code="8481")]
        source = await QuotationFactory.create(db_session, items=items, quotation_date=ISSUED_LONG_AGO)
        service = make_service(db_session, AFTER_EXPIRY)

        result = await service.reissue(source.id, ACTOR)

        [item] = result.quotation.items
        assert item["product_name"] == "Ball valve 2in"
        assert item["hsn_code"] == "8481"
        assert item["line_total"] == 212.4

    async def test_reissue_of_zero_day_window_uses_default(self, db_session):
        """
        WHY: Carrying a 0-day window forward would make the fresh draft
        overdue on the day it is issued.
        """
        source = await QuotationFactory.create(
            db_session, quotation_date=ISSUED_LONG_AGO, validity_days=0
        )
        service = make_service(db_session, AFTER_EXPIRY)

        result = await service.reissue(source.id, ACTOR)

        assert result.quotation.validity_days == settings.DEFAULT_VALIDITY_DAYS
        assert service.validity(result.quotation).state == ValidityState.VALID

    async def test_reissue_of_valid_quotation_rejected(self, service, quotation):
        with pytest.raises(ReissueNotAllowedError):
            await service.reissue(quotation.id, ACTOR)

    async def test_reissue_of_closed_quotation_rejected(self, db_session):
        lost = await QuotationFactory.create(
            db_session, status=QuotationStatus.LOST, quotation_date=ISSUED_LONG_AGO
        )
        service = make_service(db_session, AFTER_EXPIRY)

        with pytest.raises(ReissueNotAllowedError):
            await service.reissue(lost.id, ACTOR)

    async def test_reissue_is_idempotent_per_key(self, db_session, expired_quotation):
        service = make_service(db_session, AFTER_EXPIRY)

        first = await service.reissue(expired_quotation.id, ACTOR, idempotency_key="retry-1")
        second = await service.reissue(expired_quotation.id, ACTOR, idempotency_key="retry-1")
        third = await service.reissue(expired_quotation.id, ACTOR, idempotency_key="retry-2")

        assert first.created is True
        assert second.created is False
        assert second.quotation.id == first.quotation.id
        assert third.created is True
        assert third.quotation.id != first.quotation.id

    async def test_reissue_unknown_source(self, service):
        with pytest.raises(QuotationNotFoundError):
            await service.reissue(999, ACTOR)


@pytest.mark.asyncio
class TestVersionHistory:
    """Tests for list_versions and get_version."""

    async def _two_saves(self, service, quotation_id):
        await service.save_quotation(quotation_id, QuotationUpdate(notes="Rev 1", comment="first change"), ACTOR)
        await service.save_quotation(
            quotation_id,
            QuotationUpdate(items=[{"qty": 1, "unit_price": 10}], comment="second change"),
            ACTOR,
        )

    async def test_list_versions_newest_first(self, service, quotation):
        await self._two_saves(service, quotation.id)

        current, versions = await service.list_versions(quotation.id)

        assert current.version == "0.3"
        assert [v.version_label for v in versions] == ["0.3", "0.2", "0.1"]
        assert versions[0].is_current is True
        assert versions[1].comment == "second change"
        assert versions[2].comment == "first change"
        assert versions[2].next_version == "0.2"

    async def test_get_version_snapshot_and_current(self, service, quotation):
        await self._two_saves(service, quotation.id)

        original = await service.get_version(quotation.id, "0.1")
        current = await service.get_version(quotation.id, "0.3")

        assert original.grand_total == money("262.40")
        assert original.is_current is False
        assert current.grand_total == money("10.00")
        assert current.is_current is True

    async def test_unknown_version(self, service, quotation):
        with pytest.raises(QuotationVersionNotFoundError):
            await service.get_version(quotation.id, "7.0")


@pytest.mark.asyncio
class TestDecisions:
    """Tests for won/lost decisions."""

    async def test_mark_won(self, db_session, service, quotation):
        decision = await service.mark_won(quotation.id, ACTOR)

        assert decision.decision == DecisionType.WON
        assert decision.decided_by == "Asha Kumar"
        await db_session.refresh(quotation)
        assert quotation.status == QuotationStatus.WON
        assert await _audit_actions(db_session, quotation.id) == [AuditAction.QUOTATION_WON]

    async def test_mark_lost_requires_reason(self, service, quotation):
        with pytest.raises(CommentRequiredError):
            await service.mark_lost(quotation.id, ACTOR, comment="  ")

    async def test_mark_lost_records_reason(self, service, quotation):
        decision = await service.mark_lost(quotation.id, ACTOR, comment="Price too high")

        assert decision.comment == "Price too high"
        assert [d.id for d in await service.list_decisions(quotation.id)] == [decision.id]

    async def test_second_decision_is_rejected(self, service, quotation):
        await service.mark_won(quotation.id, ACTOR)

        with pytest.raises(QuotationLockedError):
            await service.mark_lost(quotation.id, ACTOR, comment="changed mind")

    async def test_decided_quotation_cannot_be_saved(self, service, quotation):
        await service.mark_won(quotation.id, ACTOR)

        with pytest.raises(QuotationLockedError):
            await service.save_quotation(quotation.id, QuotationUpdate(notes="x", comment="y"), ACTOR)

    async def test_open_quotation_has_no_decisions(self, service, quotation):
        assert await service.list_decisions(quotation.id) == []


@pytest.mark.asyncio
class TestListQuotations:
    """Tests for list_quotations."""

    async def test_filter_by_status(self, db_session, service):
        await QuotationFactory.create(db_session, status=QuotationStatus.DRAFT)
        pending = await QuotationFactory.create(db_session, status=QuotationStatus.PENDING)

        quotations, total = await service.list_quotations(status=QuotationStatus.PENDING)

        assert total == 1
        assert [q.id for q in quotations] == [pending.id]

    async def test_newest_first_with_total(self, db_session, service):
        created = [await QuotationFactory.create(db_session) for _ in range(3)]

        quotations, total = await service.list_quotations(limit=2)

        assert total == 3
        assert [q.id for q in quotations] == [created[2].id, created[1].id]
