"""
Quotation Service.

WHAT: Business logic for the quotation lifecycle: create, save (with
versioning), reissue, won/lost decisions, version history and numbering.

WHY: The service layer:
1. Runs every gate (lock, expiry, comment, concurrency) before any write
2. Keeps pricing, versioning and validity rules out of the routes
3. Coordinates the quotation, version and decision DAOs in one session
4. Leaves an audit entry for every state change

HOW: Each public method works inside the caller's AsyncSession, which the
request dependency commits at the end (or rolls back on any error), so a
failed gate never leaves a partial write behind.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from quotedesk.core.actor import Actor
from quotedesk.core.config import settings
from quotedesk.core.exceptions import (
    CommentRequiredError,
    ConcurrentModificationError,
    QuotationExpiredError,
    QuotationLockedError,
    QuotationNotFoundError,
    QuotationVersionNotFoundError,
    ReissueNotAllowedError,
    ValidationError,
)
from quotedesk.dao.quotation import QuotationDAO
from quotedesk.dao.quotation_decision import QuotationDecisionDAO
from quotedesk.dao.quotation_version import QuotationVersionDAO
from quotedesk.models.audit_log import AuditAction
from quotedesk.models.quotation import Quotation, QuotationStatus, INITIAL_VERSION
from quotedesk.models.quotation_decision import QuotationDecision, DecisionType
from quotedesk.models.quotation_version import QuotationVersion
from quotedesk.schemas.quotation import QuotationCreate, QuotationUpdate
from quotedesk.services import numbering
from quotedesk.services.audit import AuditService
from quotedesk.services.customer_service import CustomerService
from quotedesk.services.pricing import compute_totals, parse_stored_items
from quotedesk.services.validity import (
    ValidityInfo,
    ValidityPolicy,
    describe_validity,
    expiry_date,
    is_expired,
)
from quotedesk.services.versioning import bump_version, require_comment


logger = logging.getLogger(__name__)


# Fields whose change moves the version (status changes do not)
CONTENT_FIELDS = (
    "salesperson_name",
    "quotation_date",
    "validity_days",
    "payment_terms",
    "terms",
    "notes",
    "items",
)

# Fields that cannot be cleared by sending null
REQUIRED_FIELDS = ("quotation_date", "validity_days")


@dataclass
class SaveResult:
    """Outcome of a save: the quotation, and whether anything was written."""

    quotation: Quotation
    changed: bool
    previous_version: str


@dataclass
class ReissueResult:
    """Outcome of a reissue; created is False for an idempotent replay."""

    quotation: Quotation
    created: bool


@dataclass(frozen=True)
class VersionView:
    """A quotation version, either a stored snapshot or the live state."""

    version_label: str
    items: List[Dict[str, Any]]
    subtotal: Decimal
    discount_total: Decimal
    tax_total: Decimal
    grand_total: Decimal
    comment: Optional[str]
    changed_by: Optional[str]
    next_version: Optional[str]
    created_at: Optional[datetime]
    is_current: bool


def _audit_value(value: Any) -> Any:
    # JSON-safe rendering for audit before/after values
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, QuotationStatus):
        return value.value
    return value


class QuotationService:
    """
    Service for the quotation lifecycle.

    Example:
        service = QuotationService(db)
        result = await service.save_quotation(
            quotation_id, QuotationUpdate(items=[...], comment="Price revised"), actor
        )
    """

    def __init__(
        self,
        session: AsyncSession,
        policy: Optional[ValidityPolicy] = None,
        clock: Optional[Callable[[], date]] = None,
    ):
        """
        Initialize QuotationService.

        Args:
            session: Async database session
            policy: Validity thresholds (default from settings)
            clock: Returns "today" (default date.today); injectable for tests
        """
        self.session = session
        self.dao = QuotationDAO(session)
        self.version_dao = QuotationVersionDAO(session)
        self.decision_dao = QuotationDecisionDAO(session)
        self.customers = CustomerService(session)
        self.audit = AuditService(session)
        self.policy = policy or ValidityPolicy.from_settings()
        self._clock = clock or date.today

    def today(self) -> date:
        """Current date as seen by this service."""
        return self._clock()

    def validity(self, quotation: Quotation) -> ValidityInfo:
        """Derived validity of a quotation as of today."""
        return describe_validity(
            quotation.quotation_date, quotation.validity_days, self.today(), self.policy
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_quotation(self, quotation_id: int) -> Quotation:
        """
        Get a quotation by ID.

        Raises:
            QuotationNotFoundError: If the quotation doesn't exist
        """
        quotation = await self.dao.get_by_id(quotation_id)
        if quotation is None:
            raise QuotationNotFoundError(quotation_id=quotation_id)
        return quotation

    async def list_quotations(
        self,
        status: Optional[QuotationStatus] = None,
        customer_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[Quotation], int]:
        """
        List quotations, newest first.

        Returns:
            Tuple of (quotations, total count without pagination)
        """
        quotations = await self.dao.list_quotations(
            status=status, customer_id=customer_id, skip=skip, limit=limit
        )
        filters: Dict[str, Any] = {}
        if status is not None:
            filters["status"] = status
        if customer_id is not None:
            filters["customer_id"] = customer_id
        return quotations, await self.dao.count(**filters)

    async def next_quotation_number(
        self,
        salesperson_name: Optional[str],
        on: Optional[date] = None,
    ) -> str:
        """
        Next quotation number for a salesperson (QT/<fy>/<initials>/<nnn>).

        Args:
            salesperson_name: Name the initials are taken from
            on: Date deciding the financial year (default today)

        Returns:
            Quotation number
        """
        on = on or self.today()
        prefix = numbering.number_prefix(
            numbering.financial_year_code(on),
            numbering.salesperson_initials(salesperson_name),
        )
        latest = await self.dao.get_latest_number(prefix)
        return numbering.format_quotation_number(prefix, numbering.next_running_number(latest))

    # ------------------------------------------------------------------
    # Create / save
    # ------------------------------------------------------------------

    async def create_quotation(self, data: QuotationCreate, actor: Actor) -> Quotation:
        """
        Create a quotation at version 0.1.

        WHAT: Prices the items, freezes the customer snapshot and assigns
        the next quotation number.

        Args:
            data: Creation payload
            actor: Who creates the quotation

        Returns:
            Created quotation

        Raises:
            ValidationError: Invalid line items, or location/contact without customer
            CustomerNotFoundError: Customer references that don't exist or don't match
        """
        totals = compute_totals([item.model_dump() for item in data.items])

        if data.customer_id is not None:
            snapshot = await self.customers.resolve_snapshot(
                data.customer_id, data.customer_location_id, data.customer_contact_id
            )
        elif data.customer_location_id is not None or data.customer_contact_id is not None:
            raise ValidationError(
                "customer_id is required when a location or contact is given",
                field="customer_id",
            )
        else:
            snapshot = data.customer_snapshot

        salesperson = (data.salesperson_name or "").strip() or actor.name
        quotation_date = data.quotation_date or self.today()
        validity_days = (
            data.validity_days
            if data.validity_days is not None
            else settings.DEFAULT_VALIDITY_DAYS
        )

        quotation = await self.dao.create(
            quotation_no=await self.next_quotation_number(salesperson, quotation_date),
            customer_id=data.customer_id,
            customer_location_id=data.customer_location_id,
            customer_contact_id=data.customer_contact_id,
            customer_snapshot=snapshot,
            salesperson_name=salesperson,
            quotation_date=quotation_date,
            validity_days=validity_days,
            payment_terms=data.payment_terms,
            terms=data.terms,
            notes=data.notes,
            status=QuotationStatus(data.status.value),
            version=INITIAL_VERSION,
            items=totals.items,
            **totals.columns(),
        )

        await self.audit.log_quotation_event(
            AuditAction.QUOTATION_CREATED,
            quotation.id,
            actor.name,
            extra_data={
                "quotation_no": quotation.quotation_no,
                "grand_total": str(totals.grand_total),
            },
        )
        logger.info(
            f"Quotation {quotation.quotation_no} (id={quotation.id}) created by {actor.name}, "
            f"grand total {totals.grand_total}"
        )
        return quotation

    def _collect_changes(self, quotation: Quotation, payload: QuotationUpdate) -> Dict[str, Any]:
        """
        Compare a save payload with the stored quotation.

        Returns:
            Column values that differ (items come with their totals)

        Raises:
            ValidationError: If the new items are invalid
        """
        requested = payload.model_dump(exclude_unset=True, exclude={"comment", "expected_version"})
        changes: Dict[str, Any] = {}

        # items: null leaves the lines as they are; [] clears them
        items = requested.pop("items", None)
        if items is not None:
            totals = compute_totals(items)
            if totals.items != (quotation.items or []):
                changes["items"] = totals.items
                changes.update(totals.columns())

        for field, value in requested.items():
            if value is None and field in REQUIRED_FIELDS:
                continue
            if field == "status":
                if value is None:
                    continue
                value = QuotationStatus(value)
            if value != getattr(quotation, field):
                changes[field] = value

        return changes

    async def save_quotation(
        self,
        quotation_id: int,
        payload: QuotationUpdate,
        actor: Actor,
        comment: Optional[str] = None,
    ) -> SaveResult:
        """
        Save changes to a quotation.

        WHAT:
        - A save with no differing field is a no-op: nothing is written,
          the version stays, and no comment is needed.
        - A content change bumps the version by 0.1, requires a comment
          and snapshots the outgoing version into the history.
        - A status-only change (draft <-> pending) is written without a bump.

        HOW: Gates run in order (expected version, lock, expiry, comment),
        then the write is a compare-and-set on the version column. If
        another save got there first the write matches no row and the
        request fails with ConcurrentModificationError.

        Args:
            quotation_id: Quotation ID
            payload: Fields to change (plus optional comment/expected_version)
            actor: Who saves
            comment: Change comment (overrides payload.comment when given)

        Returns:
            SaveResult

        Raises:
            QuotationNotFoundError: Unknown quotation
            ConcurrentModificationError: Version moved since the caller read it
            QuotationLockedError: Quotation is won or lost
            QuotationExpiredError: Quotation's validity window has elapsed
            CommentRequiredError: Version changes and no comment was given
            ValidationError: Invalid line items
        """
        quotation = await self.get_quotation(quotation_id)
        current_version = quotation.version

        if payload.expected_version is not None and payload.expected_version != current_version:
            raise ConcurrentModificationError(
                expected_version=payload.expected_version,
                current_version=current_version,
            )

        if quotation.is_closed:
            raise QuotationLockedError(
                "Won or lost quotations cannot be edited",
                status=QuotationStatus(quotation.status).value,
            )

        changes = self._collect_changes(quotation, payload)
        if not changes:
            logger.debug(f"Save of quotation {quotation.id} changed nothing")
            return SaveResult(quotation=quotation, changed=False, previous_version=current_version)

        if is_expired(quotation.quotation_date, quotation.validity_days, self.today()):
            raise QuotationExpiredError(
                quotation_id=quotation.id,
                expiry_date=expiry_date(quotation.quotation_date, quotation.validity_days).isoformat(),
            )

        content_changed = any(field in changes for field in CONTENT_FIELDS)
        new_version = bump_version(current_version) if content_changed else current_version
        cleaned_comment = require_comment(
            current_version, new_version, comment if comment is not None else payload.comment
        )

        values = dict(changes)
        if content_changed:
            values["version"] = new_version

        audit_changes = {
            field: {
                "before": _audit_value(getattr(quotation, field)),
                "after": _audit_value(value),
            }
            for field, value in values.items()
            if field != "items"
        }
        if "items" in values:
            audit_changes["items"] = {
                "before": len(quotation.items or []),
                "after": len(values["items"]),
            }

        if not await self.dao.update_if_version(quotation.id, current_version, **values):
            raise ConcurrentModificationError(
                expected_version=current_version,
                quotation_id=quotation.id,
            )

        # The loaded instance still holds the outgoing state here
        if content_changed:
            await self.version_dao.create_snapshot(
                quotation, cleaned_comment, actor.name, new_version
            )

        await self.dao.refresh(quotation)

        await self.audit.log_quotation_event(
            AuditAction.QUOTATION_UPDATED,
            quotation.id,
            actor.name,
            changes=audit_changes,
            extra_data={"comment": cleaned_comment} if cleaned_comment else None,
        )
        logger.info(
            f"Quotation {quotation.id} saved by {actor.name}: "
            f"version {current_version} -> {quotation.version}"
        )
        return SaveResult(quotation=quotation, changed=True, previous_version=current_version)

    # ------------------------------------------------------------------
    # Reissue
    # ------------------------------------------------------------------

    async def reissue(
        self,
        source_id: int,
        actor: Actor,
        validity_days: Optional[int] = None,
        idempotency_key: Optional[str] = None,
    ) -> ReissueResult:
        """
        Re-issue an expired quotation as a new record.

        WHAT: Creates a draft at version 0.1 dated today, copying customer
        references and snapshot, salesperson, items, terms, notes and
        payment terms. Totals are re-derived from the copied items. The
        source row is only read (under a row lock), never written.

        WHY: An expired quotation is a historical record of what was
        offered. Renewing the offer must not rewrite that record.

        Args:
            source_id: Expired quotation to re-issue
            actor: Who re-issues
            validity_days: New window (default: the source's window, or
                DEFAULT_VALIDITY_DAYS when that is not positive)
            idempotency_key: Retry token; a repeated call with the same key
                returns the quotation the first call created

        Returns:
            ReissueResult

        Raises:
            ValidationError: validity_days not a positive integer
            QuotationNotFoundError: Unknown source
            ReissueNotAllowedError: Source is won/lost or not expired
        """
        if validity_days is not None and (
            isinstance(validity_days, bool) or not isinstance(validity_days, int) or validity_days <= 0
        ):
            raise ValidationError("validity_days must be a positive integer", field="validity_days")

        key = idempotency_key.strip() if idempotency_key else None
        key = key or None

        source = await self.dao.get_for_update(source_id)
        if source is None:
            raise QuotationNotFoundError(quotation_id=source_id)

        if key is not None:
            existing = await self.dao.get_by_reissue_key(source.id, key)
            if existing is not None:
                logger.info(f"Reissue of quotation {source.id} replayed for key {key}")
                return ReissueResult(quotation=existing, created=False)

        if source.is_closed:
            raise ReissueNotAllowedError(
                "Won or lost quotations cannot be re-issued",
                status=QuotationStatus(source.status).value,
            )

        today = self.today()
        if not is_expired(source.quotation_date, source.validity_days, today):
            raise ReissueNotAllowedError(
                "Only expired quotations can be re-issued",
                expiry_date=expiry_date(source.quotation_date, source.validity_days).isoformat(),
            )

        totals = compute_totals(parse_stored_items(source.items))
        salesperson = source.salesperson_name or actor.name
        if validity_days is None:
            validity_days = source.validity_days
        if not validity_days or validity_days <= 0:
            # a zero-day window would start the new draft overdue
            validity_days = settings.DEFAULT_VALIDITY_DAYS

        quotation, created = await self.dao.create_reissue(
            quotation_no=await self.next_quotation_number(salesperson, today),
            customer_id=source.customer_id,
            customer_location_id=source.customer_location_id,
            customer_contact_id=source.customer_contact_id,
            customer_snapshot=dict(source.customer_snapshot) if source.customer_snapshot else None,
            salesperson_name=source.salesperson_name,
            quotation_date=today,
            validity_days=validity_days,
            payment_terms=source.payment_terms,
            terms=source.terms,
            notes=source.notes,
            status=QuotationStatus.DRAFT,
            version=INITIAL_VERSION,
            items=totals.items,
            reissued_from_id=source.id,
            reissue_key=key,
            **totals.columns(),
        )

        if created:
            await self.audit.log_quotation_event(
                AuditAction.QUOTATION_REISSUED,
                quotation.id,
                actor.name,
                extra_data={
                    "reissued_from_id": source.id,
                    "reissued_from_no": source.quotation_no,
                    "validity_days": quotation.validity_days,
                },
            )
            logger.info(
                f"Quotation {source.quotation_no} re-issued as {quotation.quotation_no} "
                f"(id={quotation.id}) by {actor.name}"
            )
        return ReissueResult(quotation=quotation, created=created)

    # ------------------------------------------------------------------
    # Version history
    # ------------------------------------------------------------------

    @staticmethod
    def _current_view(quotation: Quotation) -> VersionView:
        return VersionView(
            version_label=quotation.version,
            items=quotation.items or [],
            subtotal=quotation.subtotal,
            discount_total=quotation.discount_total,
            tax_total=quotation.tax_total,
            grand_total=quotation.grand_total,
            comment=None,
            changed_by=None,
            next_version=None,
            created_at=quotation.updated_at,
            is_current=True,
        )

    @staticmethod
    def _snapshot_view(snapshot: QuotationVersion) -> VersionView:
        return VersionView(
            version_label=snapshot.version_label,
            items=snapshot.items or [],
            subtotal=snapshot.subtotal,
            discount_total=snapshot.discount_total,
            tax_total=snapshot.tax_total,
            grand_total=snapshot.grand_total,
            comment=snapshot.comment,
            changed_by=snapshot.changed_by,
            next_version=snapshot.next_version,
            created_at=snapshot.created_at,
            is_current=False,
        )

    async def list_versions(self, quotation_id: int) -> Tuple[Quotation, List[VersionView]]:
        """
        Version history, current version first, then snapshots newest first.

        Raises:
            QuotationNotFoundError: Unknown quotation
        """
        quotation = await self.get_quotation(quotation_id)
        snapshots = await self.version_dao.get_for_quotation(quotation.id)
        return quotation, [self._current_view(quotation)] + [
            self._snapshot_view(snapshot) for snapshot in snapshots
        ]

    async def get_version(self, quotation_id: int, version_label: str) -> VersionView:
        """
        One version of a quotation; the live state when the label is current.

        Raises:
            QuotationNotFoundError: Unknown quotation
            QuotationVersionNotFoundError: No snapshot with that label
        """
        quotation = await self.get_quotation(quotation_id)
        if version_label == quotation.version:
            return self._current_view(quotation)

        snapshot = await self.version_dao.get_by_label(quotation.id, version_label)
        if snapshot is None:
            raise QuotationVersionNotFoundError(
                quotation_id=quotation.id, version_label=version_label
            )
        return self._snapshot_view(snapshot)

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    async def decide(
        self,
        quotation_id: int,
        decision: DecisionType,
        actor: Actor,
        comment: Optional[str] = None,
    ) -> QuotationDecision:
        """
        Close a quotation as won or lost.

        Args:
            quotation_id: Quotation ID
            decision: WON or LOST
            actor: Who records the decision
            comment: Reason (mandatory for LOST)

        Returns:
            Recorded decision

        Raises:
            QuotationNotFoundError: Unknown quotation
            QuotationLockedError: Already won or lost
            CommentRequiredError: LOST without a reason
            ConcurrentModificationError: Quotation changed while deciding
        """
        quotation = await self.get_quotation(quotation_id)

        if quotation.is_closed or await self.decision_dao.get_for_quotation(quotation.id):
            raise QuotationLockedError(
                "Quotation has already been decided",
                status=QuotationStatus(quotation.status).value,
            )

        cleaned = comment.strip() if comment else None
        if decision == DecisionType.LOST and not cleaned:
            raise CommentRequiredError("A reason is required to mark a quotation as lost")

        previous_status = QuotationStatus(quotation.status).value
        new_status = QuotationStatus(decision.value)
        if not await self.dao.update_if_version(quotation.id, quotation.version, status=new_status):
            raise ConcurrentModificationError(quotation_id=quotation.id)

        record = await self.decision_dao.create(
            quotation_id=quotation.id,
            decision=decision,
            comment=cleaned or None,
            decided_by=actor.name,
        )
        await self.dao.refresh(quotation)

        await self.audit.log_quotation_event(
            AuditAction.QUOTATION_WON if decision == DecisionType.WON else AuditAction.QUOTATION_LOST,
            quotation.id,
            actor.name,
            changes={"status": {"before": previous_status, "after": new_status.value}},
            extra_data={"comment": cleaned} if cleaned else None,
        )
        logger.info(f"Quotation {quotation.id} marked {new_status.value} by {actor.name}")
        return record

    async def mark_won(
        self, quotation_id: int, actor: Actor, comment: Optional[str] = None
    ) -> QuotationDecision:
        """Close a quotation as won."""
        return await self.decide(quotation_id, DecisionType.WON, actor, comment)

    async def mark_lost(
        self, quotation_id: int, actor: Actor, comment: Optional[str] = None
    ) -> QuotationDecision:
        """Close a quotation as lost; a reason is mandatory."""
        return await self.decide(quotation_id, DecisionType.LOST, actor, comment)

    async def list_decisions(self, quotation_id: int) -> List[QuotationDecision]:
        """
        Decisions recorded for a quotation (empty while it is open).

        Raises:
            QuotationNotFoundError: Unknown quotation
        """
        quotation = await self.get_quotation(quotation_id)
        decision = await self.decision_dao.get_for_quotation(quotation.id)
        return [decision] if decision is not None else []
