"""
Transfer Service -- orchestration of the product-transfer lifecycle.

Responsibility:
    create / update / update_status / delete / find_by_id / list for
    product transfers, keeping the GROUPAGE and STANDARD quantity ledgers
    equal to the sum of the currently validated transfers.

Architecture position:
    Kernel > Services.  Composes the pure domain (status policy, delta
    calculator) with injected ports (repositories, lookups, code
    generator, audit recorder, unit of work).  ``build_sql_transfer_service``
    wires the SQL implementations around one session.

Transaction boundary:
    Every mutating operation runs inside one UnitOfWork: validation,
    code allocation, the transfer write and all ledger movements commit
    together or not at all.  A raised error leaves transfer and ledger
    exactly as they were.

    The audit entry is written afterwards, in its own unit of work.  Audit
    failures are logged at WARNING and swallowed: ledger correctness never
    depends on the audit trail.

Ledger effects:
    create(validated)              ADD every product line
    update_status                  per status_policy table, exactly once
    update(products, validated)    delta path: calculate_product_differences
                                   then apply additions and subtractions
    update(pending) / delete       none
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import timedelta
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from commodity_kernel.domain.clock import Clock, SystemClock
from commodity_kernel.domain.delta_calculator import (
    COUPLED,
    DeltaPolicy,
    calculate_product_differences,
    describe_product_changes,
)
from commodity_kernel.domain.ledger_keys import LedgerDirection
from commodity_kernel.domain.ports import (
    ActorLookup,
    AuditRecorder,
    CampaignLookup,
    CodeGenerator,
    StoreLookup,
    TransferRepository,
    UnitOfWork,
)
from commodity_kernel.domain.status_policy import ensure_editable, resolve_transition
from commodity_kernel.domain.transfers import (
    AuditContext,
    Transfer,
    TransferDraft,
    TransferFilters,
    TransferPage,
    TransferQuery,
    TransferStatus,
    TransferType,
    TransferUpdate,
    build_transfer,
    validate_products,
)
from commodity_kernel.exceptions import (
    CampaignNotFoundError,
    InvalidInitialStatusError,
    NoActiveCampaignError,
    ReceiverActorNotActiveError,
    ReceiverActorNotFoundError,
    ReceiverStoreNotFoundError,
    ReceiverStoreNotInCampaignError,
    SameSenderAndReceiverError,
    SenderActorNotActiveError,
    SenderActorNotFoundError,
    SenderStoreNotFoundError,
    SenderStoreNotInCampaignError,
    SenderStoreRequiredError,
    TransferNotFoundError,
    ValidatedTransferNotDeletableError,
)
from commodity_kernel.logging_config import LogContext, get_logger
from commodity_kernel.models.audit_log import AuditAction
from commodity_kernel.services.quantity_applier import TransferLedger

logger = get_logger("services.transfer")

AUDITABLE_TYPE = "product_transfer"
DEFAULT_PAGE_SIZE = 20

_INITIAL_STATUSES = (TransferStatus.PENDING, TransferStatus.VALIDATED)


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


class TransferService:
    """
    Lifecycle operations on product transfers.

    Contract:
        Each mutating method is atomic: it either returns the new
        transfer with all ledger effects committed, or raises a
        CommodityKernelError with nothing changed.

    Guarantees:
        - Ledger totals never go negative (clamped decrement).
        - A status change applies its ledger effect exactly once; a
          same-status update_status is a no-op with no write and no
          audit entry.
        - Validated transfers are re-based by signed deltas, never by a
          full subtract-then-add.

    Non-goals:
        - Does NOT authenticate or authorize; AuditContext is recorded
          as given.
        - Does NOT hard-delete anything.
    """

    def __init__(
        self,
        *,
        transfers: TransferRepository,
        ledger: TransferLedger,
        actors: ActorLookup,
        stores: StoreLookup,
        campaigns: CampaignLookup,
        codes: CodeGenerator,
        unit_of_work: Callable[[], UnitOfWork],
        audit: AuditRecorder | None = None,
        clock: Clock | None = None,
        delta_policy: DeltaPolicy = COUPLED,
        default_status: TransferStatus = TransferStatus.VALIDATED,
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ):
        if default_status not in _INITIAL_STATUSES:
            raise ValueError(f"default_status must be pending or validated, got {default_status}")
        self._transfers = transfers
        self._ledger = ledger
        self._actors = actors
        self._stores = stores
        self._campaigns = campaigns
        self._codes = codes
        self._unit_of_work = unit_of_work
        self._audit = audit
        self._clock = clock or SystemClock()
        self._delta_policy = delta_policy
        self._default_status = default_status
        self._default_page_size = default_page_size

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_id(self, transfer_id: UUID) -> Transfer | None:
        return self._transfers.get(transfer_id)

    def list(self, filters: TransferFilters | None = None) -> TransferPage:
        """
        Filtered, paginated transfers, newest first.

        Without an explicit ``campaign_id`` the active campaign scopes the
        result; with no active campaign, no campaign filter applies.
        """
        filters = filters or TransferFilters()
        limit = filters.limit or self._default_page_size

        campaign_id = filters.campaign_id
        if campaign_id is None:
            active = self._campaigns.get_active()
            campaign_id = active.id if active else None

        created_since = None
        if filters.period is not None:
            created_since = self._clock.now() - timedelta(days=filters.period)

        query = TransferQuery(
            offset=(filters.page - 1) * limit,
            limit=limit,
            transfer_type=filters.transfer_type,
            status=filters.status,
            sender_actor_id=filters.sender_actor_id,
            receiver_actor_id=filters.receiver_actor_id,
            campaign_id=campaign_id,
            start_date=filters.start_date,
            end_date=filters.end_date,
            created_since=created_since,
            search=filters.search or None,
        )
        items, total = self._transfers.search(query)
        return TransferPage(
            items=tuple(items),
            total=total,
            current_page=filters.page,
            per_page=limit,
        )

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _resolve_campaign(self, campaign_id: UUID | None) -> UUID:
        if campaign_id is not None:
            if self._campaigns.find_by_id(campaign_id) is None:
                raise CampaignNotFoundError(campaign_id)
            return campaign_id
        active = self._campaigns.get_active()
        if active is None:
            raise NoActiveCampaignError()
        return active.id

    def _require_actor(self, actor_id: UUID, *, sender: bool):
        actor = self._actors.find_by_id(actor_id)
        if actor is None:
            raise SenderActorNotFoundError(actor_id) if sender else ReceiverActorNotFoundError(actor_id)
        return actor

    def _require_store(self, store_id: UUID, *, sender: bool):
        store = self._stores.find_by_id(store_id)
        if store is None:
            raise SenderStoreNotFoundError(store_id) if sender else ReceiverStoreNotFoundError(store_id)
        return store

    def _validate_draft(self, draft: TransferDraft) -> UUID:
        campaign_id = self._resolve_campaign(draft.campaign_id)

        sender = self._require_actor(draft.sender_actor_id, sender=True)
        receiver = self._require_actor(draft.receiver_actor_id, sender=False)
        if not sender.is_active:
            raise SenderActorNotActiveError(sender.id, sender.status)
        if not receiver.is_active:
            raise ReceiverActorNotActiveError(receiver.id, receiver.status)

        if draft.sender_store_id is not None:
            store = self._require_store(draft.sender_store_id, sender=True)
            if not store.is_in_campaign(campaign_id):
                raise SenderStoreNotInCampaignError(store.id, campaign_id)
        elif TransferType(draft.transfer_type) is TransferType.STANDARD:
            raise SenderStoreRequiredError(TransferType.STANDARD.value)

        store = self._require_store(draft.receiver_store_id, sender=False)
        if not store.is_in_campaign(campaign_id):
            raise ReceiverStoreNotInCampaignError(store.id, campaign_id)

        self._ensure_distinct_counterparts(
            draft.transfer_type,
            draft.sender_store_id,
            draft.sender_actor_id,
            draft.receiver_store_id,
            draft.receiver_actor_id,
        )

        return campaign_id

    def _validate_references(self, changes: TransferUpdate, changed: list[str]) -> None:
        if "sender_actor_id" in changed:
            self._require_actor(changes.sender_actor_id, sender=True)
        if "receiver_actor_id" in changed:
            self._require_actor(changes.receiver_actor_id, sender=False)
        if "sender_store_id" in changed:
            self._require_store(changes.sender_store_id, sender=True)
        if "receiver_store_id" in changed:
            self._require_store(changes.receiver_store_id, sender=False)

    @staticmethod
    def _ensure_distinct_counterparts(
        transfer_type: TransferType | str,
        sender_store_id: UUID | None,
        sender_actor_id: UUID,
        receiver_store_id: UUID,
        receiver_actor_id: UUID,
    ) -> None:
        # A STANDARD movement onto its own row would credit and debit the same total.
        if TransferType(transfer_type) is not TransferType.STANDARD:
            return
        if (sender_store_id, sender_actor_id) == (receiver_store_id, receiver_actor_id):
            raise SameSenderAndReceiverError(receiver_store_id, receiver_actor_id)

    def _get_or_raise(self, transfer_id: UUID) -> Transfer:
        transfer = self._transfers.get(transfer_id)
        if transfer is None:
            raise TransferNotFoundError(transfer_id)
        return transfer

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, draft: TransferDraft, audit: AuditContext | None = None) -> Transfer:
        try:
            status = TransferStatus(draft.status) if draft.status else self._default_status
        except ValueError:
            raise InvalidInitialStatusError(str(draft.status)) from None
        if status not in _INITIAL_STATUSES:
            raise InvalidInitialStatusError(status.value)

        with self._unit_of_work():
            campaign_id = self._validate_draft(draft)
            products = validate_products(draft.products)
            code = self._codes.generate(TransferType(draft.transfer_type))
            now = self._clock.now()

            transfer = build_transfer(
                draft.transfer_type,
                id=uuid4(),
                code=code,
                sender_actor_id=draft.sender_actor_id,
                sender_store_id=draft.sender_store_id,
                receiver_actor_id=draft.receiver_actor_id,
                receiver_store_id=draft.receiver_store_id,
                campaign_id=campaign_id,
                transfer_date=draft.transfer_date,
                products=products,
                status=status,
                driver_info=draft.driver_info,
                created_by_id=draft.created_by_id,
                created_at=now,
                updated_at=now,
            )
            self._transfers.add(transfer)

            with LogContext.bind(transfer_id=transfer.id, campaign_id=campaign_id):
                movements = []
                if status is TransferStatus.VALIDATED:
                    movements = self._ledger.apply_products(
                        transfer, transfer.products, LedgerDirection.ADD
                    )
                logger.info(
                    "transfer_created",
                    extra={
                        "code": transfer.code,
                        "transfer_type": transfer.transfer_type.value,
                        "status": status.value,
                        "movements": len(movements),
                    },
                )

        self._record_audit(audit, transfer.id, AuditAction.CREATE, None, transfer.to_dict())
        return transfer

    def update(
        self,
        transfer_id: UUID,
        changes: TransferUpdate,
        audit: AuditContext | None = None,
    ) -> Transfer:
        with self._unit_of_work(), LogContext.bind(transfer_id=transfer_id):
            transfer = self._get_or_raise(transfer_id)
            changed = changes.changed_fields(transfer)
            ensure_editable(transfer.status, changed, transfer.id)

            if not changed:
                logger.debug("transfer_update_noop")
                return transfer

            self._validate_references(changes, changed)

            values: dict[str, Any] = {name: getattr(changes, name) for name in changed}
            product_changes: list[dict[str, Any]] = []
            if "products" in changed:
                values["products"] = validate_products(changes.products)
                product_changes = describe_product_changes(transfer.products, values["products"])
                if transfer.status is TransferStatus.VALIDATED:
                    differences = calculate_product_differences(
                        transfer.products, values["products"], self._delta_policy
                    )
                    movements = self._ledger.apply_differences(transfer, differences)
                    logger.info(
                        "transfer_products_rebased",
                        extra={
                            "code": transfer.code,
                            "added": len(differences.to_add),
                            "subtracted": len(differences.to_subtract),
                            "movements": len(movements),
                            "delta_policy": self._delta_policy.name,
                        },
                    )

            updated = replace(transfer, **values, updated_at=self._clock.now())
            self._ensure_distinct_counterparts(
                updated.transfer_type,
                updated.sender_store,
                updated.sender_actor_id,
                updated.receiver_store_id,
                updated.receiver_actor_id,
            )
            self._transfers.save(updated)
            logger.info("transfer_updated", extra={"code": updated.code, "fields": changed})

        old_values = {name: _jsonable(getattr(transfer, name)) for name in changed if name != "products"}
        new_values = {name: _jsonable(getattr(updated, name)) for name in changed if name != "products"}
        if product_changes:
            old_values["products"] = [p.to_dict() for p in transfer.products]
            new_values["products"] = [p.to_dict() for p in updated.products]
            new_values["product_changes"] = product_changes
        self._record_audit(audit, updated.id, AuditAction.UPDATE, old_values, new_values)
        return updated

    def update_status(
        self,
        transfer_id: UUID,
        status: TransferStatus | str,
        audit: AuditContext | None = None,
    ) -> Transfer:
        with self._unit_of_work(), LogContext.bind(transfer_id=transfer_id):
            transfer = self._get_or_raise(transfer_id)
            decision = resolve_transition(transfer.status, status, transfer.id)

            if decision.is_noop:
                logger.debug("transfer_status_unchanged", extra={"status": transfer.status.value})
                return transfer

            movements = []
            if decision.effect is not None:
                movements = self._ledger.apply_products(transfer, transfer.products, decision.effect)

            updated = replace(transfer, status=decision.to_status, updated_at=self._clock.now())
            self._transfers.save(updated)
            logger.info(
                "transfer_status_changed",
                extra={
                    "code": transfer.code,
                    "from_status": decision.from_status.value,
                    "to_status": decision.to_status.value,
                    "ledger_effect": decision.effect.value if decision.effect else None,
                    "movements": len(movements),
                },
            )

        self._record_audit(
            audit,
            updated.id,
            AuditAction.UPDATE_STATUS,
            {"status": transfer.status.value},
            {"status": updated.status.value},
        )
        return updated

    def delete(self, transfer_id: UUID, audit: AuditContext | None = None) -> None:
        with self._unit_of_work(), LogContext.bind(transfer_id=transfer_id):
            transfer = self._get_or_raise(transfer_id)
            if transfer.status is TransferStatus.VALIDATED:
                raise ValidatedTransferNotDeletableError(transfer.id)

            now = self._clock.now()
            self._transfers.save(replace(transfer, deleted_at=now, updated_at=now))
            logger.info("transfer_deleted", extra={"code": transfer.code})

        self._record_audit(audit, transfer.id, AuditAction.DELETE, {"code": transfer.code}, None)

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def _record_audit(
        self,
        context: AuditContext | None,
        transfer_id: UUID,
        action: AuditAction,
        old_values: dict[str, Any] | None,
        new_values: dict[str, Any] | None,
    ) -> None:
        if context is None or self._audit is None:
            return
        try:
            with self._unit_of_work():
                self._audit.log_action(
                    auditable_type=AUDITABLE_TYPE,
                    auditable_id=transfer_id,
                    action=action.value,
                    user_id=context.user_id,
                    user_role=context.user_role,
                    old_values=old_values,
                    new_values=new_values,
                    ip_address=context.ip_address,
                    user_agent=context.user_agent,
                )
        except Exception:
            # The ledger transaction is already committed
            logger.warning(
                "audit_log_failed",
                exc_info=True,
                extra={"transfer_id": str(transfer_id), "action": action.value},
            )


def build_sql_transfer_service(
    session: Session,
    *,
    clock: Clock | None = None,
    delta_policy: DeltaPolicy = COUPLED,
    default_status: TransferStatus = TransferStatus.VALIDATED,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    code_prefixes: dict[TransferType, str] | None = None,
    code_padding: int = 5,
    code_max_attempts: int = 10,
    audit_enabled: bool = True,
) -> TransferService:
    """Wire a TransferService on the SQL implementations of every port."""
    from commodity_kernel.selectors.reference_selector import (
        ActorSelector,
        CampaignSelector,
        StoreSelector,
    )
    from commodity_kernel.services.audit_service import SqlAuditRecorder
    from commodity_kernel.services.ledger_repository import (
        SqlGroupageLedgerRepository,
        SqlStoreLedgerRepository,
    )
    from commodity_kernel.services.quantity_applier import (
        GroupageQuantityApplier,
        StoreQuantityApplier,
    )
    from commodity_kernel.services.sequence_service import SequenceService
    from commodity_kernel.services.transfer_code_service import TransferCodeGenerator
    from commodity_kernel.services.transfer_repository import (
        SessionUnitOfWork,
        SqlTransferRepository,
    )

    clock = clock or SystemClock()
    transfers = SqlTransferRepository(session)
    ledger = TransferLedger(
        groupage=GroupageQuantityApplier(SqlGroupageLedgerRepository(session, clock)),
        store=StoreQuantityApplier(SqlStoreLedgerRepository(session, clock)),
    )
    codes = TransferCodeGenerator(
        sequences=SequenceService(session),
        transfers=transfers,
        clock=clock,
        prefixes=code_prefixes,
        padding=code_padding,
        max_attempts=code_max_attempts,
    )
    return TransferService(
        transfers=transfers,
        ledger=ledger,
        actors=ActorSelector(session),
        stores=StoreSelector(session),
        campaigns=CampaignSelector(session),
        codes=codes,
        unit_of_work=lambda: SessionUnitOfWork(session),
        audit=SqlAuditRecorder(session, clock) if audit_enabled else None,
        clock=clock,
        delta_policy=delta_policy,
        default_status=default_status,
        default_page_size=default_page_size,
    )
