"""
Tests for the Status Transition Policy (``commodity_kernel.domain.status_policy``).

The transition table is exhaustive: every (from, to) pair is either a
listed transition with a fixed ledger effect or rejected.
"""

from uuid import uuid4

import pytest

from commodity_kernel.domain.ledger_keys import LedgerDirection
from commodity_kernel.domain.status_policy import ensure_editable, resolve_transition
from commodity_kernel.domain.transfers import TransferStatus
from commodity_kernel.exceptions import (
    InvalidStatusTransitionError,
    TransferNotEditableError,
    ValidatedTransferLimitedEditError,
)

P = TransferStatus.PENDING
V = TransferStatus.VALIDATED
C = TransferStatus.CANCELLED


class TestResolveTransition:
    @pytest.mark.parametrize(
        "from_status,to_status,effect",
        [
            (P, P, None),
            (P, V, LedgerDirection.ADD),
            (P, C, None),
            (V, V, None),
            (V, C, LedgerDirection.SUBTRACT),
            (C, V, LedgerDirection.ADD),
            (C, C, None),
        ],
    )
    def test_allowed_transitions(self, from_status, to_status, effect):
        decision = resolve_transition(from_status, to_status)
        assert decision.from_status is from_status
        assert decision.to_status is to_status
        assert decision.effect is effect

    @pytest.mark.parametrize("from_status,to_status", [(V, P), (C, P)])
    def test_rejected_transitions(self, from_status, to_status):
        transfer_id = uuid4()
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            resolve_transition(from_status, to_status, transfer_id)
        assert exc_info.value.from_status == from_status.value
        assert exc_info.value.to_status == to_status.value
        assert exc_info.value.code == "PRODUCT_TRANSFER_INVALID_STATUS_TRANSITION"

    def test_same_status_is_noop(self):
        for status in TransferStatus:
            assert resolve_transition(status, status).is_noop

    def test_status_accepted_as_string(self):
        assert resolve_transition(P, "validated").effect is LedgerDirection.ADD

    def test_unknown_target_status_is_rejected(self):
        with pytest.raises(InvalidStatusTransitionError):
            resolve_transition(P, "archived")


class TestEnsureEditable:
    def test_pending_accepts_any_field(self):
        ensure_editable(P, ["sender_actor_id", "transfer_date", "products"])

    def test_validated_accepts_products_only(self):
        ensure_editable(V, ["products"])

    def test_validated_rejects_other_fields(self):
        with pytest.raises(ValidatedTransferLimitedEditError) as exc_info:
            ensure_editable(V, ["products", "driver_info"])
        assert exc_info.value.fields == ["driver_info"]

    def test_validated_accepts_empty_change_set(self):
        ensure_editable(V, [])

    def test_cancelled_rejects_even_empty_change_set(self):
        with pytest.raises(TransferNotEditableError):
            ensure_editable(C, [])
