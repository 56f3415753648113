"""
Tests for transfer code allocation.

Covers the code format, per-prefix/per-year counters, skipping codes that
already exist and the bounded retry, both on in-memory ports and on the
SequenceService counter table.
"""

from datetime import UTC, date, datetime

import pytest

from commodity_kernel.domain.clock import DeterministicClock
from commodity_kernel.domain.transfers import TransferType
from commodity_kernel.exceptions import SequenceError, TransferCodeExhaustedError
from commodity_kernel.models.transfer import ProductTransfer
from commodity_kernel.services.sequence_service import SequenceService
from commodity_kernel.services.transfer_code_service import (
    TransferCodeGenerator,
    format_transfer_code,
    sequence_name_for,
)
from commodity_kernel.services.transfer_repository import SqlTransferRepository

from fakes import InMemorySequence, InMemoryTransferRepository, build_world


class _TakenCodes(InMemoryTransferRepository):
    def __init__(self, taken):
        super().__init__()
        self.taken = set(taken)

    def code_exists(self, code):
        return code in self.taken


class TestFormat:
    def test_zero_padded(self):
        assert format_transfer_code("GRP", 2024, 42) == "GRP-2024-00042"

    def test_number_wider_than_padding(self):
        assert format_transfer_code("TRP", 2024, 123456) == "TRP-2024-123456"

    def test_sequence_name(self):
        assert sequence_name_for("GRP", 2025) == "transfer_code.GRP.2025"


class TestTransferCodeGenerator:
    def test_prefix_per_type(self):
        generator = TransferCodeGenerator(InMemorySequence(), _TakenCodes([]), DeterministicClock())
        assert generator.generate(TransferType.GROUPAGE) == "GRP-2024-00001"
        assert generator.generate(TransferType.STANDARD) == "TRP-2024-00001"
        assert generator.generate(TransferType.GROUPAGE) == "GRP-2024-00002"

    def test_counter_restarts_each_year(self):
        clock = DeterministicClock()
        generator = TransferCodeGenerator(InMemorySequence(), _TakenCodes([]), clock)
        generator.generate(TransferType.GROUPAGE)
        clock.set_time(datetime(2025, 1, 2, tzinfo=UTC))
        assert generator.generate(TransferType.GROUPAGE) == "GRP-2025-00001"

    def test_existing_codes_are_skipped(self, captured_logs):
        generator = TransferCodeGenerator(
            InMemorySequence(),
            _TakenCodes(["GRP-2024-00001", "GRP-2024-00002"]),
            DeterministicClock(),
        )
        assert generator.generate(TransferType.GROUPAGE) == "GRP-2024-00003"
        collisions = [r for r in captured_logs() if r["message"] == "transfer_code_collision"]
        assert [r["code"] for r in collisions] == ["GRP-2024-00001", "GRP-2024-00002"]

    def test_bounded_retry(self):
        generator = TransferCodeGenerator(
            InMemorySequence(),
            _TakenCodes([f"GRP-2024-{n:05d}" for n in range(1, 10)]),
            DeterministicClock(),
            max_attempts=3,
        )
        with pytest.raises(TransferCodeExhaustedError) as exc_info:
            generator.generate(TransferType.GROUPAGE)
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value, SequenceError)

    def test_custom_prefixes_and_padding(self):
        generator = TransferCodeGenerator(
            InMemorySequence(),
            _TakenCodes([]),
            DeterministicClock(),
            prefixes={TransferType.GROUPAGE: "GR", TransferType.STANDARD: "ST"},
            padding=3,
        )
        assert generator.generate(TransferType.STANDARD) == "ST-2024-001"

    @pytest.mark.parametrize("kwargs", [{"padding": 0}, {"max_attempts": 0}])
    def test_invalid_settings(self, kwargs):
        with pytest.raises(ValueError):
            TransferCodeGenerator(InMemorySequence(), _TakenCodes([]), DeterministicClock(), **kwargs)

    def test_exhaustion_leaves_no_transfer(self):
        world = build_world(code_max_attempts=1)
        existing = world.service.create(world.groupage_draft())
        world.sequences.counters.clear()

        with pytest.raises(TransferCodeExhaustedError):
            world.service.create(world.groupage_draft())
        assert list(world.transfers.rows) == [existing.id]


@pytest.mark.sql
class TestSequenceService:
    def test_next_value_increments(self, session):
        sequences = SequenceService(session)
        assert [sequences.next_value("s") for _ in range(3)] == [1, 2, 3]
        assert sequences.current_value("s") == 3

    def test_independent_sequences(self, session):
        sequences = SequenceService(session)
        sequences.next_value("a")
        assert sequences.next_value("b") == 1

    def test_reset(self, session):
        sequences = SequenceService(session)
        sequences.next_value("s")
        sequences.reset("s", 41)
        assert sequences.next_value("s") == 42

    def test_rollback_returns_value(self, session):
        sequences = SequenceService(session)
        sequences.next_value("s")
        session.commit()
        sequences.next_value("s")
        session.rollback()
        assert sequences.next_value("s") == 2


@pytest.mark.sql
class TestSqlCodeAllocation:
    def _legacy_row(self, reference_data, code):
        return ProductTransfer(
            code=code,
            transfer_type="GROUPAGE",
            sender_actor_id=reference_data.producer_id,
            receiver_actor_id=reference_data.opa_id,
            receiver_store_id=reference_data.store_b_id,
            campaign_id=reference_data.campaign_id,
            transfer_date=date(2024, 1, 1),
            products=[{"quality": "grade_1", "weight": "1", "number_of_bags": 1}],
            status="validated",
        )

    def test_legacy_code_is_skipped(self, session, reference_data, clock):
        session.add(self._legacy_row(reference_data, "GRP-2024-00001"))
        session.commit()

        generator = TransferCodeGenerator(SequenceService(session), SqlTransferRepository(session), clock)
        assert generator.generate(TransferType.GROUPAGE) == "GRP-2024-00002"

    def test_exhausted_after_max_attempts(self, session, reference_data, clock):
        session.add(self._legacy_row(reference_data, "GRP-2024-00001"))
        session.commit()

        generator = TransferCodeGenerator(
            SequenceService(session), SqlTransferRepository(session), clock, max_attempts=1
        )
        with pytest.raises(TransferCodeExhaustedError):
            generator.generate(TransferType.GROUPAGE)
