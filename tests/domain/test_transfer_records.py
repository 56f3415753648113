"""
Tests for transfer value objects (``commodity_kernel.domain.transfers``)
and the ledger key space (``commodity_kernel.domain.ledger_keys``).
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from commodity_kernel.domain.ledger_keys import (
    GroupageLedgerKey,
    LedgerBalance,
    LedgerDelta,
    LedgerDirection,
    StoreMovementKey,
)
from commodity_kernel.domain.transfers import (
    DriverInfo,
    GroupageTransfer,
    ProductLine,
    StandardTransfer,
    Transfer,
    TransferFilters,
    TransferPage,
    TransferStatus,
    TransferType,
    TransferUpdate,
    build_transfer,
    validate_products,
)
from commodity_kernel.exceptions import (
    DuplicateProductQualityError,
    InvalidProductLineError,
    ProductsRequiredError,
    SenderStoreRequiredError,
)


def _fields(**overrides):
    fields = dict(
        id=uuid4(),
        code="GRP-2024-00001",
        sender_actor_id=uuid4(),
        receiver_actor_id=uuid4(),
        receiver_store_id=uuid4(),
        campaign_id=uuid4(),
        transfer_date=date(2024, 1, 1),
        products=(ProductLine("grade_1", Decimal("500"), 25),),
    )
    fields.update(overrides)
    return fields


class TestValidateProducts:
    def test_returns_tuple(self):
        lines = [ProductLine("grade_1", Decimal("500.50"), 25)]
        assert validate_products(lines) == tuple(lines)

    def test_empty_list_rejected(self):
        with pytest.raises(ProductsRequiredError):
            validate_products([])

    def test_duplicate_quality_rejected(self):
        with pytest.raises(DuplicateProductQualityError) as exc_info:
            validate_products(
                [ProductLine("grade_1", Decimal("1"), 1), ProductLine("grade_1", Decimal("2"), 2)]
            )
        assert exc_info.value.quality == "grade_1"

    def test_quality_is_stripped_before_duplicate_check(self):
        with pytest.raises(DuplicateProductQualityError):
            validate_products(
                [ProductLine("grade_1", Decimal("1"), 1), ProductLine(" grade_1 ", Decimal("2"), 2)]
            )

    @pytest.mark.parametrize(
        "quality,weight,bags",
        [
            ("", "10", 1),
            ("   ", "10", 1),
            ("x" * 101, "10", 1),
            ("grade_1", "0", 1),
            ("grade_1", "-5", 1),
            ("grade_1", "10.001", 1),
            ("grade_1", "10", 0),
            ("grade_1", "10", -3),
            ("grade_1", "10", 2.5),
            ("grade_1", "10", True),
        ],
    )
    def test_invalid_lines_rejected(self, quality, weight, bags):
        with pytest.raises(InvalidProductLineError):
            validate_products([ProductLine(quality, Decimal(weight), bags)])

    def test_weight_coerced_from_string(self):
        line = ProductLine("grade_1", "12.5", 3)
        assert line.weight == Decimal("12.5")

    def test_non_numeric_weight_rejected(self):
        with pytest.raises(InvalidProductLineError):
            ProductLine("grade_1", "heavy", 3)

    def test_round_trip_dict(self):
        line = ProductLine("grade_1", Decimal("12.50"), 3)
        assert line.to_dict() == {"quality": "grade_1", "weight": "12.50", "number_of_bags": 3}
        assert ProductLine.from_dict(line.to_dict()) == line


class TestTransferVariants:
    def test_groupage_ledger_key(self):
        transfer = build_transfer(TransferType.GROUPAGE, **_fields())
        assert isinstance(transfer, GroupageTransfer)
        key = transfer.ledger_key("grade_1")
        assert key == GroupageLedgerKey(
            actor_id=transfer.sender_actor_id,
            campaign_id=transfer.campaign_id,
            opa_id=transfer.receiver_actor_id,
            quality="grade_1",
        )
        assert key.parcel_id is None

    def test_groupage_sender_store_is_not_part_of_key(self):
        store_id = uuid4()
        fields = _fields()
        with_store = build_transfer(TransferType.GROUPAGE, sender_store_id=store_id, **fields)
        without = build_transfer(TransferType.GROUPAGE, **fields)
        assert with_store.ledger_key("q") == without.ledger_key("q")
        assert with_store.sender_store == store_id

    def test_shared_base_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            Transfer(**_fields())

    def test_standard_requires_sender_store(self):
        with pytest.raises(SenderStoreRequiredError):
            build_transfer(TransferType.STANDARD, **_fields())

    def test_standard_ledger_key_pairs_sender_and_receiver_rows(self):
        sender_store = uuid4()
        transfer = build_transfer("STANDARD", sender_store_id=sender_store, **_fields())
        assert isinstance(transfer, StandardTransfer)
        key = transfer.ledger_key("grade_2")
        assert isinstance(key, StoreMovementKey)
        assert key.sender.store_id == sender_store
        assert key.sender.actor_id == transfer.sender_actor_id
        assert key.receiver.store_id == transfer.receiver_store_id
        assert key.receiver.actor_id == transfer.receiver_actor_id
        assert key.sender.campaign_id == key.receiver.campaign_id == transfer.campaign_id
        assert key.quality == "grade_2"

    def test_to_dict_is_json_safe(self):
        transfer = build_transfer(
            TransferType.GROUPAGE,
            driver_info=DriverInfo(full_name="Jean", vehicle_registration="LT-123"),
            **_fields(),
        )
        data = transfer.to_dict()
        assert data["transfer_type"] == "GROUPAGE"
        assert data["status"] == "validated"
        assert data["transfer_date"] == "2024-01-01"
        assert data["products"] == [{"quality": "grade_1", "weight": "500", "number_of_bags": 25}]
        assert data["driver_info"]["vehicle_registration"] == "LT-123"


class TestTransferUpdate:
    def test_none_fields_are_not_changes(self):
        transfer = build_transfer(TransferType.GROUPAGE, **_fields())
        assert TransferUpdate().changed_fields(transfer) == []

    def test_equal_values_are_not_changes(self):
        transfer = build_transfer(TransferType.GROUPAGE, **_fields())
        update = TransferUpdate(
            transfer_date=transfer.transfer_date,
            receiver_actor_id=transfer.receiver_actor_id,
            products=list(transfer.products),
        )
        assert update.changed_fields(transfer) == []

    def test_changed_fields_listed_products_last(self):
        transfer = build_transfer(TransferType.GROUPAGE, **_fields())
        update = TransferUpdate(
            products=[ProductLine("grade_9", Decimal("1"), 1)],
            transfer_date=date(2024, 2, 1),
        )
        assert update.changed_fields(transfer) == ["transfer_date", "products"]


class TestFiltersAndPages:
    @pytest.mark.parametrize("kwargs", [{"page": 0}, {"limit": 0}, {"period": 0}])
    def test_invalid_filters_rejected(self, kwargs):
        with pytest.raises(ValueError):
            TransferFilters(**kwargs)

    @pytest.mark.parametrize("total,per_page,last", [(0, 20, 1), (20, 20, 1), (21, 20, 2), (5, 2, 3)])
    def test_last_page(self, total, per_page, last):
        assert TransferPage(items=(), total=total, current_page=1, per_page=per_page).last_page == last


class TestLedgerValues:
    def test_delta_rejects_negative_magnitudes(self):
        with pytest.raises(ValueError):
            LedgerDelta(weight=Decimal("-1"), bags=0)
        with pytest.raises(ValueError):
            LedgerDelta(weight=Decimal("1"), bags=-1)

    def test_zero_delta(self):
        assert LedgerDelta(weight=Decimal("0"), bags=0).is_zero
        assert not LedgerDelta(weight=Decimal("0"), bags=1).is_zero

    def test_minus_clamped_floors_each_total_independently(self):
        balance = LedgerBalance(total_weight=Decimal("100"), total_bags=10)
        result = balance.minus_clamped(LedgerDelta(weight=Decimal("150"), bags=4))
        assert result == LedgerBalance(total_weight=Decimal("0"), total_bags=6)

    def test_direction_opposite(self):
        assert LedgerDirection.ADD.opposite is LedgerDirection.SUBTRACT
        assert LedgerDirection.SUBTRACT.opposite is LedgerDirection.ADD

    def test_default_status_is_validated(self):
        transfer = build_transfer(TransferType.GROUPAGE, **_fields())
        assert transfer.status is TransferStatus.VALIDATED
