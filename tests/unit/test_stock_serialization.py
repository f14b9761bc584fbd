"""Wire shaping of kernel DTOs for the JSON facade."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from stock_kernel.domain.dtos import InventoryRecordInfo, StockValuation
from stock_kernel.domain.values import TransferStatus
from stock_services.serialization import serialize, to_camel, to_json_value


def test_to_camel():
    assert to_camel("organization_id") == "organizationId"
    assert to_camel("avg_cost_price") == "avgCostPrice"
    assert to_camel("id") == "id"


def test_scalar_values():
    uid = uuid4()
    assert to_json_value(uid) == str(uid)
    assert to_json_value(Decimal("1.50")) == "1.50"
    assert to_json_value(TransferStatus.PENDING) == "PENDING"
    assert to_json_value(datetime(2024, 1, 1, tzinfo=timezone.utc)) == "2024-01-01T00:00:00+00:00"


def test_nested_dataclasses():
    record = InventoryRecordInfo(
        id=uuid4(),
        organization_id=uuid4(),
        product_id=uuid4(),
        warehouse_id=uuid4(),
        quantity=-3,
        avg_cost_price=Decimal("2"),
        last_updated=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    body = serialize(StockValuation(total_value=record.value, inventories=(record,)))

    assert body["totalValue"] == "-6"
    assert body["inventories"][0]["productId"] == str(record.product_id)
    assert body["inventories"][0]["quantity"] == -3
