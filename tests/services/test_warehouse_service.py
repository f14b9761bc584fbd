"""
WarehouseService and WarehouseSelector: default warehouse bookkeeping,
partial updates and guarded deletion.
"""

from uuid import uuid4

import pytest

from stock_kernel.exceptions import (
    MissingFieldError,
    WarehouseInUseError,
    WarehouseNotFoundError,
)
from stock_kernel.selectors.warehouse_selector import WarehouseSelector
from stock_kernel.services.warehouse_service import WarehouseService


@pytest.fixture
def service(session):
    return WarehouseService(session)


class TestCreateWarehouse:

    def test_first_warehouse_becomes_default(self, warehouses):
        w1, w2 = warehouses
        assert w1.is_default
        assert not w2.is_default
        assert w1.address == "1 Dock Road"
        assert w1.is_active

    def test_new_default_clears_previous(self, session, service, org_id, warehouses):
        w1, _ = warehouses
        w3 = service.create_warehouse(org_id, "W3", is_default=True)

        selector = WarehouseSelector(session)
        assert selector.get_default_warehouse(org_id).id == w3.id
        assert not selector.get_warehouse(org_id, w1.id).is_default

    def test_blank_name_rejected(self, service, org_id):
        with pytest.raises(MissingFieldError):
            service.create_warehouse(org_id, "   ")

    def test_defaults_are_per_organization(self, session, create_warehouse, warehouses, org_id):
        other_org = uuid4()
        other = create_warehouse(other_org, "Other")

        assert other.is_default
        selector = WarehouseSelector(session)
        assert selector.get_default_warehouse(org_id).id == warehouses[0].id


class TestUpdateWarehouse:

    def test_partial_update(self, service, org_id, warehouses):
        _, w2 = warehouses
        updated = service.update_warehouse(org_id, w2.id, address="2 Quay Street")

        assert updated.name == "W2"
        assert updated.address == "2 Quay Street"

    def test_promote_to_default(self, session, service, org_id, warehouses):
        w1, w2 = warehouses
        service.update_warehouse(org_id, w2.id, is_default=True)

        defaults = [w for w in WarehouseSelector(session).list_warehouses(org_id) if w.is_default]
        assert [w.id for w in defaults] == [w2.id]

    def test_deactivate(self, session, service, org_id, warehouses):
        _, w2 = warehouses
        service.update_warehouse(org_id, w2.id, is_active=False)

        active = WarehouseSelector(session).list_warehouses(org_id, include_inactive=False)
        assert [w.id for w in active] == [warehouses[0].id]

    def test_other_organization_not_found(self, service, warehouses):
        with pytest.raises(WarehouseNotFoundError):
            service.update_warehouse(uuid4(), warehouses[0].id, name="Hijack")


class TestDeleteWarehouse:

    def test_unreferenced_warehouse_deleted(self, session, service, org_id, warehouses):
        _, w2 = warehouses
        service.delete_warehouse(org_id, w2.id)

        with pytest.raises(WarehouseNotFoundError):
            WarehouseSelector(session).get_warehouse(org_id, w2.id)

    def test_referenced_warehouse_kept(
        self, session, service, movement_engine, org_id, product_id, warehouses,
    ):
        _, w2 = warehouses
        movement_engine.adjust_inventory(org_id, product_id, w2.id, 1, "INCREASE")

        with pytest.raises(WarehouseInUseError) as exc_info:
            service.delete_warehouse(org_id, w2.id)

        # inventory record, ledger entry and adjustment
        assert exc_info.value.reference_count == 3
        assert WarehouseSelector(session).get_warehouse(org_id, w2.id).id == w2.id


class TestWarehouseSelector:

    def test_listing_default_first_then_name(self, create_warehouse, session, org_id):
        create_warehouse(org_id, "Main")
        create_warehouse(org_id, "Annex")
        create_warehouse(org_id, "Backlot")

        names = [w.name for w in WarehouseSelector(session).list_warehouses(org_id)]
        assert names == ["Main", "Annex", "Backlot"]

    def test_no_default_without_warehouses(self, session):
        assert WarehouseSelector(session).get_default_warehouse(uuid4()) is None
