# shopcore/repos/inventory_repo.py
from sqlalchemy import select, update, func
from sqlalchemy.orm import Session

from shopcore.data.models.inventory import InventoryLocationModel, StockMovementModel


class InventoryRepo:
    """
    Jedyne miejsce, gdzie zmieniaja sie liczniki stanow.
    Kazda zmiana to warunkowy UPDATE - warunek pilnuje 0 <= reserved <= quantity,
    rowcount == 0 znaczy ze warunek nie przeszedl.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_location(self, tenant_id: int, location_id: int) -> InventoryLocationModel | None:
        return self.db.execute(
            select(InventoryLocationModel).where(
                InventoryLocationModel.tenant_id == tenant_id,
                InventoryLocationModel.id == location_id,
            )
        ).scalar_one_or_none()

    def list_locations(
        self, tenant_id: int, shop_id: int, variant_id: int, location_code: str | None = None
    ) -> list[InventoryLocationModel]:
        stmt = select(InventoryLocationModel).where(
            InventoryLocationModel.tenant_id == tenant_id,
            InventoryLocationModel.shop_id == shop_id,
            InventoryLocationModel.product_variant_id == variant_id,
        )
        if location_code is not None:
            stmt = stmt.where(InventoryLocationModel.location_code == location_code)
        return list(self.db.execute(stmt.order_by(InventoryLocationModel.id)).scalars().all())

    def available_base_units(
        self, tenant_id: int, shop_id: int, variant_id: int, location_code: str | None = None
    ) -> int:
        stmt = select(
            func.coalesce(func.sum(InventoryLocationModel.quantity - InventoryLocationModel.reserved_quantity), 0)
        ).where(
            InventoryLocationModel.tenant_id == tenant_id,
            InventoryLocationModel.shop_id == shop_id,
            InventoryLocationModel.product_variant_id == variant_id,
        )
        if location_code is not None:
            stmt = stmt.where(InventoryLocationModel.location_code == location_code)
        return int(self.db.execute(stmt).scalar_one())

    def lock_locations(self, tenant_id: int, shop_id: int, variant_ids: list[int]) -> list[InventoryLocationModel]:
        """SELECT ... FOR UPDATE, zawsze w kolejnosci id zeby uniknac deadlockow."""
        if not variant_ids:
            return []
        return list(
            self.db.execute(
                select(InventoryLocationModel)
                .where(
                    InventoryLocationModel.tenant_id == tenant_id,
                    InventoryLocationModel.shop_id == shop_id,
                    InventoryLocationModel.product_variant_id.in_(sorted(set(variant_ids))),
                )
                .order_by(InventoryLocationModel.id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalars().all()
        )

    def lock_location_ids(self, tenant_id: int, location_ids: list[int]) -> dict[int, InventoryLocationModel]:
        if not location_ids:
            return {}
        rows = self.db.execute(
            select(InventoryLocationModel)
            .where(
                InventoryLocationModel.tenant_id == tenant_id,
                InventoryLocationModel.id.in_(sorted(set(location_ids))),
            )
            .order_by(InventoryLocationModel.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars().all()
        return {loc.id: loc for loc in rows}

    def try_reserve(self, location_id: int, qty: int) -> bool:
        result = self.db.execute(
            update(InventoryLocationModel)
            .where(
                InventoryLocationModel.id == location_id,
                InventoryLocationModel.quantity - InventoryLocationModel.reserved_quantity >= qty,
            )
            .values(reserved_quantity=InventoryLocationModel.reserved_quantity + qty)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def try_release(self, location_id: int, qty: int) -> bool:
        result = self.db.execute(
            update(InventoryLocationModel)
            .where(
                InventoryLocationModel.id == location_id,
                InventoryLocationModel.reserved_quantity >= qty,
            )
            .values(reserved_quantity=InventoryLocationModel.reserved_quantity - qty)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def try_fulfil(self, location_id: int, qty: int) -> bool:
        # rezerwacja zamienia sie w faktyczne zdjecie ze stanu
        result = self.db.execute(
            update(InventoryLocationModel)
            .where(
                InventoryLocationModel.id == location_id,
                InventoryLocationModel.reserved_quantity >= qty,
                InventoryLocationModel.quantity >= qty,
            )
            .values(
                quantity=InventoryLocationModel.quantity - qty,
                reserved_quantity=InventoryLocationModel.reserved_quantity - qty,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def try_adjust(self, location_id: int, delta: int) -> bool:
        result = self.db.execute(
            update(InventoryLocationModel)
            .where(
                InventoryLocationModel.id == location_id,
                InventoryLocationModel.quantity + delta >= InventoryLocationModel.reserved_quantity,
            )
            .values(quantity=InventoryLocationModel.quantity + delta)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def refresh(self, location: InventoryLocationModel) -> InventoryLocationModel:
        self.db.refresh(location)
        return location

    def create_location(self, location: InventoryLocationModel) -> InventoryLocationModel:
        self.db.add(location)
        self.db.flush()
        return location

    def add_movement(self, movement: StockMovementModel) -> None:
        self.db.add(movement)

    def list_movements(self, tenant_id: int, location_id: int) -> list[StockMovementModel]:
        return list(
            self.db.execute(
                select(StockMovementModel)
                .where(
                    StockMovementModel.tenant_id == tenant_id,
                    StockMovementModel.inventory_location_id == location_id,
                )
                .order_by(StockMovementModel.id)
            ).scalars().all()
        )
