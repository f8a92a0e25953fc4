# shopcore/services/held_sale_service.py
import re
from datetime import datetime, timezone, timedelta

from sqlalchemy.orm import Session

from shopcore.data.models.held_sale import HeldSaleModel
from shopcore.data.models.tenant import ShopModel
from shopcore.domain.errors import NotFound, OrderStateError, Unavailable
from shopcore.domain.schemas import HeldSaleItemIn
from shopcore.domain.values import LineConfiguration, SellableRef
from shopcore.repos.held_sale_repo import HeldSaleRepo
from shopcore.repos.shop_repo import ShopRepo
from shopcore.services.inventory_service import InventoryService, ReservationLine
from shopcore.services.sellables import SellableResolver
from shopcore.utils.settings import HELD_SALE_TTL_SECONDS
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)

_HOLD_NUMBER = re.compile(r"HOLD-(\d+)$")


def _as_utc(value: datetime) -> datetime:
    # sqlite oddaje naiwne daty
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class HeldSaleService:
    """
    Zawieszone sprzedaze w POS.
    Towar jest rezerwowany tak samo jak przy checkoucie, do czasu
    wznowienia, usuniecia albo wygasniecia.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = HeldSaleRepo(db)
        self.shops = ShopRepo(db)
        self.resolver = SellableResolver(db)
        self.inventory = InventoryService(db)

    def get_shop(self, shop_id: int) -> ShopModel:
        shop = self.shops.get_shop(shop_id)
        if not shop:
            raise NotFound(f"Shop {shop_id} not found")
        return shop

    def hold(
        self, shop_id: int, items: list[HeldSaleItemIn], customer_id: int | None = None, notes: str | None = None
    ) -> HeldSaleModel:
        shop = self.get_shop(shop_id)
        if customer_id is not None and not self.shops.get_customer(shop.tenant_id, customer_id):
            raise NotFound(f"Customer {customer_id} not found")

        try:
            stored, lines, tracked_idx = [], [], []
            for i, entry in enumerate(items):
                sellable = self.resolver.resolve(shop.tenant_id, SellableRef.product(entry.variant_id))
                # POS: nie wymaga sprzedazy online, tylko aktywnego produktu
                if not (sellable.variant.is_active and sellable.variant.product.is_active):
                    raise Unavailable(f"{sellable.name} is not available for sale")
                config = sellable.normalize(LineConfiguration(packaging_type_id=entry.packaging_type_id))
                base_quantity = sellable.base_quantity(config, entry.quantity)
                stored.append(
                    {
                        "variant_id": entry.variant_id,
                        "packaging_type_id": entry.packaging_type_id,
                        "quantity": entry.quantity,
                        "base_quantity": base_quantity,
                        "inventory_location_id": None,
                    }
                )
                if sellable.tracks_stock:
                    lines.append(ReservationLine(entry.variant_id, sellable.sku, base_quantity))
                    tracked_idx.append(i)

            # lock na sklepie serializuje numeracje HOLD-NNN
            self.shops.lock_shop(shop.id)
            reference = self._next_reference(shop)
            locations = self.inventory.reserve_lines(shop.tenant_id, shop.id, lines, reference=reference)
            for i, location_id in zip(tracked_idx, locations):
                stored[i]["inventory_location_id"] = location_id

            held = self.repo.create(
                HeldSaleModel(
                    tenant_id=shop.tenant_id,
                    shop_id=shop.id,
                    hold_reference=reference,
                    customer_id=customer_id,
                    items=stored,
                    notes=notes,
                    expires_at=datetime.now(timezone.utc) + timedelta(seconds=HELD_SALE_TTL_SECONDS),
                )
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Held sale {held.hold_reference} created in shop {shop.id} with {len(stored)} item(s)")
        return held

    def list_active(self, shop_id: int) -> list[HeldSaleModel]:
        shop = self.get_shop(shop_id)
        return self.repo.list_active(shop.tenant_id, shop.id, datetime.now(timezone.utc))

    def get(self, shop_id: int, held_id: int) -> HeldSaleModel:
        shop = self.get_shop(shop_id)
        held = self.repo.get(shop.tenant_id, shop.id, held_id)
        if not held:
            raise NotFound(f"Held sale {held_id} not found")
        return held

    def retrieve(self, shop_id: int, held_id: int) -> HeldSaleModel:
        held = self.get(shop_id, held_id)
        if held.retrieved_at is not None:
            raise OrderStateError(f"Held sale {held.hold_reference} has already been retrieved")
        if _as_utc(held.expires_at) <= datetime.now(timezone.utc):
            raise OrderStateError(f"Held sale {held.hold_reference} has expired")

        held.retrieved_at = datetime.now(timezone.utc)
        self.db.commit()
        logger.info(f"Held sale {held.hold_reference} retrieved")
        return held

    def release(self, shop_id: int, held_id: int) -> None:
        held = self.get(shop_id, held_id)
        try:
            self._release_and_delete(held)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Held sale {held.hold_reference} deleted, stock released")

    def cleanup_expired(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        released = 0
        for held in self.repo.list_expired(now):
            reference = held.hold_reference
            try:
                self._release_and_delete(held)
                self.db.commit()
                released += 1
            except Exception as e:
                # jedna zepsuta rezerwacja nie blokuje reszty
                self.db.rollback()
                logger.error(f"Failed to clean up held sale {reference}: {e}")
        logger.info(f"Cleaned up {released} expired held sale(s)")
        return released

    def _release_and_delete(self, held: HeldSaleModel):
        for entry in held.items or []:
            location_id = entry.get("inventory_location_id")
            if location_id:
                self.inventory.release(held.tenant_id, location_id, entry["base_quantity"], reference=held.hold_reference)
        self.repo.delete(held)

    def _next_reference(self, shop: ShopModel) -> str:
        last = self.repo.last_for_shop(shop.tenant_id, shop.id)
        sequence = 1
        if last:
            match = _HOLD_NUMBER.search(last.hold_reference)
            if match:
                sequence = int(match.group(1)) + 1
        return f"HOLD-{sequence:03d}"
