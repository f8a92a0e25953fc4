# shopcore/services/inventory_service.py
from dataclasses import dataclass

from sqlalchemy.orm import Session

from shopcore.data.models.inventory import InventoryLocationModel, StockMovementModel
from shopcore.domain.enums import StockMovementKind
from shopcore.domain.errors import InsufficientStock, NotFound, OrderStateError
from shopcore.repos.inventory_repo import InventoryRepo
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReservationLine:
    variant_id: int
    sku: str
    base_quantity: int


class InventoryService:
    """
    Ksiega stanow magazynowych.
    -rezerwacja (checkout, held sale)
    -zwolnienie rezerwacji (anulowanie)
    -realizacja (rezerwacja -> zdjecie ze stanu)
    -korekta stanu
    Nie robi commit - transakcja nalezy do wolajacego.
    """

    def __init__(self, db: Session):
        self.repo = InventoryRepo(db)

    def reserve_lines(
        self, tenant_id: int, shop_id: int, lines: list[ReservationLine], reference: str | None = None
    ) -> list[int]:
        """
        Rezerwuje wszystkie linie albo rzuca InsufficientStock.
        Zwraca id lokacji dla kazdej linii (w tej samej kolejnosci).
        Przy bledzie wolajacy robi rollback calej transakcji.
        """
        # najpierw lock na wszystkie wiersze, potem sprawdzanie
        locked = self.repo.lock_locations(tenant_id, shop_id, [line.variant_id for line in lines])
        by_variant: dict[int, list[InventoryLocationModel]] = {}
        for loc in locked:
            by_variant.setdefault(loc.product_variant_id, []).append(loc)

        reserved_at = []
        for line in lines:
            candidates = by_variant.get(line.variant_id, [])
            location = None
            for loc in candidates:
                if loc.available_quantity < line.base_quantity:
                    continue
                if self.repo.try_reserve(loc.id, line.base_quantity):
                    location = loc
                    break

            if location is None:
                available = sum(max(loc.available_quantity, 0) for loc in candidates)
                logger.warning(
                    f"Reservation failed for {line.sku}: requested {line.base_quantity}, available {available}"
                )
                raise InsufficientStock(line.sku, available=available, requested=line.base_quantity)

            self._record(location, StockMovementKind.RESERVE, line.base_quantity, reference)
            reserved_at.append(location.id)

        logger.info(f"Reserved {len(lines)} line(s) in shop {shop_id} ref={reference}")
        return reserved_at

    def release(self, tenant_id: int, location_id: int, base_quantity: int, reference: str | None = None):
        location = self._lock_one(tenant_id, location_id)
        if not self.repo.try_release(location.id, base_quantity):
            raise OrderStateError(
                f"Cannot release {base_quantity} units at location {location_id}, "
                f"only {location.reserved_quantity} reserved"
            )
        self._record(location, StockMovementKind.RELEASE, base_quantity, reference)
        logger.info(f"Released {base_quantity} units at location {location_id} ref={reference}")

    def fulfil(self, tenant_id: int, location_id: int, base_quantity: int, reference: str | None = None):
        location = self._lock_one(tenant_id, location_id)
        if not self.repo.try_fulfil(location.id, base_quantity):
            raise OrderStateError(
                f"Cannot fulfil {base_quantity} units at location {location_id}, "
                f"only {location.reserved_quantity} reserved"
            )
        self._record(location, StockMovementKind.FULFIL, base_quantity, reference)
        logger.info(f"Fulfilled {base_quantity} units at location {location_id} ref={reference}")

    def adjust(self, tenant_id: int, location_id: int, delta: int, reference: str | None = None):
        location = self._lock_one(tenant_id, location_id)
        if not self.repo.try_adjust(location.id, delta):
            # stan nie moze spasc ponizej tego co juz zarezerwowane
            raise InsufficientStock(
                location.location_code,
                available=location.available_quantity,
                requested=-delta,
            )
        self._record(location, StockMovementKind.ADJUST, delta, reference)
        logger.info(f"Adjusted location {location_id} by {delta} ref={reference}")

    def _lock_one(self, tenant_id: int, location_id: int) -> InventoryLocationModel:
        location = self.repo.lock_location_ids(tenant_id, [location_id]).get(location_id)
        if not location:
            raise NotFound(f"Inventory location {location_id} not found")
        return location

    def _record(self, location: InventoryLocationModel, kind: StockMovementKind, quantity: int, reference):
        quantity_before = location.quantity
        reserved_before = location.reserved_quantity
        # UPDATE szedl z pominieciem sesji, trzeba odswiezyc obiekt
        self.repo.refresh(location)
        self.repo.add_movement(
            StockMovementModel(
                tenant_id=location.tenant_id,
                shop_id=location.shop_id,
                inventory_location_id=location.id,
                kind=kind.value,
                quantity=quantity,
                quantity_before=quantity_before,
                quantity_after=location.quantity,
                reserved_before=reserved_before,
                reserved_after=location.reserved_quantity,
                reference=reference,
            )
        )
