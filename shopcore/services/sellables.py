# shopcore/services/sellables.py
from abc import ABC, abstractmethod
from decimal import Decimal

from sqlalchemy.orm import Session

from shopcore.data.models.catalog import ProductVariantModel, ProductPackagingTypeModel, ServiceVariantModel
from shopcore.domain.enums import MaterialOption, SellableKind
from shopcore.domain.errors import CartInvalid, NotFound, Unavailable
from shopcore.domain.money import quantize
from shopcore.domain.values import LineConfiguration, SellableRef
from shopcore.repos.catalog_repo import CatalogRepo
from shopcore.repos.inventory_repo import InventoryRepo


class Sellable(ABC):
    """
    Wspolny interfejs dla wszystkiego co mozna wlozyc do koszyka.
    Koszyk i checkout nie wiedza czy to produkt czy usluga.
    """

    kind: SellableKind

    def __init__(self, tenant_id: int, variant):
        self.tenant_id = tenant_id
        self.variant = variant

    @property
    def ref(self) -> SellableRef:
        return SellableRef(self.kind, self.variant.id)

    @property
    def name(self) -> str:
        return self.variant.display_name

    @property
    def sku(self) -> str | None:
        return None

    @property
    def is_taxable(self) -> bool:
        return False

    @property
    def tracks_stock(self) -> bool:
        return False

    @abstractmethod
    def is_purchasable(self) -> bool: ...

    @abstractmethod
    def resolve_price(self, configuration: LineConfiguration) -> Decimal: ...

    @abstractmethod
    def available_quantity(
        self, shop_id: int, configuration: LineConfiguration | None = None, location_code: str | None = None
    ) -> int | None:
        """None = bez limitu."""

    def normalize(self, configuration: LineConfiguration) -> LineConfiguration:
        return configuration

    def base_quantity(self, configuration: LineConfiguration, quantity: int) -> int:
        return quantity

    def check_quantity(self, configuration: LineConfiguration, quantity: int) -> None:
        if quantity < 1:
            raise CartInvalid("Quantity must be at least 1")

    def line_metadata(self, configuration: LineConfiguration) -> dict:
        return {}

    def _ensure_purchasable(self):
        if not self.is_purchasable():
            raise Unavailable(f"{self.name} is not available for purchase")


class ProductSellable(Sellable):
    kind = SellableKind.PRODUCT

    def __init__(self, tenant_id: int, variant: ProductVariantModel, catalog: CatalogRepo, inventory: InventoryRepo):
        super().__init__(tenant_id, variant)
        self.catalog = catalog
        self.inventory = inventory

    @property
    def sku(self) -> str | None:
        return self.variant.sku

    @property
    def is_taxable(self) -> bool:
        return bool(self.variant.product.is_taxable)

    @property
    def tracks_stock(self) -> bool:
        return bool(self.variant.product.track_stock)

    def is_purchasable(self) -> bool:
        return bool(
            self.variant.is_active
            and self.variant.is_available_online
            and self.variant.product.is_active
        )

    def normalize(self, configuration: LineConfiguration) -> LineConfiguration:
        if configuration.material_option is not None or configuration.addons:
            raise CartInvalid("Material options and add-ons apply to services only")
        return LineConfiguration(packaging_type_id=configuration.packaging_type_id)

    def packaging(self, configuration: LineConfiguration) -> ProductPackagingTypeModel | None:
        if configuration.packaging_type_id is None:
            return None
        pkg = self.catalog.get_packaging_type(self.tenant_id, self.variant.id, configuration.packaging_type_id)
        if not pkg:
            raise NotFound(f"Packaging type {configuration.packaging_type_id} not found for {self.sku}")
        if not pkg.is_active:
            raise Unavailable(f"Packaging {pkg.name} is no longer offered for {self.sku}")
        return pkg

    def units_per_package(self, configuration: LineConfiguration) -> int:
        pkg = self.packaging(configuration)
        return pkg.units_per_package if pkg else 1

    def resolve_price(self, configuration: LineConfiguration) -> Decimal:
        self._ensure_purchasable()
        pkg = self.packaging(configuration)
        if pkg:
            return quantize(pkg.price)
        return quantize(self.variant.price)

    def base_quantity(self, configuration: LineConfiguration, quantity: int) -> int:
        return quantity * self.units_per_package(configuration)

    def check_quantity(self, configuration: LineConfiguration, quantity: int) -> None:
        super().check_quantity(configuration, quantity)
        limit = self.variant.max_order_quantity
        if limit and self.base_quantity(configuration, quantity) > limit:
            raise CartInvalid(f"Maximum order quantity for {self.sku} is {limit} units")

    def available_quantity(
        self, shop_id: int, configuration: LineConfiguration | None = None, location_code: str | None = None
    ) -> int | None:
        if not self.tracks_stock:
            return None
        base_units = self.inventory.available_base_units(self.tenant_id, shop_id, self.variant.id, location_code)
        per_package = self.units_per_package(configuration) if configuration else 1
        return max(base_units, 0) // per_package

    def line_metadata(self, configuration: LineConfiguration) -> dict:
        pkg = self.packaging(configuration)
        meta = {"base_price": str(quantize(self.variant.price))}
        if pkg:
            meta["packaging_name"] = pkg.name
            meta["units_per_package"] = pkg.units_per_package
        return meta


class ServiceSellable(Sellable):
    kind = SellableKind.SERVICE

    def __init__(self, tenant_id: int, variant: ServiceVariantModel, catalog: CatalogRepo):
        super().__init__(tenant_id, variant)
        self.catalog = catalog

    def is_purchasable(self) -> bool:
        service = self.variant.service
        return bool(
            self.variant.is_active
            and self.variant.is_available_online
            and service.is_active
            and service.is_available_online
        )

    def normalize(self, configuration: LineConfiguration) -> LineConfiguration:
        if configuration.packaging_type_id is not None:
            raise CartInvalid("Packaging applies to products only")
        # brak wyboru == NONE, inaczej ta sama konfiguracja dawalaby dwa rozne klucze
        return LineConfiguration(
            material_option=configuration.material_option or MaterialOption.NONE,
            addons=configuration.addons,
        )

    def material_price(self, option: MaterialOption | None) -> Decimal:
        if option == MaterialOption.CUSTOMER_SUPPLIED and self.variant.customer_materials_price is not None:
            return quantize(self.variant.customer_materials_price)
        if option == MaterialOption.SHOP_SUPPLIED and self.variant.shop_materials_price is not None:
            return quantize(self.variant.shop_materials_price)
        return quantize(self.variant.base_price)

    def addons(self, configuration: LineConfiguration) -> list[tuple]:
        ids = [a.addon_id for a in configuration.addons]
        found = self.catalog.get_addons(self.tenant_id, self.variant.service_id, ids)
        resolved = []
        for selection in configuration.addons:
            addon = found.get(selection.addon_id)
            if not addon:
                raise NotFound(f"Add-on {selection.addon_id} not found for {self.name}")
            if not addon.is_active:
                raise Unavailable(f"Add-on {addon.name} is no longer offered")
            if selection.quantity < 1 or selection.quantity > addon.max_quantity:
                raise CartInvalid(f"Add-on {addon.name} quantity must be between 1 and {addon.max_quantity}")
            resolved.append((addon, selection.quantity))
        return resolved

    def resolve_price(self, configuration: LineConfiguration) -> Decimal:
        self._ensure_purchasable()
        total = self.material_price(configuration.material_option)
        for addon, qty in self.addons(configuration):
            total += quantize(addon.price) * qty
        return quantize(total)

    def available_quantity(
        self, shop_id: int, configuration: LineConfiguration | None = None, location_code: str | None = None
    ) -> int | None:
        return None

    def line_metadata(self, configuration: LineConfiguration) -> dict:
        option = configuration.material_option or MaterialOption.NONE
        return {
            "base_price": str(self.material_price(option)),
            "material_option": option.value,
            "addons": [
                {
                    "addon_id": addon.id,
                    "name": addon.name,
                    "quantity": qty,
                    "price": str(quantize(addon.price)),
                }
                for addon, qty in self.addons(configuration)
            ],
        }


class SellableResolver:
    """Buduje odpowiedni Sellable z referencji (kind, id). Wszystko w obrebie tenanta."""

    def __init__(self, db: Session):
        self.catalog = CatalogRepo(db)
        self.inventory = InventoryRepo(db)

    def resolve(self, tenant_id: int, ref: SellableRef) -> Sellable:
        if ref.kind == SellableKind.PRODUCT:
            variant = self.catalog.get_product_variant(tenant_id, ref.id)
            if not variant:
                raise NotFound(f"Product variant {ref.id} not found")
            return ProductSellable(tenant_id, variant, self.catalog, self.inventory)

        variant = self.catalog.get_service_variant(tenant_id, ref.id)
        if not variant:
            raise NotFound(f"Service variant {ref.id} not found")
        return ServiceSellable(tenant_id, variant, self.catalog)

    def resolve_item(self, tenant_id: int, item) -> Sellable:
        """Dla CartItemModel / OrderItemModel - czyta dyskryminator."""
        kind = SellableKind(item.sellable_kind)
        if kind == SellableKind.PRODUCT:
            return self.resolve(tenant_id, SellableRef.product(item.product_variant_id))
        return self.resolve(tenant_id, SellableRef.service(item.service_variant_id))
