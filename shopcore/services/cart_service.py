# shopcore/services/cart_service.py
from datetime import datetime, timezone, timedelta
from typing import Dict, Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shopcore.data.models.cart import CartModel
from shopcore.data.models.cart_item import CartItemModel
from shopcore.data.models.tenant import ShopModel
from shopcore.domain.enums import SellableKind
from shopcore.domain.errors import CartInvalid, NotFound, Unavailable
from shopcore.domain.money import quantize
from shopcore.domain.values import LineConfiguration, OwnerKey, SellableRef
from shopcore.repos.cart_repo import CartRepo
from shopcore.repos.shop_repo import ShopRepo
from shopcore.services.pricing import compute_totals, price_line
from shopcore.services.sellables import SellableResolver
from shopcore.utils.settings import CUSTOMER_CART_TTL_SECONDS, GUEST_CART_TTL_SECONDS
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Use case dla koszyka.
    commands (add, update, remove, clear, merge) modyfikuja stan
    query (get_cart) tylko odczyt, ceny zawsze liczone na nowo
    Koszyk nie rezerwuje towaru, stan sprawdza dopiero checkout.
    """

    def __init__(self, db: Session, resolver: SellableResolver | None = None):
        self.repo = CartRepo(db)
        self.shops = ShopRepo(db)
        self.resolver = resolver or SellableResolver(db)

    # query
    def get_cart(self, shop_id: int, owner: OwnerKey) -> Dict[str, Any]:
        shop = self.get_shop(shop_id)
        self.check_owner(shop, owner)
        cart = self.repo.get_cart_for_owner(shop.tenant_id, shop.id, owner)
        return self.summarize(shop, owner, cart)

    def summarize(self, shop: ShopModel, owner: OwnerKey, cart: CartModel | None) -> Dict[str, Any]:
        items_out = []
        priced = []
        items = self.repo.get_cart_items(cart.id) if cart else []

        for item in items:
            config = LineConfiguration.from_stored(item.packaging_type_id, item.material_option, item.selected_addons)
            kind = SellableKind(item.sellable_kind)
            name = f"{kind.value} {item.sellable_key}"
            base_quantity = item.quantity
            unit_price = quantize(item.price)
            available = True
            try:
                sellable = self.resolver.resolve_item(shop.tenant_id, item)
                name = sellable.name
                unit_price = sellable.resolve_price(config)
                base_quantity = sellable.base_quantity(config, item.quantity)
                priced.append(price_line(shop, kind, unit_price, item.quantity, sellable.is_taxable))
            except (Unavailable, NotFound) as e:
                # linia zostaje w koszyku, ale nie wchodzi do sumy
                logger.info(f"Cart {item.cart_id} item {item.id} unavailable: {e}")
                available = False

            items_out.append(
                {
                    "id": item.id,
                    "kind": kind,
                    "variant_id": item.product_variant_id or item.service_variant_id,
                    "name": name,
                    "quantity": item.quantity,
                    "base_quantity": base_quantity,
                    "packaging_type_id": item.packaging_type_id,
                    "material_option": item.material_option,
                    "addons": config.addons_as_list(),
                    "unit_price": unit_price,
                    "line_total": quantize(unit_price * item.quantity),
                    "available": available,
                }
            )

        totals = compute_totals(shop, priced)
        return {
            "cart_id": cart.id if cart else None,
            "shop_id": shop.id,
            "owner": str(owner),
            "currency": shop.currency,
            "items": items_out,
            "item_count": sum(i.quantity for i in items),
            "subtotal": totals.subtotal,
            "discount": totals.discount,
            "tax": totals.tax,
            "shipping_fee": totals.shipping,
            "total": totals.total,
        }

    # commands
    def add_item(
        self,
        shop_id: int,
        owner: OwnerKey,
        ref: SellableRef,
        quantity: int,
        configuration: LineConfiguration | None = None,
    ) -> Dict[str, Any]:
        if quantity < 1:
            raise CartInvalid("Quantity must be at least 1")

        shop = self.get_shop(shop_id)
        self.check_owner(shop, owner)

        sellable = self.resolver.resolve(shop.tenant_id, ref)
        config = sellable.normalize(configuration or LineConfiguration())
        price = sellable.resolve_price(config)

        try:
            self._add_or_increment(shop, owner, sellable, config, price, quantity)
            self.repo.commit()
        except IntegrityError:
            # rownolegle dodanie tej samej konfiguracji albo utworzenie koszyka - drugi raz juz trafi w istniejacy wiersz
            self.repo.rollback()
            logger.info(f"Concurrent insert for {ref.key} in cart of {owner}, retrying as increment")
            self._add_or_increment(shop, owner, sellable, config, price, quantity)
            self.repo.commit()
        except Exception as e:
            logger.error(f"Blad podczas dodawania {ref.key} do koszyka {owner}: {e}")
            self.repo.rollback()
            raise

        return self.get_cart(shop_id, owner)

    def _add_or_increment(self, shop, owner, sellable, config, price, quantity):
        cart = self.get_or_create_cart(shop, owner)
        existing = self.repo.find_matching_item(cart.id, sellable.ref.key, config.key)
        new_quantity = quantity + (existing.quantity if existing else 0)
        sellable.check_quantity(config, new_quantity)

        if existing:
            logger.info(
                f"{sellable.ref.key} juz jest w koszyku {cart.id}, zwiekszam ilosc "
                f"z {existing.quantity} do {new_quantity}"
            )
            existing.quantity = new_quantity
            existing.price = price
        else:
            logger.info(f"Dodaje {sellable.ref.key} [{config.key}] do koszyka {cart.id}")
            self.repo.add_cart_item(
                CartItemModel(
                    tenant_id=shop.tenant_id,
                    cart_id=cart.id,
                    sellable_kind=sellable.kind.value,
                    product_variant_id=sellable.variant.id if sellable.kind == SellableKind.PRODUCT else None,
                    service_variant_id=sellable.variant.id if sellable.kind == SellableKind.SERVICE else None,
                    sellable_key=sellable.ref.key,
                    config_key=config.key,
                    quantity=new_quantity,
                    price=price,
                    packaging_type_id=config.packaging_type_id,
                    material_option=config.material_option.value if config.material_option else None,
                    selected_addons=config.addons_as_list() or None,
                )
            )
        self._touch(cart, owner)

    def update_quantity(self, shop_id: int, owner: OwnerKey, item_id: int, quantity: int) -> Dict[str, Any]:
        shop = self.get_shop(shop_id)
        cart, item = self._get_item(shop, owner, item_id)

        if quantity <= 0:
            logger.info(f"Ilosc 0 - usuwam pozycje {item_id} z koszyka {cart.id}")
            self.repo.delete_cart_item(item)
        else:
            sellable = self.resolver.resolve_item(shop.tenant_id, item)
            config = LineConfiguration.from_stored(item.packaging_type_id, item.material_option, item.selected_addons)
            sellable.check_quantity(config, quantity)
            item.quantity = quantity

        self._touch(cart, owner)
        self.repo.commit()
        return self.get_cart(shop_id, owner)

    def remove_item(self, shop_id: int, owner: OwnerKey, item_id: int) -> Dict[str, Any]:
        return self.update_quantity(shop_id, owner, item_id, 0)

    def clear(self, shop_id: int, owner: OwnerKey) -> Dict[str, Any]:
        shop = self.get_shop(shop_id)
        self.check_owner(shop, owner)
        cart = self.repo.get_cart_for_owner(shop.tenant_id, shop.id, owner)
        if cart:
            removed = self.repo.clear_items(cart.id)
            self.repo.commit()
            logger.info(f"Wyczyszczono koszyk {cart.id} ({removed} pozycji)")
        return self.get_cart(shop_id, owner)

    def merge_into(self, shop_id: int, session_id: str, customer_id: int) -> Dict[str, Any]:
        """Przenosi koszyk goscia do koszyka klienta po zalogowaniu, duplikaty sa sumowane."""
        shop = self.get_shop(shop_id)
        guest_owner = OwnerKey.session(session_id)
        target_owner = OwnerKey.customer(customer_id)
        self.check_owner(shop, target_owner)

        guest = self.repo.get_cart_for_owner(shop.tenant_id, shop.id, guest_owner)
        if not guest:
            return self.get_cart(shop_id, target_owner)

        guest_id = guest.id
        try:
            target = self.get_or_create_cart(shop, target_owner)
            target_id = target.id
            moved = self._move_items(shop, guest, target)
            self.repo.delete_cart(guest)
            self._touch(target, target_owner)
            self.repo.commit()
        except Exception as e:
            # koszyk goscia zostaje nietkniety
            logger.error(f"Blad podczas scalania koszyka goscia {guest_id} dla klienta {customer_id}: {e}")
            self.repo.rollback()
            raise

        logger.info(f"Scalono koszyk goscia {guest_id} do koszyka {target_id} ({moved} pozycji)")
        return self.get_cart(shop_id, target_owner)

    def _move_items(self, shop: ShopModel, guest: CartModel, target: CartModel) -> int:
        moved = 0
        for item in self.repo.get_cart_items(guest.id):
            match = self.repo.find_matching_item(target.id, item.sellable_key, item.config_key)
            if match:
                new_quantity = match.quantity + item.quantity
                self._check_merged_quantity(shop, match, new_quantity)
                match.quantity = new_quantity
            else:
                self.repo.add_cart_item(
                    CartItemModel(
                        tenant_id=item.tenant_id,
                        cart_id=target.id,
                        sellable_kind=item.sellable_kind,
                        product_variant_id=item.product_variant_id,
                        service_variant_id=item.service_variant_id,
                        sellable_key=item.sellable_key,
                        config_key=item.config_key,
                        quantity=item.quantity,
                        price=item.price,
                        packaging_type_id=item.packaging_type_id,
                        material_option=item.material_option,
                        selected_addons=item.selected_addons,
                    )
                )
            moved += 1
        return moved

    def _check_merged_quantity(self, shop: ShopModel, item: CartItemModel, quantity: int) -> None:
        try:
            sellable = self.resolver.resolve_item(shop.tenant_id, item)
        except (Unavailable, NotFound) as e:
            # niedostepna linia i tak odpada przy checkoucie
            logger.info(f"Cart item {item.id} unavailable during merge: {e}")
            return
        config = LineConfiguration.from_stored(item.packaging_type_id, item.material_option, item.selected_addons)
        sellable.check_quantity(config, quantity)

    def delete_expired(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        carts = self.repo.get_expired_carts(now)
        for cart in carts:
            self.repo.delete_cart(cart)
        self.repo.commit()
        return len(carts)

    # helpers
    def get_shop(self, shop_id: int) -> ShopModel:
        shop = self.shops.get_shop(shop_id)
        if not shop or not shop.is_active:
            raise NotFound(f"Shop {shop_id} not found")
        return shop

    def check_owner(self, shop: ShopModel, owner: OwnerKey) -> None:
        if owner.customer_id is None:
            return
        if self.shops.get_customer(shop.tenant_id, owner.customer_id):
            return
        if self.shops.customer_exists_elsewhere(shop.tenant_id, owner.customer_id):
            raise CartInvalid("Customer does not belong to this shop")
        raise NotFound(f"Customer {owner.customer_id} not found")

    def get_or_create_cart(self, shop: ShopModel, owner: OwnerKey) -> CartModel:
        cart = self.repo.get_cart_for_owner(shop.tenant_id, shop.id, owner)
        if cart:
            return cart
        cart = self.repo.create_cart(
            CartModel(
                tenant_id=shop.tenant_id,
                shop_id=shop.id,
                customer_id=owner.customer_id,
                session_id=owner.session_id,
                expires_at=self._expiry(owner),
            )
        )
        logger.info(f"Utworzono nowy koszyk {cart.id} dla {owner} w sklepie {shop.id}")
        return cart

    def _get_item(self, shop: ShopModel, owner: OwnerKey, item_id: int):
        self.check_owner(shop, owner)
        cart = self.repo.get_cart_for_owner(shop.tenant_id, shop.id, owner)
        if not cart:
            raise NotFound("Cart not found")
        item = self.repo.get_cart_item(cart.id, item_id)
        if not item:
            raise NotFound(f"Cart item {item_id} not found")
        return cart, item

    def _touch(self, cart: CartModel, owner: OwnerKey):
        # kazda akcja przedluza waznosc koszyka
        cart.expires_at = self._expiry(owner)
        cart.updated_at = datetime.now(timezone.utc)

    @staticmethod
    def _expiry(owner: OwnerKey) -> datetime:
        ttl = GUEST_CART_TTL_SECONDS if owner.is_guest else CUSTOMER_CART_TTL_SECONDS
        return datetime.now(timezone.utc) + timedelta(seconds=ttl)
