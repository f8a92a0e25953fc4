# import wszystkich modeli zeby SQLAlchemy je zarejestrowal w Base.metadata

from shopcore.data.models.tenant import TenantModel, ShopModel
from shopcore.data.models.customer import CustomerModel
from shopcore.data.models.catalog import (
    ProductModel,
    ProductVariantModel,
    ProductPackagingTypeModel,
    ServiceModel,
    ServiceVariantModel,
    ServiceAddonModel,
)
from shopcore.data.models.inventory import InventoryLocationModel, StockMovementModel
from shopcore.data.models.cart import CartModel
from shopcore.data.models.cart_item import CartItemModel
from shopcore.data.models.order import OrderModel
from shopcore.data.models.order_item import OrderItemModel
from shopcore.data.models.order_payment import OrderPaymentModel
from shopcore.data.models.held_sale import HeldSaleModel

__all__ = [
    "TenantModel",
    "ShopModel",
    "CustomerModel",
    "ProductModel",
    "ProductVariantModel",
    "ProductPackagingTypeModel",
    "ServiceModel",
    "ServiceVariantModel",
    "ServiceAddonModel",
    "InventoryLocationModel",
    "StockMovementModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "OrderPaymentModel",
    "HeldSaleModel",
]
