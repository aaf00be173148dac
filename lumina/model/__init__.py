# ------ lumina/model/__init__.py ------

from .category import Category
from .product import Product, Variety
from .coupon import Coupon
from .tracking import Visitor, CheckoutSession
from .order import Order, OrderItem, OrderCoupon
from .settings import SiteSettings
from .analytics import ProductView, CartAdd

__all__ = [
    "Category",
    "Product",
    "Variety",
    "Coupon",
    "Visitor",
    "CheckoutSession",
    "Order",
    "OrderItem",
    "OrderCoupon",
    "SiteSettings",
    "ProductView",
    "CartAdd",
]
