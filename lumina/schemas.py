"""
Request payloads.

Each endpoint validates its JSON body into one of these models before any
service code runs. Keys are accepted in snake_case or in the storefront's
camelCase (``customerName`` / ``customer_name``).
"""
from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .services.cart_service import AppliedCoupon, CartLine
from .utils.timeutil import parse_iso8601


class Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ---------- cart ----------

class CartItemIn(Payload):
    product_id: Optional[int] = None
    category_id: Optional[int] = None
    name: str = ""
    subtitle: Optional[str] = None          # variety name, e.g. "Weight: 1kg"
    price: Decimal = Field(ge=0)
    quantity: int = Field(1, ge=1)

    def to_line(self) -> CartLine:
        return CartLine(
            product_id=self.product_id,
            category_id=self.category_id,
            price=self.price,
            quantity=self.quantity,
            name=self.name,
            variety_name=self.subtitle,
        )


class AppliedCouponIn(Payload):
    id: Optional[int] = None
    code: str
    type: Optional[Literal["percentage", "fixed"]] = None
    value: Optional[Decimal] = None
    apply_to: Optional[Literal["all", "category", "product"]] = None
    applies_to_text: Optional[str] = None
    applicable_product_ids: List[int] = []
    is_applicable: bool = True
    discount: Optional[Decimal] = None

    def to_applied(self) -> AppliedCoupon:
        return AppliedCoupon(
            id=self.id,
            code=self.code.upper(),
            type=self.type,
            value=self.value or Decimal("0"),
            apply_to=self.apply_to,
            applies_to_text=self.applies_to_text or "",
            applicable_product_ids=tuple(self.applicable_product_ids),
            is_applicable=self.is_applicable,
            discount=self.discount or Decimal("0"),
        )


class CartLineRef(Payload):
    product_id: int
    category_id: Optional[int] = None


class CouponValidateIn(Payload):
    code: str = ""
    items: List[CartLineRef] = []

    @model_validator(mode="before")
    @classmethod
    def _pair_legacy_arrays(cls, data):
        # older clients send two index-aligned arrays instead of pairs
        if not isinstance(data, dict) or data.get("items"):
            return data
        pids = data.get("productIds", data.get("product_ids"))
        cids = data.get("categoryIds", data.get("category_ids"))
        if pids is None:
            return data
        if not cids:
            # no categories sent: product and all-scope coupons still resolve
            cids = [None] * len(pids)
        elif len(pids) != len(cids):
            raise ValueError("productIds and categoryIds must have the same length")
        return {**data, "items": [{"product_id": p, "category_id": c} for p, c in zip(pids, cids)]}


class QuoteIn(Payload):
    items: List[CartItemIn] = []
    coupon_codes: List[str] = []
    customer_address: Optional[str] = None


# ---------- tracking ----------

class VisitorIn(Payload):
    visitor_token: Optional[str] = None


class VisitorUpdateIn(Payload):
    visitor_id: str = ""
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class SessionCreateIn(Payload):
    visitor_id: str = ""
    cart_items: List[dict] = []
    subtotal: Decimal = Decimal("0")
    applied_coupons: Optional[List[AppliedCouponIn]] = None
    discount_amount: Decimal = Decimal("0")


class SessionUpdateIn(Payload):
    session_id: str = ""
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    applied_coupons: Optional[List[AppliedCouponIn]] = None
    discount_amount: Optional[Decimal] = None
    subtotal: Optional[Decimal] = None

    def changes(self) -> dict:
        """Only the fields the client actually sent."""
        sent = self.model_dump(exclude_unset=True, exclude={"session_id"}, mode="json")
        if "applied_coupons" in sent and sent["applied_coupons"] is not None:
            sent["applied_coupons"] = [c.to_applied().as_api() for c in self.applied_coupons]
        return sent


class SessionTerminalIn(Payload):
    action: Literal["complete", "end"]
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None

    def customer(self) -> dict:
        return {
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_address": self.customer_address,
        }


class TrackViewIn(Payload):
    product_id: Optional[int] = None
    visitor_id: Optional[str] = None


class TrackCartIn(TrackViewIn):
    quantity: int = Field(1, ge=1)


# ---------- orders ----------

class OrderIn(Payload):
    customer_name: str = ""
    customer_phone: str = ""
    customer_email: Optional[str] = None
    customer_address: str = ""
    items: List[CartItemIn] = []
    subtotal: Decimal = Field(Decimal("0"), ge=0)
    discount: Decimal = Field(Decimal("0"), ge=0)
    delivery_charge: Decimal = Field(Decimal("0"), ge=0)
    total: Decimal = Field(Decimal("0"), ge=0)
    applied_coupons: List[AppliedCouponIn] = []


class OrderUpdateIn(Payload):
    status: Optional[str] = None
    admin_note: Optional[str] = None
    courier_status: Optional[str] = None
    tracking_code: Optional[str] = None
    consignment_id: Optional[str] = None
    tracking_message: Optional[str] = None


class CourierWebhookIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    notification_type: Literal["delivery_status", "tracking_update"]
    consignment_id: Optional[int] = None
    invoice: Optional[str] = None
    cod_amount: Optional[float] = None
    status: Optional[str] = None
    delivery_charge: Optional[float] = None
    tracking_message: Optional[str] = None
    updated_at: Optional[str] = None


# ---------- admin: coupons / catalog / settings ----------

class CouponIn(Payload):
    code: str = ""
    type: str = ""
    value: Optional[Decimal] = None
    apply_to: str = ""
    category_id: Optional[int] = None
    product_id: Optional[int] = None
    is_active: bool = True
    expires_at: Optional[datetime] = None

    @field_validator("expires_at", mode="before")
    @classmethod
    def _parse_expiry(cls, v):
        if v in (None, ""):
            return None
        if isinstance(v, str):
            parsed = parse_iso8601(v)
            if parsed is None:
                raise ValueError("Invalid datetime format for expires_at")
            return parsed
        return v


class CategoryIn(Payload):
    name: str = ""
    code: str = ""
    image_url: Optional[str] = None


class VarietyIn(Payload):
    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    stock: int = Field(0, ge=0)
    has_discount: bool = False
    discount_type: Optional[Literal["fixed", "percentage"]] = None
    discount_value: Optional[Decimal] = Field(None, ge=0)


class ProductIn(Payload):
    name: str = Field(min_length=1)
    category_id: int
    is_offer: bool = False
    short_desc: Optional[str] = None
    varieties: List[VarietyIn] = []


class SettingsIn(Payload):
    delivery_charge: Optional[Decimal] = Field(None, ge=0)
    store_name: Optional[str] = None
    phone: Optional[str] = None
    facebook: Optional[str] = None
    messenger: Optional[str] = None
    whatsapp: Optional[str] = None
