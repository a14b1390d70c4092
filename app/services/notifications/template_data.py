"""
Typed inputs for notification templates

Each model lists the fields its templates substitute. Every field has a
default so a partially filled payload still renders; substitutions()
turns the model into the flat string map used by the substitution engine.
"""

from pydantic import BaseModel, ConfigDict, field_validator
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union
import enum
import uuid

from app.utils.helpers import short_id, format_amount

Amount = Optional[Union[Decimal, int, float, str]]

def _text(value: Any, default: str = "") -> str:
    if value is None or value == "":
        return default
    return str(value)

class TemplateData(BaseModel):
    """Base for per-template input structures"""

    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("*", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> Any:
        if isinstance(value, enum.Enum):
            return value.value
        if isinstance(value, uuid.UUID):
            return str(value)
        return value

    def substitutions(self) -> Dict[str, str]:
        raise NotImplementedError

class OrderData(TemplateData):
    order_id: Optional[str] = None
    pickup_code: Optional[str] = None
    status: Optional[str] = None

    def substitutions(self) -> Dict[str, str]:
        return {
            "order_id": short_id(self.order_id),
            "pickup_code": _text(self.pickup_code, "N/A"),
            "status": _text(self.status, "UPDATED"),
        }

class PaymentData(TemplateData):
    order_id: Optional[str] = None
    total_amount: Amount = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    reason: Optional[str] = None
    earnings: Amount = None

    def substitutions(self) -> Dict[str, str]:
        return {
            "order_id": short_id(self.order_id),
            "total_amount": format_amount(self.total_amount),
            "payment_method": _text(self.payment_method, "N/A"),
            "payment_reference": _text(self.payment_reference, "N/A"),
            "reason": _text(self.reason, "Payment processing error"),
            "earnings": format_amount(self.earnings),
        }

class VendorOrderData(TemplateData):
    order_id: Optional[str] = None
    item_count: Optional[int] = None
    total_amount: Amount = None
    pending_items: List[str] = []
    status: Optional[str] = None

    def substitutions(self) -> Dict[str, str]:
        return {
            "order_id": short_id(self.order_id),
            "item_count": _text(self.item_count, "0"),
            "total_amount": format_amount(self.total_amount),
            "pending_items": ", ".join(self.pending_items) or "None",
            "status": _text(self.status, "UPDATED"),
        }

class PayoutData(TemplateData):
    amount: Amount = None
    reference_id: Optional[str] = None
    reason: Optional[str] = None
    hold_amount: Amount = None
    current_earnings: Amount = None
    minimum_threshold: Amount = None
    old_rate: Optional[str] = None
    new_rate: Optional[str] = None

    def substitutions(self) -> Dict[str, str]:
        return {
            "amount": format_amount(self.amount),
            "reference_id": _text(self.reference_id, "N/A"),
            "reason": _text(self.reason, "Processing error"),
            "hold_amount": format_amount(self.hold_amount),
            "current_earnings": format_amount(self.current_earnings),
            "minimum_threshold": format_amount(self.minimum_threshold),
            "old_rate": _text(self.old_rate, "0.0"),
            "new_rate": _text(self.new_rate, "0.0"),
        }

class RefundData(TemplateData):
    order_id: Optional[str] = None
    product_name: Optional[str] = None
    reason: Optional[str] = None
    vendor_response: Optional[str] = None
    refund_amount: Amount = None
    status: Optional[str] = None
    agent_name: Optional[str] = None

    def substitutions(self) -> Dict[str, str]:
        return {
            "order_id": short_id(self.order_id),
            "product_name": _text(self.product_name, "Unknown Product"),
            "reason": _text(self.reason, "No reason provided"),
            "vendor_response": _text(self.vendor_response, "No response provided"),
            "refund_amount": format_amount(self.refund_amount),
            "status": _text(self.status, "UPDATED"),
            "agent_name": _text(self.agent_name, "To be assigned"),
        }

class AgentData(TemplateData):
    order_id: Optional[str] = None
    pickup_code: Optional[str] = None
    pickup_location: Optional[str] = None
    product_name: Optional[str] = None
    pickup_date: Optional[str] = None
    location_name: Optional[str] = None
    pickup_count: Optional[int] = None
    city: Optional[str] = None

    def substitutions(self) -> Dict[str, str]:
        return {
            "order_id": short_id(self.order_id),
            "pickup_code": _text(self.pickup_code, "N/A"),
            "pickup_location": _text(self.pickup_location, "Address not available"),
            "product_name": _text(self.product_name, "Unknown Product"),
            "pickup_date": _text(self.pickup_date, "the scheduled date"),
            "location_name": _text(self.location_name, "Unknown Location"),
            "pickup_count": _text(self.pickup_count, "0"),
            "city": _text(self.city, "your area"),
        }

class InventoryData(TemplateData):
    product_name: Optional[str] = None
    current_stock: Optional[int] = None
    new_stock: Optional[int] = None
    order_count: Optional[int] = None

    def substitutions(self) -> Dict[str, str]:
        return {
            "product_name": _text(self.product_name, "Unknown Product"),
            "current_stock": _text(self.current_stock, "0"),
            "new_stock": _text(self.new_stock, "0"),
            "order_count": _text(self.order_count, "0"),
        }

class CouponData(TemplateData):
    code: Optional[str] = None
    discount_text: Optional[str] = None
    expiry_date: Optional[str] = None
    usage_limit: Optional[int] = None
    usage_count: Optional[int] = None
    days_until_expiry: Optional[int] = None
    usage_percentage: Optional[Union[int, float]] = None
    remaining_uses: Optional[int] = None
    discount_amount: Amount = None
    order_id: Optional[str] = None
    reason: Optional[str] = None

    def substitutions(self) -> Dict[str, str]:
        percentage = "0" if self.usage_percentage is None else f"{self.usage_percentage:.0f}"
        return {
            "code": _text(self.code, "N/A"),
            "discount_text": _text(self.discount_text, "discount"),
            "expiry_date": _text(self.expiry_date, "No expiry"),
            "usage_limit": _text(self.usage_limit, "Unlimited"),
            "usage_count": _text(self.usage_count, "0"),
            "days_until_expiry": _text(self.days_until_expiry, "0"),
            "usage_percentage": percentage,
            "remaining_uses": _text(self.remaining_uses, "0"),
            "discount_amount": format_amount(self.discount_amount),
            "order_id": short_id(self.order_id),
            "reason": _text(self.reason, "Invalid coupon"),
        }

class ProductData(TemplateData):
    product_name: Optional[str] = None
    old_price: Amount = None
    new_price: Amount = None
    item_count: Optional[int] = None

    def substitutions(self) -> Dict[str, str]:
        return {
            "product_name": _text(self.product_name, "Unknown Product"),
            "old_price": format_amount(self.old_price),
            "new_price": format_amount(self.new_price),
            "item_count": _text(self.item_count, "0"),
        }

class ReviewData(TemplateData):
    product_name: Optional[str] = None
    customer_name: Optional[str] = None
    vendor_name: Optional[str] = None
    rating: Optional[int] = None
    rating_stars: Optional[str] = None
    review_comment: Optional[str] = None
    response_text: Optional[str] = None
    milestone_count: Optional[int] = None
    average_rating: Optional[str] = None

    def substitutions(self) -> Dict[str, str]:
        return {
            "product_name": _text(self.product_name, "Unknown Product"),
            "customer_name": _text(self.customer_name, "A customer"),
            "vendor_name": _text(self.vendor_name, "The vendor"),
            "rating": _text(self.rating, "0"),
            "rating_stars": _text(self.rating_stars),
            "review_comment": _text(self.review_comment, "No comment provided"),
            "response_text": _text(self.response_text),
            "milestone_count": _text(self.milestone_count, "0"),
            "average_rating": _text(self.average_rating, "0.0"),
        }

class AdminData(TemplateData):
    order_id: Optional[str] = None
    amount: Amount = None
    customer_name: Optional[str] = None
    vendor_name: Optional[str] = None
    store_name: Optional[str] = None

    def substitutions(self) -> Dict[str, str]:
        return {
            "order_id": short_id(self.order_id),
            "amount": format_amount(self.amount),
            "customer_name": _text(self.customer_name, "Unknown Customer"),
            "vendor_name": _text(self.vendor_name, "Unknown Vendor"),
            "store_name": _text(self.store_name, "Unknown Store"),
        }
