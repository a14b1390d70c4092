"""
Notification template registry and substitution engine

The registry is a read-only mapping built once at import time. Rendering
is pure: the same key and data always give the same title, message and
type. Placeholders without a substitution are left as written.
"""

from dataclasses import dataclass
from pydantic import ValidationError
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Type, Union
import logging

from app.core.config import settings
from app.models.notification import NotificationType
from .errors import TemplateNotFoundError
from .template_data import (
    TemplateData,
    OrderData,
    PaymentData,
    VendorOrderData,
    PayoutData,
    RefundData,
    AgentData,
    InventoryData,
    CouponData,
    ProductData,
    ReviewData,
    AdminData,
)

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class NotificationTemplate:
    key: str
    title: str
    message: str
    type: NotificationType
    data_model: Type[TemplateData]

    def build_data(self, data: Union[TemplateData, Mapping[str, Any], None]) -> TemplateData:
        """Validate input into this template's data model, leniently"""
        if isinstance(data, self.data_model):
            return data
        if isinstance(data, TemplateData):
            data = data.model_dump()
        payload = dict(data or {})
        try:
            return self.data_model.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Template {self.key} received malformed data, rendering unchecked: {e}")
            fields = {k: v for k, v in payload.items() if k in self.data_model.model_fields}
            return self.data_model.model_construct(**fields)

@dataclass(frozen=True)
class RenderedNotification:
    title: str
    message: str
    type: NotificationType

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "message": self.message, "type": self.type.value}

def apply_substitutions(pattern: str, substitutions: Mapping[str, str]) -> str:
    """Replace every {key} occurrence; unknown placeholders stay verbatim"""
    result = pattern
    for key, value in substitutions.items():
        result = result.replace("{" + key + "}", value)
    return result

def _template(key: str, title: str, message: str, type: NotificationType, data_model: Type[TemplateData]):
    return key, NotificationTemplate(key, title, message, type, data_model)

T = NotificationType

TEMPLATES: Mapping[str, NotificationTemplate] = MappingProxyType(dict([
    # Customer order lifecycle
    _template("ORDER_CONFIRMATION", "Order Confirmed",
              "Your order #{order_id} has been confirmed and is being processed.",
              T.ORDER_STATUS_CHANGE, OrderData),
    _template("ORDER_PROCESSING", "Order Processing",
              "Your order #{order_id} is now being prepared.",
              T.ORDER_STATUS_CHANGE, OrderData),
    _template("ORDER_READY_FOR_PICKUP", "Order Ready for Pickup",
              "Your order #{order_id} is ready! Pickup code: {pickup_code}",
              T.PICKUP_READY, OrderData),
    _template("ORDER_SHIPPED", "Order Shipped",
              "Your order #{order_id} is on its way.",
              T.ORDER_STATUS_CHANGE, OrderData),
    _template("ORDER_DELIVERED", "Order Delivered",
              "Your order #{order_id} has been delivered.",
              T.ORDER_DELIVERED, OrderData),
    _template("ORDER_CANCELLED", "Order Cancelled",
              "Your order #{order_id} has been cancelled.",
              T.ORDER_STATUS_CHANGE, OrderData),
    _template("ORDER_PICKED_UP", "Order Picked Up",
              "Your order #{order_id} has been successfully picked up.",
              T.ORDER_PICKED_UP, OrderData),

    # Payments
    _template("PAYMENT_SUCCESS", "Payment Successful",
              "Payment of {currency}{total_amount} for order #{order_id} was successful ({payment_method}). Reference: {payment_reference}",
              T.ORDER_STATUS_CHANGE, PaymentData),
    _template("PAYMENT_FAILED", "Payment Failed",
              "Payment for order #{order_id} failed: {reason}. Please try again.",
              T.PAYMENT_FAILED, PaymentData),
    _template("PAYMENT_RECEIVED", "Payment Received",
              "Payment received for order #{order_id}. Your earnings: {currency}{earnings}",
              T.PAYMENT_RECEIVED, PaymentData),

    # Vendor orders
    _template("NEW_ORDER_VENDOR", "New Order Received",
              "You have received a new order #{order_id} with {item_count} item(s) worth {currency}{total_amount}. Please prepare items for pickup.",
              T.NEW_ORDER_VENDOR, VendorOrderData),
    _template("ORDER_PROCESSING_REMINDER", "Order Processing Reminder",
              "Please process order #{order_id}. Pending items: {pending_items}",
              T.ORDER_STATUS_CHANGE, VendorOrderData),
    _template("VENDOR_ORDER_STATUS_CHANGE", "Order Status Update",
              "Order #{order_id} status changed to {status}",
              T.ORDER_STATUS_CHANGE, VendorOrderData),

    # Payouts
    _template("PAYOUT_PROCESSED", "Payout Processed",
              "Your payout of {currency}{amount} has been processed successfully. Reference: {reference_id}",
              T.PAYOUT_PROCESSED, PayoutData),
    _template("PAYOUT_FAILED", "Payout Failed",
              "Your payout of {currency}{amount} could not be processed: {reason}",
              T.PAYOUT_PROCESSED, PayoutData),
    _template("PAYOUT_ON_HOLD", "Payout On Hold",
              "{currency}{hold_amount} of your payouts has been placed on hold. Reason: {reason}",
              T.PAYOUT_ON_HOLD, PayoutData),
    _template("PAYOUT_HOLD_RELEASED", "Payout Hold Released",
              "The hold of {currency}{hold_amount} on your payouts has been released.",
              T.PAYOUT_HOLD_RELEASED, PayoutData),
    _template("MINIMUM_PAYOUT_REACHED", "Minimum Payout Reached",
              "Your earnings of {currency}{current_earnings} have reached the minimum payout of {currency}{minimum_threshold}. You can now request a payout.",
              T.MINIMUM_PAYOUT_REACHED, PayoutData),
    _template("COMMISSION_RATE_CHANGED", "Commission Rate Updated",
              "Your commission rate has changed from {old_rate}% to {new_rate}%.",
              T.COMMISSION_RATE_CHANGED, PayoutData),

    # Refunds and returns
    _template("REFUND_REQUEST_SUBMITTED", "Refund Request Submitted",
              "Your refund request for order #{order_id} has been submitted and is under review.",
              T.RETURN_REQUESTED, RefundData),
    _template("REFUND_VENDOR_ACTION_REQUIRED", "Refund Request Needs Your Action",
              'A refund was requested for "{product_name}" on order #{order_id}. Reason: {reason}',
              T.RETURN_VENDOR_ACTION_REQUIRED, RefundData),
    _template("REFUND_APPROVED", "Refund Approved",
              "Your refund request for order #{order_id} has been approved. Processing will begin shortly.",
              T.RETURN_APPROVED, RefundData),
    _template("REFUND_REJECTED", "Refund Rejected",
              "Your refund request for order #{order_id} was rejected. Response: {vendor_response}",
              T.RETURN_REJECTED, RefundData),
    _template("REFUND_PROCESSING", "Refund Processing",
              "Your refund of {currency}{refund_amount} for order #{order_id} is being processed.",
              T.REFUND_PROCESSED, RefundData),
    _template("REFUND_PROCESSED", "Refund Processed",
              "Your refund for order #{order_id} has been processed successfully.",
              T.REFUND_PROCESSED, RefundData),
    _template("REFUND_STATUS_UPDATE", "Refund Status Update",
              "Your refund for order #{order_id} is now {status}.",
              T.RETURN_REQUESTED, RefundData),
    _template("REFUND_PICKUP_SCHEDULED", "Return Pickup Scheduled",
              "A pickup for your return on order #{order_id} has been scheduled. Agent: {agent_name}",
              T.RETURN_APPROVED, RefundData),

    # Agents
    _template("NEW_PICKUP_ASSIGNMENT", "New Pickup Assignment",
              "You have been assigned a new pickup for order #{order_id}. Pickup code: {pickup_code}. Location: {pickup_location}",
              T.NEW_PICKUP_ASSIGNMENT, AgentData),
    _template("ROUTE_OPTIMIZATION", "New Pickups Available",
              "{pickup_count} new pickup(s) available in {city}. Optimize your route for efficient delivery.",
              T.NEW_PICKUP_ASSIGNMENT, AgentData),
    _template("PICKUP_COMPLETED", "Pickup Completed",
              "Pickup for order #{order_id} has been completed.",
              T.ORDER_PICKED_UP, AgentData),
    _template("RETURN_PICKUP_ASSIGNMENT", "Return Pickup Assignment",
              'You have been assigned a return pickup of "{product_name}" for order #{order_id}. Location: {pickup_location}',
              T.RETURN_PICKUP_ASSIGNMENT, AgentData),
    _template("REFUND_PICKUP_REMINDER", "Return Pickup Reminder",
              "Reminder: the return pickup for order #{order_id} is scheduled for {pickup_date}.",
              T.RETURN_PICKUP_ASSIGNMENT, AgentData),
    _template("AGENT_LOCATION_NAME_UPDATE", "Location Updated",
              'Your location name has been updated to "{location_name}".',
              T.AGENT_LOCATION_NAME_UPDATE, AgentData),

    # Inventory
    _template("LOW_STOCK_ALERT", "Low Stock Alert",
              'Your product "{product_name}" is running low on stock (current: {current_stock}).',
              T.LOW_STOCK_ALERT, InventoryData),
    _template("OUT_OF_STOCK_ALERT", "Out of Stock Alert",
              'Your product "{product_name}" is out of stock and needs restocking.',
              T.LOW_STOCK_ALERT, InventoryData),
    _template("INVENTORY_UPDATE", "Product Restocked",
              'Your product "{product_name}" is back in stock (current: {new_stock}).',
              T.LOW_STOCK_ALERT, InventoryData),
    _template("POPULAR_PRODUCT_ALERT", "Popular Product Alert",
              'Your product "{product_name}" is trending with {order_count} orders in the last 24 hours!',
              T.POPULAR_PRODUCT_ALERT, InventoryData),

    # Coupons
    _template("COUPON_CREATED", "Coupon Created",
              'Your coupon "{code}" ({discount_text}) is now active. Expires: {expiry_date}. Usage limit: {usage_limit}.',
              T.COUPON_CREATED, CouponData),
    _template("COUPON_EXPIRED", "Coupon Expiring Soon",
              'Your coupon "{code}" expires in {days_until_expiry} day(s). Used {usage_count} times.',
              T.COUPON_EXPIRED, CouponData),
    _template("COUPON_USAGE_THRESHOLD", "Coupon Usage Alert",
              'Your coupon "{code}" is {usage_percentage}% used ({usage_count}/{usage_limit}). {remaining_uses} uses remaining.',
              T.COUPON_USAGE_THRESHOLD, CouponData),
    _template("COUPON_APPLIED", "Coupon Applied",
              'Coupon "{code}" applied! You saved {currency}{discount_amount}.',
              T.COUPON_APPLIED, CouponData),
    _template("COUPON_FAILED", "Coupon Not Applied",
              'Coupon "{code}" could not be applied: {reason}',
              T.COUPON_FAILED, CouponData),

    # Wishlist products
    _template("PRODUCT_BACK_IN_STOCK", "Product Back in Stock!",
              '"{product_name}" from your wishlist is back in stock!',
              T.PRODUCT_BACK_IN_STOCK, ProductData),
    _template("PRODUCT_PRICE_DROP", "Price Drop Alert!",
              '"{product_name}" from your wishlist price dropped from {currency}{old_price} to {currency}{new_price}!',
              T.PRODUCT_PRICE_DROP, ProductData),
    _template("WISHLIST_REMINDER", "Your Wishlist Summary",
              "You have {item_count} item(s) waiting in your wishlist.",
              T.WISHLIST_REMINDER, ProductData),

    # Reviews
    _template("NEW_PRODUCT_REVIEW", "New Product Review",
              "{customer_name} left a {rating}-star review {rating_stars} on \"{product_name}\": {review_comment}",
              T.NEW_PRODUCT_REVIEW, ReviewData),
    _template("REVIEW_RESPONSE", "Vendor Responded to Your Review",
              '{vendor_name} replied to your review of "{product_name}": {response_text}',
              T.REVIEW_RESPONSE, ReviewData),
    _template("REVIEW_MILESTONE", "Review Milestone Reached!",
              '"{product_name}" now has {milestone_count} reviews with an average rating of {average_rating} {rating_stars}',
              T.REVIEW_MILESTONE, ReviewData),
    _template("REVIEW_REQUEST", "How was your purchase?",
              'We\'d love to hear about your experience with "{product_name}". Your review helps other customers!',
              T.REVIEW_RESPONSE, ReviewData),

    # Admin
    _template("HIGH_VALUE_ORDER_ALERT", "High Value Order Alert",
              "High-value order #{order_id} ({currency}{amount}) placed by {customer_name}",
              T.HIGH_VALUE_ORDER_ALERT, AdminData),
    _template("NEW_VENDOR_APPLICATION", "New Vendor Application",
              '{vendor_name} applied to become a vendor with store "{store_name}". Review required.',
              T.NEW_VENDOR_APPLICATION, AdminData),
    _template("PAYOUT_REQUEST", "New Payout Request",
              '{vendor_name} ("{store_name}") requested a payout of {currency}{amount}.',
              T.PAYOUT_PROCESSED, AdminData),
]))

def get_template(template_key: str) -> NotificationTemplate:
    try:
        return TEMPLATES[template_key]
    except KeyError:
        raise TemplateNotFoundError(template_key) from None

def render(template_key: str, data: Union[TemplateData, Mapping[str, Any], None] = None) -> RenderedNotification:
    """
    Render a template into title, message and type

    Args:
        template_key: registry key, e.g. "ORDER_CONFIRMATION"
        data: mapping or instance of the template's data model

    Raises:
        TemplateNotFoundError: unknown template key
    """
    template = get_template(template_key)
    substitutions = {"currency": settings.CURRENCY_SYMBOL, **template.build_data(data).substitutions()}
    return RenderedNotification(
        title=apply_substitutions(template.title, substitutions),
        message=apply_substitutions(template.message, substitutions),
        type=template.type,
    )

_CATEGORIES = (
    (T.ORDER_STATUS_CHANGE, "Order Updates", "Order status changes and updates"),
    (T.PICKUP_READY, "Pickup Ready", "Order ready for pickup"),
    (T.ORDER_PICKED_UP, "Order Picked Up", "Order successfully picked up"),
    (T.RETURN_REQUESTED, "Return Requests", "Return and refund requests"),
    (T.RETURN_APPROVED, "Return Approved", "Return requests approved"),
    (T.RETURN_REJECTED, "Return Rejected", "Return requests rejected"),
    (T.REFUND_PROCESSED, "Refund Processed", "Refunds processed successfully"),
    (T.PAYMENT_FAILED, "Payment Issues", "Payment failures and issues"),
    (T.NEW_ORDER_VENDOR, "New Orders", "New orders received (vendors)"),
    (T.PAYOUT_PROCESSED, "Payouts", "Payout processing updates"),
    (T.LOW_STOCK_ALERT, "Stock Alerts", "Low stock and inventory alerts"),
    (T.NEW_PICKUP_ASSIGNMENT, "Pickup Assignments", "New pickup assignments (agents)"),
)

def notification_categories() -> List[Dict[str, str]]:
    """Categories shown in notification filters and preference screens"""
    return [
        {"value": value.value, "label": label, "description": description}
        for value, label, description in _CATEGORIES
    ]
