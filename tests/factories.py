"""Row builders for tests; every builder commits so API sessions see the data"""

from datetime import timedelta
from decimal import Decimal
from itertools import count
from typing import Iterable, Optional, Tuple

from sqlalchemy import select

from app.core.security import SecurityUtils
from app.models import (
    Address,
    Agent,
    Coupon,
    Customer,
    DiscountType,
    Notification,
    Order,
    OrderItem,
    Product,
    RefundRequest,
    RefundStatus,
    Review,
    User,
    UserRole,
    Vendor,
    WishlistItem,
)
from app.utils.helpers import utcnow

_sequence = count(1)

async def _save(db, *rows):
    db.add_all(rows)
    await db.commit()
    return rows[0] if len(rows) == 1 else rows

def auth_headers(user: User) -> dict:
    token = SecurityUtils.create_access_token({"sub": str(user.id), "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}

async def make_user(db, role: UserRole = UserRole.CUSTOMER, name: Optional[str] = None, is_active: bool = True) -> User:
    n = next(_sequence)
    user = User(
        email=f"user{n}@example.com",
        name=name or f"User {n}",
        role=role,
        is_active=is_active,
    )
    return await _save(db, user)

async def make_customer(db, with_user: bool = True, address: Optional[Tuple[str, str]] = None) -> Customer:
    user = await make_user(db, UserRole.CUSTOMER) if with_user else None
    customer = Customer(user_id=user.id if user else None)
    await _save(db, customer)
    if address:
        await _save(db, Address(customer_id=customer.id, line1=address[0], city=address[1], is_default=True))
    return customer

async def make_vendor(db, with_user: bool = True, store_name: str = "Corner Store", is_approved: bool = True) -> Vendor:
    user = await make_user(db, UserRole.VENDOR, name=f"{store_name} Owner") if with_user else None
    vendor = Vendor(
        user_id=user.id if user else None,
        store_name=store_name,
        is_approved=is_approved,
        commission_rate=Decimal("0.05"),
        minimum_payout=Decimal("5000"),
    )
    return await _save(db, vendor)

async def make_agent(db, city: str = "Lagos", name: str = "Tunde", with_user: bool = True, is_active: bool = True) -> Agent:
    user = await make_user(db, UserRole.AGENT, name=name) if with_user else None
    agent = Agent(user_id=user.id if user else None, name=name, city=city, is_active=is_active)
    return await _save(db, agent)

async def make_admin(db, is_active: bool = True) -> User:
    return await make_user(db, UserRole.ADMIN, name="Admin", is_active=is_active)

async def make_product(
    db,
    vendor: Vendor,
    name: str = "Blue Kettle",
    price: Decimal = Decimal("2500"),
    inventory: int = 20,
    is_published: bool = True,
) -> Product:
    product = Product(vendor_id=vendor.id, name=name, price=price, inventory=inventory, is_published=is_published)
    return await _save(db, product)

async def make_order(
    db,
    customer: Customer,
    lines: Iterable[Tuple[Product, int, Decimal]] = (),
    total_amount: Optional[Decimal] = None,
    agent: Optional[Agent] = None,
    pickup_code: Optional[str] = "PK-1234",
) -> Order:
    lines = list(lines)
    if total_amount is None:
        total_amount = sum((Decimal(price) * qty for _, qty, price in lines), Decimal("0"))
    order = Order(
        short_id=f"ORD{next(_sequence):05d}",
        customer_id=customer.id,
        agent_id=agent.id if agent else None,
        total_amount=total_amount,
        payment_method="card",
        payment_reference="REF-1",
        pickup_code=pickup_code,
    )
    await _save(db, order)
    if lines:
        items = [
            OrderItem(order_id=order.id, product_id=product.id, vendor_id=product.vendor_id, quantity=qty, price=price)
            for product, qty, price in lines
        ]
        await _save(db, *items)
    return order

async def make_coupon(
    db,
    vendor: Optional[Vendor],
    code: Optional[str] = None,
    usage_limit: Optional[int] = 100,
    usage_count: int = 0,
    expires_in_days: Optional[float] = 30,
    discount_type: DiscountType = DiscountType.PERCENTAGE,
    discount_value: Decimal = Decimal("10"),
    is_active: bool = True,
) -> Coupon:
    coupon = Coupon(
        vendor_id=vendor.id if vendor else None,
        code=code or f"SAVE{next(_sequence)}",
        discount_type=discount_type,
        discount_value=discount_value,
        usage_limit=usage_limit,
        usage_count=usage_count,
        expires_at=utcnow() + timedelta(days=expires_in_days) if expires_in_days is not None else None,
        is_active=is_active,
    )
    return await _save(db, coupon)

async def make_refund(
    db,
    order: Order,
    customer: Customer,
    item: Optional[OrderItem] = None,
    vendor: Optional[Vendor] = None,
    agent: Optional[Agent] = None,
    status: RefundStatus = RefundStatus.REQUESTED,
    refund_amount: Decimal = Decimal("2500"),
) -> RefundRequest:
    refund = RefundRequest(
        order_id=order.id,
        order_item_id=item.id if item else None,
        customer_id=customer.id,
        vendor_id=vendor.id if vendor else None,
        agent_id=agent.id if agent else None,
        status=status,
        reason="Arrived damaged",
        refund_amount=refund_amount,
    )
    return await _save(db, refund)

async def make_wishlist_item(db, customer: Customer, product: Product) -> WishlistItem:
    return await _save(db, WishlistItem(customer_id=customer.id, product_id=product.id))

async def make_review(db, customer: Customer, product: Product, rating: int = 5, comment: Optional[str] = "Great kettle") -> Review:
    return await _save(db, Review(customer_id=customer.id, product_id=product.id, rating=rating, comment=comment))

async def make_notification(db, user: User, title: str = "Hello", type: str = "ORDER_STATUS_CHANGE", is_read: bool = False, **extra) -> Notification:
    notification = Notification(
        user_id=user.id,
        title=title,
        message=f"{title} message",
        type=type,
        is_read=is_read,
        read_at=utcnow() if is_read else None,
        **extra,
    )
    return await _save(db, notification)

async def order_items(db, order: Order):
    result = await db.execute(select(OrderItem).where(OrderItem.order_id == order.id))
    return list(result.scalars().all())

async def notifications_for(db, user_id):
    result = await db.execute(
        select(Notification).where(Notification.user_id == user_id).order_by(Notification.created_at)
    )
    return list(result.scalars().all())
