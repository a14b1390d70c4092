"""Pickup agent notifications"""

from typing import Iterable, Optional
from urllib.parse import quote
from sqlalchemy import select
from sqlalchemy.orm import joinedload
import logging

from app.models.address import Address
from app.models.order import Order, OrderItem
from app.models.refund import RefundRequest
from app.models.user import Agent
from app.utils.helpers import coerce_uuid
from ..errors import NotificationError
from ..results import NotificationResult, safe_notify
from .base import BaseNotifier, IdLike

logger = logging.getLogger(__name__)

ADDRESS_NOT_AVAILABLE = "Address not available"

def agent_order_url(order_id) -> str:
    return f"/agent/orders/{order_id}"

def agent_return_url(refund_id) -> str:
    return f"/agent/returns/{refund_id}"

class AgentNotifier(BaseNotifier):

    async def pickup_location(self, customer_id: Optional[IdLike]) -> str:
        """Customer's default address (or first one) as "line1, city" """
        if customer_id is None:
            return ADDRESS_NOT_AVAILABLE
        result = await self.db.execute(
            select(Address)
            .where(Address.customer_id == coerce_uuid(customer_id))
            .order_by(Address.is_default.desc(), Address.created_at.asc())
            .limit(1)
        )
        address = result.scalars().first()
        return address.display if address is not None else ADDRESS_NOT_AVAILABLE

    @staticmethod
    def _agent_of(row, agent_id: Optional[IdLike]) -> IdLike:
        agent_id = agent_id or row.agent_id
        if agent_id is None:
            raise NotificationError(f"No agent assigned to {type(row).__name__} {row.id}")
        return agent_id

    @safe_notify
    async def send_pickup_assignment(self, order_id: IdLike, agent_id: Optional[IdLike] = None) -> NotificationResult:
        order = await self._load(Order, order_id)
        user_id = await self.agent_user_id(self._agent_of(order, agent_id))
        return await self._notify(
            "NEW_PICKUP_ASSIGNMENT",
            user_id,
            {
                "order_id": order.display_id,
                "pickup_code": order.pickup_code,
                "pickup_location": await self.pickup_location(order.customer_id),
            },
            order_id=order.id,
            reference_url=agent_order_url(order.id),
        )

    @safe_notify
    async def send_route_optimization(self, city: str, order_ids: Iterable[IdLike]) -> NotificationResult:
        """Tell every active agent in `city` how many new pickups are waiting"""
        order_ids = list(order_ids)
        result = await self.db.execute(
            select(Agent.user_id).where(
                Agent.city == city,
                Agent.is_active.is_(True),
                Agent.user_id.is_not(None),
            )
        )
        drafts = [
            self._draft(
                "ROUTE_OPTIMIZATION",
                user_id,
                {"pickup_count": len(order_ids), "city": city},
                reference_url=f"/agent/dashboard?optimize=true&city={quote(city)}",
            )
            for user_id in result.scalars().all()
        ]
        return await self._notify_many(drafts, label=f"route optimization in {city}")

    @safe_notify
    async def send_pickup_completed(self, order_id: IdLike, agent_id: Optional[IdLike] = None) -> NotificationResult:
        order = await self._load(Order, order_id)
        user_id = await self.agent_user_id(self._agent_of(order, agent_id))
        return await self._notify(
            "PICKUP_COMPLETED",
            user_id,
            {"order_id": order.display_id},
            order_id=order.id,
            reference_url=agent_order_url(order.id),
        )

    async def _load_refund(self, refund_id: IdLike) -> RefundRequest:
        return await self._load(
            RefundRequest,
            refund_id,
            joinedload(RefundRequest.order),
            joinedload(RefundRequest.order_item).joinedload(OrderItem.product),
        )

    @safe_notify
    async def send_return_pickup_assignment(self, refund_id: IdLike, agent_id: Optional[IdLike] = None) -> NotificationResult:
        refund = await self._load_refund(refund_id)
        user_id = await self.agent_user_id(self._agent_of(refund, agent_id))
        return await self._notify(
            "RETURN_PICKUP_ASSIGNMENT",
            user_id,
            {
                "order_id": refund.order.display_id if refund.order is not None else refund.order_id,
                "product_name": refund.product_name,
                "pickup_location": await self.pickup_location(refund.customer_id),
            },
            order_id=refund.order_id,
            return_id=refund.id,
            reference_url=agent_return_url(refund.id),
        )

    @safe_notify
    async def send_refund_pickup_reminder(self, refund_id: IdLike, agent_id: Optional[IdLike] = None) -> NotificationResult:
        refund = await self._load_refund(refund_id)
        user_id = await self.agent_user_id(self._agent_of(refund, agent_id))
        pickup_date = refund.pickup_date.strftime("%Y-%m-%d") if refund.pickup_date else None
        return await self._notify(
            "REFUND_PICKUP_REMINDER",
            user_id,
            {
                "order_id": refund.order.display_id if refund.order is not None else refund.order_id,
                "pickup_date": pickup_date,
            },
            order_id=refund.order_id,
            return_id=refund.id,
            reference_url=agent_return_url(refund.id),
        )

    @safe_notify
    async def send_location_name_update(self, agent_id: IdLike, location_name: str) -> NotificationResult:
        user_id = await self.agent_user_id(agent_id)
        return await self._notify(
            "AGENT_LOCATION_NAME_UPDATE",
            user_id,
            {"location_name": location_name},
            reference_url="/agent/profile",
        )

    @safe_notify
    async def handle_agent_event(
        self,
        event: str,
        order_id: Optional[IdLike] = None,
        refund_id: Optional[IdLike] = None,
        agent_id: Optional[IdLike] = None,
        city: Optional[str] = None,
        order_ids: Optional[Iterable[IdLike]] = None,
        location_name: Optional[str] = None,
    ) -> NotificationResult:
        """
        Route an agent event to its notification

        Events: "pickup_assigned", "pickup_completed", "return_assigned",
        "pickup_reminder", "location_updated" and "route_optimization".
        """
        logger.info(f"Handling agent event {event}")

        if event in ("pickup_assigned", "pickup_completed"):
            if order_id is None:
                raise NotificationError(f"Order id is required for {event}")
            if event == "pickup_assigned":
                return await self.send_pickup_assignment(order_id, agent_id)
            return await self.send_pickup_completed(order_id, agent_id)

        if event in ("return_assigned", "pickup_reminder"):
            if refund_id is None:
                raise NotificationError(f"Refund id is required for {event}")
            if event == "return_assigned":
                return await self.send_return_pickup_assignment(refund_id, agent_id)
            return await self.send_refund_pickup_reminder(refund_id, agent_id)

        if event == "location_updated":
            if agent_id is None or not location_name:
                raise NotificationError("Agent id and location name are required for location_updated")
            return await self.send_location_name_update(agent_id, location_name)

        if event == "route_optimization":
            if not city or order_ids is None:
                raise NotificationError("City and order ids are required for route_optimization")
            return await self.send_route_optimization(city, order_ids)

        return NotificationResult.failure(f"Unsupported agent event: {event}")
