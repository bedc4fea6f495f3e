"""Order money math: line totals, delivery surcharges and not-collected aggregates.

All amounts are ``Decimal`` naira, quantized with ``libs.common.currency``.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from libs.common.currency import ZERO, sum_money, to_money
from services.sales_service.models import DeliverySettings, SalesOrder


@dataclass(frozen=True)
class DeliveryCharges:
    """Absolute surcharges for one order (per-bag rate × bag count)."""

    onloading_cost: Decimal = ZERO
    delivery_cost: Decimal = ZERO
    offloading_cost: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return sum_money(
            [self.onloading_cost, self.delivery_cost, self.offloading_cost]
        )


NO_DELIVERY = DeliveryCharges()


def line_total(quantity: int, unit_price) -> Decimal:
    return to_money(to_money(unit_price) * quantity)


def delivery_charges(
    settings: Optional[DeliverySettings], total_bags: int
) -> DeliveryCharges:
    """Apply the per-bag rates in ``settings`` to ``total_bags``."""
    if settings is None or total_bags <= 0:
        return NO_DELIVERY
    return DeliveryCharges(
        onloading_cost=line_total(total_bags, settings.onloading_cost),
        delivery_cost=line_total(total_bags, settings.delivery_cost),
        offloading_cost=line_total(total_bags, settings.offloading_cost),
    )


def order_total(
    line_totals: Iterable[Decimal],
    is_delivery: bool,
    charges: DeliveryCharges = NO_DELIVERY,
) -> Decimal:
    """Items plus surcharges; surcharges only count for delivery orders."""
    items_total = sum_money(line_totals)
    if not is_delivery:
        return items_total
    return to_money(items_total + charges.total)


def charges_of(order: SalesOrder) -> DeliveryCharges:
    """The surcharges already snapshotted on ``order``."""
    return DeliveryCharges(
        onloading_cost=to_money(order.onloading_cost),
        delivery_cost=to_money(order.delivery_cost),
        offloading_cost=to_money(order.offloading_cost),
    )


def remaining_bags(order: SalesOrder) -> int:
    return sum(item.remaining_quantity for item in order.items)


def remaining_value(order: SalesOrder) -> Decimal:
    """Uncollected item value (pro rata per line) plus delivery costs."""
    value = Decimal("0")
    for item in order.items:
        if item.quantity <= 0:
            continue
        value += Decimal(item.remaining_quantity) / item.quantity * item.total_price
    if order.is_delivery:
        value += charges_of(order).total
    return to_money(value)


def not_collected_totals(orders: Iterable[SalesOrder]) -> tuple[int, int, Decimal]:
    """Return ``(total_count, total_bags, total_value)`` over ``orders``."""
    count = 0
    bags = 0
    value = Decimal("0")
    for order in orders:
        count += 1
        bags += remaining_bags(order)
        value += remaining_value(order)
    return count, bags, to_money(value)
