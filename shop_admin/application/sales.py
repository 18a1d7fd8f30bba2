"""Per-product sales report built from order-item rows.

Each item splits into base, option and addon revenue:

    base   = product_price * quantity
    option = option_price * quantity
    addon  = sum(addon.price * addon.quantity) * quantity

The per-option breakdown sums base + option only; addon revenue is reported
once, in the per-addon breakdown. Order counts increase once per item row.
Orders of every status are included unless a status filter is given.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from shop_admin.core import get_logger
from shop_admin.domain.errors import AggregationFailed, InvalidRequest
from shop_admin.infrastructure.repositories import LedgerRepository
from .schemas import SelectedAddon, parse_selections

logger = get_logger(__name__)

NO_OPTION_ID = "no_option"
NO_OPTION_NAME = "No option"


@dataclass
class OptionSales:
    option_id: str
    option_name: str
    sales: int = 0
    quantity: int = 0
    order_count: int = 0


@dataclass
class AddonSales:
    addon_id: str
    addon_name: str
    sales: int = 0
    quantity: int = 0
    order_count: int = 0


@dataclass
class ProductSalesAggregate:
    product_id: str
    product_name: str
    base_sales: int = 0
    option_sales: int = 0
    addon_sales: int = 0
    total_quantity: int = 0
    order_count: int = 0
    options: List[OptionSales] = field(default_factory=list)
    addons: List[AddonSales] = field(default_factory=list)

    @property
    def total_sales(self) -> int:
        return self.base_sales + self.option_sales + self.addon_sales


def parse_addons(raw, item_id=None) -> List[SelectedAddon]:
    return parse_selections(SelectedAddon, raw, item_id)


def aggregate_items(items: Iterable) -> List[ProductSalesAggregate]:
    products: Dict[str, ProductSalesAggregate] = {}
    options: Dict[str, Dict[Tuple[str, str], OptionSales]] = {}
    addons: Dict[str, Dict[str, AddonSales]] = {}

    for item in items:
        quantity = item.quantity
        base = item.product_price * quantity
        option = (item.option_price or 0) * quantity
        selected = parse_addons(item.selected_addons, item.id)
        addon_total = sum(a.price * a.quantity for a in selected) * quantity

        product = products.get(item.product_id)
        if product is None:
            product = products[item.product_id] = ProductSalesAggregate(item.product_id, item.product_name)
            options[item.product_id] = {}
            addons[item.product_id] = {}
        product.base_sales += base
        product.option_sales += option
        product.addon_sales += addon_total
        product.total_quantity += quantity
        product.order_count += 1

        if item.option_id:
            key = (item.option_id, item.option_name or item.option_id)
        else:
            key = (NO_OPTION_ID, NO_OPTION_NAME)
        option_row = options[item.product_id].get(key)
        if option_row is None:
            option_row = options[item.product_id][key] = OptionSales(*key)
        option_row.sales += base + option
        option_row.quantity += quantity
        option_row.order_count += 1

        for addon in selected:
            addon_id = addon.id or addon.name or "unknown"
            addon_row = addons[item.product_id].get(addon_id)
            if addon_row is None:
                addon_row = addons[item.product_id][addon_id] = AddonSales(addon_id, addon.name or addon_id)
            addon_row.sales += addon.price * addon.quantity * quantity
            addon_row.quantity += addon.quantity * quantity
            addon_row.order_count += 1

    for product_id, product in products.items():
        product.options = sorted(options[product_id].values(), key=lambda o: o.sales, reverse=True)
        product.addons = sorted(addons[product_id].values(), key=lambda a: a.sales, reverse=True)
    return sorted(products.values(), key=lambda p: p.total_sales, reverse=True)


def parse_date_bound(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """Parse an ISO-8601 date or timestamp into a naive UTC datetime.

    A bare date means the whole day, so an end bound covers through 23:59:59.999999.
    """
    if not value:
        return None
    try:
        if len(value) == 10:
            day = date.fromisoformat(value)
            return datetime.combine(day, time.max if end_of_day else time.min)
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise InvalidRequest(f"Invalid date: {value}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class SalesAggregationService:
    def __init__(self, ledger: LedgerRepository):
        self.ledger = ledger

    def aggregate(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        statuses: Optional[List[str]] = None,
    ) -> List[ProductSalesAggregate]:
        if start and end and start > end:
            raise InvalidRequest("startDate must not be after endDate")
        try:
            rows = self.ledger.list_sales_rows(start, end, statuses)
        except SQLAlchemyError as e:
            logger.error(f"Product sales query failed: {e}")
            raise AggregationFailed("Failed to fetch product sales")
        return aggregate_items(rows)
