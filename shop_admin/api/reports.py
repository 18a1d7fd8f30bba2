from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from shop_admin.api.deps import get_ledger
from shop_admin.application.sales import SalesAggregationService, parse_date_bound
from shop_admin.application.schemas import ProductSalesRead

router = APIRouter(prefix="/reports", tags=["reports"])

@router.get("/product-sales", response_model=list[ProductSalesRead])
def product_sales(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    status: Optional[List[str]] = Query(None),
    ledger=Depends(get_ledger),
):
    """Sales per product, best sellers first. All order statuses count unless `status` is given."""
    report = SalesAggregationService(ledger).aggregate(
        start=parse_date_bound(start_date),
        end=parse_date_bound(end_date, end_of_day=True),
        statuses=status,
    )
    return [ProductSalesRead.model_validate(product) for product in report]
