from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ReportModel(BaseModel):
    """Base for report payloads, exposed with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DailyRevenue(ReportModel):
    date: str
    revenue: float
    order_count: int


class PaymentMethodBreakdown(ReportModel):
    method: str
    amount: float
    count: int
    percentage: int


class OrderStatusBreakdown(ReportModel):
    status: str
    amount: float
    count: int
    percentage: int


class TopSellingItem(ReportModel):
    id: str
    name: str
    quantity: int
    revenue: float


class SalesReport(ReportModel):
    total_revenue: float
    total_orders: int
    average_order_value: float
    table_turnover_rate: float
    revenue_by_day: List[DailyRevenue]
    payment_methods: List[PaymentMethodBreakdown]
    order_types: List[OrderStatusBreakdown]
    top_selling_items: List[TopSellingItem]


class StockCategory(ReportModel):
    category: str
    total_items: int
    total_value: float
    avg_movement: str


class LowStockItem(ReportModel):
    id: Optional[str] = None
    name: Optional[str] = None
    category: str
    quantity: float
    min_stock_level: float


class InventoryReport(ReportModel):
    total_items: int
    total_value: float
    low_stock_items: int
    expiring_items: int
    stock_categories: List[StockCategory]
    low_stock_item_list: List[LowStockItem]


class RoleCount(ReportModel):
    role: str
    count: int


class StaffPerformer(ReportModel):
    id: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    performance: int
    orders_handled: Optional[int] = None
    tables_served: Optional[int] = None


class StaffReport(ReportModel):
    total_staff: int
    staff_by_role: List[RoleCount]
    top_performers: List[StaffPerformer]


class CategoryShare(ReportModel):
    category: str
    count: int
    percentage: int


class MenuItemStats(ReportModel):
    id: Optional[str] = None
    name: Optional[str] = None
    category: str
    price: float
    ordered_count: int
    revenue: float
    rating: Optional[float] = None


class LeastOrderedItem(ReportModel):
    id: Optional[str] = None
    name: Optional[str] = None
    category: str
    price: float
    ordered_count: int


class MenuReport(ReportModel):
    total_items: int
    category_breakdown: List[CategoryShare]
    top_items: List[MenuItemStats]
    least_ordered_items: List[LeastOrderedItem]


class CustomerSummary(ReportModel):
    name: str
    visits: int
    spent: float
    last_visit: str
    favorite_item: str
    preferred_time: str


class CustomerReport(ReportModel):
    total_customers: int
    new_customers: int
    repeat_customers: int
    top_customers: List[CustomerSummary]


ReportPayload = Union[SalesReport, InventoryReport, StaffReport, MenuReport, CustomerReport]


class TimeRange(ReportModel):
    start_date: datetime
    end_date: datetime


class ReportEnvelope(ReportModel):
    report_type: str
    period: str
    time_range: TimeRange
    data: ReportPayload
    generated_at: datetime


class ErrorResponse(BaseModel):
    detail: str


class InventoryRecord(ReportModel):
    id: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    quantity: float
    unit: Optional[str] = None
    cost_per_unit: float
    total_cost: float
    min_stock_level: float
    expiry_date: Optional[datetime] = None
    status: Optional[str] = None


class CategoryTotals(ReportModel):
    count: int
    value: float


class InventoryListingSummary(ReportModel):
    total_items: int
    total_value: float
    low_stock_items: int
    category_summary: Dict[str, CategoryTotals]


class InventoryListing(ReportModel):
    items: List[InventoryRecord]
    summary: InventoryListingSummary
    generated_at: datetime


class InventoryListingRequest(ReportModel):
    report_type: Optional[str] = None
    category: Optional[str] = None


class RevenueStat(ReportModel):
    current: float
    growth: float


class OrderStat(ReportModel):
    total: int
    growth: float


class CustomerStat(ReportModel):
    new: int
    growth: float


class AverageOrderValueStat(ReportModel):
    current: int
    previous: int


class DashboardStats(ReportModel):
    revenue: RevenueStat
    orders: OrderStat
    customers: CustomerStat
    average_order_value: AverageOrderValueStat
