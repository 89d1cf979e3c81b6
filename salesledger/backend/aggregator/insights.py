"""
売上・在庫分析モジュール
成約率、担当者別実績、在庫回転率、売上トレンド、商品・ブランド別販売数を算出する
"""
import pandas as pd
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional
import logging

from .records import EngagementRecord, FollowUpStatus, PointOfSaleRecord, Product

logger = logging.getLogger(__name__)

TREND_PERIODS = ("week", "month", "all")
# 期間 all の起点
ALL_PERIOD_START = date(2024, 1, 1)


@dataclass
class SalesMetrics:
    """フォローアップ全体の実績"""
    total_customers: int = 0
    completed_sales: int = 0
    rejected_sales: int = 0
    pending_sales: int = 0
    today_follow_ups: int = 0
    total_revenue: float = 0.0
    average_deal_size: float = 0.0
    conversion_rate: float = 0.0    # %
    rejection_rate: float = 0.0     # %


@dataclass
class SalespersonPerformance:
    """担当者別実績"""
    salesperson_id: str
    name: str
    total_customers: int = 0
    completed_sales: int = 0
    rejected_sales: int = 0
    revenue: float = 0.0
    average_deal_size: float = 0.0
    conversion_rate: float = 0.0
    efficiency: float = 0.0


@dataclass
class InventoryMetrics:
    """在庫状況"""
    total_products: int = 0
    total_stock: int = 0
    total_sold: int = 0
    low_stock_products: int = 0
    out_of_stock_products: int = 0
    in_stock_products: int = 0
    stock_turnover: float = 0.0     # %


@dataclass
class TrendPoint:
    """トレンドの1日分"""
    date: str
    label: str
    sales: int = 0
    customers: int = 0
    revenue: float = 0.0


@dataclass
class TrendAnalytics:
    """期間トレンド"""
    period: str
    start: Optional[date] = None
    end: Optional[date] = None
    total_sales: int = 0
    total_customers: int = 0
    total_revenue: float = 0.0
    daily_data: List[TrendPoint] = field(default_factory=list)
    growth_trend: float = 0.0       # 直近7日平均と前7日平均の増減率（%）
    average_daily_sales: float = 0.0


@dataclass
class ProductPerformance:
    """商品別販売実績"""
    product_id: str
    name: str
    brand: str
    total_sold: int
    recent_sales: int
    current_stock: int
    stock_status: str
    velocity: float


@dataclass
class BrandPerformance:
    """ブランド別販売実績"""
    brand_id: str
    name: str
    total_products: int
    total_sold: int
    total_stock: int


def _percent(numerator: float, denominator: float) -> float:
    return numerator / denominator * 100 if denominator > 0 else 0.0


def list_salespersons(records: Iterable[EngagementRecord]) -> List[Dict[str, str]]:
    """担当者一覧（ID・名前、名前順）"""
    seen = {}
    for record in records:
        if record.salesperson_id and record.salesperson_id not in seen:
            seen[record.salesperson_id] = record.salesperson_name
    return [
        {'id': sp_id, 'name': name}
        for sp_id, name in sorted(seen.items(), key=lambda item: (item[1], item[0]))
    ]


class SalesInsights:
    """
    売上・在庫分析クラス

    使用例:
        insights = SalesInsights(customers, sale_entries, products, today=date(2024, 3, 31))
        metrics = insights.sales_metrics()
        trend = insights.trend_analytics("month")
    """

    def __init__(
        self,
        engagement_records: Iterable[EngagementRecord],
        pos_records: Iterable[PointOfSaleRecord],
        products: Iterable[Product] = (),
        today: Optional[date] = None,
        low_stock_threshold: int = 5
    ):
        """
        Args:
            engagement_records: 顧客フォローアップレコード
            pos_records: 在庫販売レコード
            products: 商品マスタ
            today: 基準日（デフォルト: 本日）
            low_stock_threshold: 在庫僅少とみなす数量
        """
        self.engagement_records = list(engagement_records)
        self.pos_records = list(pos_records)
        self.products = list(products)
        self.today = today or date.today()
        self.low_stock_threshold = low_stock_threshold

        self.sales_df = pd.DataFrame(
            [
                {'product_id': r.product_id, 'date': r.date, 'quantity': r.quantity}
                for r in self.pos_records
            ],
            columns=['product_id', 'date', 'quantity']
        )

    # ========== フォローアップ ==========

    @staticmethod
    def _has_status(record: EngagementRecord, status: FollowUpStatus) -> bool:
        return any(event.status is status for event in record.events)

    @staticmethod
    def _revenue(record: EngagementRecord) -> float:
        return sum((event.qualifying_amount for event in record.events), 0.0)

    def sales_metrics(self) -> SalesMetrics:
        """フォローアップ全体の成約率・売上を算出"""
        records = self.engagement_records
        result = SalesMetrics(total_customers=len(records))

        result.completed_sales = sum(
            1 for r in records if self._has_status(r, FollowUpStatus.CLOSED_WON)
        )
        result.rejected_sales = sum(
            1 for r in records if self._has_status(r, FollowUpStatus.CLOSED_LOST)
        )
        result.pending_sales = sum(
            1 for r in records
            if not self._has_status(r, FollowUpStatus.CLOSED_WON)
            and not self._has_status(r, FollowUpStatus.CLOSED_LOST)
        )
        result.today_follow_ups = sum(
            1 for r in records if any(event.date == self.today for event in r.events)
        )

        result.total_revenue = sum((self._revenue(r) for r in records), 0.0)
        deals_with_amount = sum(
            1 for r in records for event in r.events if event.qualifying_amount > 0
        )
        if deals_with_amount > 0:
            result.average_deal_size = result.total_revenue / deals_with_amount

        result.conversion_rate = _percent(result.completed_sales, result.total_customers)
        result.rejection_rate = _percent(result.rejected_sales, result.total_customers)

        logger.info(
            f"フォローアップ実績: 顧客{result.total_customers}件, "
            f"成約{result.completed_sales}件, 売上{result.total_revenue:,.0f}"
        )
        return result

    def salesperson_performance(self) -> List[SalespersonPerformance]:
        """担当者別実績（売上の多い順）"""
        results = []
        for person in list_salespersons(self.engagement_records):
            customers = [
                r for r in self.engagement_records if r.salesperson_id == person['id']
            ]
            completed = sum(1 for r in customers if self._has_status(r, FollowUpStatus.CLOSED_WON))
            rejected = sum(1 for r in customers if self._has_status(r, FollowUpStatus.CLOSED_LOST))
            revenue = sum((self._revenue(r) for r in customers), 0.0)

            results.append(SalespersonPerformance(
                salesperson_id=person['id'],
                name=person['name'],
                total_customers=len(customers),
                completed_sales=completed,
                rejected_sales=rejected,
                revenue=revenue,
                average_deal_size=revenue / completed if completed > 0 else 0.0,
                conversion_rate=_percent(completed, len(customers)),
                efficiency=_percent(completed, completed + rejected)
            ))

        results.sort(key=lambda p: p.revenue, reverse=True)
        return results

    # ========== 在庫 ==========

    def _sold_by_product(self, df: Optional[pd.DataFrame] = None) -> Dict[str, int]:
        df = self.sales_df if df is None else df
        if df.empty:
            return {}
        totals = df.groupby('product_id')['quantity'].sum()
        return {str(product_id): int(quantity) for product_id, quantity in totals.items()}

    def _stock_status(self, quantity: int) -> str:
        if quantity == 0:
            return "Out of Stock"
        if quantity <= self.low_stock_threshold:
            return "Low Stock"
        return "In Stock"

    def inventory_metrics(self) -> InventoryMetrics:
        """在庫数・販売数・回転率を算出"""
        result = InventoryMetrics(total_products=len(self.products))
        result.total_stock = sum(p.quantity_available for p in self.products)
        result.total_sold = int(self.sales_df['quantity'].sum()) if not self.sales_df.empty else 0

        threshold = self.low_stock_threshold
        result.low_stock_products = sum(
            1 for p in self.products if 0 < p.quantity_available <= threshold
        )
        result.out_of_stock_products = sum(1 for p in self.products if p.quantity_available == 0)
        result.in_stock_products = sum(1 for p in self.products if p.quantity_available > threshold)

        result.stock_turnover = _percent(result.total_sold, result.total_stock + result.total_sold)
        return result

    def top_products(self, limit: int = 10) -> List[ProductPerformance]:
        """販売数上位の商品（販売なしは除外）"""
        sold = self._sold_by_product()

        month_df = self.sales_df[
            self.sales_df['date'].map(
                lambda d: d is not None and (d.year, d.month) == (self.today.year, self.today.month)
            ).astype(bool)
        ] if not self.sales_df.empty else self.sales_df
        recent = self._sold_by_product(month_df)

        results = []
        for product in self.products:
            total_sold = sold.get(product.product_id, 0)
            if total_sold <= 0:
                continue
            results.append(ProductPerformance(
                product_id=product.product_id,
                name=product.product_name,
                brand=product.brand_name,
                total_sold=total_sold,
                recent_sales=recent.get(product.product_id, 0),
                current_stock=product.quantity_available,
                stock_status=self._stock_status(product.quantity_available),
                velocity=total_sold / max(1, total_sold + product.quantity_available)
            ))

        results.sort(key=lambda p: p.total_sold, reverse=True)
        return results[:limit]

    def brand_performance(self, limit: int = 5) -> List[BrandPerformance]:
        """ブランド別の販売数上位"""
        if not self.products:
            return []

        sold = self._sold_by_product()
        products_df = pd.DataFrame([
            {
                'brand_id': p.brand_id,
                'name': p.brand_name,
                'total_sold': sold.get(p.product_id, 0),
                'total_stock': p.quantity_available,
            }
            for p in self.products
        ])
        grouped = products_df.groupby('brand_id', sort=False).agg(
            name=('name', 'first'),
            total_products=('name', 'size'),
            total_sold=('total_sold', 'sum'),
            total_stock=('total_stock', 'sum'),
        ).reset_index()
        grouped = grouped.sort_values('total_sold', ascending=False, kind='mergesort').head(limit)

        return [
            BrandPerformance(
                brand_id=str(row.brand_id),
                name=row.name,
                total_products=int(row.total_products),
                total_sold=int(row.total_sold),
                total_stock=int(row.total_stock)
            )
            for row in grouped.itertuples(index=False)
        ]

    # ========== トレンド ==========

    def _period_range(self, period: str):
        if period == "week":
            return self.today - timedelta(days=7), self.today
        if period == "month":
            start = self.today.replace(day=1)
            end = (pd.Timestamp(start) + pd.offsets.MonthEnd(0)).date()
            return start, end
        if period == "all":
            return ALL_PERIOD_START, self.today
        raise ValueError(f"不明な期間です: '{period}'（week / month / all のいずれか）")

    def trend_analytics(self, period: str = "month") -> TrendAnalytics:
        """
        期間内の日別推移と増減率を算出

        Args:
            period: week / month / all

        Raises:
            ValueError: 不明な期間の場合
        """
        start, end = self._period_range(period)
        result = TrendAnalytics(period=period, start=start, end=end)

        def in_period(day):
            return day is not None and start <= day <= end

        sales_per_day: Dict[date, int] = {}
        for record in self.pos_records:
            if in_period(record.date):
                sales_per_day[record.date] = sales_per_day.get(record.date, 0) + 1

        customers_per_day: Dict[date, int] = {}
        revenue_per_day: Dict[date, float] = {}
        for record in self.engagement_records:
            if in_period(record.created_at):
                customers_per_day[record.created_at] = customers_per_day.get(record.created_at, 0) + 1
            for event in record.events:
                amount = event.qualifying_amount
                if amount > 0 and in_period(event.date):
                    revenue_per_day[event.date] = revenue_per_day.get(event.date, 0.0) + amount

        result.total_sales = sum(sales_per_day.values())
        result.total_customers = sum(customers_per_day.values())
        result.total_revenue = sum(revenue_per_day.values(), 0.0)

        points = [
            TrendPoint(
                date=day.isoformat(),
                label=day.strftime("%b %d"),
                sales=sales_per_day.get(day, 0),
                customers=customers_per_day.get(day, 0),
                revenue=revenue_per_day.get(day, 0.0)
            )
            for day in (ts.date() for ts in pd.date_range(start, end, freq="D"))
        ]

        recent = points[-7:]
        previous = points[-14:-7]
        recent_avg = sum(p.sales for p in recent) / max(1, len(recent))
        previous_avg = sum(p.sales for p in previous) / max(1, len(previous))

        result.daily_data = recent
        result.average_daily_sales = recent_avg
        if previous_avg > 0:
            result.growth_trend = (recent_avg - previous_avg) / previous_avg * 100

        logger.info(f"トレンド集計完了: {period} ({start} ～ {end}) 増減率 {result.growth_trend:.1f}%")
        return result

    def to_dict(self, period: str = "month") -> dict:
        """全ての分析結果を辞書形式で取得"""
        trend = self.trend_analytics(period)
        trend_dict = asdict(trend)
        trend_dict['start'] = trend.start.isoformat() if trend.start else None
        trend_dict['end'] = trend.end.isoformat() if trend.end else None
        return {
            'sales_metrics': asdict(self.sales_metrics()),
            'salesperson_performance': [asdict(p) for p in self.salesperson_performance()],
            'inventory_metrics': asdict(self.inventory_metrics()),
            'trend': trend_dict,
            'top_products': [asdict(p) for p in self.top_products()],
            'brand_performance': [asdict(b) for b in self.brand_performance()],
        }
