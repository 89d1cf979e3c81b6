"""
日別売上集計モジュール
フォローアップ成約と在庫販売の2系統を暦日ごとに集約する
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional
import logging

from .filters import Channel, SalesFilter
from .formatting import format_date_key, format_display_date, format_full_date
from .records import EngagementRecord, PointOfSaleRecord

logger = logging.getLogger(__name__)

UNKNOWN_PRODUCT = "Unknown Product"
UNKNOWN_BRAND = "Unknown Brand"


@dataclass
class EngagementSaleLine:
    """フォローアップ成約明細"""
    customer_name: str
    mobile: str
    amount: float
    salesperson_name: str
    remarks: str
    location: str


@dataclass
class PosSaleLine:
    """在庫販売明細"""
    customer_name: str
    product_name: str
    brand_name: str
    model_number: str
    quantity: int
    bill_number: Optional[str] = None

    @property
    def description(self) -> str:
        return f"{self.quantity} units of {self.product_name or 'product'}"


@dataclass
class DayBucket:
    """1日分の集計"""
    date: date
    engagement_revenue: float = 0.0
    engagement_count: int = 0
    pos_count: int = 0
    engagement_details: List[EngagementSaleLine] = field(default_factory=list)
    pos_details: List[PosSaleLine] = field(default_factory=list)
    # 出現順を保持した重複なしリスト
    salespersons_involved: List[str] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return self.engagement_count + self.pos_count

    @property
    def average_sale_amount(self) -> float:
        """成約1件あたりの平均金額（成約なしは0）"""
        if self.engagement_count > 0:
            return self.engagement_revenue / self.engagement_count
        return 0.0

    @property
    def units_sold(self) -> int:
        return sum(line.quantity for line in self.pos_details)

    @property
    def date_key(self) -> str:
        return format_date_key(self.date)

    @property
    def display_date(self) -> str:
        return format_display_date(self.date)

    @property
    def full_date(self) -> str:
        return format_full_date(self.date)

    def add_engagement(self, line: EngagementSaleLine) -> None:
        self.engagement_revenue += line.amount
        self.engagement_count += 1
        self.engagement_details.append(line)
        if line.salesperson_name not in self.salespersons_involved:
            self.salespersons_involved.append(line.salesperson_name)

    def add_pos(self, line: PosSaleLine) -> None:
        self.pos_count += 1
        self.pos_details.append(line)

    def to_dict(self) -> dict:
        """辞書形式に変換"""
        return {
            'date': self.date_key,
            'display_date': self.display_date,
            'full_date': self.full_date,
            'engagement_revenue': self.engagement_revenue,
            'engagement_count': self.engagement_count,
            'pos_count': self.pos_count,
            'total_count': self.total_count,
            'average_sale_amount': self.average_sale_amount,
            'units_sold': self.units_sold,
            'salespersons_involved': list(self.salespersons_involved),
            'engagement_details': [vars(line).copy() for line in self.engagement_details],
            'pos_details': [
                dict(vars(line), description=line.description) for line in self.pos_details
            ],
        }


class DailySalesAggregator:
    """
    日別売上集計クラス

    2系統のレコードを常に両方とも集約してから、チャネル指定があれば
    該当件数0の日を除外する（表示用フィルタ）。

    使用例:
        aggregator = DailySalesAggregator(customers, sale_entries, sales_filter)
        buckets = aggregator.aggregate()        # {date: DayBucket}
        days = aggregator.sorted_buckets()      # 新しい日付順
    """

    def __init__(
        self,
        engagement_records: Iterable[EngagementRecord],
        pos_records: Iterable[PointOfSaleRecord],
        sales_filter: SalesFilter
    ):
        """
        Args:
            engagement_records: 顧客フォローアップレコード
            pos_records: 在庫販売レコード
            sales_filter: 集計条件
        """
        self.engagement_records = list(engagement_records)
        self.pos_records = list(pos_records)
        self.sales_filter = sales_filter

        self.buckets: Dict[date, DayBucket] = {}
        # 日付不正で除外した件数
        self.skipped_dates = 0

    def aggregate(self) -> Dict[date, DayBucket]:
        """
        全ての集計を実行

        Returns:
            Dict[date, DayBucket]: 日付をキーとした集計結果
        """
        self.buckets = {}
        self.skipped_dates = 0

        if not self.sales_filter.is_valid:
            logger.info(
                f"集計期間が無効です: {self.sales_filter.start_label} ～ {self.sales_filter.end_label}"
            )
            return self.buckets

        self._fold_engagement()
        self._fold_pos()
        self._apply_channel_filter()

        if self.skipped_dates:
            logger.debug(f"日付を解釈できないため除外: {self.skipped_dates}件")
        logger.info(
            f"日別集計完了: {len(self.buckets)}日 "
            f"({self.sales_filter.start_label} ～ {self.sales_filter.end_label})"
        )
        return self.buckets

    def sorted_buckets(self) -> List[DayBucket]:
        """集計を実行し、新しい日付順で取得"""
        return sort_buckets(self.aggregate())

    def _bucket_for(self, day: date) -> DayBucket:
        bucket = self.buckets.get(day)
        if bucket is None:
            bucket = DayBucket(date=day)
            self.buckets[day] = bucket
        return bucket

    def _fold_engagement(self) -> None:
        """フォローアップ成約を日別に集約"""
        for record in self.engagement_records:
            for event in record.events:
                if event.date is None:
                    self.skipped_dates += 1
                    continue
                if not self.sales_filter.engagement_predicate(record, event):
                    continue

                self._bucket_for(event.date).add_engagement(EngagementSaleLine(
                    customer_name=record.customer_name,
                    mobile=record.mobile,
                    amount=event.qualifying_amount,
                    salesperson_name=record.salesperson_name,
                    remarks=event.remarks,
                    location=record.location
                ))

    def _fold_pos(self) -> None:
        """在庫販売を日別に集約"""
        for record in self.pos_records:
            if record.date is None:
                self.skipped_dates += 1
                continue
            if not self.sales_filter.pos_predicate(record):
                continue

            self._bucket_for(record.date).add_pos(PosSaleLine(
                customer_name=record.customer_name,
                product_name=record.product_name or UNKNOWN_PRODUCT,
                brand_name=record.brand_name or UNKNOWN_BRAND,
                model_number=record.model_number or "",
                quantity=record.quantity,
                bill_number=record.bill_number
            ))

    def _apply_channel_filter(self) -> None:
        """チャネル指定時、該当チャネルの件数が0の日を除外"""
        channel = self.sales_filter.channel
        if channel is Channel.ENGAGEMENT:
            self.buckets = {d: b for d, b in self.buckets.items() if b.engagement_count > 0}
        elif channel is Channel.POS:
            self.buckets = {d: b for d, b in self.buckets.items() if b.pos_count > 0}


def sort_buckets(buckets: Dict[date, DayBucket]) -> List[DayBucket]:
    """新しい日付順に並べる"""
    return [buckets[day] for day in sorted(buckets, reverse=True)]


def aggregate_daily_sales(
    engagement_records: Iterable[EngagementRecord],
    pos_records: Iterable[PointOfSaleRecord],
    sales_filter: SalesFilter
) -> List[DayBucket]:
    """日別集計を実行し、新しい日付順のリストで返す"""
    aggregator = DailySalesAggregator(engagement_records, pos_records, sales_filter)
    return sort_buckets(aggregator.aggregate())
