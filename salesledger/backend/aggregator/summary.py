"""
期間集計計算モジュール
日別集計結果から期間全体の合計・平均を算出する
"""
from dataclasses import dataclass
from typing import Iterable
import logging

from .daily import DayBucket

logger = logging.getLogger(__name__)


@dataclass
class PeriodSummary:
    """期間集計結果を格納するデータクラス"""
    total_revenue: float = 0.0            # 成約売上合計
    total_engagement_sales: int = 0       # 成約件数
    total_pos_sales: int = 0              # 在庫販売件数
    total_sales: int = 0                  # 成約 + 在庫販売
    average_daily_revenue: float = 0.0    # 売上/集計日数
    average_sale_amount: float = 0.0      # 売上/成約件数
    active_days: int = 0                  # 取引のあった日数
    total_units_from_pos: int = 0         # 在庫販売の数量合計

    def to_dict(self):
        """辞書形式に変換"""
        return {
            'total_revenue': self.total_revenue,
            'total_engagement_sales': self.total_engagement_sales,
            'total_pos_sales': self.total_pos_sales,
            'total_sales': self.total_sales,
            'average_daily_revenue': self.average_daily_revenue,
            'average_sale_amount': self.average_sale_amount,
            'active_days': self.active_days,
            'total_units_from_pos': self.total_units_from_pos
        }


class PeriodSummaryCalculator:
    """
    期間集計計算クラス

    使用例:
        calculator = PeriodSummaryCalculator(buckets)
        summary = calculator.calculate()
    """

    def __init__(self, buckets: Iterable[DayBucket]):
        """
        Args:
            buckets: 日別集計結果（チャネル指定による除外後）
        """
        self.buckets = list(buckets)
        self.result = PeriodSummary()

    def calculate(self) -> PeriodSummary:
        """
        全ての集計を実行

        Returns:
            PeriodSummary: 集計結果
        """
        self._calculate_totals()
        self._calculate_averages()
        return self.result

    def _calculate_totals(self) -> None:
        """合計を計算"""
        self.result.total_revenue = sum((b.engagement_revenue for b in self.buckets), 0.0)
        self.result.total_engagement_sales = sum(b.engagement_count for b in self.buckets)
        self.result.total_pos_sales = sum(b.pos_count for b in self.buckets)
        self.result.total_sales = (
            self.result.total_engagement_sales + self.result.total_pos_sales
        )
        self.result.total_units_from_pos = sum(b.units_sold for b in self.buckets)
        self.result.active_days = sum(
            1 for b in self.buckets if b.engagement_count > 0 or b.pos_count > 0
        )
        logger.info(f"期間売上合計: {self.result.total_revenue:,.0f}")

    def _calculate_averages(self) -> None:
        """平均を計算（ゼロ除算は0）"""
        day_count = len(self.buckets)
        if day_count > 0:
            self.result.average_daily_revenue = self.result.total_revenue / day_count
        else:
            self.result.average_daily_revenue = 0.0

        if self.result.total_engagement_sales > 0:
            self.result.average_sale_amount = (
                self.result.total_revenue / self.result.total_engagement_sales
            )
        else:
            self.result.average_sale_amount = 0.0

        logger.info(f"日平均売上: {self.result.average_daily_revenue:,.0f}")
        logger.info(f"成約平均金額: {self.result.average_sale_amount:,.0f}")


def summarize(buckets: Iterable[DayBucket]) -> PeriodSummary:
    return PeriodSummaryCalculator(buckets).calculate()
