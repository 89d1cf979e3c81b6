"""
集計期間・フィルタ条件モジュール
期間（開始日・終了日）、担当者、チャネルから判定関数を生成する
"""
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Optional

from .records import (
    EngagementEvent,
    EngagementRecord,
    FollowUpStatus,
    PointOfSaleRecord,
    to_calendar_date,
)


class Channel(str, Enum):
    """売上チャネル"""
    ALL = "all"
    ENGAGEMENT = "engagement"
    POS = "pos"

    @classmethod
    def parse(cls, value) -> "Channel":
        """
        チャネル名を解釈（旧画面の follow-up / inventory も受け付ける）

        Raises:
            ValueError: 不明なチャネル名の場合
        """
        if isinstance(value, cls):
            return value
        text = str(value or "all").strip().lower()
        if text in _CHANNEL_ALIASES:
            return _CHANNEL_ALIASES[text]
        raise ValueError(f"不明なチャネルです: '{value}'（all / engagement / pos のいずれか）")


_CHANNEL_ALIASES = {
    "": Channel.ALL,
    "all": Channel.ALL,
    "engagement": Channel.ENGAGEMENT,
    "follow-up": Channel.ENGAGEMENT,
    "pos": Channel.POS,
    "inventory": Channel.POS,
}


@dataclass(frozen=True)
class SalesFilter:
    """
    集計条件

    開始日・終了日は両端を含む。開始日 > 終了日、または日付が解釈できない場合は
    どのレコードにも一致しない（空の集計結果になる）。

    使用例:
        sales_filter = SalesFilter.from_params("2024-03-01", "2024-03-31", channel="pos")
        sales_filter.pos_predicate(record)
    """
    start: Optional[date]
    end: Optional[date]
    salesperson_id: Optional[str] = None
    channel: Channel = Channel.ALL
    # ファイル名生成用（入力そのまま）
    start_label: str = ""
    end_label: str = ""

    @classmethod
    def from_params(
        cls,
        start,
        end,
        salesperson_id: Optional[str] = None,
        channel="all"
    ) -> "SalesFilter":
        """
        画面・APIのパラメータから生成

        Args:
            start: 開始日（文字列または date）
            end: 終了日（文字列または date）
            salesperson_id: 担当者ID（空文字・None は全担当者）
            channel: all / engagement / pos
        """
        start_date = to_calendar_date(start)
        end_date = to_calendar_date(end)
        return cls(
            start=start_date,
            end=end_date,
            salesperson_id=salesperson_id or None,
            channel=Channel.parse(channel),
            start_label=start_date.isoformat() if start_date else str(start or ""),
            end_label=end_date.isoformat() if end_date else str(end or ""),
        )

    @classmethod
    def default(cls, today: Optional[date] = None, days: int = 30) -> "SalesFilter":
        """直近 days 日間（今日を含む）の条件"""
        today = today or date.today()
        return cls.from_params(today - timedelta(days=days), today)

    @property
    def is_valid(self) -> bool:
        return self.start is not None and self.end is not None and self.start <= self.end

    def contains(self, day: Optional[date]) -> bool:
        """日付が期間内か（両端を含む）"""
        if day is None or not self.is_valid:
            return False
        return self.start <= day <= self.end

    def engagement_predicate(self, record: EngagementRecord, event: EngagementEvent) -> bool:
        """フォローアップ成約イベントが集計対象か"""
        if self.salesperson_id and record.salesperson_id != self.salesperson_id:
            return False
        if event.status is not FollowUpStatus.CLOSED_WON:
            return False
        if event.qualifying_amount <= 0:
            return False
        return self.contains(event.date)

    def pos_predicate(self, record: PointOfSaleRecord) -> bool:
        """在庫販売が集計対象か（担当者では絞り込まない）"""
        return self.contains(record.date)
