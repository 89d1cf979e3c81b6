"""
入力レコード定義モジュール
外部データ層（顧客フォローアップ・在庫販売）から受け取るレコードを正規化する
"""
import math
import pandas as pd
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)


def to_calendar_date(value) -> Optional[date]:
    """
    日付値を暦日（タイムゾーンなしの date）に正規化

    タイムゾーン変換は行わず、記録された時刻のまま日付部分だけを取り出す。
    解釈できない値は None を返す（例外は投げない）。

    Args:
        value: date / datetime / pd.Timestamp / 文字列

    Returns:
        date: 正規化済みの日付、解釈できない場合は None
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        # pd.Timestamp も datetime のサブクラス
        if pd.isna(value):
            return None
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed is None or pd.isna(parsed):
        return None
    return parsed.date()


class FollowUpStatus(str, Enum):
    """フォローアップの状態"""
    NOT_CONTACTED = "Not yet contacted"
    SCHEDULED = "Scheduled next follow-up"
    CLOSED_WON = "Sales completed"
    CLOSED_LOST = "Sales rejected"

    @classmethod
    def parse(cls, value) -> "FollowUpStatus":
        """
        ラベルまたは略称から状態を取得

        不明な値は未連絡として扱う（集計対象にはならない）
        """
        if isinstance(value, cls):
            return value

        text = str(value or "").strip()
        for status in cls:
            if text == status.value:
                return status

        slug = _STATUS_SLUGS.get(text.lower().replace("_", "-"))
        if slug is not None:
            return slug

        logger.warning(f"不明なフォローアップ状態: '{text}'（未連絡として扱います）")
        return cls.NOT_CONTACTED


_STATUS_SLUGS = {
    "not-contacted": FollowUpStatus.NOT_CONTACTED,
    "scheduled": FollowUpStatus.SCHEDULED,
    "closed-won": FollowUpStatus.CLOSED_WON,
    "closed-lost": FollowUpStatus.CLOSED_LOST,
}


@dataclass
class EngagementEvent:
    """フォローアップイベント"""
    date: Optional[date]
    status: FollowUpStatus
    amount: Optional[float] = None  # 成約時のみ
    remarks: str = ""
    event_id: str = ""

    def __post_init__(self):
        self.date = to_calendar_date(self.date)
        self.status = FollowUpStatus.parse(self.status)

    @property
    def qualifying_amount(self) -> float:
        """成約かつ正の金額のみ有効、それ以外は0"""
        if self.status is not FollowUpStatus.CLOSED_WON:
            return 0.0
        if self.amount is None or not math.isfinite(self.amount) or self.amount <= 0:
            return 0.0
        return float(self.amount)


@dataclass
class EngagementRecord:
    """顧客フォローアップレコード"""
    customer_id: str
    customer_name: str
    mobile: str = ""
    location: str = ""
    salesperson_id: str = ""
    salesperson_name: str = ""
    events: List[EngagementEvent] = field(default_factory=list)
    created_at: Optional[date] = None

    def __post_init__(self):
        self.created_at = to_calendar_date(self.created_at)


@dataclass
class PointOfSaleRecord:
    """在庫販売レコード（単価なし、数量のみ）"""
    sale_id: str
    product_id: str
    product_name: str
    brand_name: str
    model_number: str
    date: Optional[date]
    customer_name: str
    quantity: int
    bill_number: Optional[str] = None

    def __post_init__(self):
        self.date = to_calendar_date(self.date)


@dataclass
class Product:
    """商品（在庫分析用）"""
    product_id: str
    product_name: str
    brand_id: str
    brand_name: str
    model_number: str = ""
    quantity_available: int = 0
