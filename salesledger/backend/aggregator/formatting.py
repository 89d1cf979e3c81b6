"""
表示用フォーマット
"""
import math
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

CURRENCY_SYMBOL = "₹"


def group_indian(digits: str) -> str:
    """インド式の桁区切り（下3桁、以降2桁ごと）"""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_currency(amount, symbol: str = CURRENCY_SYMBOL) -> str:
    """
    金額をルピー表記（小数なし）に整形

    例: 5000 -> "₹5,000", 100000 -> "₹1,00,000", -500 -> "-₹500"
    inf・NaN は 0 として表記する
    """
    amount = amount or 0
    if not math.isfinite(amount):
        amount = 0
    rounded = Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{symbol}{group_indian(str(abs(int(rounded))))}"


def format_date_key(day: date) -> str:
    return day.isoformat()


def format_display_date(day: date) -> str:
    """例: 15/03/2024"""
    return day.strftime("%d/%m/%Y")


def format_full_date(day: date) -> str:
    """例: Friday, 15 March 2024"""
    return day.strftime("%A, %d %B %Y")
