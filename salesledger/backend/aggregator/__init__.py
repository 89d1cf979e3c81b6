"""
日別売上集計ロジック
"""

from .records import (
    EngagementEvent,
    EngagementRecord,
    FollowUpStatus,
    PointOfSaleRecord,
    Product,
    to_calendar_date,
)
from .filters import Channel, SalesFilter
from .daily import (
    DailySalesAggregator,
    DayBucket,
    EngagementSaleLine,
    PosSaleLine,
    aggregate_daily_sales,
)
from .summary import PeriodSummary, PeriodSummaryCalculator, summarize
from .insights import SalesInsights
from .excel_output import ExcelExporter, ReportExportError

__all__ = [
    'EngagementEvent',
    'EngagementRecord',
    'FollowUpStatus',
    'PointOfSaleRecord',
    'Product',
    'to_calendar_date',
    'Channel',
    'SalesFilter',
    'DailySalesAggregator',
    'DayBucket',
    'EngagementSaleLine',
    'PosSaleLine',
    'aggregate_daily_sales',
    'PeriodSummary',
    'PeriodSummaryCalculator',
    'summarize',
    'SalesInsights',
    'ExcelExporter',
    'ReportExportError'
]
