"""
日別売上レポートサービス
集計条件の生成 → 日別集計 → 期間集計 → Excel出力 を1リクエスト単位で実行する
"""
from dataclasses import dataclass, field
from datetime import date
from functools import partial
from pathlib import Path
from typing import List, Optional
import logging

from ..aggregator.daily import DailySalesAggregator, DayBucket
from ..aggregator.excel_output import ExcelExporter, build_report_filename
from ..aggregator.filters import SalesFilter
from ..aggregator.formatting import CURRENCY_SYMBOL, format_currency
from ..aggregator.insights import SalesInsights, list_salespersons
from ..aggregator.records import EngagementRecord, PointOfSaleRecord, Product
from ..aggregator.summary import PeriodSummary, PeriodSummaryCalculator
from .file_handler import FileHandler

logger = logging.getLogger(__name__)

EMPTY_REPORT_MESSAGE = "指定期間に取引データがありません"


@dataclass
class DailySalesReport:
    """日別売上レポート（集計条件・日別集計・期間集計）"""
    sales_filter: SalesFilter
    buckets: List[DayBucket] = field(default_factory=list)
    summary: PeriodSummary = field(default_factory=PeriodSummary)

    @property
    def is_empty(self) -> bool:
        return not self.buckets

    def to_dict(self) -> dict:
        """辞書形式に変換"""
        return {
            'start': self.sales_filter.start_label,
            'end': self.sales_filter.end_label,
            'salesperson_id': self.sales_filter.salesperson_id,
            'channel': self.sales_filter.channel.value,
            'empty': self.is_empty,
            'message': EMPTY_REPORT_MESSAGE if self.is_empty else '',
            'days': [bucket.to_dict() for bucket in self.buckets],
            'summary': self.summary.to_dict()
        }


class ReportService:
    """
    レポートサービス

    呼び出しごとに集計し直し、前回の結果は保持しない。

    使用例:
        service = ReportService.from_files(data_dir / "customers.json", data_dir / "sale_entries.csv")
        report = service.daily_report(service.build_filter("2024-03-01", "2024-03-31"))
        filepath = service.export(report, output_dir=Path("out"))
    """

    def __init__(
        self,
        engagement_records: Optional[List[EngagementRecord]] = None,
        pos_records: Optional[List[PointOfSaleRecord]] = None,
        products: Optional[List[Product]] = None,
        default_window_days: int = 30,
        low_stock_threshold: int = 5,
        filename_prefix: Optional[str] = None,
        currency_symbol: str = CURRENCY_SYMBOL
    ):
        """
        Args:
            engagement_records: 顧客フォローアップレコード
            pos_records: 在庫販売レコード
            products: 商品マスタ
            default_window_days: 期間未指定時の日数
            low_stock_threshold: 在庫僅少とみなす数量
            filename_prefix: 出力ファイル名の接頭辞
            currency_symbol: 金額表記の通貨記号
        """
        self.engagement_records = list(engagement_records or [])
        self.pos_records = list(pos_records or [])
        self.products = list(products or [])
        self.default_window_days = default_window_days
        self.low_stock_threshold = low_stock_threshold
        self.filename_prefix = filename_prefix
        self.currency_symbol = currency_symbol

        # ファイル読み込み元（reload用）
        self.customers_path: Optional[Path] = None
        self.sale_entries_path: Optional[Path] = None
        self.products_path: Optional[Path] = None
        self.file_handler: Optional[FileHandler] = None

    @classmethod
    def from_files(
        cls,
        customers_path: Path,
        sale_entries_path: Path,
        products_path: Optional[Path] = None,
        file_handler: Optional[FileHandler] = None,
        **kwargs
    ) -> "ReportService":
        """ファイルから読み込んで生成"""
        service = cls(**kwargs)
        service.customers_path = Path(customers_path)
        service.sale_entries_path = Path(sale_entries_path)
        service.products_path = Path(products_path) if products_path else None
        service.file_handler = file_handler or FileHandler()
        service.reload()
        return service

    @classmethod
    def from_config(cls, config) -> "ReportService":
        """設定クラスのパス・定数から生成"""
        return cls.from_files(
            config.CUSTOMERS_FILE,
            config.SALE_ENTRIES_FILE,
            config.PRODUCTS_FILE if Path(config.PRODUCTS_FILE).exists() else None,
            file_handler=FileHandler(config.CSV_ENCODING),
            default_window_days=config.DEFAULT_WINDOW_DAYS,
            low_stock_threshold=config.LOW_STOCK_THRESHOLD,
            filename_prefix=config.REPORT_FILENAME_PREFIX,
            currency_symbol=config.CURRENCY_SYMBOL
        )

    def reload(self) -> None:
        """
        元ファイルを読み込み直す

        Raises:
            FileNotFoundError: ファイルが存在しない場合
            ValueError: 必須カラム不足など形式が不正な場合
        """
        if self.file_handler is None or self.customers_path is None:
            logger.info("読み込み元ファイルが設定されていないため再読み込みをスキップします")
            return

        self.products = (
            self.file_handler.read_products(self.products_path) if self.products_path else []
        )
        self.engagement_records = self.file_handler.read_customers(self.customers_path)
        self.pos_records = self.file_handler.read_sale_entries(self.sale_entries_path, self.products)
        logger.info(
            f"データ読み込み完了: 顧客{len(self.engagement_records)}件, "
            f"在庫販売{len(self.pos_records)}件, 商品{len(self.products)}件"
        )

    def build_filter(
        self,
        start=None,
        end=None,
        salesperson_id: Optional[str] = None,
        channel="all",
        today: Optional[date] = None
    ) -> SalesFilter:
        """
        集計条件を生成（開始日・終了日が未指定なら直近の既定日数）

        Raises:
            ValueError: 不明なチャネルの場合
        """
        if not start or not end:
            default = SalesFilter.default(today, self.default_window_days)
            start = start or default.start
            end = end or default.end
        return SalesFilter.from_params(start, end, salesperson_id, channel)

    def daily_report(self, sales_filter: SalesFilter) -> DailySalesReport:
        """日別集計と期間集計を実行"""
        aggregator = DailySalesAggregator(self.engagement_records, self.pos_records, sales_filter)
        buckets = aggregator.sorted_buckets()
        summary = PeriodSummaryCalculator(buckets).calculate()

        if not buckets:
            logger.info(f"{EMPTY_REPORT_MESSAGE}: {sales_filter.start_label} ～ {sales_filter.end_label}")
        return DailySalesReport(sales_filter=sales_filter, buckets=buckets, summary=summary)

    def export(self, report: DailySalesReport, output_dir: Optional[Path] = None) -> Path:
        """
        レポートをExcelに出力

        Raises:
            ReportExportError: ファイルを書き込めない場合（集計結果はそのまま再利用できる）
        """
        filename = None
        if self.filename_prefix:
            filename = build_report_filename(report.sales_filter, self.filename_prefix)

        exporter = ExcelExporter(
            report.buckets,
            report.summary,
            report.sales_filter,
            output_dir=output_dir,
            filename=filename,
            currency_formatter=partial(format_currency, symbol=self.currency_symbol)
        )
        return exporter.export()

    def insights(self, period: str = "month", today: Optional[date] = None) -> dict:
        """売上・在庫分析"""
        insights = SalesInsights(
            self.engagement_records,
            self.pos_records,
            self.products,
            today=today,
            low_stock_threshold=self.low_stock_threshold
        )
        return insights.to_dict(period)

    def salespersons(self) -> List[dict]:
        """担当者一覧（フィルタ選択用）"""
        return list_salespersons(self.engagement_records)
