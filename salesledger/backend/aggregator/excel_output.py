"""
Excel出力モジュール
日別集計・期間集計を4シートのExcelファイルに出力する
"""
import re
import pandas as pd
from pathlib import Path
from typing import Callable, List, Optional
import logging

import openpyxl
from openpyxl.styles import Font, Alignment, Border, Side

from .daily import DayBucket
from .filters import SalesFilter
from .formatting import format_currency
from .summary import PeriodSummary

logger = logging.getLogger(__name__)


class ReportExportError(Exception):
    """レポートファイルを書き込めない場合の例外"""
    def __init__(self, filepath: Path, cause: Exception):
        self.filepath = filepath
        self.cause = cause
        message = f"レポートを出力できませんでした: {filepath} ({cause})"
        super().__init__(message)


SUMMARY_SHEET = "Daily Summary"
ENGAGEMENT_SHEET = "Engagement Sales"
POS_SHEET = "Point-of-Sale Sales"
STATISTICS_SHEET = "Statistics"

SUMMARY_COLUMNS = [
    "Date",
    "Engagement Sales",
    "Point-of-Sale Sales",
    "Total Sales",
    "Revenue (Engagement)",
    "Revenue (Engagement) Formatted",
    "Average Sale Amount",
    "Average Sale Amount Formatted",
    "Sales Persons",
]
ENGAGEMENT_COLUMNS = [
    "Date",
    "Type",
    "Customer Name",
    "Mobile",
    "Location",
    "Sales Person",
    "Sale Amount",
    "Sale Amount Formatted",
    "Remarks",
]
POS_COLUMNS = [
    "Date",
    "Type",
    "Customer Name",
    "Product Name",
    "Brand",
    "Model Number",
    "Quantity Sold",
    "Bill Number",
    "Description",
]
STATISTICS_COLUMNS = ["Metric", "Value", "Formatted Value"]

# (指標名, PeriodSummaryの属性, 金額か)
STATISTICS_ROWS = [
    ("Total Revenue (Engagement)", "total_revenue", True),
    ("Total Engagement Sales", "total_engagement_sales", False),
    ("Total Point-of-Sale Sales", "total_pos_sales", False),
    ("Total Sales", "total_sales", False),
    ("Total Units Sold (Point-of-Sale)", "total_units_from_pos", False),
    ("Average Daily Revenue", "average_daily_revenue", True),
    ("Average Sale Amount", "average_sale_amount", True),
    ("Active Sales Days", "active_days", False),
]

FILENAME_PREFIX = "Daily_Sales_Report"


def _safe_label(label: str) -> str:
    """ファイル名に使えない文字（パス区切り・連続ドット等）を _ に置換"""
    label = re.sub(r"[^0-9A-Za-z._-]+", "_", label)
    label = re.sub(r"\.{2,}", "_", label)
    return label.strip("._") or "unknown"


def build_report_filename(sales_filter: SalesFilter, prefix: str = FILENAME_PREFIX) -> str:
    """例: Daily_Sales_Report_2024-03-01_to_2024-03-31.xlsx"""
    start = _safe_label(sales_filter.start_label)
    end = _safe_label(sales_filter.end_label)
    return f"{prefix}_{start}_to_{end}.xlsx"


class ExcelExporter:
    """
    Excel出力クラス

    同じ条件で出力すると同じファイル名になる（既存ファイルは上書き）。

    使用例:
        exporter = ExcelExporter(buckets, summary, sales_filter, output_dir=Path.home() / "Downloads")
        filepath = exporter.export()
    """

    def __init__(
        self,
        buckets: List[DayBucket],
        summary: PeriodSummary,
        sales_filter: SalesFilter,
        output_dir: Optional[Path] = None,
        filename: Optional[str] = None,
        currency_formatter: Callable[[float], str] = format_currency
    ):
        """
        Args:
            buckets: 日別集計結果（新しい日付順）
            summary: 期間集計結果
            sales_filter: 集計条件（ファイル名に使用）
            output_dir: 出力ディレクトリ（デフォルト: ~/Downloads）
            filename: 出力ファイル名（デフォルト: Daily_Sales_Report_<開始>_to_<終了>.xlsx）
            currency_formatter: 金額表記の整形関数
        """
        self.buckets = buckets
        self.summary = summary
        self.sales_filter = sales_filter
        self.output_dir = Path(output_dir) if output_dir else Path.home() / "Downloads"
        self.format_currency = currency_formatter

        self.filename = filename or build_report_filename(sales_filter)
        self.filepath = self.output_dir / self.filename

    def export(self) -> Path:
        """
        Excelファイルを出力

        Returns:
            Path: 出力ファイルパス

        Raises:
            ReportExportError: ファイルを書き込めない場合
        """
        logger.info(f"Excel出力開始: {self.filepath}")

        # 書式設定まで完了してから出力先に置き換える
        work_path = self.output_dir / f".tmp_{self.filename}"
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)

            # ExcelWriterで複数シートを書き込み
            with pd.ExcelWriter(work_path, engine="openpyxl") as writer:
                self.summary_frame().to_excel(writer, sheet_name=SUMMARY_SHEET, index=False)
                self.engagement_frame().to_excel(writer, sheet_name=ENGAGEMENT_SHEET, index=False)
                self.pos_frame().to_excel(writer, sheet_name=POS_SHEET, index=False)
                self.statistics_frame().to_excel(writer, sheet_name=STATISTICS_SHEET, index=False)

            self._apply_styles(work_path)
            work_path.replace(self.filepath)
        except OSError as e:
            logger.error(f"Excel出力エラー: {e}")
            raise ReportExportError(self.filepath, e) from e
        finally:
            if work_path.exists():
                work_path.unlink()

        logger.info(f"Excel出力完了: {self.filepath}")
        return self.filepath

    def summary_frame(self) -> pd.DataFrame:
        """日別サマリーシートのデータ"""
        rows = []
        for day in self.buckets:
            rows.append([
                day.full_date,
                day.engagement_count,
                day.pos_count,
                day.total_count,
                day.engagement_revenue,
                self.format_currency(day.engagement_revenue),
                day.average_sale_amount,
                self.format_currency(day.average_sale_amount),
                ", ".join(day.salespersons_involved),
            ])
        return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)

    def engagement_frame(self) -> pd.DataFrame:
        """成約明細シートのデータ"""
        rows = []
        for day in self.buckets:
            for sale in day.engagement_details:
                rows.append([
                    day.full_date,
                    "Engagement Sale",
                    sale.customer_name,
                    sale.mobile,
                    sale.location,
                    sale.salesperson_name,
                    sale.amount,
                    self.format_currency(sale.amount),
                    sale.remarks,
                ])
        return pd.DataFrame(rows, columns=ENGAGEMENT_COLUMNS)

    def pos_frame(self) -> pd.DataFrame:
        """在庫販売明細シートのデータ"""
        rows = []
        for day in self.buckets:
            for sale in day.pos_details:
                rows.append([
                    day.full_date,
                    "Point-of-Sale Sale",
                    sale.customer_name,
                    sale.product_name,
                    sale.brand_name,
                    sale.model_number,
                    sale.quantity,
                    sale.bill_number or "",
                    sale.description,
                ])
        return pd.DataFrame(rows, columns=POS_COLUMNS)

    def statistics_frame(self) -> pd.DataFrame:
        """統計シートのデータ"""
        rows = []
        for label, attr, is_money in STATISTICS_ROWS:
            value = getattr(self.summary, attr)
            formatted = self.format_currency(value) if is_money else str(value)
            rows.append([label, value, formatted])
        return pd.DataFrame(rows, columns=STATISTICS_COLUMNS)

    def _apply_styles(self, filepath: Path) -> None:
        """Excelファイルにスタイルを適用"""
        wb = openpyxl.load_workbook(filepath)

        thin_border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

        for ws in wb.worksheets:
            # ヘッダースタイル
            for cell in ws[1]:
                cell.font = Font(bold=True)
                cell.alignment = Alignment(horizontal='center')
                cell.border = thin_border

            # データセルの罫線
            for row in ws.iter_rows(min_row=2, max_row=ws.max_row, max_col=ws.max_column):
                for cell in row:
                    cell.border = thin_border

            # 列幅の自動調整
            for column in ws.columns:
                column_letter = column[0].column_letter
                max_length = max(
                    (len(str(cell.value)) for cell in column if cell.value is not None),
                    default=0
                )
                ws.column_dimensions[column_letter].width = min(max_length + 2, 50)

        wb.save(filepath)
