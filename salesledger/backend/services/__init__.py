"""
ビジネスロジックサービス
"""

from .file_handler import FileHandler
from .report_service import DailySalesReport, ReportService

__all__ = ['FileHandler', 'DailySalesReport', 'ReportService']
