"""
アプリケーション起動スクリプト

    salesledger serve --port 8080
    salesledger report --start 2024-03-01 --end 2024-03-31 --channel pos
    salesledger export --start 2024-03-01 --end 2024-03-31 --output-dir ./out
"""
import argparse
import logging
import sys
from pathlib import Path

from .backend.aggregator import ReportExportError
from .backend.aggregator.formatting import format_currency
from .backend.services import DailySalesReport, ReportService
from .config import configure_logging, get_config

logger = logging.getLogger(__name__)


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--start', type=str, default=None, help='開始日（YYYY-MM-DD）')
    parser.add_argument('--end', type=str, default=None, help='終了日（YYYY-MM-DD）')
    parser.add_argument('--salesperson', type=str, default=None, help='担当者ID')
    parser.add_argument(
        '--channel',
        type=str,
        default='all',
        help='all / engagement / pos（デフォルト: all）'
    )


def build_parser(config) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='日別売上集計・レポート出力システム'
    )
    parser.add_argument(
        '--data-dir',
        type=Path,
        default=None,
        help='元データのディレクトリ（customers.json / sale_entries.csv / products.csv）'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        default=config.LOG_LEVEL,
        help=f'ログレベル（デフォルト: {config.LOG_LEVEL}）'
    )
    subparsers = parser.add_subparsers(dest='command')

    serve = subparsers.add_parser('serve', help='APIサーバーを起動')
    serve.add_argument(
        '--port', '-p',
        type=int,
        default=config.PORT,
        help=f'サーバーポート番号（デフォルト: {config.PORT}）'
    )
    serve.add_argument(
        '--host',
        type=str,
        default=config.HOST,
        help=f'ホストアドレス（デフォルト: {config.HOST}）'
    )
    serve.add_argument('--debug', action='store_true', help='デバッグモードで起動')

    report = subparsers.add_parser('report', help='日別売上を表示')
    _add_filter_arguments(report)

    export = subparsers.add_parser('export', help='日別売上レポートをExcelに出力')
    _add_filter_arguments(export)
    export.add_argument(
        '--output-dir', '-o',
        type=Path,
        default=None,
        help='出力ディレクトリ（デフォルト: OUTPUT_DIR）'
    )
    return parser


def _load_service(config, data_dir=None) -> ReportService:
    """元データを読み込んでサービスを生成"""
    if data_dir is None:
        return ReportService.from_config(config)

    products_path = data_dir / Path(config.PRODUCTS_FILE).name
    return ReportService.from_files(
        data_dir / Path(config.CUSTOMERS_FILE).name,
        data_dir / Path(config.SALE_ENTRIES_FILE).name,
        products_path if products_path.exists() else None,
        default_window_days=config.DEFAULT_WINDOW_DAYS,
        low_stock_threshold=config.LOW_STOCK_THRESHOLD,
        filename_prefix=config.REPORT_FILENAME_PREFIX,
        currency_symbol=config.CURRENCY_SYMBOL
    )


def print_report(daily_report: DailySalesReport, currency_symbol: str = '₹') -> None:
    """日別売上と期間集計をコンソールに表示"""
    def money(amount):
        return format_currency(amount, symbol=currency_symbol)

    sales_filter = daily_report.sales_filter
    print(f"期間: {sales_filter.start_label} ～ {sales_filter.end_label} "
          f"(チャネル: {sales_filter.channel.value})")

    if daily_report.is_empty:
        print("指定期間に取引データがありません")
        return

    for day in daily_report.buckets:
        print(
            f"{day.display_date}  成約 {day.engagement_count}件 {money(day.engagement_revenue)}"
            f"  在庫販売 {day.pos_count}件 ({day.units_sold}個)"
            f"  担当: {', '.join(day.salespersons_involved) or '-'}"
        )

    summary = daily_report.summary
    print("-" * 60)
    print(f"売上合計: {money(summary.total_revenue)}")
    print(f"成約件数: {summary.total_engagement_sales}  在庫販売件数: {summary.total_pos_sales}"
          f"  合計: {summary.total_sales}")
    print(f"日平均売上: {money(summary.average_daily_revenue)}"
          f"  成約平均金額: {money(summary.average_sale_amount)}")
    print(f"稼働日数: {summary.active_days}  在庫販売数量: {summary.total_units_from_pos}")


def serve(args, config) -> int:
    """APIサーバー起動"""
    from .backend.api import create_app

    service = _load_service(config, args.data_dir) if args.data_dir else None
    app = create_app(config, service=service)

    print(f"""
============================================================
  日別売上集計システム
============================================================
  サーバー起動中...
  URL: http://{args.host}:{args.port}

  停止するには Ctrl+C を押してください
============================================================
    """)

    app.run(
        host=args.host,
        port=args.port,
        debug=args.debug
    )
    return 0


def report(args, config) -> int:
    """日別売上をコンソールに表示"""
    service = _load_service(config, args.data_dir)
    sales_filter = service.build_filter(args.start, args.end, args.salesperson, args.channel)
    print_report(service.daily_report(sales_filter), currency_symbol=service.currency_symbol)
    return 0


def export(args, config) -> int:
    """日別売上レポートをExcelに出力"""
    service = _load_service(config, args.data_dir)
    sales_filter = service.build_filter(args.start, args.end, args.salesperson, args.channel)
    daily_report = service.daily_report(sales_filter)

    try:
        filepath = service.export(daily_report, output_dir=args.output_dir or Path(config.OUTPUT_DIR))
    except ReportExportError as e:
        print(f"エラー: {e}", file=sys.stderr)
        return 1

    print(filepath)
    return 0


COMMANDS = {
    'serve': serve,
    'report': report,
    'export': export,
}


def main(argv=None) -> int:
    """メイン関数"""
    config = get_config()
    parser = build_parser(config)
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    if not args.command:
        parser.print_help()
        return 2

    try:
        return COMMANDS[args.command](args, config)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"{args.command} エラー: {e}")
        print(f"エラー: {e}", file=sys.stderr)
        return 2


if __name__ == '__main__':
    sys.exit(main())
