"""
Flask APIエンドポイント
"""
from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from pathlib import Path
import logging

from .aggregator import ReportExportError
from .services import ReportService

logger = logging.getLogger(__name__)


def _load_service(config) -> ReportService:
    """設定の元データから ReportService を生成（ファイルが無ければ空で起動）"""
    try:
        return ReportService.from_config(config)
    except FileNotFoundError as e:
        logger.warning(f"元データが見つからないため空のデータで起動します: {e}")
        return ReportService(
            default_window_days=config.DEFAULT_WINDOW_DAYS,
            low_stock_threshold=config.LOW_STOCK_THRESHOLD,
            filename_prefix=config.REPORT_FILENAME_PREFIX,
            currency_symbol=config.CURRENCY_SYMBOL
        )


def _filter_params(service: ReportService):
    """クエリパラメータから集計条件を生成"""
    return service.build_filter(
        start=request.args.get('start'),
        end=request.args.get('end'),
        salesperson_id=request.args.get('salesperson'),
        channel=request.args.get('channel', 'all')
    )


def create_app(config=None, service: ReportService = None):
    """
    Flaskアプリケーションファクトリ

    Args:
        config: 設定クラス（デフォルト: FLASK_ENV で選択）
        service: レポートサービス（テスト用、未指定なら設定の元データから生成）

    Returns:
        Flask: アプリケーションインスタンス
    """
    from ..config import configure_logging, get_config

    config = config or get_config()
    configure_logging(config.LOG_LEVEL)

    app = Flask(__name__)

    # CORS設定（フロントエンドからのアクセス許可）
    CORS(app, origins=["http://localhost:*", "http://127.0.0.1:*"])

    # 設定読み込み
    app.config.from_object(config)

    # ディレクトリ作成
    config.init_app()

    # サービス初期化
    app.report_service = service or _load_service(config)

    @app.route('/api/health', methods=['GET'])
    def health_check():
        """ヘルスチェック"""
        return jsonify({
            'status': 'ok',
            'message': 'Daily sales ledger API is running'
        })

    @app.route('/api/salespersons', methods=['GET'])
    def salespersons():
        """担当者一覧"""
        try:
            return jsonify({
                'status': 'success',
                'salespersons': app.report_service.salespersons()
            })
        except Exception as e:
            logger.error(f"担当者一覧取得エラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500

    @app.route('/api/daily-sales', methods=['GET'])
    def daily_sales():
        """日別売上集計"""
        try:
            sales_filter = _filter_params(app.report_service)
            report = app.report_service.daily_report(sales_filter)
            result = report.to_dict()
            result['status'] = 'success'
            return jsonify(result)

        except ValueError as e:
            logger.error(f"日別集計バリデーションエラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 400
        except Exception as e:
            logger.error(f"日別集計エラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500

    @app.route('/api/daily-sales/export', methods=['GET'])
    def daily_sales_export():
        """日別売上レポートのExcel出力・ダウンロード"""
        try:
            sales_filter = _filter_params(app.report_service)
            report = app.report_service.daily_report(sales_filter)
            filepath = app.report_service.export(
                report, output_dir=Path(app.config['OUTPUT_DIR'])
            )
            return send_file(
                str(filepath),
                as_attachment=True,
                download_name=filepath.name
            )

        except ValueError as e:
            logger.error(f"Excel出力バリデーションエラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 400
        except ReportExportError as e:
            logger.error(f"Excel出力エラー: {e}")
            return jsonify({
                'status': 'error',
                'error_type': 'export_failed',
                'message': str(e),
                'filepath': str(e.filepath)
            }), 500
        except Exception as e:
            logger.error(f"Excel出力エラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500

    @app.route('/api/insights', methods=['GET'])
    def insights():
        """売上・在庫分析"""
        try:
            period = request.args.get('period', 'month')
            result = app.report_service.insights(period)
            result['status'] = 'success'
            return jsonify(result)

        except ValueError as e:
            logger.error(f"分析バリデーションエラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 400
        except Exception as e:
            logger.error(f"分析エラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500

    @app.route('/api/reload', methods=['POST'])
    def reload_data():
        """元データの再読み込み"""
        try:
            if app.report_service.customers_path is None:
                app.report_service = _load_service(config)
            else:
                app.report_service.reload()
            return jsonify({
                'status': 'success',
                'engagement_records': len(app.report_service.engagement_records),
                'pos_records': len(app.report_service.pos_records),
                'products': len(app.report_service.products)
            })

        except (FileNotFoundError, ValueError) as e:
            logger.error(f"再読み込みエラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 400
        except Exception as e:
            logger.error(f"再読み込みエラー: {e}")
            return jsonify({'status': 'error', 'message': str(e)}), 500

    return app
