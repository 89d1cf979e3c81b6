"""
アプリケーション設定
"""
import logging
import os
from pathlib import Path


class Config:
    """アプリケーション設定クラス"""

    # サーバー設定
    HOST = os.getenv('HOST', '127.0.0.1')
    PORT = int(os.getenv('PORT', 8080))
    DEBUG = os.getenv('DEBUG', 'false').lower() == 'true'
    TESTING = False

    # ログ設定
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    # パス設定
    APP_DIR = Path(__file__).parent
    BASE_DIR = APP_DIR.parent
    DATA_DIR = Path(os.getenv('DATA_DIR', str(BASE_DIR / 'data')))
    OUTPUT_DIR = Path(os.getenv('OUTPUT_DIR', str(Path.home() / 'Downloads')))

    # 元データ（ホスティング先DBからのエクスポート）
    CUSTOMERS_FILE = DATA_DIR / 'customers.json'
    SALE_ENTRIES_FILE = DATA_DIR / 'sale_entries.csv'
    PRODUCTS_FILE = DATA_DIR / 'products.csv'

    # ファイルエンコーディング
    CSV_ENCODING = 'utf-8'

    # レポート設定
    CURRENCY_SYMBOL = '₹'
    REPORT_FILENAME_PREFIX = 'Daily_Sales_Report'
    # 期間未指定時は直近30日
    DEFAULT_WINDOW_DAYS = 30
    # 在庫僅少とみなす数量
    LOW_STOCK_THRESHOLD = 5

    @classmethod
    def init_app(cls):
        """アプリケーション初期化時の設定"""
        # 出力ディレクトリ作成
        Path(cls.OUTPUT_DIR).mkdir(parents=True, exist_ok=True)


class DevelopmentConfig(Config):
    """開発環境設定"""
    DEBUG = True


class ProductionConfig(Config):
    """本番環境設定"""
    DEBUG = False


class TestingConfig(Config):
    """テスト環境設定"""
    TESTING = True
    LOG_LEVEL = 'DEBUG'


# 設定マッピング
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config():
    """現在の設定を取得"""
    env = os.getenv('FLASK_ENV', 'development')
    return config.get(env, config['default'])


def configure_logging(level=None):
    """ロギング設定"""
    logging.basicConfig(
        level=str(level or Config.LOG_LEVEL).upper(),
        format=Config.LOG_FORMAT
    )
