"""
ファイル処理サービス
顧客フォローアップ（JSON）、在庫販売・商品（CSV/Excel/JSON）を読み込みレコードに変換する
"""
import json
import math
import pandas as pd
from pathlib import Path
from typing import List, Optional
import logging

from ..aggregator.records import (
    EngagementEvent,
    EngagementRecord,
    PointOfSaleRecord,
    Product,
)

logger = logging.getLogger(__name__)


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and pd.isna(value):
        return True
    return isinstance(value, str) and not value.strip()


def _text(value) -> str:
    """NaN・None を空文字に"""
    if _is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _amount(value) -> Optional[float]:
    if _is_blank(value):
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    # inf・NaN は不正値として扱う
    return amount if math.isfinite(amount) else None


class FileHandler:
    """
    ファイル処理クラス

    データ層からエクスポートされたファイルの読み込みとバリデーションを担当
    """

    # CSVエンコーディング
    CSV_ENCODING = "utf-8"

    SALE_ENTRY_COLUMNS = ["productId", "saleDate", "customerName", "quantitySold"]
    PRODUCT_COLUMNS = ["id", "productName", "brandName"]
    PRODUCT_DETAIL_COLUMNS = ["productName", "brandName", "modelNumber"]

    def __init__(self, csv_encoding: Optional[str] = None):
        """
        Args:
            csv_encoding: CSVファイルのエンコーディング
        """
        self.csv_encoding = csv_encoding or self.CSV_ENCODING

    def read_table(self, filepath: Path) -> pd.DataFrame:
        """
        CSV / Excel / JSON を拡張子で判別して読み込み

        Raises:
            FileNotFoundError: ファイルが存在しない場合
            ValueError: 対応していない拡張子の場合
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"ファイルが見つかりません: {filepath}")

        suffix = filepath.suffix.lower()
        if suffix == ".csv":
            return pd.read_csv(filepath, encoding=self.csv_encoding, dtype=str)
        if suffix in (".xlsx", ".xls"):
            return pd.read_excel(filepath, sheet_name=0, dtype={"id": str, "productId": str})
        if suffix == ".json":
            with open(filepath, "r", encoding="utf-8") as f:
                data = json.load(f)
            return pd.DataFrame(data)
        raise ValueError(f"対応していないファイル形式です: {filepath.name}")

    def read_customers(self, filepath: Path) -> List[EngagementRecord]:
        """
        顧客フォローアップJSONを読み込み

        Args:
            filepath: JSONファイルパス（配列、または {"customers": [...]})

        Returns:
            List[EngagementRecord]: 顧客レコード
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"顧客データが見つかりません: {filepath}")

        with open(filepath, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"顧客データのJSONが不正です: {e}") from e

        if isinstance(data, dict):
            data = data.get("customers", [])
        if not isinstance(data, list):
            raise ValueError("顧客データは配列である必要があります")

        records = []
        skipped = 0
        for idx, entry in enumerate(data):
            if not isinstance(entry, dict):
                logger.warning(f"顧客データ {idx}: 形式が不正なためスキップ")
                skipped += 1
                continue

            salesperson = entry.get("salesPerson")
            if not isinstance(salesperson, dict):
                salesperson = {}
            events = [
                EngagementEvent(
                    date=follow_up.get("date"),
                    status=follow_up.get("status"),
                    amount=_amount(follow_up.get("salesAmount")),
                    remarks=_text(follow_up.get("remarks")),
                    event_id=_text(follow_up.get("id"))
                )
                for follow_up in entry.get("followUps") or []
                if isinstance(follow_up, dict)
            ]

            records.append(EngagementRecord(
                customer_id=_text(entry.get("id")),
                customer_name=_text(entry.get("name")),
                mobile=_text(entry.get("mobile")),
                location=_text(entry.get("location")),
                salesperson_id=_text(salesperson.get("id")),
                salesperson_name=_text(salesperson.get("name")),
                events=events,
                created_at=entry.get("createdAt")
            ))

        logger.info(f"顧客データ読み込み: {len(records)}件（スキップ{skipped}件）")
        return records

    def read_products(self, filepath: Path) -> List[Product]:
        """
        商品マスタを読み込み

        Args:
            filepath: CSV / Excel / JSON ファイルパス

        Returns:
            List[Product]: 商品
        """
        df = self.read_table(filepath)
        logger.info(f"商品データ読み込み: {len(df)}件")
        self._validate_columns(df, self.PRODUCT_COLUMNS, "商品データ")

        products = []
        for idx, row in df.iterrows():
            quantity = _amount(row.get("quantityAvailable"))
            if quantity is None or quantity < 0:
                quantity = 0
            products.append(Product(
                product_id=_text(row.get("id")),
                product_name=_text(row.get("productName")),
                brand_id=_text(row.get("brandId")) or _text(row.get("brandName")),
                brand_name=_text(row.get("brandName")),
                model_number=_text(row.get("modelNumber")),
                quantity_available=int(quantity)
            ))
        return products

    def read_sale_entries(
        self, filepath: Path, products: Optional[List[Product]] = None
    ) -> List[PointOfSaleRecord]:
        """
        在庫販売データを読み込み、商品マスタと結合

        Args:
            filepath: CSV / Excel / JSON ファイルパス
            products: 商品マスタ（商品名・ブランド・型番の補完用）

        Returns:
            List[PointOfSaleRecord]: 在庫販売レコード
        """
        df = self.read_table(filepath)
        logger.info(f"在庫販売データ読み込み: {len(df)}件")
        self._validate_columns(df, self.SALE_ENTRY_COLUMNS, "在庫販売データ")

        df = df.copy()
        df["productId"] = df["productId"].map(_text)
        product_df = pd.DataFrame(
            [
                {
                    "productId": p.product_id,
                    "productName": p.product_name,
                    "brandName": p.brand_name,
                    "modelNumber": p.model_number,
                }
                for p in products or []
            ],
            columns=["productId"] + self.PRODUCT_DETAIL_COLUMNS
        ).drop_duplicates(subset=["productId"])

        merged = pd.merge(df, product_df, on="productId", how="left", suffixes=("_sale", ""))

        # 商品マスタを優先し、空欄は販売データ側の値で補完
        for col in self.PRODUCT_DETAIL_COLUMNS:
            sale_col = f"{col}_sale"
            if sale_col not in merged.columns:
                continue
            missing = merged[col].map(_text) == ""
            merged[col] = merged[col].where(~missing, merged[sale_col])

        records = []
        skipped = 0
        for idx, row in merged.iterrows():
            quantity = _amount(row.get("quantitySold"))
            if quantity is None or quantity <= 0 or not quantity.is_integer():
                logger.warning(f"在庫販売データ {idx}: 数量が不正なためスキップ ({row.get('quantitySold')})")
                skipped += 1
                continue

            bill_number = _text(row.get("billNumber"))
            records.append(PointOfSaleRecord(
                sale_id=_text(row.get("id")),
                product_id=row["productId"],
                product_name=_text(row.get("productName")),
                brand_name=_text(row.get("brandName")),
                model_number=_text(row.get("modelNumber")),
                date=row.get("saleDate"),
                customer_name=_text(row.get("customerName")),
                quantity=int(quantity),
                bill_number=bill_number or None
            ))

        if skipped:
            logger.warning(f"在庫販売データ: {skipped}件をスキップしました")
        return records

    def _validate_columns(
        self, df: pd.DataFrame, required: list, name: str
    ) -> None:
        """
        必須カラムの存在チェック

        Args:
            df: データフレーム
            required: 必須カラムリスト
            name: データ名（エラーメッセージ用）

        Raises:
            ValueError: 必須カラムが不足している場合
        """
        missing = [col for col in required if col not in df.columns]
        if missing:
            raise ValueError(
                f"{name}に必須カラムがありません: {missing}"
            )
