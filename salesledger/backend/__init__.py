"""
バックエンド（集計ロジック・サービス・API）
"""
