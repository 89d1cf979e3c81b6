"""
日別売上レポートシステム
"""

__version__ = "1.0.0"
