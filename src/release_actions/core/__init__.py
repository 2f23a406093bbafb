"""リリース自動化のコア処理群.

- プラットフォーム正規化（入力キー → 正規ID）
- チェックサム解決（サイドカー優先、無ければ計算）
- アセット分類（ファイル名 → プラットフォーム/種別）
- テンプレートコンテキスト構築
"""

from .checksums import resolve_file_checksum, resolve_url_checksum
from .classifier import Asset, detect_platform, discover_assets
from .context import AssetInfo, build_formula_context, build_release_context, process_assets
from .platforms import Platform, normalize_platform

__all__ = [
    "normalize_platform",
    "Platform",
    "resolve_file_checksum",
    "resolve_url_checksum",
    "Asset",
    "detect_platform",
    "discover_assets",
    "AssetInfo",
    "process_assets",
    "build_formula_context",
    "build_release_context",
]
