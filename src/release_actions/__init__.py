"""release_actions: リリースパイプライン自動化のためのライブラリ.

フォーミュラ/リリースノートの描画コンテキスト構築、チェックサム解決、
GitHub へのコミットを提供する。
"""

__version__ = "0.1.0"
