"""release_ci: リリースパイプライン用アクションのCI統合レイヤ.

Homebrew フォーミュラ更新、リリースノート生成、チェックサム収集を提供する。
"""

from release_ci.checksums import run as run_checksums
from release_ci.homebrew import run as run_homebrew
from release_ci.release_notes import run as run_release_notes

__version__ = "0.1.0"

__all__ = [
    "run_homebrew",
    "run_release_notes",
    "run_checksums",
]
