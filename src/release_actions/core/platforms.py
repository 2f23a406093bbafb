"""プラットフォーム識別子の正規化とプラットフォーム定義テーブル.

設計方針:
    - 正規化は「入力キー → 正規プラットフォームID」の変換に限定する（小文字化 + エイリアス解決）
    - プラットフォーム判定は継承ではなく、順序付きのデータテーブルで表現する
    - テーブルは具体的なものから順に並べる（`linux-amd64-musl` は `linux-amd64` より先）
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

# Homebrew フォーマット用のエイリアス（ベンダー/OSごとの表記揺れを吸収）
PLATFORM_ALIASES: dict[str, str] = {
    "darwin-aarch64": "darwin-arm64",
    "darwin-x86_64": "darwin-x64",
    "darwin-amd64": "darwin-x64",
    "macos-arm64": "darwin-arm64",
    "macos-x64": "darwin-x64",
    "macos-amd64": "darwin-x64",
    "linux-aarch64": "linux-arm64",
    "linux-x86_64": "linux-x64",
    "linux-amd64": "linux-x64",
}


def normalize_platform(platform: str) -> str:
    """生のプラットフォーム文字列を正規IDに変換する.

    Args:
        platform: 入力のプラットフォーム名（例: "DARWIN-AARCH64", "linux-amd64"）

    Returns:
        正規化済みプラットフォームID。エイリアスがなければ小文字化した入力をそのまま返す。
    """
    lowered = platform.lower()
    return PLATFORM_ALIASES.get(lowered, lowered)


@dataclass(frozen=True)
class Platform:
    """ビルド成果物のプラットフォーム記述子."""

    id: str
    os: str
    arch: str
    arch_full: str
    display_name: str
    os_icon: str = ""
    variant: str | None = None

    def to_context(self) -> dict:
        """テンプレート向けの辞書（camelCaseキー）に変換."""
        data = asdict(self)
        return {
            "id": data["id"],
            "os": data["os"],
            "osIcon": data["os_icon"],
            "arch": data["arch"],
            "archFull": data["arch_full"],
            "variant": data["variant"],
            "displayName": data["display_name"],
        }


# ファイル名の部分一致で判定するテーブル（先頭から順に評価、最初の一致を採用）
PLATFORM_PATTERNS: tuple[Platform, ...] = (
    Platform(
        id="linux-amd64-musl",
        os="Linux",
        arch="x86_64",
        arch_full="x86_64 (64-bit, static)",
        variant="musl",
        display_name="Linux x86_64 (static)",
    ),
    Platform(
        id="linux-amd64",
        os="Linux",
        arch="x86_64",
        arch_full="x86_64 (64-bit)",
        display_name="Linux x86_64",
    ),
    Platform(
        id="linux-aarch64",
        os="Linux",
        arch="aarch64",
        arch_full="ARM64",
        display_name="Linux ARM64",
    ),
    Platform(
        id="linux-arm64",
        os="Linux",
        arch="arm64",
        arch_full="ARM64",
        display_name="Linux ARM64",
    ),
    Platform(
        id="darwin-arm64",
        os="macOS",
        arch="arm64",
        arch_full="Apple Silicon (M1/M2/M3/M4)",
        display_name="macOS Apple Silicon",
    ),
    Platform(
        id="darwin-amd64",
        os="macOS",
        arch="x86_64",
        arch_full="Intel (64-bit)",
        display_name="macOS Intel",
    ),
    Platform(
        id="windows-amd64",
        os="Windows",
        arch="x86_64",
        arch_full="x86_64 (64-bit)",
        display_name="Windows x86_64",
    ),
    Platform(
        id="windows-aarch64",
        os="Windows",
        arch="arm64",
        arch_full="ARM64",
        display_name="Windows ARM64",
    ),
)

PLATFORMS_BY_ID: dict[str, Platform] = {p.id: p for p in PLATFORM_PATTERNS}

# Debian パッケージのアーキテクチャ名（`_<arch>.deb`）
DEB_ARCH_MAP: dict[str, str] = {
    "amd64": "linux-amd64",
    "arm64": "linux-aarch64",
}

# RPM パッケージのアーキテクチャ名（`.<arch>.rpm`）
RPM_ARCH_MAP: dict[str, str] = {
    "x86_64": "linux-amd64",
    "aarch64": "linux-aarch64",
}

# リリースノートでの表示順
PLATFORM_DISPLAY_ORDER: tuple[str, ...] = (
    "linux-amd64",
    "linux-amd64-musl",
    "linux-aarch64",
    "darwin-arm64",
    "darwin-amd64",
    "windows-amd64",
)
