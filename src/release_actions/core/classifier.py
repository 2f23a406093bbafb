"""ビルド成果物のファイル名からプラットフォーム/パッケージ種別を判定する.

判定順序（最初の一致を採用）:
    1. プラットフォームIDの部分一致（PLATFORM_PATTERNS の順、具体的なものが先）
    2. Debian パッケージの `_<arch>.deb`
    3. RPM パッケージの `.<arch>.rpm`
    4. いずれにも一致しなければ None（発見処理側で警告してスキップ）
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from loguru import logger

from .checksums import SIDECAR_SUFFIX, resolve_file_checksum
from .exceptions import ChecksumUnavailableError
from .platforms import (
    DEB_ARCH_MAP,
    PLATFORM_DISPLAY_ORDER,
    PLATFORM_PATTERNS,
    PLATFORMS_BY_ID,
    RPM_ARCH_MAP,
    Platform,
)

AssetType = Literal["binary", "deb", "rpm"]

ASSET_GLOBS: tuple[str, ...] = ("*.tar.gz", "*.zip", "*.deb", "*.rpm")
COMPOUND_EXTENSIONS: tuple[str, ...] = ("tar.gz", "tar.xz")

_DEB_SUFFIX = re.compile(r"_([a-z0-9]+)\.deb$")
_RPM_SUFFIX = re.compile(r"\.([a-z0-9_]+)\.rpm$")


@dataclass(frozen=True)
class Asset:
    """リリースノート用に発見されたアセット."""

    filename: str
    platform: Platform
    type: AssetType
    extension: str
    size: int | None = None
    sha256: str | None = None

    def to_context(self) -> dict:
        return {
            "filename": self.filename,
            "platform": self.platform.to_context(),
            "type": self.type,
            "extension": self.extension,
            "size": self.size,
            "sha256": self.sha256,
        }


def detect_platform(filename: str) -> Platform | None:
    """ファイル名からプラットフォームを判定する.

    Args:
        filename: ファイル名またはパス（basenameで判定）

    Returns:
        一致したプラットフォーム。判定できなければ None
    """
    basename = Path(filename).name

    for platform in PLATFORM_PATTERNS:
        if platform.id in basename:
            return platform

    deb_match = _DEB_SUFFIX.search(basename)
    if deb_match:
        platform_id = DEB_ARCH_MAP.get(deb_match.group(1))
        if platform_id in PLATFORMS_BY_ID:
            return PLATFORMS_BY_ID[platform_id]

    rpm_match = _RPM_SUFFIX.search(basename)
    if rpm_match:
        platform_id = RPM_ARCH_MAP.get(rpm_match.group(1))
        if platform_id in PLATFORMS_BY_ID:
            return PLATFORMS_BY_ID[platform_id]

    return None


def asset_type(filename: str) -> AssetType:
    if filename.endswith(".deb"):
        return "deb"
    if filename.endswith(".rpm"):
        return "rpm"
    return "binary"


def asset_extension(filename: str) -> str:
    """拡張子を返す. `.tar.gz` などの複合拡張子は1単位として扱う."""
    for compound in COMPOUND_EXTENSIONS:
        if filename.endswith(f".{compound}"):
            return compound
    return Path(filename).suffix.lstrip(".")


def _file_size(path: Path) -> int | None:
    try:
        return path.stat().st_size
    except OSError:
        return None


def classify_file(path: Path, read_sidecar: bool = True) -> Asset | None:
    """1ファイルをアセットに変換する. プラットフォーム不明なら警告して None."""
    filename = path.name
    platform = detect_platform(filename)
    if platform is None:
        logger.warning(f"Could not detect platform for: {filename}")
        return None

    try:
        sha256 = resolve_file_checksum(path, "sha256", read_sidecar=read_sidecar)
    except ChecksumUnavailableError as e:
        logger.warning(str(e))
        sha256 = None

    return Asset(
        filename=filename,
        platform=platform,
        type=asset_type(filename),
        extension=asset_extension(filename),
        size=_file_size(path),
        sha256=sha256,
    )


def sort_assets(assets: Iterable[Asset]) -> list[Asset]:
    """表示順に並べ替える. 表示順にないIDは末尾（発見順を維持）."""
    order = {platform_id: i for i, platform_id in enumerate(PLATFORM_DISPLAY_ORDER)}
    return sorted(assets, key=lambda a: order.get(a.platform.id, len(order)))


def find_asset_files(assets_dir: Path) -> list[Path]:
    """アセットディレクトリ以下の配布ファイルを再帰的に列挙する."""
    found: set[Path] = set()
    for pattern in ASSET_GLOBS:
        found.update(p for p in assets_dir.rglob(pattern) if p.is_file())
    return sorted(p for p in found if not p.name.endswith(SIDECAR_SUFFIX))


def discover_assets(assets_dir: Path | str, read_sidecar: bool = True) -> list[Asset]:
    """リリースアセットを発見して表示順のリストを返す.

    Args:
        assets_dir: アセットを含むディレクトリ
        read_sidecar: `.sha256` サイドカーを優先して読むか

    Returns:
        判定できたアセットのリスト（判定できないファイルは警告して除外）
    """
    assets_dir = Path(assets_dir)
    if not assets_dir.is_dir():
        logger.warning(f"Assets directory not found: {assets_dir}")
        return []

    assets = []
    for path in find_asset_files(assets_dir):
        asset = classify_file(path, read_sidecar=read_sidecar)
        if asset is not None:
            assets.append(asset)

    logger.info(f"Discovered {len(assets)} assets in {assets_dir}")
    return sort_assets(assets)
