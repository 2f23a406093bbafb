"""テンプレート描画用コンテキストの構築.

フォーミュラ（Homebrew）とリリースノートの2種類のコンテキストを組み立てる。
キー名は外部テンプレートから参照されるため camelCase で固定する。

- process_assets: 入力アセットマップの正規化と、欠けているSHA256の解決（唯一のI/O）
- build_formula_context / build_release_context: I/Oなしの集約処理（失敗しない）
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from types import MappingProxyType

import httpx
from loguru import logger

from .checksums import create_http_client, resolve_url_checksum
from .classifier import Asset
from .exceptions import ActionInputError, ChecksumUnavailableError
from .platforms import normalize_platform

BUILD_FAILURE = "failure"
BUILD_STATUSES: tuple[str, ...] = ("success", "failure", "cancelled", "skipped")


@dataclass(frozen=True)
class AssetInfo:
    """1プラットフォーム分のダウンロード可能な成果物."""

    url: str
    sha256: str | None = None
    filename: str | None = None

    @classmethod
    def from_dict(cls, platform: str, data: object) -> AssetInfo:
        if not isinstance(data, Mapping):
            raise ActionInputError(
                f"Invalid asset entry for {platform}: expected object, got {type(data).__name__}",
                input_name="assets",
            )
        sha256 = data.get("sha256")
        filename = data.get("filename")
        return cls(
            url=str(data.get("url") or ""),
            sha256=str(sha256) if sha256 else None,
            filename=str(filename) if filename else None,
        )

    def to_context(self) -> dict:
        return {"url": self.url, "sha256": self.sha256, "filename": self.filename}


def parse_assets_json(assets_json: str) -> dict[str, AssetInfo]:
    """入力のアセットJSON（プラットフォーム → {url, sha256?, filename?}）をパースする.

    キーはまだ正規化しない（正規化は process_assets の責務）。

    Raises:
        ActionInputError: JSONが不正、またはオブジェクトでない場合
    """
    try:
        data = json.loads(assets_json)
    except json.JSONDecodeError as e:
        raise ActionInputError(f"Invalid assets JSON: {assets_json}", input_name="assets") from e

    if not isinstance(data, dict):
        raise ActionInputError(
            f"Assets JSON must be an object, got {type(data).__name__}", input_name="assets"
        )
    return {str(platform): AssetInfo.from_dict(platform, info) for platform, info in data.items()}


def process_assets(
    raw_assets: Mapping[str, AssetInfo],
    client: httpx.Client | None = None,
    download: bool = True,
) -> dict[str, AssetInfo]:
    """プラットフォームキーを正規化し、欠けているSHA256を解決する.

    Args:
        raw_assets: 生のプラットフォームキー → AssetInfo
        client: HTTPクライアント（None の場合は内部で作成して閉じる）
        download: サイドカーが無い場合に本体をダウンロードして計算するか

    Returns:
        正規プラットフォームID → AssetInfo。同じIDに正規化されるキーは後勝ち。
    """
    if client is None:
        with create_http_client() as own_client:
            return process_assets(raw_assets, own_client, download=download)

    assets: dict[str, AssetInfo] = {}
    for platform, info in raw_assets.items():
        normalized = normalize_platform(platform)
        sha256 = info.sha256

        if not sha256 and info.url:
            logger.info(f"Fetching SHA256 for {normalized}...")
            try:
                sha256 = resolve_url_checksum(info.url, client, "sha256", download=download)
            except ChecksumUnavailableError as e:
                logger.warning(f"Could not fetch SHA256 for {normalized}, formula may be incomplete ({e.reason})")

        assets[normalized] = replace(info, sha256=sha256.lower() if sha256 else None)

    return assets


def clean_version(version: str) -> str:
    """先頭の `v` を1文字だけ取り除く."""
    return version[1:] if version.startswith("v") else version


def is_nightly(version: str) -> bool:
    return "nightly" in version


def build_formula_context(
    name: str,
    version: str,
    assets: Mapping[str, AssetInfo],
    description: str = "",
    homepage: str = "",
    license: str = "",
    binary_name: str = "",
    private_repo: bool = False,
) -> Mapping[str, object]:
    """Homebrew フォーミュラ用のコンテキストを作成.

    `darwinAmd64` / `linuxAmd64` は `darwinX64` / `linuxX64` と同一オブジェクト
    （同じ成果物の別名）で、個別には設定できない。

    Args:
        name: フォーミュラ名
        version: バージョン（例: "v1.2.3"）
        assets: 正規化済みアセット
        description: 説明
        homepage: ホームページURL
        license: ライセンス識別子
        binary_name: インストールするバイナリ名（空ならフォーミュラ名）
        private_repo: プライベートリポジトリ用ダウンロード戦略を使うか

    Returns:
        読み取り専用のコンテキスト
    """
    version_clean = clean_version(version)
    asset_context = {platform: info.to_context() for platform, info in assets.items()}

    macos_assets = []
    linux_assets = []
    for platform, asset in asset_context.items():
        if platform.startswith(("darwin-", "macos-")):
            macos_assets.append({"platform": platform, "asset": asset})
        elif platform.startswith("linux-"):
            linux_assets.append({"platform": platform, "asset": asset})

    darwin_x64 = asset_context.get("darwin-x64")
    linux_x64 = asset_context.get("linux-x64")

    return MappingProxyType(
        {
            "name": name,
            "version": version_clean,
            "versionClean": version_clean,
            "versionTag": version,
            "description": description or "",
            "homepage": homepage or "",
            "license": license or "",
            "binaryName": binary_name or name,
            "privateRepo": bool(private_repo),
            "assets": asset_context,
            "darwinArm64": asset_context.get("darwin-arm64"),
            "darwinX64": darwin_x64,
            "darwinAmd64": darwin_x64,
            "linuxArm64": asset_context.get("linux-arm64"),
            "linuxX64": linux_x64,
            "linuxAmd64": linux_x64,
            "macosAssets": macos_assets,
            "linuxAssets": linux_assets,
        }
    )


def parse_build_status(build_status_json: str) -> dict[str, str]:
    """ジョブ名 → 結果 のJSONをパースする. 不正な場合は警告して空を返す."""
    if not build_status_json or build_status_json.strip() == "{}":
        return {}
    try:
        data = json.loads(build_status_json)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse build-status: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Failed to parse build-status: expected object, got {type(data).__name__}")
        return {}
    statuses = {str(job): str(status) for job, status in data.items() if status is not None}
    for job, status in statuses.items():
        if status not in BUILD_STATUSES:
            logger.warning(f"Unknown build status for {job}: {status}")
    return statuses


def has_failures(build_status: Mapping[str, str]) -> bool:
    return any(status == BUILD_FAILURE for status in build_status.values())


def _shell_install(repository: str, version: str, project_name: str, archive: str) -> str:
    return (
        f"curl -fsSL https://github.com/{repository}/releases/download/{version}/{project_name}-{archive} | tar xz\n"
        f"sudo mv {project_name} /usr/local/bin/"
    )


def default_homebrew_tap(repository: str) -> str:
    owner = repository.split("/", 1)[0] if repository else ""
    return f"{owner}/tap" if owner else ""


def generate_install_commands(
    version: str,
    project_name: str,
    repository: str,
    homebrew_tap: str = "",
) -> list[dict]:
    """OSごとのインストール手順を生成.

    Args:
        version: リリースのタグ名
        project_name: プロジェクト名（アーカイブ/バイナリ名の接頭辞）
        repository: `owner/repo`
        homebrew_tap: Homebrew tap（空なら `<owner>/tap`）

    Returns:
        {os, icon, methods: [{name, command, note?}]} のリスト
    """
    tap = homebrew_tap or default_homebrew_tap(repository)
    formula = f"{project_name}-nightly" if is_nightly(version) else project_name

    macos_methods = []
    if tap:
        macos_methods.append({"name": "Homebrew", "command": f"brew install {tap}/{formula}"})
    macos_methods.extend(
        [
            {
                "name": "Shell (Apple Silicon)",
                "command": _shell_install(repository, version, project_name, "darwin-arm64.tar.gz"),
            },
            {
                "name": "Shell (Intel)",
                "command": _shell_install(repository, version, project_name, "darwin-amd64.tar.gz"),
            },
        ]
    )

    windows_command = (
        f'Invoke-WebRequest -Uri "https://github.com/{repository}/releases/download/{version}/'
        f'{project_name}-windows-amd64.zip" -OutFile "{project_name}.zip"\n'
        f'Expand-Archive -Path "{project_name}.zip" -DestinationPath .\n'
        f'Move-Item -Path ".\\{project_name}.exe" -Destination "$env:LOCALAPPDATA\\Microsoft\\WindowsApps\\"'
    )

    return [
        {
            "os": "Linux",
            "icon": "",
            "methods": [
                {
                    "name": "Shell (x86_64)",
                    "command": _shell_install(repository, version, project_name, "linux-amd64.tar.gz"),
                },
                {
                    "name": "Shell (ARM64)",
                    "command": _shell_install(repository, version, project_name, "linux-aarch64.tar.gz"),
                },
            ],
        },
        {"os": "macOS", "icon": "", "methods": macos_methods},
        {"os": "Windows", "icon": "", "methods": [{"name": "PowerShell", "command": windows_command}]},
    ]


def build_release_context(
    version: str,
    assets: Iterable[Asset],
    project_name: str,
    project_description: str = "",
    repository: str = "",
    is_prerelease: bool = False,
    build_status: Mapping[str, str] | None = None,
    workflow_run_id: str = "",
    homebrew_tap: str = "",
    now: datetime | None = None,
) -> Mapping[str, object]:
    """リリースノート用のコンテキストを作成.

    Args:
        version: リリースのタグ名
        assets: 発見済みアセット（表示順）
        project_name: プロジェクト名
        project_description: 説明
        repository: `owner/repo`
        is_prerelease: プレリリースか
        build_status: ジョブ名 → 結果
        workflow_run_id: ワークフロー実行ID
        homebrew_tap: Homebrew tap
        now: 日付表示に使う時刻（テスト用）

    Returns:
        読み取り専用のコンテキスト
    """
    now = now or datetime.now(timezone.utc)
    build_status = dict(build_status or {})
    items = [asset.to_context() for asset in assets]

    return MappingProxyType(
        {
            "version": version,
            "versionClean": clean_version(version),
            "projectName": project_name,
            "projectDescription": project_description or "",
            "repository": repository,
            "repositoryUrl": f"https://github.com/{repository}",
            "isPrerelease": bool(is_prerelease),
            "isNightly": is_nightly(version),
            "date": f"{now:%B} {now.day}, {now.year}",
            "dateIso": now.date().isoformat(),
            "binaries": [a for a in items if a["type"] == "binary"],
            "debPackages": [a for a in items if a["type"] == "deb"],
            "rpmPackages": [a for a in items if a["type"] == "rpm"],
            "linuxAssets": [a for a in items if a["platform"]["os"] == "Linux"],
            "macosAssets": [a for a in items if a["platform"]["os"] == "macOS"],
            "windowsAssets": [a for a in items if a["platform"]["os"] == "Windows"],
            "hasFailures": has_failures(build_status),
            "buildStatus": build_status,
            "workflowRunUrl": (
                f"https://github.com/{repository}/actions/runs/{workflow_run_id}" if workflow_run_id else None
            ),
            "installCommands": generate_install_commands(version, project_name, repository, homebrew_tap),
        }
    )
