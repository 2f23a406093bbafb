"""チェックサムの取得と計算.

サイドカーファイル（`<artifact>.sha256`）が既に公開されていればその値を信頼し、
大きなバイナリの再ダウンロード/再計算を避ける。無ければ本体を読み込んで計算する。

解決順序:
    1. `<reference>.sha256` をローカルファイルまたはHTTP GETで取得し、先頭64桁の16進数を採用
    2. ローカルファイルをストリーム読み込み、またはURLをダウンロードしてダイジェストを計算
    3. どちらも失敗した場合は ChecksumUnavailableError（呼び出し側で警告して続行）
"""

from __future__ import annotations

import glob
import hashlib
import os
import re
from collections.abc import Iterable, Mapping
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

import httpx
from loguru import logger

from .exceptions import ActionInputError, ChecksumUnavailableError

HASH_ALGORITHMS: tuple[str, ...] = ("sha256", "sha512", "md5")
SIDECAR_SUFFIX = ".sha256"
DEFAULT_TIMEOUT = 60.0

_CHUNK_SIZE = 1024 * 1024
# "hash  filename" または "hash" のみ
_SHA256_PREFIX = re.compile(r"^([a-f0-9]{64})", re.IGNORECASE)


def create_http_client(timeout: float = DEFAULT_TIMEOUT) -> httpx.Client:
    """リダイレクト追従付きのHTTPクライアントを作成（GitHub Releases のダウンロードURL向け）."""
    return httpx.Client(
        follow_redirects=True,
        timeout=timeout,
        headers={"User-Agent": "release-actions"},
    )


def validate_algorithm(algorithm: str) -> str:
    """ハッシュアルゴリズム名を検証して小文字で返す.

    Raises:
        ActionInputError: 未対応のアルゴリズムの場合
    """
    name = (algorithm or "sha256").strip().lower()
    if name not in HASH_ALGORITHMS:
        raise ActionInputError(
            f"Unsupported algorithm: {algorithm}. Expected one of: {', '.join(HASH_ALGORITHMS)}",
            input_name="algorithm",
        )
    return name


def parse_sha256_content(content: str, source: str) -> str | None:
    """サイドカーファイルの内容からSHA256を取り出す.

    Args:
        content: サイドカーファイルの内容
        source: ログ用の取得元（パスまたはURL）

    Returns:
        小文字の16進ダイジェスト。形式が不正な場合は None
    """
    match = _SHA256_PREFIX.match(content.strip())
    if match:
        return match.group(1).lower()
    logger.warning(f"Invalid SHA256 format in {source}: {content.strip()[:80]!r}")
    return None


def read_sidecar_file(path: Path) -> str | None:
    """ローカルの `<path>.sha256` を読み込む. 存在しなければ None.

    UTF-8 として読めない内容は置換文字に変換し、形式不正として警告する。
    """
    sidecar = Path(f"{path}{SIDECAR_SUFFIX}")
    try:
        content = sidecar.read_bytes().decode("utf-8", errors="replace")
    except OSError:
        return None
    return parse_sha256_content(content, str(sidecar))


def fetch_sidecar_url(url: str, client: httpx.Client) -> str | None:
    """`<url>.sha256` を取得する.

    2xx以外は「存在しない」として扱い、通信エラーも None を返す（どちらも再計算へフォールバック）。
    """
    sidecar_url = f"{url}{SIDECAR_SUFFIX}"
    logger.debug(f"Fetching SHA256 from {sidecar_url}")
    try:
        response = client.get(sidecar_url)
    except httpx.HTTPError as e:
        logger.debug(f"Failed to fetch SHA256: {e}")
        return None

    if not response.is_success:
        logger.debug(f"SHA256 file not found at {sidecar_url}, status: {response.status_code}")
        return None

    digest = parse_sha256_content(response.text, sidecar_url)
    if digest:
        logger.debug(f"Found SHA256: {digest}")
    return digest


def hash_file(path: Path, algorithm: str = "sha256") -> str:
    """ファイルをチャンク単位で読み込んでダイジェストを計算."""
    digest = hashlib.new(algorithm)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def hash_url(url: str, client: httpx.Client, algorithm: str = "sha256") -> str:
    """URLをダウンロードしながらダイジェストを計算.

    Raises:
        httpx.HTTPError: 通信エラーまたは2xx以外のレスポンス
    """
    logger.debug(f"Downloading {url}")
    digest = hashlib.new(algorithm)
    with client.stream("GET", url) as response:
        response.raise_for_status()
        for chunk in response.iter_bytes():
            digest.update(chunk)
    return digest.hexdigest()


def _uses_sidecar(algorithm: str, read_sidecar: bool) -> bool:
    # `.sha256` ファイルは sha512/md5 の要求を満たせない
    return read_sidecar and algorithm == "sha256"


def resolve_file_checksum(
    path: Path | str,
    algorithm: str = "sha256",
    read_sidecar: bool = True,
) -> str:
    """ローカルファイルのチェックサムを解決する.

    Args:
        path: 対象ファイル
        algorithm: ハッシュアルゴリズム
        read_sidecar: `<path>.sha256` を優先して読むか

    Returns:
        小文字の16進ダイジェスト

    Raises:
        ChecksumUnavailableError: ファイルが読めない場合
    """
    path = Path(path)
    if _uses_sidecar(algorithm, read_sidecar):
        existing = read_sidecar_file(path)
        if existing:
            logger.debug(f"Read existing checksum for {path.name}")
            return existing

    try:
        return hash_file(path, algorithm)
    except OSError as e:
        raise ChecksumUnavailableError(str(path), str(e)) from e


def resolve_url_checksum(
    url: str,
    client: httpx.Client,
    algorithm: str = "sha256",
    read_sidecar: bool = True,
    download: bool = True,
) -> str:
    """リモートアセットのチェックサムを解決する.

    Args:
        url: アセットのダウンロードURL
        client: HTTPクライアント
        algorithm: ハッシュアルゴリズム
        read_sidecar: `<url>.sha256` を優先して取得するか
        download: サイドカーが無い場合に本体をダウンロードして計算するか

    Returns:
        小文字の16進ダイジェスト

    Raises:
        ChecksumUnavailableError: サイドカーが無く、ダウンロードも失敗/無効の場合
    """
    if _uses_sidecar(algorithm, read_sidecar):
        existing = fetch_sidecar_url(url, client)
        if existing:
            return existing

    if not download:
        raise ChecksumUnavailableError(url, "no sidecar checksum published")

    try:
        return hash_url(url, client, algorithm)
    except httpx.HTTPError as e:
        raise ChecksumUnavailableError(url, str(e)) from e


def expand_file_patterns(patterns: str) -> list[Path]:
    """改行区切りのglobパターンを展開する.

    `!` で始まる行は除外パターン、`#` で始まる行はコメント。
    パターンの記述順、各パターン内はパス順で重複なく返す。
    """
    included: list[Path] = []
    excluded: set[Path] = set()

    for raw_line in patterns.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        pattern = os.path.expanduser(line[1:].strip() if negate else line)
        matches = [Path(m) for m in sorted(glob.glob(pattern, recursive=True))]
        if negate:
            excluded.update(matches)
        else:
            included.extend(m for m in matches if m.is_file())

    seen: set[Path] = set()
    files: list[Path] = []
    for path in included:
        if path in excluded or path in seen:
            continue
        seen.add(path)
        files.append(path)
    return files


def checksum_files(
    patterns: str,
    algorithm: str = "sha256",
    read_sidecar: bool = True,
) -> dict[str, str]:
    """globパターンに一致するローカルファイルのチェックサムをファイル名キーで返す."""
    result: dict[str, str] = {}
    for path in expand_file_patterns(patterns):
        # サイドカー自体はスキップ
        if path.name.endswith(SIDECAR_SUFFIX):
            continue
        logger.info(f"Resolving {algorithm} for {path.name}...")
        try:
            result[path.name] = resolve_file_checksum(path, algorithm, read_sidecar)
        except ChecksumUnavailableError as e:
            logger.warning(str(e))
    return result


def url_filename(url: str) -> str:
    return PurePosixPath(urlparse(url).path).name


def checksum_urls(
    urls: Iterable[str],
    client: httpx.Client,
    algorithm: str = "sha256",
    read_sidecar: bool = True,
) -> dict[str, str]:
    """URLリストのチェックサムをURLのファイル名キーで返す.

    同じファイル名のURLが複数ある場合は後勝ち（警告を出す）。
    """
    url_map: dict[str, str] = {}
    for url in urls:
        filename = url_filename(url)
        if filename in url_map and url_map[filename] != url:
            logger.warning(f"Duplicate filename {filename}: {url_map[filename]} is replaced by {url}")
        url_map[filename] = url

    return checksum_url_map(
        url_map,
        client,
        algorithm=algorithm,
        read_sidecar=read_sidecar,
    )


def checksum_url_map(
    url_map: Mapping[str, str],
    client: httpx.Client,
    algorithm: str = "sha256",
    read_sidecar: bool = True,
) -> dict[str, str]:
    """識別子 → URL のマップのチェックサムを識別子キーで返す.

    1件の失敗はその識別子のみ欠落させ、残りの処理は続行する。
    """
    result: dict[str, str] = {}
    for identifier, url in url_map.items():
        logger.info(f"Resolving {algorithm} for {identifier}...")
        try:
            result[identifier] = resolve_url_checksum(url, client, algorithm, read_sidecar)
        except ChecksumUnavailableError as e:
            logger.warning(str(e))
    return result


def format_checksum_list(checksums: Mapping[str, str]) -> str:
    """`shasum -c` 互換の "<hash>  <name>" 形式に整形."""
    return "\n".join(f"{digest}  {name}" for name, digest in checksums.items())
