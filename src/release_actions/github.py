"""GitHub contents API による単一ファイルの作成/更新."""

from __future__ import annotations

import base64
from dataclasses import dataclass

import httpx
from loguru import logger

from .core.exceptions import ActionInputError

GITHUB_API_URL = "https://api.github.com"
DEFAULT_COMMITTER_NAME = "github-actions[bot]"
DEFAULT_COMMITTER_EMAIL = "41898282+github-actions[bot]@users.noreply.github.com"


@dataclass(frozen=True)
class Committer:
    name: str = DEFAULT_COMMITTER_NAME
    email: str = DEFAULT_COMMITTER_EMAIL


@dataclass(frozen=True)
class CommitResult:
    sha: str
    url: str


def parse_repository(repository: str, input_name: str = "repository") -> tuple[str, str]:
    """`owner/repo` を分解する.

    Raises:
        ActionInputError: 形式が不正な場合
    """
    owner, _, name = repository.strip().partition("/")
    if not owner or not name or "/" in name:
        raise ActionInputError(
            f"Invalid {input_name} format: {repository}. Expected: owner/repo",
            input_name=input_name,
        )
    return owner, name


def create_github_client(token: str, api_url: str = GITHUB_API_URL, timeout: float = 30.0) -> httpx.Client:
    return httpx.Client(
        base_url=api_url,
        timeout=timeout,
        headers={
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "release-actions",
        },
    )


def get_file_sha(client: httpx.Client, owner: str, repo: str, path: str, branch: str) -> str | None:
    """既存ファイルのblob shaを返す. 存在しなければ None.

    Raises:
        httpx.HTTPStatusError: 404以外のエラー（権限不足など）
    """
    response = client.get(f"/repos/{owner}/{repo}/contents/{path}", params={"ref": branch})
    if response.status_code == 404:
        return None
    response.raise_for_status()

    data = response.json()
    if isinstance(data, dict) and data.get("type") == "file":
        return data.get("sha")
    return None


def update_file(
    client: httpx.Client,
    owner: str,
    repo: str,
    branch: str,
    path: str,
    content: str,
    message: str,
    committer: Committer | None = None,
) -> CommitResult:
    """ファイルを作成または更新してコミットする.

    既存ファイルがあればその blob sha を付けて更新する（並行更新による上書き消失を防ぐ）。

    Args:
        client: create_github_client で作成したクライアント
        owner: リポジトリ所有者
        repo: リポジトリ名
        branch: 対象ブランチ
        path: リポジトリ内のパス
        content: ファイル内容
        message: コミットメッセージ
        committer: コミッター（author にも同じ値を使う）

    Returns:
        コミットのshaとURL

    Raises:
        httpx.HTTPStatusError: APIエラー
    """
    committer = committer or Committer()

    existing_sha = get_file_sha(client, owner, repo, path, branch)
    if existing_sha:
        logger.info(f"Found existing file at {path}")
    else:
        logger.info(f"Creating new file at {path}")

    identity = {"name": committer.name, "email": committer.email}
    payload: dict = {
        "message": message,
        "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        "branch": branch,
        "committer": identity,
        "author": identity,
    }
    if existing_sha:
        payload["sha"] = existing_sha

    response = client.put(f"/repos/{owner}/{repo}/contents/{path}", json=payload)
    response.raise_for_status()

    commit = response.json().get("commit") or {}
    return CommitResult(sha=commit.get("sha") or "", url=commit.get("html_url") or "")
