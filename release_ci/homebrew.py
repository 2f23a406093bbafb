"""Homebrew tap updater: render a formula from release assets and commit it to the tap repo."""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from loguru import logger

from release_actions.config import ActionInputs
from release_actions.core.context import build_formula_context, clean_version, parse_assets_json, process_assets
from release_actions.github import (
    DEFAULT_COMMITTER_EMAIL,
    DEFAULT_COMMITTER_NAME,
    Committer,
    create_github_client,
    parse_repository,
    update_file,
)
from release_actions.outputs import set_output
from release_actions.rendering import DEFAULT_FORMULA_TEMPLATE, load_template, render_template

INPUTS: tuple[str, ...] = (
    "tap-repo",
    "formula-name",
    "version",
    "assets",
    "github-token",
    "template",
    "template-inline",
    "commit-message",
    "branch",
    "formula-path",
    "dry-run",
    "description",
    "homepage",
    "license",
    "binary-name",
    "private-repo",
    "git-user-name",
    "git-user-email",
    "compute-missing-sha256",
)


@dataclass(frozen=True)
class HomebrewConfig:
    tap_owner: str
    tap_repo: str
    formula_name: str
    version: str
    assets_json: str
    github_token: str
    template_path: str
    template_inline: str
    commit_message: str
    branch: str
    formula_path: str
    dry_run: bool
    description: str
    homepage: str
    license: str
    binary_name: str
    private_repo: bool
    committer: Committer
    compute_missing_sha256: bool


def load_config(inputs: ActionInputs) -> HomebrewConfig:
    """入力を検証して設定を作る（不正な入力はここで実行全体を中断）."""
    tap_owner, tap_repo = parse_repository(inputs.get("tap-repo", required=True), input_name="tap-repo")
    formula_name = inputs.get("formula-name", required=True)
    version = inputs.get("version", required=True)
    dry_run = inputs.get_bool("dry-run")

    return HomebrewConfig(
        tap_owner=tap_owner,
        tap_repo=tap_repo,
        formula_name=formula_name,
        version=version,
        assets_json=inputs.get("assets", required=True),
        github_token=inputs.get("github-token", required=not dry_run),
        template_path=inputs.get("template"),
        template_inline=inputs.get("template-inline"),
        commit_message=inputs.get("commit-message", default=f"Update {formula_name} to {clean_version(version)}"),
        branch=inputs.get("branch", default="main"),
        formula_path=inputs.get("formula-path", default=f"Formula/{formula_name}.rb"),
        dry_run=dry_run,
        description=inputs.get("description", default=f"{formula_name} binary"),
        homepage=inputs.get("homepage"),
        license=inputs.get("license", default="MIT"),
        binary_name=inputs.get("binary-name", default=formula_name),
        private_repo=inputs.get_bool("private-repo"),
        committer=Committer(
            name=inputs.get("git-user-name", default=DEFAULT_COMMITTER_NAME),
            email=inputs.get("git-user-email", default=DEFAULT_COMMITTER_EMAIL),
        ),
        compute_missing_sha256=inputs.get_bool("compute-missing-sha256", default=True),
    )


def render_formula(config: HomebrewConfig, http_client: httpx.Client | None = None) -> str:
    raw_assets = parse_assets_json(config.assets_json)

    logger.info(f"Processing {len(raw_assets)} platform assets...")
    assets = process_assets(raw_assets, http_client, download=config.compute_missing_sha256)

    context = build_formula_context(
        name=config.formula_name,
        version=config.version,
        assets=assets,
        description=config.description,
        homepage=config.homepage,
        license=config.license,
        binary_name=config.binary_name,
        private_repo=config.private_repo,
    )
    if config.private_repo:
        logger.info("Private repository mode - formula will use GitHubPrivateRepositoryReleaseDownloadStrategy")

    template = load_template(config.template_path, config.template_inline, DEFAULT_FORMULA_TEMPLATE)
    input_name = "template-inline" if config.template_inline and not config.template_path else "template"
    return render_template(template, context, input_name=input_name)


def run(
    inputs: ActionInputs,
    http_client: httpx.Client | None = None,
    github_client: httpx.Client | None = None,
) -> dict[str, str]:
    """フォーミュラを生成し、dry-run でなければ tap リポジトリにコミットする.

    Args:
        inputs: アクション入力
        http_client: アセット/サイドカー取得用クライアント
        github_client: GitHub API 用クライアント（None なら github-token から作成）

    Returns:
        ステップ出力の辞書
    """
    config = load_config(inputs)
    formula_content = render_formula(config, http_client)

    logger.info(f"Generated formula for {config.formula_name} {config.version}")
    logger.debug(f"Formula content:\n{formula_content}")

    outputs = {"formula-content": formula_content, "formula-path": config.formula_path}
    set_output("formula-content", formula_content)
    set_output("formula-path", config.formula_path)

    if config.dry_run:
        logger.info("Dry run mode - not committing changes")
        logger.info(f"\n--- Generated Formula ---\n{formula_content}\n---")
        return outputs

    client = github_client or create_github_client(config.github_token)
    try:
        logger.info(
            f"Updating {config.tap_owner}/{config.tap_repo}:{config.branch}/{config.formula_path}..."
        )
        logger.info(f"Committer: {config.committer.name} <{config.committer.email}>")
        result = update_file(
            client,
            owner=config.tap_owner,
            repo=config.tap_repo,
            branch=config.branch,
            path=config.formula_path,
            content=formula_content,
            message=config.commit_message,
            committer=config.committer,
        )
    finally:
        if github_client is None:
            client.close()

    outputs["commit-sha"] = result.sha
    outputs["commit-url"] = result.url
    set_output("commit-sha", result.sha)
    set_output("commit-url", result.url)

    logger.info("Successfully updated formula!")
    logger.info(f"Commit: {result.url}")
    return outputs
