"""Release notes generator: discover built assets and render Markdown notes."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from release_actions.config import ActionInputs
from release_actions.core.classifier import discover_assets
from release_actions.core.context import build_release_context, parse_build_status
from release_actions.outputs import set_output, write_text
from release_actions.rendering import DEFAULT_RELEASE_NOTES_TEMPLATE, render_template

INPUTS: tuple[str, ...] = (
    "version",
    "assets-dir",
    "project-name",
    "project-description",
    "repository",
    "is-prerelease",
    "workflow-run-id",
    "template",
    "build-status",
    "homebrew-tap",
    "output-file",
)


@dataclass(frozen=True)
class ReleaseNotesConfig:
    version: str
    assets_dir: Path
    project_name: str
    project_description: str
    repository: str
    is_prerelease: bool
    workflow_run_id: str
    template_path: str
    build_status: dict[str, str]
    homebrew_tap: str
    output_file: Path


def load_config(inputs: ActionInputs) -> ReleaseNotesConfig:
    return ReleaseNotesConfig(
        version=inputs.get("version", required=True),
        assets_dir=Path(inputs.get("assets-dir", required=True)),
        project_name=inputs.get("project-name", required=True),
        project_description=inputs.get("project-description"),
        repository=inputs.get("repository", default=os.environ.get("GITHUB_REPOSITORY", "")),
        is_prerelease=inputs.get_bool("is-prerelease"),
        workflow_run_id=inputs.get("workflow-run-id", default=os.environ.get("GITHUB_RUN_ID", "")),
        template_path=inputs.get("template"),
        build_status=parse_build_status(inputs.get("build-status")),
        homebrew_tap=inputs.get("homebrew-tap"),
        output_file=Path(inputs.get("output-file", default="release-notes.md")),
    )


def _load_custom_template(template_path: str) -> str:
    if not template_path:
        return DEFAULT_RELEASE_NOTES_TEMPLATE
    try:
        source = Path(template_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Failed to load custom template, using default: {e}")
        return DEFAULT_RELEASE_NOTES_TEMPLATE
    logger.info(f"Using custom template: {template_path}")
    return source


def run(inputs: ActionInputs) -> dict[str, str]:
    """リリースノートを生成してファイルとステップ出力に書き出す.

    Returns:
        ステップ出力の辞書
    """
    config = load_config(inputs)

    logger.info(f"Generating release notes for {config.version}")
    logger.info(f"Assets directory: {config.assets_dir}")

    assets = discover_assets(config.assets_dir)
    context = build_release_context(
        version=config.version,
        assets=assets,
        project_name=config.project_name,
        project_description=config.project_description,
        repository=config.repository,
        is_prerelease=config.is_prerelease,
        build_status=config.build_status,
        workflow_run_id=config.workflow_run_id,
        homebrew_tap=config.homebrew_tap,
    )
    logger.info(
        f"Found {len(context['binaries'])} binaries, {len(context['debPackages'])} DEBs, "
        f"{len(context['rpmPackages'])} RPMs"
    )

    release_notes = render_template(_load_custom_template(config.template_path), context)

    output_path = write_text(release_notes, config.output_file.resolve())
    set_output("release-notes", release_notes)
    set_output("release-notes-file", str(output_path))

    logger.info(f"Release notes generated successfully: {output_path}")
    return {"release-notes": release_notes, "release-notes-file": str(output_path)}
