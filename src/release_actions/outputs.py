"""ステップ出力とファイル出力."""

from __future__ import annotations

import json
import os
import uuid
from collections.abc import Mapping
from pathlib import Path

from loguru import logger


def set_output(name: str, value: str, environ: Mapping[str, str] | None = None) -> None:
    """`$GITHUB_OUTPUT` にステップ出力を追記する.

    複数行の値にも対応するため常にヒアドキュメント形式で書き込む。
    `$GITHUB_OUTPUT` が未設定（ローカル実行）の場合はログのみ。
    """
    environ = os.environ if environ is None else environ
    output_file = environ.get("GITHUB_OUTPUT")
    if not output_file:
        logger.debug(f"GITHUB_OUTPUT not set, skipping output: {name}")
        return

    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    if delimiter in name or delimiter in value:
        raise ValueError(f"Unexpected delimiter collision for output: {name}")

    with open(output_file, "a", encoding="utf-8") as f:
        f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")


def write_json(data: Mapping, output_path: Path) -> Path:
    """JSONファイルとして保存."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(dict(data), f, indent=2, ensure_ascii=False)
    logger.info(f"JSON written to {output_path}")
    return output_path


def write_text(content: str, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(content, encoding="utf-8")
    logger.info(f"File written to {output_path}")
    return output_path
