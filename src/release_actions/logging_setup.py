"""loguru の出力設定.

GitHub Actions 上ではワークフローコマンド（`::warning::` など）として出力し、
警告/エラーが実行サマリに注釈として表示されるようにする。
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping

from loguru import logger

_WORKFLOW_COMMANDS = {
    "TRACE": "debug",
    "DEBUG": "debug",
    "WARNING": "warning",
    "ERROR": "error",
    "CRITICAL": "error",
}


def _escape_data(message: str) -> str:
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def format_workflow_command(level: str, message: str) -> str:
    """ログレベルに応じたワークフローコマンド行を返す（INFO等はそのまま）."""
    command = _WORKFLOW_COMMANDS.get(level)
    if command is None:
        return message
    return f"::{command}::{_escape_data(message)}"


def _workflow_sink(message) -> None:
    record = message.record
    sys.stdout.write(format_workflow_command(record["level"].name, record["message"]) + "\n")
    sys.stdout.flush()


def is_github_actions(environ: Mapping[str, str] | None = None) -> bool:
    environ = os.environ if environ is None else environ
    return environ.get("GITHUB_ACTIONS") == "true"


def configure_logging(debug: bool = False, environ: Mapping[str, str] | None = None) -> None:
    """loguru の既定シンクを置き換える.

    Args:
        debug: DEBUGレベルを出力するか（`RUNNER_DEBUG=1` でも有効）
        environ: 環境変数（テスト用）
    """
    environ = os.environ if environ is None else environ
    level = "DEBUG" if debug or environ.get("RUNNER_DEBUG") == "1" else "INFO"

    logger.remove()
    if is_github_actions(environ):
        logger.add(_workflow_sink, level=level, format="{message}")
    else:
        logger.add(sys.stderr, level=level, format="<level>{level: <8}</level> | {message}")
