"""アクション入力の読み込み.

優先順位: CLI引数 > 環境変数 `INPUT_<NAME>` > YAML設定ファイル > 既定値

使用例:
    >>> inputs = ActionInputs.load(overrides={"version": "v1.0.0"}, config_path=Path("release.yml"))
    >>> inputs.get("version", required=True)
    'v1.0.0'
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from .core.exceptions import ActionInputError

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off", ""}


def input_env_name(name: str) -> str:
    """GitHub Actions と同じ規則で入力名を環境変数名に変換（ハイフンは維持）."""
    return f"INPUT_{name.replace(' ', '_').upper()}"


def load_config_file(config_path: Path | str) -> dict[str, str]:
    """YAML設定ファイル（入力名 → 値）を読み込む.

    値が dict/list の場合はJSON文字列に変換する（`assets` などをYAMLで直接書けるように）。

    Raises:
        FileNotFoundError: ファイルが存在しない場合
        ActionInputError: YAMLとして不正、またはルートがマッピングでない場合
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except (yaml.YAMLError, UnicodeDecodeError) as e:
            raise ActionInputError(f"Invalid config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ActionInputError(f"Config file must contain a mapping, got {type(data).__name__}")

    values: dict[str, str] = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, (dict, list)):
            values[str(key)] = json.dumps(value)
        elif isinstance(value, bool):
            values[str(key)] = "true" if value else "false"
        else:
            values[str(key)] = str(value)

    logger.info(f"Loaded {len(values)} inputs from {config_path}")
    return values


class ActionInputs:
    """解決済みのアクション入力."""

    def __init__(
        self,
        overrides: Mapping[str, str | None] | None = None,
        environ: Mapping[str, str] | None = None,
        config: Mapping[str, str] | None = None,
    ) -> None:
        self._overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
        self._environ = os.environ if environ is None else environ
        self._config = dict(config or {})

    @classmethod
    def load(
        cls,
        overrides: Mapping[str, str | None] | None = None,
        config_path: Path | str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> ActionInputs:
        config = load_config_file(config_path) if config_path else {}
        return cls(overrides=overrides, environ=environ, config=config)

    def _lookup(self, name: str) -> str | None:
        if name in self._overrides:
            return str(self._overrides[name])
        env_value = self._environ.get(input_env_name(name))
        if env_value is not None:
            return env_value
        return self._config.get(name)

    def get(self, name: str, required: bool = False, default: str = "") -> str:
        """入力値を取得（前後の空白は除去）.

        Raises:
            ActionInputError: required で値が空の場合
        """
        value = (self._lookup(name) or "").strip()
        if not value:
            if required:
                raise ActionInputError(f"Input required and not supplied: {name}", input_name=name)
            return default
        return value

    def get_bool(self, name: str, default: bool = False) -> bool:
        value = self._lookup(name)
        if value is None or not value.strip():
            return default
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ActionInputError(f"Input does not meet boolean format: {name}={value}", input_name=name)

    def get_json(self, name: str, required: bool = False, default: Any = None) -> Any:
        """JSON入力をパースする.

        Raises:
            ActionInputError: JSONが不正、または required で値が空の場合
        """
        raw = self.get(name, required=required)
        if not raw:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ActionInputError(f"Invalid {name} JSON: {raw}", input_name=name) from e
