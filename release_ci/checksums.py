"""Checksum collector: resolve checksums for local files, URL lists, and URL maps."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
from loguru import logger

from release_actions.config import ActionInputs
from release_actions.core.checksums import (
    checksum_files,
    checksum_url_map,
    checksum_urls,
    create_http_client,
    format_checksum_list,
    validate_algorithm,
)
from release_actions.core.exceptions import ActionInputError
from release_actions.outputs import set_output, write_json

INPUTS: tuple[str, ...] = (
    "files",
    "urls",
    "url-map",
    "algorithm",
    "read-sha256-files",
    "output-file",
)


def _parse_urls(inputs: ActionInputs) -> list[str]:
    urls = inputs.get_json("urls", default=[])
    if not isinstance(urls, list) or not all(isinstance(u, str) for u in urls):
        raise ActionInputError(f"Invalid urls JSON: {inputs.get('urls')}", input_name="urls")
    return urls


def _parse_url_map(inputs: ActionInputs) -> dict[str, str]:
    url_map = inputs.get_json("url-map", default={})
    if not isinstance(url_map, dict) or not all(isinstance(u, str) for u in url_map.values()):
        raise ActionInputError(f"Invalid url-map JSON: {inputs.get('url-map')}", input_name="url-map")
    return url_map


def run(inputs: ActionInputs, http_client: httpx.Client | None = None) -> dict[str, str]:
    """チェックサムを集めてJSONファイル/一覧/ステップ出力に書き出す.

    Args:
        inputs: アクション入力
        http_client: URL取得用クライアント（None なら内部で作成して閉じる）

    Returns:
        ステップ出力の辞書
    """
    files_pattern = inputs.get("files")
    if not files_pattern and not inputs.get("urls") and not inputs.get("url-map"):
        raise ActionInputError("At least one of 'files', 'urls', or 'url-map' must be provided")

    # 入力の検証は個別処理の前にまとめて行う
    algorithm = validate_algorithm(inputs.get("algorithm", default="sha256"))
    read_sidecar = inputs.get_bool("read-sha256-files", default=True)
    urls = _parse_urls(inputs)
    url_map = _parse_url_map(inputs)
    output_file = Path(inputs.get("output-file", default="checksums.json"))

    checksums: dict[str, str] = {}

    if files_pattern:
        logger.info("Processing local files...")
        checksums.update(checksum_files(files_pattern, algorithm, read_sidecar))

    if urls or url_map:
        client = http_client or create_http_client()
        try:
            if urls:
                logger.info("Processing URLs...")
                checksums.update(checksum_urls(urls, client, algorithm, read_sidecar))
            if url_map:
                logger.info("Processing URL map...")
                checksums.update(checksum_url_map(url_map, client, algorithm, read_sidecar))
        finally:
            if http_client is None:
                client.close()

    output_path = write_json(checksums, output_file.resolve())
    checksums_list = format_checksum_list(checksums)

    outputs = {
        "checksums": json.dumps(checksums),
        "checksums-file": str(output_path),
        "checksums-list": checksums_list,
    }
    for name, value in outputs.items():
        set_output(name, value)

    logger.info(f"Computed {len(checksums)} checksums")
    return outputs
