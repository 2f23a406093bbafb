"""Integration tests for the checksums action."""

import hashlib
import json
from pathlib import Path

import pytest

from release_actions.config import ActionInputs
from release_actions.core.exceptions import ActionInputError
from release_ci.checksums import run

SIDECAR_HASH = "9f" * 32


@pytest.mark.integration
class TestChecksumsWorkflow:
    """チェックサム収集の統合テスト."""

    def test_files_urls_and_map(self, mock_client, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        dist = tmp_path / "dist"
        dist.mkdir()
        (dist / "myapp-linux-amd64.tar.gz").write_bytes(b"linux")
        (dist / "myapp-darwin-arm64.tar.gz").write_bytes(b"darwin")
        (dist / "myapp-darwin-arm64.tar.gz.sha256").write_text(SIDECAR_HASH, encoding="utf-8")
        output_file = tmp_path / "checksums.json"
        github_output = tmp_path / "github_output"
        monkeypatch.setenv("GITHUB_OUTPUT", str(github_output))

        client = mock_client(
            {
                "https://x/releases/myapp-windows-amd64.zip": (200, b"windows"),
                "https://x/releases/myapp-freebsd.tar.gz.sha256": (200, f"{SIDECAR_HASH}  myapp-freebsd.tar.gz\n"),
            }
        )
        inputs = ActionInputs(
            overrides={
                "files": f"{dist}/*",
                "urls": '["https://x/releases/myapp-windows-amd64.zip"]',
                "url-map": '{"freebsd": "https://x/releases/myapp-freebsd.tar.gz"}',
                "output-file": str(output_file),
            },
            environ={},
        )

        outputs = run(inputs, http_client=client)

        expected = {
            "myapp-darwin-arm64.tar.gz": SIDECAR_HASH,
            "myapp-linux-amd64.tar.gz": hashlib.sha256(b"linux").hexdigest(),
            "myapp-windows-amd64.zip": hashlib.sha256(b"windows").hexdigest(),
            "freebsd": SIDECAR_HASH,
        }
        assert json.loads(outputs["checksums"]) == expected
        assert json.loads(output_file.read_text(encoding="utf-8")) == expected
        assert outputs["checksums-file"] == str(output_file.resolve())
        assert f"{SIDECAR_HASH}  freebsd" in outputs["checksums-list"].splitlines()
        assert "checksums-list<<ghadelimiter_" in github_output.read_text(encoding="utf-8")

    def test_partial_failure_continues(self, mock_client, tmp_path: Path, log_messages: list[str]) -> None:
        """取得できないURLはスキップし、他の結果は出力されること."""
        client = mock_client({"https://x/ok.zip": (200, b"ok")})
        inputs = ActionInputs(
            overrides={
                "urls": '["https://x/missing.zip", "https://x/ok.zip"]',
                "output-file": str(tmp_path / "checksums.json"),
            },
            environ={},
        )

        outputs = run(inputs, http_client=client)

        assert json.loads(outputs["checksums"]) == {"ok.zip": hashlib.sha256(b"ok").hexdigest()}
        assert any("missing.zip" in m and m.startswith("WARNING:") for m in log_messages)

    def test_sha512_without_sidecars(self, tmp_path: Path) -> None:
        artifact = tmp_path / "myapp.tar.gz"
        artifact.write_bytes(b"payload")
        (tmp_path / "myapp.tar.gz.sha256").write_text(SIDECAR_HASH, encoding="utf-8")
        inputs = ActionInputs(
            overrides={
                "files": str(artifact),
                "algorithm": "sha512",
                "output-file": str(tmp_path / "out.json"),
            },
            environ={},
        )

        outputs = run(inputs)

        assert json.loads(outputs["checksums"]) == {"myapp.tar.gz": hashlib.sha512(b"payload").hexdigest()}

    def test_no_sources(self) -> None:
        with pytest.raises(ActionInputError, match="At least one of"):
            run(ActionInputs(overrides={}, environ={}))

    def test_invalid_algorithm_before_work(self, tmp_path: Path) -> None:
        """不正な入力は個別処理より前にエラーになること."""
        output_file = tmp_path / "checksums.json"
        inputs = ActionInputs(
            overrides={"files": f"{tmp_path}/*", "algorithm": "crc32", "output-file": str(output_file)},
            environ={},
        )

        with pytest.raises(ActionInputError, match="Unsupported algorithm"):
            run(inputs)
        assert not output_file.exists()

    def test_invalid_url_map(self, tmp_path: Path) -> None:
        inputs = ActionInputs(overrides={"url-map": '["not", "a", "map"]'}, environ={})

        with pytest.raises(ActionInputError, match="Invalid url-map JSON"):
            run(inputs)
