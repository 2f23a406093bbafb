"""Unit tests for checksum resolution."""

import hashlib
from pathlib import Path

import httpx
import pytest

from release_actions.core.checksums import (
    checksum_files,
    checksum_url_map,
    checksum_urls,
    expand_file_patterns,
    format_checksum_list,
    parse_sha256_content,
    resolve_file_checksum,
    resolve_url_checksum,
    url_filename,
    validate_algorithm,
)
from release_actions.core.exceptions import ActionInputError, ChecksumUnavailableError

SIDECAR_HASH = "deadbeef" * 8
ARTIFACT_URL = "https://example.com/releases/download/v1.0.0/myapp.tar.gz"


class TestParseSha256Content:
    def test_hash_with_filename(self) -> None:
        assert parse_sha256_content(f"{SIDECAR_HASH}  myapp.tar.gz\n", "x") == SIDECAR_HASH

    def test_hash_only_uppercase(self) -> None:
        """大文字の16進数も小文字にして返すこと."""
        assert parse_sha256_content(SIDECAR_HASH.upper(), "x") == SIDECAR_HASH

    def test_malformed_content(self, log_messages: list[str]) -> None:
        assert parse_sha256_content("not-a-hash  myapp.tar.gz", "myapp.tar.gz.sha256") is None
        assert any(m.startswith("WARNING:Invalid SHA256 format") for m in log_messages)

    def test_short_hash_is_rejected(self) -> None:
        assert parse_sha256_content("abc123", "x") is None


class TestResolveFileChecksum:
    def test_sidecar_is_trusted(self, tmp_path: Path) -> None:
        """サイドカーがあれば本体を読まずにその値を返すこと."""
        artifact = tmp_path / "myapp.tar.gz"
        artifact.write_bytes(b"payload")
        (tmp_path / "myapp.tar.gz.sha256").write_text(f"{SIDECAR_HASH}  myapp.tar.gz\n", encoding="utf-8")

        assert resolve_file_checksum(artifact) == SIDECAR_HASH

    def test_sidecar_without_artifact(self, tmp_path: Path) -> None:
        artifact = tmp_path / "myapp.tar.gz"
        (tmp_path / "myapp.tar.gz.sha256").write_text(SIDECAR_HASH, encoding="utf-8")

        assert resolve_file_checksum(artifact) == SIDECAR_HASH

    def test_computes_without_sidecar(self, tmp_path: Path) -> None:
        artifact = tmp_path / "myapp.tar.gz"
        artifact.write_bytes(b"payload" * 1000)

        assert resolve_file_checksum(artifact) == hashlib.sha256(b"payload" * 1000).hexdigest()

    def test_malformed_sidecar_falls_back(self, tmp_path: Path, log_messages: list[str]) -> None:
        """不正なサイドカーは警告して再計算にフォールバックすること."""
        artifact = tmp_path / "myapp.tar.gz"
        artifact.write_bytes(b"payload")
        (tmp_path / "myapp.tar.gz.sha256").write_text("garbage", encoding="utf-8")

        assert resolve_file_checksum(artifact) == hashlib.sha256(b"payload").hexdigest()
        assert any(m.startswith("WARNING:") for m in log_messages)

    def test_non_utf8_sidecar_falls_back(self, tmp_path: Path, log_messages: list[str]) -> None:
        """UTF-8 として読めないサイドカーも形式不正として扱い、再計算すること."""
        artifact = tmp_path / "a.tar.gz"
        artifact.write_bytes(b"payload")
        (tmp_path / "a.tar.gz.sha256").write_bytes(b"\xff\xfe\x00garbage")

        assert resolve_file_checksum(artifact) == hashlib.sha256(b"payload").hexdigest()
        assert checksum_files(f"{tmp_path}/*") == {"a.tar.gz": hashlib.sha256(b"payload").hexdigest()}
        assert any(m.startswith("WARNING:Invalid SHA256 format") for m in log_messages)

    def test_sidecar_disabled(self, tmp_path: Path) -> None:
        artifact = tmp_path / "myapp.tar.gz"
        artifact.write_bytes(b"payload")
        (tmp_path / "myapp.tar.gz.sha256").write_text(SIDECAR_HASH, encoding="utf-8")

        assert resolve_file_checksum(artifact, read_sidecar=False) == hashlib.sha256(b"payload").hexdigest()

    def test_other_algorithm_ignores_sha256_sidecar(self, tmp_path: Path) -> None:
        """sha512 要求時は `.sha256` サイドカーを使わないこと."""
        artifact = tmp_path / "myapp.tar.gz"
        artifact.write_bytes(b"payload")
        (tmp_path / "myapp.tar.gz.sha256").write_text(SIDECAR_HASH, encoding="utf-8")

        assert resolve_file_checksum(artifact, "sha512") == hashlib.sha512(b"payload").hexdigest()
        assert resolve_file_checksum(artifact, "md5") == hashlib.md5(b"payload").hexdigest()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ChecksumUnavailableError):
            resolve_file_checksum(tmp_path / "missing.tar.gz")


class TestResolveUrlChecksum:
    def test_sidecar_skips_download(self, mock_client) -> None:
        """サイドカーURLが取得できれば本体をダウンロードしないこと."""
        client = mock_client(
            {
                f"{ARTIFACT_URL}.sha256": (200, f"{SIDECAR_HASH}  myapp.tar.gz\n"),
                ARTIFACT_URL: (200, b"payload"),
            }
        )

        assert resolve_url_checksum(ARTIFACT_URL, client) == SIDECAR_HASH
        assert [str(r.url) for r in client.requests] == [f"{ARTIFACT_URL}.sha256"]

    def test_missing_sidecar_downloads(self, mock_client) -> None:
        client = mock_client({ARTIFACT_URL: (200, b"payload")})

        assert resolve_url_checksum(ARTIFACT_URL, client) == hashlib.sha256(b"payload").hexdigest()
        assert len(client.requests) == 2

    def test_malformed_sidecar_downloads(self, mock_client, log_messages: list[str]) -> None:
        client = mock_client(
            {
                f"{ARTIFACT_URL}.sha256": (200, "<html>not found</html>"),
                ARTIFACT_URL: (200, b"payload"),
            }
        )

        assert resolve_url_checksum(ARTIFACT_URL, client) == hashlib.sha256(b"payload").hexdigest()
        assert any(m.startswith("WARNING:Invalid SHA256 format") for m in log_messages)

    def test_transport_error_on_sidecar_falls_back(self) -> None:
        """サイドカー取得の通信エラーは「存在しない」と同じ扱いになること."""

        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url).endswith(".sha256"):
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, content=b"payload")

        with httpx.Client(transport=httpx.MockTransport(handler)) as client:
            assert resolve_url_checksum(ARTIFACT_URL, client) == hashlib.sha256(b"payload").hexdigest()

    def test_download_failure(self, mock_client) -> None:
        client = mock_client({ARTIFACT_URL: (500, b"error")})

        with pytest.raises(ChecksumUnavailableError) as excinfo:
            resolve_url_checksum(ARTIFACT_URL, client)
        assert excinfo.value.reference == ARTIFACT_URL

    def test_download_disabled(self, mock_client) -> None:
        client = mock_client({ARTIFACT_URL: (200, b"payload")})

        with pytest.raises(ChecksumUnavailableError):
            resolve_url_checksum(ARTIFACT_URL, client, download=False)
        assert [str(r.url) for r in client.requests] == [f"{ARTIFACT_URL}.sha256"]

    def test_sha512_skips_sidecar(self, mock_client) -> None:
        client = mock_client(
            {
                f"{ARTIFACT_URL}.sha256": (200, SIDECAR_HASH),
                ARTIFACT_URL: (200, b"payload"),
            }
        )

        assert resolve_url_checksum(ARTIFACT_URL, client, "sha512") == hashlib.sha512(b"payload").hexdigest()
        assert [str(r.url) for r in client.requests] == [ARTIFACT_URL]


class TestBatchChecksums:
    def test_url_map_isolates_failures(self, mock_client, log_messages: list[str]) -> None:
        """1件の失敗が他のアセットの処理を止めないこと."""
        ok_url = "https://example.com/ok.tar.gz"
        bad_url = "https://example.com/bad.tar.gz"
        client = mock_client({f"{ok_url}.sha256": (200, SIDECAR_HASH)})

        result = checksum_url_map({"bad": bad_url, "ok": ok_url}, client)

        assert result == {"ok": SIDECAR_HASH}
        assert any(m.startswith("WARNING:Checksum unavailable for") for m in log_messages)

    def test_urls_keyed_by_filename(self, mock_client) -> None:
        client = mock_client({f"{ARTIFACT_URL}.sha256": (200, SIDECAR_HASH)})

        assert checksum_urls([ARTIFACT_URL], client) == {"myapp.tar.gz": SIDECAR_HASH}

    def test_urls_with_same_filename_last_wins(self, mock_client, log_messages: list[str]) -> None:
        """同じファイル名のURLは後勝ちで、置き換えを警告すること."""
        first = "https://example.com/v1/myapp.tar.gz"
        second = "https://example.com/v2/myapp.tar.gz"
        client = mock_client({f"{second}.sha256": (200, SIDECAR_HASH)})

        assert checksum_urls([first, second], client) == {"myapp.tar.gz": SIDECAR_HASH}
        assert [str(r.url) for r in client.requests] == [f"{second}.sha256"]
        assert any(m.startswith("WARNING:Duplicate filename myapp.tar.gz") for m in log_messages)

    def test_files_skip_sidecars(self, tmp_path: Path) -> None:
        (tmp_path / "a.tar.gz").write_bytes(b"a")
        (tmp_path / "b.zip").write_bytes(b"b")
        (tmp_path / "b.zip.sha256").write_text(SIDECAR_HASH, encoding="utf-8")

        result = checksum_files(f"{tmp_path}/*")

        assert result == {
            "a.tar.gz": hashlib.sha256(b"a").hexdigest(),
            "b.zip": SIDECAR_HASH,
        }

    def test_expand_patterns_with_exclusion(self, tmp_path: Path) -> None:
        (tmp_path / "dist").mkdir()
        (tmp_path / "dist" / "keep.tar.gz").write_bytes(b"k")
        (tmp_path / "dist" / "drop.tar.gz").write_bytes(b"d")

        patterns = f"# comment\n{tmp_path}/**/*.tar.gz\n!{tmp_path}/dist/drop.tar.gz\n"

        assert expand_file_patterns(patterns) == [tmp_path / "dist" / "keep.tar.gz"]

    def test_format_checksum_list(self) -> None:
        assert format_checksum_list({"a.tar.gz": "11", "b.zip": "22"}) == "11  a.tar.gz\n22  b.zip"


class TestHelpers:
    def test_validate_algorithm(self) -> None:
        assert validate_algorithm("SHA512") == "sha512"
        assert validate_algorithm("") == "sha256"
        with pytest.raises(ActionInputError, match="Unsupported algorithm"):
            validate_algorithm("crc32")

    def test_url_filename(self) -> None:
        assert url_filename(f"{ARTIFACT_URL}?raw=1") == "myapp.tar.gz"
