"""テンプレート描画.

ヘルパー関数はプロセス全体のレジストリに登録せず、描画呼び出しごとに新しい
Environment へ明示的に渡す。
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from pathlib import Path

import jinja2
from loguru import logger

from .core.exceptions import ActionInputError


def capitalize(value: object) -> str:
    """先頭1文字のみ大文字にする（残りはそのまま）."""
    text = str(value)
    return text[:1].upper() + text[1:]


def formula_class(value: object) -> str:
    """フォーミュラ名を Homebrew のクラス名に変換する（例: "my-app" → "MyApp"）."""
    text = str(value)
    text = text[:1].upper() + text[1:].lower()
    text = re.sub(r"[-_.\s]([a-zA-Z0-9])", lambda m: m.group(1).upper(), text)
    text = text.replace("+", "x")
    return re.sub(r"(.)@(\d)", r"\1AT\2", text)


def format_bytes(value: object) -> str:
    size = float(value)
    if size < 1024:
        return f"{int(size)} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def shorten(value: object, length: int) -> str:
    return str(value)[:length]


def has_items(value: object) -> bool:
    return isinstance(value, (list, tuple)) and len(value) > 0


TEMPLATE_FILTERS: dict[str, Callable[..., object]] = {
    "capitalize": capitalize,
    "formula_class": formula_class,
    "format_bytes": format_bytes,
    "shorten": shorten,
}

TEMPLATE_TESTS: dict[str, Callable[..., bool]] = {
    "has_items": has_items,
}


def _finalize(value: object) -> object:
    # 欠損値（None）は空文字として出力
    return "" if value is None else value


def create_environment(
    filters: Mapping[str, Callable[..., object]] | None = None,
    tests: Mapping[str, Callable[..., bool]] | None = None,
) -> jinja2.Environment:
    env = jinja2.Environment(
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=jinja2.ChainableUndefined,
        finalize=_finalize,
    )
    env.filters.update(TEMPLATE_FILTERS if filters is None else filters)
    env.tests.update(TEMPLATE_TESTS if tests is None else tests)
    return env


def render_template(
    source: str,
    context: Mapping[str, object],
    filters: Mapping[str, Callable[..., object]] | None = None,
    tests: Mapping[str, Callable[..., bool]] | None = None,
    input_name: str = "template",
) -> str:
    """テンプレート文字列をコンテキストで描画する.

    Args:
        source: Jinja2 テンプレート
        context: 描画コンテキスト
        filters: 使用するフィルタ（None なら TEMPLATE_FILTERS）
        tests: 使用するテスト（None なら TEMPLATE_TESTS）
        input_name: エラー時に報告する入力名

    Returns:
        描画結果

    Raises:
        ActionInputError: 構文エラー、またはヘルパーに不正な値が渡された場合
    """
    env = create_environment(filters, tests)
    try:
        return env.from_string(source).render(dict(context))
    except jinja2.TemplateError as e:
        raise ActionInputError(f"Invalid {input_name}: {e}", input_name=input_name) from e
    except (TypeError, ValueError) as e:
        raise ActionInputError(f"Failed to render {input_name}: {e}", input_name=input_name) from e


def load_template(template_path: Path | str | None, template_inline: str = "", default: str = "") -> str:
    """テンプレートを ファイル → インライン → 既定 の順で選ぶ.

    Raises:
        OSError: テンプレートファイルが読めない場合
        ActionInputError: テンプレートファイルが UTF-8 でない場合
    """
    if template_path:
        try:
            source = Path(template_path).read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ActionInputError(f"Invalid template {template_path}: {e}", input_name="template") from e
        logger.info(f"Using template from {template_path}")
        return source
    if template_inline:
        logger.info("Using inline template")
        return template_inline
    logger.info("Using default template")
    return default


# プライベートリポジトリ時は GitHubPrivateRepositoryReleaseDownloadStrategy を使う
DEFAULT_FORMULA_TEMPLATE = """\
{% set using = ", using: GitHubPrivateRepositoryReleaseDownloadStrategy" if privateRepo else "" %}
class {{ name | formula_class }} < Formula
  desc "{{ description }}"
  homepage "{{ homepage }}"
  version "{{ version }}"
  license "{{ license }}"
{% if privateRepo %}

  # Private repository - requires HOMEBREW_GITHUB_API_TOKEN environment variable
  # Set it with: export HOMEBREW_GITHUB_API_TOKEN="your_github_token"
{% endif %}
{% if darwinArm64 %}

  on_macos do
    if Hardware::CPU.arm?
      url "{{ darwinArm64.url }}"{{ using }}
      sha256 "{{ darwinArm64.sha256 }}"
{% if darwinX64 %}
    else
      url "{{ darwinX64.url }}"{{ using }}
      sha256 "{{ darwinX64.sha256 }}"
{% endif %}
    end
  end
{% endif %}
{% if linuxX64 %}

  on_linux do
{% if linuxArm64 %}
    if Hardware::CPU.arm?
      url "{{ linuxArm64.url }}"{{ using }}
      sha256 "{{ linuxArm64.sha256 }}"
    else
      url "{{ linuxX64.url }}"{{ using }}
      sha256 "{{ linuxX64.sha256 }}"
    end
{% else %}
    url "{{ linuxX64.url }}"{{ using }}
    sha256 "{{ linuxX64.sha256 }}"
{% endif %}
  end
{% endif %}

  def install
    bin.install "{{ binaryName }}"
  end

  test do
    assert_match version.to_s, shell_output("#{bin}/{{ binaryName }} --version", 2)
  end
end
"""


DEFAULT_RELEASE_NOTES_TEMPLATE = """\
{% if isNightly %}
> **Nightly Build** - This is an automated build from the latest code and may be unstable.
> For production use, please use a [stable release]({{ repositoryUrl }}/releases/latest).

{% elif isPrerelease %}
> **Pre-release** - This version is not yet considered stable.

{% endif %}
{% if projectDescription %}
{{ projectDescription }}

{% endif %}
## Installation

{% for install in installCommands %}
<details>
<summary><strong>{{ install.os }}</strong></summary>

{% for method in install.methods %}
**{{ method.name }}**
```bash
{{ method.command }}
```
{% if method.note %}
<sub>{{ method.note }}</sub>
{% endif %}

{% endfor %}
</details>

{% endfor %}

## Downloads

{% if binaries is has_items %}
### Binaries

| Platform | Architecture | Download | Size | SHA256 |
|----------|--------------|----------|------|--------|
{% for asset in binaries %}
| {{ asset.platform.os }} | {{ asset.platform.archFull }} | [`{{ asset.filename }}`]({{ repositoryUrl }}/releases/download/{{ version }}/{{ asset.filename }}) | {{ asset.size | format_bytes if asset.size else "-" }} | {{ "`" ~ asset.sha256 | shorten(12) ~ "...`" if asset.sha256 else "-" }} |
{% endfor %}

{% endif %}
{% if debPackages is has_items %}
### DEB Packages (Debian, Ubuntu)

| Architecture | Download | Size | SHA256 |
|--------------|----------|------|--------|
{% for asset in debPackages %}
| {{ asset.platform.archFull }} | [`{{ asset.filename }}`]({{ repositoryUrl }}/releases/download/{{ version }}/{{ asset.filename }}) | {{ asset.size | format_bytes if asset.size else "-" }} | {{ "`" ~ asset.sha256 | shorten(12) ~ "...`" if asset.sha256 else "-" }} |
{% endfor %}

{% endif %}
{% if rpmPackages is has_items %}
### RPM Packages (RHEL, Fedora, CentOS)

| Architecture | Download | Size | SHA256 |
|--------------|----------|------|--------|
{% for asset in rpmPackages %}
| {{ asset.platform.archFull }} | [`{{ asset.filename }}`]({{ repositoryUrl }}/releases/download/{{ version }}/{{ asset.filename }}) | {{ asset.size | format_bytes if asset.size else "-" }} | {{ "`" ~ asset.sha256 | shorten(12) ~ "...`" if asset.sha256 else "-" }} |
{% endfor %}

{% endif %}
## Checksums

All downloads include SHA256 checksum files (`.sha256`) for verification:

```bash
# Verify after download
shasum -a 256 -c {{ projectName }}-<platform>.tar.gz.sha256
```

{% if hasFailures %}
---

> **Note:** Some builds failed. See [workflow run]({{ workflowRunUrl }}) for details.
{% endif %}
"""
