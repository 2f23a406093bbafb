"""共通フィクスチャ."""

from collections.abc import Callable, Iterator

import httpx
import pytest
from loguru import logger


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """loguru の出力を "LEVEL:message" 形式で収集する."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.rstrip("\n")), format="{level}:{message}", level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture(autouse=True)
def _no_github_output(monkeypatch: pytest.MonkeyPatch) -> None:
    """テスト中は実行環境の $GITHUB_OUTPUT に書き込まない."""
    monkeypatch.delenv("GITHUB_OUTPUT", raising=False)


@pytest.fixture
def mock_client() -> Callable[..., httpx.Client]:
    """URL → (status, body) のルートから httpx.Client を作る. 受けたリクエストは client.requests に記録."""

    def factory(routes: dict[str, tuple[int, bytes | str]]) -> httpx.Client:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            status, body = routes.get(str(request.url), (404, b"Not Found"))
            content = body.encode("utf-8") if isinstance(body, str) else body
            return httpx.Response(status, content=content)

        client = httpx.Client(transport=httpx.MockTransport(handler), follow_redirects=True)
        client.requests = requests  # type: ignore[attr-defined]
        return client

    return factory
