from __future__ import annotations

import pathlib
import sys
from collections.abc import Callable, Iterator

import httpx
import pytest

REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from kintone_mcp.access.policy import AccessPolicy, AllowDenyPolicy  # noqa: E402
from kintone_mcp.backend.client import KintoneClient  # noqa: E402
from kintone_mcp.config import GatewayConfig  # noqa: E402
from kintone_mcp.service.gateway_service import GatewayService, build_service  # noqa: E402
from kintone_mcp.stdio import JsonRpcStdioServer  # noqa: E402
from kintone_mcp.tools import ToolContext  # noqa: E402
from tests.helpers.fake_kintone import BASE_URL, FakeKintone  # noqa: E402


@pytest.fixture
def fake_kintone() -> FakeKintone:
    return FakeKintone()


@pytest.fixture
def kintone_client(fake_kintone: FakeKintone) -> Iterator[KintoneClient]:
    client = KintoneClient(
        BASE_URL, token="secret-token", transport=httpx.MockTransport(fake_kintone)
    )
    yield client
    client.close()


@pytest.fixture
def make_context(
    kintone_client: KintoneClient, tmp_path: pathlib.Path
) -> Callable[..., ToolContext]:
    def factory(policy: AccessPolicy | None = None) -> ToolContext:
        return ToolContext(
            client=kintone_client,
            policy=policy if policy is not None else AllowDenyPolicy(),
            download_dir=tmp_path / "downloads",
        )

    return factory


@pytest.fixture
def gateway_config(tmp_path: pathlib.Path) -> GatewayConfig:
    return GatewayConfig.model_validate(
        {
            "url": BASE_URL,
            "token": "secret-token",
            "apps": [
                {
                    "id": "1",
                    "description": "Customer list",
                    "permissions": {"read": True, "write": True, "delete": True},
                },
                {"id": "2"},
            ],
            "downloadDir": str(tmp_path / "downloads"),
        }
    )


@pytest.fixture
def service(gateway_config: GatewayConfig, fake_kintone: FakeKintone) -> Iterator[GatewayService]:
    gateway = build_service(gateway_config, transport=httpx.MockTransport(fake_kintone))
    yield gateway
    gateway.close()


@pytest.fixture
def stdio_server(service: GatewayService) -> JsonRpcStdioServer:
    return JsonRpcStdioServer(service)
