"""Shared fixtures for client unit tests."""

from typing import Callable
from unittest.mock import Mock

import pytest

from elliptics_client import EllipticsConfig, StorageClient
from proxy_fakes import ScriptedProxy, make_response


@pytest.fixture
def proxy() -> ScriptedProxy:
    """Proxy that answers the monitoring ping."""
    scripted = ScriptedProxy()
    scripted.on(81, 'ping', make_response(200))
    return scripted


@pytest.fixture
def config() -> EllipticsConfig:
    return EllipticsConfig()


@pytest.fixture
def mock_logger() -> Mock:
    return Mock()


@pytest.fixture
def client(proxy: ScriptedProxy, config: EllipticsConfig, mock_logger: Mock) -> StorageClient:
    return StorageClient(config, logger=mock_logger, session_factory=proxy.session_factory)


@pytest.fixture
def sample_file(tmp_path):
    path = tmp_path / "file.txt"
    path.write_bytes(b"hello world")
    return path


@pytest.fixture
def make_file(tmp_path) -> Callable:
    def _make(name: str, content: bytes):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path
    return _make
