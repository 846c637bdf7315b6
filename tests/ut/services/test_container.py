"""ServiceContainer 单元测试"""

from __future__ import annotations

from pathlib import Path

import pytest

import pipelogs.core.config as cfgmod
from pipelogs.core.exceptions import ConfigError
from pipelogs.services.client import AzureDevOpsClient
from pipelogs.services.container import (
    ServiceContainer,
    get_container,
    reset_container,
    set_container,
)


@pytest.fixture(autouse=True)
def _setup_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """确保测试有独立的配置和缓存目录"""
    cfg = cfgmod.Config(cache_dir=str(tmp_path / "cache"), default_project="demo")
    monkeypatch.setattr(cfgmod, "_current", cfg)
    reset_container()
    yield
    reset_container()


class TestServiceContainer:
    def test_lazy_loading(self, fake_source) -> None:
        c = ServiceContainer(source=fake_source)
        assert "logs" not in c._instances
        _ = c.logs
        assert "logs" in c._instances
        assert "cache" in c._instances

    def test_shared_instances(self, fake_source) -> None:
        c = ServiceContainer(source=fake_source)
        assert c.logs is c.logs
        assert c.logs.cache is c.cache
        assert c.cache.downloader is c.fetcher
        assert c.fetcher.source is fake_source

    def test_uses_global_config(self) -> None:
        c = ServiceContainer()
        assert c.config is cfgmod.get_config()

    def test_source_requires_organization_url(self) -> None:
        with pytest.raises(ConfigError):
            _ = ServiceContainer().source

    def test_builds_client_from_config(self) -> None:
        cfg = cfgmod.Config(organization_url="https://dev.azure.com/acme", token="t")
        source = ServiceContainer(config=cfg).source
        assert isinstance(source, AzureDevOpsClient)
        assert source.token == "t"

    def test_cache_uses_config(self, fake_source, tmp_path: Path) -> None:
        cfg = cfgmod.Config(cache_dir=str(tmp_path / "c"), cache_ttl_seconds=60)
        cache = ServiceContainer(config=cfg, source=fake_source).cache
        assert cache.ttl_seconds == 60
        assert cache.base_dir == tmp_path / "c"

    def test_close_clears_cache(self, fake_source) -> None:
        c = ServiceContainer(source=fake_source)
        c.logs.get_or_download(83, 12345)
        assert len(c.cache) == 1
        c.close()
        assert len(c.cache) == 0


class TestGlobalContainer:
    def test_singleton(self) -> None:
        assert get_container() is get_container()

    def test_set_and_reset(self, fake_source) -> None:
        c = ServiceContainer(source=fake_source)
        set_container(c)
        assert get_container() is c
        reset_container()
        assert get_container() is not c
