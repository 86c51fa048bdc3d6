"""
Tests for configuration loading, overrides and validation
"""

import json

import pytest
import yaml

from blogcrawler.core.base import ConfigurationError
from blogcrawler.core.config import ConfigManager, CrawlerSettings, clamp_page_size


class TestConfigManager:
    """Test suite for ConfigManager"""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("CRAWLER_CONCURRENCY", "CRAWLER_BLOG", "CRAWLER_PROXY", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

    def test_defaults_without_file(self, tmp_path):
        settings = ConfigManager(str(tmp_path / "missing.yaml")).load_config()

        assert settings.scan.concurrency == 4
        assert settings.media.image_size == "1280"
        assert settings.media.hosts == ["media.tumblr.com", "data.tumblr.com"]
        assert settings.blog.source == "api"

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({
            'scan': {'concurrency': 8, 'page_size': 500},
            'media': {'image_size': 500},
            'blog': {'name': 'example', 'tags': 'art, sketch'},
        }))

        settings = ConfigManager(str(path)).load_config()

        assert settings.scan.concurrency == 8
        assert settings.scan.page_size == 100
        assert settings.media.image_size == "500"
        assert settings.blog.tag_list == ["art", "sketch"]
        assert settings.blog.blog_url == "https://example.tumblr.com/"

    def test_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({'blog': {'url': 'https://example.org/blog'}}))

        settings = ConfigManager(str(path)).load_config()

        assert settings.blog.blog_url == "https://example.org/blog/"

    def test_unknown_key_is_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({'scan': {'workers': 3}}))

        with pytest.raises(ConfigurationError):
            ConfigManager(str(path)).load_config()

    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CRAWLER_CONCURRENCY", "6")
        monkeypatch.setenv("CRAWLER_BLOG", "fromenv")
        monkeypatch.setenv("CRAWLER_PROXY", "proxy.local:3128")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        settings = ConfigManager(str(tmp_path / "none.yaml")).load_config()

        assert settings.scan.concurrency == 6
        assert settings.blog.name == "fromenv"
        assert settings.connection.proxy_url == "http://proxy.local:3128"
        assert settings.logging.level == "DEBUG"

    def test_bad_concurrency_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CRAWLER_CONCURRENCY", "many")
        with pytest.raises(ConfigurationError):
            ConfigManager(str(tmp_path / "none.yaml")).load_config()

    def test_write_default_config_roundtrips(self, tmp_path):
        manager = ConfigManager(str(tmp_path / "out.yaml"))
        manager.write_default_config()
        assert manager.load_config() == CrawlerSettings()


class TestValidation:
    """Test suite for ConfigManager.validate_config"""

    @pytest.fixture
    def settings(self):
        settings = CrawlerSettings()
        settings.blog.name = "example"
        return settings

    def test_valid(self, settings):
        assert ConfigManager().validate_config(settings)

    @pytest.mark.parametrize("mutate", [
        lambda s: setattr(s.scan, 'concurrency', 0),
        lambda s: setattr(s.scan, 'rate_limit_retries', -1),
        lambda s: setattr(s.media, 'image_size', '333'),
        lambda s: setattr(s.media, 'video_size', 720),
        lambda s: setattr(s.blog, 'source', 'rss'),
        lambda s: setattr(s.blog, 'name', ''),
        lambda s: setattr(s.blog, 'url', 'not a url'),
        lambda s: setattr(s.blog, 'download_pages', '1-x'),
    ])
    def test_invalid(self, settings, mutate):
        mutate(settings)
        with pytest.raises(ConfigurationError):
            ConfigManager().validate_config(settings)

    def test_not_loaded(self):
        with pytest.raises(ConfigurationError):
            ConfigManager().validate_config()


@pytest.mark.parametrize("size,expected", [(0, 100), (50, 50), (100, 100), (101, 100)])
def test_clamp_page_size(size, expected):
    assert clamp_page_size(size) == expected
