"""
Tests for the command-line entry point.
"""

import json
import os

import pytest

import global_sentinel.__main__ as entry
from global_sentinel.config import load_settings
from global_sentinel.intel.api_collector import ApiCollector
from global_sentinel.intel.feed_collector import FeedCollector
from global_sentinel.intel.forwarder import ForwardingClient
from global_sentinel.intel.html_collector import HtmlCollector
from global_sentinel.intel.social_collector import SocialCollector


@pytest.fixture
def env(tmp_path, monkeypatch):
    for key in list(os.environ):
        if key.startswith("SENTINEL_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("SENTINEL_DB_PATH", str(tmp_path / "sentinel.db"))
    monkeypatch.setenv("SENTINEL_AUDIT_DIR", str(tmp_path / "audit"))
    return ["--env-file", str(tmp_path / "missing.env")]


class TestBuildPipeline:
    def test_registers_all_collectors(self, env, tmp_path):
        pipeline, store = entry.build_pipeline(load_settings(tmp_path / "missing.env"))
        try:
            kinds = [type(c) for c in pipeline.collectors]
            assert kinds == [FeedCollector, ApiCollector, HtmlCollector, SocialCollector]
        finally:
            for c in pipeline.collectors:
                c.close()
            store.close()

    def test_forwarder_only_when_configured(self, env, tmp_path, monkeypatch):
        monkeypatch.setenv("SENTINEL_FORWARD_URL", "https://ingest.example.com")
        pipeline, store = entry.build_pipeline(load_settings(tmp_path / "missing.env"))
        try:
            assert pipeline.forwarder is not None
            assert pipeline.forwarder.endpoint.startswith("https://ingest.example.com")
        finally:
            pipeline.forwarder.close()
            store.close()


class TestMain:
    def test_config_error_exit_code(self, env, monkeypatch, capsys):
        monkeypatch.setenv("SENTINEL_CYCLE_MINUTES", "1")
        assert entry.main(env + ["--once"]) == 2
        assert "Configuration error" in capsys.readouterr().err

    def test_once_prints_report(self, env, monkeypatch, capsys):
        real_build = entry.build_pipeline

        def build_without_collectors(settings):
            pipeline, store = real_build(settings)
            pipeline._collectors.clear()
            return pipeline, store

        monkeypatch.setattr(entry, "build_pipeline", build_without_collectors)
        assert entry.main(env + ["--once"]) == 0
        report = json.loads(capsys.readouterr().out)
        assert report["success"] is True
        assert report["selected"] == 0

    def test_once_closes_forwarder(self, env, monkeypatch, capsys):
        closed = []
        monkeypatch.setenv("SENTINEL_FORWARD_URL", "https://ingest.example.com")
        monkeypatch.setattr(ForwardingClient, "close", lambda self: closed.append(self))
        real_build = entry.build_pipeline

        def build_without_collectors(settings):
            pipeline, store = real_build(settings)
            pipeline._collectors.clear()
            return pipeline, store

        monkeypatch.setattr(entry, "build_pipeline", build_without_collectors)
        assert entry.main(env + ["--once"]) == 0
        assert len(closed) == 1
        assert closed[0].endpoint == "https://ingest.example.com/api/detect/ingest"
