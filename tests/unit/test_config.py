"""
Unit tests for server configuration.
"""

import socket

import pytest

from echoserver.config import ServerConfig


class TestDefaults:
    """Tests for the default configuration."""

    def test_listens_on_all_interfaces_port_8080(self):
        config = ServerConfig()

        assert config.host == "0.0.0.0"
        assert config.port == 8080

    def test_backlog_is_platform_maximum(self):
        assert ServerConfig().backlog == socket.SOMAXCONN

    def test_buffer_size_is_4k(self):
        assert ServerConfig().buffer_size == 4096

    def test_defaults_are_valid(self):
        ServerConfig().validate()


class TestValidate:
    """Tests for fail-fast validation."""

    @pytest.mark.parametrize("port", [-1, 65536, 100000])
    def test_rejects_out_of_range_port(self, port):
        with pytest.raises(ValueError, match="Invalid port"):
            ServerConfig(port=port).validate()

    @pytest.mark.parametrize("port", [0, 1, 8080, 65535])
    def test_accepts_port_range(self, port):
        ServerConfig(port=port).validate()

    def test_rejects_empty_buffer(self):
        with pytest.raises(ValueError, match="buffer_size"):
            ServerConfig(buffer_size=0).validate()

    def test_rejects_negative_backlog(self):
        with pytest.raises(ValueError, match="backlog"):
            ServerConfig(backlog=-1).validate()

    def test_rejects_non_positive_accept_timeout(self):
        with pytest.raises(ValueError, match="accept_timeout"):
            ServerConfig(accept_timeout=0).validate()

    def test_rejects_unknown_log_level(self):
        with pytest.raises(ValueError, match="log level"):
            ServerConfig(log_level="LOUD").validate()

    def test_log_level_is_case_insensitive(self):
        ServerConfig(log_level="debug").validate()


class TestFromEnv:
    """Tests for environment variable configuration."""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("ECHO_HOST", "127.0.0.1")
        monkeypatch.setenv("ECHO_PORT", "9000")
        monkeypatch.setenv("ECHO_BUFFER_SIZE", "1024")
        monkeypatch.setenv("ECHO_LOG_LEVEL", "DEBUG")

        config = ServerConfig.from_env()

        assert config.host == "127.0.0.1"
        assert config.port == 9000
        assert config.buffer_size == 1024
        assert config.log_level == "DEBUG"

    def test_falls_back_to_defaults(self, monkeypatch):
        for name in ("ECHO_HOST", "ECHO_PORT", "ECHO_BUFFER_SIZE", "ECHO_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        assert ServerConfig.from_env() == ServerConfig()

    def test_non_numeric_port_raises(self, monkeypatch):
        monkeypatch.setenv("ECHO_PORT", "eighty")

        with pytest.raises(ValueError):
            ServerConfig.from_env()
