"""Tests for flag and environment configuration."""

import pytest

from unifi_network_exporter.config import ExporterConfig, load_config, parse_bool
from unifi_network_exporter.exceptions import UnifiConfigError

BASE_ENV = {
    "UNIFI_CONTROLLER_URL": "https://192.168.1.1:8443",
    "UNIFI_USERNAME": "admin",
    "UNIFI_PASSWORD": "secret",
}


def config_with(**overrides):
    values = {"controller_url": "https://unifi.test", "api_key": "key"}
    values.update(overrides)
    return ExporterConfig(**values)


class TestLoadConfig:
    def test_defaults(self):
        config = load_config([], BASE_ENV)

        assert config.site == "default"
        assert config.port == 9897
        assert config.poll_interval == 30
        assert config.http_timeout == 10
        assert config.verify_ssl is True
        assert config.unifi_os is False
        assert config.listen_address == "0.0.0.0"
        assert config.log_level == "info"
        assert not config.uses_api_key

    def test_environment(self):
        env = dict(
            BASE_ENV,
            UNIFI_SITE="branch",
            METRICS_PORT="9100",
            POLL_INTERVAL="15",
            HTTP_TIMEOUT="2.5",
            VERIFY_SSL="false",
            UNIFI_OS="true",
            LOG_LEVEL="debug",
        )
        config = load_config([], env)

        assert config.site == "branch"
        assert config.port == 9100
        assert config.poll_interval == 15
        assert config.http_timeout == 2.5
        assert config.verify_ssl is False
        assert config.unifi_os is True
        assert config.log_level == "debug"

    def test_flags_override_environment(self):
        config = load_config(
            ["--site", "lab", "-p", "9200", "--no-verify-ssl", "--unifi-os", "--poll-interval", "5"],
            BASE_ENV,
        )

        assert config.site == "lab"
        assert config.port == 9200
        assert config.verify_ssl is False
        assert config.unifi_os is True
        assert config.poll_interval == 5

    def test_verify_ssl_flag_value(self):
        config = load_config(["--verify-ssl", "no"], dict(BASE_ENV, VERIFY_SSL="true"))
        assert config.verify_ssl is False

    def test_api_key_mode(self):
        config = load_config([], {"UNIFI_CONTROLLER_URL": "https://unifi.test", "UNIFI_API_KEY": "k"})

        assert config.uses_api_key
        assert config.username is None

    def test_endpoint_strips_trailing_slash(self):
        config = load_config(["--controller-url", "https://unifi.test:8443/"], BASE_ENV)

        endpoint = config.endpoint
        assert endpoint.base_url == "https://unifi.test:8443"
        assert endpoint.url("/api/login") == "https://unifi.test:8443/api/login"
        assert endpoint.timeout == 10

    def test_bad_number_in_environment(self):
        with pytest.raises(UnifiConfigError, match="METRICS_PORT"):
            load_config([], dict(BASE_ENV, METRICS_PORT="abc"))

    def test_bad_boolean_in_environment(self):
        with pytest.raises(UnifiConfigError, match="VERIFY_SSL"):
            load_config([], dict(BASE_ENV, VERIFY_SSL="perhaps"))


class TestValidate:
    def test_valid(self):
        config_with().validate()

    def test_requires_credentials(self):
        with pytest.raises(UnifiConfigError, match="Either UNIFI_API_KEY"):
            config_with(api_key=None, username="admin").validate()

    @pytest.mark.parametrize(
        "url,message",
        [
            ("", "cannot be empty"),
            ("unifi.test", "must start with http:// or https://"),
            ("https://", "must include a host"),
            ("https://unifi.test:notaport", "not a valid URL"),
        ],
    )
    def test_controller_url(self, url, message):
        with pytest.raises(UnifiConfigError, match=message):
            config_with(controller_url=url).validate()

    def test_empty_site(self):
        with pytest.raises(UnifiConfigError, match="UNIFI_SITE"):
            config_with(site="").validate()

    @pytest.mark.parametrize("interval", [0, -1])
    def test_poll_interval(self, interval):
        with pytest.raises(UnifiConfigError, match="POLL_INTERVAL"):
            config_with(poll_interval=interval).validate()

    def test_http_timeout(self):
        with pytest.raises(UnifiConfigError, match="HTTP_TIMEOUT"):
            config_with(http_timeout=0).validate()

    @pytest.mark.parametrize("port", [0, 65536])
    def test_port_range(self, port):
        with pytest.raises(UnifiConfigError, match="METRICS_PORT"):
            config_with(port=port).validate()

    def test_log_level(self):
        config_with(log_level="WARN").validate()
        with pytest.raises(UnifiConfigError, match="LOG_LEVEL"):
            config_with(log_level="verbose").validate()


@pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("On", True), ("false", False), ("0", False)])
def test_parse_bool(raw, expected):
    assert parse_bool(raw) is expected
