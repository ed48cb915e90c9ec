import pytest

from netScope.config import NetScopeConfig
from netScope.lookup.aggregator import DEFAULT_DOH_ENDPOINT
from netScope.lookup.models import DEFAULT_RECORD_TYPES, RecordType


def test_defaults():
    cfg = NetScopeConfig()
    assert cfg.doh.endpoint == DEFAULT_DOH_ENDPOINT
    assert cfg.doh.record_types == list(DEFAULT_RECORD_TYPES)
    assert cfg.intel.enabled
    assert cfg.intel.abuseipdb_key is None


def test_load_yaml(tmp_path):
    path = tmp_path / "netscope.yaml"
    path.write_text(
        "doh:\n"
        "  endpoint: https://dns.google/resolve\n"
        "  timeout_seconds: 2.5\n"
        "  record_types: [mx, a, A, ptr]\n"
        "intel:\n"
        "  enabled: false\n"
    )
    cfg = NetScopeConfig.load(str(path))
    assert cfg.doh.endpoint == "https://dns.google/resolve"
    assert cfg.doh.timeout_seconds == 2.5
    assert cfg.doh.record_types == [RecordType.MX, RecordType.A, RecordType.PTR]
    assert cfg.intel.enabled is False


def test_record_types_as_comma_string(tmp_path):
    path = tmp_path / "netscope.yaml"
    path.write_text("doh:\n  record_types: 'A, AAAA'\n")
    assert NetScopeConfig.load(str(path)).doh.record_types == [RecordType.A, RecordType.AAAA]


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert NetScopeConfig.load(str(path)) == NetScopeConfig()


@pytest.mark.parametrize(
    "body",
    [
        "doh:\n  record_types: [A, SPF]\n",
        "doh:\n  record_types: []\n",
        "doh:\n  timeout_seconds: 0\n",
        "intel:\n  ip_api_rate_limit: 0\n",
    ],
)
def test_invalid_config(tmp_path, body):
    path = tmp_path / "bad.yaml"
    path.write_text(body)
    with pytest.raises(ValueError, match="Invalid netScope config"):
        NetScopeConfig.load(str(path))


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        NetScopeConfig.load(str(tmp_path / "nope.yaml"))


def test_from_env(tmp_path, monkeypatch):
    path = tmp_path / "netscope.yaml"
    path.write_text("doh:\n  record_types: [A]\n")
    monkeypatch.setenv("NETSCOPE_CONFIG", str(path))
    monkeypatch.setenv("NETSCOPE_DOH_ENDPOINT", "https://doh.example/dns-query")
    monkeypatch.setenv("NETSCOPE_DOH_TIMEOUT", "1.5")
    monkeypatch.setenv("ABUSEIPDB_KEY", "abc123")

    cfg = NetScopeConfig.from_env()

    assert cfg.doh.record_types == [RecordType.A]
    assert cfg.doh.endpoint == "https://doh.example/dns-query"
    assert cfg.doh.timeout_seconds == 1.5
    assert cfg.intel.abuseipdb_key == "abc123"


def test_from_env_rejects_bad_timeout(monkeypatch):
    monkeypatch.delenv("NETSCOPE_CONFIG", raising=False)
    monkeypatch.setenv("NETSCOPE_DOH_TIMEOUT", "soon")
    with pytest.raises(ValueError):
        NetScopeConfig.from_env()
