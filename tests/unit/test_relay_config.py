import pytest

from tcpbridge.apps.relay import main as relay_main
from tcpbridge.apps.relay.config import (
    ForwardRule,
    RelaySettings,
    format_forward_rule,
    parse_forward_rules,
)
from tcpbridge.common.config import BridgeSettings
from tcpbridge.errors import ForwardRuleError, RelayError


def test_parse_forward_rules_comma_format() -> None:
    rules = parse_forward_rules("9000=example.com:80, 127.0.0.1:9001=[::1]:5432")

    assert rules == [
        ForwardRule("0.0.0.0", 9000, "example.com", 80),
        ForwardRule("127.0.0.1", 9001, "::1", 5432),
    ]


def test_parse_forward_rules_json_format() -> None:
    rules = parse_forward_rules(
        '[{"listen_port": 9000, "target_host": "db", "target_port": 5432},'
        ' {"listen_host": "127.0.0.1", "listen_port": 9001, "target_host": "cache", "target_port": 6379}]',
        listen_host="10.0.0.1",
    )

    assert rules == [
        ForwardRule("10.0.0.1", 9000, "db", 5432),
        ForwardRule("127.0.0.1", 9001, "cache", 6379),
    ]


def test_parse_forward_rules_empty() -> None:
    assert parse_forward_rules("") == []
    assert parse_forward_rules("  ,  ") == []


@pytest.mark.parametrize(
    "value",
    [
        "9000",
        "9000=example.com",
        "abc=example.com:80",
        "9000=example.com:99999",
        "9000=example.com:0",
        '[{"listen_port": 9000, "target_port": 80}]',
        '{"listen_port": 9000}',
        "[not json",
    ],
)
def test_parse_forward_rules_rejects_invalid(value: str) -> None:
    with pytest.raises(ForwardRuleError):
        parse_forward_rules(value)


def test_format_forward_rule_round_trips_ipv6() -> None:
    rule = ForwardRule("::", 9000, "::1", 22)

    assert format_forward_rule(rule) == "[::]:9000=[::1]:22"
    assert parse_forward_rules(format_forward_rule(rule)) == [rule]


def test_bridge_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BRIDGE_POLL_INTERVAL_SECONDS", raising=False)
    monkeypatch.delenv("BRIDGE_IDLE_LIMIT_SECONDS", raising=False)
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = BridgeSettings(_env_file=None)

    assert settings.BRIDGE_POLL_INTERVAL_SECONDS == 1
    assert settings.BRIDGE_IDLE_LIMIT_SECONDS == 60
    assert settings.LOG_LEVEL == "DEBUG"


def test_relay_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RELAY_LISTEN_HOST", "127.0.0.1")
    monkeypatch.setenv("RELAY_FORWARDS", "9000=example.com:80")
    monkeypatch.setenv("BRIDGE_IDLE_LIMIT_SECONDS", "30")

    settings = RelaySettings(_env_file=None)

    assert settings.BRIDGE_IDLE_LIMIT_SECONDS == 30
    assert settings.forward_rules == [ForwardRule("127.0.0.1", 9000, "example.com", 80)]


def test_load_settings_applies_cli_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RELAY_FORWARDS", '[{"listen_port": 9000, "target_host": "a", "target_port": 1}]')

    settings = relay_main.load_settings(
        ["--forward", "9001=b:2", "--poll-interval", "5", "--idle-limit", "20", "--listen-host", "::"]
    )

    assert settings.BRIDGE_POLL_INTERVAL_SECONDS == 5
    assert settings.BRIDGE_IDLE_LIMIT_SECONDS == 20
    assert settings.forward_rules == [
        ForwardRule("::", 9000, "a", 1),
        ForwardRule("::", 9001, "b", 2),
    ]


def test_create_servers_builds_one_server_per_rule(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RELAY_FORWARDS", "9000=a:1,9001=b:2")
    monkeypatch.setenv("BRIDGE_POLL_INTERVAL_SECONDS", "2")

    servers = relay_main.create_servers(RelaySettings(_env_file=None))

    assert [server.rule.listen_port for server in servers] == [9000, 9001]
    assert all(server.poll_interval_seconds == 2 for server in servers)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.mark.anyio
async def test_run_relays_requires_rules(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RELAY_FORWARDS", raising=False)

    with pytest.raises(RelayError, match="No forward rules"):
        await relay_main.run_relays(RelaySettings(_env_file=None))


def test_parse_forward_rules_accepts_bracketed_ipv6_listen_host() -> None:
    assert parse_forward_rules("[::1]:9000=x:1") == [ForwardRule("::1", 9000, "x", 1)]

    with pytest.raises(ForwardRuleError, match="Invalid forward rule JSON"):
        parse_forward_rules('[{"listen_port": 9000,')


def test_load_settings_with_ipv6_listen_host(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RELAY_FORWARDS", raising=False)

    settings = relay_main.load_settings(["--listen-host", "::", "--forward", "9001=b:2"])

    assert settings.RELAY_FORWARDS == "[::]:9001=b:2"
    assert settings.forward_rules == [ForwardRule("::", 9001, "b", 2)]


def test_relay_settings_read_ipv6_forwards_from_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("RELAY_FORWARDS", "[::1]:9000=x:1")

    assert RelaySettings(_env_file=None).forward_rules == [ForwardRule("::1", 9000, "x", 1)]
