"""
Runtime configuration for the TCP relay.

Defaults are environment-driven so the relay can run in Docker or on the host
without code changes. Forward rules map a local listen port to a target
address; each accepted client is bridged to a fresh connection to its target.
"""

from __future__ import annotations

import json
from typing import List, NamedTuple

from pydantic import computed_field

from tcpbridge.common.config import BridgeSettings
from tcpbridge.errors import ForwardRuleError


class ForwardRule(NamedTuple):
    listen_host: str
    listen_port: int
    target_host: str
    target_port: int

    def __str__(self) -> str:
        return f"{self.listen_host}:{self.listen_port} -> {self.target_host}:{self.target_port}"


def _split_host_port(value: str, *, default_host: str | None = None) -> tuple[str, int]:
    value = value.strip()
    if ":" not in value or value.endswith("]"):
        if default_host is None:
            raise ForwardRuleError(f"Address '{value}' must be host:port")
        host, port_text = default_host, value
    else:
        host, port_text = value.rsplit(":", 1)
    host = host.strip().strip("[]")
    try:
        port = int(port_text)
    except ValueError as exc:
        raise ForwardRuleError(f"Invalid port in '{value}'") from exc
    if not 0 <= port <= 65535:
        raise ForwardRuleError(f"Port out of range in '{value}'")
    if not host:
        raise ForwardRuleError(f"Missing host in '{value}'")
    return host, port


def _rule_from_mapping(item: object, listen_host: str) -> ForwardRule:
    if not isinstance(item, dict):
        raise ForwardRuleError("Each forward rule must be an object")
    target_host = str(item.get("target_host", "")).strip()
    if not target_host:
        raise ForwardRuleError("target_host is required")
    try:
        listen_port = int(item.get("listen_port", -1))
        target_port = int(item.get("target_port", -1))
    except (TypeError, ValueError) as exc:
        raise ForwardRuleError(f"Invalid port in {item}") from exc
    if not 0 <= listen_port <= 65535 or not 0 < target_port <= 65535:
        raise ForwardRuleError(f"Port out of range in {item}")
    host = str(item.get("listen_host") or listen_host).strip()
    return ForwardRule(host, listen_port, target_host, target_port)


def _format_host(host: str) -> str:
    return f"[{host}]" if ":" in host else host


def format_forward_rule(rule: ForwardRule) -> str:
    """Inverse of the comma format accepted by ``parse_forward_rules``."""
    return (
        f"{_format_host(rule.listen_host)}:{rule.listen_port}"
        f"={_format_host(rule.target_host)}:{rule.target_port}"
    )


def parse_forward_rules(value: str, listen_host: str = "0.0.0.0") -> List[ForwardRule]:
    """
    Parse forward rules from either format:

    - comma separated ``[listen_host:]listen_port=target_host:target_port``
    - a JSON list of objects with ``listen_port``, ``target_host``,
      ``target_port`` and optional ``listen_host``
    """
    raw = (value or "").strip()
    if not raw:
        return []

    # "[::1]:9000=..." is a bracketed IPv6 listen host, not JSON.
    if raw.startswith("["):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            if raw.startswith("[{"):
                raise ForwardRuleError(f"Invalid forward rule JSON: {exc}") from exc
            parsed = None
        if isinstance(parsed, list):
            return [_rule_from_mapping(item, listen_host) for item in parsed]

    rules: List[ForwardRule] = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        listen, sep, target = chunk.partition("=")
        if not sep:
            raise ForwardRuleError(f"Forward rule '{chunk}' must be listen=target")
        host, port = _split_host_port(listen, default_host=listen_host)
        target_host, target_port = _split_host_port(target)
        if target_port == 0:
            raise ForwardRuleError(f"Target port must be > 0 in '{chunk}'")
        rules.append(ForwardRule(host, port, target_host, target_port))
    return rules


class RelaySettings(BridgeSettings):
    # Listen settings so containers on the host network can reach us.
    RELAY_LISTEN_HOST: str = "0.0.0.0"
    RELAY_FORWARDS: str = ""
    RELAY_CONNECT_TIMEOUT_SECONDS: float = 10.0
    # 0 disables the Prometheus endpoint.
    RELAY_METRICS_PORT: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def forward_rules(self) -> List[ForwardRule]:
        return parse_forward_rules(self.RELAY_FORWARDS, self.RELAY_LISTEN_HOST)
