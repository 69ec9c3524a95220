#!/usr/bin/env python3
"""
Probe configuration

Builds the immutable run configuration from defaults, an optional TOML file
and command line overrides, and validates it before any socket is opened.

Example config file:

    [probe]
    remote = "10.0.0.2:9000"
    rate = 100
    size = 512
    output = "/var/log/udp-probe/probe.log"
    network_namespace = "probe"
    loss_timeout = 0.5

    [logging]
    level = "DEBUG"
"""

import socket
import logging
from pathlib import Path
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import toml

from .namespace import namespace_exists, namespace_path
from .tracker import DEFAULT_LOSS_TIMEOUT, DEFAULT_MAX_LOSS_SPAN
from .wire import HEADER_SIZE

logger = logging.getLogger(__name__)

MAX_UDP_PAYLOAD = 65507

DEFAULTS = {
    'rate': 10,
    'size': 100,
    'output': '/root/network-test.log',
    'network_namespace': None,
    'loss_timeout': DEFAULT_LOSS_TIMEOUT,
    'max_loss_span': DEFAULT_MAX_LOSS_SPAN,
    'summary_interval': 1000,
}


class ConfigError(ValueError):
    """Invalid run configuration"""


@dataclass(frozen=True)
class Config:
    """
    Run configuration shared read-only by every thread.

    Attributes:
        packet_rate: Datagrams per one-second batch
        packet_size: Bytes per datagram, header included
        remote: Generator destination and listener bind address
        output_path: Recorder log file
        network_namespace: Namespace the listener binds in, if any
        loss_timeout: Seconds before a missing sequence is reported lost
        max_loss_span: Largest sequence gap accepted as real loss
        summary_interval: Observations between statistics log lines
    """
    packet_rate: int
    packet_size: int
    remote: Tuple[str, int]
    output_path: Path
    network_namespace: Optional[str] = None
    loss_timeout: float = DEFAULT_LOSS_TIMEOUT
    max_loss_span: int = DEFAULT_MAX_LOSS_SPAN
    summary_interval: int = 1000


def address_family(host: str) -> int:
    return socket.AF_INET6 if ':' in host else socket.AF_INET


def parse_address(value: str) -> Tuple[str, int]:
    """
    Parse "host:port" or "[v6addr]:port".

    Raises:
        ConfigError: if the value is not an address with a valid port
    """
    value = value.strip()
    if value.startswith('['):
        host, sep, port = value[1:].partition(']:')
    else:
        host, sep, port = value.rpartition(':')
    if not sep or not host:
        raise ConfigError(f"Remote address must be HOST:PORT, got {value!r}")
    try:
        port_num = int(port)
    except ValueError:
        raise ConfigError(f"Invalid port in remote address {value!r}") from None
    if not 0 < port_num < 65536:
        raise ConfigError(f"Port out of range in remote address {value!r}")
    return host, port_num


def load_config_file(config_file) -> Dict[str, Any]:
    """
    Read a TOML config file.

    Raises:
        ConfigError: if the file is missing or not valid TOML
    """
    path = Path(config_file)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")
    try:
        with open(path, 'r') as f:
            return toml.load(f)
    except toml.TomlDecodeError as e:
        raise ConfigError(f"Error parsing {path}: {e}") from e


def _convert(values: Dict[str, Any], key: str, kind: type):
    try:
        return kind(values[key])
    except (TypeError, ValueError):
        raise ConfigError(
            f"Invalid value for {key}: {values[key]!r} (expected {kind.__name__})"
        ) from None


def load_config(config_file=None, **overrides) -> Config:
    """
    Build and validate the run configuration.

    Args:
        config_file: Optional TOML file with a [probe] table
        **overrides: Values from the command line; None means "not given".
            Keys: remote, rate, size, output, network_namespace,
            loss_timeout, max_loss_span, summary_interval

    Returns:
        Validated Config

    Raises:
        ConfigError: with an operator-facing message
    """
    values = dict(DEFAULTS)
    if config_file:
        file_values = load_config_file(config_file).get('probe', {})
        unknown = set(file_values) - set(DEFAULTS) - {'remote'}
        if unknown:
            logger.warning(f"Ignoring unknown [probe] keys: {sorted(unknown)}")
        values.update({k: v for k, v in file_values.items() if k not in unknown})
    values.update({k: v for k, v in overrides.items() if v is not None})

    if not values.get('remote'):
        raise ConfigError("A remote address is required (--remote HOST:PORT)")
    remote = values['remote']
    if isinstance(remote, str):
        remote = parse_address(remote)

    config = Config(
        packet_rate=_convert(values, 'rate', int),
        packet_size=_convert(values, 'size', int),
        remote=tuple(remote),
        output_path=Path(values['output']).expanduser(),
        network_namespace=values['network_namespace'] or None,
        loss_timeout=_convert(values, 'loss_timeout', float),
        max_loss_span=_convert(values, 'max_loss_span', int),
        summary_interval=_convert(values, 'summary_interval', int),
    )
    validate(config)
    return config


def validate(config: Config):
    """Reject configurations the probe cannot run with"""
    if config.packet_rate <= 0:
        raise ConfigError(f"Packet rate must be positive, got {config.packet_rate}")

    if config.packet_size < HEADER_SIZE:
        raise ConfigError(f"Packet should be at least {HEADER_SIZE} bytes in size")
    if config.packet_size > MAX_UDP_PAYLOAD:
        raise ConfigError(f"Packet size cannot exceed {MAX_UDP_PAYLOAD} bytes")

    parent = config.output_path.parent
    if not parent.is_dir():
        raise ConfigError(
            f"The directory of your output file doesn't exist ({parent}), please create it"
        )

    if config.network_namespace and not namespace_exists(config.network_namespace):
        raise ConfigError(
            f"The network namespace {config.network_namespace} doesn't exist "
            f"({namespace_path(config.network_namespace)}). "
            f"Create it with: ip netns add {config.network_namespace}"
        )

    if config.loss_timeout <= 0:
        raise ConfigError(f"Loss timeout must be positive, got {config.loss_timeout}")
    if config.max_loss_span < 1:
        raise ConfigError(f"Loss span ceiling must be at least 1, got {config.max_loss_span}")
    if config.summary_interval < 0:
        raise ConfigError("Summary interval cannot be negative")
