"""Configuration loading module.

This module handles:
- Parsing command-line flags
- Falling back to OCTOPUS_* environment variables
- Validating the required flag combinations before the server starts
"""

import argparse
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

# Configure module logger
logger = logging.getLogger(__name__)

ENV_PREFIX = "OCTOPUS_"

DEFAULT_LISTEN_ADDRESS = ":8080"
DEFAULT_SCRAPE_PERIOD = 60.0
DEFAULT_TIMEOUT = 5.0
DEFAULT_API_URL = "https://api.octopus.energy/v1"

ELECTRICITY = "electricity"
GAS = "gas"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("", "0", "false", "no", "off")


class ConfigError(Exception):
    """Exception raised when the exporter configuration is invalid.

    Attributes:
        problems: Every validation failure found, in flag order
    """

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("; ".join(problems))


@dataclass(frozen=True)
class MeterPoint:
    """A configured meter to fetch consumption for.

    Attributes:
        point_type: "electricity" or "gas"
        identifier: MPAN (electricity) or MPRN (gas)
        meter: Meter serial number
    """
    point_type: str
    identifier: str
    meter: str


@dataclass(frozen=True)
class Settings:
    """Immutable exporter settings."""
    api_key: str
    listen_host: str = ""
    listen_port: int = 8080
    mpan: str = ""
    electricity_meter: str = ""
    mprn: str = ""
    gas_meter: str = ""
    scrape_period: float = DEFAULT_SCRAPE_PERIOD
    timeout: float = DEFAULT_TIMEOUT
    api_url: str = DEFAULT_API_URL
    debug: bool = False
    listen_address: str = field(default=DEFAULT_LISTEN_ADDRESS, compare=False)

    def meters(self) -> List[MeterPoint]:
        """Return the configured meters, electricity first."""
        points = []
        if self.mpan:
            points.append(MeterPoint(ELECTRICITY, self.mpan, self.electricity_meter))
        if self.mprn:
            points.append(MeterPoint(GAS, self.mprn, self.gas_meter))
        return points

    def redacted(self) -> Dict[str, object]:
        """Settings as a dict suitable for logging, with the API key masked."""
        return {
            "listen_address": self.listen_address,
            "api_key": _mask(self.api_key),
            "mpan": self.mpan,
            "electricity_meter": self.electricity_meter,
            "mprn": self.mprn,
            "gas_meter": self.gas_meter,
            "scrape_period": self.scrape_period,
            "timeout": self.timeout,
            "api_url": self.api_url,
            "debug": self.debug,
        }


def _mask(secret: str) -> str:
    if not secret:
        return ""
    if len(secret) <= 4:
        return "****"
    return f"{secret[:4]}****"


def parse_listen_address(address: str) -> Tuple[str, int]:
    """Split a listen address into host and port.

    Args:
        address: Address in "host:port" form. The host may be empty
            (":8080") to listen on all interfaces, and IPv6 hosts may be
            bracketed ("[::1]:8080").

    Returns:
        Tuple of (host, port), with host "" meaning all interfaces

    Raises:
        ValueError: If the port is missing or not a valid TCP port

    Example:
        >>> parse_listen_address(":8080")
        ('', 8080)
        >>> parse_listen_address("127.0.0.1:9100")
        ('127.0.0.1', 9100)
    """
    host, sep, port_str = address.rpartition(":")
    if not sep:
        raise ValueError(f"listen address {address!r} must be in host:port form")

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]

    try:
        port = int(port_str)
    except ValueError:
        raise ValueError(f"invalid port in listen address {address!r}")

    if not (0 < port < 65536):
        raise ValueError(f"port out of range in listen address {address!r}")

    return host, port


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"invalid boolean value: {value!r}")


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser.

    Every option defaults to None so that unset flags fall back to the
    matching OCTOPUS_* environment variable.
    """
    parser = argparse.ArgumentParser(
        prog="octopus-exporter",
        description="Export Octopus Energy consumption as Prometheus metrics",
    )
    parser.add_argument("--listen-address", default=None,
                        help=f"The address to listen on for HTTP requests (default {DEFAULT_LISTEN_ADDRESS})")
    parser.add_argument("--api-key", default=None, help="The API key")
    parser.add_argument("--mpan", default=None, help="The MPAN")
    parser.add_argument("--electricity-meter", default=None, help="The electricity meter serial number")
    parser.add_argument("--mprn", default=None, help="The MPRN")
    parser.add_argument("--gas-meter", default=None, help="The gas meter serial number")
    parser.add_argument("--scrape-period", default=None,
                        help=f"Time period between scrapes in seconds (default {DEFAULT_SCRAPE_PERIOD:g})")
    parser.add_argument("--timeout", default=None,
                        help=f"Upstream request timeout in seconds (default {DEFAULT_TIMEOUT:g})")
    parser.add_argument("--api-url", default=None, help=f"The API base URL (default {DEFAULT_API_URL})")
    parser.add_argument("--debug", action="store_true", default=None, help="Sets log level to debug")
    return parser


def _env_name(option: str) -> str:
    return ENV_PREFIX + option.upper().replace("-", "_")


def load_settings(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from command-line flags and environment variables.

    Flags take precedence over environment variables, which take precedence
    over defaults.

    Args:
        argv: Command-line arguments (default: sys.argv[1:])
        environ: Environment mapping (default: os.environ)

    Returns:
        Validated Settings

    Raises:
        ConfigError: If any required value is missing or invalid
    """
    if environ is None:
        environ = os.environ

    args = build_parser().parse_args(argv)

    def resolve(option: str, default: str = "") -> str:
        value = getattr(args, option.replace("-", "_"))
        if value is None:
            value = environ.get(_env_name(option), default)
        return value.strip() if isinstance(value, str) else value

    problems = []

    listen_address = resolve("listen-address", DEFAULT_LISTEN_ADDRESS)
    api_key = resolve("api-key")
    mpan = resolve("mpan")
    electricity_meter = resolve("electricity-meter")
    mprn = resolve("mprn")
    gas_meter = resolve("gas-meter")
    api_url = resolve("api-url", DEFAULT_API_URL).rstrip("/")

    host, port = "", 0
    try:
        host, port = parse_listen_address(listen_address)
    except ValueError as e:
        problems.append(str(e))

    scrape_period = _positive_float(resolve("scrape-period", str(DEFAULT_SCRAPE_PERIOD)),
                                    "scrape-period (OCTOPUS_SCRAPE_PERIOD)", problems)
    timeout = _positive_float(resolve("timeout", str(DEFAULT_TIMEOUT)),
                              "timeout (OCTOPUS_TIMEOUT)", problems)

    debug = args.debug
    if debug is None:
        try:
            debug = _parse_bool(environ.get(_env_name("debug"), ""))
        except ValueError as e:
            problems.append(f"debug (OCTOPUS_DEBUG): {e}")
            debug = False

    if not api_key:
        problems.append("api-key (OCTOPUS_API_KEY) must be set")
    if not mpan and not mprn:
        problems.append("mpan or mprn (OCTOPUS_MPAN or OCTOPUS_MPRN) must be set")
    if mpan and not electricity_meter:
        problems.append("electricity-meter (OCTOPUS_ELECTRICITY_METER) must be set if mpan is set")
    if mprn and not gas_meter:
        problems.append("gas-meter (OCTOPUS_GAS_METER) must be set if mprn is set")
    if electricity_meter and not mpan:
        problems.append("mpan (OCTOPUS_MPAN) must be set if electricity-meter is set")
    if gas_meter and not mprn:
        problems.append("mprn (OCTOPUS_MPRN) must be set if gas-meter is set")

    if problems:
        raise ConfigError(problems)

    return Settings(
        api_key=api_key,
        listen_host=host,
        listen_port=port,
        mpan=mpan,
        electricity_meter=electricity_meter,
        mprn=mprn,
        gas_meter=gas_meter,
        scrape_period=scrape_period,
        timeout=timeout,
        api_url=api_url,
        debug=debug,
        listen_address=listen_address,
    )


def _positive_float(value: str, name: str, problems: List[str]) -> float:
    try:
        number = float(value)
    except ValueError:
        problems.append(f"{name} must be a number, got {value!r}")
        return 0.0
    if number <= 0:
        problems.append(f"{name} must be positive, got {value!r}")
    return number
