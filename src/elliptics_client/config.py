"""
Elliptics Proxy Configuration

Connection settings for the Elliptics Network HTTP proxy. Values come from
constructor arguments, from ELLIPTICS_* environment variables (a .env file is
honoured), or from a YAML file such as configs/elliptics.yaml:

    elliptics:
      private_server_address: 10.0.0.5
      public_server_address: files.example.com
      write_port: 8080
      read_port: 80
      monitoring_port: 81
      connection_timeout: 1000
"""
import logging
import os
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union
from urllib.parse import quote

import yaml
from dotenv import load_dotenv

from elliptics_client.exceptions import ConfigurationError

DEFAULT_PRIVATE_SERVER_ADDRESS = '127.0.0.1'
DEFAULT_PUBLIC_SERVER_ADDRESS = 'localhost'
DEFAULT_WRITE_PORT = 8080
DEFAULT_READ_PORT = 80
DEFAULT_MONITORING_PORT = 81
DEFAULT_CONNECTION_TIMEOUT_MS = 1000

ENV_PREFIX = 'ELLIPTICS_'


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class EndpointKind(str, Enum):
    """Logical proxy endpoint; each one is served on its own port."""
    WRITE = 'write'
    READ = 'read'
    MONITOR = 'monitor'


@dataclass(frozen=True)
class Endpoint:
    kind: EndpointKind
    host: str
    port: int

    def url(self, path: str = '') -> str:
        return f"http://{self.host}:{self.port}/{path.lstrip('/')}"


@dataclass(frozen=True)
class EllipticsConfig:
    """
    Immutable client configuration.

    :param private_server_address: Proxy address used by the application itself
    :param public_server_address: Proxy address that may be shown to users (e.g. in public file URLs)
    :param write_port: Proxy write port
    :param read_port: Proxy read port
    :param monitoring_port: Proxy monitoring port
    :param connection_timeout: Time (ms) allowed for establishing a connection
    :param max_upload_workers: Upper bound on concurrent multi-upload requests (None = one per file)
    :param log_dir: Directory for client log files (None = no file logging)
    :param log_level: Logging level name
    :param console_output: Echo INFO logs to stdout
    """
    private_server_address: str = DEFAULT_PRIVATE_SERVER_ADDRESS
    public_server_address: str = DEFAULT_PUBLIC_SERVER_ADDRESS
    write_port: int = DEFAULT_WRITE_PORT
    read_port: int = DEFAULT_READ_PORT
    monitoring_port: int = DEFAULT_MONITORING_PORT
    connection_timeout: int = DEFAULT_CONNECTION_TIMEOUT_MS
    max_upload_workers: Optional[int] = None
    log_dir: Optional[str] = None
    log_level: str = 'WARNING'
    console_output: bool = False

    def __post_init__(self):
        if not self.private_server_address or not isinstance(self.private_server_address, str):
            raise ConfigurationError("private_server_address is required")

        if not isinstance(self.public_server_address, str):
            raise ConfigurationError(
                f"public_server_address must be a string, got {self.public_server_address!r}"
            )

        for name in ('write_port', 'read_port', 'monitoring_port'):
            port = getattr(self, name)
            if not _is_int(port) or not 0 < port < 65536:
                raise ConfigurationError(f"{name} must be in 1..65535, got {port!r}")

        if not _is_int(self.connection_timeout) or self.connection_timeout <= 0:
            raise ConfigurationError(
                f"connection_timeout must be a positive integer, got {self.connection_timeout!r}"
            )

        if self.max_upload_workers is not None and (
            not _is_int(self.max_upload_workers) or self.max_upload_workers <= 0
        ):
            raise ConfigurationError(
                f"max_upload_workers must be a positive integer, got {self.max_upload_workers!r}"
            )

        if not isinstance(self.console_output, bool):
            raise ConfigurationError(
                f"console_output must be a boolean, got {self.console_output!r}"
            )

        if not isinstance(self.log_level, str) or not isinstance(
            logging.getLevelName(self.log_level.upper()), int
        ):
            raise ConfigurationError(f"Unknown log_level: {self.log_level}")

    @property
    def connect_timeout_seconds(self) -> float:
        """Connection timeout converted to seconds for the HTTP transport"""
        return self.connection_timeout / 1000.0

    @property
    def logging_level(self) -> int:
        return logging.getLevelName(self.log_level.upper())

    def endpoint(self, kind: EndpointKind) -> Endpoint:
        """Get the endpoint serving the given kind of traffic"""
        ports = {
            EndpointKind.WRITE: self.write_port,
            EndpointKind.READ: self.read_port,
            EndpointKind.MONITOR: self.monitoring_port,
        }
        return Endpoint(kind=kind, host=self.private_server_address, port=ports[kind])

    def public_url(self, storage_file_id: str) -> str:
        """
        Build the externally visible URL of a stored file.

        :param storage_file_id: Storage identifier of the file
        :return: URL on the public proxy address and read port
        """
        host = self.public_server_address
        if self.read_port != 80:
            host = f"{host}:{self.read_port}"
        return f"http://{host}/{quote(storage_file_id, safe='/')}"

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> 'EllipticsConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys: {', '.join(sorted(unknown))}"
            )
        return cls(**values)

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path] = "configs/elliptics.yaml") -> 'EllipticsConfig':
        """
        Load configuration from a YAML file.

        Settings are read from the `elliptics` section when present, otherwise
        from the top level of the document.

        :param config_path: Path to the YAML file
        """
        config_path = Path(config_path)
        try:
            with open(config_path, 'r') as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {config_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a mapping")

        section = data.get('elliptics', data)
        if not isinstance(section, dict):
            raise ConfigurationError("'elliptics' section must be a mapping")
        return cls.from_dict(section)

    @classmethod
    def from_env(cls) -> 'EllipticsConfig':
        """
        Load configuration from ELLIPTICS_* environment variables.

        Unset variables keep their defaults.
        """
        load_dotenv()

        values: Dict[str, Any] = {}
        env_map = {
            'private_server_address': ('PRIVATE_ADDRESS', str),
            'public_server_address': ('PUBLIC_ADDRESS', str),
            'write_port': ('WRITE_PORT', int),
            'read_port': ('READ_PORT', int),
            'monitoring_port': ('MONITORING_PORT', int),
            'connection_timeout': ('CONNECTION_TIMEOUT', int),
            'max_upload_workers': ('MAX_UPLOAD_WORKERS', int),
            'log_dir': ('LOG_DIR', str),
            'log_level': ('LOG_LEVEL', str),
        }
        for field_name, (suffix, cast) in env_map.items():
            raw = os.getenv(f"{ENV_PREFIX}{suffix}")
            if raw is None or raw == '':
                continue
            try:
                values[field_name] = cast(raw)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for {ENV_PREFIX}{suffix}: {raw!r}"
                ) from e

        console = os.getenv(f"{ENV_PREFIX}CONSOLE_OUTPUT")
        if console:
            values['console_output'] = console.strip().lower() in ('1', 'true', 'yes')

        return cls(**values)
