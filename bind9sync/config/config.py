"""
Configuration module for bind9sync.
"""

import os
import re
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, Field, field_validator

from bind9sync.utils.labels import normalize_zone
from bind9sync.utils.network import TargetRange

# Environment variable names understood when no YAML file is present
ENV_VARS = {
    "BIND_SERVER": "server",
    "BIND_PORT": "port",
    "BIND_ZONE": "zone",
    "BIND_TSIG_KEYFILE_B64": "tsig_key_b64",
    "BIND_TSIG_KEY_NAME": "tsig_key_name",
    "NETWORK": "network",
    "TTL": "ttl",
    "DRY_RUN": "dry_run",
    "DELETE_STOPPED": "delete_stopped",
    "LOG_LEVEL": "log_level",
    "LOCK_FILE": "lock_file",
}


class Config(BaseModel):
    """Configuration for bind9sync."""

    # DNS server configuration
    server: str
    port: int = Field(default=53, ge=1, le=65535)
    zone: str = "rpz.local."
    tsig_key_b64: str
    tsig_key_name: Optional[str] = None
    query_timeout: float = Field(default=2.0, gt=0)
    query_tries: int = Field(default=1, ge=1)
    update_timeout: float = Field(default=10.0, gt=0)

    # Source configuration
    network: str
    agent_timeout: float = Field(default=10.0, gt=0)

    # Controller configuration
    ttl: int = Field(default=60, ge=0)
    dry_run: bool = False
    delete_stopped: bool = False
    once: bool = True
    interval: str = "5m"
    lock_file: str = "/run/bind9sync.lock"

    # Logging configuration
    log_level: str = "info"

    @field_validator("server")
    @classmethod
    def _check_server(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("BIND_SERVER is empty")
        return value

    @field_validator("zone")
    @classmethod
    def _check_zone(cls, value: str) -> str:
        return normalize_zone(value)

    @field_validator("tsig_key_b64")
    @classmethod
    def _check_tsig_key(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("BIND_TSIG_KEYFILE_B64 is empty")
        return value

    @field_validator("tsig_key_name")
    @classmethod
    def _check_tsig_key_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("network")
    @classmethod
    def _check_network(cls, value: str) -> str:
        return str(TargetRange.parse(value))

    @property
    def target_range(self) -> TargetRange:
        return TargetRange.parse(self.network)

    @classmethod
    def load(
        cls,
        config_path: Optional[Union[str, Path]] = None,
        env_file: Optional[Union[str, Path]] = None,
    ) -> "Config":
        """
        Load configuration from a YAML file if one is given or found in a
        default location, otherwise from the environment.

        Without YAML, KEY=VALUE lines from the env file (/etc/bind9sync.env
        by default) are read first and the process environment overrides them.

        Args:
            config_path: Optional explicit YAML path
            env_file: Optional env file path

        Returns:
            Config: Validated configuration
        """
        if config_path or any(path.exists() for path in cls.default_paths()):
            return cls.from_yaml(config_path)

        env_file = Path(env_file) if env_file else cls.default_env_file()
        if env_file.exists():
            return cls.from_env({**cls.read_env_file(env_file), **os.environ})
        return cls.from_env()

    @staticmethod
    def default_paths():
        return [
            Path("./bind9sync.yaml"),
            Path("./bind9sync.yml"),
            Path("/etc/bind9sync/bind9sync.yaml"),
            Path("/etc/bind9sync/config.yaml"),
        ]

    @staticmethod
    def default_env_file() -> Path:
        return Path("/etc/bind9sync.env")

    @staticmethod
    def read_env_file(path: Union[str, Path]) -> Dict[str, str]:
        """
        Read a shell-style env file. Keys without a value are ignored.
        """
        return {
            key: value
            for key, value in dotenv_values(path).items()
            if value is not None
        }

    @classmethod
    def from_yaml(cls, config_path: Optional[Union[str, Path]] = None) -> "Config":
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            Config: Config instance populated with values from the YAML file
        """
        # If config_path is provided, use it
        if config_path:
            paths = [Path(config_path)]
        else:
            paths = cls.default_paths()

        # Try to load configuration from the first existing path
        config_data = {}
        for path in paths:
            if path.exists():
                with open(path, "r") as f:
                    yaml_content = f.read()
                    # Substitute environment variables
                    yaml_content = cls._substitute_env_vars(yaml_content)
                    config_data = yaml.safe_load(yaml_content) or {}
                break
        else:
            if config_path:
                raise FileNotFoundError(f"config file not found: {config_path}")

        if not isinstance(config_data, dict):
            kind = type(config_data).__name__
            raise ValueError(f"configuration file must contain a mapping, not a {kind}")

        # Flatten nested configuration
        flat_config = cls._flatten_config(config_data)

        # Create and return Config instance
        return cls(**flat_config)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """
        Load configuration from BIND_* style environment variables.

        Unset and empty optional variables keep their defaults; required ones
        are passed through so that validation reports them.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for env_name, field_name in ENV_VARS.items():
            value = environ.get(env_name)
            if value is None:
                continue
            if value.strip() == "" and field_name not in {"server", "zone", "tsig_key_b64", "network"}:
                continue
            values[field_name] = value
        for required in ("server", "tsig_key_b64", "network"):
            values.setdefault(required, "")
        return cls(**values)

    @staticmethod
    def _substitute_env_vars(content: str) -> str:
        """
        Substitute environment variables in the configuration content.

        Args:
            content: Configuration content

        Returns:
            str: Configuration content with environment variables substituted
        """
        # Pattern for ${ENV_VAR} or ${ENV_VAR:-default}
        pattern = r"\${([^}]+)}"

        def replace_env_var(match):
            env_var = match.group(1)
            if ":-" in env_var:
                env_var, default = env_var.split(":-", 1)
                return os.environ.get(env_var) or default
            return os.environ.get(env_var, "")

        return re.sub(pattern, replace_env_var, content)

    @staticmethod
    def _flatten_config(config_data: dict) -> dict:
        """
        Flatten nested configuration.

        Args:
            config_data: Nested configuration data

        Returns:
            dict: Flattened configuration data
        """
        flat_config = {}

        # DNS server configuration
        dns = config_data.get("dns") or {}
        flat_config["server"] = str(dns.get("server") or "")
        flat_config["port"] = dns.get("port") or 53
        flat_config["zone"] = str(dns.get("zone") or "rpz.local.")
        flat_config["tsig_key_b64"] = str(dns.get("tsig_key_b64") or "")
        flat_config["tsig_key_name"] = dns.get("tsig_key_name")
        flat_config["query_timeout"] = dns.get("query_timeout", 2.0)
        flat_config["query_tries"] = dns.get("query_tries", 1)
        flat_config["update_timeout"] = dns.get("update_timeout", 10.0)

        # Source configuration
        source = config_data.get("source") or {}
        flat_config["network"] = str(source.get("network") or "")
        flat_config["agent_timeout"] = source.get("agent_timeout", 10.0)

        # Controller configuration
        controller = config_data.get("controller") or {}
        flat_config["ttl"] = controller.get("ttl", 60)
        flat_config["dry_run"] = controller.get("dry_run", False)
        flat_config["delete_stopped"] = controller.get("delete_stopped", False)
        flat_config["once"] = controller.get("once", True)
        flat_config["interval"] = str(controller.get("interval", "5m"))
        flat_config["lock_file"] = controller.get("lock_file", "/run/bind9sync.lock")

        # Logging configuration
        logging = config_data.get("logging") or {}
        flat_config["log_level"] = logging.get("level", "info")

        return flat_config

    @staticmethod
    def parse_duration(duration_str: str) -> int:
        """
        Parse a duration string like '15m' into seconds.

        Args:
            duration_str: Duration string

        Returns:
            int: Duration in seconds
        """
        if not duration_str:
            return 60  # Default to 1 minute

        # Pattern for duration string (e.g., 15m, 1h, 30s)
        pattern = r"^(\d+)([smhd])$"
        match = re.match(pattern, duration_str.strip())

        if not match:
            return 60  # Default to 1 minute

        value, unit = match.groups()
        value = int(value)

        # Convert to seconds
        if unit == "s":
            return value
        elif unit == "m":
            return value * 60
        elif unit == "h":
            return value * 60 * 60
        elif unit == "d":
            return value * 60 * 60 * 24

        return 60  # Default to 1 minute
