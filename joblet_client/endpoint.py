"""Endpoint resolution from named environments.

An environment mapping is the already-parsed form of the platform's node
configuration::

    {
        "default": {"address": "localhost:50051"},
        "prod": {
            "address": "joblet.example.com:443",
            "tls_mode": "tls",
            "ca_cert": "/etc/joblet/ca.pem",
            "client_cert": "/etc/joblet/client.pem",
            "client_key": "/etc/joblet/client-key.pem",
        },
    }

The node config keys ``ca``, ``cert`` and ``key`` are accepted as aliases.
Certificate values are passed through untouched; reading them is the channel
factory's job.
"""

import enum
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from .errors import ConfigError

DEFAULT_ENVIRONMENT = "default"
DEFAULT_ADDRESS = "localhost:50051"
ENVIRONMENT_VAR = "JOBLET_ENV"

_CREDENTIAL_KEYS = {
    "ca_cert": ("ca_cert", "ca"),
    "client_cert": ("client_cert", "cert"),
    "client_key": ("client_key", "key"),
}


class TlsMode(str, enum.Enum):
    """Transport security for an endpoint."""

    INSECURE = "insecure"
    TLS = "tls"


@dataclass(frozen=True)
class Endpoint:
    """Resolved connection target for one environment."""

    name: str
    address: str
    tls_mode: TlsMode = TlsMode.INSECURE
    ca_cert: Optional[str] = None
    client_cert: Optional[str] = None
    client_key: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.tls_mode, TlsMode):
            raise ConfigError(f"environment {self.name!r}: unknown tls_mode {self.tls_mode!r}")
        if self.tls_mode is TlsMode.INSECURE and self.has_credentials:
            raise ConfigError(
                f"environment {self.name!r}: insecure mode cannot carry certificate material"
            )

    @property
    def has_credentials(self) -> bool:
        """Return True if any certificate field is set."""
        return any((self.ca_cert, self.client_cert, self.client_key))

    @property
    def is_secure(self) -> bool:
        return self.tls_mode is TlsMode.TLS

    def __repr__(self) -> str:
        # Certificate material may be inline PEM; never render it.
        return (
            f"Endpoint(name={self.name!r}, address={self.address!r}, "
            f"tls_mode={self.tls_mode.value!r})"
        )


DEFAULT_ENVIRONMENTS: dict[str, dict[str, Any]] = {
    DEFAULT_ENVIRONMENT: {"address": DEFAULT_ADDRESS, "tls_mode": TlsMode.INSECURE.value},
}


def _credential(entry: Mapping[str, Any], field: str) -> Optional[str]:
    for key in _CREDENTIAL_KEYS[field]:
        value = entry.get(key)
        if value:
            return value
    return None


class EndpointResolver:
    """Maps environment names to Endpoints over a supplied mapping."""

    def __init__(self, environments: Mapping[str, Mapping[str, Any]]):
        self._environments = environments

    @classmethod
    def default(cls) -> "EndpointResolver":
        """Resolver holding only the built-in local environment."""
        return cls(DEFAULT_ENVIRONMENTS)

    @staticmethod
    def name_from_env(env_var: str = ENVIRONMENT_VAR, default: str = DEFAULT_ENVIRONMENT) -> str:
        """Read the environment name from an environment variable with fallback."""
        return os.environ.get(env_var, default) or default

    def names(self) -> list[str]:
        """Return the configured environment names."""
        return sorted(self._environments)

    def resolve(self, name: str) -> Endpoint:
        """Return the Endpoint for ``name``.

        Raises:
            ConfigError: the environment is absent or malformed.
        """
        if name not in self._environments:
            raise ConfigError(f"environment {name!r} not found")
        entry = self._environments[name]
        if not isinstance(entry, Mapping):
            raise ConfigError(f"environment {name!r} must be a mapping")

        address = entry.get("address")
        if not isinstance(address, str) or not address.strip():
            raise ConfigError(f"environment {name!r} has no address")

        credentials = {field: _credential(entry, field) for field in _CREDENTIAL_KEYS}
        raw_mode = entry.get("tls_mode")
        if raw_mode is None:
            has_material = any(credentials.values())
            mode = TlsMode.TLS if has_material else TlsMode.INSECURE
        elif isinstance(raw_mode, TlsMode):
            mode = raw_mode
        else:
            try:
                mode = TlsMode(str(raw_mode).lower())
            except ValueError:
                raise ConfigError(
                    f"environment {name!r}: unknown tls_mode {raw_mode!r}"
                ) from None

        return Endpoint(name=name, address=address.strip(), tls_mode=mode, **credentials)
