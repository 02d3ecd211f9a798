"""Shared domain models for AG Node Installer."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple


class PackageManagerKind(str, Enum):
    APT = "apt"
    DNF = "dnf"
    YUM = "yum"
    PACMAN = "pacman"


class ProxyChoice(str, Enum):
    APACHE = "apache"
    NGINX = "nginx"


@dataclass(frozen=True)
class HostProfile:
    """Operating system identity detected once at startup."""

    distribution_id: str
    package_manager: PackageManagerKind
    distribution_like: str = ""
    pretty_name: str = ""
    version_codename: str = ""
    ubuntu_codename: str = ""


@dataclass(frozen=True)
class EndpointConfig:
    url: str
    domain: str


@dataclass(frozen=True)
class CredentialRecord:
    node_url: str
    web_server: str
    private_key: str


@dataclass(frozen=True)
class ContainerSpec:
    name: str
    image: str
    port: int
    env_file: str
    volumes: Tuple[Tuple[str, str], ...]
    restart_policy: str = "always"
    extra_hosts: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a single validation attempt."""

    accepted: bool
    value: Any = None
    reason: str = ""

    @classmethod
    def accept(cls, value: Any) -> "ValidationResult":
        return cls(accepted=True, value=value)

    @classmethod
    def reject(cls, reason: str) -> "ValidationResult":
        return cls(accepted=False, reason=reason)


@dataclass(frozen=True)
class InstallerContext:
    """Values collected during a run, threaded through each step."""

    host: Optional[HostProfile] = None
    endpoint: Optional[EndpointConfig] = None
    proxy: Optional[ProxyChoice] = None
