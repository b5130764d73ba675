"""
Scan configuration and target selection
"""

from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlparse

from .core.errors import ConfigurationError
from .core.transport import Transport


@dataclass
class ScanConfig:
    """Everything a scan needs besides the controls themselves"""
    target: str = "local://"
    control_files: List[str] = field(default_factory=list)
    controls: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    parallel_execution: bool = True
    max_workers: int = 10
    timeout: Optional[int] = 300
    command_timeout: int = 60
    sudo: bool = False
    key_file: Optional[str] = None
    password: Optional[str] = None
    port: Optional[int] = None
    aws_profile: Optional[str] = None
    region: str = "us-east-1"

    def __post_init__(self):
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1")
        if self.timeout is not None and self.timeout <= 0:
            self.timeout = None


def create_transport(config: ScanConfig) -> Transport:
    """Build the transport for ``config.target``.

    Supported targets: ``local://``, ``ssh://[user@]host[:port]`` and
    ``ssm://<instance-id>``.
    """
    target = config.target or "local://"
    if "://" not in target:
        raise ConfigurationError(f"Invalid target '{target}': expected scheme://...")
    parsed = urlparse(target)
    scheme = parsed.scheme.lower()

    if scheme == "local":
        from .transports.local import LocalTransport
        return LocalTransport(command_timeout=config.command_timeout)

    if scheme == "ssh":
        if not parsed.hostname:
            raise ConfigurationError(f"Invalid SSH target '{target}': missing host")
        from .transports.ssh import SSHTransport
        return SSHTransport(
            parsed.hostname,
            port=config.port or parsed.port or 22,
            user=parsed.username,
            key_path=config.key_file,
            password=config.password or parsed.password,
            timeout=config.command_timeout,
            sudo=config.sudo,
        )

    if scheme == "ssm":
        instance_id = parsed.netloc or parsed.path.lstrip("/")
        if not instance_id:
            raise ConfigurationError(f"Invalid SSM target '{target}': missing instance id")
        from .transports.ssm import SSMTransport
        return SSMTransport(
            instance_id,
            profile=config.aws_profile,
            region=config.region,
            command_timeout=config.command_timeout,
        )

    raise ConfigurationError(f"Unsupported target scheme '{scheme}' in '{target}'")
