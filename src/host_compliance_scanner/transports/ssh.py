"""
SSH transport built on paramiko
"""

import logging
import socket
import threading
from typing import Optional

import paramiko

from ..core.errors import TransportUnavailable
from ..core.transport import CommandResult, ShellTransport, quote


class SSHTransport(ShellTransport):
    """Single reusable SSH connection to a remote host.

    The connection is opened on first use. Once a command fails at the
    channel level the transport reports TransportUnavailable and does not
    reconnect on its own.
    """

    def __init__(
        self,
        hostname: str,
        *,
        port: int = 22,
        user: Optional[str] = None,
        key_path: Optional[str] = None,
        password: Optional[str] = None,
        timeout: int = 30,
        sudo: bool = False,
    ):
        self.hostname = hostname
        self.port = port
        self.user = user
        self.key_path = key_path
        self.password = password
        self.timeout = timeout
        self.sudo = sudo
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._client: Optional[paramiko.SSHClient] = None
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        user = f"{self.user}@" if self.user else ""
        return f"ssh://{user}{self.hostname}:{self.port}"

    def connect(self) -> None:
        """Establish the SSH connection."""
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        connect_kwargs: dict = {
            "hostname": self.hostname,
            "port": self.port,
            "timeout": self.timeout,
        }
        if self.user:
            connect_kwargs["username"] = self.user
        if self.key_path:
            connect_kwargs["key_filename"] = self.key_path
        if self.password:
            connect_kwargs["password"] = self.password

        # Explicit credentials disable fallback to ~/.ssh keys and the agent
        if self.key_path or self.password:
            connect_kwargs["look_for_keys"] = False
            connect_kwargs["allow_agent"] = False

        try:
            client.connect(**connect_kwargs)
        except (paramiko.SSHException, socket.error) as e:
            raise TransportUnavailable(f"Cannot connect to {self.name}: {e}")
        self._client = client
        self.logger.info(f"Connected to {self.name}")

    def _ensure_connected(self) -> paramiko.SSHClient:
        with self._lock:
            if self._client is None:
                self.connect()
            return self._client

    def execute(self, command_line: str) -> CommandResult:
        client = self._ensure_connected()

        if self.sudo:
            command_line = f"sudo -n sh -c {quote(command_line)}"

        self.logger.debug(f"Executing on {self.hostname}: {command_line}")
        try:
            _, stdout_ch, stderr_ch = client.exec_command(command_line, timeout=self.timeout)
            stdout = stdout_ch.read().decode("utf-8", errors="replace")
            stderr = stderr_ch.read().decode("utf-8", errors="replace")
            exit_code = stdout_ch.channel.recv_exit_status()
        except (paramiko.SSHException, socket.error) as e:
            raise TransportUnavailable(f"Lost connection to {self.name}: {e}")

        return CommandResult(stdout=stdout, stderr=stderr, exit_code=exit_code)

    def close(self) -> None:
        """Close the SSH connection."""
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None
