"""
AWS Systems Manager transport: runs commands on EC2 instances through SSM
"""

import logging
import time

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..core.errors import TransportUnavailable
from ..core.transport import CommandResult, ShellTransport

_PENDING_STATES = ("Pending", "InProgress", "Delayed")


class SSMTransport(ShellTransport):
    """Runs shell commands on a managed instance via ``AWS-RunShellScript``.

    SSM truncates command output at 24000 characters; probes that read large
    files through this transport may see incomplete content.
    """

    def __init__(self, instance_id: str, access_key: str = None, secret_key: str = None,
                 session_token: str = None, region: str = 'us-east-1',
                 profile: str = None, session=None, poll_interval: float = 1.0,
                 command_timeout: int = 60):
        self.instance_id = instance_id
        self.access_key = access_key
        self.secret_key = secret_key
        self.session_token = session_token
        self.region = region
        self.profile = profile
        self.poll_interval = poll_interval
        self.command_timeout = command_timeout
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._ssm = None
        self.session = session if session is not None else self._create_session()

    @property
    def name(self) -> str:
        return f"ssm://{self.instance_id}"

    def _create_session(self):
        """boto3 session from a named profile, explicit keys or the default chain"""
        options = {"region_name": self.region}
        if self.profile:
            options["profile_name"] = self.profile
        elif self.access_key and self.secret_key:
            options["aws_access_key_id"] = self.access_key
            options["aws_secret_access_key"] = self.secret_key
            options["aws_session_token"] = self.session_token
        try:
            return boto3.Session(**options)
        except BotoCoreError as e:
            raise TransportUnavailable(f"Cannot create AWS session for {self.instance_id}: {e}")

    def ssm_client(self):
        """SSM client for the instance region, created on first use"""
        if self._ssm is None:
            try:
                self._ssm = self.session.client("ssm", region_name=self.region)
            except BotoCoreError as e:
                raise TransportUnavailable(f"Cannot create SSM client for {self.region}: {e}")
        return self._ssm

    def execute(self, command_line: str) -> CommandResult:
        ssm = self.ssm_client()
        self.logger.debug(f"Sending to {self.instance_id}: {command_line}")

        try:
            response = ssm.send_command(
                InstanceIds=[self.instance_id],
                DocumentName="AWS-RunShellScript",
                Parameters={"commands": [command_line]},
                TimeoutSeconds=max(30, self.command_timeout),
            )
            command_id = response["Command"]["CommandId"]
            invocation = self._wait_for_invocation(ssm, command_id)
        except (ClientError, BotoCoreError) as e:
            raise TransportUnavailable(f"SSM command on {self.instance_id} failed: {str(e)}")

        return CommandResult(
            stdout=invocation.get("StandardOutputContent", ""),
            stderr=invocation.get("StandardErrorContent", ""),
            exit_code=int(invocation.get("ResponseCode", -1)),
        )

    def _wait_for_invocation(self, ssm, command_id: str) -> dict:
        deadline = time.monotonic() + self.command_timeout
        while True:
            try:
                invocation = ssm.get_command_invocation(
                    CommandId=command_id, InstanceId=self.instance_id
                )
            except ClientError as e:
                # The invocation is not visible immediately after send_command
                if e.response.get("Error", {}).get("Code") != "InvocationDoesNotExist":
                    raise
                invocation = {"Status": "Pending"}

            if invocation.get("Status") not in _PENDING_STATES:
                return invocation
            if time.monotonic() >= deadline:
                raise TransportUnavailable(
                    f"SSM command {command_id} on {self.instance_id} did not finish "
                    f"within {self.command_timeout}s"
                )
            time.sleep(self.poll_interval)
