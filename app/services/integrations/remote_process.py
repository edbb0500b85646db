"""Remote process control over SSH.

Long-running media commands (relay transcoders) run on a remote host inside
named ``screen`` sessions so they outlive the SSH connection that started
them. Every operation works on a channel acquired with
``RemoteProcessController.connect()``, which is an async context manager:
the connection is closed on every exit path, including failures.

Liveness is coarse. A session that still exists reads as ALIVE even when the
process inside it has crashed, since ``screen`` keeps the session open with a
fallback shell.
"""

import asyncio
import shlex
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum

import asyncssh
from loguru import logger

from app.utils.app_errors import RemoteExecutionError


@dataclass
class SSHCredentials:
    host: str
    port: int = 22
    username: str = "root"
    password: str | None = None
    key_path: str | None = None


@dataclass
class CommandResult:
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class Liveness(str, Enum):
    ALIVE = "alive"
    ABSENT = "absent"

    def __str__(self) -> str:
        return self.value


class RemoteChannel:
    """An open SSH connection able to run commands and transfer files."""

    def __init__(self, conn: asyncssh.SSHClientConnection, host: str) -> None:
        self._conn = conn
        self.host = host

    async def run(self, command: str) -> CommandResult:
        logger.debug(f"[{self.host}] $ {command}")
        try:
            result = await self._conn.run(command, check=False)
        except (OSError, asyncssh.Error) as e:
            raise RemoteExecutionError(f"Command failed on {self.host}: {e}") from e
        return CommandResult(
            stdout=str(result.stdout or ""),
            stderr=str(result.stderr or ""),
            returncode=result.returncode or 0,
        )

    async def put_file(self, local_path: str, remote_path: str) -> None:
        logger.info(f"[{self.host}] upload {local_path} -> {remote_path}")
        try:
            async with self._conn.start_sftp_client() as sftp:
                await sftp.put(local_path, remote_path)
        except (OSError, asyncssh.Error) as e:
            raise RemoteExecutionError(f"File transfer to {self.host} failed: {e}") from e

    async def close(self) -> None:
        self._conn.close()
        await self._conn.wait_closed()


def _session_regex(session_name: str) -> str:
    # Session names are restricted to [A-Za-z0-9_.-]
    return session_name.replace(".", r"\.")


def parse_screen_sessions(listing: str) -> list[str]:
    """Extract session names from ``screen -ls`` output.

    Lines look like ``\\t12345.alice_relay\\t(Detached)``.
    """
    names = []
    for line in listing.splitlines():
        token = line.strip().split("\t", 1)[0].split(" ", 1)[0]
        pid, sep, name = token.partition(".")
        if sep and pid.isdigit() and name:
            names.append(name)
    return names


class RemoteProcessController:
    """Start, stop and probe detached processes on remote hosts."""

    def __init__(self, connect_timeout: float = 15) -> None:
        self.connect_timeout = connect_timeout

    @asynccontextmanager
    async def connect(self, credentials: SSHCredentials) -> AsyncIterator[RemoteChannel]:
        kwargs: dict = {
            "host": credentials.host,
            "port": credentials.port,
            "username": credentials.username,
            "known_hosts": None,
            "connect_timeout": self.connect_timeout,
        }
        if credentials.password:
            kwargs["password"] = credentials.password
        if credentials.key_path:
            kwargs["client_keys"] = [credentials.key_path]

        try:
            conn = await asyncssh.connect(**kwargs)
        # asyncssh.KeyImportError is a ValueError
        except (OSError, ValueError, asyncssh.Error, asyncio.TimeoutError) as e:
            raise RemoteExecutionError(
                f"SSH connect to {credentials.username}@{credentials.host}:{credentials.port} failed: {e}"
            ) from e

        channel = RemoteChannel(conn, credentials.host)
        try:
            yield channel
        finally:
            await channel.close()
            logger.debug(f"SSH connection to {credentials.host} closed")

    async def start_detached(self, channel: RemoteChannel, session_name: str, command: str) -> None:
        """Run ``command`` in a detached screen session named ``session_name``.

        Any existing session with the same name is terminated first. The
        trailing ``exec sh`` keeps the session open after the command exits.
        """
        await self.stop_detached(channel, session_name)

        wrapped = shlex.quote(f"{command}; exec sh")
        result = await channel.run(f"screen -dmS {shlex.quote(session_name)} bash -c {wrapped}")
        if not result.ok:
            raise RemoteExecutionError(
                f"Failed to start session {session_name} on {channel.host}: "
                f"rc={result.returncode} {result.stderr.strip()}"
            )
        logger.info(f"Started detached session {session_name} on {channel.host}")

    async def stop_detached(self, channel: RemoteChannel, session_name: str) -> None:
        """Quit every session named ``session_name``. Succeeds when none exists."""
        pattern = shlex.quote(f"^[0-9]+\\.{_session_regex(session_name)}$")
        result = await channel.run(
            f"screen -ls | awk '{{print $1}}' | grep -E {pattern} "
            f"| xargs -r -I{{}} screen -X -S {{}} quit"
        )
        # grep exits 1 when nothing matched
        if result.returncode not in (0, 1):
            logger.warning(
                f"Stopping session {session_name} on {channel.host} returned rc={result.returncode}: "
                f"{result.stderr.strip()}"
            )

    async def check_liveness(self, channel: RemoteChannel, session_name: str) -> Liveness:
        # screen -ls exits non-zero when no sessions exist
        result = await channel.run("screen -ls")
        if session_name in parse_screen_sessions(result.stdout):
            return Liveness.ALIVE
        return Liveness.ABSENT

    async def put_file(self, channel: RemoteChannel, local_path: str, remote_path: str) -> None:
        await channel.put_file(local_path, remote_path)
