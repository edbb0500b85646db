"""Relay domain service: pull an external stream into the owner's media server application."""

import asyncio
from typing import Any

from beanie.operators import Set
from loguru import logger

from app.app_config import AppEnvironConfig, get_app_environ_config
from app.domain.utils.persistence import persistence_guard
from app.schemas import MediaServer, RelaySession, RelayState
from app.services.integrations.remote_process import (
    Liveness,
    RemoteProcessController,
    SSHCredentials,
)
from app.shared.utils import utc_now
from app.utils.app_errors import (
    AppErrorCode,
    ConflictError,
    NotFoundError,
    RemoteExecutionError,
    ValidationError,
)

from ._source import (
    build_relay_command,
    derive_login,
    infer_source_type,
    relay_session_name,
    validate_source,
)
from .relay_models import RelayResponse, RelayStartParams, RelayStopResponse, SourceValidation


class RelayManager:
    """Start, stop and report the per-owner relay process."""

    def __init__(
        self,
        remote: RemoteProcessController | None = None,
        cfg: AppEnvironConfig | None = None,
    ):
        self._cfg = cfg or get_app_environ_config()
        self._remote = remote or RemoteProcessController(connect_timeout=self._cfg.SSH_CONNECT_TIMEOUT)

    async def validate_source(self, url: str | None) -> SourceValidation:
        return await validate_source(url, timeout=self._cfg.RELAY_PROBE_TIMEOUT_SECONDS)

    async def status(self, owner: str) -> RelayResponse:
        """Stored relay view, or an inativo default for owners without one."""
        session = await self._get_session(owner)
        if session is None:
            return RelayResponse(owner=owner)
        return self._to_response(session)

    async def start(self, params: RelayStartParams) -> RelayResponse:
        """Launch the relay as a detached process and record the outcome.

        Blocks for the pre-stop and settle delays. Never retried.

        Raises:
            ValidationError: If the source URL is missing or of unknown type
            ConflictError: If the owner's relay is already ativo
            RemoteExecutionError: If the process could not be started; the row is left in erro
        """
        source_url = (params.source_url or "").strip()
        if not source_url:
            raise ValidationError("Relay URL is required")

        source_type = params.source_type or infer_source_type(source_url)
        if source_type is None:
            raise ValidationError("URL must be RTMP (rtmp://) or M3U8 (https://...m3u8)")

        existing = await self._get_session(params.owner)
        if existing and existing.status == RelayState.ATIVO:
            raise ConflictError(
                "A relay is already active. Stop it first.",
                errcode=AppErrorCode.E_RELAY_EXISTS,
            )

        credentials, server_id = await self._resolve_server(params.server_id)
        login = derive_login(params.owner_email)
        session_name = relay_session_name(login)
        output_url = f"{self._cfg.RELAY_OUTPUT_BASE_URL.rstrip('/')}/{login}/{login}"
        command = build_relay_command(self._cfg.RELAY_FFMPEG_PATH, source_url, source_type, output_url)

        base_fields: dict[str, Any] = {
            "source_url": source_url,
            "source_type": source_type,
            "server_id": server_id,
            "server_host": credentials.host,
            "session_name": session_name,
            "application": login,
        }

        logger.info(f"Starting relay {session_name} on {credentials.host} for owner {params.owner}")
        try:
            async with self._remote.connect(credentials) as channel:
                await self._remote.stop_detached(channel, session_name)
                await asyncio.sleep(self._cfg.RELAY_PRESTOP_SECONDS)
                await self._remote.start_detached(channel, session_name, command)
                await asyncio.sleep(self._cfg.RELAY_SETTLE_SECONDS)
                liveness = await self._remote.check_liveness(channel, session_name)
        except RemoteExecutionError as e:
            await self._record_failure(params.owner, base_fields, f"SSH error: {e.errmesg}")
            raise

        if liveness != Liveness.ALIVE:
            details = "Relay process exited during startup"
            await self._record_failure(params.owner, base_fields, details)
            raise RemoteExecutionError(f"{details}. Check that the source URL is correct.")

        now = utc_now()
        session = await self._upsert(
            params.owner,
            {
                **base_fields,
                "status": RelayState.ATIVO,
                "error_details": None,
                "started_at": now,
                "stopped_at": None,
            },
        )
        logger.info(f"Relay {session_name} is live for owner {params.owner}")
        return self._to_response(session)

    async def stop(self, owner: str, owner_email: str | None = None) -> RelayStopResponse:
        """Stop the owner's relay. Remote failures never keep the row from going inativo.

        Raises:
            NotFoundError: If the owner never configured a relay
        """
        session = await self._get_session(owner)
        if session is None:
            raise NotFoundError(f"No relay found for owner {owner}", errcode=AppErrorCode.E_RELAY_NOT_FOUND)

        if session.status == RelayState.INATIVO:
            logger.info(f"Relay of owner {owner} already inativo")
            return RelayStopResponse(relay=self._to_response(session), already_stopped=True)

        credentials, _ = await self._resolve_server(session.server_id, host=session.server_host)
        session_name = session.session_name or relay_session_name(derive_login(owner_email))

        remote_error = None
        try:
            async with self._remote.connect(credentials) as channel:
                await self._remote.stop_detached(channel, session_name)
        except RemoteExecutionError as e:
            remote_error = e.errmesg
            logger.warning(f"Remote stop of {session_name} failed, marking inativo anyway: {remote_error}")

        now = utc_now()
        with persistence_guard(f"Stop relay of {owner}"):
            await session.set(
                {
                    RelaySession.status: RelayState.INATIVO,
                    RelaySession.stopped_at: now,
                    RelaySession.updated_at: now,
                    RelaySession.error_details: remote_error,
                }
            )

        return RelayStopResponse(
            relay=self._to_response(session),
            remote_stopped=remote_error is None,
            remote_error=remote_error,
        )

    async def _get_session(self, owner: str) -> RelaySession | None:
        with persistence_guard("Load relay session"):
            return await RelaySession.find_one(RelaySession.owner == owner)

    async def _resolve_server(
        self,
        server_id: str | None,
        host: str | None = None,
    ) -> tuple[SSHCredentials, str | None]:
        """Credentials of the named server, falling back to the configured default."""
        if server_id:
            with persistence_guard("Load media server"):
                server = await MediaServer.find_one(MediaServer.server_id == server_id)
            if server:
                return (
                    SSHCredentials(
                        host=server.host,
                        port=server.ssh_port,
                        username=server.ssh_user,
                        password=server.ssh_password,
                    ),
                    server_id,
                )
            logger.warning(f"Media server {server_id} not found, using the default relay server")

        cfg = self._cfg
        return (
            SSHCredentials(
                host=host or cfg.RELAY_DEFAULT_SERVER_HOST,
                port=cfg.RELAY_DEFAULT_SERVER_SSH_PORT,
                username=cfg.RELAY_DEFAULT_SERVER_SSH_USER,
                password=cfg.RELAY_DEFAULT_SERVER_SSH_PASSWORD,
            ),
            None,
        )

    async def _upsert(self, owner: str, fields: dict[str, Any]) -> RelaySession:
        """Write ``fields`` onto the owner's non-ativo row, creating it if missing.

        An ativo row does not match the filter, so the fallback insert hits the
        unique owner index and surfaces as ConflictError.
        """
        now = utc_now()
        with persistence_guard(
            f"Upsert relay of {owner}",
            conflict_message="A relay is already active. Stop it first.",
            conflict_errcode=AppErrorCode.E_RELAY_EXISTS,
        ):
            await RelaySession.find_one(
                RelaySession.owner == owner,
                RelaySession.status != RelayState.ATIVO,
            ).upsert(
                Set({**fields, "updated_at": now}),
                on_insert=RelaySession(owner=owner, created_at=now, updated_at=now, **fields),
            )
            session = await RelaySession.find_one(RelaySession.owner == owner)
        if session is None:
            raise NotFoundError(f"Relay of owner {owner} vanished after upsert", errcode=AppErrorCode.E_RELAY_NOT_FOUND)
        return session

    async def _record_failure(self, owner: str, fields: dict[str, Any], details: str) -> None:
        logger.error(f"Relay start failed for owner {owner}: {details}")
        try:
            await self._upsert(owner, {**fields, "status": RelayState.ERRO, "error_details": details})
        except ConflictError:
            logger.warning(f"Relay of owner {owner} became ativo concurrently, failure not recorded")

    @staticmethod
    def _to_response(session: RelaySession) -> RelayResponse:
        return RelayResponse(**session.model_dump(exclude={"id", "revision_id"}))


