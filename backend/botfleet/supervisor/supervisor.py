"""Session supervisor - owns every bot session and its lifecycle.

Responsibilities:
- Registers sessions and refuses a second live connection per id
- Turns protocol events into status transitions, in order, per session
- Schedules and cancels auto-reconnects
- Runs the post-spawn login and the whisper auto-responder
- Publishes every status change and chat record to observers

Concurrency: each session has one pump task consuming its event queue
and one lock serializing every mutation of that session. Nothing here
takes more than one session lock at a time.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Awaitable, Callable, Optional

from botfleet.config import Settings, get_settings
from botfleet.middleware.prometheus import (
    record_chat_event,
    record_reconnect_scheduled,
    record_transition,
    set_session_count,
)
from botfleet.protocol.base import (
    ChatReceived,
    Ended,
    HealthChanged,
    Kicked,
    Moved,
    ProtocolConnector,
    ProtocolEvent,
    ProtocolFailure,
    SessionHandle,
    Spawned,
    WhisperReceived,
)
from botfleet.protocol.loader import load_connector
from botfleet.services.chat_logs import ChatLogStore
from botfleet.services.profiles import ProfileStore
from botfleet.supervisor.models import (
    ChatEvent,
    ChatKind,
    Position,
    SessionConfig,
    SessionState,
    SessionStatus,
    Vitals,
)
from botfleet.supervisor.registry import SessionRegistry
from botfleet.supervisor.responder import AutoResponder
from botfleet.supervisor.scheduler import ReconnectScheduler
from botfleet.supervisor.session import Session
from botfleet.utils.async_utils import create_safe_task
from botfleet.utils.errors import (
    AlreadyConnectedError,
    ConfigNotFoundError,
    ProfileNotFoundError,
    SupervisorError,
    UnknownSessionError,
)
from botfleet.ws.broadcaster import EventBroadcaster, Observer
from botfleet.ws.messages import bot_status_message, chat_log_message, initial_status_message

logger = logging.getLogger(__name__)

SYSTEM_SENDER = "System"

# Singleton instance
_supervisor: Optional["Supervisor"] = None

EventHandler = Callable[[Session, ProtocolEvent], Awaitable[None]]


class Supervisor:
    """Supervises every bot session.

    All public operations are coroutines and safe to call concurrently,
    including for the same session id.
    """

    def __init__(
        self,
        connector: ProtocolConnector,
        *,
        settings: Settings | None = None,
        broadcaster: EventBroadcaster | None = None,
        chat_logs: ChatLogStore | None = None,
    ):
        self._settings = settings or get_settings()
        self._connector = connector
        self._registry = SessionRegistry()
        self._scheduler = ReconnectScheduler(self._settings.reconnect_delay_seconds)
        self._broadcaster = broadcaster or EventBroadcaster(
            queue_size=self._settings.observer_queue_size
        )
        self._chat_logs = chat_logs or ChatLogStore(retention=self._settings.chat_log_retention)
        self._responder = AutoResponder(
            trigger=self._settings.responder_trigger,
            command_template=self._settings.responder_command,
        )
        self._running = False

        self._event_handlers: dict[type, EventHandler] = {
            Spawned: self._on_spawned,
            HealthChanged: self._on_health,
            Moved: self._on_moved,
            ChatReceived: self._on_chat,
            WhisperReceived: self._on_whisper,
            Kicked: self._on_kicked,
            ProtocolFailure: self._on_failure,
            Ended: self._on_ended,
        }

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def session_count(self) -> int:
        return len(self._registry)

    @property
    def broadcaster(self) -> EventBroadcaster:
        return self._broadcaster

    @property
    def chat_logs(self) -> ChatLogStore:
        return self._chat_logs

    @property
    def scheduler(self) -> ReconnectScheduler:
        return self._scheduler

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start accepting work. Called during application startup."""
        if self._running:
            logger.warning("[SUPERVISOR] Already running")
            return

        self._running = True
        logger.info(
            f"[SUPERVISOR] Started (connector: {type(self._connector).__name__}, "
            f"reconnect delay: {self._scheduler.delay:g}s)"
        )

    async def stop(self) -> None:
        """Tear down every session and the fan-out.

        Timers are cancelled and live connections quit. No reconnects are
        scheduled while stopping.
        """
        if not self._running:
            return

        logger.info("[SUPERVISOR] Stopping...")
        self._running = False
        self._scheduler.cancel_all()

        for session in self._registry:
            async with session.lock:
                if session.removed:
                    continue
                session.removed = True
                handle = session.detach_handle()
                session.cancel_all_tasks()
            await self._quit_quietly(session, handle)

        await self._registry.clear()
        set_session_count(0)
        await self._broadcaster.stop()
        logger.info("[SUPERVISOR] Stopped")

    # =========================================================================
    # Commands
    # =========================================================================

    async def connect(
        self,
        config: SessionConfig,
        auto_reconnect: bool | None = None,
    ) -> SessionState:
        """Register a session and start dialing.

        Returns as soon as the dial is underway; the outcome arrives through
        the fan-out.

        Raises:
            AlreadyConnectedError: If the id has a live or in-flight connection
        """
        if auto_reconnect is not None:
            config = config.with_auto_reconnect(auto_reconnect)

        while True:
            session, created = await self._registry.get_or_create(
                config.id, partial(self._new_session, config)
            )
            async with session.lock:
                if session.removed:
                    # Lost a race with permanent removal; register afresh
                    continue

                if session.is_live:
                    logger.warning(f"[SUPERVISOR] Rejected duplicate connect for {config.id}")
                    raise AlreadyConnectedError(config.id)

                session.config = config
                self._begin_dial(session)
                if created:
                    set_session_count(len(self._registry))
                return session.state.copy()

    async def connect_profile(
        self,
        profile_id: str,
        profiles: ProfileStore,
        auto_reconnect: bool | None = None,
    ) -> SessionState:
        """Connect using a saved profile; the profile id becomes the session id.

        Raises:
            ProfileNotFoundError: If the profile does not exist
            AlreadyConnectedError: If that session is already live
        """
        profile = profiles.get_profile(profile_id)
        if profile is None:
            raise ProfileNotFoundError(profile_id)

        if auto_reconnect is None:
            auto_reconnect = self._settings.default_auto_reconnect
        return await self.connect(profile.to_session_config(auto_reconnect))

    async def disconnect(self, session_id: str, permanent: bool = False) -> bool:
        if permanent:
            return await self.disconnect_permanent(session_id)
        return await self.disconnect_temporary(session_id)

    async def disconnect_temporary(self, session_id: str) -> bool:
        """Close the connection and keep the config for a later reconnect.

        Returns:
            False if the id is unknown
        """
        session = self._registry.get(session_id)
        if session is None:
            logger.warning(f"[SUPERVISOR] Disconnect for unknown bot {session_id}")
            return False

        async with session.lock:
            if session.removed:
                return False

            self._scheduler.cancel(session_id)
            handle = session.detach_handle()
            await self._quit_quietly(session, handle)

            self._set_status(session, SessionStatus.OFFLINE)
            self._log(session_id, SYSTEM_SENDER, "Disconnected by user")
            self._announce(session)
            return True

    async def disconnect_permanent(self, session_id: str) -> bool:
        """Close the connection and forget the session. Unknown ids are a no-op.

        Chat history is kept.
        """
        session = self._registry.get(session_id)
        if session is None:
            return False

        async with session.lock:
            if session.removed:
                return False

            self._scheduler.cancel(session_id)
            handle = session.detach_handle()
            await self._quit_quietly(session, handle)

            session.removed = True
            self._set_status(session, SessionStatus.OFFLINE)
            self._log(session_id, SYSTEM_SENDER, "Disconnected by user")
            self._announce(session)

            await self._registry.remove(session)
            session.cancel_all_tasks()

        set_session_count(len(self._registry))
        logger.info(f"[SUPERVISOR] Removed {session_id}")
        return True

    async def reconnect(self, session_id: str) -> SessionState:
        """Drop whatever connection exists and dial again right away.

        Re-enables auto-reconnect.

        Raises:
            ConfigNotFoundError: If the id was never connected or was removed
        """
        session = self._registry.get(session_id)
        if session is None:
            raise ConfigNotFoundError(session_id)

        async with session.lock:
            if session.removed:
                raise ConfigNotFoundError(session_id)

            self._scheduler.cancel(session_id)
            handle = session.detach_handle()
            await self._quit_quietly(session, handle)

            session.config = session.config.with_auto_reconnect(True)
            logger.info(f"[SUPERVISOR] Manual reconnect for {session_id}")
            self._begin_dial(session)
            return session.state.copy()

    async def set_auto_reconnect(self, session_id: str, enabled: bool) -> SessionState:
        """Flip the auto-reconnect policy.

        Disabling it cancels a pending timer and settles the session offline.

        Raises:
            UnknownSessionError: If the id is not tracked
        """
        session = self._registry.get(session_id)
        if session is None:
            raise UnknownSessionError(session_id)

        async with session.lock:
            if session.removed:
                raise UnknownSessionError(session_id)

            session.config = session.config.with_auto_reconnect(enabled)
            session.state.auto_reconnect = enabled

            if not enabled and self._scheduler.cancel(session_id):
                self._set_status(session, SessionStatus.OFFLINE)
                self._log(session_id, SYSTEM_SENDER, "Auto-reconnect cancelled")

            self._announce(session)
            return session.state.copy()

    async def send_chat(self, session_id: str, text: str) -> bool:
        """Send chat through the live connection and log it.

        Never raises for a missing connection or a send failure.

        Returns:
            True if the protocol layer accepted the message
        """
        session = self._registry.get(session_id)
        if session is None:
            logger.warning(f"[SUPERVISOR] Chat for unknown bot {session_id} dropped")
            return False

        async with session.lock:
            handle = session.handle
            if session.removed or handle is None:
                logger.warning(f"[SUPERVISOR] Chat for {session_id} dropped: not connected")
                return False

            try:
                await handle.send_chat(text)
            except Exception as e:
                logger.warning(f"[SUPERVISOR] Send failed for {session_id}: {e}")
                self._log(session_id, SYSTEM_SENDER, f"Failed to send message: {e}")
                return False

            self._log(session_id, self._settings.operator_name, text, ChatKind.CHAT)
            return True

    # =========================================================================
    # Queries
    # =========================================================================

    def get_status(self, session_id: str) -> SessionState | None:
        session = self._registry.get(session_id)
        if session is None or session.removed:
            return None
        return session.state.copy()

    def get_all_statuses(self) -> list[SessionState]:
        """Snapshot of every tracked session, in registration order."""
        return [s.state.copy() for s in self._registry if not s.removed]

    def get_chat_logs(self, session_id: str, limit: int = 100) -> list[ChatEvent]:
        return self._chat_logs.recent(session_id, limit)

    # =========================================================================
    # Observers
    # =========================================================================

    def attach_observer(self, observer: Observer) -> None:
        """Attach an observer; its first frame is the current snapshot."""
        snapshot = initial_status_message(self.get_all_statuses())
        self._broadcaster.attach(observer, initial=snapshot)

    async def detach_observer(self, connection_id: str) -> bool:
        return await self._broadcaster.detach(connection_id)

    # =========================================================================
    # Dialing
    # =========================================================================

    def _new_session(self, config: SessionConfig) -> Session:
        session = Session.create(config, self._settings.session_event_queue_size)
        session.pump_task = create_safe_task(
            self._pump(session),
            name=f"session-pump:{config.id}",
        )
        return session

    def _begin_dial(self, session: Session, *, retry: bool = False) -> None:
        """Start a fresh connection attempt. Caller holds the session lock."""
        self._scheduler.cancel(session.id)
        epoch = session.next_epoch()

        state = session.state
        state.auto_reconnect = session.config.auto_reconnect
        state.vitals = Vitals()
        state.position = Position()
        state.last_error = None
        self._set_status(session, SessionStatus.CONNECTING)
        self._announce(session)
        self._log(session.id, SYSTEM_SENDER, f"Connecting to {session.config.endpoint}...")

        session.dial_task = create_safe_task(
            self._dial(session, epoch, retry),
            name=f"dial:{session.id}",
        )

    async def _dial(self, session: Session, epoch: int, retry: bool) -> None:
        config = session.config
        on_event = partial(self._deliver, session, epoch)

        try:
            handle = await self._connector.connect(config.endpoint, config.credentials, on_event)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await self._on_dial_failed(session, epoch, retry, e)
            return

        try:
            async with session.lock:
                if not session.removed and session.epoch == epoch:
                    session.handle = handle
                    session.dial_task = None
                    logger.info(f"[SUPERVISOR] {session.id} dialed {config.endpoint}")
                    return
        except asyncio.CancelledError:
            await self._quit_quietly(session, handle)
            raise

        # Superseded while dialing
        await self._quit_quietly(session, handle)

    async def _on_dial_failed(
        self,
        session: Session,
        epoch: int,
        retry: bool,
        error: Exception,
    ) -> None:
        message = error.message if isinstance(error, SupervisorError) else str(error)
        async with session.lock:
            if session.removed or session.epoch != epoch:
                return

            session.dial_task = None
            prefix = "Reconnection failed" if retry else "Failed to connect"
            logger.warning(f"[SUPERVISOR] {session.id} dial failed: {message}")
            self._log(session.id, SYSTEM_SENDER, f"{prefix}: {message}")
            self._enter_down(session, SessionStatus.ERROR, error=message)

    async def _on_reconnect_due(self, session_id: str, generation: int) -> None:
        session = self._registry.get(session_id)
        if session is None:
            return

        async with session.lock:
            if session.removed or not self._scheduler.claim(session_id, generation):
                return
            if session.is_live:
                return

            logger.info(f"[SUPERVISOR] Auto-reconnecting {session_id}")
            self._begin_dial(session, retry=True)

    # =========================================================================
    # Protocol Events
    # =========================================================================

    def _deliver(self, session: Session, epoch: int, event: ProtocolEvent) -> None:
        """``on_event`` callback handed to the connector. Never blocks."""
        if session.removed or epoch != session.epoch:
            return
        session.offer(epoch, event)

    async def _pump(self, session: Session) -> None:
        while True:
            epoch, event = await session.events.get()
            if epoch == session.epoch:
                # Events can outrun the dial task storing the handle
                dial_task = session.dial_task
                if session.handle is None and dial_task is not None and not dial_task.done():
                    await asyncio.wait({dial_task})

                if not await self._dispatch(session, epoch, event):
                    return

            # A queued burst must not hold the loop: observer writers and
            # other sessions' pumps run between events
            await asyncio.sleep(0)

    async def _dispatch(self, session: Session, epoch: int, event: ProtocolEvent) -> bool:
        """Run the handler for one event under the session lock.

        Returns:
            False once the session has been removed
        """
        async with session.lock:
            if session.removed:
                return False
            if epoch != session.epoch or session.handle is None:
                logger.debug(f"[SUPERVISOR] {session.id} dropped stale {type(event).__name__}")
                return True

            handler = self._event_handlers.get(type(event))
            if handler is None:
                logger.warning(f"[SUPERVISOR] Unhandled event {type(event).__name__}")
                return True

            try:
                await handler(session, event)
            except Exception as e:
                logger.exception(
                    f"[SUPERVISOR] Handler for {type(event).__name__} on {session.id} failed: {e}"
                )
            return True

    async def _on_spawned(self, session: Session, event: Spawned) -> None:
        state = session.state
        first_spawn = state.status != SessionStatus.ONLINE

        if event.health is not None or event.food is not None:
            state.vitals = Vitals(
                health=state.vitals.health if event.health is None else event.health,
                food=state.vitals.food if event.food is None else event.food,
            )
        if event.position is not None:
            state.position = event.position

        if first_spawn:
            self._set_status(session, SessionStatus.ONLINE)
            self._log(session.id, SYSTEM_SENDER, "Connected successfully!")
            if session.config.credentials.password:
                session.login_task = create_safe_task(
                    self._login(session, session.epoch),
                    name=f"login:{session.id}",
                )

        self._announce(session)

    async def _login(self, session: Session, epoch: int) -> None:
        await asyncio.sleep(self._settings.login_delay_seconds)

        async with session.lock:
            handle = session.handle
            if session.removed or session.epoch != epoch or handle is None:
                return

            session.login_task = None
            password = session.config.credentials.password
            try:
                await handle.send_chat(f"/login {password}")
            except Exception as e:
                logger.warning(f"[SUPERVISOR] Login for {session.id} failed: {e}")
                self._log(session.id, SYSTEM_SENDER, f"Failed to send message: {e}")
                return

            self._log(session.id, SYSTEM_SENDER, "Executing login command...")

    async def _on_health(self, session: Session, event: HealthChanged) -> None:
        session.state.vitals = Vitals(health=event.health, food=event.food)
        self._announce(session)

    async def _on_moved(self, session: Session, event: Moved) -> None:
        session.state.position = event.position
        self._announce(session)

    async def _on_chat(self, session: Session, event: ChatReceived) -> None:
        self._log(session.id, event.sender, event.text, ChatKind.CHAT)

    async def _on_whisper(self, session: Session, event: WhisperReceived) -> None:
        self._log(session.id, event.sender, event.text, ChatKind.WHISPER)

        command = self._responder.respond(event.sender, event.text)
        if command is None:
            return

        logger.info(f"[SUPERVISOR] {session.id} auto-responding to {event.sender}: {command}")
        session.track_reply(
            create_safe_task(
                self._send_reply(session.id, command),
                name=f"auto-reply:{session.id}",
            )
        )

    async def _send_reply(self, session_id: str, command: str) -> None:
        await asyncio.sleep(self._settings.responder_delay_seconds)
        await self.send_chat(session_id, command)

    async def _on_kicked(self, session: Session, event: Kicked) -> None:
        self._log(session.id, SYSTEM_SENDER, f"Kicked: {event.reason}")
        handle = session.detach_handle()
        await self._quit_quietly(session, handle)
        self._enter_down(session, SessionStatus.OFFLINE)

    async def _on_ended(self, session: Session, event: Ended) -> None:
        self._log(session.id, SYSTEM_SENDER, f"Disconnected: {event.reason or 'Unknown reason'}")
        handle = session.detach_handle()
        await self._quit_quietly(session, handle)
        self._enter_down(session, SessionStatus.OFFLINE)

    async def _on_failure(self, session: Session, event: ProtocolFailure) -> None:
        self._log(session.id, SYSTEM_SENDER, f"Error: {event.message}")
        handle = session.detach_handle()
        await self._quit_quietly(session, handle)
        self._enter_down(session, SessionStatus.ERROR, error=event.message)

    # =========================================================================
    # Transitions & Publishing
    # =========================================================================

    def _enter_down(
        self,
        session: Session,
        status: SessionStatus,
        error: str | None = None,
    ) -> None:
        """Settle at offline/error, then schedule a reconnect if enabled."""
        if error is not None:
            session.state.last_error = error
        self._set_status(session, status)
        self._announce(session)

        if not session.config.auto_reconnect or not self._running:
            return

        delay = self._scheduler.delay
        self._log(session.id, SYSTEM_SENDER, f"Auto-reconnecting in {delay:g} seconds...")
        self._set_status(session, SessionStatus.RECONNECTING)
        self._announce(session)
        self._scheduler.schedule(session.id, self._on_reconnect_due)
        record_reconnect_scheduled()

    def _set_status(self, session: Session, status: SessionStatus) -> None:
        old_status = session.state.status
        if old_status == status:
            return

        session.state.status = status
        record_transition(status.value)
        logger.info(
            f"[SUPERVISOR] {session.state.display_name} ({session.id}) "
            f"status: {old_status.value} → {status.value}"
        )

    def _announce(self, session: Session) -> None:
        self._broadcaster.publish(bot_status_message(session.state))

    def _log(
        self,
        session_id: str,
        sender: str,
        content: str,
        kind: ChatKind = ChatKind.SYSTEM,
    ) -> ChatEvent:
        event = ChatEvent(session_id=session_id, sender=sender, content=content, kind=kind)
        self._chat_logs.append(event)
        record_chat_event(kind.value)
        self._broadcaster.publish(chat_log_message(event))
        return event

    async def _quit_quietly(self, session: Session, handle: SessionHandle | None) -> None:
        if handle is None:
            return
        try:
            await handle.quit()
        except Exception as e:
            logger.warning(f"[SUPERVISOR] Quit for {session.id} raised: {e}")


def get_supervisor() -> Supervisor:
    """Get or create the singleton supervisor instance."""
    global _supervisor
    if _supervisor is None:
        _supervisor = Supervisor(load_connector(get_settings().protocol_connector))
    return _supervisor


def set_supervisor(supervisor: Supervisor | None) -> None:
    """Replace the singleton (tests and custom wiring)."""
    global _supervisor
    _supervisor = supervisor


async def init_supervisor(connector: ProtocolConnector | None = None) -> Supervisor:
    """Initialize and start the supervisor.

    Should be called during application startup.
    """
    global _supervisor
    if _supervisor is None and connector is not None:
        _supervisor = Supervisor(connector)
    supervisor = get_supervisor()
    await supervisor.start()
    return supervisor


async def shutdown_supervisor() -> None:
    """Shutdown the supervisor.

    Should be called during application shutdown.
    """
    global _supervisor
    if _supervisor:
        await _supervisor.stop()
        _supervisor = None
