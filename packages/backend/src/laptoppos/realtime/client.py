"""Realtime client — one WebSocket to /ws with fixed-interval reconnect.

Learn: The connection lifecycle is:

  connect() → socket created → on_open → auth sent → messages routed
                                  ↓
                               on_close → retry in 3s (up to 5 times)
                                  ↓
                          retries exhausted → "connection lost" toast

websocket-client delivers callbacks on its own thread, while connect()
and disconnect() run on the caller's thread and the reconnect timer on a
third. All connection state is therefore guarded by one lock, and every
callback checks that it came from the *current* socket so late events
from a torn-down socket are ignored.

There is no module-level instance. Whoever owns the session constructs a
RealtimeConnection with the real tenant/user identity and keeps it.
"""

import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol
from urllib.parse import urlsplit

import structlog
import websocket
from pydantic import ValidationError

from laptoppos.config import settings
from laptoppos.realtime.invalidation import CacheController
from laptoppos.realtime.messages import AuthMessage, InboundMessage
from laptoppos.realtime.notifications import Notifier, notify_connection_lost
from laptoppos.realtime.router import MessageRouter

logger = structlog.get_logger()

WS_PATH = "/ws"


@dataclass(frozen=True)
class SessionIdentity:
    """Who this connection authenticates as. Comes from the login session."""
    tenant_id: str
    user_id: str


def build_ws_url(base_url: str) -> str:
    """Map the page origin to the socket endpoint.

    https://shop.example.com → wss://shop.example.com/ws
    http://localhost:5000    → ws://localhost:5000/ws
    """
    parts = urlsplit(base_url)
    if not parts.netloc:
        raise ValueError(f"Base URL has no host: {base_url!r}")
    scheme = "wss" if parts.scheme in ("https", "wss") else "ws"
    return f"{scheme}://{parts.netloc}{WS_PATH}"


# ─── Transport seams ─────────────────────────────────────


class Socket(Protocol):
    def start(self) -> None: ...
    def send(self, text: str) -> None: ...
    def close(self) -> None: ...
    def is_open(self) -> bool: ...


class Cancellable(Protocol):
    def cancel(self) -> None: ...


SocketFactory = Callable[..., Socket]
Scheduler = Callable[[float, Callable[[], None]], Cancellable]


class WebSocketAppSocket:
    """Socket backed by websocket-client's WebSocketApp.

    run_forever() blocks, so it runs on a daemon thread. on_close is
    guaranteed to fire exactly once, even when the handshake itself fails.
    """

    def __init__(self, url: str, on_open, on_message, on_error, on_close):
        self.url = url
        self._on_close = on_close
        self._close_lock = threading.Lock()
        self._close_delivered = False
        self._thread: Optional[threading.Thread] = None
        self._app = websocket.WebSocketApp(
            url,
            on_open=lambda ws: on_open(self),
            on_message=lambda ws, msg: on_message(self, msg),
            on_error=lambda ws, err: on_error(self, err),
            on_close=lambda ws, code, reason: self._deliver_close(code, reason),
        )

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._run, name="laptoppos-realtime", daemon=True
        )
        self._thread.start()

    def _run(self) -> None:
        try:
            self._app.run_forever()
        except Exception as e:
            logger.warning("realtime.socket_loop_failed", url=self.url, error=str(e))
        finally:
            self._deliver_close(None, None)

    def _deliver_close(self, code, reason) -> None:
        with self._close_lock:
            if self._close_delivered:
                return
            self._close_delivered = True
        self._on_close(self, code, reason)

    def send(self, text: str) -> None:
        self._app.send(text)

    def close(self) -> None:
        self._app.close()

    def is_open(self) -> bool:
        sock = self._app.sock
        return sock is not None and sock.connected


def timer_scheduler(delay: float, callback: Callable[[], None]) -> threading.Timer:
    """Run `callback` once after `delay` seconds; the Timer is the cancel handle."""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


# ─── Connection ──────────────────────────────────────────


class RealtimeConnection:
    """Owns the socket, the reconnect policy and the message router."""

    def __init__(
        self,
        identity: SessionIdentity,
        base_url: Optional[str] = None,
        *,
        socket_factory: Optional[SocketFactory] = None,
        scheduler: Optional[Scheduler] = None,
        max_reconnect_attempts: Optional[int] = None,
        reconnect_interval: Optional[float] = None,
    ):
        self.identity = identity
        self.base_url = base_url or settings.api_url
        self.max_reconnect_attempts = (
            settings.ws_reconnect_attempts
            if max_reconnect_attempts is None
            else max_reconnect_attempts
        )
        self.reconnect_interval = (
            settings.ws_reconnect_interval_seconds
            if reconnect_interval is None
            else reconnect_interval
        )
        self._socket_factory = socket_factory or WebSocketAppSocket
        self._scheduler = scheduler or timer_scheduler

        self._lock = threading.RLock()
        self._socket: Optional[Socket] = None
        self._reconnect_handle: Optional[Cancellable] = None
        self._router = MessageRouter(None, None)
        self.reconnect_attempts = 0
        self.is_connecting = False
        self.permanently_lost = False

    # ── Public API ──────────────────────────────────────

    def connect(
        self,
        cache: Optional[CacheController] = None,
        notifier: Optional[Notifier] = None,
    ) -> None:
        """Open the connection unless one is open or already being opened."""
        with self._lock:
            if self._busy():
                return
            self._router = MessageRouter(cache, notifier)
            self._cancel_reconnect()
            if self.permanently_lost:
                self.reconnect_attempts = 0
                self.permanently_lost = False
            self._open()

    def disconnect(self) -> None:
        """Close the socket and cancel any pending reconnect. Idempotent."""
        with self._lock:
            self._cancel_reconnect()
            sock = self._socket
            self._socket = None
            self.is_connecting = False

        if sock is not None:
            logger.info("realtime.disconnecting")
            try:
                sock.close()
            except Exception as e:
                logger.warning("realtime.close_failed", error=str(e))

    def is_connected(self) -> bool:
        sock = self._socket
        return sock is not None and sock.is_open()

    # ── Internals ───────────────────────────────────────

    def _busy(self) -> bool:
        return self.is_connecting or (self._socket is not None and self._socket.is_open())

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    def _open(self) -> None:
        """Create and start a socket. Caller holds the lock."""
        self.is_connecting = True
        try:
            url = build_ws_url(self.base_url)
            logger.info("realtime.connecting", url=url)
            sock = self._socket_factory(
                url,
                on_open=self._on_open,
                on_message=self._on_message,
                on_error=self._on_error,
                on_close=self._on_close,
            )
            self._socket = sock
            sock.start()
        except Exception as e:
            # No automatic retry: the caller has to connect() again
            logger.error("realtime.connect_failed", base_url=self.base_url, error=str(e))
            self.is_connecting = False
            self._socket = None

    def _reconnect(self) -> None:
        with self._lock:
            self._reconnect_handle = None
            if self._busy():
                return
            self._open()

    def _send_auth(self, sock: Socket) -> None:
        if not sock.is_open():
            return
        auth = AuthMessage(tenant_id=self.identity.tenant_id, user_id=self.identity.user_id)
        try:
            sock.send(auth.to_wire())
        except Exception as e:
            logger.warning("realtime.auth_send_failed", error=str(e))

    # ── Socket callbacks ────────────────────────────────

    def _on_open(self, sock: Socket) -> None:
        with self._lock:
            if sock is not self._socket:
                return
            self.reconnect_attempts = 0
            self.is_connecting = False
            self.permanently_lost = False

        logger.info("realtime.connected", tenant_id=self.identity.tenant_id)
        self._send_auth(sock)

    def _on_message(self, sock: Socket, raw: Any) -> None:
        if sock is not self._socket:
            return
        try:
            message = InboundMessage.model_validate_json(raw)
        except (ValidationError, ValueError, TypeError) as e:
            logger.warning("realtime.bad_message", error=str(e))
            return

        try:
            self._router.dispatch(message)
        except Exception:
            logger.exception("realtime.dispatch_failed", message_type=message.type)

    def _on_error(self, sock: Socket, error: Any) -> None:
        logger.warning("realtime.socket_error", error=str(error))
        with self._lock:
            if sock is self._socket:
                self.is_connecting = False

    def _on_close(self, sock: Socket, code: Any = None, reason: Any = None) -> None:
        gave_up = False
        with self._lock:
            if sock is not self._socket:
                # Socket was replaced or disconnect() already dropped it
                return
            self.is_connecting = False
            self._socket = None

            if self.reconnect_attempts < self.max_reconnect_attempts:
                self.reconnect_attempts += 1
                logger.info(
                    "realtime.reconnect_scheduled",
                    code=code,
                    reason=reason,
                    attempt=self.reconnect_attempts,
                    max_attempts=self.max_reconnect_attempts,
                    delay=self.reconnect_interval,
                )
                self._reconnect_handle = self._scheduler(
                    self.reconnect_interval, self._reconnect
                )
            else:
                self.permanently_lost = True
                gave_up = True

        if gave_up:
            logger.error(
                "realtime.connection_lost",
                attempts=self.reconnect_attempts,
                code=code,
                reason=reason,
            )
            notifier = self._router.notifier
            if notifier is not None:
                try:
                    notify_connection_lost(notifier)
                except Exception:
                    logger.exception("realtime.notify_failed")
