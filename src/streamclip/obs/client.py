"""obs-websocket v5 control client."""

from __future__ import annotations

import asyncio
import base64
import hashlib
import json
import uuid
from collections import defaultdict
from typing import Any, Callable, Protocol

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from streamclip.utils.progress import log_step, log_warning

OP_HELLO = 0
OP_IDENTIFY = 1
OP_IDENTIFIED = 2
OP_EVENT = 5
OP_REQUEST = 6
OP_REQUEST_RESPONSE = 7

RPC_VERSION = 1

# EventSubscription bit flags
SUB_GENERAL = 1 << 0
SUB_OUTPUTS = 1 << 6

CLOSE_AUTHENTICATION_FAILED = 4009

EventHandler = Callable[[dict], None]


class ObsError(Exception):
    """Base class for control-protocol failures."""


class ObsConnectionError(ObsError, ConnectionError):
    """The connection could not be established or was lost."""


class ObsAuthError(ObsError):
    """The server rejected the password."""


class ObsRequestError(ObsError):
    """A request completed with ``result: false``."""

    def __init__(self, request_type: str, code: int | None, comment: str | None):
        self.request_type = request_type
        self.code = code
        self.comment = comment
        super().__init__(f"{request_type} failed (code={code}): {comment or 'no comment'}")


CONTROL_ERRORS = (ObsError, OSError, asyncio.TimeoutError, WebSocketException)


class ControlClient(Protocol):
    """What the controller needs from a recording-tool connection."""

    @property
    def identified(self) -> bool: ...

    async def connect(self) -> None: ...
    async def disconnect(self) -> None: ...
    async def call(self, request_type: str, data: dict[str, Any] | None = None) -> dict[str, Any]: ...
    def on(self, event_type: str, handler: EventHandler) -> None: ...


def auth_response(password: str, salt: str, challenge: str) -> str:
    """Compute the Identify ``authentication`` string."""
    secret = base64.b64encode(hashlib.sha256((password + salt).encode()).digest()).decode()
    return base64.b64encode(hashlib.sha256((secret + challenge).encode()).digest()).decode()


class ObsWebSocketClient:
    """Speaks obs-websocket v5: Hello → Identify → Identified, then requests.

    Responses are matched to requests by ``requestId``; events are handed to
    handlers registered with :meth:`on`.
    """

    def __init__(
        self,
        url: str,
        password: str | None = None,
        *,
        request_timeout: float = 5.0,
        event_subscriptions: int = SUB_GENERAL | SUB_OUTPUTS,
    ):
        self.url = url
        self.password = password
        self.request_timeout = request_timeout
        self.event_subscriptions = event_subscriptions
        self._ws: ClientConnection | None = None
        self._reader: asyncio.Task | None = None
        self._pending: dict[str, asyncio.Future] = {}
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._identified = False

    @property
    def identified(self) -> bool:
        return self._identified

    def on(self, event_type: str, handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)

    async def connect(self) -> None:
        ws = await connect(self.url, open_timeout=self.request_timeout)
        try:
            hello = await self._recv(ws)
            if hello.get("op") != OP_HELLO:
                raise ObsConnectionError(f"Expected Hello, got op={hello.get('op')}")

            identify: dict[str, Any] = {
                "rpcVersion": RPC_VERSION,
                "eventSubscriptions": self.event_subscriptions,
            }
            auth = hello.get("d", {}).get("authentication")
            if auth:
                if not self.password:
                    raise ObsAuthError("Server requires a password but none is configured")
                identify["authentication"] = auth_response(
                    self.password, auth["salt"], auth["challenge"]
                )
            await ws.send(json.dumps({"op": OP_IDENTIFY, "d": identify}))

            identified = await self._recv(ws)
            if identified.get("op") != OP_IDENTIFIED:
                raise ObsConnectionError(f"Expected Identified, got op={identified.get('op')}")
        except ConnectionClosed as e:
            await ws.close()
            if e.rcvd is not None and e.rcvd.code == CLOSE_AUTHENTICATION_FAILED:
                raise ObsAuthError("Authentication failed") from e
            raise ObsConnectionError(f"Connection closed during handshake: {e}") from e
        except BaseException:
            await ws.close()
            raise

        self._ws = ws
        self._identified = True
        self._reader = asyncio.create_task(self._read_loop(ws))
        log_step("OBS", f"Identified with {self.url}")

    async def _recv(self, ws: ClientConnection) -> dict:
        raw = await asyncio.wait_for(ws.recv(), timeout=self.request_timeout)
        try:
            message = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise ObsConnectionError(f"Unreadable handshake message: {e}") from e
        if not isinstance(message, dict):
            raise ObsConnectionError("Handshake message is not a JSON object")
        return message

    async def disconnect(self) -> None:
        self._identified = False
        if self._reader is not None:
            self._reader.cancel()
            self._reader = None
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        self._fail_pending(ObsConnectionError("Disconnected"))

    async def call(self, request_type: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send a request and wait for its response data."""
        if not self._identified or self._ws is None:
            raise ObsConnectionError("Not connected to OBS")

        request_id = uuid.uuid4().hex
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            await self._ws.send(json.dumps({
                "op": OP_REQUEST,
                "d": {
                    "requestType": request_type,
                    "requestId": request_id,
                    "requestData": data or {},
                },
            }))
            response = await asyncio.wait_for(future, timeout=self.request_timeout)
        finally:
            self._pending.pop(request_id, None)

        status = response.get("requestStatus", {})
        if not status.get("result"):
            raise ObsRequestError(request_type, status.get("code"), status.get("comment"))
        return response.get("responseData") or {}

    async def _read_loop(self, ws: ClientConnection) -> None:
        try:
            async for raw in ws:
                try:
                    message = json.loads(raw)
                except (TypeError, ValueError):
                    log_warning("OBS sent an unreadable message")
                    continue
                op = message.get("op")
                d = message.get("d", {})
                if op == OP_REQUEST_RESPONSE:
                    future = self._pending.get(d.get("requestId"))
                    if future is not None and not future.done():
                        future.set_result(d)
                elif op == OP_EVENT:
                    self._dispatch(d.get("eventType", ""), d.get("eventData") or {})
        except ConnectionClosed as e:
            log_warning(f"OBS connection closed: {e}")
        finally:
            self._identified = False
            self._fail_pending(ObsConnectionError("Connection to OBS lost"))

    def _dispatch(self, event_type: str, data: dict) -> None:
        for handler in self._handlers.get(event_type, []):
            try:
                handler(data)
            except Exception as e:
                log_warning(f"OBS {event_type} handler failed: {e}")

    def _fail_pending(self, error: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()
