"""XSWD connection: authorization, request correlation and push events."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping

from xswd.config import ConnectionConfig
from xswd.lib import oj
from xswd.protocol.errors import (
    AlreadyConnectedError,
    AuthorizationRefusedError,
    AuthorizationTimeoutError,
    NotAuthorizedError,
    RequestTimeoutError,
    XSWDError,
)
from xswd.protocol.events import EventWaiter
from xswd.protocol.messages import (
    JSONRPCError,
    MessageKind,
    PushEvent,
    classify,
    response_id,
)
from xswd.protocol.state import ConnectionState, ConnectionStateMachine
from xswd.protocol.types import AppInfo, Entity, EventType
from xswd.transport.base import Transport, TransportError
from xswd.transport.websocket import WebSocketTransport

logger = logging.getLogger(__name__)

# Returned by _parse_frame while a fragmented document is still incomplete
_INCOMPLETE = object()


class Connection:
    """
    One client-side XSWD socket.

    Opens the transport, gets the application authorized by the wallet,
    then matches responses to requests by id and keeps the latest push
    event of each type for callers that wait on it. A single receive loop
    task is the only writer of responses and events.
    """

    def __init__(
        self,
        app_info: AppInfo,
        config: ConnectionConfig | None = None,
        transport: Transport | None = None,
    ):
        """
        Args:
            app_info: Identity sent on every authorization.
            config: Endpoint and timeouts (defaults to localhost:44326/xswd).
            transport: Socket implementation (defaults to WebSocketTransport).
        """
        self.app_info = app_info
        self.config = config or ConnectionConfig()
        self.transport = transport or WebSocketTransport(self.config)

        self._state = ConnectionStateMachine()
        self._events = EventWaiter(timeout=self.config.event_timeout)
        self._pending: dict[int, asyncio.Future[dict[str, Any]]] = {}
        # Ids with a caller inside wait_for_response()
        self._waiting: set[int] = set()
        # Responses that arrived before anyone waited: id -> (arrival, frame)
        self._unclaimed: dict[int, tuple[float, dict[str, Any]]] = {}
        self._next_id = 1
        self._buffer = ""
        self._authorization: asyncio.Future[bool] | None = None
        self._receive_task: asyncio.Task | None = None

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state.state

    @property
    def is_accepted(self) -> bool:
        """True once the wallet has authorized this application."""
        return self._state.is_accepted

    def on_state_change(
        self,
        callback: Callable[[ConnectionState, ConnectionState], None],
    ) -> None:
        """Register callback for state changes."""
        self._state.on_transition(callback)

    async def initialize(self) -> bool:
        """
        Open the socket and ask the wallet to authorize this application.

        Returns:
            True if accepted. False if refused, or if the socket closed
            before the wallet decided.

        Raises:
            AlreadyConnectedError: If the socket is still open.
            TransportOpenError: If the socket cannot be opened.
            TransportError: If the socket fails before a decision.
            AuthorizationTimeoutError: If no decision arrives in time. The
                connection is left waiting; it is not closed.
        """
        if self.transport.is_connected():
            raise AlreadyConnectedError()

        # The previous loop settles its own authorization on exit
        previous = self._receive_task
        if previous is not None and not previous.done():
            await previous

        logger.debug("Initializing connection")
        self._state.reset()
        self._buffer = ""
        self._unclaimed.clear()
        self._authorization = asyncio.get_running_loop().create_future()

        try:
            await self.transport.connect()
        except TransportError as e:
            self._state.close()
            logger.error(f"Could not open {self.config.url}: {e}")
            raise

        logger.debug("Connection opened, authorizing...")
        self._state.transition(ConnectionState.WAITING_AUTH)
        self._receive_task = asyncio.create_task(
            self._receive_loop(),
            name="xswd-receive-loop",
        )

        try:
            await self._authorize()
        except TransportError:
            self._state.close()
            raise

        try:
            return await asyncio.wait_for(
                self._authorization,
                timeout=self.config.auth_timeout,
            )
        except asyncio.TimeoutError:
            raise AuthorizationTimeoutError(self.config.auth_timeout) from None

    async def send(
        self,
        entity: Entity | str,
        method: str,
        body: Mapping[str, Any],
    ) -> int:
        """
        Send a request without waiting for its response.

        The frame is `body` with the next request id added; `jsonrpc` and
        `method` are filled in when the body lacks them.

        Returns:
            The request id, to pass to wait_for_response().

        Raises:
            NotAuthorizedError: If the connection is not accepted. Nothing
                is written in that case.
            TransportError: If the write fails.
        """
        if not self._state.is_accepted:
            raise NotAuthorizedError(self._state.state)

        request_id = self._next_id
        self._next_id += 1
        logger.debug(f"Request {request_id} to {entity}: {method}")

        self._pending[request_id] = asyncio.get_running_loop().create_future()
        frame = {"jsonrpc": "2.0", "method": method, **body, "id": request_id}
        try:
            await self.transport.send(oj.dumps(frame))
        except TransportError:
            self._pending.pop(request_id, None)
            raise

        return request_id

    async def wait_for_response(
        self,
        request_id: int,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """
        Wait for the response to a request sent with send().

        The slot for the id is removed whether the wait succeeds or times
        out; a response that arrives later is dropped. A response that
        arrived before this call is kept for config.request_timeout seconds.

        Raises:
            RequestTimeoutError: If no response arrives in time.
            XSWDError: If the id is not pending.
        """
        unclaimed = self._unclaimed.pop(request_id, None)
        if unclaimed is not None:
            logger.debug(f"Response {request_id}: {unclaimed[1]}")
            return unclaimed[1]

        future = self._pending.get(request_id)
        if future is None:
            raise XSWDError(f"No pending request with id {request_id}")

        effective_timeout = timeout if timeout is not None else self.config.request_timeout
        logger.debug(f"Checking response {request_id}")
        self._waiting.add(request_id)
        try:
            response = await asyncio.wait_for(future, timeout=effective_timeout)
        except asyncio.TimeoutError:
            raise RequestTimeoutError(request_id, effective_timeout) from None
        finally:
            self._waiting.discard(request_id)
            self._pending.pop(request_id, None)

        logger.debug(f"Response {request_id}: {response}")
        return response

    async def send_sync(
        self,
        entity: Entity | str,
        method: str,
        body: Mapping[str, Any],
        wait_on_event: EventType | str | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """
        Send a request and wait for its response.

        Server-reported errors are returned, not raised: check for the
        `error` or `result` key of the returned frame.

        Args:
            entity: Wallet or daemon, for logging.
            method: RPC method name.
            body: Request body without id.
            wait_on_event: If given, also wait for this push event after
                the response arrived.
            timeout: Response timeout (defaults to config.request_timeout).

        Raises:
            NotAuthorizedError: If the connection is not accepted.
            RequestTimeoutError: If no response arrives in time.
            EventTimeoutError: If the awaited event does not arrive in time.
        """
        request_id = await self.send(entity, method, body)
        response = await self.wait_for_response(request_id, timeout)
        if wait_on_event is not None:
            await self.wait_for(wait_on_event)
        return response

    async def wait_for(
        self,
        event: EventType | str,
        timeout: float | None = None,
    ) -> Any:
        """
        Wait for the next unconsumed push of an event type.

        Raises:
            EventTimeoutError: If no push arrives in time.
        """
        return await self._events.wait_for(event, timeout)

    async def close(self) -> None:
        """Close the socket and wait for the receive loop to finish."""
        await self.transport.disconnect()

        task = self._receive_task
        self._receive_task = None
        if task is not None and not task.done():
            await task

        self._state.reset()

    async def _authorize(self) -> None:
        payload = self.app_info.to_dict()
        logger.debug(f"Sending authorization: {payload}")
        await self.transport.send(oj.dumps(payload))

    async def _receive_loop(self) -> None:
        """Feed every inbound frame to the demultiplexer until the socket ends."""
        try:
            async for frame in self.transport.receive():
                await self._handle_frame(frame)
        except TransportError as e:
            logger.error(f"Receive loop error: {e}")
            self._state.close()
            self._settle_authorization(error=e)
            await self.transport.disconnect()
            return

        logger.debug("Connection closed")
        self._state.reset()
        self._settle_authorization(accepted=False)
        await self.transport.disconnect()

    def _parse_frame(self, frame: str) -> Any:
        """Parse a frame alone, else appended to the reassembly buffer."""
        try:
            data = oj.loads(frame)
        except oj.JSONDecodeError:
            self._buffer += frame
            try:
                data = oj.loads(self._buffer)
            except oj.JSONDecodeError:
                return _INCOMPLETE
        self._buffer = ""
        return data

    async def _handle_frame(self, frame: str) -> None:
        """Route one inbound frame."""
        data = self._parse_frame(frame)
        if data is _INCOMPLETE:
            return

        try:
            kind = classify(data)
            if kind is MessageKind.AUTHORIZATION:
                self._handle_authorization(data["accepted"])
            elif kind is MessageKind.ERROR:
                error = JSONRPCError.from_dict(data["error"])
                logger.error(f"RPC error for request {data.get('id')}: {error.message}")
                self._handle_response(data)
            elif kind is MessageKind.EVENT:
                await self._handle_event(PushEvent.from_dict(data))
            elif kind is MessageKind.RESULT:
                self._handle_response(data)
            else:
                logger.debug(f"Dropping unrecognized message: {data!r}")
        except Exception:
            logger.exception("Error handling message")

    def _handle_authorization(self, accepted: bool) -> None:
        if self._state.state != ConnectionState.WAITING_AUTH:
            logger.warning(f"Ignoring authorization reply in state {self._state.state}")
            return

        if accepted:
            self._state.transition(ConnectionState.ACCEPTED)
            logger.debug("Connection accepted")
        else:
            self._state.transition(ConnectionState.REFUSED)
            logger.debug("Connection refused")
        self._settle_authorization(accepted=accepted)

    def _handle_response(self, data: dict[str, Any]) -> None:
        """Complete the pending request future with a response frame."""
        request_id = response_id(data)
        if request_id is None:
            logger.debug(f"Dropping response without id: {data!r}")
            return

        future = self._pending.get(request_id)
        if future is None or future.done():
            logger.debug(f"No pending request for id: {request_id}")
            return

        if request_id in self._waiting:
            future.set_result(data)
            return

        # Nobody is waiting yet: park the frame and forget the future
        del self._pending[request_id]
        now = asyncio.get_running_loop().time()
        self._unclaimed[request_id] = (now, data)
        self._evict_unclaimed(now)

    def _evict_unclaimed(self, now: float) -> None:
        """Drop parked responses older than the request timeout."""
        cutoff = now - self.config.request_timeout
        expired = [rid for rid, (arrived, _) in self._unclaimed.items() if arrived < cutoff]
        for rid in expired:
            del self._unclaimed[rid]
        if expired:
            logger.debug(f"Evicted unclaimed responses: {expired}")

    async def _handle_event(self, push: PushEvent) -> None:
        try:
            event_type = EventType(push.event)
        except ValueError:
            logger.warning(f"Ignoring unknown event: {push.event!r}")
            return
        await self._events.publish(event_type, push.value)

    def _settle_authorization(
        self,
        accepted: bool = False,
        error: Exception | None = None,
    ) -> None:
        """Resolve initialize() if it is still waiting for a decision."""
        future = self._authorization
        if future is None or future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(accepted)

    async def __aenter__(self) -> "Connection":
        """Initialize, raising if the application is not authorized."""
        try:
            accepted = await self.initialize()
        except BaseException:
            await self.close()
            raise

        if not accepted:
            await self.close()
            raise AuthorizationRefusedError()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
