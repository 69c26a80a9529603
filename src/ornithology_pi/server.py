"""
Server Loop
===========

Advertise -> accept -> serve lifecycle of the Bluetooth service.

Startup (any failure aborts with AdapterError):
    1. Power the adapter
    2. Make it discoverable with no timeout
    3. Disable pairing
    4. Register the no-interaction pairing agent
    5. Start the advertisement
    6. Register the RFCOMM service endpoint

Serving:
    Inbound connection requests are accepted one after the other; each
    accepted stream is served by its own ConnectionHandler task, so a slow
    client never holds up the others. A failed accept is logged and the
    loop keeps listening.

Shutdown:
    stop() raises the shutdown signal. The accept loop wakes up, open
    connections are cancelled, and the advertisement, endpoint and agent
    are released in that order.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set, Tuple

from ornithology_pi.bluetooth.capabilities import (
    AdapterControl,
    Broadcaster,
    ByteStream,
    ConnectionRequest,
    EndpointRegistrar,
)
from ornithology_pi.bluetooth.profile import SERVICE_NAME, SERVICE_UUID
from ornithology_pi.errors import AcceptError, AdapterError
from ornithology_pi.protocol.handler import MAX_FRAME_SIZE, ConnectionHandler
from ornithology_pi.sightings.store import SightingsStore
from ornithology_pi.sightings.thumbnail import ThumbnailService


logger = logging.getLogger(__name__)


class ServerLoop:
    """
    Top-level orchestrator of the Bluetooth service.

    Attributes:
        adapter: Local adapter control
        broadcaster: Discovery beacon
        registrar: RFCOMM service endpoint
        store: Shared sightings log
        thumbnails: Thumbnail service used by the handlers

    Example:
        server = ServerLoop(adapter, broadcaster, registrar, store, thumbnails)

        task = asyncio.create_task(server.run())
        ...
        server.stop()
        await task
    """

    def __init__(
        self,
        adapter: AdapterControl,
        broadcaster: Broadcaster,
        registrar: EndpointRegistrar,
        store: SightingsStore,
        thumbnails: ThumbnailService,
        service_name: str = SERVICE_NAME,
        service_uuid: str = SERVICE_UUID,
        max_frame_size: int = MAX_FRAME_SIZE,
        idle_timeout: Optional[float] = None,
        discoverable_timeout: int = 0,
        teardown_grace: float = 1.0,
    ) -> None:
        self.adapter = adapter
        self.broadcaster = broadcaster
        self.registrar = registrar
        self.store = store
        self.thumbnails = thumbnails
        self.service_name = service_name
        self.service_uuid = service_uuid
        self.max_frame_size = max_frame_size
        self.idle_timeout = idle_timeout
        self.discoverable_timeout = discoverable_timeout
        self.teardown_grace = teardown_grace

        self._stop_event = asyncio.Event()
        self._connections: Set[asyncio.Task] = set()

        # Steps to undo on teardown
        self._agent_registered = False
        self._advertising = False
        self._endpoint_registered = False

    @property
    def active_connections(self) -> int:
        return len(self._connections)

    def stop(self) -> None:
        """Raise the shutdown signal. Safe to call from a signal handler."""
        if not self._stop_event.is_set():
            logger.info("Shutdown requested")
            self._stop_event.set()

    async def run(self) -> None:
        """Start, serve until stop() is called, then tear down."""
        try:
            await self.start()
            await self.serve()
        finally:
            await self.teardown()

    async def start(self) -> None:
        """
        Run the startup sequence.

        Raises:
            AdapterError: If any step fails
        """
        steps: List[Tuple[str, Callable[[], Awaitable[None]]]] = [
            ("power on adapter", self.adapter.power_on),
            (
                "make adapter discoverable",
                lambda: self.adapter.make_discoverable(self.discoverable_timeout),
            ),
            ("disable pairing", lambda: self.adapter.set_pairable(False)),
            ("register pairing agent", self._register_agent),
            ("start advertising", self._start_advertising),
            ("register service endpoint", self._register_endpoint),
        ]

        for description, step in steps:
            try:
                await step()
            except AdapterError:
                raise
            except Exception as e:
                raise AdapterError(f"Failed to {description}: {e}") from e

        try:
            address = await self.adapter.address()
        except Exception as e:
            raise AdapterError(f"Failed to read adapter address: {e}") from e

        logger.info(
            f"Advertising on Bluetooth adapter {self.adapter.name} "
            f"with address {address} and service {self.service_uuid}"
        )

    async def _register_agent(self) -> None:
        await self.adapter.register_pairing_agent()
        self._agent_registered = True

    async def _start_advertising(self) -> None:
        await self.broadcaster.start(self.service_name, [self.service_uuid])
        self._advertising = True

    async def _register_endpoint(self) -> None:
        await self.registrar.register()
        self._endpoint_registered = True

    async def serve(self) -> None:
        """Accept connections until shutdown or until the endpoint is released."""
        while not self._stop_event.is_set():
            logger.info("Waiting for connection...")
            request = await self._next_request()
            if request is None:
                break

            try:
                stream = await request.accept()
            except AcceptError as e:
                logger.warning(f"Accepting connection failed: {e}")
                continue

            task = asyncio.create_task(
                self._serve_connection(stream),
                name=f"connection-{request.device}",
            )
            self._connections.add(task)
            task.add_done_callback(self._connections.discard)

        logger.info("Accept loop stopped")

    async def _next_request(self) -> Optional[ConnectionRequest]:
        """Next connection request, or None on shutdown."""
        request_task = asyncio.ensure_future(self.registrar.next_request())
        stop_task = asyncio.ensure_future(self._stop_event.wait())
        try:
            await asyncio.wait(
                {request_task, stop_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            stop_task.cancel()
            if not request_task.done():
                request_task.cancel()
                await asyncio.gather(request_task, return_exceptions=True)

        if request_task.cancelled():
            return None

        request = request_task.result()
        if request is None:
            logger.info("Service endpoint released")
            return None
        if self._stop_event.is_set():
            request.reject()
            return None
        return request

    async def _serve_connection(self, stream: ByteStream) -> None:
        handler = ConnectionHandler(
            stream,
            self.store,
            self.thumbnails,
            max_frame_size=self.max_frame_size,
            idle_timeout=self.idle_timeout,
        )
        try:
            await handler.run()
        except Exception as e:
            logger.exception(f"Connection with {stream.peer} failed: {e}")
        finally:
            await stream.close()

    async def teardown(self) -> None:
        """Close open connections and release everything startup acquired."""
        self._stop_event.set()

        connections = list(self._connections)
        for task in connections:
            task.cancel()
        if connections:
            logger.info(f"Closing {len(connections)} open connection(s)")
            await asyncio.gather(*connections, return_exceptions=True)

        if self._advertising:
            logger.info("Removing advertisement")
            await self._release("stop advertising", self.broadcaster.stop)
            self._advertising = False

        if self._endpoint_registered:
            await self._release("unregister service endpoint", self.registrar.unregister)
            self._endpoint_registered = False

        if self._agent_registered:
            await self._release(
                "unregister pairing agent", self.adapter.unregister_pairing_agent
            )
            self._agent_registered = False

        if self.teardown_grace > 0:
            await asyncio.sleep(self.teardown_grace)
        logger.info("Teardown complete")

    async def _release(self, description: str, step: Callable[[], Awaitable[None]]) -> None:
        try:
            await step()
        except Exception as e:
            logger.error(f"Failed to {description}: {e}")
