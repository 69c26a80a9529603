"""
Connection Handler
==================

Serves one accepted connection.

Lifecycle:
    Accepted -> greeting -> {read frame -> dispatch -> write frames}* -> Closed

    Greeting: the current store size as plain ASCII digits, unframed.

Dispatch:
    Ping          -> Pong
    Pong          -> (nothing, logged)
    CountRequest  -> CountResponse
    LastRequest   -> LastResponse, terminator
    ImageRequest  -> ImageResponse, terminator
    anything else -> the received bytes, unchanged

Failure Policy:
    - Clean close, read error or idle timeout ends the connection
    - A write error drops the rest of the current response only
    - Undecodable frames are echoed, never fatal
    - Lookups that find nothing produce explicit empty responses
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Type

from ornithology_pi.bluetooth.capabilities import ByteStream
from ornithology_pi.errors import TransportError
from ornithology_pi.models.message import (
    CountRequest,
    CountResponse,
    ImageRequest,
    ImageResponse,
    LastRequest,
    LastResponse,
    Message,
    Ping,
    Pong,
    Unrecognized,
)
from ornithology_pi.models.sighting import Sighting
from ornithology_pi.protocol.codec import (
    RECORD_TERMINATOR,
    decode_message,
    encode_message,
)
from ornithology_pi.sightings.store import SightingsStore
from ornithology_pi.sightings.thumbnail import ThumbnailService


logger = logging.getLogger(__name__)


# Receive MTU of the RFCOMM channel
MAX_FRAME_SIZE = 8192


class ConnectionHandler:
    """
    Request/response loop for a single connection.

    Attributes:
        stream: Accepted byte stream
        store: Shared sightings log
        thumbnails: Thumbnail service for ImageRequest
        max_frame_size: Largest frame read in one go
        idle_timeout: Seconds without a request before the connection
            is closed. None = never.

    Example:
        handler = ConnectionHandler(stream, store, thumbnails)
        await handler.run()
    """

    def __init__(
        self,
        stream: ByteStream,
        store: SightingsStore,
        thumbnails: ThumbnailService,
        max_frame_size: int = MAX_FRAME_SIZE,
        idle_timeout: Optional[float] = None,
    ) -> None:
        if max_frame_size < 1:
            raise ValueError("max_frame_size must be >= 1")

        self.stream = stream
        self.store = store
        self.thumbnails = thumbnails
        self.max_frame_size = max_frame_size
        self.idle_timeout = idle_timeout

        self._handlers: Dict[Type, Callable[..., Awaitable[List[bytes]]]] = {
            Ping: self._on_ping,
            Pong: self._on_pong,
            CountRequest: self._on_count_request,
            LastRequest: self._on_last_request,
            ImageRequest: self._on_image_request,
        }

    @property
    def peer(self) -> str:
        return getattr(self.stream, "peer", "unknown")

    async def run(self) -> None:
        """Serve the connection until the peer leaves or reading fails."""
        logger.info(
            f"Accepted connection from {self.peer} "
            f"with receive MTU {self.max_frame_size} bytes"
        )

        count = await self.store.length()
        await self.write_frames([str(count).encode("ascii")])

        while True:
            raw = await self.read_frame()
            if raw is None:
                break

            frames = await self.respond(raw)
            await self.write_frames(frames)

        logger.info(f"{self.peer} disconnected")

    async def read_frame(self) -> Optional[bytes]:
        """
        Read the next frame.

        Returns:
            Frame bytes, or None when the connection is over
        """
        try:
            raw = await asyncio.wait_for(
                self.stream.read(self.max_frame_size),
                timeout=self.idle_timeout,
            )
        except asyncio.TimeoutError:
            logger.info(
                f"{self.peer} idle for {self.idle_timeout}s, closing connection"
            )
            return None
        except (OSError, TransportError) as e:
            logger.error(f"Read failed: {e}")
            return None

        if not raw:
            logger.info("Stream ended")
            return None
        return raw

    async def write_frames(self, frames: List[bytes]) -> bool:
        """
        Write frames in order.

        Stops at the first failure; the connection itself stays open.

        Returns:
            True if every frame was written
        """
        for frame in frames:
            try:
                await self.stream.write(frame)
            except (OSError, TransportError) as e:
                logger.error(f"Write failed: {e}")
                return False
        return True

    async def respond(self, raw: bytes) -> List[bytes]:
        """
        Compute the frames answering one received frame.

        Args:
            raw: Received frame

        Returns:
            Frames to write, possibly none
        """
        message = decode_message(raw)
        handler = self._handlers.get(type(message))
        if handler is None:
            return self._echo(raw, message)
        return await handler(message)

    async def _on_ping(self, message: Ping) -> List[bytes]:
        logger.debug(f"{message!r} from {self.peer}")
        return [encode_message(Pong())]

    async def _on_pong(self, message: Pong) -> List[bytes]:
        logger.info(f"{message!r} from {self.peer}")
        return []

    async def _on_count_request(self, message: CountRequest) -> List[bytes]:
        count = await self.store.length()
        return [encode_message(CountResponse(count=count))]

    async def _on_last_request(self, message: LastRequest) -> List[bytes]:
        sighting = await self.store.last_entry()
        if sighting is None:
            logger.warning(f"LastRequest from {self.peer} on empty store")
        else:
            logger.debug(f"Last sighting: {sighting!r}")

        return [encode_message(LastResponse(last=sighting)), RECORD_TERMINATOR]

    async def _on_image_request(self, message: ImageRequest) -> List[bytes]:
        logger.debug(f"Image requested for {message.uuid!r}")

        sighting = await self.store.last_entry_matching(message.uuid)
        if sighting is None:
            logger.warning(f"No sighting with uuid {message.uuid!r}")
            sighting = Sighting.empty()

        # Store lock is released here; the thumbnail reads from disk
        image = await self.thumbnails.thumbnail(sighting)

        return [encode_message(ImageResponse(base64=image)), RECORD_TERMINATOR]

    def _echo(self, raw: bytes, message: Message) -> List[bytes]:
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.warning(
                f"Echoing {len(raw)} bytes from {self.peer} that are not valid UTF-8: {e}"
            )
        else:
            logger.info(f"Echoing {len(raw)} bytes: {text}")

        if isinstance(message, Unrecognized):
            logger.debug(f"Unrecognized frame: {message.reason}")
        return [raw]
