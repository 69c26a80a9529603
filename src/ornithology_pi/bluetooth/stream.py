"""
Socket Byte Stream
==================

ByteStream over an accepted RFCOMM socket, using asyncio streams.
"""

import asyncio
import logging


logger = logging.getLogger(__name__)


class SocketByteStream:
    """
    Reader/writer pair of one connection.

    Attributes:
        peer: Remote device address
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        peer: str,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.peer = peer

    async def read(self, max_bytes: int) -> bytes:
        return await self.reader.read(max_bytes)

    async def write(self, data: bytes) -> None:
        self.writer.write(data)
        await self.writer.drain()

    async def close(self) -> None:
        if self.writer.is_closing():
            return
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError as e:
            logger.debug(f"Error while closing stream to {self.peer}: {e}")
