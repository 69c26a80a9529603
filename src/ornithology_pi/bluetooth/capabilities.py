"""
Bluetooth Capabilities
======================

The four things the server needs from a wireless stack, as Protocols.

The server loop and connection handler only talk to these interfaces.
They are implemented by:
    - The BlueZ classes in this package (production, dbus-fast)
    - In-memory fakes (tests)
"""

from typing import Iterable, Optional, Protocol


class ByteStream(Protocol):
    """Reliable, ordered byte stream of one accepted connection."""

    peer: str

    async def read(self, max_bytes: int) -> bytes:
        """
        Read up to max_bytes.

        Returns:
            Received bytes; b"" once the peer has closed the stream

        Raises:
            OSError: On transport failure
        """
        ...

    async def write(self, data: bytes) -> None:
        """Write all of data and wait until it is flushed."""
        ...

    async def close(self) -> None:
        ...


class ConnectionRequest(Protocol):
    """Inbound connection waiting to be accepted."""

    device: str

    async def accept(self) -> ByteStream:
        """
        Turn the request into a stream.

        Raises:
            AcceptError: If the connection cannot be set up
        """
        ...

    def reject(self) -> None:
        """Drop the request without serving it."""
        ...


class AdapterControl(Protocol):
    """Local radio adapter configuration."""

    name: str

    async def power_on(self) -> None:
        ...

    async def make_discoverable(self, timeout: int = 0) -> None:
        """Become discoverable; timeout 0 means indefinitely."""
        ...

    async def set_pairable(self, pairable: bool) -> None:
        ...

    async def register_pairing_agent(self) -> None:
        """Install a pairing handler that never asks for user input."""
        ...

    async def unregister_pairing_agent(self) -> None:
        ...

    async def address(self) -> str:
        ...


class Broadcaster(Protocol):
    """Discovery beacon."""

    async def start(self, local_name: str, service_uuids: Iterable[str]) -> None:
        ...

    async def stop(self) -> None:
        ...


class EndpointRegistrar(Protocol):
    """Service endpoint that inbound connections arrive through."""

    async def register(self) -> None:
        ...

    async def unregister(self) -> None:
        ...

    async def next_request(self) -> Optional[ConnectionRequest]:
        """
        Wait for the next inbound connection.

        Returns:
            The request, or None once the endpoint has been released
        """
        ...
