"""
RFCOMM Profile
==============

Service endpoint registered with org.bluez.ProfileManager1.

BlueZ performs the RFCOMM accept itself and hands each new connection to
Profile1.NewConnection as a socket file descriptor. Those arrive here as
BluezConnectionRequest objects, queued until the server loop picks them up.

Profile options:
    Name, Role=server, Channel, RequireAuthentication=false,
    RequireAuthorization=false, AutoConnect=true
"""

import asyncio
import logging
import os
import socket
import uuid
from typing import Dict, Optional

from dbus_fast import Variant
from dbus_fast.service import ServiceInterface, method

from ornithology_pi.bluetooth.session import (
    BLUEZ_ROOT_PATH,
    PROFILE_IFACE,
    PROFILE_MANAGER_IFACE,
    BluezSession,
)
from ornithology_pi.bluetooth.stream import SocketByteStream
from ornithology_pi.errors import AcceptError


logger = logging.getLogger(__name__)


SERVICE_NAME = "ornithology-pi"
SERVICE_UUID = str(uuid.UUID(int=0xF00DC0DE00001))
CHANNEL = 7

PROFILE_PATH = "/org/ornithology_pi/profile"


def device_address(device_path: str) -> str:
    """
    Bluetooth address from a BlueZ device object path.

    ``/org/bluez/hci0/dev_AA_BB_CC_DD_EE_FF`` -> ``AA:BB:CC:DD:EE:FF``
    """
    name = device_path.rsplit("/", 1)[-1]
    if name.startswith("dev_"):
        return name[len("dev_"):].replace("_", ":")
    return device_path


def profile_options(name: str, channel: int) -> Dict[str, Variant]:
    """RegisterProfile options for a server-role RFCOMM endpoint."""
    return {
        "Name": Variant("s", name),
        "Role": Variant("s", "server"),
        "Channel": Variant("q", channel),
        "RequireAuthentication": Variant("b", False),
        "RequireAuthorization": Variant("b", False),
        "AutoConnect": Variant("b", True),
    }


class BluezConnectionRequest:
    """
    Connection handed over by BlueZ, not yet wrapped in a stream.

    Attributes:
        device: Remote device address
        fd: Connected RFCOMM socket descriptor (owned by this request)
    """

    def __init__(self, device: str, fd: int) -> None:
        self.device = device
        self.fd = fd
        self._taken = False

    async def accept(self) -> SocketByteStream:
        """
        Wrap the socket into asyncio streams.

        Raises:
            AcceptError: If the descriptor is unusable
        """
        if self._taken:
            raise AcceptError(f"Connection from {self.device} already handled")
        self._taken = True

        try:
            sock = socket.socket(fileno=self.fd)
        except (OSError, ValueError) as e:
            self._close_fd()
            raise AcceptError(f"Invalid socket from {self.device}: {e}") from e

        try:
            sock.setblocking(False)
            reader, writer = await asyncio.open_connection(sock=sock)
        except OSError as e:
            sock.close()
            raise AcceptError(f"Cannot open stream to {self.device}: {e}") from e

        return SocketByteStream(reader, writer, peer=self.device)

    def reject(self) -> None:
        if not self._taken:
            self._taken = True
            self._close_fd()
            logger.info(f"Rejected connection from {self.device}")

    def _close_fd(self) -> None:
        try:
            os.close(self.fd)
        except OSError as e:
            logger.debug(f"Closing fd {self.fd} failed: {e}")


class RfcommProfile(ServiceInterface):
    """org.bluez.Profile1 that queues inbound connections."""

    def __init__(self, requests: "asyncio.Queue[Optional[BluezConnectionRequest]]") -> None:
        super().__init__(PROFILE_IFACE)
        self._requests = requests

    @method()
    def Release(self):
        logger.info("Profile released by BlueZ")
        self._requests.put_nowait(None)

    @method()
    def NewConnection(self, device: "o", fd: "h", fd_properties: "a{sv}"):
        address = device_address(device)
        logger.debug(f"NewConnection from {address} (fd={fd})")
        self._requests.put_nowait(BluezConnectionRequest(address, fd))

    @method()
    def RequestDisconnection(self, device: "o"):
        logger.info(f"{device_address(device)} requested disconnection")


class BluezProfileRegistrar:
    """
    Registers the RFCOMM service endpoint and yields its connections.

    Attributes:
        session: Shared BlueZ session
        service_uuid: Service class UUID
        name: Service name
        channel: RFCOMM channel
    """

    def __init__(
        self,
        session: BluezSession,
        service_uuid: str = SERVICE_UUID,
        name: str = SERVICE_NAME,
        channel: int = CHANNEL,
    ) -> None:
        self.session = session
        self.service_uuid = service_uuid
        self.name = name
        self.channel = channel

        self._requests: "asyncio.Queue[Optional[BluezConnectionRequest]]" = asyncio.Queue()
        self._profile: Optional[RfcommProfile] = None

    async def register(self) -> None:
        if self._profile is not None:
            return

        profile = RfcommProfile(self._requests)
        self.session.bus.export(PROFILE_PATH, profile)
        manager = await self.session.get_interface(BLUEZ_ROOT_PATH, PROFILE_MANAGER_IFACE)
        try:
            await manager.call_register_profile(
                PROFILE_PATH,
                self.service_uuid,
                profile_options(self.name, self.channel),
            )
        except Exception:
            self.session.bus.unexport(PROFILE_PATH, profile)
            raise

        self._profile = profile
        logger.info(
            f"Registered profile {self.service_uuid}, listening on channel {self.channel}"
        )

    async def unregister(self) -> None:
        if self._profile is None:
            return

        manager = await self.session.get_interface(BLUEZ_ROOT_PATH, PROFILE_MANAGER_IFACE)
        try:
            await manager.call_unregister_profile(PROFILE_PATH)
        finally:
            self.session.bus.unexport(PROFILE_PATH, self._profile)
            self._profile = None
            self._drain()
        logger.info("Unregistered profile")

    async def next_request(self) -> Optional[BluezConnectionRequest]:
        return await self._requests.get()

    def _drain(self) -> None:
        while True:
            try:
                request = self._requests.get_nowait()
            except asyncio.QueueEmpty:
                break
            if request is not None:
                request.reject()
