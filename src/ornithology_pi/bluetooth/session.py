"""
BlueZ Session
=============

System D-Bus connection shared by the BlueZ capability classes.

The bus is opened with unix fd negotiation so that RFCOMM sockets handed
over by ``org.bluez.Profile1.NewConnection`` arrive as usable descriptors.
"""

import logging
from typing import Any, List, Optional

from dbus_fast import BusType
from dbus_fast.aio import MessageBus


logger = logging.getLogger(__name__)


BLUEZ_SERVICE_NAME = "org.bluez"
BLUEZ_ROOT_PATH = "/org/bluez"
ADAPTER_IFACE = "org.bluez.Adapter1"
AGENT_IFACE = "org.bluez.Agent1"
AGENT_MANAGER_IFACE = "org.bluez.AgentManager1"
LE_ADVERTISEMENT_IFACE = "org.bluez.LEAdvertisement1"
LE_ADVERTISING_MANAGER_IFACE = "org.bluez.LEAdvertisingManager1"
PROFILE_IFACE = "org.bluez.Profile1"
PROFILE_MANAGER_IFACE = "org.bluez.ProfileManager1"
DBUS_OM_IFACE = "org.freedesktop.DBus.ObjectManager"
DBUS_PROP_IFACE = "org.freedesktop.DBus.Properties"


class BluezSession:
    """
    Connection to BlueZ over the system bus.

    Example:
        session = BluezSession()
        await session.connect()
        names = await session.adapter_names()
        ...
        session.disconnect()
    """

    def __init__(self) -> None:
        self._bus: Optional[MessageBus] = None

    @property
    def bus(self) -> MessageBus:
        if self._bus is None:
            raise RuntimeError("BluezSession is not connected")
        return self._bus

    async def connect(self) -> None:
        if self._bus is not None:
            return
        self._bus = await MessageBus(
            bus_type=BusType.SYSTEM,
            negotiate_unix_fd=True,
        ).connect()
        logger.info("Connected to BlueZ on the system bus")

    def disconnect(self) -> None:
        if self._bus is not None:
            self._bus.disconnect()
            self._bus = None
            logger.info("Disconnected from the system bus")

    async def get_interface(self, path: str, interface: str) -> Any:
        """Proxy for one interface of a BlueZ object."""
        introspection = await self.bus.introspect(BLUEZ_SERVICE_NAME, path)
        obj = self.bus.get_proxy_object(BLUEZ_SERVICE_NAME, path, introspection)
        return obj.get_interface(interface)

    async def adapter_names(self) -> List[str]:
        """Names of all adapters known to BlueZ (``hci0``, ...), sorted."""
        object_manager = await self.get_interface("/", DBUS_OM_IFACE)
        objects = await object_manager.call_get_managed_objects()
        return sorted(
            path.rsplit("/", 1)[-1]
            for path, interfaces in objects.items()
            if ADAPTER_IFACE in interfaces
        )
