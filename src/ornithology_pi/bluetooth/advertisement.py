"""
BLE Advertisement
=================

Discovery beacon announcing the service name and UUID.

An org.bluez.LEAdvertisement1 object is exported on the bus and handed to
org.bluez.LEAdvertisingManager1 of the adapter.
"""

import logging
from typing import Iterable, List, Optional

from dbus_fast.service import PropertyAccess, ServiceInterface, dbus_property, method

from ornithology_pi.bluetooth.adapter import BluezAdapter
from ornithology_pi.bluetooth.session import (
    LE_ADVERTISEMENT_IFACE,
    LE_ADVERTISING_MANAGER_IFACE,
    BluezSession,
)


logger = logging.getLogger(__name__)


ADVERTISEMENT_PATH = "/org/ornithology_pi/advertisement0"


class Advertisement(ServiceInterface):
    """Peripheral advertisement carrying local name and service UUIDs."""

    def __init__(self, local_name: str, service_uuids: Iterable[str]) -> None:
        super().__init__(LE_ADVERTISEMENT_IFACE)
        self.local_name = local_name
        self.service_uuids: List[str] = [str(u) for u in service_uuids]

    @method()
    def Release(self):
        logger.info("Advertisement released by BlueZ")

    @dbus_property(access=PropertyAccess.READ)
    def Type(self) -> "s":
        return "peripheral"

    @dbus_property(access=PropertyAccess.READ)
    def ServiceUUIDs(self) -> "as":
        return self.service_uuids

    @dbus_property(access=PropertyAccess.READ)
    def LocalName(self) -> "s":
        return self.local_name

    @dbus_property(access=PropertyAccess.READ)
    def Discoverable(self) -> "b":
        return True


class BluezBroadcaster:
    """
    Starts and stops the LE advertisement on an adapter.

    Example:
        broadcaster = BluezBroadcaster(session, adapter)
        await broadcaster.start("ornithology-pi", [SERVICE_UUID])
        ...
        await broadcaster.stop()
    """

    def __init__(self, session: BluezSession, adapter: BluezAdapter) -> None:
        self.session = session
        self.adapter = adapter
        self._advertisement: Optional[Advertisement] = None

    async def start(self, local_name: str, service_uuids: Iterable[str]) -> None:
        if self._advertisement is not None:
            return

        advertisement = Advertisement(local_name, service_uuids)
        self.session.bus.export(ADVERTISEMENT_PATH, advertisement)
        manager = await self.session.get_interface(
            self.adapter.path, LE_ADVERTISING_MANAGER_IFACE
        )
        try:
            await manager.call_register_advertisement(ADVERTISEMENT_PATH, {})
        except Exception:
            self.session.bus.unexport(ADVERTISEMENT_PATH, advertisement)
            raise

        self._advertisement = advertisement
        logger.info(
            f"Advertising {local_name} on {self.adapter.name} "
            f"with services {advertisement.service_uuids}"
        )

    async def stop(self) -> None:
        if self._advertisement is None:
            return

        manager = await self.session.get_interface(
            self.adapter.path, LE_ADVERTISING_MANAGER_IFACE
        )
        try:
            await manager.call_unregister_advertisement(ADVERTISEMENT_PATH)
        finally:
            self.session.bus.unexport(ADVERTISEMENT_PATH, self._advertisement)
            self._advertisement = None
        logger.info("Removed advertisement")
