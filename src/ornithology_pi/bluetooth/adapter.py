"""
BlueZ Adapter
=============

Configures the local adapter and installs the pairing agent.

Startup configuration:
    Powered=true, Discoverable=true, DiscoverableTimeout=0, Pairable=false

The pairing agent registers with capability NoInputNoOutput: BlueZ never
asks it for a PIN or passkey that a headless device could not provide.
"""

import logging
from typing import Optional

from dbus_fast import DBusError, Variant
from dbus_fast.service import ServiceInterface, method

from ornithology_pi.bluetooth.session import (
    ADAPTER_IFACE,
    AGENT_IFACE,
    AGENT_MANAGER_IFACE,
    BLUEZ_ROOT_PATH,
    DBUS_PROP_IFACE,
    BluezSession,
)
from ornithology_pi.errors import AdapterError


logger = logging.getLogger(__name__)


AGENT_PATH = "/org/ornithology_pi/agent"
AGENT_CAPABILITY = "NoInputNoOutput"
REJECTED = "org.bluez.Error.Rejected"


class PairingAgent(ServiceInterface):
    """
    org.bluez.Agent1 that never prompts.

    Confirmation and authorization requests are accepted, requests that
    would need a PIN or passkey are rejected.
    """

    def __init__(self) -> None:
        super().__init__(AGENT_IFACE)

    @method()
    def Release(self):
        logger.info("Pairing agent released")

    @method()
    def RequestPinCode(self, device: "o") -> "s":
        raise DBusError(REJECTED, "PIN entry not supported")

    @method()
    def DisplayPinCode(self, device: "o", pincode: "s"):
        logger.debug(f"DisplayPinCode for {device}")

    @method()
    def RequestPasskey(self, device: "o") -> "u":
        raise DBusError(REJECTED, "Passkey entry not supported")

    @method()
    def DisplayPasskey(self, device: "o", passkey: "u", entered: "q"):
        logger.debug(f"DisplayPasskey for {device}")

    @method()
    def RequestConfirmation(self, device: "o", passkey: "u"):
        logger.info(f"Confirming pairing with {device}")

    @method()
    def RequestAuthorization(self, device: "o"):
        logger.info(f"Authorizing {device}")

    @method()
    def AuthorizeService(self, device: "o", uuid: "s"):
        logger.info(f"Authorizing service {uuid} for {device}")

    @method()
    def Cancel(self):
        logger.debug("Pairing request cancelled")


class BluezAdapter:
    """
    Adapter control over org.bluez.Adapter1.

    Attributes:
        session: Shared BlueZ session
        name: Adapter name (``hci0``); resolved on power_on when not given
    """

    def __init__(self, session: BluezSession, name: Optional[str] = None) -> None:
        self.session = session
        self.name = name or ""
        self._agent: Optional[PairingAgent] = None

    @property
    def path(self) -> str:
        if not self.name:
            raise RuntimeError("Adapter not resolved yet, call power_on() first")
        return f"{BLUEZ_ROOT_PATH}/{self.name}"

    async def _resolve(self) -> None:
        if self.name:
            return
        names = await self.session.adapter_names()
        if not names:
            raise AdapterError("No Bluetooth adapter present")
        self.name = names[0]
        logger.info(f"Using Bluetooth adapter {self.name}")

    async def _set(self, prop: str, value: Variant) -> None:
        properties = await self.session.get_interface(self.path, DBUS_PROP_IFACE)
        await properties.call_set(ADAPTER_IFACE, prop, value)
        logger.debug(f"{self.name}: {prop} = {value.value}")

    async def power_on(self) -> None:
        await self.session.connect()
        await self._resolve()
        await self._set("Powered", Variant("b", True))

    async def make_discoverable(self, timeout: int = 0) -> None:
        await self._set("Discoverable", Variant("b", True))
        await self._set("DiscoverableTimeout", Variant("u", timeout))

    async def set_pairable(self, pairable: bool) -> None:
        await self._set("Pairable", Variant("b", pairable))

    async def address(self) -> str:
        properties = await self.session.get_interface(self.path, DBUS_PROP_IFACE)
        value = await properties.call_get(ADAPTER_IFACE, "Address")
        return value.value

    async def register_pairing_agent(self) -> None:
        agent = PairingAgent()
        self.session.bus.export(AGENT_PATH, agent)
        manager = await self.session.get_interface(BLUEZ_ROOT_PATH, AGENT_MANAGER_IFACE)
        await manager.call_register_agent(AGENT_PATH, AGENT_CAPABILITY)
        await manager.call_request_default_agent(AGENT_PATH)
        self._agent = agent
        logger.info(f"Registered pairing agent ({AGENT_CAPABILITY})")

    async def unregister_pairing_agent(self) -> None:
        if self._agent is None:
            return
        manager = await self.session.get_interface(BLUEZ_ROOT_PATH, AGENT_MANAGER_IFACE)
        try:
            await manager.call_unregister_agent(AGENT_PATH)
        finally:
            self.session.bus.unexport(AGENT_PATH, self._agent)
            self._agent = None
        logger.info("Unregistered pairing agent")
