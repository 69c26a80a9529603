"""
Bluetooth Module
================

Wireless-stack capabilities consumed by the server.

Components:
    - capabilities: Protocols for adapter, beacon, endpoint and stream
    - BluezSession: System D-Bus connection (dbus-fast)
    - BluezAdapter: Power, discoverability, pairing agent
    - BluezBroadcaster: LE advertisement
    - BluezProfileRegistrar: RFCOMM Profile1 endpoint
    - SocketByteStream: asyncio stream over an accepted socket
"""

from ornithology_pi.bluetooth.capabilities import (
    AdapterControl,
    Broadcaster,
    ByteStream,
    ConnectionRequest,
    EndpointRegistrar,
)
from ornithology_pi.bluetooth.session import BluezSession
from ornithology_pi.bluetooth.adapter import BluezAdapter, PairingAgent
from ornithology_pi.bluetooth.advertisement import Advertisement, BluezBroadcaster
from ornithology_pi.bluetooth.profile import (
    CHANNEL,
    SERVICE_NAME,
    SERVICE_UUID,
    BluezConnectionRequest,
    BluezProfileRegistrar,
    RfcommProfile,
    device_address,
    profile_options,
)
from ornithology_pi.bluetooth.stream import SocketByteStream


__all__ = [
    "AdapterControl",
    "Broadcaster",
    "ByteStream",
    "ConnectionRequest",
    "EndpointRegistrar",
    "BluezSession",
    "BluezAdapter",
    "PairingAgent",
    "Advertisement",
    "BluezBroadcaster",
    "BluezConnectionRequest",
    "BluezProfileRegistrar",
    "RfcommProfile",
    "SocketByteStream",
    "SERVICE_NAME",
    "SERVICE_UUID",
    "CHANNEL",
    "device_address",
    "profile_options",
]
