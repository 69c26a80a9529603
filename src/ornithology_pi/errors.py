"""
Error Taxonomy
==============

Exceptions raised inside the service.

Only AdapterError is allowed to escape to the process: everything else is
handled at the connection or accept-loop level and turned into a log line or
a well-formed response frame.
"""


class OrnithologyError(Exception):
    """Base class for all service errors."""
    pass


class TransportError(OrnithologyError):
    """Reading from or writing to a connection stream failed."""
    pass


class ProtocolError(OrnithologyError):
    """A received frame is not a valid Message document."""
    pass


class SightingLookupError(OrnithologyError, LookupError):
    """A requested sighting or its photo does not exist."""
    pass


class ThumbnailError(SightingLookupError):
    """A photo could not be read, decoded or re-encoded."""
    pass


class AdapterError(OrnithologyError):
    """A step of the Bluetooth startup sequence failed."""
    pass


class AcceptError(OrnithologyError):
    """An inbound connection request could not be turned into a stream."""
    pass
