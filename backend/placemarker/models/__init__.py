from placemarker.models.device_identity import DeviceIdentity
from placemarker.models.marked_place import MarkedPlace

__all__ = ["DeviceIdentity", "MarkedPlace"]
