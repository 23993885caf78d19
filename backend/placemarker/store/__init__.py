from placemarker.store.spatial_store import SpatialStore
from placemarker.store.state import SpatialState, reduce

__all__ = ["SpatialState", "SpatialStore", "reduce"]
