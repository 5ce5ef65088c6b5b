from .basemap import BaseMapController
from .navigator import LocationNavigator
from .picker import FeaturePicker, SelectedFeature
from .session import MapSession
from .store import LayerStateStore
from .sync import LayerSyncEngine, SyncReport

__all__ = [
    "BaseMapController",
    "FeaturePicker",
    "LayerStateStore",
    "LayerSyncEngine",
    "LocationNavigator",
    "MapSession",
    "SelectedFeature",
    "SyncReport",
]
