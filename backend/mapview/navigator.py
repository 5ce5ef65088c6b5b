from __future__ import annotations

import logging

from appconfig.types import LocationConfig
from engine.types import MapSurface

logger = logging.getLogger(__name__)

FLY_DURATION_MS = 2000


class LocationNavigator:
    def __init__(self, locations: tuple[LocationConfig, ...] | list[LocationConfig]) -> None:
        self._by_id = {loc.id: loc for loc in locations}

    def find(self, location_id: str | None) -> LocationConfig | None:
        return self._by_id.get((location_id or "").strip())

    def go_to(self, surface: MapSurface | None, location_id: str | None) -> bool:
        """
        Fly to a known location. Unknown ids and a missing surface are ignored.
        """
        location = self.find(location_id)
        if surface is None or location is None:
            return False
        # essential: the engine must not skip this animation.
        surface.fly_to(
            center=location.center,
            zoom=location.zoom,
            duration=FLY_DURATION_MS,
            essential=True,
        )
        logger.info("flying to %s", location.id)
        return True
