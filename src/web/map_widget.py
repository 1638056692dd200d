import html
import logging
from abc import ABC, abstractmethod
from typing import Optional

from src.models.location import LocationSelection

logger = logging.getLogger(__name__)

KAKAO_SDK_URL = "https://dapi.kakao.com/v2/maps/sdk.js"
SDK_SCRIPT_ID = "kakao-map-sdk"

# Seoul City Hall
DEFAULT_LAT = 37.5665
DEFAULT_LNG = 126.978
DEFAULT_LEVEL = 3


class PageDocument:
    """The parts of a page the widget touches: script tags in <head>."""

    def __init__(self):
        self.scripts = []

    def find_script(self, script_id):
        for script in self.scripts:
            if script["id"] == script_id:
                return script
        return None

    def add_script(self, script_id, src):
        script = {"id": script_id, "src": src}
        self.scripts.append(script)
        return script

    def render_head(self):
        return "\n".join(
            f'<script id="{html.escape(s["id"])}" src="{html.escape(s["src"])}"></script>'
            for s in self.scripts
        )


class SdkLoader:
    """Injects the map SDK script into a page at most once."""

    def __init__(self, app_key, url=KAKAO_SDK_URL, script_id=SDK_SCRIPT_ID):
        self.app_key = app_key
        self.url = url
        self.script_id = script_id

    @property
    def src(self):
        return f"{self.url}?appkey={self.app_key}&autoload=false"

    def load(self, document: PageDocument):
        existing = document.find_script(self.script_id)
        if existing is not None:
            logger.debug("Map SDK already present, skipping injection")
            return existing
        return document.add_script(self.script_id, self.src)


class MapAdapter(ABC):
    """
    Bridge to the actual map SDK.

    Implementations wrap the real SDK objects; the widget only deals in handles
    returned from these methods.
    """

    @abstractmethod
    def create_map(self, container, lat, lng, level):
        raise NotImplementedError

    @abstractmethod
    def set_center(self, map_handle, lat, lng):
        raise NotImplementedError

    @abstractmethod
    def add_marker(self, map_handle, lat, lng):
        raise NotImplementedError

    @abstractmethod
    def remove_marker(self, marker):
        raise NotImplementedError

    @abstractmethod
    def add_click_listener(self, map_handle, handler):
        raise NotImplementedError

    @abstractmethod
    def to_coordinate(self, event):
        """Turn a click event into (lat, lng)."""
        raise NotImplementedError


class MapWidget:
    def __init__(
        self,
        adapter: MapAdapter,
        loader: SdkLoader,
        document: PageDocument,
        on_location_select=None,
        initial_location: Optional[LocationSelection] = None,
        selected_location: Optional[LocationSelection] = None,
        container="map",
    ):
        self.adapter = adapter
        self.loader = loader
        self.document = document
        self.on_location_select = on_location_select
        self.initial_location = initial_location
        self.selected_location = selected_location
        self.container = container
        self.map = None
        self.marker = None

    @property
    def mounted(self):
        return self.map is not None

    def mount(self):
        """Load the SDK, create the map and start listening for clicks. Mounting twice is a no-op."""
        if self.mounted:
            return self.map

        self.loader.load(self.document)

        lat = self.initial_location.lat if self.initial_location else DEFAULT_LAT
        lng = self.initial_location.lng if self.initial_location else DEFAULT_LNG
        self.map = self.adapter.create_map(self.container, lat, lng, DEFAULT_LEVEL)
        self.adapter.add_click_listener(self.map, self.handle_click)

        if self.selected_location:
            self._show(self.selected_location)
        return self.map

    def handle_click(self, event):
        lat, lng = self.adapter.to_coordinate(event)
        if self.on_location_select:
            self.on_location_select(lat, lng)

    def set_selected_location(self, location: Optional[LocationSelection]):
        """Follow an externally chosen location: re-center and move the marker."""
        self.selected_location = location
        if self.mounted and location is not None:
            self._show(location)

    def _show(self, location):
        self.add_marker(location.lat, location.lng)
        self.adapter.set_center(self.map, location.lat, location.lng)

    def add_marker(self, lat, lng):
        if not self.mounted:
            return None
        # Only one marker at a time
        if self.marker is not None:
            self.adapter.remove_marker(self.marker)
            self.marker = None
        self.marker = self.adapter.add_marker(self.map, lat, lng)
        return self.marker
