import json
import logging
import time
from typing import Optional

import requests

from src.models.location import LocationSelection

logger = logging.getLogger(__name__)

TELCO_OPTIONS = ("KT", "LGU")
TYPE_OPTIONS = ("단독시설", "불법시설물", "특이동향")
DETAIL_MAX_LENGTH = 100
TOAST_DURATION = 2.0

MSG_ADDRESS_NOT_FOUND = "주소를 찾을 수 없습니다."
MSG_CONVERSION_ERROR = "주소 변환 오류"
MSG_SELECT_ALL = "모든 값을 선택해주세요."
MSG_COPIED = "클립보드에 복사되었습니다!"
MSG_COPY_FAILED = "복사에 실패했습니다."
MSG_LOCATION_PERMISSION = "위치 권한이 필요합니다."


class ApiError(Exception):
    def __init__(self, status_code, message):
        self.status_code = status_code
        self.message = message
        super().__init__(f"HTTP {status_code}: {message}")


class LocationApiClient:
    def __init__(self, base_url="http://localhost:5000", timeout=10, session=None):
        """
        HTTP client for the lookup API.

        Args:
            base_url: Where the API server is listening
            timeout: Seconds to wait for each request
            session: Optional requests.Session (tests pass a mock)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests

    def _check(self, response):
        if response.status_code != 200:
            try:
                message = response.json().get("message", response.text)
            except ValueError:
                message = response.text
            raise ApiError(response.status_code, message)
        return response

    def coordinate_to_address(self, lat, lng):
        response = self.http.post(
            f"{self.base_url}/api/coordinate-to-address",
            json={"lat": lat, "lng": lng},
            timeout=self.timeout,
        )
        return self._check(response).json()

    def usage(self):
        response = self.http.get(f"{self.base_url}/api/usage", timeout=self.timeout)
        return self._check(response).json()

    def static_map(self, lat, lng):
        response = self.http.post(
            f"{self.base_url}/api/static-map",
            json={"lat": lat, "lng": lng},
            timeout=self.timeout,
        )
        return self._check(response).content


class Toast:
    def __init__(self, message, kind, expires_at):
        self.message = message
        self.kind = kind  # "success" or "error"
        self.expires_at = expires_at

    def __repr__(self):
        return f"Toast({self.kind}: {self.message})"


class PageController:
    """
    Glue between the map widget and the API: selection state, the report form,
    the usage counter and toast notifications.
    """

    def __init__(self, api: LocationApiClient, clipboard=None, widget=None, clock=time.monotonic):
        self.api = api
        self.clipboard = clipboard
        self.clock = clock
        self.widget = None

        self.selected_location: Optional[LocationSelection] = None
        self.current_location: Optional[LocationSelection] = None
        self.telco = ""
        self.report_type = ""
        self.detail = ""
        self.usage_count = 0
        self.usage_limit = None
        self.is_loading = False
        self._toast: Optional[Toast] = None

        if widget is not None:
            self.bind_widget(widget)

    def bind_widget(self, widget):
        self.widget = widget
        widget.on_location_select = self.select_location
        if self.current_location and widget.initial_location is None:
            widget.initial_location = self.current_location

    # Toasts

    def show_toast(self, message, kind):
        self._toast = Toast(message, kind, self.clock() + TOAST_DURATION)

    @property
    def toast(self):
        if self._toast and self.clock() >= self._toast.expires_at:
            self._toast = None
        return self._toast

    # Location

    def set_current_location(self, lat, lng):
        self.current_location = LocationSelection(lat=lat, lng=lng)
        if self.widget and not self.widget.mounted:
            self.widget.initial_location = self.current_location

    def location_unavailable(self):
        self.show_toast(MSG_LOCATION_PERMISSION, "error")

    def select_location(self, lat, lng):
        self.is_loading = True
        try:
            data = self.api.coordinate_to_address(lat, lng)
            address = data.get("address")
            if address:
                self._set_selection(LocationSelection(lat=lat, lng=lng, address=address))
                self.usage_count = data.get("usageCount", self.usage_count + 1)
            else:
                self.show_toast(MSG_ADDRESS_NOT_FOUND, "error")
                self._set_selection(LocationSelection(lat=lat, lng=lng, address=""))
        except ApiError as e:
            logger.warning(f"Address lookup failed: {e}")
            if e.status_code == 404:
                self.show_toast(MSG_ADDRESS_NOT_FOUND, "error")
                self._set_selection(LocationSelection(lat=lat, lng=lng, address=""))
            else:
                self.show_toast(e.message, "error")
        except (requests.RequestException, json.JSONDecodeError) as e:
            logger.error(f"Address lookup error: {e}")
            self.show_toast(MSG_CONVERSION_ERROR, "error")
        finally:
            self.is_loading = False
        return self.selected_location

    def _set_selection(self, selection):
        self.selected_location = selection
        if self.widget is not None:
            self.widget.set_selected_location(selection)

    # Report form

    def set_telco(self, value):
        if value and value not in TELCO_OPTIONS:
            raise ValueError(f"Unknown carrier: {value}")
        self.telco = value

    def set_report_type(self, value):
        if value and value not in TYPE_OPTIONS:
            raise ValueError(f"Unknown report type: {value}")
        self.report_type = value

    def set_detail(self, value):
        self.detail = (value or "")[:DETAIL_MAX_LENGTH]

    @property
    def can_copy(self):
        loc = self.selected_location
        return bool(loc and loc.address and self.telco and self.report_type and not self.is_loading)

    def build_copy_text(self):
        loc = self.selected_location
        return (
            f"통신사: {self.telco}\n"
            f"유형: {self.report_type}\n"
            f"위도: {loc.lat:.6f}\n"
            f"경도: {loc.lng:.6f}\n"
            f"지번주소: {loc.address}\n"
            f"세부내역: {self.detail}"
        )

    def copy_to_clipboard(self):
        loc = self.selected_location
        if not loc or not loc.address or not self.telco or not self.report_type:
            self.show_toast(MSG_SELECT_ALL, "error")
            return False

        try:
            if self.clipboard is None:
                raise RuntimeError("no clipboard available")
            self.clipboard(self.build_copy_text())
        except Exception as e:
            logger.error(f"Copy failed: {e}")
            self.show_toast(MSG_COPY_FAILED, "error")
            return False

        self.show_toast(MSG_COPIED, "success")
        return True

    # Usage

    def refresh_usage(self):
        try:
            data = self.api.usage()
        except (ApiError, requests.RequestException) as e:
            logger.warning(f"Could not refresh usage: {e}")
            return self.usage_count
        self.usage_count = data["count"]
        self.usage_limit = data["limit"]
        return self.usage_count

    @property
    def is_usage_limit_exceeded(self):
        return self.usage_limit is not None and self.usage_count >= self.usage_limit
