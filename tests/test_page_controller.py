from unittest.mock import MagicMock, Mock

import pytest
import requests

from src.models.location import LocationSelection
from src.web.map_widget import MapWidget, PageDocument, SdkLoader
from src.web.page_controller import (
    ApiError,
    LocationApiClient,
    PageController,
    MSG_ADDRESS_NOT_FOUND,
    MSG_CONVERSION_ERROR,
    MSG_COPIED,
    MSG_COPY_FAILED,
    MSG_LOCATION_PERMISSION,
    MSG_SELECT_ALL,
)
from tests.test_map_widget import FakeMapAdapter


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture
def api():
    api = Mock(spec=LocationApiClient)
    api.coordinate_to_address.return_value = {
        "address": "서울 중구 태평로1가 31", "lat": 37.5665, "lng": 126.978, "usageCount": 7,
    }
    api.usage.return_value = {"count": 3, "limit": 100, "date": "2025-03-14"}
    return api


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def clipboard():
    return Mock()


@pytest.fixture
def controller(api, clipboard, clock):
    return PageController(api, clipboard=clipboard, clock=clock)


def ready_to_copy(controller):
    controller.select_location(37.5665, 126.978)
    controller.set_telco("KT")
    controller.set_report_type("불법시설물")
    controller.set_detail("옥상 안테나")


def test_select_location_stores_address_and_server_count(controller, api):
    selection = controller.select_location(37.5665, 126.978)

    api.coordinate_to_address.assert_called_once_with(37.5665, 126.978)
    assert selection == LocationSelection(lat=37.5665, lng=126.978, address="서울 중구 태평로1가 31")
    assert controller.usage_count == 7
    assert controller.is_loading is False
    assert controller.toast is None


def test_not_found_clears_address_and_toasts(controller, api):
    api.coordinate_to_address.side_effect = ApiError(404, "Address not found for the given coordinates")

    controller.select_location(10.0, 20.0)

    assert controller.selected_location == LocationSelection(lat=10.0, lng=20.0, address="")
    assert controller.toast.message == MSG_ADDRESS_NOT_FOUND
    assert controller.toast.kind == "error"


def test_quota_error_shows_server_message(controller, api):
    api.coordinate_to_address.side_effect = ApiError(429, "Daily usage limit exceeded (100 requests per day)")

    controller.select_location(10.0, 20.0)

    assert controller.selected_location is None
    assert controller.toast.message == "Daily usage limit exceeded (100 requests per day)"


def test_network_failure_toasts_conversion_error(controller, api):
    api.coordinate_to_address.side_effect = requests.ConnectionError("offline")

    controller.select_location(10.0, 20.0)

    assert controller.toast.message == MSG_CONVERSION_ERROR
    assert controller.is_loading is False


def test_toast_expires_after_two_seconds(controller, clock):
    controller.show_toast("hello", "success")
    clock.now += 1.9
    assert controller.toast.message == "hello"
    clock.now += 0.2
    assert controller.toast is None


def test_copy_requires_all_fields(controller, clipboard):
    controller.select_location(37.5665, 126.978)

    assert controller.copy_to_clipboard() is False
    assert controller.toast.message == MSG_SELECT_ALL
    clipboard.assert_not_called()


def test_copy_writes_report_text(controller, clipboard):
    ready_to_copy(controller)

    assert controller.can_copy
    assert controller.copy_to_clipboard() is True
    clipboard.assert_called_once_with(
        "통신사: KT\n"
        "유형: 불법시설물\n"
        "위도: 37.566500\n"
        "경도: 126.978000\n"
        "지번주소: 서울 중구 태평로1가 31\n"
        "세부내역: 옥상 안테나"
    )
    assert controller.toast.message == MSG_COPIED
    assert controller.toast.kind == "success"


def test_copy_failure_toasts(controller, clipboard):
    clipboard.side_effect = OSError("denied")
    ready_to_copy(controller)

    assert controller.copy_to_clipboard() is False
    assert controller.toast.message == MSG_COPY_FAILED


def test_detail_is_capped(controller):
    controller.set_detail("가" * 150)
    assert len(controller.detail) == 100


def test_unknown_options_rejected(controller):
    with pytest.raises(ValueError):
        controller.set_telco("SKT")
    with pytest.raises(ValueError):
        controller.set_report_type("기타")


def test_refresh_usage_and_limit_flag(controller, api):
    assert controller.refresh_usage() == 3
    assert controller.is_usage_limit_exceeded is False

    api.usage.return_value = {"count": 100, "limit": 100, "date": "2025-03-14"}
    controller.refresh_usage()
    assert controller.is_usage_limit_exceeded is True


def test_widget_click_flows_into_selection(api, clipboard, clock):
    adapter = FakeMapAdapter()
    widget = MapWidget(adapter, SdkLoader("js-key"), PageDocument())
    controller = PageController(api, clipboard=clipboard, widget=widget, clock=clock)
    controller.set_current_location(35.1796, 129.0756)
    widget.mount()

    adapter.listeners[0]({"lat": 37.5665, "lng": 126.978})

    api.coordinate_to_address.assert_called_once_with(37.5665, 126.978)
    assert adapter.maps[0]["center"] == (37.5665, 126.978)
    assert adapter.visible_markers == [{"position": (37.5665, 126.978)}]
    assert controller.selected_location.address == "서울 중구 태평로1가 31"


def test_current_location_centers_widget_on_mount(api):
    adapter = FakeMapAdapter()
    widget = MapWidget(adapter, SdkLoader("js-key"), PageDocument())
    controller = PageController(api, widget=widget)
    controller.set_current_location(35.1796, 129.0756)
    widget.mount()
    assert adapter.maps[0]["center"] == (35.1796, 129.0756)


def make_http_response(status_code, payload):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = str(payload)
    return response


def test_api_client_posts_coordinates():
    session = MagicMock()
    session.post.return_value = make_http_response(200, {"address": "a", "lat": 1.0, "lng": 2.0, "usageCount": 1})
    client = LocationApiClient(base_url="http://api.test/", session=session)

    assert client.coordinate_to_address(1.0, 2.0)["address"] == "a"
    session.post.assert_called_once_with(
        "http://api.test/api/coordinate-to-address", json={"lat": 1.0, "lng": 2.0}, timeout=10
    )


def test_api_client_raises_with_server_message():
    session = MagicMock()
    session.get.return_value = make_http_response(500, {"message": "Failed to get usage information"})
    client = LocationApiClient(session=session)

    with pytest.raises(ApiError) as exc_info:
        client.usage()

    assert exc_info.value.status_code == 500
    assert exc_info.value.message == "Failed to get usage information"


def test_denied_geolocation_shows_permission_toast(controller):
    controller.location_unavailable()

    assert controller.toast.message == MSG_LOCATION_PERMISSION
    assert controller.toast.kind == "error"
    assert controller.current_location is None


def test_api_client_fetches_static_map_bytes():
    session = MagicMock()
    response = make_http_response(200, {})
    response.content = b"<svg/>"
    session.post.return_value = response
    client = LocationApiClient(base_url="http://api.test", session=session)

    assert client.static_map(37.5, 127.0) == b"<svg/>"
    session.post.assert_called_once_with(
        "http://api.test/api/static-map", json={"lat": 37.5, "lng": 127.0}, timeout=10
    )
