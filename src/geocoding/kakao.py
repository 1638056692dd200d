import requests
import logging

from src.config.settings import REQUEST_TIMEOUT, get_kakao_rest_api_key

# Constants
KAKAO_COORD2ADDRESS_URL = "https://dapi.kakao.com/v2/local/geo/coord2address.json"
ADDRESS_NOT_FOUND_PLACEHOLDER = "주소를 찾을 수 없습니다"

# Get logger
logger = logging.getLogger(__name__)


class GeocodingError(Exception):
    """Base class for reverse geocoding failures."""

    status_code = 500
    message = "Failed to convert coordinates to address"

    def __init__(self, message=None, upstream_status=None):
        if message:
            self.message = message
        self.upstream_status = upstream_status
        super().__init__(self.message)


class MissingApiKey(GeocodingError):
    message = "Server configuration error: missing API key"


class AddressNotFound(GeocodingError):
    status_code = 404
    message = "Address not found for the given coordinates"


class UpstreamAuthError(GeocodingError):
    message = "API authentication failed"


class UpstreamRateLimited(GeocodingError):
    status_code = 429
    message = "API rate limit exceeded"


class UpstreamError(GeocodingError):
    message = "External API error"


def extract_address(document):
    """Prefer the lot-number address, then the road address, then the placeholder."""
    for field in ("address", "road_address"):
        section = document.get(field) or {}
        name = section.get("address_name")
        if name:
            return name
    return ADDRESS_NOT_FOUND_PLACEHOLDER


class KakaoGeocoder:
    def __init__(self, api_key=None, timeout=REQUEST_TIMEOUT, session=None):
        self.api_key = api_key
        self.timeout = timeout
        self.http = session or requests

    def reverse(self, latitude, longitude):
        api_key = self.api_key or get_kakao_rest_api_key()
        if not api_key:
            logger.warning("KAKAO_REST_API_KEY is not set in environment variables.")
            raise MissingApiKey()

        params = {
            "x": longitude,
            "y": latitude,
            "input_coord": "WGS84",
        }

        headers = {
            "Authorization": f"KakaoAK {api_key}"
        }

        try:
            response = self.http.get(
                KAKAO_COORD2ADDRESS_URL,
                params=params,
                headers=headers,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Network error for coordinates ({latitude}, {longitude}): {e}")
            raise UpstreamError() from e

        if response.status_code == 401:
            logger.error("Kakao API rejected the REST key (HTTP 401)")
            raise UpstreamAuthError(upstream_status=401)
        if response.status_code == 429:
            logger.warning(f"Kakao API rate limit hit for coordinates ({latitude}, {longitude})")
            raise UpstreamRateLimited(upstream_status=429)
        if response.status_code != 200:
            logger.error(f"Geocoding HTTP error ({response.status_code}) for coordinates ({latitude}, {longitude})")
            raise UpstreamError(upstream_status=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Undecodable geocoding response for ({latitude}, {longitude}): {e}")
            raise UpstreamError() from e

        documents = (data or {}).get("documents") or []
        if not documents:
            logger.warning(f"No address found for coordinates ({latitude}, {longitude})")
            raise AddressNotFound()

        address = extract_address(documents[0])
        logger.info(f"Successfully geocoded coordinates ({latitude}, {longitude})")
        return address
