"""Google Maps Geocoding / Places API実装"""
from typing import Any, Optional

import googlemaps

from ....shared.exceptions.errors import ConfigurationError, GeocodingApiError, GeocodingError
from ....shared.logging.config import get_logger
from ....shared.utils.geo import Coordinate
from ..domain.models import (
    PlaceDetails,
    PlacePrediction,
    Placemark,
    find_address_component,
    find_street,
    parse_address_components,
)
from .base import GeocodingBackend

logger = get_logger(__name__)

# プレイス詳細で取得するフィールド（課金対象を絞る）
PLACE_DETAIL_FIELDS = [
    "place_id",
    "name",
    "formatted_address",
    "geometry/location",
    "address_component",
]


class GoogleMapsGeocoder(GeocodingBackend):
    """Google Maps Geocoding / Places API実装"""

    def __init__(
        self,
        api_key: Optional[str],
        timeout: Optional[float] = None,
        client: Optional[googlemaps.Client] = None,
    ) -> None:
        """
        Args:
            api_key: Google Maps API キー
            timeout: HTTPリクエストのタイムアウト（秒）
            client: 既存のクライアント（テスト用）

        Raises:
            ConfigurationError: APIキーが未設定、またはクライアント初期化に失敗した場合
        """
        if client is not None:
            self.client = client
            return

        if not api_key:
            raise ConfigurationError("Google Maps API key must not be empty")

        try:
            self.client = googlemaps.Client(key=api_key, timeout=timeout)
            logger.info("GoogleMapsGeocoder initialized")
        except Exception as e:
            raise ConfigurationError(f"Failed to initialize Google Maps client: {e}") from e

    def reverse_geocode(
        self, latitude: float, longitude: float, language: Optional[str] = None
    ) -> list[Placemark]:
        """
        座標から地点情報を取得（逆ジオコーディング）

        Args:
            latitude: 緯度
            longitude: 経度
            language: 結果の言語

        Returns:
            list[Placemark]: 地点情報のリスト（見つからない場合は空）

        Raises:
            GeocodingError: APIリクエストに失敗した場合
        """
        try:
            logger.debug(f"Reverse geocoding: ({latitude}, {longitude})")
            results = self.client.reverse_geocode((latitude, longitude), language=language)
        except googlemaps.exceptions.ApiError as e:
            raise GeocodingApiError(f"Google Maps API error: {e}", status=e.status) from e
        except googlemaps.exceptions.TransportError as e:
            raise GeocodingError(f"Google Maps transport error: {e}") from e
        except Exception as e:
            raise GeocodingError(f"Unexpected error during reverse geocoding: {e}") from e

        if not results:
            logger.debug(f"No reverse geocoding results for: ({latitude}, {longitude})")
            return []

        return [self._to_placemark(result) for result in results]

    def autocomplete(
        self,
        text: str,
        session_token: str,
        location: Optional[Coordinate] = None,
        radius: Optional[float] = None,
        language: Optional[str] = None,
        region: Optional[str] = None,
    ) -> list[PlacePrediction]:
        """
        Places Autocompleteで候補を取得

        Args:
            text: 入力テキスト
            session_token: セッショントークン
            location: バイアス座標
            radius: バイアス半径（メートル）
            language: 結果の言語
            region: 国コード（指定時はその国に限定）

        Returns:
            list[PlacePrediction]: 候補のリスト

        Raises:
            GeocodingApiError: APIがエラーステータスを返した場合
            GeocodingError: その他の失敗時
        """
        components = {"country": [region]} if region else None

        try:
            logger.debug(f"Places autocomplete: {text!r} (bias={location}, radius={radius})")
            predictions = self.client.places_autocomplete(
                text,
                session_token=session_token,
                location=location.to_tuple() if location else None,
                radius=int(radius) if radius and location else None,
                language=language,
                components=components,
                strict_bounds=False,
            )
        except googlemaps.exceptions.ApiError as e:
            raise GeocodingApiError(f"Places API error: {e}", status=e.status) from e
        except googlemaps.exceptions.TransportError as e:
            raise GeocodingError(f"Places transport error: {e}") from e
        except Exception as e:
            raise GeocodingError(f"Unexpected error during autocomplete: {e}") from e

        return [
            PlacePrediction(
                place_id=prediction["place_id"],
                description=prediction.get("description", ""),
            )
            for prediction in predictions or []
            if prediction.get("place_id")
        ]

    def place_details(
        self, place_id: str, session_token: str, language: Optional[str] = None
    ) -> Optional[PlaceDetails]:
        """
        Place Detailsで座標と住所コンポーネントを取得

        Args:
            place_id: Place ID
            session_token: オートコンプリートと同じセッショントークン
            language: 結果の言語

        Returns:
            Optional[PlaceDetails]: 詳細（APIがエラーステータスを返した場合はNone）

        Raises:
            GeocodingError: 通信エラー時
        """
        try:
            response = self.client.place(
                place_id,
                session_token=session_token,
                fields=PLACE_DETAIL_FIELDS,
                language=language,
            )
        except googlemaps.exceptions.ApiError as e:
            logger.warning(f"Place details error for {place_id}: {e}")
            return None
        except googlemaps.exceptions.TransportError as e:
            raise GeocodingError(f"Places transport error: {e}") from e
        except Exception as e:
            raise GeocodingError(f"Unexpected error during place details: {e}") from e

        result = (response or {}).get("result") or {}
        location = result.get("geometry", {}).get("location", {})
        latitude = location.get("lat")
        longitude = location.get("lng")

        if latitude is None or longitude is None:
            logger.warning(f"Invalid place details (missing lat/lng): {place_id}")
            return None

        return PlaceDetails(
            place_id=result.get("place_id", place_id),
            coordinate=Coordinate(latitude=latitude, longitude=longitude),
            formatted_address=result.get("formatted_address"),
            name=result.get("name"),
            address_components=parse_address_components(result.get("address_components")),
        )

    def _to_placemark(self, result: dict[str, Any]) -> Placemark:
        """逆ジオコーディング結果をPlacemarkに変換"""
        components = parse_address_components(result.get("address_components"))

        return Placemark(
            street=find_street(components),
            sub_locality=find_address_component(components, "sublocality"),
            locality=find_address_component(components, "locality"),
            postal_code=find_address_component(components, "postal_code"),
            country=find_address_component(components, "country"),
            formatted_address=result.get("formatted_address"),
            place_id=result.get("place_id"),
        )
