"""Google Geolocation API による位置情報プラットフォーム"""

import asyncio
from typing import AsyncIterator, Optional

import googlemaps

from ....shared.exceptions.errors import ConfigurationError, LocationUnknownError
from ....shared.logging.config import get_logger
from ....shared.utils.geo import Coordinate
from ..domain.models import LocationAccuracy, PermissionStatus
from .base import LocationPlatform

logger = get_logger(__name__)


class GoogleGeolocationPlatform(LocationPlatform):
    """
    Google Geolocation API（IP・ネットワークベース）による位置取得

    サーバー上では権限ダイアログを出せないため、権限状態は設定値を使用する
    """

    def __init__(
        self,
        api_key: Optional[str],
        permission_status: PermissionStatus = PermissionStatus.GRANTED,
        poll_interval: float = 5.0,
        client: Optional[googlemaps.Client] = None,
    ) -> None:
        """
        Args:
            api_key: Google Maps API キー
            permission_status: 権限状態（設定値）
            poll_interval: ストリームのポーリング間隔（秒）
            client: 既存のクライアント（テスト用）

        Raises:
            ConfigurationError: APIキーが未設定、またはクライアント初期化に失敗した場合
        """
        self.permission_status = permission_status
        self.poll_interval = poll_interval

        if client is not None:
            self.client = client
        elif not api_key:
            raise ConfigurationError("Google Maps API key must not be empty")
        else:
            try:
                self.client = googlemaps.Client(key=api_key)
            except Exception as e:
                raise ConfigurationError(f"Failed to initialize Google Maps client: {e}") from e

        logger.info(
            f"GoogleGeolocationPlatform initialized: permission={permission_status.value}, "
            f"poll_interval={poll_interval}s"
        )

    async def is_location_service_enabled(self) -> bool:
        return True

    async def check_permission(self) -> PermissionStatus:
        return self.permission_status

    async def request_permission(self) -> PermissionStatus:
        return self.permission_status

    async def get_current_fix(self, accuracy: LocationAccuracy, timeout: float) -> Coordinate:
        """
        Geolocation APIで現在位置を取得

        Raises:
            LocationUnknownError: APIエラーまたは不正なレスポンスの場合
        """
        logger.debug(f"Requesting geolocation fix (accuracy={accuracy.value})")

        try:
            response = await asyncio.to_thread(self.client.geolocate, consider_ip=True)
        except googlemaps.exceptions.ApiError as e:
            raise LocationUnknownError(f"Geolocation API error: {e}") from e
        except googlemaps.exceptions.TransportError as e:
            raise LocationUnknownError(f"Geolocation transport error: {e}") from e

        location = (response or {}).get("location", {})
        latitude = location.get("lat")
        longitude = location.get("lng")

        if latitude is None or longitude is None:
            raise LocationUnknownError(f"Invalid geolocation response: {response}")

        logger.debug(
            f"Geolocation fix: ({latitude}, {longitude}), accuracy={response.get('accuracy')}m"
        )
        return Coordinate(latitude=latitude, longitude=longitude)

    async def position_stream(
        self, accuracy: LocationAccuracy, min_distance_meters: float
    ) -> AsyncIterator[Coordinate]:
        while True:
            yield await self.get_current_fix(accuracy, timeout=self.poll_interval)
            await asyncio.sleep(self.poll_interval)
