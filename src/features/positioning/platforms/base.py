"""位置情報プラットフォームの基底クラス"""

from abc import ABC, abstractmethod
from typing import AsyncIterator

from ....shared.utils.geo import Coordinate
from ..domain.models import LocationAccuracy, PermissionStatus


class LocationPlatform(ABC):
    """端末の位置情報APIの抽象基底クラス"""

    @abstractmethod
    async def is_location_service_enabled(self) -> bool:
        """位置情報サービスが有効か"""
        pass

    @abstractmethod
    async def check_permission(self) -> PermissionStatus:
        """現在の権限状態を取得"""
        pass

    @abstractmethod
    async def request_permission(self) -> PermissionStatus:
        """権限を要求し、要求後の状態を返す"""
        pass

    @abstractmethod
    async def get_current_fix(self, accuracy: LocationAccuracy, timeout: float) -> Coordinate:
        """
        現在位置を1回取得

        Args:
            accuracy: 要求精度
            timeout: タイムアウト（秒）

        Raises:
            TimeoutError: 時間内に取得できなかった場合
        """
        pass

    @abstractmethod
    def position_stream(
        self, accuracy: LocationAccuracy, min_distance_meters: float
    ) -> AsyncIterator[Coordinate]:
        """
        位置の連続ストリーム

        Args:
            accuracy: 要求精度
            min_distance_meters: 通知する最小移動距離（メートル、ヒント）
        """
        pass
