"""端末位置取得サービス"""

import asyncio
import time
from typing import AsyncIterator, Callable, Optional

from ....shared.exceptions.errors import (
    LocationPermissionDeniedError,
    LocationPermissionPermanentlyDeniedError,
    LocationServiceDisabledError,
    LocationTimeoutError,
    LocationUnknownError,
    PositionError,
)
from ....shared.logging.config import get_logger
from ....shared.utils.geo import Coordinate, distance_between
from ..domain.models import LocationAccuracy, PermissionStatus
from ..platforms.base import LocationPlatform

logger = get_logger(__name__)

DEFAULT_CACHE_VALIDITY = 300.0  # 5分
DEFAULT_TIMEOUT = 15.0
DEFAULT_DISTANCE_FILTER = 10.0


class PositionProvider:
    """
    端末位置取得サービス

    Features:
    - 単一スロットの位置キャッシュ（有効期間あり）
    - 位置情報サービス・権限のチェック
    - 距離フィルタ付きの連続追跡
    """

    def __init__(
        self,
        platform: LocationPlatform,
        cache_validity: float = DEFAULT_CACHE_VALIDITY,
        default_timeout: float = DEFAULT_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            platform: 位置情報プラットフォーム
            cache_validity: キャッシュ有効期間（秒）
            default_timeout: 位置取得のデフォルトタイムアウト（秒）
            clock: 単調増加クロック（テスト用）
        """
        self.platform = platform
        self.cache_validity = cache_validity
        self.default_timeout = default_timeout
        self._clock = clock

        self._cached_position: Optional[Coordinate] = None
        self._last_update: Optional[float] = None

        logger.info(
            f"PositionProvider initialized: cache_validity={cache_validity}s, "
            f"timeout={default_timeout}s"
        )

    async def acquire(
        self,
        accuracy: LocationAccuracy = LocationAccuracy.HIGH,
        timeout: Optional[float] = None,
        force_refresh: bool = False,
    ) -> Coordinate:
        """
        現在位置を取得

        Args:
            accuracy: 要求精度
            timeout: タイムアウト（秒、Noneの場合はデフォルト）
            force_refresh: キャッシュを無視して再取得するか

        Returns:
            Coordinate: 現在位置

        Raises:
            LocationServiceDisabledError: 位置情報サービスが無効
            LocationPermissionDeniedError: 権限が拒否された
            LocationPermissionPermanentlyDeniedError: 権限が恒久的に拒否されている
            LocationTimeoutError: 時間内に取得できなかった
            LocationUnknownError: その他のエラー
        """
        if not force_refresh and self._is_cache_valid():
            logger.debug("Returning cached location")
            return self._cached_position

        effective_timeout = timeout if timeout is not None else self.default_timeout

        await self._ensure_ready()

        try:
            position = await asyncio.wait_for(
                self.platform.get_current_fix(accuracy, effective_timeout),
                timeout=effective_timeout,
            )
        except PositionError:
            raise
        except (asyncio.TimeoutError, TimeoutError) as e:
            logger.warning(f"Timeout getting current position after {effective_timeout}s")
            raise LocationTimeoutError(
                f"Failed to get location within {effective_timeout:g} seconds. "
                "Check GPS signal or try again."
            ) from e
        except Exception as e:
            logger.error(f"Error getting current position: {e}")
            raise LocationUnknownError(
                f"An unknown error occurred while getting location: {e}"
            ) from e

        self._cached_position = position
        self._last_update = self._clock()

        logger.debug(f"Current position updated: {position}")
        return position

    async def track(
        self,
        accuracy: LocationAccuracy = LocationAccuracy.HIGH,
        min_distance_meters: float = DEFAULT_DISTANCE_FILTER,
    ) -> AsyncIterator[Coordinate]:
        """
        位置を連続追跡（呼び出しごとに新しいジェネレーター）

        最初の位置と、前回通知位置からmin_distance_meters以上移動した位置のみを返す。
        単一スロットキャッシュは参照・更新しない

        Args:
            accuracy: 要求精度
            min_distance_meters: 通知する最小移動距離（メートル）
        """
        await self._ensure_ready()

        last_emitted: Optional[Coordinate] = None
        async for position in self.platform.position_stream(accuracy, min_distance_meters):
            if (
                last_emitted is not None
                and distance_between(last_emitted, position) < min_distance_meters
            ):
                continue
            last_emitted = position
            yield position

    @staticmethod
    def distance_between(a: Coordinate, b: Coordinate) -> float:
        """2点間の距離（メートル）"""
        return distance_between(a, b)

    def clear_cache(self) -> None:
        """位置キャッシュをクリア"""
        self._cached_position = None
        self._last_update = None
        logger.debug("Position cache cleared")

    async def _ensure_ready(self) -> None:
        """位置情報サービスと権限をチェック（必要なら権限を要求）"""
        try:
            service_enabled = await self.platform.is_location_service_enabled()
            if not service_enabled:
                logger.warning("Location services are disabled")
                raise LocationServiceDisabledError(
                    "Location services are disabled on the device."
                )

            status = await self.platform.check_permission()
            if status == PermissionStatus.DENIED:
                logger.debug("Location permission denied, requesting")
                status = await self.platform.request_permission()
        except PositionError:
            raise
        except Exception as e:
            raise LocationUnknownError(
                f"An unknown error occurred while checking location access: {e}"
            ) from e

        if status == PermissionStatus.GRANTED:
            return

        if status == PermissionStatus.PERMANENTLY_DENIED:
            logger.warning("Location permission permanently denied")
            raise LocationPermissionPermanentlyDeniedError(
                "Location permission permanently denied. Please enable from app settings."
            )

        raise LocationPermissionDeniedError(f"Location permission not granted: {status.value}")

    def _is_cache_valid(self) -> bool:
        if self._cached_position is None or self._last_update is None:
            return False
        return (self._clock() - self._last_update) < self.cache_validity
