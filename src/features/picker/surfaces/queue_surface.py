"""カメラ命令をメッセージとしてキューに積む地図サーフェス"""

import asyncio
from typing import Any

from ....shared.logging.config import get_logger
from ....shared.utils.geo import Coordinate
from .base import MapSurface

logger = get_logger(__name__)


class QueueMapSurface(MapSurface):
    """
    リモートの地図へカメラ命令を送るサーフェス

    命令はJSON互換の辞書として送信キューに積み、送信側（WebSocketなど）が取り出す。
    animate_camera()はリモートからカメラ停止の通知（notify_camera_idle）が届くまで待機する
    """

    def __init__(
        self, outbox: "asyncio.Queue[dict[str, Any]]", animation_timeout: float = 3.0
    ) -> None:
        """
        Args:
            outbox: 送信キュー
            animation_timeout: カメラ停止通知を待つ最大時間（秒）
        """
        self.outbox = outbox
        self.animation_timeout = animation_timeout
        self._camera_idle = asyncio.Event()

    async def animate_camera(self, target: Coordinate, zoom: float) -> None:
        logger.debug(f"Camera animate to {target} (zoom={zoom})")
        self._camera_idle.clear()
        await self.outbox.put(
            {"type": "camera", "action": "animate", "target": target.to_dict(), "zoom": zoom}
        )

        try:
            await asyncio.wait_for(self._camera_idle.wait(), timeout=self.animation_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"No camera idle within {self.animation_timeout}s after animating to {target}"
            )

    def notify_camera_idle(self) -> None:
        """リモートの地図がカメラ停止を通知したときに呼ぶ"""
        self._camera_idle.set()

    async def zoom_in(self) -> None:
        await self.outbox.put({"type": "camera", "action": "zoom_in"})

    async def zoom_out(self) -> None:
        await self.outbox.put({"type": "camera", "action": "zoom_out"})
