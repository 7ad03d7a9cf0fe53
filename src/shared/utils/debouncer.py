"""デバウンス（キャンセル＆再設定タイマー）ユーティリティ"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from ..logging.config import get_logger

logger = get_logger(__name__)


class Debouncer:
    """
    単一のタイマーハンドルによるデバウンス

    arm()を呼ぶたびに前回のタイマーをキャンセルしてから再設定するため、
    最後に設定したタイマーだけが発火する
    """

    def __init__(self, delay: float, name: str = "debouncer") -> None:
        """
        Args:
            delay: 静止期間（秒）
            name: ログ用の名前
        """
        self.delay = delay
        self.name = name
        self._task: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        """発火待ちのタイマーがあるか"""
        return self._task is not None and not self._task.done()

    def arm(self, callback: Callable[..., Awaitable[Any]], *args: Any) -> None:
        """
        タイマーを再設定

        Args:
            callback: 発火時に実行するコルーチン関数
            *args: callbackに渡す引数
        """
        self.cancel()
        self._generation += 1
        self._task = asyncio.get_running_loop().create_task(
            self._fire(self._generation, callback, args)
        )

    def cancel(self) -> None:
        """発火待ち（または実行中）のタイマーをキャンセル"""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.debug(f"{self.name}: pending timer cancelled")
        self._task = None

    async def _fire(
        self,
        generation: int,
        callback: Callable[..., Awaitable[Any]],
        args: tuple[Any, ...],
    ) -> None:
        await asyncio.sleep(self.delay)

        if generation != self._generation:
            return

        try:
            await callback(*args)
        except Exception as e:
            logger.error(f"{self.name}: debounced callback failed: {e}", exc_info=True)
