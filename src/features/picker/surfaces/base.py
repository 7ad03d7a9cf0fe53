"""地図サーフェスの基底クラス"""

from abc import ABC, abstractmethod

from ....shared.utils.geo import Coordinate


class MapSurface(ABC):
    """ホスト側の地図（カメラ命令の送信先）の抽象基底クラス"""

    @abstractmethod
    async def animate_camera(self, target: Coordinate, zoom: float) -> None:
        """
        カメラを指定位置へアニメーション

        アニメーション完了まで待機する
        """
        pass

    @abstractmethod
    async def zoom_in(self) -> None:
        pass

    @abstractmethod
    async def zoom_out(self) -> None:
        pass
