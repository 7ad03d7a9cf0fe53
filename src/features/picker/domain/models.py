"""ロケーションピッカー機能のドメインモデル"""
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from ....shared.exceptions.errors import LocationErrorKind
from ....shared.utils.geo import Coordinate
from ...geocoding.domain.models import ResolvedLocation

if TYPE_CHECKING:
    from ....infrastructure.config.settings import Settings

# 初期座標も端末位置もない場合の既定座標（パリ）
DEFAULT_COORDINATE = Coordinate(latitude=48.8566, longitude=2.3522)

# エラー種別ごとのユーザー向けメッセージ
ERROR_MESSAGES: dict[LocationErrorKind, str] = {
    LocationErrorKind.SERVICE_DISABLED: "Please enable location services on your device.",
    LocationErrorKind.PERMISSION_DENIED: "Location access denied. Please grant permission.",
    LocationErrorKind.PERMISSION_PERMANENTLY_DENIED: (
        "Location access permanently denied. Please enable it in the app settings."
    ),
    LocationErrorKind.TIMEOUT: "Failed to get location in time. Check GPS signal or try again.",
    LocationErrorKind.UNKNOWN: "An unknown error occurred while getting location.",
}


@dataclass(frozen=True)
class CameraPosition:
    """地図カメラの位置"""

    target: Coordinate
    zoom: float

    def to_dict(self) -> dict[str, Any]:
        return {"target": self.target.to_dict(), "zoom": self.zoom}


@dataclass
class PickerConfig:
    """ピッカーセッションの設定値"""

    initial_position: Optional[Coordinate] = None  # 初期座標
    initial_zoom: float = 16.0
    min_zoom: float = 2.0
    max_zoom: float = 20.0
    debounce_time: float = 0.5  # カメラ移動のデバウンス（秒）
    search_debounce_time: float = 0.3  # 検索入力のデバウンス（秒）
    search_radius: float = 50000.0  # 検索バイアス半径（メートル）
    language: Optional[str] = None  # 言語ヒント
    region: Optional[str] = None  # 国コードヒント

    def __post_init__(self) -> None:
        if self.min_zoom > self.max_zoom:
            raise ValueError(f"min_zoom ({self.min_zoom}) exceeds max_zoom ({self.max_zoom})")
        if self.debounce_time < 0 or self.search_debounce_time < 0:
            raise ValueError("Debounce times must not be negative")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "PickerConfig":
        """アプリケーション設定から作成"""
        return cls(
            initial_position=settings.get_initial_coordinate(),
            initial_zoom=settings.initial_zoom,
            min_zoom=settings.min_zoom,
            max_zoom=settings.max_zoom,
            debounce_time=settings.debounce_time_ms / 1000,
            search_debounce_time=settings.search_debounce_time_ms / 1000,
            search_radius=settings.search_radius,
            language=settings.language,
            region=settings.region,
        )

    def clamp_zoom(self, zoom: float) -> float:
        """ズームを[min_zoom, max_zoom]に収める"""
        return max(self.min_zoom, min(self.max_zoom, zoom))


@dataclass(frozen=True)
class SelectionState:
    """
    ピッカーの選択状態（スナップショット）

    コントローラーが遷移ごとに丸ごと置き換える
    """

    device_position: Optional[Coordinate] = None  # 端末位置
    selected_position: Optional[Coordinate] = None  # 選択中の座標（地図中心）
    selected_location: Optional[ResolvedLocation] = None  # 選択中の住所
    is_loading: bool = False
    is_viewport_moving: bool = False
    error: Optional[LocationErrorKind] = None
    error_message: Optional[str] = None
    search_query: str = ""
    search_results: tuple[ResolvedLocation, ...] = field(default_factory=tuple)
    is_searching: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_position": self.device_position.to_dict() if self.device_position else None,
            "selected_position": (
                self.selected_position.to_dict() if self.selected_position else None
            ),
            "selected_location": (
                self.selected_location.to_dict() if self.selected_location else None
            ),
            "is_loading": self.is_loading,
            "is_viewport_moving": self.is_viewport_moving,
            "error": self.error.value if self.error else None,
            "error_message": self.error_message,
            "search_query": self.search_query,
            "search_results": [location.to_dict() for location in self.search_results],
            "is_searching": self.is_searching,
        }
