"""アプリケーション設定（Pydantic Settings）"""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ...shared.utils.geo import Coordinate


class Settings(BaseSettings):
    """アプリケーション設定"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Project
    project_name: str = Field(
        default="location-picker",
        description="プロジェクト名",
    )
    environment: str = Field(
        default="development",
        description="環境 (development, staging, production)",
    )

    # GCP
    gcp_project_id: Optional[str] = Field(
        default=None,
        description="GCPプロジェクトID（Secret Manager・Cloud Logging使用時に必要）",
    )

    # Google Maps
    google_maps_api_key: Optional[str] = Field(
        default=None,
        description="Google Maps API Key（ローカル開発用）",
    )
    google_maps_api_key_secret_name: str = Field(
        default="google-maps-api-key",
        description="Google Maps API KeyのSecret Manager名",
    )

    # Map camera
    initial_latitude: Optional[float] = Field(
        default=None,
        ge=-90.0,
        le=90.0,
        description="初期表示の緯度",
    )
    initial_longitude: Optional[float] = Field(
        default=None,
        ge=-180.0,
        le=180.0,
        description="初期表示の経度",
    )
    initial_zoom: float = Field(default=16.0, description="初期ズーム")
    min_zoom: float = Field(default=2.0, description="最小ズーム")
    max_zoom: float = Field(default=20.0, description="最大ズーム")

    # Picker
    debounce_time_ms: int = Field(
        default=500,
        ge=0,
        description="カメラ移動の逆ジオコーディングをデバウンスする時間（ミリ秒）",
    )
    search_debounce_time_ms: int = Field(
        default=300,
        ge=0,
        description="検索入力をデバウンスする時間（ミリ秒）",
    )
    search_radius: float = Field(
        default=50000.0,
        gt=0,
        description="住所検索のバイアス半径（メートル）",
    )
    camera_animation_timeout: float = Field(
        default=3.0,
        gt=0,
        description="リモート地図のアニメーション完了通知を待つ時間（秒）",
    )
    language: Optional[str] = Field(
        default="fr",
        description="住所検索・逆ジオコーディングの言語",
    )
    region: Optional[str] = Field(
        default=None,
        description="住所検索を限定する国コード（例: fr）",
    )

    # Geocoding
    reverse_geocoding_timeout: float = Field(
        default=10.0,
        gt=0,
        description="逆ジオコーディングのタイムアウト（秒）",
    )
    search_timeout: float = Field(
        default=10.0,
        gt=0,
        description="住所検索のタイムアウト（秒）",
    )
    address_cache_size: int = Field(
        default=100,
        ge=1,
        description="住所キャッシュの最大エントリ数",
    )

    # Positioning
    position_timeout: float = Field(
        default=15.0,
        gt=0,
        description="端末位置取得のタイムアウト（秒）",
    )
    position_cache_validity: float = Field(
        default=300.0,
        ge=0,
        description="端末位置キャッシュの有効期間（秒）",
    )
    position_distance_filter: float = Field(
        default=10.0,
        ge=0,
        description="位置追跡で通知する最小移動距離（メートル）",
    )
    geolocation_permission: str = Field(
        default="granted",
        description="位置情報の権限状態 (granted, denied, permanently_denied, restricted)",
    )
    geolocation_poll_interval: float = Field(
        default=5.0,
        gt=0,
        description="位置追跡のポーリング間隔（秒）",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="ログレベル (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    gcp_logging_enabled: bool = Field(
        default=False,
        description="Cloud Loggingを有効にするか",
    )

    # Cloud Run
    port: int = Field(
        default=8080,
        description="HTTPサーバーのポート番号",
    )

    def get_initial_coordinate(self) -> Optional[Coordinate]:
        """初期座標（緯度・経度の両方が設定されている場合のみ）"""
        if self.initial_latitude is None or self.initial_longitude is None:
            return None
        return Coordinate(latitude=self.initial_latitude, longitude=self.initial_longitude)

    @property
    def is_production(self) -> bool:
        """本番環境かどうか"""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """開発環境かどうか"""
        return self.environment.lower() == "development"
