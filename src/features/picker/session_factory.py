"""ピッカーセッションファクトリー"""

from typing import Optional

from ...infrastructure.config.settings import Settings
from ...infrastructure.gcp.secret_manager import SecretManagerClient
from ...shared.exceptions.errors import ConfigurationError
from ...shared.logging.config import get_logger
from ..geocoding.providers.address_cache import AddressCache
from ..geocoding.providers.base import GeocodingBackend
from ..geocoding.providers.google_maps_geocoder import GoogleMapsGeocoder
from ..geocoding.services.address_resolver import AddressResolver
from ..positioning.domain.models import PermissionStatus
from ..positioning.platforms.base import LocationPlatform
from ..positioning.platforms.google_geolocation_platform import GoogleGeolocationPlatform
from ..positioning.services.position_provider import PositionProvider
from .controllers.selection_controller import SelectionController
from .domain.models import PickerConfig

logger = get_logger(__name__)


class PickerSessionFactory:
    """
    ピッカーセッションファクトリー

    設定から各サービスを組み立て、依存性注入を行う。
    バックエンドとプラットフォームは共有し、キャッシュを持つサービスはセッションごとに作成する
    """

    def __init__(
        self,
        settings: Settings,
        backend: Optional[GeocodingBackend] = None,
        platform: Optional[LocationPlatform] = None,
    ) -> None:
        """
        Args:
            settings: アプリケーション設定
            backend: ジオコーディングバックエンド（Noneの場合はGoogle Mapsを使用）
            platform: 位置情報プラットフォーム（Noneの場合はGoogle Geolocationを使用）
        """
        self.settings = settings
        self._api_key: Optional[str] = None
        self._backend = backend
        self._platform = platform

        logger.info("PickerSessionFactory initialized")

    @property
    def backend(self) -> GeocodingBackend:
        if self._backend is None:
            self._backend = GoogleMapsGeocoder(
                self._get_api_key(), timeout=self.settings.reverse_geocoding_timeout
            )
        return self._backend

    @property
    def platform(self) -> LocationPlatform:
        if self._platform is None:
            self._platform = GoogleGeolocationPlatform(
                self._get_api_key(),
                permission_status=self._get_permission_status(),
                poll_interval=self.settings.geolocation_poll_interval,
            )
        return self._platform

    def create_address_resolver(self) -> AddressResolver:
        """住所解決サービスを作成"""
        return AddressResolver(
            backend=self.backend,
            cache=AddressCache(max_size=self.settings.address_cache_size),
            reverse_timeout=self.settings.reverse_geocoding_timeout,
            search_timeout=self.settings.search_timeout,
            language=self.settings.language,
            region=self.settings.region,
        )

    def create_position_provider(self) -> PositionProvider:
        """端末位置取得サービスを作成"""
        return PositionProvider(
            platform=self.platform,
            cache_validity=self.settings.position_cache_validity,
            default_timeout=self.settings.position_timeout,
        )

    def create_controller(self) -> SelectionController:
        """1セッション分のコントローラーを作成"""
        return SelectionController(
            config=PickerConfig.from_settings(self.settings),
            position_provider=self.create_position_provider(),
            address_resolver=self.create_address_resolver(),
        )

    def _get_api_key(self) -> str:
        """
        Google Maps API Keyを取得

        設定値を優先し、開発環境以外ではSecret Managerから取得する

        Raises:
            ConfigurationError: API Keyを取得できない場合
        """
        if self._api_key:
            return self._api_key

        api_key = self.settings.google_maps_api_key

        if not api_key and not self.settings.is_development:
            if not self.settings.gcp_project_id:
                raise ConfigurationError(
                    "GCP_PROJECT_ID is required to read the Google Maps API key from Secret Manager"
                )
            secret_manager = SecretManagerClient(self.settings.gcp_project_id)
            api_key = secret_manager.get_secret(self.settings.google_maps_api_key_secret_name)

        if not api_key:
            raise ConfigurationError("Google Maps API key is required")

        self._api_key = api_key
        return api_key

    def _get_permission_status(self) -> PermissionStatus:
        try:
            return PermissionStatus(self.settings.geolocation_permission.lower())
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid geolocation permission: {self.settings.geolocation_permission}"
            ) from e
