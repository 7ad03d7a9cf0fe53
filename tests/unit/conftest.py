"""ユニットテスト共通のフェイクとフィクスチャ"""

import asyncio
import time
from typing import AsyncIterator, Callable, Optional

import pytest
import pytest_asyncio

from src.features.geocoding.domain.models import (
    AddressComponent,
    PlaceDetails,
    PlacePrediction,
    Placemark,
)
from src.features.geocoding.providers.address_cache import AddressCache
from src.features.geocoding.providers.base import GeocodingBackend
from src.features.geocoding.services.address_resolver import AddressResolver
from src.features.picker.controllers.selection_controller import SelectionController
from src.features.picker.domain.models import PickerConfig
from src.features.picker.surfaces.base import MapSurface
from src.features.positioning.domain.models import LocationAccuracy, PermissionStatus
from src.features.positioning.platforms.base import LocationPlatform
from src.features.positioning.services.position_provider import PositionProvider
from src.shared.utils.geo import Coordinate

TIMES_SQUARE = Coordinate(latitude=40.7580, longitude=-73.9855)
EIFFEL_TOWER = Coordinate(latitude=48.8584, longitude=2.2945)

MIDTOWN_PLACEMARK = Placemark(
    street="5th Ave",
    sub_locality="Midtown",
    locality="New York",
    country="USA",
    postal_code="10036",
    place_id="place-midtown",
)


class FakeGeocodingBackend(GeocodingBackend):
    """呼び出しを記録するジオコーディングバックエンド"""

    def __init__(self) -> None:
        self.default_placemarks: list[Placemark] = [MIDTOWN_PLACEMARK]
        self.placemarks_by_key: dict[str, list[Placemark]] = {}
        self.delays_by_key: dict[str, float] = {}
        self.reverse_delay = 0.0
        self.reverse_error: Optional[Exception] = None
        self.reverse_calls: list[tuple[float, float, Optional[str]]] = []

        self.predictions: list[PlacePrediction] = []
        self.predictions_by_text: dict[str, list[PlacePrediction]] = {}
        self.autocomplete_delays: dict[str, float] = {}
        self.details: dict[str, PlaceDetails] = {}
        self.autocomplete_delay = 0.0
        self.autocomplete_error: Optional[Exception] = None
        self.autocomplete_calls: list[dict] = []
        self.details_calls: list[tuple[str, str]] = []

    def reverse_geocode(
        self, latitude: float, longitude: float, language: Optional[str] = None
    ) -> list[Placemark]:
        self.reverse_calls.append((latitude, longitude, language))
        key = Coordinate(latitude=latitude, longitude=longitude).cache_key()

        delay = self.delays_by_key.get(key, self.reverse_delay)
        if delay:
            time.sleep(delay)
        if self.reverse_error is not None:
            raise self.reverse_error

        return self.placemarks_by_key.get(key, self.default_placemarks)

    def autocomplete(
        self,
        text: str,
        session_token: str,
        location: Optional[Coordinate] = None,
        radius: Optional[float] = None,
        language: Optional[str] = None,
        region: Optional[str] = None,
    ) -> list[PlacePrediction]:
        self.autocomplete_calls.append(
            {
                "text": text,
                "session_token": session_token,
                "location": location,
                "radius": radius,
                "language": language,
                "region": region,
            }
        )
        delay = self.autocomplete_delays.get(text, self.autocomplete_delay)
        if delay:
            time.sleep(delay)
        if self.autocomplete_error is not None:
            raise self.autocomplete_error
        return list(self.predictions_by_text.get(text, self.predictions))

    def place_details(
        self, place_id: str, session_token: str, language: Optional[str] = None
    ) -> Optional[PlaceDetails]:
        self.details_calls.append((place_id, session_token))
        return self.details.get(place_id)

    def add_place(
        self,
        place_id: str,
        description: str,
        coordinate: Coordinate,
        formatted_address: Optional[str] = None,
        components: Optional[list[AddressComponent]] = None,
    ) -> None:
        """候補と詳細を登録"""
        self.predictions.append(PlacePrediction(place_id=place_id, description=description))
        self.details[place_id] = PlaceDetails(
            place_id=place_id,
            coordinate=coordinate,
            formatted_address=formatted_address,
            address_components=components or [],
        )


class FakeLocationPlatform(LocationPlatform):
    """設定どおりに振る舞う位置情報プラットフォーム"""

    def __init__(self) -> None:
        self.service_enabled = True
        self.permission = PermissionStatus.GRANTED
        self.permission_after_request: Optional[PermissionStatus] = None
        self.position = TIMES_SQUARE
        self.fix_delay = 0.0
        self.fix_error: Optional[Exception] = None
        self.fix_calls = 0
        self.request_calls = 0
        self.stream_positions: list[Coordinate] = []

    async def is_location_service_enabled(self) -> bool:
        return self.service_enabled

    async def check_permission(self) -> PermissionStatus:
        return self.permission

    async def request_permission(self) -> PermissionStatus:
        self.request_calls += 1
        if self.permission_after_request is not None:
            self.permission = self.permission_after_request
        return self.permission

    async def get_current_fix(self, accuracy: LocationAccuracy, timeout: float) -> Coordinate:
        self.fix_calls += 1
        if self.fix_delay:
            await asyncio.sleep(self.fix_delay)
        if self.fix_error is not None:
            raise self.fix_error
        return self.position

    async def position_stream(
        self, accuracy: LocationAccuracy, min_distance_meters: float
    ) -> AsyncIterator[Coordinate]:
        for position in self.stream_positions:
            yield position


class FakeMapSurface(MapSurface):
    """カメラ命令を記録するサーフェス"""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        # アニメーション中にホストが送るカメラ移動を模擬する
        self.on_animate: Optional[Callable[[Coordinate], None]] = None

    async def animate_camera(self, target: Coordinate, zoom: float) -> None:
        self.calls.append(("animate", target, zoom))
        if self.on_animate is not None:
            self.on_animate(target)
        await asyncio.sleep(0)

    async def zoom_in(self) -> None:
        self.calls.append(("zoom_in",))

    async def zoom_out(self) -> None:
        self.calls.append(("zoom_out",))

    @property
    def animations(self) -> list[Coordinate]:
        return [call[1] for call in self.calls if call[0] == "animate"]


class FakeClock:
    """手動で進める単調クロック"""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def backend() -> FakeGeocodingBackend:
    return FakeGeocodingBackend()


@pytest.fixture
def platform() -> FakeLocationPlatform:
    return FakeLocationPlatform()


@pytest.fixture
def surface() -> FakeMapSurface:
    return FakeMapSurface()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def resolver(backend: FakeGeocodingBackend) -> AddressResolver:
    return AddressResolver(backend, cache=AddressCache(max_size=100), language="fr")


@pytest.fixture
def provider(platform: FakeLocationPlatform, clock: FakeClock) -> PositionProvider:
    return PositionProvider(platform, cache_validity=300.0, default_timeout=1.0, clock=clock)


@pytest.fixture
def picker_config() -> PickerConfig:
    return PickerConfig(debounce_time=0.05, search_debounce_time=0.03)


@pytest_asyncio.fixture
async def controller(
    picker_config: PickerConfig, provider: PositionProvider, resolver: AddressResolver
) -> AsyncIterator[SelectionController]:
    controller = SelectionController(picker_config, provider, resolver)
    yield controller
    controller.dispose()
    # キャンセルしたタイマーを完了させる
    await asyncio.sleep(0)
