"""HTTPサーバーのテスト"""

import asyncio
import time
from typing import Any, Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from conftest import EIFFEL_TOWER, TIMES_SQUARE, FakeGeocodingBackend, FakeLocationPlatform
from src.features.geocoding.services.address_resolver import AddressResolver
from src.features.picker.session_factory import PickerSessionFactory
from src.infrastructure.config.settings import Settings
from src.server import _stop_sender, app, get_address_resolver, get_session_factory
from src.shared.exceptions.errors import ConfigurationError


@pytest.fixture
def backend() -> FakeGeocodingBackend:
    backend = FakeGeocodingBackend()
    backend.add_place("eiffel", "Tour Eiffel", EIFFEL_TOWER, formatted_address="Tour Eiffel, Paris")
    return backend


@pytest.fixture
def client(backend: FakeGeocodingBackend) -> Iterator[TestClient]:
    settings = Settings(_env_file=None, debounce_time_ms=50, search_debounce_time_ms=30)
    factory = PickerSessionFactory(settings, backend=backend, platform=FakeLocationPlatform())
    resolver = factory.create_address_resolver()

    app.dependency_overrides[get_session_factory] = lambda: factory
    app.dependency_overrides[get_address_resolver] = lambda: resolver
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_reverse(client: TestClient) -> None:
    response = client.get("/reverse", params={"lat": TIMES_SQUARE.latitude, "lng": TIMES_SQUARE.longitude})

    assert response.status_code == 200
    data = response.json()
    assert data["address"] == "5th Ave, Midtown, New York, USA"
    assert data["position"] == {"latitude": 40.758, "longitude": -73.9855}
    assert data["status"] == "resolved"


def test_reverse_rejects_out_of_range(client: TestClient) -> None:
    response = client.get("/reverse", params={"lat": 100.0, "lng": 0.0})
    assert response.status_code == 422


def test_search(client: TestClient, backend: FakeGeocodingBackend) -> None:
    response = client.get("/search", params={"q": "eiffel", "lat": 48.85, "lng": 2.35, "radius": 1000})

    assert response.status_code == 200
    data = response.json()
    assert data["query"] == "eiffel"
    assert [r["place_id"] for r in data["results"]] == ["eiffel"]
    assert backend.autocomplete_calls[0]["radius"] == 1000


def test_search_blank_query(client: TestClient, backend: FakeGeocodingBackend) -> None:
    response = client.get("/search", params={"q": "  "})

    assert response.json()["results"] == []
    assert backend.autocomplete_calls == []


def test_cache_stats(client: TestClient) -> None:
    client.get("/reverse", params={"lat": 1.0, "lng": 1.0})
    client.get("/reverse", params={"lat": 1.0, "lng": 1.0})

    stats = client.get("/cache/stats").json()

    assert stats["hit_count"] == 1
    assert stats["miss_count"] == 1


def test_configuration_error_returns_503(client: TestClient) -> None:
    def broken_resolver() -> AddressResolver:
        raise ConfigurationError("Google Maps API key is required")

    app.dependency_overrides[get_address_resolver] = broken_resolver

    response = client.get("/reverse", params={"lat": 1.0, "lng": 1.0})

    assert response.status_code == 503
    assert response.json()["detail"] == "Google Maps API key is required"


def _receive_until(websocket: Any, predicate: Callable[[dict], bool], limit: int = 20) -> dict:
    """条件を満たすメッセージまで読み進める"""
    for _ in range(limit):
        message = websocket.receive_json()
        if predicate(message):
            return message
    raise AssertionError("expected message not received")


def _settled_state(message: dict) -> bool:
    return (
        message["type"] == "state"
        and message["state"]["selected_location"] is not None
        and not message["state"]["is_loading"]
    )


def test_picker_session(client: TestClient) -> None:
    with client.websocket_connect("/picker") as websocket:
        initial = websocket.receive_json()
        assert initial["type"] == "initial_camera"
        assert initial["camera"]["zoom"] == 16.0

        websocket.send_json({"type": "map_ready"})
        state = _receive_until(websocket, _settled_state)["state"]
        assert state["device_position"] == {"latitude": 40.758, "longitude": -73.9855}
        assert state["selected_location"]["address"] == "5th Ave, Midtown, New York, USA"

        websocket.send_json({"type": "search", "query": "eiffel"})
        state = _receive_until(
            websocket,
            lambda m: m["type"] == "state" and len(m["state"]["search_results"]) == 1,
        )["state"]
        assert state["search_results"][0]["address"] == "Tour Eiffel, Paris"

        websocket.send_json({"type": "select_result", "index": 0})
        camera = _receive_until(websocket, lambda m: m["type"] == "camera")
        assert camera["action"] == "animate"
        assert camera["target"] == {"latitude": 48.8584, "longitude": 2.2945}

        websocket.send_json({"type": "zoom_in"})
        camera = _receive_until(websocket, lambda m: m["type"] == "camera")
        assert camera["action"] == "zoom_in"


def test_picker_session_camera_move(client: TestClient) -> None:
    with client.websocket_connect("/picker") as websocket:
        websocket.receive_json()
        websocket.send_json({"type": "map_ready"})
        _receive_until(websocket, _settled_state)

        websocket.send_json({"type": "camera_move", "latitude": 48.8584, "longitude": 2.2945})
        moving = _receive_until(websocket, lambda m: m["type"] == "state")["state"]
        assert moving["selected_location"] is None
        assert moving["is_viewport_moving"] is True

        websocket.send_json({"type": "camera_idle"})
        state = _receive_until(websocket, _settled_state)["state"]
        assert state["selected_location"]["position"] == {"latitude": 48.8584, "longitude": 2.2945}


def test_picker_session_invalid_events(client: TestClient) -> None:
    with client.websocket_connect("/picker") as websocket:
        websocket.receive_json()

        websocket.send_json({"type": "teleport"})
        error = _receive_until(websocket, lambda m: m["type"] == "error")
        assert error["detail"] == "Unknown event type: teleport"

        websocket.send_json({"type": "select_result", "index": 3})
        error = _receive_until(websocket, lambda m: m["type"] == "error")
        assert error["detail"] == "Search result index out of range: 3"

        websocket.send_json({"type": "camera_move", "latitude": "north"})
        error = _receive_until(websocket, lambda m: m["type"] == "error")
        assert error["detail"].startswith("Invalid event")


def test_picker_session_selection_survives_remote_animation(
    client: TestClient, backend: FakeGeocodingBackend
) -> None:
    """地図側のアニメーションで届くカメラ移動は選択した検索結果の住所を上書きしない"""
    with client.websocket_connect("/picker") as websocket:
        websocket.receive_json()
        websocket.send_json({"type": "map_ready"})
        _receive_until(websocket, _settled_state)

        websocket.send_json({"type": "search", "query": "eiffel"})
        _receive_until(
            websocket,
            lambda m: m["type"] == "state" and len(m["state"]["search_results"]) == 1,
        )
        websocket.send_json({"type": "select_result", "index": 0})
        _receive_until(websocket, lambda m: m["type"] == "camera")

        websocket.send_json({"type": "camera_move", "latitude": 48.8570, "longitude": 2.3000})
        websocket.send_json({"type": "camera_move", "latitude": 48.8584, "longitude": 2.2945})
        websocket.send_json({"type": "camera_idle"})
        websocket.send_json({"type": "camera_move", "latitude": 48.8584, "longitude": 2.2945})
        websocket.send_json({"type": "camera_idle"})
        time.sleep(0.2)

        # 未知のイベントへの応答までに届いた状態を確認する
        websocket.send_json({"type": "flush"})
        states = []
        for _ in range(40):
            message = websocket.receive_json()
            if message["type"] == "error":
                break
            if message["type"] == "state":
                states.append(message["state"])

        assert states[-1]["selected_location"]["address"] == "Tour Eiffel, Paris"
        assert all(call[0] != 48.8584 for call in backend.reverse_calls)


def test_picker_session_malformed_messages(client: TestClient) -> None:
    with client.websocket_connect("/picker") as websocket:
        websocket.receive_json()

        websocket.send_text("not json")
        error = _receive_until(websocket, lambda m: m["type"] == "error")
        assert error["detail"].startswith("Malformed message")

        websocket.send_json([1, 2])
        error = _receive_until(websocket, lambda m: m["type"] == "error")
        assert error["detail"] == "Invalid event: expected a JSON object"

        # セッションは継続している
        websocket.send_json({"type": "teleport"})
        error = _receive_until(websocket, lambda m: m["type"] == "error")
        assert error["detail"] == "Unknown event type: teleport"


@pytest.mark.asyncio
async def test_stop_sender_collects_failure(caplog: pytest.LogCaptureFixture) -> None:
    async def failing_sender() -> None:
        raise RuntimeError("send failed")

    sender = asyncio.create_task(failing_sender())
    await asyncio.sleep(0)

    await _stop_sender(sender)

    assert sender.done()
    assert "Picker message sender failed: send failed" in caplog.text


@pytest.mark.asyncio
async def test_stop_sender_cancels_pending_sender() -> None:
    sender = asyncio.create_task(asyncio.sleep(10))

    await _stop_sender(sender)

    assert sender.cancelled()
