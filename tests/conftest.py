import sys
import pathlib
import pytest

# Ensure repository root is on sys.path so packages (adapters, core, plugins) import correctly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from adapters.storage_adapter import StorageAdapter
from core.config import Config
from core.runtime import CoreRuntime
from plugins.hass_bridge.hub_client import HubClient, HubError


class InMemoryStorageAdapter(StorageAdapter):
    def __init__(self):
        self._data: dict[str, dict[str, dict]] = {}
        self.closed = False
        # (namespace, key) каждой записи и удаления
        self.writes: list[tuple[str, str]] = []
        self.deletes: list[tuple[str, str]] = []
        # ключи, запись которых должна падать
        self.fail_keys: set[str] = set()

    async def get(self, namespace: str, key: str):
        return self._data.get(namespace, {}).get(key)

    async def set(self, namespace: str, key: str, value: dict):
        if key in self.fail_keys:
            raise RuntimeError(f"write failed for {key}")
        self.writes.append((namespace, key))
        self._data.setdefault(namespace, {})[key] = value

    async def delete(self, namespace: str, key: str) -> bool:
        if key in self.fail_keys:
            raise RuntimeError(f"delete failed for {key}")
        self.deletes.append((namespace, key))
        ns = self._data.get(namespace, {})
        if key in ns:
            del ns[key]
            return True
        return False

    async def list_keys(self, namespace: str) -> list[str]:
        return list(self._data.get(namespace, {}).keys())

    async def close(self) -> None:
        self.closed = True


class FakeHub(HubClient):
    """Хаб в памяти: отдаёт заданные снимки и записывает вызовы сервисов."""

    def __init__(self, states=None, services=None, config=None):
        self.states = states or []
        self.services = services or {}
        self.config = config or {"version": "2024.1"}
        self.calls: list[tuple] = []
        self.connected = False
        self.closed = False
        self.fail_calls = False
        self.fail_states = False
        self.requests: list[str] = []

    async def connect(self):
        self.connected = True

    async def close(self):
        self.closed = True

    async def get_config(self):
        self.requests.append("config")
        return self.config

    async def get_states(self):
        self.requests.append("states")
        if self.fail_states:
            raise HubError("states unavailable")
        return self.states

    async def get_services(self):
        self.requests.append("services")
        return self.services

    async def call_service(self, service, domain, service_data, target=None):
        self.calls.append((service, domain, service_data, target))
        if self.fail_calls:
            raise HubError("service call failed")
        return {"result": "ok"}


class RecordingScheduler:
    """Заглушка ResyncScheduler: только считает запросы."""

    def __init__(self):
        self.requests = 0

    def request(self, callback=None):
        self.requests += 1


LIGHT = {
    "entity_id": "light.kitchen",
    "state": "on",
    "attributes": {
        "friendly_name": "Kitchen",
        "brightness": 128,
        "rgb_color": [255, 0, 0],
    },
    "last_changed": "2024-01-01T10:00:00+00:00",
    "last_updated": "2024-01-01T10:00:05+00:00",
}

SENSOR = {
    "entity_id": "sensor.outside",
    "state": "21.5",
    "attributes": {"friendly_name": "Outside", "unit_of_measurement": "°C"},
    "last_changed": "2024-01-01T10:00:00+00:00",
    "last_updated": "2024-01-01T10:00:00+00:00",
}

SERVICES = {
    "light": {
        "turn_on": {
            "description": "Turn a light on",
            "fields": {"brightness": {"description": "Brightness"}, "transition": {}},
        },
        "turn_off": {"description": "Turn a light off", "fields": {"transition": {}}},
        "reload": {"description": "Reload lights"},
    },
    "input_number": {
        "set_value": {"fields": {"value": {}}},
    },
    "persistent_notification": {
        "dismiss": {"fields": {"notification_id": {}}},
    },
}


@pytest.fixture
def memory_adapter():
    return InMemoryStorageAdapter()


@pytest.fixture
def config():
    return Config(namespace="hass.0", resync_delay=0.05, settle_delay=0)


@pytest.fixture
def runtime(memory_adapter, config):
    return CoreRuntime(memory_adapter, config)


@pytest.fixture
def hub():
    return FakeHub(states=[dict(LIGHT), dict(SENSOR)], services=SERVICES)
