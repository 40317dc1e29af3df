from typing import Any
import time

from prometheus_client import CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client import Counter, Gauge
from fastapi import APIRouter, Response

from core.runtime_module import RuntimeModule


class MonitoringModule(RuntimeModule):
    """Prometheus-метрики синхронизации и health check.

    Плагины сообщают о событиях через сервис `monitoring.record`:

        await runtime.service_registry.call("monitoring.record", "reconcile",
                                            created=3, updated=0, deleted=1)

    Usage: подключить `router` к FastAPI приложению хоста.
    """

    def __init__(self, runtime: Any = None):
        super().__init__(runtime)
        self.registry = CollectorRegistry()
        self._start_time = time.time()

        self.objects_created = Counter(
            "hass_objects_created_total", "Objects created in the host store", registry=self.registry,
        )
        self.objects_updated = Counter(
            "hass_objects_updated_total", "Objects updated in the host store", registry=self.registry,
        )
        self.objects_deleted = Counter(
            "hass_objects_deleted_total", "Objects deleted from the host store", registry=self.registry,
        )
        self.resyncs = Counter(
            "hass_resyncs_total", "Full resynchronization runs", registry=self.registry,
        )
        self.commands = Counter(
            "hass_commands_total", "Service calls issued to the hub", ["status"], registry=self.registry,
        )
        self.shadow_objects = Gauge(
            "hass_shadow_objects", "Objects known in the shadow tree", registry=self.registry,
        )
        self.uptime = Gauge("hass_uptime_seconds", "Module uptime seconds", registry=self.registry)

        self.router = APIRouter()
        self.router.add_api_route("/metrics", self.metrics_endpoint, methods=["GET"])
        self.router.add_api_route("/health", self.health_endpoint, methods=["GET"])

    @property
    def name(self) -> str:
        return "monitoring"

    async def register(self) -> None:
        if not await self.runtime.service_registry.has_service("monitoring.record"):
            await self.runtime.service_registry.register("monitoring.record", self.record)

    async def record(self, event: str, **values: Any) -> None:
        if event == "reconcile":
            self.objects_created.inc(values.get("created", 0))
            self.objects_updated.inc(values.get("updated", 0))
            self.objects_deleted.inc(values.get("deleted", 0))
            if "shadow_size" in values:
                self.shadow_objects.set(values["shadow_size"])
        elif event == "resync":
            self.resyncs.inc()
        elif event == "command":
            self.commands.labels(status=values.get("status", "ok")).inc()

    async def metrics_endpoint(self) -> Response:
        self.uptime.set(time.time() - self._start_time)
        data = generate_latest(self.registry)
        return Response(content=data, media_type=CONTENT_TYPE_LATEST)

    async def health_endpoint(self) -> dict:
        checks: dict[str, Any] = {"status": "ok", "uptime": time.time() - self._start_time}

        if self.runtime is not None:
            try:
                if await self.runtime.service_registry.has_service("hass_bridge.status"):
                    bridge = await self.runtime.service_registry.call("hass_bridge.status")
                    checks["hub"] = bridge
                    if not bridge.get("connected"):
                        checks["status"] = "degraded"
            except Exception as e:
                checks["status"] = "degraded"
                checks["hub_error"] = str(e)

        return checks
