"""Backend liveness probing.

``probe()`` never raises: every outcome maps onto a ``HealthStatus`` and is
written to the store.  Timer-driven and manual probes may overlap; whichever
settles last wins, which is fine because only the current status matters.
"""

import logging

from ratip.client.backend import ApplicationError, BackendClient, ConnectivityError
from ratip.engine.state import StateStore
from ratip.models import HealthStatus
from ratip.observability.metrics import BACKEND_UP, HEALTH_PROBES_TOTAL

logger = logging.getLogger(__name__)

UP_STATUS = "UP"


class HealthMonitor:
    name = "health"

    def __init__(self, client: BackendClient, store: StateStore) -> None:
        self._client = client
        self._store = store

    @property
    def status(self) -> HealthStatus:
        return self._store.snapshot.health

    async def probe(self, trigger: str = "scheduled") -> HealthStatus:
        """Probe ``GET /health`` once and publish the resulting status."""
        try:
            reported = await self._client.get_health()
            status = HealthStatus.CONNECTED if reported == UP_STATUS else HealthStatus.ERROR
            if status is HealthStatus.ERROR:
                logger.warning("Backend reports status %r", reported)
        except ApplicationError as e:
            logger.warning("Backend health check returned HTTP %d", e.status_code)
            status = HealthStatus.ERROR
        except ConnectivityError as e:
            # MalformedResponseError lands here too
            logger.warning("Backend health check failed: %s", e)
            status = HealthStatus.DISCONNECTED
        except Exception:
            logger.exception("Unexpected error probing backend health")
            status = HealthStatus.DISCONNECTED

        self._store.set_health(status)
        HEALTH_PROBES_TOTAL.labels(trigger=trigger, status=status.value).inc()
        BACKEND_UP.set(1.0 if status is HealthStatus.CONNECTED else 0.0)
        return status

    async def check_now(self) -> HealthStatus:
        """Manual "test connection" trigger."""
        return await self.probe(trigger="manual")

    async def refresh(self) -> HealthStatus:
        return await self.probe()
