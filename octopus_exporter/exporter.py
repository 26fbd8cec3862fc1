"""Prometheus metrics exporter module.

This module handles:
- Collecting consumption readings on every Prometheus scrape
- Exposing them as timestamped gauges with type/point/meter/interval labels
- Running the metrics HTTP server on the configured address
"""

import logging
import time
from typing import Iterable, List, Optional

from prometheus_client import REGISTRY, CollectorRegistry, start_http_server
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from octopus_exporter.client import OctopusClient, OctopusError
from octopus_exporter.config import MeterPoint, Settings
from octopus_exporter.consumption import ConsumptionReading

# Configure module logger
logger = logging.getLogger(__name__)

CONSUMPTION_LABELS = ["type", "point", "meter", "interval"]
SCRAPE_LABELS = ["type", "point", "meter"]


class ConsumptionCollector(Collector):
    """Prometheus collector that fetches consumption on every scrape.

    Exposes the following metrics:
    - octopus_consumption_kwh: Latest reading per meter, timestamped at the
      interval midpoint, with labels (type, point, meter, interval)
    - octopus_scrape_success: Whether fetching the meter succeeded (1=success, 0=failure)
    - octopus_scrape_duration_seconds: Duration of the upstream request per meter

    Meters are fetched sequentially. A meter whose request fails is reported
    through octopus_scrape_success and emits no consumption sample.
    """

    def __init__(self, client: OctopusClient, settings: Settings):
        self.client = client
        self.settings = settings

    def _families(self):
        return (
            GaugeMetricFamily(
                "octopus_consumption_kwh",
                "Energy consumption in kWh",
                labels=CONSUMPTION_LABELS,
            ),
            GaugeMetricFamily(
                "octopus_scrape_success",
                "Whether the last consumption request succeeded (1=success, 0=failure)",
                labels=SCRAPE_LABELS,
            ),
            GaugeMetricFamily(
                "octopus_scrape_duration_seconds",
                "Duration of the last consumption request in seconds",
                labels=SCRAPE_LABELS,
            ),
        )

    def describe(self) -> Iterable[GaugeMetricFamily]:
        # Lets the registry learn metric names without calling the API
        return list(self._families())

    def collect(self) -> Iterable[GaugeMetricFamily]:
        consumption, success, duration = self._families()

        for point in self.settings.meters():
            start_time = time.time()
            reading = None
            ok = True

            try:
                reading = self.client.get_consumption(point)
            except OctopusError as e:
                logger.error(f"Scrape failed for {point.point_type} meter {point.meter}: {e}")
                ok = False
            except Exception as e:
                logger.error(f"Scrape failed for {point.point_type} meter {point.meter} (unexpected error): {e}")
                ok = False

            scrape_labels = [point.point_type, point.identifier, point.meter]
            success.add_metric(scrape_labels, 1 if ok else 0)
            duration.add_metric(scrape_labels, time.time() - start_time)

            if reading is not None:
                self._add_reading(consumption, reading)

        return [consumption, success, duration]

    def _add_reading(self, family: GaugeMetricFamily, reading: ConsumptionReading) -> None:
        logger.debug(f"{reading.point_type.capitalize()} {reading.consumption:f}")
        family.add_metric(
            [reading.point_type, reading.identifier, reading.meter, reading.interval_label()],
            reading.consumption,
            timestamp=reading.timestamp.timestamp(),
        )


class OctopusExporter:
    """Prometheus exporter for Octopus Energy consumption.

    Attributes:
        settings: Exporter settings
        client: API client used by the collector
        collector: Registered ConsumptionCollector
    """

    def __init__(
        self,
        settings: Settings,
        registry: Optional[CollectorRegistry] = None,
        client: Optional[OctopusClient] = None,
    ):
        """Initialize the exporter and register its collector.

        Args:
            settings: Exporter settings
            registry: Optional custom registry for testing. If None, uses default REGISTRY.
            client: Optional API client for testing. If None, one is created from settings.
        """
        self.settings = settings
        self._registry = registry if registry is not None else REGISTRY
        self.client = client if client is not None else OctopusClient(settings)
        self.collector = ConsumptionCollector(self.client, settings)
        self._registry.register(self.collector)
        self._server_started = False

    def meters(self) -> List[MeterPoint]:
        """Return the meters the collector fetches, electricity first."""
        return self.settings.meters()

    def start(self) -> None:
        """Start the HTTP server to expose metrics.

        The server runs in a daemon thread and exposes metrics at:
        http://{listen_address}/metrics
        """
        if self._server_started:
            logger.warning("Prometheus server already started")
            return

        host = self.settings.listen_host or "0.0.0.0"
        logger.info(f"Starting Prometheus HTTP server on {host}:{self.settings.listen_port}")
        start_http_server(self.settings.listen_port, addr=host, registry=self._registry)
        self._server_started = True

    def close(self) -> None:
        """Unregister the collector and close the API client."""
        self._registry.unregister(self.collector)
        self.client.close()
