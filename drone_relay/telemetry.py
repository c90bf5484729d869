"""
Optional InfluxDB telemetry for dispatched commands.

One point is buffered per executed command and written in batches by a
background thread, so the dispatch path never waits on the database.
"""

import logging
import threading
import time
from typing import List, Optional

from .config import RelayConfig

try:
    from influxdb_client_3 import InfluxDBClient3, Point
    INFLUXDB_AVAILABLE = True
except ImportError:
    INFLUXDB_AVAILABLE = False


class CommandTelemetry:
    """Batches command execution points and writes them to InfluxDB."""

    def __init__(self, config: RelayConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)

        self.client: Optional["InfluxDBClient3"] = None
        self.buffer: List["Point"] = []
        self.buffer_lock = threading.Lock()
        self.batch_thread: Optional[threading.Thread] = None
        self._stopped = threading.Event()

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def start(self):
        """Create the InfluxDB client and start the batch writer, if enabled."""
        if not self.config.telemetry_enabled:
            self.logger.info("Telemetry disabled")
            return

        if not INFLUXDB_AVAILABLE:
            self.logger.warning("Telemetry enabled but influxdb3-python package not installed. "
                                "Install with: pip install drone-relay[telemetry]")
            return

        try:
            self.client = InfluxDBClient3(
                host=self.config.influxdb_host,
                database=self.config.influxdb_database,
                token=self.config.influxdb_token
            )
        except Exception as e:
            self.logger.error(f"Failed to initialize InfluxDB client: {e}")
            self.client = None
            return

        self.batch_thread = threading.Thread(target=self._batch_writer, name="TelemetryWriter", daemon=True)
        self.batch_thread.start()

        self.logger.info(
            f"InfluxDB telemetry enabled ({self.config.telemetry_flush_interval}s batches): "
            f"{self.config.influxdb_host}/{self.config.influxdb_database}"
        )

    def record(self, command: str, duration_s: float, ok: bool):
        """
        Buffer one command execution.

        Args:
            command: Command value that was executed
            duration_s: Time spent in the driver call
            ok: Whether the driver accepted the command
        """
        if not self.client:
            return

        point = (
            Point("command_metrics")
            .tag("command", command)
            .field("ok", int(ok))
            .field("duration_ms", float(duration_s * 1000.0))
            .time(time.time_ns())
        )
        with self.buffer_lock:
            self.buffer.append(point)

    def _flush(self):
        with self.buffer_lock:
            points = self.buffer[:]
            self.buffer.clear()

        if not points:
            return

        try:
            self.client.write(record=points)
            self.logger.debug(f"Batch wrote {len(points)} points to InfluxDB")
        except Exception as e:
            self.logger.warning(f"Failed to batch write to InfluxDB: {e}")

    def _batch_writer(self):
        """Background thread that writes buffered points every flush interval."""
        self.logger.info("InfluxDB batch writer thread started")

        while not self._stopped.wait(self.config.telemetry_flush_interval):
            self._flush()

        # Final flush on shutdown
        self._flush()
        self.logger.info("InfluxDB batch writer thread stopped")

    def close(self):
        """Flush remaining points and close the client."""
        if not self.client:
            return

        self._stopped.set()
        if self.batch_thread and self.batch_thread.is_alive():
            self.logger.info("Waiting for InfluxDB batch writer to finish...")
            self.batch_thread.join(timeout=5.0)
        self._flush()

        try:
            self.client.close()
            self.logger.info("InfluxDB client closed")
        except Exception as e:
            self.logger.warning(f"Error closing InfluxDB client: {e}")
        self.client = None
