#!/usr/bin/env python3
"""
Prometheus exporter for Ubiquiti AmpliFi router metrics.

Each scrape of ``/metrics`` logs into the router web UI if needed, pulls the
full status dump and republishes per-client traffic counters, signal quality,
happiness score and global uplink bitrate.
"""

from __future__ import annotations

import argparse
import logging
import os
import threading
from typing import Optional, Tuple
from wsgiref.simple_server import make_server

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, make_wsgi_app
from prometheus_client.exposition import ThreadingWSGIServer

import amplifi_router_client
from amplifi_router_models import ClientRecord, CounterKind, GlobalStats, RouterSnapshot
from amplifi_router_prometheus_utils import DeltaStore, LabeledCounterFamily
from amplifi_router_translator import translate

DEFAULT_ROUTER = "http://192.168.119.1"
DEFAULT_ADDR = ":8080"
METRICS_PATH = "/metrics"

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

CLIENT_LABEL = "host"
CLIENT_LABELS = [CLIENT_LABEL]


class RouterMetrics:
    """All exported metrics, registered once against the given registry."""

    def __init__(self, registry: CollectorRegistry):
        self.registry = registry

        self.tx_bytes = LabeledCounterFamily(
            "amplifi_total_tx_bytes",
            "Total transmitted bytes per client",
            CLIENT_LABEL,
            registry=registry,
        )
        self.rx_bytes = LabeledCounterFamily(
            "amplifi_total_rx_bytes",
            "Total received bytes per client",
            CLIENT_LABEL,
            registry=registry,
        )

        self.global_tx_bitrate = Gauge(
            "amplifi_global_tx_bitrate",
            "Global transmit bitrate",
            registry=registry,
        )
        self.global_rx_bitrate = Gauge(
            "amplifi_global_rx_bitrate",
            "Global receive bitrate",
            registry=registry,
        )

        self.clients_count = Gauge(
            "amplifi_clients_count",
            "Number of connected clients",
            registry=registry,
        )

        self.signal_quality = Gauge(
            "amplifi_signal_quality",
            "Wi-Fi signal quality per client",
            CLIENT_LABELS,
            registry=registry,
        )
        self.happiness_score = Gauge(
            "amplifi_happiness_score",
            "Happiness score per client",
            CLIENT_LABELS,
            registry=registry,
        )

        # Scrape duration and errors
        self.scrape_duration_seconds = Histogram(
            "amplifi_scrape_duration_seconds",
            "Time spent scraping router metrics",
            registry=registry,
        )
        self.scrape_errors_total = Counter(
            "amplifi_scrape_errors_total",
            "Total number of scrape errors",
            registry=registry,
        )

    def counter_for(self, kind: CounterKind) -> LabeledCounterFamily:
        return self.tx_bytes if kind == CounterKind.TX else self.rx_bytes


def _inc_if_positive(counter: LabeledCounterFamily, label_value: str, delta: float):
    if delta > 0:
        counter.inc(label_value, delta)


class RouterMetricsCollector:
    """Runs one poll cycle per scrape and updates the metrics.

    Cycles are serialized: the session, the cached info token and the delta
    baselines are shared state, so overlapping scrapes wait for each other.
    """

    def __init__(self, client: amplifi_router_client.RouterClient, metrics: RouterMetrics,
                 delta_store: Optional[DeltaStore] = None):
        self.client = client
        self.metrics = metrics
        self.delta_store = delta_store if delta_store is not None else DeltaStore()
        self._lock = threading.Lock()

    def collect_all_metrics(self) -> RouterSnapshot:
        """Collect all available metrics from the router."""
        with self._lock, self.metrics.scrape_duration_seconds.time():
            try:
                raw = self.client.get_metrics()
                snapshot = translate(raw)
                self._collect_client_metrics(snapshot.clients)
                self._collect_global_metrics(snapshot.global_stats)
                self.metrics.clients_count.set(snapshot.client_count)
            except Exception as e:
                logger.error(f"Error collecting metrics: {e}")
                logger.warning("Resetting router session after failed poll")
                self.client.reset_auth()
                self.metrics.scrape_errors_total.inc()
                raise

        logger.debug(f"Poll finished: {snapshot.client_count} clients")
        return snapshot

    def _collect_client_metrics(self, clients: list[ClientRecord]):
        for record in clients:
            labels = {"host": record.description}

            for kind in CounterKind:
                current = record.counter(kind)
                if current is None:
                    continue
                delta = self.delta_store.apply_delta(record.description, kind, current)
                _inc_if_positive(self.metrics.counter_for(kind), record.description, delta)
                logger.debug(f"[{record.description}] {kind.value} Δ={delta}")

            if record.signal_quality is not None:
                self.metrics.signal_quality.labels(**labels).set(record.signal_quality)
            if record.happiness_score is not None:
                self.metrics.happiness_score.labels(**labels).set(record.happiness_score)

    def _collect_global_metrics(self, stats: GlobalStats):
        if stats.tx_bitrate is not None:
            self.metrics.global_tx_bitrate.set(stats.tx_bitrate)
        if stats.rx_bitrate is not None:
            self.metrics.global_rx_bitrate.set(stats.rx_bitrate)


def create_wsgi_app(collector: RouterMetricsCollector, registry: CollectorRegistry):
    """WSGI app that polls the router on every scrape of /metrics."""
    metrics_app = make_wsgi_app(registry)

    def app(environ, start_response):
        if environ.get("PATH_INFO") != METRICS_PATH:
            start_response("404 Not Found", [("Content-Type", "text/plain")])
            return [b"Not Found"]

        try:
            collector.collect_all_metrics()
        except Exception:
            logger.debug("Answering scrape with 500 after failed poll")
            start_response("500 Internal Server Error", [("Content-Type", "text/plain")])
            return [b"Failed to collect metrics"]

        return metrics_app(environ, start_response)

    return app


def parse_addr(addr: str) -> Tuple[str, int]:
    """Split ``host:port``; an empty host listens on all interfaces."""
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"listen address must be host:port, got {addr!r}")
    try:
        return host.strip("[]"), int(port)
    except ValueError:
        raise ValueError(f"invalid port in listen address {addr!r}") from None


def create_app(router: str, password: str, addr: str = DEFAULT_ADDR,
               timeout: float = amplifi_router_client.DEFAULT_TIMEOUT):
    """
    Create and configure the Prometheus metrics exporter.

    Args:
        router: AmpliFi router web UI address
        password: Router admin password
        addr: Listen address for the metrics server (host:port)
        timeout: Per-request timeout towards the router, in seconds

    Returns:
        Callable that starts the exporter
    """
    host, port = parse_addr(addr)

    def app():
        logger.info(f"Starting Prometheus exporter on {addr}")
        logger.info(f"Connecting to router at {router}")

        registry = CollectorRegistry()
        metrics = RouterMetrics(registry)
        client = amplifi_router_client.RouterClientFactory(router, timeout=timeout).auth(password)
        collector = RouterMetricsCollector(client, metrics)

        try:
            client.router_session.test_auth()
        except amplifi_router_client.AmplifiRouterException as e:
            logger.warning(f"Initial login failed, will retry on scrape: {e}")

        httpd = make_server(host, port, create_wsgi_app(collector, registry), ThreadingWSGIServer)
        logger.info(f"Metrics available at http://{host or 'localhost'}:{port}{METRICS_PATH}")
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            logger.info("Shutting down exporter")
        finally:
            httpd.server_close()

    return app


def main():
    """Main entry point for the Prometheus exporter."""
    # Read defaults from environment variables
    default_router = os.getenv("AMPLIFI_ROUTER", DEFAULT_ROUTER)
    default_password = os.getenv("AMPLIFI_PASSWORD")
    default_addr = os.getenv("AMPLIFI_ADDR", DEFAULT_ADDR)
    default_timeout = os.getenv("AMPLIFI_TIMEOUT", str(amplifi_router_client.DEFAULT_TIMEOUT))
    default_log_level = os.getenv("AMPLIFI_LOG_LEVEL", "INFO")

    parser = argparse.ArgumentParser(
        description="Prometheus exporter for AmpliFi router metrics",
        epilog="Environment variables can be used as defaults: "
               "AMPLIFI_ROUTER, AMPLIFI_PASSWORD, AMPLIFI_ADDR, AMPLIFI_TIMEOUT, AMPLIFI_LOG_LEVEL"
    )
    parser.add_argument(
        "--addr",
        default=default_addr,
        help="Listen address for the metrics web server (default: :8080) [env: AMPLIFI_ADDR]"
    )
    parser.add_argument(
        "--router",
        default=default_router,
        help="Address of AmpliFi router website (default: http://192.168.119.1) [env: AMPLIFI_ROUTER]"
    )
    parser.add_argument(
        "--password",
        default=default_password,
        help="AmpliFi router password [env: AMPLIFI_PASSWORD]"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=default_timeout,
        help="Timeout in seconds for each request to the router (default: 10) [env: AMPLIFI_TIMEOUT]"
    )
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO) [env: AMPLIFI_LOG_LEVEL]"
    )

    args = parser.parse_args()

    # Validate required arguments
    if not args.password:
        parser.error("Password is required. Use --password or set AMPLIFI_PASSWORD environment variable")
    if args.timeout <= 0:
        parser.error("--timeout must be positive")

    # Set logging level
    logging.getLogger().setLevel(getattr(logging, args.log_level))

    print(f"starting exporter: addr={args.addr!r}, router={args.router!r}")

    try:
        app = create_app(args.router, args.password, args.addr, args.timeout)
    except ValueError as e:
        parser.error(str(e))
    app()


if __name__ == "__main__":
    main()
