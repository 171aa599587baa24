import logging
import threading

from flask import Flask, Response, jsonify
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .. import metrics

logger = logging.getLogger(__name__)

# Initialize Flask app
app = Flask(__name__)


class HealthProbes:
    """Liveness and readiness state of the controller."""

    def __init__(self):
        self._ready = threading.Event()

    def liveness(self) -> bool:
        return True

    def readiness(self) -> bool:
        return self._ready.is_set()

    def set_ready(self) -> None:
        self._ready.set()


probes = HealthProbes()


def _probe_response(healthy: bool):
    if healthy:
        return jsonify({"status": "healthy"}), 200
    return jsonify({"status": "unavailable"}), 503


def start_health_server(port: int):
    """Start the health and metrics server."""
    try:
        app.run(
            host='0.0.0.0',
            port=port,
            threaded=True
        )
    except Exception as e:
        logger.error(f"Failed to start health server: {str(e)}")
        raise


@app.route('/health/alive', methods=['GET'])
def alive():
    """Liveness endpoint."""
    return _probe_response(probes.liveness())


@app.route('/health/ready', methods=['GET'])
def ready():
    """Readiness endpoint: ready once the first configuration has been stored."""
    return _probe_response(probes.readiness())


@app.route('/metrics', methods=['GET'])
def prometheus_metrics():
    """Prometheus metrics endpoint."""
    return Response(generate_latest(metrics.registry), content_type=CONTENT_TYPE_LATEST)
