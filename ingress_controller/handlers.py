import kopf
import logging
import threading
import time
from typing import Any, Dict

from . import metrics
from .appgw.builder import ConfigBuilder
from .appgw.resources import BACKEND_ADDRESS_POOLS, BACKEND_HTTP_SETTINGS_COLLECTION, PROBES
from .events import EventRecorder
from .health.server import probes, start_health_server
from .k8s.config_store import GatewayConfigStore
from .k8s.context import (
    MANAGED_TARGETS_PLURAL,
    PROHIBITED_TARGETS_PLURAL,
    TARGET_GROUP,
    TARGET_VERSION,
    KubernetesContext,
    load_kube_config,
)
from .settings import Settings, get_settings, missing_variables

logger = logging.getLogger(__name__)

# Set by watch events; the reconcile loop coalesces everything received during a pass
reconcile_requested = threading.Event()
# At most one pass in flight
reconcile_lock = threading.Lock()


def request_reconcile() -> None:
    reconcile_requested.set()


def reconcile_once(settings: Settings, k8s_context: KubernetesContext = None,
                   store: GatewayConfigStore = None, recorder: EventRecorder = None) -> Dict[str, Any]:
    """
    Run one full reconciliation pass.

    Reads the previously applied configuration, rebuilds pools, probes and HTTP
    settings from the cluster snapshot, and stores the result for deployment.

    Args:
        settings: Controller settings
        k8s_context: Cluster snapshot; listed from the API server if not given
        store: Configuration store; the configured ConfigMap if not given
        recorder: Event recorder for warnings on ingresses

    Returns:
        Dict[str, Any]: The stored configuration

    Raises:
        FetchGatewayConfigError: If the previous configuration cannot be read
        DeployGatewayConfigError: If the new configuration cannot be stored
    """
    with reconcile_lock:
        started = time.monotonic()
        if store is None:
            store = GatewayConfigStore(settings.config_map_name, settings.pod_namespace)
        if k8s_context is None:
            k8s_context = KubernetesContext.from_cluster(settings.watch_namespace)

        previous = store.load()
        builder = ConfigBuilder(
            k8s_context,
            recorder or EventRecorder(),
            previous,
            gateway_id=settings.gateway_id,
            prefix=settings.resource_prefix,
        )
        gateway_config = builder.build(k8s_context.config_builder_context())
        store.save(gateway_config)

        metrics.update_latency_seconds.set(time.monotonic() - started)
        for kind in (BACKEND_ADDRESS_POOLS, PROBES, BACKEND_HTTP_SETTINGS_COLLECTION):
            metrics.resources.labels(kind=kind).set(len(gateway_config.get(kind, [])))
        probes.set_ready()
        return gateway_config


def reconcile_loop(settings: Settings) -> None:
    """
    Run reconciliation passes on watch events and on a periodic resync.

    The resync interval can be configured using the RECONCILE_INTERVAL environment variable (in seconds).
    A failed pass is logged and retried on the next trigger.
    """
    logger.info(f"Starting reconcile loop with resync interval of {settings.reconcile_interval} seconds")
    load_kube_config()

    while True:
        reconcile_requested.wait(timeout=settings.reconcile_interval)
        reconcile_requested.clear()
        try:
            reconcile_once(settings)
            metrics.reconcile_total.labels(result="success").inc()
        except Exception as e:
            metrics.reconcile_total.labels(result="error").inc()
            logger.error(f"Error in reconciliation pass: {str(e)}", exc_info=True)


@kopf.on.startup()
def startup_fn(logger, **kwargs):
    """Validate the configuration and start the health server and the reconcile loop."""
    missing = missing_variables()
    if missing:
        error_msg = f"Required environment variables are not set: {', '.join(missing)}"
        logger.error(error_msg)
        raise kopf.PermanentError(error_msg)

    try:
        settings = get_settings()
    except ValueError as e:
        logger.error(f"Invalid controller settings: {str(e)}")
        raise kopf.PermanentError(f"Invalid controller settings: {str(e)}")

    health_thread = threading.Thread(target=start_health_server, args=(settings.http_service_port,), daemon=True)
    health_thread.start()
    logger.info(f"Started health server on port {settings.http_service_port}")

    reconcile_thread = threading.Thread(target=reconcile_loop, args=(settings,), daemon=True)
    reconcile_thread.start()
    logger.info("Started reconcile loop thread")

    # First pass without waiting for the resync interval
    request_reconcile()


@kopf.on.event('networking.k8s.io', 'v1', 'ingresses')
@kopf.on.event('', 'v1', 'services')
@kopf.on.event('', 'v1', 'endpoints')
@kopf.on.event('', 'v1', 'pods')
@kopf.on.event(TARGET_GROUP, TARGET_VERSION, MANAGED_TARGETS_PLURAL)
@kopf.on.event(TARGET_GROUP, TARGET_VERSION, PROHIBITED_TARGETS_PLURAL)
def cluster_event_fn(body: Dict[str, Any], logger: Any, **kwargs):
    """Any change to the watched objects triggers a reconciliation pass."""
    metadata = body.get('metadata', {})
    logger.debug(f"Change to {body.get('kind')} {metadata.get('namespace')}/{metadata.get('name')}, requesting reconcile")
    request_reconcile()
