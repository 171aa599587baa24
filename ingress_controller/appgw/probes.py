from typing import Any, Dict, Optional
import logging

from ..brownfield.target import normalize_path
from ..utils import get_resource_key
from .backends import BackendIdentifier, ServiceBackendPortPair
from .context import ConfigBuilderContext
from .resources import (
    DEFAULT_PROBE_HOST,
    DEFAULT_PROBE_INTERVAL,
    DEFAULT_PROBE_PATH,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_PROBE_UNHEALTHY_THRESHOLD,
    PROTOCOL_HTTP,
    PROTOCOL_HTTPS,
    generate_probe_name,
    new_probe,
)

logger = logging.getLogger(__name__)


def _selects(selector: Dict[str, str], labels: Optional[Dict[str, str]]) -> bool:
    labels = labels or {}
    return all(labels.get(key) == value for key, value in selector.items())


def find_pod_probe(service, target_port: int, pods):
    """
    Find an HTTP readiness or liveness probe on a pod backing the service.

    Readiness probes are preferred over liveness probes. The probe must target
    the backend port, either by number or by the name of a container port.

    Args:
        service: V1Service
        target_port: Resolved target port of the backend
        pods: V1Pod objects to search

    Returns:
        Optional[V1Probe]: The first matching probe
    """
    selector = service.spec.selector if service.spec else None
    if not selector:
        return None

    for pod in pods:
        if pod.metadata.namespace != service.metadata.namespace or not _selects(selector, pod.metadata.labels):
            continue
        for container in (pod.spec.containers if pod.spec else None) or []:
            named_ports = {p.name: p.container_port for p in container.ports or [] if p.name}
            for probe in (container.readiness_probe, container.liveness_probe):
                if probe is None or probe.http_get is None:
                    continue
                port = probe.http_get.port
                if isinstance(port, str) and not port.isdigit():
                    port = named_ports.get(port)
                if port is not None and int(port) == target_port:
                    return probe
    return None


def generate_health_probe(backend_id: BackendIdentifier, pair: ServiceBackendPortPair,
                          pod_probe=None, prefix: str = "") -> Dict[str, Any]:
    """Build the probe for a backend from the pod's HTTP probe, falling back to the ingress host and path."""
    path = normalize_path(backend_id.path) or DEFAULT_PROBE_PATH
    protocol = PROTOCOL_HTTP
    interval = DEFAULT_PROBE_INTERVAL
    timeout = DEFAULT_PROBE_TIMEOUT
    threshold = DEFAULT_PROBE_UNHEALTHY_THRESHOLD

    if pod_probe is not None:
        if pod_probe.http_get.path:
            path = pod_probe.http_get.path
        if (pod_probe.http_get.scheme or '').upper() == 'HTTPS':
            protocol = PROTOCOL_HTTPS
        interval = pod_probe.period_seconds or interval
        timeout = pod_probe.timeout_seconds or timeout
        threshold = pod_probe.failure_threshold or threshold

    name = generate_probe_name(backend_id.service_full_name(), str(pair.service_port),
                               backend_id.ingress_name, prefix)
    return new_probe(
        name,
        host=backend_id.host or DEFAULT_PROBE_HOST,
        path=path,
        protocol=protocol,
        interval=interval,
        timeout=timeout,
        unhealthy_threshold=threshold,
    )


def build_probes(pairs: Dict[BackendIdentifier, ServiceBackendPortPair], cb_ctx: ConfigBuilderContext,
                 prefix: str = "") -> Dict[BackendIdentifier, Dict[str, Any]]:
    """
    Derive one health probe per ingress backend.

    Args:
        pairs: Resolved ingress backends
        cb_ctx: Reconciliation context, for services and pods
        prefix: Resource name prefix

    Returns:
        Dict[BackendIdentifier, Dict]: Probe per backend
    """
    services = {
        get_resource_key(service.metadata.namespace, service.metadata.name): service
        for service in cb_ctx.service_list
    }

    probes = {}
    for backend_id, pair in pairs.items():
        service = services.get(backend_id.service_key())
        pod_probe = None
        if service is not None:
            pod_probe = find_pod_probe(service, pair.backend_port, cb_ctx.pod_list)
        probes[backend_id] = generate_health_probe(backend_id, pair, pod_probe, prefix)
    return probes
