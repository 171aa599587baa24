from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, NamedTuple, Optional
import logging

from ..errors import EndpointsNotFoundError
from ..events import EVENT_TYPE_WARNING, REASON_BACKEND_PORT_TARGET_MATCH, REASON_ENDPOINTS_EMPTY
from ..utils import get_resource_key
from .context import ConfigBuilderContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackendIdentifier:
    """An Ingress backend reference: which service port serves which host and path of an ingress."""
    namespace: str
    ingress_name: str
    host: str
    path: str
    service_name: str
    service_port: str
    ingress: Any = field(default=None, compare=False, hash=False, repr=False)

    def service_key(self) -> str:
        return get_resource_key(self.namespace, self.service_name)

    def service_full_name(self) -> str:
        return f"{self.namespace}-{self.service_name}"


class ServiceBackendPortPair(NamedTuple):
    service_port: int
    backend_port: int


def _port_spec(port) -> str:
    if port is None:
        return ""
    if port.number is not None:
        return str(port.number)
    return port.name or ""


def iter_backend_identifiers(ingress) -> Iterator[BackendIdentifier]:
    """Yield a BackendIdentifier for the default backend and every path backend of an ingress."""
    meta = ingress.metadata
    spec = ingress.spec
    if spec is None:
        return

    default_backend = spec.default_backend
    if default_backend is not None and default_backend.service is not None:
        yield BackendIdentifier(
            namespace=meta.namespace,
            ingress_name=meta.name,
            host="",
            path="",
            service_name=default_backend.service.name,
            service_port=_port_spec(default_backend.service.port),
            ingress=ingress,
        )

    for rule in spec.rules or []:
        if rule.http is None:
            continue
        for http_path in rule.http.paths or []:
            backend = http_path.backend
            if backend is None or backend.service is None:
                continue
            yield BackendIdentifier(
                namespace=meta.namespace,
                ingress_name=meta.name,
                host=rule.host or "",
                path=http_path.path or "",
                service_name=backend.service.name,
                service_port=_port_spec(backend.service.port),
                ingress=ingress,
            )


def find_service_port(service, service_port: str):
    """Find the service port an ingress backend refers to, by number or by name."""
    for port in (service.spec.ports if service.spec else None) or []:
        if service_port.isdigit() and port.port == int(service_port):
            return port
        if port.name and port.name == service_port:
            return port
    return None


def resolve_target_port(service_key: str, port, k8s_context) -> Optional[int]:
    """
    Resolve the container port a service port forwards to.

    Numeric target ports are used as-is and a missing target port defaults to the
    service port. Named target ports are resolved through the endpoint ports,
    which carry the service port name and the resolved port number.

    Args:
        service_key: namespace/name of the service
        port: V1ServicePort
        k8s_context: Cache providing get_endpoints_by_service

    Returns:
        Optional[int]: Target port, or None if no endpoint port carries the name

    Raises:
        EndpointsNotFoundError: If a named port needs the Endpoints and there are none
    """
    target_port = port.target_port
    if target_port is None:
        return port.port
    if isinstance(target_port, int):
        return target_port
    if str(target_port).isdigit():
        return int(target_port)

    endpoints = k8s_context.get_endpoints_by_service(service_key)
    for subset in endpoints.subsets or []:
        for endpoint_port in subset.ports or []:
            if endpoint_port.name == port.name:
                return endpoint_port.port
    return None


def _warn(recorder, backend_id: BackendIdentifier, reason: str, message: str) -> None:
    if recorder is None:
        logger.warning(message)
        return
    logger.error(message)
    recorder.event(backend_id.ingress, EVENT_TYPE_WARNING, reason, message)


def get_service_backend_pairs(cb_ctx: ConfigBuilderContext, k8s_context,
                              recorder=None) -> Dict[BackendIdentifier, ServiceBackendPortPair]:
    """
    Resolve every ingress backend to its service port and target port.

    Backends whose service or port cannot be resolved are left out; the rules
    referring to them fall back to the default backend. When a recorder is
    given, a named target port that cannot be resolved is reported as a Warning
    event on the ingress.

    Args:
        cb_ctx: Reconciliation context
        k8s_context: Cache providing get_endpoints_by_service
        recorder: EventRecorder, or None to only log

    Returns:
        Dict[BackendIdentifier, ServiceBackendPortPair]: Resolved backends, in ingress order
    """
    services = {
        get_resource_key(service.metadata.namespace, service.metadata.name): service
        for service in cb_ctx.service_list
    }

    pairs = {}
    for ingress in cb_ctx.ingress_list:
        for backend_id in iter_backend_identifiers(ingress):
            service_key = backend_id.service_key()
            service = services.get(service_key)
            if service is None:
                logger.warning(f"Unable to get the service {service_key} for ingress {backend_id.ingress_name}")
                continue

            port = find_service_port(service, backend_id.service_port)
            if port is None:
                logger.warning(f"Service {service_key} has no port {backend_id.service_port}")
                continue

            try:
                backend_port = resolve_target_port(service_key, port, k8s_context)
            except EndpointsNotFoundError:
                _warn(recorder, backend_id, REASON_ENDPOINTS_EMPTY,
                      f"Failed fetching endpoints for service: {service_key}")
                continue
            if backend_port is None:
                _warn(recorder, backend_id, REASON_BACKEND_PORT_TARGET_MATCH,
                      f"Unable to resolve target port {port.target_port} of service {service_key}")
                continue

            pairs[backend_id] = ServiceBackendPortPair(service_port=port.port, backend_port=backend_port)
    return pairs
