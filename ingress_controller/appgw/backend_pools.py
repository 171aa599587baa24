from typing import Any, Dict, List, Optional, Set
import logging

from ..errors import EndpointsNotFoundError
from ..events import EVENT_TYPE_WARNING, REASON_BACKEND_PORT_TARGET_MATCH, REASON_ENDPOINTS_EMPTY
from .backends import BackendIdentifier, ServiceBackendPortPair
from .resources import generate_address_pool_name, new_pool, sort_backend_addresses

logger = logging.getLogger(__name__)


def get_unique_tcp_ports(subset) -> Set[int]:
    """Distinct TCP ports advertised by an endpoint subset. A missing protocol means TCP."""
    return {port.port for port in subset.ports or [] if (port.protocol or 'TCP') == 'TCP'}


def get_addresses_for_subset(subset) -> List[Dict[str, str]]:
    """
    Build the sorted, de-duplicated backend addresses of an endpoint subset.

    An address with an IP is addressed by IP, otherwise by hostname. IPs and
    FQDNs are de-duplicated separately: the same text as an IP and as an FQDN
    gives two entries.
    """
    ips = set()
    fqdns = set()
    for address in subset.addresses or []:
        if address.ip:
            ips.add(address.ip)
        elif address.hostname:
            fqdns.add(address.hostname)

    addresses = [{'ipAddress': ip} for ip in ips] + [{'fqdn': fqdn} for fqdn in fqdns]
    return sort_backend_addresses(addresses)


def new_pool_for_subset(pool_name: str, subset) -> Dict[str, Any]:
    return new_pool(pool_name, get_addresses_for_subset(subset))


def get_backend_address_pool(backend_id: BackendIdentifier, pair: ServiceBackendPortPair,
                             address_pools: Dict[str, Dict[str, Any]], k8s_context, recorder,
                             prefix: str = "") -> Optional[Dict[str, Any]]:
    """
    Synthesize the backend address pool for one ingress backend.

    Args:
        backend_id: Ingress backend reference
        pair: Service port and resolved target port
        address_pools: Pools already built in this pass, by name
        k8s_context: Cache providing get_endpoints_by_service
        recorder: EventRecorder for warnings on the ingress
        prefix: Resource name prefix

    Returns:
        Optional[Dict]: The pool, or None when the backend has no usable endpoints
    """
    service_key = backend_id.service_key()
    try:
        endpoints = k8s_context.get_endpoints_by_service(service_key)
    except EndpointsNotFoundError:
        endpoints = None
    if endpoints is None:
        message = f"Failed fetching endpoints for service: {service_key}"
        logger.error(message)
        recorder.event(backend_id.ingress, EVENT_TYPE_WARNING, REASON_ENDPOINTS_EMPTY, message)
        return None

    for subset in endpoints.subsets or []:
        if pair.backend_port not in get_unique_tcp_ports(subset):
            continue
        pool_name = generate_address_pool_name(backend_id.service_full_name(), backend_id.service_port,
                                               pair.backend_port, prefix)
        # The same service may be referenced from several ingresses; build its pool once
        if pool_name in address_pools:
            return address_pools[pool_name]
        return new_pool_for_subset(pool_name, subset)

    message = f"Backend target port {pair.backend_port} does not have matching endpoint port"
    logger.error(message)
    recorder.event(backend_id.ingress, EVENT_TYPE_WARNING, REASON_BACKEND_PORT_TARGET_MATCH, message)
    return None


def build_backend_pools(pairs: Dict[BackendIdentifier, ServiceBackendPortPair], default_pool: Dict[str, Any],
                        k8s_context, recorder, prefix: str = ""):
    """
    Synthesize pools for every backend of the pass.

    Args:
        pairs: Resolved ingress backends
        default_pool: Sentinel pool used when a backend has no pool
        k8s_context: Cache providing get_endpoints_by_service
        recorder: EventRecorder for warnings on the ingress
        prefix: Resource name prefix

    Returns:
        Tuple of (pools by name including the default pool, pool per backend)
    """
    address_pools = {default_pool['name']: default_pool}
    backend_pool_map = {}
    for backend_id, pair in pairs.items():
        logger.debug(f"Constructing backend pool for service: {backend_id.service_key()}")
        pool = get_backend_address_pool(backend_id, pair, address_pools, k8s_context, recorder, prefix)
        if pool is None:
            backend_pool_map[backend_id] = default_pool
            continue
        address_pools[pool['name']] = pool
        backend_pool_map[backend_id] = pool
    return address_pools, backend_pool_map
