from typing import Any, Dict

from .backends import BackendIdentifier, ServiceBackendPortPair
from .resources import PROBES, PROTOCOL_HTTP, PROTOCOL_HTTPS, generate_http_settings_name, new_http_settings, resource_ref


def build_http_settings(pairs: Dict[BackendIdentifier, ServiceBackendPortPair],
                        probes: Dict[BackendIdentifier, Dict[str, Any]], default_probe: Dict[str, Any],
                        gateway_id: str, prefix: str = "") -> Dict[BackendIdentifier, Dict[str, Any]]:
    """
    Derive the backend HTTP settings of every ingress backend.

    Each settings entry targets the resolved backend port and references the
    backend's health probe, or the default probe if it has none.
    """
    settings = {}
    for backend_id, pair in pairs.items():
        probe = probes.get(backend_id, default_probe)
        protocol = (probe.get('properties') or {}).get('protocol')
        name = generate_http_settings_name(backend_id.service_full_name(), str(pair.service_port),
                                           pair.backend_port, backend_id.ingress_name, prefix)
        settings[backend_id] = new_http_settings(
            name,
            pair.backend_port,
            resource_ref(gateway_id, PROBES, probe['name']),
            protocol=PROTOCOL_HTTPS if protocol == PROTOCOL_HTTPS else PROTOCOL_HTTP,
        )
    return settings
