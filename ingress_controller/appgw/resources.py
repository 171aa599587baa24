"""
ARM-shaped Application Gateway sub-resources.

Sub-resources are plain dicts in the shape the ARM API uses, e.g.
{'name': ..., 'properties': {...}}, and reference each other through
{'id': '<gateway id>/<collection>/<name>'}.
"""
from typing import Any, Dict, Iterable, List, Optional

from ..utils import shorten_name

MAX_RESOURCE_NAME_LENGTH = 80

DEFAULT_BACKEND_ADDRESS_POOL_NAME = "defaultaddresspool"
DEFAULT_PROBE_NAME = "defaultprobe"
DEFAULT_HTTP_SETTINGS_NAME = "defaulthttpsetting"

DEFAULT_PROBE_HOST = "localhost"
DEFAULT_PROBE_PATH = "/"
DEFAULT_PROBE_INTERVAL = 30
DEFAULT_PROBE_TIMEOUT = 30
DEFAULT_PROBE_UNHEALTHY_THRESHOLD = 3
DEFAULT_REQUEST_TIMEOUT = 30

PROTOCOL_HTTP = "Http"
PROTOCOL_HTTPS = "Https"

# Collection names within the gateway properties
BACKEND_ADDRESS_POOLS = "backendAddressPools"
PROBES = "probes"
BACKEND_HTTP_SETTINGS_COLLECTION = "backendHttpSettingsCollection"
HTTP_LISTENERS = "httpListeners"
URL_PATH_MAPS = "urlPathMaps"
REQUEST_ROUTING_RULES = "requestRoutingRules"


def resource_id(gateway_id: str, collection: str, name: str) -> str:
    return f"{gateway_id}/{collection}/{name}"


def resource_ref(gateway_id: str, collection: str, name: str) -> Dict[str, str]:
    return {'id': resource_id(gateway_id, collection, name)}


def _prefixed(prefix: str, name: str) -> str:
    return shorten_name(f"{prefix}{name}", MAX_RESOURCE_NAME_LENGTH)


def generate_address_pool_name(service_full_name: str, service_port: str, target_port: int, prefix: str = "") -> str:
    """
    Name of the backend address pool for a service port and resolved target port.

    The name is a pure function of its arguments, so every pass regenerates
    the same name for the same backend.
    """
    return _prefixed(prefix, f"pool-{service_full_name}-{service_port}-bp-{target_port}")


def generate_probe_name(service_full_name: str, service_port: str, ingress_name: str, prefix: str = "") -> str:
    return _prefixed(prefix, f"pb-{service_full_name}-{service_port}-{ingress_name}")


def generate_http_settings_name(service_full_name: str, service_port: str, target_port: int,
                                ingress_name: str, prefix: str = "") -> str:
    return _prefixed(prefix, f"bp-{service_full_name}-{service_port}-{target_port}-{ingress_name}")


def new_pool(name: str, addresses: Optional[List[Dict[str, str]]] = None) -> Dict[str, Any]:
    return {
        'name': name,
        'properties': {
            'backendAddresses': list(addresses or []),
        },
    }


def default_backend_address_pool(prefix: str = "") -> Dict[str, Any]:
    """The sentinel pool rules fall back to when no backend resolves. It has no addresses."""
    return new_pool(_prefixed(prefix, DEFAULT_BACKEND_ADDRESS_POOL_NAME))


def new_probe(name: str, host: str, path: str, protocol: str = PROTOCOL_HTTP,
              interval: int = DEFAULT_PROBE_INTERVAL, timeout: int = DEFAULT_PROBE_TIMEOUT,
              unhealthy_threshold: int = DEFAULT_PROBE_UNHEALTHY_THRESHOLD) -> Dict[str, Any]:
    return {
        'name': name,
        'properties': {
            'protocol': protocol,
            'host': host,
            'path': path,
            'interval': interval,
            'timeout': timeout,
            'unhealthyThreshold': unhealthy_threshold,
        },
    }


def default_probe(prefix: str = "") -> Dict[str, Any]:
    return new_probe(_prefixed(prefix, DEFAULT_PROBE_NAME), DEFAULT_PROBE_HOST, DEFAULT_PROBE_PATH)


def new_http_settings(name: str, port: int, probe_ref: Dict[str, str],
                      protocol: str = PROTOCOL_HTTP) -> Dict[str, Any]:
    return {
        'name': name,
        'properties': {
            'port': port,
            'protocol': protocol,
            'requestTimeout': DEFAULT_REQUEST_TIMEOUT,
            'cookieBasedAffinity': 'Disabled',
            'probe': probe_ref,
        },
    }


def default_http_settings(gateway_id: str, prefix: str = "") -> Dict[str, Any]:
    probe_name = default_probe(prefix)['name']
    return new_http_settings(
        _prefixed(prefix, DEFAULT_HTTP_SETTINGS_NAME),
        80,
        resource_ref(gateway_id, PROBES, probe_name),
    )


def sort_backend_addresses(addresses: Iterable[Dict[str, str]]) -> List[Dict[str, str]]:
    """IP addresses first, then FQDNs, each group in lexical order."""
    def sort_key(address):
        if address.get('ipAddress'):
            return (0, address['ipAddress'])
        return (1, address.get('fqdn') or '')
    return sorted(addresses, key=sort_key)
