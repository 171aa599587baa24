from typing import Any, Dict, List, Optional
import logging

from ..utils import get_last_chunk_of_slashed
from .target import Target

logger = logging.getLogger(__name__)

BACKEND_ADDRESS_POOL = 'backendAddressPool'
BACKEND_HTTP_SETTINGS = 'backendHttpSettings'


def index_by_name(resources: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Index ARM-shaped resources by their name."""
    return {resource['name']: resource for resource in resources or []}


def _referenced_name(properties: Dict[str, Any], key: str) -> Optional[str]:
    ref = properties.get(key)
    if not ref or not ref.get('id'):
        return None
    return get_last_chunk_of_slashed(ref['id'])


def _record(mapping: Dict[str, Target], name: str, target: Target) -> None:
    previous = mapping.get(name)
    if previous is not None and previous != target:
        logger.warning(f"{name} is reachable through multiple targets, keeping {target} over {previous}")
    mapping[name] = target


def get_name_to_target_mapping(request_routing_rules: List[Dict[str, Any]],
                               listeners: List[Dict[str, Any]],
                               url_path_maps: List[Dict[str, Any]],
                               reference_key: str) -> Dict[str, Target]:
    """
    Map the name of each resource referenced by routing rules to the Target it serves.

    Each rule is traced to its listener (host, and port 443 for HTTPS or 80
    otherwise). Basic rules map their referenced resource to the whole host;
    path based rules map each path rule's resource to every literal path it
    declares. The table keeps one Target per name: when a resource is reachable
    through several Targets the last one visited wins.

    Args:
        request_routing_rules: ARM-shaped request routing rules
        listeners: ARM-shaped HTTP listeners
        url_path_maps: ARM-shaped URL path maps
        reference_key: Which reference to map (BACKEND_ADDRESS_POOL or BACKEND_HTTP_SETTINGS)

    Returns:
        Dict[str, Target]: Resource name to Target
    """
    listeners_by_name = index_by_name(listeners)
    path_maps_by_name = index_by_name(url_path_maps)

    name_to_target = {}
    for rule in request_routing_rules or []:
        rule_properties = rule.get('properties') or {}
        listener_name = _referenced_name(rule_properties, 'httpListener')
        listener = listeners_by_name.get(listener_name)
        if listener is None:
            logger.warning(f"Routing rule {rule.get('name')} references unknown listener {listener_name}, skipping")
            continue

        listener_properties = listener.get('properties') or {}
        port = 80
        if (listener_properties.get('protocol') or '').lower() == 'https':
            port = 443
        host = listener_properties.get('hostName') or ''

        path_map_name = _referenced_name(rule_properties, 'urlPathMap')
        if path_map_name is None:
            name = _referenced_name(rule_properties, reference_key)
            if name is not None:
                _record(name_to_target, name, Target(host=host, port=port))
            continue

        path_map = path_maps_by_name.get(path_map_name)
        if path_map is None:
            logger.warning(f"Routing rule {rule.get('name')} references unknown URL path map {path_map_name}, skipping")
            continue

        for path_rule in (path_map.get('properties') or {}).get('pathRules') or []:
            path_rule_properties = path_rule.get('properties') or {}
            name = _referenced_name(path_rule_properties, reference_key)
            if name is None:
                continue
            for path in path_rule_properties.get('paths') or []:
                _record(name_to_target, name, Target(host=host, port=port, path=path))

    return name_to_target


def get_pool_to_target_mapping(request_routing_rules, listeners, url_path_maps) -> Dict[str, Target]:
    """Backend address pool name to Target."""
    return get_name_to_target_mapping(request_routing_rules, listeners, url_path_maps, BACKEND_ADDRESS_POOL)


def get_setting_to_target_mapping(request_routing_rules, listeners, url_path_maps) -> Dict[str, Target]:
    """Backend HTTP settings name to Target."""
    return get_name_to_target_mapping(request_routing_rules, listeners, url_path_maps, BACKEND_HTTP_SETTINGS)
