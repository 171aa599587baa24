from typing import Any, Callable, Dict, Iterable, List, Optional
import logging

from .target import Target, in_probe_list, is_target_in_list

logger = logging.getLogger(__name__)

Resource = Dict[str, Any]
Matcher = Callable[[Resource, List[Target]], bool]


def filter_managed(resources: Iterable[Resource], blacklist: List[Target], whitelist: List[Target],
                   in_list: Matcher) -> List[Resource]:
    """
    Select the resources the controller is allowed to create, overwrite or delete.

    With no prohibited and no managed targets declared everything is managed.
    A non-empty blacklist takes priority: anything it matches is left alone and
    the whitelist is ignored. Otherwise only whitelisted resources are managed.

    Args:
        resources: Candidate ARM-shaped resources
        blacklist: Prohibited targets
        whitelist: Managed targets
        in_list: Resource kind specific matcher

    Returns:
        List[Resource]: Managed resources, in input order
    """
    resources = list(resources)
    if not blacklist and not whitelist:
        return resources

    if blacklist:
        return [r for r in resources if not in_list(r, blacklist)]

    return [r for r in resources if in_list(r, whitelist)]


def target_matcher(name_to_target: Dict[str, Target]) -> Matcher:
    """Matcher for resources identified by the Target their name is routed to (pools, settings)."""
    def in_list(resource: Resource, target_list: List[Target]) -> bool:
        return is_target_in_list(name_to_target.get(resource['name']), target_list)
    return in_list


def get_managed_pools(pools, blacklist, whitelist, pool_to_target: Dict[str, Target]) -> List[Resource]:
    return filter_managed(pools, blacklist, whitelist, target_matcher(pool_to_target))


def get_managed_settings(settings, blacklist, whitelist, setting_to_target: Dict[str, Target]) -> List[Resource]:
    return filter_managed(settings, blacklist, whitelist, target_matcher(setting_to_target))


def get_managed_probes(probes, blacklist, whitelist) -> List[Resource]:
    return filter_managed(probes, blacklist, whitelist, in_probe_list)


def dedupe_by_name(resources: Iterable[Resource]) -> List[Resource]:
    """Keep one resource per name; a later entry replaces an earlier one in place."""
    unique = {}
    for resource in resources:
        unique[resource['name']] = resource
    return list(unique.values())


def merge_by_name(*buckets: Iterable[Resource]) -> List[Resource]:
    """Union of the buckets by name, later buckets win."""
    merged = {}
    for bucket in buckets:
        for resource in bucket or []:
            merged[resource['name']] = resource
    return list(merged.values())


def prune_managed(existing: Iterable[Resource], blacklist, whitelist, in_list: Matcher,
                  keep_out: Optional[Iterable[str]] = None) -> List[Resource]:
    """
    Return the previously applied resources the controller does not own.

    The ownership test is re-run against the last known state. Resources it
    would manage are dropped, as is anything named in keep_out (names about
    to be rewritten in this pass).

    Args:
        existing: Previously applied resources
        blacklist: Prohibited targets
        whitelist: Managed targets
        in_list: Resource kind specific matcher
        keep_out: Names to drop regardless of ownership

    Returns:
        List[Resource]: Unmanaged resources to preserve
    """
    existing = list(existing or [])
    managed_names = {r['name'] for r in filter_managed(existing, blacklist, whitelist, in_list)}
    managed_names.update(keep_out or ())
    return [r for r in existing if r['name'] not in managed_names]


def reconcile_collection(new: Iterable[Resource], existing: Optional[Iterable[Resource]],
                         blacklist: List[Target], whitelist: List[Target], in_list: Matcher,
                         kind: str = "resource", default: Optional[Resource] = None) -> List[Resource]:
    """
    Merge freshly built resources with previously applied ones.

    Newly managed resources are merged with the existing resources the
    controller does not own; on a name clash the new resource wins. The default
    resource is not classified: it is always part of the result unless a newly
    managed resource of the same name replaces it. The result is sorted by name
    so identical inputs give identical output.

    Args:
        new: Resources built from the current cluster state
        existing: Resources from the previously applied configuration
        blacklist: Prohibited targets
        whitelist: Managed targets
        in_list: Resource kind specific matcher
        kind: Resource kind, for logging
        default: Fallback resource that is always present

    Returns:
        List[Resource]: Final collection sorted by name
    """
    newly_managed = filter_managed(dedupe_by_name(new), blacklist, whitelist, in_list)
    if default is not None and default['name'] not in {r['name'] for r in newly_managed}:
        newly_managed.append(default)
    existing_unmanaged = prune_managed(existing, blacklist, whitelist, in_list,
                                       keep_out={r['name'] for r in newly_managed})
    if existing_unmanaged:
        logger.info(f"Preserving {len(existing_unmanaged)} unmanaged {kind}(s): "
                    f"{', '.join(r['name'] for r in existing_unmanaged)}")

    merged = merge_by_name(existing_unmanaged, newly_managed)
    return sorted(merged, key=lambda r: r['name'])
