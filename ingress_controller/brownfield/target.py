from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

PATH_CUTSET = "*/"


@dataclass(frozen=True)
class Target:
    """
    An externally visible route served by the gateway.

    A path of None means "any path on this host and port". An empty string
    is a literal path and is not the same thing.
    """
    host: str
    port: int
    path: Optional[str] = None


@dataclass(frozen=True)
class TargetSpec:
    """Spec of an AzureIngressManagedTarget or AzureIngressProhibitedTarget resource."""
    hostname: str
    port: int
    paths: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_custom_object(cls, obj: Dict[str, Any]) -> 'TargetSpec':
        """
        Build a TargetSpec from a custom object as returned by CustomObjectsApi.

        Args:
            obj: Custom object dict with a 'spec' holding hostname, port and paths

        Returns:
            TargetSpec: Declared target
        """
        spec = obj.get('spec', {})
        return cls(
            hostname=spec.get('hostname', ''),
            port=int(spec.get('port', 80)),
            paths=tuple(spec.get('paths') or ()),
        )


def get_target_list(specs: Iterable[TargetSpec]) -> List[Target]:
    """
    Expand declared target specs into a flat list of Targets.

    A spec with no paths yields a single Target covering the whole host and port.
    The list is only used for membership tests, so duplicates are kept.

    Args:
        specs: Declared managed or prohibited targets

    Returns:
        List[Target]: One Target per declared path
    """
    targets = []
    for spec in specs:
        if not spec.paths:
            targets.append(Target(host=spec.hostname, port=spec.port, path=None))
        for path in spec.paths:
            targets.append(Target(host=spec.hostname, port=spec.port, path=path))
    return targets


def normalize_path(path: str) -> str:
    """Strip trailing wildcards and slashes: "/foo/*", "/foo/**/*" and "/foo/" all become "/foo"."""
    return path.rstrip(PATH_CUTSET)


def is_target_in_list(target: Optional[Target], target_list: Iterable[Target]) -> bool:
    """Exact match of all three Target fields against any entry of the list."""
    if target is None:
        return False
    return any(target == t for t in target_list)


def in_probe_list(probe: Dict[str, Any], target_list: Iterable[Target]) -> bool:
    """
    Check whether a health probe is covered by a Target list.

    Probes are matched by host and path only; the port is not compared. An entry
    without a path covers every probe on its host, otherwise the normalized paths
    must be equal.

    Args:
        probe: ARM-shaped probe dict
        target_list: Targets to match against

    Returns:
        bool: True if any entry covers the probe
    """
    properties = probe.get('properties') or {}
    host = properties.get('host')
    probe_path = properties.get('path') or ""
    for t in target_list:
        if t.host != host:
            continue
        if t.path is None:
            # Host matches and no paths declared
            return True
        if normalize_path(t.path) == normalize_path(probe_path):
            return True
    return False
