from dataclasses import dataclass, field
from typing import Any, Tuple

from ..brownfield.target import TargetSpec, get_target_list


@dataclass(frozen=True)
class ConfigBuilderContext:
    """
    Read-only snapshot of the cluster state a reconciliation pass works from.

    Ingresses, services and pods are kubernetes client model objects
    (V1Ingress, V1Service, V1Pod).
    """
    ingress_list: Tuple[Any, ...] = field(default_factory=tuple)
    service_list: Tuple[Any, ...] = field(default_factory=tuple)
    pod_list: Tuple[Any, ...] = field(default_factory=tuple)
    managed_targets: Tuple[TargetSpec, ...] = field(default_factory=tuple)
    prohibited_targets: Tuple[TargetSpec, ...] = field(default_factory=tuple)

    def get_managed_target_list(self):
        """Whitelist: targets the controller is explicitly allowed to manage."""
        return get_target_list(self.managed_targets)

    def get_prohibited_target_list(self):
        """Blacklist: targets the controller must never touch."""
        return get_target_list(self.prohibited_targets)
