from typing import Any, Dict, Iterable, List, Optional
import logging

import kubernetes

from ..appgw.context import ConfigBuilderContext
from ..brownfield.target import TargetSpec
from ..errors import EndpointsNotFoundError
from ..utils import get_resource_key

logger = logging.getLogger(__name__)

TARGET_GROUP = "appgw.ingress.k8s.io"
TARGET_VERSION = "v1"
MANAGED_TARGETS_PLURAL = "azureingressmanagedtargets"
PROHIBITED_TARGETS_PLURAL = "azureingressprohibitedtargets"

INGRESS_CLASS_ANNOTATION = "kubernetes.io/ingress.class"
INGRESS_CLASS = "azure/application-gateway"


def load_kube_config() -> None:
    """Load in-cluster configuration, falling back to kubeconfig for local development."""
    try:
        kubernetes.config.load_incluster_config()
    except kubernetes.config.ConfigException:
        kubernetes.config.load_kube_config()


def is_application_gateway_ingress(ingress) -> bool:
    annotations = ingress.metadata.annotations or {}
    if annotations.get(INGRESS_CLASS_ANNOTATION) == INGRESS_CLASS:
        return True
    spec = ingress.spec
    return spec is not None and spec.ingress_class_name == INGRESS_CLASS


def _index(objects: Iterable[Any]) -> Dict[str, Any]:
    return {get_resource_key(obj.metadata.namespace, obj.metadata.name): obj for obj in objects}


class KubernetesContext:
    """
    Read-only snapshot of the cluster objects one reconciliation pass needs.

    The snapshot is taken once per pass; lookups never go back to the API server.
    """

    def __init__(self, ingresses=None, services=None, endpoints=None, pods=None,
                 managed_targets=None, prohibited_targets=None):
        self.ingresses = list(ingresses or [])
        self.services = list(services or [])
        self.pods = list(pods or [])
        self.managed_targets = list(managed_targets or [])
        self.prohibited_targets = list(prohibited_targets or [])
        self._endpoints = _index(endpoints or [])

    def get_endpoints_by_service(self, service_key: str):
        """
        Look up the Endpoints object of a service.

        Args:
            service_key: namespace/name of the service

        Returns:
            V1Endpoints: The cached Endpoints

        Raises:
            EndpointsNotFoundError: If the service has no Endpoints in the snapshot
        """
        endpoints = self._endpoints.get(service_key)
        if endpoints is None:
            raise EndpointsNotFoundError(service_key)
        return endpoints

    def config_builder_context(self) -> ConfigBuilderContext:
        return ConfigBuilderContext(
            ingress_list=tuple(i for i in self.ingresses if is_application_gateway_ingress(i)),
            service_list=tuple(self.services),
            pod_list=tuple(self.pods),
            managed_targets=tuple(self.managed_targets),
            prohibited_targets=tuple(self.prohibited_targets),
        )

    @classmethod
    def from_cluster(cls, namespace: Optional[str] = None) -> 'KubernetesContext':
        """
        List everything a pass needs from the API server.

        Args:
            namespace: Restrict ingresses, services, endpoints and pods to one namespace

        Returns:
            KubernetesContext: The snapshot
        """
        core = kubernetes.client.CoreV1Api()
        networking = kubernetes.client.NetworkingV1Api()

        if namespace:
            ingresses = networking.list_namespaced_ingress(namespace).items
            services = core.list_namespaced_service(namespace).items
            endpoints = core.list_namespaced_endpoints(namespace).items
            pods = core.list_namespaced_pod(namespace).items
        else:
            ingresses = networking.list_ingress_for_all_namespaces().items
            services = core.list_service_for_all_namespaces().items
            endpoints = core.list_endpoints_for_all_namespaces().items
            pods = core.list_pod_for_all_namespaces().items

        return cls(
            ingresses=ingresses,
            services=services,
            endpoints=endpoints,
            pods=pods,
            managed_targets=list_target_specs(MANAGED_TARGETS_PLURAL),
            prohibited_targets=list_target_specs(PROHIBITED_TARGETS_PLURAL),
        )


def list_target_specs(plural: str) -> List[TargetSpec]:
    """
    List managed or prohibited target declarations from all namespaces.

    A missing CRD is treated as no declarations.
    """
    api = kubernetes.client.CustomObjectsApi()
    try:
        resources = api.list_cluster_custom_object(
            group=TARGET_GROUP,
            version=TARGET_VERSION,
            plural=plural,
        )
    except kubernetes.client.rest.ApiException as e:
        if e.status == 404:
            logger.info(f"No {plural} resource type installed, assuming none declared")
            return []
        raise
    return [TargetSpec.from_custom_object(item) for item in resources.get('items', [])]
