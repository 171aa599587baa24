"""Kubernetes objects and gateway resources shared by the test modules."""
from kubernetes import client

from .appgw.resources import (
    BACKEND_ADDRESS_POOLS,
    BACKEND_HTTP_SETTINGS_COLLECTION,
    HTTP_LISTENERS,
    URL_PATH_MAPS,
    resource_ref,
)

GATEWAY_ID = ("/subscriptions/sub-id/resourceGroups/rg/providers/"
              "Microsoft.Network/applicationGateways/appgw")

NAMESPACE = "test-namespace"
INGRESS_NAME = "test-ingress"
SERVICE_NAME = "test-service"
HOST = "bye.com"
OTHER_HOST = "www.prohibited.com"

HTTP_PATH = "/api/*"
HTTPS_PATH = "/web"

HTTP_SERVICE_PORT = 80
HTTPS_SERVICE_PORT = 443
HTTP_TARGET_PORT = 9876
HTTPS_TARGET_PORT = 9443

SELECTOR = {"app": "test-app"}


def new_ingress_fixture(name=INGRESS_NAME, namespace=NAMESPACE, host=HOST, paths=None, annotations=None):
    """Ingress routing HTTP_PATH to service port 80 and HTTPS_PATH to service port 443 by default."""
    if paths is None:
        paths = [(HTTP_PATH, SERVICE_NAME, HTTP_SERVICE_PORT), (HTTPS_PATH, SERVICE_NAME, HTTPS_SERVICE_PORT)]
    http_paths = []
    for path, service_name, port in paths:
        port_spec = client.V1ServiceBackendPort(number=port) if isinstance(port, int) \
            else client.V1ServiceBackendPort(name=port)
        http_paths.append(client.V1HTTPIngressPath(
            path=path,
            path_type="Prefix",
            backend=client.V1IngressBackend(
                service=client.V1IngressServiceBackend(name=service_name, port=port_spec),
            ),
        ))
    return client.V1Ingress(
        metadata=client.V1ObjectMeta(
            name=name,
            namespace=namespace,
            uid=f"uid-{name}",
            annotations=annotations if annotations is not None else {
                "kubernetes.io/ingress.class": "azure/application-gateway",
            },
        ),
        spec=client.V1IngressSpec(rules=[
            client.V1IngressRule(host=host, http=client.V1HTTPIngressRuleValue(paths=http_paths)),
        ]),
    )


def new_service_ports_fixture():
    return [
        client.V1ServicePort(name="http", port=HTTP_SERVICE_PORT, target_port=HTTP_TARGET_PORT, protocol="TCP"),
        client.V1ServicePort(name="https", port=HTTPS_SERVICE_PORT, target_port=HTTPS_TARGET_PORT, protocol="TCP"),
    ]


def new_service_fixture(ports=None, name=SERVICE_NAME, namespace=NAMESPACE):
    return client.V1Service(
        metadata=client.V1ObjectMeta(name=name, namespace=namespace),
        spec=client.V1ServiceSpec(
            selector=dict(SELECTOR),
            ports=ports if ports is not None else new_service_ports_fixture(),
        ),
    )


def new_endpoints_fixture(ips=("10.9.8.7",), hostnames=(), ports=None, name=SERVICE_NAME, namespace=NAMESPACE):
    """Endpoints with a single subset advertising both target ports unless ports is given."""
    if ports is None:
        ports = [("http", HTTP_TARGET_PORT), ("https", HTTPS_TARGET_PORT)]
    addresses = [client.V1EndpointAddress(ip=ip) for ip in ips]
    addresses += [client.V1EndpointAddress(ip="", hostname=hostname) for hostname in hostnames]
    return client.V1Endpoints(
        metadata=client.V1ObjectMeta(name=name, namespace=namespace),
        subsets=[client.V1EndpointSubset(
            addresses=addresses,
            ports=[client.CoreV1EndpointPort(name=port_name, port=port, protocol="TCP") for port_name, port in ports],
        )],
    )


def new_pod_fixture(name="test-pod", namespace=NAMESPACE, probe_port=HTTPS_TARGET_PORT, probe_path="/healthz"):
    """Pod backing the service with an HTTP readiness probe on probe_port."""
    return client.V1Pod(
        metadata=client.V1ObjectMeta(name=name, namespace=namespace, labels=dict(SELECTOR)),
        spec=client.V1PodSpec(containers=[
            client.V1Container(
                name="container",
                ports=[
                    client.V1ContainerPort(name="http", container_port=HTTP_TARGET_PORT),
                    client.V1ContainerPort(name="https", container_port=HTTPS_TARGET_PORT),
                ],
                readiness_probe=client.V1Probe(
                    http_get=client.V1HTTPGetAction(path=probe_path, port=probe_port),
                    period_seconds=20,
                    timeout_seconds=5,
                    failure_threshold=3,
                ),
            ),
        ]),
    )


def new_listener(name, host, protocol="Http"):
    return {'name': name, 'properties': {'hostName': host, 'protocol': protocol}}


def new_basic_rule(name, listener_name, pool_name, settings_name=None):
    properties = {
        'ruleType': 'Basic',
        'httpListener': resource_ref(GATEWAY_ID, HTTP_LISTENERS, listener_name),
        'backendAddressPool': resource_ref(GATEWAY_ID, BACKEND_ADDRESS_POOLS, pool_name),
    }
    if settings_name:
        properties['backendHttpSettings'] = resource_ref(GATEWAY_ID, BACKEND_HTTP_SETTINGS_COLLECTION, settings_name)
    return {'name': name, 'properties': properties}


def new_path_based_rule(name, listener_name, path_map_name):
    return {
        'name': name,
        'properties': {
            'ruleType': 'PathBasedRouting',
            'httpListener': resource_ref(GATEWAY_ID, HTTP_LISTENERS, listener_name),
            'urlPathMap': resource_ref(GATEWAY_ID, URL_PATH_MAPS, path_map_name),
        },
    }


def new_url_path_map(name, path_rules):
    """path_rules is a list of (paths, pool name, settings name or None)."""
    rules = []
    for i, (paths, pool_name, settings_name) in enumerate(path_rules):
        properties = {
            'paths': list(paths),
            'backendAddressPool': resource_ref(GATEWAY_ID, BACKEND_ADDRESS_POOLS, pool_name),
        }
        if settings_name:
            properties['backendHttpSettings'] = resource_ref(GATEWAY_ID, BACKEND_HTTP_SETTINGS_COLLECTION, settings_name)
        rules.append({'name': f"{name}-rule-{i}", 'properties': properties})
    return {'name': name, 'properties': {'pathRules': rules}}
