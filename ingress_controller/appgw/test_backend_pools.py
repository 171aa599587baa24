import unittest
from unittest.mock import ANY, MagicMock

from kubernetes import client

from ..brownfield.target import TargetSpec
from ..events import EVENT_TYPE_WARNING, REASON_BACKEND_PORT_TARGET_MATCH, REASON_ENDPOINTS_EMPTY
from ..fixtures import (
    GATEWAY_ID,
    HOST,
    HTTP_TARGET_PORT,
    NAMESPACE,
    OTHER_HOST,
    SERVICE_NAME,
    new_basic_rule,
    new_endpoints_fixture,
    new_ingress_fixture,
    new_listener,
    new_service_fixture,
)
from ..k8s.context import KubernetesContext
from .backend_pools import get_addresses_for_subset, get_unique_tcp_ports
from .builder import ConfigBuilder
from .context import ConfigBuilderContext
from .resources import BACKEND_ADDRESS_POOLS, HTTP_LISTENERS, REQUEST_ROUTING_RULES, generate_address_pool_name

HTTP_POOL = f"pool-{NAMESPACE}-{SERVICE_NAME}-80-bp-9876"
HTTPS_POOL = f"pool-{NAMESPACE}-{SERVICE_NAME}-443-bp-9443"


def subset(ips=(), hostnames=(), ports=((HTTP_TARGET_PORT, "TCP"),)):
    addresses = [client.V1EndpointAddress(ip=ip) for ip in ips]
    addresses += [client.V1EndpointAddress(ip="", hostname=hostname) for hostname in hostnames]
    return client.V1EndpointSubset(
        addresses=addresses,
        ports=[client.CoreV1EndpointPort(port=port, protocol=protocol) for port, protocol in ports],
    )


class TestSubsetAddresses(unittest.TestCase):
    def test_duplicate_ips_collapse(self):
        addresses = get_addresses_for_subset(subset(ips=("10.0.0.1", "10.0.0.1")))
        self.assertEqual(addresses, [{'ipAddress': '10.0.0.1'}])

    def test_ips_before_fqdns_each_sorted(self):
        addresses = get_addresses_for_subset(subset(
            ips=("10.0.0.2", "10.0.0.1"),
            hostnames=("b.com", "a.com", "10.0.0.1", "a.com"),
        ))

        self.assertEqual(addresses, [
            {'ipAddress': '10.0.0.1'},
            {'ipAddress': '10.0.0.2'},
            {'fqdn': '10.0.0.1'},
            {'fqdn': 'a.com'},
            {'fqdn': 'b.com'},
        ])

    def test_ip_preferred_over_hostname(self):
        s = client.V1EndpointSubset(addresses=[client.V1EndpointAddress(ip="10.0.0.1", hostname="pod-0")])
        self.assertEqual(get_addresses_for_subset(s), [{'ipAddress': '10.0.0.1'}])

    def test_order_independent(self):
        forward = get_addresses_for_subset(subset(ips=("10.0.0.1", "10.0.0.3", "10.0.0.2"), hostnames=("x", "y")))
        backward = get_addresses_for_subset(subset(ips=("10.0.0.2", "10.0.0.3", "10.0.0.1"), hostnames=("y", "x")))
        self.assertEqual(forward, backward)

    def test_unique_tcp_ports(self):
        s = subset(ports=((80, "TCP"), (80, "TCP"), (53, "UDP"), (8080, None)))
        self.assertEqual(get_unique_tcp_ports(s), {80, 8080})


class TestPoolName(unittest.TestCase):
    def test_deterministic(self):
        first = generate_address_pool_name(f"{NAMESPACE}-{SERVICE_NAME}", "80", 9876)
        second = generate_address_pool_name(f"{NAMESPACE}-{SERVICE_NAME}", "80", 9876)
        self.assertEqual(first, second)
        self.assertEqual(first, HTTP_POOL)

    def test_prefix(self):
        self.assertEqual(generate_address_pool_name("ns-svc", "http", 8080, prefix="agic-"),
                         "agic-pool-ns-svc-http-bp-8080")

    def test_long_names_are_shortened_deterministically(self):
        long_service = "ns-" + "s" * 100
        name = generate_address_pool_name(long_service, "80", 8080)
        self.assertEqual(len(name), 80)
        self.assertEqual(name, generate_address_pool_name(long_service, "80", 8080))
        self.assertNotEqual(name, generate_address_pool_name(long_service, "81", 8080))


class TestBackendAddressPools(unittest.TestCase):
    def setUp(self):
        self.recorder = MagicMock()
        self.ingress = new_ingress_fixture()
        self.cb_ctx = ConfigBuilderContext(
            ingress_list=(self.ingress,),
            service_list=(new_service_fixture(),),
        )

    def builder(self, endpoints, gateway_config=None):
        k8s_context = KubernetesContext(endpoints=endpoints)
        return ConfigBuilder(k8s_context, self.recorder, gateway_config, gateway_id=GATEWAY_ID)

    def test_pools_from_endpoints(self):
        builder = self.builder([new_endpoints_fixture(ips=("10.9.8.7", "10.9.8.6"), hostnames=("pod.local",))])

        builder.backend_address_pools(self.cb_ctx)

        pools = builder.gateway_config[BACKEND_ADDRESS_POOLS]
        self.assertEqual([p['name'] for p in pools], ["defaultaddresspool", HTTPS_POOL, HTTP_POOL])
        expected = [{'ipAddress': '10.9.8.6'}, {'ipAddress': '10.9.8.7'}, {'fqdn': 'pod.local'}]
        self.assertEqual(pools[0]['properties']['backendAddresses'], [])
        self.assertEqual(pools[1]['properties']['backendAddresses'], expected)
        self.assertEqual(pools[2]['properties']['backendAddresses'], expected)
        self.recorder.event.assert_not_called()

    def test_identical_input_gives_identical_output(self):
        first = self.builder([new_endpoints_fixture(ips=("10.0.0.1", "10.0.0.2"))])
        second = self.builder([new_endpoints_fixture(ips=("10.0.0.2", "10.0.0.1"))])

        first.backend_address_pools(self.cb_ctx)
        second.backend_address_pools(self.cb_ctx)

        self.assertEqual(first.gateway_config, second.gateway_config)

    def test_same_service_in_two_ingresses_builds_one_pool(self):
        other = new_ingress_fixture(name="other-ingress")
        cb_ctx = ConfigBuilderContext(ingress_list=(self.ingress, other), service_list=(new_service_fixture(),))
        builder = self.builder([new_endpoints_fixture()])

        pool_map = builder.new_backend_pool_map(cb_ctx)
        builder.backend_address_pools(cb_ctx)

        self.assertEqual(len(pool_map), 4)
        self.assertEqual({p['name'] for p in pool_map.values()}, {HTTP_POOL, HTTPS_POOL})
        self.assertEqual(len(builder.gateway_config[BACKEND_ADDRESS_POOLS]), 3)

    def test_missing_endpoints_falls_back_to_default_pool(self):
        builder = self.builder([])

        pool_map = builder.new_backend_pool_map(self.cb_ctx)

        self.assertEqual(len(pool_map), 2)
        for pool in pool_map.values():
            self.assertEqual(pool['name'], "defaultaddresspool")
        self.assertEqual(self.recorder.event.call_count, 2)
        self.recorder.event.assert_called_with(self.ingress, EVENT_TYPE_WARNING, REASON_ENDPOINTS_EMPTY, ANY)

    def test_target_port_mismatch_falls_back_to_default_pool(self):
        """No endpoint subset advertises the target port"""
        ingress = new_ingress_fixture(paths=[("/", SERVICE_NAME, 80)])
        cb_ctx = ConfigBuilderContext(ingress_list=(ingress,), service_list=(new_service_fixture(),))
        builder = self.builder([new_endpoints_fixture(ports=[("other", 1234)])])

        pool_map = builder.new_backend_pool_map(cb_ctx)
        self.recorder.event.assert_called_once_with(ingress, EVENT_TYPE_WARNING, REASON_BACKEND_PORT_TARGET_MATCH, ANY)

        builder.backend_address_pools(cb_ctx)

        (pool,) = pool_map.values()
        self.assertEqual(pool['name'], "defaultaddresspool")
        self.assertEqual(builder.gateway_config[BACKEND_ADDRESS_POOLS],
                         [{'name': 'defaultaddresspool', 'properties': {'backendAddresses': []}}])

    def test_zero_subsets_records_one_mismatch_event(self):
        ingress = new_ingress_fixture(paths=[("/", SERVICE_NAME, 80)])
        cb_ctx = ConfigBuilderContext(ingress_list=(ingress,), service_list=(new_service_fixture(),))
        endpoints = client.V1Endpoints(metadata=client.V1ObjectMeta(name=SERVICE_NAME, namespace=NAMESPACE))
        builder = self.builder([endpoints])

        builder.new_backend_pool_map(cb_ctx)

        self.recorder.event.assert_called_once_with(ingress, EVENT_TYPE_WARNING, REASON_BACKEND_PORT_TARGET_MATCH, ANY)

    def test_unrelated_ingress_unaffected_by_broken_service(self):
        broken = new_ingress_fixture(name="broken", paths=[("/", "missing-endpoints", 80)])
        cb_ctx = ConfigBuilderContext(
            ingress_list=(broken, self.ingress),
            service_list=(new_service_fixture(), new_service_fixture(name="missing-endpoints")),
        )
        builder = self.builder([new_endpoints_fixture()])

        builder.backend_address_pools(cb_ctx)

        names = [p['name'] for p in builder.gateway_config[BACKEND_ADDRESS_POOLS]]
        self.assertEqual(names, ["defaultaddresspool", HTTPS_POOL, HTTP_POOL])
        self.recorder.event.assert_called_once_with(broken, EVENT_TYPE_WARNING, REASON_ENDPOINTS_EMPTY, ANY)

    def test_prohibited_manual_pool_is_preserved(self):
        manual_pool = {'name': 'manual-pool', 'properties': {'backendAddresses': [{'fqdn': 'legacy.internal'}]}}
        stale_pool = {'name': 'pool-stale', 'properties': {'backendAddresses': [{'ipAddress': '1.2.3.4'}]}}
        gateway_config = {
            BACKEND_ADDRESS_POOLS: [stale_pool, manual_pool],
            HTTP_LISTENERS: [new_listener("fl-prohibited", OTHER_HOST), new_listener("fl-app", HOST)],
            REQUEST_ROUTING_RULES: [
                new_basic_rule("rr-prohibited", "fl-prohibited", "manual-pool"),
                new_basic_rule("rr-app", "fl-app", HTTP_POOL),
            ],
        }
        cb_ctx = ConfigBuilderContext(
            ingress_list=(self.ingress,),
            service_list=(new_service_fixture(),),
            prohibited_targets=(TargetSpec(hostname=OTHER_HOST, port=80),),
        )
        builder = self.builder([new_endpoints_fixture()], gateway_config)

        builder.backend_address_pools(cb_ctx)

        pools = builder.gateway_config[BACKEND_ADDRESS_POOLS]
        self.assertEqual([p['name'] for p in pools], ["defaultaddresspool", "manual-pool", HTTPS_POOL, HTTP_POOL])
        self.assertEqual(pools[1], manual_pool)

    def test_previous_state_is_not_mutated(self):
        gateway_config = {BACKEND_ADDRESS_POOLS: [{'name': 'old', 'properties': {'backendAddresses': []}}]}
        builder = self.builder([new_endpoints_fixture()], gateway_config)

        builder.backend_address_pools(self.cb_ctx)

        self.assertEqual([p['name'] for p in gateway_config[BACKEND_ADDRESS_POOLS]], ['old'])


if __name__ == '__main__':
    unittest.main()
