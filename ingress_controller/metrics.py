from prometheus_client import CollectorRegistry, Counter, Gauge

NAMESPACE = "appgw_ingress_controller"

registry = CollectorRegistry()

update_latency_seconds = Gauge(
    'update_latency_seconds',
    'The time spent in building and storing the Application Gateway configuration',
    namespace=NAMESPACE,
    registry=registry,
)

reconcile_total = Counter(
    'reconcile_total',
    'Reconciliation passes by result',
    ['result'],
    namespace=NAMESPACE,
    registry=registry,
)

resources = Gauge(
    'resources',
    'Sub-resources in the last built configuration',
    ['kind'],
    namespace=NAMESPACE,
    registry=registry,
)
