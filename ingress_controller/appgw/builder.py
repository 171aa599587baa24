from typing import Any, Dict, List
import copy
import logging

from ..brownfield.mapping import get_pool_to_target_mapping, get_setting_to_target_mapping
from ..brownfield.ownership import (
    get_managed_pools,
    get_managed_probes,
    get_managed_settings,
    reconcile_collection,
    target_matcher,
)
from ..brownfield.target import Target, in_probe_list
from .backend_pools import build_backend_pools
from .backends import get_service_backend_pairs, iter_backend_identifiers
from .context import ConfigBuilderContext
from .http_settings import build_http_settings
from .probes import build_probes
from .resources import (
    BACKEND_ADDRESS_POOLS,
    BACKEND_HTTP_SETTINGS_COLLECTION,
    HTTP_LISTENERS,
    PROBES,
    REQUEST_ROUTING_RULES,
    URL_PATH_MAPS,
    default_backend_address_pool,
    default_http_settings,
    default_probe,
)

logger = logging.getLogger(__name__)


class ConfigBuilder:
    """
    Builds the Application Gateway configuration for one reconciliation pass.

    gateway_config is the shared builder state: on input it holds the
    previously applied configuration, including the listeners, URL path maps
    and routing rules built by the routing builder; each step replaces one
    collection with its merged result.
    """

    def __init__(self, k8s_context, recorder, gateway_config: Dict[str, Any] = None,
                 gateway_id: str = "", prefix: str = ""):
        self.k8s_context = k8s_context
        self.recorder = recorder
        self.gateway_config = copy.deepcopy(gateway_config) if gateway_config else {}
        self.gateway_id = gateway_id
        self.prefix = prefix

    def _collection(self, name: str) -> List[Dict[str, Any]]:
        return list(self.gateway_config.get(name) or [])

    def get_pool_to_target_mapping(self) -> Dict[str, Target]:
        return get_pool_to_target_mapping(
            self._collection(REQUEST_ROUTING_RULES),
            self._collection(HTTP_LISTENERS),
            self._collection(URL_PATH_MAPS),
        )

    def get_setting_to_target_mapping(self) -> Dict[str, Target]:
        return get_setting_to_target_mapping(
            self._collection(REQUEST_ROUTING_RULES),
            self._collection(HTTP_LISTENERS),
            self._collection(URL_PATH_MAPS),
        )

    def get_new_managed_pools(self, pools, cb_ctx: ConfigBuilderContext):
        return get_managed_pools(pools, cb_ctx.get_prohibited_target_list(), cb_ctx.get_managed_target_list(),
                                 self.get_pool_to_target_mapping())

    def get_managed_probes(self, probes, cb_ctx: ConfigBuilderContext):
        return get_managed_probes(probes, cb_ctx.get_prohibited_target_list(), cb_ctx.get_managed_target_list())

    def get_managed_settings(self, settings, cb_ctx: ConfigBuilderContext):
        return get_managed_settings(settings, cb_ctx.get_prohibited_target_list(), cb_ctx.get_managed_target_list(),
                                    self.get_setting_to_target_mapping())

    def _backend_pools(self, cb_ctx: ConfigBuilderContext):
        # Warning events for unresolvable backends are recorded from this step only
        pairs = get_service_backend_pairs(cb_ctx, self.k8s_context, self.recorder)
        return build_backend_pools(pairs, default_backend_address_pool(self.prefix),
                                   self.k8s_context, self.recorder, self.prefix)

    def new_backend_pool_map(self, cb_ctx: ConfigBuilderContext):
        """Pool serving each ingress backend; the default pool where none could be built."""
        address_pools, backend_pool_map = self._backend_pools(cb_ctx)
        default_pool = address_pools[default_backend_address_pool(self.prefix)['name']]
        for ingress in cb_ctx.ingress_list:
            for backend_id in iter_backend_identifiers(ingress):
                backend_pool_map.setdefault(backend_id, default_pool)
        return backend_pool_map

    def backend_address_pools(self, cb_ctx: ConfigBuilderContext) -> None:
        """Synthesize pools from the cluster state and merge them with the unmanaged pools already applied."""
        address_pools, _ = self._backend_pools(cb_ctx)
        default_pool = address_pools.pop(default_backend_address_pool(self.prefix)['name'])
        merged = reconcile_collection(
            address_pools.values(),
            self._collection(BACKEND_ADDRESS_POOLS),
            cb_ctx.get_prohibited_target_list(),
            cb_ctx.get_managed_target_list(),
            target_matcher(self.get_pool_to_target_mapping()),
            kind="backend address pool",
            default=default_pool,
        )
        self.gateway_config[BACKEND_ADDRESS_POOLS] = merged

    def _probes(self, cb_ctx: ConfigBuilderContext):
        pairs = get_service_backend_pairs(cb_ctx, self.k8s_context)
        return pairs, build_probes(pairs, cb_ctx, self.prefix)

    def health_probes_collection(self, cb_ctx: ConfigBuilderContext) -> None:
        """Derive health probes and merge them with the unmanaged probes already applied."""
        _, probes = self._probes(cb_ctx)
        merged = reconcile_collection(
            probes.values(),
            self._collection(PROBES),
            cb_ctx.get_prohibited_target_list(),
            cb_ctx.get_managed_target_list(),
            in_probe_list,
            kind="health probe",
            default=default_probe(self.prefix),
        )
        self.gateway_config[PROBES] = merged

    def backend_http_settings_collection(self, cb_ctx: ConfigBuilderContext) -> None:
        """Derive backend HTTP settings and merge them with the unmanaged settings already applied."""
        pairs, probes = self._probes(cb_ctx)
        settings = build_http_settings(pairs, probes, default_probe(self.prefix), self.gateway_id, self.prefix)
        merged = reconcile_collection(
            settings.values(),
            self._collection(BACKEND_HTTP_SETTINGS_COLLECTION),
            cb_ctx.get_prohibited_target_list(),
            cb_ctx.get_managed_target_list(),
            target_matcher(self.get_setting_to_target_mapping()),
            kind="backend HTTP settings",
            default=default_http_settings(self.gateway_id, self.prefix),
        )
        self.gateway_config[BACKEND_HTTP_SETTINGS_COLLECTION] = merged

    def build(self, cb_ctx: ConfigBuilderContext) -> Dict[str, Any]:
        """
        Run every step of the pass and return the resulting configuration.

        Args:
            cb_ctx: Reconciliation context

        Returns:
            Dict[str, Any]: The gateway configuration to submit
        """
        self.health_probes_collection(cb_ctx)
        self.backend_http_settings_collection(cb_ctx)
        self.backend_address_pools(cb_ctx)
        logger.info(
            f"Built configuration with {len(self.gateway_config[BACKEND_ADDRESS_POOLS])} pool(s), "
            f"{len(self.gateway_config[PROBES])} probe(s), "
            f"{len(self.gateway_config[BACKEND_HTTP_SETTINGS_COLLECTION])} HTTP setting(s)"
        )
        return self.gateway_config
