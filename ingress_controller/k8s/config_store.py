from typing import Any, Dict
import json
import logging

import kubernetes

from ..errors import DeployGatewayConfigError, FetchGatewayConfigError

logger = logging.getLogger(__name__)

CONFIG_KEY = "gateway.json"


class GatewayConfigStore:
    """
    Stores the Application Gateway configuration in a ConfigMap.

    The stored configuration is both the previously applied state read at the
    start of a pass and the hand-off to the client that deploys it.
    """

    def __init__(self, name: str, namespace: str, api=None):
        self.name = name
        self.namespace = namespace
        self._api = api

    @property
    def api(self):
        if self._api is None:
            self._api = kubernetes.client.CoreV1Api()
        return self._api

    def load(self) -> Dict[str, Any]:
        """
        Read the stored configuration.

        Returns:
            Dict[str, Any]: Gateway properties, empty if nothing was stored yet

        Raises:
            FetchGatewayConfigError: If the ConfigMap cannot be read or parsed
        """
        try:
            config_map = self.api.read_namespaced_config_map(name=self.name, namespace=self.namespace)
        except kubernetes.client.rest.ApiException as e:
            if e.status == 404:
                logger.info(f"ConfigMap {self.namespace}/{self.name} not found, starting from an empty configuration")
                return {}
            raise FetchGatewayConfigError(f"Failed to read ConfigMap {self.namespace}/{self.name}: {str(e)}") from e

        raw = (config_map.data or {}).get(CONFIG_KEY)
        if not raw:
            return {}
        try:
            return json.loads(raw)
        except ValueError as e:
            raise FetchGatewayConfigError(f"Invalid configuration in ConfigMap {self.namespace}/{self.name}: {str(e)}") from e

    def save(self, gateway_config: Dict[str, Any]) -> None:
        """
        Write the configuration, creating the ConfigMap if needed.

        Raises:
            DeployGatewayConfigError: If the ConfigMap cannot be written
        """
        body = {
            'metadata': {
                'name': self.name,
                'namespace': self.namespace,
                'labels': {'app.kubernetes.io/managed-by': 'appgw-ingress-controller'},
            },
            'data': {CONFIG_KEY: json.dumps(gateway_config, indent=2, sort_keys=True)},
        }
        try:
            self.api.replace_namespaced_config_map(name=self.name, namespace=self.namespace, body=body)
            logger.info(f"Successfully updated ConfigMap {self.namespace}/{self.name}")
            return
        except kubernetes.client.rest.ApiException as e:
            if e.status != 404:
                raise DeployGatewayConfigError(f"Failed to update ConfigMap {self.namespace}/{self.name}: {str(e)}") from e

        try:
            self.api.create_namespaced_config_map(namespace=self.namespace, body=body)
            logger.info(f"Successfully created ConfigMap {self.namespace}/{self.name}")
        except kubernetes.client.rest.ApiException as e:
            raise DeployGatewayConfigError(f"Failed to create ConfigMap {self.namespace}/{self.name}: {str(e)}") from e
