import os
from dataclasses import dataclass
from typing import Optional

# Constants
DEFAULT_RECONCILE_INTERVAL = 30  # Default interval in seconds for periodic resync
DEFAULT_HTTP_SERVICE_PORT = 8123
DEFAULT_CONFIG_MAP_NAME = "appgw-config"

REQUIRED_VARIABLES = ['APPGW_SUBSCRIPTION_ID', 'APPGW_RESOURCE_GROUP', 'APPGW_NAME']


@dataclass(frozen=True)
class Settings:
    subscription_id: str
    resource_group: str
    gateway_name: str
    config_map_name: str = DEFAULT_CONFIG_MAP_NAME
    pod_namespace: str = "default"
    watch_namespace: Optional[str] = None
    resource_prefix: str = ""
    reconcile_interval: int = DEFAULT_RECONCILE_INTERVAL
    http_service_port: int = DEFAULT_HTTP_SERVICE_PORT

    @property
    def gateway_id(self) -> str:
        """ARM resource ID of the Application Gateway."""
        return (
            f"/subscriptions/{self.subscription_id}"
            f"/resourceGroups/{self.resource_group}"
            f"/providers/Microsoft.Network/applicationGateways/{self.gateway_name}"
        )


def missing_variables() -> list:
    """Return the names of required environment variables that are not set."""
    return [name for name in REQUIRED_VARIABLES if not os.getenv(name)]


def get_settings() -> Settings:
    """
    Read controller settings from the environment.

    Returns:
        Settings: Controller settings

    Raises:
        ValueError: If a required variable is missing or a numeric variable is malformed
    """
    missing = missing_variables()
    if missing:
        raise ValueError(f"Missing required environment variables: {', '.join(missing)}")

    return Settings(
        subscription_id=os.environ['APPGW_SUBSCRIPTION_ID'],
        resource_group=os.environ['APPGW_RESOURCE_GROUP'],
        gateway_name=os.environ['APPGW_NAME'],
        config_map_name=os.getenv('APPGW_CONFIG_MAP', DEFAULT_CONFIG_MAP_NAME),
        pod_namespace=os.getenv('POD_NAMESPACE', 'default'),
        watch_namespace=os.getenv('WATCH_NAMESPACE') or None,
        resource_prefix=os.getenv('RESOURCE_PREFIX', ''),
        reconcile_interval=int(os.getenv('RECONCILE_INTERVAL', DEFAULT_RECONCILE_INTERVAL)),
        http_service_port=int(os.getenv('HTTP_SERVICE_PORT', DEFAULT_HTTP_SERVICE_PORT)),
    )
