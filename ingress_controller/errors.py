class ControllerError(Exception):
    """Base class for errors raised by the ingress controller."""


class EndpointsNotFoundError(ControllerError, LookupError):
    """The Endpoints object for a service is not in the cache."""

    def __init__(self, service_key: str):
        super().__init__(f"Endpoints not found for service {service_key}")
        self.service_key = service_key


class FetchGatewayConfigError(ControllerError):
    """Unable to read the stored Application Gateway configuration."""


class DeployGatewayConfigError(ControllerError):
    """Unable to store the Application Gateway configuration for deployment."""
