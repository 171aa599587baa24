import logging
from datetime import datetime, timezone

import kubernetes

logger = logging.getLogger(__name__)

EVENT_TYPE_NORMAL = "Normal"
EVENT_TYPE_WARNING = "Warning"

# No Endpoints, or Endpoints could not be fetched, for a backend service
REASON_ENDPOINTS_EMPTY = "EndpointsEmpty"
# The backend target port is not advertised by any endpoint subset
REASON_BACKEND_PORT_TARGET_MATCH = "BackendPortTargetMatch"

COMPONENT = "appgw-ingress-controller"


class EventRecorder:
    """Records Kubernetes events against Ingress resources."""

    def __init__(self, api=None):
        self._api = api

    @property
    def api(self):
        if self._api is None:
            self._api = kubernetes.client.CoreV1Api()
        return self._api

    def event(self, ingress, event_type: str, reason: str, message: str) -> None:
        """
        Create an event on the given ingress.

        Failing to post an event never fails the reconciliation pass; the error is logged.

        Args:
            ingress: V1Ingress the event is about
            event_type: EVENT_TYPE_NORMAL or EVENT_TYPE_WARNING
            reason: Short CamelCase reason
            message: Human readable message
        """
        meta = ingress.metadata
        now = datetime.now(timezone.utc).isoformat()
        body = {
            'metadata': {
                'generateName': f"{meta.name}.",
                'namespace': meta.namespace,
            },
            'involvedObject': {
                'apiVersion': 'networking.k8s.io/v1',
                'kind': 'Ingress',
                'name': meta.name,
                'namespace': meta.namespace,
                'uid': meta.uid,
            },
            'type': event_type,
            'reason': reason,
            'message': message,
            'source': {'component': COMPONENT},
            'firstTimestamp': now,
            'lastTimestamp': now,
            'count': 1,
        }
        try:
            self.api.create_namespaced_event(namespace=meta.namespace, body=body)
        except kubernetes.client.rest.ApiException as e:
            logger.error(f"Failed to record {reason} event for ingress {meta.namespace}/{meta.name}: {str(e)}")
