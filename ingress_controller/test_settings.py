import os
import unittest
from unittest.mock import patch

from .settings import get_settings, missing_variables

REQUIRED_ENV = {
    'APPGW_SUBSCRIPTION_ID': 'sub-id',
    'APPGW_RESOURCE_GROUP': 'rg',
    'APPGW_NAME': 'appgw',
}


class TestSettings(unittest.TestCase):
    def test_defaults(self):
        with patch.dict(os.environ, REQUIRED_ENV, clear=True):
            settings = get_settings()

        self.assertEqual(settings.config_map_name, "appgw-config")
        self.assertEqual(settings.pod_namespace, "default")
        self.assertIsNone(settings.watch_namespace)
        self.assertEqual(settings.resource_prefix, "")
        self.assertEqual(settings.reconcile_interval, 30)
        self.assertEqual(settings.http_service_port, 8123)
        self.assertEqual(settings.gateway_id,
                         "/subscriptions/sub-id/resourceGroups/rg/providers/"
                         "Microsoft.Network/applicationGateways/appgw")

    def test_overrides(self):
        env = dict(REQUIRED_ENV, APPGW_CONFIG_MAP='cfg', POD_NAMESPACE='kube-system', WATCH_NAMESPACE='apps',
                   RESOURCE_PREFIX='agic-', RECONCILE_INTERVAL='60', HTTP_SERVICE_PORT='9000')
        with patch.dict(os.environ, env, clear=True):
            settings = get_settings()

        self.assertEqual(settings.config_map_name, "cfg")
        self.assertEqual(settings.pod_namespace, "kube-system")
        self.assertEqual(settings.watch_namespace, "apps")
        self.assertEqual(settings.resource_prefix, "agic-")
        self.assertEqual(settings.reconcile_interval, 60)
        self.assertEqual(settings.http_service_port, 9000)

    def test_missing_variables(self):
        with patch.dict(os.environ, {'APPGW_NAME': 'appgw'}, clear=True):
            self.assertEqual(missing_variables(), ['APPGW_SUBSCRIPTION_ID', 'APPGW_RESOURCE_GROUP'])
            with self.assertRaises(ValueError):
                get_settings()


if __name__ == '__main__':
    unittest.main()
