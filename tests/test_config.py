import os
import unittest
from unittest import mock

import pydantic

from medsync.core.config import Settings


class TestSettings(unittest.TestCase):
    def test_reads_prefixed_environment(self):
        env = {
            "MEDSYNC_BACKEND_URL": "https://meds.example.org/api/",
            "MEDSYNC_BACKEND_MAX_RETRIES": "5",
            "MEDSYNC_DEMO_MODE": "true",
            "MEDSYNC_LOG_LEVEL": "debug",
            "BACKEND_URL": "http://ignored.example.org",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            config = Settings(_env_file=None)
        self.assertEqual(config.backend_url, "https://meds.example.org/api")
        self.assertEqual(config.backend_max_retries, 5)
        self.assertTrue(config.demo_mode)
        self.assertEqual(config.log_level, "DEBUG")

    def test_defaults_without_environment(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            config = Settings(_env_file=None)
        self.assertEqual(config.backend_url, "http://localhost:3000/api")
        self.assertEqual(config.probe_endpoint_list, ["/health", "/auth/status", "/medications", "/"])
        self.assertEqual(config.synthetic_prefix_list, ["mock-", "offline-", "temp-"])

    def test_rejects_bad_values(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(pydantic.ValidationError):
                Settings(_env_file=None, backend_url="ftp://meds.example.org")
            with self.assertRaises(pydantic.ValidationError):
                Settings(_env_file=None, probe_timeout=0)
            with self.assertRaises(pydantic.ValidationError):
                Settings(_env_file=None, backend_max_retries=0)

    def test_required_settings(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertFalse(Settings(_env_file=None).validate_required_settings())
            self.assertTrue(Settings(_env_file=None, demo_mode=True).validate_required_settings())
            self.assertTrue(Settings(_env_file=None, auth_token="abc").validate_required_settings())


if __name__ == "__main__":
    unittest.main(verbosity=2)
