"""
Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import unittest

from tests._env import ensure_test_env

ensure_test_env()

from services.common.url_utils import is_http_url, join_url


class UrlUtilsTests(unittest.TestCase):
    def test_accepts_http_and_https_urls(self):
        self.assertTrue(is_http_url("http://example.com/path"))
        self.assertTrue(is_http_url("https://example.com"))
        self.assertTrue(is_http_url("http://mimir:9009"))

    def test_rejects_invalid_or_non_http_urls(self):
        self.assertFalse(is_http_url(""))
        self.assertFalse(is_http_url(None))
        self.assertFalse(is_http_url("ftp://example.com"))
        self.assertFalse(is_http_url("https:///missing-host"))
        self.assertFalse(is_http_url("http://example.com:99999"))

    def test_private_targets_can_be_refused(self):
        self.assertTrue(is_http_url("http://127.0.0.1:9093"))
        self.assertFalse(is_http_url("http://127.0.0.1:9093", allow_private=False))
        self.assertFalse(is_http_url("http://localhost:8080", allow_private=False))
        self.assertFalse(is_http_url("http://service.local/path", allow_private=False))
        self.assertFalse(is_http_url("http://internal-service/path", allow_private=False))
        self.assertTrue(is_http_url("https://alerts.example.com", allow_private=False))

    def test_join_url_normalizes_slashes(self):
        self.assertEqual(join_url("http://am:9093/", "/api/v2/status"), "http://am:9093/api/v2/status")
        self.assertEqual(join_url("http://am:9093", "api/v2/status"), "http://am:9093/api/v2/status")


if __name__ == "__main__":
    unittest.main()
