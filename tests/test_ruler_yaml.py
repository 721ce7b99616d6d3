"""
Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import unittest

try:
    from ._env import ensure_test_env
except ImportError:
    from tests._env import ensure_test_env

ensure_test_env()

import yaml

from services.alerting.ruler_yaml import build_ruler_group_yaml, extract_group_names, yaml_quote


class RulerYamlTests(unittest.TestCase):
    def _group(self):
        return {
            "name": "infra",
            "rules": [
                {
                    "alert": "HostDown",
                    "expr": 'up{job="node"} == 0',
                    "for": "5m",
                    "labels": {"severity": "critical", "team": "ops"},
                    "annotations": {"summary": "Host down"},
                },
                {"alert": "NoLabels", "expr": "vector(1)", "for": "1m", "labels": {}, "annotations": {}},
            ],
        }

    def test_yaml_quote_escapes_double_quotes_and_backslashes(self):
        self.assertEqual(yaml_quote('a"b\\c'), '"a\\"b\\\\c"')
        self.assertEqual(yaml_quote("line\nbreak"), '"line\\nbreak"')

    def test_group_yaml_parses_back_to_group(self):
        yaml_text = build_ruler_group_yaml(self._group())
        self.assertIn('name: "infra"', yaml_text)
        parsed = yaml.safe_load(yaml_text)
        self.assertEqual(parsed["name"], "infra")
        self.assertEqual(parsed["rules"][0]["expr"], 'up{job="node"} == 0')
        self.assertEqual(parsed["rules"][0]["labels"], {"severity": "critical", "team": "ops"})
        self.assertNotIn("labels", parsed["rules"][1])

    def test_extract_group_names_handles_both_listing_shapes(self):
        namespace = 'alert-config:\n  - name: "infra"\n  - name: "app"\n'
        self.assertEqual(extract_group_names(namespace), ["infra", "app"])
        self.assertEqual(extract_group_names('- name: "db"\n'), ["db"])

    def test_extract_group_names_tolerates_garbage(self):
        self.assertEqual(extract_group_names(""), [])
        self.assertEqual(extract_group_names("just text"), [])
        self.assertEqual(extract_group_names("a: [unclosed"), [])


if __name__ == "__main__":
    unittest.main()
