import json
import os
import tempfile
import unittest
from unittest.mock import patch

from gate_locator import gates
from gate_locator.config import LocatorConfig
from gate_locator.document import Document
from gate_locator.selector import Selector

_POD_YAML = """\
apiVersion: v1
kind: Pod
metadata:
  name: web
spec:
  hostNetwork: true
  containers:
  - name: web
    image: nginx
    securityContext:
      runAsUser: 0
  - name: sidecar
    image: envoy
    securityContext:
      runAsUser: 0
"""

_SECRETS_YAML = """\
production:
  aws_access_key_id: AKIAEXAMPLE123
  password: hunter2
staging:
  aws_access_key_id: AKIAEXAMPLE123
"""


class _TempDirTestCase(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = self.temp_dir.name
        self.console_patch = patch.object(gates.console_instance, "print")
        self.mock_print = self.console_patch.start()

    def tearDown(self):
        self.console_patch.stop()
        self.temp_dir.cleanup()

    def write(self, name, content):
        path = os.path.join(self.root, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path


class TestFileLocator(unittest.TestCase):
    def setUp(self):
        self.locator = gates.FileLocator(Document.from_text(_POD_YAML))

    def test_same_selector_advances(self):
        selector = Selector.structural("containers[] .securityContext .runAsUser -gt 10000")
        first, _ = self.locator.locate(selector)
        second, _ = self.locator.locate(selector)
        third, _ = self.locator.locate(selector)
        self.assertEqual((first.line_number, first.column_number), (10, 6))
        self.assertEqual((second.line_number, second.column_number), (14, 6))
        self.assertFalse(third.found)

    def test_different_selectors_start_from_top(self):
        self.locator.locate(Selector.structural("containers[] .securityContext .runAsUser"))
        location, result = self.locator.locate(Selector.structural(".spec .hostNetwork == true"))
        self.assertEqual(location.line_number, 5)
        self.assertEqual(result.depth, 1)

    def test_unlocatable_selector(self):
        location, result = self.locator.locate(Selector.structural(""))
        self.assertFalse(location.found)
        self.assertFalse(result.found)

    def test_same_value_under_different_keys_advances(self):
        locator = gates.FileLocator(Document.from_lines(["db_password: hunter2", "admin_password: hunter2"]))
        first, _ = locator.locate(Selector.literal("hunter2 db_password"))
        second, _ = locator.locate(Selector.literal("hunter2 admin_password"))
        self.assertEqual((first.line_number, second.line_number), (0, 1))

    def test_equivalent_paths_share_remaining_document(self):
        first, _ = self.locator.locate(Selector.structural("containers[] .securityContext .runAsUser -gt 10000"))
        second, _ = self.locator.locate(Selector.structural(".containers[] .securityContext .runAsUser == 0"))
        self.assertEqual((first.line_number, second.line_number), (10, 14))

    def test_column_is_key_position_whatever_the_indent_width(self):
        locator = gates.FileLocator(Document.from_lines(["a:", "  b: 1"]), LocatorConfig(indent_width=4))
        location, _ = locator.locate(Selector.structural("a .b"))
        self.assertEqual(location.column_number, 2)


class TestLoadReport(_TempDirTestCase):
    def test_json(self):
        path = self.write("report.json", json.dumps([{"name": "a.yaml", "secrets": []}]))
        self.assertEqual(gates.load_report(path), [{"name": "a.yaml", "secrets": []}])

    def test_single_quotes(self):
        path = self.write("report.json", "[{'name': 'a.yaml', 'secrets': ['x key']}]")
        with self.assertRaises(ValueError):
            gates.load_report(path)
        self.assertEqual(gates.load_report(path, allow_single_quotes=True),
                         [{"name": "a.yaml", "secrets": ["x key"]}])

    def test_invalid(self):
        path = self.write("report.json", "not json")
        with self.assertRaises(ValueError):
            gates.load_report(path, allow_single_quotes=True)
        self.mock_print.assert_called()


class TestKubesecGate(_TempDirTestCase):
    def setUp(self):
        super().setUp()
        self.manifest = self.write("pod.yaml", _POD_YAML)
        self.report = [{
            "object": "Pod/web.default",
            "valid": True,
            "fileName": "pod.yaml",
            "message": "Failed with a score of -9 points",
            "score": -9,
            "scoring": {
                "critical": [
                    {"id": "HostNetwork", "selector": ".spec .hostNetwork == true",
                     "reason": "Sharing the host's network namespace permits processes in the pod to communicate with processes bound to the host's loopback adapter",
                     "points": -9},
                ],
                "advise": [
                    {"id": "RunAsNonRoot", "selector": ".spec, .spec.containers[] | .securityContext .runAsNonRoot == true",
                     "reason": "Force the running image to run as a non-root user", "points": 1},
                    {"id": "RunAsUser", "selector": "containers[] .securityContext .runAsUser -gt 10000",
                     "reason": "Run as a high-UID user", "points": 1},
                    {"id": "RunAsUser", "selector": "containers[] .securityContext .runAsUser -gt 10000",
                     "reason": "Run as a high-UID user", "points": 1},
                    {"id": "ApparmorAny", "selector": ".metadata .annotations .\"container.apparmor.security.beta.kubernetes.io/nginx\"",
                     "reason": "Well defined AppArmor policies may provide greater protection", "points": 3},
                    {"id": "ServiceAccountName", "selector": ".spec .serviceAccountName",
                     "reason": "Service accounts restrict Kubernetes API access", "points": 3},
                ],
                "passed": [
                    {"id": "Privileged", "selector": "containers[] .securityContext .privileged == true",
                     "reason": "", "points": 0},
                ],
            },
        }]

    def test_locates_items(self):
        gate_data = gates.kubesec_gate(self.report, root=self.root)
        critical = gate_data.find("critical").result
        self.assertEqual(len(critical), 1)
        self.assertEqual(critical[0].file_path, self.manifest)
        self.assertEqual(critical[0].file_name, "pod.yaml")
        self.assertEqual(critical[0].messages[0].location.line_number, 5)
        self.assertTrue(critical[0].messages[0].message.startswith("HostNetwork: Sharing"))

        advise = gate_data.find("advise").result[0].messages
        lines = [message.location.line_number for message in advise]
        # ".spec, ..." truncates to "spec," which matches no key
        self.assertEqual(lines, [-1, 10, 14, 2, -1])
        self.assertIsNone(gate_data.find("passed"))

    def test_not_found_is_reported(self):
        gates.kubesec_gate(self.report, root=self.root)
        printed = " ".join(call[0][0] for call in self.mock_print.call_args_list)
        self.assertIn(".spec .serviceAccountName not found!", printed)

    def test_passed(self):
        gate_data = gates.kubesec_gate(self.report, root=self.root, include_passed=True)
        passed = gate_data.find("passed").result[0].messages
        self.assertEqual(passed[0].message, "Privileged")
        self.assertFalse(passed[0].location.found)

    def test_file_override(self):
        report = [dict(self.report[0], fileName="API")]
        gate_data = gates.kubesec_gate(report, file_path=self.manifest)
        self.assertEqual(gate_data.find("critical").result[0].file_path, self.manifest)

    def test_files_limits_manifests(self):
        gate_data = gates.kubesec_gate(self.report, root=self.root, files=[])
        self.assertEqual(gate_data.total_messages, 0)
        gate_data = gates.kubesec_gate(self.report, root=self.root, files=[self.manifest])
        self.assertEqual(len(gate_data.find("critical").result), 1)

    def test_missing_manifest_is_skipped(self):
        report = [dict(self.report[0], fileName="missing.yaml")]
        gate_data = gates.kubesec_gate(report, root=self.root)
        self.assertEqual(gate_data.total_messages, 0)

    def test_invalid_report(self):
        with self.assertRaises(ValueError):
            gates.kubesec_gate({"scoring": {}})
        with self.assertRaises(ValueError):
            gates.kubesec_gate(["pod.yaml"])
        with self.assertRaises(ValueError):
            gates.kubesec_gate([{"fileName": "pod.yaml", "scoring": {"critical": ["x"]}}], root=self.root)


class TestWhispersGate(_TempDirTestCase):
    def setUp(self):
        super().setUp()
        self.secrets_file = self.write("secrets.yaml", _SECRETS_YAML)
        self.clean_file = self.write("clean.yaml", "a: b\n")

    def test_duplicate_secrets_resolve_in_order(self):
        report = [
            {"name": "secrets.yaml", "secrets": [
                "AKIAEXAMPLE123 aws_access_key_id",
                "hunter2 password",
                "AKIAEXAMPLE123 aws_access_key_id",
            ]},
            {"name": "clean.yaml", "secrets": []},
        ]
        gate_data = gates.whispers_gate(report, root=self.root)
        files = gate_data.find("secrets").result
        self.assertEqual(len(files), 1)
        self.assertEqual(files[0].file_path, self.secrets_file)
        locations = [(m.location.line_number, m.location.column_number) for m in files[0].messages]
        self.assertEqual(locations, [(1, 21), (2, 12), (4, 21)])
        self.assertEqual(files[0].messages[1].message, "hunter2 password")

    def test_secret_not_in_file(self):
        report = [{"name": self.secrets_file, "secrets": ["s3cr3t token"]}]
        gate_data = gates.whispers_gate(report)
        message = gate_data.find("secrets").result[0].messages[0]
        self.assertFalse(message.location.found)
        self.assertIn("s3cr3t token not found!", self.mock_print.call_args[0][0])

    def test_secrets_must_be_a_list(self):
        with self.assertRaises(ValueError):
            gates.whispers_gate([{"name": "secrets.yaml", "secrets": "hunter2 password"}], root=self.root)
        self.assertIn("whispers secrets must be a list", self.mock_print.call_args[0][0])

    def test_secret_in_comment(self):
        self.write("deploy.sh", "#!/bin/sh\n# export TOKEN=AKIAEXAMPLE123\necho deploy\n")
        gate_data = gates.whispers_gate([{"name": "deploy.sh", "secrets": ["AKIAEXAMPLE123 TOKEN"]}], root=self.root)
        location = gate_data.find("secrets").result[0].messages[0].location
        self.assertEqual((location.line_number, location.column_number), (1, 15))


class TestTemplateAnalyzerGate(_TempDirTestCase):
    def setUp(self):
        super().setUp()
        self.sarif = {
            "version": "2.1.0",
            "runs": [{
                "tool": {"driver": {"name": "ARM BPA", "rules": [
                    {"id": "TA-000004", "fullDescription": {"text": "API app should only be accessible over HTTPS"}},
                    {"id": "TA-000022", "fullDescription": {"text": "Only secure connections to your Azure Cache for Redis should be enabled"}},
                ]}},
                "results": [
                    {"ruleId": "TA-000004", "ruleIndex": 0, "level": "error",
                     "message": {"text": "fallback"},
                     "locations": [{"physicalLocation": {
                         "artifactLocation": {"uri": "templates/app.json"},
                         "region": {"startLine": 12, "startColumn": 5}}}]},
                    {"ruleId": "TA-000022", "ruleIndex": 1, "level": "warning",
                     "locations": [{"physicalLocation": {
                         "artifactLocation": {"uri": "templates/cache.json"},
                         "region": {"startLine": 3}}}]},
                    {"ruleId": "TA-999", "message": {"text": "No rule for this one"},
                     "locations": [{"physicalLocation": {
                         "artifactLocation": {"uri": "templates/app.json"},
                         "region": {"startLine": 40}}}]},
                ],
            }],
        }

    def test_groups_by_level(self):
        gate_data = gates.template_analyzer_gate(self.sarif, root=self.root)
        error = gate_data.find("Error").result[0]
        self.assertEqual(error.file_path, os.path.join(self.root, "templates/app.json"))
        self.assertEqual(error.messages[0].message, "API app should only be accessible over HTTPS")
        self.assertEqual((error.messages[0].location.line_number, error.messages[0].location.column_number), (11, 4))

        warning = gate_data.find("Warning").result[0].messages[0]
        self.assertEqual((warning.location.line_number, warning.location.column_number), (2, 0))

        self.assertEqual(gate_data.find("Note").result, [])
        unleveled = gate_data.find("Un Level").result[0].messages[0]
        self.assertEqual(unleveled.message, "No rule for this one")
        self.assertEqual(gate_data.total_messages, 3)

    def test_empty_runs(self):
        gate_data = gates.template_analyzer_gate({"runs": []})
        self.assertEqual(gate_data.total_messages, 0)

    def test_invalid_log(self):
        with self.assertRaises(ValueError):
            gates.template_analyzer_gate([])
        with self.assertRaises(ValueError):
            gates.template_analyzer_gate({"version": "2.1.0"})

    def test_malformed_results(self):
        for run in (
            {"results": ["oops"]},
            {"results": {"level": "error"}},
            {"results": [{"locations": ["oops"]}]},
            {"results": [{"locations": [{"physicalLocation": {"region": 12}}]}]},
            {"tool": "ARM BPA", "results": []},
        ):
            with self.assertRaises(ValueError):
                gates.template_analyzer_gate({"runs": [run]})
        self.mock_print.assert_called()


if __name__ == "__main__":
    unittest.main()
