import json
import os
import tempfile
import unittest
from unittest.mock import patch

from gate_locator import cli
from gate_locator import gates
from gate_locator.gate_data import FileMessages, GateData, GateResult, Location, ResultsList


@patch.dict(os.environ, {}, clear=True)
class TestCli(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = self.temp_dir.name
        self.manifest = self.write("pod.yaml", "spec:\n  containers:\n    - securityContext:\n        runAsUser: 20000\n")
        self.cli_print = patch.object(cli.console, "print").start()
        self.cli_print_json = patch.object(cli.console, "print_json").start()
        patch.object(gates.console_instance, "print").start()

    def tearDown(self):
        patch.stopall()
        self.temp_dir.cleanup()

    def write(self, name, content):
        path = os.path.join(self.root, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path

    def test_locate_found(self):
        exit_code = cli.main(["locate", self.manifest, ".spec .containers[] .securityContext .runAsUser -gt 10000"])
        self.assertEqual(exit_code, 0)
        panel = self.cli_print.call_args[0][0]
        self.assertIn("Line: 4", panel.renderable)
        self.assertIn("Depth: 3", panel.renderable)
        self.assertIn("Column: 9", panel.renderable)

    def test_locate_not_found(self):
        self.assertEqual(cli.main(["locate", self.manifest, ".spec .volumes"]), 1)
        self.assertIn("not found!", self.cli_print.call_args[0][0])

    def test_locate_unlocatable(self):
        self.assertEqual(cli.main(["locate", self.manifest, "| length"]), 1)
        self.assertIn("cannot be located", self.cli_print.call_args[0][0])

    def test_locate_literal(self):
        self.assertEqual(cli.main(["locate", "--literal", self.manifest, "20000 runAsUser"]), 0)

    def test_whispers_json_output(self):
        report = self.write("whispers.json", "[{'name': 'pod.yaml', 'secrets': ['20000 runAsUser']}]")
        self.assertEqual(cli.main(["whispers", report, "--root", self.root, "--json"]), 0)
        printed = json.loads(self.cli_print_json.call_args[0][0])
        location = printed["data"][0]["result"][0]["messages"][0]["location"]
        self.assertEqual(location, {"line_number": 3, "column_number": 19})

    def test_whispers_scan_filters_by_extension(self):
        self.write("deploy.env", "RUN_AS=20000\n")
        report = self.write("whispers.json", json.dumps([
            {"name": "pod.yaml", "secrets": ["20000 runAsUser"]},
            {"name": "deploy.env", "secrets": ["20000 RUN_AS"]},
        ]))
        self.assertEqual(cli.main(["whispers", report, "-r", self.root, "--scan", self.root, "--json"]), 0)
        printed = json.loads(self.cli_print_json.call_args[0][0])
        self.assertEqual([f["file_name"] for f in printed["data"][0]["result"]], ["pod.yaml"])

    def test_kubesec_saved_file_only(self):
        other = self.write("other.yaml", "spec:\n  hostNetwork: true\n")
        item = {"id": "HostNetwork", "selector": ".spec .hostNetwork == true", "reason": "Shares the host network"}
        report = self.write("kubesec.json", json.dumps([
            {"fileName": "pod.yaml", "scoring": {"critical": [item]}},
            {"fileName": "other.yaml", "scoring": {"critical": [item]}},
        ]))
        self.assertEqual(cli.main(["kubesec", report, "-r", self.root, "--saved", other, "--json"]), 0)
        printed = json.loads(self.cli_print_json.call_args[0][0])
        files = printed["data"][0]["result"]
        self.assertEqual([f["file_name"] for f in files], ["other.yaml"])
        self.assertEqual(files[0]["messages"][0]["location"]["line_number"], 1)

    def test_kubesec_table(self):
        report = self.write("kubesec.json", json.dumps([{
            "fileName": "pod.yaml",
            "scoring": {"advise": [{"id": "RunAsUser", "selector": "containers[] .securityContext .runAsUser -gt 10000",
                                    "reason": "Run as a high-UID user"}]},
        }]))
        self.assertEqual(cli.main(["kubesec", report, "-r", self.root]), 0)
        self.assertEqual(self.cli_print.call_args[0][0].title, "kubesec - advise")

    def test_template_analyzer_no_results(self):
        report = self.write("result.sarif", json.dumps({"runs": [{"results": []}]}))
        self.assertEqual(cli.main(["template-analyzer", report]), 0)
        self.assertIn("no results have been found", self.cli_print.call_args[0][0])

    def test_malformed_report(self):
        report = self.write("kubesec.json", json.dumps({"not": "a list"}))
        self.assertEqual(cli.main(["kubesec", report]), 1)
        self.assertIn("Error:", self.cli_print.call_args[0][0])

    def test_missing_report(self):
        self.assertEqual(cli.main(["whispers", os.path.join(self.root, "missing.json")]), 1)


class TestPrintGateData(unittest.TestCase):
    @patch.object(cli.console, "print")
    def test_reports_unresolved(self, mock_print):
        gate_data = GateData([ResultsList("secrets", [FileMessages("a.yaml", "a.yaml", [
            GateResult(Location(-1), "[red] key"),
            GateResult(Location(2, 4), "token key"),
        ])])])
        cli.print_gate_data("whispers", gate_data)
        self.assertEqual(mock_print.call_count, 2)
        self.assertIn("1 result(s) could not be located", mock_print.call_args[0][0])


if __name__ == "__main__":
    unittest.main()
