import unittest

from gate_locator import gate_data


class TestLocation(unittest.TestCase):
    def test_found(self):
        self.assertTrue(gate_data.Location(0).found)
        self.assertFalse(gate_data.Location(-1).found)
        self.assertEqual(gate_data.Location(3).column_number, 0)


class TestResultsList(unittest.TestCase):
    def setUp(self):
        self.results = gate_data.ResultsList("secrets")

    def test_file_messages_added_once(self):
        first = self.results.file_messages("/repo/config/app.yaml")
        second = self.results.file_messages("/repo/config/app.yaml")
        self.assertIs(first, second)
        self.assertEqual(first.file_name, "app.yaml")
        self.assertEqual(len(self.results.result), 1)

    def test_total_messages(self):
        self.results.file_messages("a.yaml").messages.append(
            gate_data.GateResult(gate_data.Location(1), "token key"))
        self.results.file_messages("b.yaml").messages.extend([
            gate_data.GateResult(gate_data.Location(-1), "other key"),
            gate_data.GateResult(gate_data.Location(4), "third key"),
        ])
        self.assertEqual(self.results.total_messages, 3)
        self.assertEqual(len(self.results.file_messages("b.yaml").unresolved), 1)


class TestGateData(unittest.TestCase):
    def setUp(self):
        self.data = gate_data.GateData.with_labels(["critical", "advise"])
        self.data.find("critical").file_messages("pod.yaml").messages.append(
            gate_data.GateResult(gate_data.Location(5, 2), "HostNetwork"))
        self.data.find("advise").file_messages("pod.yaml")

    def test_find(self):
        self.assertEqual(self.data.find("advise").label, "advise")
        self.assertIsNone(self.data.find("passed"))

    def test_drop_empty_files(self):
        self.data.drop_empty_files()
        self.assertEqual(self.data.find("advise").result, [])
        self.assertEqual(len(self.data.find("critical").result), 1)
        self.assertEqual(self.data.total_messages, 1)

    def test_as_dict(self):
        as_dict = self.data.drop_empty_files().as_dict()
        self.assertEqual(as_dict["data"][0]["result"][0]["messages"][0], {
            "location": {"line_number": 5, "column_number": 2},
            "message": "HostNetwork",
        })


if __name__ == "__main__":
    unittest.main()
