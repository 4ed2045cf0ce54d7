import os
import tempfile
import unittest
from unittest.mock import patch

from gate_locator import config


class TestLocatorConfig(unittest.TestCase):
    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        settings = config.LocatorConfig.from_env()
        self.assertEqual(settings, config.LocatorConfig())
        self.assertEqual(settings.indent_width, 2)
        self.assertEqual(settings.kubesec_extensions, (".yaml", ".yml"))
        self.assertFalse(settings.debug_search)
        self.assertEqual(settings.max_lines, 0)

    @patch.dict(os.environ, {
        "GATE_LOCATOR_INDENT_WIDTH": "4",
        "GATE_LOCATOR_KUBESEC_EXTENSIONS": "yaml, .yml,",
        "GATE_LOCATOR_WHISPERS_EXTENSIONS": ".env",
        "GATE_LOCATOR_DEBUG_SEARCH": "True",
        "GATE_LOCATOR_MAX_LINES": "5000",
    }, clear=True)
    def test_from_env(self):
        settings = config.LocatorConfig.from_env()
        self.assertEqual(settings.indent_width, 4)
        self.assertEqual(settings.kubesec_extensions, (".yaml", ".yml"))
        self.assertEqual(settings.whispers_extensions, (".env",))
        self.assertTrue(settings.debug_search)
        self.assertEqual(settings.max_lines, 5000)

    @patch.dict(os.environ, {"GATE_LOCATOR_INDENT_WIDTH": "wide", "GATE_LOCATOR_MAX_LINES": "-3"}, clear=True)
    @patch.object(config.console_instance, "print")
    def test_invalid_values_fall_back(self, mock_print):
        settings = config.LocatorConfig.from_env()
        self.assertEqual(settings.indent_width, 2)
        self.assertEqual(settings.max_lines, 0)
        mock_print.assert_called_once()


class TestGetFiles(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        root = self.temp_dir.name
        os.makedirs(os.path.join(root, "charts", "web"))
        for name in ["pod.yaml", "notes.txt", os.path.join("charts", "web", "deploy.yaml"),
                     os.path.join("charts", "values.json")]:
            with open(os.path.join(root, name), "w") as f:
                f.write("key: value\n")
        self.root = root

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_walks_roots(self):
        settings = config.GetFileSettings([".yaml"], [self.root])
        files = config.get_files(settings)
        self.assertEqual(sorted(os.path.relpath(f, self.root) for f in files),
                         sorted(["pod.yaml", os.path.join("charts", "web", "deploy.yaml")]))

    def test_multiple_extensions(self):
        settings = config.GetFileSettings([".yaml", ".json"], [self.root])
        self.assertEqual(len(config.get_files(settings)), 3)

    def test_explicit_files_replace_walk(self):
        settings = config.GetFileSettings([".yaml"], [self.root])
        saved = [os.path.join(self.root, "pod.yaml"), os.path.join(self.root, "notes.txt")]
        self.assertEqual(config.get_files(settings, saved), [saved[0]])

    def test_file_as_root(self):
        pod = os.path.join(self.root, "pod.yaml")
        self.assertEqual(config.get_files(config.GetFileSettings([".yaml"], [pod])), [pod])

    def test_no_roots(self):
        self.assertEqual(config.get_files(config.GetFileSettings([".yaml"])), [])


if __name__ == "__main__":
    unittest.main()
