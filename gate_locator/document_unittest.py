import os
import tempfile
import unittest
from unittest.mock import patch

from gate_locator import document


class TestParseLine(unittest.TestCase):
    def test_plain_key(self):
        line = document.parse_line(3, "    runAsUser: 20000")
        self.assertEqual(line.line_number, 3)
        self.assertEqual(line.indent, 4)
        self.assertEqual(line.key_column, 4)
        self.assertEqual(line.key, "runAsUser")
        self.assertFalse(line.is_list_item)

    def test_sequence_entry_moves_key_column(self):
        line = document.parse_line(0, "    - securityContext:")
        self.assertEqual(line.indent, 4)
        self.assertEqual(line.key_column, 6)
        self.assertEqual(line.key, "securityContext")
        self.assertTrue(line.is_list_item)

    def test_nested_sequence_markers(self):
        line = document.parse_line(0, "- - name: web")
        self.assertEqual(line.key_column, 4)
        self.assertEqual(line.key, "name")

    def test_json_quoted_key(self):
        line = document.parse_line(0, '    "apiVersion": "2019-04-01",')
        self.assertEqual(line.key, "apiVersion")

    def test_value_with_colon_keeps_first_key(self):
        line = document.parse_line(0, "  image: registry.local:5000/app:1.0")
        self.assertEqual(line.key, "image")

    def test_bare_scalar(self):
        line = document.parse_line(0, "  - ALL")
        self.assertEqual(line.key, "ALL")

    def test_tabs_are_expanded(self):
        line = document.parse_line(0, "\tkey: value")
        self.assertEqual(line.indent, document.TAB_SIZE)

    def test_skippable_lines(self):
        self.assertTrue(document.parse_line(0, "").is_skippable)
        self.assertTrue(document.parse_line(0, "   ").is_skippable)
        self.assertTrue(document.parse_line(0, "  # comment: here").is_skippable)
        self.assertFalse(document.parse_line(0, "key:").is_skippable)


class TestSplitLines(unittest.TestCase):
    def test_drops_single_trailing_empty_line(self):
        self.assertEqual(document.split_lines("a\nb\n"), ["a", "b"])

    def test_keeps_inner_blank_lines(self):
        self.assertEqual(document.split_lines("a\n\nb\n\n"), ["a", "", "b", ""])

    def test_normalizes_windows_newlines(self):
        self.assertEqual(document.split_lines("a\r\nb\r\n"), ["a", "b"])

    def test_empty_text(self):
        self.assertEqual(document.split_lines(""), [])


class TestDocument(unittest.TestCase):
    def setUp(self):
        self.doc = document.Document.from_text("spec:\n  containers:\n  - name: web\n")

    def test_from_text(self):
        self.assertEqual(self.doc.lines, ("spec:", "  containers:", "  - name: web"))
        self.assertEqual(self.doc.start, 0)
        self.assertEqual(len(self.doc), 3)

    def test_consume_through_returns_new_document(self):
        remaining = self.doc.consume_through(1)
        self.assertEqual(remaining.start, 2)
        self.assertEqual(remaining.remaining_lines, ("  - name: web",))
        self.assertEqual(remaining.lines, self.doc.lines)
        self.assertEqual(self.doc.start, 0)

    def test_consume_never_moves_backwards(self):
        remaining = self.doc.consume_through(1).consume_through(0)
        self.assertEqual(remaining.start, 2)

    def test_consume_last_line_exhausts(self):
        remaining = self.doc.consume_through(2)
        self.assertTrue(remaining.is_exhausted)
        self.assertEqual(remaining.remaining_lines, ())

    def test_reset(self):
        self.assertEqual(self.doc.consume_through(2).reset().start, 0)

    def test_parsed_lines_keep_numbers(self):
        parsed = self.doc.parsed_lines()
        self.assertEqual([line.line_number for line in parsed], [0, 1, 2])
        self.assertEqual(parsed[2].key, "name")


class TestReadFileByLines(unittest.TestCase):
    def setUp(self):
        self.temp_file = tempfile.NamedTemporaryFile(delete=False, mode="w", suffix=".yaml", newline="")
        self.temp_file.write("apiVersion: v1\r\nkind: Pod\r\n")
        self.temp_file.close()
        self.temp_filepath = self.temp_file.name

    def tearDown(self):
        if os.path.exists(self.temp_filepath):
            os.unlink(self.temp_filepath)

    def test_reads_lines(self):
        doc = document.read_file_by_lines(self.temp_filepath)
        self.assertEqual(doc.lines, ("apiVersion: v1", "kind: Pod"))
        self.assertEqual(doc.path, self.temp_filepath)

    @patch.object(document.console_instance, "print")
    def test_missing_file_returns_none(self, mock_print):
        self.assertIsNone(document.read_file_by_lines(self.temp_filepath + ".missing"))
        mock_print.assert_called_once()
        self.assertIn("There is no such file!", mock_print.call_args[0][0])


if __name__ == "__main__":
    unittest.main()
