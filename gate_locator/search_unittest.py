import os
import tempfile
import unittest

from gate_locator import search
from gate_locator.document import Document
from gate_locator.selector import PathSegment, Selector


def _segments(*names):
    return [PathSegment(name) for name in names]


_POD = [
    "spec:",
    "  containers:",
    "    - securityContext:",
    "        runAsUser: 20000",
]

_DEPLOYMENT = """\
apiVersion: apps/v1
kind: Deployment
metadata:
  name: web
  labels:
    app: web
spec:
  replicas: 2
  template:
    metadata:
      labels:
        app: web
    spec:
      serviceAccountName: web
      containers:
      - name: web
        image: nginx:1.25
        securityContext:
          runAsUser: 1000
          readOnlyRootFilesystem: false
      - name: sidecar
        image: envoy:1.29
        securityContext:
          runAsUser: 2000
          capabilities:
            drop:
            - ALL
      volumes:
      - name: data
        emptyDir: {}
"""


class TestHierarchySearchScenarios(unittest.TestCase):
    def setUp(self):
        self.pod = Document.from_lines(_POD)

    def test_nested_path(self):
        result = search.hierarchy_search_in_file(
            self.pod, _segments("spec", "containers", "securityContext", "runAsUser"))
        self.assertTrue(result.found)
        self.assertEqual(result.requested_line, 3)
        self.assertEqual(result.depth, 3)

    def test_missing_child(self):
        result = search.hierarchy_search_in_file(self.pod, _segments("spec", "volumes"))
        self.assertFalse(result.found)
        self.assertEqual(result.requested_line, search.NOT_FOUND)
        self.assertIs(result.remaining_document, self.pod)

    def test_empty_segments(self):
        result = search.hierarchy_search_in_file(self.pod, [])
        self.assertEqual(result.requested_line, search.NOT_FOUND)

    def test_empty_document(self):
        result = search.hierarchy_search_in_file(Document(), _segments("spec"))
        self.assertEqual(result.requested_line, search.NOT_FOUND)

    def test_first_segment_never_matches(self):
        result = search.hierarchy_search_in_file(self.pod, _segments("status", "runAsUser"))
        self.assertFalse(result.found)

    def test_original_document_untouched(self):
        search.hierarchy_search_in_file(self.pod, _segments("spec", "containers"))
        self.assertEqual(self.pod.start, 0)
        self.assertEqual(list(self.pod.lines), _POD)


class TestHierarchySearchContainment(unittest.TestCase):
    def setUp(self):
        self.doc = Document.from_text(_DEPLOYMENT)

    def test_deeper_segment_must_be_nested(self):
        # "replicas" sits under spec, but not under spec.template.spec.containers
        result = search.hierarchy_search_in_file(self.doc, _segments("containers", "replicas"))
        self.assertFalse(result.found)

    def test_later_sibling_block_does_not_satisfy(self):
        # "emptyDir" comes after containers but lives under volumes
        result = search.hierarchy_search_in_file(self.doc, _segments("containers", "emptyDir"))
        self.assertFalse(result.found)

    def test_kubesec_style_selector(self):
        segments = Selector.structural("containers[] .securityContext .runAsUser -gt 10000").segments
        result = search.hierarchy_search_in_file(self.doc, segments)
        self.assertEqual(result.requested_line, 18)
        self.assertEqual(self.doc.lines[18].strip(), "runAsUser: 1000")

    def test_first_match_in_document_order(self):
        result = search.hierarchy_search_in_file(self.doc, _segments("spec", "serviceAccountName"))
        self.assertEqual(result.requested_line, 13)

    def test_backtracks_to_later_parent(self):
        # The first "securityContext" has no "capabilities"; the second one does.
        result = search.hierarchy_search_in_file(
            self.doc, _segments("containers", "securityContext", "capabilities", "drop"))
        self.assertEqual(result.requested_line, 25)

    def test_metadata_matches_top_level_only(self):
        segments = Selector.structural(".metadata .labels .app").segments
        result = search.hierarchy_search_in_file(self.doc, segments)
        self.assertEqual(result.requested_line, 2)
        self.assertEqual(result.depth, 0)

    def test_metadata_after_cursor_skips_nested(self):
        segments = Selector.structural(".metadata .name").segments
        first = search.hierarchy_search_in_file(self.doc, segments)
        second = search.hierarchy_search_in_file(first.remaining_document, segments)
        self.assertEqual(first.requested_line, 2)
        self.assertFalse(second.found)

    def test_compact_sequence_is_nested(self):
        doc = Document.from_lines(["containers:", "- name: web", "  image: nginx", "volumes:", "- name: data"])
        result = search.hierarchy_search_in_file(doc, _segments("containers", "image"))
        self.assertEqual(result.requested_line, 2)
        result = search.hierarchy_search_in_file(doc, _segments("volumes", "name"))
        self.assertEqual(result.requested_line, 4)

    def test_depth_counts_blocks_not_spaces(self):
        result = search.hierarchy_search_in_file(
            self.doc, _segments("template", "spec", "containers", "image"))
        self.assertEqual(result.requested_line, 16)
        # spec > template > spec > containers; "image" sits beside "- name" in the item
        self.assertEqual(result.depth, 4)

    def test_blank_and_comment_lines_do_not_close_blocks(self):
        doc = Document.from_lines(["spec:", "", "  # the pod's account", "  serviceAccountName: web"])
        result = search.hierarchy_search_in_file(doc, _segments("spec", "serviceAccountName"))
        self.assertEqual(result.requested_line, 3)
        self.assertEqual(result.depth, 1)

    def test_json_document(self):
        doc = Document.from_lines([
            "{",
            '  "resources": [',
            "    {",
            '      "type": "Microsoft.Storage/storageAccounts",',
            '      "properties": {',
            '        "supportsHttpsTrafficOnly": false',
            "      }",
            "    }",
            "  ]",
            "}",
        ])
        result = search.hierarchy_search_in_file(doc, _segments("resources", "properties", "supportsHttpsTrafficOnly"))
        self.assertEqual(result.requested_line, 5)

    def test_flat_document_is_depth_zero(self):
        doc = Document.from_lines(["user=admin", "password=hunter2", "host=db"])
        result = search.hierarchy_search_in_file(doc, [PathSegment("hunter2", literal=True)])
        self.assertEqual(result.requested_line, 1)
        self.assertEqual(result.depth, 0)

    def test_key_match_is_not_substring(self):
        doc = Document.from_lines(["runAsUserGroup: 1", "note: runAsUser is unset", "runAsUser: 5"])
        result = search.hierarchy_search_in_file(doc, _segments("runAsUser"))
        self.assertEqual(result.requested_line, 2)

    def test_max_lines(self):
        result = search.hierarchy_search_in_file(self.doc, _segments("volumes"), max_lines=10)
        self.assertFalse(result.found)
        result = search.hierarchy_search_in_file(self.doc, _segments("volumes"))
        self.assertEqual(result.requested_line, 27)

    def test_max_lines_counts_from_remaining_start(self):
        doc = Document.from_lines(["token: abc", "a: 1", "b: 2", "token: abc", "c: 3"])
        segments = [PathSegment("abc", literal=True)]
        first = search.hierarchy_search_in_file(doc, segments, max_lines=2)
        second = search.hierarchy_search_in_file(first.remaining_document, segments, max_lines=3)
        self.assertEqual(first.requested_line, 0)
        self.assertEqual(second.requested_line, 3)

    def test_literal_on_comment_line(self):
        doc = Document.from_lines(["#!/bin/sh", "# token AKIAEXAMPLE123", "echo hi"])
        result = search.hierarchy_search_in_file(doc, Selector.literal("AKIAEXAMPLE123 aws").segments)
        self.assertEqual(result.requested_line, 1)

    def test_structural_key_on_comment_line_is_skipped(self):
        doc = Document.from_lines(["# runAsUser: 0", "runAsUser: 1000"])
        result = search.hierarchy_search_in_file(doc, _segments("runAsUser"))
        self.assertEqual(result.requested_line, 1)


class TestDuplicateResolution(unittest.TestCase):
    def test_successive_literal_duplicates(self):
        doc = Document.from_lines([
            "aws:",
            "  aws_access_key_id: AKIAEXAMPLE123",
            "backup:",
            "  aws_access_key_id: AKIAEXAMPLE123",
        ])
        segments = Selector.literal("AKIAEXAMPLE123 aws_access_key_id").segments
        first = search.hierarchy_search_in_file(doc, segments)
        second = search.hierarchy_search_in_file(first.remaining_document, segments)
        third = search.hierarchy_search_in_file(second.remaining_document, segments)
        self.assertEqual(first.requested_line, 1)
        self.assertEqual(second.requested_line, 3)
        self.assertFalse(third.found)
        self.assertEqual(first.depth, 1)

    def test_structural_duplicates_share_ancestors(self):
        doc = Document.from_text(_DEPLOYMENT)
        segments = _segments("containers", "securityContext", "runAsUser")
        first = search.hierarchy_search_in_file(doc, segments)
        second = search.hierarchy_search_in_file(first.remaining_document, segments)
        self.assertEqual(first.requested_line, 18)
        self.assertEqual(second.requested_line, 23)

    def test_not_found_keeps_remaining(self):
        doc = Document.from_lines(["a: 1", "b: 2"])
        first = search.hierarchy_search_in_file(doc, _segments("a"))
        missing = search.hierarchy_search_in_file(first.remaining_document, _segments("a"))
        self.assertIs(missing.remaining_document, first.remaining_document)


class TestComputeDepths(unittest.TestCase):
    def test_pod(self):
        lines = Document.from_lines(_POD).parsed_lines()
        self.assertEqual(search.compute_depths(lines), [0, 1, 2, 3])

    def test_mixed_indentation(self):
        lines = Document.from_lines(["a:", "\tb:", "\t  c: 1", "d: 2"]).parsed_lines()
        self.assertEqual(search.compute_depths(lines), [0, 1, 2, 0])


class TestHighlightColumn(unittest.TestCase):
    def test_key_column(self):
        self.assertEqual(search.highlight_column("        runAsUser: 20000", 3, PathSegment("runAsUser")), 8)

    def test_sequence_entry(self):
        self.assertEqual(search.highlight_column("    - securityContext:", 2, PathSegment("securityContext")), 6)

    def test_literal(self):
        segment = PathSegment("AKIAEXAMPLE123", literal=True)
        self.assertEqual(search.highlight_column("  key: AKIAEXAMPLE123", 1, segment), 7)

    def test_fallback_to_depth(self):
        self.assertEqual(search.highlight_column("    other: 1", 3, PathSegment("runAsUser")), 6)
        self.assertEqual(search.highlight_column("    other: 1", 3, PathSegment("runAsUser"), indent_width=4), 12)


class TestSearchTrace(unittest.TestCase):
    def setUp(self):
        self.old_cwd = os.getcwd()
        self.temp_dir = tempfile.TemporaryDirectory()
        os.chdir(self.temp_dir.name)

    def tearDown(self):
        os.chdir(self.old_cwd)
        self.temp_dir.cleanup()

    def test_debug_writes_log(self):
        doc = Document.from_lines(_POD)
        result = search.hierarchy_search_in_file(doc, _segments("spec", "containers"), debug=True)
        self.assertEqual(result.requested_line, 1)
        with open(search.SEARCH_LOG_FILE, encoding="utf-8") as f:
            log = f.read()
        self.assertIn("matched line 1", log)


if __name__ == "__main__":
    unittest.main()
