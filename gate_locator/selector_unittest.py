import unittest

from gate_locator import selector
from gate_locator.selector import PathSegment, Selector, SelectorKind


class TestTruncateAtOperators(unittest.TestCase):
    def test_pipe(self):
        self.assertEqual(selector.truncate_at_operators('a .b | index("ALL")'), "a .b ")

    def test_equality(self):
        self.assertEqual(selector.truncate_at_operators("a .b == true"), "a .b ")

    def test_dash(self):
        self.assertEqual(selector.truncate_at_operators("a .b -gt 10000"), "a .b ")

    def test_dash_inside_key_is_cut_too(self):
        self.assertEqual(selector.truncate_at_operators("spec .host-network"), "spec .host")

    def test_no_operator(self):
        self.assertEqual(selector.truncate_at_operators("spec .hostPID"), "spec .hostPID")


class TestNormalizeStructural(unittest.TestCase):
    def test_comparison_clause_is_dropped(self):
        segments = selector.normalize_structural(".spec .containers[] .securityContext .runAsUser -gt 10000")
        self.assertEqual(segments, [
            PathSegment("spec"),
            PathSegment("containers", repeatable=True),
            PathSegment("securityContext"),
            PathSegment("runAsUser"),
        ])

    def test_leading_array_token(self):
        segments = selector.normalize_structural('containers[] .securityContext .capabilities .drop | index("ALL")')
        self.assertEqual([s.name for s in segments], ["containers", "securityContext", "capabilities", "drop"])
        self.assertTrue(segments[0].repeatable)
        self.assertFalse(segments[1].repeatable)

    def test_equality_clause_is_dropped(self):
        segments = selector.normalize_structural("containers[] .securityContext .readOnlyRootFilesystem == true")
        self.assertEqual([s.name for s in segments], ["containers", "securityContext", "readOnlyRootFilesystem"])

    def test_simple_path(self):
        segments = selector.normalize_structural(".spec .serviceAccountName")
        self.assertEqual(segments, [PathSegment("spec"), PathSegment("serviceAccountName")])

    def test_metadata_collapses(self):
        segments = selector.normalize_structural(".metadata .labels .app")
        self.assertEqual(segments, [PathSegment("metadata", top_level=True)])

    def test_metadata_annotation_collapses(self):
        segments = selector.normalize_structural(
            '.metadata .annotations ."container.apparmor.security.beta.kubernetes.io/nginx"')
        self.assertEqual([s.name for s in segments], ["metadata"])

    def test_inner_array_tokens_are_stripped(self):
        segments = selector.normalize_structural(".spec .volumes[] .hostPath .path")
        self.assertEqual(segments[1], PathSegment("volumes", repeatable=True))

    def test_empty_and_whitespace(self):
        self.assertEqual(selector.normalize_structural(""), [])
        self.assertEqual(selector.normalize_structural("   "), [])
        self.assertEqual(selector.normalize_structural(None), [])

    def test_only_operators(self):
        self.assertEqual(selector.normalize_structural("| length"), [])
        self.assertEqual(selector.normalize_structural("."), [])

    def test_never_produces_empty_names(self):
        segments = selector.normalize_structural(".spec..hostNetwork.")
        self.assertEqual([s.name for s in segments], ["spec", "hostNetwork"])


class TestNormalizeLiteral(unittest.TestCase):
    def test_first_token_only(self):
        segments = selector.normalize_literal("AKIAEXAMPLE123 aws_access_key_id")
        self.assertEqual(segments, [PathSegment("AKIAEXAMPLE123", literal=True)])

    def test_leading_whitespace(self):
        self.assertEqual(selector.normalize_literal("  token  key")[0].name, "token")

    def test_empty(self):
        self.assertEqual(selector.normalize_literal(""), [])
        self.assertEqual(selector.normalize_literal(" \t "), [])


class TestSelector(unittest.TestCase):
    def test_structural(self):
        sel = Selector.structural(".spec .hostNetwork == true")
        self.assertEqual(sel.kind, SelectorKind.STRUCTURAL)
        self.assertEqual([s.name for s in sel.segments], ["spec", "hostNetwork"])
        self.assertTrue(sel.is_locatable)

    def test_literal(self):
        sel = Selector.literal("hunter2 password")
        self.assertEqual(sel.kind, SelectorKind.LITERAL)
        self.assertEqual(sel.segments, (PathSegment("hunter2", literal=True),))

    def test_same_text_different_dialect(self):
        self.assertNotEqual(Selector.structural("a.b").segments, Selector.literal("a.b").segments)

    def test_none_is_not_locatable(self):
        self.assertFalse(Selector.structural(None).is_locatable)
        self.assertEqual(str(Selector.structural(None)), "")

    def test_non_string_is_not_locatable(self):
        self.assertEqual(selector.normalize_structural(42), [])
        self.assertEqual(selector.normalize_literal(["hunter2"]), [])
        self.assertFalse(Selector.structural(42).is_locatable)
        self.assertEqual(str(Selector.structural(42)), "42")

    def test_segment_str(self):
        self.assertEqual(str(PathSegment("containers", repeatable=True)), "containers[]")
        self.assertEqual(str(PathSegment("spec")), "spec")


if __name__ == "__main__":
    unittest.main()
