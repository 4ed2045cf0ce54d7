#!/usr/bin/env python3

import os
import sys
import unittest

ROOT_DIR = os.path.dirname(os.path.abspath(__file__))
PACKAGE_DIR = os.path.join(ROOT_DIR, "gate_locator")
TEST_PATTERN = "*_unittest.py"


def _extract_test_cases(test):
    for t in test:
        if isinstance(t, unittest.TestSuite):
            yield from _extract_test_cases(t)
        else:
            yield t


def run_tests(test_name=None, verbosity=2):
    loader = unittest.TestLoader()
    discovered = loader.discover(PACKAGE_DIR, pattern=TEST_PATTERN, top_level_dir=ROOT_DIR)

    if test_name:
        # Keep only tests whose id mentions the filter, e.g. "search" or "TestKubesecGate"
        suite = unittest.TestSuite(
            t for t in _extract_test_cases(discovered) if test_name.lower() in t.id().lower()
        )
    else:
        suite = discovered

    result = unittest.TextTestRunner(verbosity=verbosity).run(suite)
    return 0 if result.wasSuccessful() else 1


if __name__ == "__main__":
    test_name = sys.argv[1] if len(sys.argv) > 1 else None
    sys.exit(run_tests(test_name))
