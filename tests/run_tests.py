"""Run the hydrodiagram test suite: ``python tests/run_tests.py [PATTERN] [-q]``."""
from __future__ import annotations

import sys
import unittest
from pathlib import Path


def main(argv: list[str]) -> int:
    quiet = "-q" in argv
    patterns = [arg for arg in argv if arg != "-q"]
    pattern = f"test_{patterns[0]}*.py" if patterns else "test_*.py"
    tests_dir = Path(__file__).resolve().parent
    suite = unittest.defaultTestLoader.discover(start_dir=str(tests_dir), pattern=pattern)
    result = unittest.TextTestRunner(verbosity=1 if quiet else 2).run(suite)
    return 0 if result.wasSuccessful() else 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
