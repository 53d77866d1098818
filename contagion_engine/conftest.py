# conftest.py — package root
#
# Puts the repository root on sys.path when pytest is invoked without an
# installed package, so "import contagion_engine" and the root-level
# "runner" wrapper both resolve.
#
# Usage:
#   pytest contagion_engine/tests -v
#   pytest contagion_engine/tests/test_propagation.py -v

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))
