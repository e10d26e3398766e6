import sys
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent

# backend/ holds the inventory, database and routes packages; unit/ holds the fakes
for path in (TESTS_DIR.parent / "backend", TESTS_DIR / "unit"):
    if str(path) not in sys.path:
        sys.path.append(str(path))
