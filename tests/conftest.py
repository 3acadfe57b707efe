# tests/conftest.py
import sys
from pathlib import Path

# project root: one level above tests/
ROOT = Path(__file__).resolve().parents[1]

# project packages and the shared fakes module
sys.path.insert(0, str(ROOT))
sys.path.insert(0, str(ROOT / "tests"))
