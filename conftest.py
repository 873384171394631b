"""Configure test suite environment"""
import os
import sys
import tempfile

# Keep test runs away from the real data/ and exports/ folders.
# Must happen before ketchup_tracker.config is imported.
_scratch = tempfile.mkdtemp(prefix="ketchup-tests-")
os.environ.setdefault("KETCHUP_DATA_DIR", os.path.join(_scratch, "data"))
os.environ.setdefault("KETCHUP_EXPORT_DIR", os.path.join(_scratch, "exports"))

# Add the project root directory to the Python path
project_root = os.path.abspath(os.path.dirname(__file__))
sys.path.insert(0, project_root)
