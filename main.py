"""Main entry point for the orchestration engine."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "src"))

from apporchestra.runner import main  # noqa: E402


if __name__ == "__main__":
    sys.exit(main())
