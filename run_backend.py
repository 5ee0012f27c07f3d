#!/usr/bin/env python
"""Script to run the task tracker API server."""
import os
import sys
from pathlib import Path

# Get the directory where this script is located
script_dir = Path(__file__).resolve().parent

# Add the project directory to the Python path so .env and the package resolve
sys.path.insert(0, str(script_dir))
os.chdir(script_dir)

from tasktracker.server import main  # noqa: E402

if __name__ == "__main__":
    main()
