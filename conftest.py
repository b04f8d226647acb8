"""Test configuration for ensuring package imports."""

import os
import sys

# Put the repository root on ``sys.path`` so ``hobbly_bot`` imports without an
# install, as it does under ``python -m pytest``.
ROOT_DIR = os.path.abspath(os.path.dirname(__file__))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)
