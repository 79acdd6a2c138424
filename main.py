#!/usr/bin/env python3
# /errmark/main.py
"""
errmark launcher for source checkouts
=====================================

Runs the viewer straight from the repository without installing it:

    python main.py /var/log/app.log

The `src` directory is put on the Python path so the `errmark` package is
importable; everything else happens in `errmark.__main__.start`.
"""

import os
import sys


project_src = os.path.join(os.path.dirname(os.path.abspath(__file__)), "src")
if project_src not in sys.path:
    sys.path.insert(0, project_src)

from errmark.__main__ import start  # noqa: E402


if __name__ == "__main__":
    start()
