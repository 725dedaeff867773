"""Pytest configuration for NetSDR CLI tests"""
import os
import sys

for _src in ("client/src", "sdk/src"):
    path = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", _src))
    if path not in sys.path:
        sys.path.insert(0, path)
