"""
PolicyCompare Tests Package
===========================
Test suite for the policy comparison engine, storage and API.

Run all tests: python3 -m pytest tests/ -v
Run specific: python3 -m pytest tests/test_differ.py -v
"""

__version__ = "1.0.0"
