"""Test suite for gitfixture.

Git behavior is tested against real bare repositories on the local filesystem;
HTTP, subprocess and clock boundaries are replaced where a real one would be
slow or unavailable.
"""
