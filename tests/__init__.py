"""
HostGuard test suite

Unit tests run against the in-memory transport; tests that touch the local
machine only use files under pytest's tmp_path.
"""
