"""
Unit tests for utils/dedup_cache.py
"""
import os
import sys
import threading

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from utils.dedup_cache import DedupCache


class TestDedupCache:
    """Test cases for DedupCache class."""

    def test_starts_empty(self):
        cache = DedupCache()
        assert len(cache) == 0
        assert 'naruto_1_1' not in cache

    def test_initial_keys(self):
        cache = DedupCache(['a_1_1', 'b_2_2'])
        assert 'a_1_1' in cache
        assert len(cache) == 2

    def test_add_returns_true_once(self):
        cache = DedupCache()
        assert cache.add('naruto_1_1') is True
        assert cache.add('naruto_1_1') is False
        assert len(cache) == 1

    def test_empty_key_ignored(self):
        cache = DedupCache()
        assert cache.add('') is False
        assert cache.add(None) is False
        assert not cache.contains(None)
        assert len(cache) == 0

    def test_clear(self):
        cache = DedupCache(['a_1_1'])
        cache.clear()
        assert 'a_1_1' not in cache

    def test_concurrent_adds_counted_once(self):
        cache = DedupCache()
        results = []

        def worker():
            results.append(cache.add('same_1_1'))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert len(cache) == 1
