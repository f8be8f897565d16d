"""
Unit tests for utils/series_sync.py
"""
import os
import sys
from dataclasses import replace
from unittest.mock import MagicMock, patch

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from api.models import EpisodeRecord, SeriesRecord
from utils.series_sync import (
    analyze_all_series,
    enrich_all_series,
    enrich_series_data,
    find_series_missing_enrichment,
    get_missing_episodes,
    get_series_stats,
    missing_enrichment_fields,
)


def store_episodes(gateway, slug, pairs):
    for season, episode in pairs:
        gateway.upsert_episode(EpisodeRecord(series_slug=slug, season=season, episode=episode))


def fake_enricher(tmdb_id=1):
    client = MagicMock()
    client.enrich_series.side_effect = lambda s: replace(s, tmdb_id=tmdb_id, rating=7.5, genres=['Drama'])
    return client


class TestGapDetection:
    """Test cases for get_missing_episodes / get_series_stats."""

    def test_gaps_per_season(self, gateway):
        store_episodes(gateway, 'naruto', [(1, 1), (1, 4), (2, 2)])
        assert get_missing_episodes(gateway, 'naruto') == [
            {'season': 1, 'episode': 2},
            {'season': 1, 'episode': 3},
            {'season': 2, 'episode': 1},
        ]

    def test_no_episodes(self, gateway):
        assert get_missing_episodes(gateway, 'nothing') == []

    def test_stats(self, gateway):
        store_episodes(gateway, 'naruto', [(1, 1), (1, 2), (3, 2)])
        stats = get_series_stats(gateway, 'naruto')
        assert stats['total_episodes'] == 3
        assert stats['total_seasons'] == 2
        assert stats['seasons'] == [1, 3]
        assert stats['missing_count'] == 1
        assert stats['missing'] == [{'season': 3, 'episode': 1}]

    def test_analyze_all_series(self, memory_gateway):
        memory_gateway.upsert_series(SeriesRecord(slug='naruto', title='Naruto'))
        memory_gateway.upsert_series(SeriesRecord(slug='bleach', title='Bleach'))
        store_episodes(memory_gateway, 'naruto', [(1, 3)])

        results = analyze_all_series(memory_gateway)

        assert [r['slug'] for r in results] == ['bleach', 'naruto']
        assert results[1]['title'] == 'Naruto'
        assert results[1]['missing_count'] == 2


class TestMissingEnrichment:
    """Test cases for finding series without TMDB data."""

    def test_missing_fields(self):
        series = SeriesRecord(slug='x', title='X', tmdb_id=5)
        assert missing_enrichment_fields(series) == ['rating', 'genres', 'banner_image']

    def test_find_series_missing_enrichment(self, memory_gateway):
        memory_gateway.upsert_series(SeriesRecord(slug='done', title='Done', tmdb_id=1, rating=8.0,
                                                  genres=['Action']))
        memory_gateway.upsert_series(SeriesRecord(slug='todo', title='Todo', genres=['Action']))
        assert [s.slug for s in find_series_missing_enrichment(memory_gateway)] == ['todo']


class TestEnrichSeriesData:
    """Test cases for enrich_series_data / enrich_all_series."""

    def test_enrich_one(self, memory_gateway):
        memory_gateway.upsert_series(SeriesRecord(slug='naruto', title='Naruto'))
        updated = enrich_series_data(memory_gateway, fake_enricher(46260), 'naruto')
        assert updated.tmdb_id == 46260
        assert memory_gateway.get_series_by_slug('naruto').rating == 7.5

    def test_enrich_missing_series(self, memory_gateway):
        client = fake_enricher()
        assert enrich_series_data(memory_gateway, client, 'nope') is None
        client.enrich_series.assert_not_called()

    def test_enrich_not_found_on_tmdb(self, memory_gateway):
        memory_gateway.upsert_series(SeriesRecord(slug='naruto', title='Naruto'))
        client = MagicMock()
        client.enrich_series.side_effect = lambda s: s
        assert enrich_series_data(memory_gateway, client, 'naruto') is None

    def test_enrich_all(self, memory_gateway):
        memory_gateway.upsert_series(SeriesRecord(slug='a', title='A'))
        memory_gateway.upsert_series(SeriesRecord(slug='b', title='B'))
        memory_gateway.upsert_series(SeriesRecord(slug='c', title='C', tmdb_id=3, rating=9.0, genres=['Drama']))

        with patch('utils.series_sync.time.sleep') as mock_sleep:
            result = enrich_all_series(memory_gateway, fake_enricher(), delay=0.3)

        assert result == {'success': 2, 'failed': 0, 'total': 2}
        assert mock_sleep.call_count == 1
        assert find_series_missing_enrichment(memory_gateway) == []

    def test_enrich_all_counts_failures(self, memory_gateway):
        memory_gateway.upsert_series(SeriesRecord(slug='a', title='A'))
        client = MagicMock()
        client.enrich_series.side_effect = lambda s: s
        assert enrich_all_series(memory_gateway, client, delay=0) == {'success': 0, 'failed': 1, 'total': 1}

    def test_enrich_all_nothing_to_do(self, memory_gateway):
        assert enrich_all_series(memory_gateway, fake_enricher(), delay=0) == {'success': 0, 'failed': 0,
                                                                              'total': 0}
