"""
Unit tests for utils/monitor_config.py and utils/components.py
"""
import os
import sys
import logging
import pytest
from unittest.mock import patch

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from utils.components import build_components
from utils.errors import ConfigError
from utils.monitor_config import MonitorConfig, load_monitor_config, validate_config
from utils.persistence_gateway import InMemoryGateway


@pytest.fixture
def clean_env():
    """Empty environment and no config.py"""
    with patch.dict(os.environ, {}, clear=True), \
            patch('utils.monitor_config._load_user_config', return_value={}):
        yield


class TestLoadMonitorConfig:
    """Test cases for load_monitor_config."""

    def test_defaults(self, clean_env):
        cfg = load_monitor_config()
        assert cfg.scrape_url == 'https://toonstream.love/'
        assert cfg.poll_interval_ms == 3000
        assert cfg.card_delay_ms == 500
        assert cfg.max_latest_episodes == 9
        assert cfg.max_retries == 3
        assert cfg.proxy_list == []
        assert cfg.resolved_backend == 'sqlite'

    def test_environment(self, clean_env):
        with patch.dict(os.environ, {'VAR_POLL_INTERVAL_MS': '10000', 'PROXY_LIST': 'a:1,b:2',
                                     'TMDB_API_KEY': 'k'}):
            cfg = load_monitor_config()
        assert cfg.poll_interval_ms == 10000
        assert cfg.proxy_list == ['a:1', 'b:2']
        assert cfg.tmdb_api_key == 'k'

    def test_config_py_overrides_environment(self):
        user_config = {'POLL_INTERVAL_MS': 7000, 'PROXY_LIST': ['c:3'], 'UNRELATED': 1}
        with patch.dict(os.environ, {'VAR_POLL_INTERVAL_MS': '10000'}, clear=True), \
                patch('utils.monitor_config._load_user_config', return_value=user_config):
            cfg = load_monitor_config()
        assert cfg.poll_interval_ms == 7000
        assert cfg.proxy_list == ['c:3']

    def test_explicit_overrides_win(self, clean_env):
        cfg = load_monitor_config({'LOG_LEVEL': 'DEBUG', 'NOT_A_SETTING': 'x'})
        assert cfg.log_level == 'DEBUG'

    def test_backend_auto_selects_supabase(self, clean_env):
        cfg = load_monitor_config({'SUPABASE_URL': 'https://abc.supabase.co',
                                   'SUPABASE_SERVICE_ROLE_KEY': 'srv'})
        assert cfg.resolved_backend == 'supabase'

    def test_safe_dict_masks_secrets(self):
        cfg = MonitorConfig(tmdb_api_key='tmdb-secret', supabase_service_role_key='srv-secret',
                            proxy_list=['10.1.2.3:80:user:pw'])
        safe = cfg.to_safe_dict()
        assert safe['tmdb_api_key'] == '********'
        assert safe['supabase_service_role_key'] == '********'
        assert safe['proxy_list'] == ['10.xxx.xxx.3:80:***:***']
        assert cfg.to_dict()['tmdb_api_key'] == 'tmdb-secret'


class TestValidateConfig:
    """Test cases for validate_config."""

    def test_valid_config(self):
        validate_config(MonitorConfig(tmdb_api_key='k'))

    def test_missing_tmdb_key_only_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger='utils.monitor_config'):
            validate_config(MonitorConfig())
        assert 'TMDB_API_KEY not configured' in caplog.text

    def test_bad_scrape_url(self):
        with pytest.raises(ConfigError, match='SCRAPE_URL'):
            validate_config(MonitorConfig(scrape_url='toonstream.love'))

    def test_supabase_requires_credentials(self):
        with pytest.raises(ConfigError) as exc_info:
            validate_config(MonitorConfig(storage_backend='supabase'))
        assert 'SUPABASE_URL' in str(exc_info.value)
        assert 'SUPABASE_SERVICE_ROLE_KEY' in str(exc_info.value)

    def test_unknown_backend(self):
        with pytest.raises(ConfigError, match='STORAGE_BACKEND'):
            validate_config(MonitorConfig(storage_backend='mongo'))

    def test_reports_every_problem(self):
        cfg = MonitorConfig(max_retries=0, max_latest_episodes=0, poll_interval_ms=-1)
        with pytest.raises(ConfigError) as exc_info:
            validate_config(cfg)
        message = str(exc_info.value)
        assert 'MAX_RETRIES' in message
        assert 'MAX_LATEST_EPISODES' in message
        assert 'POLL_INTERVAL_MS' in message


class TestBuildComponents:
    """Test cases for build_components."""

    def test_wires_collaborators(self):
        cfg = MonitorConfig(timeout_ms=5000, scrape_delay_ms=2000, poll_interval_ms=4000, card_delay_ms=250,
                            max_latest_episodes=5, proxy_list=['a:1', 'b:2'], tmdb_api_key='k',
                            storage_backend='memory')
        components = build_components(cfg)

        handler = components.request_handler
        assert handler.config.timeout == 5.0
        assert handler.config.retry_delay == 2.0
        assert len(handler.proxy_pool) == 2
        assert isinstance(components.gateway, InMemoryGateway)
        assert components.latest_window.max_count == 5
        assert components.enricher is not None
        assert components.scraper.enricher is components.enricher
        assert components.scraper.latest_window is components.latest_window
        assert components.monitor.poll_interval == 4.0
        assert components.monitor.card_delay == 0.25
        assert components.monitor.scraper is components.scraper

    def test_no_enricher_without_key(self):
        components = build_components(MonitorConfig(storage_backend='memory'))
        assert components.enricher is None

    def test_reuses_given_gateway(self):
        gateway = InMemoryGateway()
        components = build_components(MonitorConfig(storage_backend='sqlite'), gateway=gateway)
        assert components.gateway is gateway
        assert components.scraper.gateway is gateway
