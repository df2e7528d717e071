import json

import pytest

from xml_nexus.config import Config, create_default_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ('USER_AGENT', 'TIMEOUT', 'MAX_DEPTH', 'MAX_URLS', 'MAX_CONCURRENT',
                 'VERIFY_SSL', 'BROWSER'):
        monkeypatch.delenv(f'XML_NEXUS_{name}', raising=False)


def test_defaults_without_file(tmp_path):
    config = Config(str(tmp_path / 'absent.json'))

    assert config.scanner_config.max_depth == 3
    assert config.scanner_config.max_urls == 10000
    assert config.scanner_config.max_concurrent_fetches == 5
    assert config.scanner_config.timeout == 5.0
    assert config.scanner_config.user_agent == 'XML-Nexus-Bot/1.0'
    assert config.discovery_config.probe_paths[0] == '/sitemap.xml'


def test_json_file_sections(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({
        'scanner': {'max_depth': 1, 'max_urls': 50},
        'discovery': {'use_robots': False},
        'custom': {'team': 'seo'}
    }))

    config = Config(str(path))

    assert config.scanner_config.max_depth == 1
    assert config.scanner_config.max_urls == 50
    assert config.discovery_config.use_robots is False
    assert config.get('team') == 'seo'
    assert config.get('max_urls') == 50
    assert config.get('missing', 'fallback') == 'fallback'


def test_environment_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({'scanner': {'max_depth': 1}}))
    monkeypatch.setenv('XML_NEXUS_MAX_DEPTH', '7')
    monkeypatch.setenv('XML_NEXUS_VERIFY_SSL', 'false')
    monkeypatch.setenv('XML_NEXUS_BROWSER', 'firefox')

    config = Config(str(path))

    assert config.scanner_config.max_depth == 7
    assert config.scanner_config.verify_ssl is False
    assert config.metadata_config.browser_profile == 'firefox120'


def test_unknown_browser_is_ignored(tmp_path, monkeypatch):
    monkeypatch.setenv('XML_NEXUS_BROWSER', 'netscape')

    config = Config(str(tmp_path / 'absent.json'))

    assert config.metadata_config.browser_profile == 'chrome120'


def test_set_routes_to_sections(tmp_path):
    config = Config(str(tmp_path / 'absent.json'))

    config.set('max_concurrent_fetches', 2)
    config.set('owner', 'web-team')

    assert config.scanner_config.max_concurrent_fetches == 2
    assert config.get('owner') == 'web-team'


def test_default_python_config_round_trips(tmp_path):
    path = tmp_path / 'config.py'

    create_default_config(str(path))
    config = Config(str(path))

    assert 'SCANNER_CONFIG' in path.read_text()
    assert config.scanner_config.legacy_path_prefix == '/content'
    assert config.to_dict()['metadata']['browser_profile'] == 'chrome120'


def test_save_json(tmp_path):
    config = Config(str(tmp_path / 'absent.json'))
    config.set('max_urls', 123)
    target = tmp_path / 'saved.json'

    config.save(str(target))

    assert json.loads(target.read_text())['scanner']['max_urls'] == 123
