import json

import pytest

from nms_glyph_generator.config import (
    CACHE_ENV_VAR,
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG,
    get_cache_path,
    get_config_path,
    get_default_data_path,
    load_config,
    save_config,
    validate_config,
)


def test_missing_config_is_created_with_defaults(tmp_path):
    path = tmp_path / 'config.json'
    config = load_config(path)

    assert config == DEFAULT_CONFIG
    assert json.loads(path.read_text(encoding='utf-8')) == DEFAULT_CONFIG
    # The returned dict is a copy
    config['wiki']['page_size'] = 1
    assert DEFAULT_CONFIG['wiki']['page_size'] == 500


def test_partial_config_is_merged_with_defaults(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({'wiki': {'request_interval': 60}, 'cache': {'ttl_seconds': 86400}}))

    config = load_config(path)

    assert config['wiki']['request_interval'] == 60
    assert config['wiki']['page_size'] == 500
    assert config['cache']['ttl_seconds'] == 86400
    assert config['server'] == DEFAULT_CONFIG['server']


def test_unreadable_config_falls_back_to_defaults(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text('{not json')
    assert load_config(path) == DEFAULT_CONFIG


def test_save_config_round_trip(tmp_path):
    path = tmp_path / 'nested' / 'config.json'
    config = load_config(tmp_path / 'other.json')
    config['server']['port'] = 9000

    assert save_config(config, path)
    assert load_config(path)['server']['port'] == 9000


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / 'custom.json'))
    monkeypatch.setenv(CACHE_ENV_VAR, str(tmp_path / 'custom.db'))

    assert get_config_path() == tmp_path / 'custom.json'
    assert get_cache_path(DEFAULT_CONFIG) == tmp_path / 'custom.db'


def test_configured_paths(tmp_path, monkeypatch):
    monkeypatch.delenv(CACHE_ENV_VAR, raising=False)
    config = {'cache': {'path': str(tmp_path / 'c.db')}, 'defaults': {'path': str(tmp_path / 'd.json')}}

    assert get_cache_path(config) == tmp_path / 'c.db'
    assert get_default_data_path(config) == tmp_path / 'd.json'
    assert get_default_data_path(DEFAULT_CONFIG).name == 'defaultData.json'


def test_default_config_is_valid():
    assert validate_config(DEFAULT_CONFIG) == (True, [])


@pytest.mark.parametrize("section, key, value", [
    ('wiki', 'api_url', ''),
    ('wiki', 'page_size', 0),
    ('wiki', 'min_page_size', -1),
    ('wiki', 'request_interval', 'soon'),
    ('cache', 'ttl_seconds', 0),
    ('server', 'port', 70000),
])
def test_invalid_values_are_reported(section, key, value):
    config = json.loads(json.dumps(DEFAULT_CONFIG))
    config[section][key] = value

    is_valid, errors = validate_config(config)

    assert not is_valid
    assert len(errors) == 1
