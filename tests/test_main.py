import json

import pytest

from fakes import make_row
from nms_glyph_generator.config import CACHE_ENV_VAR
from nms_glyph_generator.directory import build_directory, save_directory
from nms_glyph_generator.main import main


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    monkeypatch.delenv(CACHE_ENV_VAR, raising=False)
    defaults = save_directory(
        build_directory([make_row('Rewi Quadrant', coordinates='0B76:007F:0D1C:0001')]),
        tmp_path / 'defaultData.json'
    )
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({
        'cache': {'path': str(tmp_path / 'cache.db')},
        'defaults': {'path': str(defaults)},
    }))
    return path


def test_generate(config_path, capsys):
    assert main(['--config', str(config_path), 'generate', '--names']) == 0
    out = capsys.readouterr().out
    assert 'Portal Code: 0-' in out
    assert 'sunset' in out


def test_generate_with_invalid_suffix(config_path, capsys):
    assert main(['--config', str(config_path), 'generate', '--suffix', 'ZZZ']) == 2
    assert 'Invalid glyph' in capsys.readouterr().out


def test_generate_with_incomplete_suffix(config_path, capsys):
    assert main(['--config', str(config_path), 'generate', '--suffix', '123']) == 0
    out = capsys.readouterr().out
    assert 'incomplete' in out
    assert 'Portal Code: 0-' in out


def test_region_lookup(config_path, capsys):
    code = main(['--config', str(config_path), 'region',
                 '--galaxy', 'Euclid', '--civilization', 'Galactic Hub', '--region', 'Rewi Quadrant'])
    assert code == 0
    assert 'Portal Code: 0-000-00-51D-377' in capsys.readouterr().out


def test_region_listing(config_path, capsys):
    assert main(['--config', str(config_path), 'region']) == 0
    assert capsys.readouterr().out.strip() == 'Euclid'

    assert main(['--config', str(config_path), 'region', '--galaxy', 'Euclid', '--list']) == 0
    assert capsys.readouterr().out.strip() == 'Galactic Hub'


def test_unknown_region(config_path, capsys):
    code = main(['--config', str(config_path), 'region',
                 '--galaxy', 'Euclid', '--civilization', 'Galactic Hub', '--region', 'Nowhere'])
    assert code == 1


def test_invalid_config_is_refused(tmp_path, capsys):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({'wiki': {'page_size': 0}}))
    assert main(['--config', str(path), 'generate']) == 1
    assert 'Configuration issues' in capsys.readouterr().out


def test_generate_with_suffix_names(config_path, capsys):
    names = ['sunset'] * 4 + ['bird', 'face', 'diplo', 'eclipse', 'balloon', 'boat', 'bug', 'dragonfly']
    assert main(['--config', str(config_path), 'generate', '--suffix-names', *names]) == 0
    assert capsys.readouterr().out.strip().endswith('-12-345-678')


def test_generate_with_unknown_glyph_name(config_path, capsys):
    assert main(['--config', str(config_path), 'generate', '--suffix-names', 'sunset', 'unicorn']) == 2
    assert 'unicorn' in capsys.readouterr().out
