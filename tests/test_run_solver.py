import json

import pytest

from fabrik_solver.run_solver import run_solver


def write_json(path, data):
    path.write_text(json.dumps(data), encoding='utf-8')
    return str(path)


@pytest.fixture
def config_path(tmp_path):
    structure_path = write_json(tmp_path / 'structure.json', {
        'name': 'two_link',
        'chains': [{
            'name': 'arm',
            'base_location': [0.0, 0.0, 0.0],
            'bones': [
                {'direction': [1.0, 0.0, 0.0], 'length': 1.0},
                {'direction': [1.0, 0.0, 0.0], 'length': 1.0},
            ],
        }],
    })
    targets_path = write_json(tmp_path / 'targets.json', [
        {'frame': 0, 'pos': [1.5, 0.5, 0.0]},
        {'frame': 12, 'pos': [0.0, 1.5, 0.5]},
    ])
    return write_json(tmp_path / 'config.json', {
        'structure_path': structure_path,
        'targets_path': targets_path,
        'output_path': str(tmp_path / 'out' / 'animation.json'),
        'max_iterations': 50,
        'log_level': 'warning',
    })


def test_run_solver_exports_every_frame(config_path, tmp_path, capsys):
    frames = run_solver(config_path)
    assert len(frames) == 13
    assert frames[0]['distances'][0] == pytest.approx(0.0, abs=1e-2)

    data = json.loads((tmp_path / 'out' / 'animation.json').read_text(encoding='utf-8'))
    assert [frame['frame'] for frame in data['frames']] == list(range(13))
    assert len(data['frames'][6]['chains'][0]['bones']) == 2
    assert 'Done' in capsys.readouterr().out


def test_missing_config(tmp_path, capsys):
    assert run_solver(str(tmp_path / 'missing.json')) is None
    assert 'not found' in capsys.readouterr().out


def test_bad_structure_reported(tmp_path, capsys):
    config = write_json(tmp_path / 'config.json', {
        'structure_path': str(tmp_path / 'nope.json'),
        'targets_path': str(tmp_path / 'nope_targets.json'),
    })
    assert run_solver(config) is None
    assert 'Failed to load structure' in capsys.readouterr().out
