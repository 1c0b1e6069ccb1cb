import csv
import json

import pytest

from mazechase.app.headless import run_headless
from mazechase.sim.types.snapshot import SnapshotDecodeError


def _read_csv(path):
    with path.open(newline="") as handle:
        return list(csv.reader(handle))


@pytest.fixture
def short_config(tmp_path):
    path = tmp_path / "short.yaml"
    path.write_text("population_size: 4\ngeneration:\n  max_ticks: 5\n")
    return path


def test_headless_writes_one_row_per_generation(tmp_path, short_config):
    log_path = tmp_path / "generations.csv"

    engine = run_headless(3, seed=1, log_path=log_path, deterministic_log=True, config_path=short_config)

    rows = _read_csv(log_path)
    assert len(rows) == 4
    assert rows[0] == [
        "generation",
        "ticks",
        "escapers",
        "escapers_alive",
        "escapers_escaped",
        "pursuers",
        "best_escaper_fitness",
        "best_pursuer_fitness",
        "avg_escaper_fitness",
        "avg_pursuer_fitness",
        "orbs_collected",
        "reseeded",
        "generation_ms",
    ]
    assert [row[0] for row in rows[1:]] == ["0", "1", "2"]
    assert all(row[1] == "5" for row in rows[1:])
    assert all(row[-1] == "0.000" for row in rows[1:])
    assert engine.get_state().generation == 3


def test_headless_deterministic_logs_match(tmp_path, short_config):
    first = tmp_path / "first.csv"
    second = tmp_path / "second.csv"

    run_headless(2, seed=4, log_path=first, deterministic_log=True, config_path=short_config)
    run_headless(2, seed=4, log_path=second, deterministic_log=True, config_path=short_config)

    assert first.read_text() == second.read_text()


def test_headless_summary_and_max_ticks(tmp_path, short_config):
    summary_path = tmp_path / "summary.json"

    run_headless(10, seed=2, log_path=None, config_path=short_config, summary_path=summary_path, max_ticks=12)

    summary = json.loads(summary_path.read_text())
    assert summary["ticks"] == 12
    assert summary["generations"] == 2
    assert summary["seed"] == 2
    assert summary["final_generation"] == 2
    assert summary["final_time_step"] == 2
    assert summary["generation_ticks"] == {"min": 5.0, "max": 5.0, "avg": 5.0, "last": 5.0}


def test_headless_save_then_resume(tmp_path, short_config):
    snapshot = tmp_path / "gen.json"

    saved = run_headless(1, seed=3, log_path=None, config_path=short_config, save_path=snapshot)
    resumed = run_headless(0, seed=99, log_path=None, config_path=short_config, load_path=snapshot)

    assert resumed.get_state().generation == 1
    assert resumed.save_state() == saved.save_state()


def test_headless_rejects_bad_snapshot(tmp_path, short_config):
    snapshot = tmp_path / "broken.json"
    snapshot.write_text('{"generation": "soon"}')

    with pytest.raises(SnapshotDecodeError):
        run_headless(1, seed=3, log_path=None, config_path=short_config, load_path=snapshot)
