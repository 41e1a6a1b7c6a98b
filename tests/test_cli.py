from __future__ import annotations

import json

from farmsim.cli import main


def test_json_run_reports_completion(capsys):
    code = main(["--persona", "casual", "--minutes", "30", "--json"])

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["reason"] == "duration"
    assert payload["stats"]["tick_count"] == 30
    assert payload["final_state"]["schema_version"] == "farmsim_state_v1"


def test_text_run_prints_a_summary(capsys):
    code = main(["--persona", "speedrunner", "--minutes", "5"])

    out = capsys.readouterr().out
    assert code == 0
    assert out.startswith("duration: day 1")
    assert "persona: speedrunner (aggressive_expansion)" in out


def test_offline_gap_is_summarised(capsys):
    code = main(["--minutes", "5", "--offline", "120"])

    out = capsys.readouterr().out
    assert code == 0
    assert out.splitlines()[0] == "While you were away (2h 0m)"


def test_max_ticks_stops_the_run_manually(capsys):
    code = main(["--persona", "casual", "--max-ticks", "3", "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert payload["reason"] == "manual"
    assert payload["stats"]["tick_count"] == 3


def test_custom_game_data_file(tmp_path, capsys):
    records = [
        {"id": "carrot", "type": "crop", "time": 10, "effects": {"energy": 2, "gold": 1}},
        {"id": "watering_can", "type": "tool", "gold_cost": 5},
    ]
    path = tmp_path / "items.json"
    path.write_text(json.dumps(records), encoding="utf-8")

    code = main(["--game-data", str(path), "--minutes", "5", "--json"])

    assert code == 0
    assert json.loads(capsys.readouterr().out)["reason"] == "duration"


def test_bad_inputs_exit_with_code_two(tmp_path, capsys):
    assert main(["--game-data", str(tmp_path / "missing.json")]) == 2
    assert main(["--speed", "0"]) == 2

    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps([{"id": "x", "type": "spaceship"}]), encoding="utf-8")
    assert main(["--game-data", str(bad)]) == 2
    assert capsys.readouterr().out.startswith("error:")
