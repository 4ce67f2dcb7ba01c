from __future__ import annotations

from pathlib import Path

from gwreplay.cli import _build_config, build_parser, lenient_bool, lenient_int, main


def test_lenient_parsing_defaults_to_zero_and_false() -> None:
    assert lenient_int("12") == 12
    assert lenient_int("twelve") == 0
    assert lenient_bool("true") is True
    assert lenient_bool("nah") is False


def test_lenient_bool_accepts_only_true_spellings() -> None:
    assert lenient_bool("T") is True
    assert lenient_bool("TRUE") is True
    assert lenient_bool("1") is True
    assert lenient_bool("yes") is False
    assert lenient_bool("y") is False


def test_replay_flags_build_config() -> None:
    args = build_parser().parse_args(
        ["replay", "-f", "trace.ndjson", "-d", "5", "-n", "100", "-c", "8", "--client-per-format",
         "--http", "2", "--ip", "198.51.100.7", "--tls", "false"]
    )
    config = _build_config(args)
    assert config.trace.path == Path("trace.ndjson")
    assert config.trace.max_duration_min == 5
    assert config.trace.max_records == 100
    assert config.pool.size == 8
    assert config.pool.per_format is True
    assert config.target.http_version == 2
    assert config.target.host == "198.51.100.7"
    assert config.target.use_tls is False


def test_invalid_flag_values_fall_back() -> None:
    args = build_parser().parse_args(["replay", "-c", "many", "--http", "x", "-n", "-3", "--tls", "maybe"])
    config = _build_config(args)
    assert config.pool.size == 1
    assert config.target.http_version == 2
    assert config.trace.max_records == 0
    assert config.target.use_tls is False


def test_missing_trace_exits_non_zero(tmp_path: Path) -> None:
    code = main(
        ["--db", str(tmp_path / "runs.duckdb"), "replay", "-f", str(tmp_path / "missing.ndjson"),
         "--results-dir", str(tmp_path / "results"), "--no-store"]
    )
    assert code == 1


def test_runs_lists_empty_store(tmp_path: Path, capsys) -> None:
    assert main(["--db", str(tmp_path / "runs.duckdb"), "runs"]) == 0
    assert "No runs stored" in capsys.readouterr().out


def test_http_flag_selects_one_or_two() -> None:
    for value, expected in (("1", 1), ("2", 2), ("3", 2), ("0", 2)):
        args = build_parser().parse_args(["replay", "--http", value])
        assert _build_config(args).target.http_version == expected
