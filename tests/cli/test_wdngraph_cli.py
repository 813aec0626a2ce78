"""Tests for the wdngraph command line interface."""

from __future__ import annotations

import logging
import runpy
from pathlib import Path
from unittest.mock import patch

import pytest

from wdngraph import cli
from wdngraph.inp import parse_inp

BROKEN_INP = """\
[JUNCTIONS]
J1 10
J2 abc
[CONTROLS]
LINK P1 OPEN
[COORDINATES]
J1 1 1
"""


@pytest.fixture
def inp_file(tmp_path: Path, sample_inp: str) -> Path:
    path = tmp_path / "net.inp"
    path.write_text(sample_inp, encoding="utf-8")
    return path


def test_inspect_prints_counts_and_no_issues(inp_file: Path, capsys) -> None:
    cli.main(["inspect", str(inp_file)])
    out = capsys.readouterr().out

    assert "NETWORK: net.inp" in out
    assert "Title: Sample network" in out
    assert "Units: LPS" in out
    assert "junction" in out and "valve" in out
    assert "Connected components: 1" in out
    assert "No issues found" in out


def test_inspect_summarises_issues_by_kind(tmp_path: Path, capsys) -> None:
    path = tmp_path / "broken.inp"
    path.write_text(BROKEN_INP, encoding="utf-8")

    cli.main(["inspect", str(path)])
    out = capsys.readouterr().out
    assert "Issues (2):" in out
    assert "invalid value" in out
    assert "unsupported section" in out


def test_inspect_detail_lists_every_issue(tmp_path: Path, capsys) -> None:
    path = tmp_path / "broken.inp"
    path.write_text(BROKEN_INP, encoding="utf-8")

    cli.main(["inspect", str(path), "--detail"])
    out = capsys.readouterr().out
    assert "[invalid value] line 3: Invalid elevation 'abc'" in out
    assert "[unsupported section] line 4:" in out


def test_inspect_missing_file_exits_1(tmp_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["inspect", str(tmp_path / "absent.inp")])
    assert exc_info.value.code == 1
    assert "ERROR: INP file not found" in capsys.readouterr().out


def test_inspect_unreadable_file_exits_1(tmp_path: Path, capsys) -> None:
    path = tmp_path / "data.inp"
    path.write_text("no sections here\n", encoding="utf-8")
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["inspect", str(path)])
    assert exc_info.value.code == 1
    out = capsys.readouterr().out
    assert "ERROR: Failed to read INP file" in out
    assert "ParseError" in out


def test_export_writes_normalised_inp(inp_file: Path, tmp_path: Path, capsys) -> None:
    output = tmp_path / "out" / "normalised.inp"
    cli.main(["export", str(inp_file), "-o", str(output)])

    assert "Wrote" in capsys.readouterr().out
    text = output.read_text(encoding="utf-8")
    assert text.endswith("[END]\n")
    model, issues = parse_inp(text)
    assert not issues
    assert len(model.assets) == 8


def test_export_with_config_and_customer_demands(
    inp_file: Path, tmp_path: Path
) -> None:
    config = tmp_path / "engine.yaml"
    config.write_text("model:\n  searchRadius: 0.5\n", encoding="utf-8")
    output = tmp_path / "demands.inp"

    cli.main(
        [
            "export",
            str(inp_file),
            "--output",
            str(output),
            "--config",
            str(config),
            "--customer-demands",
        ]
    )
    model, _ = parse_inp(output.read_text(encoding="utf-8"))
    assert model.get_asset("J1").base_demand == 0.0


def test_export_missing_file_exits_1(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["export", str(tmp_path / "absent.inp"), "-o", "x.inp"])
    assert exc_info.value.code == 1


def test_no_arguments_prints_help(capsys) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main([])
    assert exc_info.value.code == 0
    assert "usage: wdngraph" in capsys.readouterr().out


def test_verbose_sets_debug_level(inp_file: Path) -> None:
    cli.main(["--verbose", "inspect", str(inp_file)])
    assert logging.getLogger("wdngraph").level == logging.DEBUG
    cli.main(["--quiet", "inspect", str(inp_file)])
    assert logging.getLogger("wdngraph").level == logging.WARNING
    cli.main(["inspect", str(inp_file)])
    assert logging.getLogger("wdngraph").level == logging.INFO


def test_module_help_exits_zero() -> None:
    """Running with --help through ``python -m wdngraph`` exits cleanly."""
    with patch("sys.argv", ["wdngraph", "--help"]):
        with pytest.raises(SystemExit) as exc_info:
            runpy.run_module("wdngraph", run_name="__main__")
    assert exc_info.value.code == 0


def test_module_subcommand_help_exits_zero() -> None:
    with patch("sys.argv", ["wdngraph", "export", "--help"]):
        with pytest.raises(SystemExit) as exc_info:
            runpy.run_module("wdngraph", run_name="__main__")
    assert exc_info.value.code == 0
