"""Tests for the command-line interface."""

import pytest
from cross_arbitrage import cli


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_evaluate_single_asset(capsys):
    exit_code = cli.main([
        "evaluate", "--asset", "JASMY",
        "--exchange-a", "MEXC", "--exchange-b", "Bitmart",
        "--price-a", "0.0315", "--price-b", "0.0325",
        "--fee-a", "0.1", "--fee-b", "0.2", "--capital", "1000",
    ])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "single_asset" in output
    assert "+2.87% (positive)" in output


def test_evaluate_triangulation_prints_parity(capsys):
    exit_code = cli.main([
        "evaluate", "--asset", "PEPE", "--asset-b", "JASMY",
        "--price-a", "0.00001", "--price-b", "0.02",
        "--conversion-factor", "0.000515", "--capital", "1000",
    ])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "triangulation" in output
    assert "Parity:" in output


def test_evaluate_insufficient_input(capsys):
    exit_code = cli.main([
        "evaluate", "--asset", "JASMY", "--price-a", "0", "--price-b", "1",
    ])
    assert exit_code == 2
    assert "insufficient input" in capsys.readouterr().out


def test_unknown_exchange_fails_cleanly():
    exit_code = cli.main([
        "evaluate", "--asset", "JASMY", "--exchange-a", "Kraken",
        "--price-a", "1", "--price-b", "1",
    ])
    assert exit_code == 1


def test_missing_config_file_fails_cleanly():
    exit_code = cli.main([
        "--config", "/non/existent.yaml",
        "evaluate", "--asset", "JASMY", "--price-a", "1", "--price-b", "1",
    ])
    assert exit_code == 1
