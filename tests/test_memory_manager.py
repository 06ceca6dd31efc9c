"""Tests for the command-line front end"""

import pytest
from typer.testing import CliRunner

import bc125at_memory_manager as manager
from bc125at_channels import Channel, empty_channel_list, replace_channel
from bc125at_csv import load_csv, save_csv
from bc125at_radio_comms import BC125AT_Scanner

runner = CliRunner()
WIDE = {"COLUMNS": "200"}


@pytest.fixture
def fake_serial(port, monkeypatch):
    """Route every scanner the CLI creates to the fake port."""
    def make_scanner(port_name, timeout=None):
        return BC125AT_Scanner(port, timeout=timeout)
    monkeypatch.setattr(manager, "BC125AT_Scanner", make_scanner)
    return port


def test_info(fake_serial):
    result = runner.invoke(manager.app, ["info", "fake"], env=WIDE)
    assert result.exit_code == 0, result.output
    assert "Model: BC125AT" in result.output
    assert "Firmware: Version 1.06.06" in result.output
    assert fake_serial.commands == ["MDL", "VER"]
    assert not fake_serial.is_open


@pytest.mark.parametrize("args, timeout", [
    ([], 2.0),
    (["--timeout", "0.5"], 0.5),
    (["--timeout", "0"], None),
])
def test_timeout_is_a_global_option(port, monkeypatch, args, timeout):
    created = []

    def make_scanner(port_name, timeout=None):
        created.append(timeout)
        return BC125AT_Scanner(port, timeout=timeout)
    monkeypatch.setattr(manager, "BC125AT_Scanner", make_scanner)

    result = runner.invoke(manager.app, args + ["info", "fake"], env=WIDE)
    assert result.exit_code == 0, result.output
    assert created == [timeout]


def test_info_connect_failure():
    result = runner.invoke(manager.app,
                           ["info", "/dev/does-not-exist-bc125at"], env=WIDE)
    assert result.exit_code == 1
    assert "Could not connect" in result.output


def test_read(fake_serial, tmp_path):
    fake_serial.store(5, "LOCAL PD", "1543400", "FM", "64", "2", "0", "1")
    output = tmp_path / "backup.csv"

    result = runner.invoke(manager.app, ["read", "fake", str(output)],
                           env=WIDE)

    assert result.exit_code == 0, result.output
    assert "1 programmed" in result.output
    channels = load_csv(output)
    assert channels[4].name == "LOCAL PD"
    assert fake_serial.commands[0] == "PRG"
    assert fake_serial.commands[-1] == "EPG"


def test_read_program_mode_refused(fake_serial, tmp_path):
    fake_serial.replies["PRG"] = "PRG,NG"
    result = runner.invoke(manager.app,
                           ["read", "fake", str(tmp_path / "out.csv")],
                           env=WIDE)
    assert result.exit_code == 1
    assert not (tmp_path / "out.csv").exists()
    assert not fake_serial.is_open


def test_write(fake_serial, tmp_path):
    channels = replace_channel(empty_channel_list(),
                               Channel.from_mhz(3, 153.89, name="COUNTY FD"))
    source = tmp_path / "program.csv"
    save_csv(channels, source)

    result = runner.invoke(manager.app, ["write", "fake", str(source)],
                           env=WIDE)

    assert result.exit_code == 0, result.output
    assert "Programmed 500/500" in result.output
    assert "COUNTY FD" in fake_serial.memory[3]


def test_write_changed_only(fake_serial, tmp_path):
    baseline = empty_channel_list()
    updated = replace_channel(baseline,
                              Channel.from_mhz(3, 153.89, name="COUNTY FD"))
    save_csv(baseline, tmp_path / "baseline.csv")
    save_csv(updated, tmp_path / "updated.csv")

    result = runner.invoke(manager.app, [
        "write", "fake", str(tmp_path / "updated.csv"),
        "--changed-only", str(tmp_path / "baseline.csv"),
    ], env=WIDE)

    assert result.exit_code == 0, result.output
    assert "Programmed 1/1" in result.output
    assert fake_serial.commands == ["PRG", "CIN,3,COUNTY FD,1538900,AUTO,0,0,0,0",
                                    "EPG"]


def test_write_reports_failures(fake_serial, tmp_path):
    source = tmp_path / "program.csv"
    save_csv(empty_channel_list(), source)
    fake_serial.replies["CIN,1,,0,AUTO,0,0,0,0"] = "CIN,NG"

    result = runner.invoke(manager.app, ["write", "fake", str(source)],
                           env=WIDE)

    assert result.exit_code == 1
    assert "Programmed 499/500" in result.output


def test_clear(fake_serial):
    fake_serial.store(9, "OLD")
    result = runner.invoke(manager.app, ["clear", "fake", "9"], env=WIDE)
    assert result.exit_code == 0, result.output
    assert 9 not in fake_serial.memory


def test_clear_rejects_out_of_range_index(fake_serial):
    result = runner.invoke(manager.app, ["clear", "fake", "501"], env=WIDE)
    assert result.exit_code != 0
    assert fake_serial.commands == []


def test_show(tmp_path):
    channels = replace_channel(empty_channel_list(),
                               Channel.from_mhz(3, 153.89, name="COUNTY FD"))
    channels = replace_channel(channels,
                               Channel.from_mhz(4, 460.1, name="CITY PD"))
    source = tmp_path / "channels.csv"
    save_csv(channels, source)

    result = runner.invoke(manager.app, ["show", str(source), "-f", "county"],
                           env=WIDE)

    assert result.exit_code == 0, result.output
    assert "COUNTY FD" in result.output
    assert "CITY PD" not in result.output
