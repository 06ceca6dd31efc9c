import pytest

from bc125at_radio_comms import BC125AT_Scanner
from tests.fake_scanner import FakeScannerPort


@pytest.fixture
def port():
    return FakeScannerPort()


@pytest.fixture
def scanner(port):
    """A scanner connected to the fake port (not in program mode)."""
    scanner = BC125AT_Scanner(port)
    assert scanner.connect()
    yield scanner
    scanner.disconnect()


@pytest.fixture
def programming(scanner):
    """A scanner in program mode."""
    assert scanner.enter_program_mode()
    return scanner
