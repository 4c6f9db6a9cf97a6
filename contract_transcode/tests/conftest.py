"""Unit tests configuration file."""

import os

import pytest

from contract_transcode.transcoder.metadata import load_metadata

FILE_DIR = os.path.dirname(os.path.realpath(__file__))
ERC20_PATH = f"{FILE_DIR}/transcoder/erc20.json"


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


@pytest.fixture
def erc20_path():
    return ERC20_PATH


@pytest.fixture
def erc20():
    return load_metadata(ERC20_PATH)


@pytest.fixture
def transcoder(erc20):
    return erc20.transcoder()
