"""
Unit tests for COM port persistence and resolution.
"""

import pytest

from movemaster import config as cfg


@pytest.fixture
def com_file(tmp_path, monkeypatch):
    path = tmp_path / "sub" / "com_port.txt"
    monkeypatch.setattr(cfg, "COM_PORT_FILE", str(path))
    monkeypatch.delenv("MOVEMASTER_COM_PORT", raising=False)
    monkeypatch.delenv("MOVEMASTER_SERIAL", raising=False)
    return path


@pytest.mark.unit
class TestComPort:

    def test_save_and_load(self, com_file):
        assert cfg.save_com_port(" /dev/ttyUSB0 \n") is True
        assert com_file.read_text() == "/dev/ttyUSB0"
        assert cfg.load_com_port() == "/dev/ttyUSB0"

    def test_load_missing_file(self, com_file):
        assert cfg.load_com_port() is None

    def test_load_empty_file(self, com_file):
        com_file.parent.mkdir(parents=True)
        com_file.write_text("   ")
        assert cfg.load_com_port() is None

    def test_fallback_prefers_environment(self, com_file, monkeypatch):
        cfg.save_com_port("COM3")
        monkeypatch.setenv("MOVEMASTER_SERIAL", "COM7")
        assert cfg.get_com_port_with_fallback() == "COM7"
        monkeypatch.setenv("MOVEMASTER_COM_PORT", " COM8 ")
        assert cfg.get_com_port_with_fallback() == "COM8"

    def test_fallback_uses_file(self, com_file):
        cfg.save_com_port("COM3")
        assert cfg.get_com_port_with_fallback() == "COM3"

    def test_fallback_empty(self, com_file):
        assert cfg.get_com_port_with_fallback() == ""


@pytest.mark.unit
class TestEnvParsing:

    def test_env_float(self, monkeypatch):
        monkeypatch.setenv("MOVEMASTER_TEST_VALUE", "0.25")
        assert cfg._env_float("MOVEMASTER_TEST_VALUE", 1.0) == 0.25

    @pytest.mark.parametrize("raw", ["", "  ", "fast"])
    def test_env_float_falls_back(self, monkeypatch, raw):
        monkeypatch.setenv("MOVEMASTER_TEST_VALUE", raw)
        assert cfg._env_float("MOVEMASTER_TEST_VALUE", 1.0) == 1.0

    def test_extender_middle(self):
        assert cfg.EXTENDER_MIDDLE_Z == 300.0
