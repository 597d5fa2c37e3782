"""
Unit tests for SerialTransport with pyserial patched out.
"""

import threading
from unittest.mock import MagicMock, patch

import pytest
import serial

from movemaster.transports.serial_transport import SerialTransport


@pytest.fixture
def fake_serial():
    with patch("movemaster.transports.serial_transport.serial.Serial") as cls:
        port = MagicMock()
        port.is_open = True
        port.in_waiting = 0
        port.read.return_value = b""
        cls.return_value = port
        yield cls, port


@pytest.mark.unit
class TestSerialTransport:

    def test_connect_uses_line_settings(self, fake_serial):
        cls, port = fake_serial
        transport = SerialTransport()
        assert transport.connect("/dev/ttyUSB0") is True
        kwargs = cls.call_args.kwargs
        assert kwargs["port"] == "/dev/ttyUSB0"
        assert kwargs["baudrate"] == 9600
        assert kwargs["bytesize"] == serial.SEVENBITS
        assert kwargs["parity"] == serial.PARITY_EVEN
        assert kwargs["stopbits"] == serial.STOPBITS_TWO
        assert kwargs["rtscts"] is True
        assert kwargs["xonxoff"] is True
        assert port.dtr is True
        assert port.rts is True
        assert transport.is_connected()

    def test_connect_without_port(self, fake_serial):
        transport = SerialTransport()
        assert transport.connect() is False
        assert transport.last_error == "no serial port specified"

    def test_connect_failure_keeps_reason(self, fake_serial):
        cls, _ = fake_serial
        cls.side_effect = serial.SerialException("could not open port COM9")
        transport = SerialTransport("COM9")
        assert transport.connect() is False
        assert "could not open port" in transport.last_error
        assert not transport.is_connected()

    def test_write_line_appends_lf(self, fake_serial):
        _, port = fake_serial
        transport = SerialTransport("COM3")
        transport.connect()
        assert transport.write_line("MP 0.0, 250.0, 400.0, -90.0, 0.0") is True
        port.write.assert_called_once_with(b"MP 0.0, 250.0, 400.0, -90.0, 0.0\n")
        assert transport.get_info()["tx_lines"] == 1

    def test_write_when_closed(self):
        assert SerialTransport("COM3").write_line("WH") is False

    def test_write_error_disconnects(self, fake_serial):
        _, port = fake_serial
        port.write.side_effect = serial.SerialException("device gone")
        transport = SerialTransport("COM3")
        transport.connect()
        assert transport.write_line("WH") is False
        assert not transport.is_connected()

    def test_non_ascii_command_rejected(self, fake_serial):
        _, port = fake_serial
        transport = SerialTransport("COM3")
        transport.connect()
        assert transport.write_line("MP 1.0°") is False
        port.write.assert_not_called()

    def test_reader_delivers_chunks(self, fake_serial):
        _, port = fake_serial
        chunks = iter([b"1", b"0", b""])
        port.read.side_effect = lambda n: next(chunks, b"")
        transport = SerialTransport("COM3", timeout=0.01)
        transport.connect()

        received = []
        done = threading.Event()

        def on_data(data):
            received.append(data)
            if len(received) == 2:
                done.set()

        transport.start_reader(on_data)
        try:
            assert done.wait(1.0)
            assert received == [b"1", b"0"]
        finally:
            transport.disconnect()
        assert not transport.is_connected()

    def test_start_reader_requires_connection(self):
        with pytest.raises(RuntimeError):
            SerialTransport("COM3").start_reader(lambda data: None)
