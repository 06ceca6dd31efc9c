#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Serial communication with a Uniden BC125AT scanner using its PC programming
protocol: ASCII commands terminated by a carriage return, one response line
per command.
"""

import enum
import logging
import threading

import serial

from bc125at_channels import (
    CHANNEL_COMMAND, MAX_CHANNELS, MIN_CHANNEL, Channel, decode_channel,
    encode_channel
)
from bc125at_errors import (
    NotInProgramMode, ProtocolError, ResponseTimeout, ScannerConnectionError,
    ScannerError, ValidationError
)

LOG = logging.getLogger(__name__)

# Serial settings (fixed by the scanner firmware)
BAUD_RATE = 9600
BYTE_SIZE = serial.EIGHTBITS
PARITY = serial.PARITY_NONE
STOP_BITS = serial.STOPBITS_ONE

TERMINATOR = "\r"
TERMINATOR_BYTE = b"\r"
ENCODING = "ascii"

# Protocol commands
CMD_ENTER_PROGRAM = "PRG"
CMD_EXIT_PROGRAM = "EPG"
CMD_MODEL = "MDL"
CMD_VERSION = "VER"
CMD_DELETE_CHANNEL = "DCH"

RESPONSE_OK = "OK"


class ScannerState(enum.Enum):
    DISCONNECTED = "Disconnected"
    CONNECTED = "Connected"
    PROGRAM_MODE = "Program Mode"


class SerialLink:
    """
    Owns the serial port and splits the incoming byte stream into
    carriage-return terminated lines.
    """

    def __init__(self, port, timeout=None):
        """
        Args:
            port: Device name ('COM3', '/dev/ttyUSB0'), a pyserial URL
                  ('loop://', 'socket://host:4000') or an already created
                  serial port object.
            timeout (float, optional): Seconds to wait for response bytes.
                                       None waits indefinitely.
        """
        self.port = port
        self.timeout = timeout
        self.serial_conn = None
        self._buffer = bytearray()

    @property
    def port_name(self):
        if isinstance(self.port, str):
            return self.port
        return getattr(self.port, 'port', None) or repr(self.port)

    @property
    def is_open(self):
        return self.serial_conn is not None and self.serial_conn.is_open

    def open(self):
        """
        Open the port at 9600-8-N-1 and discard any stale data.

        Raises:
            ScannerConnectionError: If the port cannot be opened.
        """
        if self.is_open:
            return

        try:
            if isinstance(self.port, str):
                self.serial_conn = serial.serial_for_url(
                    self.port, baudrate=BAUD_RATE, bytesize=BYTE_SIZE,
                    parity=PARITY, stopbits=STOP_BITS, timeout=self.timeout
                )
            else:
                self.serial_conn = self.port
                if not self.serial_conn.is_open:
                    self.serial_conn.baudrate = BAUD_RATE
                    self.serial_conn.bytesize = BYTE_SIZE
                    self.serial_conn.parity = PARITY
                    self.serial_conn.stopbits = STOP_BITS
                    self.serial_conn.timeout = self.timeout
                    self.serial_conn.open()
            self.serial_conn.reset_input_buffer()
            self.serial_conn.reset_output_buffer()
            self._buffer.clear()
        except (serial.SerialException, OSError, ValueError) as e:
            conn = self._release()
            if conn is not None and conn is not self.port:
                try:
                    conn.close()
                except (serial.SerialException, OSError) as close_error:
                    LOG.debug("Could not close %s: %s",
                              self.port_name, close_error)
            raise ScannerConnectionError(
                f"Could not open {self.port_name}: {e}"
            ) from e

    def close(self):
        """
        Close the port. The link is released even if closing fails.

        Raises:
            ScannerConnectionError: If the underlying port reported an error
                                    while closing.
        """
        conn = self._release()
        if conn is None:
            return
        try:
            conn.close()
        except (serial.SerialException, OSError) as e:
            raise ScannerConnectionError(
                f"Error closing {self.port_name}: {e}"
            ) from e

    def _release(self):
        conn, self.serial_conn = self.serial_conn, None
        self._buffer.clear()
        return conn

    def send(self, command):
        """
        Write one command followed by the terminator.

        Raises:
            ScannerConnectionError: If the port is not open.
            ProtocolError: If the write fails.
        """
        if not self.is_open:
            raise ScannerConnectionError("Not connected to send command.")

        LOG.debug("PC->RADIO: %s", command)
        data = (command + TERMINATOR).encode(ENCODING, errors='replace')
        try:
            self.serial_conn.write(data)
            self.serial_conn.flush()
        except (serial.SerialException, OSError) as e:
            raise ProtocolError(f"Error sending command '{command}': {e}") from e

    def receive_line(self):
        """
        Read bytes until a terminator arrives and return the line.

        Returns:
            str: The decoded line with terminator and surrounding whitespace
                 removed.

        Raises:
            ScannerConnectionError: If the port is not open.
            ResponseTimeout: If the configured timeout expired first.
            ProtocolError: If the stream ended or the read failed.
        """
        if not self.is_open:
            raise ScannerConnectionError("Not connected to read line.")

        while TERMINATOR_BYTE not in self._buffer:
            try:
                chunk = self.serial_conn.read(self.serial_conn.in_waiting or 1)
            except (serial.SerialException, OSError) as e:
                raise ProtocolError(f"Error reading line: {e}") from e
            if not chunk:
                if self.timeout is not None:
                    raise ResponseTimeout(
                        f"No response within {self.timeout} s "
                        f"(partial: {bytes(self._buffer)!r})."
                    )
                raise ProtocolError(
                    "Connection closed before a complete response arrived."
                )
            self._buffer.extend(chunk)

        line, _, rest = bytes(self._buffer).partition(TERMINATOR_BYTE)
        self._buffer = bytearray(rest)
        text = line.decode(ENCODING, errors='replace').strip()
        LOG.debug("RADIO->PC: %r", text)
        return text

    def discard_input(self):
        """Drop buffered and pending input, e.g. a late reply after a timeout."""
        self._buffer.clear()
        if not self.is_open:
            return
        try:
            self.serial_conn.reset_input_buffer()
        except (serial.SerialException, OSError) as e:
            LOG.debug("Could not reset input buffer: %s", e)

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class BC125AT_Scanner:
    """
    Manages the connection and protocol commands for a BC125AT scanner.
    Tracks whether the scanner is disconnected, connected or in program mode
    and sends exactly one command at a time.
    """

    def __init__(self, port=None, timeout=None, status_callback=None,
                 progress_callback=None):
        """
        Initialize scanner connection parameters.

        Args:
            port: Serial port name, pyserial URL or serial port object.
            timeout (float, optional): Per-read response timeout in seconds.
            status_callback (callable): Called with status messages.
            progress_callback (callable): Default progress callback for bulk
                                          reads and writes.
        """
        self.port = port
        self.timeout = timeout
        self.status_callback = status_callback
        self.progress_callback = progress_callback
        self.link = None
        self.state = ScannerState.DISCONNECTED
        self.last_error = None
        self._lock = threading.Lock()

    def _update_status(self, message, level=logging.INFO):
        """Log a status message and forward it to the status callback."""
        LOG.log(level, message)
        if self.status_callback:
            try:
                self.status_callback(message)
            except Exception:
                LOG.exception("Error in status callback")

    @property
    def is_connected(self):
        return self.state is not ScannerState.DISCONNECTED

    @property
    def in_program_mode(self):
        return self.state is ScannerState.PROGRAM_MODE

    def connect(self, port=None):
        """
        Open the serial connection.

        Args:
            port (optional): Overrides the port given to the constructor.

        Returns:
            bool: True if connected, False otherwise (see last_error).
        """
        if port is not None:
            self.port = port
        if self.is_connected:
            self._update_status("Already connected.")
            return True
        if self.port is None:
            self.last_error = ScannerConnectionError("No serial port given.")
            self._update_status(f"ERROR: {self.last_error}", logging.ERROR)
            return False

        link = SerialLink(self.port, timeout=self.timeout)
        self._update_status(f"Attempting to connect to {link.port_name}...")
        try:
            link.open()
        except ScannerConnectionError as e:
            self.last_error = e
            self._update_status(f"ERROR connecting: {e}", logging.ERROR)
            return False

        self.link = link
        self.state = ScannerState.CONNECTED
        self.last_error = None
        self._update_status(
            f"Connected to {link.port_name} at {BAUD_RATE} baud."
        )
        return True

    def disconnect(self):
        """
        Leave program mode if needed and close the serial connection.
        Always ends disconnected, whatever happened before.
        """
        try:
            if self.state is ScannerState.PROGRAM_MODE and \
               not self.exit_program_mode():
                self._update_status(
                    "Warning: could not leave program mode before "
                    "disconnecting.", logging.WARNING
                )
        finally:
            link, self.link = self.link, None
            self.state = ScannerState.DISCONNECTED
            if link is None:
                self._update_status("Already disconnected or not connected.")
            else:
                try:
                    link.close()
                    self._update_status("Disconnected.")
                except ScannerConnectionError as e:
                    self.last_error = e
                    self._update_status(f"Error during disconnect: {e}",
                                        logging.ERROR)

    def _exchange(self, command):
        """
        Send a command and wait for its response line.

        Returns:
            str: The response line.

        Raises:
            ScannerConnectionError: If not connected.
            ProtocolError: On I/O failure, timeout or a dropped link.
        """
        if self.link is None or not self.link.is_open:
            raise ScannerConnectionError("Not connected to send command.")

        with self._lock:
            try:
                self.link.send(command)
                return self.link.receive_line()
            except ProtocolError:
                self.link.discard_input()
                raise

    def _expect_ok(self, command):
        """Send a command whose only success response is '<command>,OK'."""
        response = self._exchange(command)
        tag = command.split(',', 1)[0]
        if response == f"{tag},{RESPONSE_OK}":
            return True
        self._update_status(
            f"Unexpected response to '{tag}': {response!r}", logging.WARNING
        )
        self.last_error = ProtocolError(
            f"Unexpected response to '{tag}': {response!r}"
        )
        return False

    def enter_program_mode(self):
        """
        Switch the scanner into program mode ('PRG').

        Returns:
            bool: True if the scanner answered 'PRG,OK'.
        """
        if self.state is ScannerState.PROGRAM_MODE:
            return True
        if self.state is ScannerState.DISCONNECTED:
            self._update_status("ERROR: Not connected.", logging.ERROR)
            return False

        try:
            success = self._expect_ok(CMD_ENTER_PROGRAM)
        except ScannerError as e:
            self.last_error = e
            self._update_status(f"Enter program mode failed: {e}",
                                logging.ERROR)
            return False

        if success:
            self.state = ScannerState.PROGRAM_MODE
            self._update_status("Program mode entered.")
        return success

    def exit_program_mode(self):
        """
        Return the scanner to normal operation ('EPG').

        Returns:
            bool: True if the scanner answered 'EPG,OK' (or was not in
                  program mode while connected).
        """
        if self.state is ScannerState.CONNECTED:
            return True
        if self.state is ScannerState.DISCONNECTED:
            self._update_status("ERROR: Not connected.", logging.ERROR)
            return False

        try:
            success = self._expect_ok(CMD_EXIT_PROGRAM)
        except ScannerError as e:
            self.last_error = e
            self._update_status(f"Exit program mode failed: {e}",
                                logging.ERROR)
            return False

        if success:
            self.state = ScannerState.CONNECTED
            self._update_status("Program mode exited.")
        return success

    def _query_field(self, command):
        if not self.is_connected:
            raise ScannerConnectionError(
                f"Not connected to send '{command}'."
            )
        parts = self._exchange(command).split(',')
        return parts[1] if len(parts) > 1 else None

    def get_model_info(self):
        """
        Query the scanner model ('MDL').

        Returns:
            str or None: The model name, None if the response had no value.
        """
        return self._query_field(CMD_MODEL)

    def get_firmware_version(self):
        """
        Query the firmware version ('VER').

        Returns:
            str or None: The version text, None if the response had no value.
        """
        return self._query_field(CMD_VERSION)

    def _require_program_mode(self, operation):
        if self.state is not ScannerState.PROGRAM_MODE:
            raise NotInProgramMode(
                f"Must be in program mode to {operation} "
                f"(current state: {self.state.value})."
            )

    @staticmethod
    def _check_index(index):
        if isinstance(index, bool) or not isinstance(index, int) or \
           not MIN_CHANNEL <= index <= MAX_CHANNELS:
            raise ValidationError(
                f"Invalid channel number {index!r} "
                f"({MIN_CHANNEL}-{MAX_CHANNELS})."
            )

    def get_channel(self, index):
        """
        Read one memory channel.

        Args:
            index (int): Channel number, 1-500.

        Returns:
            Channel: The decoded channel.

        Raises:
            NotInProgramMode: If not in program mode (nothing is sent).
            ValidationError: If the index is out of range.
            ProtocolError: If the response cannot be decoded or belongs to a
                           different channel.
        """
        self._require_program_mode("read channels")
        self._check_index(index)

        response = self._exchange(f"{CHANNEL_COMMAND},{index}")
        try:
            channel = decode_channel(response)
            if channel.index != index:
                raise ProtocolError(
                    f"Requested channel {index} but scanner returned "
                    f"channel {channel.index}."
                )
        except ProtocolError:
            # Whatever else is buffered belongs to an earlier exchange
            self.link.discard_input()
            raise
        return channel

    def set_channel(self, channel):
        """
        Write one memory channel.

        Args:
            channel (Channel): The channel to store.

        Returns:
            bool: True if the scanner answered 'CIN,OK'.
        """
        self._require_program_mode("write channels")
        if not isinstance(channel, Channel):
            raise ValidationError(f"Not a channel: {channel!r}")

        success = self._expect_ok(encode_channel(channel))
        if success:
            LOG.debug("Channel %d stored.", channel.index)
        return success

    def delete_channel(self, index):
        """
        Clear one memory channel ('DCH').

        Returns:
            bool: True if the scanner answered 'DCH,OK'.
        """
        self._require_program_mode("delete channels")
        self._check_index(index)

        success = self._expect_ok(f"{CMD_DELETE_CHANNEL},{index}")
        if success:
            self._update_status(f"Channel {index} deleted.")
        return success

    def __enter__(self):
        """Context manager entry."""
        if not self.connect():
            raise self.last_error
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()
        return False  # Propagate exceptions
