#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Exception types raised by the BC125AT memory manager backend.
"""


class ScannerError(Exception):
    """Base class for all scanner related errors."""


class ScannerConnectionError(ScannerError):
    """The serial port could not be opened, or is not open."""


class NotInProgramMode(ScannerError):
    """A memory command was attempted outside of program mode."""


class ProtocolError(ScannerError):
    """Malformed or unexpected response, or the link dropped mid-read."""


class ResponseTimeout(ProtocolError):
    """No complete response line arrived within the configured timeout."""


class ValidationError(ScannerError, ValueError):
    """A channel field is outside its modeled range."""
