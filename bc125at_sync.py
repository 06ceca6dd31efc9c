#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Full-memory read and write sweeps. A failure on one channel is logged and
the sweep moves on to the next, so one bad slot never costs the others.
"""

import logging

from bc125at_channels import (
    MAX_CHANNELS, MIN_CHANNEL, changed_channels, empty_channel
)
from bc125at_errors import ScannerError

LOG = logging.getLogger(__name__)

# Failures that only cost the current channel
ITEM_ERRORS = (ScannerError, OSError)


def _progress_reporter(scanner, progress):
    """Wrap the progress callback so its errors cannot stop a sweep."""
    callback = progress if progress is not None else scanner.progress_callback

    def report(current, total):
        if callback is None:
            return
        try:
            callback(current, total)
        except Exception:
            LOG.exception("Error in progress callback")

    return report


def read_all(scanner, progress=None):
    """
    Read channels 1-500 in order.

    Args:
        scanner (BC125AT_Scanner): A scanner in program mode.
        progress (callable, optional): progress(current, total), called after
            each channel. Defaults to the scanner's progress callback.

    Returns:
        list: Exactly 500 channels in ascending order. Channels that could
              not be read, including every channel when the scanner is not
              in program mode, are returned empty.
    """
    report = _progress_reporter(scanner, progress)

    channels = []
    failures = 0
    for index in range(MIN_CHANNEL, MAX_CHANNELS + 1):
        try:
            channels.append(scanner.get_channel(index))
        except ITEM_ERRORS as e:
            failures += 1
            LOG.warning("Failed to read channel %d: %s", index, e)
            channels.append(empty_channel(index))
        report(index, MAX_CHANNELS)

    LOG.info("Read %d channels (%d failed).", MAX_CHANNELS - failures, failures)
    return channels


def write_all(scanner, channels, progress=None):
    """
    Write channels to the scanner in list order.

    Only the first 500 entries are written; the rest are ignored.

    Args:
        scanner (BC125AT_Scanner): A scanner in program mode.
        channels (list): Channel instances.
        progress (callable, optional): progress(current, total), called after
            each attempt. Defaults to the scanner's progress callback.

    Returns:
        int: Number of channels the scanner accepted.
    """
    report = _progress_reporter(scanner, progress)

    to_write = list(channels)[:MAX_CHANNELS]
    total = len(to_write)
    successes = 0
    for current, channel in enumerate(to_write, start=1):
        try:
            if scanner.set_channel(channel):
                successes += 1
            else:
                LOG.warning("Scanner rejected channel %d.", channel.index)
        except ITEM_ERRORS as e:
            LOG.warning("Failed to write channel %s: %s",
                        getattr(channel, 'index', current), e)
        report(current, total)

    LOG.info("Programmed %d/%d channels.", successes, total)
    return successes


def write_changed(scanner, current, updated, progress=None):
    """
    Write only the channels whose contents differ from what the scanner holds.

    Args:
        scanner (BC125AT_Scanner): A scanner in program mode.
        current (list): Channels as last read from the scanner.
        updated (list): Desired channels.
        progress (callable, optional): As for write_all.

    Returns:
        tuple: (successes, attempted)
    """
    to_write = changed_channels(current, updated)[:MAX_CHANNELS]
    if not to_write:
        LOG.info("No channel changes to write.")
        return 0, 0
    return write_all(scanner, to_write, progress), len(to_write)
