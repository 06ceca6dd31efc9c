#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
CSV export and import of BC125AT channel lists.
"""

import csv
import io
import logging

from bc125at_channels import (
    MAX_NAME_LENGTH, Channel, format_frequency_mhz, normalize_channel_list
)
from bc125at_errors import ValidationError
from bc125at_tones import parse_tone, render_tone

LOG = logging.getLogger(__name__)

CSV_HEADER = [
    'Channel', 'Name', 'Frequency_MHz', 'Modulation',
    'CTCSS_DCS', 'Delay', 'Lockout', 'Priority'
]

YES = "Yes"
NO = "No"
_TRUE_TEXT = {'yes', 'y', 'true', '1'}


def channel_to_row(channel):
    """CSV row for a channel, in CSV_HEADER order."""
    return [
        channel.index,
        channel.name,
        format_frequency_mhz(channel.frequency_hz100),
        channel.modulation.value,
        render_tone(channel.tone),
        channel.delay,
        YES if channel.lockout else NO,
        YES if channel.priority else NO,
    ]


def row_to_channel(row):
    """
    Build a channel from a CSV row.

    Raises:
        ValidationError: If a value cannot be converted or is out of range.
    """
    cells = [cell.strip() for cell in row[:len(CSV_HEADER)]]
    index_str, _, freq_str, mod_str, tone_str, delay_str, lockout, priority = \
        cells
    name = row[1]

    try:
        index = int(index_str)
    except ValueError:
        raise ValidationError(f"Invalid channel number {index_str!r}.") from None

    if len(name) > MAX_NAME_LENGTH:
        LOG.warning("Channel %d: name %r truncated to %d characters.",
                    index, name, MAX_NAME_LENGTH)
        name = name[:MAX_NAME_LENGTH]

    try:
        delay_value = float(delay_str) if delay_str else 0.0
    except ValueError:
        raise ValidationError(
            f"Channel {index}: invalid delay {delay_str!r}."
        ) from None
    if not delay_value.is_integer():
        raise ValidationError(f"Channel {index}: invalid delay {delay_str!r}.")

    return Channel.from_mhz(
        index,
        freq_str or 0,
        name=name,
        modulation=mod_str or "AUTO",
        tone=parse_tone(tone_str),
        delay=int(delay_value),
        lockout=lockout.lower() in _TRUE_TEXT,
        priority=priority.lower() in _TRUE_TEXT,
    )


def export_csv(channels, csvfile):
    """
    Write channels (sorted by index) with a header row.

    Args:
        channels (iterable): Channel instances.
        csvfile: A text file object opened with newline=''.

    Returns:
        int: Number of channel rows written.
    """
    writer = csv.writer(csvfile)
    writer.writerow(CSV_HEADER)
    count = 0
    for channel in sorted(channels, key=lambda ch: ch.index):
        writer.writerow(channel_to_row(channel))
        count += 1
    return count


def export_csv_text(channels):
    buffer = io.StringIO(newline='')
    export_csv(channels, buffer)
    return buffer.getvalue()


def save_csv(channels, filename):
    """Export channels to a UTF-8 CSV file. Returns the row count."""
    with open(filename, 'w', newline='', encoding='utf-8') as csvfile:
        return export_csv(channels, csvfile)


def import_csv(csvfile, existing=None):
    """
    Read channels from CSV and merge them into an existing list.

    Rows with fewer than 8 columns, an empty channel number or invalid values
    are skipped. Unknown tone text imports as NONE.

    Args:
        csvfile: A text file object (or any iterable of lines).
        existing (list, optional): Current channels; imported rows replace
                                   the entries with the same index.

    Returns:
        list: Exactly 500 channels in ascending index order.
    """
    by_index = {ch.index: ch for ch in (existing or [])}
    imported = 0
    skipped = 0

    for line_num, row in enumerate(csv.reader(csvfile), start=1):
        if len(row) < len(CSV_HEADER) or not row[0].strip():
            if any(cell.strip() for cell in row):
                skipped += 1
            continue
        if row[0].strip().lstrip('\ufeff').lower() == CSV_HEADER[0].lower():
            continue

        try:
            channel = row_to_channel(row)
        except ValidationError as e:
            skipped += 1
            LOG.warning("Row %d: skipped (%s)", line_num, e)
            continue

        by_index[channel.index] = channel
        imported += 1

    LOG.info("Imported %d channels from CSV (%d rows skipped).",
             imported, skipped)
    return normalize_channel_list(by_index.values())


def import_csv_text(text, existing=None):
    return import_csv(io.StringIO(text, newline=''), existing)


def load_csv(filename, existing=None):
    """Import channels from a CSV file, tolerating a UTF-8 byte order mark."""
    with open(filename, 'r', newline='', encoding='utf-8-sig') as csvfile:
        return import_csv(csvfile, existing)
