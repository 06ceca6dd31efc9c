#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Channel memory model for the BC125AT scanner: the immutable Channel record,
helpers that keep a 500 entry channel list consistent, and the codec between
Channel records and the 'CIN' wire command.
"""

import dataclasses
import enum
import logging
import math

from bc125at_errors import ProtocolError, ValidationError
from bc125at_tones import TONE_NONE, is_known_tone

LOG = logging.getLogger(__name__)

# Memory layout
MIN_CHANNEL = 1
MAX_CHANNELS = 500
MAX_NAME_LENGTH = 16

# Frequencies are carried in 100 Hz units on the wire
HZ100_PER_MHZ = 10000
MIN_FREQUENCY_HZ100 = 25 * HZ100_PER_MHZ
MAX_FREQUENCY_HZ100 = 512 * HZ100_PER_MHZ

DELAY_VALUES = (-10, -5, 0, 1, 2, 3, 4, 5)

CHANNEL_COMMAND = "CIN"
CHANNEL_FIELD_COUNT = 9


class Modulation(str, enum.Enum):
    AUTO = "AUTO"
    AM = "AM"
    FM = "FM"
    NFM = "NFM"


def mhz_to_hz100(frequency_mhz):
    """Convert MHz to the wire's 100 Hz units, rounding to the nearest unit."""
    return int(round(float(frequency_mhz) * HZ100_PER_MHZ))


def hz100_to_mhz(frequency_hz100):
    return frequency_hz100 / HZ100_PER_MHZ


def format_frequency_mhz(frequency_hz100):
    """MHz text at 100 Hz resolution, or an empty string for 'no frequency'."""
    if not frequency_hz100:
        return ""
    return f"{hz100_to_mhz(frequency_hz100):.4f}"


@dataclasses.dataclass(frozen=True)
class Channel:
    """
    One scanner memory slot.

    Instances are validated on construction and never change afterwards;
    use replace() to derive an edited copy.
    """
    index: int
    name: str = ""
    frequency_hz100: int = 0
    modulation: Modulation = Modulation.AUTO
    tone: int = 0
    delay: int = 0
    lockout: bool = False
    priority: bool = False

    def __post_init__(self):
        if not isinstance(self.modulation, Modulation):
            try:
                modulation = Modulation(str(self.modulation).strip().upper())
            except ValueError:
                raise ValidationError(
                    f"Channel {self.index}: invalid modulation "
                    f"{self.modulation!r} (expected one of "
                    f"{', '.join(m.value for m in Modulation)})."
                ) from None
            object.__setattr__(self, 'modulation', modulation)
        object.__setattr__(self, 'lockout', bool(self.lockout))
        object.__setattr__(self, 'priority', bool(self.priority))

        if not _is_int(self.index) or \
           not MIN_CHANNEL <= self.index <= MAX_CHANNELS:
            raise ValidationError(
                f"Invalid channel number {self.index!r} "
                f"({MIN_CHANNEL}-{MAX_CHANNELS})."
            )
        if not isinstance(self.name, str) or len(self.name) > MAX_NAME_LENGTH:
            raise ValidationError(
                f"Channel {self.index}: name must be text of at most "
                f"{MAX_NAME_LENGTH} characters."
            )
        if not _is_int(self.frequency_hz100) or not (
                self.frequency_hz100 == 0 or
                MIN_FREQUENCY_HZ100 <= self.frequency_hz100
                <= MAX_FREQUENCY_HZ100):
            raise ValidationError(
                f"Channel {self.index}: frequency {self.frequency_hz100!r} "
                f"out of range (0 or 25-512 MHz)."
            )
        if not _is_int(self.tone) or not is_known_tone(self.tone):
            raise ValidationError(
                f"Channel {self.index}: unknown CTCSS/DCS code {self.tone!r}."
            )
        if not _is_int(self.delay) or self.delay not in DELAY_VALUES:
            raise ValidationError(
                f"Channel {self.index}: delay {self.delay!r} not one of "
                f"{DELAY_VALUES}."
            )

    @classmethod
    def from_mhz(cls, index, frequency_mhz, **fields):
        """Build a channel from a frequency given in MHz."""
        try:
            frequency_hz100 = mhz_to_hz100(frequency_mhz or 0)
        except (TypeError, ValueError, OverflowError):
            raise ValidationError(
                f"Channel {index}: invalid frequency {frequency_mhz!r}."
            ) from None
        return cls(index=index, frequency_hz100=frequency_hz100, **fields)

    @property
    def frequency_mhz(self):
        return hz100_to_mhz(self.frequency_hz100)

    @property
    def is_empty(self):
        return not self.name.strip() and self.frequency_hz100 == 0

    def replace(self, **changes):
        """Return a validated copy with the given fields changed."""
        return dataclasses.replace(self, **changes)


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


# --- Channel list helpers ---

def empty_channel(index):
    """The canonical empty channel for a memory slot."""
    return Channel(index=index)


def empty_channel_list():
    return [empty_channel(i) for i in range(MIN_CHANNEL, MAX_CHANNELS + 1)]


def normalize_channel_list(channels):
    """
    Build a complete channel list from any collection of channels.

    Later entries for the same index replace earlier ones, missing indices
    are filled with empty channels and the result is sorted by index.

    Args:
        channels (iterable): Channel instances.

    Returns:
        list: Exactly MAX_CHANNELS channels in ascending index order.
    """
    by_index = {}
    for channel in channels:
        if not isinstance(channel, Channel):
            raise ValidationError(f"Not a channel: {channel!r}")
        by_index[channel.index] = channel
    return [by_index.get(i) or empty_channel(i)
            for i in range(MIN_CHANNEL, MAX_CHANNELS + 1)]


def replace_channel(channels, channel):
    """Return a new list with the slot at channel.index replaced."""
    return normalize_channel_list(list(channels) + [channel])


def clear_channel(channels, index):
    """Return a new list with the given slot reset to an empty channel."""
    return replace_channel(channels, empty_channel(index))


def filter_channels(channels, text="", show_empty=False):
    """
    Select channels for display.

    Args:
        channels (iterable): Channels to filter.
        text (str): Case-insensitive text matched against the name or the
                    MHz frequency text. Empty matches everything.
        show_empty (bool): Include empty channels.

    Returns:
        list: Matching channels in their original order.
    """
    needle = (text or "").strip().lower()
    selected = []
    for channel in channels:
        if channel.is_empty and not show_empty:
            continue
        if needle and needle not in channel.name.lower() and \
           needle not in format_frequency_mhz(channel.frequency_hz100):
            continue
        selected.append(channel)
    return selected


def changed_channels(current, updated):
    """
    Channels of `updated` that differ from the same slot in `current`.

    Used to avoid rewriting memory slots that already hold the wanted data.
    """
    current_by_index = {ch.index: ch for ch in current}
    return [ch for ch in updated if current_by_index.get(ch.index) != ch]


# --- Wire codec ---

def channel_to_fields(channel):
    """Positional 'CIN' fields for a channel, command tag included."""
    return [
        CHANNEL_COMMAND,
        str(channel.index),
        channel.name,
        str(channel.frequency_hz100),
        channel.modulation.value,
        str(channel.tone),
        str(channel.delay),
        '1' if channel.lockout else '0',
        '1' if channel.priority else '0',
    ]


def encode_channel(channel):
    """
    Build the 'CIN' set command for a channel.

    The name is sent as-is: it must not contain ',' or a carriage return.
    """
    return ','.join(channel_to_fields(channel))


def clamp_delay(value):
    """Snap a delay read from the wire to the nearest allowed value."""
    return min(DELAY_VALUES, key=lambda allowed: abs(allowed - value))


def decode_channel(response, tag=CHANNEL_COMMAND):
    """
    Parse a 'CIN' response into a Channel.

    Args:
        response (str): Response line without terminator.
        tag (str): Expected command tag in the first field.

    Returns:
        Channel: The decoded channel.

    Raises:
        ProtocolError: If the response is malformed. No partial channel is
                       ever returned.
    """
    parts = (response or "").split(',')
    if len(parts) < CHANNEL_FIELD_COUNT or parts[0] != tag:
        raise ProtocolError(f"Unexpected channel response: {response!r}")

    # The six trailing fields are fixed, so commas in a name are recoverable
    name = ','.join(parts[2:-6])
    freq_str, mod_str, tone_str, delay_str, lockout_str, priority_str = \
        parts[-6:]

    try:
        index = int(parts[1])
        if len(name) > MAX_NAME_LENGTH:
            LOG.warning("Channel %d: name %r truncated to %d characters.",
                        index, name, MAX_NAME_LENGTH)
            name = name[:MAX_NAME_LENGTH]
        tone = int(tone_str)
        if not is_known_tone(tone):
            LOG.warning("Channel %d: unknown CTCSS/DCS code %d read as NONE.",
                        index, tone)
            tone = TONE_NONE
        delay = float(delay_str)
        if not math.isfinite(delay):
            raise ValueError(f"delay {delay_str!r} is not a number")
        clamped = clamp_delay(delay)
        if clamped != delay:
            LOG.warning("Channel %d: delay %s clamped to %d.",
                        index, delay_str, clamped)
        return Channel(
            index=index,
            name=name,
            frequency_hz100=int(freq_str),
            modulation=Modulation(mod_str.strip().upper()),
            tone=tone,
            delay=clamped,
            lockout=int(lockout_str) == 1,
            priority=int(priority_str) == 1,
        )
    except ValueError as e:
        raise ProtocolError(
            f"Could not decode channel response {response!r}: {e}"
        ) from e
