#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
CTCSS/DCS tone code tables for the BC125AT and the conversion between the
integer codes used on the wire and their human readable text.
"""

import re

# Reserved codes
TONE_NONE = 0
TONE_SEARCH = 127
TONE_NO_TONE = 240

SENTINEL_TONES = {
    TONE_NONE: "NONE",
    TONE_SEARCH: "SEARCH",
    TONE_NO_TONE: "NO_TONE",
}

# Firmware CTCSS table, code -> frequency in Hz
CTCSS_TONES = {
    64: 67.0, 65: 69.3, 66: 71.9, 67: 74.4, 68: 77.0, 69: 79.7, 70: 82.5,
    71: 85.4, 72: 88.5, 73: 91.5, 74: 94.8, 75: 97.4, 76: 100.0, 77: 103.5,
    78: 107.2, 79: 110.9, 80: 114.8, 81: 118.8, 82: 123.0, 83: 127.3,
    84: 131.8, 85: 136.5, 86: 141.3, 87: 146.2, 88: 151.4, 89: 156.7,
    90: 159.8, 91: 162.2, 92: 165.5, 93: 167.9, 94: 171.3, 95: 173.8,
    96: 177.3, 97: 179.9, 98: 183.5, 99: 186.2, 100: 189.9, 101: 192.8,
    102: 196.6, 103: 199.5, 104: 203.5, 105: 206.5, 106: 210.7, 107: 218.1,
    108: 225.7, 109: 229.1, 110: 233.6, 111: 241.8, 112: 250.3, 113: 254.1
}

# Firmware DCS table, code -> three digit DCS code
DCS_CODES = {
    128: '023', 129: '025', 130: '026', 131: '031', 132: '032', 133: '036',
    134: '043', 135: '047', 136: '051', 137: '053', 138: '054', 139: '065',
    140: '071', 141: '072', 142: '073', 143: '074', 144: '114', 145: '115',
    146: '116', 147: '122', 148: '125', 149: '131', 150: '132', 151: '134',
    152: '143', 153: '145', 154: '152', 155: '155', 156: '156', 157: '162',
    158: '165', 159: '172', 160: '174', 161: '205', 162: '212', 163: '223',
    164: '225', 165: '226', 166: '243', 167: '244', 168: '245', 169: '246',
    170: '251', 171: '252', 172: '255', 173: '261', 174: '263', 175: '265',
    176: '266', 177: '271', 178: '274', 179: '306', 180: '311', 181: '315',
    182: '325', 183: '331', 184: '332', 185: '343', 186: '346', 187: '351',
    188: '356', 189: '364', 190: '365', 191: '371', 192: '411', 193: '412',
    194: '413', 195: '423', 196: '431', 197: '432', 198: '445', 199: '446',
    200: '452', 201: '454', 202: '455', 203: '462', 204: '464', 205: '465',
    206: '466', 207: '503', 208: '506', 209: '516', 210: '523', 211: '526',
    212: '532', 213: '546', 214: '565', 215: '606', 216: '612', 217: '624',
    218: '627', 219: '631', 220: '632', 221: '654', 222: '662', 223: '664',
    224: '703', 225: '712', 226: '723', 227: '731', 228: '732', 229: '734',
    230: '743', 231: '754'
}

CTCSS_TOLERANCE_HZ = 0.1

_SENTINEL_TEXT_TO_CODE = {v: k for k, v in SENTINEL_TONES.items()}
_DCS_TO_CODE = {v: k for k, v in DCS_CODES.items()}
_CTCSS_RE = re.compile(r'(\d+(?:\.\d*)?)\s*HZ')
_DCS_RE = re.compile(r'DCS\s*(\d{3})\b')


def render_tone(code):
    """
    Convert a tone code to display text.

    Args:
        code (int): Tone code as sent by the scanner.

    Returns:
        str: 'NONE'/'SEARCH'/'NO_TONE', '<freq>Hz' for CTCSS, 'DCS <digits>'
             for DCS, or 'UNKNOWN' for codes missing from both tables.
    """
    if code in SENTINEL_TONES:
        return SENTINEL_TONES[code]
    if code in CTCSS_TONES:
        return f"{CTCSS_TONES[code]:.1f}Hz"
    if code in DCS_CODES:
        return f"DCS {DCS_CODES[code]}"
    return "UNKNOWN"


def parse_tone(text):
    """
    Convert display text back to a tone code.

    CTCSS text is matched against the nearest table frequency (within
    CTCSS_TOLERANCE_HZ), DCS text by exact digit match. Anything that cannot
    be resolved yields TONE_NONE instead of raising.

    Args:
        text (str): Text as produced by render_tone (case and surrounding
                    whitespace are ignored).

    Returns:
        int: The tone code.
    """
    if not text:
        return TONE_NONE
    text = text.strip().upper()

    if text in _SENTINEL_TEXT_TO_CODE:
        return _SENTINEL_TEXT_TO_CODE[text]

    dcs_match = _DCS_RE.search(text)
    if dcs_match:
        return _DCS_TO_CODE.get(dcs_match.group(1), TONE_NONE)

    ctcss_match = _CTCSS_RE.search(text)
    if ctcss_match:
        freq = float(ctcss_match.group(1))
        code, table_freq = min(
            CTCSS_TONES.items(), key=lambda item: abs(item[1] - freq)
        )
        if abs(table_freq - freq) <= CTCSS_TOLERANCE_HZ + 1e-9:
            return code

    return TONE_NONE


def is_known_tone(code):
    """True if the code is a sentinel or present in the CTCSS/DCS tables."""
    return code in SENTINEL_TONES or code in CTCSS_TONES or code in DCS_CODES


def tone_choices():
    """
    List every selectable tone in picker order.

    Returns:
        list: (code, text) tuples, sentinels first, then CTCSS, then DCS.
    """
    choices = [(code, render_tone(code)) for code in
               (TONE_NONE, TONE_SEARCH, TONE_NO_TONE)]
    choices.extend((code, render_tone(code)) for code in sorted(CTCSS_TONES))
    choices.extend((code, render_tone(code)) for code in sorted(DCS_CODES))
    return choices
