"""
Decoder for common remark groups following RMK.

Only the groups US stations report on nearly every observation are
interpreted; anything else is skipped. The raw remarks text in the
DecodedReport is never modified.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from metar_decoder import DESCRIPTOR_TRANSLATION, WEATHER_TRANSLATION

RE_RMK_AO = re.compile(r'^AO(?P<kind>[12])$')
RE_RMK_SLP = re.compile(r'^SLP(?P<val>\d{3})$')
RE_RMK_PRECIP = re.compile(r'^P(?P<val>\d{4})$')
RE_RMK_T = re.compile(r'^T(?P<tsign>[01])(?P<temp>\d{3})(?:(?P<dsign>[01])(?P<dew>\d{3}))?$')
RE_RMK_WX_EVENT = re.compile(r'^(?P<wx>[A-Z]{2})(?P<events>(?:[BE](?:\d{4}|\d{2}))+)$')
RE_RMK_EVENT = re.compile(r'(?P<kind>[BE])(?P<time>\d{4}|\d{2})')

# weather that can begin/end: every phenomenon plus thunderstorms
_event_names = dict(WEATHER_TRANSLATION, TS=DESCRIPTOR_TRANSLATION['TS'])

STATION_TYPES = {
    '1': 'Automated station without precipitation discriminator',
    '2': 'Automated station with precipitation discriminator',
}


@dataclass(frozen=True)
class RemarkItem:
    code: str
    description: str


def sea_level_pressure(value: str) -> float:
    """SLP groups drop the leading 9 or 10: 132 -> 1013.2, 982 -> 998.2."""
    tenths = int(value) / 10.0
    base = 1000 if int(value) < 500 else 900
    return round(base + tenths, 1)


def _tenths(sign: str, digits: str) -> float:
    value = int(digits) / 10.0
    return -value if sign == '1' else value


def _event_time(time: str) -> str:
    if len(time) == 2:
        return f"{int(time)} minutes past the hour"
    return f"{time[:2]}:{time[2:]}Z"


def _decode_group(group: str) -> Optional[RemarkItem]:
    m = RE_RMK_AO.match(group)
    if m:
        return RemarkItem(group, STATION_TYPES[m.group('kind')])

    m = RE_RMK_SLP.match(group)
    if m:
        return RemarkItem(group, f"Sea level pressure {sea_level_pressure(m.group('val')):.1f} hPa")

    m = RE_RMK_PRECIP.match(group)
    if m:
        hundredths = int(m.group('val'))
        if hundredths == 0:
            return RemarkItem(group, 'Trace or no precipitation in the past hour')
        return RemarkItem(group, f"Precipitation in the past hour: {hundredths / 100:.2f} in")

    m = RE_RMK_T.match(group)
    if m:
        text = f"Precise temperature {_tenths(m.group('tsign'), m.group('temp')):.1f}°C"
        if m.group('dew'):
            text += f", dewpoint {_tenths(m.group('dsign'), m.group('dew')):.1f}°C"
        return RemarkItem(group, text)

    m = RE_RMK_WX_EVENT.match(group)
    name = _event_names.get(m.group('wx')) if m else None
    if name:
        parts = []
        for event in RE_RMK_EVENT.finditer(m.group('events')):
            verb = 'began' if event.group('kind') == 'B' else 'ended'
            parts.append(f"{verb} at {_event_time(event.group('time'))}")
        return RemarkItem(group, f"{name.capitalize()} " + ', '.join(parts))

    if group == '$':
        return RemarkItem(group, 'Automated station needs maintenance')
    return None


def decode_remarks(remarks: Optional[str]) -> List[RemarkItem]:
    """Interpret the known groups of a remarks string, in order."""
    if not remarks:
        return []
    items = []
    for group in remarks.split():
        item = _decode_group(group)
        if item:
            items.append(item)
    return items
