"""
METAR decoder built on the standard library and regular expressions.

Turns a raw METAR/SPECI report into a DecodedReport:
- station, observation time, AUTO/COR/NIL flags
- wind (including gusts, VRB and the dddVddd variable range)
- visibility in statute miles (fractions, M/P qualifiers, 9999, CAVOK)
- present weather, cloud layers, vertical visibility
- temperature/dewpoint, altimeter (A and Q groups)
- trend section and raw remarks

Groups that cannot be decoded are left out of the result instead of
failing the whole report. The only hard error is an empty report.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

VARIABLE = 'VRB'

REPORT_TYPES = ('METAR', 'SPECI')

# Code translation tables
WEATHER_TRANSLATION = {
    'DZ': 'drizzle', 'RA': 'rain', 'SN': 'snow', 'SG': 'snow grains', 'IC': 'ice crystals',
    'PL': 'ice pellets', 'GR': 'hail', 'GS': 'small hail/snow pellets', 'UP': 'unknown precipitation',
    'FG': 'fog', 'BR': 'mist', 'SA': 'sand', 'DU': 'widespread dust', 'HZ': 'haze', 'FU': 'smoke',
    'VA': 'volcanic ash', 'PY': 'spray', 'PO': 'dust/sand whirls', 'SQ': 'squalls',
    'FC': 'funnel cloud', 'SS': 'sandstorm', 'DS': 'dust storm',
}

DESCRIPTOR_TRANSLATION = {
    'MI': 'shallow', 'PR': 'partial', 'BC': 'patches of', 'DR': 'low drifting',
    'BL': 'blowing', 'SH': 'showers of', 'TS': 'thunderstorm', 'FZ': 'freezing',
}

CLOUD_TRANSLATION = {
    'FEW': 'Few', 'SCT': 'Scattered', 'BKN': 'Broken', 'OVC': 'Overcast',
    'CLR': 'Clear below 12,000 feet', 'SKC': 'Sky clear',
    'NSC': 'No significant cloud', 'NCD': 'No cloud detected',
}

CLOUD_TYPE_TRANSLATION = {'CB': 'cumulonimbus', 'TCU': 'towering cumulus'}

DESCRIPTORS = tuple(DESCRIPTOR_TRANSLATION)
PHENOMENA = tuple(WEATHER_TRANSLATION)

# Regular expressions
RE_STATION = re.compile(r'^[A-Z][A-Z0-9]{3}$')
RE_TIME = re.compile(r'^(?P<day>\d{2})(?P<hour>\d{2})(?P<minute>\d{2})Z$')
# Wind-shaped tokens; numeric parts are validated separately so that a
# garbled group such as 18O10KT is recognised as wind and dropped.
RE_WIND = re.compile(r'^(?P<dir>VRB|[0-9O/]{3})(?P<speed>[0-9O/]{2,3})(?:G(?P<gust>[0-9O/]{2,3}))?KT$')
RE_WIND_VAR = re.compile(r'^(?P<lo>\d{3})V(?P<hi>\d{3})$')
RE_VIS_SM = re.compile(r'^(?P<qual>[MP])?(?:(?P<whole>\d{1,2})|(?P<num>\d{1,2})/(?P<den>\d{1,2}))SM$')
RE_VIS_WHOLE = re.compile(r'^\d$')
RE_VIS_METERS = re.compile(r'^\d{4}$')
RE_WEATHER = re.compile(
    r'^(?P<intensity>[-+])?(?P<vicinity>VC)?'
    r'(?P<descriptor>' + '|'.join(DESCRIPTORS) + r')?'
    r'(?P<phenomena>(?:' + '|'.join(PHENOMENA) + r')*)$'
)
RE_CLOUD = re.compile(r'^(?P<coverage>FEW|SCT|BKN|OVC|CLR|SKC|NSC|NCD)(?P<height>\d{3})?(?P<type>CB|TCU)?$')
RE_VERTICAL_VIS = re.compile(r'^VV(?P<height>\d{3})$')
RE_TEMP_DEW = re.compile(r'^(?P<temp>M?\d{2})/(?P<dew>\S*)$')
RE_TEMP_VALUE = re.compile(r'^M?\d{2}$')
RE_ALTIMETER = re.compile(r'^A(?P<val>\d{4})$')
RE_QNH = re.compile(r'^Q(?P<val>\d{4})$')
RE_TREND = re.compile(r'^(?:NOSIG|BECMG|TEMPO|PROB\d{2}|FM\d{4}|TL\d{4}|AT\d{4})$')


class DecodeError(ValueError):
    """Raised when a report cannot be decoded at all."""


class EmptyReportError(DecodeError):
    """The report is empty or contains no tokens."""

    def __init__(self, message: str = 'no report to decode'):
        super().__init__(message)


class Intensity(Enum):
    LIGHT = 'light'
    MODERATE = 'moderate'
    HEAVY = 'heavy'


class Coverage(Enum):
    FEW = 'few'
    SCATTERED = 'scattered'
    BROKEN = 'broken'
    OVERCAST = 'overcast'
    CLEAR = 'clear'
    SKY_CLEAR = 'sky_clear'
    NO_SIGNIFICANT_CLOUD = 'no_significant_cloud'
    NO_CLOUD_DETECTED = 'no_cloud_detected'


class CloudType(Enum):
    CUMULONIMBUS = 'cumulonimbus'
    TOWERING_CUMULUS = 'towering_cumulus'


COVERAGE_CODES = {
    'FEW': Coverage.FEW, 'SCT': Coverage.SCATTERED, 'BKN': Coverage.BROKEN,
    'OVC': Coverage.OVERCAST, 'CLR': Coverage.CLEAR, 'SKC': Coverage.SKY_CLEAR,
    'NSC': Coverage.NO_SIGNIFICANT_CLOUD, 'NCD': Coverage.NO_CLOUD_DETECTED,
}

CLOUD_TYPE_CODES = {'CB': CloudType.CUMULONIMBUS, 'TCU': CloudType.TOWERING_CUMULUS}

INTENSITY_CODES = {'-': Intensity.LIGHT, '+': Intensity.HEAVY, None: Intensity.MODERATE}


@dataclass(frozen=True)
class ObservationTime:
    """Day of month and UTC time of the observation, as reported."""

    day: int
    hour: int
    minute: int

    def __str__(self) -> str:
        return f"{self.day:02d}{self.hour:02d}{self.minute:02d}Z"


@dataclass(frozen=True)
class Wind:
    """
    Surface wind.

    direction is degrees (0-360) or VARIABLE for VRB winds.
    variable_range is the (lo, hi) pair from a dddVddd group.
    """

    direction: Union[int, str]
    speed_kt: int
    gust_kt: Optional[int] = None
    variable_range: Optional[Tuple[int, int]] = None

    @property
    def is_variable(self) -> bool:
        return self.direction == VARIABLE

    @property
    def is_calm(self) -> bool:
        return self.direction == 0 and self.speed_kt == 0


@dataclass(frozen=True)
class Visibility:
    """Prevailing visibility in statute miles."""

    statute_miles: float
    # 'less_than' (M prefix) or 'greater_than' (P prefix)
    qualifier: Optional[str] = None

    @property
    def is_unlimited(self) -> bool:
        return self.statute_miles >= 10


@dataclass(frozen=True)
class WeatherPhenomenon:
    intensity: Intensity
    phenomena: Tuple[str, ...]
    descriptor: Optional[str] = None
    vicinity: bool = False
    raw: str = ''


@dataclass(frozen=True)
class CloudLayer:
    coverage: Coverage
    height_ft: Optional[int] = None
    cloud_type: Optional[CloudType] = None


@dataclass(frozen=True)
class DecodedReport:
    """
    Structured METAR.

    Every field except raw_text is optional: None (or an empty list)
    means the group was not present in the report or could not be
    decoded.
    """

    raw_text: str
    station: Optional[str] = None
    observation_time: Optional[ObservationTime] = None
    report_type: Optional[str] = None
    auto: bool = False
    corrected: bool = False
    nil: bool = False
    wind: Optional[Wind] = None
    visibility: Optional[Visibility] = None
    visibility_m: Optional[int] = None
    cavok: bool = False
    present_weather: List[WeatherPhenomenon] = field(default_factory=list)
    cloud_layers: List[CloudLayer] = field(default_factory=list)
    vertical_visibility_ft: Optional[int] = None
    temperature_c: Optional[int] = None
    dewpoint_c: Optional[int] = None
    altimeter_inhg: Optional[float] = None
    altimeter_hpa: Optional[int] = None
    trend: Optional[str] = None
    remarks: Optional[str] = None

    @property
    def normalized_text(self) -> str:
        return ' '.join(self.raw_text.split())

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation; enums become their string values."""
        wind = None
        if self.wind:
            wind = {
                'direction': self.wind.direction,
                'speed_kt': self.wind.speed_kt,
                'gust_kt': self.wind.gust_kt,
                'variable_range': list(self.wind.variable_range) if self.wind.variable_range else None,
            }
        visibility = None
        if self.visibility:
            visibility = {
                'statute_miles': self.visibility.statute_miles,
                'qualifier': self.visibility.qualifier,
                'unlimited': self.visibility.is_unlimited,
            }
        return {
            'raw_text': self.raw_text,
            'station': self.station,
            'observation_time': {
                'day': self.observation_time.day,
                'hour': self.observation_time.hour,
                'minute': self.observation_time.minute,
            } if self.observation_time else None,
            'report_type': self.report_type,
            'auto': self.auto,
            'corrected': self.corrected,
            'nil': self.nil,
            'wind': wind,
            'visibility': visibility,
            'visibility_m': self.visibility_m,
            'cavok': self.cavok,
            'present_weather': [
                {
                    'intensity': w.intensity.value,
                    'vicinity': w.vicinity,
                    'descriptor': w.descriptor,
                    'phenomena': list(w.phenomena),
                    'raw': w.raw,
                }
                for w in self.present_weather
            ],
            'cloud_layers': [
                {
                    'coverage': c.coverage.value,
                    'height_ft': c.height_ft,
                    'cloud_type': c.cloud_type.value if c.cloud_type else None,
                }
                for c in self.cloud_layers
            ],
            'vertical_visibility_ft': self.vertical_visibility_ft,
            'temperature_c': self.temperature_c,
            'dewpoint_c': self.dewpoint_c,
            'altimeter_inhg': self.altimeter_inhg,
            'altimeter_hpa': self.altimeter_hpa,
            'trend': self.trend,
            'remarks': self.remarks,
        }


def _signed(value: str) -> int:
    """M12 -> -12"""
    if value.startswith('M'):
        return -int(value[1:])
    return int(value)


class MetarDecoder:
    """
    Token classifier for METAR reports.

    Each matcher gets the token list and the current index and returns
    the number of tokens it consumed, 0 meaning "not mine". Matchers are
    tried in order and the first one that consumes wins; tokens nobody
    claims are skipped.
    """

    def __init__(self):
        self._matchers = (
            self._match_remarks,
            self._match_trend,
            self._match_station,
            self._match_time,
            self._match_flags,
            self._match_wind,
            self._match_wind_range,
            self._match_visibility,
            self._match_weather,
            self._match_cloud,
            self._match_vertical_visibility,
            self._match_temperature,
            self._match_altimeter,
        )

    def decode(self, metar: str) -> DecodedReport:
        tokens = self._tokenize(metar)
        if not tokens:
            raise EmptyReportError()

        fields: Dict[str, Any] = {'present_weather': [], 'cloud_layers': []}
        start = 0
        if tokens[0] in REPORT_TYPES:
            fields['report_type'] = tokens[0]
            start = 1
        fields['_start'] = start

        i = start
        while i < len(tokens):
            consumed = 0
            for matcher in self._matchers:
                consumed = matcher(tokens, i, fields)
                if consumed:
                    break
            i += consumed or 1

        return self._assemble(metar, fields)

    def pretty(self, decoded: DecodedReport) -> str:
        from metar_format import pretty
        return pretty(decoded)

    @staticmethod
    def _tokenize(metar: Optional[str]) -> Tuple[str, ...]:
        if not metar:
            return ()
        tokens = metar.split()
        # end-of-message marker, only when attached to a group
        if tokens and tokens[-1].rstrip('='):
            tokens[-1] = tokens[-1].rstrip('=')
        return tuple(tokens)

    # --- matchers ---

    def _match_remarks(self, tokens, i, fields) -> int:
        if tokens[i] != 'RMK':
            return 0
        fields['remarks'] = ' '.join(tokens[i + 1:])
        return len(tokens) - i

    def _match_trend(self, tokens, i, fields) -> int:
        if not RE_TREND.match(tokens[i]):
            return 0
        end = i
        while end < len(tokens) and tokens[end] != 'RMK':
            end += 1
        if 'trend' not in fields:
            fields['trend'] = ' '.join(tokens[i:end])
        return end - i

    def _match_station(self, tokens, i, fields) -> int:
        if i != fields['_start'] or not RE_STATION.match(tokens[i]):
            return 0
        fields['station'] = tokens[i]
        return 1

    def _match_time(self, tokens, i, fields) -> int:
        m = RE_TIME.match(tokens[i])
        if not m or 'observation_time' in fields:
            return 0
        day, hour, minute = int(m.group('day')), int(m.group('hour')), int(m.group('minute'))
        if 1 <= day <= 31 and hour <= 23 and minute <= 59:
            fields['observation_time'] = ObservationTime(day, hour, minute)
        else:
            fields['observation_time'] = None
        return 1

    def _match_flags(self, tokens, i, fields) -> int:
        flag = {'AUTO': 'auto', 'COR': 'corrected', 'NIL': 'nil'}.get(tokens[i])
        if not flag:
            return 0
        fields[flag] = True
        return 1

    def _match_wind(self, tokens, i, fields) -> int:
        m = RE_WIND.match(tokens[i])
        if not m or 'wind' in fields:
            return 0
        fields['wind'] = self._parse_wind(m)
        return 1

    @staticmethod
    def _parse_wind(m) -> Optional[Dict[str, Any]]:
        direction, speed, gust = m.group('dir'), m.group('speed'), m.group('gust')
        if not speed.isdigit() or (gust is not None and not gust.isdigit()):
            return None
        if direction != VARIABLE:
            if not direction.isdigit() or int(direction) > 360:
                return None
            direction = int(direction)
        speed = int(speed)
        if gust is not None:
            gust = int(gust)
            if gust <= speed:
                return None
        return {'direction': direction, 'speed_kt': speed, 'gust_kt': gust}

    def _match_wind_range(self, tokens, i, fields) -> int:
        m = RE_WIND_VAR.match(tokens[i])
        if not m or 'wind_range' in fields:
            return 0
        lo, hi = int(m.group('lo')), int(m.group('hi'))
        fields['wind_range'] = (lo, hi) if lo <= 360 and hi <= 360 else None
        return 1

    def _match_visibility(self, tokens, i, fields) -> int:
        if 'visibility' in fields or 'visibility_m' in fields:
            return 0
        token = tokens[i]

        if token == 'CAVOK':
            fields['cavok'] = True
            fields['visibility'] = Visibility(10.0)
            return 1

        # 1 1/2SM is written as two groups
        if RE_VIS_WHOLE.match(token) and i + 1 < len(tokens):
            m = RE_VIS_SM.match(tokens[i + 1])
            if m and m.group('num') and not m.group('qual'):
                fraction = self._fraction(m.group('num'), m.group('den'))
                fields['visibility'] = Visibility(int(token) + fraction) if fraction is not None else None
                return 2

        m = RE_VIS_SM.match(token)
        if m:
            if m.group('whole'):
                miles = float(m.group('whole'))
            else:
                miles = self._fraction(m.group('num'), m.group('den'))
            qualifier = {'M': 'less_than', 'P': 'greater_than'}.get(m.group('qual'))
            fields['visibility'] = Visibility(miles, qualifier) if miles is not None else None
            return 1

        if RE_VIS_METERS.match(token):
            if token == '9999':
                fields['visibility'] = Visibility(10.0)
            else:
                fields['visibility_m'] = int(token)
            return 1
        return 0

    @staticmethod
    def _fraction(num: str, den: str) -> Optional[float]:
        if int(den) == 0:
            return None
        return int(num) / int(den)

    def _match_weather(self, tokens, i, fields) -> int:
        m = RE_WEATHER.match(tokens[i])
        if not m or not (m.group('descriptor') or m.group('phenomena')):
            return 0
        phenomena = m.group('phenomena')
        fields['present_weather'].append(WeatherPhenomenon(
            intensity=INTENSITY_CODES[m.group('intensity')],
            phenomena=tuple(phenomena[j:j + 2] for j in range(0, len(phenomena), 2)),
            descriptor=m.group('descriptor'),
            vicinity=bool(m.group('vicinity')),
            raw=tokens[i],
        ))
        return 1

    def _match_cloud(self, tokens, i, fields) -> int:
        m = RE_CLOUD.match(tokens[i])
        if not m:
            return 0
        height = m.group('height')
        fields['cloud_layers'].append(CloudLayer(
            coverage=COVERAGE_CODES[m.group('coverage')],
            height_ft=int(height) * 100 if height else None,
            cloud_type=CLOUD_TYPE_CODES.get(m.group('type')),
        ))
        return 1

    def _match_vertical_visibility(self, tokens, i, fields) -> int:
        m = RE_VERTICAL_VIS.match(tokens[i])
        if not m or 'vertical_visibility_ft' in fields:
            return 0
        fields['vertical_visibility_ft'] = int(m.group('height')) * 100
        return 1

    def _match_temperature(self, tokens, i, fields) -> int:
        m = RE_TEMP_DEW.match(tokens[i])
        if not m or 'temperature_c' in fields:
            return 0
        fields['temperature_c'] = _signed(m.group('temp'))
        dew = m.group('dew')
        fields['dewpoint_c'] = _signed(dew) if RE_TEMP_VALUE.match(dew) else None
        return 1

    def _match_altimeter(self, tokens, i, fields) -> int:
        m = RE_ALTIMETER.match(tokens[i])
        if m:
            if 'altimeter_inhg' in fields:
                return 0
            fields['altimeter_inhg'] = int(m.group('val')) / 100.0
            return 1
        m = RE_QNH.match(tokens[i])
        if m:
            if 'altimeter_hpa' in fields:
                return 0
            fields['altimeter_hpa'] = int(m.group('val'))
            return 1
        return 0

    @staticmethod
    def _assemble(metar: str, fields: Dict[str, Any]) -> DecodedReport:
        wind = fields.pop('wind', None)
        wind_range = fields.pop('wind_range', None)
        fields.pop('_start', None)
        if wind:
            fields['wind'] = Wind(variable_range=wind_range, **wind)
        return DecodedReport(raw_text=metar, **fields)


_decoder = MetarDecoder()


def decode(metar: str) -> DecodedReport:
    """
    Decode a raw METAR string.

    Raises EmptyReportError when the string has no tokens. Any group
    that does not decode cleanly is left out of the result.
    """
    return _decoder.decode(metar)


if __name__ == "__main__":
    samples = [
        "KJFK 011851Z 18010KT 10SM FEW250 24/18 A3000 RMK AO2",
        "EGLL 011820Z 24015G25KT 9999 -RA BKN008 15/12 Q1013",
        "KLAX 011753Z VRB03KT 1/2SM FG VV002 M01/M03 A2992",
        "METAR UUWW 161630Z 22005KT 180V250 CAVOK 05/04 Q1014 NOSIG",
    ]
    for sample in samples:
        print("=" * 80)
        print(_decoder.pretty(decode(sample)))
        print()
