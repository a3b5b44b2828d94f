"""
Human-readable rendering of decoded METAR reports.

Everything here works on a DecodedReport and returns plain strings; the
web templates and MetarDecoder.pretty() are built on top of it.
"""

import math
from fractions import Fraction
from typing import List, Optional, Tuple

from metar_decoder import (
    CLOUD_TRANSLATION,
    CLOUD_TYPE_TRANSLATION,
    DESCRIPTOR_TRANSLATION,
    WEATHER_TRANSLATION,
    CloudLayer,
    CloudType,
    Coverage,
    DecodedReport,
    Intensity,
    ObservationTime,
    Visibility,
    WeatherPhenomenon,
    Wind,
)
from metar_remarks import decode_remarks

HPA_PER_INHG = 33.8639

_COVERAGE_CODES = {
    Coverage.FEW: 'FEW', Coverage.SCATTERED: 'SCT', Coverage.BROKEN: 'BKN',
    Coverage.OVERCAST: 'OVC', Coverage.CLEAR: 'CLR', Coverage.SKY_CLEAR: 'SKC',
    Coverage.NO_SIGNIFICANT_CLOUD: 'NSC', Coverage.NO_CLOUD_DETECTED: 'NCD',
}

_CLOUD_TYPE_CODES = {CloudType.CUMULONIMBUS: 'CB', CloudType.TOWERING_CUMULUS: 'TCU'}

_CARDINALS = ('N', 'NE', 'E', 'SE', 'S', 'SW', 'W', 'NW')


def degrees_to_cardinal(degrees: int) -> str:
    """8-point compass direction, N covering 338-22 degrees."""
    if degrees < 0 or degrees > 360:
        return ''
    return _CARDINALS[int((degrees + 22.5) // 45) % 8]


def celsius_to_fahrenheit(celsius: int) -> int:
    return int(celsius * 9 / 5) + 32


def inhg_to_hpa(inhg: float) -> float:
    return round(inhg * HPA_PER_INHG, 1)


def hpa_to_inhg(hpa: int) -> float:
    return round(hpa / HPA_PER_INHG, 2)


def relative_humidity(temperature: Optional[int], dew_point: Optional[int]) -> Optional[float]:
    """
    Relative humidity from the Magnus formula:
    RH = 100 * exp((17.625 * Td)/(243.04 + Td)) / exp((17.625 * T)/(243.04 + T))
    """
    if temperature is None or dew_point is None:
        return None
    numerator = math.exp((17.625 * dew_point) / (243.04 + dew_point))
    denominator = math.exp((17.625 * temperature) / (243.04 + temperature))
    return round(100 * numerator / denominator, 1)


def format_miles(miles: float) -> str:
    """0.5 -> '1/2', 1.5 -> '1 1/2', 10.0 -> '10'"""
    value = Fraction(miles).limit_denominator(16)
    whole, rest = divmod(value, 1)
    if not rest:
        return str(int(whole))
    if not whole:
        return f"{rest.numerator}/{rest.denominator}"
    return f"{int(whole)} {rest.numerator}/{rest.denominator}"


def describe_time(time: Optional[ObservationTime]) -> Optional[str]:
    if time is None:
        return None
    return f"Day {time.day}, {time.hour:02d}:{time.minute:02d}Z"


def describe_wind(wind: Optional[Wind]) -> Optional[str]:
    if wind is None:
        return None
    if wind.is_calm:
        text = 'Calm'
    elif wind.is_variable:
        text = f"Variable at {wind.speed_kt} knots"
    else:
        text = f"{wind.direction} degrees ({degrees_to_cardinal(wind.direction)}) at {wind.speed_kt} knots"
    if wind.gust_kt is not None:
        text += f", gusting to {wind.gust_kt} knots"
    if wind.variable_range:
        lo, hi = wind.variable_range
        text += f", variable between {lo} and {hi} degrees"
    return text


def describe_visibility(report: DecodedReport) -> Optional[str]:
    vis: Optional[Visibility] = report.visibility
    if vis is None:
        if report.visibility_m is not None:
            return f"{report.visibility_m} meters"
        return None
    if report.cavok:
        return '10 statute miles or more (CAVOK)'
    if vis.is_unlimited:
        return '10 statute miles or more'
    text = f"{format_miles(vis.statute_miles)} statute miles"
    if vis.qualifier == 'less_than':
        return 'Less than ' + text
    if vis.qualifier == 'greater_than':
        return 'More than ' + text
    return text


def describe_weather_item(weather: WeatherPhenomenon) -> str:
    names = [WEATHER_TRANSLATION[code] for code in weather.phenomena]
    words = []
    if weather.intensity is Intensity.LIGHT:
        words.append('light')
    elif weather.intensity is Intensity.HEAVY:
        words.append('heavy')
    if weather.descriptor == 'TS':
        words.append('thunderstorm')
        if names:
            words.append('with ' + ' and '.join(names))
    elif weather.descriptor == 'SH' and not names:
        words.append('showers')
    else:
        if weather.descriptor:
            words.append(DESCRIPTOR_TRANSLATION[weather.descriptor])
        if names:
            words.append(' and '.join(names))
    if weather.vicinity:
        words.append('in vicinity')
    text = ' '.join(words)
    return text[0].upper() + text[1:]


def describe_weather(report: DecodedReport) -> Optional[str]:
    if not report.present_weather:
        return None
    return ', '.join(describe_weather_item(w) for w in report.present_weather)


def describe_cloud_layer(layer: CloudLayer) -> str:
    text = CLOUD_TRANSLATION[_COVERAGE_CODES[layer.coverage]]
    if layer.height_ft is not None:
        text += f" at {layer.height_ft:,} feet"
    if layer.cloud_type is not None:
        text += f" ({CLOUD_TYPE_TRANSLATION[_CLOUD_TYPE_CODES[layer.cloud_type]]})"
    return text


def describe_clouds(report: DecodedReport) -> Optional[str]:
    parts = [describe_cloud_layer(layer) for layer in report.cloud_layers]
    if report.vertical_visibility_ft is not None:
        parts.append(f"Sky obscured, vertical visibility {report.vertical_visibility_ft:,} feet")
    if not parts and report.cavok:
        parts.append('No significant cloud (CAVOK)')
    return ', '.join(parts) or None


def describe_temperature(celsius: Optional[int]) -> Optional[str]:
    if celsius is None:
        return None
    return f"{celsius}°C ({celsius_to_fahrenheit(celsius)}°F)"


def describe_altimeter(report: DecodedReport) -> Optional[str]:
    if report.altimeter_inhg is not None:
        return f"{report.altimeter_inhg:.2f} inHg ({inhg_to_hpa(report.altimeter_inhg):.1f} hPa)"
    if report.altimeter_hpa is not None:
        return f"{report.altimeter_hpa} hPa ({hpa_to_inhg(report.altimeter_hpa):.2f} inHg)"
    return None


def summarize(report: DecodedReport) -> List[Tuple[str, Optional[str]]]:
    """Display rows in page order; None marks a field missing from the report."""
    humidity = relative_humidity(report.temperature_c, report.dewpoint_c)
    return [
        ('Station', report.station),
        ('Observed', describe_time(report.observation_time)),
        ('Wind', describe_wind(report.wind)),
        ('Visibility', describe_visibility(report)),
        ('Weather', describe_weather(report)),
        ('Clouds', describe_clouds(report)),
        ('Temperature', describe_temperature(report.temperature_c)),
        ('Dewpoint', describe_temperature(report.dewpoint_c)),
        ('Humidity', f"{humidity}%" if humidity is not None else None),
        ('Altimeter', describe_altimeter(report)),
        ('Trend', report.trend),
        ('Remarks', report.remarks),
    ]


def pretty(report: DecodedReport) -> str:
    lines = [f"Raw METAR: {report.raw_text}"]
    flags = []
    if report.report_type == 'SPECI':
        flags.append('special')
    if report.auto:
        flags.append('automated')
    if report.corrected:
        flags.append('corrected')
    if report.nil:
        flags.append('missing (NIL)')
    if flags:
        lines.append('Report: ' + ', '.join(flags))
    for label, value in summarize(report):
        if value:
            lines.append(f"{label}: {value}")
    for item in decode_remarks(report.remarks):
        lines.append(f"  - {item.code}: {item.description}")
    return '\n'.join(lines)
