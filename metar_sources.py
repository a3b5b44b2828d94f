"""
Sources of current raw METAR text.

- aviationweather.gov data API (raw format)
- OGIMET (https://ogimet.com) text display

fetch_current_metar() asks every source and keeps the freshest report.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple

import requests
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

RE_ICAO = re.compile(r'^[A-Z][A-Z0-9]{3}$')
RE_REPORT_TIME = re.compile(r'(?:^|\s)(\d{2})(\d{2})(\d{2})Z(?:\s|$)')

DEFAULT_TIMEOUT = 15
USER_AGENT = 'metarflow/0.1 (METAR viewer)'
CLOCK_SKEW_MINUTES = 60


class MetarSourceError(Exception):
    """Base class for errors obtaining a raw METAR."""


class InvalidStationError(MetarSourceError):
    """The ICAO code is not 4 alphanumeric characters."""


class StationNotFoundError(MetarSourceError):
    """Sources answered but none had a report for the station."""


class MetarFetchError(MetarSourceError):
    """Every source failed to answer."""


def normalize_icao(icao: Optional[str]) -> str:
    code = (icao or '').strip().upper()
    if not RE_ICAO.match(code):
        raise InvalidStationError(
            f"ICAO codes should be 4 characters (e.g., KJFK, EGLL, YSSY), got '{code}'")
    return code


def report_time_key(report: Optional[str]) -> Tuple[int, int, int]:
    """(day, hour, minute) of the DDHHMMZ group, (-1, -1, -1) when missing."""
    if not isinstance(report, str):
        return -1, -1, -1
    match = RE_REPORT_TIME.search(report)
    if not match:
        return -1, -1, -1
    day, hour, minute = match.groups()
    return int(day), int(hour), int(minute)


def report_datetime(report: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Full UTC time of the report's DDHHMMZ group.

    The group carries no month, so the report is placed in the latest
    month where that time is not in the future. A report stamped day 31
    read on the 1st therefore belongs to the previous month.
    """
    day, hour, minute = report_time_key(report)
    if day < 0:
        return None
    now = now or datetime.now(timezone.utc)
    # reports may run slightly ahead of the local clock
    latest = now + timedelta(minutes=CLOCK_SKEW_MINUTES)
    year, month = now.year, now.month
    for _ in range(3):
        try:
            stamp = datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
        except ValueError:
            stamp = None
        if stamp is not None and stamp <= latest:
            return stamp
        year, month = (year - 1, 12) if month == 1 else (year, month - 1)
    return None


class AviationWeatherSource:
    """Current METAR from the aviationweather.gov data API."""

    name = 'aviationweather'
    BASE_URL = 'https://aviationweather.gov/api/data/metar'

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT):
        self.session = session or requests.Session()
        self.session.headers.setdefault('User-Agent', USER_AGENT)
        self.timeout = timeout

    def fetch_metar(self, icao: str) -> Optional[str]:
        """
        Latest raw METAR for the station.

        Returns None when the API has no report (HTTP 204 or empty body).
        Raises requests.RequestException on network or HTTP errors.
        """
        response = self.session.get(
            self.BASE_URL,
            params={'ids': icao, 'format': 'raw'},
            timeout=self.timeout,
        )
        if response.status_code == 204:
            return None
        response.raise_for_status()
        for line in response.text.splitlines():
            line = line.strip()
            if line:
                return line
        return None


class OgimetSource:
    """METAR/SPECI messages from the OGIMET text display."""

    name = 'ogimet'
    BASE_URL = 'https://ogimet.com/display_metars2.php'

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT,
                 hours: int = 3):
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': USER_AGENT,
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
            'Accept-Language': 'en-US,en;q=0.5',
        })
        self.timeout = timeout
        self.hours = hours

    def fetch_raw_data(self, icao: str, now: Optional[datetime] = None) -> str:
        """
        Raw text of the OGIMET answer covering the last `hours` hours.

        The text format sometimes comes back wrapped in HTML; the <pre>
        block is extracted in that case.
        """
        now = now or datetime.now(timezone.utc)
        start_time = now - timedelta(hours=self.hours)
        params = {
            'lang': 'en',
            'lugar': icao,
            'tipo': 'ALL',   # METAR + SPECI
            'ord': 'REV',    # newest first
            'nil': 'NO',
            'fmt': 'txt',
            'ano': start_time.year,
            'mes': f'{start_time.month:02d}',
            'day': f'{start_time.day:02d}',
            'hora': f'{start_time.hour:02d}',
            'anof': now.year,
            'mesf': f'{now.month:02d}',
            'dayf': f'{now.day:02d}',
            'horaf': f'{now.hour:02d}',
            'minf': f'{now.minute:02d}',
            'send': 'send',
        }
        response = self.session.get(self.BASE_URL, params=params, timeout=self.timeout)
        response.raise_for_status()

        text = response.text
        if '<pre>' in text and '</pre>' in text:
            soup = BeautifulSoup(text, 'html.parser')
            pre = soup.find('pre')
            if pre:
                return pre.get_text()
        return text

    @staticmethod
    def parse_metars(raw_data: str, icao: str) -> List[Dict[str, str]]:
        """
        METAR/SPECI lines for the station, in the order OGIMET sent them.

        Line format: YYYYMMDDHHMM METAR ICAO DDHHMMZ ...=
        """
        metars = []
        if not raw_data:
            return metars

        pattern = re.compile(r'^(\d{12})\s+(METAR|SPECI)\s+(' + re.escape(icao) + r')\s+(.+)$')
        for line in raw_data.splitlines():
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            match = pattern.match(line)
            if not match:
                continue
            timestamp, report_type, station, message = match.groups()
            message = message.strip().rstrip('=').strip()
            metars.append({
                'timestamp': timestamp,
                'type': report_type,
                'station': station,
                'message': f"{station} {message}",
            })
        return metars

    def fetch_metar(self, icao: str) -> Optional[str]:
        metars = self.parse_metars(self.fetch_raw_data(icao), icao)
        if not metars:
            return None
        latest = max(metars, key=lambda m: m['timestamp'])
        return latest['message']


def default_sources(timeout: float = DEFAULT_TIMEOUT) -> List:
    return [AviationWeatherSource(timeout=timeout), OgimetSource(timeout=timeout)]


def fetch_current_metar(icao: str, sources: Optional[Iterable] = None,
                        now: Optional[datetime] = None) -> str:
    """
    Freshest raw METAR for the station across all sources.

    A source that fails is logged and skipped. Raises StationNotFoundError
    if no source has a report and MetarFetchError if all sources failed.
    """
    icao = normalize_icao(icao)
    sources = list(sources) if sources is not None else default_sources()

    reports = {}
    failures = 0
    for source in sources:
        try:
            report = source.fetch_metar(icao)
        except requests.RequestException as e:
            logger.warning("%s fetch failed for %s: %s", source.name, icao, e)
            failures += 1
            continue
        if report:
            reports[source.name] = report
        else:
            logger.info("%s has no METAR for %s", source.name, icao)

    if not reports:
        if sources and failures == len(sources):
            raise MetarFetchError(f"Could not reach any METAR source for {icao}")
        raise StationNotFoundError(f"No METAR data found for airport {icao}")

    now = now or datetime.now(timezone.utc)
    undated = datetime.min.replace(tzinfo=timezone.utc)
    # dict order follows source order, so ties go to the first source
    latest_source = max(reports, key=lambda name: report_datetime(reports[name], now) or undated)
    logger.debug("Using %s METAR for %s", latest_source, icao)
    return reports[latest_source]
