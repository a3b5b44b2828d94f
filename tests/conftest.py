import pytest

import metar_web_app

KJFK = "KJFK 011851Z 18010KT 10SM FEW250 24/18 A3000 RMK AO2"
EGLL = "EGLL 011820Z 24015G25KT 9999 -RA BKN008 15/12 Q1013"
KLAX = "KLAX 011753Z VRB03KT 1/2SM FG VV002 M01/M03 A2992"


@pytest.fixture
def sample_metars() -> dict[str, str]:
    """Raw reports by station."""
    return {'KJFK': KJFK, 'EGLL': EGLL, 'KLAX': KLAX}


@pytest.fixture
def app():
    metar_web_app.app.config['TESTING'] = True
    return metar_web_app.app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def fake_fetch(monkeypatch):
    """
    Replace the upstream fetch in the web app.

    Returns a dict: set 'report' to the raw METAR to serve, or 'error'
    to an exception instance to raise. Calls are recorded in 'calls'.
    """
    state = {'report': KJFK, 'error': None, 'calls': []}

    def fetch(icao, sources=None):
        state['calls'].append(icao)
        if state['error'] is not None:
            raise state['error']
        return state['report']

    monkeypatch.setattr(metar_web_app, 'fetch_current_metar', fetch)
    return state
