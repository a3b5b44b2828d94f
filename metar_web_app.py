"""
Flask web application: look up the current METAR for an airport and
show it decoded.

Configuration comes from environment variables prefixed METARFLOW_
(e.g. METARFLOW_ANALYTICS_ENABLED=true, METARFLOW_PORT=8080).
"""
import logging

from flask import Flask, jsonify, render_template, request, send_from_directory

from metar_decoder import DecodeError, MetarDecoder
from metar_format import summarize
from metar_remarks import decode_remarks
from metar_sources import (
    InvalidStationError,
    MetarFetchError,
    StationNotFoundError,
    default_sources,
    fetch_current_metar,
    normalize_icao,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    'ANALYTICS_ENABLED': False,
    'ANALYTICS_SCRIPT_URL': '',
    'ANALYTICS_WEBSITE_ID': '',
    'FETCH_TIMEOUT': 15,
    'HOST': '0.0.0.0',
    'PORT': 3000,
    'LOG_LEVEL': 'INFO',
}

app = Flask(__name__)
app.config.from_mapping(DEFAULT_CONFIG)
app.config.from_prefixed_env('METARFLOW')

metar_decoder = MetarDecoder()
sources = default_sources(timeout=app.config['FETCH_TIMEOUT'])

# status codes for upstream failures
SOURCE_ERROR_STATUS = {
    InvalidStationError: 400,
    StationNotFoundError: 404,
    MetarFetchError: 502,
}


def render_error(message, status):
    return render_template('error.html', error=message), status


def get_metar(icao):
    """Validated ICAO code and its current raw METAR."""
    icao = normalize_icao(icao)
    return icao, fetch_current_metar(icao, sources)


@app.route('/')
def index():
    """Search page"""
    return render_template('index.html')


@app.route('/privacy')
def privacy():
    return render_template('privacy.html')


@app.route('/metarflow.svg')
def favicon():
    return send_from_directory(app.static_folder, 'metarflow.svg', mimetype='image/svg+xml')


@app.route('/metar')
def metar():
    """Fetch, decode and display the current METAR for ?icao="""
    try:
        icao, raw = get_metar(request.args.get('icao', ''))
    except (InvalidStationError, StationNotFoundError, MetarFetchError) as e:
        return render_error(str(e), SOURCE_ERROR_STATUS[type(e)])

    try:
        report = metar_decoder.decode(raw)
    except DecodeError:
        logger.warning("Could not decode METAR for %s: %r", icao, raw)
        return render_error(f"Could not parse the METAR for {icao}", 422)

    return render_template(
        'results.html',
        icao=icao,
        report=report,
        rows=summarize(report),
        remark_details=decode_remarks(report.remarks),
    )


@app.route('/fetch', methods=['POST'])
def fetch_metar():
    """API endpoint: raw METAR for {"icao": ...}"""
    payload = request.get_json(silent=True) or {}
    try:
        icao, raw = get_metar(payload.get('icao', ''))
    except (InvalidStationError, StationNotFoundError, MetarFetchError) as e:
        return jsonify({'success': False, 'error': str(e)}), SOURCE_ERROR_STATUS[type(e)]

    return jsonify({'success': True, 'icao': icao, 'metar': raw})


@app.route('/decode', methods=['POST'])
def decode_metar():
    """API endpoint: decode {"metar": ...}"""
    payload = request.get_json(silent=True) or {}
    metar_code = (payload.get('metar') or '').strip()
    if not metar_code:
        return jsonify({'success': False, 'error': 'METAR cannot be empty'}), 400

    try:
        decoded = metar_decoder.decode(metar_code)
    except DecodeError as e:
        return jsonify({'success': False, 'error': f'Could not parse METAR: {e}'}), 422

    return jsonify({
        'success': True,
        'decoded': decoded.to_dict(),
        'pretty': metar_decoder.pretty(decoded),
        'remarks': [{'code': r.code, 'description': r.description}
                    for r in decode_remarks(decoded.remarks)],
    })


@app.errorhandler(404)
def not_found(error):
    return render_error('Page not found', 404)


if __name__ == '__main__':
    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    logger.info("Server running on http://localhost:%s", app.config['PORT'])
    app.run(host=app.config['HOST'], port=app.config['PORT'])
