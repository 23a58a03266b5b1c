#!/usr/bin/env python3
"""
TN Election Map
Interactive map of Tamil Nadu assembly election results
"""

import logging

from flask import Flask, jsonify, request

import config
import layers
from explorer import explorer_bp, get_store
from parties import get_alliance_tally, get_legend, get_party_color, get_party_seats
from resources import ResourceError

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(name)s %(levelname)s %(message)s')

app = Flask(__name__)
app.secret_key = config.SECRET_KEY
app.config['ELECTION_DATA_URL'] = config.DATA_URL
app.config['ELECTION_YEARS'] = config.AVAILABLE_YEARS
app.config['MAX_MAP_SESSIONS'] = config.MAX_MAP_SESSIONS

app.register_blueprint(explorer_bp)


@app.errorhandler(ResourceError)
def resource_error(e):
    app.logger.error("Resource failure: %s", e.message)
    return jsonify(e.to_dict()), 502


def parse_year(value):
    """Year from a request value, or None if it is missing or not a known year."""
    try:
        year = int(value)
    except (TypeError, ValueError):
        return None
    return year if year in get_store().get_available_years() else None


@app.route('/')
def index():
    """Map configuration for the client."""
    return jsonify({
        'center': config.MAP_CENTER,
        'bounds': config.MAP_BOUNDS,
        'zoom': config.INITIAL_ZOOM,
        'min_zoom': config.MIN_ZOOM,
        'max_zoom': config.MAX_ZOOM,
        'constituency_min_zoom': config.CONSTITUENCY_MIN_ZOOM,
        'label_min_zoom': config.LABEL_MIN_ZOOM,
        'years': get_store().get_available_years(),
        'legend': get_legend(),
        'search_debounce_ms': config.SEARCH_DEBOUNCE_MS,
    })


@app.route('/api/years')
def api_years():
    return jsonify(get_store().get_available_years())


@app.route('/api/districts')
def api_districts():
    """Sorted district names."""
    return jsonify(get_store().get_district_list())


@app.route('/api/constituencies')
def api_constituencies():
    """Constituencies, optionally for one district."""
    district = request.args.get('district') or None
    return jsonify(get_store().get_constituency_list(district))


@app.route('/api/constituency/<constituency_id>')
def api_constituency(constituency_id):
    info = get_store().get_constituency_info(constituency_id)
    if info is None:
        return jsonify({'error': 'Constituency not found'}), 404
    return jsonify(dict(info, id=constituency_id))


@app.route('/api/constituency/<constituency_id>/history')
def api_constituency_history(constituency_id):
    """Winner in each year the constituency has data."""
    store = get_store()
    if store.get_constituency_info(constituency_id) is None:
        return jsonify({'error': 'Constituency not found'}), 404
    return jsonify(store.get_winner_history(constituency_id))


@app.route('/api/elections/<int:year>')
def api_elections(year):
    """Derived election dataset for a year."""
    if parse_year(year) is None:
        return jsonify({'error': f'No election data for {year}'}), 404
    return jsonify(get_store().load_election_data(year))


@app.route('/api/map-data')
def api_map_data():
    """Fill colour, winning party and margin per constituency for map colouring."""
    year = parse_year(request.args.get('year'))
    if year is None:
        return jsonify({'error': 'Invalid year'}), 400

    dataset = get_store().load_election_data(year)
    data = {}
    for cid, result in dataset['constituencies'].items():
        winner = result.get('winner') or {}
        data[cid] = {
            'party': winner.get('party'),
            'winner': winner.get('name'),
            'color': get_party_color(winner.get('party')),
            'margin': result.get('margin'),
            'margin_percent': result.get('margin_percent'),
            'style': layers.constituency_style(result),
        }
    return jsonify({'year': year, 'constituencies': data})


@app.route('/api/alliances/<int:year>')
def api_alliances(year):
    """Seat tally per alliance and per party."""
    if parse_year(year) is None:
        return jsonify({'error': f'No election data for {year}'}), 404
    dataset = get_store().load_election_data(year)
    return jsonify({
        'year': year,
        'alliances': get_alliance_tally(dataset),
        'parties': get_party_seats(dataset),
    })


@app.route('/api/search')
def api_search():
    """Candidate search within one year."""
    year = parse_year(request.args.get('year'))
    query = request.args.get('q', '')
    return jsonify(get_store().search_candidates(year, query))


@app.route('/api/layers')
def api_layers():
    """Layer visibility for a zoom level and year selection."""
    try:
        zoom = float(request.args.get('zoom', config.INITIAL_ZOOM))
    except ValueError:
        return jsonify({'error': 'Invalid zoom'}), 400
    year_active = bool(request.args.get('year'))
    return jsonify(layers.layer_visibility(zoom, year_active).to_dict())


@app.route('/api/geometry/<kind>')
def api_geometry(kind):
    """Boundary GeoJSON for districts or constituencies."""
    store = get_store()
    if kind == 'districts':
        return jsonify(store.load_districts())
    if kind == 'constituencies':
        return jsonify(store.load_constituencies())
    return jsonify({'error': 'Unknown geometry'}), 404


if __name__ == '__main__':
    app.run(debug=True, port=5001)
