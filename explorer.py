"""Per-viewer map session routes."""

import threading
import uuid
from collections import OrderedDict

from flask import Blueprint, current_app, jsonify, request, session

import config
from resources import DataSource, ResourceCache
from results import ElectionStore
from session import MapSession

explorer_bp = Blueprint('explorer', __name__, url_prefix='/api/session')

_lock = threading.Lock()


def get_store():
    """The app-wide ElectionStore, created on first use."""
    with _lock:
        store = current_app.extensions.get('election_store')
        if store is None:
            source = DataSource(current_app.config['ELECTION_DATA_URL'])
            store = ElectionStore(ResourceCache(source), current_app.config.get('ELECTION_YEARS'))
            current_app.extensions['election_store'] = store
        return store


def get_map_session():
    """The MapSession for this browser, bootstrapped on first request."""
    limit = current_app.config.get('MAX_MAP_SESSIONS', config.MAX_MAP_SESSIONS)
    with _lock:
        sessions = current_app.extensions.setdefault('map_sessions', OrderedDict())
        sid = session.get('sid')
        if sid and sid in sessions:
            sessions.move_to_end(sid)
            return sessions[sid]

    map_session = MapSession(get_store())
    map_session.bootstrap()
    sid = uuid.uuid4().hex
    session['sid'] = sid
    with _lock:
        sessions[sid] = map_session
        # least recently used sessions go first
        while len(sessions) > limit:
            _, evicted = sessions.popitem(last=False)
            evicted.search_box.cancel()
    return map_session


def respond(map_session, **extra):
    """Session snapshot plus the map commands produced by this request."""
    payload = map_session.snapshot()
    payload['commands'] = map_session.surface.drain()
    payload.update(extra)
    return jsonify(payload)


def get_param(name):
    data = request.get_json(silent=True) or {}
    if name in data:
        return data[name]
    return request.args.get(name)


def get_flag(name):
    """Boolean request value; query-string values arrive as text."""
    value = get_param(name)
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


@explorer_bp.route('/')
def state():
    """Current session state."""
    return respond(get_map_session())


@explorer_bp.route('/year', methods=['POST'])
def set_year():
    """Set or clear the global year filter."""
    map_session = get_map_session()
    year = get_param('year')
    if year not in (None, ''):
        try:
            year = int(year)
        except (TypeError, ValueError):
            return jsonify({'error': 'Invalid year'}), 400
        if year not in map_session.store.get_available_years():
            return jsonify({'error': f'No election data for {year}'}), 404
    applied = map_session.set_year(year or None)
    return respond(map_session, applied=applied)


@explorer_bp.route('/zoom', methods=['POST'])
def zoom():
    """Report a zoom change from the map."""
    map_session = get_map_session()
    try:
        level = float(get_param('zoom'))
    except (TypeError, ValueError):
        return jsonify({'error': 'Invalid zoom'}), 400
    map_session.zoom_changed(level)
    return respond(map_session)


@explorer_bp.route('/district', methods=['POST'])
def pick_district():
    """District chosen in the district picker."""
    map_session = get_map_session()
    district = map_session.sync.canonical_district(get_param('district')) or ''
    if district and district not in map_session.store.get_district_list():
        return jsonify({'error': 'District not found'}), 404
    map_session.pick_district(district)
    return respond(map_session)


@explorer_bp.route('/constituency', methods=['POST'])
def pick_constituency():
    """Constituency chosen in the constituency picker or from search results."""
    map_session = get_map_session()
    constituency_id = get_param('id')
    if not constituency_id:
        return jsonify({'error': 'Missing constituency id'}), 400
    if map_session.store.get_constituency_info(constituency_id) is None:
        return jsonify({'error': 'Constituency not found'}), 404
    if get_param('source') == 'search':
        map_session.select_search_result(constituency_id)
    else:
        map_session.pick_constituency(str(constituency_id))
    return respond(map_session)


@explorer_bp.route('/map/district', methods=['POST'])
def click_district():
    map_session = get_map_session()
    handled = map_session.click_district(get_param('name'))
    return respond(map_session, handled=handled)


@explorer_bp.route('/map/constituency', methods=['POST'])
def click_constituency():
    map_session = get_map_session()
    handled = map_session.click_constituency(get_param('id'))
    return respond(map_session, handled=handled)


@explorer_bp.route('/hover', methods=['POST'])
def hover():
    map_session = get_map_session()
    layer = get_param('layer') or 'constituencies'
    handled = map_session.hover(layer, get_param('key'), get_flag('entering'))
    return respond(map_session, handled=handled)


@explorer_bp.route('/search', methods=['POST'])
def search():
    """Feed the debounced search box; results appear in a later snapshot."""
    map_session = get_map_session()
    map_session.search_box.input(get_param('q') or '')
    return respond(map_session)


@explorer_bp.route('/reset', methods=['POST'])
def reset():
    map_session = get_map_session()
    map_session.reset()
    return respond(map_session)


@explorer_bp.route('/overlay/close', methods=['POST'])
def close_overlay():
    map_session = get_map_session()
    map_session.close_overlay()
    return respond(map_session)


@explorer_bp.route('/overlay/<direction>', methods=['POST'])
def navigate(direction):
    """Next/previous constituency while the overlay is open."""
    if direction not in ('next', 'previous'):
        return jsonify({'error': 'Invalid direction'}), 404
    map_session = get_map_session()
    moved = map_session.navigate(direction == 'next')
    return respond(map_session, moved=moved)


@explorer_bp.route('/overlay/year/<direction>', methods=['POST'])
def step_overlay_year(direction):
    """Browse the overlay's own year cursor."""
    if direction not in ('next', 'previous'):
        return jsonify({'error': 'Invalid direction'}), 404
    map_session = get_map_session()
    moved = map_session.step_overlay_year(direction == 'next')
    return respond(map_session, moved=moved)
