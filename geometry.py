"""
Helpers for the boundary GeoJSON.

Geometry is treated as opaque apart from property lookups and bounding boxes
used to fit the map view.
"""


def district_name(feature):
    props = feature.get('properties') or {}
    return props.get('district') or props.get('name') or props.get('DISTRICT') or 'Unknown'


def constituency_id(feature):
    props = feature.get('properties') or {}
    value = props.get('id')
    if value is None:
        value = props.get('AC_NO')
    return str(value) if value is not None else None


def constituency_name(feature):
    props = feature.get('properties') or {}
    return props.get('name') or props.get('AC_NAME')


def _walk_positions(coords):
    if coords and isinstance(coords[0], (int, float)):
        yield coords
        return
    for part in coords:
        yield from _walk_positions(part)


def feature_bounds(feature):
    """[[south, west], [north, east]] for a feature, or None without coordinates."""
    geometry = feature.get('geometry') or {}
    if geometry.get('type') == 'GeometryCollection':
        positions = [p for g in geometry.get('geometries', []) for p in _walk_positions(g.get('coordinates') or [])]
    else:
        positions = list(_walk_positions(geometry.get('coordinates') or []))
    if not positions:
        return None
    lngs = [p[0] for p in positions]
    lats = [p[1] for p in positions]
    return [[min(lats), min(lngs)], [max(lats), max(lngs)]]


def index_districts(collection):
    """Upper-cased district name -> (name, bounds)."""
    index = {}
    for feature in (collection or {}).get('features', []):
        name = district_name(feature)
        index[name.upper()] = (name, feature_bounds(feature))
    return index


def index_constituencies(collection):
    """Constituency id -> feature."""
    index = {}
    for feature in (collection or {}).get('features', []):
        cid = constituency_id(feature)
        if cid is not None:
            index[cid] = feature
    return index
