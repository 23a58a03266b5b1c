import json

import pytest

from resources import DataSource, ResourceCache
from results import ElectionStore
from session import MapSession

YEARS = [2011, 2016, 2021]


def square(lng, lat, size=0.1):
    return {
        'type': 'Polygon',
        'coordinates': [[[lng, lat], [lng + size, lat], [lng + size, lat + size], [lng, lat + size], [lng, lat]]],
    }


DISTRICTS = {
    'type': 'FeatureCollection',
    'features': [
        {'type': 'Feature', 'properties': {'district': 'CHENNAI'}, 'geometry': square(80.1, 13.0, 0.3)},
        {'type': 'Feature', 'properties': {'district': 'Salem'}, 'geometry': square(78.0, 11.5, 0.5)},
    ],
}

CONSTITUENCIES = {
    'type': 'FeatureCollection',
    'features': [
        {'type': 'Feature', 'properties': {'id': 1, 'name': 'Gummidipoondi'}, 'geometry': square(80.1, 13.0)},
        {'type': 'Feature', 'properties': {'id': 2, 'name': 'Ponneri'}, 'geometry': square(80.2, 13.1)},
        {'type': 'Feature', 'properties': {'id': 10, 'name': 'Egmore'}, 'geometry': square(80.25, 13.05)},
        {'type': 'Feature', 'properties': {'AC_NO': 5, 'AC_NAME': 'Attur'}, 'geometry': square(78.0, 11.5)},
        {'type': 'Feature', 'properties': {'AC_NO': 9, 'AC_NAME': 'Omalur'}, 'geometry': square(78.1, 11.7)},
    ],
}

META = {
    '10': {'name': 'Egmore', 'name_ta': 'எழும்பூர்', 'district': 'Chennai', 'type': 'SC',
           'electors': {'2016': 170000, '2021': 180000}, 'registered_voters': 181234,
           'description': 'Central Chennai'},
    '2': {'name': 'Ponneri', 'district': 'Chennai', 'type': 'SC', 'electors': 250000,
          'registered_voters': 251000, 'description': ''},
    '1': {'name': 'Gummidipoondi', 'district': 'Chennai', 'type': 'GEN', 'electors': 260000,
          'registered_voters': 261000, 'description': ''},
    '9': {'name': 'Omalur', 'district': 'Salem', 'type': 'GEN', 'electors': 240000,
          'registered_voters': 241000, 'description': ''},
    '5': {'name': 'Attur', 'district': 'Salem', 'type': 'SC', 'electors': {'2016': 200000, '2021': 210000},
          'registered_voters': 211000, 'description': ''},
}


def candidate(name, party, votes, winner=False, **extra):
    entry = {'name': name, 'party': party, 'votes': votes, 'vote_share': 0.0, 'winner': winner,
             'incumbent': False, 'deposit_lost': False}
    entry.update(extra)
    return entry


ELECTIONS_2021 = {
    'year': 2021,
    'alliances': {
        'SPA': {'name': 'Secular Progressive Alliance', 'parties': ['DMK', 'INC']},
        'NDA': {'name': 'AIADMK Alliance', 'parties': ['AIADMK', 'BJP', 'PMK']},
    },
    'constituencies': {
        '1': {'name': 'Gummidipoondi', 'district': 'Chennai', 'type': 'GEN', 'total_votes': 115000,
              'turnout_percent': 78.5, 'electors': 260000,
              'candidates': [candidate('Kumar Raja', 'DMK', 60000, True, margin=5000, margin_percent=4.35),
                             candidate('Senthil Kumar', 'AIADMK', 55000)]},
        '2': {'name': 'Ponneri', 'district': 'Chennai', 'type': 'SC', 'total_votes': 100000,
              'turnout_percent': 72.1, 'electors': 250000,
              'candidates': [candidate('Durai', 'INC', 52000, True),
                             candidate('Balaraman', 'AIADMK', 45000),
                             candidate('Ravi Kumaran', 'NTK', 3000)]},
        '10': {'name': 'Egmore', 'district': 'Chennai', 'type': 'SC', 'total_votes': 100000,
               'turnout_percent': 60.0, 'electors': {'2016': 170000, '2021': 180000},
               'candidates': [candidate('Stalin Kumar', 'DMK', 70000),
                              candidate('Arun', 'BJP', 30000)]},
        '5': {'name': 'Attur', 'district': 'Salem', 'type': 'SC', 'total_votes': 90000,
              'turnout_percent': 81.0, 'electors': {'2016': 200000, '2021': 210000},
              'candidates': [candidate('A', 'X', 50000, True), candidate('B', 'Y', 40000)]},
        '9': {'name': 'Omalur', 'district': 'Salem', 'type': 'GEN', 'total_votes': 20000,
              'turnout_percent': 10.0, 'electors': 240000,
              'candidates': [candidate('Mani', 'PMK', 20000, True)]},
    },
}

ELECTIONS_2016 = {
    'year': 2016,
    'alliances': {},
    'constituencies': {
        '1': {'name': 'Gummidipoondi', 'district': 'Chennai', 'type': 'GEN', 'total_votes': 100000,
              'turnout_percent': 75.0, 'electors': 250000,
              'candidates': [candidate('Vijayakumar', 'AIADMK', 51000, True),
                             candidate('Kumar Raja', 'DMK', 49000)]},
        '5': {'name': 'Attur', 'district': 'Salem', 'type': 'SC', 'total_votes': 80000,
              'turnout_percent': 79.0, 'electors': {'2016': 200000, '2021': 210000},
              'candidates': [candidate('C', 'AIADMK', 45000, True), candidate('D', 'DMK', 35000)]},
    },
}


def write_json(path, payload):
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(payload, f)


@pytest.fixture
def data_dir(tmp_path):
    write_json(tmp_path / 'tn-districts.geojson', DISTRICTS)
    write_json(tmp_path / 'tn-constituencies.geojson', CONSTITUENCIES)
    write_json(tmp_path / 'constituencies.json', META)
    write_json(tmp_path / 'elections-2021.json', ELECTIONS_2021)
    write_json(tmp_path / 'elections-2016.json', ELECTIONS_2016)
    # no 2011 file: history has to skip that year
    return tmp_path


@pytest.fixture
def store(data_dir):
    return ElectionStore(ResourceCache(DataSource(str(data_dir))), YEARS)


@pytest.fixture
def map_session(store):
    map_session = MapSession(store)
    map_session.bootstrap()
    map_session.surface.drain()
    return map_session


@pytest.fixture
def client(data_dir):
    from app import app
    app.config['TESTING'] = True
    app.config['ELECTION_DATA_URL'] = str(data_dir)
    app.config['ELECTION_YEARS'] = YEARS
    app.extensions.pop('election_store', None)
    app.extensions.pop('map_sessions', None)
    with app.test_client() as client:
        yield client
    app.extensions.pop('election_store', None)
    app.extensions.pop('map_sessions', None)
