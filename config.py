"""
Configuration for the TN Election Map.
Module-level constants, with a few environment overrides.
"""

import os
from pathlib import Path

# Where the data files live: a local directory or an http(s) base URL
DATA_URL = os.environ.get('ELECTION_DATA_URL', str(Path(__file__).parent / 'data'))
REQUEST_TIMEOUT = float(os.environ.get('REQUEST_TIMEOUT', '30'))
SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')

# Resource key -> file name
RESOURCE_FILES = {
    'districts': 'tn-districts.geojson',
    'constituencies': 'tn-constituencies.geojson',
    'meta': 'constituencies.json',
}
ELECTION_FILE_PATTERN = 'elections-{year}.json'

# Election years with data, oldest first
AVAILABLE_YEARS = [2011, 2016, 2021]
DEFAULT_OVERLAY_YEAR = 2021

# Zoom thresholds
CONSTITUENCY_MIN_ZOOM = 9
LABEL_MIN_ZOOM = 9

# Map view (Tamil Nadu)
MAP_CENTER = [11.1271, 78.6569]
MAP_BOUNDS = [[7.9, 76.0], [13.7, 80.5]]
INITIAL_ZOOM = 7
MIN_ZOOM = 6
MAX_ZOOM = 14

# fitBounds options
DISTRICT_FIT = {'padding': [50, 50], 'max_zoom': 10}
CONSTITUENCY_FIT = {'padding': [100, 100], 'max_zoom': 12}

# Search
SEARCH_MIN_CHARS = 2
SEARCH_LIMIT = 50
SEARCH_DEBOUNCE_MS = 300

# Map sessions kept per process; the least recently used are dropped first
MAX_MAP_SESSIONS = int(os.environ.get('MAX_MAP_SESSIONS', '500'))
