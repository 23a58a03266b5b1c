"""
Resource loading for the election map.

A DataSource knows how to retrieve a named resource (geometry, metadata or a
year's election file) from a data directory or a base URL. A ResourceCache
sits in front of it and guarantees each resource is fetched and transformed
at most once per session.
"""

import json
import logging
import threading
from concurrent.futures import Future
from pathlib import Path

import requests

import config

logger = logging.getLogger(__name__)


class ResourceError(Exception):
    """Raised when a resource cannot be retrieved or parsed."""

    def __init__(self, resource, status=None, message=None):
        self.resource = resource
        self.status = status
        if message is None:
            message = f"Failed to load {resource}: {status}"
        self.message = message
        super().__init__(message)

    def to_dict(self):
        return {'error': self.message, 'resource': self.resource, 'status': self.status}


def resource_filename(key):
    """Map a resource key like 'meta' or 'elections-2021' to its file name."""
    if key in config.RESOURCE_FILES:
        return config.RESOURCE_FILES[key]
    if key.startswith('elections-'):
        return config.ELECTION_FILE_PATTERN.format(year=key[len('elections-'):])
    raise ResourceError(key, 'unknown', f"Unknown resource: {key}")


class DataSource:
    """Retrieves raw JSON resources from a directory or over HTTP."""

    def __init__(self, base=None, timeout=None):
        self.base = str(base or config.DATA_URL)
        self.timeout = timeout or config.REQUEST_TIMEOUT

    @property
    def is_remote(self):
        return self.base.startswith(('http://', 'https://'))

    def __call__(self, key):
        filename = resource_filename(key)
        if self.is_remote:
            return self._fetch_url(key, self.base.rstrip('/') + '/' + filename)
        return self._read_file(key, Path(self.base) / filename)

    def _fetch_url(self, key, url):
        try:
            response = requests.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise ResourceError(key, None, f"Failed to load {key}: {e}") from e
        if not response.ok:
            raise ResourceError(key, response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise ResourceError(key, response.status_code, f"Malformed payload in {key}: {e}") from e

    def _read_file(self, key, path):
        if not path.exists():
            raise ResourceError(key, 404, f"Failed to load {key}: {path} not found")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ResourceError(key, 200, f"Malformed payload in {key}: {e}") from e
        except OSError as e:
            raise ResourceError(key, None, f"Failed to load {key}: {e}") from e


class ResourceCache:
    """
    Memoized loader keyed by resource name.

    Created once by the session's composition root and cleared only on a full
    reload. Concurrent callers asking for the same uncached key share one
    in-flight retrieval. Failed retrievals are never stored, so the next call
    tries again.
    """

    def __init__(self, fetch):
        self._fetch = fetch
        self._values = {}
        self._in_flight = {}
        self._lock = threading.Lock()
        self.fetch_count = 0

    def __contains__(self, key):
        return key in self._values

    def get(self, key, transform=None):
        with self._lock:
            if key in self._values:
                return self._values[key]
            future = self._in_flight.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._in_flight[key] = future

        if not owner:
            return future.result()

        try:
            self.fetch_count += 1
            raw = self._fetch(key)
            value = transform(raw) if transform else raw
        except ResourceError as e:
            logger.error("Error loading %s: %s", key, e.message)
            self._settle(key, future, error=e)
            raise
        except Exception as e:
            error = ResourceError(key, None, f"Failed to load {key}: {e}")
            logger.error("Error loading %s: %s", key, e)
            self._settle(key, future, error=error)
            raise error from e
        except BaseException:
            # interrupted: waiters get an error and the key stays retryable
            self._settle(key, future, error=ResourceError(key, None, f"Interrupted loading {key}"))
            raise

        self._settle(key, future, value=value)
        return value

    def _settle(self, key, future, value=None, error=None):
        with self._lock:
            self._in_flight.pop(key, None)
            if error is None:
                self._values[key] = value
        if error is None:
            future.set_result(value)
        else:
            future.set_exception(error)

    def clear(self):
        """Drop every cached resource (full reload)."""
        with self._lock:
            self._values.clear()
