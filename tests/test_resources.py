import threading

import pytest
import requests

from resources import DataSource, ResourceCache, ResourceError, resource_filename


def test_resource_filenames():
    assert resource_filename('meta') == 'constituencies.json'
    assert resource_filename('districts') == 'tn-districts.geojson'
    assert resource_filename('elections-2016') == 'elections-2016.json'
    with pytest.raises(ResourceError):
        resource_filename('bogus')


def test_cache_fetches_once_and_transforms_once():
    calls = []
    transforms = []

    def fetch(key):
        calls.append(key)
        return {'value': 1}

    def transform(raw):
        transforms.append(raw)
        return dict(raw, derived=True)

    cache = ResourceCache(fetch)
    first = cache.get('meta', transform)
    second = cache.get('meta', transform)

    assert first is second
    assert first == {'value': 1, 'derived': True}
    assert calls == ['meta']
    assert len(transforms) == 1
    assert 'meta' in cache


def test_failed_fetch_is_not_cached_and_retried():
    attempts = []

    def fetch(key):
        attempts.append(key)
        if len(attempts) == 1:
            raise ResourceError(key, 503)
        return {'ok': True}

    cache = ResourceCache(fetch)
    with pytest.raises(ResourceError) as exc:
        cache.get('elections-2021')
    assert exc.value.resource == 'elections-2021'
    assert exc.value.status == 503
    assert 'elections-2021' not in cache

    assert cache.get('elections-2021') == {'ok': True}
    assert len(attempts) == 2


def test_transform_failure_becomes_resource_error():
    cache = ResourceCache(lambda key: {'constituencies': None})

    def broken(raw):
        raise KeyError('year')

    with pytest.raises(ResourceError) as exc:
        cache.get('elections-2021', broken)
    assert exc.value.resource == 'elections-2021'
    assert 'elections-2021' not in cache


def test_concurrent_requests_share_one_fetch():
    started = threading.Event()
    release = threading.Event()
    calls = []

    def fetch(key):
        calls.append(key)
        started.set()
        release.wait(5)
        return {'key': key}

    cache = ResourceCache(fetch)
    results = []

    def load():
        results.append(cache.get('meta'))

    first = threading.Thread(target=load)
    first.start()
    started.wait(5)
    second = threading.Thread(target=load)
    second.start()
    release.set()
    first.join(5)
    second.join(5)

    assert calls == ['meta']
    assert len(results) == 2
    assert results[0] is results[1]


def test_concurrent_waiters_see_failure():
    started = threading.Event()
    release = threading.Event()

    def fetch(key):
        started.set()
        release.wait(5)
        raise ResourceError(key, 500)

    cache = ResourceCache(fetch)
    errors = []

    def load():
        try:
            cache.get('meta')
        except ResourceError as e:
            errors.append(e.status)

    first = threading.Thread(target=load)
    first.start()
    started.wait(5)
    second = threading.Thread(target=load)
    second.start()
    release.set()
    first.join(5)
    second.join(5)

    assert errors == [500, 500]
    assert 'meta' not in cache


def test_clear_forces_reload():
    calls = []
    cache = ResourceCache(lambda key: calls.append(key) or len(calls))
    assert cache.get('meta') == 1
    cache.clear()
    assert cache.get('meta') == 2


def test_local_source_reads_json(data_dir):
    source = DataSource(str(data_dir))
    meta = source('meta')
    assert meta['5']['name'] == 'Attur'


def test_local_source_missing_file(data_dir):
    source = DataSource(str(data_dir))
    with pytest.raises(ResourceError) as exc:
        source('elections-2011')
    assert exc.value.status == 404
    assert exc.value.resource == 'elections-2011'


def test_local_source_malformed_json(tmp_path):
    (tmp_path / 'constituencies.json').write_text('{not json', encoding='utf-8')
    with pytest.raises(ResourceError) as exc:
        DataSource(str(tmp_path))('meta')
    assert 'Malformed' in exc.value.message


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError('No JSON')
        return self._payload


def test_remote_source_uses_requests(monkeypatch):
    seen = []

    def fake_get(url, timeout):
        seen.append(url)
        return FakeResponse(200, {'year': 2021})

    monkeypatch.setattr(requests, 'get', fake_get)
    source = DataSource('https://example.org/data/', timeout=5)
    assert source('elections-2021') == {'year': 2021}
    assert seen == ['https://example.org/data/elections-2021.json']


def test_remote_source_bad_status(monkeypatch):
    monkeypatch.setattr(requests, 'get', lambda url, timeout: FakeResponse(404))
    with pytest.raises(ResourceError) as exc:
        DataSource('https://example.org/data')('meta')
    assert exc.value.status == 404
    assert exc.value.to_dict()['resource'] == 'meta'


def test_remote_source_network_error(monkeypatch):
    def fail(url, timeout):
        raise requests.ConnectionError('unreachable')

    monkeypatch.setattr(requests, 'get', fail)
    with pytest.raises(ResourceError) as exc:
        DataSource('http://localhost:1')('districts')
    assert exc.value.status is None


class Interrupted(BaseException):
    pass


def test_interrupted_fetch_leaves_key_retryable():
    calls = []

    def fetch(key):
        calls.append(key)
        if len(calls) == 1:
            raise Interrupted()
        return {'ok': True}

    cache = ResourceCache(fetch)
    with pytest.raises(Interrupted):
        cache.get('meta')
    assert 'meta' not in cache

    outcome = {}
    retry = threading.Thread(target=lambda: outcome.setdefault('value', cache.get('meta')))
    retry.start()
    retry.join(2)

    assert not retry.is_alive()
    assert outcome['value'] == {'ok': True}
    assert calls == ['meta', 'meta']
