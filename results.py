"""
Election result derivation and queries.

The pure functions at the top work directly on loaded payloads. ElectionStore
binds them to a ResourceCache so each dataset is derived once per session.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

import config
from resources import ResourceError

logger = logging.getLogger(__name__)


def id_sort_key(constituency_id):
    """Numeric ordering for constituency ids ('10' after '9')."""
    try:
        return (0, int(constituency_id), '')
    except (TypeError, ValueError):
        return (1, 0, str(constituency_id))


def select_winner(candidates):
    """Candidate flagged as winner, else the first in list order."""
    for candidate in candidates:
        if candidate.get('winner') is True:
            return candidate
    return candidates[0] if candidates else None


def select_runner_up(candidates):
    """Second candidate in list order, whatever the winner flags say."""
    return candidates[1] if len(candidates) > 1 else None


def resolve_electors(electors, year):
    """Scalar elector count for a year; electors may be a per-year mapping."""
    if isinstance(electors, dict):
        if str(year) in electors:
            return electors[str(year)]
        return electors.get(year)
    return electors


def compute_margin(winner, runner_up):
    if winner is None or runner_up is None:
        return None
    return (winner.get('votes') or 0) - (runner_up.get('votes') or 0)


def compute_margin_percent(winner, margin, total_votes):
    if winner is not None and winner.get('margin_percent') is not None:
        return winner['margin_percent']
    if margin is None or not total_votes:
        return None
    return round(margin / total_votes * 100, 2)


def derive_result(constituency, year):
    """Add winner, runner_up, margin and the year's electors to one constituency."""
    candidates = constituency.get('candidates') or []
    winner = select_winner(candidates)
    runner_up = select_runner_up(candidates)
    margin = compute_margin(winner, runner_up)

    result = dict(constituency)
    result['candidates'] = candidates
    result['electors'] = resolve_electors(constituency.get('electors'), year)
    result['winner'] = winner
    result['runner_up'] = runner_up
    result['margin'] = margin
    result['margin_percent'] = compute_margin_percent(winner, margin, constituency.get('total_votes'))
    return result


def derive_dataset(raw):
    """Derive a full ElectionDataset from a raw per-year election payload."""
    year = raw.get('year')
    return {
        'year': year,
        'alliances': raw.get('alliances') or {},
        'constituencies': {
            str(cid): derive_result(constituency, year)
            for cid, constituency in (raw.get('constituencies') or {}).items()
        },
    }


def get_district_list(meta):
    """Sorted, de-duplicated district names."""
    districts = {entry['district'] for entry in meta.values() if entry.get('district')}
    return sorted(districts)


def get_constituency_list(meta, district=None):
    """id/name/district for each constituency, optionally for one district, by numeric id."""
    items = [
        {'id': str(cid), 'name': entry.get('name'), 'district': entry.get('district')}
        for cid, entry in meta.items()
    ]
    if district:
        items = [c for c in items if c['district'] == district]
    return sorted(items, key=lambda c: id_sort_key(c['id']))


def search_dataset(dataset, query, limit=None):
    """Candidates whose name contains query (case-insensitive), most votes first."""
    if not query or len(query) < config.SEARCH_MIN_CHARS:
        return []
    limit = limit or config.SEARCH_LIMIT
    needle = query.lower()

    matches = []
    for cid, constituency in dataset['constituencies'].items():
        for candidate in constituency.get('candidates') or []:
            name = candidate.get('name')
            if name and needle in name.lower():
                match = dict(candidate)
                match['constituency_name'] = constituency.get('name')
                match['constituency_id'] = cid
                match['district'] = constituency.get('district')
                matches.append(match)

    # sorted() is stable, so ties keep iteration order
    matches = sorted(matches, key=lambda m: -(m.get('votes') or 0))
    return matches[:limit]


def election_key(year):
    return f"elections-{int(year)}"


class ElectionStore:
    """Query layer over a ResourceCache."""

    def __init__(self, cache, years=None):
        self.cache = cache
        self.years = sorted(years or config.AVAILABLE_YEARS)

    def get_available_years(self):
        return list(self.years)

    def load_districts(self):
        return self.cache.get('districts')

    def load_constituencies(self):
        return self.cache.get('constituencies')

    def load_meta(self):
        return self.cache.get('meta')

    def load_initial_data(self):
        """Load both geometry files and the metadata in parallel."""
        with ThreadPoolExecutor(max_workers=3) as pool:
            districts = pool.submit(self.load_districts)
            constituencies = pool.submit(self.load_constituencies)
            meta = pool.submit(self.load_meta)
            return {
                'districts': districts.result(),
                'constituencies': constituencies.result(),
                'meta': meta.result(),
            }

    def load_election_data(self, year):
        return self.cache.get(election_key(year), transform=derive_dataset)

    def get_district_list(self):
        return get_district_list(self.load_meta())

    def get_constituency_list(self, district=None):
        return get_constituency_list(self.load_meta(), district)

    def get_constituency_info(self, constituency_id):
        return self.load_meta().get(str(constituency_id))

    def get_election_results(self, year, constituency_id):
        return self.load_election_data(year)['constituencies'].get(str(constituency_id))

    def get_winner_history(self, constituency_id, years=None):
        """
        Winner, margin and turnout for each year a constituency has data.

        Years whose dataset cannot be loaded are skipped; this never raises.
        """
        history = []
        for year in (years if years is not None else self.years):
            try:
                data = self.load_election_data(year)
            except ResourceError as e:
                logger.warning("No data for %s: %s", year, e.message)
                continue
            result = data['constituencies'].get(str(constituency_id))
            if result and result.get('winner'):
                history.append({
                    'year': year,
                    'winner': result['winner'],
                    'margin': result['margin'],
                    'turnout': result.get('turnout_percent'),
                })
        return history

    def search_candidates(self, year, query):
        if not year or not query or len(query) < config.SEARCH_MIN_CHARS:
            return []
        return search_dataset(self.load_election_data(year), query)
