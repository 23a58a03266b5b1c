"""
Detail overlay: constituency navigation, the overlay's own year cursor and
the content shown in the overlay.
"""

import threading

import config
from formatters import format_margin, format_number, format_turnout, format_vote_share
from parties import get_party_color
from results import get_constituency_list, resolve_electors


class NavigationSequencer:
    """Circular next/previous over every constituency, ordered by numeric id."""

    def __init__(self, meta):
        self._meta = meta
        self._order = None

    @property
    def order(self):
        if self._order is None:
            self._order = [c['id'] for c in get_constituency_list(self._meta)]
        return self._order

    def _step(self, current_id, step):
        order = self.order
        try:
            index = order.index(str(current_id))
        except ValueError:
            return None
        return order[(index + step) % len(order)]

    def next(self, current_id):
        return self._step(current_id, 1)

    def previous(self, current_id):
        return self._step(current_id, -1)


class OverlayYearController:
    """
    Year cursor for the detail overlay, independent of the global year filter.

    Unlike constituency navigation it stops at the first and last year.
    """

    def __init__(self, years, default_year=None):
        self.years = sorted(years)
        self.default_year = default_year or config.DEFAULT_OVERLAY_YEAR
        self.year = None

    def open(self, global_year=None):
        self.year = int(global_year) if global_year else self.default_year
        return self.year

    def close(self):
        self.year = None

    def _index(self):
        try:
            return self.years.index(self.year)
        except ValueError:
            return None

    @property
    def can_previous(self):
        index = self._index()
        return index is not None and index > 0

    @property
    def can_next(self):
        index = self._index()
        return index is not None and index < len(self.years) - 1

    def previous(self):
        if not self.can_previous:
            return False
        self.year = self.years[self._index() - 1]
        return True

    def next(self):
        if not self.can_next:
            return False
        self.year = self.years[self._index() + 1]
        return True


class RequestTokens:
    """Monotonic tokens per channel so late results can be recognised and dropped."""

    def __init__(self):
        self._latest = {}
        self._lock = threading.Lock()

    def issue(self, channel):
        with self._lock:
            token = self._latest.get(channel, 0) + 1
            self._latest[channel] = token
            return token

    def is_current(self, channel, token):
        return self._latest.get(channel) == token


def build_header(constituency_id, info):
    constituency_type = info.get('type') or 'General'
    voters = info.get('registered_voters')
    return {
        'id': str(constituency_id),
        'name': info.get('name'),
        'name_ta': info.get('name_ta') or '',
        'district': info.get('district'),
        'type': constituency_type,
        'reserved': constituency_type in ('SC', 'ST'),
        'registered_voters': format_number(voters) if voters else 'N/A',
        'description': info.get('description') or '',
    }


def build_history(history):
    cards = []
    for entry in history:
        winner = entry['winner']
        cards.append({
            'year': entry['year'],
            'winner': winner.get('name'),
            'party': winner.get('party'),
            'color': get_party_color(winner.get('party')),
            'margin': entry['margin'],
            'margin_text': format_margin(entry['margin']),
            'turnout': entry['turnout'],
            'turnout_text': format_turnout(entry['turnout']),
        })
    return cards


def build_candidate_rows(result):
    candidates = result.get('candidates') or []
    max_votes = max((c.get('votes') or 0 for c in candidates), default=0)
    rows = []
    for rank, candidate in enumerate(candidates, start=1):
        votes = candidate.get('votes') or 0
        color = get_party_color(candidate.get('party'))
        rows.append({
            'rank': rank,
            'name': candidate.get('name'),
            'party': candidate.get('party'),
            'color': color,
            'votes': votes,
            'votes_text': format_number(votes),
            'vote_share': candidate.get('vote_share'),
            'vote_share_text': format_vote_share(candidate.get('vote_share')),
            'bar_percent': round(votes / max_votes * 100, 2) if max_votes > 0 else 0,
            'is_winner': candidate is result.get('winner'),
            'incumbent': bool(candidate.get('incumbent')),
            'deposit_lost': bool(candidate.get('deposit_lost')),
            'terms': candidate.get('terms'),
            'turncoat': bool(candidate.get('turncoat')),
        })
    return rows


def build_year_section(year, result, info, controller):
    """The part of the overlay that follows the overlay's year cursor."""
    section = {
        'year': year,
        'can_previous': controller.can_previous,
        'can_next': controller.can_next,
        'has_data': result is not None,
        'candidates': [],
        'margin': None,
        'margin_text': 'N/A',
        'margin_percent': None,
        'turnout': None,
        'turnout_text': 'N/A',
        'electors': None,
    }
    if result is None:
        section['electors'] = resolve_electors((info or {}).get('electors'), year)
        return section

    electors = result.get('electors')
    if electors is None:
        electors = resolve_electors((info or {}).get('electors'), year)
    section.update({
        'candidates': build_candidate_rows(result),
        'margin': result.get('margin'),
        'margin_text': format_margin(result.get('margin')),
        'margin_percent': result.get('margin_percent'),
        'turnout': result.get('turnout_percent'),
        'turnout_text': format_turnout(result.get('turnout_percent')),
        'electors': electors,
    })
    return section


def build_overlay(constituency_id, info, history, year_section):
    return {
        'header': build_header(constituency_id, info),
        'history': build_history(history),
        'year_view': year_section,
    }
