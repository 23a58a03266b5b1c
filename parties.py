"""
Party colours, legend entries and seat tallies.
"""

from collections import defaultdict

PARTY_COLORS = {
    'DMK': '#e53935',
    'AIADMK': '#4caf50',
    'ADMK': '#4caf50',  # Alias for AIADMK
    'BJP': '#ff9800',
    'INC': '#2196f3',
    'CONGRESS': '#2196f3',
    'PMK': '#ffeb3b',
    'MDMK': '#9c27b0',
    'VCK': '#00bcd4',
    'CPI': '#f44336',
    'CPI(M)': '#b71c1c',
    'CPM': '#b71c1c',
    'DMDK': '#009688',
    'TMC': '#795548',
    'AMMK': '#8bc34a',
    'NTK': '#ffc107',
    'MNM': '#3f51b5',
    'IUML': '#006400',
    'MMK': '#00a65a',
    'IJK': '#ff6600',
    'KMDK': '#99cc33',
    'IND': '#607d8b',
    'OTHERS': '#78909c',
}

LEGEND_PARTIES = [
    ('DMK', 'DMK'),
    ('AIADMK', 'AIADMK'),
    ('BJP', 'BJP'),
    ('INC', 'INC'),
    ('Others', 'OTHERS'),
]


def get_party_color(party):
    """Colour for a party code, falling back to OTHERS."""
    if not party:
        return PARTY_COLORS['OTHERS']
    return PARTY_COLORS.get(party.upper().strip(), PARTY_COLORS['OTHERS'])


def get_legend():
    """Legend entries shown while a year is active."""
    return [{'name': name, 'color': get_party_color(code)} for name, code in LEGEND_PARTIES]


def get_party_seats(dataset):
    """Seats won per party, most seats first."""
    seats = defaultdict(int)
    for result in dataset['constituencies'].values():
        winner = result.get('winner')
        if winner:
            seats[winner.get('party') or 'OTHERS'] += 1
    return dict(sorted(seats.items(), key=lambda item: (-item[1], item[0])))


def get_alliance_tally(dataset):
    """
    Combined seat tally per alliance for a derived dataset.

    Parties that belong to no alliance are summed under 'unaligned'.
    """
    seats = get_party_seats(dataset)
    alliances = dataset.get('alliances') or {}

    tally = []
    claimed = set()
    for key, alliance in alliances.items():
        members = [p.upper() for p in alliance.get('parties', [])]
        party_seats = {p: n for p, n in seats.items() if p.upper() in members}
        claimed.update(party_seats)
        tally.append({
            'key': key,
            'name': alliance.get('name', key),
            'parties': alliance.get('parties', []),
            'seats': sum(party_seats.values()),
            'party_seats': party_seats,
        })

    unaligned = {p: n for p, n in seats.items() if p not in claimed}
    if unaligned:
        tally.append({
            'key': 'unaligned',
            'name': 'Others',
            'parties': list(unaligned),
            'seats': sum(unaligned.values()),
            'party_seats': unaligned,
        })

    tally.sort(key=lambda a: -a['seats'])
    return tally
