from navigation import (NavigationSequencer, OverlayYearController, RequestTokens, build_candidate_rows,
                        build_header, build_year_section)
from results import derive_dataset
from tests.conftest import ELECTIONS_2021, META


def test_sequencer_wraps_both_ways():
    sequencer = NavigationSequencer({'1': {}, '2': {}, '3': {}})
    assert sequencer.next('3') == '1'
    assert sequencer.previous('1') == '3'
    assert sequencer.next('1') == '2'
    assert sequencer.previous('3') == '2'


def test_sequencer_uses_numeric_order_over_all_districts():
    sequencer = NavigationSequencer(META)
    assert sequencer.order == ['1', '2', '5', '9', '10']
    assert sequencer.next('9') == '10'
    assert sequencer.next('10') == '1'
    assert sequencer.next(2) == '5'


def test_sequencer_unknown_id_is_noop():
    sequencer = NavigationSequencer(META)
    assert sequencer.next('404') is None
    assert sequencer.previous(None) is None


def test_overlay_years_stop_at_bounds():
    years = OverlayYearController([2021, 2011, 2016])
    assert years.open(2011) == 2011
    assert years.previous() is False
    assert years.year == 2011
    assert years.next() is True
    assert years.next() is True
    assert years.year == 2021
    assert years.next() is False
    assert years.year == 2021


def test_overlay_years_default_and_global():
    years = OverlayYearController([2011, 2016, 2021], default_year=2021)
    assert years.open(None) == 2021
    assert years.can_previous and not years.can_next
    assert years.open('2016') == 2016
    years.close()
    assert years.year is None
    assert years.next() is False


def test_request_tokens():
    tokens = RequestTokens()
    first = tokens.issue('year')
    second = tokens.issue('year')
    assert not tokens.is_current('year', first)
    assert tokens.is_current('year', second)
    assert tokens.is_current('overlay', tokens.issue('overlay'))


def test_header_formats_voters():
    header = build_header('10', META['10'])
    assert header['registered_voters'] == '1,81,234'
    assert header['reserved'] is True
    assert header['name_ta'] == 'எழும்பூர்'
    assert build_header('1', {'name': 'X'})['registered_voters'] == 'N/A'


def test_candidate_rows_mark_derived_winner():
    result = derive_dataset(ELECTIONS_2021)['constituencies']['2']
    rows = build_candidate_rows(result)
    assert [r['rank'] for r in rows] == [1, 2, 3]
    assert [r['is_winner'] for r in rows] == [True, False, False]
    assert rows[0]['bar_percent'] == 100
    assert rows[0]['votes_text'] == '52,000'
    assert rows[2]['color'] == '#ffc107'


def test_year_section_without_data_uses_meta_electors():
    years = OverlayYearController([2011, 2016, 2021])
    years.open(2016)
    section = build_year_section(2016, None, META['10'], years)
    assert section['has_data'] is False
    assert section['candidates'] == []
    assert section['electors'] == 170000
    assert section['can_previous'] and section['can_next']


def test_year_section_with_data():
    years = OverlayYearController([2011, 2016, 2021])
    years.open(2021)
    result = derive_dataset(ELECTIONS_2021)['constituencies']['5']
    section = build_year_section(2021, result, META['5'], years)
    assert section['margin'] == 10000
    assert section['margin_text'] == 'Margin: 10,000 votes'
    assert section['turnout_text'] == 'Turnout: 81.00%'
    assert section['electors'] == 210000
    assert section['can_next'] is False
