"""
One viewing session of the election map.

MapSession is the composition root: it owns the view state, the layer
controller, the selection synchronizer and the overlay controllers, and wires
them to an ElectionStore. Nothing here is persisted across sessions.
"""

import logging
import threading
from dataclasses import asdict, dataclass
from typing import Optional

import config
from geometry import index_constituencies, index_districts
from layers import LayerController, MapSurface
from navigation import (NavigationSequencer, OverlayYearController, RequestTokens,
                        build_overlay, build_year_section)
from parties import get_alliance_tally
from resources import ResourceError
from selection import NAVIGATION, SEARCH, SelectionSynchronizer

logger = logging.getLogger(__name__)


@dataclass
class ViewState:
    selected_year: Optional[int] = None
    selected_district: Optional[str] = None
    selected_constituency_id: Optional[str] = None
    overlay_year: Optional[int] = None

    def to_dict(self):
        return asdict(self)


class Debouncer:
    """Runs fn only after calls have stopped arriving for `wait` seconds."""

    def __init__(self, wait, fn):
        self.wait = wait
        self.fn = fn
        self._timer = None
        self._lock = threading.Lock()

    @property
    def pending(self):
        return self._timer is not None

    def __call__(self, *args):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.wait, self._fire, args)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self, *args):
        with self._lock:
            # a timer cancelled too late must not run
            if threading.current_thread() is not self._timer:
                return
            self._timer = None
        self.fn(*args)

    def cancel(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


class SearchBox:
    """Debounced candidate search input."""

    def __init__(self, session, wait=None):
        self.session = session
        self.query = ''
        self.results = []
        self.error = None
        if wait is None:
            wait = config.SEARCH_DEBOUNCE_MS / 1000
        self._debounced = Debouncer(wait, self._run)

    @property
    def pending(self):
        return self._debounced.pending

    def input(self, query):
        self._debounced(query)

    def cancel(self):
        self._debounced.cancel()

    def _run(self, query):
        token = self.session.tokens.issue('search')
        try:
            results = self.session.search(query)
        except ResourceError as e:
            logger.error("Search for %r failed: %s", query, e.message)
            if self.session.tokens.is_current('search', token):
                self.query, self.results, self.error = query, [], e.message
            return
        if self.session.tokens.is_current('search', token):
            self.query, self.results, self.error = query, results, None

    def to_dict(self):
        return {'query': self.query, 'results': self.results,
                'pending': self.pending, 'error': self.error}


class MapSession:
    """Composition root for a single viewer."""

    def __init__(self, store, surface=None):
        self.store = store
        self.surface = surface or MapSurface()
        self.view = ViewState()
        self.tokens = RequestTokens()
        self.layers = LayerController(self.surface)
        self.sync = SelectionSynchronizer(self.view, store, self.layers, self.surface,
                                          on_constituency_selected=self.open_overlay,
                                          on_constituency_cleared=self.close_overlay)
        self.overlay_years = OverlayYearController(store.get_available_years())
        self.search_box = SearchBox(self)
        self.navigator = None
        self.overlay = None
        self.tally = None
        self.ready = False
        self.error = None

    def bootstrap(self):
        """Load geometry and metadata, build layers and fill the pickers."""
        self.surface.show_loading()
        try:
            data = self.store.load_initial_data()
        except ResourceError as e:
            self.surface.hide_loading()
            self.error = f"Failed to load map data. Please refresh the page. Error: {e.message}"
            self.surface.show_error(self.error)
            raise

        constituency_index = index_constituencies(data['constituencies'])
        self.sync.set_geometry(index_districts(data['districts']), constituency_index)
        self.layers.set_constituencies(constituency_index)
        self.navigator = NavigationSequencer(data['meta'])

        self.sync.populate_districts()
        self.sync.populate_constituencies()
        self.layers.apply(self.surface.zoom)
        self.surface.hide_loading()
        self.ready = True
        logger.info("Map session ready: %d constituencies", len(constituency_index))

    # Global year filter

    def set_year(self, year):
        """
        Activate an election year (None clears it).

        A failed load leaves the previous year active. If another year was
        requested while this one loaded, this result is dropped.
        """
        token = self.tokens.issue('year')
        if not year:
            self.view.selected_year = None
            self.tally = None
            self.layers.set_dataset(None)
            return True

        dataset = self.store.load_election_data(year)
        if not self.tokens.is_current('year', token):
            logger.info("Dropping stale dataset for %s", year)
            return False

        self.view.selected_year = int(year)
        self.tally = get_alliance_tally(dataset)
        self.layers.set_dataset(dataset, self.tally)
        return True

    def zoom_changed(self, zoom):
        return self.layers.apply(zoom, self.tally)

    # Selections from each surface

    def pick_district(self, district):
        self.sync.district_picker.change(district)

    def pick_constituency(self, constituency_id):
        self.sync.constituency_picker.change(constituency_id)

    def click_district(self, name):
        return self.sync.map_district_clicked(name)

    def click_constituency(self, constituency_id):
        return self.sync.map_constituency_clicked(constituency_id)

    def hover(self, layer, key, entering):
        if layer == 'districts':
            return self.layers.hover_district(key, entering)
        return self.layers.hover_constituency(key, entering)

    def select_search_result(self, constituency_id):
        return self.sync.select_constituency(constituency_id, source=SEARCH)

    def reset(self):
        self.close_overlay()
        self.sync.reset()

    # Search

    def search(self, query, year=None):
        year = year or self.view.selected_year or config.DEFAULT_OVERLAY_YEAR
        return self.store.search_candidates(year, query)

    # Detail overlay

    def _year_section(self, constituency_id, info, year):
        result = self.store.get_election_results(year, constituency_id)
        return build_year_section(year, result, info, self.overlay_years)

    def open_overlay(self, constituency_id):
        """Show a constituency's details; keeps the overlay year when already open."""
        token = self.tokens.issue('overlay')
        info = self.store.get_constituency_info(constituency_id) or {}
        if self.overlay is None or self.overlay_years.year is None:
            self.overlay_years.open(self.view.selected_year)
        year = self.overlay_years.year

        history = self.store.get_winner_history(constituency_id)
        section = self._year_section(constituency_id, info, year)
        if not self.tokens.is_current('overlay', token):
            return None

        self.view.overlay_year = year
        self.overlay = build_overlay(constituency_id, info, history, section)
        self.surface.open_overlay(self.overlay)
        return self.overlay

    def close_overlay(self):
        self.tokens.issue('overlay')
        if self.overlay is None:
            return False
        self.overlay = None
        self.overlay_years.close()
        self.view.overlay_year = None
        self.surface.close_overlay()
        return True

    def step_overlay_year(self, forward):
        """Move the overlay's year cursor; the map and global year stay as they are."""
        if self.overlay is None:
            return False
        previous = self.overlay_years.year
        moved = self.overlay_years.next() if forward else self.overlay_years.previous()
        if not moved:
            return False

        token = self.tokens.issue('overlay')
        constituency_id = self.view.selected_constituency_id
        info = self.store.get_constituency_info(constituency_id) or {}
        try:
            section = self._year_section(constituency_id, info, self.overlay_years.year)
        except ResourceError:
            self.overlay_years.year = previous
            raise
        if not self.tokens.is_current('overlay', token):
            return False

        self.view.overlay_year = self.overlay_years.year
        self.overlay['year_view'] = section
        self.surface.update_overlay(section)
        return True

    def navigate(self, forward):
        """Open the next or previous constituency by id, wrapping around."""
        if self.overlay is None or self.navigator is None:
            return False
        current = self.view.selected_constituency_id
        target = self.navigator.next(current) if forward else self.navigator.previous(current)
        if target is None:
            return False
        return self.sync.select_constituency(target, source=NAVIGATION)

    def snapshot(self):
        decision = self.layers.decision
        return {
            'ready': self.ready,
            'error': self.error,
            'view': self.view.to_dict(),
            'zoom': self.surface.zoom,
            'layers': decision.to_dict() if decision else None,
            'pickers': {
                'district': self.sync.district_picker.value,
                'constituency': self.sync.constituency_picker.value,
            },
            'overlay': self.overlay,
            'tally': self.tally,
            'search': self.search_box.to_dict(),
        }
