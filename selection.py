"""
Keeps the map, the district picker and the constituency picker in step.

Any of the three can originate a selection. Programmatic updates to a picker
run inside that picker's UpdateGuard, and the picker's own change handler
ignores changes made while its guard is applying, so an update never loops
back into the surface that caused it.
"""

import logging
from contextlib import contextmanager

import config
from geometry import feature_bounds

logger = logging.getLogger(__name__)

MAP = 'map'
DISTRICT_PICKER = 'district_picker'
CONSTITUENCY_PICKER = 'constituency_picker'
SEARCH = 'search'
NAVIGATION = 'navigation'


class UpdateGuard:
    """Two-state machine: 'idle' or 'applying' a programmatic update."""

    IDLE = 'idle'
    APPLYING = 'applying'

    def __init__(self, name):
        self.name = name
        self.state = self.IDLE
        self._depth = 0

    @property
    def active(self):
        return self.state == self.APPLYING

    @contextmanager
    def applying(self):
        self._depth += 1
        self.state = self.APPLYING
        try:
            yield self
        finally:
            self._depth -= 1
            if self._depth == 0:
                self.state = self.IDLE


class Picker:
    """A select control: options, a current value and change listeners."""

    def __init__(self, name, surface=None, placeholder=''):
        self.name = name
        self.surface = surface
        self.placeholder = placeholder
        self.options = []
        self.value = ''
        self._listeners = []

    def on_change(self, listener):
        self._listeners.append(listener)

    def set_options(self, options):
        self.options = options
        self.value = ''
        if self.surface is not None:
            self.surface.set_picker(self.name, self.value, options)

    def change(self, value):
        """Set the value and fire change listeners, as a select element does."""
        self.value = value or ''
        if self.surface is not None:
            self.surface.set_picker(self.name, self.value)
        for listener in self._listeners:
            listener(self.value)


class SelectionSynchronizer:
    """Propagates district and constituency selections across surfaces."""

    def __init__(self, view, store, layers, surface, on_constituency_selected=None,
                 on_constituency_cleared=None):
        self.view = view
        self.store = store
        self.layers = layers
        self.surface = surface
        self.on_constituency_selected = on_constituency_selected
        self.on_constituency_cleared = on_constituency_cleared
        self.district_index = {}
        self.constituency_index = {}

        self.district_guard = UpdateGuard(DISTRICT_PICKER)
        self.constituency_guard = UpdateGuard(CONSTITUENCY_PICKER)
        self.district_picker = Picker(DISTRICT_PICKER, surface, 'All Districts')
        self.constituency_picker = Picker(CONSTITUENCY_PICKER, surface, 'All Constituencies')
        self.district_picker.on_change(self._district_picker_changed)
        self.constituency_picker.on_change(self._constituency_picker_changed)

    def set_geometry(self, district_index, constituency_index):
        self.district_index = district_index
        self.constituency_index = constituency_index

    # Picker population

    def populate_districts(self):
        options = [{'value': d, 'label': d} for d in self.store.get_district_list()]
        with self.district_guard.applying():
            self.district_picker.set_options(options)

    def populate_constituencies(self, district=None):
        options = [
            {'value': c['id'], 'label': f"{c['id']}. {c['name']}"}
            for c in self.store.get_constituency_list(district)
        ]
        with self.constituency_guard.applying():
            self.constituency_picker.set_options(options)

    # Change handlers

    def _district_picker_changed(self, value):
        if self.district_guard.active:
            return
        self.select_district(value or None, source=DISTRICT_PICKER)

    def _constituency_picker_changed(self, value):
        if self.constituency_guard.active:
            return
        if value:
            self.select_constituency(value, source=CONSTITUENCY_PICKER)

    # Selections

    def canonical_district(self, name):
        """Match a map district name to the picker's spelling (case-insensitive)."""
        if not name:
            return None
        for option in self.district_picker.options:
            if option['value'].upper() == name.upper():
                return option['value']
        return name

    def select_district(self, district, source=DISTRICT_PICKER):
        district = self.canonical_district(district)
        previous = self.view.selected_district
        self.view.selected_district = district

        with self.district_guard.applying():
            if source != DISTRICT_PICKER and self.district_picker.value != (district or ''):
                self.district_picker.change(district)
            self.populate_constituencies(district)

        # the constituency list was just rebuilt, so nothing in it is selected
        if self.view.selected_constituency_id is not None:
            self.clear_constituency()

        if district:
            if district != previous:
                self.zoom_to_district(district)
            self.surface.show_back_button(True)

    def clear_constituency(self):
        self.view.selected_constituency_id = None
        self.layers.clear_highlight()
        if self.on_constituency_cleared is not None:
            self.on_constituency_cleared()

    def map_district_clicked(self, name):
        if not self.layers.districts_interactive:
            return False
        self.select_district(name, source=MAP)
        return True

    def select_constituency(self, constituency_id, source=CONSTITUENCY_PICKER):
        """Make one constituency current on every surface and open its details."""
        constituency_id = str(constituency_id)
        info = self.store.get_constituency_info(constituency_id)
        if info is None:
            logger.warning("Unknown constituency %s selected from %s", constituency_id, source)
            return False

        district = info.get('district')
        with self.district_guard.applying():
            if self.district_picker.value != (district or ''):
                self.district_picker.change(district)
                self.populate_constituencies(district)
            self.view.selected_district = district

        with self.constituency_guard.applying():
            self.constituency_picker.change(constituency_id)

        self.view.selected_constituency_id = constituency_id
        self.zoom_to_constituency(constituency_id)
        self.layers.highlight(constituency_id)
        self.surface.show_back_button(True)
        if self.on_constituency_selected is not None:
            self.on_constituency_selected(constituency_id)
        return True

    def map_constituency_clicked(self, constituency_id):
        if not self.layers.constituencies_interactive:
            return False
        return self.select_constituency(constituency_id, source=MAP)

    def reset(self):
        """Back to the statewide overview with nothing selected."""
        self.view.selected_district = None
        self.view.selected_constituency_id = None
        with self.district_guard.applying():
            self.district_picker.change('')
            self.populate_constituencies(None)
        self.layers.clear_highlight()
        self.surface.set_view(config.MAP_CENTER, config.INITIAL_ZOOM)
        self.layers.apply(config.INITIAL_ZOOM)
        self.surface.show_back_button(False)

    # Map movement

    def zoom_to_district(self, district):
        _, bounds = self.district_index.get(district.upper(), (district, None))
        if bounds is None:
            logger.warning("No boundary for district %s", district)
            return False
        self.surface.fit_bounds(bounds, **config.DISTRICT_FIT)
        return True

    def zoom_to_constituency(self, constituency_id):
        feature = self.constituency_index.get(str(constituency_id))
        if feature is None:
            logger.warning("No boundary for constituency %s", constituency_id)
            return False
        bounds = feature_bounds(feature)
        if bounds is None:
            return False
        self.surface.fit_bounds(bounds, **config.CONSTITUENCY_FIT)
        return True
