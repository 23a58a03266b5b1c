"""
Layer visibility for the election map.

layer_visibility() decides, from zoom level and whether a year is active,
what the district and constituency layers should look like. LayerController
applies those decisions to a MapSurface and keeps the selected-constituency
highlight consistent.
"""

from dataclasses import asdict, dataclass

import config
from parties import get_legend, get_party_color

OVERVIEW = 'overview'
YEAR_OVERVIEW = 'year_overview'
DETAIL = 'detail'

DISTRICT_STYLE = {
    'color': '#6366f1',
    'weight': 2,
    'opacity': 1,
    'fillColor': '#6366f1',
    'fillOpacity': 0.2,
}
DEFAULT_FILL = '#8b5cf6'
HIGHLIGHT_STYLE = {'weight': 3, 'opacity': 1, 'fillOpacity': 0.7}
SELECTED_STYLE = {'weight': 4, 'color': '#ffffff', 'opacity': 1, 'fillOpacity': 0.8}


@dataclass(frozen=True)
class LayerVisibilityDecision:
    mode: str
    district_opacity: float
    district_fill_opacity: float
    district_interactive: bool
    district_labels: bool
    constituency_attached: bool
    constituency_interactive: bool
    constituency_colored: bool
    constituency_labels: bool
    legend_visible: bool

    def to_dict(self):
        return asdict(self)


def layer_visibility(zoom, year_active, constituency_min_zoom=None, label_min_zoom=None):
    """Pure zoom/year policy for both layers."""
    if constituency_min_zoom is None:
        constituency_min_zoom = config.CONSTITUENCY_MIN_ZOOM
    if label_min_zoom is None:
        label_min_zoom = config.LABEL_MIN_ZOOM
    labels = zoom >= label_min_zoom

    if year_active:
        # A chosen year means constituency-level exploration at any zoom
        return LayerVisibilityDecision(
            mode=YEAR_OVERVIEW,
            district_opacity=0,
            district_fill_opacity=0,
            district_interactive=False,
            district_labels=False,
            constituency_attached=True,
            constituency_interactive=True,
            constituency_colored=True,
            constituency_labels=labels,
            legend_visible=True,
        )

    if zoom < constituency_min_zoom:
        return LayerVisibilityDecision(
            mode=OVERVIEW,
            district_opacity=1,
            district_fill_opacity=0.3,
            district_interactive=True,
            district_labels=True,
            constituency_attached=False,
            constituency_interactive=False,
            constituency_colored=False,
            constituency_labels=False,
            legend_visible=False,
        )

    return LayerVisibilityDecision(
        mode=DETAIL,
        district_opacity=0.3,
        district_fill_opacity=0.1,
        district_interactive=False,
        district_labels=False,
        constituency_attached=True,
        constituency_interactive=True,
        constituency_colored=False,
        constituency_labels=labels,
        legend_visible=False,
    )


def constituency_style(result=None):
    """Base style for a constituency, coloured by winner when results are given."""
    fill_color = DEFAULT_FILL
    fill_opacity = 0.3
    if result and result.get('winner'):
        fill_color = get_party_color(result['winner'].get('party'))
        fill_opacity = 0.6
    return {
        'color': '#ffffff',
        'weight': 1,
        'opacity': 0.6,
        'fillColor': fill_color,
        'fillOpacity': fill_opacity,
    }


class MapSurface:
    """
    The rendering side of the map.

    Calls are recorded as commands that the browser replays on the real map;
    drain() hands them over and starts a fresh batch.
    """

    def __init__(self, zoom=None):
        self.zoom = config.INITIAL_ZOOM if zoom is None else zoom
        self.commands = []

    def _emit(self, command, **kwargs):
        kwargs['command'] = command
        self.commands.append(kwargs)

    def drain(self):
        commands, self.commands = self.commands, []
        return commands

    def fit_bounds(self, bounds, padding, max_zoom):
        self._emit('fit_bounds', bounds=bounds, padding=padding, max_zoom=max_zoom)

    def set_view(self, center, zoom):
        self.zoom = zoom
        self._emit('set_view', center=center, zoom=zoom)

    def style_districts(self, style, interactive):
        self._emit('style_districts', style=style, interactive=interactive)

    def attach_constituencies(self, attached, interactive):
        self._emit('attach_constituencies', attached=attached, interactive=interactive)

    def style_constituencies(self, styles):
        self._emit('style_constituencies', styles=styles)

    def style_constituency(self, constituency_id, style):
        self._emit('style_constituency', id=constituency_id, style=style)

    def style_district(self, name, style):
        self._emit('style_district', name=name, style=style)

    def show_labels(self, layer, visible):
        self._emit('labels', layer=layer, visible=visible)

    def show_legend(self, entries, tally=None):
        self._emit('show_legend', entries=entries, tally=tally or [])

    def hide_legend(self):
        self._emit('hide_legend')

    def show_loading(self):
        self._emit('show_loading')

    def hide_loading(self):
        self._emit('hide_loading')

    def show_error(self, message):
        self._emit('show_error', message=message)

    def show_back_button(self, visible):
        self._emit('back_button', visible=visible)

    def set_picker(self, picker, value, options=None):
        self._emit('set_picker', picker=picker, value=value, options=options)

    def open_overlay(self, content):
        self._emit('open_overlay', content=content)

    def update_overlay(self, section):
        self._emit('update_overlay', section=section)

    def close_overlay(self):
        self._emit('close_overlay')


class LayerController:
    """Applies visibility decisions and owns the single-selection highlight."""

    def __init__(self, surface, constituency_min_zoom=None, label_min_zoom=None):
        self.surface = surface
        self.constituency_min_zoom = constituency_min_zoom
        self.label_min_zoom = label_min_zoom
        self.constituency_ids = []
        self.dataset = None
        self.tally = None
        self.decision = None
        self.highlighted_id = None

    def set_constituencies(self, constituency_ids):
        self.constituency_ids = list(constituency_ids)

    def base_style(self, constituency_id):
        result = None
        if self.dataset is not None:
            result = self.dataset['constituencies'].get(str(constituency_id))
        return constituency_style(result)

    def decide(self, zoom):
        return layer_visibility(zoom, self.dataset is not None,
                                self.constituency_min_zoom, self.label_min_zoom)

    def set_dataset(self, dataset, tally=None):
        """Switch the colouring year (None clears it) and re-apply visibility."""
        self.dataset = dataset
        self.tally = tally if dataset is not None else None
        styles = {cid: self.base_style(cid) for cid in self.constituency_ids}
        if self.highlighted_id in styles:
            styles[self.highlighted_id] = dict(styles[self.highlighted_id], **SELECTED_STYLE)
        self.surface.style_constituencies(styles)
        self.apply(self.surface.zoom, tally)

    def apply(self, zoom, tally=None):
        """Apply the decision for a zoom level to the surface."""
        self.surface.zoom = zoom
        if tally is None:
            tally = self.tally
        decision = self.decide(zoom)
        self.decision = decision

        district_style = dict(DISTRICT_STYLE,
                              opacity=decision.district_opacity,
                              fillOpacity=decision.district_fill_opacity)
        self.surface.style_districts(district_style, decision.district_interactive)
        self.surface.show_labels('districts', decision.district_labels)
        self.surface.attach_constituencies(decision.constituency_attached,
                                           decision.constituency_interactive)
        self.surface.show_labels('constituencies', decision.constituency_labels)
        if decision.legend_visible:
            self.surface.show_legend(get_legend(), tally)
        else:
            self.surface.hide_legend()
        return decision

    @property
    def districts_interactive(self):
        return self.decision is not None and self.decision.district_interactive

    @property
    def constituencies_interactive(self):
        return self.decision is not None and self.decision.constituency_interactive

    def highlight(self, constituency_id):
        """Emphasise one constituency, restoring whichever was emphasised before."""
        constituency_id = str(constituency_id)
        if self.highlighted_id is not None and self.highlighted_id != constituency_id:
            self.surface.style_constituency(self.highlighted_id, self.base_style(self.highlighted_id))
        self.highlighted_id = constituency_id
        self.surface.style_constituency(constituency_id,
                                        dict(self.base_style(constituency_id), **SELECTED_STYLE))

    def clear_highlight(self):
        if self.highlighted_id is not None:
            self.surface.style_constituency(self.highlighted_id, self.base_style(self.highlighted_id))
            self.highlighted_id = None

    def hover_constituency(self, constituency_id, entering):
        if not self.constituencies_interactive:
            return False
        constituency_id = str(constituency_id)
        if entering:
            self.surface.style_constituency(constituency_id,
                                            dict(self.base_style(constituency_id), **HIGHLIGHT_STYLE))
        elif constituency_id != self.highlighted_id:
            self.surface.style_constituency(constituency_id, self.base_style(constituency_id))
        return True

    def hover_district(self, name, entering):
        if not self.districts_interactive:
            return False
        if entering:
            style = dict(DISTRICT_STYLE, **HIGHLIGHT_STYLE)
        else:
            style = dict(DISTRICT_STYLE,
                         opacity=self.decision.district_opacity,
                         fillOpacity=self.decision.district_fill_opacity)
        self.surface.style_district(name, style)
        return True
