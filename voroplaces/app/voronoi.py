"""
Voronoi Places Kivy App
========================

Runs the map GUI. Drag the map to pan it and scroll to zoom, every time the
map settles the places matching the searched category are fetched and their
Voronoi diagram is drawn over the map. Tap a marker to see its name.
"""

import asyncio
import logging

from kivy.app import App
from kivy.clock import Clock
from kivy.factory import Factory
from kivy.lang import Builder
from kivy.properties import StringProperty
from kivy.uix.widget import Widget
from kivy.graphics import Color, Line, Point, Rectangle, InstructionGroup
from kivy.graphics.context_instructions import \
    PushMatrix, PopMatrix, Translate, Scale

from voroplaces.app.controller import RenderContext, RenderCycleController, \
    ViewportController
from voroplaces.app.overlay import OverlayLifecycleManager
from voroplaces.app.providers import OverpassPointProvider, \
    NominatimGeocodeProvider
from voroplaces.mapping.viewport import MapViewport, OverlaySurface, \
    RenderLayer
from voroplaces.utils import load_config, hex_to_rgba

__all__ = (
    'KivyOverlaySurface', 'KivyRenderLayer', 'VoronoiMapWidget',
    'VoronoiPlacesApp', 'run_app')


class KivyOverlaySurface(OverlaySurface):
    """Surface drawing the diagram edges as kivy lines.
    """

    parent_group = None

    group = None

    content = None

    translate = None

    def __init__(self, parent_group, **kwargs):
        super(KivyOverlaySurface, self).__init__(**kwargs)
        self.parent_group = parent_group
        self.group = group = InstructionGroup()
        self.translate = Translate(0, 0)
        self.content = InstructionGroup()

        group.add(PushMatrix())
        group.add(self.translate)
        group.add(self.content)
        group.add(PopMatrix())
        parent_group.add(group)

    def set_geometry(self, left, top, width, height):
        super(KivyOverlaySurface, self).set_geometry(left, top, width, height)
        self.translate.x = left
        self.translate.y = top

    def draw_path(self, diagram, color='#ff0000', width=3):
        super(KivyOverlaySurface, self).draw_path(diagram, color, width)
        self.content.add(Color(rgba=hex_to_rgba(color)))
        for (x1, y1), (x2, y2) in diagram.edges():
            self.content.add(Line(points=[x1, y1, x2, y2], width=width))

    def release(self):
        self.content.clear()
        if self.group is not None:
            self.parent_group.remove(self.group)
        self.group = None
        super(KivyOverlaySurface, self).release()


class KivyRenderLayer(RenderLayer):
    """The pane of the :class:`VoronoiMapWidget` holding the overlay surfaces
    and the markers, in div pixels.
    """

    widget = None

    pane = None
    """The instructions of the whole layer, to be added to a canvas.
    """

    pane_translate = None

    surfaces_group = None

    markers_group = None

    marker_graphics = {}

    marker_color = (.8, 0, 0, 1)

    def __init__(self, widget, **kwargs):
        super(KivyRenderLayer, self).__init__(**kwargs)
        self.widget = widget
        self.marker_graphics = {}

        self.pane = pane = InstructionGroup()
        self.pane_translate = Translate(0, 0)
        self.surfaces_group = InstructionGroup()
        self.markers_group = InstructionGroup()
        pane.add(PushMatrix())
        pane.add(self.pane_translate)
        pane.add(self.surfaces_group)
        pane.add(self.markers_group)
        pane.add(PopMatrix())

    def update_pane(self, viewport):
        self.pane_translate.x, self.pane_translate.y = viewport.pane_offset

    def new_surface(self):
        self.update_pane(self.widget.viewport)
        return KivyOverlaySurface(self.surfaces_group)

    def add_marker(self, marker):
        super(KivyRenderLayer, self).add_marker(marker)
        viewport = self.widget.viewport
        self.update_pane(viewport)

        x, y = viewport.get_projection().to_div_pixel(marker.location)
        graphics = [
            Color(rgba=self.marker_color),
            Point(points=[x, y], pointsize=6)]
        for item in graphics:
            self.markers_group.add(item)
        self.marker_graphics[marker] = graphics

    def remove_marker(self, marker):
        if marker is self.open_marker:
            self.widget.hide_info()
        super(KivyRenderLayer, self).remove_marker(marker)
        for item in self.marker_graphics.pop(marker):
            self.markers_group.remove(item)

    def show_label(self, marker):
        super(KivyRenderLayer, self).show_label(marker)
        self.widget.show_info(marker)


class VoronoiMapWidget(Widget):
    """The map through which we interact with the viewport.

    The canvas is flipped vertically so that the layer is drawn in pixels
    growing downwards, like the container and div pixel spaces.
    """

    viewport = None

    render_layer = None

    markers = None
    """The :class:`~voroplaces.app.markers.MarkerSet` whose markers can be
    tapped.
    """

    info_label = None

    background_color = (.93, .93, .9, 1)

    _dragged = {}

    _loaded = False

    def __init__(self, viewport_kwargs=None, **kwargs):
        super(VoronoiMapWidget, self).__init__(**kwargs)
        self._dragged = {}
        self.render_layer = KivyRenderLayer(self)
        self.viewport = MapViewport(
            render_layer=self.render_layer, size=self.size,
            **(viewport_kwargs or {}))

        with self.canvas.before:
            Color(rgba=self.background_color)
            self._background = Rectangle(pos=self.pos, size=self.size)

        with self.canvas:
            PushMatrix()
            self._flip = Translate(self.x, self.top)
            Scale(1, -1, 1)
        self.canvas.add(self.render_layer.pane)
        with self.canvas:
            PopMatrix()

        self._resize_trigger = Clock.create_trigger(self._apply_size)
        self.fbind('pos', self._update_transform)
        self.fbind('size', self._update_transform)
        self.fbind('size', self._resize_trigger)
        self._resize_trigger()

    def _update_transform(self, *largs):
        self._background.pos = self.pos
        self._background.size = self.size
        self._flip.x = self.x
        self._flip.y = self.top

    def _apply_size(self, *largs):
        size = tuple(map(float, self.size))
        if self._loaded and size == tuple(self.viewport.size):
            return

        # the first size is the initial load of the map
        self._loaded = True
        self.viewport.resize(size)
        self.viewport.reset_pane()
        self.settle()

    def to_container(self, pos):
        x, y = pos
        return x - self.x, self.top - y

    def settle(self, *largs):
        self.render_layer.update_pane(self.viewport)
        self.viewport.settle()

    def schedule_settle(self):
        Clock.schedule_once(self.settle)

    def zoom_by(self, step):
        if self.viewport.set_zoom(self.viewport.zoom + step):
            self.render_layer.update_pane(self.viewport)
            self.schedule_settle()

    def on_touch_down(self, touch):
        if not self.collide_point(*touch.pos):
            return super(VoronoiMapWidget, self).on_touch_down(touch)

        if touch.is_mouse_scrolling:
            if touch.button == 'scrolldown':
                self.zoom_by(1)
            elif touch.button == 'scrollup':
                self.zoom_by(-1)
            return True

        touch.grab(self)
        self._dragged[touch.uid] = False
        return True

    def on_touch_move(self, touch):
        if touch.grab_current is not self:
            return super(VoronoiMapWidget, self).on_touch_move(touch)

        self._dragged[touch.uid] = True
        self.viewport.pan_by(-touch.dx, touch.dy)
        self.render_layer.update_pane(self.viewport)
        if self.info_label is not None:
            self.info_label.center_x += touch.dx
            self.info_label.y += touch.dy
        return True

    def on_touch_up(self, touch):
        if touch.grab_current is not self:
            return super(VoronoiMapWidget, self).on_touch_up(touch)

        touch.ungrab(self)
        if self._dragged.pop(touch.uid, False):
            self.schedule_settle()
        else:
            self.select_marker(touch.pos)
        return True

    def select_marker(self, pos):
        if self.markers is None:
            return None

        marker = self.markers.find(
            self.viewport.get_projection(), self.to_container(pos))
        if marker is None:
            self.hide_info()
        else:
            self.markers.show_label(marker)
        return marker

    def show_info(self, marker):
        self.hide_info()
        x, y = self.viewport.get_projection().to_container_pixel(
            marker.location)
        label = self.info_label = Factory.InfoLabel(text=marker.label)
        label.center_x = self.x + x
        label.y = self.top - y + 8
        self.add_widget(label)

    def hide_info(self):
        if self.info_label is not None:
            self.remove_widget(self.info_label)
        self.info_label = None


class VoronoiPlacesApp(App):
    """The Kivy application that creates the GUI.
    """

    error_text = StringProperty('')

    center = [48.1351, 11.5820]

    zoom = 14

    min_zoom = 12

    max_zoom = 19

    screen_size = [1200, 800]

    category = 'subway'

    overpass_url = OverpassPointProvider.url

    nominatim_url = NominatimGeocodeProvider.url

    user_agent = OverpassPointProvider.user_agent

    timeout = 30.

    max_results = 60

    stroke_color = '#ff0000'

    stroke_width = 3

    discard_stale_results = True

    log_level = 'info'

    config_filename = None

    map_widget = None

    render_controller = None

    viewport_controller = None

    config_keys = [
        'center', 'zoom', 'min_zoom', 'max_zoom', 'screen_size', 'category',
        'overpass_url', 'nominatim_url', 'user_agent', 'timeout',
        'max_results', 'stroke_color', 'stroke_width',
        'discard_stale_results', 'log_level']

    def load_app_config(self):
        load_config(self, self.config_keys, self.config_filename)
        logging.getLogger().setLevel(self.log_level.upper())

    def set_error_text(self, text):
        self.error_text = text or ''

    def create_controllers(self, map_widget):
        """Wires the render cycle to the map's viewport.
        """
        context = RenderContext(
            map_widget.viewport, category=self.category,
            overlay_manager=OverlayLifecycleManager(
                stroke_color=self.stroke_color,
                stroke_width=self.stroke_width))
        map_widget.markers = context.markers

        point_provider = OverpassPointProvider(
            url=self.overpass_url, timeout=self.timeout,
            max_results=self.max_results, user_agent=self.user_agent)
        geocode_provider = NominatimGeocodeProvider(
            url=self.nominatim_url, timeout=self.timeout,
            user_agent=self.user_agent)

        self.render_controller = RenderCycleController(
            context, point_provider, geocode_provider,
            discard_stale_results=self.discard_stale_results,
            error_callback=self.set_error_text)
        self.viewport_controller = ViewportController(
            map_widget.viewport, self.render_controller)
        self.viewport_controller.start()

    def search_location(self, text):
        if text.strip():
            self.viewport_controller.schedule(
                self.render_controller.search_location(text))

    def search_place(self, text):
        self.viewport_controller.schedule(
            self.render_controller.search_place(text))

    def build(self):
        """Builds the GUI.
        """
        self.load_app_config()
        from kivy.core.window import Window
        Window.size = self.screen_size

        root = Factory.VoronoiPlacesRoot()
        self.map_widget = map_widget = VoronoiMapWidget(viewport_kwargs=dict(
            center=self.center, zoom=self.zoom, min_zoom=self.min_zoom,
            max_zoom=self.max_zoom))
        root.ids.map_container.add_widget(map_widget)
        self.create_controllers(map_widget)

        place_input = root.ids.place_input
        place_input.hint_text = self.category
        place_input.bind(
            on_text_validate=lambda instance: self.search_place(
                instance.text or self.category))
        root.ids.location_input.bind(
            on_text_validate=lambda instance: self.search_location(
                instance.text))
        return root


Builder.load_string("""
<InfoLabel@Label>:
    size_hint: None, None
    size: self.texture_size[0] + 12, self.texture_size[1] + 8
    color: 0, 0, 0, 1
    canvas.before:
        Color:
            rgba: 1, 1, 1, .9
        Rectangle:
            pos: self.pos
            size: self.size

<VoronoiPlacesRoot@BoxLayout>:
    orientation: 'vertical'
    BoxLayout:
        size_hint_y: None
        height: '40dp'
        spacing: '5dp'
        padding: '4dp'
        TextInput:
            id: location_input
            multiline: False
            hint_text: 'Search for a location'
        TextInput:
            id: place_input
            multiline: False
    Label:
        size_hint_y: None
        height: '24dp' if self.text else 0
        color: 1, .2, .2, 1
        text: app.error_text
    BoxLayout:
        id: map_container
""")


def run_app():
    app = VoronoiPlacesApp()
    asyncio.run(app.async_run(async_lib='asyncio'))


if __name__ == '__main__':
    run_app()
