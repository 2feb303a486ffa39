from domain.models import ComposedRoute, Pin, PinType
from services.map_surface import (
    CUSTOM_PATH_STYLE,
    PREVIEW_LAYER_ID,
    ROUTE_LAYER_ID,
    ROUTE_LINE_STYLE,
    GeoJSONSurface,
    SurfaceSync,
    custom_path_layer_id,
)


def _pin(pin_id, coord, pin_type=PinType.HOTEL):
    return Pin(id=pin_id, type=pin_type, coordinate=coord)


def test_sync_markers_adds_moves_and_removes():
    surface = GeoJSONSurface()
    sync = SurfaceSync(surface)

    sync.sync_markers([_pin("a", (0.0, 0.0)), _pin("b", (1.0, 1.0))])
    assert set(surface.markers()) == {"a", "b"}

    revision = surface.revision
    sync.sync_markers([_pin("a", (0.0, 0.0)), _pin("b", (1.0, 1.0))])
    assert surface.revision == revision

    sync.sync_markers([_pin("a", (2.0, 2.0))])
    assert set(surface.markers()) == {"a"}
    assert surface.markers()["a"].coordinate == (2.0, 2.0)


def test_marker_icon_derived_from_type():
    surface = GeoJSONSurface()
    SurfaceSync(surface).sync_markers([_pin("c", (0.0, 0.0), PinType.CUSTOM)])
    marker = surface.markers()["c"]
    assert marker.icon == "PIN"
    assert marker.pin_type == "CUSTOM"


def test_sync_lines_sets_route_and_custom_layers_and_drops_stale_ones():
    surface = GeoJSONSurface()
    sync = SurfaceSync(surface)
    composed = ComposedRoute(
        runs=[[(0.0, 0.0), (1.0, 0.0)]],
        custom_paths=[[(1.0, 0.0), (2.0, 0.0)], [(2.0, 0.0), (3.0, 0.0)]],
    )

    sync.sync_lines(composed, preview=[(5.0, 5.0), (6.0, 6.0)])
    assert set(surface.line_ids()) == {
        ROUTE_LAYER_ID,
        custom_path_layer_id(0),
        custom_path_layer_id(1),
        PREVIEW_LAYER_ID,
    }
    assert surface.line(ROUTE_LAYER_ID).style == ROUTE_LINE_STYLE
    assert surface.line(custom_path_layer_id(0)).style == CUSTOM_PATH_STYLE

    sync.sync_lines(ComposedRoute(custom_paths=[[(1.0, 0.0), (2.0, 0.0)]]))
    assert surface.line_ids() == [custom_path_layer_id(0)]


def test_rebuild_clears_everything_first():
    surface = GeoJSONSurface()
    sync = SurfaceSync(surface)
    sync.sync_markers([_pin("old", (0.0, 0.0))])
    sync.sync_lines(ComposedRoute(runs=[[(0.0, 0.0), (1.0, 1.0)]]))

    sync.rebuild([_pin("new", (3.0, 3.0))], None)

    assert set(surface.markers()) == {"new"}
    assert surface.line_ids() == []


def test_geojson_uses_multilinestring_for_disjoint_runs():
    surface = GeoJSONSurface()
    sync = SurfaceSync(surface)
    sync.sync_markers([_pin("a", (0.0, 0.0))])
    sync.sync_lines(
        ComposedRoute(runs=[[(0.0, 0.0), (1.0, 0.0)], [(2.0, 0.0), (3.0, 0.0)]]),
    )

    data = surface.to_geojson()

    assert data["markers"]["features"][0]["geometry"] == {
        "type": "Point",
        "coordinates": [0.0, 0.0],
    }
    (layer,) = data["layers"]
    assert layer["id"] == ROUTE_LAYER_ID
    assert layer["paint"]["line-color"] == "#2563eb"
    geometry = layer["source"]["features"][0]["geometry"]
    assert geometry["type"] == "MultiLineString"
    assert geometry["coordinates"] == [[[0.0, 0.0], [1.0, 0.0]], [[2.0, 0.0], [3.0, 0.0]]]
