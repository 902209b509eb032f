from unittest.mock import MagicMock

import pytest
import requests

from kcmap.categories import rules_for
from kcmap.config import KC_BBOX
from kcmap.source_base import SourceUnavailable
from kcmap.sources.overpass import OverpassSource, build_query, parse_elements


def _source(json_value=None, exc=None, status_exc=None):
    session = MagicMock()
    resp = MagicMock()
    if status_exc is not None:
        resp.raise_for_status.side_effect = status_exc
    if isinstance(json_value, Exception):
        resp.json.side_effect = json_value
    else:
        resp.json.return_value = json_value
    if exc is not None:
        session.post.side_effect = exc
    else:
        session.post.return_value = resp
    return OverpassSource(endpoint="https://overpass.test/api/interpreter", session=session), session


def test_query_for_parks_has_nodes_and_areas():
    query = build_query(rules_for("parks"), KC_BBOX)
    assert query.startswith("[out:json][timeout:25];")
    assert 'node["leisure"="park"](39.0,-94.7,39.2,-94.4);' in query
    assert 'node["natural"="beach"](39.0,-94.7,39.2,-94.4);' in query
    assert 'way["leisure"="park"](39.0,-94.7,39.2,-94.4);' in query
    assert 'relation["leisure"="park"](39.0,-94.7,39.2,-94.4);' in query
    assert query.rstrip().endswith("out center tags;")


def test_query_for_museums_has_no_area_clauses():
    query = build_query(rules_for("museums"), KC_BBOX, timeout=60)
    assert "[timeout:60]" in query
    assert 'node["amenity"="library"]' in query
    assert "way[" not in query
    assert "relation[" not in query


def test_fetch_parses_nodes_and_centers():
    payload = {
        "elements": [
            {"type": "node", "id": 1, "lat": 39.1, "lon": -94.5, "tags": {"name": "Oak Park", "leisure": "park"}},
            {"type": "way", "id": 2, "center": {"lat": 39.0, "lon": -94.52}, "tags": {"name": "Swope Park"}},
            {"type": "node", "lat": 39.1, "lon": -94.5},
        ]
    }
    source, session = _source(payload)
    features = source.fetch(rules_for("parks"), KC_BBOX)

    assert [f.id for f in features] == [1, 2]
    assert features[0].lat == 39.1 and features[0].tags["leisure"] == "park"
    assert features[1].kind == "way"
    assert (features[1].center_lat, features[1].center_lon) == (39.0, -94.52)

    args, kwargs = session.post.call_args
    assert args[0] == "https://overpass.test/api/interpreter"
    assert b'node["leisure"="park"]' in kwargs["data"]
    assert kwargs["headers"]["Content-Type"] == "text/plain"
    assert kwargs["timeout"] > 25


def test_network_error_becomes_source_unavailable():
    source, _ = _source(exc=requests.ConnectionError("no route"))
    with pytest.raises(SourceUnavailable):
        source.fetch(rules_for("parks"), KC_BBOX)


def test_http_error_becomes_source_unavailable():
    source, _ = _source({}, status_exc=requests.HTTPError("429 Too Many Requests"))
    with pytest.raises(SourceUnavailable):
        source.fetch(rules_for("parks"), KC_BBOX)


def test_non_json_becomes_source_unavailable():
    source, _ = _source(ValueError("Expecting value"))
    with pytest.raises(SourceUnavailable):
        source.fetch(rules_for("parks"), KC_BBOX)


@pytest.mark.parametrize("payload", [None, [], {"remark": "runtime error"}, {"elements": "nope"}])
def test_malformed_payload_becomes_source_unavailable(payload):
    with pytest.raises(SourceUnavailable):
        parse_elements(payload)


def test_unparseable_coordinates_kept_as_none():
    (feature,) = parse_elements({"elements": [{"id": 3, "lat": "x", "lon": None, "tags": {"name": "A"}}]})
    assert feature.lat is None and feature.lon is None
