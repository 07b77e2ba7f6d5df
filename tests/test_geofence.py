import pytest

from shifttrack.services.errors import LocationRequired, OutOfRange
from shifttrack.services.geofence import haversine_distance, validate_clock_in_location

from conftest import INSIDE, ORG_LAT, ORG_LON, OUTSIDE


def test_one_degree_of_longitude_on_equator():
    assert haversine_distance(0, 0, 0, 1) == pytest.approx(111.19, abs=0.01)


def test_distance_is_symmetric_and_zero_at_center():
    assert haversine_distance(ORG_LAT, ORG_LON, ORG_LAT, ORG_LON) == 0
    d1 = haversine_distance(*INSIDE, ORG_LAT, ORG_LON)
    d2 = haversine_distance(ORG_LAT, ORG_LON, *INSIDE)
    assert d1 == pytest.approx(d2)


def test_point_inside_perimeter_is_accepted():
    distance = validate_clock_in_location(*INSIDE, ORG_LAT, ORG_LON, 2.0)
    assert 0.3 < distance < 0.45


def test_point_outside_perimeter_reports_distance():
    with pytest.raises(OutOfRange) as exc_info:
        validate_clock_in_location(*OUTSIDE, ORG_LAT, ORG_LON, 2.0)

    err = exc_info.value
    expected = haversine_distance(*OUTSIDE, ORG_LAT, ORG_LON)
    assert 17.5 < err.distance_km < 19
    assert err.distance_km == pytest.approx(expected, abs=0.01)
    assert err.radius_km == 2.0
    assert f"{err.distance_km:.2f}km away" in err.message
    assert "within 2.0km" in err.message


def test_point_exactly_on_perimeter_is_accepted():
    radius = haversine_distance(*INSIDE, ORG_LAT, ORG_LON)
    assert validate_clock_in_location(*INSIDE, ORG_LAT, ORG_LON, radius) == radius


@pytest.mark.parametrize("lat,lng", [(None, None), (17.59, None), (None, 78.07)])
def test_missing_or_partial_coordinates_require_location(lat, lng):
    with pytest.raises(LocationRequired):
        validate_clock_in_location(lat, lng, ORG_LAT, ORG_LON, 2.0)


def test_zero_coordinates_are_a_real_location():
    assert validate_clock_in_location(0.0, 0.0, 0.0, 0.0, 2.0) == 0
