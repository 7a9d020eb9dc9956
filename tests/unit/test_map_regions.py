"""Tests for map region bookkeeping."""

import pytest

from tripsync.cache.map_regions import MapRegionCache, estimate_tile_count
from tripsync.models import LatLng, MapBounds

ONE_DEGREE = MapBounds(northeast=LatLng(lat=40, lng=-110), southwest=LatLng(lat=39, lng=-111))


def test_estimate_tile_count() -> None:
    # 1 degree square at zoom 10: ceil(1024/360)=3 columns, ceil(1024/180)=6 rows
    assert estimate_tile_count(ONE_DEGREE, 10) == 18


def test_estimate_tile_count_grows_with_zoom() -> None:
    assert estimate_tile_count(ONE_DEGREE, 12) > estimate_tile_count(ONE_DEGREE, 10)


def test_estimate_tile_count_ignores_corner_order() -> None:
    swapped = MapBounds(northeast=ONE_DEGREE.southwest, southwest=ONE_DEGREE.northeast)
    assert estimate_tile_count(swapped, 10) == 18


@pytest.mark.asyncio
async def test_record_region_returns_total_estimate(store) -> None:
    regions = MapRegionCache(store)

    total = await regions.record_region(ONE_DEGREE, [10, 12])

    assert total == estimate_tile_count(ONE_DEGREE, 10) + estimate_tile_count(ONE_DEGREE, 12)
    assert await regions.get_region(10) == ONE_DEGREE
    assert await regions.get_region(14) is None


@pytest.mark.asyncio
async def test_has_regions(store) -> None:
    regions = MapRegionCache(store)
    await regions.record_region(ONE_DEGREE, [10])

    assert await regions.has_regions([10]) is True
    assert await regions.has_regions([10, 12]) is False
    assert await regions.has_regions([]) is True


@pytest.mark.asyncio
async def test_clear_regions(store) -> None:
    regions = MapRegionCache(store)
    await regions.record_region(ONE_DEGREE, [10, 12, 14])
    await store.put("trip_1", {"id": "1"})

    removed = await regions.clear_regions()

    assert removed == 3
    assert await regions.get_region(10) is None
    assert await store.all_keys() == {"trip_1"}
