import pytest

from config.settings import Settings
from weathermap.data.models import RegionPolygon, WeatherSample


WEATHER_HEADER = "latitude,longitude,time,t2m,d2m,sp,tcc,u10,v10"

REGION_HEADER = "id,code,country,name,kind,geometry"

REGION_ROWS = [
    '1,US-TX,United States,Texas,state,"POLYGON ((0 0, 0 1, 1 1, 1 0, 0 0))"',
    '2,US-NM,United States,New Mexico,state,"POLYGON ((-1 0, -1 1, 0 1, 0 0, -1 0))"',
    '3,US-HI,United States,Hawaii,state,'
    '"MULTIPOLYGON (((10 10, 10 11, 11 11, 11 10, 10 10)), ((12 12, 12 13, 13 13, 13 12, 12 12)))"',
    '4,XX-BR,Nowhere,Broken,state,"NOT A GEOMETRY"',
    '5,XX-PT,Nowhere,Pointland,state,"POINT (1 1)"',
    '6,XX-SH,Nowhere,Short',
]


def make_record(lat, lon, time="2023-06-01 12:00:00", sp="100000", t2m="290.0", **extra):
    """Flat string record as produced by the CSV reader."""
    record = {
        "latitude": str(lat),
        "longitude": str(lon),
        "time": time,
        "t2m": t2m,
        "d2m": "280.0",
        "sp": str(sp),
        "tcc": "0.5",
        "u10": "1.5",
        "v10": "-2.0",
    }
    record.update(extra)
    return record


def make_sample(lat, lon, **kwargs):
    """WeatherSample built through the record parser."""
    return WeatherSample.from_record(make_record(lat, lon, **kwargs))


def write_weather_csv(path, records):
    lines = [WEATHER_HEADER]
    for r in records:
        lines.append(",".join(r[c] for c in WEATHER_HEADER.split(",")))
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def unit_square():
    """Unit square region given as an open ring."""
    return RegionPolygon.from_coordinates("Unit", [(0, 0), (0, 1), (1, 1), (1, 0)])


@pytest.fixture
def region_csv(tmp_path):
    path = tmp_path / "regions.csv"
    path.write_text("\n".join([REGION_HEADER] + REGION_ROWS) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def weather_records():
    """Three samples at the target time: two inside the unit square, one far away."""
    return [
        make_record(0.1, 0.1, sp="10"),
        make_record(0.1, 0.9, sp="10"),
        make_record(5, 5, sp="99"),
        make_record(0.5, 0.5, time="2023-06-01 13:00:00"),
    ]


@pytest.fixture
def weather_csv(tmp_path, weather_records):
    return write_weather_csv(tmp_path / "weather.csv", weather_records)


@pytest.fixture
def settings(tmp_path, weather_csv, region_csv):
    """Settings pointing at the temporary datasets, isolated from any .env file."""
    return Settings(
        _env_file=None,
        weather_dataset_uri=str(weather_csv),
        region_dataset_uri=str(region_csv),
        cache_dir=tmp_path / "cache",
        use_cache=False,
    )
