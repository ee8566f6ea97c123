"""
Tests for dataset sources.

Remote datasets are exercised against a mocked requests session.
"""
from unittest.mock import MagicMock, Mock

import pytest
import requests

from conftest import REGION_HEADER, REGION_ROWS, WEATHER_HEADER
from weathermap.api.cache import DatasetCache
from weathermap.api.sources import (
    RegionRecordSource,
    WeatherRecordSource,
    create_session,
)
from weathermap.errors import UpstreamRetrievalError

WEATHER_TEXT = (
    WEATHER_HEADER + "\n"
    "0.5,0.5,2023-06-01 12:00:00,290.0,280.0,100000,0.5,1.5,-2.0\n"
    "0.2,0.2,2023-06-01 12:00:00,291.0,281.0,99000,0.1,0.0,0.0\n"
)

WEATHER_URL = "https://data.example.org/weather.csv"


@pytest.fixture
def mock_session():
    """Session whose GET returns WEATHER_TEXT."""
    response = Mock()
    response.text = WEATHER_TEXT
    response.encoding = "utf-8"
    response.raise_for_status.return_value = None

    session = Mock()
    session.get.return_value = response
    return session


class TestLocalSources:
    """Test reading datasets from disk."""

    def test_fetch_records(self, settings):
        records = WeatherRecordSource(settings=settings).fetch_records()

        assert len(records) == 4
        assert records[0]["latitude"] == "0.1"
        assert records[2]["sp"] == "99"

    def test_fetch_samples_in_file_order(self, settings):
        samples = WeatherRecordSource(settings=settings).fetch_samples()

        assert [s.latitude for s in samples] == [0.1, 0.1, 5.0, 0.5]
        assert samples[0].surface_pressure == 10.0

    def test_byte_order_mark_is_stripped(self, tmp_path, settings):
        path = tmp_path / "bom.csv"
        path.write_text("\ufeff" + WEATHER_TEXT, encoding="utf-8")

        records = WeatherRecordSource(str(path), settings=settings).fetch_records()
        assert records[0]["latitude"] == "0.5"

    def test_missing_file(self, tmp_path, settings):
        source = WeatherRecordSource(str(tmp_path / "missing.csv"), settings=settings)
        with pytest.raises(UpstreamRetrievalError) as exc_info:
            source.fetch_records()
        assert exc_info.value.uri.endswith("missing.csv")

    def test_missing_columns(self, tmp_path, settings):
        path = tmp_path / "bad.csv"
        path.write_text("lat,lon,sp\n1,2,3\n", encoding="utf-8")

        with pytest.raises(UpstreamRetrievalError, match="missing columns"):
            WeatherRecordSource(str(path), settings=settings).fetch_records()

    def test_unconfigured_uri(self, settings):
        settings = settings.model_copy(update={"weather_dataset_uri": ""})
        with pytest.raises(UpstreamRetrievalError, match="WEATHER_DATASET_URI"):
            WeatherRecordSource(settings=settings).fetch_samples()

    def test_region_rows(self, settings):
        rows = list(RegionRecordSource(settings=settings).iter_rows())

        assert rows[0] == REGION_HEADER
        assert rows[1:] == REGION_ROWS

    def test_region_missing_file_raises_on_iteration(self, tmp_path, settings):
        rows = RegionRecordSource(str(tmp_path / "none.csv"), settings=settings).iter_rows()
        with pytest.raises(UpstreamRetrievalError):
            next(rows)


class TestRemoteSources:
    """Test downloading datasets over HTTP."""

    def test_is_remote(self, settings):
        assert WeatherRecordSource(WEATHER_URL, settings=settings).is_remote
        assert not WeatherRecordSource("data/weather.csv", settings=settings).is_remote

    def test_download(self, settings, mock_session):
        source = WeatherRecordSource(WEATHER_URL, settings=settings, session=mock_session)
        samples = source.fetch_samples()

        assert len(samples) == 2
        mock_session.get.assert_called_once_with(WEATHER_URL, timeout=settings.request_timeout)

    def test_download_uses_cache(self, tmp_path, settings, mock_session):
        cache = DatasetCache(tmp_path / "cache", max_age_hours=24)
        source = WeatherRecordSource(
            WEATHER_URL, settings=settings, cache=cache, session=mock_session, use_cache=True
        )

        first = source.fetch_records()
        second = source.fetch_records()

        assert first == second
        assert mock_session.get.call_count == 1
        assert cache.get_cache_stats()["file_count"] == 1

    def test_request_error(self, settings):
        session = Mock()
        session.get.side_effect = requests.ConnectionError("connection refused")
        source = WeatherRecordSource(WEATHER_URL, settings=settings, session=session)

        with pytest.raises(UpstreamRetrievalError, match="connection refused"):
            source.fetch_records()

    def test_http_error_status(self, settings, mock_session):
        mock_session.get.return_value.raise_for_status.side_effect = requests.HTTPError("404 Client Error")
        source = WeatherRecordSource(WEATHER_URL, settings=settings, session=mock_session)

        with pytest.raises(UpstreamRetrievalError):
            source.read_text()

    def test_region_rows_are_streamed(self, settings):
        response = MagicMock()
        response.__enter__.return_value = response
        response.iter_lines.return_value = iter([REGION_HEADER] + REGION_ROWS)
        session = Mock()
        session.get.return_value = response

        source = RegionRecordSource("https://data.example.org/regions.csv", settings=settings, session=session)
        rows = source.iter_rows()

        assert next(rows) == REGION_HEADER
        assert next(rows) == REGION_ROWS[0]
        session.get.assert_called_once_with(
            "https://data.example.org/regions.csv", stream=True, timeout=settings.request_timeout
        )
        response.iter_lines.assert_called_once_with(decode_unicode=True)


def test_create_session_mounts_retries():
    session = create_session()
    adapter = session.get_adapter("https://example.org")

    assert adapter.max_retries.total == 3
    assert 503 in adapter.max_retries.status_forcelist
