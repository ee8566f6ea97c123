"""
Dataset sources for weather samples and region boundaries.

A dataset URI is either a local file path or an http(s) URL. Remote
datasets are fetched through a requests session with retries and, when
enabled, kept in the on-disk download cache.

Usage:
    from weathermap.api.sources import WeatherRecordSource, RegionRecordSource

    samples = WeatherRecordSource("data/weather.csv").fetch_samples()
    rows = RegionRecordSource("https://example.org/regions.csv").iter_rows()
"""

import csv
import io
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config.settings import Settings, get_settings
from weathermap.api.cache import DatasetCache
from weathermap.data.models import WeatherSample
from weathermap.errors import UpstreamRetrievalError

logger = logging.getLogger(__name__)

# Columns every weather record must carry
REQUIRED_WEATHER_COLUMNS = ("latitude", "longitude", "time")


def create_session() -> requests.Session:
    """Create requests session with retry configuration."""
    session = requests.Session()

    retry_strategy = Retry(
        total=3,
        backoff_factor=1,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
    )

    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    return session


class DatasetSource:
    """
    Reads one dataset from a local path or an http(s) URL.

    Attributes:
        uri: Dataset location
        settings: Settings used for timeout and cache defaults
        use_cache: Whether remote datasets go through the download cache
    """

    # Settings attribute holding the default URI
    uri_setting: Optional[str] = None

    def __init__(
        self,
        uri: Optional[str] = None,
        settings: Optional[Settings] = None,
        cache: Optional[DatasetCache] = None,
        session: Optional[requests.Session] = None,
        use_cache: Optional[bool] = None,
    ):
        self.settings = settings or get_settings()
        if uri is None and self.uri_setting:
            uri = getattr(self.settings, self.uri_setting)
        self.uri = uri or ""
        self.use_cache = self.settings.use_cache if use_cache is None else use_cache
        self._cache = cache
        self._session = session

    @property
    def is_remote(self) -> bool:
        """Check if the dataset is fetched over HTTP."""
        return self.uri.startswith(("http://", "https://"))

    @property
    def session(self) -> requests.Session:
        """Requests session (created on first use)."""
        if self._session is None:
            self._session = create_session()
        return self._session

    @property
    def cache(self) -> DatasetCache:
        """Download cache (created on first use)."""
        if self._cache is None:
            self._cache = DatasetCache(self.settings.cache_dir, self.settings.cache_max_age_hours)
        return self._cache

    def _check_configured(self) -> None:
        if not self.uri:
            hint = f" Set {self.uri_setting.upper()} in your .env file." if self.uri_setting else ""
            raise UpstreamRetrievalError(f"Dataset location not configured.{hint}")

    def read_text(self) -> str:
        """
        Read the whole dataset as text.

        Raises:
            UpstreamRetrievalError: If the dataset cannot be read
        """
        self._check_configured()
        if not self.is_remote:
            return self._read_local()
        if self.use_cache:
            return self.cache.get_or_fetch(self.uri, self._download)
        return self._download()

    def iter_lines(self) -> Iterator[str]:
        """
        Yield the dataset line by line.

        Uncached remote datasets are streamed, so a consumer that stops
        early does not download the rest.

        Raises:
            UpstreamRetrievalError: If the dataset cannot be read
        """
        self._check_configured()
        if not self.is_remote:
            yield from self._iter_local_lines()
        elif self.use_cache:
            yield from self.read_text().splitlines()
        else:
            yield from self._stream_lines()

    def _read_local(self) -> str:
        try:
            return Path(self.uri).read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            raise UpstreamRetrievalError(f"Failed to read {self.uri}: {e}", self.uri) from e

    def _iter_local_lines(self) -> Iterator[str]:
        try:
            with open(self.uri, "r", encoding="utf-8-sig", newline="") as f:
                for line in f:
                    yield line.rstrip("\r\n")
        except (OSError, UnicodeDecodeError) as e:
            raise UpstreamRetrievalError(f"Failed to read {self.uri}: {e}", self.uri) from e

    def _download(self) -> str:
        logger.info(f"Downloading dataset: {self.uri}")
        try:
            response = self.session.get(self.uri, timeout=self.settings.request_timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise UpstreamRetrievalError(f"Failed to download {self.uri}: {e}", self.uri) from e

        if response.encoding is None:
            response.encoding = "utf-8"
        text = response.text.lstrip("\ufeff")
        logger.debug(f"Downloaded {len(text)} chars from {self.uri}")
        return text

    def _stream_lines(self) -> Iterator[str]:
        logger.info(f"Streaming dataset: {self.uri}")
        try:
            with self.session.get(self.uri, stream=True, timeout=self.settings.request_timeout) as response:
                response.raise_for_status()
                if response.encoding is None:
                    response.encoding = "utf-8"
                for line in response.iter_lines(decode_unicode=True):
                    yield line
        except requests.RequestException as e:
            raise UpstreamRetrievalError(f"Failed to stream {self.uri}: {e}", self.uri) from e


class WeatherRecordSource(DatasetSource):
    """Weather samples CSV with a header row."""

    uri_setting = "weather_dataset_uri"

    def fetch_records(self) -> List[Dict[str, str]]:
        """
        Read all records as flat string dictionaries.

        Raises:
            UpstreamRetrievalError: If the dataset cannot be read or lacks
                the coordinate/time columns
        """
        text = self.read_text()
        try:
            reader = csv.DictReader(io.StringIO(text))
            fieldnames = reader.fieldnames or []
            missing = [c for c in REQUIRED_WEATHER_COLUMNS if c not in fieldnames]
            if missing:
                raise UpstreamRetrievalError(
                    f"Weather dataset {self.uri} is missing columns: {missing}", self.uri
                )
            records = list(reader)
        except csv.Error as e:
            raise UpstreamRetrievalError(f"Failed to parse CSV {self.uri}: {e}", self.uri) from e

        logger.info(f"Loaded {len(records)} weather records from {self.uri}")
        return records

    def fetch_samples(self) -> List[WeatherSample]:
        """Read all records as WeatherSample objects, in file order."""
        return [WeatherSample.from_record(r) for r in self.fetch_records()]


class RegionRecordSource(DatasetSource):
    """Region reference CSV, one descriptive row per region."""

    uri_setting = "region_dataset_uri"

    def iter_rows(self) -> Iterator[str]:
        """Yield raw region rows in file order."""
        return self.iter_lines()
