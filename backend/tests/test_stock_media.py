from __future__ import annotations

from pathlib import Path

import pytest
import requests

from aiadmaker.errors import FileIntegrityError, MediaResolutionError
from aiadmaker.media_pipeline import downloader as downloader_module
from aiadmaker.media_pipeline import stock_search
from aiadmaker.media_pipeline.downloader import MediaDownloader
from aiadmaker.media_pipeline.model import MediaCandidate
from aiadmaker.media_pipeline.resolver import AssetResolver
from aiadmaker.media_pipeline.stock_search import (
    MERGE_UNION,
    PexelsProvider,
    PixabayProvider,
    StockMediaProvider,
    StockMediaSearch,
)
from aiadmaker.timeline.model import AssetKind, VisualAsset


class FakeResponse:
    def __init__(self, payload=None, content: bytes = b"", status_code: int = 200) -> None:
        self._payload = payload or {}
        self._content = content
        self.status_code = status_code

    def json(self):
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def iter_content(self, chunk_size: int = 8192):
        for start in range(0, len(self._content), chunk_size):
            yield self._content[start : start + chunk_size]


class RecordingGet:
    def __init__(self, response: FakeResponse) -> None:
        self.response = response
        self.calls: list[tuple[str, dict]] = []

    def __call__(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self.response


class StubProvider(StockMediaProvider):
    def __init__(self, name: str, urls: list[str], error: Exception | None = None) -> None:
        self.name = name
        self.urls = urls
        self.error = error
        self.queries: list[str] = []

    def search(self, query, kind, limit):
        self.queries.append(query)
        if self.error:
            raise self.error
        return [MediaCandidate(url=url, kind=kind, source=self.name) for url in self.urls][:limit]


def test_pexels_video_search_picks_largest_mp4_within_width(monkeypatch):
    payload = {
        "videos": [
            {
                "user": {"name": "Ana"},
                "video_files": [
                    {"link": "https://cdn/sd.mp4", "file_type": "video/mp4", "width": 540},
                    {"link": "https://cdn/hd.mp4", "file_type": "video/mp4", "width": 1080},
                    {"link": "https://cdn/4k.mp4", "file_type": "video/mp4", "width": 3840},
                ],
            },
            {"user": {"name": "Nobody"}, "video_files": []},
        ]
    }
    fake_get = RecordingGet(FakeResponse(payload))
    monkeypatch.setattr(stock_search.requests, "get", fake_get)

    results = PexelsProvider(api_key="key").search("bakery", AssetKind.VIDEO, 5)

    assert [c.url for c in results] == ["https://cdn/hd.mp4"]
    assert results[0].creator == "Ana"
    assert results[0].source == "pexels"
    url, kwargs = fake_get.calls[0]
    assert url == "https://api.pexels.com/videos/search"
    assert kwargs["headers"] == {"Authorization": "key"}
    assert kwargs["params"]["query"] == "bakery"


def test_pexels_photo_search_uses_alt_text_as_tag(monkeypatch):
    payload = {"photos": [{"photographer": "Li", "alt": "Fresh bread", "src": {"large2x": "https://img/p.jpeg?x=1"}}]}
    fake_get = RecordingGet(FakeResponse(payload))
    monkeypatch.setattr(stock_search.requests, "get", fake_get)

    results = PexelsProvider(api_key="key").search("bread", AssetKind.IMAGE, 3)

    assert fake_get.calls[0][0] == "https://api.pexels.com/v1/search"
    assert results[0].kind is AssetKind.IMAGE
    assert results[0].tags == ["Fresh bread"]
    assert results[0].extension == ".jpeg"


def test_pixabay_video_search_splits_tags_and_bumps_page_size(monkeypatch):
    payload = {
        "hits": [
            {"user": "kai", "tags": "bread, bakery , oven", "videos": {"large": {"url": "https://px/v.mp4"}}},
            {"user": "nil", "tags": "", "videos": {}},
        ]
    }
    fake_get = RecordingGet(FakeResponse(payload))
    monkeypatch.setattr(stock_search.requests, "get", fake_get)

    results = PixabayProvider(api_key="key").search("bread", AssetKind.VIDEO, 1)

    assert len(results) == 1
    assert results[0].tags == ["bread", "bakery", "oven"]
    url, kwargs = fake_get.calls[0]
    assert url == "https://pixabay.com/api/videos/"
    assert kwargs["params"]["per_page"] == 3
    assert kwargs["params"]["key"] == "key"


def test_search_first_returns_first_non_empty_provider():
    empty = StubProvider("empty", [])
    first = StubProvider("one", ["https://a/1.mp4"])
    second = StubProvider("two", ["https://b/1.mp4"])
    results = StockMediaSearch([empty, first, second]).search("q", AssetKind.VIDEO, 5)
    assert [c.url for c in results] == ["https://a/1.mp4"]
    assert second.queries == []


def test_search_union_concatenates_and_deduplicates():
    first = StubProvider("one", ["https://a/1.mp4", "https://shared.mp4"])
    second = StubProvider("two", ["https://shared.mp4", "https://b/1.mp4"])
    results = StockMediaSearch([first, second], merge=MERGE_UNION).search("q", AssetKind.VIDEO, 5)
    assert [c.url for c in results] == ["https://a/1.mp4", "https://shared.mp4", "https://b/1.mp4"]


def test_search_skips_failing_provider():
    broken = StubProvider("broken", [], error=requests.ConnectionError("down"))
    working = StubProvider("working", ["https://ok.mp4"])
    results = StockMediaSearch([broken, working]).search("q", AssetKind.VIDEO, 5)
    assert [c.url for c in results] == ["https://ok.mp4"]


def test_search_rejects_unknown_merge_mode():
    with pytest.raises(ValueError):
        StockMediaSearch([], merge="interleave")


def _candidate(url: str = "https://cdn/clip.mp4") -> MediaCandidate:
    return MediaCandidate(url=url, kind=AssetKind.VIDEO, creator="Ana", source="pexels", tags=["bread"])


def test_download_writes_unique_files(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(downloader_module.requests, "get", RecordingGet(FakeResponse(content=b"x" * 4096)))
    downloader = MediaDownloader(asset_dir=tmp_path / "stock")

    first = downloader.download(_candidate())
    second = downloader.download(_candidate())

    assert first.source_path != second.source_path
    assert first.source_path.stat().st_size == 4096
    assert first.source_path.name.startswith("video_")
    assert first.source_path.suffix == ".mp4"
    assert first.origin_creator == "Ana"
    assert first.tags == {"bread"}
    assert not first.is_fallback


def test_download_rejects_empty_file(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(downloader_module.requests, "get", RecordingGet(FakeResponse(content=b"")))
    downloader = MediaDownloader(asset_dir=tmp_path)

    with pytest.raises(FileIntegrityError):
        downloader.download(_candidate())
    assert list(tmp_path.iterdir()) == []


def test_download_wraps_http_errors(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(downloader_module.requests, "get", RecordingGet(FakeResponse(status_code=404)))
    downloader = MediaDownloader(asset_dir=tmp_path)

    with pytest.raises(MediaResolutionError) as excinfo:
        downloader.download(_candidate())
    assert excinfo.value.code == "VIDEO_DOWNLOAD_ERROR"
    assert list(tmp_path.iterdir()) == []


class BrokenStream(FakeResponse):
    def iter_content(self, chunk_size: int = 8192):
        yield b"x" * chunk_size
        raise OSError(28, "No space left on device")


class PlaceholderFallback:
    def __init__(self, path: Path) -> None:
        self.path = path

    def asset(self) -> VisualAsset:
        return VisualAsset(source_path=self.path, kind=AssetKind.IMAGE, is_fallback=True)


def test_pexels_null_lists_yield_no_candidates(monkeypatch):
    monkeypatch.setattr(stock_search.requests, "get", RecordingGet(FakeResponse({"videos": None, "photos": None})))
    provider = PexelsProvider(api_key="key")

    assert provider.search("bread", AssetKind.VIDEO, 5) == []
    assert provider.search("bread", AssetKind.IMAGE, 5) == []


def test_malformed_provider_payload_resolves_to_fallback(tmp_path: Path, monkeypatch):
    payload = {"videos": [{"user": None, "video_files": None}], "photos": None}
    monkeypatch.setattr(stock_search.requests, "get", RecordingGet(FakeResponse(payload)))
    resolver = AssetResolver(
        search=StockMediaSearch([PexelsProvider(api_key="key")]),
        downloader=MediaDownloader(asset_dir=tmp_path / "stock"),
        fallback=PlaceholderFallback(tmp_path / "fallback.png"),
    )

    asset = resolver.resolve("Fresh bread every morning", {"bread"})

    assert asset.is_fallback
    assert asset.source_path == tmp_path / "fallback.png"


def test_search_skips_provider_raising_unexpected_error():
    broken = StubProvider("broken", [], error=TypeError("'NoneType' object is not iterable"))
    working = StubProvider("working", ["https://ok.mp4"])
    results = StockMediaSearch([broken, working], merge=MERGE_UNION).search("q", AssetKind.VIDEO, 5)
    assert [c.url for c in results] == ["https://ok.mp4"]


def test_download_wraps_write_failures_and_removes_partial_file(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(downloader_module.requests, "get", RecordingGet(BrokenStream(content=b"x")))
    downloader = MediaDownloader(asset_dir=tmp_path)

    with pytest.raises(MediaResolutionError) as excinfo:
        downloader.download(_candidate())
    assert "No space left" in str(excinfo.value)
    assert list(tmp_path.iterdir()) == []
