"""Pytest fixtures for Hashnode Distiller tests."""

import json
from pathlib import Path

import pytest

from schemas.assets import DownloadOutcome

IMAGE_UUID_1 = "abc12345-0000-4000-8000-000000000001"
IMAGE_UUID_2 = "abc12345-0000-4000-8000-000000000002"
IMAGE_URL_1 = f"https://cdn.hashnode.com/res/hashnode/image/upload/v1700000000000/{IMAGE_UUID_1}.png"
IMAGE_URL_2 = f"https://cdn.hashnode.com/res/hashnode/image/upload/v1700000000000/{IMAGE_UUID_2}.jpeg?auto=compress"


class FakeDownloader:
    """Stands in for AssetDownloader without touching the network.

    Successful fetches write placeholder bytes to the destination. Outcomes
    for specific URLs are set through ``responses``; anything else succeeds.
    """

    def __init__(self):
        self.responses: dict[str, DownloadOutcome | Exception] = {}
        self.calls: list[tuple[str, Path]] = []
        self.closed = False

    def fetch(self, url: str, destination: Path) -> DownloadOutcome:
        self.calls.append((url, destination))
        response = self.responses.get(url, DownloadOutcome(success=True))
        if isinstance(response, Exception):
            raise response
        if response.success:
            destination.write_bytes(b"image-bytes")
        return response

    def close(self) -> None:
        self.closed = True

    @property
    def urls(self) -> list[str]:
        return [url for url, _ in self.calls]


@pytest.fixture
def fake_downloader():
    """A FakeDownloader that succeeds for every URL by default."""
    return FakeDownloader()


@pytest.fixture
def image_urls():
    """Two CDN image URLs and their derived filenames."""
    return {
        "url_1": IMAGE_URL_1,
        "url_2": IMAGE_URL_2,
        "filename_1": f"{IMAGE_UUID_1}.png",
        "filename_2": f"{IMAGE_UUID_2}.jpeg",
    }


@pytest.fixture
def sample_post():
    """Sample Hashnode post record for testing.

    This matches the structure of a post in a Hashnode export, including
    fields the converter ignores.
    """
    return {
        "_id": "63b1f0c2a1b2c3d4e5f6a7b8",
        "slug": "hello-world",
        "title": "Hello World",
        "dateAdded": "2023-01-01T12:00:00.000Z",
        "brief": "A first post",
        "contentMarkdown": (
            "# Hello\n\n"
            f"![diagram]({IMAGE_URL_1} align=\"center\")\n\n"
            "Some text."
        ),
        "coverImage": "https://cdn.hashnode.com/res/hashnode/image/upload/cover.png",
        "tags": ["intro", "python"],
        "views": 42,
    }


@pytest.fixture
def make_post():
    """Factory for minimal valid post records."""

    def _make_post(slug: str, /, body: str = "Body text", **overrides) -> dict:
        post = {
            "slug": slug,
            "title": slug.replace("-", " ").title(),
            "dateAdded": "2023-01-01T12:00:00.000Z",
            "brief": f"About {slug}",
            "contentMarkdown": body,
        }
        post.update(overrides)
        return post

    return _make_post


@pytest.fixture
def write_export(tmp_path):
    """Write a list of posts to an export file and return its path."""

    def _write_export(posts: list, name: str = "export.json") -> Path:
        export_path = tmp_path / name
        export_path.write_text(json.dumps({"posts": posts}), encoding="utf-8")
        return export_path

    return _write_export


@pytest.fixture
def output_dir(tmp_path):
    """Nested output directory (flat mode puts images beside it)."""
    return tmp_path / "blog" / "posts"
