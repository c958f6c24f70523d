"""Tests for SourceLocator; remote fetches are mocked."""

import os
from unittest.mock import MagicMock, patch

import pytest
import requests

from tau.core.source_locator import SourceLocator
from tau.errors import FetchFailure, FetchTimeout, NotFound


@pytest.fixture
def locator(tmp_path):
    return SourceLocator(cache_dir=str(tmp_path / "cache"))


class TestLocal:
    def test_single_file(self, locator, tmp_path):
        (tmp_path / "net.hcl").write_text("")
        assert locator.locate("net.hcl", str(tmp_path)) == [str(tmp_path / "net.hcl")]

    def test_any_extension_for_explicit_file(self, locator, tmp_path):
        (tmp_path / "net.conf").write_text("")
        assert locator.locate("./net.conf", str(tmp_path)) == [str(tmp_path / "net.conf")]

    def test_absolute_path_ignores_base(self, locator, tmp_path):
        path = tmp_path / "net.hcl"
        path.write_text("")
        assert locator.locate(str(path), "/somewhere/else") == [str(path)]

    def test_directory_sorted_and_filtered(self, locator, tmp_path):
        directory = tmp_path / "stack"
        directory.mkdir()
        for name in ["b.hcl", "a.tau", "notes.txt", "c.tf"]:
            (directory / name).write_text("")
        (directory / "nested.hcl").mkdir()

        assert locator.locate("stack", str(tmp_path)) == [
            str(directory / "a.tau"),
            str(directory / "b.hcl"),
        ]

    def test_custom_extensions(self, tmp_path):
        (tmp_path / "a.hcl").write_text("")
        (tmp_path / "b.deps").write_text("")
        assert SourceLocator(extensions=[".deps"]).locate(".", str(tmp_path)) == [
            str(tmp_path / "b.deps"),
        ]

    def test_missing(self, locator, tmp_path):
        with pytest.raises(NotFound):
            locator.locate("missing.hcl", str(tmp_path))

    def test_directory_without_definitions(self, locator, tmp_path):
        (tmp_path / "empty").mkdir()
        with pytest.raises(NotFound):
            locator.locate("empty", str(tmp_path))


class TestRemote:
    URL = "https://example.com/defs/net.hcl"

    def test_is_remote(self):
        assert SourceLocator.is_remote(self.URL)
        assert SourceLocator.is_remote("http://example.com/a.hcl")
        assert not SourceLocator.is_remote("./net.hcl")
        assert not SourceLocator.is_remote("/abs/net.hcl")

    def test_download(self, locator, tmp_path):
        response = MagicMock()
        response.content = b'backend "local" {}\n'
        with patch("tau.core.source_locator.requests.get", return_value=response) as get:
            paths = locator.locate(self.URL, str(tmp_path))

        assert len(paths) == 1
        assert paths[0].startswith(str(tmp_path / "cache"))
        assert paths[0].endswith("_net.hcl")
        with open(paths[0], "rb") as f:
            assert f.read() == b'backend "local" {}\n'
        assert get.call_args.kwargs["timeout"] == 10

    def test_default_cache_under_base_dir(self, tmp_path):
        response = MagicMock()
        response.content = b""
        with patch("tau.core.source_locator.requests.get", return_value=response):
            path = SourceLocator().locate(self.URL, str(tmp_path))[0]

        assert os.path.dirname(path) == os.path.join(str(tmp_path), ".tau", "sources")

    def test_timeout(self, locator, tmp_path):
        with patch("tau.core.source_locator.requests.get",
                   side_effect=requests.exceptions.Timeout("slow")):
            with pytest.raises(FetchTimeout):
                locator.locate(self.URL, str(tmp_path))

    def test_timeout_is_fetch_failure(self):
        assert issubclass(FetchTimeout, FetchFailure)

    def test_not_found(self, locator, tmp_path):
        response = MagicMock()
        response.status_code = 404
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
        with patch("tau.core.source_locator.requests.get", return_value=response):
            with pytest.raises(NotFound):
                locator.locate(self.URL, str(tmp_path))

    def test_server_error(self, locator, tmp_path):
        response = MagicMock()
        response.status_code = 500
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
        with patch("tau.core.source_locator.requests.get", return_value=response):
            with pytest.raises(FetchFailure):
                locator.locate(self.URL, str(tmp_path))

    def test_connection_error(self, locator, tmp_path):
        with patch("tau.core.source_locator.requests.get",
                   side_effect=requests.exceptions.ConnectionError("refused")):
            with pytest.raises(FetchFailure):
                locator.locate(self.URL, str(tmp_path))
