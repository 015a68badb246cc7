"""Tests for CLI module."""

import json
import re
import tempfile
from pathlib import Path

import pytest
from click.testing import CliRunner

from series_catalog.cli import cli


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, temp_dir):
    data_dir = temp_dir / "data"

    def run(*args, **kwargs):
        return runner.invoke(cli, ["--data-dir", str(data_dir), *args], **kwargs)
    return run


def catalog(temp_dir):
    return json.loads((temp_dir / "data" / "catalog.json").read_text())


def uploads(temp_dir):
    return sorted(p.name for p in (temp_dir / "data" / "uploads").iterdir())


class TestCli:
    """Test the command line interface."""

    def test_init_creates_catalog(self, invoke, temp_dir):
        config_path = temp_dir / "config.json"
        result = invoke("init", "--write-config", str(config_path))

        assert result.exit_code == 0, result.output
        assert catalog(temp_dir) == {"format_version": 1, "series": []}
        assert json.loads(config_path.read_text())["access"]["policy"] == "admin_flag"

    def test_config_option(self, runner, temp_dir):
        config_path = temp_dir / "config.json"
        config_path.write_text(json.dumps({"storage": {"data_dir": str(temp_dir / "elsewhere")}}))

        result = runner.invoke(cli, ["--config", str(config_path), "init"])

        assert result.exit_code == 0, result.output
        assert (temp_dir / "elsewhere" / "catalog.json").exists()

    def test_data_dir_from_environment(self, runner, temp_dir):
        result = runner.invoke(cli, ["init"], env={"SERIES_CATALOG_DATA_DIR": str(temp_dir / "env")})
        assert result.exit_code == 0, result.output
        assert (temp_dir / "env" / "catalog.json").exists()

    def test_create_with_upload_and_url(self, invoke, temp_dir):
        video = temp_dir / "pilot.mp4"
        video.write_bytes(b"fake video")

        result = invoke("create", "Naruto", "--owner", "alice",
                        "-e", f"Pilot={video}", "-e", "Second=https://example.com/2.mp4")

        assert result.exit_code == 0, result.output
        series = catalog(temp_dir)["series"][0]
        assert series["name"] == "Naruto"
        assert [e["title"] for e in series["episodes"]] == ["Pilot", "Second"]
        assert series["episodes"][0]["media"]["kind"] == "blob"
        assert series["episodes"][1]["media"] == {"kind": "external", "url": "https://example.com/2.mp4"}
        assert uploads(temp_dir) == [series["episodes"][0]["media"]["path"]]

    def test_create_rejects_bad_upload(self, invoke, temp_dir):
        good = temp_dir / "good.mp4"
        good.write_bytes(b"video")
        bad = temp_dir / "notes.txt"
        bad.write_text("not a video")

        result = invoke("create", "A", "--owner", "alice", "-e", f"One={good}", "-e", f"Two={bad}")

        assert result.exit_code == 1
        assert catalog(temp_dir)["series"] == []
        assert uploads(temp_dir) == []

    def test_create_duplicate_name(self, invoke, temp_dir):
        invoke("create", "Naruto", "--owner", "alice")
        result = invoke("create", "naruto", "--owner", "bob")

        assert result.exit_code == 1
        assert len(catalog(temp_dir)["series"]) == 1

    def test_list_and_show(self, invoke, temp_dir):
        invoke("create", "Naruto", "--owner", "alice", "-e", "Pilot=https://x/1.mp4")
        series_id = catalog(temp_dir)["series"][0]["id"]

        listed = invoke("list", "--format", "json")
        shown = invoke("show", series_id, "--format", "json")
        missing = invoke("show", "nope")

        assert listed.exit_code == 0, listed.output
        assert json.loads(listed.output)[0]["name"] == "Naruto"
        assert json.loads(shown.output)["episodes"][0]["title"] == "Pilot"
        assert missing.exit_code == 1

    def test_add_episode_and_delete(self, invoke, temp_dir):
        invoke("create", "A", "--owner", "alice")
        series_id = catalog(temp_dir)["series"][0]["id"]
        video = temp_dir / "ep.mkv"
        video.write_bytes(b"video")

        added = invoke("add-episode", series_id, str(video))
        assert added.exit_code == 0, added.output
        episode = catalog(temp_dir)["series"][0]["episodes"][0]
        assert episode["title"] == "Episode 1"
        assert len(uploads(temp_dir)) == 1

        forbidden = invoke("delete-episode", series_id, episode["id"], "--as", "alice")
        assert forbidden.exit_code == 1
        assert len(uploads(temp_dir)) == 1

        deleted = invoke("delete-episode", series_id, episode["id"], "--as", "admin")
        assert deleted.exit_code == 0, deleted.output
        assert catalog(temp_dir)["series"][0]["episodes"] == []
        assert uploads(temp_dir) == []

    def test_add_episode_to_missing_series_leaves_no_upload(self, invoke, temp_dir):
        invoke("init")
        video = temp_dir / "ep.mp4"
        video.write_bytes(b"video")

        result = invoke("add-episode", "nope", str(video))

        assert result.exit_code == 1
        assert uploads(temp_dir) == []

    def test_set_cover_and_delete_series(self, invoke, temp_dir):
        invoke("create", "A", "--owner", "alice")
        series_id = catalog(temp_dir)["series"][0]["id"]
        image = temp_dir / "cover.png"
        image.write_bytes(b"png")

        covered = invoke("set-cover", series_id, str(image))
        assert covered.exit_code == 0, covered.output
        assert catalog(temp_dir)["series"][0]["cover_image"]["kind"] == "blob"

        deleted = invoke("delete-series", series_id, "--as", "admin", "--yes")
        assert deleted.exit_code == 0, deleted.output
        assert catalog(temp_dir)["series"] == []
        assert uploads(temp_dir) == []

    def test_set_cover_requires_source(self, invoke):
        result = invoke("set-cover", "s1")
        assert result.exit_code == 2

    def test_delete_series_confirmation(self, invoke, temp_dir):
        invoke("create", "A", "--owner", "alice")
        series_id = catalog(temp_dir)["series"][0]["id"]

        result = invoke("delete-series", series_id, "--as", "admin", input="n\n")

        assert result.exit_code == 1
        assert len(catalog(temp_dir)["series"]) == 1

    def test_gc_dry_run(self, invoke, temp_dir):
        invoke("init")
        orphan = temp_dir / "data" / "uploads" / "video-deadbeef.mp4"
        orphan.write_bytes(b"left behind")

        dry = invoke("gc", "--dry-run", "--grace", "-1")
        assert dry.exit_code == 0, dry.output
        assert "video-deadbeef.mp4" in dry.output
        assert orphan.exists()

        real = invoke("gc", "--grace", "-1")
        assert real.exit_code == 0, real.output
        assert re.search(r"Removed 1 orphaned", real.output)
        assert not orphan.exists()

    def test_add_episode_missing_file_is_not_a_url(self, invoke, temp_dir):
        invoke("create", "A", "--owner", "alice")
        series_id = catalog(temp_dir)["series"][0]["id"]

        result = invoke("add-episode", series_id, str(temp_dir / "ep1.mp4"))

        assert result.exit_code == 1
        assert "No such file" in result.output
        assert catalog(temp_dir)["series"][0]["episodes"] == []

    def test_create_missing_file_is_not_a_url(self, invoke, temp_dir):
        invoke("init")
        video = temp_dir / "pilot.mp4"
        video.write_bytes(b"video")

        result = invoke("create", "A", "--owner", "alice",
                        "-e", f"Pilot={video}", "-e", "Second=ep1-missing.mp4")

        assert result.exit_code == 1
        assert "No such file" in result.output
        assert catalog(temp_dir)["series"] == []
        assert uploads(temp_dir) == []
