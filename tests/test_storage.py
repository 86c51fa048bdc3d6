"""
Tests for the content index and the blog state store
"""

import json
from datetime import datetime

import pytest

from blogcrawler.core.base import BlogState, StorageError
from blogcrawler.storage.index import FileContentIndex
from blogcrawler.storage.state import BlogStateStore


class TestFileContentIndex:
    """Test suite for FileContentIndex"""

    @pytest.mark.asyncio
    async def test_finds_existing_files_by_canonical_key(self, tmp_path):
        (tmp_path / "tumblr_abc_1280.jpg").write_bytes(b"x")
        index = FileContentIndex(str(tmp_path))
        await index.initialize()

        assert index.exists_on_disk("tumblr_abc")
        assert not index.exists_on_disk("tumblr_ab")
        assert not index.exists_in_db("tumblr_abc")

    @pytest.mark.asyncio
    async def test_partial_and_unrelated_files_do_not_match(self, tmp_path):
        (tmp_path / "tumblr_abc_1280.jpg.part").write_bytes(b"half")
        (tmp_path / "tumblr_xyz_other_500.jpg").write_bytes(b"x")
        index = FileContentIndex(str(tmp_path))
        await index.initialize()

        assert not index.exists_on_disk("tumblr_abc")
        assert not index.exists_on_disk("tumblr_xyz")
        assert index.exists_on_disk("tumblr_xyz_other")

    @pytest.mark.asyncio
    async def test_register_and_save(self, tmp_path):
        index = FileContentIndex(str(tmp_path))
        await index.initialize()

        index.register("tumblr_new", "tumblr_new_500.jpg")
        index.save()

        assert index.exists_in_db("tumblr_new")
        assert index.exists_on_disk("tumblr_new")
        assert json.loads((tmp_path / "links.json").read_text()) == ["tumblr_new"]

        reloaded = FileContentIndex(str(tmp_path))
        await reloaded.initialize()
        assert reloaded.exists_in_db("tumblr_new")
        assert len(reloaded) == 1

    @pytest.mark.asyncio
    async def test_corrupt_index(self, tmp_path):
        (tmp_path / "links.json").write_text("{not json")
        with pytest.raises(StorageError):
            await FileContentIndex(str(tmp_path)).initialize()

    def test_save_without_changes_writes_nothing(self, tmp_path):
        index = FileContentIndex(str(tmp_path / "blog"))
        index.save()
        assert not (tmp_path / "blog" / "links.json").exists()


class TestBlogStateStore:
    """Test suite for BlogStateStore"""

    def test_missing_state_is_fresh(self, tmp_path):
        state = BlogStateStore(str(tmp_path)).load("example")
        assert state == BlogState(name="example")

    def test_save_and_load(self, tmp_path):
        store = BlogStateStore(str(tmp_path))
        state = BlogState(
            name="example",
            post_counts={'photo': 3},
            total_count=3,
            last_id=99,
            last_complete_crawl=datetime(2024, 5, 1, 12, 0, 0),
        )

        path = store.save(state)

        assert path.name == "example.json"
        assert store.load("example") == state

    def test_unsafe_name(self, tmp_path):
        store = BlogStateStore(str(tmp_path))
        assert store.path_for("a/b c").name == "a_b_c.json"
