"""
Tests for PostExtractor and HtmlMediaExtractor

Covers per type toggles, tag and reblog filtering, photo size selection,
text record formatting and tolerance of malformed posts.
"""

import pytest

from blogcrawler.core.base import PostType
from blogcrawler.core.config import BlogConfig, MediaConfig
from blogcrawler.processors.extractor import PostExtractor, HtmlMediaExtractor, format_record

from conftest import photo_post


class TestPostExtractor:
    """Test suite for PostExtractor"""

    @pytest.fixture
    def blog(self):
        return BlogConfig(name="example")

    @pytest.fixture
    def media(self):
        return MediaConfig(image_size="1280", video_size=1080)

    @pytest.fixture
    def extractor(self, blog, media):
        return PostExtractor(blog, media)

    def test_text_record_field_order(self, extractor):
        post = {
            'id': 7,
            'type': 'text',
            'date': '2020-01-01 00:00:00 GMT',
            'post_url': 'https://example.tumblr.com/post/7/hello',
            'reblog_key': 'abc',
            'title': 'Hello',
            'body': '<p>Hi</p>',
            'tags': ['a', 'b'],
        }

        items = extractor.extract([post])

        assert len(items) == 1
        assert items[0].post_type == PostType.TEXT
        assert items[0].payload == (
            "Post ID: 7, Date: 2020-01-01 00:00:00 GMT\n"
            "Url with slug: https://example.tumblr.com/post/7/hello\n"
            "Reblog key: abc\n"
            "Reblog url: \n"
            "Reblog name: \n"
            "Title: Hello\n"
            "<p>Hi</p>\n"
            "Tags: a, b\n"
        )

    def test_quote_link_answer_and_conversation_lines(self, extractor):
        posts = [
            {'id': 1, 'type': 'quote', 'text': 'To be', 'source': 'Hamlet'},
            {'id': 2, 'type': 'link', 'url': 'https://x.org', 'description': 'A site'},
            {'id': 3, 'type': 'answer', 'question': 'Why?', 'answer': 'Because.'},
            {'id': 4, 'type': 'chat', 'title': 'Talk', 'dialogue': [
                {'label': 'A:', 'phrase': 'hi'},
                {'label': 'B:', 'phrase': 'hello'},
            ]},
        ]

        items = {item.post_type: item.payload for item in extractor.extract(posts)}

        assert "Quote: To be\nHamlet\n" in items[PostType.QUOTE]
        assert "Link: https://x.org\nA site\n" in items[PostType.LINK]
        assert "Why?\nBecause.\n" in items[PostType.ANSWER]
        assert "Conversation: Talk\nA: hi\nB: hello\n" in items[PostType.CONVERSATION]

    def test_missing_fields_render_empty(self):
        record = format_record({}, [])
        assert record.startswith("Post ID: , Date: \n")
        assert record.endswith("Tags: \n")

    def test_photo_selects_configured_width(self, blog):
        extractor = PostExtractor(blog, MediaConfig(image_size="500"))
        items = extractor.extract([photo_post(1, "tumblr_abc")])
        assert [item.payload for item in items] == ["https://64.media.tumblr.com/a/tumblr_abc_500.jpg"]

    def test_photo_falls_back_to_first_variant(self, blog):
        extractor = PostExtractor(blog, MediaConfig(image_size="400"))
        items = extractor.extract([photo_post(1, "tumblr_abc")])
        assert items[0].payload == "https://64.media.tumblr.com/a/tumblr_abc_1280.jpg"

    def test_photo_items_carry_post_id_and_timestamp(self, extractor):
        item = extractor.extract([photo_post(5, "tumblr_abc")])[0]
        assert item.post_id == "5"
        assert item.timestamp == "1600000005"

    def test_skip_gif(self, blog):
        post = photo_post(1, "tumblr_abc")
        for size in post['photos'][0]['alt_sizes']:
            size['url'] = size['url'].replace('.jpg', '.gif')
        extractor = PostExtractor(blog, MediaConfig(skip_gif=True))
        assert extractor.extract([post]) == []

    def test_tag_filter_is_case_insensitive(self, media):
        extractor = PostExtractor(BlogConfig(name="example", tags="art"), media)
        posts = [
            photo_post(1, "tumblr_one", tags=["Art", "misc"]),
            photo_post(2, "tumblr_two", tags=["misc"]),
        ]

        items = extractor.extract(posts)

        assert [item.post_id for item in items] == ["1"]

    def test_empty_tag_filter_keeps_everything(self, extractor):
        posts = [photo_post(1, "tumblr_one", tags=["misc"]), photo_post(2, "tumblr_two")]
        assert len(extractor.extract(posts)) == 2

    def test_reblogs_can_be_excluded(self, media):
        extractor = PostExtractor(BlogConfig(name="example", include_reblogs=False), media)
        posts = [
            photo_post(1, "tumblr_own"),
            photo_post(2, "tumblr_reblog", reblogged_from_name="someone"),
        ]
        assert [item.post_id for item in extractor.extract(posts)] == ["1"]

    def test_type_toggles(self, media):
        blog = BlogConfig(name="example", download_photo=False, create_photo_meta=True)
        items = PostExtractor(blog, media).extract([photo_post(1, "tumblr_abc")])

        assert [item.post_type for item in items] == [PostType.PHOTO_META]
        assert "Photo url: https://64.media.tumblr.com/a/tumblr_abc_1280.jpg" in items[0].payload
        assert "Photo caption: " in items[0].payload

    def test_video_and_audio_normalization(self, extractor):
        posts = [
            {'id': 1, 'type': 'video', 'video_url': 'https://vtt.tumblr.com/tumblr_v_480.mp4'},
            {'id': 2, 'type': 'audio', 'audio_url': 'https://a.tumblr.com/tumblr_a'},
        ]
        payloads = {item.post_type: item.payload for item in extractor.extract(posts)}
        assert payloads[PostType.VIDEO] == "https://vtt.tumblr.com/tumblr_v.mp4"
        assert payloads[PostType.AUDIO] == "https://a.tumblr.com/tumblr_a.mp3"

    def test_audio_meta_record(self, media):
        blog = BlogConfig(name="example", create_audio_meta=True)
        post = {'id': 3, 'type': 'audio', 'audio_url': 'https://a/x.mp3', 'caption': 'song',
                'artist': 'Band', 'track_name': 'Tune', 'album': 'LP', 'year': 1999}
        meta = [item for item in PostExtractor(blog, media).extract([post])
                if item.post_type == PostType.AUDIO_META][0]
        assert "Audio caption: song\nId3 artist: Band\nId3 title: Tune\nId3 track: \n" \
               "Id3 album: LP\nId3 year: 1999\n" in meta.payload

    def test_malformed_post_does_not_abort_page(self, extractor):
        posts = [
            {'id': 1, 'type': 'photo', 'photos': ["not a photo"]},
            "not a post",
            photo_post(2, "tumblr_ok"),
        ]
        items = extractor.extract(posts)
        assert [item.post_id for item in items] == ["2"]

    def test_unknown_type_is_ignored(self, extractor):
        assert extractor.extract([{'id': 1, 'type': 'poll'}]) == []

    def test_extraction_is_repeatable(self, extractor):
        posts = [photo_post(1, "tumblr_abc"), {'id': 2, 'type': 'quote', 'text': 'q'}]
        assert extractor.extract(posts) == extractor.extract(posts)


class TestHtmlMediaExtractor:
    """Test suite for HtmlMediaExtractor"""

    DOCUMENT = """
    <img src="https://64.media.tumblr.com/a/tumblr_pic_500.jpg">
    <img src="https://64.media.tumblr.com/avatar_abc_64.png">
    <video src="https://www.tumblr.com/video_file/t:1/22/tumblr_vid"></video>
    """

    def test_extracts_resized_photos_and_videos(self):
        extractor = HtmlMediaExtractor(BlogConfig(name="example"), MediaConfig(image_size="1280"))

        items = extractor.extract(self.DOCUMENT)

        payloads = {(item.post_type, item.payload) for item in items}
        assert payloads == {
            (PostType.PHOTO, "https://64.media.tumblr.com/a/tumblr_pic_1280.jpg"),
            (PostType.VIDEO, "https://vt.tumblr.com/tumblr_vid.mp4"),
        }

    def test_random_ids_do_not_change_dedup_keys(self):
        extractor = HtmlMediaExtractor(BlogConfig(name="example"), MediaConfig())

        first = extractor.extract(self.DOCUMENT)
        second = extractor.extract(self.DOCUMENT)

        assert [item.key for item in first] == [item.key for item in second]
        assert first[0].post_id != second[0].post_id
