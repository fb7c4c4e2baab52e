"""Unit tests for space_sync.hydration module."""

from src.space_sync.call_context import CallContext
from src.space_sync.content_cache import HydrationCache
from src.space_sync.fork import fork_subtree
from src.space_sync.hydration import (
    hydrate,
    hydrate_batched,
    top_most_fully_selected_folders,
)
from src.space_sync.models import PreflightItem
from src.storyblok_client.models import Story
from tests.helpers.fake_storyblok import FakeCDAClient


def _items(*stories):
    return [PreflightItem(story=s) for s in stories]


class TestHydrate:
    """Test cases for per-story hydrate()."""

    def test_preview_fetches_draft_and_published(self):
        """Preview tokens fetch drafts always and published for published stories."""
        cda = FakeCDAClient()
        published = Story(id=1, full_slug="a", published=True)
        draft_only = Story(id=2, full_slug="b", published=False)
        cda.add(published, "draft", {'v': 'a-draft'})
        cda.add(published, "published", {'v': 'a-pub'})
        cda.add(draft_only, "draft", {'v': 'b-draft'})
        cache = HydrationCache()

        stats = hydrate(None, cda, 1, _items(published, draft_only), "preview", cache)

        assert (stats.total, stats.drafts, stats.published, stats.misses) == (2, 2, 1, 0)
        assert cache.get(1).published == {'v': 'a-pub'}
        assert cache.get(2).draft == {'v': 'b-draft'}

    def test_public_fetches_only_published_stories(self):
        """Public tokens skip unpublished stories entirely."""
        cda = FakeCDAClient()
        published = Story(id=1, full_slug="a", published=True)
        draft_only = Story(id=2, full_slug="b", published=False)
        cda.add(published, "published", {'v': 'a-pub'})

        stats = hydrate(None, cda, 1, _items(published, draft_only), "public", HydrationCache())

        assert stats.published == 1
        assert stats.drafts == 0
        assert stats.misses == 1
        assert ('get_story_raw_by_slug', ('b', 'published')) not in cda.calls

    def test_folders_are_ignored(self):
        cda = FakeCDAClient()
        folder = Story(id=1, full_slug="app", is_folder=True)

        stats = hydrate(None, cda, 1, _items(folder), "preview", HydrationCache())

        assert stats.total == 0
        assert cda.calls == []

    def test_fetch_failures_are_misses(self):
        """Missing content is counted, never raised."""
        stats = hydrate(None, FakeCDAClient(), 1, _items(Story(id=1, full_slug="x")), "preview",
                        HydrationCache())

        assert stats.misses == 1

    def test_progress_events(self):
        """Progress reports the total first, then increments."""
        cda = FakeCDAClient()
        story = Story(id=1, full_slug="a")
        cda.add(story, "draft", {})
        events = []

        hydrate(None, cda, 1, _items(story), "preview", HydrationCache(), progress=events.append)

        assert events[0].total == 1
        assert sum(e.incr_drafts for e in events) == 1

    def test_cancelled_context_fetches_nothing(self):
        cda = FakeCDAClient()
        ctx = CallContext()
        ctx.cancel()

        hydrate(ctx, cda, 1, _items(Story(id=1, full_slug="a")), "preview", HydrationCache())

        assert cda.calls == []


class TestTopMostFullySelectedFolders:
    """Test cases for top_most_fully_selected_folders()."""

    def test_nested_folders_are_collapsed(self):
        """Only the top-most fully selected folder is kept."""
        app = Story(full_slug="app", is_folder=True)
        de = Story(full_slug="app/de", is_folder=True)
        source = [app, de, Story(full_slug="app/home"), Story(full_slug="app/de/page")]

        roots = top_most_fully_selected_folders([de, app], {"app/home", "app/de/page"}, source)

        assert [f.full_slug for f in roots] == ["app"]

    def test_partially_selected_folder_is_excluded(self):
        """A folder with an unselected story below it does not qualify."""
        app = Story(full_slug="app", is_folder=True)
        de = Story(full_slug="app/de", is_folder=True)
        source = [app, de, Story(full_slug="app/home"), Story(full_slug="app/de/page")]

        roots = top_most_fully_selected_folders([app, de], {"app/de/page"}, source)

        assert [f.full_slug for f in roots] == ["app/de"]


class TestHydrateBatched:
    """Test cases for hydrate_batched()."""

    def test_full_folders_are_walked_and_rest_fetched_per_slug(self):
        """Covered stories come from prefix walks, the others one by one."""
        cda = FakeCDAClient()
        app = Story(id=1, full_slug="app", is_folder=True)
        home = Story(id=2, full_slug="app/home")
        about = Story(id=3, full_slug="about")
        for story in (home, about):
            cda.add(story, "draft", {'slug': story.full_slug})
        cache = HydrationCache()

        stats = hydrate_batched(
            None, cda, 1, _items(app, home, about), [app, home, about], "preview", cache,
        )

        assert cda.count_calls('walk_stories_by_prefix') == 2  # draft and published
        assert ('get_story_raw_by_slug', ('app/home', 'draft')) not in cda.calls
        assert ('get_story_raw_by_slug', ('about', 'draft')) in cda.calls
        assert stats.total == 2
        assert stats.drafts == 2
        assert stats.misses == 0

    def test_misses_counted_once(self):
        """A story with no content is counted as a single miss."""
        cda = FakeCDAClient()
        lonely = Story(id=5, full_slug="lonely")

        stats = hydrate_batched(None, cda, 1, _items(lonely), [lonely], "preview", HydrationCache())

        assert stats.misses == 1

    def test_public_walk_only_published(self):
        """Public tokens walk only the published version."""
        cda = FakeCDAClient()
        app = Story(id=1, full_slug="app", is_folder=True)
        home = Story(id=2, full_slug="app/home", published=True)
        cda.add(home, "published", {})

        stats = hydrate_batched(None, cda, 1, _items(app, home), [app, home], "public", HydrationCache())

        assert cda.calls == [('walk_stories_by_prefix', ('app', 'published'))]
        assert stats.published == 1

    def test_skipped_items_are_ignored(self):
        cda = FakeCDAClient()
        story = Story(id=1, full_slug="a")
        item = PreflightItem(story=story, skip=True)

        stats = hydrate_batched(None, cda, 1, [item], [story], "preview", HydrationCache())

        assert stats.total == 0
        assert cda.calls == []


class TestForkedItemHydration:
    """Test cases for hydrating items renamed by a fork."""

    def _source(self):
        blog = Story(id=1, slug="blog", full_slug="blog", is_folder=True)
        post = Story(id=2, slug="post", full_slug="blog/post", published=True)
        return blog, post

    def test_forked_folder_is_walked_under_its_source_path(self):
        """A forked folder subtree is prefetched from the original folder."""
        # Arrange
        blog, post = self._source()
        cda = FakeCDAClient()
        cda.add(post, "draft", {'component': 'post-draft'})
        cda.add(post, "published", {'component': 'post-live'})
        items = fork_subtree(PreflightItem(story=blog), "blog-copy", [blog, post], [])
        cache = HydrationCache()

        # Act
        stats = hydrate_batched(None, cda, 1, items, [blog, post], "preview", cache)

        # Assert
        assert [it.story.full_slug for it in items] == ["blog-copy", "blog-copy/post"]
        assert ('walk_stories_by_prefix', ('blog', 'draft')) in cda.calls
        assert (stats.total, stats.drafts, stats.published, stats.misses) == (1, 1, 1, 0)
        assert cache.get(2).draft == {'component': 'post-draft'}

    def test_forked_story_is_fetched_by_source_slug(self):
        """A single forked story is fetched by the slug it has in the source."""
        # Arrange
        blog, post = self._source()
        cda = FakeCDAClient()
        cda.add(post, "published", {'component': 'post-live'})
        items = fork_subtree(PreflightItem(story=post), "post-copy", [blog, post], [])

        # Act
        stats = hydrate_batched(None, cda, 1, items, [blog, post], "public", HydrationCache())

        # Assert
        assert items[0].story.full_slug == "blog/post-copy"
        assert cda.calls == [('get_story_raw_by_slug', ('blog/post', 'published'))]
        assert stats.published == 1
        assert stats.misses == 0

    def test_unresolved_forked_story_counts_as_miss(self):
        """A forked story without delivery content is reported as a miss."""
        blog, post = self._source()
        items = fork_subtree(PreflightItem(story=blog), "blog-copy", [blog, post], [])

        stats = hydrate_batched(None, FakeCDAClient(), 1, items, [blog, post], "preview",
                                HydrationCache())

        assert stats.total == 1
        assert stats.misses == 1

    def test_per_story_hydrate_uses_source_slug(self):
        blog, post = self._source()
        cda = FakeCDAClient()
        cda.add(post, "draft", {'component': 'post-draft'})
        items = fork_subtree(PreflightItem(story=post), "post-copy", [blog, post], [])

        stats = hydrate(None, cda, 1, items, "preview", HydrationCache())

        assert stats.drafts == 1
        assert stats.misses == 0
