"""
Tests for per-line state tracking.

Tests reuse, reload and clear decisions, the staleness guard and local
path resolution.
"""

import pytest

from comment_images.directives import Directive
from comment_images.images.base import LineStatus, OutcomeKind
from comment_images.images.tracker import LineStateTracker, is_remote_source

REMOTE_A = "https://example.com/a.png"
REMOTE_B = "https://example.com/b.png"


@pytest.fixture
def published():
    return []


@pytest.fixture
def tracker(fake_fetcher, published):
    return LineStateTracker(fake_fetcher, lambda line, outcome: published.append((line, outcome)))


class TestIsRemoteSource:
    """Test remote source detection."""

    @pytest.mark.parametrize("source", [REMOTE_A, "HTTP://EXAMPLE.COM/A.PNG", " https://x/y"])
    def test_remote(self, source):
        assert is_remote_source(source)

    @pytest.mark.parametrize("source", ["a.png", "/tmp/a.png", r"C:\img\a.png", "httpdocs/a.png"])
    def test_local(self, source):
        assert not is_remote_source(source)


class TestRemoteResolution:
    """Test lines whose directive points at a URL."""

    def test_loading_then_ready(self, tracker, fake_fetcher, published, sample_image_file):
        """Test a new remote directive goes LOADING, then READY on fetch success."""
        tracker.resolve(3, Directive(source=REMOTE_A, scale=1.0, column=2))

        assert tracker.get(3).status == LineStatus.LOADING
        assert published[-1][1].kind == OutcomeKind.LOADING

        fake_fetcher.complete(REMOTE_A, local_path=sample_image_file)

        state = tracker.get(3)
        assert state.status == LineStatus.READY
        assert state.resolved_local_path == sample_image_file
        assert (state.width, state.height) == (40, 20)
        outcome = published[-1][1]
        assert outcome.kind == OutcomeKind.READY
        assert outcome.local_path == sample_image_file
        assert outcome.scale == 1.0
        assert outcome.column == 2
        assert fake_fetcher.cache.get(REMOTE_A) == sample_image_file

    def test_repeated_resolution_fetches_once(self, tracker, fake_fetcher, published, sample_image_file):
        """Test an unchanged directive never triggers a second fetch or publish."""
        directive = Directive(source=REMOTE_A)
        tracker.resolve(0, directive)
        fake_fetcher.complete(REMOTE_A, local_path=sample_image_file)
        count = len(published)

        for _ in range(10):
            tracker.resolve(0, directive)

        assert fake_fetcher.requests == [REMOTE_A]
        assert len(published) == count

    def test_repeated_resolution_while_loading(self, tracker, fake_fetcher):
        """Test re-resolving a loading line does not start another fetch."""
        for _ in range(5):
            tracker.resolve(0, Directive(source=REMOTE_A))

        assert fake_fetcher.requests == [REMOTE_A]

    def test_scale_change_keeps_image(self, tracker, fake_fetcher, published, sample_image_file):
        """Test a scale change republishes READY without refetching."""
        tracker.resolve(0, Directive(source=REMOTE_A, scale=1.0))
        fake_fetcher.complete(REMOTE_A, local_path=sample_image_file)

        tracker.resolve(0, Directive(source=REMOTE_A, scale=0.5))

        assert fake_fetcher.requests == [REMOTE_A]
        outcome = published[-1][1]
        assert outcome.kind == OutcomeKind.READY
        assert outcome.scale == 0.5
        assert outcome.local_path == sample_image_file

    def test_scale_change_while_loading(self, tracker, fake_fetcher, published, sample_image_file):
        """Test a pending fetch completes with the latest scale."""
        tracker.resolve(0, Directive(source=REMOTE_A, scale=1.0))
        tracker.resolve(0, Directive(source=REMOTE_A, scale=2.0))
        fake_fetcher.complete(REMOTE_A, local_path=sample_image_file)

        assert fake_fetcher.requests == [REMOTE_A]
        assert published[-1][1].scale == 2.0

    def test_source_change_reloads(self, tracker, fake_fetcher, sample_image_file):
        """Test a different source discards the old resolution and fetches anew."""
        tracker.resolve(0, Directive(source=REMOTE_A))
        fake_fetcher.complete(REMOTE_A, local_path=sample_image_file)

        tracker.resolve(0, Directive(source=REMOTE_B))

        state = tracker.get(0)
        assert state.status == LineStatus.LOADING
        assert state.resolved_local_path is None
        assert fake_fetcher.requests == [REMOTE_A, REMOTE_B]

    def test_stale_completion_is_discarded(self, tracker, fake_fetcher, published, sample_image_file):
        """Test a late result for a superseded source does not overwrite the line."""
        tracker.resolve(0, Directive(source=REMOTE_A))
        tracker.resolve(0, Directive(source=REMOTE_B))
        count = len(published)

        fake_fetcher.complete(REMOTE_A, local_path=sample_image_file)

        state = tracker.get(0)
        assert state.current_source == REMOTE_B
        assert state.status == LineStatus.LOADING
        assert len(published) == count

        fake_fetcher.complete(REMOTE_B, local_path=sample_image_file)
        assert tracker.get(0).status == LineStatus.READY

    def test_stale_completion_after_removal(self, tracker, fake_fetcher, sample_image_file):
        """Test a result arriving after the directive was removed is dropped."""
        tracker.resolve(0, Directive(source=REMOTE_A))
        tracker.resolve(0, None)

        fake_fetcher.complete(REMOTE_A, local_path=sample_image_file)

        assert tracker.get(0) is None

    def test_fetch_failure(self, tracker, fake_fetcher, published):
        """Test a failed fetch puts the line in ERROR with the message."""
        tracker.resolve(0, Directive(source=REMOTE_A))

        fake_fetcher.complete(REMOTE_A, error="Could not fetch: HTTP 404")

        state = tracker.get(0)
        assert state.status == LineStatus.ERROR
        assert state.diagnostic == "Could not fetch: HTTP 404"
        assert published[-1][1].kind == OutcomeKind.ERROR

    def test_scale_change_after_failure_retries(
        self, tracker, fake_fetcher, published, sample_image_file
    ):
        """Test a failed line is fetched again when its scale changes."""
        tracker.resolve(0, Directive(source=REMOTE_A, scale=1.0))
        fake_fetcher.complete(REMOTE_A, error="Could not fetch: HTTP 503")
        assert tracker.get(0).status == LineStatus.ERROR

        tracker.resolve(0, Directive(source=REMOTE_A, scale=0.5))

        assert fake_fetcher.requests == [REMOTE_A, REMOTE_A]
        assert tracker.get(0).status == LineStatus.LOADING

        fake_fetcher.complete(REMOTE_A, local_path=sample_image_file)

        outcome = published[-1][1]
        assert outcome.kind == OutcomeKind.READY
        assert outcome.scale == 0.5

    def test_unmappable_url(self, published, coordinator):
        """Test a URL the downloader cannot name a file for becomes an ERROR."""
        tracker = LineStateTracker(coordinator, lambda line, outcome: published.append((line, outcome)))

        tracker.resolve(0, Directive(source="http://[oops/x.png"))

        state = tracker.get(0)
        assert state.status == LineStatus.ERROR
        assert "Could not fetch" in state.diagnostic
        assert coordinator.pending_urls == []
        assert [o.kind for _, o in published] == [OutcomeKind.ERROR]

    def test_cache_hit_publishes_ready_only(self, tracker, fake_fetcher, published, sample_image_file):
        """Test a cached URL resolves synchronously without a LOADING outcome."""
        fake_fetcher.cache.put(REMOTE_A, sample_image_file)

        tracker.resolve(0, Directive(source=REMOTE_A))

        assert [o.kind for _, o in published] == [OutcomeKind.READY]
        assert fake_fetcher.requests == []

    def test_undecodable_download(self, tracker, fake_fetcher, temp_dir):
        """Test a downloaded file that is not an image becomes an ERROR."""
        bogus = temp_dir / "bogus.png"
        bogus.write_bytes(b"<html>not an image</html>")
        tracker.resolve(0, Directive(source=REMOTE_A))

        fake_fetcher.complete(REMOTE_A, local_path=bogus)

        state = tracker.get(0)
        assert state.status == LineStatus.ERROR
        assert "corrupt, invalid or unsupported" in state.diagnostic


class TestLocalResolution:
    """Test lines whose directive points at a local file."""

    def test_existing_file(self, tracker, fake_fetcher, published, sample_image_file):
        """Test an existing local file is READY immediately with no fetch."""
        tracker.resolve(0, Directive(source=str(sample_image_file)))

        assert fake_fetcher.requests == []
        outcome = published[-1][1]
        assert outcome.kind == OutcomeKind.READY
        assert outcome.local_path == sample_image_file
        assert outcome.scale == 1.0

    def test_relative_to_document(self, fake_fetcher, published, sample_image_file):
        """Test relative paths resolve against the document directory."""
        tracker = LineStateTracker(
            fake_fetcher,
            lambda line, outcome: published.append((line, outcome)),
            base_dir=sample_image_file.parent,
        )

        tracker.resolve(0, Directive(source=sample_image_file.name))

        assert tracker.get(0).resolved_local_path == sample_image_file

    def test_missing_file(self, tracker, published, temp_dir):
        """Test a missing local file is an ERROR."""
        tracker.resolve(0, Directive(source=str(temp_dir / "missing.png")))

        state = tracker.get(0)
        assert state.status == LineStatus.ERROR
        assert "not found" in state.diagnostic

    def test_unknown_home_directory(self, tracker):
        """Test a ~user path for a missing user becomes an ERROR."""
        tracker.resolve(0, Directive(source="~nosuchuser-comment-images/x.png"))

        state = tracker.get(0)
        assert state.status == LineStatus.ERROR
        assert "Invalid image path" in state.diagnostic

    @pytest.mark.parametrize("source", ["a" * 5000 + ".png", "bad\0name.png"])
    def test_unusable_path(self, tracker, source):
        """Test paths the filesystem rejects become an ERROR instead of raising."""
        tracker.resolve(0, Directive(source=source))

        state = tracker.get(0)
        assert state.status == LineStatus.ERROR
        assert state.diagnostic

    def test_error_state_is_kept_for_same_directive(self, tracker, published, temp_dir):
        """Test re-resolving an unchanged failing directive is a no-op."""
        directive = Directive(source=str(temp_dir / "missing.png"))
        tracker.resolve(0, directive)
        count = len(published)

        tracker.resolve(0, directive)

        assert len(published) == count


class TestLineLifecycle:
    """Test record creation, failure and removal."""

    def test_directive_removed(self, tracker, published, sample_image_file):
        """Test removing a directive clears the line and drops its record."""
        tracker.resolve(0, Directive(source=str(sample_image_file)))

        tracker.resolve(0, None)

        assert tracker.get(0) is None
        assert published[-1][0] == 0
        assert published[-1][1].kind == OutcomeKind.CLEARED

    def test_plain_line_publishes_nothing(self, tracker, published):
        """Test a line that never had a directive stays silent."""
        tracker.resolve(5, None)

        assert published == []
        assert tracker.lines() == []

    def test_fail_records_parse_error(self, tracker, published):
        """Test fail() puts the line in ERROR and dedups identical messages."""
        tracker.fail(2, "XML parse error: bad", column=4)
        tracker.fail(2, "XML parse error: bad", column=4)

        assert len(published) == 1
        outcome = published[0][1]
        assert outcome.kind == OutcomeKind.ERROR
        assert outcome.column == 4

    def test_fixed_directive_after_parse_error(self, tracker, fake_fetcher):
        """Test fixing a malformed directive loads the image."""
        tracker.fail(0, "XML parse error: bad")

        tracker.resolve(0, Directive(source=REMOTE_A))

        assert tracker.get(0).status == LineStatus.LOADING
        assert fake_fetcher.requests == [REMOTE_A]

    def test_lines_are_independent(self, tracker, fake_fetcher, sample_image_file, temp_dir):
        """Test an error on one line leaves other lines untouched."""
        tracker.resolve(0, Directive(source=str(sample_image_file)))
        tracker.resolve(1, Directive(source=str(temp_dir / "missing.png")))

        assert tracker.get(0).status == LineStatus.READY
        assert tracker.get(1).status == LineStatus.ERROR
        assert tracker.lines() == [0, 1]

    def test_shifted_line_is_fresh(self, tracker, fake_fetcher, published, sample_image_file):
        """Test a directive moved to another line is reloaded there from the cache."""
        tracker.resolve(4, Directive(source=REMOTE_A))
        fake_fetcher.complete(REMOTE_A, local_path=sample_image_file)

        # A line was inserted above: the directive now lives on line 5
        tracker.resolve(4, None)
        tracker.resolve(5, Directive(source=REMOTE_A))

        assert tracker.get(4) is None
        assert tracker.get(5).status == LineStatus.READY
        assert tracker.get(5).resolved_local_path == sample_image_file
        assert fake_fetcher.requests == [REMOTE_A]

    def test_clear(self, tracker, published, sample_image_file):
        """Test clear() drops all records and publishes CLEARED for each."""
        tracker.resolve(0, Directive(source=str(sample_image_file)))
        tracker.resolve(3, Directive(source=str(sample_image_file)))
        published.clear()

        tracker.clear()

        assert tracker.lines() == []
        assert [line for line, _ in published] == [0, 3]
        assert all(o.kind == OutcomeKind.CLEARED for _, o in published)
