import time

from conftest import SAMPLE_CSV, make_post
from ipfo_blog.config import AppConfig
from ipfo_blog.models import ErrorKind, Ok
from ipfo_blog.session import BlogSession, Debouncer
from ipfo_blog.sheets import SourceUnavailable


def _csv_with_posts(count):
    lines = ["ID,Title,Excerpt,Content,Category,Author,Date,Image"]
    for i in range(count):
        category = "News" if i % 2 == 0 else "Policy"
        lines.append(f"{i},Post {i},Excerpt {i},<p>Body {i}</p>,{category},,2024-01-{i + 1:02d},")
    return "\n".join(lines) + "\n"


def _session(session_factory, text=SAMPLE_CSV, **config_overrides):
    calls = []

    def fetcher(url, timeout):
        calls.append(url)
        return text

    config = AppConfig()
    for name, value in config_overrides.items():
        setattr(config.listing, name, value)
    session = BlogSession.from_config(
        config, session_id="visitor", session_factory=session_factory, fetcher=fetcher
    )
    return session, calls


def test_load_populates_posts_and_counts(session_factory):
    session, calls = _session(session_factory)

    result = session.load()

    assert isinstance(result, Ok)
    assert [post.id for post in session.all_posts] == ["2", "3", "1"]
    assert session.category_counts == {"Policy": 1, "News": 2}
    assert len(calls) == 1


def test_listing_pages_with_load_more(session_factory):
    session, _ = _session(session_factory, text=_csv_with_posts(20))
    session.load()

    first = session.listing()
    assert first.shown == 9
    assert first.has_more is True
    assert first.total == 20
    assert [post.id for post in first.posts][:2] == ["19", "18"]

    session.load_more()
    session.load_more()
    last = session.listing()
    assert len(last.posts) == 20
    assert last.has_more is False


def test_filter_and_search_reset_to_first_page(session_factory):
    session, _ = _session(session_factory, text=_csv_with_posts(20))
    session.load()
    session.load_more()

    session.set_filter("News")
    assert session.state.page == 1

    session.load_more()
    assert session.state.category_filter == "News"
    view = session.listing()
    assert view.total == 10
    assert view.shown == 10
    assert view.category_counts == {"Policy": 10, "News": 10}

    session.set_search("post 1")
    assert session.state.page == 1
    assert [post.id for post in session.listing().posts] == ["18", "16", "14", "12", "10"]


def test_search_input_is_debounced(session_factory):
    session, _ = _session(session_factory, search_debounce_ms=50)
    session.load()

    session.search_input("fre")
    session.search_input("fresh")
    assert session.state.search_query == ""

    time.sleep(0.3)
    assert session.state.search_query == "fresh"
    assert [post.id for post in session.listing().posts] == ["3"]


def test_flush_search_applies_pending_query(session_factory):
    session, _ = _session(session_factory, search_debounce_ms=10_000)
    session.load()

    session.search_input("policy")
    session.flush_search()

    assert session.state.search_query == "policy"
    assert [post.id for post in session.listing().posts] == ["2"]


def test_debouncer_runs_only_latest_call():
    calls = []
    debouncer = Debouncer(0.05)

    for value in range(5):
        debouncer.call(calls.append, value)
    time.sleep(0.3)

    assert calls == [4]
    assert not debouncer.pending


def test_article_view_includes_related_and_read_time(session_factory):
    session, calls = _session(session_factory)

    result = session.article("3")

    assert isinstance(result, Ok)
    view = result.value
    assert view.post.title == "Fresh news"
    assert [post.id for post in view.related] == ["1"]
    assert view.read_time == 1
    assert len(calls) == 1


def test_article_not_found(session_factory):
    session, _ = _session(session_factory)

    assert session.article("missing-id").kind is ErrorKind.NOT_FOUND
    assert session.article(None).kind is ErrorKind.NOT_FOUND


def test_source_failure_yields_empty_state(session_factory):
    def fetcher(url, timeout):
        raise SourceUnavailable("offline")

    session = BlogSession.from_config(
        AppConfig(), session_id="visitor", session_factory=session_factory, fetcher=fetcher
    )

    result = session.load()

    assert result.kind is ErrorKind.SOURCE_UNAVAILABLE
    assert session.error == result
    view = session.listing()
    assert view.posts == []
    assert view.total == 0
    assert session.article("1").kind is ErrorKind.SOURCE_UNAVAILABLE


def test_close_clears_session_cache(session_factory):
    session, calls = _session(session_factory)
    session.load()

    session.close()
    session.load()

    assert len(calls) == 2


def test_queries_never_mutate_loaded_posts(session_factory):
    session, _ = _session(session_factory)
    session.load()
    snapshot = list(session.all_posts)

    session.set_filter("News")
    session.set_search("fresh")
    session.listing()

    assert session.all_posts == snapshot
    assert make_post("x") not in session.all_posts


def test_stale_debounce_timer_does_not_run_newer_call():
    calls = []
    debouncer = Debouncer(10)

    debouncer.call(calls.append, "fre")
    stale_generation = debouncer._generation
    debouncer.call(calls.append, "fresh")

    # A timer that fired before the second call re-armed the wait.
    debouncer._fire(stale_generation)

    assert calls == []
    assert debouncer.pending

    debouncer.flush()
    assert calls == ["fresh"]


def test_cancelled_debouncer_ignores_fired_timer():
    calls = []
    debouncer = Debouncer(10)

    debouncer.call(calls.append, "policy")
    generation = debouncer._generation
    debouncer.cancel()
    debouncer._fire(generation)

    assert calls == []
    assert not debouncer.pending
