from conftest import make_post
from ipfo_blog import articles
from ipfo_blog.models import Err, ErrorKind, Ok


class StubLoader:
    def __init__(self, result):
        self.result = result
        self.calls = 0

    def load(self):
        self.calls += 1
        return self.result


def _posts():
    return [
        make_post("A", "News"),
        make_post("B", "News"),
        make_post("C", "Policy"),
        make_post("D", "News"),
        make_post("E", "News"),
        make_post("F", "News"),
    ]


def test_resolve_finds_post():
    resolver = articles.ArticleResolver(StubLoader(Ok(_posts())))

    result = resolver.resolve("C")

    assert result == Ok(_posts()[2])


def test_resolve_missing_id_is_not_found():
    resolver = articles.ArticleResolver(StubLoader(Ok(_posts())))

    assert resolver.resolve("missing-id").kind is ErrorKind.NOT_FOUND


def test_resolve_without_id_skips_loading():
    loader = StubLoader(Ok(_posts()))
    resolver = articles.ArticleResolver(loader)

    assert resolver.resolve(None).kind is ErrorKind.NOT_FOUND
    assert resolver.resolve("").kind is ErrorKind.NOT_FOUND
    assert loader.calls == 0


def test_resolve_passes_source_failure_through():
    failure = Err(ErrorKind.SOURCE_UNAVAILABLE, "offline")
    resolver = articles.ArticleResolver(StubLoader(failure))

    assert resolver.resolve("A") == failure
    assert resolver.related("News", "A") == []


def test_related_excludes_current_and_limits():
    resolver = articles.ArticleResolver(StubLoader(Ok(_posts())))

    related = resolver.related("News", exclude_id="A", limit=3)

    assert [post.id for post in related] == ["B", "D", "E"]


def test_related_posts_with_no_matches():
    assert articles.related_posts(_posts(), "Events", "A") == []
    assert articles.related_posts(_posts(), "News", "A", limit=0) == []


def test_read_time_strips_markup():
    content = "<p>" + " ".join(["word"] * 201) + "</p><img src='x.jpg'>"

    assert articles.read_time_minutes(content) == 2
    assert articles.read_time_minutes("<p>one</p><p>two</p>") == 1
    assert articles.read_time_minutes("") == 1


def test_read_time_counts_words_split_by_tags():
    content = "<p>" + "<br>".join(["word"] * 400) + "</p>"

    assert articles.read_time_minutes(content) == 2


def test_article_id_from_url():
    assert articles.article_id_from_url("blog-article.html?id=42") == "42"
    assert articles.article_id_from_url("https://ipfo.example/blog-article.html?x=1&id=a%20b") == "a b"
    assert articles.article_id_from_url("blog-article.html") is None
    assert articles.article_id_from_url("blog-article.html?id=") is None
