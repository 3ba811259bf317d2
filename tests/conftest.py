import textwrap

import pytest

from ipfo_blog import db
from ipfo_blog.models import Post

SAMPLE_CSV = textwrap.dedent(
    """\
    ID,Title,Excerpt,Content,Category,Author,Date,Image,Notes
    1,Old news,Old excerpt,<p>Old body</p>,News,Jane Doe,2024-01-01,,internal
    2,Policy update,Policy excerpt,<p>Policy body</p>,Policy,,2024-06-01,https://img.example.com/2.jpg,
    ,Missing id,Nobody sees this,,News,,2024-03-01,,
    ,,,,,,,,

    3,Fresh news,Fresh excerpt,<p>Fresh body</p>,News,Sam Lee,2024-03-01,,
    """
)


def make_post(post_id: str, category: str = "News", title: str = "", **overrides) -> Post:
    values = {
        "id": post_id,
        "title": title or f"Title {post_id}",
        "excerpt": f"Excerpt {post_id}",
        "content": f"<p>Body {post_id}</p>",
        "category": category,
        "author": "IPFO Team",
        "date": "2024-01-01",
        "image": "https://img.example.com/x.jpg",
        "link": f"blog-article.html?id={post_id}",
    }
    values.update(overrides)
    return Post(**values)


@pytest.fixture
def session_factory():
    """In-memory SQLite session factory for cache tests."""
    engine = db.init_engine("sqlite://")
    yield db.get_session_factory(engine)
    engine.dispose()


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV
