"""
Pytest configuration and fixtures for the episode monitor tests.
"""
import os
import sys

# Add project root to path for imports
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

import pytest

from utils.errors import FetchExhausted
from utils.persistence_gateway import InMemoryGateway, SqliteGateway
from utils.request_handler import RequestConfig


BASE_URL = 'https://toonstream.love/'
EPISODE_URL = 'https://toonstream.love/episode/naruto-shippuden-1x5/'
SERIES_URL = 'https://toonstream.love/series/naruto-shippuden/'


class FakeRequestHandler:
    """Stand-in for RequestHandler that serves canned pages by URL."""

    def __init__(self, pages=None, base_url=BASE_URL):
        self.pages = dict(pages or {})
        self.config = RequestConfig(base_url=base_url, retry_delay=0)
        self.calls = []

    def fetch_html(self, url, max_retries=None):
        self.calls.append(url)
        if url not in self.pages:
            raise FetchExhausted(url, 1, Exception('404 Not Found'))
        return self.pages[url]


@pytest.fixture
def memory_gateway():
    """Empty in-memory persistence gateway."""
    return InMemoryGateway()


@pytest.fixture
def sqlite_gateway(tmp_path):
    """SQLite gateway backed by a temporary file."""
    gateway = SqliteGateway(str(tmp_path / 'data' / 'episodes.db'))
    yield gateway
    gateway.close()


@pytest.fixture(params=['memory', 'sqlite'])
def gateway(request, tmp_path):
    """Run a test against every local gateway backend."""
    if request.param == 'memory':
        yield InMemoryGateway()
    else:
        sqlite = SqliteGateway(str(tmp_path / 'episodes.db'))
        yield sqlite
        sqlite.close()


@pytest.fixture
def sample_homepage_html():
    """Return sample homepage HTML for testing."""
    return '''
    <html>
    <head><title>ToonStream</title></head>
    <body>
        <nav>
            <a href="/">Home</a>
            <a href="/series/naruto/">Naruto</a>
            <a href="javascript:void(0)">Menu</a>
        </nav>
        <section id="latest-episodes">
            <header><h2>Latest Episodes</h2></header>
            <ul>
                <li>
                    <img data-src="/wp-content/uploads/naruto-1x5.jpg" alt="">
                    <a href="/episode/naruto-1x5/" title="Naruto 1x5">Naruto</a>
                </li>
                <li>
                    <a href="https://toonstream.love/episode/demon-slayer-2x5/">
                        <img src="https://toonstream.love/img/ds.jpg"> Demon   Slayer 2x5
                    </a>
                </li>
                <li><a href="/episode/naruto-1x5/">Naruto again</a></li>
                <li><a href="/episode/one-piece-3x07/"></a></li>
            </ul>
        </section>
        <div class="widget">
            <h3 class="widget-title">Trending</h3>
            <a href="/series/one-piece/">One Piece</a>
            <a href="/watch/random-movie/">Random</a>
        </div>
        <a href="https://other-site.com/episode/foo-1x1/">Off site</a>
        <a href="/movies/some-movie/">Movie</a>
    </body>
    </html>
    '''


@pytest.fixture
def sample_episode_html():
    """Return sample episode page HTML with breadcrumbs and three embeds."""
    return '''
    <html>
    <head>
        <title>Naruto Shippuden 1x5 - ToonStream</title>
        <meta property="og:title" content="Naruto Shippuden (Hindi Dub) - Episode 5 | ToonStream">
        <meta property="og:image" content="https://toonstream.love/og/naruto.jpg">
    </head>
    <body>
        <nav class="breadcrumb">
            <a href="/">Home</a>
            <a href="/series/naruto-shippuden/">Naruto Shippuden (Hindi Dub)</a>
            <span>Episode 5</span>
        </nav>
        <h1 class="entry-title">Naruto Shippuden 1x5</h1>
        <div class="video-options"><img data-src="/img/ep5.jpg"></div>
        <div id="options-1"><iframe src="https://player.one/embed/abc"></iframe></div>
        <div id="options-2"><iframe data-src="//player.two/e/xyz"></iframe></div>
        <div id="options-3"></div>
        <iframe src="https://player.one/embed/abc"></iframe>
        <iframe src="https://trailer.example/t"></iframe>
    </body>
    </html>
    '''


@pytest.fixture
def sample_episode_html_no_breadcrumb():
    """Return an episode page without breadcrumb navigation."""
    return '''
    <html>
    <head>
        <meta property="og:title" content="Kimetsu no Yaiba - Episode 5">
        <meta property="og:image" content="/og/ds.jpg">
    </head>
    <body>
        <div class="post-thumbnail"><img src="/thumbs/ds-2x5.jpg"></div>
        <div id="options-1"><iframe src="https://player.one/embed/ds"></iframe></div>
    </body>
    </html>
    '''


@pytest.fixture
def sample_series_html():
    """Return sample series landing page HTML."""
    return '''
    <html>
    <head>
        <meta property="og:description" content="A ninja   story.">
        <meta property="og:image" content="https://toonstream.love/posters/naruto.jpg">
    </head>
    <body>
        <h1 class="entry-title">Naruto Shippuden</h1>
        <span class="year">Released 2007</span>
        <div class="genres">
            <a href="/genre/action/">Action</a>
            <a href="/genre/adventure/">Adventure</a>
        </div>
        <a rel="tag" href="/genre/action/">Action</a>
        <div class="post-thumbnail"><img src="/posters/naruto-small.jpg"></div>
    </body>
    </html>
    '''


@pytest.fixture
def fake_handler_factory():
    """Build a FakeRequestHandler from a {url: html} mapping."""
    return FakeRequestHandler
