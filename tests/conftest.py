import pytest

from stackscraper import AutoScraper, ScraperSettings


TWO_DIVS = '<html><body><div class="x">A</div><div class="x">B</div></body></html>'

PRODUCT_PAGE = """
<html>
  <body class="page">
    <h1 class="title">Widget</h1>
    <span class="price">$5</span>
    <ul class="items">
      <li class="item">One</li>
      <li class="item">Two</li>
    </ul>
    <a class="more" href="/widgets/2">Next widget</a>
    <img class="logo" src="/logo.png" alt="Company logo">
  </body>
</html>
"""


@pytest.fixture
def settings():
    return ScraperSettings(user_agents=["TestAgent/1.0"], request_timeout=5.0)


@pytest.fixture
def scraper(settings):
    return AutoScraper(settings=settings)


@pytest.fixture
def two_divs():
    return TWO_DIVS


@pytest.fixture
def product_page():
    return PRODUCT_PAGE
