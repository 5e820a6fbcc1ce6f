import pytest

from environment import DOMEnvironment


pytest_plugins = ("pytest_dom", "pytester")

SAMPLE_HTML = """\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>  Sample
    page </title>
</head>
<body class="home">
  <div id="main" class="container wide">
    <p class="intro">Hello <b>world</b></p>
    <p>Second</p>
    <input name="query" type="text">
  </div>
  <!-- footer -->
  <ul id="list"><li>one</li><li class="active">two</li><li>three</li></ul>
</body>
</html>
"""


@pytest.fixture
def environment():
    with DOMEnvironment(SAMPLE_HTML, url="https://example.org/page?q=1#top") as environment:
        yield environment


@pytest.fixture
def document(environment):
    return environment.window.document
