"""Test configuration and fixtures for Neustadt tests."""

import pytest
import tempfile
import shutil
from pathlib import Path

from neustadt_pkg.pipeline import ContentRecord


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def mock_source_dir(temp_dir):
    """Create a mock source directory with essays, reviews, a draft and a stylesheet."""
    source_dir = Path(temp_dir) / 'src'
    (source_dir / 'essays').mkdir(parents=True)
    (source_dir / 'reviews').mkdir(parents=True)
    (source_dir / 'css').mkdir(parents=True)

    (source_dir / 'index.md').write_text("""---
title: Home
layout: index.html
---

Welcome to the site.
""")

    (source_dir / 'essays' / 'first.md').write_text("""---
title: First Essay
date: 2021-01-01
---

The first essay.
""")

    (source_dir / 'essays' / 'second.md').write_text("""---
title: Second Essay
date: 2021-06-01
---

The second essay, with code.

```python
def answer():
    return 42
```
""")

    (source_dir / 'reviews' / 'old-review.md').write_text("""---
title: Old Review
date: 2020-01-01
---

An old review.
""")

    (source_dir / 'essays' / 'secret.md').write_text("""---
title: Secret Draft
date: 2022-01-01
draft: true
---

Not ready yet.
""")

    (source_dir / 'css' / 'style.css').write_text("body {\n    color: black;\n}\n")

    return str(source_dir)


@pytest.fixture
def mock_layouts_dir(temp_dir):
    """Create a mock layouts directory with partials."""
    layouts_dir = Path(temp_dir) / 'layout'
    (layouts_dir / 'partials').mkdir(parents=True)

    (layouts_dir / 'partials' / 'header.html').write_text(
        "<header>{{ site.name }}</header>\n")
    (layouts_dir / 'partials' / 'footer.html').write_text(
        "<footer>{{ site.author }}</footer>\n")

    (layouts_dir / 'essay.html').write_text("""{% include partials.header %}
<article>
<h1>{{ title }}</h1>
<time>{{ date | moment }}</time>
{{ contents }}
</article>
{% include partials.footer %}""")

    (layouts_dir / 'index.html').write_text("""{% include partials.header %}
{{ contents }}
<ul class="publications">
{% call(post) each_upto(collections.publications, 10, inverse='<li>Nothing yet.</li>') %}
<li data-date="{{ post.date | moment('%Y-%m-%d') }}"><a href="/{{ post.path }}/">{{ post.title }}</a></li>
{% endcall %}
</ul>
{% include partials.footer %}""")

    return str(layouts_dir)


@pytest.fixture
def mock_destination_dir(temp_dir):
    """Path of the (not yet created) destination directory."""
    return str(Path(temp_dir) / 'public')


@pytest.fixture
def site_settings(mock_source_dir, mock_layouts_dir, mock_destination_dir):
    """Settings for a build of the mock site without log files."""
    return {
        'source': mock_source_dir,
        'destination': mock_destination_dir,
        'layouts': mock_layouts_dir,
        'log_dir': None,
    }


@pytest.fixture
def make_record():
    """Factory for content records."""
    def _make(path, text='', **metadata):
        return ContentRecord(path, path, text.encode('utf-8'), metadata)
    return _make
