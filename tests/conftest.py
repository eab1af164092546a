"""Test configuration and fixtures for Folio tests."""

import pytest
import tempfile
import shutil
import os
import logging
from pathlib import Path

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from folio_pkg.core import Folio

INDEX_PAGE = """---
title: My Site
description: A site about things
keywords: home, things
permalink: https://example.com/
date: 2023-01-15
author: Jane Doe
cname: example.com
language: en
---

# Welcome

This is the home page.
"""

ABOUT_PAGE = """+++
title = "About"
description = "About us"
permalink = "https://example.com/about.html"
changefreq = "monthly"
tags = ["news", "team"]
+++

## Our story

We build things.
"""

CONTACT_PAGE = """{
  "title": "Contact",
  "description": "Get in touch",
  "layout": "post"
}
Write to us at contact@example.com.
"""


@pytest.fixture(autouse=True)
def reset_folio_logger():
    """Detach the handlers a Folio instance installs so each test logs to its own directory."""
    yield
    logger = logging.getLogger('folio')
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def mock_content_dir(temp_dir):
    """Create a content directory with one page in each metadata format."""
    content_dir = Path(temp_dir) / 'content'
    content_dir.mkdir()
    (content_dir / 'index.md').write_text(INDEX_PAGE, encoding='utf-8')
    (content_dir / 'about.md').write_text(ABOUT_PAGE, encoding='utf-8')
    (content_dir / 'contact.md').write_text(CONTACT_PAGE, encoding='utf-8')
    return str(content_dir)


@pytest.fixture
def mock_templates_dir(temp_dir):
    """Create a templates directory with a default and a post skeleton plus assets."""
    templates_dir = Path(temp_dir) / 'templates'
    templates_dir.mkdir()

    (templates_dir / 'template.html').write_text("""<!DOCTYPE html>
<html lang="{{lang}}">
<head>
<title>{{title}}</title>
{{meta}}
</head>
<body>
<nav>{{navigation}}</nav>
<h1>{{title}}</h1>
<h2>{{description}}</h2>
{{content}}
</body>
</html>""", encoding='utf-8')

    (templates_dir / 'post.html').write_text(
        "<article data-layout=\"post\"><h1>{{title}}</h1>{{content}}</article>",
        encoding='utf-8',
    )

    css_dir = templates_dir / 'css'
    css_dir.mkdir()
    (css_dir / 'style.css').write_text("body {\n    color: #ffffff;\n}\n", encoding='utf-8')
    (templates_dir / 'script.js').write_text("function hello() {\n    return 1;\n}\n", encoding='utf-8')

    return str(templates_dir)


@pytest.fixture
def mock_output_dir(temp_dir):
    """Path of the output directory; not created up front."""
    return os.path.join(temp_dir, 'public')


@pytest.fixture
def log_dir(temp_dir):
    """Directory for build log files."""
    return os.path.join(temp_dir, 'logs')


@pytest.fixture
def make_folio(mock_content_dir, mock_templates_dir, mock_output_dir, log_dir):
    """Factory for Folio instances bound to the fixture directories."""
    def factory(**kwargs):
        options = {
            'content_dir': mock_content_dir,
            'templates_dir': mock_templates_dir,
            'output_dir': mock_output_dir,
            'log_dir': log_dir,
        }
        options.update(kwargs)
        return Folio(**options)
    return factory
