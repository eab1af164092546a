"""Tests for site-wide artifact generators."""

import pytest
import os
import json
from datetime import datetime, timezone

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from folio_pkg.artifacts import (
    absolute_url,
    bare_domain,
    format_sitemap_entry,
    generate_artifacts,
    generate_attribution,
    generate_domain_alias,
    generate_feed,
    generate_manifest,
    generate_robots,
    generate_sitemap,
    generate_tags,
)
from folio_pkg.errors import InvalidChangeFreq, MissingFieldError
from folio_pkg.metadata import normalize
from folio_pkg.models import ArtifactKind, PageArtifact, SiteAggregate, SiteConfig

BUILD_DATE = datetime(2023, 1, 1, tzinfo=timezone.utc)


def make_page(source, **fields):
    return PageArtifact(source=source, metadata=normalize(fields, source), body='', html='')


def make_site(*pages, **config):
    return SiteAggregate.build(pages, SiteConfig(**config))


@pytest.fixture
def site():
    return make_site(
        make_page('index.md', title='My Site', description='Things', permalink='https://example.com/',
                  date='2023-01-15', author='Jane Doe', cname='example.com', language='en'),
        make_page('about.md', title='About', description='About us',
                  permalink='https://example.com/about.html', changefreq='monthly'),
        make_page('draft.md', title='Draft'),
    )


class TestSiteAggregate:
    """Test cases for site-level metadata."""

    def test_pages_sorted_by_filename(self, site):
        """Test that pages are ordered by source filename."""
        assert [page.stem for page in site.pages] == ['about', 'draft', 'index']

    def test_index_page_supplies_site_metadata(self, site):
        """Test that the index page provides the site fields."""
        meta = site.site_metadata()
        assert meta['title'] == 'My Site'
        assert meta['name'] == 'My Site'

    def test_config_overrides(self):
        """Test that configuration wins over page metadata."""
        site = make_site(make_page('index.md', title='Home', cname='old.com'),
                         site_name='Configured', domain='new.com', base_url='https://new.com')
        meta = site.site_metadata()
        assert meta['name'] == 'Configured'
        assert meta['cname'] == 'new.com'
        assert meta['base_url'] == 'https://new.com'
        assert meta['language'] == 'en'


class TestSitemap:
    """Test cases for sitemap generation."""

    def test_entry_format(self):
        """Test a single entry."""
        assert format_sitemap_entry('https://example.com/', '2023-01-15', 'always') == (
            "<url>\n<loc>https://example.com/</loc>\n<lastmod>2023-01-15</lastmod>\n"
            "<changefreq>always</changefreq>\n</url>\n"
        )

    def test_invalid_changefreq(self):
        """Test that values outside the enumeration are rejected."""
        with pytest.raises(InvalidChangeFreq) as exc_info:
            format_sitemap_entry('https://example.com/', changefreq='sometimes')
        assert exc_info.value.value == 'sometimes'

    def test_pages_without_permalink_are_skipped(self, site):
        """Test that only pages with a permalink get an entry."""
        sitemap = generate_sitemap(site)
        assert sitemap.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        assert sitemap.count('<url>') == 2
        assert '<loc>https://example.com/about.html</loc>' in sitemap
        assert '<changefreq>monthly</changefreq>' in sitemap
        assert '<lastmod>2023-01-15</lastmod>' in sitemap
        assert 'draft' not in sitemap

    def test_invalid_changefreq_aborts_sitemap(self):
        """Test that one bad page fails the whole sitemap."""
        site = make_site(make_page('a.md', title='A', permalink='/a', changefreq='sometimes'))
        with pytest.raises(InvalidChangeFreq):
            generate_sitemap(site)

    def test_relative_permalinks_use_base_url(self):
        """Test that relative permalinks are made absolute."""
        site = make_site(make_page('a.md', title='A', permalink='/a.html'), base_url='https://example.com/')
        assert '<loc>https://example.com/a.html</loc>' in generate_sitemap(site)


class TestFeed:
    """Test cases for the RSS feed."""

    def test_channel(self, site):
        """Test channel fields."""
        rss = generate_feed(site, build_date=BUILD_DATE)
        assert '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">' in rss
        assert '<title>My Site</title>' in rss
        assert '<link>https://example.com/</link>' in rss
        assert '<language>en</language>' in rss
        assert '<lastBuildDate>Sun, 01 Jan 2023 00:00:00 +0000</lastBuildDate>' in rss
        assert '<generator>Folio</generator>' in rss
        assert 'href="https://example.com/rss.xml"' in rss

    def test_items(self, site):
        """Test one item per page with dates in RFC 822."""
        rss = generate_feed(site, build_date=BUILD_DATE)
        assert rss.count('<item>') == 3
        assert '<pubDate>Sun, 15 Jan 2023 00:00:00 +0000</pubDate>' in rss
        assert '<author>Jane Doe</author>' in rss
        assert '<guid>https://example.com/about.html</guid>' in rss
        assert '<link>draft.html</link>' in rss

    def test_escaping(self):
        """Test that text is XML-escaped."""
        site = make_site(make_page('index.md', title='Tom & Jerry', description='<b>bold</b>'))
        rss = generate_feed(site, build_date=BUILD_DATE)
        assert '<title>Tom &amp; Jerry</title>' in rss
        assert '&lt;b&gt;bold&lt;/b&gt;' in rss

    def test_missing_channel_title(self):
        """Test that a feed without any site name has an empty channel title."""
        rss = generate_feed(make_site(), build_date=BUILD_DATE)
        assert '<channel>\n<title></title>\n<link></link>\n' in rss
        assert '<item>' not in rss
        assert 'atom:link' not in rss


class TestManifest:
    """Test cases for manifest.json."""

    def test_defaults(self, site):
        """Test fields and defaults."""
        manifest = json.loads(generate_manifest(site))
        assert list(manifest) == [
            'name', 'short_name', 'start_url', 'display', 'background_color',
            'description', 'icons', 'orientation', 'scope', 'theme_color',
        ]
        assert manifest['name'] == 'My Site'
        assert manifest['start_url'] == '.'
        assert manifest['display'] == 'standalone'
        assert manifest['icons'] == []

    def test_icon(self):
        """Test the icon entry."""
        site = make_site(make_page('index.md', title='Home', icon='/icon.svg', theme_color='#000'))
        manifest = json.loads(generate_manifest(site))
        assert manifest['icons'] == [{'src': '/icon.svg', 'sizes': '512x512', 'type': 'image/svg+xml'}]
        assert manifest['theme_color'] == '#000'


class TestRobots:
    """Test cases for robots.txt."""

    def test_public_with_sitemap(self):
        """Test the public mode with a sitemap reference."""
        site = make_site(make_page('index.md', title='Home'), base_url='https://example.com')
        assert generate_robots(site) == (
            "User-agent: *\nAllow: /\n\nSitemap: https://example.com/sitemap.xml\n"
        )

    def test_public_without_url(self):
        """Test the public mode when no URL is known."""
        assert generate_robots(make_site(make_page('index.md', title='Home'))) == "User-agent: *\nAllow: /\n"

    def test_private(self, site):
        """Test the private mode."""
        private = SiteAggregate(pages=site.pages, config=SiteConfig(robots='private'))
        assert generate_robots(private) == "User-agent: *\nDisallow: /\n"


class TestAttribution:
    """Test cases for humans.txt."""

    def test_all_fields_optional(self):
        """Test that missing fields are simply omitted."""
        site = make_site(make_page('index.md', title='Home', author='Jane', thanks='Everyone'))
        assert generate_attribution(site) == (
            "/* TEAM */\n\tName: Jane\n\n/* THANKS */\n\tThanks: Everyone\n\n/* SITE */\n"
        )

    def test_site_section(self):
        """Test the site section fields."""
        site = make_site(make_page('index.md', title='Home', site_software='Folio', site_standards='HTML5'))
        humans = generate_attribution(site)
        assert "\tStandards: HTML5\n" in humans
        assert "\tSoftware: Folio\n" in humans


class TestDomainAlias:
    """Test cases for the CNAME file."""

    def test_bare_domain(self):
        """Test scheme and path stripping."""
        assert bare_domain('https://www.example.com/blog') == 'www.example.com'
        assert bare_domain(' example.com ') == 'example.com'

    def test_from_metadata(self, site):
        """Test the domain from the index page."""
        assert generate_domain_alias(site) == "example.com\n"

    def test_missing_is_empty(self):
        """Test that a missing cname is not an error."""
        assert generate_domain_alias(make_site(make_page('index.md', title='Home'))) == ''

    def test_missing_when_required(self):
        """Test that a required cname must be present."""
        site = make_site(make_page('index.md', title='Home'), require_cname=True)
        with pytest.raises(MissingFieldError) as exc_info:
            generate_domain_alias(site)
        assert exc_info.value.field == 'cname'


class TestTags:
    """Test cases for the tags index page."""

    def test_pages_grouped_by_tag(self):
        """Test grouping, ordering and counts."""
        site = make_site(
            make_page('index.md', title='Home', tags='news'),
            make_page('b.md', title='Beta', date='2023-02-01', description='Second',
                      permalink='/b.html', tags='Python, news'),
            make_page('a.md', title='Alpha', tags='python,  , python'),
            base_url='https://example.com',
        )
        html = generate_tags(site)
        assert '<html lang="en">' in html
        assert '<title>Tags - Home</title>' in html
        assert '<h2 class="featured-tags" id="h2-featured-tags" tabindex="0">Featured Tags (4)</h2>' in html
        assert html.index('id="h3-news"') < html.index('id="h3-python"')
        assert '<h3 class="news" id="h3-news" tabindex="0">news (2 Posts)</h3>' in html
        assert '<h3 class="python" id="h3-python" tabindex="0">python (2 Posts)</h3>' in html
        assert (
            '<li><a href="https://example.com/a.html">Alpha</a></li>\n'
            '<li>2023-02-01: <a href="https://example.com/b.html">Beta</a> - <strong>Second</strong></li>\n'
        ) in html

    def test_escaping_and_unicode_anchor(self):
        """Test that labels and titles are escaped and anchors keep accented letters."""
        site = make_site(make_page('index.md', title='Tom & Jerry', tags='Café <b>'))
        html = generate_tags(site)
        assert '<title>Tags - Tom &amp; Jerry</title>' in html
        assert 'id="h3-café-b"' in html
        assert 'Café &lt;b&gt; (1 Posts)' in html
        assert '<a href="index.html">Tom &amp; Jerry</a>' in html

    def test_no_tags(self, site):
        """Test that an untagged site produces no page."""
        assert generate_tags(site) == ''
        assert generate_tags(make_site()) == ''


class TestGenerateArtifacts:
    """Test cases for running every generator."""

    def test_all_artifacts_in_order(self, site):
        """Test that every artifact kind is produced in a fixed order."""
        artifacts = generate_artifacts(site)
        assert [artifact.kind for artifact in artifacts] == list(ArtifactKind)
        assert [artifact.filename for artifact in artifacts] == [
            'sitemap.xml', 'rss.xml', 'manifest.json', 'robots.txt', 'humans.txt', 'CNAME', 'tags.html',
        ]

    def test_generator_error_propagates(self):
        """Test that a failing generator fails the batch."""
        site = make_site(make_page('a.md', title='A', permalink='/a', changefreq='sometimes'))
        with pytest.raises(InvalidChangeFreq):
            generate_artifacts(site)


class TestAbsoluteUrl:
    """Test cases for URL joining."""

    def test_join(self):
        assert absolute_url('https://example.com/', '/a.html') == 'https://example.com/a.html'
        assert absolute_url('https://example.com', 'https://other.com/x') == 'https://other.com/x'
        assert absolute_url('', '/a.html') == '/a.html'
