"""
Site-wide artifact generators.

Each generator is a pure function of a ``SiteAggregate`` returning the
serialized text of one file written at the output root.
"""

import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from email.utils import format_datetime
from xml.sax.saxutils import escape, quoteattr

from .errors import InvalidChangeFreq, MissingFieldError
from .metadata import field_or_default, parse_date, slugify
from .models import ArtifactKind, GeneratedArtifact, output_filename
from .template import render_template

logger = logging.getLogger('folio.artifacts')

CHANGEFREQ_VALUES = ('always', 'hourly', 'daily', 'weekly', 'monthly', 'yearly', 'never')
DEFAULT_CHANGEFREQ = 'weekly'

GENERATOR_NAME = 'Folio'

ROBOTS_PUBLIC = "User-agent: *\nAllow: /\n"
ROBOTS_SITEMAP = "\nSitemap: {{url}}\n"
ROBOTS_PRIVATE = "User-agent: *\nDisallow: /\n"

MANIFEST_DEFAULTS = {
    'start_url': '.',
    'display': 'standalone',
    'background_color': '#ffffff',
    'orientation': 'portrait-primary',
    'scope': '/',
}

SCHEME_PATTERN = re.compile(r'^[a-z][a-z0-9+.-]*://', re.IGNORECASE)


def absolute_url(base_url, path):
    """Join ``path`` onto ``base_url`` unless it is already absolute."""
    if not path or SCHEME_PATTERN.match(path) or not base_url:
        return path
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def page_url(page, base_url):
    permalink = page.metadata.get('permalink')
    return absolute_url(base_url, permalink or output_filename(page.source))


def _rfc822(value):
    parsed = parse_date(value)
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return format_datetime(parsed)


def format_sitemap_entry(loc, lastmod='', changefreq=DEFAULT_CHANGEFREQ):
    """Format a single sitemap ``<url>`` entry, validating ``changefreq``."""
    if changefreq not in CHANGEFREQ_VALUES:
        raise InvalidChangeFreq(changefreq, loc)
    lines = ['<url>', f'<loc>{escape(loc)}</loc>']
    if lastmod:
        lines.append(f'<lastmod>{escape(lastmod)}</lastmod>')
    lines.append(f'<changefreq>{changefreq}</changefreq>')
    lines.append('</url>')
    return '\n'.join(lines) + '\n'


def generate_sitemap(site):
    """One entry per page with a permalink; an invalid changefreq aborts."""
    base_url = site.site_metadata().get('base_url', '')
    sitemap_content = '''<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
'''
    for page in site.pages:
        permalink = page.metadata.get('permalink').strip()
        if not permalink:
            continue
        changefreq = page.metadata.get('changefreq', DEFAULT_CHANGEFREQ).strip() or DEFAULT_CHANGEFREQ
        lastmod = ''
        for key in ('last_build_date', 'date'):
            parsed = parse_date(page.metadata.get(key))
            if parsed is not None:
                lastmod = parsed.strftime('%Y-%m-%d')
                break
        sitemap_content += format_sitemap_entry(absolute_url(base_url, permalink), lastmod, changefreq)
    sitemap_content += '</urlset>\n'
    return sitemap_content


def _element(name, value):
    return f'<{name}>{escape(value)}</{name}>\n'


def generate_feed(site, build_date=None):
    """
    RSS 2.0 channel with one item per page.

    Channel fields missing from the site metadata are written empty.
    """
    meta = site.site_metadata()
    base_url = meta.get('base_url', '')
    title = meta.get('name') or meta.get('title', '')
    link = base_url or meta.get('permalink', '')
    build_date = build_date or datetime.now(timezone.utc)

    rss_content = '<?xml version="1.0" encoding="UTF-8"?>\n'
    rss_content += '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">\n<channel>\n'
    rss_content += _element('title', title)
    rss_content += _element('link', link)
    rss_content += _element('description', meta.get('description', ''))
    if meta.get('language'):
        rss_content += _element('language', meta['language'])
    if meta.get('category'):
        rss_content += _element('category', meta['category'])
    rss_content += _element('lastBuildDate', format_datetime(build_date))
    rss_content += _element('generator', GENERATOR_NAME)
    if link:
        feed_href = absolute_url(link, 'rss.xml')
        rss_content += f'<atom:link href={quoteattr(feed_href)} rel="self" type="application/rss+xml"/>\n'

    for page in site.pages:
        item_link = page_url(page, base_url)
        rss_content += '<item>\n'
        rss_content += _element('title', page.metadata.get('item_title') or page.metadata.title)
        rss_content += _element('link', item_link)
        rss_content += _element('description', page.metadata.get('item_description') or page.metadata.get('description'))
        rss_content += _element('guid', page.metadata.get('item_guid') or item_link)
        for key in ('item_pub_date', 'pub_date', 'date'):
            pub_date = _rfc822(page.metadata.get(key))
            if pub_date:
                rss_content += _element('pubDate', pub_date)
                break
        if page.metadata.get('category'):
            rss_content += _element('category', page.metadata['category'])
        if page.metadata.get('author'):
            rss_content += _element('author', page.metadata['author'])
        rss_content += '</item>\n'

    rss_content += '</channel>\n</rss>\n'
    return rss_content


def generate_manifest(site):
    """Web app manifest in a fixed key order."""
    meta = site.site_metadata()
    icons = []
    if meta.get('icon'):
        icons.append({
            'src': meta['icon'],
            'sizes': '512x512',
            'type': 'image/svg+xml',
        })
    manifest = {
        'name': field_or_default(meta, 'name'),
        'short_name': field_or_default(meta, 'short_name'),
        'start_url': meta.get('start_url') or MANIFEST_DEFAULTS['start_url'],
        'display': meta.get('display') or MANIFEST_DEFAULTS['display'],
        'background_color': meta.get('background_color') or MANIFEST_DEFAULTS['background_color'],
        'description': field_or_default(meta, 'description'),
        'icons': icons,
        'orientation': meta.get('orientation') or MANIFEST_DEFAULTS['orientation'],
        'scope': meta.get('scope') or MANIFEST_DEFAULTS['scope'],
        'theme_color': field_or_default(meta, 'theme_color'),
    }
    return json.dumps(manifest, indent=2, ensure_ascii=False) + '\n'


def generate_robots(site):
    """robots.txt: allow everything and point at the sitemap, or disallow everything."""
    if site.config.robots == 'private':
        return ROBOTS_PRIVATE
    meta = site.site_metadata()
    permalink = meta.get('base_url') or meta.get('permalink', '')
    if not permalink:
        return ROBOTS_PUBLIC
    return ROBOTS_PUBLIC + render_template(ROBOTS_SITEMAP, {'url': absolute_url(permalink, 'sitemap.xml')})


def generate_attribution(site):
    """humans.txt; every field is optional and omitted when blank."""
    meta = site.site_metadata()

    def line(label, key):
        value = field_or_default(meta, key)
        return f"\t{label}: {value}\n" if value else ''

    s = "/* TEAM */\n"
    s += line('Name', 'author')
    s += line('Website', 'author_website')
    s += line('Twitter', 'author_twitter')
    s += line('Location', 'author_location')
    s += "\n/* THANKS */\n"
    s += line('Thanks', 'thanks')
    s += "\n/* SITE */\n"
    s += line('Last update', 'site_last_updated')
    s += line('Standards', 'site_standards')
    s += line('Components', 'site_components')
    s += line('Software', 'site_software')
    return s


def bare_domain(value):
    domain = SCHEME_PATTERN.sub('', value.strip())
    return domain.split('/', 1)[0]


def generate_domain_alias(site):
    """CNAME file holding the bare domain; empty when no ``cname`` is set."""
    domain = bare_domain(site.site_metadata().get('cname', ''))
    if not domain:
        if site.config.require_cname:
            raise MissingFieldError('cname', 'CNAME')
        return ''
    return f"{domain}\n"


def split_tags(value):
    return [tag.strip() for tag in (value or '').split(',') if tag.strip()]


def collect_tags(site):
    """
    Group pages by the comma-separated ``tags`` field.

    Returns {tag: [entry, ...]} where each entry holds the page's title,
    date, description and permalink. Tags match case-insensitively and are
    labelled by their first spelling; pages keep site order.
    """
    base_url = site.site_metadata().get('base_url', '')
    labels = {}
    tags = {}
    for page in site.pages:
        seen = set()
        for tag in split_tags(page.metadata.get('tags')):
            key = tag.lower()
            if key in seen:
                continue
            seen.add(key)
            label = labels.setdefault(key, tag)
            tags.setdefault(label, []).append({
                'title': page.metadata.title,
                'date': page.metadata.get('date'),
                'description': page.metadata.get('description'),
                'permalink': page_url(page, base_url),
            })
    return tags


def format_tags_html(tags):
    """Heading with the total count, then one list per tag in alphabetical order."""
    total = sum(len(entries) for entries in tags.values())
    html = f'<h2 class="featured-tags" id="h2-featured-tags" tabindex="0">Featured Tags ({total})</h2>\n'
    for label in sorted(tags, key=str.lower):
        entries = tags[label]
        anchor = slugify(label) or 'tag'
        html += (
            f'<h3 class="{anchor}" id="h3-{anchor}" tabindex="0">'
            f'{escape(label)} ({len(entries)} Posts)</h3>\n<ul>\n'
        )
        for entry in entries:
            link = f'<a href={quoteattr(entry["permalink"])}>{escape(entry["title"])}</a>'
            prefix = f'{escape(entry["date"])}: ' if entry['date'] else ''
            suffix = f' - <strong>{escape(entry["description"])}</strong>' if entry['description'] else ''
            html += f'<li>{prefix}{link}{suffix}</li>\n'
        html += '</ul>\n'
    return html


def generate_tags(site):
    """tags.html listing the pages under each tag; empty when no page is tagged."""
    tags = collect_tags(site)
    if not tags:
        return ''
    meta = site.site_metadata()
    lang = meta.get('language') or site.config.lang
    title = f"Tags - {meta['name']}" if meta.get('name') else 'Tags'
    return (
        '<!DOCTYPE html>\n'
        f'<html lang={quoteattr(lang)}>\n'
        '<head>\n<meta charset="utf-8">\n'
        f'<title>{escape(title)}</title>\n'
        '</head>\n<body>\n'
        f'<h1>{escape(title)}</h1>\n'
        f'{format_tags_html(tags)}'
        '</body>\n</html>\n'
    )


GENERATORS = (
    (ArtifactKind.SITEMAP, generate_sitemap),
    (ArtifactKind.FEED, generate_feed),
    (ArtifactKind.MANIFEST, generate_manifest),
    (ArtifactKind.ROBOTS, generate_robots),
    (ArtifactKind.ATTRIBUTION, generate_attribution),
    (ArtifactKind.DOMAIN_ALIAS, generate_domain_alias),
    (ArtifactKind.TAGS, generate_tags),
)


def generate_artifacts(site, max_workers=None):
    """
    Run every generator over ``site`` concurrently.

    Results come back in ``GENERATORS`` order. The first generator error is
    re-raised once all generators have finished.
    """
    with ThreadPoolExecutor(max_workers=max_workers or len(GENERATORS)) as executor:
        futures = [(kind, executor.submit(generator, site)) for kind, generator in GENERATORS]
        artifacts = []
        for kind, future in futures:
            text = future.result()
            logger.debug(f"Generated {kind.filename} ({len(text)} bytes)")
            artifacts.append(GeneratedArtifact(kind=kind, text=text))
    return artifacts
