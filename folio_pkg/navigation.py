"""
Site navigation menu built from every page's title.
"""

import html
import os

EXCLUDED_PAGES = {'index', '404', 'offline'}


def generate_navigation(pages):
    """
    Build a ``<ul>`` linking each page, sorted by source filename.

    ``pages`` is an iterable of (source filename, title) pairs. The index,
    404 and offline pages are left out of the menu.
    """
    items = []
    for filename, title in sorted(pages, key=lambda page: page[0].lower()):
        stem = os.path.splitext(os.path.basename(filename))[0]
        if stem.lower() in EXCLUDED_PAGES:
            continue
        label = html.escape(title or stem.replace('-', ' ').title())
        items.append(
            f'<li><a href="/{html.escape(stem)}.html" title="{label}">{label}</a></li>'
        )
    if not items:
        return ''
    return '<ul class="nav">\n' + '\n'.join(items) + '\n</ul>'
