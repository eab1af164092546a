"""
Folio - compile a directory of content files into a static site.

Each content file opens with a metadata block (YAML, TOML or JSON) followed
by a Markdown body. Folio renders every file into a page skeleton and
derives the site-wide files from the pages' metadata: sitemap.xml, rss.xml,
manifest.json, robots.txt, humans.txt and CNAME.
"""

__version__ = "1.0.0"

from .core import Folio, FileProcessor

__all__ = ['Folio', 'FileProcessor']
