#!/usr/bin/env python3
"""
Command-line interface for Folio - static site generator.
"""

import os
import sys
import argparse
import shutil
from typing import List, Optional

from . import __version__
from .core import Folio
from .errors import FolioError
from .locales import available_languages, load_locale
from .server import serve
from .settings import FolioSettings
from .template import DEFAULT_SKELETON, PACKAGE_TEMPLATES

SAMPLE_INDEX = """---
title: Welcome to Folio
description: A static site compiled from plain content files
keywords: folio, static site, markdown
permalink: /
date: 2026-01-01
author: Site Author
cname: example.com
---

## Getting started

Every file in `content/` becomes one page. The block at the top of this
file holds the page's metadata; everything below it is Markdown.

- Edit `templates/template.html` to change the page skeleton
- Run `folio` to build the site into `public/`
- Run `folio --serve` to preview it
"""

SAMPLE_404 = """+++
title = "Page not found"
description = "The page you requested does not exist"
robots = "noindex"
+++

Return to the [home page](/).
"""


def create_starter_structure() -> None:
    """Create a starter content tree and copy the default skeleton."""
    current_dir = os.getcwd()

    for directory in ['content', 'templates']:
        dir_path = os.path.join(current_dir, directory)
        if os.path.exists(dir_path):
            print(f"Directory already exists: {directory}")
        else:
            os.makedirs(dir_path, exist_ok=True)
            print(f"Created directory: {directory}")

    skeleton_dest = os.path.join(current_dir, 'templates', DEFAULT_SKELETON)
    if os.path.exists(skeleton_dest):
        print(f"Template already exists: templates/{DEFAULT_SKELETON}")
    else:
        shutil.copy2(os.path.join(PACKAGE_TEMPLATES, DEFAULT_SKELETON), skeleton_dest)
        print(f"Created template: templates/{DEFAULT_SKELETON}")

    for filename, content in (('index.md', SAMPLE_INDEX), ('404.md', SAMPLE_404)):
        path = os.path.join(current_dir, 'content', filename)
        if os.path.exists(path):
            print(f"Sample content already exists: content/{filename}")
        else:
            with open(path, 'w', encoding='utf-8') as f:
                f.write(content)
            print(f"Created sample content: content/{filename}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='folio', description='Folio - Static Site Generator')
    parser.add_argument('--content', type=str,
                        help='Content directory containing the source files')
    parser.add_argument('--templates', type=str,
                        help='Templates directory holding template.html and assets')
    parser.add_argument('--output', type=str,
                        help='Output directory (replaced on every build)')
    parser.add_argument('--site-name', type=str, help='Site name for the feed and manifest')
    parser.add_argument('--domain', type=str, help='Bare domain written to CNAME')
    parser.add_argument('--base-url', type=str,
                        help='Absolute site URL used for sitemap and feed links')
    parser.add_argument('--lang', type=str, choices=available_languages(),
                        help='Language for messages and the default lang attribute')
    parser.add_argument('--robots', type=str, choices=['public', 'private'],
                        help='robots.txt configuration')
    parser.add_argument('--renderer', type=str, choices=['markdown', 'plain'],
                        help='Default body renderer')
    parser.add_argument('--css', type=str, help='Default stylesheet reference')
    parser.add_argument('--workers', type=int, help='Worker processes for large sites')
    parser.add_argument('--minify', action='store_true', default=None,
                        help='Write minified copies of CSS and JS assets')
    parser.add_argument('--strict', action='store_true', default=None,
                        help='Fail on malformed metadata blocks instead of treating them as body text')
    parser.add_argument('--require-cname', action='store_true', default=None,
                        help='Fail when no cname/domain is configured')
    parser.add_argument('--serve', nargs='?', const='127.0.0.1:8000', metavar='HOST:PORT',
                        help='Serve the output directory after building')
    parser.add_argument('--init', type=str, choices=['yml', 'yaml', 'json'],
                        help='Create a sample configuration file and starter tree')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    # Handle init command
    if args.init:
        settings_loader = FolioSettings()
        config_path = settings_loader.create_sample_config(args.init)
        print(f"Created sample configuration file: {config_path}")
        print("\nCreating starter project structure...")
        create_starter_structure()
        print("\nEdit the content and templates, then run 'folio' to build your site.")
        return

    # Load settings from configuration file
    settings_loader = FolioSettings()
    settings_loader.load_settings()

    args_dict = {k: v for k, v in vars(args).items() if v is not None and k != 'init'}

    try:
        final_settings = settings_loader.validate(settings_loader.merge_with_args(args_dict))
        folio_kwargs = settings_loader.folio_kwargs(final_settings)
        locale = load_locale(final_settings['lang'])
        generator = Folio(locale=locale, **folio_kwargs)
        generator.build()
    except (FolioError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    address = final_settings['serve']
    if address:
        serve(folio_kwargs['output_dir'], None if address is True else str(address), locale=locale)


if __name__ == '__main__':
    main()
