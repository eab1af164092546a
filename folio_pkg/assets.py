"""
Static assets shipped alongside the page skeletons.
"""

import logging
import os
import shutil

import csscompressor
import rjsmin

from .errors import SiteIOError

logger = logging.getLogger('folio.assets')


def copy_assets(templates_dir, output_dir):
    """
    Copy everything in ``templates_dir`` except top-level ``.html``
    skeletons into ``output_dir``. Returns the list of copied paths.
    """
    copied = []
    if not templates_dir or not os.path.isdir(templates_dir):
        return copied
    for root, dirs, files in os.walk(templates_dir):
        dirs[:] = sorted(d for d in dirs if not d.startswith('.'))
        relative_root = os.path.relpath(root, templates_dir)
        for name in sorted(files):
            if name.startswith('.'):
                continue
            if relative_root == '.' and name.endswith('.html'):
                continue
            source = os.path.join(root, name)
            destination = os.path.normpath(os.path.join(output_dir, relative_root, name))
            try:
                os.makedirs(os.path.dirname(destination), exist_ok=True)
                shutil.copy2(source, destination)
            except (IOError, OSError) as e:
                raise SiteIOError(f"Failed to copy asset {source}: {e}", path=source)
            logger.debug(f"Copied asset: {source} -> {destination}")
            copied.append(destination)
    return copied


def minify_assets(output_dir):
    """Write ``.min.css`` and ``.min.js`` companions for every CSS and JS file."""
    minified = []
    for root, _, files in os.walk(output_dir):
        for file in sorted(files):
            path = os.path.join(root, file)
            if file.endswith('.css') and not file.endswith('.min.css'):
                compress, target = csscompressor.compress, path[:-len('.css')] + '.min.css'
            elif file.endswith('.js') and not file.endswith('.min.js'):
                compress, target = rjsmin.jsmin, path[:-len('.js')] + '.min.js'
            else:
                continue
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    content = f.read()
                with open(target, 'w', encoding='utf-8') as f:
                    f.write(compress(content))
            except (IOError, OSError) as e:
                raise SiteIOError(f"Failed to minify {path}: {e}", path=path)
            logger.debug(f"Minified: {file}")
            minified.append(target)
    return minified
