"""
Single-pass ``{{name}}`` placeholder substitution.
"""

import os
import re
from typing import Dict, Mapping, Optional

from .errors import SiteIOError, TemplateRenderError

PLACEHOLDER = re.compile(r'\{\{([A-Za-z0-9_\-]+)\}\}')

DEFAULT_SKELETON = 'template.html'

PACKAGE_TEMPLATES = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates')


def render_template(skeleton: str, context: Mapping[str, str]) -> str:
    """
    Replace each ``{{name}}`` in ``skeleton`` with ``context[name]``.

    One pass only: substituted values are not rescanned for placeholders.
    Raises TemplateRenderError if any ``{{`` remains in the output.
    """
    output = PLACEHOLDER.sub(
        lambda match: str(context[match.group(1)]) if match.group(1) in context else match.group(0),
        skeleton,
    )
    if '{{' in output:
        unresolved = sorted(set(PLACEHOLDER.findall(output)))
        detail = ', '.join('{{%s}}' % name for name in unresolved) if unresolved else output
        raise TemplateRenderError(detail)
    return output


class TemplateSet:
    """Page skeletons loaded from a template directory, keyed by layout name."""

    def __init__(self, skeletons: Dict[str, str]):
        if DEFAULT_SKELETON not in skeletons:
            raise SiteIOError(f"No {DEFAULT_SKELETON} skeleton available")
        self.skeletons = dict(skeletons)

    @classmethod
    def load(cls, templates_dir: Optional[str] = None) -> 'TemplateSet':
        """
        Read every ``.html`` skeleton in ``templates_dir``.

        Falls back to the packaged default skeleton when the directory is
        missing or holds no ``template.html``.
        """
        skeletons = {}
        if templates_dir and os.path.isdir(templates_dir):
            skeletons.update(cls._read_dir(templates_dir))
        if DEFAULT_SKELETON not in skeletons:
            skeletons[DEFAULT_SKELETON] = cls._read_dir(PACKAGE_TEMPLATES)[DEFAULT_SKELETON]
        return cls(skeletons)

    @staticmethod
    def _read_dir(directory):
        skeletons = {}
        for name in sorted(os.listdir(directory)):
            path = os.path.join(directory, name)
            if name.endswith('.html') and os.path.isfile(path):
                try:
                    with open(path, 'r', encoding='utf-8') as f:
                        skeletons[name] = f.read()
                except (IOError, OSError, UnicodeDecodeError) as e:
                    raise SiteIOError(f"Failed to read template {path}: {e}", path=path)
        return skeletons

    def for_layout(self, layout: str = '') -> str:
        """Skeleton for ``layout``, or the default skeleton."""
        if layout:
            name = f"{layout}.html"
            if name in self.skeletons:
                return self.skeletons[name]
        return self.skeletons[DEFAULT_SKELETON]

    def __contains__(self, name):
        return name in self.skeletons
