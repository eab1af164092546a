"""
Data carried between the stages of a compile run.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from .metadata import PageMetadata


@dataclass(frozen=True)
class ContentFile:
    path: str
    text: str

    @property
    def filename(self) -> str:
        return os.path.basename(self.path)


@dataclass(frozen=True)
class PageArtifact:
    source: str
    metadata: PageMetadata
    body: str
    html: str

    @property
    def output_name(self) -> str:
        return output_filename(self.source)

    @property
    def stem(self) -> str:
        return os.path.splitext(os.path.basename(self.source))[0]


def output_filename(source: str) -> str:
    """``about.md`` -> ``about.html``."""
    return os.path.splitext(os.path.basename(source))[0] + '.html'


@dataclass(frozen=True)
class SiteConfig:
    site_name: Optional[str] = None
    domain: Optional[str] = None
    base_url: Optional[str] = None
    lang: str = 'en'
    robots: str = 'public'
    require_cname: bool = False


@dataclass(frozen=True)
class SiteAggregate:
    """Every compiled page, sorted by source filename, plus site configuration."""

    pages: Tuple[PageArtifact, ...]
    config: SiteConfig = field(default_factory=SiteConfig)

    @classmethod
    def build(cls, pages, config=None) -> 'SiteAggregate':
        ordered = tuple(sorted(pages, key=lambda page: os.path.basename(page.source)))
        return cls(pages=ordered, config=config or SiteConfig())

    def index_page(self) -> Optional[PageArtifact]:
        for page in self.pages:
            if page.stem.lower() == 'index':
                return page
        return self.pages[0] if self.pages else None

    def site_metadata(self) -> Dict[str, str]:
        """
        Site-level fields: the index page's metadata overlaid with explicit
        configuration values.
        """
        index = self.index_page()
        merged = dict(index.metadata.fields) if index else {}
        if self.config.site_name:
            merged['name'] = self.config.site_name
        elif not merged.get('name') and merged.get('title'):
            merged['name'] = merged['title']
        if self.config.domain:
            merged['cname'] = self.config.domain
        if self.config.base_url:
            merged['base_url'] = self.config.base_url
        if self.config.lang and not merged.get('language'):
            merged['language'] = self.config.lang
        return merged


class ArtifactKind(Enum):
    SITEMAP = 'sitemap.xml'
    FEED = 'rss.xml'
    MANIFEST = 'manifest.json'
    ROBOTS = 'robots.txt'
    ATTRIBUTION = 'humans.txt'
    DOMAIN_ALIAS = 'CNAME'
    TAGS = 'tags.html'

    @property
    def filename(self) -> str:
        return self.value


@dataclass(frozen=True)
class GeneratedArtifact:
    kind: ArtifactKind
    text: str

    @property
    def filename(self) -> str:
        return self.kind.filename
