"""
Metadata normalization: required-field validation and derived fields.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from .errors import MissingFieldError

REQUIRED_FIELDS = ('title',)

DATE_FIELDS = ('date', 'pub_date', 'item_pub_date', 'last_build_date')

DATE_FORMATS = [
    '%Y-%m-%dT%H:%M:%S%z',
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d',
    '%b %d, %Y',
    '%B %d, %Y',
    '%d %b %Y',
    '%a, %d %b %Y %H:%M:%S %z',
    '%a, %d %b %Y %H:%M:%S %Z',
]

SLUG_SEPARATORS = re.compile(r'[\W_]+')

HTML_ENTITIES = (
    ('&', '&amp;'),
    ('<', '&lt;'),
    ('>', '&gt;'),
    ('"', '&quot;'),
    ("'", '&#x27;'),
    ('/', '&#x2F;'),
)

# (meta tag name, metadata key); order here is the order tags are emitted.
PRIMARY_TAGS = (
    ('author', 'author'),
    ('description', 'description'),
    ('format-detection', 'format_detection'),
    ('generator', 'generator'),
    ('keywords', 'keywords'),
    ('language', 'language'),
    ('permalink', 'permalink'),
    ('rating', 'rating'),
    ('referrer', 'referrer'),
    ('revisit-after', 'revisit_after'),
    ('robots', 'robots'),
    ('theme-color', 'theme_color'),
    ('title', 'title'),
    ('viewport', 'viewport'),
)

OPENGRAPH_TAGS = (
    ('og:description', 'description'),
    ('og:image', 'image'),
    ('og:image:alt', 'image_alt'),
    ('og:image:height', 'image_height'),
    ('og:image:width', 'image_width'),
    ('og:locale', 'locale'),
    ('og:site_name', 'name'),
    ('og:title', 'title'),
    ('og:type', 'type'),
    ('og:url', 'permalink'),
)

TWITTER_TAGS = (
    ('twitter:card', 'twitter_card'),
    ('twitter:creator', 'twitter_creator'),
    ('twitter:description', 'description'),
    ('twitter:image', 'image'),
    ('twitter:image:alt', 'image_alt'),
    ('twitter:site', 'twitter_site'),
    ('twitter:title', 'title'),
    ('twitter:url', 'url'),
)

APPLE_TAGS = (
    ('apple-mobile-web-app-capable', 'apple_mobile_web_app_capable'),
    ('apple-mobile-web-app-status-bar-style', 'apple_mobile_web_app_status_bar_style'),
    ('apple-mobile-web-app-title', 'apple_mobile_web_app_title'),
    ('apple-touch-fullscreen', 'apple_touch_fullscreen'),
)

MICROSOFT_TAGS = (
    ('msapplication-config', 'msapplication_config'),
    ('msapplication-navbutton-color', 'msapplication_navbutton_color'),
    ('msapplication-tap-highlight', 'msapplication_tap_highlight'),
    ('msapplication-TileColor', 'msapplication_tile_color'),
    ('msapplication-TileImage', 'msapplication_tile_image'),
)

META_TAG_GROUPS = (
    ('primary', PRIMARY_TAGS),
    ('opengraph', OPENGRAPH_TAGS),
    ('twitter', TWITTER_TAGS),
    ('apple', APPLE_TAGS),
    ('microsoft', MICROSOFT_TAGS),
)


def field_or_default(metadata: Mapping[str, str], key: str, default: str = '') -> str:
    """Return ``metadata[key]`` as a string, or ``default`` when absent or None."""
    value = metadata.get(key)
    if value is None:
        return default
    return str(value)


def escape_html_entities(value: str) -> str:
    """Escape the characters that are unsafe inside an HTML attribute value."""
    for char, entity in HTML_ENTITIES:
        value = value.replace(char, entity)
    return value


def slugify(text: str) -> str:
    """Lowercase ``text`` and collapse every non-alphanumeric run into one hyphen."""
    return SLUG_SEPARATORS.sub('-', text.lower()).strip('-')


def extract_keywords(metadata: Mapping[str, str]) -> List[str]:
    """Split the comma-separated ``keywords`` field, dropping blank entries."""
    raw = field_or_default(metadata, 'keywords')
    return [keyword.strip() for keyword in raw.split(',') if keyword.strip()]


def format_meta_tag(name: str, content: str) -> str:
    return f'<meta name="{name}" content="{escape_html_entities(content)}">'


def generate_meta_tags(tags: Tuple[Tuple[str, str], ...], metadata: Mapping[str, str]) -> str:
    """One ``<meta>`` line per tag whose metadata key is present and non-empty."""
    lines = []
    for name, key in tags:
        value = field_or_default(metadata, key)
        if value:
            lines.append(format_meta_tag(name, value))
    return '\n'.join(lines)


@dataclass(frozen=True)
class MetaTagGroups:
    primary: str = ''
    opengraph: str = ''
    twitter: str = ''
    apple: str = ''
    microsoft: str = ''

    def as_dict(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name, _ in META_TAG_GROUPS}

    def joined(self) -> str:
        return '\n'.join(group for group in self.as_dict().values() if group)


def generate_all_meta_tags(metadata: Mapping[str, str]) -> MetaTagGroups:
    return MetaTagGroups(**{name: generate_meta_tags(tags, metadata) for name, tags in META_TAG_GROUPS})


def parse_date(value) -> Optional[datetime]:
    """Parse a date value in one of the supported formats, or return None."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        value = value.strip()
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(value, fmt)
            except ValueError:
                continue
    return None


def standardize_date(value: str) -> str:
    """Rewrite a parseable date as ``YYYY-MM-DD``; leave anything else unchanged."""
    parsed = parse_date(value)
    if parsed is None:
        return value
    return parsed.strftime('%Y-%m-%d')


@dataclass(frozen=True)
class PageMetadata:
    """
    Normalized, read-only metadata for one page.

    ``fields`` holds every string field from the metadata block plus the
    derived ``slug``; ``keywords`` and ``meta_tags`` are the other derived
    values.
    """

    fields: Mapping[str, str]
    keywords: Tuple[str, ...] = ()
    meta_tags: MetaTagGroups = field(default_factory=MetaTagGroups)

    def get(self, key: str, default: str = '') -> str:
        return field_or_default(self.fields, key, default)

    def __getitem__(self, key):
        return self.fields[key]

    def __contains__(self, key):
        return key in self.fields

    @property
    def title(self) -> str:
        return self.get('title')

    @property
    def slug(self) -> str:
        return self.get('slug')

    def __reduce__(self):
        return (PageMetadata, (dict(self.fields), self.keywords, self.meta_tags))

    def __post_init__(self):
        if not isinstance(self.fields, MappingProxyType):
            object.__setattr__(self, 'fields', MappingProxyType(dict(self.fields)))
        object.__setattr__(self, 'keywords', tuple(self.keywords))


def normalize(metadata: Mapping[str, str], source: Optional[str] = None) -> PageMetadata:
    """
    Validate ``metadata`` and derive the computed fields.

    Raises MissingFieldError when a field every page needs (``title``) is
    absent or blank.
    """
    for key in REQUIRED_FIELDS:
        if not field_or_default(metadata, key).strip():
            raise MissingFieldError(key, source)

    fields = {str(key): field_or_default(metadata, key) for key in metadata}
    for key in DATE_FIELDS:
        if fields.get(key):
            fields[key] = standardize_date(fields[key])

    if not fields.get('slug'):
        fields['slug'] = slugify(fields['title'])

    return PageMetadata(
        fields=fields,
        keywords=tuple(extract_keywords(fields)),
        meta_tags=generate_all_meta_tags(fields),
    )
