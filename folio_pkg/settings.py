#!/usr/bin/env python3
"""
Settings loader for Folio.

Looks for folio.yml, folio.yaml or folio.json in the working directory,
validates the values it finds and maps them onto ``Folio`` arguments.
"""

import os
import json
import yaml
from typing import Dict, Any, Optional

from .locales import available_languages
from .renderer import RENDERERS

ROBOTS_MODES = ('public', 'private')

SAMPLE_YAML = """# Folio configuration

# Site information
site_name: My Folio Site
domain: example.com          # written to CNAME
base_url: https://example.com
lang: en                     # en, fr or de

# Directories
content: content
templates: templates
output: public               # replaced on every build

# Compilation
robots: public               # public or private
renderer: markdown           # markdown or plain
minify: false
strict: false                # fail on malformed metadata blocks
"""


class FolioSettings:
    """Load, validate and merge Folio configuration."""

    DEFAULT_SETTINGS = {
        'content': 'content',
        'templates': 'templates',
        'output': 'public',
        'site_name': None,
        'domain': None,
        'base_url': None,
        'lang': 'en',
        'robots': 'public',
        'renderer': 'markdown',
        'css': '',
        'minify': False,
        'strict': False,
        'require_cname': False,
        'workers': None,
        'serve': None,
    }

    BOOLEAN_KEYS = ('minify', 'strict', 'require_cname')

    # Searched in this order
    CONFIG_FILES = ['folio.yml', 'folio.yaml', 'folio.json']

    def __init__(self, config_dir: str = None):
        self.config_dir = config_dir or os.getcwd()
        self.settings = self.DEFAULT_SETTINGS.copy()
        self.config_file_path = None

    def load_settings(self) -> Dict[str, Any]:
        """
        Overlay the first config file found onto the defaults.

        A file that cannot be read or fails validation is reported and the
        defaults are kept.
        """
        config_file = self.find_config_file()
        if not config_file:
            return self.settings.copy()

        self.config_file_path = config_file
        try:
            loaded = self.validate(self.read_config_file(config_file))
        except (ValueError, IOError, OSError) as e:
            print(f"Warning: Failed to load config file {config_file}: {e}")
        else:
            unknown = sorted(set(loaded) - set(self.DEFAULT_SETTINGS))
            if unknown:
                print(f"Warning: Ignoring unknown settings in {os.path.basename(config_file)}: {', '.join(unknown)}")
            self.settings.update({k: v for k, v in loaded.items() if k in self.DEFAULT_SETTINGS})
            print(f"Loaded configuration from: {os.path.relpath(config_file)}")

        return self.settings.copy()

    def find_config_file(self) -> Optional[str]:
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.config_dir, filename)
            if os.path.isfile(config_path):
                return config_path
        return None

    @staticmethod
    def read_config_file(config_path: str) -> Dict[str, Any]:
        """Parse a YAML or JSON config file into a mapping."""
        file_ext = os.path.splitext(config_path)[1].lower()
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext in ('.yml', '.yaml'):
                    loaded = yaml.safe_load(f)
                elif file_ext == '.json':
                    loaded = json.load(f)
                else:
                    raise ValueError(f"Unsupported config file format: {file_ext}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML: {e}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON: {e}")

        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            raise ValueError("configuration must contain a mapping")
        return loaded

    @classmethod
    def validate(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        """
        Check enumerated values and coerce booleans and worker counts.

        Raises ValueError naming the offending key.
        """
        checked = dict(values)
        if checked.get('robots') is not None and checked['robots'] not in ROBOTS_MODES:
            raise ValueError(f"robots must be one of {', '.join(ROBOTS_MODES)}, got {checked['robots']!r}")
        if checked.get('renderer') is not None and checked['renderer'] not in RENDERERS:
            raise ValueError(f"renderer must be one of {', '.join(sorted(RENDERERS))}, got {checked['renderer']!r}")
        if checked.get('lang') is not None and str(checked['lang']).replace('_', '-').split('-')[0].lower() not in available_languages():
            raise ValueError(f"lang must be one of {', '.join(available_languages())}, got {checked['lang']!r}")

        for key in cls.BOOLEAN_KEYS:
            if key in checked and not isinstance(checked[key], bool):
                if str(checked[key]).lower() in ('true', 'yes', '1'):
                    checked[key] = True
                elif str(checked[key]).lower() in ('false', 'no', '0', 'none', ''):
                    checked[key] = False
                else:
                    raise ValueError(f"{key} must be true or false, got {checked[key]!r}")

        if checked.get('workers') is not None:
            try:
                workers = int(checked['workers'])
            except (TypeError, ValueError):
                raise ValueError(f"workers must be a positive integer, got {checked['workers']!r}")
            if workers < 1:
                raise ValueError(f"workers must be a positive integer, got {workers}")
            checked['workers'] = workers
        return checked

    def create_sample_config(self, file_format: str = 'yml') -> str:
        """Write a sample folio.<file_format> and return its path."""
        if file_format not in ('yml', 'yaml', 'json'):
            raise ValueError(f"Unsupported config file format: {file_format}")

        config_path = os.path.join(self.config_dir, f'folio.{file_format}')
        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                if file_format == 'json':
                    json.dump(yaml.safe_load(SAMPLE_YAML), f, indent=2)
                    f.write('\n')
                else:
                    f.write(SAMPLE_YAML)
        except PermissionError:
            raise PermissionError(f"Permission denied creating configuration file: {config_path}")
        except (IOError, OSError) as e:
            raise IOError(f"Error writing configuration file {config_path}: {e}")

        return config_path

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Command-line values that are not None win over file values."""
        merged = self.settings.copy()
        merged.update({key: value for key, value in args_dict.items() if value is not None})
        return merged

    @staticmethod
    def folio_kwargs(settings: Dict[str, Any]) -> Dict[str, Any]:
        """Keyword arguments for ``Folio`` from a merged settings mapping."""
        return {
            'content_dir': settings['content'],
            'templates_dir': settings['templates'],
            'output_dir': os.path.expanduser(settings['output']),
            'site_name': settings['site_name'],
            'domain': settings['domain'],
            'base_url': settings['base_url'],
            'lang': settings['lang'],
            'robots': settings['robots'],
            'renderer': settings['renderer'],
            'css': settings['css'] or '',
            'minify': bool(settings['minify']),
            'strict': bool(settings['strict']),
            'require_cname': bool(settings['require_cname']),
            'workers': settings['workers'],
        }
