"""Tests for the command-line interface."""

import pytest
import os
from pathlib import Path
from unittest.mock import patch

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from folio_pkg import __version__
from folio_pkg.cli import build_parser, main


class TestCli:
    """Test cases for folio's main()."""

    def test_init_creates_starter_project(self, temp_dir, monkeypatch):
        """Test that --init writes a config file and a starter tree."""
        monkeypatch.chdir(temp_dir)
        main(['--init', 'yml'])
        for name in ('folio.yml', 'content/index.md', 'content/404.md', 'templates/template.html'):
            assert os.path.isfile(os.path.join(temp_dir, name)), name

    def test_init_then_build(self, temp_dir, monkeypatch):
        """Test building the starter project."""
        monkeypatch.chdir(temp_dir)
        main(['--init', 'json'])
        main([])

        public = Path(temp_dir, 'public')
        index_html = (public / 'index.html').read_text(encoding='utf-8')
        assert '<title>Welcome to Folio</title>' in index_html
        assert 'id="getting-started"' in index_html
        assert (public / '404.html').is_file()
        assert (public / 'CNAME').read_text(encoding='utf-8') == "example.com\n"
        robots = (public / 'robots.txt').read_text(encoding='utf-8')
        assert robots.endswith("Sitemap: https://example.com/sitemap.xml\n")
        assert os.path.isdir(os.path.join(temp_dir, 'logs'))

    def test_arguments_override_config(self, temp_dir, monkeypatch):
        """Test that command-line options beat the config file."""
        monkeypatch.chdir(temp_dir)
        main(['--init', 'yml'])
        main(['--output', 'dist', '--robots', 'private'])
        robots = Path(temp_dir, 'dist', 'robots.txt').read_text(encoding='utf-8')
        assert robots == "User-agent: *\nDisallow: /\n"
        assert not os.path.exists(os.path.join(temp_dir, 'public'))

    def test_build_error_exits_nonzero(self, temp_dir, monkeypatch, capsys):
        """Test that a failing build prints the error and exits with 1."""
        monkeypatch.chdir(temp_dir)
        with pytest.raises(SystemExit) as exc_info:
            main(['--content', 'missing'])
        assert exc_info.value.code == 1
        assert 'Error: Content directory not found' in capsys.readouterr().err

    def test_serve_after_build(self, temp_dir, monkeypatch):
        """Test that --serve hands the output directory to the server."""
        monkeypatch.chdir(temp_dir)
        main(['--init', 'yml'])
        with patch('folio_pkg.cli.serve') as serve:
            main(['--serve', '8080'])
        args, kwargs = serve.call_args
        assert args == ('public', '8080')
        assert kwargs['locale'].language == 'en'

    def test_version(self, capsys):
        """Test --version."""
        with pytest.raises(SystemExit) as exc_info:
            main(['--version'])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_parser_defaults_do_not_override_config(self):
        """Test that unset flags parse as None."""
        args = build_parser().parse_args([])
        assert args.minify is None
        assert args.strict is None
        assert args.output is None
        assert build_parser().parse_args(['--serve']).serve == '127.0.0.1:8000'
