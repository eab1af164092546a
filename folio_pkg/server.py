"""
Development server for a generated site.

Serves files from a document root, maps ``/`` to ``index.html`` and answers
unknown paths with ``404.html`` and a 404 status.
"""

import logging
import mimetypes
import os
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import unquote, urlsplit

from .locales import load_locale

logger = logging.getLogger('folio.server')

INDEX_DOCUMENT = 'index.html'
NOT_FOUND_DOCUMENTS = ('404.html', os.path.join('404', 'index.html'))
NOT_FOUND_BODY = b'File not found'


def resolve_request(document_root, request_path):
    """
    Map a request path to (status, file path or None).

    Paths that escape ``document_root`` are treated as missing.
    """
    root = os.path.realpath(document_root)
    path = unquote(urlsplit(request_path).path)
    if path in ('', '/'):
        relative = INDEX_DOCUMENT
    else:
        relative = path.lstrip('/')
    candidate = os.path.realpath(os.path.join(root, relative))
    if os.path.isdir(candidate):
        candidate = os.path.join(candidate, INDEX_DOCUMENT)

    inside_root = candidate == root or candidate.startswith(root + os.sep)
    if not inside_root:
        logger.warning(f"Possible directory traversal attempt: {request_path}")
    elif os.path.isfile(candidate):
        return HTTPStatus.OK, candidate

    for name in NOT_FOUND_DOCUMENTS:
        fallback = os.path.join(root, name)
        if os.path.isfile(fallback):
            return HTTPStatus.NOT_FOUND, fallback
    return HTTPStatus.NOT_FOUND, None


class SiteRequestHandler(BaseHTTPRequestHandler):
    document_root = '.'

    def do_GET(self):
        self._respond(include_body=True)

    def do_HEAD(self):
        self._respond(include_body=False)

    def _respond(self, include_body):
        status, path = resolve_request(self.document_root, self.path)
        if path is None:
            body, content_type = NOT_FOUND_BODY, 'text/plain; charset=utf-8'
        else:
            with open(path, 'rb') as f:
                body = f.read()
            content_type = mimetypes.guess_type(path)[0] or 'application/octet-stream'
            if content_type.startswith('text/') or content_type in ('application/json', 'application/xml'):
                content_type += '; charset=utf-8'
        self.send_response(status)
        self.send_header('Content-Type', content_type)
        self.send_header('Content-Length', str(len(body)))
        self.end_headers()
        if include_body:
            self.wfile.write(body)

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)


def parse_address(address, default_port=8000):
    """``'127.0.0.1:8080'`` -> ('127.0.0.1', 8080)."""
    if not address:
        return '127.0.0.1', default_port
    if ':' not in address:
        if address.isdigit():
            return '127.0.0.1', int(address)
        return address, default_port
    host, _, port = address.rpartition(':')
    return host or '127.0.0.1', int(port) if port else default_port


def create_server(document_root, address=None):
    handler = type('BoundSiteRequestHandler', (SiteRequestHandler,), {'document_root': document_root})
    return ThreadingHTTPServer(parse_address(address), handler)


def serve(document_root, address=None, locale=None):
    """Serve ``document_root`` until interrupted."""
    server = create_server(document_root, address)
    locale = locale or load_locale()
    host, port = server.server_address[:2]
    print(locale.translate('server_running', root=document_root, address=f"{host}:{port}"))
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
        print(locale.translate('server_stopped'))
