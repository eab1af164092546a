import os
import shutil
import logging
import tempfile
import threading
import time
import html
from datetime import datetime
from enum import Enum
from concurrent.futures import ProcessPoolExecutor, as_completed

from .artifacts import generate_artifacts
from .assets import copy_assets, minify_assets
from .errors import CompileError, FolioError, OutputCollisionError, SiteIOError
from .frontmatter import extract
from .locales import load_locale
from .metadata import normalize
from .models import ArtifactKind, ContentFile, PageArtifact, SiteAggregate, SiteConfig, output_filename
from .navigation import generate_navigation
from .renderer import create_renderer
from .template import TemplateSet, render_template

# Thread-local storage for FileProcessor instances
thread_local = threading.local()


def initializer(templates, navigation, lang, css, strict, renderer):
    """Initialize FileProcessor instance in thread-local storage for each worker process."""
    thread_local.file_processor = FileProcessor(templates, navigation, lang, css, strict, renderer)


def process_file(content_file, extracted=None):
    """Worker entry point: compile one file with this worker's FileProcessor."""
    return thread_local.file_processor.process(content_file, extracted)


class FileProcessor:
    """Extract, normalize, render and assemble a single content file."""

    def __init__(self, templates, navigation='', lang='en', css='', strict=False, renderer='markdown'):
        self.templates = templates
        self.navigation = navigation
        self.lang = lang
        self.css = css
        self.strict = strict
        self.default_renderer = renderer
        self.renderers = {}
        self.logger = logging.getLogger('folio.FileProcessor')

    def get_renderer(self, name=None):
        """Return the body renderer registered under ``name``, constructed once."""
        name = name or self.default_renderer
        if name not in self.renderers:
            self.renderers[name] = create_renderer(name)
        return self.renderers[name]

    def build_context(self, metadata, body_html):
        """Placeholder values for one page."""
        context = {key: html.escape(value) for key, value in metadata.fields.items()}
        context.update(metadata.meta_tags.as_dict())
        context.update({
            'title': html.escape(metadata.title),
            'description': html.escape(metadata.get('description')),
            'keywords': html.escape(', '.join(metadata.keywords)),
            'meta': metadata.meta_tags.joined(),
            'css': html.escape(metadata.get('css') or self.css),
            'content': body_html,
            'copyright': html.escape(metadata.get('copyright')),
            'navigation': self.navigation,
            'lang': html.escape(metadata.get('language') or self.lang),
        })
        return context

    def assemble(self, source, metadata, body_html):
        """Fill the page's skeleton and wrap the result in a PageArtifact."""
        skeleton = self.templates.for_layout(metadata.get('layout'))
        page_html = render_template(skeleton, self.build_context(metadata, body_html))
        return PageArtifact(source=source, metadata=metadata, body=body_html, html=page_html)

    def process(self, content_file, extracted=None):
        """
        Run one file through extraction, normalization, rendering and assembly.

        ``extracted`` is a (metadata, body) pair already split from the file;
        when given, extraction is skipped.
        """
        raw_metadata, body = extracted or extract(content_file.text, strict=self.strict)
        metadata = normalize(raw_metadata, source=content_file.filename)
        body_html = self.get_renderer(metadata.get('renderer')).render(body)
        page = self.assemble(content_file.filename, metadata, body_html)
        self.logger.debug(f"Assembled {content_file.filename} -> {page.output_name}")
        return page


class InfoFilter(logging.Filter):
    """Filter to allow only summary INFO messages and warnings on the console."""
    def filter(self, record):
        return record.levelno >= logging.WARNING or getattr(record, 'summary', False)


class CompilerState(Enum):
    SCANNING = 'scanning'
    PROCESSING_FILES = 'processing_files'
    AGGREGATING = 'aggregating'
    GENERATING_ARTIFACTS = 'generating_artifacts'
    WRITING = 'writing'
    DONE = 'done'
    FAILED = 'failed'


class Folio:
    # Process pools only pay for themselves past a dozen or so files.
    MULTIPROCESSING_THRESHOLD = 12

    # Not written at all when their generator returns nothing.
    OPTIONAL_ARTIFACTS = (ArtifactKind.DOMAIN_ALIAS, ArtifactKind.TAGS)

    def __init__(self, content_dir='content', templates_dir='templates', output_dir='public',
                 site_name=None, domain=None, base_url=None, lang='en', robots='public',
                 minify=False, strict=False, require_cname=False, workers=None,
                 renderer='markdown', css='', locale=None, log_dir=None):
        self.content_dir = content_dir
        self.templates_dir = templates_dir
        self.output_dir = output_dir
        self.config = SiteConfig(
            site_name=site_name,
            domain=domain,
            base_url=base_url,
            lang=lang or 'en',
            robots=robots or 'public',
            require_cname=require_cname,
        )
        self.minify = minify
        self.strict = strict
        self.workers = workers
        self.renderer = renderer
        self.css = css
        self.locale = locale or load_locale(lang)
        self.state = None
        self.pages_generated = 0
        self.artifacts_generated = 0

        self.setup_logging(log_dir)
        self.templates = TemplateSet.load(self.templates_dir)

    def setup_logging(self, log_dir=None):
        """Set up logging configuration."""
        self.logger = logging.getLogger('folio')
        self.logger.setLevel(logging.DEBUG)

        if not self.logger.handlers:
            # Console handler with filter
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.INFO)
            console_handler.addFilter(InfoFilter())
            console_handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(console_handler)

            # File handler for all logs
            logs_dir = log_dir or os.path.join(os.getcwd(), 'logs')
            os.makedirs(logs_dir, exist_ok=True)
            log_filename = datetime.now().strftime('folio_%Y-%m-%d_%H-%M-%S.log')
            file_handler = logging.FileHandler(os.path.join(logs_dir, log_filename))
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
            self.logger.addHandler(file_handler)

    def summary(self, key, **kwargs):
        """Log a translated message that is also shown on the console."""
        self.logger.info(self.locale.translate(key, **kwargs), extra={'summary': True})

    def _transition(self, state):
        self.logger.debug(f"Compiler state: {self.state.value if self.state else 'idle'} -> {state.value}")
        self.state = state

    def scan(self):
        """Read every regular file directly inside the content directory."""
        if not os.path.isdir(self.content_dir):
            raise SiteIOError(f"Content directory not found: {self.content_dir}", path=self.content_dir)

        files = []
        for name in sorted(os.listdir(self.content_dir)):
            path = os.path.join(self.content_dir, name)
            if name.startswith('.'):
                self.logger.debug(f"Skipping hidden entry {path}")
                continue
            if not os.path.isfile(path):
                self.logger.warning(self.locale.translate('skipping_entry', path=path, reason='not a regular file'))
                continue
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    files.append(ContentFile(path=path, text=f.read()))
            except (IOError, OSError, UnicodeDecodeError) as e:
                self.logger.warning(self.locale.translate('skipping_entry', path=path, reason=e))
        if not files:
            self.logger.warning(self.locale.translate('no_content', path=self.content_dir))
        return files

    @staticmethod
    def check_collisions(files):
        """Raise OutputCollisionError if two sources map to the same output name."""
        seen = {}
        for content_file in files:
            key = output_filename(content_file.path).lower()
            seen.setdefault(key, []).append(content_file.filename)
        for key, sources in seen.items():
            if len(sources) > 1:
                raise OutputCollisionError(key, sources)

    def extract_files(self, files):
        """
        Split every file into its (metadata, body) pair.

        Navigation needs every title before the first page is assembled, so
        this runs once up front and the pages reuse its results.
        """
        extracted = []
        for content_file in files:
            try:
                extracted.append(extract(content_file.text, strict=self.strict))
            except Exception as e:
                raise CompileError(content_file.path, e) from e
        return extracted

    @staticmethod
    def build_navigation(files, extracted):
        return generate_navigation(
            (content_file.filename, metadata.get('title', ''))
            for content_file, (metadata, _) in zip(files, extracted)
        )

    def process_files(self, files):
        """Compile every file; the first failure stops the run."""
        extracted = self.extract_files(files)
        navigation = self.build_navigation(files, extracted)
        processor_args = (self.templates, navigation, self.config.lang, self.css, self.strict, self.renderer)

        if len(files) >= self.MULTIPROCESSING_THRESHOLD and self.workers != 1:
            self.logger.debug(f"Using multiprocessing for {len(files)} files")
            return self._process_with_multiprocessing(files, extracted, processor_args)
        self.logger.debug(f"Using single-threaded processing for {len(files)} files")
        return self._process_single_threaded(files, extracted, processor_args)

    def _process_single_threaded(self, files, extracted, processor_args):
        processor = FileProcessor(*processor_args)
        pages = []
        for content_file, blocks in zip(files, extracted):
            try:
                pages.append(processor.process(content_file, blocks))
            except Exception as e:
                raise CompileError(content_file.path, e) from e
        return pages

    def _process_with_multiprocessing(self, files, extracted, processor_args):
        pages = []
        with ProcessPoolExecutor(
            max_workers=self.workers or os.cpu_count(),
            initializer=initializer,
            initargs=processor_args,
        ) as executor:
            futures = {
                executor.submit(process_file, content_file, blocks): content_file
                for content_file, blocks in zip(files, extracted)
            }
            for future in as_completed(futures):
                content_file = futures[future]
                try:
                    pages.append(future.result())
                except Exception as e:
                    for pending in futures:
                        pending.cancel()
                    raise CompileError(content_file.path, e) from e
        return pages

    def aggregate(self, pages):
        return SiteAggregate.build(pages, self.config)

    def generate(self, site):
        return generate_artifacts(site)

    def _guard_output_dir(self):
        output = os.path.abspath(self.output_dir)
        for label, directory in (('content', self.content_dir), ('templates', self.templates_dir)):
            if not directory:
                continue
            directory = os.path.abspath(directory)
            if output == directory or directory.startswith(output + os.sep):
                raise SiteIOError(
                    f"Output directory {self.output_dir} would overwrite the {label} directory",
                    path=self.output_dir,
                )

    @staticmethod
    def _write_text(path, text):
        with open(path, 'w', encoding='utf-8') as f:
            f.write(text)

    def write(self, pages, artifacts):
        """
        Write pages and artifacts into a staging directory, then swap it in
        for the output directory.
        """
        self._guard_output_dir()
        output_dir = os.path.abspath(self.output_dir)
        parent = os.path.dirname(output_dir)
        try:
            os.makedirs(parent, exist_ok=True)
            staging = tempfile.mkdtemp(prefix='.folio-build-', dir=parent)
        except (IOError, OSError) as e:
            raise SiteIOError(f"Failed to create staging directory in {parent}: {e}", path=parent)

        try:
            copy_assets(self.templates_dir, staging)
            if self.minify:
                minify_assets(staging)
            for page in pages:
                self._write_text(os.path.join(staging, page.output_name), page.html)
                self.logger.debug(f"Generated HTML: {page.output_name}")
            page_names = {page.output_name.lower() for page in pages}
            for artifact in artifacts:
                if artifact.kind in self.OPTIONAL_ARTIFACTS and not artifact.text:
                    self.logger.debug(f"Nothing to write for {artifact.filename}, skipping")
                    continue
                if artifact.filename.lower() in page_names:
                    self.logger.warning(f"{artifact.filename} is written by a content page, skipping the generated one")
                    continue
                self._write_text(os.path.join(staging, artifact.filename), artifact.text)
                self.artifacts_generated += 1

            if os.path.isdir(output_dir):
                self.logger.warning(self.locale.translate('removing_output', path=output_dir))
                shutil.rmtree(output_dir)
            elif os.path.exists(output_dir):
                self.logger.warning(self.locale.translate('removing_output', path=output_dir))
                os.remove(output_dir)
            os.rename(staging, output_dir)
        except (IOError, OSError) as e:
            shutil.rmtree(staging, ignore_errors=True)
            raise SiteIOError(f"Failed to write site to {output_dir}: {e}", path=output_dir)
        except FolioError:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        self.pages_generated = len(pages)

    def build(self):
        """Main build process. Returns the SiteAggregate that was written."""
        start_time = time.time()
        self.state = None
        self.pages_generated = 0
        self.artifacts_generated = 0
        self.summary('build_started', content=self.content_dir)
        try:
            self._transition(CompilerState.SCANNING)
            files = self.scan()
            self.check_collisions(files)
            self.summary('files_found', count=len(files))

            self._transition(CompilerState.PROCESSING_FILES)
            pages = self.process_files(files)

            self._transition(CompilerState.AGGREGATING)
            site = self.aggregate(pages)

            self._transition(CompilerState.GENERATING_ARTIFACTS)
            artifacts = self.generate(site)

            self._transition(CompilerState.WRITING)
            self.write(site.pages, artifacts)
        except Exception as e:
            self._transition(CompilerState.FAILED)
            self.logger.error(f"Build failed: {e}")
            raise
        self._transition(CompilerState.DONE)

        self.summary('build_completed', seconds=time.time() - start_time)
        self.summary('pages_generated', count=self.pages_generated)
        self.summary('artifacts_generated', count=self.artifacts_generated)
        return site
