"""
Exception types raised by the Folio compilation pipeline.

Errors cross process boundaries when files are compiled in a worker pool,
so every subclass records the arguments it was built with and pickles
through them.
"""


class FolioError(Exception):
    """Base class for every error raised while compiling a site."""

    _init_args = None

    def __reduce__(self):
        args = self._init_args if self._init_args is not None else self.args
        return (self.__class__, tuple(args))


class ExtractionError(FolioError):
    """A metadata block could not be separated from its body."""


class FormatParseError(ExtractionError):
    """The content of a detected metadata block failed to parse."""

    def __init__(self, format_name, reason):
        self._init_args = (format_name, reason)
        self.format = format_name
        self.reason = reason
        super().__init__(f"Invalid {format_name} metadata block: {reason}")


class MissingFieldError(FolioError):
    """A field required by a page or an artifact is absent."""

    def __init__(self, field, source=None):
        self._init_args = (field, source)
        self.field = field
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(f"Missing required field '{field}'{where}")


class TemplateRenderError(FolioError):
    """A placeholder survived substitution."""

    def __init__(self, unresolved):
        self._init_args = (unresolved,)
        self.unresolved = unresolved
        super().__init__(f"Failed to render template, unresolved template tags: {unresolved}")


class InvalidChangeFreq(FolioError):
    def __init__(self, value, loc=None):
        self._init_args = (value, loc)
        self.value = value
        self.loc = loc
        where = f" for {loc}" if loc else ""
        super().__init__(f"Invalid sitemap changefreq '{value}'{where}")


class SiteIOError(FolioError):
    """Reading content or writing the generated site failed."""

    def __init__(self, message, path=None):
        self._init_args = (message, path)
        self.path = path
        super().__init__(message)


class OutputCollisionError(SiteIOError):
    """Two source files would be written to the same output path."""

    def __init__(self, output_name, sources):
        self.output_name = output_name
        self.sources = list(sources)
        super().__init__(
            f"Output collision on '{output_name}' between: {', '.join(self.sources)}",
            path=output_name,
        )
        self._init_args = (output_name, self.sources)


class CompileError(FolioError):
    """A single content file failed; wraps the underlying error."""

    def __init__(self, path, cause):
        self._init_args = (path, cause)
        self.path = path
        self.cause = cause
        super().__init__(f"{path}: {cause}")
