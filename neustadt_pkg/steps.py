"""
The transformation steps of the build, in the order the site applies them:
drafts, collections, highlight, markdown, permalinks, layouts, minify.
"""

import re
import logging
import posixpath
import unicodedata
from dataclasses import replace

import mistune
import csscompressor
import rjsmin
from jinja2 import Environment, FileSystemLoader
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name, guess_lexer
from pygments.lexers.special import TextLexer
from pygments.util import ClassNotFound
from pymdownx.slugs import slugify as _md_slugify

from .helpers import register_helpers, to_datetime
from .pipeline import ContentRecord, Step, match_pattern

MARKDOWN_EXTENSIONS = ('.md', '.markdown')

FENCE_RE = re.compile(
    r'^ {0,3}(?P<fence>`{3,}|~{3,})[ \t]*(?P<info>[^\n]*?)[ \t]*\n'
    r'(?P<code>.*?)'
    r'^ {0,3}(?P=fence)[`~]*[ \t]*(?:\n|\Z)',
    re.M | re.S
)

PLACEHOLDER_RE = re.compile(r':(\w+)')

slugify_lower = _md_slugify(case="lower")


def is_markdown(path):
    return path.lower().endswith(MARKDOWN_EXTENSIONS)


def slugify(text):
    """Convert text to a lowercase, ASCII, hyphen-separated slug."""
    text = unicodedata.normalize('NFKD', str(text)).encode('ascii', 'ignore').decode('ascii')
    return slugify_lower(' '.join(text.split()), sep='-').strip('-')


class Drafts(Step):
    """Drop records flagged with `draft: true`."""
    name = 'drafts'

    def __init__(self):
        self.logger = logging.getLogger('Neustadt.drafts')

    def transform(self, files, metadata):
        kept = {}
        for path, record in files.items():
            if record.metadata.get('draft'):
                self.logger.debug(f"Skipping draft: {path}")
                continue
            kept[path] = record
        return kept


class Collection(list):
    """A list of record contexts carrying the collection's own metadata."""

    def __init__(self, name, metadata=None, items=()):
        super().__init__(items)
        self.name = name
        self.metadata = metadata or {}


class Collections(Step):
    """
    Group records into named collections.

    Each definition takes a `pattern` (glob or list of globs), a `sortBy`
    field (`date` unless given, false keeps source order), `reverse` and
    `limit`, and a `metadata` mapping. Records
    may also join a collection through a `collection` front-matter key.
    The sorted membership is stored as source paths in
    ``metadata['collections']``; `resolve_collections` turns it back into
    record contexts at render time.
    """
    name = 'collections'

    def __init__(self, definitions=None):
        self.definitions = definitions or {}
        self.logger = logging.getLogger('Neustadt.collections')

    def transform(self, files, metadata):
        members = {name: [] for name in self.definitions}

        for path, record in files.items():
            for name, options in self.definitions.items():
                pattern = options.get('pattern')
                if pattern and match_pattern(path, pattern):
                    members[name].append(path)
            for name in _as_list(record.metadata.get('collection')):
                paths = members.setdefault(name, [])
                if path not in paths:
                    paths.append(path)

        result = dict(files)
        collections = {}
        for name, paths in members.items():
            options = self.definitions.get(name, {})
            paths = self.sort(files, paths, options)
            limit = options.get('limit')
            if limit is not None:
                paths = paths[:int(limit)]

            collections[name] = {
                'sources': [files[p].source for p in paths],
                'metadata': dict(options.get('metadata') or {}),
            }
            for p in paths:
                record = result[p]
                names = _as_list(record.metadata.get('collection'))
                if name not in names:
                    names.append(name)
                result[p] = replace(record, metadata={**record.metadata, 'collection': names})
            self.logger.debug(f"Collection {name}: {len(paths)} records")

        metadata['collections'] = collections
        return result

    def sort(self, files, paths, options):
        sort_by = options.get('sortBy', options.get('sort_by', 'date'))
        reverse = bool(options.get('reverse'))
        if not sort_by:
            return list(reversed(paths)) if reverse else list(paths)

        keyed, missing = [], []
        for p in paths:
            value = files[p].metadata.get(sort_by)
            if sort_by == 'date':
                value = to_datetime(value)
            if value is None:
                missing.append(p)
            else:
                keyed.append((value, p))
        # sorted() is stable in both directions
        keyed = sorted(keyed, key=lambda item: item[0], reverse=reverse)
        return [p for _, p in keyed] + missing


def _as_list(value):
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def resolve_collections(files, metadata):
    """Build `Collection` objects of record contexts from the current files."""
    by_source = {record.source: record for record in files.values()}
    resolved = {}
    for name, info in metadata.get('collections', {}).items():
        items = [by_source[s].context() for s in info['sources'] if s in by_source]
        for i, ctx in enumerate(items):
            ctx['previous'] = items[i - 1] if i > 0 else None
            ctx['next'] = items[i + 1] if i + 1 < len(items) else None
        resolved[name] = Collection(name, info['metadata'], items)
    return resolved


def neighbours(collections, record):
    """previous/next of `record` within the last collection it belongs to."""
    names = [n for n in _as_list(record.metadata.get('collection')) if n in collections]
    if not names:
        return {}
    for ctx in collections[names[-1]]:
        if ctx['source'] == record.source:
            return {'previous': ctx['previous'], 'next': ctx['next']}
    return {}


class Highlight(Step):
    """
    Replace fenced code blocks in markdown records with Pygments-highlighted
    HTML, so the markdown step passes them through untouched.
    """
    name = 'highlight'

    def __init__(self, stylesheet=None, style='default'):
        self.stylesheet = stylesheet
        self.style = style
        self.formatter = HtmlFormatter(nowrap=True, style=style)
        self.logger = logging.getLogger('Neustadt.highlight')

    def transform(self, files, metadata):
        result = {}
        for path, record in files.items():
            if is_markdown(path):
                text = record.text.replace('\r\n', '\n')
                highlighted = FENCE_RE.sub(self.highlight_block, text)
                if highlighted != text:
                    self.logger.debug(f"Highlighted code in {path}")
                    record = record.with_text(highlighted)
            result[path] = record

        if self.stylesheet:
            css = HtmlFormatter(style=self.style).get_style_defs('.hljs')
            result[self.stylesheet] = ContentRecord(
                self.stylesheet, self.stylesheet, css.encode('utf-8'), {})
        return result

    def highlight_block(self, match):
        info = match.group('info').strip()
        lang = info.split()[0] if info else ''
        code = match.group('code')
        lexer = self.get_lexer(lang, code)
        html = highlight(code, lexer, self.formatter).rstrip('\n')
        css_lang = lang or (lexer.aliases[0] if lexer.aliases else '')
        return f'<pre><code class="hljs {css_lang}">{html}</code></pre>\n'

    def get_lexer(self, lang, code):
        if lang:
            try:
                return get_lexer_by_name(lang)
            except ClassNotFound:
                pass
        try:
            return guess_lexer(code)
        except ClassNotFound:
            return TextLexer()


class Markdown(Step):
    """Render markdown records to HTML with mistune and rename them to .html."""
    name = 'markdown'

    def __init__(self, plugins=None):
        self.plugins = plugins or ['table', 'task_lists', 'strikethrough']
        self.markdown_parser = self.create_markdown_parser()
        self.logger = logging.getLogger('Neustadt.markdown')

    def create_markdown_parser(self):
        """Create a Mistune markdown parser that keeps raw HTML."""
        return mistune.create_markdown(
            renderer=mistune.HTMLRenderer(escape=False),
            plugins=self.plugins
        )

    def transform(self, files, metadata):
        result = {}
        for path, record in files.items():
            if is_markdown(path):
                html_path = posixpath.splitext(path)[0] + '.html'
                html = self.markdown_parser(record.text)
                record = record.with_text(html, path=html_path)
                self.logger.debug(f"Rendered {path} -> {html_path}")
                path = html_path
            result[path] = record
        return result


class Permalinks(Step):
    """
    Move every HTML record to ``<path>/index.html`` and record `path` in its
    metadata.

    With a `pattern` such as ``:date/:title`` the path is built from
    metadata; dates use `date_format`, everything else is slugified. A
    record with ``permalink: false`` keeps its original path.
    """
    name = 'permalinks'

    def __init__(self, pattern=None, date_format='%Y/%m/%d'):
        self.pattern = pattern
        self.date_format = date_format
        self.logger = logging.getLogger('Neustadt.permalinks')

    def transform(self, files, metadata):
        result = {}
        for path, record in files.items():
            if not path.endswith('.html') or record.metadata.get('permalink') is False:
                self._add(result, path, record)
                continue

            link = self.replace_pattern(record.metadata) or self.resolve(path)
            target = posixpath.join(link, 'index.html') if link else 'index.html'
            record = replace(record, path=target, metadata={**record.metadata, 'path': link})
            self._add(result, target, record)
        return result

    def _add(self, result, target, record):
        if target in result:
            raise ValueError(
                f"Permalink clash: {result[target].source} and {record.source} "
                f"both map to {target}")
        result[target] = record

    def resolve(self, path):
        dirname = posixpath.dirname(path)
        stem = posixpath.splitext(posixpath.basename(path))[0]
        if stem == 'index':
            return dirname
        return posixpath.join(dirname, stem) if dirname else stem

    def replace_pattern(self, data):
        if not self.pattern:
            return None

        missing = False

        def substitute(match):
            nonlocal missing
            key = match.group(1)
            value = data.get(key)
            if value is None or value == '':
                missing = True
                return ''
            if key == 'date':
                date_obj = to_datetime(value)
                if date_obj is None:
                    missing = True
                    return ''
                return date_obj.strftime(self.date_format)
            return slugify(value)

        link = PLACEHOLDER_RE.sub(substitute, self.pattern)
        if missing:
            return None
        return link.strip('/')


class Layouts(Step):
    """
    Render HTML records through Jinja2 layouts.

    A record's `layout` front matter picks the template, falling back to
    `default`. Only records whose path matches `pattern` are rendered.
    Partials are exposed by name under `partials` for ``{% include %}``.
    """
    name = 'layouts'

    def __init__(self, directory, pattern=None, default=None, partials=None, engine='jinja2'):
        if engine != 'jinja2':
            raise ValueError(f"Unsupported template engine: {engine}")
        self.directory = directory
        self.pattern = pattern or '**/*.html'
        self.default = default
        self.partials = {name: self._partial_path(p) for name, p in (partials or {}).items()}
        self.env = register_helpers(Environment(loader=FileSystemLoader(directory)))
        self.logger = logging.getLogger('Neustadt.layouts')

    def _partial_path(self, path):
        if not posixpath.splitext(path)[1]:
            path += '.html'
        return path

    def transform(self, files, metadata):
        collections = resolve_collections(files, metadata)
        base = dict(metadata)
        base.update(collections)
        base['collections'] = collections
        base['partials'] = self.partials

        result = {}
        for path, record in files.items():
            layout = record.metadata.get('layout', self.default)
            if not layout or not match_pattern(path, self.pattern):
                result[path] = record
                continue

            template = self.env.get_template(layout)
            context = dict(base)
            context.update(record.context())
            context.update(neighbours(collections, record))
            result[path] = record.with_text(template.render(**context))
            self.logger.debug(f"Applied layout {layout} to {path}")
        return result


class Minify(Step):
    """Add a minified `.min.css`/`.min.js` sibling for each stylesheet and script."""
    name = 'minify'

    def __init__(self):
        self.logger = logging.getLogger('Neustadt.minify')

    def transform(self, files, metadata):
        result = dict(files)
        for path, record in files.items():
            if path.endswith(('.min.css', '.min.js')):
                continue
            if path.endswith('.css'):
                minified_path = path[:-len('.css')] + '.min.css'
                minified = csscompressor.compress(record.text)
            elif path.endswith('.js'):
                minified_path = path[:-len('.js')] + '.min.js'
                minified = rjsmin.jsmin(record.text)
            else:
                continue
            result[minified_path] = record.with_text(minified, path=minified_path)
            self.logger.debug(f"Minified {path}")
        return result
