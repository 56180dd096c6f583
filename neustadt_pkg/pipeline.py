"""
Pipeline primitives: content records, reading the source tree, running the
ordered steps and writing the destination tree.
"""

import os
import re
import copy
import shutil
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Tuple

import yaml

FRONT_MATTER_RE = re.compile(r'\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)', re.M | re.S)

logger = logging.getLogger('Neustadt.pipeline')


class BuildError(Exception):
    """Raised when any part of a build fails. The build is abandoned."""

    def __init__(self, step, cause):
        self.step = step
        self.cause = cause
        super().__init__(f"{step}: {cause}")


@dataclass(frozen=True)
class ContentRecord:
    path: str
    source: str
    contents: bytes
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def text(self):
        return self.contents.decode('utf-8')

    def with_text(self, text, **changes):
        return replace(self, contents=text.encode('utf-8'), **changes)

    def context(self):
        """Template context for this record: metadata plus contents and path."""
        ctx = dict(self.metadata)
        try:
            ctx['contents'] = self.text
        except UnicodeDecodeError:
            ctx['contents'] = ''
        ctx.setdefault('path', self.path)
        ctx['source'] = self.source
        return ctx


Files = Dict[str, ContentRecord]


def glob_to_regex(pattern):
    """
    Translate a minimatch-style glob into a compiled regex.

    `*` and `?` never match `/`; `**` matches across directories and
    `**/` may match nothing. Wildcards never match a leading dot, so
    dotfiles and dot directories are only matched by a literal `.`.
    """
    i, n = 0, len(pattern)
    out = []
    while i < n:
        c = pattern[i]
        segment_start = i == 0 or pattern[i - 1] == '/'
        no_dot = r'(?!\.)' if segment_start else ''
        if pattern.startswith('**/', i):
            out.append(r'(?:(?!\.)[^/]*/)*')
            i += 3
        elif pattern.startswith('**', i):
            out.append(r'(?:(?!\.)[^/]*/)*(?!\.)[^/]*')
            i += 2
        elif c == '*':
            out.append(no_dot + '[^/]*')
            i += 1
        elif c == '?':
            out.append(no_dot + '[^/]')
            i += 1
        else:
            out.append(re.escape(c))
            i += 1
    return re.compile(''.join(out) + r'\Z')


def match_pattern(path, patterns):
    """Return True if `path` matches the glob or any glob in a list."""
    if isinstance(patterns, str):
        patterns = [patterns]
    return any(glob_to_regex(p).match(path) for p in patterns)


def parse_front_matter(raw, filepath=''):
    """
    Split a file's bytes into (metadata, body bytes).

    Files that are not UTF-8 text or carry no front matter block come back
    with empty metadata and their contents untouched.
    """
    try:
        content = raw.decode('utf-8')
    except UnicodeDecodeError:
        return {}, raw

    match = FRONT_MATTER_RE.match(content)
    if not match:
        return {}, raw

    try:
        metadata = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML front matter in {filepath}: {e}")
    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise ValueError(f"Front matter in {filepath} is not a mapping")

    body = content[match.end():]
    return metadata, body.encode('utf-8')


def read_source(source_dir):
    """Read every file under `source_dir` into a Files mapping."""
    if not os.path.isdir(source_dir):
        raise FileNotFoundError(f"Source directory not found: {source_dir}")

    files = {}
    for root, dirs, filenames in os.walk(source_dir):
        dirs.sort()
        for filename in sorted(filenames):
            full_path = os.path.join(root, filename)
            rel_path = os.path.relpath(full_path, source_dir).replace(os.sep, '/')
            with open(full_path, 'rb') as f:
                raw = f.read()
            metadata, contents = parse_front_matter(raw, rel_path)
            files[rel_path] = ContentRecord(rel_path, rel_path, contents, metadata)
            logger.debug(f"Read {rel_path}")
    return files


def write_destination(files, destination, clean=True):
    """Write every record to `destination`, removing it first when `clean`."""
    if clean and os.path.exists(destination):
        shutil.rmtree(destination)
    os.makedirs(destination, exist_ok=True)

    for rel_path, record in files.items():
        output_path = os.path.join(destination, *rel_path.split('/'))
        os.makedirs(os.path.dirname(output_path), exist_ok=True)
        with open(output_path, 'wb') as f:
            f.write(record.contents)
        logger.debug(f"Wrote {output_path}")


class Step:
    """
    One transformation in the pipeline.

    Subclasses implement ``transform(files, metadata) -> files``. They must
    not mutate the records they receive; `metadata` is the per-build shared
    mapping and may be extended.
    """
    name = 'step'

    def transform(self, files: Files, metadata: Dict[str, Any]) -> Files:
        raise NotImplementedError

    def __repr__(self):
        return f"<{type(self).__name__}>"


class Pipeline:
    """An ordered list of steps applied to the records read from `source`."""

    def __init__(self, source, destination, metadata=None, steps=None, clean=True):
        self.source = source
        self.destination = destination
        self.metadata = metadata or {}
        self.steps: List[Step] = list(steps or [])
        self.clean = clean

    def process(self) -> Tuple[Files, Dict[str, Any]]:
        """Read the source and apply every step, without writing anything."""
        metadata = copy.deepcopy(self.metadata)
        try:
            files = read_source(self.source)
        except Exception as e:
            raise BuildError('read', e) from e

        for step in self.steps:
            try:
                files = step.transform(files, metadata)
            except Exception as e:
                raise BuildError(step.name, e) from e
            logger.debug(f"Step {step.name} produced {len(files)} files")
        return files, metadata

    def run(self) -> Files:
        """Process and write the result to the destination."""
        files, _ = self.process()
        try:
            write_destination(files, self.destination, self.clean)
        except Exception as e:
            raise BuildError('write', e) from e
        return files
