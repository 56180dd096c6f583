"""
Neustadt - the build for the Neustadt.fr site.

Markdown content is filtered for drafts, grouped into collections,
syntax-highlighted, rendered to HTML, given permalinks and wrapped in Jinja2
layouts. During development the result is served and rebuilt on change.
"""

__version__ = "1.0.0"
__author__ = "Parimal Satyal"

from .core import Neustadt
from .pipeline import Pipeline, BuildError, ContentRecord

__all__ = ['Neustadt', 'Pipeline', 'BuildError', 'ContentRecord']
