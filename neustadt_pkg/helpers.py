"""
Template helpers registered into the Jinja2 environment used by layouts.
"""

from datetime import datetime, date
from dateutil import parser as date_parser
from markupsafe import Markup

DEFAULT_DATE_FORMAT = '%B %d, %Y'


def to_datetime(value):
    """Coerce a front-matter date value into a naive datetime, or None."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.replace(tzinfo=None) - value.utcoffset()
        return value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        try:
            return to_datetime(date_parser.parse(value))
        except (ValueError, OverflowError):
            return None
    return None


def moment(value=None, fmt=DEFAULT_DATE_FORMAT):
    """
    Format a date for display.

    With no value the current time is formatted. Values that cannot be
    parsed render as an empty string.
    """
    if value is None:
        date_obj = datetime.now()
    else:
        date_obj = to_datetime(value)
        if date_obj is None:
            return ''
    return date_obj.strftime(fmt)


def each_upto(items, limit, caller=None, inverse=None):
    """
    Render the caller block for at most the first `limit` items.

    Used as a Jinja2 call block::

        {% call(post) each_upto(collections.essays, 5, inverse="None yet.") %}
          <li>{{ post.title }}</li>
        {% endcall %}

    When `items` is empty or missing the `inverse` branch is rendered
    instead; it may be a string or a callable such as a macro.
    """
    if not items:
        if inverse is None:
            return Markup('')
        if callable(inverse):
            return Markup(inverse())
        return Markup(inverse)

    result = []
    for i, item in enumerate(items):
        if i >= int(limit):
            break
        result.append(str(caller(item)) if caller else str(item))
    return Markup(''.join(result))


def register_helpers(env):
    """Register the helpers on a Jinja2 environment."""
    env.globals['each_upto'] = each_upto
    env.globals['moment'] = moment
    env.filters['moment'] = moment
    return env
