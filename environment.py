import logging

from document import serialize
from window import DEFAULT_URL, DEFAULT_USER_AGENT, Window

logger = logging.getLogger(__name__)

HTML_CONTENT_TYPES = ('text/html', 'application/xhtml+xml')


class DOMEnvironment:
    """An in-memory browser environment built from an HTML string.

    Each instance owns exactly one :class:`window.Window`; the document and
    the DOM interface classes are reached through it.
    """

    def __init__(self, html='', url=DEFAULT_URL, referrer='', content_type='text/html',
                 user_agent=DEFAULT_USER_AGENT, console=None):
        if not isinstance(html, (str, bytes)):
            raise TypeError(f'html must be str or bytes, not {type(html).__name__}')
        if not isinstance(content_type, str):
            raise TypeError(f'content_type must be str, not {type(content_type).__name__}')
        if content_type.split(';')[0].strip().lower() not in HTML_CONTENT_TYPES:
            raise ValueError(f'unsupported content type "{content_type}"')

        logger.debug('creating environment at %s from %d characters of markup', url, len(html))
        self.window = Window(
            html=html,
            url=url,
            referrer=referrer,
            content_type=content_type,
            user_agent=user_agent,
            console=console,
        )

    @property
    def document(self):
        return self.window.document

    def serialize(self):
        return serialize(self.window.document)

    def close(self):
        self.window.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def __repr__(self):
        return f'<DOMEnvironment {self.window.location.href}>'
