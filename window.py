import os
import logging
import binascii
from base64 import b64encode, b64decode
from urllib.parse import urlsplit, urlunsplit

from document import DOMException, EventTarget, INTERFACES, parse_html

logger = logging.getLogger(__name__)

DEFAULT_URL = 'about:blank'
DEFAULT_USER_AGENT = 'Mozilla/5.0 (linux) AppleWebKit/537.36 (KHTML, like Gecko) domfixture/0.1.0'
LANGUAGE = 'en-US'
INNER_WIDTH = 1024
INNER_HEIGHT = 768

_SPECIAL_SCHEMES = ('ftp', 'http', 'https', 'ws', 'wss')


def _createInterfaces():
    """Returns fresh subclasses of every DOM interface, keyed by name.

    The subclasses keep the inheritance between interfaces, so a window's
    ``HTMLElement`` derives from that same window's ``Element``.
    """
    bound = {}
    for name, base in INTERFACES.items():
        parent = bound.get(base.__bases__[0].__name__)
        bases = (parent, base) if parent is not None else (base,)
        bound[name] = type(name, bases, {
            '__module__': base.__module__,
            '__qualname__': base.__qualname__,
        })
    return bound


class Location:
    def __init__(self, url):
        parts = urlsplit(url)
        if not parts.scheme:
            raise ValueError(f'"{url}" is not an absolute URL')

        self.protocol = parts.scheme + ':'
        self.hostname = parts.hostname or ''
        self.port = str(parts.port) if parts.port else ''
        self.host = self.hostname + (':' + self.port if self.port else '')
        self.pathname = parts.path or ('/' if parts.netloc else '')
        self.search = '?' + parts.query if parts.query else ''
        self.hash = '#' + parts.fragment if parts.fragment else ''
        self.href = urlunsplit((parts.scheme, parts.netloc, self.pathname, parts.query, parts.fragment))

        if parts.scheme in _SPECIAL_SCHEMES and self.host:
            self.origin = f'{self.protocol}//{self.host}'
        else:
            self.origin = 'null'

    def toString(self):
        return self.href

    def __str__(self):
        return self.href

    def __repr__(self):
        return f'<Location {self.href}>'

    def __getitem__(self, key):
        if key in dir(self):
            return getattr(self, key)


class Navigator:
    def __init__(self, user_agent):
        self.appCodeName = 'Mozilla'
        self.appName = 'Netscape'
        self.appVersion = user_agent[len('Mozilla/'):] if user_agent.startswith('Mozilla/') else user_agent
        self.cookieEnabled = True
        self.hardwareConcurrency = os.cpu_count() or 1
        self.language = LANGUAGE
        self.languages = [LANGUAGE]
        self.onLine = True
        self.platform = ''
        self.product = 'Gecko'
        self.productSub = '20030107'
        self.userAgent = user_agent
        self.vendor = 'Apple Computer, Inc.'
        self.vendorSub = ''
        self.webdriver = False

    def __getitem__(self, key):
        if key in dir(self):
            return getattr(self, key)


class Storage:
    def __init__(self):
        self._items = {}

    @property
    def length(self):
        return len(self._items)

    def key(self, index):
        keys = list(self._items)
        if 0 <= index < len(keys):
            return keys[index]
        return None

    def getItem(self, key):
        return self._items.get(str(key))

    def setItem(self, key, value):
        self._items[str(key)] = str(value)

    def removeItem(self, key):
        self._items.pop(str(key), None)

    def clear(self):
        self._items.clear()

    def __len__(self):
        return self.length

    def __getitem__(self, key):
        if key in dir(self):
            return getattr(self, key)
        return self.getItem(key)


class VirtualConsole:
    LEVELS = {
        'debug': logging.DEBUG,
        'log': logging.INFO,
        'info': logging.INFO,
        'dir': logging.INFO,
        'warn': logging.WARNING,
        'error': logging.ERROR,
    }

    def __init__(self, logger_=None):
        self._logger = logger_ or logging.getLogger(__name__ + '.console')
        self._listeners = {}

    def on(self, method, callback):
        if method not in self.LEVELS:
            raise ValueError(f'unknown console method "{method}"')
        self._listeners.setdefault(method, []).append(callback)

    def _emit(self, method, args):
        self._logger.log(self.LEVELS[method], ' '.join(str(arg) for arg in args))
        for callback in self._listeners.get(method, []):
            callback(*args)

    def debug(self, *args):
        self._emit('debug', args)

    def log(self, *args):
        self._emit('log', args)

    def info(self, *args):
        self._emit('info', args)

    def dir(self, *args):
        self._emit('dir', args)

    def warn(self, *args):
        self._emit('warn', args)

    def error(self, *args):
        self._emit('error', args)

    def __getitem__(self, key):
        if key in self.LEVELS:
            return getattr(self, key)


class Window(EventTarget):
    def __init__(self, html='', url=DEFAULT_URL, referrer='', content_type='text/html',
                 user_agent=DEFAULT_USER_AGENT, console=None):
        object.__setattr__(self, '_on_handlers', {})
        super().__init__()

        for name, interface in _createInterfaces().items():
            setattr(self, name, interface)

        self.window = self
        self.self = self
        self.globalThis = self
        self.top = self
        self.parent = self
        self.frames = self

        self.closed = False
        self.name = ''
        self.length = 0
        self.location = Location(url)
        self.navigator = Navigator(user_agent)
        self.console = console if console is not None else VirtualConsole()
        self.localStorage = Storage()
        self.sessionStorage = Storage()
        self.innerWidth = INNER_WIDTH
        self.innerHeight = INNER_HEIGHT
        self.outerWidth = INNER_WIDTH
        self.outerHeight = INNER_HEIGHT
        self.devicePixelRatio = 1
        self.scrollX = self.pageXOffset = 0
        self.scrollY = self.pageYOffset = 0

        self.document = self.HTMLDocument(self, self.location.href, content_type)
        self.document.referrer = referrer
        parse_html(self.document, html)

    @property
    def origin(self):
        return self.location.origin

    def atob(self, data):
        try:
            return b64decode(''.join(str(data).split()), validate=True).decode('latin-1')
        except (binascii.Error, ValueError):
            raise DOMException('The string to be decoded is not correctly encoded.', 'InvalidCharacterError')

    def btoa(self, data):
        try:
            return b64encode(str(data).encode('latin-1')).decode('ascii')
        except UnicodeEncodeError:
            raise DOMException('The string to be encoded contains characters outside of the Latin1 range.',
                               'InvalidCharacterError')

    def trigger_event(self, event_type, event=None):
        if not event:
            event = self.Event(event_type)
        return self.dispatchEvent(event)

    def close(self):
        if self.closed:
            return
        self.closed = True
        self._event_listeners.clear()
        self._on_handlers.clear()
        self.sessionStorage.clear()
        self.document._active_element = None
        self.document.defaultView = None
        logger.debug('closed window at %s', self.location.href)

    def _invoke_listeners(self, event):
        super()._invoke_listeners(event)
        handler = self._on_handlers.get(f'on{event.type}')
        if callable(handler) and not event._stopped_immediately:
            handler(event)

    def __setattr__(self, name, value):
        if name.startswith('on') and (callable(value) or value is None):
            if value is None:
                self._on_handlers.pop(name, None)
            else:
                self._on_handlers[name] = value
        else:
            super().__setattr__(name, value)

    def __getattr__(self, name):
        if name.startswith('on'):
            return self._on_handlers.get(name)
        raise AttributeError(f"'Window' object has no attribute '{name}'")

    def __getitem__(self, key):
        if key in dir(self):
            return getattr(self, key)

    def __repr__(self):
        return f'<Window {self.location.href}>'
