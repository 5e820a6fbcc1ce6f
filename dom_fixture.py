"""Builds a throwaway DOM environment for tests that need browser-like globals.

``init_dom()`` hands back everything as a :class:`DOMFixture`. Test code that
expects bare ``window``/``document`` names can publish the fixture into the
process-wide ``builtins`` namespace with :func:`install_globals`.
"""
import logging
import builtins
import threading
from collections import namedtuple

from environment import DOMEnvironment

logger = logging.getLogger(__name__)

FIXTURE_HTML = '<!DOCTYPE html><body></body></html>'
GLOBAL_NAMES = ('HTMLDocument', 'Element', 'HTMLCollection', 'NodeList', 'window', 'document')

_install_lock = threading.Lock()


class DOMFixture(namedtuple('DOMFixture', ('environment',) + GLOBAL_NAMES)):
    __slots__ = ()

    def bindings(self):
        return {name: getattr(self, name) for name in GLOBAL_NAMES}


def init_dom():
    environment = DOMEnvironment(FIXTURE_HTML)
    window = environment.window
    return DOMFixture(
        environment=environment,
        HTMLDocument=window.HTMLDocument,
        Element=window.Element,
        HTMLCollection=window.HTMLCollection,
        NodeList=window.NodeList,
        window=window,
        document=window.document,
    )


def _namespace(namespace):
    return vars(builtins) if namespace is None else namespace


def install_globals(fixture, namespace=None):
    """Binds the fixture's window, document and types under their DOM names.

    Overwrites whatever the names held before; the last installed fixture wins.
    """
    bindings = fixture.bindings()
    with _install_lock:
        _namespace(namespace).update(bindings)
    logger.debug('installed DOM globals for %r', fixture.environment)
    return fixture


def uninstall_globals(namespace=None):
    namespace = _namespace(namespace)
    with _install_lock:
        for name in GLOBAL_NAMES:
            namespace.pop(name, None)


def init_dom_globals(namespace=None):
    return install_globals(init_dom(), namespace)
