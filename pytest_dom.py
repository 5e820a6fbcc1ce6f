import builtins

import pytest

from dom_fixture import GLOBAL_NAMES, init_dom, install_globals, uninstall_globals


@pytest.fixture
def dom():
    fixture = init_dom()
    yield fixture
    fixture.environment.close()


@pytest.fixture
def dom_globals(dom):
    namespace = vars(builtins)
    previous = {name: namespace[name] for name in GLOBAL_NAMES if name in namespace}
    install_globals(dom, namespace)
    yield dom
    uninstall_globals(namespace)
    namespace.update(previous)
