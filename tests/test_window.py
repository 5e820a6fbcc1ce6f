import logging

import pytest

import document as dom
from document import DOMException
from environment import DOMEnvironment
from window import DEFAULT_USER_AGENT, Location, Storage, VirtualConsole


@pytest.fixture
def window(environment):
    return environment.window


def test_self_references(window):
    for name in ("window", "self", "globalThis", "top", "parent", "frames"):
        assert getattr(window, name) is window
    assert window["document"] is window.document
    assert window["missing"] is None


def test_interfaces_keep_their_hierarchy(window):
    assert issubclass(window.HTMLElement, window.Element)
    assert issubclass(window.Element, window.Node)
    assert issubclass(window.Node, window.EventTarget)
    assert issubclass(window.Text, window.CharacterData)
    assert issubclass(window.HTMLDocument, window.Document)
    assert issubclass(window.MouseEvent, window.Event)
    assert issubclass(window.Element, dom.Element)
    assert window.Element.__name__ == "Element"
    assert not issubclass(window.HTMLCollection, window.NodeList)


def test_nodes_are_instances_of_window_interfaces(window):
    text = window.document.createTextNode("x")
    element = window.document.createElement("div")

    assert isinstance(text, window.Text)
    assert isinstance(text, window.Node)
    assert isinstance(element, window.HTMLElement)
    assert isinstance(window.document.createComment("c"), window.Comment)
    assert isinstance(window.document.doctype, window.DocumentType)
    assert isinstance(window.document.querySelectorAll("p"), window.NodeList)


def test_location(window):
    location = window.location

    assert location.href == "https://example.org/page?q=1#top"
    assert location.protocol == "https:"
    assert location.host == "example.org"
    assert location.hostname == "example.org"
    assert location.port == ""
    assert location.pathname == "/page"
    assert location.search == "?q=1"
    assert location.hash == "#top"
    assert location.origin == "https://example.org"
    assert window.origin == "https://example.org"
    assert str(location) == location.toString() == location.href
    assert window.document.URL == location.href
    assert window.document.location is location


def test_location_variants():
    blank = Location("about:blank")
    assert blank.href == "about:blank"
    assert blank.origin == "null"
    assert blank.host == ""

    local = Location("http://localhost:8080")
    assert local.href == "http://localhost:8080/"
    assert local.host == "localhost:8080"
    assert local.port == "8080"
    assert local.origin == "http://localhost:8080"
    assert local["pathname"] == "/"


def test_relative_url_is_rejected():
    with pytest.raises(ValueError):
        DOMEnvironment("", url="/relative/path")


def test_navigator(window):
    navigator = window.navigator

    assert navigator.userAgent == DEFAULT_USER_AGENT
    assert navigator.appVersion == DEFAULT_USER_AGENT[len("Mozilla/"):]
    assert navigator["language"] == "en-US"
    assert navigator.hardwareConcurrency >= 1
    assert navigator.webdriver is False


def test_storage():
    storage = Storage()

    storage.setItem("a", 1)
    storage.setItem("b", "two")

    assert storage.getItem("a") == "1"
    assert storage["b"] == "two"
    assert storage.length == 2
    assert storage.key(1) == "b"
    assert storage.key(2) is None
    assert storage.getItem("missing") is None

    storage.removeItem("a")
    assert len(storage) == 1

    storage.clear()
    assert storage.length == 0


def test_window_storages_are_separate(window):
    window.localStorage.setItem("k", "v")

    assert window.sessionStorage.getItem("k") is None
    assert DOMEnvironment("").window.localStorage.getItem("k") is None


def test_console_forwards_to_logging(window, caplog):
    caplog.set_level(logging.DEBUG, logger="window.console")

    window.console.log("hello", 42)
    window.console.warn("careful")
    window.console.error("broken")

    assert [(r.levelno, r.getMessage()) for r in caplog.records] == [
        (logging.INFO, "hello 42"),
        (logging.WARNING, "careful"),
        (logging.ERROR, "broken"),
    ]


def test_console_listeners():
    console = VirtualConsole(logging.getLogger("test.console"))
    received = []
    console.on("info", lambda *args: received.append(args))

    console.info("a", 1)
    console.log("ignored")
    console["info"]("b")

    assert received == [("a", 1), ("b",)]
    with pytest.raises(ValueError):
        console.on("table", print)


def test_click_bubbles_to_window(window):
    document = window.document
    bold = document.querySelector("b")
    seen = []

    for target in (bold, bold.parentNode, document.body, document.documentElement, document, window):
        target.addEventListener("click", lambda event: seen.append(event.currentTarget))

    assert bold.click() is True

    assert seen == [
        bold, bold.parentNode, document.body, document.documentElement, document, window,
    ]


def test_stop_propagation(window):
    document = window.document
    bold = document.querySelector("b")
    seen = []

    bold.addEventListener("click", lambda event: event.stopPropagation())
    document.body.addEventListener("click", seen.append)

    bold.click()

    assert seen == []


def test_stop_immediate_propagation(window):
    element = window.document.body
    seen = []

    element.addEventListener("ping", lambda event: event.stopImmediatePropagation())
    element.addEventListener("ping", seen.append)

    element.dispatchEvent(window.Event("ping"))

    assert seen == []


def test_prevent_default(window):
    link = window.document.createElement("a")
    window.document.body.appendChild(link)
    window.addEventListener("click", lambda event: event.preventDefault())

    assert link.click() is False

    event = window.Event("custom")
    event.preventDefault()
    assert event.defaultPrevented is False


def test_non_bubbling_event_stays_at_target(window):
    document = window.document
    seen = []
    document.body.addEventListener("custom", seen.append)
    event = window.Event("custom")

    document.getElementById("main").dispatchEvent(event)

    assert seen == []
    assert event.target is document.getElementById("main")
    assert event.currentTarget is None


def test_remove_event_listener(window):
    seen = []
    window.addEventListener("resize", seen.append)
    window.removeEventListener("resize", seen.append)
    window.removeEventListener("never-added", seen.append)

    window.trigger_event("resize")

    assert seen == []


def test_on_handler_properties(window):
    seen = []

    window.onload = seen.append
    assert window.onload == seen.append
    window.trigger_event("load")

    window.onload = None
    window.trigger_event("load")

    assert len(seen) == 1
    assert seen[0].type == "load"
    assert window.onresize is None


def test_focus_and_blur(window):
    document = window.document
    field = document.querySelector("input")
    seen = []
    field.addEventListener("focus", lambda event: seen.append("focus"))
    field.addEventListener("blur", lambda event: seen.append("blur"))

    assert document.activeElement is document.body

    field.focus()
    assert document.activeElement is field

    field.blur()
    assert document.activeElement is document.body
    assert seen == ["focus", "blur"]


def test_focus_ignores_detached_elements(window):
    detached = window.document.createElement("input")

    detached.focus()

    assert window.document.activeElement is window.document.body


def test_atob_btoa(window):
    assert window.btoa("hello") == "aGVsbG8="
    assert window.atob("aGVsbG8=") == "hello"
    assert window.atob(window.btoa("\xff\x00")) == "\xff\x00"


@pytest.mark.parametrize(("method", "argument"), (("btoa", "€"), ("atob", "***")))
def test_atob_btoa_errors(window, method, argument):
    with pytest.raises(DOMException) as excinfo:
        getattr(window, method)(argument)
    assert excinfo.value.name == "InvalidCharacterError"


def test_close(window):
    document = window.document
    seen = []
    window.addEventListener("load", seen.append)
    window.sessionStorage.setItem("k", "v")

    window.close()
    window.close()

    assert window.closed is True
    assert document.defaultView is None
    assert window.sessionStorage.length == 0
    window.trigger_event("load")
    assert seen == []
    # nodes created after closing fall back to the shared classes
    assert type(document.createElement("p")) is dom.HTMLElement


def test_stopped_event_propagates_when_dispatched_again(window):
    document = window.document
    seen = []

    def stopper(event):
        event.stopPropagation()

    document.body.addEventListener("ping", lambda event: seen.append("body"))
    document.body.addEventListener("ping", stopper)
    document.addEventListener("ping", lambda event: seen.append("document"))
    event = window.Event("ping", {"bubbles": True})

    document.body.dispatchEvent(event)
    document.body.removeEventListener("ping", stopper)
    document.body.dispatchEvent(event)

    assert seen == ["body", "body", "document"]


def test_immediately_stopped_event_reaches_all_listeners_next_time(window):
    element = window.document.body
    seen = []

    def stopper(event):
        event.stopImmediatePropagation()

    element.addEventListener("ping", stopper)
    element.addEventListener("ping", seen.append)
    event = window.Event("ping")

    element.dispatchEvent(event)
    element.removeEventListener("ping", stopper)
    element.dispatchEvent(event)

    assert seen == [event]
