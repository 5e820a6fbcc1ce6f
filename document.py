import re
import time
from bs4 import BeautifulSoup
from bs4.element import Comment as SoupComment, Doctype, PreformattedString, Tag

VOID_ELEMENTS = frozenset((
    'area', 'base', 'basefont', 'bgsound', 'br', 'col', 'embed', 'frame', 'hr',
    'img', 'input', 'keygen', 'link', 'meta', 'param', 'source', 'track', 'wbr'
))
RAW_TEXT_ELEMENTS = frozenset((
    'iframe', 'noembed', 'noframes', 'plaintext', 'script', 'style', 'xmp'
))
METADATA_ELEMENTS = frozenset((
    'base', 'link', 'meta', 'noscript', 'script', 'style', 'template', 'title'
))

_WHITESPACE = ' \t\n\r\f'
_VALID_NAME = re.compile(r'^[A-Za-z_:][^\s/>\x00=]*$')
_DOCTYPE_IDS = re.compile(
    r'^(?P<name>\S*)(?:\s+PUBLIC\s+(?P<q1>["\'])(?P<public>.*?)(?P=q1))?'
    r'(?:\s+(?:SYSTEM\s+)?(?P<q2>["\'])(?P<system>.*?)(?P=q2))?',
    re.IGNORECASE | re.DOTALL
)


class DOMException(Exception):
    def __init__(self, message='', name='Error'):
        super().__init__(message)
        self.message = message
        self.name = name

    def __str__(self):
        return f'{self.name}: {self.message}'


class Event:
    def __init__(self, type_, options=None):
        options = options or {}
        self.type = type_
        self.bubbles = options.get('bubbles', False)
        self.cancelable = options.get('cancelable', False)
        self.defaultPrevented = False
        self.target = None
        self.currentTarget = None
        self.timeStamp = time.time() * 1000
        self._stopped = False
        self._stopped_immediately = False

    def preventDefault(self):
        if self.cancelable:
            self.defaultPrevented = True

    def stopPropagation(self):
        self._stopped = True

    def stopImmediatePropagation(self):
        self._stopped = True
        self._stopped_immediately = True

    def __repr__(self):
        return f'<Event type="{self.type}">'


class MouseEvent(Event):
    def __init__(self, type_, options=None):
        super().__init__(type_, options)
        options = options or {}
        self.altKey = options.get('altKey', False)
        self.button = options.get('button', 0)
        self.buttons = options.get('buttons', 0)
        self.clientX = options.get('clientX', 0)
        self.clientY = options.get('clientY', 0)
        self.ctrlKey = options.get('ctrlKey', False)
        self.metaKey = options.get('metaKey', False)
        self.relatedTarget = options.get('relatedTarget', None)
        self.screenX = options.get('screenX', 0)
        self.screenY = options.get('screenY', 0)
        self.shiftKey = options.get('shiftKey', False)
        self.x = options.get('x', self.clientX)
        self.y = options.get('y', self.clientY)

    def __repr__(self):
        return f"<MouseEvent type='{self.type}' client=({self.clientX},{self.clientY})>"


class EventTarget:
    def __init__(self):
        self._event_listeners = {}

    def addEventListener(self, event_type, callback):
        listeners = self._event_listeners.setdefault(event_type, [])
        if callback not in listeners:
            listeners.append(callback)

    def removeEventListener(self, event_type, callback):
        if event_type in self._event_listeners:
            try:
                self._event_listeners[event_type].remove(callback)
            except ValueError:
                pass

    def dispatchEvent(self, event):
        event.target = self
        path = list(self._event_path()) if event.bubbles else [self]
        for current in path:
            event.currentTarget = current
            current._invoke_listeners(event)
            if event._stopped:
                break
        event.currentTarget = None
        event._stopped = False
        event._stopped_immediately = False
        return not event.defaultPrevented

    def _event_path(self):
        yield self

    def _invoke_listeners(self, event):
        # listeners added during dispatch only see the next event
        for callback in list(self._event_listeners.get(event.type, [])):
            callback(event)
            if event._stopped_immediately:
                break


class _Collection:
    # source is called on every access, so a collection built over a live
    # query reflects later tree mutations
    def __init__(self, source):
        self._source = source

    @property
    def length(self):
        return len(self._source())

    def item(self, index):
        nodes = self._source()
        if 0 <= index < len(nodes):
            return nodes[index]
        return None

    def __len__(self):
        return self.length

    def __iter__(self):
        return iter(self._source())

    def __contains__(self, node):
        return any(item is node for item in self._source())

    def __getitem__(self, key):
        if isinstance(key, (int, slice)):
            return self._source()[key]
        if key in dir(self):
            return getattr(self, key)

    def __repr__(self):
        return f'<{type(self).__name__} length={self.length}>'


class NodeList(_Collection):
    def forEach(self, callback):
        for index, node in enumerate(self._source()):
            callback(node, index, self)


class HTMLCollection(_Collection):
    def namedItem(self, name):
        if not name:
            return None
        for element in self._source():
            if element.id == name:
                return element
        for element in self._source():
            if element.getAttribute('name') == name:
                return element
        return None

    def __getitem__(self, key):
        if isinstance(key, (int, slice)):
            return self._source()[key]
        if key in dir(self):
            return getattr(self, key)
        return self.namedItem(key)


class Node(EventTarget):
    ELEMENT_NODE = 1
    ATTRIBUTE_NODE = 2
    TEXT_NODE = 3
    CDATA_SECTION_NODE = 4
    ENTITY_REFERENCE_NODE = 5
    ENTITY_NODE = 6
    PROCESSING_INSTRUCTION_NODE = 7
    COMMENT_NODE = 8
    DOCUMENT_NODE = 9
    DOCUMENT_TYPE_NODE = 10
    DOCUMENT_FRAGMENT_NODE = 11
    NOTATION_NODE = 12

    def __init__(self, document, node_type, node_name):
        super().__init__()
        self.nodeType = node_type
        self.nodeName = node_name
        self.parentNode = None
        self._document = document
        self._child_nodes = []

    @property
    def ownerDocument(self):
        return self._document

    @property
    def parentElement(self):
        parent = self.parentNode
        if parent is not None and parent.nodeType == Node.ELEMENT_NODE:
            return parent
        return None

    @property
    def childNodes(self):
        return self._interface('NodeList')(lambda: list(self._child_nodes))

    @property
    def firstChild(self):
        return self._child_nodes[0] if self._child_nodes else None

    @property
    def lastChild(self):
        return self._child_nodes[-1] if self._child_nodes else None

    @property
    def previousSibling(self):
        return self._sibling(-1)

    @property
    def nextSibling(self):
        return self._sibling(1)

    @property
    def nodeValue(self):
        return None

    @property
    def isConnected(self):
        node = self
        while node.parentNode is not None:
            node = node.parentNode
        return node.nodeType == Node.DOCUMENT_NODE

    @property
    def textContent(self):
        return ''.join(
            node.data for node in self._descendants()
            if node.nodeType == Node.TEXT_NODE
        )

    @textContent.setter
    def textContent(self, value):
        self._replace_all_children(self._text_nodes(value))

    def hasChildNodes(self):
        return bool(self._child_nodes)

    def contains(self, other):
        while other is not None:
            if other is self:
                return True
            other = other.parentNode
        return False

    def appendChild(self, node):
        return self.insertBefore(node, None)

    def insertBefore(self, node, reference):
        self._ensure_insertable(node)
        if reference is not None and reference.parentNode is not self:
            raise DOMException('The reference node is not a child of this node.', 'NotFoundError')
        if reference is node:
            reference = node.nextSibling
        if node.parentNode is not None:
            node.parentNode._detach(node)
        index = len(self._child_nodes) if reference is None else self._index_of(reference)
        self._attach(node, index)
        return node

    def removeChild(self, node):
        if node.parentNode is not self:
            raise DOMException('The node to be removed is not a child of this node.', 'NotFoundError')
        self._detach(node)
        return node

    def replaceChild(self, node, child):
        if child.parentNode is not self:
            raise DOMException('The node to be replaced is not a child of this node.', 'NotFoundError')
        self._ensure_insertable(node, replacing=child)
        if node is child:
            return child
        reference = child.nextSibling
        if reference is node:
            reference = node.nextSibling
        self._detach(child)
        self.insertBefore(node, reference)
        return child

    def cloneNode(self, deep=False):
        clone = self._clone()
        if deep:
            for child in self._child_nodes:
                clone._attach(child.cloneNode(True), len(clone._child_nodes))
        return clone

    def _clone(self):
        raise DOMException(f'{type(self).__name__} nodes cannot be cloned.', 'NotSupportedError')

    def _interface(self, name):
        document = self._owner()
        window = document.defaultView if document is not None else None
        if window is None:
            return INTERFACES[name]
        return getattr(window, name)

    def _sibling(self, offset):
        parent = self.parentNode
        if parent is None:
            return None
        index = parent._index_of(self) + offset
        if 0 <= index < len(parent._child_nodes):
            return parent._child_nodes[index]
        return None

    def _index_of(self, child):
        for index, node in enumerate(self._child_nodes):
            if node is child:
                return index
        raise ValueError(child)

    def _descendants(self):
        for child in self._child_nodes:
            yield child
            yield from child._descendants()

    def _event_path(self):
        node = self
        while node is not None:
            yield node
            if node.nodeType == Node.DOCUMENT_NODE and node.defaultView is not None:
                yield node.defaultView
            node = node.parentNode

    def _ensure_insertable(self, node, replacing=None):
        if node.nodeType == Node.DOCUMENT_NODE:
            raise DOMException('Documents cannot be inserted.', 'HierarchyRequestError')
        if node.contains(self):
            raise DOMException('The new child is an ancestor of the parent.', 'HierarchyRequestError')
        if self.nodeType in (Node.TEXT_NODE, Node.COMMENT_NODE, Node.DOCUMENT_TYPE_NODE):
            raise DOMException(f'{self.nodeName} nodes cannot have children.', 'HierarchyRequestError')

    def _attach(self, node, index):
        self._child_nodes.insert(index, node)
        node.parentNode = self
        if node._document is not self._owner():
            node._adopt(self._owner())

    def _detach(self, node):
        del self._child_nodes[self._index_of(node)]
        node.parentNode = None

    def _owner(self):
        return self._document

    def _adopt(self, document):
        self._document = document
        for child in self._child_nodes:
            child._adopt(document)

    def _replace_all_children(self, nodes):
        for child in list(self._child_nodes):
            self._detach(child)
        for node in nodes:
            self.appendChild(node)

    def _text_nodes(self, value):
        if value is None or value == '':
            return []
        return [self._owner().createTextNode(str(value))]

    def __repr__(self):
        return f'<{type(self).__name__} {self.nodeName}>'


class CharacterData(Node):
    def __init__(self, document, node_type, node_name, data=''):
        super().__init__(document, node_type, node_name)
        self.data = str(data)

    @property
    def nodeValue(self):
        return self.data

    @nodeValue.setter
    def nodeValue(self, value):
        self.data = '' if value is None else str(value)

    @property
    def length(self):
        return len(self.data)

    @property
    def textContent(self):
        return self.data

    @textContent.setter
    def textContent(self, value):
        self.data = '' if value is None else str(value)

    def _clone(self):
        return type(self)(self._document, self.data)

    def __repr__(self):
        return f'<{type(self).__name__} {self.data!r}>'


class Text(CharacterData):
    def __init__(self, document, data=''):
        super().__init__(document, Node.TEXT_NODE, '#text', data)


class Comment(CharacterData):
    def __init__(self, document, data=''):
        super().__init__(document, Node.COMMENT_NODE, '#comment', data)


class DocumentType(Node):
    def __init__(self, document, name, public_id='', system_id=''):
        super().__init__(document, Node.DOCUMENT_TYPE_NODE, name)
        self.name = name
        self.publicId = public_id
        self.systemId = system_id

    @property
    def textContent(self):
        return None

    @textContent.setter
    def textContent(self, value):
        pass

    def _clone(self):
        return type(self)(self._document, self.name, self.publicId, self.systemId)


class ClassList:
    def __init__(self, element):
        self._element = element

    def _tokens(self):
        return self._element.className.split()

    @property
    def length(self):
        return len(self._tokens())

    def contains(self, token):
        return token in self._tokens()

    def add(self, *tokens):
        current = self._tokens()
        current.extend(token for token in tokens if token not in current)
        self._element.className = ' '.join(current)

    def remove(self, *tokens):
        self._element.className = ' '.join(
            token for token in self._tokens() if token not in tokens
        )

    def toggle(self, token, force=None):
        present = self.contains(token)
        if force is None:
            force = not present
        if force and not present:
            self.add(token)
        elif not force and present:
            self.remove(token)
        return force

    def __iter__(self):
        return iter(self._tokens())

    def __len__(self):
        return self.length

    def __repr__(self):
        return f'<ClassList {self._tokens()}>'


class Element(Node):
    def __init__(self, document, local_name):
        super().__init__(document, Node.ELEMENT_NODE, local_name.upper())
        self.localName = local_name
        self.tagName = local_name.upper()
        self.attributes = {}

    @property
    def id(self):
        return self.attributes.get('id', '')

    @id.setter
    def id(self, value):
        self.attributes['id'] = str(value)

    @property
    def className(self):
        return self.attributes.get('class', '')

    @className.setter
    def className(self, value):
        self.attributes['class'] = str(value)

    @property
    def classList(self):
        return ClassList(self)

    def getAttribute(self, name):
        return self.attributes.get(name.lower(), None)

    def setAttribute(self, name, value):
        if not _VALID_NAME.match(name):
            raise DOMException(f'"{name}" is not a valid attribute name.', 'InvalidCharacterError')
        self.attributes[name.lower()] = str(value)

    def removeAttribute(self, name):
        self.attributes.pop(name.lower(), None)

    def hasAttribute(self, name):
        return name.lower() in self.attributes

    def getAttributeNames(self):
        return list(self.attributes)

    @property
    def children(self):
        return self._interface('HTMLCollection')(self._element_children)

    @property
    def childElementCount(self):
        return len(self._element_children())

    @property
    def firstElementChild(self):
        elements = self._element_children()
        return elements[0] if elements else None

    @property
    def lastElementChild(self):
        elements = self._element_children()
        return elements[-1] if elements else None

    @property
    def previousElementSibling(self):
        node = self.previousSibling
        while node is not None and node.nodeType != Node.ELEMENT_NODE:
            node = node.previousSibling
        return node

    @property
    def nextElementSibling(self):
        node = self.nextSibling
        while node is not None and node.nodeType != Node.ELEMENT_NODE:
            node = node.nextSibling
        return node

    @property
    def innerHTML(self):
        return ''.join(serialize(child) for child in self._child_nodes)

    @innerHTML.setter
    def innerHTML(self, markup):
        self._replace_all_children(parse_fragment(self._document, markup))

    @property
    def outerHTML(self):
        return serialize(self)

    def append(self, *nodes):
        for node in self._nodes_from(nodes):
            self.appendChild(node)

    def prepend(self, *nodes):
        reference = self.firstChild
        for node in self._nodes_from(nodes):
            self.insertBefore(node, reference)

    def remove(self):
        if self.parentNode is not None:
            self.parentNode.removeChild(self)

    def getElementsByTagName(self, tag_name):
        return _elements_by_tag_name(self, tag_name)

    def getElementsByClassName(self, class_names):
        return _elements_by_class_name(self, class_names)

    def querySelector(self, selector):
        return _query_selector(self, selector)

    def querySelectorAll(self, selector):
        return _query_selector_all(self, selector)

    def matches(self, selector):
        return any(_match_complex(self, steps) for steps in parse_selector(selector))

    def closest(self, selector):
        groups = parse_selector(selector)
        element = self
        while element is not None:
            if any(_match_complex(element, steps) for steps in groups):
                return element
            element = element.parentElement
        return None

    def _element_children(self):
        return [node for node in self._child_nodes if node.nodeType == Node.ELEMENT_NODE]

    def _nodes_from(self, items):
        return [
            self._document.createTextNode(item) if isinstance(item, str) else item
            for item in items
        ]

    def _clone(self):
        clone = type(self)(self._document, self.localName)
        clone.attributes = dict(self.attributes)
        return clone

    def __repr__(self):
        return f"<{self.tagName} class='{self.className}' id='{self.id}'>"


class HTMLElement(Element):
    @property
    def hidden(self):
        return self.hasAttribute('hidden')

    @hidden.setter
    def hidden(self, value):
        if value:
            self.setAttribute('hidden', '')
        else:
            self.removeAttribute('hidden')

    def click(self):
        event = self._interface('MouseEvent')('click', {'bubbles': True, 'cancelable': True})
        return self.dispatchEvent(event)

    def focus(self):
        document = self._document
        if not self.isConnected or document.activeElement is self:
            return
        previous = document._active_element
        if previous is not None:
            previous.blur()
        document._active_element = self
        self.dispatchEvent(self._interface('Event')('focus'))

    def blur(self):
        document = self._document
        if document._active_element is not self:
            return
        document._active_element = None
        self.dispatchEvent(self._interface('Event')('blur'))


class Document(Node):
    def __init__(self, window=None, url='about:blank', content_type='text/html'):
        super().__init__(None, Node.DOCUMENT_NODE, '#document')
        self.defaultView = window
        self.URL = url
        self.documentURI = url
        self.contentType = content_type
        self.readyState = 'complete'
        self._active_element = None

    @property
    def ownerDocument(self):
        return None

    @property
    def location(self):
        return self.defaultView.location if self.defaultView is not None else None

    @property
    def textContent(self):
        return None

    @textContent.setter
    def textContent(self, value):
        pass

    @property
    def doctype(self):
        for node in self._child_nodes:
            if node.nodeType == Node.DOCUMENT_TYPE_NODE:
                return node
        return None

    @property
    def documentElement(self):
        for node in self._child_nodes:
            if node.nodeType == Node.ELEMENT_NODE:
                return node
        return None

    @property
    def head(self):
        return self._root_child('head')

    @property
    def body(self):
        return self._root_child('body')

    @property
    def title(self):
        element = self.querySelector('title')
        if element is None:
            return ''
        return ' '.join(element.textContent.split())

    @title.setter
    def title(self, value):
        element = self.querySelector('title')
        if element is None:
            head = self.head
            if head is None:
                return
            element = head.appendChild(self.createElement('title'))
        element.textContent = value

    @property
    def activeElement(self):
        element = self._active_element
        if element is not None and element.isConnected:
            return element
        return self.body

    @property
    def children(self):
        return self._interface('HTMLCollection')(
            lambda: [node for node in self._child_nodes if node.nodeType == Node.ELEMENT_NODE]
        )

    def createElement(self, tag_name):
        if not _VALID_NAME.match(tag_name):
            raise DOMException(f'"{tag_name}" is not a valid tag name.', 'InvalidCharacterError')
        return self._interface('HTMLElement')(self, tag_name.lower())

    def createTextNode(self, data):
        return self._interface('Text')(self, data)

    def createComment(self, data):
        return self._interface('Comment')(self, data)

    def getElementById(self, element_id):
        for node in self._descendants():
            if node.nodeType == Node.ELEMENT_NODE and node.id == element_id:
                return node
        return None

    def getElementsByTagName(self, tag_name):
        return _elements_by_tag_name(self, tag_name)

    def getElementsByClassName(self, class_names):
        return _elements_by_class_name(self, class_names)

    def getElementsByName(self, name):
        return self._interface('NodeList')(
            lambda: [el for el in _element_descendants(self) if el.getAttribute('name') == name]
        )

    def querySelector(self, selector):
        return _query_selector(self, selector)

    def querySelectorAll(self, selector):
        return _query_selector_all(self, selector)

    def _root_child(self, local_name):
        root = self.documentElement
        if root is None:
            return None
        for node in root._element_children():
            if node.localName == local_name:
                return node
        return None

    def _owner(self):
        return self

    def _ensure_insertable(self, node, replacing=None):
        super()._ensure_insertable(node, replacing)
        root = self.documentElement
        if node.nodeType == Node.ELEMENT_NODE and root is not None and root is not replacing:
            raise DOMException('A document can only have one root element.', 'HierarchyRequestError')
        if node.nodeType == Node.TEXT_NODE:
            raise DOMException('Text cannot be inserted into a document.', 'HierarchyRequestError')

    def __repr__(self):
        return f'<{type(self).__name__} {self.URL}>'


class HTMLDocument(Document):
    pass


def _element_descendants(root):
    return [node for node in root._descendants() if node.nodeType == Node.ELEMENT_NODE]


def _elements_by_tag_name(root, tag_name):
    tag_name = tag_name.lower()
    return root._interface('HTMLCollection')(
        lambda: [
            el for el in _element_descendants(root)
            if tag_name == '*' or el.localName == tag_name
        ]
    )


def _elements_by_class_name(root, class_names):
    wanted = class_names.split()
    return root._interface('HTMLCollection')(
        lambda: [
            el for el in _element_descendants(root)
            if wanted and all(name in el.className.split() for name in wanted)
        ]
    )


def _query_selector(root, selector):
    groups = parse_selector(selector)
    for element in _element_descendants(root):
        if any(_match_complex(element, steps) for steps in groups):
            return element
    return None


def _query_selector_all(root, selector):
    groups = parse_selector(selector)
    matched = [
        element for element in _element_descendants(root)
        if any(_match_complex(element, steps) for steps in groups)
    ]
    return root._interface('NodeList')(lambda: list(matched))


# selectors

_SIMPLE_SELECTOR = re.compile(r'''
    (?P<tag>\*|[A-Za-z][\w-]*)
  | \#(?P<id>[\w-]+)
  | \.(?P<cls>[\w-]+)
  | \[\s*(?P<attr>[\w:-]+)\s*
      (?:(?P<op>[~|^$*]?=)\s*(?P<value>"[^"]*"|'[^']*'|[\w-]+)\s*)?
    \]
''', re.VERBOSE)
_COMBINATOR = re.compile(r'\s*([>+~])\s*|\s+')


def parse_selector(selector):
    """Parses a selector list into a tuple of complex selectors.

    Each complex selector is a tuple of ``(combinator, tests)`` steps, left to
    right; the first step has no combinator.
    """
    if not isinstance(selector, str) or not selector.strip():
        raise DOMException(f"'{selector}' is not a valid selector.", 'SyntaxError')
    return tuple(_parse_complex(part, selector) for part in _split_selector_list(selector))


def _split_selector_list(selector):
    parts, depth, quote, start = [], 0, None, 0
    for index, char in enumerate(selector):
        if quote:
            if char == quote:
                quote = None
        elif char in '"\'':
            quote = char
        elif char == '[':
            depth += 1
        elif char == ']':
            depth -= 1
        elif char == ',' and depth == 0:
            parts.append(selector[start:index])
            start = index + 1
    parts.append(selector[start:])
    return parts


def _parse_complex(text, selector):
    text = text.strip(_WHITESPACE)
    steps, combinator, pos = [], None, 0
    while True:
        tests = []
        while pos < len(text):
            match = _SIMPLE_SELECTOR.match(text, pos)
            if match is None:
                break
            if match.group('tag') is not None and tests:
                raise DOMException(f"'{selector}' is not a valid selector.", 'SyntaxError')
            tests.append(_selector_test(match))
            pos = match.end()
        if not tests:
            raise DOMException(f"'{selector}' is not a valid selector.", 'SyntaxError')
        steps.append((combinator, tuple(tests)))
        if pos == len(text):
            return tuple(steps)
        match = _COMBINATOR.match(text, pos)
        if match is None:
            raise DOMException(f"'{selector}' is not a valid selector.", 'SyntaxError')
        combinator = match.group(1) or ' '
        pos = match.end()


def _selector_test(match):
    if match.group('tag') is not None:
        return ('tag', match.group('tag').lower())
    if match.group('id') is not None:
        return ('id', match.group('id'))
    if match.group('cls') is not None:
        return ('class', match.group('cls'))
    value = match.group('value')
    if value is not None and value[0] in '"\'':
        value = value[1:-1]
    return ('attr', match.group('attr').lower(), match.group('op'), value)


def _match_test(element, test):
    kind = test[0]
    if kind == 'tag':
        return test[1] == '*' or element.localName == test[1]
    if kind == 'id':
        return element.id == test[1]
    if kind == 'class':
        return test[1] in element.className.split()
    _, name, op, value = test
    actual = element.getAttribute(name)
    if actual is None:
        return False
    if op is None:
        return True
    if op == '=':
        return actual == value
    if op == '~=':
        return value in actual.split()
    if op == '|=':
        return actual == value or actual.startswith(value + '-')
    if not value:
        return False
    if op == '^=':
        return actual.startswith(value)
    if op == '$=':
        return actual.endswith(value)
    return value in actual


def _match_complex(element, steps, index=None):
    if index is None:
        index = len(steps) - 1
    combinator, tests = steps[index]
    if not all(_match_test(element, test) for test in tests):
        return False
    if index == 0:
        return True
    if combinator == '>':
        parent = element.parentElement
        return parent is not None and _match_complex(parent, steps, index - 1)
    if combinator == '+':
        sibling = element.previousElementSibling
        return sibling is not None and _match_complex(sibling, steps, index - 1)
    if combinator == '~':
        sibling = element.previousElementSibling
        while sibling is not None:
            if _match_complex(sibling, steps, index - 1):
                return True
            sibling = sibling.previousElementSibling
        return False
    ancestor = element.parentElement
    while ancestor is not None:
        if _match_complex(ancestor, steps, index - 1):
            return True
        ancestor = ancestor.parentElement
    return False


# parsing

def _soup(markup):
    return BeautifulSoup(
        markup, 'html.parser',
        multi_valued_attributes=None,
        on_duplicate_attribute='ignore'
    )


def _is_whitespace(item):
    return (
        not isinstance(item, (Tag, PreformattedString))
        and not str(item).strip(_WHITESPACE)
    )


def _doctype(document, declaration):
    declaration = declaration.strip()
    if declaration[:7].lower() == 'doctype':
        declaration = declaration[7:].strip()
    match = _DOCTYPE_IDS.match(declaration)
    return document._interface('DocumentType')(
        document,
        match.group('name').lower(),
        match.group('public') or '',
        match.group('system') or ''
    )


def _convert(document, item):
    if isinstance(item, Tag):
        element = document._interface('HTMLElement')(document, item.name.lower())
        for name, value in item.attrs.items():
            element.attributes[name.lower()] = value if isinstance(value, str) else ' '.join(value)
        for child in item.contents:
            if isinstance(child, Doctype):
                continue
            element._attach(_convert(document, child), len(element._child_nodes))
        return element
    if isinstance(item, Doctype):
        return _doctype(document, str(item))
    if isinstance(item, SoupComment):
        return document.createComment(str(item))
    if isinstance(item, PreformattedString):
        # CDATA sections, processing instructions and declarations are bogus comments in HTML
        return document.createComment(str(item))
    return document.createTextNode(str(item))


def _distribute(document, nodes):
    head = body = None
    head_content, before_body, after_body = [], [], []
    for node in nodes:
        if node.nodeType == Node.ELEMENT_NODE:
            if node.localName == 'head' and head is None and body is None and not before_body:
                head = node
                continue
            if node.localName == 'body' and body is None:
                body = node
                continue
        if body is not None:
            after_body.append(node)
        elif not before_body and _belongs_in_head(node):
            head_content.append(node)
        else:
            before_body.append(node)

    if head is None:
        head = document._interface('HTMLElement')(document, 'head')
    for node in head_content:
        if node.nodeType != Node.TEXT_NODE:
            head._attach(node, len(head._child_nodes))
    if body is None:
        body = document._interface('HTMLElement')(document, 'body')
    for index, node in enumerate(before_body):
        body._attach(node, index)
    for node in after_body:
        body._attach(node, len(body._child_nodes))
    return head, body


def _belongs_in_head(node):
    if node.nodeType == Node.ELEMENT_NODE:
        return node.localName in METADATA_ELEMENTS
    if node.nodeType == Node.TEXT_NODE:
        return not node.data.strip(_WHITESPACE)
    return node.nodeType == Node.COMMENT_NODE


def parse_html(document, markup):
    """Builds the tree of an empty ``document`` from HTML ``markup``.

    The result always has an ``html`` root holding a ``head`` and a ``body``.
    """
    soup = _soup(markup)
    doctype, leading, nodes = None, [], []
    for item in soup.contents:
        if isinstance(item, Doctype):
            if doctype is None and not nodes and not leading:
                doctype = _doctype(document, str(item))
            continue
        if _is_whitespace(item):
            continue
        node = _convert(document, item)
        if not nodes and node.nodeType == Node.COMMENT_NODE:
            leading.append(node)
        else:
            nodes.append(node)

    root = next(
        (node for node in nodes if node.nodeType == Node.ELEMENT_NODE and node.localName == 'html'),
        None
    )
    if root is None:
        root = document._interface('HTMLElement')(document, 'html')
        content = nodes
    else:
        position = nodes.index(root)
        content = nodes[:position] + list(root._child_nodes) + nodes[position + 1:]
        root._child_nodes = []
    head, body = _distribute(document, [
        node for node in content
        if not (node.nodeType == Node.TEXT_NODE and not node.data.strip(_WHITESPACE))
    ])
    root._attach(head, 0)
    root._attach(body, 1)

    if doctype is not None:
        document._attach(doctype, len(document._child_nodes))
    for node in leading:
        document._attach(node, len(document._child_nodes))
    document._attach(root, len(document._child_nodes))
    return document


def parse_fragment(document, markup):
    """Parses ``markup`` into a list of detached nodes owned by ``document``."""
    markup = '' if markup is None else str(markup)
    if '<' not in markup and '&' not in markup:
        return [document.createTextNode(markup)] if markup else []
    return [
        _convert(document, item) for item in _soup(markup).contents
        if not isinstance(item, Doctype)
    ]


# serialization

def _escape(text, attribute=False):
    text = text.replace('&', '&amp;').replace('\xa0', '&nbsp;')
    if attribute:
        return text.replace('"', '&quot;')
    return text.replace('<', '&lt;').replace('>', '&gt;')


def serialize(node):
    if node.nodeType == Node.ELEMENT_NODE:
        attributes = ''.join(
            f' {name}="{_escape(value, attribute=True)}"'
            for name, value in node.attributes.items()
        )
        start = f'<{node.localName}{attributes}>'
        if node.localName in VOID_ELEMENTS:
            return start
        return f'{start}{node.innerHTML}</{node.localName}>'
    if node.nodeType == Node.TEXT_NODE:
        parent = node.parentNode
        if parent is not None and getattr(parent, 'localName', None) in RAW_TEXT_ELEMENTS:
            return node.data
        return _escape(node.data)
    if node.nodeType == Node.COMMENT_NODE:
        return f'<!--{node.data}-->'
    if node.nodeType == Node.DOCUMENT_TYPE_NODE:
        return f'<!DOCTYPE {node.name}>'
    return ''.join(serialize(child) for child in node._child_nodes)


INTERFACES = {
    cls.__name__: cls for cls in (
        EventTarget, Node, CharacterData, Text, Comment, DocumentType,
        Element, HTMLElement, Document, HTMLDocument,
        NodeList, HTMLCollection, Event, MouseEvent,
    )
}
