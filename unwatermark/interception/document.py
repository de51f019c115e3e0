"""In-memory stand-in for a live page: an element tree with child-list observers."""

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

MutationCallback = Callable[[], None]


@dataclass(eq=False)
class Element:
    """A node of the document tree. Identity-hashed so it can key watcher state."""

    tag: str
    attributes: dict[str, str] = field(default_factory=dict)
    classes: set[str] = field(default_factory=set)
    parent: "Element | None" = field(default=None, repr=False)
    children: list["Element"] = field(default_factory=list, repr=False)

    @property
    def src(self) -> str:
        return self.attributes.get("src", "")

    @src.setter
    def src(self, value: str) -> None:
        self.attributes["src"] = value

    def matches(self, tags: frozenset[str], classes: frozenset[str]) -> bool:
        return self.tag in tags or not self.classes.isdisjoint(classes)

    def closest(self, tags: frozenset[str], classes: frozenset[str]) -> "Element | None":
        """Nearest ancestor-or-self matching any tag or class."""
        node: Element | None = self
        while node is not None:
            if node.matches(tags, classes):
                return node
            node = node.parent
        return None

    def iter_descendants(self) -> Iterator["Element"]:
        for child in self.children:
            yield child
            yield from child.iter_descendants()


class Document:
    """Element tree whose structural changes notify registered observers."""

    def __init__(self) -> None:
        self.body = Element(tag="body")
        self._observers: list[MutationCallback] = []

    def observe(self, callback: MutationCallback) -> Callable[[], None]:
        """Register ``callback`` for child-list mutations; returns an unsubscribe function."""
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def append(self, parent: Element, child: Element) -> Element:
        child.parent = parent
        parent.children.append(child)
        self._notify()
        return child

    def remove(self, child: Element) -> None:
        if child.parent is None:
            return
        child.parent.children.remove(child)
        child.parent = None
        self._notify()

    def elements(self) -> Iterator[Element]:
        return self.body.iter_descendants()

    def images(self) -> list[Element]:
        return [el for el in self.elements() if el.tag == "img"]

    def _notify(self) -> None:
        for callback in list(self._observers):
            callback()
