import uuid
from dataclasses import dataclass, field
from errors import StaleSelectionError
from html_parser import Element, Node, parse_html


def index_elements(root: Node) -> list[Element]:
    """Flattens a parse tree into its elements in document pre-order."""
    elements = []
    stack = [root]
    while stack:
        node = stack.pop()
        if isinstance(node, Element):
            elements.append(node)
        stack.extend(reversed(node.children))
    return elements


@dataclass(frozen=True)
class ElementReference:
    index: int
    parse_id: str


@dataclass
class ElementList:
    """The elements of one parse of one document.

    References handed out by a list only resolve against that same list, so
    a selection made against an older parse can't land on the wrong element.
    """

    elements: list[Element]
    parse_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def from_document(cls, root: Node) -> "ElementList":
        return cls(index_elements(root))

    def __len__(self):
        return len(self.elements)

    def records(self) -> list[dict]:
        return [
            {
                "index": index,
                "tagName": element.tag,
                "id": element.attributes.get("id", ""),
                "class": element.attributes.get("class", ""),
            }
            for index, element in enumerate(self.elements)
        ]

    def reference(self, index: int) -> ElementReference:
        reference = ElementReference(index, self.parse_id)
        self.resolve(reference)
        return reference

    def resolve(self, reference: ElementReference | int) -> Element:
        if isinstance(reference, ElementReference):
            if reference.parse_id != self.parse_id:
                raise StaleSelectionError("Selection belongs to an older parse of the document")
            index = reference.index
        else:
            index = reference
        # bool is an int subclass but never a valid selection
        if not isinstance(index, int) or isinstance(index, bool):
            raise StaleSelectionError(f"Invalid element selection: {index!r}")
        if not 0 <= index < len(self.elements):
            raise StaleSelectionError(f"Invalid element selection: {index} (document has {len(self.elements)} elements)")
        return self.elements[index]


def list_elements(html: str) -> ElementList:
    return ElementList.from_document(parse_html(html))
