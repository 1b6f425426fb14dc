"""Pytest configuration and shared fixtures for RetroMermaid tests."""

import pytest

from retromermaid import DiagramGenerator
from retromermaid.renderer import Canvas


@pytest.fixture
def basic_sequence():
    """Two participants exchanging a request and a reply."""
    return """
sequenceDiagram
    Alice->>Bob: Hello
    Bob-->>Alice: Hi!
"""


@pytest.fixture
def framed_sequence():
    """Sequence diagram with a loop surrounded by other messages."""
    return """
sequenceDiagram
    Alice->>Bob: Start
    loop Check
        Alice->>Bob: Ping
    end
    Bob-->>Alice: Done
"""


@pytest.fixture
def chain_graph():
    """Two-node top-down flowchart."""
    return """
graph TD
    A[Start] --> B[End]
"""


@pytest.fixture
def cyclic_graph():
    """Flowchart with a back edge."""
    return """
graph TD
    A --> B
    B --> C
    C --> A
"""


@pytest.fixture
def subgraph_graph():
    """Flowchart with one subgraph holding two nodes."""
    return """
graph TD
    subgraph One
        A --> B
    end
"""


@pytest.fixture
def customer_er():
    """ER diagram with a single one-to-many relationship."""
    return """
erDiagram
    CUSTOMER ||--o{ ORDER : places
"""


@pytest.fixture
def attributed_er():
    """ER diagram where one entity has an attribute block."""
    return """
erDiagram
    CUSTOMER ||--o{ ORDER : places
    CUSTOMER {
        string name
        int id PK
    }
"""


@pytest.fixture
def generator():
    """Default DiagramGenerator instance."""
    return DiagramGenerator()


@pytest.fixture
def canvas():
    """Empty 20x10 canvas."""
    return Canvas(20, 10)
