"""JSON serialization for Rubric ASTs.

Converts AST dataclasses into plain dict/list structures suitable for
`json.dump`, as written by `python -m rubric --emit-ast`. Every node
becomes an object with its class name under `"node"`, its source
position and one entry per dataclass field. The originating token is
reduced to its position.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from typing import Any

from .ast import Node
from .tokens import Token


def ast_to_obj(node: Any) -> Any:
    # Primitives
    if node is None:
        return None
    if isinstance(node, (int, float, str, bool)):
        return node

    if isinstance(node, list):
        return [ast_to_obj(x) for x in node]

    if isinstance(node, Token):
        return {"type": node.type.name, "literal": node.literal, "line": node.line, "column": node.column}

    if isinstance(node, Node) and is_dataclass(node):
        obj = {"node": type(node).__name__, "line": node.token.line, "column": node.token.column}
        for f in fields(node):
            if f.name == 'token':
                continue
            obj[f.name] = ast_to_obj(getattr(node, f.name))
        return obj

    raise TypeError(f"cannot serialize {type(node).__name__} to JSON")
