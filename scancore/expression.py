"""Filter expressions evaluated against the fields of a scan result."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Union

from scancore.fieldset import FieldSet

_MASK64 = (1 << 64) - 1


class Operation(enum.IntEnum):
    GT = 0
    LT = 1
    EQ = 2
    NEQ = 3
    AND = 4
    OR = 5
    LT_EQ = 6
    GT_EQ = 7


class NodeType(enum.IntEnum):
    OP = 0
    FIELD = 1
    STRING = 2
    INT = 3


@dataclass
class Node:
    """A node of an expression tree.

    For an OP node value is the Operation; for FIELD the field name, with
    index the field's position in the result; for STRING and INT the literal.
    """

    type: NodeType
    value: Union[Operation, str, int]
    left: Optional["Node"] = None
    right: Optional["Node"] = None
    index: int = -1


def make_op_node(op: Operation) -> Node:
    return Node(NodeType.OP, Operation(op))


def make_field_node(fieldname: str) -> Node:
    return Node(NodeType.FIELD, fieldname)


def make_string_node(literal: str) -> Node:
    return Node(NodeType.STRING, literal)


def make_int_node(literal: int) -> Node:
    return Node(NodeType.INT, int(literal) & _MASK64)


def _gt(node: Node, fields: FieldSet) -> bool:
    return fields.get_uint64_by_index(node.left.index) > node.right.value


def _lt(node: Node, fields: FieldSet) -> bool:
    return fields.get_uint64_by_index(node.left.index) < node.right.value


def _eq(node: Node, fields: FieldSet) -> bool:
    literal = node.right
    index = node.left.index
    if literal.type == NodeType.STRING:
        return fields.get_string_by_index(index) == literal.value
    if literal.type == NodeType.INT:
        return fields.get_uint64_by_index(index) == literal.value
    return False


def evaluate_expression(root: Optional[Node], fields: FieldSet) -> bool:
    """Return whether the fields satisfy the expression; an empty expression always does."""
    if root is None or root.type != NodeType.OP:
        return True
    op = root.value
    if op == Operation.GT:
        return _gt(root, fields)
    if op == Operation.LT:
        return _lt(root, fields)
    if op == Operation.EQ:
        return _eq(root, fields)
    if op == Operation.NEQ:
        return not _eq(root, fields)
    if op == Operation.LT_EQ:
        return not _gt(root, fields)
    if op == Operation.GT_EQ:
        return not _lt(root, fields)
    if op == Operation.AND:
        return evaluate_expression(root.left, fields) and evaluate_expression(root.right, fields)
    if op == Operation.OR:
        return evaluate_expression(root.left, fields) or evaluate_expression(root.right, fields)
    return False


def format_expression(root: Optional[Node]) -> str:
    """Render the tree in its fully parenthesised debugging form."""
    if root is None:
        return ""
    if root.type == NodeType.OP:
        token = f" {int(root.value)} "
    elif root.type == NodeType.FIELD:
        token = f" ({root.value}"
    elif root.type == NodeType.STRING:
        token = f"{root.value}) "
    else:
        token = f" {root.value}) "
    return "( " + format_expression(root.left) + token + format_expression(root.right) + " )"


def print_expression(root: Optional[Node]) -> None:
    """Write format_expression(root) to standard output without a newline."""
    print(format_expression(root), end="")