import pytest

from scancore.expression import (
    Node,
    NodeType,
    Operation,
    evaluate_expression,
    format_expression,
    make_field_node,
    make_int_node,
    make_op_node,
    make_string_node,
    print_expression,
)
from scancore.fieldset import FieldSet


def _fields():
    fs = FieldSet()
    fs.add_uint64("sport", 80)
    fs.add_string("classification", "synack")
    return fs


def _compare(op, fieldname, index, literal):
    node = make_op_node(op)
    field = make_field_node(fieldname)
    field.index = index
    node.left = field
    node.right = make_string_node(literal) if isinstance(literal, str) else make_int_node(literal)
    return node


def test_constructors():
    assert make_op_node(Operation.AND).type == NodeType.OP
    assert make_field_node("sport").value == "sport"
    assert make_string_node("x").type == NodeType.STRING
    assert make_int_node(5).value == 5


def test_operation_codes():
    assert format_expression(make_op_node(Operation.GT)) == "(  0  )"
    assert format_expression(make_op_node(Operation.GT_EQ)) == "(  7  )"


@pytest.mark.parametrize(
    "op,literal,expected",
    [
        (Operation.GT, 79, True),
        (Operation.GT, 80, False),
        (Operation.LT, 81, True),
        (Operation.LT, 80, False),
        (Operation.EQ, 80, True),
        (Operation.EQ, 81, False),
        (Operation.NEQ, 81, True),
        (Operation.NEQ, 80, False),
        (Operation.LT_EQ, 80, True),
        (Operation.LT_EQ, 79, False),
        (Operation.GT_EQ, 80, True),
        (Operation.GT_EQ, 81, False),
    ],
)
def test_integer_comparisons(op, literal, expected):
    assert evaluate_expression(_compare(op, "sport", 0, literal), _fields()) is expected


def test_string_equality():
    fs = _fields()
    assert evaluate_expression(_compare(Operation.EQ, "classification", 1, "synack"), fs) is True
    assert evaluate_expression(_compare(Operation.EQ, "classification", 1, "rst"), fs) is False
    assert evaluate_expression(_compare(Operation.NEQ, "classification", 1, "rst"), fs) is True


def test_and_or():
    fs = _fields()
    true_node = _compare(Operation.EQ, "sport", 0, 80)
    false_node = _compare(Operation.EQ, "classification", 1, "rst")
    both = make_op_node(Operation.AND)
    both.left, both.right = true_node, false_node
    either = make_op_node(Operation.OR)
    either.left, either.right = false_node, true_node
    assert evaluate_expression(both, fs) is False
    assert evaluate_expression(either, fs) is True


def test_empty_and_leaf_expressions_match():
    fs = _fields()
    assert evaluate_expression(None, fs) is True
    assert evaluate_expression(make_int_node(0), fs) is True
    assert evaluate_expression(Node(NodeType.STRING, "x"), fs) is True


def test_format_expression():
    node = _compare(Operation.EQ, "a", 0, 5)
    assert format_expression(node) == "( (  (a ) 2 (  5)  ) )"
    assert format_expression(None) == ""


def test_print_matches_format(capsys):
    node = _compare(Operation.EQ, "classification", 1, "synack")
    print_expression(node)
    assert capsys.readouterr().out == format_expression(node)