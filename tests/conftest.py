import pytest

from grammar import Grammar, Production


def P(left: str, right: str) -> Production:
    return Production(tuple(left.split()), tuple(right.split()))


@pytest.fixture
def ab_grammar() -> Grammar:
    # S -> A B, A B -> a b
    return Grammar(("S", "A", "B"), ("a", "b"), (P("S", "A B"), P("A B", "a b")), "S")


@pytest.fixture
def abc_grammar() -> Grammar:
    # a^n b^n c^n
    return Grammar(
        ("S", "B"),
        ("a", "b", "c"),
        (
            P("S", "a S B c"),
            P("S", "a b c"),
            P("c B", "B c"),
            P("b B", "b b"),
        ),
        "S",
    )
