import pytest

from automaton import (
    BLANK,
    LBA,
    Direction,
    eliminate_blank,
    grammar_to_lba,
)
from grammar import Grammar, InvalidGrammar, NotKurodaNormalForm
from kuroda import to_kuroda_normal_form
from tests.conftest import P
from tests.helpers import accepts, run_deterministic


@pytest.fixture
def ab_knf(ab_grammar) -> Grammar:
    return to_kuroda_normal_form(ab_grammar).grammar


def assert_boundary_safe(lba: LBA):
    ends = (lba.left_endmarker, lba.right_endmarker)
    for t in lba.transitions:
        assert not (t.read == lba.left_endmarker and t.direction == Direction.L), t
        assert not (t.read == lba.right_endmarker and t.direction == Direction.R), t
        assert not (t.read in ends and t.write != t.read), t
        assert t.from_state not in lba.end_states, t


class TestLBA:
    def test_guard_drops_unsafe_transitions(self):
        lba = LBA(("a",))
        assert lba.add_transition("zs", "q", "<", "<", Direction.L) is None
        assert lba.add_transition("q", "q", ">", ">", Direction.R) is None
        assert lba.add_transition("q", "q", "<", "a", Direction.R) is None
        assert lba.add_transition("q", "q", ">", "a", Direction.L) is None
        lba.add_end_state("e")
        assert lba.add_transition("e", "q", "a", "a", Direction.R) is None
        assert lba.transitions == []

    def test_labels_are_stored_once_per_pair(self):
        lba = LBA(("a", "b"))
        t = lba.add_transition("zs", "q", "a", "b", Direction.R)
        assert t is not None and t.label == "a : b, R"
        lba.add_transition("zs", "q", "a", "b", Direction.R)
        lba.add_transition("zs", "q", "b", "b", Direction.R)
        assert lba.labels("zs", "q") == {"a : b, R", "b : b, R"}
        assert len(lba.transitions) == 2
        assert lba.states == ["zs", "q"]

    def test_tape_alphabet_and_fresh_states(self):
        lba = LBA(("a", "S"))
        assert lba.tape_alphabet == ("a", "S", "<", ">", BLANK)
        lba.add_state("z1")
        assert lba.add_state() == "z2"
        assert lba.add_state() == "z3"


class TestGrammarToLBA:
    def test_requires_kuroda(self, ab_grammar):
        with pytest.raises(NotKurodaNormalForm):
            grammar_to_lba(ab_grammar)

    def test_rejects_reserved_tape_symbols(self):
        g = Grammar(("S",), ("<",), (P("S", "<"),), "S")
        with pytest.raises(InvalidGrammar):
            grammar_to_lba(g)

    def test_structure(self, ab_knf):
        result = grammar_to_lba(ab_knf)
        lba = result.lba
        symbols = list(ab_knf.symbols)

        assert lba.start_state == "zs"
        assert lba.labels("zs", "z0") == {"< : <, R"}
        assert lba.labels("z0", "z0") == {
            f"{s} : {s}, R" for s in symbols + ["<", BLANK]
        }

        # S -> A B
        assert lba.labels("z0", "z1") == {"A : A, R"}
        assert lba.labels("z1", "z2") == {"B : S, L"}
        assert lba.labels("z2", "z3") == {f"A : {BLANK}, L"}
        assert lba.labels("z3", "z3") == {
            f"{s} : {s}, L" for s in symbols + [">", BLANK]
        }
        assert lba.labels("z3", "M") == {"< : <, R"}
        assert lba.labels("M", "z0") == {"< : <, R"}

        # A B -> Aa Ab
        assert lba.labels("z0", "z4") == {"Aa : Aa, R"}
        assert lba.labels("z4", "z5") == {"Ab : B, L"}
        assert lba.labels("z5", "z6") == {"Aa : A, L"}
        assert lba.labels("z6", "z0") == {"< : <, R"}

        # Aa -> a, Ab -> b
        assert lba.labels("z0", "z7") == {"a : Aa, L"}
        assert lba.labels("z7", "z0") == {"< : <, R"}
        assert lba.labels("z0", "z8") == {"b : Ab, L"}

        # accept
        assert lba.labels("z0", "z9") == {"> : >, L"}
        assert lba.labels("z9", "z10") == {"S : S, L"}
        assert lba.labels("z10", "z11") == {"< : <, N"}
        assert lba.end_states == {"z11"}
        assert lba.transitions_from("z11") == []

    def test_boundary_guard_holds(self, ab_knf, abc_grammar):
        for g in (ab_knf, to_kuroda_normal_form(abc_grammar).grammar):
            result = grammar_to_lba(g)
            assert_boundary_safe(result.lba)
            assert_boundary_safe(result.blank_eliminator)

    def test_steps(self, ab_knf):
        result = grammar_to_lba(ab_knf)
        assert list(result.steps) == ["start", *ab_knf.P, "accept"]

        start = result.steps["start"]
        assert start.states == ["zs", "z0"]
        assert all(t.read != ">" for t in start.transitions)

        unit = result.steps[P("Aa", "a")]
        assert unit.states == ["z7"]
        assert str(unit.transitions[0]) == "z0 --a : Aa, L--> z7"

        shrinking = result.steps[P("S", "A B")]
        assert shrinking.states == ["z1", "z2", "z3", "M"]

        assert result.steps["accept"].states == ["z9", "z10", "z11"]

        logged = [t for step in result.steps.values() for t in step.transitions]
        assert sorted(logged, key=str) == sorted(result.lba.transitions, key=str)

    def test_shrinking_production_builds_eliminator(self, ab_knf):
        result = grammar_to_lba(ab_knf)
        assert result.blank_eliminator is not None
        assert result.blank_eliminator.start_state == "zin"
        assert result.blank_eliminator.exit_state == "zout"

    def test_no_eliminator_without_shrinking_production(self):
        g = Grammar(
            ("S", "A", "B"),
            ("a", "b"),
            (P("A B", "B A"), P("S", "a"), P("A", "a"), P("B", "b")),
            "S",
        )
        result = grammar_to_lba(g)
        assert result.blank_eliminator is None
        assert "M" not in result.lba.states

    def test_accepts_derivations(self, ab_knf):
        result = grammar_to_lba(ab_knf)
        assert accepts(result, ["a", "b"])
        assert not accepts(result, ["b", "a"])
        assert not accepts(result, ["a"])
        assert not accepts(result, ["a", "b", "b"])

    def test_accepts_abc(self, abc_grammar):
        result = grammar_to_lba(to_kuroda_normal_form(abc_grammar).grammar)
        assert accepts(result, ["a", "b", "c"])
        assert not accepts(result, ["a", "c", "b"])
        assert not accepts(result, ["a", "b"])

    def test_exchange_only_grammar(self):
        # S -> a, A B -> B A: only the word "a"
        g = Grammar(
            ("S", "A", "B"),
            ("a", "b"),
            (P("A B", "B A"), P("S", "a"), P("A", "a"), P("B", "b")),
            "S",
        )
        result = grammar_to_lba(g)
        assert accepts(result, ["a"])
        assert not accepts(result, ["b"])
        assert not accepts(result, ["a", "b"])

    def test_graphviz_source(self, ab_knf):
        dot = grammar_to_lba(ab_knf).lba.to_graphviz(render=False)
        assert "doublecircle" in dot.source
        assert "zs" in dot.source


class TestEliminateBlank:
    def test_shifts_over_blank(self):
        tm = eliminate_blank(("a", "A"))
        visited, tape, head = run_deterministic(
            tm, ["<", "a", BLANK, "A", ">"], head=1, state="zin"
        )
        assert visited[:3] == ["zin", "a", "zout"]
        assert tape == ["<", "<", "a", "A", ">"]
        assert head == 1
        entries = [
            i for i in range(1, len(visited))
            if visited[i] == "zout" and visited[i - 1] != "zout"
        ]
        assert len(entries) == 1

    def test_blank_next_to_left_endmarker(self):
        tm = eliminate_blank(("A",))
        visited, tape, head = run_deterministic(tm, ["<", BLANK, "A", ">"], head=1, state="zin")
        assert visited[:2] == ["zin", "zout"]
        assert tape == ["<", "<", "A", ">"]
        assert head == 1

    def test_longer_prefix(self):
        tm = eliminate_blank(("b", "c", "A"))
        _, tape, head = run_deterministic(
            tm, ["<", "b", "c", BLANK, "A", ">"], head=1, state="zin"
        )
        assert tape == ["<", "<", "b", "c", "A", ">"]
        assert head == 1

    def test_structure(self):
        tm = eliminate_blank(("a", "b"))
        assert tm.end_states == set()
        assert tm.labels("zin", "zout") == {f"{BLANK} : <, R"}
        assert tm.labels("zin", "a") == {"a : <, R"}
        assert tm.labels("a", "b") == {"b : a, R"}
        assert tm.labels("a", "a") == {"a : a, R"}
        assert tm.labels("a", "zout") == {f"{BLANK} : a, R"}
        assert "< : <, L" not in tm.labels("zout", "zout")
        assert "> : >, L" in tm.labels("zout", "zout")
        assert_boundary_safe(tm)

    def test_state_name_clash(self):
        with pytest.raises(InvalidGrammar):
            eliminate_blank(("zout", "a"))
