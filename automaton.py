import itertools
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing_extensions import *

from graphviz import Digraph

from grammar import Grammar, InvalidGrammar, NotKurodaNormalForm, Production

logger = logging.getLogger(__name__)

LEFT_ENDMARKER = "<"
RIGHT_ENDMARKER = ">"
BLANK = "□"

START_STATE = "zs"
SCAN_STATE = "z0"
HANDOFF_STATE = "M"  # stands for a run of the blank eliminator
ELIMINATOR_START = "zin"
ELIMINATOR_EXIT = "zout"


class Direction(Enum):
    L = "L"  # Left
    R = "R"  # Right
    N = "N"  # Neutral


@dataclass(frozen=True)
class Transition:
    from_state: str
    to_state: str
    read: str
    write: str
    direction: Direction

    @property
    def label(self) -> str:
        return f"{self.read} : {self.write}, {self.direction.value}"

    def __str__(self):
        return f"{self.from_state} --{self.label}--> {self.to_state}"


@dataclass
class LBA:
    """
    Linear bounded automaton.

    delta maps an ordered pair of states to the set of transitions between
    them, so parallel edges are allowed but each label is stored once.
    Every transition goes through add_transition, which drops transitions
    that would leave the tape, overwrite an endmarker or leave an end state.
    """

    input_alphabet: Tuple[str, ...] = ()
    start_state: str = START_STATE
    left_endmarker: str = LEFT_ENDMARKER
    right_endmarker: str = RIGHT_ENDMARKER
    blank: str = BLANK
    states: List[str] = field(default_factory=list)
    delta: Dict[Tuple[str, str], Set[Transition]] = field(
        default_factory=lambda: defaultdict(set)
    )
    end_states: Set[str] = field(default_factory=set)
    exit_state: Optional[str] = None
    _numbers: Iterator[int] = field(
        default_factory=lambda: itertools.count(1), init=False, repr=False, compare=False
    )

    def __post_init__(self):
        self.input_alphabet = tuple(self.input_alphabet)
        if self.start_state not in self.states:
            self.states.insert(0, self.start_state)

    @property
    def tape_alphabet(self) -> Tuple[str, ...]:
        return self.input_alphabet + (self.left_endmarker, self.right_endmarker, self.blank)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def add_state(self, state: Optional[str] = None) -> str:
        """Add a state, or a fresh z<n> state when no name is given."""
        if state is None:
            state = f"z{next(self._numbers)}"
            while state in self.states:
                state = f"z{next(self._numbers)}"
        if state not in self.states:
            self.states.append(state)
        return state

    def add_end_state(self, state: str) -> str:
        self.add_state(state)
        self.end_states.add(state)
        return state

    def add_transition(
        self, from_state: str, to_state: str, read: str, write: str, direction: Direction
    ) -> Optional[Transition]:
        """Add a transition; returns None if the boundary guard drops it."""
        if read == self.left_endmarker and direction == Direction.L:
            return None
        if read == self.right_endmarker and direction == Direction.R:
            return None
        if read in (self.left_endmarker, self.right_endmarker) and write != read:
            return None
        if from_state in self.end_states:
            return None

        self.add_state(from_state)
        self.add_state(to_state)
        transition = Transition(from_state, to_state, read, write, direction)
        self.delta[(from_state, to_state)].add(transition)
        return transition

    # -------------------------------------------------------------------------
    # Transition helpers
    # -------------------------------------------------------------------------

    @property
    def transitions(self) -> List[Transition]:
        return [t for pair in self.delta.values() for t in pair]

    def transitions_from(self, state: str) -> List[Transition]:
        return [t for (src, _), pair in self.delta.items() if src == state for t in pair]

    def labels(self, from_state: str, to_state: str) -> Set[str]:
        return {t.label for t in self.delta.get((from_state, to_state), ())}

    # -------------------------------------------------------------------------
    # Visualization
    # -------------------------------------------------------------------------

    def _get_state_id(self, state, state_to_id: dict) -> str:
        """Get or create a clean ID for a state."""
        if state not in state_to_id:
            state_to_id[state] = f"q{len(state_to_id)}"
        return state_to_id[state]

    def to_graphviz(self, filename: str = "lba", view: bool = True, render: bool = True) -> Digraph:
        """Generate a Graphviz visualization for this automaton."""
        dot = Digraph(
            name="LBA",
            format="png",
            graph_attr={
                "rankdir": "LR",
                "splines": "true",
                "nodesep": "0.8",
                "ranksep": "1.2",
                "label": "LBA",
                "labelloc": "t",
                "fontsize": "14",
                "fontname": "Arial",
                "bgcolor": "white",
                "pad": "0.5",
                "dpi": "300",
            },
            node_attr={
                "shape": "circle",
                "fontsize": "14",
                "fontname": "Arial",
                "width": "0.6",
                "height": "0.6",
                "fixedsize": "true",
                "style": "filled",
                "fillcolor": "lightblue",
                "color": "black",
                "penwidth": "2",
            },
            edge_attr={
                "fontsize": "12",
                "fontname": "Arial",
                "arrowsize": "0.8",
                "penwidth": "1.5",
                "color": "black",
            },
        )

        state_to_id: Dict[str, str] = {}

        dot.node("__start__", shape="point", width="0.01", style="invis")

        for state in self.states:
            node_id = self._get_state_id(state, state_to_id)
            if state in self.end_states:
                dot.node(
                    node_id,
                    label=state,
                    shape="doublecircle",
                    fillcolor="lightgreen",
                    peripheries="2",
                )
            elif state == self.exit_state:
                dot.node(node_id, label=state, fillcolor="lightyellow")
            else:
                dot.node(node_id, label=state)

        start_id = self._get_state_id(self.start_state, state_to_id)
        dot.edge("__start__", start_id, penwidth="2")

        for (src, tgt), transitions in self.delta.items():
            if not transitions:
                continue
            label = "\n".join(sorted(t.label for t in transitions))
            src_id = self._get_state_id(src, state_to_id)
            tgt_id = self._get_state_id(tgt, state_to_id)

            if src == tgt:
                dot.edge(src_id, tgt_id, label=label, headport="n", tailport="n")
            else:
                dot.edge(src_id, tgt_id, label=label)

        if render:
            dot.render(filename, view=view, cleanup=True)
        return dot


# ---------------------------------------------------------------------- #
# Grammar (Kuroda normal form) -> LBA
# ---------------------------------------------------------------------- #


@dataclass
class BuildStep:
    states: List[str] = field(default_factory=list)
    transitions: List[Transition] = field(default_factory=list)


@dataclass
class LBAResult:
    lba: LBA
    steps: Dict[Union[str, Production], BuildStep]
    blank_eliminator: Optional[LBA] = None


class _StepRecorder:
    """Adds states and transitions to an LBA and logs them per step."""

    def __init__(self, lba: LBA):
        self.lba = lba
        self.steps: Dict[Union[str, Production], BuildStep] = {}
        self.current = BuildStep()

    def begin(self, key: Union[str, Production]):
        self.current = self.steps.setdefault(key, BuildStep())

    def state(self, name: Optional[str] = None) -> str:
        state = self.lba.add_state(name)
        if state not in self.current.states:
            self.current.states.append(state)
        return state

    def transition(self, *args) -> Optional[Transition]:
        transition = self.lba.add_transition(*args)
        if transition is not None and transition not in self.current.transitions:
            self.current.transitions.append(transition)
        return transition

    def rewind(self, state: str, target: str):
        """Echo left over the whole tape, then step right into target."""
        lba = self.lba
        for symbol in lba.tape_alphabet:
            self.transition(state, state, symbol, symbol, Direction.L)
        self.transition(state, target, lba.left_endmarker, lba.left_endmarker, Direction.R)


def grammar_to_lba(
    grammar: Grammar,
    *,
    left_endmarker: str = LEFT_ENDMARKER,
    right_endmarker: str = RIGHT_ENDMARKER,
    blank: str = BLANK,
    start_state: str = START_STATE,
) -> LBAResult:
    """
    Build an LBA accepting the language of a grammar in Kuroda normal form.

    The automaton runs derivations backwards: from the scan state z0 it
    guesses a cell where the right side of a production ends up, rewrites
    it to the left side and rewinds to the tape start. The word is accepted
    once the tape holds only the start symbol.

    Productions A -> B C shrink the word; the left cell becomes a blank that
    the blank eliminator (returned separately, entered through state M)
    removes before scanning continues.
    """
    if not grammar.is_kuroda():
        raise NotKurodaNormalForm("Grammar is not in Kuroda normal form")

    reserved = {left_endmarker, right_endmarker, blank} & set(grammar.symbols)
    if reserved:
        raise InvalidGrammar(
            f"Grammar uses reserved tape symbols: {', '.join(sorted(reserved))}"
        )

    lba = LBA(
        input_alphabet=grammar.symbols,
        start_state=start_state,
        left_endmarker=left_endmarker,
        right_endmarker=right_endmarker,
        blank=blank,
    )
    rec = _StepRecorder(lba)
    left = left_endmarker
    shrinking = False

    rec.begin("start")
    rec.state(start_state)
    z0 = rec.state(SCAN_STATE)
    rec.transition(start_state, z0, left, left, Direction.R)
    for symbol in lba.tape_alphabet:
        rec.transition(z0, z0, symbol, symbol, Direction.R)

    for production in grammar.P:
        rec.begin(production)
        if len(production.right) == 1:
            _add_unit(rec, production)
        elif len(production.left) == 2:
            _add_exchange(rec, production)
        else:
            _add_shrinking(rec, production)
            shrinking = True
        logger.debug(
            "%s: %d states, %d transitions",
            production,
            len(rec.current.states),
            len(rec.current.transitions),
        )

    rec.begin("accept")
    f1 = rec.state()
    rec.transition(z0, f1, right_endmarker, right_endmarker, Direction.L)
    f2 = rec.state()
    rec.transition(f1, f2, grammar.S, grammar.S, Direction.L)
    end = rec.state()
    lba.add_end_state(end)
    rec.transition(f2, end, left, left, Direction.N)

    eliminator = None
    if shrinking:
        eliminator = eliminate_blank(
            grammar.symbols,
            left_endmarker=left_endmarker,
            right_endmarker=right_endmarker,
            blank=blank,
        )

    logger.info(
        "Built LBA with %d states and %d transitions%s",
        len(lba.states),
        len(lba.transitions),
        " (with blank eliminator)" if eliminator else "",
    )
    return LBAResult(lba, rec.steps, eliminator)


def _add_unit(rec: _StepRecorder, production: Production):
    # A -> a: rewrite a to A
    (a,), (b,) = production.left, production.right
    q = rec.state()
    rec.transition(SCAN_STATE, q, b, a, Direction.L)
    rec.rewind(q, SCAN_STATE)


def _add_exchange(rec: _StepRecorder, production: Production):
    # A B -> C D: find C D, write B over D, then A over C
    (a, b), (c, d) = production.left, production.right
    q1 = rec.state()
    rec.transition(SCAN_STATE, q1, c, c, Direction.R)
    q2 = rec.state()
    rec.transition(q1, q2, d, b, Direction.L)
    q3 = rec.state()
    rec.transition(q2, q3, c, a, Direction.L)
    rec.rewind(q3, SCAN_STATE)


def _add_shrinking(rec: _StepRecorder, production: Production):
    # A -> B C: find B C, write A over C and a blank over B
    (a,), (b, c) = production.left, production.right
    blank = rec.lba.blank
    left = rec.lba.left_endmarker
    q1 = rec.state()
    rec.transition(SCAN_STATE, q1, b, b, Direction.R)
    q2 = rec.state()
    rec.transition(q1, q2, c, a, Direction.L)
    q3 = rec.state()
    rec.transition(q2, q3, b, blank, Direction.L)
    rec.rewind(q3, HANDOFF_STATE)
    rec.state(HANDOFF_STATE)
    rec.transition(HANDOFF_STATE, SCAN_STATE, left, left, Direction.R)


# ---------------------------------------------------------------------- #
# Blank elimination
# ---------------------------------------------------------------------- #


def eliminate_blank(
    alphabet: Sequence[str],
    *,
    left_endmarker: str = LEFT_ENDMARKER,
    right_endmarker: str = RIGHT_ENDMARKER,
    blank: str = BLANK,
    start_state: str = ELIMINATOR_START,
    exit_state: str = ELIMINATOR_EXIT,
) -> LBA:
    """
    Build the automaton that removes the single blank from the tape.

    Started on the first cell after the left endmarker, it writes a new left
    endmarker there and carries every symbol one cell to the right until the
    blank is overwritten. The state name is the symbol still to be written.
    Afterwards it rewinds onto the new left endmarker and halts in
    exit_state.
    """
    clashes = {start_state, exit_state} & set(alphabet)
    if clashes:
        raise InvalidGrammar(f"Symbols clash with state names: {', '.join(sorted(clashes))}")

    tm = LBA(
        input_alphabet=alphabet,
        start_state=start_state,
        left_endmarker=left_endmarker,
        right_endmarker=right_endmarker,
        blank=blank,
        exit_state=exit_state,
    )
    tm.add_state(exit_state)

    tm.add_transition(start_state, exit_state, blank, left_endmarker, Direction.R)

    for symbol in tm.input_alphabet:
        carrier = tm.add_state(symbol)
        tm.add_transition(start_state, carrier, symbol, left_endmarker, Direction.R)

        for inner in tm.input_alphabet:
            tm.add_transition(carrier, inner, inner, symbol, Direction.R)

        tm.add_transition(carrier, exit_state, blank, symbol, Direction.R)

    for symbol in tm.tape_alphabet:
        tm.add_transition(exit_state, exit_state, symbol, symbol, Direction.L)

    logger.debug("Built blank eliminator with %d states", len(tm.states))
    return tm
