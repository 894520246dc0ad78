"""Test-only drivers that follow the transition tables on a concrete tape."""
from collections import deque
from typing_extensions import *

from automaton import HANDOFF_STATE, Direction, LBA, LBAResult, Transition

MOVES = {Direction.L: -1, Direction.R: 1, Direction.N: 0}


def _index(lba: LBA) -> Dict[Tuple[str, str], List[Transition]]:
    index: Dict[Tuple[str, str], List[Transition]] = {}
    for t in lba.transitions:
        index.setdefault((t.from_state, t.read), []).append(t)
    return index


def _apply(t: Transition, tape: Tuple[str, ...], head: int):
    tape = tape[:head] + (t.write,) + tape[head + 1 :]
    return head + MOVES[t.direction], tape


def accepts(result: LBAResult, word: Sequence[str], limit: int = 200000) -> bool:
    """Search all runs of the built LBA on word.

    Entering state M runs the blank eliminator from its start state; its
    exit state continues with the transitions leaving M.
    """
    lba, sub = result.lba, result.blank_eliminator
    main_index = _index(lba)
    sub_index = _index(sub) if sub is not None else {}

    tape = (lba.left_endmarker,) + tuple(word) + (lba.right_endmarker,)
    start = ("main", lba.start_state, 0, tape)
    seen = {start}
    queue = deque([start])

    while queue:
        machine, state, head, tape = queue.popleft()
        assert 0 <= head < len(tape), "head left the tape"
        if machine == "main" and state in lba.end_states:
            return True
        assert len(seen) < limit, "search space too large"

        symbol = tape[head]
        moves = []
        if machine == "main" and state == HANDOFF_STATE and sub is not None:
            moves.append(("sub", sub.start_state, head, tape))
        elif machine == "main":
            for t in main_index.get((state, symbol), []):
                moves.append(("main", t.to_state, *_apply(t, tape, head)))
        else:
            for t in sub_index.get((state, symbol), []):
                moves.append(("sub", t.to_state, *_apply(t, tape, head)))
            if state == sub.exit_state:
                for t in main_index.get((HANDOFF_STATE, symbol), []):
                    moves.append(("main", t.to_state, *_apply(t, tape, head)))

        for config in moves:
            if config not in seen:
                seen.add(config)
                queue.append(config)

    return False


def run_deterministic(
    lba: LBA, tape: Sequence[str], head: int, state: Optional[str] = None, max_steps: int = 1000
) -> Tuple[List[str], List[str], int]:
    """Follow the single applicable transition until none is left.

    Returns the visited states, the final tape and the final head position.
    """
    state = state or lba.start_state
    tape = tuple(tape)
    index = _index(lba)
    visited = [state]

    for _ in range(max_steps):
        candidates = index.get((state, tape[head]), [])
        if not candidates:
            break
        assert len(candidates) == 1, f"nondeterministic at {state} reading {tape[head]}"
        t = candidates[0]
        head, tape = _apply(t, tape, head)
        assert 0 <= head < len(tape), "head left the tape"
        state = t.to_state
        visited.append(state)
    else:
        raise AssertionError("no halt within max_steps")

    return visited, list(tape), head
