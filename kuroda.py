"""
Kuroda normal form conversion.

A context-sensitive grammar is rewritten in three passes:

  1. separate terminals:    every terminal t gets a variable At with At -> t
  2. split right sides:     A -> B1..Bn (n > 2) becomes a chain over C variables
  3. remove chain rules:    A1..Am -> B1..Bn (m >= 2) becomes a chain over D variables

Each pass scans the current production list once and builds a new list in
which every matched production is replaced in place by its chain.
"""
import itertools
import logging
from dataclasses import dataclass, field
from typing_extensions import *

from grammar import Grammar, NotContextSensitive, Production

logger = logging.getLogger(__name__)


@dataclass
class NormalizationStep:
    description: str
    new_variables: List[str] = field(default_factory=list)
    replaced_productions: Dict[Production, List[Production]] = field(default_factory=dict)
    new_productions: List[Production] = field(default_factory=list)


@dataclass
class KurodaResult:
    grammar: Grammar
    steps: List[NormalizationStep]


class FreshNames:
    """Mints variable names that collide with no symbol seen so far."""

    def __init__(self, used: Iterable[str]):
        self.used: Set[str] = set(used)
        self.counters: Dict[str, Iterator[int]] = {}

    def fresh(self, base: str) -> str:
        """Return base itself if unused, else base with the smallest free suffix."""
        name = base
        suffix = itertools.count(1)
        while name in self.used:
            name = f"{base}{next(suffix)}"
        self.used.add(name)
        return name

    def numbered(self, prefix: str) -> str:
        """Return prefix + n from a counter per prefix that never resets."""
        counter = self.counters.setdefault(prefix, itertools.count(1))
        while True:
            name = f"{prefix}{next(counter)}"
            if name not in self.used:
                self.used.add(name)
                return name


def to_kuroda_normal_form(grammar: Grammar) -> KurodaResult:
    """Convert a context-sensitive grammar to Kuroda normal form.

    The argument is never modified. A grammar that already is in Kuroda
    normal form is returned as is, with an empty step list.
    """
    if not grammar.is_context_sensitive():
        offending = [str(p) for p in grammar.P if len(p.left) > len(p.right)]
        raise NotContextSensitive(
            f"Grammar is not context-sensitive: {', '.join(offending)}"
        )

    if grammar.is_kuroda():
        logger.debug("Grammar already in Kuroda normal form")
        return KurodaResult(grammar, [])

    names = FreshNames(grammar.symbols)
    nonterminals = list(grammar.N)
    productions = list(grammar.P)

    productions, step1 = separate_terminals(productions, grammar.Sigma, names)
    nonterminals += step1.new_variables

    productions, step2 = split_right_sides(productions, names)
    nonterminals += step2.new_variables

    productions, step3 = remove_chain_rules(productions, names)
    nonterminals += step3.new_variables

    result = Grammar(tuple(nonterminals), grammar.Sigma, tuple(productions), grammar.S)
    logger.info(
        "Converted grammar to Kuroda normal form: %d -> %d productions, %d new variables",
        len(grammar.P),
        len(result.P),
        len(result.N) - len(grammar.N),
    )
    return KurodaResult(result, [step1, step2, step3])


# ---------------------------------------------------------------------- #
# Pass 1
# ---------------------------------------------------------------------- #


def separate_terminals(
    productions: List[Production], terminals: Sequence[str], names: FreshNames
) -> Tuple[List[Production], NormalizationStep]:
    step = NormalizationStep("separate terminals")
    original: Dict[Production, Production] = {p: p for p in productions}

    for terminal in terminals:
        variable = names.fresh("A" + terminal)
        step.new_variables.append(variable)

        productions = [p.replace(terminal, variable) for p in productions]
        # Keep the mapping keyed by the production the caller handed in
        original = {
            source.replace(terminal, variable): first for source, first in original.items()
        }

        unit = Production((variable,), (terminal,))
        productions.append(unit)
        step.new_productions.append(unit)

    for current, first in original.items():
        if current != first:
            step.replaced_productions[first] = [current]

    logger.debug("separate terminals: %d new variables", len(step.new_variables))
    return productions, step


# ---------------------------------------------------------------------- #
# Pass 2
# ---------------------------------------------------------------------- #


def split_right_sides(
    productions: List[Production], names: FreshNames
) -> Tuple[List[Production], NormalizationStep]:
    step = NormalizationStep("split right sides")
    result: List[Production] = []

    for production in productions:
        n = len(production.right)
        if len(production.left) != 1 or n <= 2:
            result.append(production)
            continue

        right = production.right
        c = [names.numbered("C") for _ in range(n - 2)]
        step.new_variables.extend(c)

        chain = [Production(production.left, (right[0], c[0]))]
        for i in range(1, n - 2):
            chain.append(Production((c[i - 1],), (right[i], c[i])))
        chain.append(Production((c[-1],), (right[n - 2], right[n - 1])))

        step.replaced_productions[production] = chain
        result.extend(chain)

    logger.debug("split right sides: %d productions replaced", len(step.replaced_productions))
    return result, step


# ---------------------------------------------------------------------- #
# Pass 3
# ---------------------------------------------------------------------- #


def remove_chain_rules(
    productions: List[Production], names: FreshNames
) -> Tuple[List[Production], NormalizationStep]:
    step = NormalizationStep("remove chain rules")
    result: List[Production] = []

    for production in productions:
        m, n = len(production.left), len(production.right)

        if m >= 2 and m + 2 <= n:
            chain = _widening_chain(production, names, step)
        elif m >= 2 and n == m + 1:
            chain = _widening_chain(production, names, step)
        elif m == n and n > 2:
            chain = _same_length_chain(production, names, step)
        else:
            result.append(production)
            continue

        step.replaced_productions[production] = chain
        result.extend(chain)

    logger.debug("remove chain rules: %d productions replaced", len(step.replaced_productions))
    return result, step


def _mint_d(count: int, names: FreshNames, step: NormalizationStep) -> Dict[int, str]:
    """Mint D2..D(count + 1), indexed by their position in the chain."""
    d = {j: names.numbered("D") for j in range(2, count + 2)}
    step.new_variables.extend(d.values())
    return d


def _widening_chain(
    production: Production, names: FreshNames, step: NormalizationStep
) -> List[Production]:
    # A1..Am -> B1..Bn with n > m >= 2; indices below are 1-based
    a = (None,) + production.left
    b = (None,) + production.right
    m, n = len(production.left), len(production.right)
    d = _mint_d(n - 2, names, step)

    chain = [Production((a[1], a[2]), (b[1], d[2]))]
    for j in range(2, m):
        chain.append(Production((d[j], a[j + 1]), (b[j], d[j + 1])))
    for j in range(m, n - 1):
        chain.append(Production((d[j],), (b[j], d[j + 1])))
    chain.append(Production((d[n - 1],), (b[n - 1], b[n])))
    return chain


def _same_length_chain(
    production: Production, names: FreshNames, step: NormalizationStep
) -> List[Production]:
    # A1..An -> B1..Bn with n > 2
    a = (None,) + production.left
    b = (None,) + production.right
    n = len(production.right)
    d = _mint_d(n - 2, names, step)

    chain = [Production((a[1], a[2]), (b[1], d[2]))]
    for j in range(2, n - 1):
        chain.append(Production((d[j], a[j + 1]), (b[j], d[j + 1])))
    chain.append(Production((d[n - 1], a[n]), (b[n - 1], b[n])))
    return chain
