"""
Moment rulebooks: completed sets of moment rules and their application.

A `MomentRulebook` collects raw constraints (polynomials equal to zero) and
turns them, through `complete()`, into at most one `MomentRule` per symbol:

1. raw constraints are sorted by their terms in descending order and queued;
2. each constraint is reduced by the rules known so far, oriented into a rule,
   and any residual constraint it splits off is queued again;
3. a partial rule meeting another partial rule on the same symbol is merged
   into a full rule;
4. rules whose right-hand side mentions a newly ruled symbol are withdrawn and
   their constraints queued again, so the final rules never feed each other.

Reduction applies rules in descending order of their left-hand sides. A sweep
applies each rule at most once; sweeps repeat until the polynomial is
unchanged, bounded by ``max_reduction_sweeps``.

Once a rulebook has rewritten a matrix it must not gain rules, except in
expansion mode.

----------------------------------------------------------
Description     : Rule completion, reduction and matrix substitution.
----------------------------------------------------------
"""

from __future__ import annotations
import threading
from collections import deque
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import scipy.sparse as sp

from QMS.Symbolic.basis_vector import PolynomialToBasisVec
from QMS.Symbolic.float_utils import approximately_imaginary, approximately_real
from QMS.Symbolic.monomial import Monomial
from QMS.Symbolic.polynomial import Polynomial
from QMS.Symbolic.Rules.moment_rule import MomentRule
from QMS.System.multithreading import MultiThreadPolicy, parallel_map, should_multithread_rule_application
from QMS.errors import (
    AlreadyInUseError, NotMonomialError, QMSLogicError, ReductionDidNotConvergeError
)
from QMS.qms_globals import get_logger

####################################################################################################

class RulebookComparison(Enum):
    Disjoint    = 0
    AEqualsB    = 1
    AContainsB  = 2
    BContainsA  = 3

class FactorTable:
    """
    Factorisation of composite symbols into products of independent factor symbols.

    Parameters
    ----------
    factors : mapping of int to sequence of int
        For each composite symbol, the ids of the symbols whose product it equals.
    """

    def __init__(self, factors: Mapping[int, Sequence[int]]):
        self._factors   = {int(k): tuple(sorted(v)) for k, v in factors.items()}
        self._inverse   = {v: k for k, v in self._factors.items()}

    def factors(self, symbol_id: int) -> Tuple[int, ...]:
        return self._factors.get(symbol_id, (symbol_id,))

    def find(self, factors: Sequence[int]) -> Optional[int]:
        ''' Symbol equal to the product of the given factors, if known. '''
        key = tuple(sorted(factors))
        if len(key) == 1:
            return key[0]
        return self._inverse.get(key)

    def __iter__(self) -> Iterator[int]:
        return iter(self._factors)

    def __len__(self) -> int:
        return len(self._factors)

####################################################################################################

class MomentRulebook:
    """
    Ordered set of moment rules over one symbol table.

    Parameters
    ----------
    factory : PolynomialFactory
        Factory defining the order of terms (and hence the orientation of rules).
    name : str, optional
        Human-readable description.
    mt_policy : MultiThreadPolicy or str, optional
        Policy for parallel matrix substitution (default from settings).
    """

    max_reduction_sweeps = 64

    def __init__(self, factory, name: Optional[str] = None, mt_policy=None):
        self.factory            = factory
        self.symbols            = factory.symbols
        self.name               = name or "Moment substitution rules"
        self.mt_policy          = MultiThreadPolicy.resolve(mt_policy)
        self._rules             : Dict[int, MomentRule] = {}
        self._order             : Optional[List[int]]   = None
        self._raw_rules         : List[Polynomial]      = []
        self.monomial_rules     = True
        self.hermitian_rules    = True
        self._usages            = 0
        self._expansion_mode    = False
        self._usage_lock        = threading.Lock()
        self._log               = get_logger()

    # ----------------------------------------------------------------
    #! Container protocol
    # ----------------------------------------------------------------

    def _sorted_ids(self) -> List[int]:
        if self._order is None:
            self._order = sorted(self._rules, key=self.factory.rank)
        return self._order

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[MomentRule]:
        return (self._rules[lhs] for lhs in self._sorted_ids())

    def __contains__(self, symbol_id: int) -> bool:
        return symbol_id in self._rules

    def __getitem__(self, symbol_id: int) -> MomentRule:
        return self._rules[symbol_id]

    def empty(self) -> bool:
        return not self._rules

    def is_monomial(self) -> bool:
        ''' True if every rule maps a symbol onto at most one monomial. '''
        return self.monomial_rules

    def is_hermitian(self) -> bool:
        ''' True if every rule on a Hermitian symbol has a Hermitian right-hand side. '''
        return self.hermitian_rules

    @property
    def pending_rules(self) -> int:
        return len(self._raw_rules)

    # ----------------------------------------------------------------
    #! Usage tracking
    # ----------------------------------------------------------------

    def in_use(self) -> bool:
        return self._usages > 0

    @property
    def expansion_mode(self) -> bool:
        return self._expansion_mode

    def enable_expansion_mode(self) -> None:
        ''' Allow rules to be added even after the rulebook has rewritten a matrix. '''
        self._expansion_mode = True

    def _check_can_add(self) -> None:
        if self.in_use() and not self._expansion_mode:
            raise AlreadyInUseError(f"Cannot add rules to \"{self.name}\": it has already been applied "
                                    f"to {self._usages} matrices.")

    def _mark_used(self) -> None:
        with self._usage_lock:
            self._usages += 1

    # ----------------------------------------------------------------
    #! Adding rules
    # ----------------------------------------------------------------

    def add_raw_rule(self, rule: Polynomial) -> None:
        ''' Queue a polynomial constrained to be zero. '''
        self._check_can_add()
        self._raw_rules.append(rule.copy())

    def add_raw_rules(self, rules: Union[Iterable[Polynomial], Mapping[int, complex]]) -> None:
        '''
        Queue several constraints: either polynomials equal to zero, or a map from
        symbol id to its value.
        '''
        self._check_can_add()
        if isinstance(rules, Mapping):
            for symbol_id, value in rules.items():
                self._raw_rules.append(self.factory([Monomial(symbol_id, 1.0), Monomial(1, -complex(value))]))
            return
        for rule in rules:
            self._raw_rules.append(rule.copy())

    def _update_flags(self, rule: MomentRule) -> None:
        if not rule.rhs.is_monomial():
            self.monomial_rules = False
        if self.symbols[rule.lhs].hermitian and not self.factory.is_hermitian(rule.rhs):
            self.hermitian_rules = False

    def _recompute_flags(self) -> None:
        self.monomial_rules  = True
        self.hermitian_rules = True
        for rule in self._rules.values():
            self._update_flags(rule)

    def inject(self, rule: Union[MomentRule, int], rhs: Optional[Polynomial] = None) -> bool:
        '''
        Insert a rule directly, bypassing completion. Returns False if the symbol
        already has a rule.
        '''
        self._check_can_add()
        if not isinstance(rule, MomentRule):
            rule = MomentRule.substitution(self.factory, int(rule), rhs)
        if rule.lhs in self._rules:
            return False
        self._rules[rule.lhs]   = rule
        self._order             = None
        self._update_flags(rule)
        return True

    def _sort_key(self, poly: Polynomial) -> list:
        return [self.factory.key(m) for m in reversed(list(poly))]

    def complete(self) -> bool:
        '''
        Turn all queued constraints into rules. Returns True if any rule was added.

        Raises
        ------
        InvalidMomentRuleError
            If the constraints imply a contradiction.
        NonorientableRuleError
            If two partial rules on the same symbol cannot be reconciled.
        '''
        if not self._raw_rules:
            return False
        self._check_can_add()

        queue       = deque(sorted(self._raw_rules, key=self._sort_key))
        self._raw_rules.clear()
        before      = len(self._rules)
        changed     = False
        self._log.debug(f"Completing rulebook \"{self.name}\" with {len(queue)} raw constraints.")

        while queue:
            reduced = self.reduce(queue.popleft())
            rule    = MomentRule(self.factory, reduced)
            residual = rule.split()
            if residual is not None and not residual.empty():
                queue.append(residual)
            if rule.is_trivial():
                continue

            existing = self._rules.get(rule.lhs)
            if existing is None:
                self._rules[rule.lhs] = rule
            elif existing.partial and rule.partial:
                existing.merge_partial(rule)
                existing.rhs = self.reduce(existing.rhs)
                rule = existing
            elif existing.partial:
                # A full rule supersedes the partial rule; keep its constraint in play
                queue.append(existing.as_polynomial())
                self._rules[rule.lhs] = rule
            else:
                raise QMSLogicError(f"Reduced constraint still mentions ruled symbol #{rule.lhs}.")
            self._order = None
            changed     = True

            stale = [lhs for lhs, other in self._rules.items() if lhs != rule.lhs and other.rhs_contains(rule.lhs)]
            for lhs in stale:
                queue.append(self._rules.pop(lhs).as_polynomial())

        self._order = None
        self._recompute_flags()
        self._log.info(f"Rulebook \"{self.name}\" completed: {len(self._rules)} rules ({len(self._rules) - before:+d}).")
        return changed

    def combine_and_complete(self, other: "MomentRulebook") -> int:
        ''' Add the rules of another rulebook (and its pending constraints), then complete. '''
        before = len(self._rules)
        self.add_raw_rules([rule.as_polynomial() for rule in other])
        self.add_raw_rules(other._raw_rules)
        self.complete()
        return len(self._rules) - before

    def infer_additional_rules_from_factors(self, factor_table: Optional[FactorTable]) -> int:
        '''
        For each composite symbol S = F1 F2 ... whose factors include symbols ruled to scalars,
        add S -> (product of those scalars) x T, with T the symbol of the remaining factors.
        Returns the number of rules added.
        '''
        if factor_table is None:
            return 0
        self._check_can_add()
        added = 0
        for composite in factor_table:
            if composite in self._rules:
                continue
            factors = factor_table.factors(composite)
            if len(factors) < 2:
                continue
            value       = 1.0 + 0.0j
            remaining   = []
            for factor in factors:
                rule = self._rules.get(factor)
                if rule is not None and not rule.partial and rule.rhs.is_scalar():
                    value *= rule.rhs[0].factor if not rule.rhs.empty() else 0.0
                else:
                    remaining.append(factor)
            if len(remaining) == len(factors):
                continue
            if not remaining:
                rhs = self.factory.scalar(value)
            else:
                target = factor_table.find(remaining)
                if target is None:
                    continue
                rhs = self.factory.monomial(target, value)
            if self.inject(composite, rhs):
                added += 1
        if added:
            self._log.debug(f"Inferred {added} rules from factorisation in \"{self.name}\".")
        return added

    # ----------------------------------------------------------------
    #! Reduction
    # ----------------------------------------------------------------

    def match(self, poly: Polynomial) -> Optional[MomentRule]:
        ''' The highest-ordered rule whose symbol appears in the polynomial. '''
        for term in reversed(list(poly)):
            rule = self._rules.get(term.id)
            if rule is not None:
                return rule
        return None

    def _reduce_sweep(self, poly: Polynomial) -> Polynomial:
        bound = None
        while True:
            pick = None
            for term in reversed(list(poly)):
                if term.id in self._rules:
                    rank = self.factory.rank(term.id)
                    if bound is None or rank < bound:
                        pick = term.id
                        break
            if pick is None:
                return poly
            poly  = self._rules[pick].apply(poly)
            bound = self.factory.rank(pick)

    def reduce(self, poly: Polynomial) -> Polynomial:
        '''
        Apply the rules until the polynomial no longer changes.

        Raises
        ------
        ReductionDidNotConvergeError
            If the polynomial still changes after ``max_reduction_sweeps`` sweeps.
        '''
        if not self._rules:
            return poly.copy()
        current = poly
        for _ in range(self.max_reduction_sweeps):
            reduced = self._reduce_sweep(current)
            if reduced.approximately_equals(current, self.factory.zero_tolerance):
                return reduced
            current = reduced
        lhs = current.last_id()
        raise ReductionDidNotConvergeError(lhs, f"Reduction of \"{poly.as_string(self.symbols)}\" did not converge "
                                                f"after {self.max_reduction_sweeps} sweeps.")

    def reduce_monomial(self, monomial: Monomial) -> Monomial:
        '''
        Reduce a single monomial, which must stay a monomial.

        Raises
        ------
        NotMonomialError
            If the reduction produced more than one term.
        '''
        reduced = self.reduce(self.factory([monomial]))
        if reduced.empty():
            return Monomial(0, 0.0)
        if not reduced.is_monomial():
            raise NotMonomialError(monomial.as_string(), reduced.as_string(self.symbols))
        return self.symbols.make_canonical(reduced[0])

    # ----------------------------------------------------------------
    #! Matrices
    # ----------------------------------------------------------------

    def create_substituted_matrix(self, matrix, mt_policy=None):
        '''
        Rewrite every cell of a matrix. The result is a monomial matrix if the source is
        monomial and every rule is monomial, otherwise a polynomial matrix.
        '''
        from QMS.Matrix.matrix import MonomialMatrix, PolynomialMatrix, grid_from_flat

        self._mark_used()
        policy      = MultiThreadPolicy.resolve(mt_policy if mt_policy is not None else self.mt_policy)
        cells       = list(matrix.cells.ravel())
        multi       = should_multithread_rule_application(policy, len(cells), len(self._rules))
        hermitian   = matrix.hermitian and self.hermitian_rules
        description = f"{matrix.description}; substituted by \"{self.name}\""

        if matrix.is_monomial() and self.monomial_rules:
            output = parallel_map(self.reduce_monomial, cells, multithread=multi)
            return MonomialMatrix(matrix.context, self.symbols, grid_from_flat(output, matrix.dimension),
                                  hermitian, self.factory, description)

        if matrix.is_monomial():
            output = parallel_map(lambda m: self.reduce(self.factory([m])), cells, multithread=multi)
        else:
            output = parallel_map(self.reduce, cells, multithread=multi)
        return PolynomialMatrix(matrix.context, self.symbols, grid_from_flat(output, matrix.dimension),
                                hermitian, self.factory, description)

    # ----------------------------------------------------------------
    #! Comparison and display
    # ----------------------------------------------------------------

    def _contains_all(self, other: "MomentRulebook") -> bool:
        for rule in other:
            mine = self._rules.get(rule.lhs)
            if mine is None or not mine.approximately_equals(rule):
                return False
        return True

    def compare(self, other: "MomentRulebook") -> RulebookComparison:
        a_has_b = self._contains_all(other)
        b_has_a = other._contains_all(self)
        if a_has_b and b_has_a:
            return RulebookComparison.AEqualsB
        if a_has_b:
            return RulebookComparison.AContainsB
        if b_has_a:
            return RulebookComparison.BContainsA
        return RulebookComparison.Disjoint

    def __str__(self) -> str:
        lines = [f"{self.name} ({len(self)} rules):"]
        lines.extend(f"  {rule}" for rule in self)
        return "\n".join(lines)

####################################################################################################
#! Export to basis
####################################################################################################

class ExportMode(Enum):
    Rewrite     = 0
    Homogeneous = 1

class MomentRulebookToBasis:
    """
    Linear map on the stacked [real, imaginary] basis implementing a rulebook.

    In `Rewrite` mode the map sends a basis vector to its image under the rules
    (identity on unconstrained elements). In `Homogeneous` mode the identity is
    subtracted on constrained elements, so that the rules read ``M x == 0``.
    """

    def __init__(self, factory, mode: ExportMode = ExportMode.Rewrite):
        self.symbols        = factory.symbols
        self.zero_tolerance = factory.zero_tolerance
        self.mode           = ExportMode(mode)

    def __call__(self, rulebook: MomentRulebook) -> sp.csr_matrix:
        basis       = self.symbols.basis
        num_real    = basis.real_symbol_count
        num_elems   = num_real + basis.imaginary_symbol_count
        to_basis    = PolynomialToBasisVec(self.symbols, self.zero_tolerance)
        mask_real   = np.zeros(num_real, dtype=bool)
        mask_im     = np.zeros(basis.imaginary_symbol_count, dtype=bool)
        triplets    : list = []

        for rule in rulebook:
            re_index, im_index = self.symbols[rule.lhs].basis_key()
            if not rule.partial:
                to_basis.add_triplet_row(rule.rhs, re_index, num_real + im_index if im_index >= 0 else -1, triplets)
                if re_index >= 0:
                    mask_real[re_index] = True
                if im_index >= 0:
                    mask_im[im_index] = True
                continue

            direction = rule.direction
            if approximately_real(direction, self.zero_tolerance):
                to_basis.add_triplet_row(rule.rhs, re_index, -1, triplets)
                mask_real[re_index] = True
            elif approximately_imaginary(direction, self.zero_tolerance):
                to_basis.add_triplet_row(rule.rhs, -1, num_real + im_index, triplets)
                mask_im[im_index] = True
            else:
                # cos a + sin b = R: solve for whichever of a and b is better conditioned
                cos_d, sin_d = direction.real, direction.imag
                fixed       = rulebook.factory([m for m in rule.rhs if m.id != rule.lhs])
                fixed       = rulebook.factory.scale(fixed, direction.conjugate())
                if abs(cos_d) >= abs(sin_d):
                    fixed = rulebook.factory.scale(fixed, 1.0 / cos_d)
                    to_basis.add_triplet_row(fixed, re_index, -1, triplets)
                    triplets.append((re_index, num_real + im_index, -sin_d / cos_d))
                    mask_real[re_index] = True
                else:
                    fixed = rulebook.factory.scale(fixed, 1.0 / sin_d)
                    to_basis.add_triplet_row(fixed, num_real + im_index, -1, triplets)
                    triplets.append((num_real + im_index, re_index, -cos_d / sin_d))
                    mask_im[im_index] = True

        if self.mode == ExportMode.Rewrite:
            for index in np.flatnonzero(~mask_real):
                triplets.append((int(index), int(index), 1.0))
            for index in np.flatnonzero(~mask_im):
                triplets.append((num_real + int(index), num_real + int(index), 1.0))
        else:
            for index in np.flatnonzero(mask_real):
                triplets.append((int(index), int(index), -1.0))
            for index in np.flatnonzero(mask_im):
                triplets.append((num_real + int(index), num_real + int(index), -1.0))

        if triplets:
            rows, cols, values = zip(*triplets)
        else:
            rows, cols, values = (), (), ()
        return sp.csr_matrix((np.array(values, dtype=np.float64),
                              (np.array(rows, dtype=np.int64), np.array(cols, dtype=np.int64))),
                             shape=(num_elems, num_elems))

####################################################################################################
#! End of moment rulebook
####################################################################################################
