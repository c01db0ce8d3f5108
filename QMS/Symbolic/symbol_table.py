"""
Symbol registry: canonical ids for operator sequences up to conjugation.

The table always starts with two reserved symbols:

- ``#0`` : the additive zero (both Hermitian and antihermitian, no basis element);
- ``#1`` : the identity (Hermitian, real basis element 0).

Every further symbol is allocated by `SymbolTable.merge_in`. The hash table
maps the forward hash of a symbol to its id, and the conjugate hash (if it
differs) to the negated id, so that a single lookup tells both the symbol and
whether the sequence looked up is the conjugate direction.

Lookups never raise: a missing sequence is reported by the sentinel
``SymbolTable.NOT_FOUND``.

----------------------------------------------------------
Description     : Symbol table with real/imaginary basis bookkeeping.
----------------------------------------------------------
"""

from __future__ import annotations
import sys
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from QMS.Scenario.operator_sequence import OperatorSequence
from QMS.Symbolic.monomial import Monomial
from QMS.Symbolic.symbol import Symbol
from QMS.errors import UnknownBasisElementError, UnknownSymbolError, ZeroSymbolError

####################################################################################################
#! Basis view
####################################################################################################

class SymbolBasisView:
    """
    Real and imaginary basis of a symbol table.

    ``real_symbols[k]`` is the id of the symbol owning real basis element k,
    ``imaginary_symbols[k]`` that of imaginary basis element k.
    """

    def __init__(self, table: "SymbolTable"):
        self._table             = table
        self.real_symbols       : List[int] = []
        self.imaginary_symbols  : List[int] = []

    @property
    def real_symbol_count(self) -> int:
        return len(self.real_symbols)

    @property
    def imaginary_symbol_count(self) -> int:
        return len(self.imaginary_symbols)

    def im_of_real(self, real_index: int) -> int:
        ''' Imaginary basis index of the symbol owning the given real basis element (-1 if none). '''
        if real_index < 0 or real_index >= len(self.real_symbols):
            raise UnknownBasisElementError(True, real_index)
        return self._table[self.real_symbols[real_index]].img_index

    def re_of_imaginary(self, imaginary_index: int) -> int:
        ''' Real basis index of the symbol owning the given imaginary basis element (-1 if none). '''
        if imaginary_index < 0 or imaginary_index >= len(self.imaginary_symbols):
            raise UnknownBasisElementError(False, imaginary_index)
        return self._table[self.imaginary_symbols[imaginary_index]].real_index

    def symbol_of(self, is_real: bool, index: int) -> int:
        table = self.real_symbols if is_real else self.imaginary_symbols
        if index < 0 or index >= len(table):
            raise UnknownBasisElementError(is_real, index)
        return table[index]

    def clear(self) -> None:
        self.real_symbols.clear()
        self.imaginary_symbols.clear()

####################################################################################################
#! Symbol table
####################################################################################################

class SymbolTable:
    """
    Registry of unique symbols of one context.

    Parameters
    ----------
    context : Context
        The operator context whose sequences are registered.
    """

    NOT_FOUND = sys.maxsize

    def __init__(self, context):
        self.context                = context
        self._symbols               : List[Symbol]   = []
        self.hash_table             : Dict[int, int] = {}
        self.basis                  = SymbolBasisView(self)

        self._push_back(Symbol.Zero(context))
        self._push_back(Symbol.Identity(context))

    # ----------------------------------------------------------------
    #! Container protocol
    # ----------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._symbols)

    def __iter__(self) -> Iterator[Symbol]:
        return iter(self._symbols)

    def __getitem__(self, symbol_id: int) -> Symbol:
        if symbol_id < 0 or symbol_id >= len(self._symbols):
            raise UnknownSymbolError(symbol_id, len(self._symbols))
        return self._symbols[symbol_id]

    def __contains__(self, symbol_id: int) -> bool:
        return 0 <= symbol_id < len(self._symbols)

    # ----------------------------------------------------------------
    #! Registration
    # ----------------------------------------------------------------

    def _push_back(self, symbol: Symbol) -> int:
        symbol.id = len(self._symbols)
        if not symbol.antihermitian:
            symbol.real_index = len(self.basis.real_symbols)
            self.basis.real_symbols.append(symbol.id)
        else:
            symbol.real_index = -1
        if not symbol.hermitian:
            symbol.img_index = len(self.basis.imaginary_symbols)
            self.basis.imaginary_symbols.append(symbol.id)
        else:
            symbol.img_index = -1

        self._symbols.append(symbol)
        if symbol.hash is not None:
            self.hash_table[symbol.hash] = symbol.id
            if symbol.hash_conj is not None and symbol.hash_conj != symbol.hash:
                self.hash_table[symbol.hash_conj] = -symbol.id
        return symbol.id

    def _merge_sequence(self, sequence: OperatorSequence) -> int:
        if sequence.zero:
            return 0
        symbol  = Symbol.from_sequence(sequence)
        found   = self.hash_table.get(symbol.hash)
        if found is not None:
            return abs(found)

        re_zero, im_zero = self.context.is_sequence_null(symbol.sequence)
        if re_zero and im_zero:
            raise ZeroSymbolError(len(self._symbols), f"sequence {symbol.sequence} has no real or imaginary part.")
        if re_zero:
            if symbol.hermitian:
                raise ZeroSymbolError(len(self._symbols), f"Hermitian sequence {symbol.sequence} has a null real part.")
            symbol.antihermitian = True
        if im_zero:
            if symbol.antihermitian:
                raise ZeroSymbolError(len(self._symbols), f"antihermitian sequence {symbol.sequence} has a null imaginary part.")
            symbol.hermitian = True
        return self._push_back(symbol)

    def _merge_symbol(self, symbol: Symbol) -> int:
        if symbol.hash is not None:
            found = self.hash_table.get(symbol.hash)
            if found is not None:
                return abs(found)
        return self._push_back(symbol)

    def merge_in(self, item: Union[OperatorSequence, Symbol, Iterable]) -> Union[int, List[int]]:
        '''
        Register a sequence (or symbol) if it is new.

        Parameters
        ----------
        item : OperatorSequence, Symbol or iterable thereof
            What to register.

        Returns
        -------
        int or list of int
            Id of the (existing or new) symbol, or the list of ids for an iterable.

        Raises
        ------
        ZeroSymbolError
            If the context declares both parts of the expectation value null, or a
            part that contradicts the sequence's own Hermiticity.
        '''
        if isinstance(item, OperatorSequence):
            return self._merge_sequence(item)
        if isinstance(item, Symbol):
            return self._merge_symbol(item)
        return [self.merge_in(element) for element in item]

    def create(self, count: int = 1, has_real: bool = True, has_imaginary: bool = True) -> int:
        '''
        Create blank symbols (without an operator sequence). Returns the id of the first one.
        '''
        if not has_real and not has_imaginary:
            raise ZeroSymbolError(len(self._symbols), "a symbol needs a real or an imaginary part.")
        first = len(self._symbols)
        for _ in range(count):
            self._push_back(Symbol(-1, hermitian=not has_imaginary, antihermitian=not has_real))
        return first

    def fill_to_word_length(self, word_length: int) -> int:
        '''
        Register every canonical word up to the given length. Returns the number of new symbols.
        '''
        before = len(self._symbols)
        for sequence in self.context.operator_sequence_generator(word_length):
            self._merge_sequence(sequence)
        return len(self._symbols) - before

    def merge_nullity(self, symbol_id: int, real_is_zero: bool = False, imaginary_is_zero: bool = False) -> bool:
        '''
        Force the real or imaginary part of a symbol to zero. Basis keys are renumbered
        if anything changed. Returns True if the symbol changed.
        '''
        symbol = self[symbol_id]
        if symbol_id == 0:
            return False
        if real_is_zero and imaginary_is_zero:
            raise ZeroSymbolError(symbol_id)
        changed = False
        if real_is_zero and not symbol.antihermitian:
            if symbol.hermitian:
                raise ZeroSymbolError(symbol_id, "Hermitian symbol cannot have a null real part.")
            symbol.antihermitian    = True
            changed                 = True
        if imaginary_is_zero and not symbol.hermitian:
            if symbol.antihermitian:
                raise ZeroSymbolError(symbol_id, "antihermitian symbol cannot have a null imaginary part.")
            symbol.hermitian        = True
            changed                 = True
        if changed:
            self.renumerate_bases()
        return changed

    def renumerate_bases(self) -> None:
        ''' Recompute the real and imaginary basis indices of every symbol. '''
        self.basis.clear()
        for symbol in self._symbols:
            if symbol.id != 0 and not symbol.antihermitian:
                symbol.real_index = len(self.basis.real_symbols)
                self.basis.real_symbols.append(symbol.id)
            else:
                symbol.real_index = -1
            if symbol.id != 0 and not symbol.hermitian:
                symbol.img_index = len(self.basis.imaginary_symbols)
                self.basis.imaginary_symbols.append(symbol.id)
            else:
                symbol.img_index = -1

    # ----------------------------------------------------------------
    #! Lookup
    # ----------------------------------------------------------------

    def hash_to_index(self, hash_value: int) -> Tuple[int, bool]:
        '''
        Returns (symbol id, conjugated) for a hash, or (NOT_FOUND, False).
        '''
        found = self.hash_table.get(hash_value)
        if found is None:
            return self.NOT_FOUND, False
        return abs(found), found < 0

    def where(self, sequence: OperatorSequence) -> Tuple[int, bool]:
        ''' Returns (symbol id, conjugated) of the sequence, or (NOT_FOUND, False). '''
        if sequence.zero:
            return 0, False
        return self.hash_to_index(sequence.hash)

    def to_symbol(self, sequence: OperatorSequence) -> Monomial:
        '''
        The monomial equal to the expectation value of a sequence. Its id is ``NOT_FOUND``
        if the sequence is not registered.
        '''
        symbol_id, conjugated = self.where(sequence)
        if symbol_id == self.NOT_FOUND:
            return Monomial(self.NOT_FOUND, sequence.factor, False)
        if symbol_id == 0:
            return Monomial(0, 0.0, False)
        symbol  = self._symbols[symbol_id]
        factor  = sequence.factor
        ref     = symbol.sequence_conj if conjugated else symbol.sequence
        if ref is not None:
            factor = factor / ref.factor
        return self.make_canonical(Monomial(symbol_id, factor, conjugated))

    def make_canonical(self, monomial: Monomial) -> Monomial:
        '''
        Remove redundant conjugation: X* -> X for Hermitian X, X* -> -X for antihermitian X.
        '''
        if monomial.id == 0:
            return Monomial(0, 0.0, False)
        if not monomial.conjugated:
            return monomial
        symbol = self[monomial.id]
        if symbol.hermitian:
            return Monomial(monomial.id, monomial.factor, False)
        if symbol.antihermitian:
            return Monomial(monomial.id, -monomial.factor, False)
        return monomial

    # ----------------------------------------------------------------
    #! Display
    # ----------------------------------------------------------------

    def format_symbol(self, symbol_id: int, conjugated: bool = False) -> str:
        symbol = self[symbol_id]
        if symbol.sequence is None:
            return f"#{symbol_id}" + ("*" if conjugated else "")
        return str(symbol.sequence_conj if conjugated else symbol.sequence)

    def __str__(self) -> str:
        lines = [f"Symbol table with {len(self)} symbols "
                 f"({self.basis.real_symbol_count} real, {self.basis.imaginary_symbol_count} imaginary):"]
        for symbol in self._symbols:
            lines.append(f"  #{symbol.id}: {symbol}, basis=({symbol.real_index}, {symbol.img_index})")
        return "\n".join(lines)

####################################################################################################
#! End of symbol table
####################################################################################################
