"""
Symbols: canonical identities of operator sequences up to conjugation.

A symbol owns the operator sequence with the lower hash of the pair
(sequence, conjugate). Its flags record whether the expectation value is
purely real (Hermitian) or purely imaginary (antihermitian); the zero symbol
is both. The basis key (real index, imaginary index) places the symbol in
the global real and imaginary bases, with -1 marking an absent component.
"""

from __future__ import annotations
from typing import Optional, Tuple

from QMS.Scenario.operator_sequence import OperatorSequence, SequenceSign
from QMS.errors import QMSLogicError

####################################################################################################

class Symbol:
    """
    Registry entry for one equivalence class of operator sequences.

    Attributes
    ----------
    id : int
        Symbol id (0 = zero, 1 = identity).
    sequence, sequence_conj : OperatorSequence or None
        Forward and conjugate sequence (None for symbols created without a sequence).
    hash, hash_conj : int or None
        Hashes of the forward and conjugate sequence (equal iff Hermitian or antihermitian).
    hermitian, antihermitian : bool
        Whether the expectation value is real / imaginary.
    real_index, img_index : int
        Position in the real / imaginary basis, or -1.
    """

    __slots__ = ("id", "sequence", "sequence_conj", "hash", "hash_conj",
                 "hermitian", "antihermitian", "real_index", "img_index")

    def __init__(self,
                 symbol_id      : int                           = -1,
                 sequence       : Optional[OperatorSequence]    = None,
                 sequence_conj  : Optional[OperatorSequence]    = None,
                 hermitian      : bool                          = False,
                 antihermitian  : bool                          = False):
        self.id             = symbol_id
        self.sequence       = sequence
        self.sequence_conj  = sequence_conj
        self.hash           = sequence.hash if sequence is not None else None
        self.hash_conj      = sequence_conj.hash if sequence_conj is not None else self.hash
        self.hermitian      = hermitian
        self.antihermitian  = antihermitian
        self.real_index     = -1
        self.img_index      = -1

    # ----------------------------------------------------------------
    #! Named constructors
    # ----------------------------------------------------------------

    @classmethod
    def from_sequence(cls, sequence: OperatorSequence) -> "Symbol":
        '''
        Build an (unregistered) symbol from a sequence, stripping its phase and
        choosing the lower-hash direction as the forward sequence.
        '''
        if sequence.zero:
            return cls.Zero(sequence.context)
        fwd         = sequence.with_sign(SequenceSign.Positive)
        conj        = fwd.conjugate()
        relation    = OperatorSequence.compare_same_negation(fwd, conj)
        if relation == 1:
            return cls(-1, fwd, fwd, hermitian=True)
        if relation == -1:
            return cls(-1, fwd, conj, antihermitian=True)
        if fwd.hash == conj.hash:
            raise QMSLogicError(f"Sequence {fwd} equals its conjugate up to a non-real phase.")
        if conj.hash < fwd.hash:
            fwd     = conj.with_sign(SequenceSign.Positive)
            conj    = fwd.conjugate()
        return cls(-1, fwd, conj)

    @classmethod
    def Zero(cls, context=None) -> "Symbol":
        seq = OperatorSequence.Zero(context) if context is not None else None
        return cls(0, seq, seq, hermitian=True, antihermitian=True)

    @classmethod
    def Identity(cls, context=None) -> "Symbol":
        seq = OperatorSequence.Identity(context) if context is not None else None
        return cls(1, seq, seq, hermitian=True)

    # ----------------------------------------------------------------

    @property
    def is_hermitian(self) -> bool:
        return self.hermitian

    @property
    def is_antihermitian(self) -> bool:
        return self.antihermitian

    @property
    def has_sequence(self) -> bool:
        return self.sequence is not None

    def basis_key(self) -> Tuple[int, int]:
        return self.real_index, self.img_index

    def __repr__(self) -> str:
        kind = "zero" if (self.hermitian and self.antihermitian) else \
               "hermitian" if self.hermitian else "antihermitian" if self.antihermitian else "complex"
        return f"Symbol(#{self.id}, {kind}, basis=({self.real_index}, {self.img_index}))"

    def __str__(self) -> str:
        if self.sequence is None:
            return f"#{self.id}"
        return str(self.sequence)

####################################################################################################
#! End of symbol
####################################################################################################
