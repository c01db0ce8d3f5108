"""
Word enumeration and the per-context word-list cache.

`OperatorSequenceGenerator` lists every canonical word of a context up to a
maximum length in shortlex order (identity first). `Dictionary` caches one
generator pair (words and their conjugates) per word length; lookups take a
shared lock, and a cache miss upgrades to the exclusive lock and re-checks
before generating.

----------------------------------------------------------
Description     : Operator sequence generators and their cache.
----------------------------------------------------------
"""

from __future__ import annotations
from itertools import product
from typing import Dict, Iterator, List, TYPE_CHECKING

from QMS.Scenario.operator_sequence import OperatorSequence
from QMS.System.multithreading import (
    MultiThreadPolicy, ReadWriteLock, parallel_map, should_multithread_dictionary
)

if TYPE_CHECKING:
    from QMS.Scenario.context import Context

####################################################################################################

class OperatorSequenceGenerator:
    """
    All canonical operator words of a context with length at most ``max_length``.
    """

    def __init__(self, context: "Context", max_length: int, mt_policy=MultiThreadPolicy.Never,
                 sequences: List[OperatorSequence] = None):
        self.context    = context
        self.max_length = int(max_length)
        if sequences is None:
            sequences   = self._generate(mt_policy)
        self._sequences = sequences

    def _generate(self, mt_policy) -> List[OperatorSequence]:
        context     = self.context
        n           = context.operator_count
        output      = [OperatorSequence.Identity(context)]
        seen        = {output[0].hash}
        for length in range(1, self.max_length + 1):
            if n == 0:
                break
            raws    = list(product(range(n), repeat=length))
            multi   = should_multithread_dictionary(mt_policy, len(raws))
            for seq in parallel_map(context.get_if_canonical, raws, multithread=multi):
                if seq is None or seq.hash in seen:
                    continue
                seen.add(seq.hash)
                output.append(seq)
        return output

    def conjugate(self) -> "OperatorSequenceGenerator":
        ''' Generator listing the conjugate of each word, in the same order. '''
        return OperatorSequenceGenerator(self.context, self.max_length,
                                         sequences=[seq.conjugate() for seq in self._sequences])

    def __len__(self) -> int:
        return len(self._sequences)

    def __iter__(self) -> Iterator[OperatorSequence]:
        return iter(self._sequences)

    def __getitem__(self, index: int) -> OperatorSequence:
        return self._sequences[index]

####################################################################################################

class OSGPair:
    """Generator of words, together with the generator of their conjugates."""

    def __init__(self, forward: OperatorSequenceGenerator):
        self.forward    = forward
        self.conjugate  = forward.conjugate()

class Dictionary:
    """
    Word-list cache of a context, keyed by word length.
    """

    def __init__(self, context: "Context"):
        self.context    = context
        self._levels    : Dict[int, OSGPair] = {}
        self._lock      = ReadWriteLock()

    def level(self, word_length: int) -> OSGPair:
        word_length = int(word_length)
        with self._lock.read():
            found = self._levels.get(word_length)
        if found is not None:
            return found

        with self._lock.write():
            # Another thread may have generated it between the locks
            found = self._levels.get(word_length)
            if found is None:
                found = OSGPair(self.context.new_osg(word_length))
                self._levels[word_length] = found
            return found

    def __contains__(self, word_length: int) -> bool:
        with self._lock.read():
            return int(word_length) in self._levels

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._levels)

####################################################################################################
#! End of dictionary
####################################################################################################
