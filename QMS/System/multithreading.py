'''
Multithreading policy and synchronisation primitives.

The engine parallelises only embarrassingly-parallel, per-cell passes (operator
matrix generation, symbol lookup, rule substitution) over a bounded thread pool.
Whether a pass is parallelised is decided per call by a `MultiThreadPolicy` and
an element-count threshold.

Two primitives support the read-mostly data structures:

- `ReadWriteLock`   : many readers or one writer; the writer may re-enter and may also read.
- `LazyValue`       : build-once cache with an explicit {Empty, Building, Ready} state.

------------------------------------------------------------------------------------------
Description     : Thread-pool dispatch, thresholds and locks for the moment engine.
------------------------------------------------------------------------------------------
'''

from    __future__          import annotations
from    concurrent.futures  import ThreadPoolExecutor, as_completed
from    contextlib          import contextmanager
from    enum                import Enum, auto
from    typing              import Any, Callable, Dict, Generic, Iterator, List, Optional, Sequence, TypeVar, Union
import  threading

from    QMS.errors          import QMSLogicError
from    QMS.qms_globals     import get_logger, get_settings

T = TypeVar("T")
R = TypeVar("R")

# ------------------------------------------------------------------------------------------
#! Thresholds (flattened element counts)
# ------------------------------------------------------------------------------------------

MIN_ELEMENTS_MATRIX_CREATION    = 256       # 16 x 16 matrix
MIN_ELEMENTS_RULE_APPLICATION   = 256 * 4   # elements x rules
MIN_SEQUENCES_DICTIONARY        = 4096

# ------------------------------------------------------------------------------------------

class MultiThreadPolicy(Enum):
    """
    Whether an operation should be parallelised.

    - Never    : always single-threaded.
    - Optional : parallelise when the work exceeds a fixed threshold.
    - Always   : always parallelise (useful for testing the parallel path).
    """
    Never       = auto()
    Optional    = auto()
    Always      = auto()

    @classmethod
    def resolve(cls, value: Union["MultiThreadPolicy", str, None] = None) -> "MultiThreadPolicy":
        '''
        Convert a policy, a policy name or None (= configured default) into a policy.
        '''
        if value is None:
            value = get_settings().mt_policy
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.name.lower() == value.strip().lower():
                    return member
        raise ValueError(f"Unknown multithreading policy: {value!r}")

def _decide(policy: Union[MultiThreadPolicy, str, None], work: int, threshold: int) -> bool:
    policy = MultiThreadPolicy.resolve(policy)
    if policy is MultiThreadPolicy.Never:
        return False
    if policy is MultiThreadPolicy.Always:
        return True
    return work >= threshold and get_max_worker_threads() > 1

def should_multithread_matrix_creation(policy, element_count: int) -> bool:
    ''' True if a matrix with ``element_count`` cells should be built in parallel. '''
    return _decide(policy, element_count, MIN_ELEMENTS_MATRIX_CREATION)

def should_multithread_rule_application(policy, element_count: int, rule_count: int) -> bool:
    ''' True if substituting ``rule_count`` rules into ``element_count`` cells should be parallel. '''
    if rule_count == 0:
        return False
    return _decide(policy, element_count * rule_count, MIN_ELEMENTS_RULE_APPLICATION)

def should_multithread_dictionary(policy, sequence_count: int) -> bool:
    ''' True if enumerating ``sequence_count`` potential sequences should be parallel. '''
    return _decide(policy, sequence_count, MIN_SEQUENCES_DICTIONARY)

def get_max_worker_threads() -> int:
    ''' Worker cap from the global settings (at least one). '''
    return max(1, int(get_settings().max_workers))

# ------------------------------------------------------------------------------------------
#! Dispatch
# ------------------------------------------------------------------------------------------

def parallel_map(func: Callable[[T], R], items: Sequence[T], multithread: bool = True,
                 max_workers: Optional[int] = None) -> List[R]:
    '''
    Apply ``func`` to every item, preserving order.

    The items are split into one contiguous chunk per worker; chunks are
    processed in a ``ThreadPoolExecutor`` and reassembled by start offset.
    Exceptions raised by ``func`` propagate to the caller.

    Parameters
    ----------
    func : callable
        Function applied to each element.
    items : sequence
        Input elements.
    multithread : bool
        If False (or if there is only one worker), runs in the calling thread.
    max_workers : int, optional
        Overrides the configured worker cap.
    '''
    n       = len(items)
    workers = min(max_workers or get_max_worker_threads(), n)
    if not multithread or workers <= 1:
        return [func(item) for item in items]

    def _kernel(start: int, stop: int):
        return start, [func(items[idx]) for idx in range(start, stop)]

    results = []
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = []
        for t in range(workers):
            start   = int(n * t / workers)
            stop    = n if (t + 1) == workers else int(n * (t + 1) / workers)
            futures.append(executor.submit(_kernel, start, stop))
        for future in as_completed(futures):
            results.append(future.result())

    results.sort(key=lambda item: item[0])
    get_logger().debug(f"parallel_map: {n} items over {workers} workers.")
    return [value for _, chunk in results for value in chunk]

# ------------------------------------------------------------------------------------------
#! Locks
# ------------------------------------------------------------------------------------------

class ReadWriteLock:
    '''
    Readers-writer lock built on a single condition variable.

    Any number of readers may hold the lock together; a writer holds it
    exclusively. The thread owning the write lock may re-acquire it and may
    also acquire the read lock, so find-or-create paths can call lookups.
    Waiting writers block new readers, so writers are not starved; a thread
    that already holds the read lock re-enters without waiting.
    '''

    def __init__(self):
        self._cond              = threading.Condition(threading.Lock())
        self._read_depth        : Dict[int, int] = {}
        self._writer            : Optional[int] = None
        self._writer_depth      = 0
        self._waiting_writers   = 0

    def acquire_read(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._writer_depth += 1
                return
            depth = self._read_depth.get(me, 0)
            if depth == 0:
                while self._writer is not None or self._waiting_writers > 0:
                    self._cond.wait()
            self._read_depth[me] = depth + 1

    def release_read(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._writer_depth -= 1
                return
            depth = self._read_depth.get(me, 0)
            if depth == 0:
                raise QMSLogicError("Read lock released by a thread that does not hold it.")
            if depth > 1:
                self._read_depth[me] = depth - 1
                return
            del self._read_depth[me]
            if not self._read_depth:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._writer_depth += 1
                return
            self._waiting_writers += 1
            try:
                while self._writer is not None or self._read_depth:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer        = me
            self._writer_depth  = 1

    def release_write(self) -> None:
        with self._cond:
            if self._writer != threading.get_ident():
                raise QMSLogicError("Write lock released by a thread that does not own it.")
            self._writer_depth -= 1
            if self._writer_depth == 0:
                self._writer = None
                self._cond.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

# ------------------------------------------------------------------------------------------

class LazyState(Enum):
    Empty       = auto()
    Building    = auto()
    Ready       = auto()

class LazyValue(Generic[T]):
    '''
    A value computed at most once, on first request.

    Readers that find the value ``Ready`` return immediately. The first reader
    to find it ``Empty`` marks it ``Building`` and runs the builder outside the
    lock; concurrent readers wait on the condition variable until it becomes
    ``Ready``. If the builder raises, the state returns to ``Empty`` and the
    exception propagates, so a later call may retry.
    '''

    def __init__(self, builder: Callable[[], T]):
        self._builder   = builder
        self._cond      = threading.Condition(threading.Lock())
        self._state     = LazyState.Empty
        self._value     : Any = None
        self._owner     : Optional[int] = None

    @property
    def state(self) -> LazyState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state is LazyState.Ready

    def get(self) -> T:
        if self._state is LazyState.Ready:
            return self._value
        me = threading.get_ident()
        with self._cond:
            while self._state is LazyState.Building:
                if self._owner == me:
                    raise QMSLogicError("Recursive request for a value that is being built.")
                self._cond.wait()
            if self._state is LazyState.Ready:
                return self._value
            self._state = LazyState.Building
            self._owner = me
        try:
            value = self._builder()
        except BaseException:
            with self._cond:
                self._state = LazyState.Empty
                self._owner = None
                self._cond.notify_all()
            raise
        with self._cond:
            self._value = value
            self._state = LazyState.Ready
            self._owner = None
            self._cond.notify_all()
        return value

    def reset(self) -> None:
        ''' Discard a built value, so the next ``get`` rebuilds it. '''
        with self._cond:
            while self._state is LazyState.Building:
                self._cond.wait()
            self._state = LazyState.Empty
            self._value = None

# ------------------------------------------------------------------------------------------
#! End of multithreading
# ------------------------------------------------------------------------------------------
