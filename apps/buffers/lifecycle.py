"""
Lazy, single-shot initialization of the per-sensor ring buffers.

Each (sensor, buffer kind) pair is in one of three states:

    missing --claim--> initializing --populate--> ready --reset--> missing

A tick that observes ``missing`` claims the buffer with a compare-and-set on
the stored status, then hands the (slow) population write to a background
executor. Any tick that observes ``initializing`` leaves the buffer alone, so
overlapping or backlogged ticks never populate twice or read a half-written
buffer.
"""
import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from django.conf import settings
from django.db import connections, models

from apps.core.exceptions import BufferNotReady, StorageFailure
from .elements import AqiBufferElement, Pm25BufferElement
from .ring import RingBuffer

logger = logging.getLogger(__name__)


class BufferState(models.TextChoices):
    MISSING = 'missing', 'Missing'
    INITIALIZING = 'initializing', 'Initializing'
    READY = 'ready', 'Ready'


class BufferKind(Enum):
    """The two ring buffers every sensor carries, and where they are stored."""
    PM25 = 'pm25'
    AQI = 'aqi'

    @property
    def buffer_field(self) -> str:
        return f'{self.value}_buffer'

    @property
    def index_field(self) -> str:
        return f'{self.value}_buffer_index'

    @property
    def status_field(self) -> str:
        return f'{self.value}_buffer_status'

    @property
    def element_class(self):
        if self is BufferKind.PM25:
            return Pm25BufferElement
        return AqiBufferElement

    def capacity(self) -> int:
        # 360 = 30 readings/hour * 12 hours; 144 = 6 ticks/hour * 24 hours
        key = 'PM25_BUFFER_SIZE' if self is BufferKind.PM25 else 'AQI_BUFFER_SIZE'
        return settings.AIR_QUALITY_SETTINGS[key]

    def new_buffer(self) -> RingBuffer:
        """A buffer with every slot set to the sentinel element."""
        return RingBuffer(self.capacity(), self.element_class.default)

    def load(self, documents) -> RingBuffer:
        """Rebuild a buffer from its stored list of slot dicts."""
        documents = documents or []
        capacity = len(documents) or self.capacity()
        element_class = self.element_class
        return RingBuffer(
            capacity,
            element_class.default,
            items=[element_class.from_dict(doc) for doc in documents],
        )

    @staticmethod
    def dump(buffer: RingBuffer) -> list:
        return [element.to_dict() for element in buffer]


@dataclass
class BufferWrite:
    """
    Outcome of planning one tick's write to a buffer.

    ``fields`` holds the sensor-record update (empty unless the buffer was
    ready). A ``missing`` buffer is written nothing this tick and must be
    initialized once the sensor record has been saved.
    """
    kind: BufferKind
    state: BufferState
    fields: dict = field(default_factory=dict)

    @property
    def needs_initialization(self) -> bool:
        return self.state == BufferState.MISSING


_executor_lock = threading.Lock()
_populate_executor: Optional[ThreadPoolExecutor] = None


def get_populate_executor() -> ThreadPoolExecutor:
    """Process-wide executor for buffer population jobs."""
    global _populate_executor
    with _executor_lock:
        if _populate_executor is None:
            _populate_executor = ThreadPoolExecutor(
                max_workers=settings.AIR_QUALITY_SETTINGS.get('POPULATE_WORKERS', 2),
                thread_name_prefix='buffer-populate',
            )
        return _populate_executor


class BufferLifecycle:
    """
    Drives the missing/initializing/ready state machine for sensor buffers.

    Args:
        store: document store exposing claim_buffer_initialization and
            complete_buffer_initialization
        executor: where population jobs run. Defaults to a shared thread
            pool whose jobs release their DB connection when done.
    """

    def __init__(self, store, executor: Optional[Executor] = None):
        self.store = store
        self._owns_executor = executor is None
        self.executor = executor

    def state_of(self, sensor, kind: BufferKind) -> BufferState:
        value = getattr(sensor, kind.status_field, None) or BufferState.MISSING
        return BufferState(value)

    def load(self, sensor, kind: BufferKind) -> Tuple[RingBuffer, int]:
        """Buffer and write index of a ready buffer."""
        state = self.state_of(sensor, kind)
        if state != BufferState.READY:
            raise BufferNotReady(kind.value, state.value)
        buffer = kind.load(getattr(sensor, kind.buffer_field))
        index = getattr(sensor, kind.index_field) or 0
        return buffer, buffer.wrap(index)

    def plan_write(self, sensor, kind: BufferKind, element) -> BufferWrite:
        """
        Decide what this tick does to ``kind``'s buffer.

        Ready: write ``element`` at the index and advance by one slot.
        Missing: write nothing, initialize after the record is saved.
        Initializing: write nothing.
        """
        state = self.state_of(sensor, kind)

        if state == BufferState.READY:
            buffer, index = self.load(sensor, kind)
            buffer.write(index, element)
            return BufferWrite(kind, state, {
                kind.buffer_field: kind.dump(buffer),
                kind.index_field: buffer.wrap(index + 1),
            })
        elif state == BufferState.MISSING:
            return BufferWrite(kind, state)
        elif state == BufferState.INITIALIZING:
            logger.debug(f"{kind.value} buffer of sensor {sensor.pk} is initializing, skipping")
            return BufferWrite(kind, state)
        else:
            raise ValueError(f"Unhandled buffer state: {state}")

    def begin_initialization(self, sensor_id, kind: BufferKind) -> Optional[Future]:
        """
        Claim a missing buffer and schedule its population.

        Returns the population future, or None when another invocation
        already claimed the buffer.
        """
        if not self.store.claim_buffer_initialization(sensor_id, kind):
            logger.info(f"{kind.value} buffer of sensor {sensor_id} already claimed")
            return None

        logger.info(f"Initializing {kind.value} buffer for sensor {sensor_id}")
        if self._owns_executor:
            return get_populate_executor().submit(self._populate_in_worker, sensor_id, kind)
        return self.executor.submit(self.populate, sensor_id, kind)

    def populate(self, sensor_id, kind: BufferKind) -> bool:
        """
        Fill every slot with the sentinel and promote the buffer to ready.

        A failed write hands the claim back (initializing to missing) so the
        next tick retries, then re-raises.
        """
        buffer = kind.new_buffer()
        try:
            completed = self.store.complete_buffer_initialization(sensor_id, kind, buffer)
        except StorageFailure:
            try:
                self.store.release_buffer_initialization(sensor_id, kind)
            except StorageFailure as e:
                logger.error(f"{kind.value} buffer of sensor {sensor_id} left initializing: {e}")
            raise
        if completed:
            logger.info(f"{kind.value} buffer of sensor {sensor_id} is ready ({buffer.capacity} slots)")
        else:
            logger.warning(f"{kind.value} buffer of sensor {sensor_id} was reset before population finished")
        return completed

    def _populate_in_worker(self, sensor_id, kind: BufferKind) -> bool:
        try:
            return self.populate(sensor_id, kind)
        except Exception as e:
            logger.error(f"Failed to populate {kind.value} buffer for sensor {sensor_id}: {e}")
            raise
        finally:
            connections.close_all()

    def apply(self, sensor_id, write: BufferWrite) -> Optional[Future]:
        """Follow-up for a planned write once the sensor record is saved."""
        if write.needs_initialization:
            return self.begin_initialization(sensor_id, write.kind)
        return None

    def reset(self, sensor_id) -> None:
        """Drop both buffers and return them to missing (sensor deactivation)."""
        self.store.reset_buffers(sensor_id)


def wait_for_population(initializations: Sequence[Tuple[int, Future]]) -> List[Tuple[int, BaseException]]:
    """
    Block until the given population jobs finish.

    Args:
        initializations: (sensor id, future) pairs collected during a tick

    Returns:
        (sensor id, exception) for every job that failed
    """
    wait([future for _, future in initializations])
    return [
        (sensor_id, future.exception())
        for sensor_id, future in initializations
        if future.exception() is not None
    ]
