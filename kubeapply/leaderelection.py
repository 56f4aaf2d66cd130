"""Leader election over a shared lock record.

A client only trusts timestamps it captured locally: the renew time in the
record is used only to notice that another client renewed its lease, or that
the lease is so stale that clock skew no longer matters.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)

JITTER_FACTOR = 1.2


class LockNotFoundError(LookupError):
    """Raised by a ResourceLock when its record does not exist yet."""


@dataclass
class LeaderElectionRecord:
    """The state stored in the lock: who holds it and since when."""

    holder_identity: str = ""
    lease_duration_seconds: int = 0
    acquire_time: datetime | None = None
    renew_time: datetime | None = None
    leader_transitions: int = 0


class ResourceLock(ABC):
    """Storage for a leader election record."""

    @abstractmethod
    def get(self) -> tuple[LeaderElectionRecord, bytes]:
        """Return the record and its raw form; raise LockNotFoundError if absent."""

    @abstractmethod
    def create(self, record: LeaderElectionRecord) -> None:
        """Create the record."""

    @abstractmethod
    def update(self, record: LeaderElectionRecord) -> None:
        """Replace the record."""

    @abstractmethod
    def record_event(self, message: str) -> None:
        """Note a leadership event."""

    @abstractmethod
    def identity(self) -> str:
        """Return the identity of this client."""

    @abstractmethod
    def describe(self) -> str:
        """Return a short description of the lock for logs."""


@dataclass
class LeaderCallbacks:
    """Hooks called on leadership changes.

    on_started_leading runs in its own thread and is given an event that is
    set once leadership ends; on_new_leader also runs in its own thread.
    """

    on_started_leading: Callable[[threading.Event], None] | None = None
    on_stopped_leading: Callable[[], None] | None = None
    on_new_leader: Callable[[str], None] | None = None


@dataclass
class LeaderElectionConfig:
    """Settings for a LeaderElector; durations are in seconds."""

    lock: ResourceLock | None
    lease_duration: float
    renew_deadline: float
    retry_period: float
    callbacks: LeaderCallbacks = field(default_factory=LeaderCallbacks)
    release_on_cancel: bool = False
    name: str = ""


def _validate(config: LeaderElectionConfig) -> None:
    if config.lease_duration <= config.renew_deadline:
        raise ValueError("lease_duration must be greater than renew_deadline")
    if config.renew_deadline <= JITTER_FACTOR * config.retry_period:
        raise ValueError("renew_deadline must be greater than retry_period*JITTER_FACTOR")
    if config.lease_duration <= 0:
        raise ValueError("lease_duration must be greater than zero")
    if config.renew_deadline <= 0:
        raise ValueError("renew_deadline must be greater than zero")
    if config.retry_period <= 0:
        raise ValueError("retry_period must be greater than zero")
    if config.callbacks.on_started_leading is None:
        raise ValueError("on_started_leading callback must not be None")
    if config.callbacks.on_stopped_leading is None:
        raise ValueError("on_stopped_leading callback must not be None")
    if config.lock is None:
        raise ValueError("lock must not be None")


class LeaderElector:
    """A leader election client."""

    def __init__(
        self,
        config: LeaderElectionConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        _validate(config)
        self._config = config
        self._lock: ResourceLock = config.lock  # type: ignore[assignment]
        self._clock = clock
        self._observed_record = LeaderElectionRecord()
        self._observed_raw: bytes | None = None
        self._observed_time = 0.0
        self._reported_leader = ""

    def run(self, stop_event: threading.Event) -> None:
        """Run the election loop until stop_event is set or leadership is lost."""
        leading = threading.Event()
        try:
            if not self._acquire(stop_event):
                return
            threading.Thread(
                target=self._config.callbacks.on_started_leading,
                args=(leading,),
                daemon=True,
            ).start()
            self._renew(stop_event)
        finally:
            leading.set()
            self._config.callbacks.on_stopped_leading()

    def get_leader(self) -> str:
        """Return the last observed leader, or "" if none has been seen."""
        return self._observed_record.holder_identity

    def is_leader(self) -> bool:
        """Return whether the last observed leader is this client."""
        return self._observed_record.holder_identity == self._lock.identity()

    def check(self, max_tolerable_expired_lease: float) -> None:
        """Raise RuntimeError if this leader's lease has been expired for too long."""
        if not self.is_leader():
            return None
        elapsed = self._clock() - self._observed_time
        if elapsed > self._config.lease_duration + max_tolerable_expired_lease:
            raise RuntimeError(
                f"failed election to renew leadership on lease {self._config.name}"
            )
        return None

    def _jittered(self, duration: float) -> float:
        return duration + random.random() * JITTER_FACTOR * duration

    def _acquire(self, stop_event: threading.Event) -> bool:
        desc = self._lock.describe()
        logger.info("Attempting to acquire leader lease %s...", desc)
        while not stop_event.is_set():
            succeeded = self._try_acquire_or_renew()
            self._maybe_report_transition()
            if succeeded:
                self._lock.record_event("became leader")
                logger.info("Successfully acquired lease %s", desc)
                return True
            logger.info("Failed to acquire lease %s", desc)
            if stop_event.wait(self._jittered(self._config.retry_period)):
                break
        return False

    def _poll_renew(self, stop_event: threading.Event) -> bool:
        deadline = time.monotonic() + self._config.renew_deadline
        while True:
            if self._try_acquire_or_renew():
                return True
            remaining = deadline - time.monotonic()
            if remaining <= 0 or stop_event.is_set():
                return False
            if stop_event.wait(min(self._config.retry_period, remaining)):
                return False

    def _renew(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            renewed = self._poll_renew(stop_event)
            self._maybe_report_transition()
            desc = self._lock.describe()
            if renewed:
                logger.debug("Successfully renewed lease %s", desc)
                if stop_event.wait(self._config.retry_period):
                    break
                continue
            self._lock.record_event("stopped leading")
            logger.info("Failed to renew lease %s: timed out waiting for the condition", desc)
            break

        if self._config.release_on_cancel:
            self._release()

    def _release(self) -> bool:
        if not self.is_leader():
            return True
        now = datetime.now(timezone.utc)
        record = LeaderElectionRecord(
            leader_transitions=self._observed_record.leader_transitions,
            lease_duration_seconds=1,
            renew_time=now,
            acquire_time=now,
        )
        try:
            self._lock.update(record)
        except Exception as exc:  # noqa: BLE001 - any lock failure means no release
            logger.error("Failed to release lock: %s", exc)
            return False
        self._observed_record = record
        self._observed_time = self._clock()
        return True

    def _try_acquire_or_renew(self) -> bool:
        now = datetime.now(timezone.utc)
        record = LeaderElectionRecord(
            holder_identity=self._lock.identity(),
            lease_duration_seconds=int(self._config.lease_duration),
            renew_time=now,
            acquire_time=now,
        )

        try:
            old_record, old_raw = self._lock.get()
        except LockNotFoundError:
            try:
                self._lock.create(record)
            except Exception as exc:  # noqa: BLE001
                logger.error("Error initially creating leader election record: %s", exc)
                return False
            self._observed_record = record
            self._observed_time = self._clock()
            return True
        except Exception as exc:  # noqa: BLE001
            logger.error("Error retrieving resource lock %s: %s", self._lock.describe(), exc)
            return False

        if self._observed_raw != old_raw:
            self._observed_record = old_record
            self._observed_raw = old_raw
            self._observed_time = self._clock()

        # A lease not renewed for twice its duration is taken regardless of skew.
        threshold = now - timedelta(seconds=2 * self._config.lease_duration)
        recently_renewed = old_record.renew_time is not None and old_record.renew_time > threshold

        if (
            old_record.holder_identity
            and self._observed_time + self._config.lease_duration > self._clock()
            and recently_renewed
            and not self.is_leader()
        ):
            logger.info(
                "Lock is held by %s and has not yet expired", old_record.holder_identity
            )
            return False

        if self.is_leader():
            record.acquire_time = old_record.acquire_time
            record.leader_transitions = old_record.leader_transitions
        else:
            record.leader_transitions = old_record.leader_transitions + 1

        try:
            self._lock.update(record)
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to update lock: %s", exc)
            return False

        self._observed_record = record
        self._observed_time = self._clock()
        return True

    def _maybe_report_transition(self) -> None:
        holder = self._observed_record.holder_identity
        if holder == self._reported_leader:
            return
        self._reported_leader = holder
        if self._config.callbacks.on_new_leader is not None:
            threading.Thread(
                target=self._config.callbacks.on_new_leader,
                args=(holder,),
                daemon=True,
            ).start()


def run_or_die(stop_event: threading.Event, config: LeaderElectionConfig) -> None:
    """Build a LeaderElector from config (raising ValueError if invalid) and run it."""
    LeaderElector(config).run(stop_event)