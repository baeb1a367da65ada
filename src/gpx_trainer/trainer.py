"""Trainer link interface and a mock trainer for development.

A real link wraps a BLE FTMS connection; the ride session only needs the
narrow surface described by TrainerLink. Samples and shifter presses arrive
on bounded queues that the link fills from its own threads.
"""

import logging
import queue
import random
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)

QUEUE_SIZE = 10


class TrainerError(Exception):
    """A trainer connection or command failed."""


@dataclass(frozen=True)
class TrainerData:
    cadence: float  # rpm
    power: float  # watts


class ShiftEvent(Enum):
    UP = "up"
    DOWN = "down"


class TrainerLink(Protocol):
    def connect(self) -> None: ...

    def disconnect(self) -> None: ...

    def is_connected(self) -> bool: ...

    def data_queue(self) -> "queue.Queue[TrainerData]": ...

    def shift_queue(self) -> "queue.Queue[ShiftEvent]": ...

    def set_resistance(self, level: float) -> None: ...

    def set_target_power(self, watts: float) -> None: ...


class MockTrainer:
    """Simulated trainer producing plausible power/cadence samples.

    Power drifts with the commanded resistance, and follows the target
    closely once a target power has been set. Samples are dropped when the
    data queue is full, the way a radio link loses notifications.
    """

    def __init__(self, interval: float = 0.25, base_power: float = 150.0, base_cadence: float = 85.0,
                 seed: int | None = None):
        self.interval = interval
        self.base_power = base_power
        self.base_cadence = base_cadence
        self.resistance = 20.0
        self.target_power = 0.0
        self._rng = random.Random(seed)
        self._data: queue.Queue[TrainerData] = queue.Queue(maxsize=QUEUE_SIZE)
        self._shifts: queue.Queue[ShiftEvent] = queue.Queue(maxsize=QUEUE_SIZE)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._connected = False

    def connect(self) -> None:
        if self._connected:
            return
        self._connected = True
        self._stop.clear()
        self._thread = threading.Thread(target=self._generate, name="mock-trainer", daemon=True)
        self._thread.start()
        logger.info("Mock trainer connected")

    def disconnect(self) -> None:
        if not self._connected:
            return
        self._connected = False
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        logger.info("Mock trainer disconnected")

    def is_connected(self) -> bool:
        return self._connected

    def data_queue(self) -> "queue.Queue[TrainerData]":
        return self._data

    def shift_queue(self) -> "queue.Queue[ShiftEvent]":
        return self._shifts

    def set_resistance(self, level: float) -> None:
        self.resistance = level

    def set_target_power(self, watts: float) -> None:
        self.target_power = watts

    def simulate_shift(self, event: ShiftEvent) -> None:
        """Inject a shifter press, as a real shifter button would."""
        if self._connected:
            try:
                self._shifts.put_nowait(event)
            except queue.Full:
                logger.debug("Shift queue full, dropping %s", event)

    def sample(self) -> TrainerData:
        power = self.base_power + (self.resistance - 20) * 2 + (self._rng.random() - 0.5) * 20
        cadence = self.base_cadence + (self._rng.random() - 0.5) * 10
        if self.target_power > 0:
            power = self.target_power + (self._rng.random() - 0.5) * 10
        return TrainerData(cadence=cadence, power=max(0.0, power))

    def _generate(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self._data.put_nowait(self.sample())
            except queue.Full:
                logger.debug("Trainer data queue full, dropping sample")
