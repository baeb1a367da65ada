"""Ride session: the event loop tying trainer, engine, route and ride log together.

One worker thread owns every piece of ride state (engine, gears, distance,
averages, ride log). Trainer samples, shifter presses and control requests
(pause, resistance changes) are funnelled into a single inbox and handled in
arrival order, so nothing the worker touches needs a lock.

Trainer commands leave through a single-slot outbox drained by a sender
thread: a newer command replaces one that has not been sent yet, so a slow
trainer link never stalls ingestion of samples.

State machine::

    CONNECTING -> ACTIVE <-> PAUSED -> STOPPING -> FINISHED
"""

import logging
import queue
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

from gpx_trainer.climb import climb_ahead
from gpx_trainer.models import Climb, EngineState, Mode, RidePoint
from gpx_trainer.ride import Ride
from gpx_trainer.route import Route
from gpx_trainer.simulation import Engine
from gpx_trainer.store import RideStore, StoreError
from gpx_trainer.trainer import ShiftEvent, TrainerData, TrainerError, TrainerLink

logger = logging.getLogger(__name__)

# How often pump threads wake up to notice a stop request (seconds)
PUMP_POLL_SECONDS = 0.1


class SessionState(Enum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    PAUSED = "paused"
    STOPPING = "stopping"
    FINISHED = "finished"


class _Event(Enum):
    DATA = "data"
    SHIFT = "shift"
    CONTROL = "control"
    CANCEL = "cancel"


class _Control(Enum):
    PAUSE = "pause"
    RESUME = "resume"
    TOGGLE_PAUSE = "toggle_pause"
    ADJUST_RESISTANCE = "adjust_resistance"


class _Command(Enum):
    RESISTANCE = "resistance"
    TARGET_POWER = "target_power"


@dataclass(frozen=True)
class RideStatus:
    """Snapshot of the ride for display."""
    power: float
    cadence: float
    speed: float  # km/h
    elapsed: timedelta
    distance: float  # meters
    avg_power: float
    avg_cadence: float
    avg_speed: float  # km/h
    elevation: float  # meters
    gradient: float  # percent
    gear: str
    mode: Mode
    paused: bool
    climb_ahead: Climb | None = None


class CommandSender:
    """Delivers trainer commands from a background thread, newest command wins."""

    def __init__(self, trainer: TrainerLink, on_error: Callable[[Exception], None]):
        self.trainer = trainer
        self.on_error = on_error
        self.sent = 0
        self.coalesced = 0
        self._cond = threading.Condition()
        self._pending: tuple[_Command, float] | None = None
        self._closed = False
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._closed = False
        self._thread = threading.Thread(target=self._run, name="trainer-commands", daemon=True)
        self._thread.start()

    def submit(self, command: _Command, value: float) -> None:
        with self._cond:
            if self._pending is not None:
                self.coalesced += 1
            self._pending = (command, value)
            self._cond.notify()

    def close(self) -> None:
        """Send whatever is still pending, then stop the sender thread."""
        with self._cond:
            self._closed = True
            self._cond.notify()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        elif self._pending is not None:
            command, value = self._pending
            self._pending = None
            self._send(command, value)

    def _run(self) -> None:
        while True:
            with self._cond:
                while self._pending is None and not self._closed:
                    self._cond.wait()
                if self._pending is None:
                    return
                command, value = self._pending
                self._pending = None
            self._send(command, value)

    def _send(self, command: _Command, value: float) -> None:
        try:
            if command is _Command.RESISTANCE:
                self.trainer.set_resistance(value)
            else:
                self.trainer.set_target_power(value)
            self.sent += 1
        except TrainerError as e:
            self.on_error(e)
        except Exception as e:
            error = TrainerError(f"{command.value} command failed: {e}")
            error.__cause__ = e
            self.on_error(error)


class RideSession:
    """Runs one ride from trainer connection to saved history.

    Args:
        engine: Simulation engine, already set to the ride's mode
        trainer: Trainer link delivering samples and accepting commands
        store: Ride history the finished ride is saved to
        route: Optional route steering gradient and position
        status_interval: Seconds between status callbacks, None to disable
        on_status: Called from the worker with a RideStatus
        on_error: Called with collaborator failures (command or save errors)
        climb_gradient: Minimum gradient (percent) for the climb-ahead warning
        climb_elevation: Minimum elevation gain (meters) for the climb-ahead warning
        climb_lookahead: How far ahead (meters) to look for the next climb
        clock: Monotonic clock used to time samples
    """

    def __init__(
        self,
        engine: Engine,
        trainer: TrainerLink,
        store: RideStore,
        route: Route | None = None,
        status_interval: float | None = None,
        on_status: Callable[[RideStatus], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
        climb_gradient: float = 3.0,
        climb_elevation: float = 30.0,
        climb_lookahead: float = 500.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.engine = engine
        self.trainer = trainer
        self.store = store
        self.route = route
        self.status_interval = status_interval
        self.on_status = on_status
        self.on_error = on_error
        self.clock = clock
        self.climb_lookahead = climb_lookahead
        self.climbs = route.detect_climbs(climb_gradient, climb_elevation) if route is not None else []

        self.ride = Ride(route_name=route.name if route is not None else None)
        self.state = SessionState.CONNECTING
        self.errors: list[Exception] = []
        self.last_state: EngineState | None = None

        self.distance = 0.0
        self.paused = False
        self.last_update = clock()
        self.total_power = 0.0
        self.total_cadence = 0.0
        self.total_speed = 0.0
        self.sample_count = 0
        self.last_gradient = 0.0
        self.last_elevation = route.elevation_at(0) if route is not None else 0.0

        self._inbox: queue.Queue = queue.Queue()
        self._stop = threading.Event()
        self._errors_lock = threading.Lock()
        self._sender = CommandSender(trainer, self._report_error)
        self._worker: threading.Thread | None = None
        self._pumps: list[threading.Thread] = []

    # Lifecycle

    def start(self) -> None:
        """Connect to the trainer and start processing events.

        Raises:
            TrainerError: If the trainer connection fails.
        """
        self.state = SessionState.CONNECTING
        try:
            self.trainer.connect()
        except TrainerError:
            self.state = SessionState.FINISHED
            raise
        logger.info("Trainer connected, ride %s started in %s mode", self.ride.id, self.engine.mode)

        self.last_update = self.clock()
        self.state = SessionState.PAUSED if self.paused else SessionState.ACTIVE
        self._stop.clear()
        self._sender.start()
        self._pumps = [
            threading.Thread(target=self._pump, args=(self.trainer.data_queue(), _Event.DATA),
                             name="pump-data", daemon=True),
            threading.Thread(target=self._pump, args=(self.trainer.shift_queue(), _Event.SHIFT),
                             name="pump-shift", daemon=True),
        ]
        for pump in self._pumps:
            pump.start()
        self._worker = threading.Thread(target=self._run, name="ride-session", daemon=True)
        self._worker.start()

    def stop(self) -> Ride | None:
        """Stop the loop, disconnect the trainer and save the ride.

        The event being handled when stop is requested is finished first.

        Returns:
            The finished ride, or None when no point was recorded.

        Raises:
            StoreError: If the ride could not be saved.
        """
        if self.state is SessionState.FINISHED:
            return None
        self.state = SessionState.STOPPING
        self._stop.set()
        # Pumps drain into the inbox ahead of the sentinel
        for pump in self._pumps:
            pump.join()
        self._pumps = []
        if self._worker is not None:
            self._inbox.put((_Event.CANCEL, None))
            self._worker.join()
            self._worker = None
        self._sender.close()
        self.trainer.disconnect()

        self.ride.finish()
        self.state = SessionState.FINISHED
        if not self.ride.points:
            logger.info("Ride %s has no recorded points, not saving", self.ride.id)
            return None
        try:
            self.store.save_ride(self.ride)
        except StoreError as e:
            self._report_error(e)
            raise
        return self.ride

    def is_running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    # Requests from other threads

    def shift_up(self) -> None:
        self._post(_Event.SHIFT, ShiftEvent.UP)

    def shift_down(self) -> None:
        self._post(_Event.SHIFT, ShiftEvent.DOWN)

    def pause(self) -> None:
        self._post(_Event.CONTROL, (_Control.PAUSE, None))

    def resume(self) -> None:
        self._post(_Event.CONTROL, (_Control.RESUME, None))

    def toggle_pause(self) -> None:
        self._post(_Event.CONTROL, (_Control.TOGGLE_PAUSE, None))

    def adjust_resistance(self, delta: float) -> None:
        self._post(_Event.CONTROL, (_Control.ADJUST_RESISTANCE, delta))

    def _post(self, kind: _Event, payload) -> None:
        """Hand a request to the worker, or apply it directly when idle."""
        if self.is_running():
            self._inbox.put((kind, payload))
        else:
            self._dispatch(kind, payload)

    # Event handling (worker thread)

    def handle_trainer_data(self, data: TrainerData) -> EngineState:
        """Process one trainer sample."""
        now = self.clock()
        dt = now - self.last_update
        self.last_update = now

        gradient = self.route.gradient_at(self.distance) if self.route is not None else 0.0
        state = self.engine.update(data.cadence, data.power, gradient)

        if not self.paused:
            self.distance += (state.speed / 3.6) * dt
            self.engine.tick(dt, state.speed)
            self.total_power += state.power
            self.total_cadence += state.cadence
            self.total_speed += state.speed
            self.sample_count += 1

        lat = lon = elevation = 0.0
        if self.route is not None:
            lat, lon = self.route.position_at(self.distance)
            elevation = self.route.elevation_at(self.distance)

        self.ride.add_point(RidePoint(
            timestamp=datetime.now(timezone.utc),
            power=state.power,
            cadence=state.cadence,
            speed=state.speed,
            lat=lat,
            lon=lon,
            elevation=elevation,
            distance=self.distance,
            gradient=gradient,
            gear_label=state.gear_label,
        ))

        if state.mode is Mode.ERG:
            self._sender.submit(_Command.TARGET_POWER, state.target_power)
        else:
            self._sender.submit(_Command.RESISTANCE, state.resistance)

        self.last_state = state
        self.last_gradient = gradient
        self.last_elevation = elevation
        return state

    def handle_shift(self, event: ShiftEvent) -> None:
        if event is ShiftEvent.UP:
            self.engine.shift_up()
        elif event is ShiftEvent.DOWN:
            self.engine.shift_down()
        logger.debug("Shifted %s to %s", event.value, self.engine.gear_label)

    def _set_paused(self, paused: bool) -> None:
        self.paused = paused
        if paused:
            self.ride.pause()
        else:
            self.ride.resume()
        if self.state in (SessionState.ACTIVE, SessionState.PAUSED):
            self.state = SessionState.PAUSED if paused else SessionState.ACTIVE
        logger.info("Ride %s", "paused" if paused else "resumed")

    def _handle_control(self, action: _Control, value: float | None) -> None:
        if action is _Control.PAUSE:
            self._set_paused(True)
        elif action is _Control.RESUME:
            self._set_paused(False)
        elif action is _Control.TOGGLE_PAUSE:
            self._set_paused(not self.paused)
        elif action is _Control.ADJUST_RESISTANCE:
            self.engine.adjust_manual_resistance(value)

    def _dispatch(self, kind: _Event, payload) -> None:
        if kind is _Event.DATA:
            self.handle_trainer_data(payload)
        elif kind is _Event.SHIFT:
            self.handle_shift(payload)
        elif kind is _Event.CONTROL:
            self._handle_control(*payload)

    def _pump(self, source: queue.Queue, kind: _Event) -> None:
        """Forward items from a trainer queue into the session inbox."""
        while not self._stop.is_set():
            try:
                item = source.get(timeout=PUMP_POLL_SECONDS)
            except queue.Empty:
                continue
            self._inbox.put((kind, item))

    def _run(self) -> None:
        next_status = self._next_status_time()
        while True:
            timeout = None
            if next_status is not None:
                timeout = max(0.0, next_status - self.clock())
            try:
                kind, payload = self._inbox.get(timeout=timeout)
            except queue.Empty:
                kind, payload = None, None

            if kind is _Event.CANCEL:
                break
            if kind is not None:
                self._dispatch(kind, payload)

            if next_status is not None and self.clock() >= next_status:
                self._emit_status()
                next_status = self._next_status_time()
        logger.debug("Ride loop stopped after %d samples", self.sample_count)

    def _next_status_time(self) -> float | None:
        if not self.status_interval or self.on_status is None:
            return None
        return self.clock() + self.status_interval

    def _emit_status(self) -> None:
        self.on_status(self.status())

    def _report_error(self, error: Exception) -> None:
        logger.warning("Ride %s: %s", self.ride.id, error)
        with self._errors_lock:
            self.errors.append(error)
        if self.on_error is not None:
            try:
                self.on_error(error)
            except Exception:
                logger.exception("Error callback failed for ride %s", self.ride.id)

    # Reporting

    def averages(self) -> tuple[float, float, float]:
        """Return (avg_power, avg_cadence, avg_speed) over unpaused samples."""
        if self.sample_count == 0:
            return 0.0, 0.0, 0.0
        n = self.sample_count
        return self.total_power / n, self.total_cadence / n, self.total_speed / n

    def status(self) -> RideStatus:
        avg_power, avg_cadence, avg_speed = self.averages()
        last = self.last_state
        return RideStatus(
            power=last.power if last else 0.0,
            cadence=last.cadence if last else 0.0,
            speed=last.speed if last else 0.0,
            elapsed=datetime.now(timezone.utc) - self.ride.start_time,
            distance=self.distance,
            avg_power=avg_power,
            avg_cadence=avg_cadence,
            avg_speed=avg_speed,
            elevation=self.last_elevation,
            gradient=self.last_gradient,
            gear=self.engine.gear_label,
            mode=self.engine.mode,
            paused=self.paused,
            climb_ahead=climb_ahead(self.climbs, self.distance, self.climb_lookahead),
        )
