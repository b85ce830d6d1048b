"""
Detection Manager - runs the perceptual pipeline on a fixed cadence

Each tick reads one frame, runs the face and object pipelines
concurrently, applies the refractory filter and hands accepted events to
the consumer. Ticks never overlap; a failing tick is logged and skipped.
"""

import asyncio
import inspect
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from ..config import Settings
from ..models import DetectionEvent, utcnow
from .debounce import TemporalDebouncer
from .frames import FrameSource
from .objects import ObjectClassifier, object_events
from .signals import FaceSignalDetector, SkinToneFaceDetector

logger = logging.getLogger(__name__)

EventsCallback = Callable[[List[DetectionEvent]], Any]


class RefractoryFilter:
    """Drops events whose (type, object) key was accepted within the window."""

    def __init__(self, window: timedelta = timedelta(milliseconds=5000)):
        self.window = window
        self._last_accepted: Dict[str, datetime] = {}

    def is_duplicate(self, event: DetectionEvent) -> bool:
        key = event.dedup_key
        last = self._last_accepted.get(key)
        if last is not None and event.timestamp - last < self.window:
            return True
        self._last_accepted[key] = event.timestamp
        return False

    def accept(self, events: List[DetectionEvent]) -> List[DetectionEvent]:
        return [event for event in events if not self.is_duplicate(event)]

    def clear(self) -> None:
        self._last_accepted.clear()

    def __len__(self) -> int:
        return len(self._last_accepted)


class DetectionManager:
    def __init__(
        self,
        on_events: EventsCallback,
        face_detector: Optional[FaceSignalDetector] = None,
        classifier_loader: Optional[Callable[[], ObjectClassifier]] = None,
        debouncer: Optional[TemporalDebouncer] = None,
        interval: float = 2.0,
        dedup_window: float = 5.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            on_events: Called with each non-empty batch of accepted events.
                May be a coroutine function.
            face_detector: Per-frame face signal detector.
            classifier_loader: Blocking callable returning the object
                classifier; None runs face signals only.
            debouncer: Temporal state for sustained signals.
            interval: Seconds between ticks.
            dedup_window: Refractory window in seconds.
            clock: Source of event timestamps.
        """
        self.on_events = on_events
        self.face_detector = face_detector or SkinToneFaceDetector()
        self.classifier_loader = classifier_loader
        self.debouncer = debouncer or TemporalDebouncer()
        self.interval = interval
        self.refractory = RefractoryFilter(timedelta(seconds=dedup_window))
        self.clock = clock

        self.classifier: Optional[ObjectClassifier] = None
        self.object_detection_disabled = False
        self.is_running = False

        self._init_task: Optional[asyncio.Future] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._frame_source: Optional[FrameSource] = None
        self._tick_in_flight = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        on_events: EventsCallback,
        face_detector: Optional[FaceSignalDetector] = None,
        classifier_loader: Optional[Callable[[], ObjectClassifier]] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> "DetectionManager":
        return cls(
            on_events,
            face_detector=face_detector,
            classifier_loader=classifier_loader,
            debouncer=TemporalDebouncer(
                face_absent_threshold=settings.face_absent_threshold_s,
                focus_lost_threshold=settings.focus_lost_threshold_s,
            ),
            interval=settings.detection_interval_ms / 1000,
            dedup_window=settings.dedup_window_ms / 1000,
            clock=clock,
        )

    @property
    def status(self) -> str:
        if self.object_detection_disabled:
            return "disabled"
        if self.classifier is None:
            return "face_only" if self.classifier_loader is None else "uninitialized"
        if self.classifier.source == "fallback":
            return "degraded"
        return "ready"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Acquire the object classifier. Safe to call repeatedly and concurrently."""
        if self.classifier_loader is None:
            return
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._acquire_classifier())
        await asyncio.shield(self._init_task)

    async def _acquire_classifier(self) -> None:
        try:
            self.classifier = await asyncio.to_thread(self.classifier_loader)
            logger.info(f"Object classifier ready ({self.classifier.source})")
        except Exception as e:
            self.object_detection_disabled = True
            logger.error(f"Object detection disabled for this session: {e}")

    async def start(self, frame_source: FrameSource) -> None:
        if self.is_running:
            return
        self.is_running = True
        self._frame_source = frame_source
        self._loop_task = asyncio.create_task(self._run())
        logger.info(f"Detection started (interval={self.interval}s)")

    async def stop(self) -> None:
        if not self.is_running:
            return
        self.is_running = False

        task, self._loop_task = self._loop_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self.refractory.clear()
        self.debouncer.reset()
        logger.info("Detection stopped")

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self.interval
        while self.is_running:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            if not self.is_running:
                break
            await self.tick()

            # Skip slots missed by a slow tick instead of bunching up
            next_tick += self.interval
            now = loop.time()
            while next_tick <= now:
                next_tick += self.interval

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    async def tick(self, frame_source: Optional[FrameSource] = None) -> List[DetectionEvent]:
        """Run one detection pass. Returns the events accepted this tick."""
        source = frame_source or self._frame_source
        if source is None:
            return []
        if self._tick_in_flight:
            logger.debug("Previous detection tick still running, skipping")
            return []

        self._tick_in_flight = True
        try:
            try:
                frame = await source.get_frame()
                if frame is None:
                    return []

                now = self.clock()
                face_events, found_objects = await asyncio.gather(
                    self._face_pipeline(frame, now),
                    self._object_pipeline(frame, now),
                )
                accepted = self.refractory.accept(face_events + found_objects)
            except Exception as e:
                logger.warning(f"Detection tick failed: {e}")
                return []

            # Delivery belongs to the tick, so overlapping ticks are skipped until it returns
            if accepted:
                await self._deliver(accepted)
            return accepted
        finally:
            self._tick_in_flight = False

    async def _face_pipeline(self, frame, now: datetime) -> List[DetectionEvent]:
        signals = await asyncio.to_thread(self.face_detector.detect, frame)
        return self.debouncer.evaluate(signals, now)

    async def _object_pipeline(self, frame, now: datetime) -> List[DetectionEvent]:
        if self.classifier is None:
            return []
        objects = await asyncio.to_thread(self.classifier.detect, frame)
        return object_events(objects, now)

    async def _deliver(self, events: List[DetectionEvent]) -> None:
        # Delivery is not retried; a failing consumer loses this batch
        try:
            result = self.on_events(events)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(f"Dropped {len(events)} detection events: {e}")
