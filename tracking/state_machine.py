"""
SessionStateMachine - lifecycle of a timed focus session.

Owns the authoritative focus percentage and distraction count for the
running session, drives them from presence snapshots on a 1 second tick
and persists checkpoints through a SessionStore.

States:
    idle -> running -> (paused <-> running) -> completed -> idle

Callbacks:
    on_state_change(state: str)
    on_session_ended(session: FocusSession, reason: str)
"""

import logging
import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import config
from camera.presence import PresenceSnapshot
from tracking.focus import FocusIntegrator, STATE_FOCUSED
from tracking.session import DistractionEvent, FocusSession, TimelineSample, validate_distraction
from tracking.settings import UserSettings

logger = logging.getLogger(__name__)

STATE_IDLE = "idle"
STATE_RUNNING = "running"
STATE_PAUSED = "paused"
STATE_COMPLETED = "completed"

REASON_COMPLETED = "completed"
REASON_STOPPED = "stopped"


class SessionStateMachine:
    """
    Session lifecycle controller.
    
    Handles:
    - start / pause / resume / stop commands
    - the 1 second tick (countdown, focus integration, timeline samples)
    - automatic "away" distractions and the auto-pause policy
    - periodic autosave and the final write, with reconciliation on failure
    
    Each instance owns its own FocusIntegrator. Pass run_timers=False to
    drive tick() and autosave() by hand.
    """
    
    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------
    
    def __init__(
        self,
        store,
        user_id: str = "local",
        settings: Optional[UserSettings] = None,
        run_timers: bool = True,
        tick_interval: Optional[float] = None,
        autosave_interval: Optional[float] = None,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        """
        Initialise the state machine.
        
        Args:
            store: SessionStore used for persistence
            user_id: Owner of sessions started by this machine
            settings: User settings (defaults to UserSettings())
            run_timers: Start background tick and autosave threads
            tick_interval: Seconds between ticks (defaults to config.TICK_INTERVAL_SECONDS)
            autosave_interval: Seconds between autosaves (defaults to config.AUTOSAVE_INTERVAL_SECONDS)
            clock: Wall clock used for session timestamps
            sleep: Sleep function used between final-write retries
        """
        self.store = store
        self.user_id = user_id
        self.settings = settings or UserSettings()
        self.run_timers = run_timers
        self.tick_interval = tick_interval or config.TICK_INTERVAL_SECONDS
        self.autosave_interval = autosave_interval or config.AUTOSAVE_INTERVAL_SECONDS
        self._clock = clock
        self._sleep = sleep
        
        self.stop_write_retries = config.STOP_WRITE_RETRIES
        self.stop_retry_delay = config.STOP_RETRY_DELAY
        
        self.integrator = FocusIntegrator(self.settings.focus_rates())
        
        # Session state
        self.state: str = STATE_IDLE
        self.session: Optional[FocusSession] = None
        self.last_session: Optional[FocusSession] = None
        self.remaining: float = 0.0
        self._target: float = 0.0
        self.latest_snapshot: Optional[PresenceSnapshot] = None
        self.pending_reconciliation: List[FocusSession] = []
        
        # Focus tracking between ticks
        self._was_focused: Optional[bool] = None
        self._unfocused_seconds: float = 0.0
        self._stopping: bool = False
        
        self._lock = threading.RLock()
        
        # Timer threads
        self._timer_stop: Optional[threading.Event] = None
        self._tick_thread: Optional[threading.Thread] = None
        self._autosave_thread: Optional[threading.Thread] = None
        
        # ---- Callbacks ----
        self.on_state_change: Optional[Callable[[str], None]] = None
        self.on_session_ended: Optional[Callable[[FocusSession, str], None]] = None
    
    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    
    def start(
        self,
        target_duration_seconds: float,
        camera_enabled: Optional[bool] = None,
        goal: Optional[str] = None,
        tags: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """
        Start a new session.
        
        Args:
            target_duration_seconds: Countdown length in seconds
            camera_enabled: Integrate presence snapshots (defaults to settings.camera_enabled)
            goal: Optional free-text goal
            tags: Optional tags
        
        Returns:
            {"success": bool, "session_id": Optional[str], "error": Optional[str],
             "error_type": Optional[str]}
        
        Raises:
            ValueError: If the target duration is not positive
        """
        if target_duration_seconds is None or target_duration_seconds <= 0:
            raise ValueError(f"Target duration must be positive, got {target_duration_seconds}")
        
        if camera_enabled is None:
            camera_enabled = self.settings.camera_enabled
        
        with self._lock:
            if self.state != STATE_IDLE:
                return {
                    "success": False,
                    "session_id": None,
                    "error": "Session already running",
                    "error_type": "already_running",
                }
            
            session = FocusSession(
                user_id=self.user_id,
                target_duration=int(round(target_duration_seconds)),
                start_time=self._clock(),
                camera_enabled=bool(camera_enabled),
                goal=goal,
                tags=list(tags or []),
            )
            fields = session.to_dict()
            fields.pop("id")
            
            try:
                session.id = self.store.create_session(fields)
            except Exception as e:
                logger.error(f"Could not create session: {e}")
                return {
                    "success": False,
                    "session_id": None,
                    "error": f"Could not create session: {e}",
                    "error_type": "storage",
                }
            
            self.session = session
            self._target = float(target_duration_seconds)
            self.remaining = self._target
            self.latest_snapshot = None
            self.integrator.reset(session.focus_percentage)
            self._was_focused = None
            self._unfocused_seconds = 0.0
            self._stopping = False
            self.state = STATE_RUNNING
            self._start_timers()
        
        logger.info(
            f"Session {session.id} started ({target_duration_seconds:.0f}s, "
            f"camera {'on' if session.camera_enabled else 'off'})"
        )
        self._notify_state_change(STATE_RUNNING)
        return {"success": True, "session_id": session.id, "error": None, "error_type": None}
    
    def pause(self) -> bool:
        """
        Pause the running session and write a checkpoint.
        
        Returns:
            True if the session was paused, False if the command was rejected
        """
        with self._lock:
            if self.state != STATE_RUNNING:
                logger.debug(f"Pause rejected in state {self.state}")
                return False
            threads = self._enter_paused()
        
        self._join_timers(threads)
        self._notify_state_change(STATE_PAUSED)
        return True
    
    def resume(self) -> bool:
        """
        Resume a paused session without touching remaining time or focus.
        
        Returns:
            True if the session was resumed, False if the command was rejected
        """
        with self._lock:
            if self.state != STATE_PAUSED:
                logger.debug(f"Resume rejected in state {self.state}")
                return False
            
            self.state = STATE_RUNNING
            self._unfocused_seconds = 0.0
            self._start_timers()
            session_id = self.session.id
        
        logger.info(f"Session {session_id} resumed")
        self._notify_state_change(STATE_RUNNING)
        return True
    
    def stop(self) -> Dict[str, Any]:
        """
        Complete the active session and write its final state.
        
        Returns:
            {"success": bool, "session": Optional[FocusSession], "error": Optional[str],
             "error_type": Optional[str]}
        """
        return self._finish(REASON_STOPPED)
    
    def tick(self, dt: Optional[float] = None) -> None:
        """
        Advance the running session by dt seconds.
        
        Counts down, integrates the latest snapshot when the camera is
        enabled, and completes the session when time runs out.
        
        Args:
            dt: Elapsed seconds (defaults to the tick interval)
        """
        self._advance(self.tick_interval if dt is None else dt)
    
    def _advance(self, dt: float, stop_event: Optional[threading.Event] = None) -> None:
        """Tick body. A timer thread passes its stop_event so a superseded timer cannot tick."""
        threads: List[threading.Thread] = []
        auto_paused = False
        completed = False
        
        with self._lock:
            if self.state != STATE_RUNNING or self.session is None:
                return
            if stop_event is not None and stop_event.is_set():
                return
            
            elapsed_before = self._elapsed()
            self.remaining = max(0.0, self.remaining - dt)
            
            if self.session.camera_enabled and self.latest_snapshot is not None:
                auto_paused = self._integrate(self.latest_snapshot, dt, elapsed_before)
                if auto_paused:
                    threads = self._enter_paused()
            
            completed = self.remaining <= 0
        
        if auto_paused:
            self._join_timers(threads)
            self._notify_state_change(STATE_PAUSED)
        
        if completed:
            self._finish(REASON_COMPLETED)
    
    def add_distraction(
        self,
        distraction_type: str,
        severity: int = config.DISTRACTION_SEVERITY_MIN,
        note: Optional[str] = None
    ) -> Optional[DistractionEvent]:
        """
        Record a distraction against the active session.
        
        Does not change the focus percentage.
        
        Args:
            distraction_type: One of config.DISTRACTION_TYPES
            severity: 1-10
            note: Optional free-text note
        
        Returns:
            The recorded event, or None if no session is active
        
        Raises:
            ValueError: If type or severity is invalid
        """
        validate_distraction(distraction_type, severity)
        
        with self._lock:
            if self.session is None or self.state not in (STATE_RUNNING, STATE_PAUSED):
                logger.warning("Distraction ignored: no active session")
                return None
            return self._record_distraction(distraction_type, severity, note)
    
    def on_presence(self, snapshot: PresenceSnapshot) -> None:
        """Subscriber hook for FaceFocusEngine; keeps the latest snapshot for the next tick."""
        with self._lock:
            self.latest_snapshot = snapshot
    
    def autosave(self) -> bool:
        """
        Write a non-authoritative progress snapshot.
        
        Skipped once stop has begun so the final write stays the last one.
        
        Returns:
            True if a snapshot was written
        """
        with self._lock:
            if self._stopping or self.session is None or self.state not in (STATE_RUNNING, STATE_PAUSED):
                return False
            
            fields = {
                "duration": self._elapsed(),
                "focus_percentage": self.session.focus_percentage,
                "distraction_count": self.session.distraction_count,
            }
            try:
                self.store.update_session(self.session.id, fields)
            except Exception as e:
                logger.warning(f"Autosave failed for session {self.session.id}: {e}")
                return False
        
        logger.debug(f"Autosaved session {self.session.id}")
        return True
    
    def reconcile(self) -> int:
        """
        Retry final writes that failed during stop().
        
        Returns:
            Number of sessions written successfully
        """
        with self._lock:
            pending = list(self.pending_reconciliation)
        
        reconciled = 0
        for session in pending:
            fields = self._final_fields(session)
            fields["needs_reconciliation"] = False
            try:
                self.store.update_session(session.id, fields)
            except Exception as e:
                logger.warning(f"Reconciliation still failing for session {session.id}: {e}")
                continue
            
            session.needs_reconciliation = False
            with self._lock:
                self.pending_reconciliation.remove(session)
            reconciled += 1
            logger.info(f"Session {session.id} reconciled")
        
        return reconciled
    
    def get_status(self) -> Dict[str, Any]:
        """
        Get the current session status.
        
        Returns:
            dict with keys: state, session_id, remaining_seconds, elapsed_seconds,
            focus_percentage, distraction_count, camera_enabled, pending_reconciliation
        """
        with self._lock:
            session = self.session
            return {
                "state": self.state,
                "session_id": session.id if session else None,
                "remaining_seconds": self.remaining if session else 0.0,
                "elapsed_seconds": self._elapsed() if session else 0.0,
                "focus_percentage": session.focus_percentage if session else None,
                "distraction_count": session.distraction_count if session else 0,
                "camera_enabled": session.camera_enabled if session else False,
                "pending_reconciliation": len(self.pending_reconciliation),
            }
    
    def shutdown(self) -> Dict[str, Any]:
        """Stop any active session and clear all timers."""
        result = self.stop()
        with self._lock:
            threads = self._signal_timers()
        self._join_timers(threads)
        return result
    
    # ------------------------------------------------------------------
    # Internals (call with the lock held unless noted)
    # ------------------------------------------------------------------
    
    def _elapsed(self) -> float:
        return max(0.0, self._target - self.remaining)
    
    def _integrate(self, snapshot: PresenceSnapshot, dt: float, elapsed_before: float) -> bool:
        """
        Feed one snapshot to the integrator and apply distraction rules.
        
        Returns:
            True if the auto-pause policy fired
        """
        self.session.focus_percentage = self.integrator.update(snapshot, dt)
        
        focused = self.integrator.classify(snapshot) == STATE_FOCUSED
        self.session.timeline.append(TimelineSample(
            t=round(elapsed_before, 3),
            focused=focused,
            confidence=snapshot.confidence,
        ))
        
        if self._was_focused and not focused:
            self._record_distraction(
                config.AUTO_DISTRACTION_TYPE,
                config.AUTO_DISTRACTION_SEVERITY,
                "Looked away from screen",
            )
        self._was_focused = focused
        
        if focused:
            self._unfocused_seconds = 0.0
            return False
        
        self._unfocused_seconds += dt
        if (
            self.settings.pause_on_distraction
            and self._unfocused_seconds >= self.settings.distraction_threshold
        ):
            logger.info(
                f"Auto-pausing session {self.session.id} after "
                f"{self._unfocused_seconds:.0f}s unfocused"
            )
            return True
        
        return False
    
    def _record_distraction(self, distraction_type: str, severity: int, note: Optional[str]) -> DistractionEvent:
        event = DistractionEvent(
            type=distraction_type,
            severity=severity,
            timestamp=self._clock(),
            note=note,
        )
        self.session.distractions.append(event)
        self.session.distraction_count += 1
        
        try:
            self.store.append_distraction(self.session.id, event.to_dict())
        except Exception as e:
            logger.warning(f"Could not store distraction for session {self.session.id}: {e}")
        
        logger.info(f"Distraction recorded: {distraction_type} (severity {severity})")
        return event
    
    def _enter_paused(self) -> List[threading.Thread]:
        """Switch to paused and write a checkpoint. Returns timer threads to join."""
        threads = self._signal_timers()
        self.state = STATE_PAUSED
        self._unfocused_seconds = 0.0
        
        try:
            self.store.update_session(self.session.id, {
                "duration": self._elapsed(),
                "focus_percentage": self.session.focus_percentage,
                "distraction_count": self.session.distraction_count,
            })
        except Exception as e:
            logger.warning(f"Pause checkpoint failed for session {self.session.id}: {e}")
        
        logger.info(f"Session {self.session.id} paused")
        return threads
    
    def _final_fields(self, session: FocusSession) -> Dict[str, Any]:
        data = session.to_dict()
        return {
            key: data[key]
            for key in ("duration", "focus_percentage", "distraction_count", "end_time", "is_completed", "timeline")
        }
    
    def _write_final(self, session: FocusSession) -> bool:
        """Write the final session state, retrying with exponential backoff."""
        fields = self._final_fields(session)
        
        for attempt in range(self.stop_write_retries):
            try:
                self.store.update_session(session.id, fields)
                return True
            except Exception as e:
                logger.warning(f"Final write attempt {attempt + 1} for session {session.id} failed: {e}")
                
                if attempt < self.stop_write_retries - 1:
                    wait_time = self.stop_retry_delay * (2 ** attempt)
                    logger.info(f"Retrying in {wait_time} seconds...")
                    self._sleep(wait_time)
        
        return False
    
    def _finish(self, reason: str) -> Dict[str, Any]:
        """
        Shared stop path for manual stop and countdown completion (takes the lock).
        
        The completed state keeps every other command out while the final
        write runs outside the lock.
        """
        with self._lock:
            if self.session is None or self.state not in (STATE_RUNNING, STATE_PAUSED):
                return {"success": True, "session": None, "error": None, "error_type": None}
            
            # Autosave must not run after this point
            self._stopping = True
            threads = self._signal_timers()
            
            session = self.session
            session.duration = self._elapsed()
            session.end_time = self._clock()
            session.is_completed = True
            self.state = STATE_COMPLETED
        
        # Lock is not held here; on_presence and get_status stay responsive during retries
        written = self._write_final(session)
        
        with self._lock:
            if not written:
                session.needs_reconciliation = True
                self.pending_reconciliation.append(session)
                logger.error(f"Final write for session {session.id} failed, queued for reconciliation")
            
            self.last_session = session
            self.session = None
            self.remaining = 0.0
            self.latest_snapshot = None
            self._was_focused = None
            self._unfocused_seconds = 0.0
            self._stopping = False
            self.state = STATE_IDLE
        
        self._join_timers(threads)
        
        logger.info(
            f"Session {session.id} {reason}: {session.duration:.0f}s, "
            f"focus {session.focus_percentage:.1f}%, {session.distraction_count} distractions"
        )
        self._notify_state_change(STATE_COMPLETED)
        self._notify_state_change(STATE_IDLE)
        self._notify_session_ended(session, reason)
        
        if written:
            return {"success": True, "session": session, "error": None, "error_type": None}
        return {
            "success": False,
            "session": session,
            "error": "Could not save final session state",
            "error_type": "storage",
        }
    
    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------
    
    def _start_timers(self) -> None:
        if not self.run_timers:
            return
        
        stop_event = threading.Event()
        self._timer_stop = stop_event
        self._tick_thread = threading.Thread(
            target=self._tick_loop, args=(stop_event,), daemon=True, name="session-tick"
        )
        self._autosave_thread = threading.Thread(
            target=self._autosave_loop, args=(stop_event,), daemon=True, name="session-autosave"
        )
        self._tick_thread.start()
        self._autosave_thread.start()
    
    def _signal_timers(self) -> List[threading.Thread]:
        """Tell timer threads to exit. Returns them so they can be joined outside the lock."""
        if self._timer_stop is not None:
            self._timer_stop.set()
        self._timer_stop = None
        
        threads = [t for t in (self._tick_thread, self._autosave_thread) if t is not None]
        self._tick_thread = None
        self._autosave_thread = None
        return threads
    
    def _join_timers(self, threads: List[threading.Thread]) -> None:
        """Wait for timer threads to exit (call without the lock held)."""
        current = threading.current_thread()
        for thread in threads:
            if thread is current or not thread.is_alive():
                continue
            thread.join(timeout=2.0)
            if thread.is_alive():
                logger.warning(f"Timer thread {thread.name} did not stop within timeout")
    
    def _tick_loop(self, stop_event: threading.Event) -> None:
        last = time.monotonic()
        while not stop_event.wait(self.tick_interval):
            now = time.monotonic()
            dt = now - last
            last = now
            
            try:
                self._advance(dt, stop_event)
            except Exception as e:
                logger.error(f"Tick failed: {e}")
    
    def _autosave_loop(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.autosave_interval):
            with self._lock:
                if stop_event.is_set():
                    break
            self.autosave()
    
    # ------------------------------------------------------------------
    # Callback helpers
    # ------------------------------------------------------------------
    
    def _notify_state_change(self, state: str) -> None:
        if self.on_state_change:
            try:
                self.on_state_change(state)
            except Exception as e:
                logger.error(f"on_state_change callback error: {e}")
    
    def _notify_session_ended(self, session: FocusSession, reason: str) -> None:
        if self.on_session_ended:
            try:
                self.on_session_ended(session, reason)
            except Exception as e:
                logger.error(f"on_session_ended callback error: {e}")
