"""
Tests for the tracking session state machine.
"""

import threading
import unittest

from territory_engine.config import ClosureConfig
from territory_engine.exceptions import SessionActiveError, SessionStateError
from territory_engine.geometry import LocalProjection, to_display_frame
from territory_engine.models import GeoPoint, SessionStatus
from territory_engine.tracking import TrackingSession
from territory_engine.utils import (
    EVENT_TYPE_LOOP_CLOSED,
    EVENT_TYPE_POINT_APPENDED,
    EVENT_TYPE_SESSION_ABORTED,
    EVENT_TYPE_SESSION_RESET,
    EVENT_TYPE_SESSION_STARTED,
    CallbackQueueAdapter,
)

ORIGIN = GeoPoint(31.2304, 121.4737)
PROJ = LocalProjection(ORIGIN)

# Four points are enough to close, no minimum walk
CLOSURE = ClosureConfig(closure_radius_m=30.0, min_points=4, min_traversed_m=0.0)


def pt(x: float, y: float) -> GeoPoint:
    return PROJ.unproject(x, y)


class SessionTestCase(unittest.TestCase):
    """Base class that always leaves sessions idle (one tracking session per process)."""

    def new_session(self, **kwargs) -> TrackingSession:
        kwargs.setdefault("config", CLOSURE)
        session = TrackingSession(**kwargs)
        self.addCleanup(session.discard)
        return session


class TestLoopClosure(SessionTestCase):
    """Test closure detection thresholds."""

    def test_three_points_never_close(self):
        """Test a 3-point path inside the radius stays open."""
        session = self.new_session()
        session.start()
        for p in (pt(0, 0), pt(20, 0), pt(0, 20)):
            session.append_point(p)
        self.assertEqual(session.status, SessionStatus.TRACKING)

    def test_four_points_within_radius_close(self):
        """Test the fourth point within the radius closes the loop."""
        session = self.new_session()
        session.start()
        for p in (pt(0, 0), pt(100, 0), pt(100, 100), pt(0, 29)):
            session.append_point(p)

        self.assertEqual(session.status, SessionStatus.CLOSED)
        self.assertEqual(len(session.path), 4)

    def test_just_outside_radius_stays_open(self):
        """Test moving the last point just outside the radius does not close."""
        session = self.new_session()
        session.start()
        for p in (pt(0, 0), pt(100, 0), pt(100, 100), pt(0, 31)):
            session.append_point(p)
        self.assertEqual(session.status, SessionStatus.TRACKING)

    def test_minimum_walk_required(self):
        """Test closure waits for the minimum traversed length."""
        config = ClosureConfig(closure_radius_m=30.0, min_points=4, min_traversed_m=500.0)
        session = self.new_session(config=config)
        session.start()
        for p in (pt(0, 0), pt(100, 0), pt(100, 100), pt(0, 100), pt(0, 10)):
            session.append_point(p)
        self.assertEqual(session.status, SessionStatus.TRACKING)

    def test_closed_ring(self):
        """Test the closed ring repeats the first point; the path does not."""
        session = self.new_session()
        session.start()
        points = (pt(0, 0), pt(100, 0), pt(100, 100), pt(0, 20))
        for p in points:
            session.append_point(p)

        self.assertEqual(session.path, points)
        self.assertEqual(session.closed_ring, points + (points[0],))

    def test_closed_path_is_frozen(self):
        """Test no point is appended after closure."""
        session = self.new_session()
        session.start()
        for p in (pt(0, 0), pt(100, 0), pt(100, 100), pt(0, 20)):
            session.append_point(p)

        self.assertFalse(session.append_point(pt(50, 50)))
        self.assertEqual(len(session.path), 4)


class TestTransitions(SessionTestCase):
    """Test legal and illegal transitions."""

    def test_append_when_idle_is_ignored(self):
        """Test appending before start reports False and keeps the path empty."""
        session = self.new_session()
        self.assertFalse(session.append_point(pt(0, 0)))
        self.assertEqual(session.path, ())

    def test_abort_is_irreversible(self):
        """Test points after a violation abort are never appended."""
        session = self.new_session()
        session.start()
        session.append_point(pt(0, 0))
        session.append_point(pt(20, 0))
        session.abort("violation", territory_id="t-1", message="entered territory")

        for i in range(5):
            self.assertFalse(session.append_point(pt(40 + i * 20, 0)))

        self.assertEqual(session.status, SessionStatus.ABORTED)
        self.assertEqual(len(session.path), 2)
        self.assertEqual(session.abort_reason, "violation")
        self.assertEqual(session.abort_territory_id, "t-1")

    def test_illegal_transitions_raise(self):
        """Test start twice, abort when idle and reset while tracking all raise."""
        session = self.new_session()
        with self.assertRaises(SessionStateError):
            session.abort("violation")

        session.start()
        with self.assertRaises(SessionStateError):
            session.start()
        with self.assertRaises(SessionStateError):
            session.reset()

    def test_reset_returns_to_idle(self):
        """Test reset clears the path and invalidates old snapshots."""
        session = self.new_session()
        session.start()
        session.append_point(pt(0, 0))
        snapshot = session.snapshot()
        self.assertTrue(session.is_current(snapshot))

        session.cancel()
        self.assertEqual(len(session.path), 1)  # Inspectable until reset
        self.assertFalse(session.is_current(snapshot))

        old_id = session.session_id
        session.reset()
        self.assertEqual(session.status, SessionStatus.IDLE)
        self.assertEqual(session.path, ())
        self.assertNotEqual(session.session_id, old_id)

        session.start()
        self.assertFalse(session.is_current(snapshot))

    def test_only_one_tracking_session(self):
        """Test a second session cannot start while one is tracking."""
        first = self.new_session()
        second = self.new_session()
        first.start()

        with self.assertRaises(SessionActiveError):
            second.start()
        self.assertEqual(second.status, SessionStatus.IDLE)

        first.cancel()
        second.start()
        self.assertEqual(second.status, SessionStatus.TRACKING)

    def test_display_points_refused(self):
        """Test the path only accepts storage-frame points."""
        session = self.new_session()
        session.start()
        with self.assertRaises(ValueError):
            session.append_point(to_display_frame(pt(0, 0)))

    def test_events_emitted(self):
        """Test each transition emits its event in order."""
        events = []
        session = self.new_session(events=CallbackQueueAdapter(events.append), owner_id="alice")
        session.start()
        for p in (pt(0, 0), pt(100, 0), pt(100, 100), pt(0, 20)):
            session.append_point(p)
        session.reset()

        types = [e["event_type"] for e in events]
        self.assertEqual(types[0], EVENT_TYPE_SESSION_STARTED)
        self.assertEqual(types.count(EVENT_TYPE_POINT_APPENDED), 4)
        self.assertEqual(types[-2], EVENT_TYPE_LOOP_CLOSED)
        self.assertEqual(types[-1], EVENT_TYPE_SESSION_RESET)
        self.assertEqual(events[0]["owner_id"], "alice")
        for event in events:
            self.assertIn("session_id", event)
            self.assertIn("timestamp", event)

    def test_abort_event(self):
        """Test abort emits the reason and territory."""
        events = []
        session = self.new_session(events=CallbackQueueAdapter(events.append))
        session.start()
        session.abort("start_blocked", territory_id="t-9", message="inside")

        aborted = [e for e in events if e["event_type"] == EVENT_TYPE_SESSION_ABORTED]
        self.assertEqual(len(aborted), 1)
        self.assertEqual(aborted[0]["territory_id"], "t-9")

    def test_failing_sink_does_not_break_session(self):
        """Test an exception in the event sink is logged, not raised."""

        def explode(event):
            raise RuntimeError("sink down")

        session = self.new_session(events=CallbackQueueAdapter(explode))
        session.start()
        self.assertTrue(session.append_point(pt(0, 0)))


class TestPeriodicTask(SessionTestCase):
    """Test the session-owned periodic check."""

    def test_task_runs_while_tracking(self):
        """Test the tick callback fires after start and stops on cancel."""
        ticked = threading.Event()
        session = self.new_session(on_tick=ticked.set, check_interval_s=0.05)

        self.assertFalse(session.periodic_task_running)
        session.start()
        self.assertTrue(ticked.wait(timeout=2.0))

        session.cancel()
        self.assertFalse(session.periodic_task_running)

    def test_task_stops_on_closure(self):
        """Test closing the loop stops the periodic task."""
        session = self.new_session(on_tick=lambda: None, check_interval_s=0.05)
        session.start()
        self.assertTrue(session.periodic_task_running)

        for p in (pt(0, 0), pt(100, 0), pt(100, 100), pt(0, 20)):
            session.append_point(p)
        self.assertFalse(session.periodic_task_running)

    def test_abort_from_tick(self):
        """Test the tick callback may abort its own session."""
        holder = {}
        done = threading.Event()

        def tick():
            holder["session"].abort("violation", message="from tick")
            done.set()

        session = self.new_session(on_tick=tick, check_interval_s=0.05)
        holder["session"] = session
        session.start()

        self.assertTrue(done.wait(timeout=2.0))
        self.assertEqual(session.status, SessionStatus.ABORTED)


class TestConcurrency(SessionTestCase):
    """Test single-writer / snapshot-reader discipline."""

    def test_snapshots_never_shrink(self):
        """Test concurrent reads never observe a shorter path than before."""
        session = self.new_session()
        session.start()
        observed = [[] for _ in range(3)]
        stop = threading.Event()

        def reader(lengths):
            while not stop.is_set():
                lengths.append(len(session.snapshot()))

        threads = [threading.Thread(target=reader, args=(lengths,)) for lengths in observed]
        for t in threads:
            t.start()

        # Straight line away from the start never closes
        for i in range(300):
            self.assertTrue(session.append_point(pt(i * 10.0, 0)))

        stop.set()
        for t in threads:
            t.join(timeout=5.0)

        self.assertEqual(len(session.path), 300)
        for lengths in observed:
            self.assertEqual(lengths, sorted(lengths))

    def test_each_reader_sees_monotonic_lengths(self):
        """Test a single reader's successive snapshots are non-decreasing."""
        session = self.new_session()
        session.start()
        lengths = []
        stop = threading.Event()

        def reader():
            while not stop.is_set():
                lengths.append(len(session.snapshot()))

        thread = threading.Thread(target=reader)
        thread.start()
        for i in range(300):
            session.append_point(pt(i * 10.0, 0))
        stop.set()
        thread.join(timeout=5.0)

        self.assertEqual(lengths, sorted(lengths))


if __name__ == "__main__":
    unittest.main()
