"""
Tests for the reminder scheduler lifecycle
"""
from datetime import timedelta
from unittest.mock import Mock

import pytest

from goal_coach.exceptions import PersistenceError, PlatformCapabilityUnavailable, ValidationError
from goal_coach.features.reminders import MemoryStorage, ReminderScheduler, ReminderStore
from goal_coach.schemas import ReminderConfig


def make_scheduler(store, timer, clock, on_fire=None):
    return ReminderScheduler(store, on_fire or Mock(), timer, clock=clock)


class TestStart:
    def test_start_arms_single_timer(self, store, timer, clock):
        reminders = make_scheduler(store, timer, clock)
        reminders.configure(goal="Write my book")

        state = reminders.start()

        assert state.running is True
        assert state.next_fire_at == clock.now + timedelta(minutes=25)
        jobs = timer.get_jobs()
        assert len(jobs) == 1
        assert jobs[0].trigger.interval == timedelta(minutes=25)

    def test_start_twice_keeps_one_timer(self, store, timer, clock):
        reminders = make_scheduler(store, timer, clock)
        reminders.configure(goal="Write my book")
        reminders.start()

        clock.advance(minutes=3)
        state = reminders.start()

        assert len(timer.get_jobs()) == 1
        assert state.next_fire_at == clock.now + timedelta(minutes=25)

    @pytest.mark.parametrize("goal", ["", "   ", "\n\t"])
    def test_start_rejects_blank_goal(self, store, timer, clock, goal):
        reminders = make_scheduler(store, timer, clock)
        reminders.configure(goal=goal)

        with pytest.raises(ValidationError):
            reminders.start()

        state = reminders.get_state()
        assert state.running is False
        assert state.next_fire_at is None
        assert timer.get_jobs() == []
        assert store.load().running is False

    def test_start_without_timer_fails_closed(self, store, clock):
        reminders = ReminderScheduler(store, Mock(), None, clock=clock)
        reminders.configure(goal="Read")

        with pytest.raises(PlatformCapabilityUnavailable):
            reminders.start()
        assert reminders.get_state().running is False

    def test_start_with_stopped_timer_fails_closed(self, store, clock):
        from apscheduler.schedulers.background import BackgroundScheduler

        reminders = ReminderScheduler(store, Mock(), BackgroundScheduler(), clock=clock)
        reminders.configure(goal="Read")

        with pytest.raises(PlatformCapabilityUnavailable):
            reminders.start()
        assert reminders.get_state().running is False

    def test_arming_failure_leaves_running_false(self, store, clock):
        broken = Mock()
        broken.running = True
        broken.add_job.side_effect = RuntimeError("boom")
        reminders = ReminderScheduler(store, Mock(), broken, clock=clock)
        reminders.configure(goal="Read")

        with pytest.raises(PlatformCapabilityUnavailable):
            reminders.start()

        assert reminders.get_state().running is False
        assert reminders.get_state().next_fire_at is None
        assert store.load().running is False

    def test_start_persists_running(self, store, timer, clock):
        reminders = make_scheduler(store, timer, clock)
        reminders.configure(goal="Read", interval_minutes=15)
        reminders.start()

        assert store.load() == ReminderConfig(goal="Read", interval_minutes=15, running=True)


class TestStop:
    def test_stop_when_idle_is_noop(self, store, timer, clock):
        reminders = make_scheduler(store, timer, clock)
        before = reminders.get_state()

        reminders.stop()
        reminders.stop()

        assert reminders.get_state() == before

    def test_stop_cancels_timer(self, store, timer, clock):
        reminders = make_scheduler(store, timer, clock)
        reminders.configure(goal="Read")
        reminders.start()

        state = reminders.stop()

        assert state.running is False
        assert state.next_fire_at is None
        assert timer.get_jobs() == []
        assert store.load().running is False

    def test_stop_is_idempotent_after_start(self, store, timer, clock):
        reminders = make_scheduler(store, timer, clock)
        reminders.configure(goal="Read")
        reminders.start()
        reminders.stop()

        state = reminders.stop()
        assert state.running is False

    def test_stop_before_restore_clears_persisted_running(self, timer, clock):
        storage = MemoryStorage()
        store = ReminderStore(storage)
        store.save(ReminderConfig(goal="Read", interval_minutes=30, running=True))
        reminders = make_scheduler(store, timer, clock)

        state = reminders.stop()

        assert state.running is False
        assert state.next_fire_at is None
        assert ReminderStore(storage).load().running is False

    def test_stop_after_shutdown_clears_running(self, store, timer, clock):
        reminders = make_scheduler(store, timer, clock)
        reminders.configure(goal="Read")
        reminders.start()
        reminders.shutdown()
        assert store.load().running is True

        state = reminders.stop()

        assert state.running is False
        assert store.load().running is False
        assert timer.get_jobs() == []


class TestConfigure:
    def test_configure_round_trips_through_storage(self, storage, timer, clock):
        reminders = make_scheduler(ReminderStore(storage), timer, clock)
        reminders.configure(goal="X", interval_minutes=45)

        reloaded = ReminderStore(storage).load()
        assert reloaded.goal == "X"
        assert reloaded.interval_minutes == 45

    @pytest.mark.parametrize("value,expected", [(0, 1), (-5, 1), ("abc", 25), ("30", 30), (12.7, 12)])
    def test_configure_clamps_interval(self, store, timer, clock, value, expected):
        reminders = make_scheduler(store, timer, clock)
        state = reminders.configure(interval_minutes=value)
        assert state.interval_minutes == expected

    def test_configure_keeps_unspecified_fields(self, store, timer, clock):
        reminders = make_scheduler(store, timer, clock)
        reminders.configure(goal="Run", interval_minutes=60)

        state = reminders.configure(goal="Run 5k")
        assert state.interval_minutes == 60

        state = reminders.configure(interval_minutes=15)
        assert state.goal == "Run 5k"

    def test_interval_change_applies_on_next_start(self, store, timer, clock):
        reminders = make_scheduler(store, timer, clock)
        reminders.configure(goal="Read", interval_minutes=25)
        reminders.start()

        reminders.configure(interval_minutes=10)

        assert timer.get_jobs()[0].trigger.interval == timedelta(minutes=25)
        assert reminders.get_state().running is True

        state = reminders.start()
        assert timer.get_jobs()[0].trigger.interval == timedelta(minutes=10)
        assert state.next_fire_at == clock.now + timedelta(minutes=10)


class TestTick:
    def test_tick_fires_callback_with_goal(self, store, timer, clock):
        on_fire = Mock()
        reminders = make_scheduler(store, timer, clock, on_fire)
        reminders.configure(goal="Practice piano")
        reminders.start()

        clock.advance(minutes=25, seconds=2)
        reminders._tick()

        on_fire.assert_called_once_with("Practice piano")
        assert reminders.get_state().next_fire_at == clock.now + timedelta(minutes=25)

    def test_tick_uses_armed_interval(self, store, timer, clock):
        reminders = make_scheduler(store, timer, clock)
        reminders.configure(goal="Read", interval_minutes=25)
        reminders.start()
        reminders.configure(interval_minutes=10)

        clock.advance(minutes=25)
        reminders._tick()

        assert reminders.get_state().next_fire_at == clock.now + timedelta(minutes=25)

    def test_callback_error_does_not_stop_timer(self, store, timer, clock):
        on_fire = Mock(side_effect=RuntimeError("notification failed"))
        reminders = make_scheduler(store, timer, clock, on_fire)
        reminders.configure(goal="Read")
        reminders.start()

        clock.advance(minutes=25)
        reminders._tick()

        state = reminders.get_state()
        assert state.running is True
        assert state.next_fire_at == clock.now + timedelta(minutes=25)
        assert len(timer.get_jobs()) == 1

    def test_tick_after_stop_does_nothing(self, store, timer, clock):
        on_fire = Mock()
        reminders = make_scheduler(store, timer, clock, on_fire)
        reminders.configure(goal="Read")
        reminders.start()
        reminders.stop()

        reminders._tick()

        on_fire.assert_not_called()
        assert reminders.get_state().next_fire_at is None


class TestPersistenceFailures:
    def test_write_failure_is_not_fatal(self, timer, clock):
        storage = Mock()
        storage.get.return_value = None
        storage.set.side_effect = PersistenceError("disk full")
        reminders = make_scheduler(ReminderStore(storage), timer, clock)

        reminders.configure(goal="Read")
        state = reminders.start()

        assert state.running is True
        assert state.goal == "Read"

    def test_read_error_on_startup_uses_defaults(self, timer, clock):
        storage = Mock()
        storage.get.side_effect = OSError("disk gone")

        reminders = make_scheduler(ReminderStore(storage), timer, clock)

        assert reminders.get_state().running is False
        assert reminders.restore().interval_minutes == 25


class TestRestore:
    def test_restore_resumes_running_cadence(self, timer, clock):
        storage = MemoryStorage({"goal-coach-state-v1": '{"goal": "Read", "intervalMinutes": 30, "running": true}'})
        reminders = make_scheduler(ReminderStore(storage), timer, clock)

        state = reminders.restore()

        assert state.running is True
        assert state.interval_minutes == 30
        assert state.next_fire_at == clock.now + timedelta(minutes=30)
        assert len(timer.get_jobs()) == 1

    def test_restore_with_blank_goal_marks_paused(self, timer, clock):
        storage = MemoryStorage({"goal-coach-state-v1": '{"goal": " ", "intervalMinutes": 30, "running": true}'})
        store = ReminderStore(storage)
        reminders = make_scheduler(store, timer, clock)

        state = reminders.restore()

        assert state.running is False
        assert store.load().running is False
        assert timer.get_jobs() == []

    def test_restore_when_paused_does_not_arm(self, timer, clock):
        storage = MemoryStorage({"goal-coach-state-v1": '{"goal": "Read", "intervalMinutes": 30, "running": false}'})
        reminders = make_scheduler(ReminderStore(storage), timer, clock)

        state = reminders.restore()

        assert state.running is False
        assert timer.get_jobs() == []

    def test_shutdown_keeps_running_flag_for_next_process(self, store, timer, clock):
        reminders = make_scheduler(store, timer, clock)
        reminders.configure(goal="Read")
        reminders.start()

        reminders.shutdown()

        assert timer.get_jobs() == []
        assert store.load().running is True
