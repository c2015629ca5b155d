from datetime import datetime, timedelta, timezone

import pytest

from app import crud
from app.constants.tasks import TaskName, TaskState
from app.models.event import Event
from app.models.event_participant import EventParticipant
from app.models.scheduled_task import ScheduledTask
from app.schemas.event_series import EventSeriesUpdate
from app.services import event_series as series_service
from app.services import generation, task_queue
from app.services.exceptions import NotFoundError, SeriesInactiveError
from tests.utils.series import NOW, SERIES_END, SERIES_START, create_random_series


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def series_events(db, series_id):
    return crud.event.get_multi_by_series(db, series_id=series_id)


def pending_count(db) -> int:
    return db.query(ScheduledTask).filter(ScheduledTask.state == TaskState.PENDING).count()


class TestActivation:

    def test_activation_generates_first_batch(self, db_session):
        # ACT
        series = create_random_series(db_session, is_active=True)

        # ASSERT
        events = series_events(db_session, series.id)
        assert [e.date for e in events] == [
            utc(2026, 1, 5, 18),
            utc(2026, 1, 7, 18),
            utc(2026, 1, 9, 18),
            utc(2026, 1, 12, 18),
            utc(2026, 1, 14, 18),
            utc(2026, 1, 16, 18),
        ]
        assert series.is_active is True
        assert all(len(e.timeslots) == 1 for e in events)
        assert all(e.on_event_start_task_id and e.on_event_end_task_id for e in events)

    def test_activation_arms_next_batch_before_next_date(self, db_session):
        series = create_random_series(db_session, is_active=True)

        task = crud.scheduled_task.get(db_session, series.on_next_batch_task_id)

        assert task.name == TaskName.GENERATE_EVENTS_FOR_SERIES
        assert task.run_at == utc(2026, 1, 12, 18)
        assert task.payload == {
            "event_series_id": series.id,
            "start": utc(2026, 1, 19).isoformat(),
            "end": SERIES_END.isoformat(),
            "schedule_next_batch": True,
        }

    def test_activation_arms_deactivation(self, db_session):
        series = create_random_series(db_session, is_active=True)

        task = crud.scheduled_task.get(db_session, series.on_series_end_task_id)

        assert task.name == TaskName.DEACTIVATE_EVENT_SERIES
        assert task.run_at == SERIES_END

    def test_inactive_series_generates_nothing(self, db_session):
        series = create_random_series(db_session)

        assert series.is_active is False
        assert series_events(db_session, series.id) == []
        assert series.on_next_batch_task_id is None
        assert generation.generate_for_range(db_session, series.id, SERIES_START, SERIES_END, now=NOW) == []

    def test_missing_series_generates_nothing(self, db_session):
        assert generation.generate_for_range(db_session, "evs_missing", SERIES_START, SERIES_END) == []


class TestIdempotence:

    def test_regenerating_overlapping_range_creates_no_duplicates(self, db_session):
        # ARRANGE
        series = create_random_series(
            db_session,
            is_active=True,
            timeslots=[
                {
                    "type": "duration",
                    "duration": 60,
                    "max_participants": 10,
                    "permanent_participants": ["user_regular"],
                }
            ],
        )
        tasks_before = pending_count(db_session)
        next_batch_id = series.on_next_batch_task_id

        # ACT
        generation.generate_for_range(
            db_session, series.id, utc(2026, 1, 7), utc(2026, 1, 20), schedule_next_batch_after=True, now=NOW
        )
        generation.generate_for_range(
            db_session, series.id, SERIES_START, SERIES_END, now=NOW
        )

        # ASSERT
        assert db_session.query(Event).filter(Event.event_series_id == series.id).count() == 7
        # One permanent participant per event, never twice
        assert db_session.query(EventParticipant).count() == 7
        # One new event (Jan 19) armed two transitions, the next batch was already pending
        assert pending_count(db_session) == tasks_before + 2
        assert series.on_next_batch_task_id == next_batch_id

    def test_permanent_participants_are_accepted(self, db_session):
        series = create_random_series(
            db_session,
            is_active=True,
            timeslots=[
                {
                    "type": "duration",
                    "duration": 60,
                    "max_participants": 2,
                    "permanent_participants": ["user_a", "user_b"],
                }
            ],
        )

        event = series_events(db_session, series.id)[0]
        timeslot = event.timeslots[0]

        assert timeslot.num_participants == 2
        assert timeslot.num_waitlisted == 0
        participants = crud.event_participant.get_multi_by_event(db_session, event_id=event.id)
        assert {p.user_id for p in participants} == {"user_a", "user_b"}
        assert not any(p.is_waitlisted for p in participants)


class TestNextBatch:

    def test_next_batch_task_generates_following_window(self, db_session, session_factory):
        # ARRANGE
        series = create_random_series(db_session, is_active=True)
        series_id = series.id
        first_batch_task = series.on_next_batch_task_id
        db_session.commit()

        # ACT
        task_queue.dispatch_due_tasks(
            now=utc(2026, 1, 12, 18, 1), session_factory=session_factory
        )
        db_session.expire_all()

        # ASSERT
        series = crud.event_series.get(db_session, series_id)
        dates = [e.date for e in series_events(db_session, series_id)]
        assert len(dates) == 12
        assert dates[6:] == [
            utc(2026, 1, 19, 18),
            utc(2026, 1, 21, 18),
            utc(2026, 1, 23, 18),
            utc(2026, 1, 26, 18),
            utc(2026, 1, 28, 18),
            utc(2026, 1, 30, 18),
        ]
        assert task_queue.get_state(db_session, first_batch_task) == TaskState.EXECUTED
        assert series.on_next_batch_task_id != first_batch_task
        next_task = crud.scheduled_task.get(db_session, series.on_next_batch_task_id)
        assert next_task.state == TaskState.PENDING
        assert next_task.payload["start"] == utc(2026, 2, 2).isoformat()

    def test_no_next_batch_after_last_date(self, db_session):
        # Two weeks of Mondays only: everything fits in the first batch
        series = create_random_series(
            db_session, is_active=True, days_of_week=[0], end_date=utc(2026, 1, 13)
        )

        assert len(series_events(db_session, series.id)) == 2
        assert series.on_next_batch_task_id is None

    def test_find_next_event_date_skips_empty_windows(self, db_session):
        # Every fourth week: the next date after the first is 28 days away
        series = create_random_series(db_session, days_of_week=[0], interval=4)

        assert generation.find_next_event_date(series, utc(2026, 1, 6)) == utc(2026, 2, 2, 18)
        assert generation.find_next_event_date(series, utc(2026, 3, 1)) is None


class TestManualGeneration:

    def test_generate_events_for_active_series(self, db_session):
        series = create_random_series(db_session, is_active=True)

        events = generation.generate_events(
            db_session, series.id, utc(2026, 1, 19), utc(2026, 2, 1), now=NOW
        )

        assert [e.date for e in events][:2] == [utc(2026, 1, 19, 18), utc(2026, 1, 21, 18)]
        assert len(events) == 6

    def test_generate_events_requires_active_series(self, db_session):
        series = create_random_series(db_session)

        with pytest.raises(SeriesInactiveError):
            generation.generate_events(db_session, series.id, SERIES_START, SERIES_START + timedelta(days=7))

    def test_generate_events_for_missing_series(self, db_session):
        with pytest.raises(NotFoundError):
            generation.generate_events(db_session, "evs_missing", SERIES_START, SERIES_START + timedelta(days=7))


class TestSeriesUpdates:

    def test_deactivating_cancels_future_batches(self, db_session):
        series = create_random_series(db_session, is_active=True)
        next_batch_id = series.on_next_batch_task_id
        series_end_id = series.on_series_end_task_id

        series_service.update_series(
            db_session, series=series, series_in=EventSeriesUpdate(is_active=False), now=NOW
        )

        assert series.is_active is False
        assert task_queue.get_state(db_session, next_batch_id) == TaskState.CANCELED
        assert task_queue.get_state(db_session, series_end_id) == TaskState.CANCELED

    def test_activating_through_update(self, db_session):
        series = create_random_series(db_session)

        series_service.update_series(
            db_session, series=series, series_in=EventSeriesUpdate(is_active=True), now=NOW
        )

        assert series.is_active is True
        assert len(series_events(db_session, series.id)) == 6
        assert task_queue.get_state(db_session, series.on_next_batch_task_id) == TaskState.PENDING

    def test_moving_end_date_rearms_deactivation(self, db_session):
        series = create_random_series(db_session, is_active=True)
        old_task_id = series.on_series_end_task_id

        series_service.update_series(
            db_session,
            series=series,
            series_in=EventSeriesUpdate(end_date=utc(2026, 2, 16)),
            now=NOW,
        )

        assert task_queue.get_state(db_session, old_task_id) == TaskState.CANCELED
        new_task = crud.scheduled_task.get(db_session, series.on_series_end_task_id)
        assert new_task.state == TaskState.PENDING
        assert new_task.run_at == utc(2026, 2, 16)

    def test_earlier_start_time_is_picked_up_by_next_batch(self, db_session, session_factory):
        # ARRANGE
        series = create_random_series(db_session, is_active=True)
        series_id = series.id
        series_service.update_series(
            db_session, series=series, series_in=EventSeriesUpdate(start_time="17:00"), now=NOW
        )
        db_session.commit()

        # ACT
        task_queue.dispatch_due_tasks(
            now=utc(2026, 1, 12, 18, 1), session_factory=session_factory
        )
        db_session.expire_all()

        # ASSERT
        dates = [e.date for e in series_events(db_session, series_id)]
        assert dates[6:] == [
            utc(2026, 1, 19, 17),
            utc(2026, 1, 21, 17),
            utc(2026, 1, 23, 17),
            utc(2026, 1, 26, 17),
            utc(2026, 1, 28, 17),
            utc(2026, 1, 30, 17),
        ]


class TestSeriesDeletion:

    def test_delete_cancels_next_batch_and_event_tasks(self, db_session, session_factory):
        # ARRANGE
        series = create_random_series(db_session, is_active=True)
        series_id = series.id
        next_batch_id = series.on_next_batch_task_id
        event_task_ids = [
            e.on_event_start_task_id for e in series_events(db_session, series_id)
        ]
        db_session.commit()

        # ACT
        series_service.delete_series(db_session, series=crud.event_series.get(db_session, series_id))
        db_session.commit()
        executed = task_queue.dispatch_due_tasks(
            now=SERIES_END + timedelta(days=1), session_factory=session_factory
        )
        db_session.expire_all()

        # ASSERT
        assert executed == 0
        assert crud.event_series.get(db_session, series_id) is None
        assert db_session.query(Event).filter(Event.event_series_id == series_id).count() == 0
        assert task_queue.get_state(db_session, next_batch_id) == TaskState.CANCELED
        assert all(
            task_queue.get_state(db_session, task_id) == TaskState.CANCELED
            for task_id in event_task_ids
        )
