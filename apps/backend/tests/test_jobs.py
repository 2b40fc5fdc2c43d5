import shutil
import sys
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from scrapeflow.errors import NotFoundError, ValidationError
from scrapeflow.scheduler import (
    JobFilterOptions,
    JobStatus,
    JobStore,
    ScheduleFrequency,
    ScheduleType,
    add_job,
    create_job,
    delete_job,
    filter_jobs,
    get_job,
    record_run,
    replace_job,
    set_dependencies,
    set_notifications,
    update_job,
)

START = datetime(2030, 1, 1, 9, 30, tzinfo=timezone.utc)  # a Tuesday


class JobCreationTests(unittest.TestCase):
    def test_defaults_follow_the_editor(self):
        job = create_job("wf-1")
        self.assertEqual(job.name, "New Job")
        self.assertEqual(job.schedule_type, ScheduleType.RECURRING)
        self.assertEqual(job.frequency, ScheduleFrequency.DAILY)
        self.assertEqual(job.status, JobStatus.SCHEDULED)
        self.assertTrue(job.id.startswith("job-"))
        self.assertIsNotNone(job.next_run_time)
        self.assertEqual(job.created_at, job.updated_at)

    def test_next_run_is_computed_from_start_time(self):
        job = create_job("wf-1", "Nightly", start_time=START)
        self.assertEqual(job.next_run_time, START)

    def test_one_time_job_runs_at_start(self):
        job = create_job("wf-1", "Once", scheduleType="one-time", frequency="once", startTime=START)
        self.assertEqual(job.next_run_time, START)
        self.assertFalse(job.is_recurring)

    def test_generated_ids_are_unique(self):
        self.assertNotEqual(create_job("wf-1").id, create_job("wf-1").id)

    def test_explicit_id_is_ignored(self):
        job = create_job("wf-1", id="mine")
        self.assertNotEqual(job.id, "mine")

    def test_inconsistent_fields_are_rejected(self):
        cases = [
            ({"frequency": "weekly"}, "daysOfWeek"),
            ({"daysOfWeek": ["monday"]}, "daysOfWeek"),
            ({"frequency": "monthly"}, "dayOfMonth"),
            ({"dayOfMonth": 5}, "dayOfMonth"),
            ({"frequency": "yearly", "dayOfMonth": 5}, "dayOfMonth"),
            ({"monthOfYear": 3}, "monthOfYear"),
            ({"frequency": "custom"}, "cron"),
            ({"frequency": "custom", "cron": "every tuesday"}, "cron"),
            ({"cron": "0 * * * *"}, "cron"),
            ({"scheduleType": "one-time"}, "frequency"),
            ({"frequency": "once"}, "frequency"),
            ({"timezone": "Mars/Olympus_Mons"}, "timezone"),
            ({"startTime": START, "endTime": START}, "endTime"),
        ]
        for fields, key in cases:
            with self.subTest(fields=fields):
                with self.assertRaises(ValidationError) as ctx:
                    create_job("wf-1", **fields)
                self.assertIn(key, ctx.exception.errors)

    def test_cron_that_never_fires_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            create_job("wf-1", "Leap", frequency="custom", cron="0 0 30 2 *")
        self.assertEqual(ctx.exception.errors, {"cron": "Cron expression never fires"})

        job = create_job("wf-1", "Every five", frequency="custom", cron="*/5 * * * *", start_time=START)
        with self.assertRaises(ValidationError):
            update_job(job, {"cron": "0 0 31 4 *"})

    def test_blank_name_and_workflow_are_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            create_job("", "   ")
        self.assertEqual(set(ctx.exception.errors), {"name", "workflowId"})

    def test_out_of_range_fields_raise_domain_error(self):
        with self.assertRaises(ValidationError):
            create_job("wf-1", frequency="monthly", day_of_month=40)

    def test_valid_detail_fields(self):
        weekly = create_job("wf-1", frequency="weekly", days_of_week=["friday"], start_time=START)
        self.assertEqual(weekly.next_run_time, datetime(2030, 1, 4, 9, 30, tzinfo=timezone.utc))
        monthly = create_job("wf-1", frequency="monthly", day_of_month=15, start_time=START)
        self.assertEqual(monthly.next_run_time, datetime(2030, 1, 15, 9, 30, tzinfo=timezone.utc))


class JobUpdateTests(unittest.TestCase):
    def setUp(self) -> None:
        self.job = create_job("wf-1", "Nightly", start_time=START)

    def test_recurrence_change_recomputes_next_run(self):
        updated = update_job(self.job, {"frequency": "weekly", "daysOfWeek": ["monday"]})
        self.assertEqual(updated.next_run_time, datetime(2030, 1, 7, 9, 30, tzinfo=timezone.utc))
        self.assertEqual(self.job.frequency, ScheduleFrequency.DAILY)

    def test_non_recurrence_change_keeps_next_run(self):
        updated = update_job(self.job, {"name": "Renamed", "parameters": {"depth": 2}})
        self.assertEqual(updated.name, "Renamed")
        self.assertEqual(updated.parameters, {"depth": 2})
        self.assertEqual(updated.next_run_time, self.job.next_run_time)
        self.assertGreaterEqual(updated.updated_at, self.job.updated_at)
        self.assertEqual(updated.created_at, self.job.created_at)

    def test_explicit_next_run_is_kept(self):
        explicit = START + timedelta(days=3)
        updated = update_job(self.job, {"startTime": START, "nextRunTime": explicit})
        self.assertEqual(updated.next_run_time, explicit)

    def test_lists_cannot_be_patched(self):
        with self.assertRaises(ValidationError):
            update_job(self.job, {"dependencies": []})
        with self.assertRaises(ValidationError):
            update_job(self.job, {"notifications": []})

    def test_id_cannot_change(self):
        with self.assertRaises(ValidationError):
            update_job(self.job, {"id": "other"})

    def test_invalid_update_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            update_job(self.job, {"frequency": "monthly"})
        self.assertIn("dayOfMonth", ctx.exception.errors)


class JobCollectionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.a = create_job("wf-1", "A", start_time=START)
        self.b = create_job("wf-2", "B", start_time=START)
        self.jobs = add_job(add_job([], self.a), self.b)

    def test_get_and_add(self):
        self.assertEqual(get_job(self.jobs, self.b.id), self.b)
        with self.assertRaises(NotFoundError):
            get_job(self.jobs, "ghost")
        with self.assertRaises(ValidationError):
            add_job(self.jobs, self.a)

    def test_replace_job(self):
        jobs = replace_job(self.jobs, self.a.id, {"status": "paused"})
        self.assertEqual(get_job(jobs, self.a.id).status, JobStatus.PAUSED)
        self.assertEqual(get_job(self.jobs, self.a.id).status, JobStatus.SCHEDULED)

    def test_set_dependencies_replaces_list(self):
        jobs = set_dependencies(self.jobs, self.a.id, [{"dependsOnJobId": self.b.id}])
        deps = get_job(jobs, self.a.id).dependencies
        self.assertEqual(len(deps), 1)
        self.assertEqual(deps[0].depends_on_job_id, self.b.id)
        self.assertEqual(deps[0].dependency_type.value, "success")

        jobs = set_dependencies(jobs, self.a.id, [])
        self.assertEqual(get_job(jobs, self.a.id).dependencies, [])

    def test_set_dependencies_validates_entries(self):
        with self.assertRaises(ValidationError):
            set_dependencies(self.jobs, self.a.id, [{"dependsOnJobId": self.b.id, "timeout": 0}])
        with self.assertRaises(NotFoundError):
            set_dependencies(self.jobs, "ghost", [])

    def test_set_notifications_validates_channels(self):
        jobs = set_notifications(
            self.jobs,
            self.a.id,
            [{"type": "email", "recipients": ["ops@example.com"], "events": ["failure"]}],
        )
        self.assertEqual(get_job(jobs, self.a.id).notifications[0].recipients, ["ops@example.com"])

        bad = [
            {"type": "email", "events": ["failure"]},
            {"type": "webhook", "events": ["success"]},
            {"type": "slack", "events": ["start"]},
            {"type": "inApp", "events": []},
            {"type": "pager", "events": ["start"]},
        ]
        for notification in bad:
            with self.subTest(notification=notification):
                with self.assertRaises(ValidationError):
                    set_notifications(self.jobs, self.a.id, [notification])

    def test_delete_job_strips_dangling_dependencies(self):
        jobs = set_dependencies(self.jobs, self.a.id, [{"dependsOnJobId": self.b.id}])
        jobs = delete_job(jobs, self.b.id)
        self.assertEqual([j.id for j in jobs], [self.a.id])
        self.assertEqual(jobs[0].dependencies, [])
        with self.assertRaises(NotFoundError):
            delete_job(jobs, self.b.id)


class RunHistoryTests(unittest.TestCase):
    def test_record_runs_updates_counters(self):
        job = create_job("wf-1", "Nightly", start_time=START)
        job = record_run(job, "completed", 10, finished_at=START + timedelta(minutes=1))
        self.assertEqual((job.total_runs, job.successful_runs, job.failed_runs), (1, 1, 0))
        self.assertEqual(job.average_run_duration, 10)
        self.assertEqual(job.last_run_status, JobStatus.COMPLETED)
        self.assertEqual(job.next_run_time, START + timedelta(days=1))
        self.assertEqual(job.status, JobStatus.SCHEDULED)

        job = record_run(job, JobStatus.FAILED, 20, finished_at=START + timedelta(days=1, minutes=1))
        self.assertEqual((job.total_runs, job.successful_runs, job.failed_runs), (2, 1, 1))
        self.assertEqual(job.average_run_duration, 15)
        self.assertEqual(job.last_run_duration, 20)

    def test_one_time_job_finishes(self):
        job = create_job("wf-1", scheduleType="one-time", frequency="once", startTime=START)
        job = record_run(job, "completed", 3, finished_at=START + timedelta(seconds=3))
        self.assertIsNone(job.next_run_time)
        self.assertEqual(job.status, JobStatus.COMPLETED)

    def test_unfinished_status_is_rejected(self):
        job = create_job("wf-1", start_time=START)
        with self.assertRaises(ValidationError):
            record_run(job, "running", 1)


class FilterJobsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.alpha = create_job("wf-1", "Alpha prices", start_time=START)
        self.beta = update_job(
            create_job("wf-2", "Beta stock", workflow_name="Inventory", start_time=START),
            {"status": "paused"},
        )
        self.gamma = create_job(
            "wf-1",
            "gamma",
            frequency="weekly",
            days_of_week=["friday"],
            start_time=START,
        )
        self.done = create_job(
            "wf-3",
            "Zulu",
            schedule_type="one-time",
            frequency="once",
            start_time=START,
            next_run_time=None,
        )
        self.jobs = [self.alpha, self.beta, self.gamma, self.done]

    def _names(self, **options) -> list[str]:
        return [j.name for j in filter_jobs(self.jobs, JobFilterOptions(**options))]

    def test_filters(self):
        self.assertEqual(self._names(status=["paused"]), ["Beta stock"])
        self.assertEqual(self._names(frequency=["weekly"]), ["gamma"])
        self.assertEqual(self._names(workflow_ids=["wf-1"]), ["Alpha prices", "gamma"])
        self.assertEqual(self._names(search="INVENT"), ["Beta stock"])
        self.assertEqual(self._names(search="price"), ["Alpha prices"])
        self.assertEqual(
            self._names(start_date=START + timedelta(days=2)),
            ["gamma"],
        )
        self.assertEqual(
            self._names(end_date=START),
            ["Alpha prices", "Beta stock"],
        )

    def test_sorting(self):
        self.assertEqual(
            self._names(sort_by="name", sort_direction="desc"),
            ["Zulu", "gamma", "Beta stock", "Alpha prices"],
        )
        self.assertEqual(self._names(sort_by="nextRunTime")[-1], "Zulu")


class JobStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp_dir = Path(tempfile.mkdtemp(prefix="job-store-tests-"))
        self.store = JobStore(self.tmp_dir)

    def tearDown(self) -> None:
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def test_empty_store_loads_no_jobs(self):
        self.assertEqual(self.store.load_all(), [])

    def test_save_and_load_collection(self):
        a = create_job("wf-1", "A", start_time=START)
        jobs = set_dependencies([a, create_job("wf-1", "B")], a.id, [{"dependsOnJobId": "ext"}])
        self.store.save_all(jobs)

        loaded = self.store.load_all()
        self.assertEqual([j.to_wire() for j in loaded], [j.to_wire() for j in jobs])
        self.assertIn('"dependsOnJobId": "ext"', (self.tmp_dir / "jobs.json").read_text())
        self.assertEqual(list(self.tmp_dir.glob("*.tmp")), [])


if __name__ == "__main__":
    unittest.main()
