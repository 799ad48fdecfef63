"""Tests for the report scheduler."""

import pytest
from apscheduler.triggers.cron import CronTrigger

from indexwatch.scheduler import ReportScheduler, parse_cron


def _noop(site_url):
    return site_url


class TestParseCron:

    def test_five_fields(self):
        trigger = parse_cron("0 6 * * 1")
        assert isinstance(trigger, CronTrigger)
        assert "day_of_week='1'" in str(trigger)

    @pytest.mark.parametrize("expr", ["0 6 * *", "0 6 * * 1 2026", ""])
    def test_rejects_wrong_field_count(self, expr):
        with pytest.raises(ValueError, match="5 fields"):
            parse_cron(expr)


class TestReportScheduler:

    def test_add_list_remove(self):
        sched = ReportScheduler(job_store_url=None)
        sched.add_job("weekly_report:example.com", _noop, cron="0 6 * * 1", args=("https://example.com",))

        jobs = sched.list_jobs()
        assert [j["id"] for j in jobs] == ["weekly_report:example.com"]
        assert sched.remove_job("weekly_report:example.com") is True
        assert sched.remove_job("weekly_report:example.com") is False
        assert sched.list_jobs() == []

    def test_start_stop(self):
        sched = ReportScheduler(job_store_url=None)
        sched.add_job("job", _noop, cron="0 6 * * 1", args=("a",))
        sched.start()
        try:
            assert sched.is_running is True
            assert sched.list_jobs()[0]["next_run_time"] is not None
            sched.add_job("job", _noop, cron="0 7 * * 1", args=("a",))
            assert len(sched.list_jobs()) == 1
        finally:
            sched.stop(wait=False)
        assert sched.is_running is False

    def test_schedule_weekly_report(self):
        sched = ReportScheduler(job_store_url=None)
        job_id = sched.schedule_weekly_report("https://example.com", cron="30 5 * * 1")
        assert job_id == "weekly_report:https://example.com"
        assert [j["id"] for j in sched.list_jobs()] == [job_id]
