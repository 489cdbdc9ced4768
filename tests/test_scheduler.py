"""Tests for the nightly sync scheduler."""

from unittest.mock import MagicMock, patch

import pytest
from apscheduler.triggers.cron import CronTrigger

from app.models import AdminSetting
from app.tasks import scheduler as scheduler_module
from app.tasks.scheduler import (
    build_trigger, get_schedule_settings, run_nightly_sync, update_schedule,
)


class TestBuildTrigger:
    def test_valid(self):
        trigger = build_trigger('30 3 * * 1-5', 'Asia/Tbilisi')
        assert isinstance(trigger, CronTrigger)
        assert str(trigger.timezone) == 'Asia/Tbilisi'

    @pytest.mark.parametrize('schedule', ['', 'not a cron', '61 * * * *', '* * *'])
    def test_invalid_schedule(self, schedule):
        with pytest.raises(ValueError):
            build_trigger(schedule, 'Etc/UTC')

    @pytest.mark.parametrize('timezone', ['', 'Mars/Olympus_Mons'])
    def test_invalid_timezone(self, timezone):
        with pytest.raises(ValueError, match='imezone'):
            build_trigger('0 2 * * *', timezone)


class TestScheduleSettings:
    def test_defaults(self, app, db):
        assert get_schedule_settings(app) == ('0 2 * * *', 'Etc/UTC')

    def test_update_persists(self, app, db):
        result = update_schedule(app, ' 15 4 * * * ', 'Europe/Berlin')

        assert result == {'cronSchedule': '15 4 * * *', 'cronTimezone': 'Europe/Berlin'}
        assert AdminSetting.get('cron_schedule') == '15 4 * * *'
        assert get_schedule_settings(app) == ('15 4 * * *', 'Europe/Berlin')

    def test_update_rejects_invalid_and_saves_nothing(self, app, db):
        with pytest.raises(ValueError):
            update_schedule(app, '0 2 * * *', 'Nowhere/Special')
        assert AdminSetting.get('cron_schedule') is None

    def test_update_reschedules_registered_job(self, app, db):
        fake_scheduler = MagicMock()
        with patch.object(scheduler_module, 'scheduler', fake_scheduler):
            update_schedule(app, '0 5 * * *', 'Etc/UTC')

        fake_scheduler.reschedule_job.assert_called_once()
        assert fake_scheduler.reschedule_job.call_args.args[0] == 'nightly_sync'


class TestInitScheduler:
    def test_disabled_by_config(self, app):
        fake_scheduler = MagicMock()
        with patch.object(scheduler_module, 'scheduler', fake_scheduler):
            scheduler_module.init_scheduler(app)
        fake_scheduler.add_job.assert_not_called()

    def test_registers_single_job(self, app, db):
        app.config['SCHEDULER_ENABLED'] = True
        fake_scheduler = MagicMock()
        with patch.object(scheduler_module, 'scheduler', fake_scheduler):
            scheduler_module.init_scheduler(app)

        fake_scheduler.add_job.assert_called_once()
        kwargs = fake_scheduler.add_job.call_args.kwargs
        assert kwargs['id'] == 'nightly_sync'
        assert kwargs['args'] == [app]
        fake_scheduler.start.assert_called_once()

    def test_bad_stored_settings_fall_back(self, app, db):
        AdminSetting.set('cron_schedule', 'garbage')
        db.session.commit()
        app.config['SCHEDULER_ENABLED'] = True
        fake_scheduler = MagicMock()
        with patch.object(scheduler_module, 'scheduler', fake_scheduler):
            scheduler_module.init_scheduler(app)

        trigger = fake_scheduler.add_job.call_args.args[1]
        assert isinstance(trigger, CronTrigger)


class TestNightlyJob:
    @patch('app.services.inactivity_service.InactivityService')
    @patch('app.services.sync_service.SyncService')
    def test_runs_sync_then_reminders(self, mock_sync, mock_inactivity, app):
        order = []
        mock_sync.return_value.sync_all.side_effect = lambda: order.append('sync') or {'success_count': 2}
        mock_inactivity.return_value.run.side_effect = lambda: order.append('remind') or {'sent': 1}

        result = run_nightly_sync(app)

        assert order == ['sync', 'remind']
        assert result == {'sync': {'success_count': 2}, 'reminders': {'sent': 1}}

    @patch('app.services.inactivity_service.InactivityService')
    @patch('app.services.sync_service.SyncService')
    def test_reminder_failure_is_contained(self, mock_sync, mock_inactivity, app):
        mock_sync.return_value.sync_all.return_value = {'success_count': 0}
        mock_inactivity.return_value.run.side_effect = RuntimeError('db gone')

        result = run_nightly_sync(app)

        assert result['reminders'] is None
