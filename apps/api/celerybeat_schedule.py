"""
Celery Beat Schedule Configuration

Defines periodic tasks that run on a schedule.
"""

from celery.schedules import crontab

# Schedule configuration
beat_schedule = {
    # Create today's check-ins for timings due this minute.
    'safety-checkin-evaluator': {
        'task': 'tasks.run_timing_evaluator',
        'schedule': crontab(),  # Every minute
    },
    # Reminders and escalation for snoozed check-ins.
    'safety-checkin-snooze-monitor': {
        'task': 'tasks.run_snooze_monitor',
        'schedule': crontab(),  # Every minute
    },
}
