"""
Reminder notifiers
The engine only tells a notifier when a schedule's reminder must be
(re)scheduled or cancelled; delivery is the notifier's business.
"""
import logging

import requests

from medtrack.utils.timezone import format_time, now as tz_now

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Default notifier: records reminder changes in the log only"""

    def schedule_reminder(self, schedule):
        logger.info('Reminder scheduled for %s (%s) at %s',
                    schedule.name, schedule.dosage, format_time(schedule.time_of_day))
        return {'success': True}

    def cancel_reminder(self, schedule_id):
        logger.info('Reminder cancelled for schedule %s', schedule_id)
        return {'success': True}


class WebhookNotifier:
    """Forward reminder changes to an HTTP endpoint (e.g. a push gateway or dispenser)"""

    def __init__(self, url, timeout=5):
        self.url = url.rstrip('/')
        self.timeout = timeout

    def _post(self, path, payload):
        try:
            response = requests.post(f'{self.url}{path}', json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.warning('Reminder webhook %s failed: %s', path, e)
            return {'success': False, 'error': str(e)}

        if response.status_code == 200:
            return {'success': True}
        logger.warning('Reminder webhook %s returned HTTP %s', path, response.status_code)
        return {'success': False, 'error': f'HTTP {response.status_code}'}

    def schedule_reminder(self, schedule):
        payload = dict(schedule.to_dict(), timestamp=tz_now().isoformat())
        return self._post('/reminders', payload)

    def cancel_reminder(self, schedule_id):
        return self._post('/reminders/cancel', {'scheduleId': schedule_id, 'timestamp': tz_now().isoformat()})
