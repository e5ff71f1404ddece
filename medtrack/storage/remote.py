"""
HTTP client for the remote MedTrack store
Speaks the JSON wire format: dates as YYYY-MM-DD, times as HH:mm local
"""
import logging

import requests

from medtrack.errors import RemoteSyncError
from medtrack.models.occurrence import Occurrence
from medtrack.models.schedule import Schedule
from medtrack.utils.timezone import format_date

logger = logging.getLogger(__name__)


class RemoteStore:
    """Remote copy of schedules and occurrences"""

    def __init__(self, base_url, token=None, timeout=10, http=None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.http = http or requests.Session()
        self.http.headers.update({'Content-Type': 'application/json'})
        if token:
            self.http.headers.update({'Authorization': f'Bearer {token}'})

    def _request(self, method, endpoint, params=None, payload=None):
        url = f'{self.base_url}{endpoint}'
        try:
            response = self.http.request(method, url, params=params, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise RemoteSyncError(f'{method} {endpoint} failed: {e}') from e

        if not 200 <= response.status_code < 300:
            # Client errors other than timeouts and throttling will not go away on retry
            retryable = response.status_code >= 500 or response.status_code in (408, 429)
            raise RemoteSyncError(f'{method} {endpoint} returned HTTP {response.status_code}', retryable=retryable)

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteSyncError(f'{method} {endpoint} returned invalid JSON') from e

        if isinstance(data, dict) and data.get('success') is False:
            error = data.get('error', 'unknown error')
            raise RemoteSyncError(f'{method} {endpoint} rejected: {error}', retryable=False)
        return data

    @staticmethod
    def _parse_all(records, factory, kind):
        # Malformed records are dropped rather than failing the whole fetch
        parsed = []
        for record in records or []:
            try:
                parsed.append(factory(record))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                identifier = record.get('id') if isinstance(record, dict) else record
                logger.warning('Skipping malformed remote %s %r: %s', kind, identifier, e)
        return parsed

    # Schedules

    def get_schedules(self):
        data = self._request('GET', '/schedules')
        return self._parse_all(data.get('schedules'), Schedule.from_dict, 'schedule')

    def add_schedule(self, schedule):
        self._request('POST', '/schedules', payload=schedule.to_dict())

    def update_schedule(self, schedule):
        self._request('PUT', f'/schedules/{schedule.id}', payload=schedule.to_dict())

    def delete_schedule(self, schedule_id):
        self._request('DELETE', f'/schedules/{schedule_id}')

    # Occurrences

    def get_occurrences(self, start, end):
        if start == end:
            params = {'date': format_date(start)}
        else:
            params = {'startDate': format_date(start), 'endDate': format_date(end)}
        data = self._request('GET', '/daily-medications', params=params)
        return self._parse_all(data.get('medications'), Occurrence.from_dict, 'occurrence')

    def put_occurrence(self, occurrence):
        self._request('PUT', f'/daily-medications/{occurrence.id}', payload=occurrence.to_dict())

    def delete_occurrence(self, occurrence_id):
        self._request('DELETE', f'/daily-medications/{occurrence_id}')

    def delete_all_occurrences(self):
        data = self._request('POST', '/daily-medications/reset')
        return data.get('deletedCount', 0)
