"""
API Routes for schedules, daily medication records and statistics
Thin JSON wrapper around AdherenceService
"""
import logging

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from medtrack.errors import MedTrackError, ValidationError
from medtrack.models import db
from medtrack.services.status import format_time_difference
from medtrack.utils.timezone import (
    format_date, month_of, parse_date, parse_timestamp,
)

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__, url_prefix='/api')


def get_service():
    return current_app.extensions['medtrack']


def date_arg(name, default=None):
    """Read a YYYY-MM-DD query parameter"""
    value = request.args.get(name)
    if not value:
        return default
    try:
        return parse_date(value)
    except ValueError:
        raise ValidationError(f'{name} must be YYYY-MM-DD')


def occurrence_payload(occurrence):
    data = occurrence.to_dict()
    if occurrence.actual_time is not None:
        data['timeDifference'] = format_time_difference(occurrence.scheduled_time, occurrence.actual_time)
    return data


@api_bp.errorhandler(MedTrackError)
def handle_medtrack_error(e):
    return jsonify({'error': str(e)}), e.status_code


@api_bp.errorhandler(SQLAlchemyError)
def handle_database_error(e):
    db.session.rollback()
    logger.exception('Database error')
    return jsonify({'error': str(e)}), 500


@api_bp.route('/health', methods=['GET'])
def health_check():
    return jsonify({'status': 'healthy', 'sync_enabled': get_service().sync.enabled}), 200


# ==================== SCHEDULES ====================

@api_bp.route('/schedules', methods=['GET'])
def list_schedules():
    """Get all medication schedules"""
    schedules = get_service().list_schedules()
    return jsonify({'success': True, 'schedules': [s.to_dict() for s in schedules]}), 200


@api_bp.route('/schedules', methods=['POST'])
def create_schedule():
    """Add a new medication schedule"""
    data = request.get_json(silent=True)
    schedule = get_service().create_schedule(data)
    return jsonify({'success': True, 'schedule': schedule.to_dict()}), 201


@api_bp.route('/schedules/<string:schedule_id>', methods=['GET'])
def get_schedule(schedule_id):
    schedule = get_service().get_schedule(schedule_id)
    return jsonify({'success': True, 'schedule': schedule.to_dict()}), 200


@api_bp.route('/schedules/<string:schedule_id>', methods=['PUT'])
def update_schedule(schedule_id):
    """Update a medication schedule"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Schedule payload must be a JSON object')
    schedule = get_service().update_schedule(schedule_id, data)
    return jsonify({'success': True, 'schedule': schedule.to_dict()}), 200


@api_bp.route('/schedules/<string:schedule_id>/toggle', methods=['POST'])
def toggle_schedule(schedule_id):
    """Enable or disable a schedule"""
    schedule = get_service().toggle_schedule(schedule_id)
    return jsonify({'success': True, 'schedule': schedule.to_dict()}), 200


@api_bp.route('/schedules/<string:schedule_id>', methods=['DELETE'])
def delete_schedule(schedule_id):
    """Delete a schedule and all of its daily records"""
    removed = get_service().delete_schedule(schedule_id)
    return jsonify({'success': True, 'deletedRecords': removed}), 200


# ==================== DAILY MEDICATIONS ====================

@api_bp.route('/daily-medications', methods=['GET'])
def daily_medications():
    """Get daily medications for a date (?date=) or a date range (?startDate=&endDate=)"""
    day = date_arg('date')
    start = date_arg('startDate')
    end = date_arg('endDate')

    if day is None and (start is None or end is None):
        if start is not None or end is not None:
            raise ValidationError('startDate and endDate must be given together')
        day = get_service().today()
    if day is not None:
        start = end = day

    occurrences = get_service().occurrences_for_range(start, end)
    return jsonify({
        'success': True,
        'medications': [occurrence_payload(o) for o in occurrences]
    }), 200


@api_bp.route('/daily-medications/<string:occurrence_id>/log', methods=['POST'])
def log_intake(occurrence_id):
    """Record that a dose was taken; status is derived from the actual time"""
    service = get_service()
    data = request.get_json(silent=True) or {}
    occurrence = service.get_occurrence(occurrence_id)

    actual_time = None
    if data.get('actualTime'):
        try:
            actual_time = parse_timestamp(data['actualTime'], occurrence.date)
        except (TypeError, ValueError):
            raise ValidationError('actualTime must be HH:mm or YYYY-MM-DD HH:mm')

    occurrence = service.log_intake(occurrence_id, actual_time, data.get('notes'))
    return jsonify({'success': True, 'medication': occurrence_payload(occurrence)}), 200


@api_bp.route('/daily-medications/<string:occurrence_id>/skip', methods=['POST'])
def mark_skipped(occurrence_id):
    """Mark a scheduled dose as skipped"""
    occurrence = get_service().mark_skipped(occurrence_id)
    return jsonify({'success': True, 'medication': occurrence_payload(occurrence)}), 200


@api_bp.route('/daily-medications/<string:occurrence_id>/cancel', methods=['POST'])
def cancel_record(occurrence_id):
    """Revert a recorded dose back to upcoming"""
    occurrence = get_service().cancel(occurrence_id)
    return jsonify({'success': True, 'medication': occurrence_payload(occurrence)}), 200


@api_bp.route('/daily-medications/<string:occurrence_id>', methods=['DELETE'])
def delete_record(occurrence_id):
    get_service().delete_occurrence(occurrence_id)
    return jsonify({'success': True}), 200


@api_bp.route('/daily-medications/reset', methods=['POST'])
def reset_records():
    """Delete every daily medication record"""
    removed = get_service().reset_all_occurrences()
    return jsonify({'success': True, 'deletedCount': removed}), 200


# ==================== STATISTICS ====================

@api_bp.route('/statistics/day', methods=['GET'])
def day_statistics():
    service = get_service()
    day = date_arg('date', service.today())
    occurrences, stats = service.day_view(day)
    return jsonify({
        'success': True,
        'date': format_date(day),
        'statistics': stats.to_dict(),
        'medications': [occurrence_payload(o) for o in occurrences]
    }), 200


@api_bp.route('/statistics/month', methods=['GET'])
def month_statistics():
    """Per-day statistics and calendar colors for one month (?month=YYYY-MM)"""
    value = request.args.get('month')
    if value:
        try:
            month = month_of(value)
        except ValueError:
            raise ValidationError('month must be YYYY-MM')
    else:
        month = get_service().today()

    stats = get_service().month_view(month)
    return jsonify({
        'success': True,
        'month': month.strftime('%Y-%m'),
        'days': stats.to_dict()
    }), 200
