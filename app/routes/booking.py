"""
Booking Routes

FLOW OVERVIEW
- /api/availability [GET]
  • Per-day photo/consultation capacity for a month (see utils.availability).
- /api/consultation/book [POST, GET]
  • POST books a 15-minute consultation inside business hours
    (weekend 12:00 PM-11:00 PM, weekday 4:30 PM-11:00 PM). At most
    MAX_CONSULTATIONS_PER_SLOT confirmed bookings share a time.
    A Google Calendar event is created when the calendar is connected;
    calendar failures never fail the booking.
  • GET lists booked and open times for one date.
- /api/booking/send-reminder [POST]
  • Manual reminder/confirmation by email (and SMS when a phone is given).
- /api/appointments/send-reminders [GET, POST]
  • Cron job: confirmed appointments starting hours_before (±30 min) from now
    that have no reminder yet.
- /api/quote/recommend [POST]
  • AI package recommendation with a fixed fallback package.
"""

import re
from datetime import date, datetime, timedelta
from flask import Blueprint, jsonify, request
from ..models import db, Appointment
from ..models.appointment import parse_appointment_time
from ..utils import google_calendar
from ..utils.api_utils import request_validator
from ..utils.auth_utils import cron_authorized
from ..utils.availability import compute_availability, is_weekend, most_booked_month
from ..utils.logger import get_logger
from ..utils.notifications import NOTICE_TYPES, load_reminder_settings, send_session_notice
from ..utils.quotes import recommend_package
from ..utils.rate_limiter import rate_limit
from ..utils.validators import non_string_fields, parse_int, validate_email, validate_required

booking_bp = Blueprint('booking', __name__)
log = get_logger('api/booking')

MAX_CONSULTATIONS_PER_SLOT = 3
REMINDER_WINDOW = timedelta(minutes=30)
CONSULTATION_TIME = re.compile(r'^\s*\d{1,2}:\d{2}\s*(AM|PM)\s*$', re.IGNORECASE)

WEEKEND_HOURS = (12 * 60, 23 * 60)
WEEKDAY_HOURS = (16 * 60 + 30, 23 * 60)


def business_hours_error(day, start_time):
    """None when start_time falls inside the consultation hours for day"""
    minutes = start_time.hour * 60 + start_time.minute
    if is_weekend(day):
        opens, closes = WEEKEND_HOURS
        if minutes < opens or minutes >= closes:
            return 'Weekend consultations are available from 12:00 PM to 11:00 PM CST'
    else:
        opens, closes = WEEKDAY_HOURS
        if minutes < opens or minutes >= closes:
            return 'Weekday consultations are available from 4:30 PM to 11:00 PM CST'
    return None


def slot_label(start_time):
    """Canonical label stored for a booking: '5:00 PM'"""
    return start_time.strftime('%I:%M %p').lstrip('0')


def consultation_slots(day):
    """Half-hour slot labels ('4:30 PM', ...) for a day"""
    opens, closes = WEEKEND_HOURS if is_weekend(day) else WEEKDAY_HOURS
    slots = []
    for minutes in range(opens, closes, 30):
        slot = datetime.combine(day, datetime.min.time()) + timedelta(minutes=minutes)
        slots.append(slot_label(slot))
    return slots


@booking_bp.route('/availability', methods=['GET'])
def availability():
    today = date.today()
    month = parse_int(request.args.get('month'), today.month, minimum=1, maximum=12)
    year = parse_int(request.args.get('year'), today.year, minimum=2000, maximum=2100)
    service = request.args.get('service') or 'all'

    try:
        month_start = date(year, month, 1)
        month_end = date(year + (month == 12), month % 12 + 1, 1) - timedelta(days=1)

        query = Appointment.query.filter(Appointment.appointment_date >= month_start,
                                         Appointment.appointment_date <= month_end)
        if service != 'all':
            query = query.filter(Appointment.service_type == service)
        appointments = [(row.appointment_date, row.service_type) for row in query.all()]

        result = compute_availability(year, month, appointments, today)

        year_dates = [row.appointment_date for row in
                      Appointment.query.with_entities(Appointment.appointment_date)
                      .filter(Appointment.appointment_date >= date(year, 1, 1),
                              Appointment.appointment_date <= date(year, 12, 31)).all()]
        result['stats']['mostBookedMonth'] = most_booked_month(year_dates, month)
        return jsonify(result)
    except Exception as e:
        log.error('availability_failed', exc=e, month=month, year=year)
        return jsonify({'error': 'Failed to fetch availability'}), 500


@booking_bp.route('/consultation/book', methods=['POST'])
@rate_limit('consultation-book', 3, 15 * 60 * 1000, 'Too many booking attempts. Please try again later.')
def book_consultation():
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    present, missing = validate_required(data, ('date', 'time', 'name', 'email', 'phone'))
    if not present:
        log.warning('consultation_missing_fields', missing=missing)
        return jsonify({'error': 'Missing required fields'}), 400

    wrong_type = non_string_fields(data, ('date', 'time', 'name', 'email', 'phone', 'notes'))
    if wrong_type:
        log.warning('consultation_invalid_fields', fields=wrong_type)
        return jsonify({'error': f"Invalid field type: {', '.join(wrong_type)}"}), 400

    email = validate_email(data['email'])
    if not email.is_valid:
        return jsonify({'error': 'Invalid email format'}), 400

    try:
        booking_date = date.fromisoformat(str(data['date'])[:10])
    except ValueError:
        return jsonify({'error': 'Invalid date format'}), 400
    if booking_date < date.today():
        return jsonify({'error': 'Cannot book consultations in the past'}), 400

    start_time = parse_appointment_time(data['time'])
    if start_time is None or not CONSULTATION_TIME.match(str(data['time'])):
        return jsonify({'error': 'Invalid time format'}), 400

    hours_error = business_hours_error(booking_date, start_time)
    if hours_error:
        return jsonify({'error': hours_error}), 400

    time_label = slot_label(start_time)
    try:
        taken = Appointment.query.filter_by(appointment_date=booking_date, appointment_time=time_label,
                                            status='confirmed').count()
        if taken >= MAX_CONSULTATIONS_PER_SLOT:
            return jsonify({'error': 'This time slot is no longer available'}), 409

        booking = Appointment(
            client_name=data['name'].strip(),
            email=email.sanitized_value,
            phone=data['phone'].strip(),
            appointment_date=booking_date,
            appointment_time=time_label,
            service_type='consultation',
            booking_type='consultation',
            status='confirmed',
            notes=data.get('notes') or '',
        )
        db.session.add(booking)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        log.error('consultation_create_failed', exc=e)
        return jsonify({'error': 'Failed to create booking'}), 500

    log.info('consultation_booked', booking_id=booking.id, date=booking_date.isoformat(), time=time_label)
    _create_calendar_event(booking)

    return jsonify({
        'success': True,
        'booking': {
            'id': booking.id,
            'date': booking.appointment_date.isoformat(),
            'time': booking.appointment_time,
            'name': booking.client_name,
            'email': booking.email,
        },
        'message': 'Consultation booked successfully! Check your email for confirmation.',
    }), 201


def _create_calendar_event(booking):
    """Best effort: record the event id on the booking when the calendar is connected"""
    tokens = google_calendar.load_tokens()
    if not tokens:
        return
    try:
        access_token, tokens, refreshed = google_calendar.fresh_access_token(tokens)
        event = google_calendar.create_consultation_event(
            access_token,
            booking.appointment_date.isoformat(),
            booking.appointment_time,
            booking.client_name,
            booking.email,
            booking.phone,
            booking.notes,
        )
        if refreshed:
            google_calendar.save_tokens(tokens)
        booking.calendar_event_id = event.get('id')
        db.session.commit()
        log.info('calendar_event_created', booking_id=booking.id, event_id=booking.calendar_event_id)
    except google_calendar.CalendarError as e:
        db.session.rollback()
        log.warning('calendar_event_failed', booking_id=booking.id, error=str(e))


@booking_bp.route('/consultation/book', methods=['GET'])
def consultation_slots_for_date():
    date_param = request.args.get('date')
    if not date_param:
        return jsonify({'error': 'Date parameter is required'}), 400
    try:
        day = date.fromisoformat(date_param[:10])
    except ValueError:
        return jsonify({'error': 'Invalid date format'}), 400

    bookings = Appointment.query.filter_by(appointment_date=day, status='confirmed').all()
    booked_times = [booking.appointment_time for booking in bookings]
    available = [slot for slot in consultation_slots(day)
                 if booked_times.count(slot) < MAX_CONSULTATIONS_PER_SLOT]

    return jsonify({
        'date': day.isoformat(),
        'isWeekend': is_weekend(day),
        'bookedTimes': booked_times,
        'availableSlots': available,
        'totalSlots': len(consultation_slots(day)),
        'availableCount': len(available),
    })


@booking_bp.route('/booking/send-reminder', methods=['POST'])
@rate_limit('send-reminder', 10, 60 * 1000)
def send_reminder():
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    present, missing = validate_required(data, ('leadId', 'type', 'sessionDate', 'sessionTime', 'email', 'name'))
    if not present:
        return jsonify({'error': 'Missing required fields', 'missing': missing}), 400
    if data['type'] not in NOTICE_TYPES:
        return jsonify({'error': 'Invalid type. Must be "reminder" or "confirmation"'}), 400

    start_time = parse_appointment_time(data['sessionTime'])
    try:
        session_date = date.fromisoformat(str(data['sessionDate'])[:10])
    except ValueError:
        session_date = None
    if start_time is None or session_date is None:
        return jsonify({'error': 'Invalid session date or time'}), 400

    try:
        result = send_session_notice(
            data['type'],
            data['leadId'],
            data['name'],
            data['email'],
            datetime.combine(session_date, start_time),
            phone=data.get('phone'),
            session_type=data.get('sessionType'),
            location=data.get('location'),
            notes=data.get('notes'),
        )
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        log.error('send_reminder_failed', exc=e, lead_id=data.get('leadId'))
        return jsonify({'error': 'Failed to send reminder'}), 500

    log.info('session_notice_sent', lead_id=data['leadId'], type=data['type'],
             email_sent=result.email_sent, sms_sent=result.sms_sent)
    return jsonify({
        'success': True,
        'message': f"{data['type'].capitalize()} sent successfully",
        'emailSent': result.email_sent,
        'smsSent': result.sms_sent,
    })


def due_for_reminder(hours_before, now=None):
    """Confirmed, un-reminded appointments starting hours_before from now (±30 min)"""
    now = now or datetime.utcnow()
    target = now + timedelta(hours=hours_before)
    window_start, window_end = target - REMINDER_WINDOW, target + REMINDER_WINDOW

    candidates = Appointment.query.filter(
        Appointment.status == 'confirmed',
        Appointment.reminder_sent_at.is_(None),
        Appointment.appointment_date >= window_start.date(),
        Appointment.appointment_date <= window_end.date(),
    ).all()
    return [appointment for appointment in candidates
            if appointment.starts_at() is not None and window_start <= appointment.starts_at() <= window_end]


@booking_bp.route('/appointments/send-reminders', methods=['GET', 'POST'])
def send_appointment_reminders():
    """Cron entry point; X-Cron-Secret header or ?secret= must match CRON_SECRET"""
    if not cron_authorized():
        log.warning('cron_unauthorized')
        return jsonify({'error': 'Unauthorized'}), 401

    try:
        settings = load_reminder_settings()
        if not settings.get('enabled'):
            return jsonify({'success': True, 'message': 'Appointment reminders are disabled',
                            'remindersSent': 0, 'failures': []})

        appointments = due_for_reminder(int(settings.get('hours_before') or 24))
        log.info('reminder_candidates', count=len(appointments))

        reminders_sent = 0
        failures = []
        for appointment in appointments:
            result = send_session_notice(
                'reminder',
                appointment.id,
                appointment.client_name,
                appointment.email,
                appointment.starts_at(),
                phone=appointment.phone,
                session_type=appointment.service_type,
                notes=appointment.notes,
                send_email=settings.get('send_email', True),
                send_sms=settings.get('send_sms', True),
            )
            if result.email_sent or result.sms_sent:
                appointment.reminder_sent_at = datetime.utcnow()
                reminders_sent += 1
            else:
                failures.append({'appointmentId': appointment.id, 'error': '; '.join(result.errors) or 'No channel sent'})
        db.session.commit()

        return jsonify({
            'success': True,
            'message': f"Reminders job completed: {reminders_sent} sent, {len(failures)} failed",
            'remindersSent': reminders_sent,
            'failures': failures,
        })
    except Exception as e:
        db.session.rollback()
        log.error('reminder_job_failed', exc=e)
        return jsonify({'error': 'Failed to process reminders', 'details': str(e)}), 500


@booking_bp.route('/quote/recommend', methods=['POST'])
@rate_limit('quote-recommend', 10, 60 * 1000, 'Too many requests. Please try again in a minute.')
def recommend_quote():
    is_valid, data, error_response = request_validator.validate_json_request(allow_empty=True)
    if not is_valid:
        return error_response

    log.info('quote_recommendation_requested', service_type=data.get('serviceType'), budget=data.get('budget'))
    recommendation, is_fallback = recommend_package(data)

    body = {'recommendation': recommendation, 'generated_at': datetime.utcnow().isoformat()}
    if is_fallback:
        body['fallback'] = True
    return jsonify(body)
