"""
Tests for booking availability: capacity counting, urgency and the
consultation booking endpoints.
"""

from datetime import date, datetime, timedelta
from unittest.mock import MagicMock, patch
from app.models import Appointment, Setting
from app.routes.booking import business_hours_error, consultation_slots, due_for_reminder
from app.models.appointment import parse_appointment_time
from app.utils.availability import compute_availability, most_booked_month, urgency_for
from app.utils.google_calendar import TOKENS_SETTING_KEY
from app.utils.rate_limiter import rate_limiter


def next_weekday(weekday, after=None):
    """Next date (at least a week out) falling on weekday (0=Monday)"""
    day = (after or date.today()) + timedelta(days=7)
    return day + timedelta(days=(weekday - day.weekday()) % 7)


class TestComputeAvailability:
    """Test per-day capacity and urgency"""

    def test_past_days_are_skipped(self):
        result = compute_availability(2025, 6, [], today=date(2025, 6, 10))
        dates = [d['date'] for d in result['availableDates']]
        assert dates[0] == '2025-06-10'
        assert dates[-1] == '2025-06-30'
        assert len(dates) == 21

    def test_weekend_and_weekday_capacity(self):
        result = compute_availability(2025, 6, [], today=date(2025, 6, 1))
        by_date = {d['date']: d for d in result['availableDates']}

        saturday = by_date['2025-06-07']
        assert saturday['isWeekend']
        assert saturday['photoSlots'] == 4
        assert saturday['consultationSlots'] == 22
        assert saturday['slots'] == 26

        monday = by_date['2025-06-09']
        assert not monday['isWeekend']
        assert monday['photoSlots'] == 1
        assert monday['consultationSlots'] == 13
        assert monday['urgency'] == 'low'

    def test_bookings_reduce_their_own_capacity(self):
        appointments = [
            (date(2025, 6, 7), 'wedding'),
            (date(2025, 6, 7), 'consultation'),
            (date(2025, 6, 9), 'portrait'),
        ]
        result = compute_availability(2025, 6, appointments, today=date(2025, 6, 1))
        by_date = {d['date']: d for d in result['availableDates']}

        assert by_date['2025-06-07']['photoSlots'] == 3
        assert by_date['2025-06-07']['consultationSlots'] == 21
        assert by_date['2025-06-09']['photoSlots'] == 0
        assert by_date['2025-06-09']['urgency'] == 'high'
        assert result['bookedCount'] == 2

    def test_urgent_month_when_few_weekends_left(self):
        # June 2025 from the 22nd: weekends 28/29 only
        result = compute_availability(2025, 6, [], today=date(2025, 6, 22))
        assert result['stats']['weekendsLeft'] <= 3
        assert result['urgentMonths'] == ['June']

        early = compute_availability(2025, 6, [], today=date(2025, 6, 1))
        assert early['urgentMonths'] == []

    def test_urgency_rules(self):
        assert urgency_for(0, 4, 20) == 'high'
        assert urgency_for(1, 4, 20) == 'medium'
        assert urgency_for(1, 1, 5) == 'medium'
        assert urgency_for(1, 1, 14) == 'low'

    def test_most_booked_month(self):
        dates = [date(2025, 5, 1), date(2025, 9, 3), date(2025, 9, 20), date(2025, 5, 30)]
        assert most_booked_month(dates, 1) == 'May'
        assert most_booked_month([], 3) == 'March'


class TestConsultationHours:
    """Test business-hour rules for consultations"""

    def test_weekday_hours(self):
        monday = date(2025, 6, 9)
        assert business_hours_error(monday, parse_appointment_time('4:30 PM')) is None
        assert 'Weekday' in business_hours_error(monday, parse_appointment_time('3:00 PM'))
        assert business_hours_error(monday, parse_appointment_time('11:00 PM')) is not None

    def test_weekend_hours(self):
        saturday = date(2025, 6, 7)
        assert business_hours_error(saturday, parse_appointment_time('12:00 PM')) is None
        assert 'Weekend' in business_hours_error(saturday, parse_appointment_time('11:30 AM'))

    def test_slot_labels(self):
        weekday_slots = consultation_slots(date(2025, 6, 9))
        assert weekday_slots[0] == '4:30 PM'
        assert weekday_slots[-1] == '10:30 PM'
        assert len(weekday_slots) == 13
        assert len(consultation_slots(date(2025, 6, 7))) == 22


class TestAvailabilityEndpoint:
    def test_month_availability(self, client, db_session):
        response = client.get('/api/availability?month=12&year=2099')
        assert response.status_code == 200
        body = response.get_json()
        assert len(body['availableDates']) == 31
        assert body['stats']['mostBookedMonth'] == 'December'


class TestConsultationBooking:
    """Test the public consultation booking endpoint"""

    def payload(self, **overrides):
        data = {
            'date': next_weekday(0).isoformat(),
            'time': '5:00 PM',
            'name': 'Sam Client',
            'email': 'Sam@Example.com',
            'phone': '555-123-4567',
        }
        data.update(overrides)
        return data

    def test_books_consultation(self, client, db_session):
        response = client.post('/api/consultation/book', json=self.payload())
        assert response.status_code == 201
        body = response.get_json()
        assert body['success'] is True
        assert body['booking']['email'] == 'sam@example.com'
        assert body['booking']['time'] == '5:00 PM'

        booking = db_session.get(Appointment, body['booking']['id'])
        assert booking.status == 'confirmed'
        assert booking.service_type == 'consultation'

    def test_missing_fields(self, client, db_session):
        response = client.post('/api/consultation/book', json=self.payload(phone=''))
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Missing required fields'

    def test_past_date_rejected(self, client, db_session):
        yesterday = (date.today() - timedelta(days=1)).isoformat()
        response = client.post('/api/consultation/book', json=self.payload(date=yesterday))
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Cannot book consultations in the past'

    def test_time_must_be_twelve_hour(self, client, db_session):
        response = client.post('/api/consultation/book', json=self.payload(time='17:00'))
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid time format'

    def test_outside_hours_rejected(self, client, db_session):
        response = client.post('/api/consultation/book', json=self.payload(time='9:00 AM'))
        assert response.status_code == 400
        assert 'Weekday consultations' in response.get_json()['error']

    def test_full_slot_conflicts(self, client, db_session):
        day = next_weekday(0)
        for index in range(3):
            db_session.add(Appointment(client_name=f'Client {index}', email=f'c{index}@example.com',
                                       appointment_date=day, appointment_time='5:00 PM',
                                       service_type='consultation', status='confirmed'))
        db_session.commit()

        response = client.post('/api/consultation/book', json=self.payload(date=day.isoformat()))
        assert response.status_code == 409
        assert response.get_json()['error'] == 'This time slot is no longer available'

    def test_full_slot_counts_time_variants(self, client, db_session):
        day = next_weekday(0)
        for index in range(3):
            db_session.add(Appointment(client_name=f'Client {index}', email=f'c{index}@example.com',
                                       appointment_date=day, appointment_time='5:00 PM',
                                       service_type='consultation', status='confirmed'))
        db_session.commit()

        for variant in ('5:00 pm', '05:00 PM', '5:00PM'):
            response = client.post('/api/consultation/book', json=self.payload(date=day.isoformat(), time=variant))
            assert response.status_code == 409

    def test_time_stored_as_slot_label(self, client, db_session):
        response = client.post('/api/consultation/book', json=self.payload(time='05:30 pm'))
        assert response.status_code == 201
        assert response.get_json()['booking']['time'] == '5:30 PM'

        booked = client.get(f"/api/consultation/book?date={self.payload()['date']}").get_json()['bookedTimes']
        assert booked == ['5:30 PM']

    def test_non_string_fields_rejected(self, client, db_session):
        for field, value in (('name', 12345), ('phone', 5551234567), ('time', 17)):
            rate_limiter.reset()
            response = client.post('/api/consultation/book', json=self.payload(**{field: value}))
            assert response.status_code == 400
            assert field in response.get_json()['error']

    def test_calendar_token_garbage_keeps_booking(self, client, db_session):
        Setting.upsert(TOKENS_SETTING_KEY, {'access_token': 'old', 'refresh_token': 'r', 'expiry_date': 0})
        db_session.commit()
        html = MagicMock(ok=True, status_code=200, text='<html>oops</html>')
        html.json.side_effect = ValueError('Expecting value')

        with patch('app.utils.google_calendar.requests.post', return_value=html):
            response = client.post('/api/consultation/book', json=self.payload())

        assert response.status_code == 201
        booking = db_session.get(Appointment, response.get_json()['booking']['id'])
        assert booking.calendar_event_id is None

    def test_calendar_event_attached_when_connected(self, client, db_session):
        with patch('app.routes.booking.google_calendar') as calendar:
            calendar.load_tokens.return_value = {'access_token': 'a', 'refresh_token': 'r'}
            calendar.fresh_access_token.return_value = ('a', {'access_token': 'a'}, False)
            calendar.create_consultation_event.return_value = {'id': 'evt-123'}
            calendar.CalendarError = Exception

            response = client.post('/api/consultation/book', json=self.payload())

        assert response.status_code == 201
        booking = db_session.get(Appointment, response.get_json()['booking']['id'])
        assert booking.calendar_event_id == 'evt-123'

    def test_slots_for_date(self, client, db_session):
        day = next_weekday(0)
        db_session.add(Appointment(client_name='A', email='a@example.com', appointment_date=day,
                                   appointment_time='4:30 PM', service_type='consultation',
                                   status='confirmed'))
        db_session.commit()

        response = client.get(f'/api/consultation/book?date={day.isoformat()}')
        body = response.get_json()
        assert body['isWeekend'] is False
        assert body['bookedTimes'] == ['4:30 PM']
        assert body['totalSlots'] == 13
        assert '4:30 PM' in body['availableSlots']

    def test_booking_rate_limit(self, client, db_session):
        statuses = [client.post('/api/consultation/book', json=self.payload(phone='')).status_code
                    for _ in range(4)]
        assert statuses == [400, 400, 400, 429]


class TestReminderSelection:
    def test_due_for_reminder_window(self, db_session):
        now = datetime(2030, 3, 4, 10, 0)
        target = now + timedelta(hours=24)

        def add(hour, minute, status='confirmed', reminded=None):
            appointment = Appointment(
                client_name='Client', email='c@example.com', appointment_date=target.date(),
                appointment_time=datetime(2030, 1, 1, hour, minute).strftime('%I:%M %p'),
                status=status, reminder_sent_at=reminded,
            )
            db_session.add(appointment)
            return appointment

        inside = add(10, 15)
        add(11, 0)
        add(10, 0, status='pending')
        add(10, 0, reminded=now)
        db_session.commit()

        assert [a.id for a in due_for_reminder(24, now)] == [inside.id]
