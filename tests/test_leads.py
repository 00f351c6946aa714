"""
Tests for lead capture, admin lead management, screenshot extraction and
the follow-up email sequence.
"""

import io
import json
import pytest
from datetime import datetime, timedelta
from unittest.mock import patch
from app.models import Lead, LeadFollowUp
from app.utils.ai_client import AIClientError
from app.utils.mailer import EmailDeliveryError

CRON_HEADERS = {'Authorization': 'Bearer test-cron-secret'}

VALID_LEAD = {
    'name': 'Jane Doe',
    'email': 'jane@example.com',
    'phone': '936-555-0100',
    'service_interest': 'Wedding Photography',
    'budget_range': '$2,000 - $3,000',
    'event_date': '2025-10-18',
    'message': 'We are getting married in October and would love a quote.',
}


@pytest.fixture
def lead(db_session):
    lead = Lead(name='Jane Doe', email='jane@example.com', service_interest='Portraits',
                message='Looking for family portraits this fall.', status='new')
    db_session.add(lead)
    db_session.commit()
    return lead


class TestLeadSubmission:
    """Test the public contact form"""

    def test_submit_lead(self, client, db_session):
        with patch('app.routes.leads.mailer.send_email') as send_email:
            response = client.post('/api/leads', json=VALID_LEAD)

        assert response.status_code == 200
        body = response.get_json()
        assert body['success'] is True

        lead = db_session.get(Lead, body['leadId'])
        assert lead.status == 'new'
        assert lead.source == 'web-form'
        assert lead.event_date.isoformat() == '2025-10-18'

        recipients = [call.args[0] for call in send_email.call_args_list]
        assert recipients == ['admin@studio37.cc', 'jane@example.com']
        assert send_email.call_args_list[1].args[1] == 'We Received Your Booking Request!'

    def test_mail_failure_does_not_fail_submission(self, client, db_session):
        with patch('app.routes.leads.mailer.send_email', side_effect=EmailDeliveryError('smtp down')):
            response = client.post('/api/leads', json=VALID_LEAD)
        assert response.status_code == 200
        assert Lead.query.count() == 1

    def test_missing_email_uses_placeholder(self, client, db_session):
        payload = dict(VALID_LEAD)
        payload.pop('email')
        with patch('app.routes.leads.mailer.send_email') as send_email:
            response = client.post('/api/leads', json=payload)
        assert response.status_code == 200
        assert Lead.query.one().email == 'lead@example.com'
        recipients = [call.args[0] for call in send_email.call_args_list]
        assert recipients == ['admin@studio37.cc']

    def test_invalid_payload(self, client, db_session):
        response = client.post('/api/leads', json={'name': 'J', 'email': 'not-an-email', 'message': 'short'})
        assert response.status_code == 400
        body = response.get_json()
        assert body['error'] == 'Invalid form data'
        assert {'name', 'email', 'service_interest', 'message'} <= set(body['details'])
        assert Lead.query.count() == 0

    def test_non_json_body(self, client, db_session):
        response = client.post('/api/leads', data='name=Jane', content_type='application/x-www-form-urlencoded')
        assert response.status_code == 400


class TestLeadAdmin:
    def test_list_requires_admin(self, client, lead):
        assert client.get('/api/leads').status_code == 401

    def test_list_and_filter(self, admin_client, lead, db_session):
        db_session.add(Lead(name='Bob', email='bob@example.com', status='booked'))
        db_session.commit()

        body = admin_client.get('/api/leads').get_json()
        assert body['total'] == 2

        body = admin_client.get('/api/leads?status=booked').get_json()
        assert body['total'] == 1
        assert body['leads'][0]['name'] == 'Bob'

    def test_update_lead(self, admin_client, lead):
        response = admin_client.patch(f'/api/leads/{lead.id}',
                                      json={'status': 'contacted', 'event_date': '11/02/2025', 'id': 999})
        body = response.get_json()
        assert body['lead']['status'] == 'contacted'
        assert body['lead']['event_date'] == '2025-11-02'
        assert body['lead']['id'] == lead.id

    def test_update_missing_lead(self, admin_client, db_session):
        assert admin_client.patch('/api/leads/999', json={'status': 'lost'}).status_code == 404


class TestFollowUps:
    """Test the day1/day3/day7 nurture sequence"""

    def test_requires_cron_secret_or_admin(self, client, lead):
        response = client.post('/api/leads/follow-up', json={'action': 'get-status', 'leadId': lead.id})
        assert response.status_code == 401

        response = client.post('/api/leads/follow-up', json={'action': 'get-status', 'leadId': lead.id},
                               headers={'Authorization': 'Bearer wrong'})
        assert response.status_code == 401

    def test_admin_session_is_accepted(self, admin_client, lead):
        response = admin_client.post('/api/leads/follow-up', json={'action': 'get-status', 'leadId': lead.id})
        assert response.status_code == 200

    def test_schedule_creates_three_per_lead(self, client, lead, db_session):
        other = Lead(name='Bob', email='bob@example.com')
        db_session.add(other)
        db_session.commit()

        response = client.post('/api/leads/follow-up', headers=CRON_HEADERS,
                               json={'action': 'schedule', 'leadIds': [lead.id, other.id]})
        assert response.get_json() == {'success': True, 'scheduled': 6}

        sequence = {f.sequence_type for f in LeadFollowUp.query.filter_by(lead_id=lead.id)}
        assert sequence == {'day1', 'day3', 'day7'}

    def test_schedule_requires_ids(self, client, db_session):
        response = client.post('/api/leads/follow-up', headers=CRON_HEADERS, json={'action': 'schedule'})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'No lead IDs provided'

    def test_invalid_action(self, client, db_session):
        response = client.post('/api/leads/follow-up', headers=CRON_HEADERS, json={'action': 'explode'})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid action'

    def test_send_pending_sends_due_only(self, client, lead, db_session):
        past = datetime.utcnow() - timedelta(minutes=5)
        due = LeadFollowUp(lead_id=lead.id, sequence_type='day1', scheduled_for=past, status='pending')
        later = LeadFollowUp(lead_id=lead.id, sequence_type='day3',
                             scheduled_for=datetime.utcnow() + timedelta(days=3), status='pending')
        db_session.add_all([due, later])
        db_session.commit()

        with patch('app.routes.leads.ai_client.generate_text', return_value='Thanks so much, Jane!'), \
                patch('app.routes.leads.mailer.send_email') as send_email:
            response = client.post('/api/leads/follow-up', headers=CRON_HEADERS, json={'action': 'send-pending'})

        assert response.get_json() == {'success': True, 'sent': 1}
        assert send_email.call_args.args[0] == 'jane@example.com'
        assert 'Thanks so much, Jane!' in send_email.call_args.args[2]
        assert due.status == 'sent' and due.sent_at is not None
        assert later.status == 'pending'

    def test_send_pending_uses_fallback_copy(self, client, lead, db_session):
        db_session.add(LeadFollowUp(lead_id=lead.id, sequence_type='day7',
                                    scheduled_for=datetime.utcnow() - timedelta(hours=1)))
        db_session.commit()

        with patch('app.routes.leads.ai_client.generate_text', side_effect=AIClientError('boom')), \
                patch('app.routes.leads.mailer.send_email') as send_email:
            body = client.post('/api/leads/follow-up', headers=CRON_HEADERS,
                               json={'action': 'send-pending'}).get_json()

        assert body['sent'] == 1
        assert 'Hi Jane Doe' in send_email.call_args.args[2]

    def test_send_failure_marks_failed(self, client, lead, db_session):
        follow_up = LeadFollowUp(lead_id=lead.id, sequence_type='day1',
                                 scheduled_for=datetime.utcnow() - timedelta(hours=1))
        db_session.add(follow_up)
        db_session.commit()

        with patch('app.routes.leads.ai_client.generate_text', return_value='Hello'), \
                patch('app.routes.leads.mailer.send_email', side_effect=EmailDeliveryError('down')):
            body = client.post('/api/leads/follow-up', headers=CRON_HEADERS,
                               json={'action': 'send-pending'}).get_json()

        assert body['sent'] == 0
        assert body['errors'] == [f'Failed to send follow-up {follow_up.id}']
        assert follow_up.status == 'failed'

    def test_nothing_pending(self, client, db_session):
        body = client.post('/api/leads/follow-up', headers=CRON_HEADERS, json={'action': 'send-pending'}).get_json()
        assert body == {'success': True, 'sent': 0, 'message': 'No pending follow-ups'}

    def test_get_status(self, client, lead, db_session):
        db_session.add_all(LeadFollowUp.build_sequence(lead.id))
        db_session.commit()

        body = client.post('/api/leads/follow-up', headers=CRON_HEADERS,
                           json={'action': 'get-status', 'leadId': lead.id}).get_json()
        assert [f['sequence_type'] for f in body['followUps']] == ['day1', 'day3', 'day7']


class TestScreenshotImport:
    """Test AI extraction endpoints with the vision call patched"""

    @pytest.fixture(autouse=True)
    def ai_key(self, app):
        app.config['OPENAI_API_KEY'] = 'sk-test'

    def test_requires_file(self, admin_client):
        response = admin_client.post('/api/leads/from-screenshot', data={}, content_type='multipart/form-data')
        assert response.status_code == 400

    def test_rejects_non_image(self, admin_client):
        data = {'file': (io.BytesIO(b'%PDF'), 'lead.pdf', 'application/pdf')}
        response = admin_client.post('/api/leads/from-screenshot', data=data, content_type='multipart/form-data')
        assert response.status_code == 400

    def test_extracts_screenshot(self, admin_client):
        model_output = json.dumps({'name': 'Maria Lopez', 'email': 'maria@example.com', 'phone': None,
                                   'service_interest': 'Wedding', 'message': 'short'})
        data = {
            'file': (io.BytesIO(b'\x89PNG'), 'lead.png', 'image/png'),
            'source': 'thumbtack',
            'notes': 'Replied already',
        }
        with patch('app.utils.lead_extraction.ai_client.analyze_image', return_value=model_output):
            response = admin_client.post('/api/leads/from-screenshot', data=data,
                                         content_type='multipart/form-data')

        body = response.get_json()
        assert response.status_code == 200
        assert body['raw'] == model_output
        assert body['extracted']['name'] == 'Maria Lopez'
        assert body['extracted']['phone'] == ''
        assert body['extracted']['message'] == 'Imported from screenshot (thumbtack). Notes: Replied already'

    def test_unparseable_model_output(self, admin_client):
        data = {'file': (io.BytesIO(b'\x89PNG'), 'lead.png', 'image/png')}
        with patch('app.utils.lead_extraction.ai_client.analyze_image', return_value='no json here'):
            response = admin_client.post('/api/leads/from-screenshot', data=data,
                                         content_type='multipart/form-data')
        assert response.status_code == 500

    def test_batch_extract_reports_per_file(self, admin_client):
        good = json.dumps({'name': 'Sam', 'raw_text': 'Sam sam@example.com 936-555-0199'})
        data = {'files': [(io.BytesIO(b'a'), 'one.png', 'image/png'),
                          (io.BytesIO(b'b'), 'two.png', 'image/png')]}
        with patch('app.utils.lead_extraction.ai_client.analyze_image', side_effect=[good, 'garbage']):
            response = admin_client.post('/api/leads/extract', data=data, content_type='multipart/form-data')

        results = response.get_json()['results']
        assert results[0]['file'] == 'one.png'
        assert results[0]['lead']['email'] == 'sam@example.com'
        assert results[0]['lead']['source'] == 'thumbtack-screenshot'
        assert results[1]['file'] == 'two.png'
        assert 'error' in results[1]

    def test_batch_extract_limits_files(self, admin_client):
        data = {'files': [(io.BytesIO(b'a'), f'{n}.png', 'image/png') for n in range(6)]}
        response = admin_client.post('/api/leads/extract', data=data, content_type='multipart/form-data')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Too many files. Max 5.'
