"""
Lead Routes

FLOW OVERVIEW
- /api/leads [POST]
  • Public contact form. Rate limited per IP, validated, stored with status 'new'.
  • Admin notification and a templated auto-response are attempted afterwards;
    mail failures are logged and never fail the submission. No auto-response
    goes out when the visitor left no email.
- /api/leads [GET] / /api/leads/<id> [PATCH] (admin)
- /api/leads/from-screenshot [POST] (admin)
  • One image (screenshot or business card) → extracted lead fields via AI vision.
- /api/leads/extract [POST] (admin)
  • Up to 5 images processed sequentially; each result is {file, lead} or {file, error}.
- /api/leads/follow-up [POST] (Bearer CRON_SECRET or admin)
  • schedule | send-pending | get-status for the day1/day3/day7 nurture sequence.
"""

from datetime import date, datetime
from flask import Blueprint, current_app, jsonify, request
from ..models import db, Lead, LeadFollowUp
from ..utils import email_templates, mailer
from ..utils.ai_client import ai_client, AIClientError, AIResponseError, AIUnavailableError
from ..utils.api_utils import request_validator
from ..utils.auth_utils import admin_required, bearer_or_admin_required
from ..utils.lead_extraction import (
    BATCH_MAX_BYTES, BATCH_MAX_FILES, SCREENSHOT_MAX_BYTES,
    extract_batch_item, extract_from_screenshot
)
from ..utils.logger import get_logger
from ..utils.rate_limiter import rate_limit
from ..utils.validators import PLACEHOLDER_LEAD_EMAIL, normalize_event_date, parse_int, validate_lead_payload

leads_bp = Blueprint('leads', __name__)
log = get_logger('api/leads')

FOLLOW_UP_ACTIONS = ('schedule', 'send-pending', 'get-status')


def _send_lead_emails(lead, payload):
    """Admin notification plus visitor auto-response; both best effort"""
    subject, html = email_templates.lead_admin_notification(lead, current_app.config.get('SITE_URL'))
    admin_email = current_app.config.get('ADMIN_EMAIL')
    try:
        mailer.send_email(admin_email, subject, html)
        log.info('admin_notification_sent', lead_id=lead.id, admin_email=admin_email)
    except mailer.EmailDeliveryError as e:
        log.error('admin_notification_failed', exc=e, lead_id=lead.id, admin_email=admin_email)

    if lead.email == PLACEHOLDER_LEAD_EMAIL:
        log.info('auto_response_skipped', lead_id=lead.id, reason='no_email')
        return

    slug, subject, html = email_templates.lead_auto_response(lead, payload)
    try:
        mailer.send_email(lead.email, subject, html)
        log.info('auto_response_sent', lead_id=lead.id, template=slug)
    except mailer.EmailDeliveryError as e:
        log.error('auto_response_failed', exc=e, lead_id=lead.id, template=slug)


@leads_bp.route('/leads', methods=['POST'])
@rate_limit('lead', 5, 5 * 60 * 1000, 'Too many submissions. Please try later.')
def submit_lead():
    """Public contact form submission"""
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    validation = validate_lead_payload(data)
    if not validation.is_valid:
        log.warning('lead_validation_failed', issues=validation.errors)
        return jsonify({'error': 'Invalid form data', 'details': validation.errors}), 400

    payload = validation.data
    event_date = normalize_event_date(payload.get('event_date'))

    try:
        lead = Lead(
            name=payload['name'],
            email=payload['email'],
            phone=payload.get('phone'),
            service_interest=payload['service_interest'],
            budget_range=payload.get('budget_range'),
            event_date=date.fromisoformat(event_date) if event_date else None,
            message=payload['message'],
            source=payload['source'],
            status='new',
        )
        db.session.add(lead)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        log.error('lead_insert_failed', exc=e, service=payload.get('service_interest'))
        return jsonify({'error': 'Failed to submit lead'}), 500

    log.info('lead_created', lead_id=lead.id, source=lead.source)
    _send_lead_emails(lead, payload)
    return jsonify({'success': True, 'leadId': lead.id})


@leads_bp.route('/leads', methods=['GET'])
@admin_required
def list_leads():
    limit = parse_int(request.args.get('limit'), 50, minimum=1, maximum=500)
    offset = parse_int(request.args.get('offset'), 0, minimum=0)
    status = request.args.get('status')

    query = Lead.query
    if status:
        query = query.filter_by(status=status)

    total = query.count()
    leads = query.order_by(Lead.created_at.desc()).offset(offset).limit(limit).all()
    return jsonify({'leads': [lead.to_dict() for lead in leads], 'total': total})


@leads_bp.route('/leads/<int:lead_id>', methods=['PATCH'])
@admin_required
def update_lead(lead_id):
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    lead = db.session.get(Lead, lead_id)
    if lead is None:
        return jsonify({'error': 'Lead not found'}), 404

    try:
        for field in Lead.EDITABLE_FIELDS:
            if field in data:
                setattr(lead, field, data[field])
        if 'event_date' in data:
            normalized = normalize_event_date(data['event_date'])
            lead.event_date = date.fromisoformat(normalized) if normalized else None
        lead.updated_at = datetime.utcnow()
        db.session.commit()
        log.info('lead_updated', lead_id=lead_id, fields=sorted(data.keys()))
        return jsonify({'success': True, 'lead': lead.to_dict()})
    except Exception as e:
        db.session.rollback()
        log.error('lead_update_failed', exc=e, lead_id=lead_id)
        return jsonify({'error': 'Failed to update lead'}), 500


@leads_bp.route('/leads/from-screenshot', methods=['POST'])
@admin_required
@rate_limit('lead-screenshot', 12, 60 * 1000, 'Too many requests. Please slow down.')
def lead_from_screenshot():
    upload = request.files.get('file')
    source_hint = request.form.get('source') or 'screenshot-import'
    notes = request.form.get('notes') or ''
    mode = request.form.get('mode') or 'screenshot'

    if upload is None or not upload.filename:
        return jsonify({'error': 'Image file is required.'}), 400

    is_valid, content, error_response = request_validator.validate_image_upload(upload, SCREENSHOT_MAX_BYTES)
    if not is_valid:
        return error_response

    if not ai_client.is_configured():
        return jsonify({'error': 'AI provider is not configured'}), 503

    try:
        extracted, raw = extract_from_screenshot(content, upload.mimetype, mode, source_hint, notes)
    except AIUnavailableError as e:
        log.error('screenshot_ai_unavailable', exc=e)
        return jsonify({'error': 'AI provider is not configured'}), 503
    except AIResponseError as e:
        log.error('screenshot_extraction_failed', exc=e, mode=mode)
        return jsonify({'error': 'Could not read the image. Please try again.'}), 500

    return jsonify({'extracted': extracted, 'raw': raw})


@leads_bp.route('/leads/extract', methods=['POST'])
@admin_required
@rate_limit('lead-extract', 5, 5 * 60 * 1000, 'Too many requests. Please wait and retry.')
def extract_leads():
    """Batch extraction from up to BATCH_MAX_FILES screenshots"""
    files = [upload for upload in request.files.getlist('files') if upload and upload.filename]
    source = request.form.get('source') or None

    if not files:
        return jsonify({'error': 'No files provided. Use form-data with files[]'}), 400
    if len(files) > BATCH_MAX_FILES:
        return jsonify({'error': f'Too many files. Max {BATCH_MAX_FILES}.'}), 400

    contents = []
    for upload in files:
        if not (upload.mimetype or '').startswith('image/'):
            return jsonify({'error': f'{upload.filename} is not an image.'}), 400
        content = upload.read()
        if len(content) > BATCH_MAX_BYTES:
            return jsonify({'error': f'{upload.filename} is too large. Max 6MB per file.'}), 400
        contents.append((upload.filename, upload.mimetype, content))

    if not ai_client.is_configured():
        return jsonify({'error': 'AI provider is not configured'}), 503

    results = []
    for filename, mime_type, content in contents:
        try:
            lead = extract_batch_item(content, mime_type, filename, source)
            results.append({'file': filename, 'lead': lead})
        except AIClientError as e:
            log.error('batch_extraction_failed', exc=e, file=filename)
            results.append({'file': filename, 'error': str(e) or 'Extraction failed'})

    log.info('batch_extraction_complete', files=len(results),
             failed=sum(1 for result in results if 'error' in result))
    return jsonify({'results': results})


def _follow_up_html(sequence_type, lead_name, booking_url):
    """AI-written body wrapped in the brand layout, or the static fallback"""
    template = email_templates.FOLLOW_UP_TEMPLATES[sequence_type]
    try:
        body = ai_client.generate_text(template['prompt'].format(name=lead_name), preset='concise', max_tokens=300)
        return email_templates.follow_up_html(body, lead_name, booking_url)
    except AIClientError as e:
        log.warning('follow_up_ai_fallback', sequence_type=sequence_type, error=str(e))
        return email_templates.follow_up_fallback_html(lead_name, booking_url)


def _schedule_follow_ups(lead_ids):
    if not lead_ids:
        return jsonify({'error': 'No lead IDs provided'}), 400

    follow_ups = []
    now = datetime.utcnow()
    for lead_id in lead_ids:
        follow_ups.extend(LeadFollowUp.build_sequence(int(lead_id), now))
    db.session.add_all(follow_ups)
    db.session.commit()

    log.info('follow_ups_scheduled', count=len(follow_ups))
    return jsonify({'success': True, 'scheduled': len(follow_ups)})


def _send_pending_follow_ups():
    pending = LeadFollowUp.due()
    if not pending:
        return jsonify({'success': True, 'sent': 0, 'message': 'No pending follow-ups'})

    booking_url = f"{current_app.config.get('SITE_URL')}/book-a-session"
    sent_count = 0
    errors = []
    for follow_up in pending:
        lead = follow_up.lead
        if lead is None:
            errors.append(f"Lead {follow_up.lead_id} not found")
            continue

        template = email_templates.FOLLOW_UP_TEMPLATES.get(follow_up.sequence_type)
        if template is None:
            errors.append(f"Unknown sequence {follow_up.sequence_type} for follow-up {follow_up.id}")
            continue

        html = _follow_up_html(follow_up.sequence_type, lead.name or 'friend', booking_url)
        try:
            mailer.send_email(lead.email, template['subject'], html)
            follow_up.status = 'sent'
            follow_up.sent_at = datetime.utcnow()
            sent_count += 1
            log.info('follow_up_sent', lead_id=lead.id, sequence_type=follow_up.sequence_type)
        except mailer.EmailDeliveryError as e:
            follow_up.status = 'failed'
            errors.append(f"Failed to send follow-up {follow_up.id}")
            log.error('follow_up_send_failed', exc=e, follow_up_id=follow_up.id)

    db.session.commit()
    body = {'success': True, 'sent': sent_count}
    if errors:
        body['errors'] = errors
    return jsonify(body)


def _follow_up_status(lead_id):
    if not lead_id:
        return jsonify({'error': 'Lead ID required'}), 400
    follow_ups = (LeadFollowUp.query.filter_by(lead_id=int(lead_id))
                  .order_by(LeadFollowUp.scheduled_for.asc()).all())
    return jsonify({'success': True, 'followUps': [follow_up.to_dict() for follow_up in follow_ups]})


@leads_bp.route('/leads/follow-up', methods=['POST'])
@bearer_or_admin_required
def follow_up():
    is_valid, data, error_response = request_validator.validate_json_request()
    if not is_valid:
        return error_response

    action = data.get('action')
    if action not in FOLLOW_UP_ACTIONS:
        return jsonify({'error': 'Invalid action'}), 400

    try:
        if action == 'schedule':
            return _schedule_follow_ups(data.get('leadIds') or [])
        if action == 'send-pending':
            return _send_pending_follow_ups()
        return _follow_up_status(data.get('leadId'))
    except (TypeError, ValueError):
        db.session.rollback()
        return jsonify({'error': 'Lead IDs must be numeric'}), 400
    except Exception as e:
        db.session.rollback()
        log.error('follow_up_failed', exc=e, action=action)
        return jsonify({'error': 'Internal server error'}), 500
