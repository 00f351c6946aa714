"""
System Routes

FLOW OVERVIEW
- /api/status [GET]
  • Deploy check: {status, version, timestamp}.
- /api/metrics [GET]
  • Prometheus exposition.
- /api/test-email [GET] (admin)
  • Sends a configuration test email to ?to (defaults to ADMIN_EMAIL).
"""

from datetime import datetime
from flask import Blueprint, Response, current_app, jsonify, request
from ..utils import email_templates, mailer
from ..utils.auth_utils import admin_required
from ..utils.logger import get_logger
from ..utils.prom_metrics import metrics_latest, CONTENT_TYPE_LATEST

system_bp = Blueprint('system', __name__)
log = get_logger('api/system')


@system_bp.route('/status', methods=['GET'])
def status():
    return jsonify({
        'status': 'ok',
        'version': current_app.config.get('APP_VERSION', '0.1.0'),
        'timestamp': datetime.utcnow().isoformat() + 'Z',
    })


@system_bp.route('/metrics')
def metrics():
    """Prometheus metrics endpoint."""
    output = metrics_latest()
    return Response(output, mimetype=CONTENT_TYPE_LATEST)


@system_bp.route('/test-email', methods=['GET'])
@admin_required
def test_email():
    recipient = request.args.get('to') or current_app.config.get('ADMIN_EMAIL')
    if not recipient:
        return jsonify({'error': 'Recipient is required'}), 400
    if not mailer.is_configured():
        return jsonify({'error': 'Email is not configured'}), 503

    try:
        mailer.send_email(recipient, 'Studio37 email configuration test', email_templates.configuration_test_html())
    except mailer.EmailDeliveryError as e:
        log.error('test_email_failed', exc=e, to=recipient)
        return jsonify({'error': 'Failed to send test email'}), 502

    log.info('test_email_sent', to=recipient)
    return jsonify({'success': True, 'message': f'Test email sent to {recipient}'})
