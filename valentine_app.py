"""
Find Your Valentine - profile intake form
Fill out the form, we find the match.
"""
import os
import secrets
import uuid
from pathlib import Path
from datetime import datetime

from dotenv import load_dotenv

# Flask imports
from flask import (Flask, Blueprint, request, jsonify, render_template,
                   redirect, url_for, current_app, g)
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_talisman import Talisman
from flask_wtf.csrf import CSRFProtect, CSRFError, generate_csrf
from werkzeug.middleware.proxy_fix import ProxyFix

load_dotenv()

# === LOGGING CONFIGURATION ===
from utils.logging_config import setup_logger
logger = setup_logger('valentine_form')

from forms.profile_form import ValentineProfileForm, collect_errors, type_errors, validate_field
from models.submission import ProfileSubmission
from services.supabase_client import SupabaseClient, DEFAULT_TABLE
from services.submission_service import (
    SubmissionService, SubmissionInProgress, AlreadySubmitted, SubmissionFailed
)

# === CONSTANTS ===
BASE_DIR = Path(__file__).resolve().parent

DEFAULT_ALLOWED_ORIGINS = [
    'http://localhost:5000',
    'http://127.0.0.1:5000'
]

SESSION_EXPIRED_MESSAGE = 'Your session expired. Please reload the page and try again.'

# === EXTENSIONS ===
csrf = CSRFProtect()

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["5000 per day", "500 per hour"],
    storage_uri="memory://"
)

bp = Blueprint('valentine', __name__)


def get_submission_service():
    return current_app.extensions['submission_service']


def wants_json():
    return request.path.startswith('/api/')


def render_profile_form(form, error=None, status=200):
    return render_template('profile_form.html', form=form, error=error), status


# === REQUEST HANDLERS ===
@bp.before_app_request
def before_request():
    g.request_id = str(uuid.uuid4())
    g.request_start_time = datetime.utcnow()

    logger.info(f"request_started {request.method} {request.path}", extra={
        'request_id': g.request_id,
        'method': request.method,
        'path': request.path,
        'remote_addr': request.remote_addr
    })

@bp.after_app_request
def after_request(response):
    start = getattr(g, 'request_start_time', None)
    duration = (datetime.utcnow() - start).total_seconds() if start else 0

    duration_ms = round(duration * 1000, 2)
    logger.info(f"request_completed {request.method} {request.path} "
                f"{response.status_code} {duration_ms}ms", extra={
        'request_id': getattr(g, 'request_id', 'unknown'),
        'method': request.method,
        'path': request.path,
        'status_code': response.status_code,
        'duration_ms': duration_ms
    })

    response.headers['X-Request-ID'] = getattr(g, 'request_id', 'unknown')
    return response

# === PAGES ===
@bp.route('/', methods=['GET'])
def index():
    """Serve an empty profile form"""
    form = ValentineProfileForm()
    form.submission_id.data = uuid.uuid4().hex
    return render_profile_form(form)

@bp.route('/', methods=['POST'])
@limiter.limit("10 per minute")
def submit_profile():
    """Validate and forward a profile submitted from the page"""
    form = ValentineProfileForm()
    if not form.submission_id.data:
        form.submission_id.data = uuid.uuid4().hex

    if not form.validate_on_submit():
        logger.info(f"Profile form rejected: {sorted(collect_errors(form))}")
        return render_profile_form(form, status=400)

    try:
        get_submission_service().submit(form.submission_id.data, ProfileSubmission.from_form(form))
    except AlreadySubmitted:
        return redirect(url_for('valentine.thank_you'))
    except SubmissionInProgress as e:
        return render_profile_form(form, error=str(e), status=409)
    except SubmissionFailed as e:
        return render_profile_form(form, error=str(e), status=502)

    return redirect(url_for('valentine.thank_you'))

@bp.route('/thank-you', methods=['GET'])
def thank_you():
    return render_template('thank_you.html')

# === API ENDPOINTS ===
@bp.route('/api/health', methods=['GET'])
def health_check():
    service = get_submission_service()
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'storage_configured': getattr(service.client, 'is_configured', True)
    })

@bp.route('/api/csrf-token', methods=['GET'])
def get_csrf_token():
    """Get CSRF token for script clients"""
    return jsonify({'csrf_token': generate_csrf()})

@bp.route('/api/valentine-profiles', methods=['POST'])
@limiter.limit("10 per minute")
def create_profile():
    """Submit a profile as JSON"""
    if request.is_json:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'error': 'Expected a JSON object of field values'}), 400
        wrong_types = type_errors(data)
        if wrong_types:
            return jsonify({'error': 'Validation failed', 'errors': wrong_types}), 400

    form = ValentineProfileForm()
    submission_id = form.submission_id.data or uuid.uuid4().hex

    if not form.validate():
        return jsonify({
            'error': 'Validation failed',
            'errors': collect_errors(form)
        }), 400

    try:
        get_submission_service().submit(submission_id, ProfileSubmission.from_form(form))
    except AlreadySubmitted:
        return jsonify({'success': True, 'submission_id': submission_id})
    except SubmissionInProgress as e:
        return jsonify({'error': str(e)}), 409
    except SubmissionFailed as e:
        return jsonify({'error': str(e)}), 502

    return jsonify({'success': True, 'submission_id': submission_id}), 201

@bp.route('/api/valentine-profiles/validate', methods=['POST'])
def validate_profile_fields():
    """Validate the given fields one by one (used on blur)"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({'error': 'Expected a JSON object of field values'}), 400

    wrong_types = type_errors(data)
    if wrong_types:
        return jsonify({'error': 'Validation failed', 'errors': wrong_types}), 400

    errors = {}
    for name, value in data.items():
        try:
            errors[name] = validate_field(name, value)
        except KeyError:
            return jsonify({'error': f"Unknown field: {name}"}), 400

    return jsonify({'errors': errors})

# === ERROR HANDLERS ===
@bp.app_errorhandler(CSRFError)
def csrf_error(error):
    logger.warning(f"CSRF validation failed: {error.description}")
    if wants_json():
        return jsonify({
            'error': 'CSRF validation failed',
            'request_id': getattr(g, 'request_id', 'unknown')
        }), 400
    form = ValentineProfileForm()
    return render_profile_form(form, error=SESSION_EXPIRED_MESSAGE, status=400)

@bp.app_errorhandler(404)
def not_found(error):
    if wants_json():
        return jsonify({
            'error': 'Resource not found',
            'request_id': getattr(g, 'request_id', 'unknown')
        }), 404
    return 'Page not found', 404

@bp.app_errorhandler(429)
def rate_limit_exceeded(error):
    return jsonify({
        'error': 'Rate limit exceeded',
        'message': str(error.description),
        'request_id': getattr(g, 'request_id', 'unknown')
    }), 429

@bp.app_errorhandler(500)
def internal_error(error):
    logger.error('internal_server_error', extra={
        'error': str(error),
        'request_id': getattr(g, 'request_id', 'unknown')
    }, exc_info=True)
    return jsonify({
        'error': 'Internal server error',
        'request_id': getattr(g, 'request_id', 'unknown')
    }), 500

# === APP FACTORY ===
def create_app(config=None, store=None):
    """Build the app; `store` replaces the Supabase client (tests pass a fake)"""
    app = Flask(__name__, template_folder=str(BASE_DIR / 'templates'))
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    allowed_origins = os.environ.get('ALLOWED_ORIGINS')

    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', secrets.token_hex(32))
    app.config.update(
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE='Lax',
        SUPABASE_TABLE=os.environ.get('SUPABASE_TABLE', DEFAULT_TABLE),
        ALLOWED_ORIGINS=allowed_origins.split(',') if allowed_origins else DEFAULT_ALLOWED_ORIGINS,
        FORCE_HTTPS=bool(os.environ.get('PRODUCTION'))
    )
    if config:
        app.config.update(config)

    csrf.init_app(app)
    limiter.init_app(app)
    CORS(app, resources={r"/api/*": {"origins": app.config['ALLOWED_ORIGINS']}},
         supports_credentials=True)

    # Security headers
    Talisman(app,
        force_https=app.config['FORCE_HTTPS'],
        session_cookie_secure=app.config['FORCE_HTTPS'],
        strict_transport_security=True,
        strict_transport_security_max_age=31536000,
        strict_transport_security_include_subdomains=True,
        content_security_policy=False,
        frame_options='SAMEORIGIN'
    )

    if store is None:
        store = SupabaseClient.from_env(logger)
    app.extensions['submission_service'] = SubmissionService(
        store, logger, table=app.config['SUPABASE_TABLE']
    )

    app.register_blueprint(bp)
    return app

# === MAIN ENTRY POINT ===
if __name__ == '__main__':
    app = create_app()
    port = int(os.environ.get('PORT', 5000))
    app.run(host='0.0.0.0', port=port, debug=not os.environ.get('PRODUCTION'))
