"""
Flask web application for the Street Football Rotation Manager.
"""
import os
import io
import logging
import yaml
from datetime import datetime
from filelock import FileLock
from flask import Flask, render_template, request, jsonify, redirect, url_for, flash, send_file
from core.models import MIN_TEAMS, MAX_TEAMS, Session
from core.rotation import (
    RotationError, ValidationError, InsufficientTeamsError, NoActiveMatchError,
    initialize, draw_next_match, record_result, reset, check_invariants, team_records,
)

app = Flask(__name__)


def _get_or_create_secret_key() -> bytes:
    """Get SECRET_KEY from env, or generate and persist to file."""
    env_key = os.environ.get('SECRET_KEY')
    if env_key:
        return env_key.encode() if isinstance(env_key, str) else env_key
    key_file = os.path.join(DATA_DIR, '.secret_key')
    if os.path.exists(key_file):
        with open(key_file, 'rb') as f:
            return f.read()
    key = os.urandom(24)
    os.makedirs(os.path.dirname(key_file), exist_ok=True)
    with open(key_file, 'wb') as f:
        f.write(key)
    return key


BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('ROTATION_DATA_DIR', os.path.join(BASE_DIR, 'data'))
DEFAULT_TOTAL_TEAMS = int(os.environ.get('DEFAULT_TOTAL_TEAMS', 8))

os.makedirs(DATA_DIR, exist_ok=True)
app.secret_key = _get_or_create_secret_key()
app.logger.setLevel(logging.INFO)

SESSION_FILE = os.path.join(DATA_DIR, 'session.yaml')
MAX_UPLOAD_SIZE = 1024 * 1024  # 1 MB
_data_lock = FileLock(os.path.join(DATA_DIR, '.lock'), timeout=10)


class NoActiveSessionError(RotationError):
    """An operation was requested before a session was started."""


RESULT_LABELS = {
    'team1_win': 'T1 Win',
    'team2_win': 'T2 Win',
    'draw': 'Draw',
}


def _decode_session(data):
    """Build and validate a Session from a snapshot mapping.

    Raises:
        ValidationError: if the snapshot is malformed or breaks an invariant.
    """
    if not isinstance(data, dict):
        raise ValidationError('Snapshot is not a mapping')
    try:
        session = Session.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f'Snapshot is missing or has invalid fields: {e}')
    check_invariants(session)
    return session


def load_session():
    """Load the saved session from YAML. Returns None if there is none or it is unreadable."""
    if not os.path.exists(SESSION_FILE):
        return None
    try:
        with open(SESSION_FILE, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        if not data:
            return None
        return _decode_session(data)
    except (yaml.YAMLError, UnicodeDecodeError, ValidationError) as e:
        app.logger.warning(f'Failed to load {SESSION_FILE}: {e}')
        return None


def save_session(session):
    """Save the whole session snapshot to YAML, or remove it when session is None."""
    if session is None:
        if os.path.exists(SESSION_FILE):
            os.remove(SESSION_FILE)
        return
    os.makedirs(os.path.dirname(SESSION_FILE), exist_ok=True)
    with open(SESSION_FILE, 'w', encoding='utf-8') as f:
        yaml.dump(session.to_dict(), f, default_flow_style=False, sort_keys=False)


def apply_operation(operation, *args):
    """Run one rotation operation against the saved session and persist the result.

    Returns the new session. Rotation errors propagate and nothing is saved.
    """
    with _data_lock:
        session = load_session()
        if session is None:
            raise NoActiveSessionError('No session in progress. Start a new game first.')
        session = operation(session, *args)
        save_session(session)
    return session


def start_session(total_teams):
    """Initialize a new session, replacing any saved one."""
    session = initialize(total_teams)
    with _data_lock:
        save_session(session)
    app.logger.info(f'Started session with {session.total_teams} teams')
    return session


def end_session():
    """Discard the saved session."""
    with _data_lock:
        save_session(reset(load_session()))
    app.logger.info('Session ended')


def session_payload(session):
    """JSON-ready view of a session, with per-team records."""
    if session is None:
        return {'session': None}
    return {
        'session': session.to_dict(),
        'records': team_records(session),
    }


def _error_status(error):
    if isinstance(error, NoActiveMatchError):
        # Recording a result with nothing on the pitch means the caller is out of sync
        app.logger.warning(f'Rejected result with no match in progress: {error}')
        return 409
    if isinstance(error, (InsufficientTeamsError, NoActiveSessionError)):
        return 409
    return 400


@app.route('/')
def index():
    """Show the current match, waiting queue, session info and history."""
    session = load_session()
    return render_template(
        'index.html',
        game=session,
        records=team_records(session) if session else [],
        history=list(reversed(session.match_history)) if session else [],
        result_labels=RESULT_LABELS,
        default_total_teams=DEFAULT_TOTAL_TEAMS,
        min_teams=MIN_TEAMS,
        max_teams=MAX_TEAMS,
    )


@app.route('/start', methods=['POST'])
def start():
    """Start a new game from the team count form."""
    try:
        start_session(request.form.get('total_teams', ''))
    except ValidationError as e:
        flash(str(e), 'error')
    return redirect(url_for('index'))


@app.route('/next-match', methods=['POST'])
def next_match():
    """Draw the next two teams from the queue."""
    try:
        apply_operation(draw_next_match)
    except RotationError as e:
        flash(str(e), 'error')
    return redirect(url_for('index'))


@app.route('/record-result', methods=['POST'])
def record():
    """Record the result of the current match."""
    result = request.form.get('result', '')
    try:
        apply_operation(record_result, result)
    except NoActiveMatchError as e:
        app.logger.warning(f'Rejected result {result!r} with no match in progress: {e}')
        flash('There is no match in progress. Draw the next match first.', 'error')
    except RotationError as e:
        flash(str(e), 'error')
    return redirect(url_for('index'))


@app.route('/end-session', methods=['POST'])
def end():
    """End the session and clear saved state."""
    end_session()
    flash('Session ended.', 'success')
    return redirect(url_for('index'))


@app.route('/api/session', methods=['GET'])
def api_get_session():
    """Return the saved session as JSON."""
    return jsonify(session_payload(load_session()))


@app.route('/api/session/start', methods=['POST'])
def api_start_session():
    """AJAX endpoint for starting a new session."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    try:
        session = start_session(data.get('total_teams', ''))
    except ValidationError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify(session_payload(session))


@app.route('/api/session/next-match', methods=['POST'])
def api_next_match():
    """AJAX endpoint for drawing the next match."""
    try:
        session = apply_operation(draw_next_match)
    except RotationError as e:
        return jsonify({'error': str(e)}), _error_status(e)
    return jsonify(session_payload(session))


@app.route('/api/session/result', methods=['POST'])
def api_record_result():
    """AJAX endpoint for recording the current match result."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    try:
        session = apply_operation(record_result, data.get('result'))
    except RotationError as e:
        return jsonify({'error': str(e)}), _error_status(e)
    return jsonify(session_payload(session))


@app.route('/api/session/reset', methods=['POST'])
def api_reset_session():
    """AJAX endpoint for ending the session."""
    end_session()
    return jsonify({'success': True})


@app.route('/api/export/session')
def api_export_session():
    """Export the session snapshot as a downloadable YAML file."""
    session = load_session()
    if session is None:
        flash('No session to export.', 'error')
        return redirect(url_for('index'))

    buffer = io.BytesIO()
    buffer.write(yaml.dump(session.to_dict(), default_flow_style=False, sort_keys=False).encode('utf-8'))
    buffer.seek(0)
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    return send_file(
        buffer,
        mimetype='application/x-yaml',
        as_attachment=True,
        download_name=f'rotation_session_{timestamp}.yaml',
    )


@app.route('/api/import/session', methods=['POST'])
def api_import_session():
    """Replace the session with an uploaded YAML snapshot."""
    file = request.files.get('file')
    if not file or file.filename == '':
        flash('No file selected.', 'error')
        return redirect(url_for('index'))

    file_bytes = file.read(MAX_UPLOAD_SIZE + 1)
    if len(file_bytes) > MAX_UPLOAD_SIZE:
        flash('Uploaded file is too large.', 'error')
        return redirect(url_for('index'))

    try:
        session = _decode_session(yaml.safe_load(file_bytes.decode('utf-8')))
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        flash(f'Uploaded file is not valid YAML: {e}', 'error')
        return redirect(url_for('index'))
    except ValidationError as e:
        flash(f'Uploaded session is invalid: {e}', 'error')
        return redirect(url_for('index'))

    with _data_lock:
        save_session(session)
    app.logger.info(f'Imported session with {session.total_teams} teams and {session.match_counter} matches')
    flash('Session imported successfully.', 'success')
    return redirect(url_for('index'))


if __name__ == '__main__':
    app.run(debug=True, port=5000)
