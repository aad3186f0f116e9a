"""
Flask REST API for CalcuSolve
Hosts calculator sessions and exposes history, preferences and the
calculator catalog as JSON endpoints
"""
import logging
import threading
import uuid

from flask import Flask, jsonify, request
from flask_cors import CORS

import config
from catalog_manager import CATALOG_KINDS, CatalogManager
from database import Database
from history_manager import HistoryEntry
from history_store import HistoryStore, create_executor
from preference_manager import PreferenceManager, default_preferences
from session import CalculatorSession

logger = logging.getLogger(__name__)

USER_HEADER = 'X-User-Id'

API_INFO_PAGE = """
<html>
<head><title>CalcuSolve API</title></head>
<body style="font-family: Arial; padding: 40px; background: #1a1a2e; color: white;">
    <h1>CalcuSolve API Server</h1>
    <p>API is running!</p>
    <h2>Available Endpoints:</h2>
    <ul>
        <li>POST /api/sessions - Open a calculator session</li>
        <li>POST /api/sessions/&lt;id&gt;/input - Send a key press</li>
        <li>POST /api/sessions/&lt;id&gt;/recall - Reuse a history result</li>
        <li>DELETE /api/sessions/&lt;id&gt;/history - Clear session history</li>
        <li><a href="/api/calculations" style="color: #2196F3;">/api/calculations</a> - Saved calculation history</li>
        <li><a href="/api/preferences" style="color: #2196F3;">/api/preferences</a> - User preferences</li>
        <li><a href="/api/catalog/modes" style="color: #2196F3;">/api/catalog/modes</a> - Calculator modes</li>
        <li><a href="/api/catalog/constants" style="color: #2196F3;">/api/catalog/constants</a> - Math constants</li>
        <li><a href="/api/catalog/functions" style="color: #2196F3;">/api/catalog/functions</a> - Math functions</li>
    </ul>
</body>
</html>
"""


def _error(message, status):
    return jsonify({'success': False, 'error': message}), status


def _current_user():
    return request.headers.get(USER_HEADER) or None


def _json_body():
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def create_app(db=None, executor=None):
    """Build the Flask app around one database and one history writer"""
    app = Flask(__name__)
    CORS(app)  # Enable CORS for all routes

    # Initialize components
    db = db if db is not None else Database()
    executor = executor if executor is not None else create_executor()
    preference_manager = PreferenceManager(db)
    catalog_manager = CatalogManager(db)

    sessions = {}
    sessions_lock = threading.Lock()

    app.extensions['calcusolve'] = {
        'db': db,
        'executor': executor,
        'sessions': sessions,
    }

    def _evict_idle_sessions():
        """Drop sessions nobody has used for SESSION_IDLE_TIMEOUT; caller holds sessions_lock"""
        idle = [sid for sid, s in sessions.items()
                if s.idle_for() > config.SESSION_IDLE_TIMEOUT]
        for sid in idle:
            del sessions[sid]
        if idle:
            logger.info(f"Closed {len(idle)} idle session(s)")

    def _get_session(session_id):
        with sessions_lock:
            _evict_idle_sessions()
            session = sessions.get(session_id)
        # Sessions are private to the user who opened them
        if session is None or session.user_id != _current_user():
            return None
        session.touch()
        return session

    def _session_response(session, status=200, **extra):
        data = session.snapshot()
        data['notifications'] = [n.to_dict() for n in session.drain_notifications()]
        data.update(extra)
        return jsonify({'success': True, 'data': data}), status

    @app.route('/')
    @app.route('/api')
    def api_info():
        """API information page"""
        return API_INFO_PAGE

    # ── Sessions ─────────────────────────────────────────────────────────────
    @app.route('/api/sessions', methods=['POST'])
    def create_session():
        """Open a calculator session for the current (or anonymous) user"""
        try:
            user_id = _current_user()
            if user_id:
                preferences = preference_manager.get_preference(user_id)
                store = HistoryStore(db, user_id, executor)
            else:
                preferences = default_preferences()
                store = None

            session = CalculatorSession(user_id=user_id, preferences=preferences, store=store)
            session_id = uuid.uuid4().hex
            with sessions_lock:
                _evict_idle_sessions()
                sessions[session_id] = session
            logger.info(f"Opened session {session_id} for {user_id or 'anonymous user'}")
            return _session_response(session, 201, session_id=session_id)
        except Exception as e:
            logger.exception("Failed to open session")
            return _error(str(e), 500)

    @app.route('/api/sessions/<session_id>', methods=['GET'])
    def get_session(session_id):
        session = _get_session(session_id)
        if session is None:
            return _error('Session not found', 404)
        return _session_response(session)

    @app.route('/api/sessions/<session_id>', methods=['DELETE'])
    def close_session(session_id):
        if _get_session(session_id) is None:
            return _error('Session not found', 404)
        with sessions_lock:
            sessions.pop(session_id, None)
        return jsonify({'success': True})

    @app.route('/api/sessions/<session_id>/input', methods=['POST'])
    def session_input(session_id):
        """Apply one key press: {"event": "digit", "value": 5}"""
        session = _get_session(session_id)
        if session is None:
            return _error('Session not found', 404)

        body = _json_body()
        if 'event' not in body:
            return _error('Missing event', 400)
        try:
            entry = session.handle(body['event'], body.get('value'))
        except ValueError as e:
            return _error(str(e), 400)
        except Exception as e:
            logger.exception("Failed to apply input")
            return _error(str(e), 500)

        return _session_response(session, entry=entry.to_dict() if entry else None)

    @app.route('/api/sessions/<session_id>/recall', methods=['POST'])
    def session_recall(session_id):
        session = _get_session(session_id)
        if session is None:
            return _error('Session not found', 404)

        index = _json_body().get('index', 0)
        if isinstance(index, bool) or not isinstance(index, int):
            return _error('index must be an integer', 400)
        try:
            session.recall(index)
        except IndexError as e:
            return _error(str(e), 404)
        return _session_response(session)

    @app.route('/api/sessions/<session_id>/copy', methods=['POST'])
    def session_copy(session_id):
        """Report whether the browser managed to copy the display"""
        session = _get_session(session_id)
        if session is None:
            return _error('Session not found', 404)
        session.report_copy(bool(_json_body().get('success', True)))
        return _session_response(session)

    @app.route('/api/sessions/<session_id>/mode', methods=['PUT'])
    def session_mode(session_id):
        session = _get_session(session_id)
        if session is None:
            return _error('Session not found', 404)

        mode = _json_body().get('mode')
        if mode not in preference_manager.get_mode_names():
            return _error(f'Unknown calculator mode: {mode}', 400)
        session.set_mode(mode)
        return _session_response(session)

    @app.route('/api/sessions/<session_id>/history-limit', methods=['PUT'])
    def session_history_limit(session_id):
        session = _get_session(session_id)
        if session is None:
            return _error('Session not found', 404)

        limit = _json_body().get('history_limit')
        try:
            preference_manager.validate({'history_limit': limit})
        except ValueError as e:
            return _error(str(e), 400)
        session.set_history_limit(limit)
        return _session_response(session)

    @app.route('/api/sessions/<session_id>/history', methods=['DELETE'])
    def session_clear_history(session_id):
        session = _get_session(session_id)
        if session is None:
            return _error('Session not found', 404)
        session.clear_history()
        return _session_response(session)

    # ── Saved history ────────────────────────────────────────────────────────
    @app.route('/api/calculations')
    def get_calculations():
        """Get saved calculation history"""
        try:
            limit = int(request.args.get('limit', config.DEFAULT_HISTORY_LIMIT))
        except ValueError:
            return _error('limit must be an integer', 400)
        if limit < 1:
            return _error('limit must be positive', 400)
        try:
            calculations = db.get_calculations(user_id=_current_user(), limit=limit)

            formatted = []
            for c in calculations:
                record = HistoryEntry.from_row(c).to_dict()
                record.update({'id': c[3], 'mode': c[4]})
                formatted.append(record)

            return jsonify({
                'success': True,
                'data': formatted,
                'count': len(formatted)
            })
        except Exception as e:
            return _error(str(e), 500)

    @app.route('/api/calculations', methods=['DELETE'])
    def clear_calculations():
        try:
            count = db.clear_calculations(user_id=_current_user())
            return jsonify({'success': True, 'count': count})
        except Exception as e:
            return _error(str(e), 500)

    @app.route('/api/calculations/<int:calc_id>')
    def get_calculation(calc_id):
        row = db.get_calculation(calc_id, user_id=_current_user())
        if row is None:
            return _error('Calculation not found', 404)
        record = HistoryEntry.from_row(row).to_dict()
        record.update({'id': row[3], 'mode': row[4]})
        return jsonify({'success': True, 'data': record})

    @app.route('/api/calculations/<int:calc_id>', methods=['DELETE'])
    def delete_calculation(calc_id):
        if not db.delete_calculation(calc_id, user_id=_current_user()):
            return _error('Calculation not found', 404)
        return jsonify({'success': True})

    # ── Preferences ──────────────────────────────────────────────────────────
    @app.route('/api/preferences')
    def get_preferences():
        user_id = _current_user()
        if not user_id:
            return _error('Sign in to use preferences', 401)
        try:
            return jsonify({'success': True, 'data': preference_manager.get_preference(user_id)})
        except Exception as e:
            return _error(str(e), 500)

    @app.route('/api/preferences', methods=['PUT'])
    def update_preferences():
        user_id = _current_user()
        if not user_id:
            return _error('Sign in to use preferences', 401)
        try:
            updated = preference_manager.update_preference(user_id, **_json_body())
        except ValueError as e:
            return _error(str(e), 400)
        except Exception as e:
            return _error(str(e), 500)

        # Open sessions pick up the new bound immediately
        with sessions_lock:
            own_sessions = [s for s in sessions.values() if s.user_id == user_id]
        for session in own_sessions:
            session.set_history_limit(updated['history_limit'])
            session.dark_mode = updated['dark_mode']
        return jsonify({'success': True, 'data': updated})

    # ── Catalog ──────────────────────────────────────────────────────────────
    @app.route('/api/catalog/<kind>')
    def list_catalog(kind):
        if kind not in CATALOG_KINDS:
            return _error(f'Unknown catalog: {kind}', 404)
        try:
            records = catalog_manager.list(kind, request.args.get('category'))
        except ValueError as e:
            return _error(str(e), 400)
        return jsonify({'success': True, 'data': records, 'count': len(records)})

    @app.route('/api/catalog/<kind>', methods=['POST'])
    def create_catalog_record(kind):
        if kind not in CATALOG_KINDS:
            return _error(f'Unknown catalog: {kind}', 404)
        try:
            record = catalog_manager.create(kind, _json_body())
        except ValueError as e:
            return _error(str(e), 400)
        return jsonify({'success': True, 'data': record}), 201

    @app.route('/api/catalog/<kind>/<int:record_id>')
    def get_catalog_record(kind, record_id):
        if kind not in CATALOG_KINDS:
            return _error(f'Unknown catalog: {kind}', 404)
        record = catalog_manager.get(kind, record_id)
        if record is None:
            return _error('Record not found', 404)
        return jsonify({'success': True, 'data': record})

    @app.route('/api/catalog/<kind>/<int:record_id>', methods=['PUT'])
    def update_catalog_record(kind, record_id):
        if kind not in CATALOG_KINDS:
            return _error(f'Unknown catalog: {kind}', 404)
        try:
            record = catalog_manager.update(kind, record_id, _json_body())
        except ValueError as e:
            return _error(str(e), 400)
        if record is None:
            return _error('Record not found', 404)
        return jsonify({'success': True, 'data': record})

    return app
