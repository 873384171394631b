"""
Flask web application for Ketchup Tracker.

Mobile-friendly page with one big "Registrera dos" button, the current
cycle status, a 7-day trend and report export.

Run with: python -m web.app
Or use: ketchup web start
"""

import sys
from pathlib import Path

# Add parent directory to path so we can import ketchup_tracker modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from flask import Flask, render_template, request, redirect, url_for, flash, jsonify, session, g

from ketchup_tracker import config
from ketchup_tracker.cycle import compute_date_state
from ketchup_tracker.export import EXPORTERS, export_diary_pdf
from ketchup_tracker.models import DiaryEntry, InvalidDoseEvent, diary_entry_to_event, event_to_record
from ketchup_tracker.session import SessionContext, SyncGate, open_gate, close_gate, gate_status
from ketchup_tracker.store import DiaryStore, SqliteDoseLogStore, StoreError
from ketchup_tracker.tracker import DoseTracker

# Initialize Flask app
app = Flask(__name__)
app.secret_key = config.SECRET_KEY
app.config.update(
    DB_PATH=config.DB_PATH,
    DIARY_PATH=config.DIARY_PATH,
    EXPORT_DIR=config.EXPORT_DIR,
    USER_ID=config.USER_ID,
    ACCESS_PASSWORD=config.ACCESS_PASSWORD,
    SYNC_COOLDOWN=config.SYNC_COOLDOWN_SECONDS,
)

# Pages reachable without the password
PUBLIC_ENDPOINTS = {'login', 'static'}


# ============================================================
# APP STATE
# ============================================================

def get_backend() -> dict:
    """
    The dose store and busy gate shared by all requests.

    Created on first use so tests can point DB_PATH somewhere else first.
    """
    backend = app.extensions.get('ketchup')
    if backend is None:
        backend = {
            'store': SqliteDoseLogStore(app.config['DB_PATH'], app.config['USER_ID']),
            'gate': SyncGate(cooldown=app.config['SYNC_COOLDOWN']),
        }
        app.extensions['ketchup'] = backend
    return backend


def current_session() -> SessionContext:
    return SessionContext(
        is_authenticated=bool(session.get('authenticated')),
        user=app.config['USER_ID'],
    )


def get_tracker() -> DoseTracker:
    """One tracker per request, closed again on teardown."""
    if 'tracker' not in g:
        backend = get_backend()
        g.tracker = DoseTracker(backend['store'], current_session(), backend['gate'])
    return g.tracker


@app.teardown_appcontext
def close_tracker(exception=None):
    tracker = g.pop('tracker', None)
    if tracker is not None:
        tracker.close()


@app.before_request
def require_login():
    """Everything except the login page needs the password."""
    if request.endpoint in PUBLIC_ENDPOINTS or request.endpoint is None:
        return None
    if gate_status(current_session()) == 'open':
        return None
    if request.path.startswith('/api/'):
        return jsonify({'error': 'not authenticated'}), 401
    return redirect(url_for('login'))


# ============================================================
# TEMPLATE HELPERS
# ============================================================

@app.template_filter('localtime')
def localtime_filter(dt, fmt="%Y-%m-%d %H:%M"):
    """Format a UTC timestamp in local time."""
    if dt is None:
        return "-"
    return dt.astimezone().strftime(fmt)


@app.context_processor
def inject_constants():
    return {'cycle_length': config.CYCLE_LENGTH}


# ============================================================
# ROUTES - ACCESS
# ============================================================

@app.route('/login', methods=['GET', 'POST'])
def login():
    """Password gate."""
    if request.method == 'POST':
        opened = open_gate(current_session(), request.form.get('password', ''),
                           app.config['ACCESS_PASSWORD'])
        if gate_status(opened) == 'open':
            session['authenticated'] = True
            return redirect(url_for('dashboard'))
        flash("Fel lösenord.", 'error')
    return render_template('login.html')


@app.route('/logout', methods=['POST'])
def logout():
    session['authenticated'] = close_gate(current_session()).is_authenticated
    return redirect(url_for('login'))


# ============================================================
# ROUTES - DOSES
# ============================================================

@app.route('/')
def dashboard():
    """Home: log button, status card and stats."""
    tracker = get_tracker()
    return render_template('dashboard.html',
                           state=tracker.state(),
                           is_syncing=tracker.gate.is_busy)


@app.route('/dose/log', methods=['POST'])
def dose_log():
    """Log one dose."""
    result = get_tracker().log_dose()
    flash(result.message, 'success' if result.ok else 'error')
    return redirect(url_for('dashboard'))


@app.route('/analysis')
def analysis():
    """Trend over the last days and the newest logs."""
    tracker = get_tracker()
    trend = tracker.trend_data()
    peak = max([point['val'] for point in trend] + [1])
    return render_template('analysis.html',
                           trend=trend,
                           peak=peak,
                           recent=tracker.recent_logs(config.RECENT_LOG_LIMIT))


# ============================================================
# ROUTES - DIARY
# ============================================================

@app.route('/diary')
def diary():
    """Diary rows, newest first."""
    try:
        entries = DiaryStore(app.config['DIARY_PATH']).list_all()
    except StoreError as e:
        flash(f"Kunde inte läsa dagboken: {e}", 'error')
        entries = []

    entries = entries[:config.REPORT_ROW_LIMIT]
    date_state = None
    cycle_start = None
    if config.is_cycle_start_configured():
        try:
            cycle_start = config.get_cycle_start()
        except ValueError:
            flash(f"KETCHUP_CYCLE_START är inte ett datum: {config.CYCLE_START}", 'error')
    if cycle_start is not None:
        date_state = compute_date_state(cycle_start)

    return render_template('diary.html',
                           rows=[(e, diary_cycle_day(e, cycle_start)) for e in entries],
                           date_state=date_state)


def diary_cycle_day(entry, cycle_start):
    """Cycle day of a diary row by the calendar, or None if unknown."""
    if cycle_start is None:
        return None
    try:
        return diary_entry_to_event(entry, cycle_start).cycle_day
    except InvalidDoseEvent:
        return None


@app.route('/diary/add', methods=['POST'])
def diary_add():
    """Add a diary row from the form."""
    datum = request.form.get('datum', '').strip()
    tid = request.form.get('tid', '').strip()
    if not datum:
        flash("Datum saknas.", 'error')
        return redirect(url_for('diary'))

    entry = DiaryEntry(
        datum=datum,
        tid=tid,
        typ=request.form.get('typ', ''),
        humor=request.form.get('humor', ''),
        hud=request.form.get('hud', ''),
        spotting=request.form.get('spotting', ''),
    )
    if DiaryStore(app.config['DIARY_PATH']).append(entry):
        flash(f"Sparat: {datum} {tid}", 'success')
    else:
        flash("Kunde inte spara. Försök igen.", 'error')
    return redirect(url_for('diary'))


# ============================================================
# REPORT/EXPORT ROUTES
# ============================================================

@app.route('/reports')
def reports():
    """Reports and export page."""
    return render_template('reports.html')


@app.route('/reports/generate', methods=['POST'])
def reports_generate():
    """Generate a report."""
    format_type = request.form.get('format', 'pdf')
    source = request.form.get('source', 'doses')
    export_dir = app.config['EXPORT_DIR']

    try:
        if source == 'diary':
            entries = DiaryStore(app.config['DIARY_PATH']).list_all()
            filepath = export_diary_pdf(entries, export_dir=export_dir)
        else:
            exporter = EXPORTERS.get(format_type, EXPORTERS['pdf'])
            filepath = exporter(get_backend()['store'].list_all(), export_dir=export_dir)
        flash(f"Report generated: {filepath.name}", 'success')
    except (StoreError, OSError) as e:
        app.logger.error("Report failed: %s", e)
        flash(f"Error generating report: {e}", 'error')

    return redirect(url_for('reports'))


# ============================================================
# API ROUTES
# ============================================================

@app.route('/api/status')
def api_status():
    """Get current cycle state as JSON."""
    tracker = get_tracker()
    state = tracker.state()
    return jsonify({
        'cycleDay': state.cycle_day,
        'phase': state.phase.value,
        'isWarning': state.is_warning_phase,
        'totalLogs': state.total_logs,
        'isSyncing': tracker.gate.is_busy,
    })


@app.route('/api/logs')
def api_logs():
    """
    The full dose log as JSON, newest first.

    Pages poll this to stay current; every response replaces the whole list.
    """
    limit = request.args.get('limit', type=int)
    logs = get_tracker().logs
    if limit is not None:
        logs = logs[:limit]
    return jsonify({'logs': [dict(event_to_record(e), id=e.id) for e in logs]})


@app.route('/api/trend')
def api_trend():
    return jsonify({'trend': get_tracker().trend_data()})


# ============================================================
# RUN SERVER
# ============================================================

def run_server(host='0.0.0.0', port=5000, debug=False):
    """Run the Flask development server."""
    print(f"\n{'='*50}")
    print("  KETCHUP TRACKER WEB SERVER")
    print(f"{'='*50}")
    print(f"\n  Local:   http://localhost:{port}")
    print(f"  Network: http://<your-ip>:{port}")
    print(f"\n  Press Ctrl+C to stop\n")

    app.run(host=host, port=port, debug=debug)


if __name__ == '__main__':
    run_server(debug=True)
