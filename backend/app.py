import json
import logging
import os
from datetime import datetime, timezone

import click
from flask import Blueprint, Flask, Response, current_app, jsonify, request
from flask.cli import with_appcontext
from flask_cors import CORS
from pydantic import ValidationError

from aggregation import dashboard_summary
from config import Config
from csv_export import export_filename, render_csv, write_csv
from llm_service import InsightBoard, OpenRouterClient
from models import KeyValueStore, db
from schemas import (
    BehavioralData,
    JournalEntry,
    JournalSubmission,
    PurgeRequest,
    ThemeUpdate,
)
from storage import JournalStore

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__)


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Init DB
    db.init_app(app)
    with app.app_context():
        db.create_all()

    # --- CORS (allow your deployed frontend origin if provided) ---
    frontend_origin = app.config.get("FRONTEND_ORIGIN")
    if frontend_origin:
        CORS(app, resources={r"/*": {"origins": [frontend_origin]}})
    else:
        # Dev fallback: allow all (ok for local dev; tighten for prod)
        CORS(app)

    app.extensions["llm"] = app.config.get("LLM_CLIENT") or OpenRouterClient.from_config(app.config)
    app.extensions["insights"] = InsightBoard()

    app.register_blueprint(api)
    app.cli.add_command(export_csv_command)
    app.cli.add_command(purge_command)
    return app


def _store():
    return JournalStore(KeyValueStore())


def _entries_json(entries):
    return [e.model_dump(by_alias=True) for e in entries]


def _invalid(e: ValidationError):
    return jsonify({"error": "Invalid request", "details": json.loads(e.json(include_url=False))}), 400


# ---------- Routes ----------

@api.route("/health")
def health():
    """Simple health check + DB connectivity test."""
    db_ok = True
    try:
        with db.engine.connect() as conn:
            conn.execute(db.text("SELECT 1"))
    except Exception:
        logger.exception("Database health check failed")
        db_ok = False
    return jsonify({
        "ok": True,
        "db_ok": db_ok,
        "model": current_app.config["OPENROUTER_MODEL"],
        "time": datetime.now(timezone.utc).isoformat(),
    }), 200


@api.route("/journal", methods=["POST"])
def handle_journal():
    """Create one journal entry: classify + build + save (updates the streak)."""
    data = request.get_json(silent=True) or {}
    try:
        submission = JournalSubmission.model_validate(data)
    except ValidationError as e:
        return _invalid(e)

    text = submission.text.strip()
    if not text:
        return jsonify({"error": "Missing 'text'"}), 400

    behavior = BehavioralData.from_elapsed(text, submission.time_spent)

    # 1) Classify (never raises; degraded results are all zeros)
    analysis = current_app.extensions["llm"].analyze_emotion(text, behavior)

    # 2) Build + save
    entry = JournalEntry.create(
        text=text,
        emotions=analysis.scores,
        intensity=analysis.intensity,
        confidence=analysis.confidence,
        behavior_confidence=analysis.behavior_confidence,
        user_rating=submission.user_rating,
        behavioral_signals=behavior,
    )
    store = _store()
    store.save_entry(entry)

    return jsonify({
        "entry": entry.model_dump(by_alias=True),
        "user": store.get_user().model_dump(by_alias=True, exclude_none=True),
        "analysisDegraded": analysis.degraded,
    }), 201


@api.route("/entries", methods=["GET"])
def list_entries():
    """List all saved entries (latest first)."""
    return jsonify(_entries_json(_store().get_entries())), 200


@api.route("/user", methods=["GET"])
def get_user():
    return jsonify(_store().get_user().model_dump(by_alias=True, exclude_none=True)), 200


@api.route("/dashboard", methods=["GET"])
def dashboard():
    store = _store()
    return jsonify(dashboard_summary(store.get_entries(), store.get_user().streak)), 200


@api.route("/insights", methods=["POST"])
def generate_insights():
    entries = _store().get_entries()
    if not entries:
        return jsonify({"error": "No entries to analyze"}), 400

    board = current_app.extensions["insights"]
    token = board.begin()
    result = current_app.extensions["llm"].generate_insights(entries)
    published = board.publish(token, result.insight)

    return jsonify({
        "insight": result.insight.model_dump(by_alias=True),
        "degraded": result.degraded,
        "current": published,
    }), 200


@api.route("/insights", methods=["GET"])
def latest_insights():
    insight = current_app.extensions["insights"].latest
    if insight is None:
        return jsonify({"error": "No insights generated yet"}), 404
    return jsonify(insight.model_dump(by_alias=True)), 200


@api.route("/export.csv", methods=["GET"])
def export_csv():
    content = render_csv(_store().get_entries())
    return Response(
        content,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={export_filename()}"},
    )


@api.route("/theme", methods=["GET"])
def get_theme():
    return jsonify({"theme": _store().get_theme().value}), 200


@api.route("/theme", methods=["PUT"])
def set_theme():
    try:
        update = ThemeUpdate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _invalid(e)
    _store().save_theme(update.theme)
    return jsonify({"theme": update.theme.value}), 200


@api.route("/theme/toggle", methods=["POST"])
def toggle_theme():
    return jsonify({"theme": _store().toggle_theme().value}), 200


@api.route("/data", methods=["DELETE"])
def clear_data():
    """Purge all entries and the profile. Needs {"confirm": true}."""
    try:
        purge = PurgeRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _invalid(e)
    if not purge.confirm:
        return jsonify({"error": "Confirmation required", "hint": 'send {"confirm": true}'}), 400

    store = _store()
    store.clear_data()
    current_app.extensions["insights"].reset()
    return jsonify({
        "ok": True,
        "user": store.get_user().model_dump(by_alias=True, exclude_none=True),
    }), 200


# ---------- CLI ----------

@click.command("export-csv")
@click.option("--out", "out_dir", default=None, help="Directory for the report (default EXPORT_DIR).")
@with_appcontext
def export_csv_command(out_dir):
    """Write the drift report CSV to disk."""
    path = write_csv(_store().get_entries(), out_dir or current_app.config["EXPORT_DIR"])
    click.echo(f"Report written to {path}")


@click.command("purge")
@click.confirmation_option(
    prompt="Are you sure you want to clear all your journal history? This cannot be undone."
)
@with_appcontext
def purge_command():
    """Delete every entry and the profile."""
    _store().clear_data()
    click.echo("Journal history cleared.")


if __name__ == "__main__":
    create_app().run(
        host="0.0.0.0",
        port=int(os.getenv("PORT", "5000")),
        debug=True
    )
