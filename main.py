import os

from flask import Flask, abort, jsonify, redirect, render_template, request, url_for

from decoder import DecodeError, decode, normalize_serial
from history import HistoryStore
from lookup_screen import Alert, LookupScreen, alert_for
from scan_routes import init_scan_routes
from serial_format import load_serial_format


def create_app(history=None, serial_format=None, config=None):
    # -------------------------------
    # Flask App Setup
    # -------------------------------
    app = Flask(__name__)
    app.secret_key = os.getenv("FLASK_SECRET", "super_secret_key")
    app.config.update(config or {})

    serial_format = serial_format or load_serial_format()
    history = history if history is not None else HistoryStore()
    screen = LookupScreen(history, serial_format)
    app.extensions["lookup_screen"] = screen

    history.subscribe(
        lambda entries: app.logger.info({"event": "history_changed", "count": len(entries)})
    )

    def render_lookup(entry_text="", alert=None, fail_msg=None, ocr_html=None):
        return render_template(
            "index.html",
            sections=screen.sections(entry_text),
            alert=alert,
            fail_msg=fail_msg,
            ocr_html=ocr_html,
            serial_length=serial_format.length,
            serial_alphabet=serial_format.alphabet,
        )

    # -------------------------------
    # Register Scan Routes (from scan_routes.py)
    # -------------------------------
    init_scan_routes(app, screen, render_lookup)

    # -------------------------------
    # ROUTES
    # -------------------------------

    @app.route("/")
    def index():
        return render_lookup(entry_text=request.args.get("serial", ""))

    @app.route("/analyze", methods=["POST"])
    def analyze():
        text = request.form.get("serial", "")
        result = screen.analyze_manual_entry(text)
        if isinstance(result, Alert):
            return render_lookup(entry_text=text, alert=result)
        app.logger.info({"event": "analysis", "serial": result.serial_number})
        return render_template("result.html", record=result)

    @app.route("/analysis/<serial>")
    def analysis(serial):
        index = screen.find_history_row(serial)
        if index is None:
            result = decode(normalize_serial(serial, serial_format), serial_format)
            if isinstance(result, DecodeError):
                abort(404)
        else:
            result = screen.select_history_row(index)
            if isinstance(result, Alert):
                return render_lookup(alert=result), 404
        return render_template("result.html", record=result)

    @app.route("/history/<serial>/delete", methods=["POST"])
    def delete_history(serial):
        index = screen.find_history_row(serial)
        if index is not None:
            removed = screen.delete_history_row(index)
            app.logger.info({"event": "history_deleted", "serial": serial, "removed": removed})
        return redirect(url_for("index"))

    @app.route("/preview/<serial>")
    def preview(serial):
        index = screen.find_history_row(serial)
        record = screen.preview_history_row(index) if index is not None else None
        if record is None:
            return jsonify({"error": "not_found", "serial": serial}), 404
        return jsonify(record.to_dict())

    @app.route("/api/decode")
    def api_decode():
        raw = request.args.get("serial")
        if raw is None:
            return jsonify({"error": "missing_serial", "message": "Query ?serial= missing"}), 400
        result = decode(normalize_serial(raw, serial_format), serial_format)
        if isinstance(result, DecodeError):
            return jsonify({"error": result.value, "message": alert_for(result, serial_format).message}), 422
        return jsonify(result.to_dict())

    return app


app = create_app()

# -------------------------------
# Main Guard
# -------------------------------
if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    app.run(host="0.0.0.0", port=port, debug=False)
