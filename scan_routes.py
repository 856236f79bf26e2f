# scan_routes.py
from flask import Blueprint, current_app, render_template, request

from label_reader import LabelReadError, read_label, render_ocr_text
from lookup_screen import Alert


def init_scan_routes(app, screen, render_lookup):
    scan_bp = Blueprint("scan", __name__)

    @scan_bp.route("/scan", methods=["POST"])
    def scan():
        photo = request.files.get("photo")
        if not photo or not photo.filename:
            return render_lookup(fail_msg="No image uploaded.")

        try:
            reading = read_label(
                photo.read(),
                client=current_app.config.get("VISION_CLIENT"),
                serial_format=screen.serial_format,
            )
        except LabelReadError as ex:
            current_app.logger.warning({"event": "label_read_error", "err": str(ex)})
            return render_lookup(fail_msg=str(ex))

        if not reading.serial:
            return render_lookup(
                fail_msg=(
                    "Could not automatically find a serial number in the photo. "
                    "See all detected label text below, or enter it manually."
                ),
                ocr_html=render_ocr_text(reading.ocr_text),
            )

        result = screen.analyze_manual_entry(reading.serial)
        if isinstance(result, Alert):
            return render_lookup(entry_text=reading.serial, alert=result)

        current_app.logger.info({"event": "scan_analysis", "serial": result.serial_number})
        return render_template("result.html", record=result, scanned=reading)

    app.register_blueprint(scan_bp)
