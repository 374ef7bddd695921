import logging
import os
import shutil
import tempfile

from flask import (
    Flask,
    render_template,
    request,
    send_file,
    jsonify,
    after_this_request,
)

import settings
from dashboard import status_badge, week_stats
from drafts import DraftError
from report_ai import (
    ReportGenerationError,
    ReportTimeoutError,
    generate_report,
    openai_client,
    refine_task_content,
)
from report_data import ReportFieldError, ReportParseError, plain_text_summary
from report_export import (
    DOCX_FILENAME,
    PDF_FILENAME,
    ExportError,
    export_docx,
    export_pdf,
)
from report_layout import apply_theme, build_report_table, report_table_json
from report_themes import THEMES, ThemeError, theme_from_options
from weekly_tasks import (
    TaskBoardError,
    add_task,
    cycle_status,
    delete_task,
    find_task,
    has_content,
    update_task,
    week_to_dict,
)
from workspace import BusyError, WorkspaceState

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["WEEKLY_STATE"] = WorkspaceState()


def _state() -> WorkspaceState:
    return app.config["WEEKLY_STATE"]


def _error(message, status):
    return jsonify({"error": message}), status


class RequestBodyError(ValueError):
    """The request body is JSON but not an object."""


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RequestBodyError("Request body must be a JSON object.")
    return data


def _week_response(state: WorkspaceState):
    return jsonify({"week": week_to_dict(state.board), "has_draft": state.drafts.exists()})


def _report_response(state: WorkspaceState):
    return jsonify(
        {
            "status": state.report_status,
            "badge": status_badge(state.report_status),
            "report": state.store.report,
            "meta": state.store.meta,
            "theme": state.theme.to_dict(),
        }
    )


@app.errorhandler(BusyError)
def _busy(e):
    return _error(str(e), 409)


@app.errorhandler(RequestBodyError)
def _bad_body(e):
    return _error(str(e), 400)


@app.errorhandler(TaskBoardError)
def _bad_task(e):
    status = 404 if "not found" in str(e) else 400
    return _error(str(e), status)


@app.route("/health")
def health():
    return jsonify({"ok": True})


@app.route("/")
def index():
    """Render the report preview with the current theme."""
    state = _state()
    rows = None
    if state.store.report is not None:
        rows = apply_theme(build_report_table(state.store.report, state.store.meta), state.theme)
    return render_template(
        "report.html",
        rows=rows,
        themes=THEMES,
        theme=state.theme,
        stats=week_stats(state.board),
        badge=status_badge(state.report_status),
    )


# --- Task board ---


@app.route("/api/week", methods=["GET"])
def get_week():
    return _week_response(_state())


@app.route("/api/week/<day>/tasks", methods=["POST"])
def api_add_task(day):
    state = _state()
    state.board, task = add_task(state.board, day)
    return jsonify(task.to_dict()), 201


@app.route("/api/week/<day>/tasks/<task_id>", methods=["PATCH"])
def api_update_task(day, task_id):
    data = _json_body()
    state = _state()
    state.board = update_task(state.board, day, task_id, **data)
    return jsonify(find_task(state.board, day, task_id).to_dict())


@app.route("/api/week/<day>/tasks/<task_id>/cycle", methods=["POST"])
def api_cycle_task(day, task_id):
    state = _state()
    state.board = cycle_status(state.board, day, task_id)
    return jsonify(find_task(state.board, day, task_id).to_dict())


@app.route("/api/week/<day>/tasks/<task_id>", methods=["DELETE"])
def api_delete_task(day, task_id):
    state = _state()
    state.board = delete_task(state.board, day, task_id)
    return _week_response(state)


@app.route("/api/week/clear", methods=["POST"])
def api_clear():
    state = _state()
    state.clear()
    return _week_response(state)


@app.route("/api/week/<day>/tasks/<task_id>/refine", methods=["POST"])
def api_refine_task(day, task_id):
    """Rewrite one task line with the model. Requires OPENAI_API_KEY or api_key in body."""
    data = _json_body()
    state = _state()
    task = find_task(state.board, day, task_id)
    if not task.content.strip():
        return _error("Task has no content to refine.", 400)
    with state.refining.hold():
        client, err = openai_client(data.get("api_key"))
        if err:
            return _error(err, 400)
        refined = refine_task_content(task.content, client, model=data.get("model"))
        # The task may have been deleted while the model was answering.
        try:
            state.board = update_task(state.board, day, task_id, content=refined)
        except TaskBoardError:
            return _error("Task was removed while refining.", 409)
    return jsonify(find_task(state.board, day, task_id).to_dict())


# --- Drafts ---


@app.route("/api/draft/save", methods=["POST"])
def api_save_draft():
    state = _state()
    try:
        state.drafts.save(state.board)
    except DraftError as e:
        return _error(str(e), 500)
    return jsonify({"ok": True, "message": "草稿已保存到本地！"})


@app.route("/api/draft/load", methods=["POST"])
def api_load_draft():
    state = _state()
    try:
        board = state.drafts.load()
    except DraftError as e:
        return _error(str(e), 400)
    state.board = board
    return _week_response(state)


@app.route("/api/dashboard")
def api_dashboard():
    state = _state()
    return jsonify(
        {
            "dashboard": week_stats(state.board),
            "status": state.report_status,
            "badge": status_badge(state.report_status),
        }
    )


# --- Report ---


@app.route("/api/report", methods=["GET"])
def api_get_report():
    return _report_response(_state())


@app.route("/api/report/generate", methods=["POST"])
def api_generate():
    """Generate the structured report from the week board. Requires OPENAI_API_KEY or api_key in body."""
    data = _json_body()
    state = _state()
    if not has_content(state.board):
        return _error("请先添加至少一项任务再生成周报。", 400)
    with state.generating.hold():
        client, err = openai_client(data.get("api_key"))
        if err:
            return _error(err, 400)
        state.report_status = "loading"
        try:
            raw = generate_report(state.board, client, model=data.get("model"))
            state.store.load_text(raw)
        except ReportTimeoutError as e:
            state.report_status = "error"
            return _error(str(e), 504)
        except ReportGenerationError as e:
            state.report_status = "error"
            return _error(str(e), 502)
        except ReportParseError as e:
            state.report_status = "error"
            return _error(str(e), 502)
        else:
            state.report_status = "success"
        finally:
            if state.report_status == "loading":
                state.report_status = "error"
    return _report_response(state)


@app.route("/api/report/field", methods=["PATCH"])
def api_update_field():
    data = _json_body()
    state = _state()
    if state.store.report is None:
        return _error("No report generated yet.", 404)
    index = data.get("index")
    try:
        state.store.update_field(
            data.get("section"),
            int(index) if index is not None else None,
            data.get("sub_field"),
            data.get("value", ""),
        )
    except (ReportFieldError, ValueError, TypeError) as e:
        return _error(str(e), 400)
    return _report_response(state)


@app.route("/api/report/meta", methods=["PATCH"])
def api_update_meta():
    data = _json_body()
    state = _state()
    try:
        state.store.update_meta(data.get("field"), data.get("value", ""))
    except ReportFieldError as e:
        return _error(str(e), 400)
    return _report_response(state)


@app.route("/api/report/theme", methods=["POST"])
def api_set_theme():
    data = _json_body()
    state = _state()
    try:
        state.theme = theme_from_options(data.get("name"), data.get("primary"))
    except ThemeError as e:
        return _error(str(e), 400)
    return jsonify({"theme": state.theme.to_dict(), "themes": [t.to_dict() for t in THEMES]})


@app.route("/api/report/table")
def api_report_table():
    state = _state()
    if state.store.report is None:
        return _error("No report generated yet.", 404)
    rows = build_report_table(state.store.report, state.store.meta)
    return jsonify({"theme": state.theme.to_dict(), "rows": report_table_json(rows, state.theme)})


@app.route("/api/report/text")
def api_report_text():
    state = _state()
    if state.store.report is None:
        return _error("No report generated yet.", 404)
    return jsonify({"text": plain_text_summary(state.store.report)})


# --- Export ---


def _export(exporter, filename, mimetype):
    state = _state()
    if state.store.report is None:
        return _error("No report generated yet.", 404)

    with state.exporting.hold():
        # Per-request temp dir so the file can be streamed, then removed.
        tmp_dir = tempfile.mkdtemp(prefix="weekly-export-")

        @after_this_request
        def _cleanup(response):
            shutil.rmtree(tmp_dir, ignore_errors=True)
            return response

        report, meta = state.store.report, state.store.meta
        rows = build_report_table(report, meta)
        try:
            out = exporter(rows, report, meta, state.theme, os.path.join(tmp_dir, filename))
        except ExportError as e:
            return _error(str(e), 500)

        return send_file(
            str(out),
            as_attachment=True,
            download_name=filename,
            mimetype=mimetype,
        )


@app.route("/export/pdf")
def export_pdf_route():
    return _export(export_pdf, PDF_FILENAME, "application/pdf")


@app.route("/export/docx")
def export_docx_route():
    return _export(
        export_docx,
        DOCX_FILENAME,
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    )


if __name__ == "__main__":
    logging.basicConfig(
        level=settings.log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    key_set = bool(settings.openai_api_key())
    debug = settings.env_bool("DEBUG", default=False) or settings.env_bool("FLASK_DEBUG", default=False)
    host = os.environ.get("HOST", "127.0.0.1").strip() or "127.0.0.1"
    port_raw = os.environ.get("PORT", "5000").strip() or "5000"
    try:
        port = int(port_raw)
    except ValueError:
        port = 5000

    print(
        "OPENAI_API_KEY:",
        "set" if key_set else "not set (AI generation will require key in request)",
    )
    print("Draft directory:", settings.draft_dir())
    print(f"Starting server on http://{host}:{port} (debug={'on' if debug else 'off'})")
    app.run(debug=debug, host=host, port=port)
