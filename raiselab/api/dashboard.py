"""
Raise Lab Quotations Dashboard
Sign-in, the admin quotation list, and quotation PDF downloads.
Admin pages sit behind admin_required; everyone else is redirected.
"""
import io
import time
import logging

from flask import (Blueprint, request, redirect, session, render_template_string,
                   send_file, jsonify, flash, abort)
from werkzeug.security import check_password_hash

from raiselab.core import db, paths
from raiselab.core.models import ActingUser, CompanySettings, LineItem, Quotation, Term
from raiselab.core.security import admin_required, rate_limit, ADMIN_ROLE, HOME_PATH, LOGIN_PATH
from raiselab.core.settings import validate_all
from raiselab.forms.quote_generator import (CURRENCIES, format_date, format_price,
                                            generate_quotation_pdf, unit_price, validity_date)

log = logging.getLogger("dashboard")

bp = Blueprint("dashboard", __name__)


# ── Request-level structured logging ────────────────────────────────────────
@bp.before_app_request
def _log_request_start():
    request._start_time = time.time()


@bp.after_app_request
def _log_request_end(response):
    if hasattr(request, "_start_time"):
        duration_ms = round((time.time() - request._start_time) * 1000, 1)
        # Skip health-check spam
        if request.path not in ("/api/health",):
            log.info("%s %s → %d (%.0fms)",
                     request.method, request.path, response.status_code, duration_ms,
                     extra={"route": request.path, "method": request.method,
                            "status": response.status_code, "duration_ms": duration_ms,
                            "user": session.get("user_id")})
    return response


def _current_profile():
    return db.get_profile(session.get("user_id"))


def render(template, **kw):
    kw.setdefault("user", _current_profile())
    return render_template_string(template, **kw)


# ═══════════════════════════════════════════════════════════════════════
# Auth
# ═══════════════════════════════════════════════════════════════════════

@bp.route("/")
def home():
    from raiselab.api.templates import PAGE_HOME
    return render(PAGE_HOME, title="Raise Lab Quotations")


@bp.route("/auth/login", methods=["GET", "POST"])
@rate_limit("auth")
def login():
    from raiselab.api.templates import PAGE_LOGIN
    if request.method == "GET":
        return render(PAGE_LOGIN, title="Sign in", email="")

    email = (request.form.get("email") or "").strip().lower()
    password = request.form.get("password") or ""
    profile = db.get_profile_by_email(email)
    if not profile or not profile.get("password_hash") \
            or not check_password_hash(profile["password_hash"], password):
        log.warning("Failed sign-in for %s", email or "(blank)")
        flash("Invalid email or password", "error")
        return render(PAGE_LOGIN, title="Sign in", email=email, user=None), 401

    session.clear()
    session["user_id"] = profile["id"]
    log.info("Signed in: %s (role=%s)", profile["id"], profile.get("role"),
             extra={"user": profile["id"]})
    return redirect("/admin" if profile.get("role") == ADMIN_ROLE else HOME_PATH)


@bp.route("/auth/logout")
def logout():
    session.pop("user_id", None)
    return redirect(LOGIN_PATH)


# ═══════════════════════════════════════════════════════════════════════
# Admin pages
# ═══════════════════════════════════════════════════════════════════════

@bp.route("/admin")
@admin_required
def admin_home():
    from raiselab.api.templates import PAGE_ADMIN
    quotations = db.list_quotations()
    for q in quotations:
        q["created_label"] = format_date(q.get("created_at"))
    return render(PAGE_ADMIN, title="Quotations", quotations=quotations)


def _load_quotation(qid: int):
    row = db.get_quotation(qid)
    if not row:
        abort(404)
    quotation = Quotation.from_row(row)
    items = [LineItem.from_row(r) for r in db.get_quotation_items(qid)]
    return quotation, items


@bp.route("/admin/quotations/<int:qid>")
@admin_required
def quotation_detail(qid):
    from raiselab.api.templates import PAGE_DETAIL
    quotation, items = _load_quotation(qid)
    rows = [{"item": it, "price": format_price(unit_price(it), "INR")} for it in items]
    return render(PAGE_DETAIL, title=quotation.quotation_number, quotation=quotation,
                  items=rows, terms=db.get_terms(),
                  created_label=format_date(quotation.created_at),
                  validity_label=validity_date(quotation.created_at))


@bp.route("/admin/quotations/<int:qid>/pdf")
@admin_required
@rate_limit("heavy")
def quotation_pdf(qid):
    """Download a quotation. ?currency=INR|USD, repeat ?term=<id> to pick terms."""
    currency = (request.args.get("currency") or "INR").strip().upper()
    if currency not in CURRENCIES:
        return jsonify({"ok": False, "error": f"Unsupported currency: {currency}"}), 400

    try:
        term_ids = [int(t) for t in request.args.getlist("term")]
    except ValueError:
        return jsonify({"ok": False, "error": "term must be an integer id"}), 400
    selected_terms = None
    if term_ids:
        rows = db.get_terms(term_ids)
        missing = sorted(set(term_ids) - {t["id"] for t in rows})
        if missing:
            return jsonify({"ok": False, "error": f"Unknown term id(s): {missing}"}), 400
        selected_terms = [Term.from_row(t) for t in rows]

    quotation, items = _load_quotation(qid)
    result = generate_quotation_pdf(
        quotation, items,
        settings=CompanySettings.from_row(db.get_company_settings()),
        user=ActingUser.from_row(_current_profile()),
        selected_terms=selected_terms,
        currency=currency,
        output_path=paths.OUTPUT_DIR,
    )
    return send_file(io.BytesIO(result["pdf"]), mimetype="application/pdf",
                     as_attachment=True, download_name=result["filename"])


# ═══════════════════════════════════════════════════════════════════════
# Health
# ═══════════════════════════════════════════════════════════════════════

@bp.route("/api/health")
def api_health():
    """Liveness plus which settings are configured (never their values)."""
    health = {"ok": True, "status": "ok", "checks": {}}
    try:
        health["checks"]["db"] = {"ok": True, "quotations": len(db.list_quotations(limit=1000))}
    except Exception as e:
        log.error("Health check: db unavailable: %s", e)
        health["checks"]["db"] = {"ok": False, "error": str(e)}
        health["ok"] = False
        health["status"] = "degraded"

    path_report = paths.validate_paths()
    health["checks"]["paths"] = {"ok": path_report["ok"], "errors": path_report["errors"]}
    if not path_report["ok"]:
        health["ok"] = False
        health["status"] = "degraded"

    report = validate_all()
    health["checks"]["settings"] = {"set": report["set"], "total": report["total"],
                                    "warnings": len(report["warnings"])}
    return jsonify(health), (200 if health["ok"] else 503)
