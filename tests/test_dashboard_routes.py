"""
Integration tests for raiselab/api/dashboard.py Flask routes.

Sign-in uses werkzeug password hashes; the session stores the profile id.
"""
import io
import os
from unittest.mock import patch

import pdfplumber
import pytest

from raiselab.core import db, paths
from raiselab.core.models import Term
from raiselab.forms.quote_generator import generate_quotation_pdf


# ═══════════════════════════════════════════════════════════════════════════════
# AUTH
# ═══════════════════════════════════════════════════════════════════════════════

class TestAuth:

    def test_login_page_loads(self, anon_client):
        r = anon_client.get("/auth/login")
        assert r.status_code == 200
        assert b"password" in r.data

    def test_admin_login_goes_to_admin(self, anon_client, admin_profile):
        r = anon_client.post("/auth/login", data={"email": "admin@raiselab.test",
                                                  "password": "s3cret-pass"})
        assert r.status_code == 302
        assert r.headers["Location"].endswith("/admin")
        with anon_client.session_transaction() as sess:
            assert sess["user_id"] == "u-admin"

    def test_sales_login_goes_home(self, anon_client, sales_profile):
        r = anon_client.post("/auth/login", data={"email": "SALES@raiselab.test",
                                                  "password": "s3cret-pass"})
        assert r.status_code == 302
        assert r.headers["Location"].endswith("/")

    def test_wrong_password_401(self, anon_client, admin_profile):
        r = anon_client.post("/auth/login", data={"email": "admin@raiselab.test",
                                                  "password": "nope"})
        assert r.status_code == 401
        assert b"Invalid email or password" in r.data
        with anon_client.session_transaction() as sess:
            assert "user_id" not in sess

    def test_unknown_email_401(self, anon_client):
        r = anon_client.post("/auth/login", data={"email": "ghost@x.test", "password": "x"})
        assert r.status_code == 401

    def test_logout_clears_session(self, admin_client):
        r = admin_client.get("/auth/logout")
        assert r.headers["Location"].endswith("/auth/login")
        assert admin_client.get("/admin").status_code == 302

    def test_seeded_admin_can_sign_in(self, monkeypatch, temp_data_dir):
        monkeypatch.setenv("ADMIN_EMAIL", "owner@raiselab.test")
        monkeypatch.setenv("ADMIN_PASSWORD", "first-boot")
        from app import create_app
        app = create_app({"TESTING": True})
        with app.test_client() as c:
            r = c.post("/auth/login", data={"email": "owner@raiselab.test",
                                            "password": "first-boot"})
            assert r.headers["Location"].endswith("/admin")
            assert c.get("/admin").status_code == 200


# ═══════════════════════════════════════════════════════════════════════════════
# PAGES
# ═══════════════════════════════════════════════════════════════════════════════

class TestPages:

    def test_home_public(self, anon_client):
        r = anon_client.get("/")
        assert r.status_code == 200
        assert b"Raise Lab" in r.data

    def test_home_for_sales_user(self, sales_client):
        r = sales_client.get("/")
        assert r.status_code == 200
        assert b"Ravi Kumar" in r.data

    def test_admin_lists_quotations(self, admin_client, seed_quotation):
        r = admin_client.get("/admin")
        assert r.status_code == 200
        assert b"RLE-2024-007" in r.data
        assert b"01-01-2024" in r.data

    def test_admin_empty_list(self, admin_client):
        r = admin_client.get("/admin")
        assert b"No quotations yet" in r.data

    def test_detail(self, admin_client, seed_quotation):
        r = admin_client.get(f"/admin/quotations/{seed_quotation}")
        assert r.status_code == 200
        body = r.data.decode()
        assert "Antibiotic Zone Reader" in body
        assert "₹ 130/-" in body
        assert "31-01-2024" in body

    def test_detail_lists_terms(self, admin_client, seed_quotation):
        db.add_term("1. Payment", "50% advance")
        r = admin_client.get(f"/admin/quotations/{seed_quotation}")
        assert b"1. Payment" in r.data

    def test_detail_404(self, admin_client):
        assert admin_client.get("/admin/quotations/999").status_code == 404


# ═══════════════════════════════════════════════════════════════════════════════
# PDF DOWNLOAD
# ═══════════════════════════════════════════════════════════════════════════════

class TestPdfDownload:

    def test_download(self, admin_client, seed_quotation):
        r = admin_client.get(f"/admin/quotations/{seed_quotation}/pdf")
        assert r.status_code == 200
        assert r.mimetype == "application/pdf"
        assert "RLE-2024-007_Quotation.pdf" in r.headers["Content-Disposition"]
        assert "attachment" in r.headers["Content-Disposition"]
        assert r.data.startswith(b"%PDF")

    def test_pages_and_signature(self, admin_client, seed_quotation):
        r = admin_client.get(f"/admin/quotations/{seed_quotation}/pdf")
        with pdfplumber.open(io.BytesIO(r.data)) as pdf:
            assert len(pdf.pages) == 3
            last = pdf.pages[-1].extract_text()
        assert "ASHA RAO" in last
        assert "Contact: +91 90000 11111" in last

    def test_company_name_from_settings(self, admin_client, seed_quotation):
        db.set_setting("company_name", "Raise Lab Equipment Pvt Ltd")
        r = admin_client.get(f"/admin/quotations/{seed_quotation}/pdf")
        with pdfplumber.open(io.BytesIO(r.data)) as pdf:
            assert "From Raise Lab Equipment Pvt Ltd" in pdf.pages[-1].extract_text()

    def test_saved_to_output_dir(self, admin_client, seed_quotation):
        admin_client.get(f"/admin/quotations/{seed_quotation}/pdf")
        assert os.path.exists(os.path.join(paths.OUTPUT_DIR, "RLE-2024-007_Quotation.pdf"))

    def test_usd(self, admin_client, seed_quotation):
        with patch("raiselab.api.dashboard.generate_quotation_pdf",
                   wraps=generate_quotation_pdf) as gen:
            r = admin_client.get(f"/admin/quotations/{seed_quotation}/pdf?currency=usd")
        assert r.status_code == 200
        assert gen.call_args.kwargs["currency"] == "USD"

    def test_unknown_currency_400(self, admin_client, seed_quotation):
        r = admin_client.get(f"/admin/quotations/{seed_quotation}/pdf?currency=EUR")
        assert r.status_code == 400
        assert r.get_json()["ok"] is False

    def test_selected_terms_in_order(self, admin_client, seed_quotation):
        a = db.add_term("1. Payment", "50% advance")
        b = db.add_term("2. Delivery", "Six weeks")
        with patch("raiselab.api.dashboard.generate_quotation_pdf",
                   wraps=generate_quotation_pdf) as gen:
            r = admin_client.get(f"/admin/quotations/{seed_quotation}/pdf?term={b}&term={a}")
        assert r.status_code == 200
        assert gen.call_args.kwargs["selected_terms"] == [Term("2. Delivery", "Six weeks"),
                                                          Term("1. Payment", "50% advance")]

    def test_no_terms_means_defaults(self, admin_client, seed_quotation):
        with patch("raiselab.api.dashboard.generate_quotation_pdf",
                   wraps=generate_quotation_pdf) as gen:
            admin_client.get(f"/admin/quotations/{seed_quotation}/pdf")
        assert gen.call_args.kwargs["selected_terms"] is None

    def test_bad_term_id_400(self, admin_client, seed_quotation):
        r = admin_client.get(f"/admin/quotations/{seed_quotation}/pdf?term=abc")
        assert r.status_code == 400

    def test_unknown_term_id_400(self, admin_client, seed_quotation):
        a = db.add_term("1. Payment", "50% advance")
        with patch("raiselab.api.dashboard.generate_quotation_pdf") as gen:
            r = admin_client.get(f"/admin/quotations/{seed_quotation}/pdf?term={a}&term=9999")
        assert r.status_code == 400
        assert "9999" in r.get_json()["error"]
        gen.assert_not_called()

    def test_all_term_ids_unknown_is_not_defaults(self, admin_client, seed_quotation):
        r = admin_client.get(f"/admin/quotations/{seed_quotation}/pdf?term=999")
        assert r.status_code == 400
        assert r.get_json()["ok"] is False

    def test_repeated_term_id_accepted(self, admin_client, seed_quotation):
        a = db.add_term("1. Payment", "50% advance")
        r = admin_client.get(f"/admin/quotations/{seed_quotation}/pdf?term={a}&term={a}")
        assert r.status_code == 200

    def test_missing_quotation_404(self, admin_client):
        assert admin_client.get("/admin/quotations/4242/pdf").status_code == 404

    def test_rate_limited(self, admin_client, seed_quotation, monkeypatch):
        monkeypatch.setenv("DISABLE_RATE_LIMIT", "false")
        codes = [admin_client.get(f"/admin/quotations/{seed_quotation}/pdf?currency=EUR").status_code
                 for _ in range(12)]
        assert codes[0] == 400
        assert codes[-1] == 429


# ═══════════════════════════════════════════════════════════════════════════════
# API HEALTH + HEADERS
# ═══════════════════════════════════════════════════════════════════════════════

class TestHealth:

    def test_health(self, anon_client):
        r = anon_client.get("/api/health")
        assert r.status_code == 200
        data = r.get_json()
        assert data["ok"] is True
        assert data["checks"]["db"]["ok"] is True
        assert data["checks"]["settings"]["total"] >= 1

    def test_health_never_leaks_secret(self, anon_client, monkeypatch):
        monkeypatch.setenv("SECRET_KEY", "super-secret-value-123")
        assert b"super-secret" not in anon_client.get("/api/health").data

    def test_security_headers(self, anon_client):
        r = anon_client.get("/")
        assert r.headers["X-Content-Type-Options"] == "nosniff"
        assert r.headers["X-Frame-Options"] == "SAMEORIGIN"
