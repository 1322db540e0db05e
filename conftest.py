"""
Shared pytest fixtures for the Raise Lab Quotations test suite.

Every test gets its own data directory (SQLite db, uploads, output, assets),
so nothing touches the git-tracked data/ folder.
"""
import io
import os
import pytest

from PIL import Image

from raiselab.core import db, paths
from raiselab.core.models import (ActingUser, Addon, CompanySettings, ImageLayout,
                                  LineItem, Quotation, Spec, Term)
from raiselab.core.security import _limiter
from raiselab.forms import surface as surface_mod
from raiselab.forms.surface import PdfSurface


_SETTINGS_ENV = ("QUOTE_LOGO_URL", "QUOTE_FONT_PATH", "QUOTE_FONT_BOLD_PATH",
                 "IMAGE_FETCH_TIMEOUT", "IMAGE_FETCH_WORKERS",
                 "ADMIN_EMAIL", "ADMIN_PASSWORD", "SECRET_KEY")


# ── Temp data directory (per-test isolation) ──────────────────────────────────

@pytest.fixture(autouse=True)
def temp_data_dir(tmp_path, monkeypatch):
    """Redirect ALL data/output dirs and the db to an isolated tmp directory."""
    data = str(tmp_path / "data")
    dirs = {
        "DATA_DIR": data,
        "ASSETS_DIR": os.path.join(data, "assets"),
        "UPLOAD_DIR": os.path.join(data, "uploads"),
        "OUTPUT_DIR": os.path.join(data, "output"),
        "LOG_DIR": os.path.join(data, "logs"),
    }
    for name, path in dirs.items():
        os.makedirs(path, exist_ok=True)
        monkeypatch.setattr(paths, name, path)
    db_path = os.path.join(data, "raiselab.db")
    monkeypatch.setattr(paths, "DB_PATH", db_path)
    monkeypatch.setattr(db, "DB_PATH", db_path)

    for var in _SETTINGS_ENV:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("DISABLE_RATE_LIMIT", "true")

    surface_mod.reset_fonts()
    _limiter.reset()
    yield data
    surface_mod.reset_fonts()


# ── Flask test clients ────────────────────────────────────────────────────────

@pytest.fixture
def app(temp_data_dir):
    """Create Flask app configured for testing."""
    from app import create_app
    return create_app({"TESTING": True})


@pytest.fixture
def anon_client(app):
    """Unauthenticated test client."""
    with app.test_client() as c:
        yield c


def _signed_in_client(app, profile_id):
    c = app.test_client()
    with c.session_transaction() as sess:
        sess["user_id"] = profile_id
    return c


@pytest.fixture
def admin_profile(app):
    return db.upsert_profile("u-admin", "admin@raiselab.test", "s3cret-pass",
                             full_name="Asha Rao", phone="+91 90000 11111", role="admin")


@pytest.fixture
def sales_profile(app):
    return db.upsert_profile("u-sales", "sales@raiselab.test", "s3cret-pass",
                             full_name="Ravi Kumar", role="sales")


@pytest.fixture
def admin_client(app, admin_profile):
    """Session signed in as an admin profile."""
    with _signed_in_client(app, admin_profile["id"]) as c:
        yield c


@pytest.fixture
def sales_client(app, sales_profile):
    """Session signed in as a non-admin profile."""
    with _signed_in_client(app, sales_profile["id"]) as c:
        yield c


# ── Images ────────────────────────────────────────────────────────────────────

def make_png(width, height, color=(0, 82, 156), mode="RGB"):
    """In-memory PNG of the given size."""
    if mode == "RGBA" and len(color) == 3:
        color = color + (128,)
    img = Image.new(mode, (width, height), color)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_factory():
    return make_png


# ── Recording surface ─────────────────────────────────────────────────────────

class RecordingSurface(PdfSurface):
    """A real PdfSurface that also keeps a log of every draw call."""

    def __init__(self, *args, **kwargs):
        self.ops = []
        super().__init__(*args, **kwargs)

    def new_page(self):
        super().new_page()
        self.ops.append(("page", self.page_count))

    def text(self, x, y, lines, align="left"):
        recorded = lines.split("\n") if isinstance(lines, str) else list(lines)
        self.ops.append(("text", self.page_count, x, y, recorded, align, self._font))
        super().text(x, y, lines, align)

    def image(self, data, x, y, w, h):
        self.ops.append(("image", self.page_count, x, y, w, h))
        super().image(data, x, y, w, h)

    def rect(self, x, y, w, h):
        self.ops.append(("rect", self.page_count, x, y, w, h))
        super().rect(x, y, w, h)

    def line(self, x1, y1, x2, y2):
        self.ops.append(("line", self.page_count, x1, y1, x2, y2))
        super().line(x1, y1, x2, y2)

    def table(self, x, y, col_widths, rows, head=None, **kwargs):
        bottom = super().table(x, y, col_widths, rows, head=head, **kwargs)
        self.ops.append(("table", self.page_count, x, y, list(col_widths),
                         [[cell.text for cell in row] for row in rows],
                         list(head) if head else None, bottom))
        return bottom

    # ── queries ──
    def of(self, kind, page=None):
        return [op for op in self.ops if op[0] == kind and (page is None or op[1] == page)]

    def texts(self, page=None):
        """Every drawn text line (joined per call), in draw order."""
        return ["\n".join(op[4]) for op in self.of("text", page)]

    def find_text(self, needle, page=None):
        return [op for op in self.of("text", page) if needle in "\n".join(op[4])]


@pytest.fixture
def recording_surface():
    return RecordingSurface(title="test")


@pytest.fixture
def surface_factory():
    """Fresh RecordingSurface per call, for tests that render twice."""
    return lambda: RecordingSurface(title="test")


# ── Sample data factories ─────────────────────────────────────────────────────

@pytest.fixture
def sample_quotation():
    return Quotation(
        id=1,
        quotation_number="RLE-2024-001",
        customer_name="Acme Pharma Pvt Ltd",
        customer_address="Plot 12, Genome Valley\nHyderabad 500078",
        created_at="2024-01-01T10:30:00",
    )


@pytest.fixture
def sample_items():
    """One wide item with add-ons and specs, one tall item without an image."""
    return [
        LineItem(
            id=11,
            name="Antibiotic Zone Reader",
            price=100,
            description="Zone reader for antibiotic assays.",
            selected_addons=(Addon("Calibration coins", 10), Addon("Thermal printer", 20)),
            image_url="https://img.example.com/reader.png",
            specs=(Spec("Display", "7 inch LCD"), Spec("Power", ": 230V AC")),
            image_format=ImageLayout.WIDE,
        ),
        LineItem(
            id=12,
            name="Stability Chamber",
            price=420000,
            description="Walk-in stability chamber.",
            features=("PLC controlled", "21 CFR Part 11 software"),
            image_format=ImageLayout.TALL,
        ),
    ]


@pytest.fixture
def sample_settings():
    return CompanySettings(company_name="Raise Lab Equipment Pvt Ltd")


@pytest.fixture
def sample_user():
    return ActingUser(full_name="Asha Rao", phone="+91 90000 11111")


@pytest.fixture
def sample_terms():
    return [Term("1. Payment", "50% advance"), Term("2. Delivery", "Six weeks")]


@pytest.fixture
def seed_quotation(app):
    """Quotation with two items in the db, return its id."""
    qid = db.create_quotation("RLE-2024-007", "Acme Pharma Pvt Ltd",
                              "Plot 12, Genome Valley", created_at="2024-01-01T09:00:00")
    db.add_quotation_item(qid, "Antibiotic Zone Reader", 100,
                          description="Zone reader.",
                          selected_addons=[Addon("Calibration coins", 10), Addon("Printer", 20)],
                          specs=[Spec("Display", "7 inch LCD")])
    db.add_quotation_item(qid, "Stability Chamber", 420000, description="Chamber.",
                          image_format="tall", features=["PLC controlled"])
    return qid
