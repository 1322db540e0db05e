"""
Raise Lab Quotation PDF Generator
=================================
Technical & commercial offer documents, one item per page section.

Layout (A4 portrait, mm from the top-left):
  - Blue/orange double border + contact footer box on every page
  - Header: logo top-left, address top-right, blue/orange rules at y=35/36
  - Per item: offer title, bill-to block (first item only), description,
    features + image (wide or tall layout), specifications, commercial
    offer table with add-ons rolled into the unit price
  - Final page: HSN code, terms and conditions, signature block

Images are fetched concurrently before drawing starts; drawing itself is
strictly sequential and threads a PageCursor through every step.
"""

import os
import logging
import time
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional, Sequence

from dateutil import parser as dateparser
from reportlab.lib.colors import HexColor

from raiselab.core.models import (ActingUser, CompanySettings, ImageLayout,
                                  LineItem, Quotation, Term)
from raiselab.forms.image_loader import LoadedImage, load_logo, prefetch_item_images
from raiselab.forms.surface import BLACK, Cell, PageCursor, PdfSurface

log = logging.getLogger("quote_gen")

# ═══════════════════════════════════════════════════════════════════════════════
# BRAND
# ═══════════════════════════════════════════════════════════════════════════════
BLUE    = HexColor("#00529C")
ORANGE  = HexColor("#FF6600")
WHITE   = HexColor("#FFFFFF")

RAISELAB = {
    "name":     "Raise Lab Equipment",
    "address":  "C-6, B1, Industrial Park, Moula Ali,\nHyderabad, Secunderabad,\nTelangana 500040",
    "phone":    "+91 91777 70365",
    "footer":   "Write us: info@raiselabequip.com / sales@raiselabequip.com | Contact: +91 91777 70365",
    "hsn_code": "84799031",
}

CURRENCIES = {
    "INR": {"symbol": "₹", "label": "INR", "fallback": "Rs."},
    "USD": {"symbol": "$", "label": "USD", "fallback": "$"},
}

# ═══════════════════════════════════════════════════════════════════════════════
# PAGE GEOMETRY (mm)
# ═══════════════════════════════════════════════════════════════════════════════
MARGIN          = 15
CONTENT_TOP     = 45
BREAK_CLEARANCE = 80     # commercial offer moves to a new page below H - 80
VALIDITY_DAYS   = 30

DEFAULT_FEATURES = (
    "Accurate method for determining the strength of antibiotic material",
    "Microprocessor based design",
    "Average of Vertical diameter & Horizontal diameter of inhibited zone",
    "Magnified image of inhibited zone is clearly visible on the prism Screen",
    "Calibration facility with certified coins",
    "Inbuilt thermal printer",
    "Parallel printer port & RS 232 port for taking Test Printer Report",
    "Password protection for Real Time Clock",
    "Membrane Keypad for easy operation",
    "Complies to cGMP (MOC-stainless steel -304 & Stainless Steel-316)",
    "IQ/OQ Documentation",
)

DEFAULT_TERMS = (
    Term("1. Taxes", "18% GST extra applicable"),
    Term("2. Packaging & Forwarding", "Extra As Applicable"),
    Term("3. Fright", "T0 Pay / Extra as applicable"),
    Term("4. DELIVERY", "We deliver the order in 3-4 Weeks from the date of receipt of purchase order"),
    Term("5. INSTALLATION", "Fees extra as applicable"),
    Term("6. PAYMENT", "100% payment at the time of proforma invoice prior to dispatch."),
    Term("7. WARRANTY", "One year warranty from the date of dispatch"),
    Term("8. GOVERNING LAW", "These Terms and Conditions and any action related hereto shall be "
         "governed, controlled, interpreted and defined by and under the laws of the State of Telangana"),
    Term("9. MODIFICATION", "Any modification of these Terms and Conditions shall be valid only if "
         "it is in writing and signed by the authorized representatives of both Supplier and Customer."),
)

# ═══════════════════════════════════════════════════════════════════════════════
# FORMATTING HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

def _currency(currency: str) -> dict:
    """INR gets the rupee sign; anything else is quoted in dollars."""
    return CURRENCIES["INR"] if currency == "INR" else CURRENCIES["USD"]


def group_thousands(amount: float) -> str:
    """1234567.5 → '1,234,567.5' (en-US grouping, at most 3 decimals)."""
    amount = round(float(amount), 3)
    if amount == int(amount):
        return f"{int(amount):,}"
    return f"{amount:,.3f}".rstrip("0").rstrip(".")


def format_price(amount: float, currency: str = "INR", symbol: str = None) -> str:
    symbol = symbol if symbol is not None else _currency(currency)["symbol"]
    return f"{symbol} {group_thousands(amount)}/-"


def price_symbol(s: PdfSurface, currency: str, style: str = "bold") -> str:
    """Currency sign the surface's font can draw, else its ASCII spelling."""
    cur = _currency(currency)
    return cur["symbol"] if s.has_glyph(cur["symbol"], style) else cur["fallback"]


def unit_price(item: LineItem) -> float:
    """Item price plus every selected add-on."""
    return item.price + sum(a.price for a in item.selected_addons)


def _as_datetime(value) -> datetime:
    if value is None or value == "":
        return datetime.now()
    if isinstance(value, datetime):
        return value
    return dateparser.parse(str(value))


def format_date(value) -> str:
    return _as_datetime(value).strftime("%d-%m-%Y")


def validity_date(created_at, days: int = VALIDITY_DAYS) -> str:
    return format_date(_as_datetime(created_at) + timedelta(days=days))


def pdf_filename(quotation: Quotation) -> str:
    return f"{quotation.quotation_number}_Quotation.pdf"


# ═══════════════════════════════════════════════════════════════════════════════
# PAGE FURNITURE
# ═══════════════════════════════════════════════════════════════════════════════

def _draw_page_border(s: PdfSurface):
    W, H = s.width, s.height
    # Outer blue
    s.set_draw_color(BLUE)
    s.set_line_width(1.2)
    s.rect(5, 5, W - 10, H - 10)
    # Inner orange
    s.set_draw_color(ORANGE)
    s.set_line_width(0.8)
    s.rect(7, 7, W - 14, H - 14)
    # Footer contact box
    s.set_draw_color(BLACK)
    s.set_line_width(0.3)
    s.rect(MARGIN + 10, H - 15, W - MARGIN * 2 - 20, 8)
    s.set_font("bold", 7)
    s.set_text_color(BLACK)
    s.text(W / 2, H - 9.5, RAISELAB["footer"], align="center")


def _draw_header(s: PdfSurface, logo: Optional[LoadedImage]):
    W = s.width
    if logo:
        s.image(logo.data, MARGIN, 12, 50, 18)

    s.set_font("normal", 9)
    s.set_text_color(BLACK)
    s.text(W - MARGIN, 14, s.split_text(RAISELAB["address"], 70), align="right")

    s.set_draw_color(BLUE)
    s.set_line_width(0.5)
    s.line(MARGIN, 35, W - MARGIN, 35)
    s.set_draw_color(ORANGE)
    s.set_line_width(0.3)
    s.line(MARGIN, 36, W - MARGIN, 36)


def _start_page(s: PdfSurface, cursor: PageCursor, logo: Optional[LoadedImage]):
    """New page with border and header; cursor back to the content top."""
    s.new_page()
    cursor.page += 1
    cursor.y = CONTENT_TOP
    _draw_page_border(s)
    _draw_header(s, logo)


# ═══════════════════════════════════════════════════════════════════════════════
# ITEM SECTIONS
# ═══════════════════════════════════════════════════════════════════════════════

def _draw_offer_title(s: PdfSurface, cursor: PageCursor, item: LineItem):
    s.set_font("bold", 11)
    s.text(s.width / 2, cursor.y, "Technical & Commercial Offer", align="center")
    cursor.advance(6)
    s.set_font("bold", 10)
    s.text(s.width / 2, cursor.y, f"For {item.name}", align="center")
    cursor.advance(10)


def _draw_bill_to(s: PdfSurface, cursor: PageCursor, quotation: Quotation):
    to_block = f"To\n\n{quotation.customer_name}"
    if quotation.customer_address:
        to_block += "\n" + quotation.customer_address
    quote_block = (f"Quote No: {quotation.quotation_number}\n\n"
                   f"Date: {format_date(quotation.created_at)}\n\n"
                   f"Validity: {validity_date(quotation.created_at)}")
    bottom = s.table(
        MARGIN, cursor.y, [100, 65],
        [[Cell(to_block, bold=True, size=9), Cell(quote_block, size=9)]],
        padding=4,
    )
    cursor.y = bottom + 8


def _draw_description(s: PdfSurface, cursor: PageCursor, item: LineItem):
    s.set_font("bold", 9)
    s.text(MARGIN, cursor.y, "Description:")
    cursor.advance(5)
    s.set_font("normal", 8)
    lines = s.split_text(item.description, s.width - MARGIN * 2)
    s.text(MARGIN, cursor.y, lines)
    cursor.advance(len(lines) * 4 + 3)


def _draw_feature_list(s: PdfSurface, cursor: PageCursor, features: Sequence[str], width: float):
    s.set_font("normal", 8)
    for feature in features:
        s.text(MARGIN + 3, cursor.y, "•")
        lines = s.split_text(feature, width)
        s.text(MARGIN + 8, cursor.y, lines)
        cursor.advance(len(lines) * 3.5)


def _draw_features_wide(s: PdfSurface, cursor: PageCursor, features, image: Optional[LoadedImage]):
    """Image across the page under the description, features below it."""
    if image:
        img_w, img_h = s.width - MARGIN * 2 - 20, 50
        s.image(image.data, MARGIN + 10, cursor.y, img_w, img_h)
        cursor.advance(img_h + 8)

    s.set_font("bold", 9)
    s.text(MARGIN, cursor.y, "FEATURES:")
    cursor.advance(5)
    _draw_feature_list(s, cursor, features, s.width - MARGIN * 2 - 10)
    cursor.advance(5)


def _draw_features_tall(s: PdfSurface, cursor: PageCursor, features, image: Optional[LoadedImage]):
    """Features down the left, a 50x50 image pinned top-right."""
    s.set_font("bold", 9)
    s.text(MARGIN, cursor.y, "FEATURES:")
    cursor.advance(5)

    feature_top = cursor.y
    width = 100 if image else s.width - MARGIN * 2 - 10
    _draw_feature_list(s, cursor, features, width)

    if image:
        s.image(image.data, s.width - MARGIN - 55, feature_top - 3, 50, 50)

    cursor.y = max(cursor.y + 5, feature_top + 55)


def _draw_specs(s: PdfSurface, cursor: PageCursor, item: LineItem):
    if not item.specs:
        return
    s.set_font("bold", 9)
    s.text(MARGIN, cursor.y, "Specifications:")
    cursor.advance(5)
    s.set_font("normal", 8)
    for spec in item.specs:
        s.text(MARGIN + 3, cursor.y, "•")
        s.text(MARGIN + 8, cursor.y, spec.key)
        value = spec.value if spec.value.startswith(":") else f": {spec.value}"
        s.text(MARGIN + 55, cursor.y, value)
        cursor.advance(4)
    cursor.advance(5)


def _draw_commercial_offer(s: PdfSurface, cursor: PageCursor, item: LineItem, currency: str):
    s.set_font("bold", 10)
    s.text(MARGIN, cursor.y, "Commercial Offer:")
    cursor.advance(5)

    desc = item.name
    if item.selected_addons:
        desc += "\n\nStandard Accessories:"
        for addon in item.selected_addons:
            desc += f"\n• {addon.name}"

    price = format_price(unit_price(item), currency, price_symbol(s, currency))
    row = [
        Cell("01", size=9, halign="center", valign="middle"),
        Cell(desc, size=9, halign="left", valign="middle", padding=3),
        Cell("1", size=9, halign="center", valign="middle"),
        Cell(price, bold=True, size=12, halign="right", valign="middle", padding=3),
    ]
    bottom = s.table(
        MARGIN, cursor.y, [15, None, 15, 45], [row],
        head=["S.No", "Description", "Qty", f"Price ({_currency(currency)['label']})"],
        head_fill=BLUE, head_color=WHITE, head_size=9, padding=4,
    )
    cursor.y = bottom + 10


def _draw_item(s: PdfSurface, cursor: PageCursor, item: LineItem, quotation: Quotation,
               image: Optional[LoadedImage], logo: Optional[LoadedImage],
               first: bool, currency: str):
    _draw_offer_title(s, cursor, item)
    if first:
        _draw_bill_to(s, cursor, quotation)
    _draw_description(s, cursor, item)

    features = item.features if item.features is not None else DEFAULT_FEATURES
    if item.image_format is ImageLayout.WIDE:
        _draw_features_wide(s, cursor, features, image)
    elif item.image_format is ImageLayout.TALL:
        _draw_features_tall(s, cursor, features, image)
    else:
        raise ValueError(f"Unhandled image layout: {item.image_format!r}")

    _draw_specs(s, cursor, item)

    if cursor.y > s.height - BREAK_CLEARANCE:
        _start_page(s, cursor, logo)

    _draw_commercial_offer(s, cursor, item, currency)


# ═══════════════════════════════════════════════════════════════════════════════
# TERMS PAGE
# ═══════════════════════════════════════════════════════════════════════════════

def _draw_terms_page(s: PdfSurface, cursor: PageCursor, terms: Sequence[Term],
                     settings: CompanySettings, user: ActingUser, logo: Optional[LoadedImage]):
    _start_page(s, cursor, logo)
    W = s.width

    s.set_font("bold", 11)
    s.text(MARGIN, cursor.y, "Terms And Conditions:")
    cursor.advance(8)

    s.set_font("bold", 9)
    s.text(MARGIN, cursor.y, "HSN CODE")
    cursor.advance(4)
    s.set_font("normal", 9)
    s.text(MARGIN + 5, cursor.y, RAISELAB["hsn_code"])
    cursor.advance(8)

    s.set_font("normal", 8)
    for term in terms:
        lines = s.split_text(f"{term.title}: {term.text}", W - MARGIN * 2)
        s.text(MARGIN, cursor.y, lines)
        cursor.advance(len(lines) * 4 + 2)

    cursor.advance(10)
    s.set_font("bold", 9)
    s.text(W - MARGIN, cursor.y, f"From {settings.company_name or RAISELAB['name']}", align="right")
    cursor.advance(5)
    s.text(W - MARGIN, cursor.y, user.full_name.upper() if user.full_name else "SALES TEAM", align="right")
    cursor.advance(5)
    s.set_font("normal", 8)
    s.text(W - MARGIN, cursor.y, f"Contact: {user.phone or RAISELAB['phone']}", align="right")


# ═══════════════════════════════════════════════════════════════════════════════
# MAIN PDF GENERATOR
# ═══════════════════════════════════════════════════════════════════════════════

def _save(pdf: bytes, output_path: str, filename: str) -> str:
    path = os.path.join(output_path, filename) if os.path.isdir(output_path) else output_path
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, "wb") as f:
        f.write(pdf)
    return path


def generate_quotation_pdf(
    quotation: Quotation,
    items: Iterable[LineItem],
    settings: CompanySettings = None,
    user: ActingUser = None,
    selected_terms: Sequence[Term] = None,
    currency: str = "INR",
    output_path: str = None,
    surface: PdfSurface = None,
    images: Dict[object, LoadedImage] = None,
    logo: Optional[LoadedImage] = None,
) -> dict:
    """
    Render a quotation to PDF.

    Item images are prefetched concurrently unless ``images`` is given;
    the logo is loaded unless ``logo`` is given. ``output_path`` (a file or
    a directory) also saves the PDF as ``<quotation_number>_Quotation.pdf``.

    Returns {ok, pdf, filename, path, pages, items_count, quotation_number,
    currency, images}.
    """
    t0 = time.time()
    items = list(items)
    settings = settings or CompanySettings()
    user = user or ActingUser()
    filename = pdf_filename(quotation)

    log.info("Generating quotation %s for %s (%d items, %s)",
             quotation.quotation_number, (quotation.customer_name or "?")[:40],
             len(items), currency)

    if images is None:
        images = prefetch_item_images(items)
    if logo is None:
        logo = load_logo()

    s = surface or PdfSurface(title=f"Quotation {quotation.quotation_number}",
                              author=settings.company_name or RAISELAB["name"])
    cursor = PageCursor(page=1, y=CONTENT_TOP)
    _draw_page_border(s)
    _draw_header(s, logo)

    for index, item in enumerate(items):
        if index > 0:
            _start_page(s, cursor, logo)
        _draw_item(s, cursor, item, quotation, images.get(item.image_key), logo,
                   first=(index == 0), currency=currency)

    terms = list(selected_terms) if selected_terms else list(DEFAULT_TERMS)
    _draw_terms_page(s, cursor, terms, settings, user, logo)

    pdf = s.getvalue()
    path = _save(pdf, output_path, filename) if output_path else ""

    result = {
        "ok": True,
        "pdf": pdf,
        "filename": filename,
        "path": path,
        "pages": s.page_count,
        "items_count": len(items),
        "quotation_number": quotation.quotation_number,
        "currency": _currency(currency)["label"],
        "images": {key: img.orientation.value for key, img in images.items()},
    }
    log.info("Quotation %s generated: %d pages, %d bytes → %s",
             quotation.quotation_number, result["pages"], len(pdf), path or "(memory)",
             extra={"quotation_number": quotation.quotation_number,
                    "currency": result["currency"], "items": len(items),
                    "pages": result["pages"],
                    "duration_ms": round((time.time() - t0) * 1000, 1)})
    return result


# ═══════════════════════════════════════════════════════════════════════════════
# SELF-TEST
# ═══════════════════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    from raiselab.core.models import Addon, Spec

    demo = Quotation(quotation_number="RLE-DEMO-001", customer_name="Acme Pharma Pvt Ltd",
                     customer_address="Plot 12, Genome Valley\nHyderabad 500078",
                     created_at="2024-01-01T10:00:00")
    demo_items = [
        LineItem(name="Antibiotic Zone Reader", price=185000,
                 description="Microprocessor based zone reader for antibiotic assays.",
                 selected_addons=(Addon("Calibration coins", 4500), Addon("Thermal printer", 7500)),
                 specs=(Spec("Display", "7 inch LCD"), Spec("Power", "230V AC")),
                 image_format=ImageLayout.TALL),
        LineItem(name="Stability Chamber", price=420000,
                 description="Walk-in stability chamber, 25C/60%RH.",
                 features=("PLC controlled", "21 CFR Part 11 compliant software")),
    ]
    os.makedirs("/tmp/quotations", exist_ok=True)
    r = generate_quotation_pdf(demo, demo_items, output_path="/tmp/quotations")
    print(f"{r['filename']}: {r['pages']} pages → {r['path']}")
