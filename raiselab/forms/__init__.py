"""Quotation PDF generation.

Key exports:
    generate_quotation_pdf() - Render a quotation (items, terms, signature) to PDF bytes
    prefetch_item_images()   - Concurrent per-item image fetch + JPEG recompress
    PdfSurface               - reportlab canvas addressed in mm from the top-left
"""
