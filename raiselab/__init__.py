"""
Raise Lab Quotations - Admin Dashboard + Quotation PDF Renderer

Packages:
    api/        Dashboard blueprint, access-gated routes and HTML templates
    forms/      Quotation PDF layout, drawing surface and image loading
    core/       Shared configuration, logging, paths, data layer and security
"""
