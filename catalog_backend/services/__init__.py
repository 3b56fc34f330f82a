# ==============================================================================
# SERVICES PACKAGE INITIALIZATION
# ==============================================================================

"""
Service Layer
=============

- results: Ok / Err operation results
- entities: entity descriptors and their builder
- notifications: outage notification sinks
- repository_service: generic filtered CRUD per entity
- membership_service: products attached to feeds and suppliers
- image_service: product images and their order
- container: process wiring

Submodules are imported directly; the database layer depends on
``notifications``, so this package stays free of eager imports.
"""
