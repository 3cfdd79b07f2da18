# Routes package init
"""
AGE-MATE Tracking Backend — API Routes Package
===============================================

Route Inventory:
    - tracking.py:   POST /api/track
    - shipments.py:  POST /api/shipments, PUT/GET /api/shipments/{tracking},
                     GET /api/shipments
    - imports.py:    POST /api/import-csv
    - receipts.py:   GET  /api/receipt/{tracking}/pdf|jpeg
    - health.py:     GET  /health

Routes stay thin: extract input, call a service, shape the response.
"""
