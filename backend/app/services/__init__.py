# Services package init
"""
AGE-MATE Tracking Backend — Services Layer
===========================================

Service Inventory:
    - RecordStore:      JSON file persistence with atomic replace
    - LookupService:    tracking identifier → shipment record
    - ImportService:    CSV rows → merged store updates
    - ReceiptRenderer:  shipment record → PDF (and JPEG via a Rasterizer)

Services know nothing about HTTP; they raise exceptions from app.exceptions
and the handlers in main.py turn those into responses.
"""
