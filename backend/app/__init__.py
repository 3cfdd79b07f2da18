"""
AGE-MATE Tracking Backend — Application Package
================================================

What: Shipment tracking service: record lookup, shipment administration,
      bulk CSV import and PDF/JPEG receipts.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← lookup, import, receipts
    ├─────────────────────────────────────┤
    │             Schemas (Data)          │  ← Pydantic API contracts
    ├─────────────────────────────────────┤
    │      Record Store (Persistence)     │  ← one JSON file, atomic replace
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
