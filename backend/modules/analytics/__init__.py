# backend/modules/analytics/__init__.py

"""
Analytics Module - Vendor Sales Reports

Aggregates the order store into per-vendor sales reports for the vendor
dashboard.

Key Features:
- Monthly and per-product sales (cached)
- Vendor headline stats composed from the cached reports
- Live detailed analytics and daily breakdowns over a date range
- Reconciliation of live figures against cached ones

Components:
- Pipelines: declarative aggregation stages run on MongoDB or in memory
- Services: report computation and caching
- Schemas: Pydantic response models (camelCase on the wire)
- Routers: FastAPI endpoints under /api/analytics
"""

__version__ = "1.0.0"
