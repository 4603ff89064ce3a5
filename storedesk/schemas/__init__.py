"""
Pydantic Schemas for StoreDesk
==============================

Request and response models, one module per resource. Routes import from
the resource module directly (``from ..schemas.deals import DealOut``).

Naming:
-------
- XCreate: POST body
- XUpdate: PATCH body, every field optional
- XOut: single resource response, built with ``XOut.model_validate(row)``
- XListResponse: ``{"data": [XOut, ...], "total": n}``

SuccessResponse (the DELETE body) lives in common.py.
"""
