"""
Routes Package for StoreDesk
============================

This package contains all API route definitions organized by domain. Each
module defines one or more FastAPI APIRouters with related endpoints.

Architecture Overview:
----------------------
**Public Routes (no auth, rate limited):**
- chat.py: Widget history, messages, AI replies and the widget round trip
- orders.py: POST /orders storefront checkout (owner list/status routes live here too)

**Owner Dashboard Routes (HTTP Basic, scoped to the owner's store):**
- attendance.py: Attendance records for course sessions
- deals.py: Real-estate deal pipeline and commissions
- housekeeping.py: Unit cleaning and inspection tasks
- invoices.py: Invoices, line items and payments
- laundry.py: Laundry orders and the processing board
- machines.py: Laundry machines
- patients.py: Patient records
- permits.py: Construction projects and permits
- pos.py: Register sessions and checkout
- programs.py: Programs, course sessions and enrollments
- students.py: Student records
- units.py: Hospitality units
- flows.py: Conversation flow builder
- vouchers.py: Vouchers and compensation policies

Conventions:
------------
- Lists return {"data": [...], "total": n}, newest first, with lenient
  limit/offset paging (see services.helpers)
- Create returns 201; DELETE returns {"success": true}
- 401 bad credentials, 403 no store, 404 not in this store, 400 rule
  violations and body validation errors, 429 rate limited

Usage:
------
    from storedesk.routes import chat_router, deals_router
    app.include_router(chat_router)
"""

from .attendance import attendance_router
from .chat import chat_router
from .deals import deals_router
from .flows import flows_router
from .housekeeping import housekeeping_router
from .invoices import invoices_router
from .laundry import laundry_router, processing_router
from .machines import machines_router
from .orders import orders_router
from .patients import patients_router
from .permits import permits_router, projects_router
from .pos import pos_router
from .programs import course_sessions_router, enrollments_router, programs_router
from .students import students_router
from .units import units_router
from .vouchers import compensation_policies_router, vouchers_router

__all__ = [
    "attendance_router",
    "chat_router",
    "compensation_policies_router",
    "course_sessions_router",
    "deals_router",
    "enrollments_router",
    "flows_router",
    "housekeeping_router",
    "invoices_router",
    "laundry_router",
    "machines_router",
    "orders_router",
    "patients_router",
    "permits_router",
    "pos_router",
    "processing_router",
    "programs_router",
    "projects_router",
    "students_router",
    "units_router",
    "vouchers_router",
]
